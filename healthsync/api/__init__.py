"""HTTP and WebSocket routers for HealthSync."""
