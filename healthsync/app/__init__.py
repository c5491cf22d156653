"""FastAPI application assembly for HealthSync."""

from .factory import create_app

__all__ = ["create_app"]
