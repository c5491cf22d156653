"""Server-side real-time notification layer."""
