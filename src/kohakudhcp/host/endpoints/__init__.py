"""HTTP API routers for the host server."""
