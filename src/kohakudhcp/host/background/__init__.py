"""Background tasks for the host server."""
