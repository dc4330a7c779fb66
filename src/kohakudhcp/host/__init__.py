"""HakuDHCP host server."""
