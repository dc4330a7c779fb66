"""
CLI configuration.

Module-level settings filled from the global options in ``cli.main``
(``--host``, ``--port``, ``--format`` and their KOHAKUDHCP_* variables).
"""

HOST_ADDRESS: str = "127.0.0.1"
HOST_PORT: int = 8067
OUTPUT_FORMAT: str = "table"
REQUEST_TIMEOUT: float = 10.0
