"""
Host server configuration for HakuDHCP.

This module defines the configuration dataclass for the host server,
providing a centralized place for all configurable parameters.

Configuration can be loaded from a YAML file, overridden by
KOHAKUDHCP_<FIELD> environment variables, or modified at runtime before
the server starts.

Usage:
    from kohakudhcp.host.config import config

    config.HOST_PORT = 9000
    config.LOG_LEVEL = LogLevel.DEBUG
"""

import dataclasses
import os
from dataclasses import dataclass, field

import yaml

from kohakudhcp.models.enums import LogLevel

ENV_PREFIX = "KOHAKUDHCP_"


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class HostConfig:
    """
    Host server configuration.

    Attributes:
        HOST_BIND_IP: IP address to bind the API server to.
        HOST_PORT: HTTP API port.
        DB_FILE: Path to the SQLite database file.
        LOG_LEVEL: Logging verbosity level.
        SWEEP_INTERVAL_SECONDS: Period of the expired-lease sweeper.
        KEA_CONFIG_PATH: Where the rendered kea-dhcp4 configuration is written.
        UNBOUND_CONFIG_PATH: Where the rendered Unbound forward zone is written.
    """

    # -------------------------------------------------------------------------
    # Network Configuration
    # -------------------------------------------------------------------------

    HOST_BIND_IP: str = "127.0.0.1"
    HOST_PORT: int = 8067

    # -------------------------------------------------------------------------
    # Path Configuration
    # -------------------------------------------------------------------------

    DB_FILE: str = "/var/lib/kohakudhcp/kohakudhcp.db"
    HOST_LOG_FILE: str = ""

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO

    # -------------------------------------------------------------------------
    # Lease Configuration
    # -------------------------------------------------------------------------

    SWEEP_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = 300
    ALLOCATION_MAX_ATTEMPTS: int = 3
    DEFAULT_LEASE_SECONDS: int = 86400
    DEFAULT_MAX_LEASE_SECONDS: int = 604800

    # -------------------------------------------------------------------------
    # Kea DHCP Configuration
    # -------------------------------------------------------------------------

    KEA_CONFIG_PATH: str = "/etc/kea/kea-dhcp4.conf"
    KEA_INTERFACES: list[str] = field(default_factory=lambda: ["*"])
    KEA_CONTROL_SOCKET: str = "/run/kea/kea4-ctrl-socket"
    KEA_LEASE_FILE: str = "/var/lib/kea/kea-leases4.csv"
    KEA_LOG_FILE: str = "/var/log/kea/kea-dhcp4.log"
    KEA_HOOK_LIBRARIES: list[str] = field(
        default_factory=lambda: ["/usr/lib/kea/hooks/libdhcp_lease_cmds.so"]
    )
    # Empty command writes the file without reloading
    KEA_RELOAD_COMMAND: list[str] = field(
        default_factory=lambda: ["systemctl", "reload", "kea-dhcp4"]
    )

    # -------------------------------------------------------------------------
    # Unbound DNS Configuration
    # -------------------------------------------------------------------------

    UNBOUND_CONFIG_PATH: str = "/etc/unbound/unbound.conf.d/kohakudhcp.conf"
    UNBOUND_INTERFACE: str = "0.0.0.0"
    UNBOUND_PORT: int = 53
    UNBOUND_ACCESS_CONTROL: list[str] = field(
        default_factory=lambda: [
            "127.0.0.0/8",
            "10.0.0.0/8",
            "172.16.0.0/12",
            "192.168.0.0/16",
        ]
    )
    UNBOUND_TLS_CERT_BUNDLE: str = "/etc/ssl/certs/ca-certificates.crt"
    UNBOUND_RELOAD_COMMAND: list[str] = field(
        default_factory=lambda: ["unbound-control", "reload"]
    )

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def get_host_url(self) -> str:
        """
        Get the API base URL.

        Returns:
            URL string like "http://127.0.0.1:8067"
        """
        return f"http://{self.HOST_BIND_IP}:{self.HOST_PORT}"

    def update(self, values: dict) -> None:
        """Apply a mapping of FIELD -> value, coercing to the field's type."""
        names = {f.name: f for f in dataclasses.fields(self)}
        for key, value in values.items():
            name = key.upper()
            if name not in names:
                raise KeyError(f"Unknown configuration key: {key}")
            setattr(self, name, _coerce(getattr(self, name), value))

    def apply_env(self, environ: dict | None = None) -> None:
        """Override fields from KOHAKUDHCP_<FIELD> environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in dataclasses.fields(self):
            raw = environ.get(f"{ENV_PREFIX}{f.name}")
            if raw is not None:
                overrides[f.name] = raw
        if overrides:
            self.update(overrides)

    @classmethod
    def from_file(cls, path: str) -> "HostConfig":
        """
        Load configuration from a YAML file.

        Keys are field names, case-insensitive. Missing keys keep defaults.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        instance = cls()
        instance.update(data)
        return instance


def _coerce(current, value):
    """Convert a YAML or environment value to the type of the current value."""
    if isinstance(current, LogLevel):
        return LogLevel(str(value).lower())
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, list):
        if isinstance(value, str):
            return value.split() if value.strip() else []
        return list(value)
    return str(value) if value is not None else ""


# =============================================================================
# Global Instance
# =============================================================================

# Global config instance - modify before server startup
config = HostConfig()
