"""
Enumeration types for HakuDHCP.

This module defines the enumeration types used throughout HakuDHCP for
lease state tracking, event categorization and configuration options.
"""

from enum import Enum


# =============================================================================
# Lease-Related Enums
# =============================================================================


class LeaseState(str, Enum):
    """
    Lease lifecycle state.

    State transitions:
        ACTIVE -> RELEASED (client released the address)
        ACTIVE -> DECLINED (client rejected the offered address)
        ACTIVE -> EXPIRED  (expiry sweep)

    RELEASED, EXPIRED and DECLINED are terminal. A client needing a new
    address gets a fresh lease record.
    """

    ACTIVE = "active"
    RELEASED = "released"
    EXPIRED = "expired"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaseState.ACTIVE


# =============================================================================
# Event Log Enums
# =============================================================================


class DhcpEventType(str, Enum):
    """Types of entries recorded in the DHCP event log."""

    POOL_CREATED = "pool_created"
    POOL_UPDATED = "pool_updated"
    POOL_REMOVED = "pool_removed"
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_REMOVED = "reservation_removed"
    LEASE_CREATED = "lease_created"
    LEASE_RENEWED = "lease_renewed"
    LEASE_RELEASED = "lease_released"
    LEASE_DECLINED = "lease_declined"
    LEASE_EXPIRED = "lease_expired"
    CONFIG_APPLIED = "config_applied"


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels for HakuDHCP components.

    Levels (from most to least verbose):
        - FULL: Complete trace including SQL queries
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
