"""
Pool database model for HakuDHCP.

This module defines the Pool model which represents a VLAN-scoped
contiguous address range with allocation policy metadata.
"""

import datetime
import json

import peewee

from kohakudhcp.core.address import parse_ip
from kohakudhcp.db.base import BaseModel
from kohakudhcp.models.duration import format_duration


# =============================================================================
# Pool Model
# =============================================================================


class Pool(BaseModel):
    """
    Represents a DHCP address pool.

    Attributes:
        name: Human-readable pool name.
        vlan_id: VLAN tag (1-4094).
        network_cidr: Network in CIDR notation (e.g., '10.0.0.0/24').
        start_ip / end_ip: Inclusive dynamic range.
        lease_seconds / max_lease_seconds: Lease lifetimes in seconds.
        is_active: Whether the pool takes part in allocation and rendering.
    """

    # -------------------------------------------------------------------------
    # Identification
    # -------------------------------------------------------------------------

    id = peewee.AutoField()
    name = peewee.CharField()
    description = peewee.TextField(null=True)
    vlan_id = peewee.IntegerField(index=True)

    # -------------------------------------------------------------------------
    # Addressing
    # -------------------------------------------------------------------------

    network_cidr = peewee.CharField()
    start_ip = peewee.CharField()
    end_ip = peewee.CharField()
    gateway_ip = peewee.CharField()
    dns_servers = peewee.TextField(default="[]")  # JSON array
    domain_name = peewee.CharField(default="local")

    # -------------------------------------------------------------------------
    # Lease Lifetimes (seconds)
    # -------------------------------------------------------------------------

    lease_seconds = peewee.IntegerField(default=86400)
    max_lease_seconds = peewee.IntegerField(default=604800)

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    is_active = peewee.BooleanField(default=True, index=True)
    allow_unknown_clients = peewee.BooleanField(default=True)
    require_authorization = peewee.BooleanField(default=False)

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------

    created_at = peewee.DateTimeField(default=datetime.datetime.now)
    updated_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "pools"

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def start_ordinal(self) -> int:
        return parse_ip(self.start_ip)

    @property
    def end_ordinal(self) -> int:
        return parse_ip(self.end_ip)

    @property
    def size(self) -> int:
        return self.end_ordinal - self.start_ordinal + 1

    def get_dns_servers(self) -> list[str]:
        """Parse stored DNS server JSON into a list."""
        if not self.dns_servers:
            return []
        try:
            return json.loads(self.dns_servers)
        except json.JSONDecodeError:
            return []

    def set_dns_servers(self, servers: list[str] | None) -> None:
        """Store DNS servers as JSON, preserving order."""
        self.dns_servers = json.dumps(list(servers or []))

    def describe(self) -> dict:
        """Identity and range, used in overlap and exhaustion diagnostics."""
        return {
            "id": self.id,
            "name": self.name,
            "start_ip": self.start_ip,
            "end_ip": self.end_ip,
        }

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict:
        """Convert pool to dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "vlan_id": self.vlan_id,
            "network_cidr": self.network_cidr,
            "start_ip": self.start_ip,
            "end_ip": self.end_ip,
            "gateway_ip": self.gateway_ip,
            "dns_servers": self.get_dns_servers(),
            "domain_name": self.domain_name,
            "lease_seconds": self.lease_seconds,
            "max_lease_seconds": self.max_lease_seconds,
            "lease_time": format_duration(self.lease_seconds),
            "max_lease_time": format_duration(self.max_lease_seconds),
            "is_active": self.is_active,
            "allow_unknown_clients": self.allow_unknown_clients,
            "require_authorization": self.require_authorization,
            "size": self.size,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
