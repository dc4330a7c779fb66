"""
Lease database model for HakuDHCP.

A lease is a time-bounded dynamic MAC -> IP binding with an explicit
lifecycle state (see LeaseState).
"""

import datetime

import peewee
from peewee import SQL

from kohakudhcp.db.base import BaseModel
from kohakudhcp.db.pool import Pool
from kohakudhcp.models.enums import LeaseState


class Lease(BaseModel):
    """
    Represents a DHCP lease.

    Attributes:
        mac_address: Normalized client hardware address.
        ip_address: Assigned IPv4 address.
        ip_ordinal: Integer form of ip_address for range queries.
        pool: Owning pool (NULL for reserved addresses outside any pool).
        lease_start / lease_end: Validity window.
        renewal_count / last_renewal: Renewal bookkeeping.
        state: Current LeaseState value.
    """

    # -------------------------------------------------------------------------
    # Binding
    # -------------------------------------------------------------------------

    id = peewee.AutoField()
    mac_address = peewee.CharField(index=True)
    ip_address = peewee.CharField(index=True)
    ip_ordinal = peewee.BigIntegerField(index=True)
    pool = peewee.ForeignKeyField(
        Pool, backref="leases", null=True, on_delete="SET NULL"
    )
    hostname = peewee.CharField(null=True)

    # -------------------------------------------------------------------------
    # Validity
    # -------------------------------------------------------------------------

    lease_start = peewee.DateTimeField()
    lease_end = peewee.DateTimeField(index=True)
    renewal_count = peewee.IntegerField(default=0)
    last_renewal = peewee.DateTimeField(null=True)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    state = peewee.CharField(default=LeaseState.ACTIVE.value, index=True)
    updated_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "leases"

    # =========================================================================
    # Status Helpers
    # =========================================================================

    def is_active(self) -> bool:
        return self.state == LeaseState.ACTIVE.value

    def has_passed(self, now: datetime.datetime) -> bool:
        """Whether lease_end is at or before now."""
        return self.lease_end <= now

    def remaining_seconds(self, now: datetime.datetime) -> int:
        return max(0, int((self.lease_end - now).total_seconds()))

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self, now: datetime.datetime | None = None) -> dict:
        """Convert lease to dictionary for API responses."""
        pool = self.pool
        data = {
            "id": self.id,
            "mac_address": self.mac_address,
            "ip_address": self.ip_address,
            "hostname": self.hostname,
            "pool_id": self.pool_id,
            "pool_name": pool.name if pool else None,
            "vlan_id": pool.vlan_id if pool else None,
            "lease_start": self.lease_start.isoformat(),
            "lease_end": self.lease_end.isoformat(),
            "renewal_count": self.renewal_count,
            "last_renewal": (
                self.last_renewal.isoformat() if self.last_renewal else None
            ),
            "state": self.state,
        }
        if now is not None:
            data["remaining_seconds"] = self.remaining_seconds(now)
        return data


# At most one active lease per IP and per MAC, enforced by the store
Lease.add_index(
    Lease.index(
        Lease.ip_address,
        unique=True,
        where=SQL("state = 'active'"),
        name="leases_active_ip",
    )
)
Lease.add_index(
    Lease.index(
        Lease.mac_address,
        unique=True,
        where=SQL("state = 'active'"),
        name="leases_active_mac",
    )
)
