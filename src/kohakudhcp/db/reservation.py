"""
Reservation database model for HakuDHCP.

A reservation is a static MAC -> IP binding that preempts dynamic
allocation for that MAC.
"""

import datetime

import peewee
from peewee import SQL

from kohakudhcp.db.base import BaseModel
from kohakudhcp.db.pool import Pool


class Reservation(BaseModel):
    """
    Represents a static address reservation.

    Attributes:
        mac_address: Normalized hardware address (aa:bb:cc:dd:ee:ff).
        ip_address: Bound IPv4 address.
        ip_ordinal: Integer form of ip_address for range queries.
        pool: Optional owning pool.
        lease_seconds_override: Lease lifetime for this client, if set.
    """

    id = peewee.AutoField()
    mac_address = peewee.CharField(index=True)
    ip_address = peewee.CharField()
    ip_ordinal = peewee.BigIntegerField(index=True)
    hostname = peewee.CharField(null=True)
    pool = peewee.ForeignKeyField(
        Pool, backref="reservations", null=True, on_delete="SET NULL"
    )
    lease_seconds_override = peewee.IntegerField(null=True)
    description = peewee.TextField(null=True)
    is_active = peewee.BooleanField(default=True, index=True)
    created_at = peewee.DateTimeField(default=datetime.datetime.now)

    class Meta:
        table_name = "reservations"

    def to_dict(self) -> dict:
        """Convert reservation to dictionary for API responses."""
        pool = self.pool
        return {
            "id": self.id,
            "mac_address": self.mac_address,
            "ip_address": self.ip_address,
            "hostname": self.hostname,
            "pool_id": self.pool_id,
            "pool_name": pool.name if pool else None,
            "vlan_id": pool.vlan_id if pool else None,
            "lease_seconds_override": self.lease_seconds_override,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# One active reservation per MAC and per IP
Reservation.add_index(
    Reservation.index(
        Reservation.mac_address,
        unique=True,
        where=SQL("is_active = 1"),
        name="reservations_active_mac",
    )
)
Reservation.add_index(
    Reservation.index(
        Reservation.ip_address,
        unique=True,
        where=SQL("is_active = 1"),
        name="reservations_active_ip",
    )
)
