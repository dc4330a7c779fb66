"""
DHCP event log model.

Every pool, reservation and lease transition leaves one row here so an
operator can audit what happened to an address.
"""

import datetime

import peewee

from kohakudhcp.db.base import BaseModel


class DhcpEvent(BaseModel):
    """One entry in the DHCP event log."""

    id = peewee.AutoField()
    timestamp = peewee.DateTimeField(default=datetime.datetime.now, index=True)
    event_type = peewee.CharField(index=True)
    mac_address = peewee.CharField(null=True, index=True)
    ip_address = peewee.CharField(null=True)
    pool_id = peewee.IntegerField(null=True)  # Not a FK; kept after pool removal
    lease_id = peewee.IntegerField(null=True)
    message = peewee.TextField(default="")

    class Meta:
        table_name = "dhcp_events"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "mac_address": self.mac_address,
            "ip_address": self.ip_address,
            "pool_id": self.pool_id,
            "lease_id": self.lease_id,
            "message": self.message,
        }
