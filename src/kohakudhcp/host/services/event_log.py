"""
DHCP event log.

Records pool, reservation, lease and apply transitions in the
``dhcp_events`` table and answers filtered queries for the logs endpoint.
"""

import datetime

from kohakudhcp.db.base import Datastore
from kohakudhcp.db.event import DhcpEvent
from kohakudhcp.models.enums import DhcpEventType

DEFAULT_LOG_LIMIT = 100
MAX_LOG_LIMIT = 1000


class EventLog:
    """Append-only event recorder backed by the datastore."""

    def __init__(self, store: Datastore, clock=datetime.datetime.now):
        self.store = store
        self.clock = clock

    def record(
        self,
        event_type: DhcpEventType,
        message: str,
        mac_address: str | None = None,
        ip_address: str | None = None,
        pool_id: int | None = None,
        lease_id: int | None = None,
    ) -> DhcpEvent:
        """
        Append an event.

        Callers inside a write transaction get the row committed together
        with the transition it describes.
        """
        return DhcpEvent.create(
            timestamp=self.clock(),
            event_type=DhcpEventType(event_type).value,
            mac_address=mac_address,
            ip_address=ip_address,
            pool_id=pool_id,
            lease_id=lease_id,
            message=message,
        )

    def query(
        self,
        mac_address: str | None = None,
        event_type: str | None = None,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
        limit: int = DEFAULT_LOG_LIMIT,
    ) -> list[DhcpEvent]:
        """Return events newest first, filtered by the given criteria."""
        limit = max(1, min(limit, MAX_LOG_LIMIT))
        query = DhcpEvent.select()
        if mac_address:
            query = query.where(DhcpEvent.mac_address == mac_address)
        if event_type:
            query = query.where(DhcpEvent.event_type == event_type)
        if start:
            query = query.where(DhcpEvent.timestamp >= start)
        if end:
            query = query.where(DhcpEvent.timestamp <= end)
        query = query.order_by(DhcpEvent.timestamp.desc(), DhcpEvent.id.desc())
        return list(query.limit(limit))
