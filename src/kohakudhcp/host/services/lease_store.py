"""
Lease Store Service.

Persistence primitives for leases. The partial unique indexes on
``leases(ip_address)`` and ``leases(mac_address)`` WHERE state = 'active'
are the final arbiter for concurrent inserts; every state change is a
conditional UPDATE that only touches rows still in the expected state.

Callers own the transaction (Datastore.write()); nothing here commits on
its own.
"""

import datetime

import peewee

from kohakudhcp.core.address import parse_ip
from kohakudhcp.core.exceptions import ConflictError
from kohakudhcp.db.base import Datastore
from kohakudhcp.db.lease import Lease
from kohakudhcp.db.pool import Pool
from kohakudhcp.models.enums import LeaseState
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

ACTIVE = LeaseState.ACTIVE.value


class LeaseStore:
    """
    Row-level lease access used by the allocation engine and manager.

    Args:
        store: Open datastore whose write() transactions callers hold.
    """

    def __init__(self, store: Datastore):
        self.store = store

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, lease_id: int) -> Lease | None:
        return Lease.get_or_none(Lease.id == lease_id)

    def find_active_by_mac(self, mac_address: str) -> Lease | None:
        return Lease.get_or_none(
            (Lease.mac_address == mac_address) & (Lease.state == ACTIVE)
        )

    def find_active_by_ip(self, ip_address: str) -> Lease | None:
        return Lease.get_or_none(
            (Lease.ip_address == ip_address) & (Lease.state == ACTIVE)
        )

    def leased_ordinals(
        self, start: int, end: int, now: datetime.datetime
    ) -> set[int]:
        """Ordinals of active, unexpired leases inside [start, end]."""
        query = Lease.select(Lease.ip_ordinal).where(
            (Lease.state == ACTIVE)
            & (Lease.lease_end > now)
            & (Lease.ip_ordinal >= start)
            & (Lease.ip_ordinal <= end)
        )
        return {row.ip_ordinal for row in query}

    def list_active(self, pool_id: int | None = None) -> list[Lease]:
        query = (
            Lease.select(Lease, Pool)
            .join(Pool, peewee.JOIN.LEFT_OUTER)
            .where(Lease.state == ACTIVE)
        )
        if pool_id is not None:
            query = query.where(Lease.pool == pool_id)
        return list(query.order_by(Lease.ip_ordinal, Lease.id))

    def expired_ids(self, now: datetime.datetime) -> list[int]:
        """Ids of active leases whose lease_end is at or before now."""
        query = (
            Lease.select(Lease.id)
            .where((Lease.state == ACTIVE) & (Lease.lease_end <= now))
            .order_by(Lease.id)
        )
        return [row.id for row in query]

    # =========================================================================
    # Mutations
    # =========================================================================

    def insert(
        self,
        mac_address: str,
        ip_address: str,
        pool_id: int | None,
        lease_start: datetime.datetime,
        lease_end: datetime.datetime,
        hostname: str | None = None,
    ) -> Lease:
        """
        Insert a new active lease.

        Raises:
            ConflictError: If the unique indexes reject the row. ``field`` is
                "mac" or "ip" depending on which index fired.
        """
        try:
            return Lease.create(
                mac_address=mac_address,
                ip_address=ip_address,
                ip_ordinal=parse_ip(ip_address),
                pool=pool_id,
                hostname=hostname,
                lease_start=lease_start,
                lease_end=lease_end,
                state=ACTIVE,
                updated_at=lease_start,
            )
        except peewee.IntegrityError as e:
            field = "mac" if "mac_address" in str(e) else "ip"
            logger.debug(f"Lease insert for {mac_address}/{ip_address} rejected: {e}")
            raise ConflictError(
                f"Active lease already exists for {field} "
                f"{mac_address if field == 'mac' else ip_address}",
                field=field,
            ) from None

    def transition(
        self,
        lease_id: int,
        new_state: LeaseState,
        now: datetime.datetime,
        expired_only: bool = False,
    ) -> bool:
        """
        Move an active lease to a terminal state.

        Args:
            expired_only: Only transition when lease_end <= now (sweep).

        Returns:
            True if this call changed the row, False if it was no longer
            eligible (already transitioned, or renewed in the meantime).
        """
        condition = (Lease.id == lease_id) & (Lease.state == ACTIVE)
        if expired_only:
            condition &= Lease.lease_end <= now
        updated = (
            Lease.update(state=LeaseState(new_state).value, updated_at=now)
            .where(condition)
            .execute()
        )
        return updated == 1

    def expire_stale(
        self,
        now: datetime.datetime,
        mac_address: str | None = None,
        ip_address: str | None = None,
    ) -> list[Lease]:
        """
        Expire active rows for a MAC or IP whose lease_end has passed.

        Returns the rows that were transitioned.
        """
        target = None
        if mac_address is not None:
            target = Lease.mac_address == mac_address
        if ip_address is not None:
            by_ip = Lease.ip_address == ip_address
            target = by_ip if target is None else (target | by_ip)
        if target is None:
            return []

        stale = list(
            Lease.select().where(
                (Lease.state == ACTIVE) & (Lease.lease_end <= now) & target
            )
        )
        return [
            lease
            for lease in stale
            if self.transition(lease.id, LeaseState.EXPIRED, now, expired_only=True)
        ]

    def extend(
        self,
        lease_id: int,
        new_end: datetime.datetime,
        now: datetime.datetime,
    ) -> bool:
        """
        Renew an active, unexpired lease.

        Returns:
            True if the row was still active and unexpired and got updated.
        """
        updated = (
            Lease.update(
                lease_end=new_end,
                renewal_count=Lease.renewal_count + 1,
                last_renewal=now,
                updated_at=now,
            )
            .where(
                (Lease.id == lease_id)
                & (Lease.state == ACTIVE)
                & (Lease.lease_end > now)
            )
            .execute()
        )
        return updated == 1
