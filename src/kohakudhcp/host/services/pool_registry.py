"""
Pool Registry Service.

Owns the set of address pools and guarantees that no two active pools have
intersecting ranges. Every check-then-write runs inside one BEGIN IMMEDIATE
transaction, so an overlapping pool is never persisted even briefly.
"""

import datetime

import pydantic

from kohakudhcp.core.address import network_bounds, in_range, ranges_overlap
from kohakudhcp.core.exceptions import (
    ConflictError,
    NotFoundError,
    OverlapError,
    ValidationError,
)
from kohakudhcp.db.base import Datastore
from kohakudhcp.db.lease import Lease
from kohakudhcp.db.pool import Pool
from kohakudhcp.db.reservation import Reservation
from kohakudhcp.host.services.event_log import EventLog
from kohakudhcp.models.enums import DhcpEventType, LeaseState
from kohakudhcp.models.requests import PoolCreateRequest, PoolUpdateRequest
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

# Columns copied between request models and Pool rows
_POOL_FIELDS = (
    "name",
    "description",
    "vlan_id",
    "network_cidr",
    "start_ip",
    "end_ip",
    "gateway_ip",
    "dns_servers",
    "domain_name",
    "lease_seconds",
    "max_lease_seconds",
    "is_active",
    "allow_unknown_clients",
    "require_authorization",
)


def find_overlaps(pools: list[Pool]) -> list[tuple[Pool, Pool]]:
    """
    Find every intersecting pair in a set of pools.

    Pools are compared by their inclusive [start, end] ordinal ranges.
    Each pair is reported once, in (lower id, higher id) order.
    """
    ordered = sorted(pools, key=lambda p: (p.start_ordinal, p.id or 0))
    pairs = []
    for i, pool in enumerate(ordered):
        for other in ordered[i + 1 :]:
            if other.start_ordinal > pool.end_ordinal:
                break
            if ranges_overlap(
                pool.start_ordinal,
                pool.end_ordinal,
                other.start_ordinal,
                other.end_ordinal,
            ):
                first, second = sorted((pool, other), key=lambda p: p.id or 0)
                pairs.append((first, second))
    return sorted(pairs, key=lambda pair: (pair[0].id or 0, pair[1].id or 0))


class PoolRegistry:
    """
    CRUD over pools with the non-overlap guarantee.

    Args:
        store: Open datastore.
        events: Event log for pool transitions.
        clock: Callable returning the current naive datetime.
    """

    def __init__(
        self, store: Datastore, events: EventLog, clock=datetime.datetime.now
    ):
        self.store = store
        self.events = events
        self.clock = clock

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, pool_id: int) -> Pool:
        pool = Pool.get_or_none(Pool.id == pool_id)
        if pool is None:
            raise NotFoundError("pool", pool_id)
        return pool

    def list_all(self) -> list[Pool]:
        return list(Pool.select().order_by(Pool.vlan_id, Pool.id))

    def list_active(self) -> list[Pool]:
        return list(
            Pool.select().where(Pool.is_active == True).order_by(Pool.vlan_id, Pool.id)
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, request: PoolCreateRequest) -> Pool:
        """
        Create a pool.

        Raises:
            OverlapError: If the new pool is active and intersects an active pool.
        """
        now = self.clock()
        with self.store.write():
            pool = Pool(created_at=now, updated_at=now)
            self._assign(pool, request)
            if pool.is_active:
                self._check_overlap(pool, exclude_id=None)
            pool.save()

            self.events.record(
                DhcpEventType.POOL_CREATED,
                f"Pool '{pool.name}' created ({pool.start_ip} - {pool.end_ip}, "
                f"VLAN {pool.vlan_id})",
                pool_id=pool.id,
            )

        logger.info(
            f"Pool created: '{pool.name}' id={pool.id} "
            f"{pool.start_ip}-{pool.end_ip} vlan={pool.vlan_id}"
        )
        return pool

    def update(self, pool_id: int, changes: PoolUpdateRequest | dict) -> Pool:
        """
        Apply a partial update.

        The merged record is re-validated as a whole, and when the result is
        active the overlap check re-runs against every other active pool.

        Raises:
            NotFoundError: If the pool does not exist.
            ValidationError: If the merged record is invalid.
            OverlapError: If the updated range intersects another active pool.
            ConflictError: If active reservations of the pool would fall
                outside the new range (field "ip").
        """
        if isinstance(changes, PoolUpdateRequest):
            changes = changes.model_dump(exclude_unset=True)

        with self.store.write():
            pool = self.get(pool_id)
            merged = {name: getattr(pool, name) for name in _POOL_FIELDS}
            merged["dns_servers"] = pool.get_dns_servers()
            merged.update(changes)

            try:
                request = PoolCreateRequest.model_validate(merged)
            except pydantic.ValidationError as e:
                raise ValidationError(
                    [_format_pydantic_error(err) for err in e.errors()]
                ) from None

            self._assign(pool, request)
            if pool.is_active:
                self._check_overlap(pool, exclude_id=pool.id)
            self._check_reservations(pool)
            pool.updated_at = self.clock()
            pool.save()

            self.events.record(
                DhcpEventType.POOL_UPDATED,
                f"Pool '{pool.name}' updated: "
                f"{', '.join(sorted(changes)) or 'no changes'}",
                pool_id=pool.id,
            )

        logger.info(f"Pool updated: '{pool.name}' id={pool.id}")
        return pool

    def remove(self, pool_id: int) -> None:
        """
        Delete a pool.

        Refused while unexpired active leases or active reservations still
        reference it. Historical leases keep their rows with pool set to NULL.

        Raises:
            NotFoundError: If the pool does not exist.
            ConflictError: If the pool is still referenced.
        """
        now = self.clock()
        with self.store.write():
            pool = self.get(pool_id)

            active_leases = (
                Lease.select()
                .where(
                    (Lease.pool == pool.id)
                    & (Lease.state == LeaseState.ACTIVE.value)
                    & (Lease.lease_end > now)
                )
                .count()
            )
            active_reservations = (
                Reservation.select()
                .where((Reservation.pool == pool.id) & (Reservation.is_active == True))
                .count()
            )
            if active_leases or active_reservations:
                raise ConflictError(
                    f"Pool '{pool.name}' is still referenced by {active_leases} "
                    f"active lease(s) and {active_reservations} active reservation(s)",
                    field="pool_id",
                )

            name = pool.name
            pool.delete_instance()
            self.events.record(
                DhcpEventType.POOL_REMOVED,
                f"Pool '{name}' removed",
                pool_id=pool_id,
            )

        logger.info(f"Pool removed: '{name}' id={pool_id}")

    # =========================================================================
    # Whole-Set Checks
    # =========================================================================

    def verify_consistency(self, active: list[Pool] | None = None) -> list[str]:
        """
        Check the active set as a whole.

        Args:
            active: Active pools already read by the caller; queried when
                omitted.

        Returns:
            Human-readable problems; empty when the set is consistent.
        """
        problems = []
        if active is None:
            active = self.list_active()

        for pool, other in find_overlaps(active):
            problems.append(str(OverlapError(pool.describe(), other.describe())))

        for pool in active:
            problems.extend(_pool_problems(pool))

        return problems

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_overlap(self, pool: Pool, exclude_id: int | None) -> None:
        query = Pool.select().where(Pool.is_active == True)
        if exclude_id is not None:
            query = query.where(Pool.id != exclude_id)

        for other in query.order_by(Pool.id):
            if ranges_overlap(
                pool.start_ordinal,
                pool.end_ordinal,
                other.start_ordinal,
                other.end_ordinal,
            ):
                logger.warning(
                    f"Rejected pool '{pool.name}': overlaps pool '{other.name}' "
                    f"(id={other.id})"
                )
                raise OverlapError(pool.describe(), other.describe())

    def _check_reservations(self, pool: Pool) -> None:
        start, end = pool.start_ordinal, pool.end_ordinal
        stranded = list(
            Reservation.select()
            .where(
                (Reservation.pool == pool.id)
                & (Reservation.is_active == True)
                & ((Reservation.ip_ordinal < start) | (Reservation.ip_ordinal > end))
            )
            .order_by(Reservation.ip_ordinal)
        )
        if stranded:
            listing = ", ".join(
                f"{r.ip_address} ({r.mac_address}, id={r.id})" for r in stranded
            )
            logger.warning(
                f"Rejected update of pool '{pool.name}': reservations outside "
                f"{pool.start_ip} - {pool.end_ip}"
            )
            raise ConflictError(
                f"Pool '{pool.name}' range {pool.start_ip} - {pool.end_ip} would "
                f"leave reservation(s) outside it: {listing}",
                field="ip",
            )

    @staticmethod
    def _assign(pool: Pool, request: PoolCreateRequest) -> None:
        for name in _POOL_FIELDS:
            if name == "dns_servers":
                pool.set_dns_servers(request.dns_servers)
            else:
                setattr(pool, name, getattr(request, name))


def _pool_problems(pool: Pool) -> list[str]:
    """Per-pool checks for rows that may predate current validation."""
    problems = []
    label = f"Pool '{pool.name}' (id={pool.id})"
    try:
        first, last, _ = network_bounds(pool.network_cidr)
        start, end = pool.start_ordinal, pool.end_ordinal
    except ValueError as e:
        return [f"{label}: {e}"]

    if start > end:
        problems.append(
            f"{label}: start_ip {pool.start_ip} is after end_ip {pool.end_ip}"
        )
    if not (in_range(start, first, last) and in_range(end, first, last)):
        problems.append(f"{label}: range is outside {pool.network_cidr}")
    if pool.lease_seconds <= 0 or pool.max_lease_seconds <= 0:
        problems.append(f"{label}: lease lifetimes must be positive")
    elif pool.lease_seconds > pool.max_lease_seconds:
        problems.append(
            f"{label}: lease_seconds ({pool.lease_seconds}) exceeds "
            f"max_lease_seconds ({pool.max_lease_seconds})"
        )
    if not pool.get_dns_servers():
        problems.append(f"{label}: no DNS servers")
    return problems


def _format_pydantic_error(err: dict) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()) if part != "")
    message = err.get("msg", "invalid value")
    return f"{location}: {message}" if location else message
