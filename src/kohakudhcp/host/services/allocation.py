"""
Allocation Engine.

Finds the lowest free address in a pool. An address is used when it is held
by an active, unexpired lease, bound by an active reservation, or is the
pool's gateway. Freedom is derived on every call and never stored.

Exhaustion is a normal outcome and is reported as None, not as an error.
"""

import datetime
from dataclasses import dataclass

from kohakudhcp.core.address import format_ip, in_range, parse_ip, range_size
from kohakudhcp.db.pool import Pool
from kohakudhcp.host.services.lease_store import LeaseStore
from kohakudhcp.host.services.pool_registry import PoolRegistry
from kohakudhcp.host.services.reservation_store import ReservationStore


@dataclass
class PoolUsage:
    """Address utilisation for one pool."""

    pool_id: int
    pool_name: str
    total: int
    leased: int
    reserved: int
    free: int

    @property
    def utilization(self) -> float:
        if self.total == 0:
            return 0.0
        return round((self.total - self.free) / self.total * 100, 1)

    def to_dict(self) -> dict:
        return {
            "pool_id": self.pool_id,
            "pool_name": self.pool_name,
            "total": self.total,
            "leased": self.leased,
            "reserved": self.reserved,
            "free": self.free,
            "utilization": self.utilization,
        }


class AllocationEngine:
    """
    Scans pool ranges for free addresses.

    Args:
        pools: Pool registry (range bounds).
        leases: Lease store (active leases).
        reservations: Reservation store (static bindings).
        clock: Callable returning the current naive datetime.
    """

    def __init__(
        self,
        pools: PoolRegistry,
        leases: LeaseStore,
        reservations: ReservationStore,
        clock=datetime.datetime.now,
    ):
        self.pools = pools
        self.leases = leases
        self.reservations = reservations
        self.clock = clock

    def used_ordinals(
        self, pool: Pool, now: datetime.datetime | None = None
    ) -> set[int]:
        """Leased, reserved and gateway ordinals inside the pool's range."""
        now = now or self.clock()
        start, end = pool.start_ordinal, pool.end_ordinal
        used = self.leases.leased_ordinals(start, end, now)
        used |= self.reservations.reserved_ordinals(start, end)
        gateway = parse_ip(pool.gateway_ip)
        if in_range(gateway, start, end):
            used.add(gateway)
        return used

    def next_free_address(self, pool_id: int) -> str | None:
        """
        Lowest free address in the pool.

        Returns:
            Dotted-quad address, or None if every address is used or the
            pool is inactive.

        Raises:
            NotFoundError: If the pool does not exist.
        """
        pool = self.pools.get(pool_id)
        if not pool.is_active:
            return None
        return self.scan(pool)

    def scan(self, pool: Pool, now: datetime.datetime | None = None) -> str | None:
        used = self.used_ordinals(pool, now)
        for ordinal in range(pool.start_ordinal, pool.end_ordinal + 1):
            if ordinal not in used:
                return format_ip(ordinal)
        return None

    def pool_usage(
        self, pool: Pool, now: datetime.datetime | None = None
    ) -> PoolUsage:
        """Total, leased, reserved and free counts for a pool."""
        now = now or self.clock()
        start, end = pool.start_ordinal, pool.end_ordinal
        leased = self.leases.leased_ordinals(start, end, now)
        reserved = self.reservations.reserved_ordinals(start, end) - leased
        used = self.used_ordinals(pool, now)
        total = range_size(start, end)
        return PoolUsage(
            pool_id=pool.id,
            pool_name=pool.name,
            total=total,
            leased=len(leased),
            reserved=len(reserved),
            free=total - len(used),
        )
