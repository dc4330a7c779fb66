"""
Lease Lifecycle Manager.

Drives leases through their states:

    active -> released   (release)
    active -> declined   (decline)
    active -> expired    (sweep_expired, or lazily when a stale row blocks
                          a new commit)

Terminal states never change again; a returning client gets a new lease.

Allocation is optimistic: scan for the lowest free address, then commit
through the store's unique indexes. A losing racer sees a ConflictError on
the IP and re-scans, up to a bounded number of attempts.
"""

import datetime
from dataclasses import dataclass, field

from kohakudhcp.core.address import normalize_ip, normalize_mac
from kohakudhcp.core.exceptions import (
    ConflictError,
    LeaseExpiredError,
    NotFoundError,
    PoolExhaustedError,
    UnknownClientError,
    ValidationError,
)
from kohakudhcp.db.base import Datastore
from kohakudhcp.db.lease import Lease
from kohakudhcp.db.pool import Pool
from kohakudhcp.db.reservation import Reservation
from kohakudhcp.host.services.allocation import AllocationEngine
from kohakudhcp.host.services.event_log import EventLog
from kohakudhcp.host.services.lease_store import LeaseStore
from kohakudhcp.host.services.pool_registry import PoolRegistry
from kohakudhcp.host.services.reservation_store import ReservationStore
from kohakudhcp.models.duration import DEFAULT_DURATION_SECONDS, parse_duration
from kohakudhcp.models.enums import DhcpEventType, LeaseState
from kohakudhcp.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of one expiry sweep."""

    processed: int = 0
    skipped_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"processed": self.processed, "skipped_ids": list(self.skipped_ids)}


class LeaseLifecycleManager:
    """
    Create, allocate, renew, release, decline and expire leases.

    Args:
        store: Open datastore; owns the write transactions.
        pools: Pool registry.
        leases: Lease persistence primitives.
        reservations: Reservation store.
        engine: Allocation engine for free-address scans.
        events: Event log.
        clock: Callable returning the current naive datetime.
        max_attempts: Scan-and-commit attempts before giving up on a pool.
        default_lease_seconds: Lease length when neither caller, reservation
            nor pool specify one.
        default_max_lease_seconds: Renewal cap for leases without a pool.
    """

    def __init__(
        self,
        store: Datastore,
        pools: PoolRegistry,
        leases: LeaseStore,
        reservations: ReservationStore,
        engine: AllocationEngine,
        events: EventLog,
        clock=datetime.datetime.now,
        max_attempts: int = 3,
        default_lease_seconds: int = DEFAULT_DURATION_SECONDS,
        default_max_lease_seconds: int = 604800,
    ):
        self.store = store
        self.pools = pools
        self.leases = leases
        self.reservations = reservations
        self.engine = engine
        self.events = events
        self.clock = clock
        self.max_attempts = max(1, max_attempts)
        self.default_lease_seconds = default_lease_seconds
        self.default_max_lease_seconds = default_max_lease_seconds

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, lease_id: int) -> Lease:
        lease = self.leases.get(lease_id)
        if lease is None:
            raise NotFoundError("lease", lease_id)
        return lease

    def list_active(self, pool_id: int | None = None) -> list[Lease]:
        return self.leases.list_active(pool_id)

    # =========================================================================
    # Create / Allocate
    # =========================================================================

    def create(
        self,
        mac_address: str,
        ip_address: str,
        pool_id: int | None,
        duration: int | str | None,
        hostname: str | None = None,
    ) -> Lease:
        """
        Commit a new active lease for a specific address.

        Active rows for the same MAC or IP whose lease_end has passed are
        expired first, so only live leases can block the commit.

        Raises:
            ConflictError: field "mac" if the MAC holds a live lease, "ip" if
                the IP does or is reserved for another client.
            NotFoundError: If pool_id names a missing pool.
        """
        mac = normalize_mac(mac_address)
        ip = normalize_ip(ip_address)
        seconds = parse_duration(duration, default=self.default_lease_seconds)
        if seconds <= 0:
            raise ValidationError([f"Lease duration must be positive, got {seconds}"])

        with self.store.write():
            now = self.clock()
            if pool_id is not None:
                self.pools.get(pool_id)

            for stale in self.leases.expire_stale(now, mac_address=mac, ip_address=ip):
                self._record_expired(stale)

            if self.leases.find_active_by_mac(mac) is not None:
                raise ConflictError(f"MAC {mac} already holds an active lease", "mac")
            if self.leases.find_active_by_ip(ip) is not None:
                raise ConflictError(f"IP {ip} is already leased", "ip")

            reserved = Reservation.get_or_none(
                (Reservation.ip_address == ip)
                & (Reservation.is_active == True)
                & (Reservation.mac_address != mac)
            )
            if reserved is not None:
                raise ConflictError(
                    f"IP {ip} is reserved for {reserved.mac_address}", "ip"
                )

            lease = self.leases.insert(
                mac,
                ip,
                pool_id,
                lease_start=now,
                lease_end=now + datetime.timedelta(seconds=seconds),
                hostname=hostname,
            )
            self.events.record(
                DhcpEventType.LEASE_CREATED,
                f"Leased {ip} to {mac} for {seconds}s",
                mac_address=mac,
                ip_address=ip,
                pool_id=pool_id,
                lease_id=lease.id,
            )

        logger.info(
            f"Lease created: {mac} -> {ip} id={lease.id} "
            f"until {lease.lease_end.isoformat()}"
        )
        return lease

    def allocate(
        self,
        mac_address: str,
        pool_id: int,
        hostname: str | None = None,
        duration: int | str | None = None,
        authorized: bool = False,
    ) -> Lease:
        """
        Give a client an address from a pool.

        Order of precedence:
            1. A live lease the MAC already holds in the target pool is
               returned unchanged.
            2. An active reservation for the MAC fixes the address, the pool
               and the default duration.
            3. Otherwise the lowest free address in the pool is leased.

        Raises:
            NotFoundError: If the pool does not exist.
            ConflictError: If the pool is inactive, the MAC holds a live lease
                elsewhere, or every attempt lost a commit race.
            UnknownClientError: If pool policy refuses the client.
            PoolExhaustedError: If the pool has no free address.
        """
        mac = normalize_mac(mac_address)
        pool = self.pools.get(pool_id)
        reservation = self.reservations.find_by_mac(mac)

        if reservation is not None:
            target_pool_id = reservation.pool_id
            target_ip = reservation.ip_address
        else:
            target_pool_id = pool.id
            target_ip = None

        existing = self.leases.find_active_by_mac(mac)
        if existing is not None and existing.lease_end > self.clock():
            if existing.pool_id == target_pool_id and (
                target_ip is None or existing.ip_address == target_ip
            ):
                logger.debug(f"Returning existing lease {existing.id} for {mac}")
                return existing
            raise ConflictError(
                f"MAC {mac} already holds {existing.ip_address} "
                f"(lease {existing.id})",
                "mac",
            )

        self._check_policy(pool, mac, reservation, authorized)

        seconds = self._resolve_duration(
            duration,
            pool if target_pool_id == pool.id else self._pool_or_none(target_pool_id),
            reservation,
        )
        hostname = hostname or (reservation.hostname if reservation else None)

        if reservation is not None:
            return self.create(mac, target_ip, target_pool_id, seconds, hostname)

        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.store.write():
                    candidate = self.engine.scan(pool, self.clock())
                    if candidate is None:
                        logger.warning(f"Pool '{pool.name}' exhausted ({mac})")
                        raise PoolExhaustedError(
                            pool.id, pool.name, pool.start_ip, pool.end_ip
                        )
                    return self.create(mac, candidate, pool.id, seconds, hostname)
            except ConflictError as e:
                if e.field != "ip":
                    raise
                logger.info(
                    f"Allocation attempt {attempt}/{self.max_attempts} for {mac} "
                    f"lost the race: {e}"
                )

        raise ConflictError(
            f"Could not allocate an address for {mac} in pool '{pool.name}' "
            f"after {self.max_attempts} attempts",
            "ip",
        )

    # =========================================================================
    # Renew
    # =========================================================================

    def renew(self, lease_id: int, duration: int | str | None = None) -> Lease:
        """
        Extend a live lease.

        New end = now + (duration, else reservation override, else pool
        lease length, else default), capped at the pool's maximum.

        Raises:
            NotFoundError: If the lease does not exist.
            ConflictError: If the lease is not active.
            LeaseExpiredError: If lease_end has already passed.
        """
        with self.store.write():
            now = self.clock()
            lease = self.get(lease_id)
            if lease.state != LeaseState.ACTIVE.value:
                raise ConflictError(
                    f"Lease {lease_id} is {lease.state}, not active", "state"
                )
            if lease.has_passed(now):
                raise LeaseExpiredError(lease_id)

            pool = self._pool_or_none(lease.pool_id)
            reservation = self.reservations.find_by_mac(lease.mac_address)
            if reservation is not None and reservation.ip_address != lease.ip_address:
                reservation = None
            seconds = self._resolve_duration(duration, pool, reservation)
            new_end = now + datetime.timedelta(seconds=seconds)

            if not self.leases.extend(lease.id, new_end, now):
                raise ConflictError(f"Lease {lease_id} changed during renewal", "state")

            self.events.record(
                DhcpEventType.LEASE_RENEWED,
                f"Renewed {lease.ip_address} for {lease.mac_address} "
                f"until {new_end.isoformat()}",
                mac_address=lease.mac_address,
                ip_address=lease.ip_address,
                pool_id=lease.pool_id,
                lease_id=lease.id,
            )
            lease = self.get(lease_id)

        logger.info(
            f"Lease renewed: id={lease.id} {lease.mac_address} -> {lease.ip_address} "
            f"until {lease.lease_end.isoformat()} (renewals={lease.renewal_count})"
        )
        return lease

    # =========================================================================
    # Release / Decline
    # =========================================================================

    def release(self, mac_address: str) -> bool:
        """
        Release the MAC's active lease.

        Returns:
            True if a lease was released, False if there was none (no-op).
        """
        mac = normalize_mac(mac_address)
        with self.store.write():
            lease = self.leases.find_active_by_mac(mac)
            if lease is None:
                logger.debug(f"Release for {mac}: no active lease")
                return False
            if not self.leases.transition(lease.id, LeaseState.RELEASED, self.clock()):
                return False
            self.events.record(
                DhcpEventType.LEASE_RELEASED,
                f"{mac} released {lease.ip_address}",
                mac_address=mac,
                ip_address=lease.ip_address,
                pool_id=lease.pool_id,
                lease_id=lease.id,
            )

        logger.info(f"Lease released: {mac} -> {lease.ip_address} id={lease.id}")
        return True

    def decline(self, mac_address: str, ip_address: str) -> bool:
        """
        Mark the client's active lease on ip_address as declined.

        Returns:
            True if a lease was declined.
        """
        mac = normalize_mac(mac_address)
        ip = normalize_ip(ip_address)
        with self.store.write():
            lease = self.leases.find_active_by_mac(mac)
            if lease is None or lease.ip_address != ip:
                return False
            if not self.leases.transition(lease.id, LeaseState.DECLINED, self.clock()):
                return False
            self.events.record(
                DhcpEventType.LEASE_DECLINED,
                f"{mac} declined {ip}",
                mac_address=mac,
                ip_address=ip,
                pool_id=lease.pool_id,
                lease_id=lease.id,
            )

        logger.warning(f"Lease declined: {mac} -> {ip} id={lease.id}")
        return True

    # =========================================================================
    # Expiry Sweep
    # =========================================================================

    def sweep_expired(self) -> SweepResult:
        """
        Expire every active lease whose lease_end is at or before now.

        Each row is a separate conditional update. Rows renewed or released
        in the meantime, and rows that fail to update, are reported in
        skipped_ids without aborting the rest of the batch.
        """
        now = self.clock()
        result = SweepResult()

        for lease_id in self.leases.expired_ids(now):
            try:
                with self.store.write():
                    if not self.leases.transition(
                        lease_id, LeaseState.EXPIRED, now, expired_only=True
                    ):
                        result.skipped_ids.append(lease_id)
                        continue
                    self._record_expired(self.leases.get(lease_id))
                result.processed += 1
            except Exception as e:
                logger.warning(f"Sweep skipped lease {lease_id}: {e}")
                logger.debug(f"Sweep traceback:\n{format_traceback(e)}")
                result.skipped_ids.append(lease_id)

        if result.processed or result.skipped_ids:
            logger.info(
                f"Expiry sweep: {result.processed} expired, "
                f"{len(result.skipped_ids)} skipped"
            )
        return result

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_policy(
        self,
        pool: Pool,
        mac: str,
        reservation: Reservation | None,
        authorized: bool,
    ) -> None:
        if not pool.is_active:
            raise ConflictError(f"Pool '{pool.name}' is not active", "pool_id")
        if reservation is None and not pool.allow_unknown_clients:
            raise UnknownClientError(
                mac, pool.name, "pool only serves reserved clients"
            )
        if pool.require_authorization and not authorized:
            raise UnknownClientError(mac, pool.name, "authorization required")

    def _resolve_duration(
        self,
        requested: int | str | None,
        pool: Pool | None,
        reservation: Reservation | None,
    ) -> int:
        if requested is not None:
            seconds = parse_duration(requested, default=self.default_lease_seconds)
        elif reservation is not None and reservation.lease_seconds_override:
            seconds = reservation.lease_seconds_override
        elif pool is not None:
            seconds = pool.lease_seconds
        else:
            seconds = self.default_lease_seconds

        cap = (
            pool.max_lease_seconds
            if pool is not None
            else self.default_max_lease_seconds
        )
        if seconds <= 0:
            seconds = self.default_lease_seconds
        return min(seconds, cap)

    def _pool_or_none(self, pool_id: int | None) -> Pool | None:
        if pool_id is None:
            return None
        return Pool.get_or_none(Pool.id == pool_id)

    def _record_expired(self, lease: Lease) -> None:
        self.events.record(
            DhcpEventType.LEASE_EXPIRED,
            f"Lease on {lease.ip_address} for {lease.mac_address} expired",
            mac_address=lease.mac_address,
            ip_address=lease.ip_address,
            pool_id=lease.pool_id,
            lease_id=lease.id,
        )
