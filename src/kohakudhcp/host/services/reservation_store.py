"""
Reservation Store Service.

Static MAC -> IP bindings. A reservation preempts dynamic allocation for its
MAC and takes its IP out of the dynamic pool.
"""

import datetime

import peewee

from kohakudhcp.core.address import in_range, parse_ip
from kohakudhcp.core.exceptions import ConflictError, NotFoundError
from kohakudhcp.db.base import Datastore
from kohakudhcp.db.lease import Lease
from kohakudhcp.db.pool import Pool
from kohakudhcp.db.reservation import Reservation
from kohakudhcp.host.services.event_log import EventLog
from kohakudhcp.models.enums import DhcpEventType, LeaseState
from kohakudhcp.models.requests import ReservationCreateRequest
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)


class ReservationStore:
    """Create, query and deactivate reservations."""

    def __init__(
        self, store: Datastore, events: EventLog, clock=datetime.datetime.now
    ):
        self.store = store
        self.events = events
        self.clock = clock

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, reservation_id: int) -> Reservation:
        reservation = Reservation.get_or_none(Reservation.id == reservation_id)
        if reservation is None:
            raise NotFoundError("reservation", reservation_id)
        return reservation

    def list_active(self, pool_id: int | None = None) -> list[Reservation]:
        query = Reservation.select().where(Reservation.is_active == True)
        if pool_id is not None:
            query = query.where(Reservation.pool == pool_id)
        return list(query.order_by(Reservation.ip_ordinal, Reservation.id))

    def find_by_mac(self, mac_address: str) -> Reservation | None:
        """Active reservation for a MAC, if any."""
        return Reservation.get_or_none(
            (Reservation.mac_address == mac_address)
            & (Reservation.is_active == True)
        )

    def reserved_ordinals(self, start: int, end: int) -> set[int]:
        """Ordinals of active reservations inside [start, end]."""
        query = Reservation.select(Reservation.ip_ordinal).where(
            (Reservation.is_active == True)
            & (Reservation.ip_ordinal >= start)
            & (Reservation.ip_ordinal <= end)
        )
        return {row.ip_ordinal for row in query}

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, request: ReservationCreateRequest) -> Reservation:
        """
        Create a reservation.

        Raises:
            NotFoundError: If pool_id names a missing pool.
            ConflictError: If the MAC or IP is already reserved, the IP is held
                by another client's lease, or the IP is outside the pool.
        """
        mac = request.mac_address
        ip = request.ip_address
        ordinal = parse_ip(ip)
        now = self.clock()

        with self.store.write():
            pool = None
            if request.pool_id is not None:
                pool = Pool.get_or_none(Pool.id == request.pool_id)
                if pool is None:
                    raise NotFoundError("pool", request.pool_id)
                if not in_range(ordinal, pool.start_ordinal, pool.end_ordinal):
                    raise ConflictError(
                        f"IP {ip} is outside pool '{pool.name}' "
                        f"({pool.start_ip} - {pool.end_ip})",
                        field="ip",
                    )

            if self.find_by_mac(mac) is not None:
                raise ConflictError(f"MAC {mac} already has a reservation", field="mac")
            if Reservation.get_or_none(
                (Reservation.ip_address == ip) & (Reservation.is_active == True)
            ):
                raise ConflictError(f"IP {ip} is already reserved", field="ip")

            holder = Lease.get_or_none(
                (Lease.ip_address == ip)
                & (Lease.state == LeaseState.ACTIVE.value)
                & (Lease.lease_end > now)
                & (Lease.mac_address != mac)
            )
            if holder is not None:
                raise ConflictError(
                    f"IP {ip} is leased to {holder.mac_address} until "
                    f"{holder.lease_end.isoformat()}",
                    field="ip",
                )

            try:
                reservation = Reservation.create(
                    mac_address=mac,
                    ip_address=ip,
                    ip_ordinal=ordinal,
                    hostname=request.hostname,
                    pool=pool,
                    lease_seconds_override=request.lease_time,
                    description=request.description,
                    created_at=now,
                )
            except peewee.IntegrityError as e:
                raise ConflictError(
                    f"Reservation for {mac} / {ip} conflicts with an existing one",
                    field="mac" if "mac_address" in str(e) else "ip",
                ) from None

            self.events.record(
                DhcpEventType.RESERVATION_CREATED,
                f"Reserved {ip} for {mac}"
                + (f" ({request.hostname})" if request.hostname else ""),
                mac_address=mac,
                ip_address=ip,
                pool_id=pool.id if pool else None,
            )

        logger.info(f"Reservation created: {mac} -> {ip} id={reservation.id}")
        return reservation

    def remove(self, reservation_id: int) -> None:
        """
        Deactivate a reservation.

        The row is kept for history; its MAC and IP become free for new
        reservations and for dynamic allocation.
        """
        with self.store.write():
            reservation = self.get(reservation_id)
            if not reservation.is_active:
                return
            reservation.is_active = False
            reservation.save()
            self.events.record(
                DhcpEventType.RESERVATION_REMOVED,
                f"Removed reservation {reservation.ip_address} for "
                f"{reservation.mac_address}",
                mac_address=reservation.mac_address,
                ip_address=reservation.ip_address,
                pool_id=reservation.pool_id,
            )

        logger.info(
            f"Reservation removed: {reservation.mac_address} -> "
            f"{reservation.ip_address} id={reservation_id}"
        )
