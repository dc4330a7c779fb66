"""DHCP statistics for the dashboard and the CLI."""

import datetime

from kohakudhcp.db.lease import Lease
from kohakudhcp.db.pool import Pool
from kohakudhcp.db.reservation import Reservation
from kohakudhcp.host.services.allocation import AllocationEngine
from kohakudhcp.host.services.pool_registry import PoolRegistry
from kohakudhcp.models.enums import LeaseState


def collect_stats(
    pools: PoolRegistry,
    engine: AllocationEngine,
    now: datetime.datetime,
) -> dict:
    """
    Summarize pools, leases, reservations and per-pool utilisation.

    A lease counts as active only while state is active and lease_end is
    still in the future; active rows past their end count as expired.
    """
    live = (Lease.state == LeaseState.ACTIVE.value) & (Lease.lease_end > now)
    expired = (Lease.state == LeaseState.EXPIRED.value) | (
        (Lease.state == LeaseState.ACTIVE.value) & (Lease.lease_end <= now)
    )

    return {
        "pools": {
            "total": Pool.select().count(),
            "active": Pool.select().where(Pool.is_active == True).count(),
        },
        "leases": {
            "total": Lease.select().count(),
            "active": Lease.select().where(live).count(),
            "expired": Lease.select().where(expired).count(),
            "released": Lease.select()
            .where(Lease.state == LeaseState.RELEASED.value)
            .count(),
            "declined": Lease.select()
            .where(Lease.state == LeaseState.DECLINED.value)
            .count(),
        },
        "reservations": {
            "total": Reservation.select().count(),
            "active": Reservation.select()
            .where(Reservation.is_active == True)
            .count(),
        },
        "utilization": [
            {
                **engine.pool_usage(pool, now).to_dict(),
                "vlan_id": pool.vlan_id,
                "start_ip": pool.start_ip,
                "end_ip": pool.end_ip,
            }
            for pool in pools.list_active()
        ],
    }
