"""
DHCP Operations Endpoints.

Event log, statistics, configuration preview/apply, next-free-address
lookup and manual expiry sweeps.
"""

import datetime

from fastapi import APIRouter, Query

from kohakudhcp.db.base import run_in_executor
from kohakudhcp.host.dependencies import ServicesDep
from kohakudhcp.host.services.event_log import DEFAULT_LOG_LIMIT, MAX_LOG_LIMIT
from kohakudhcp.host.services.stats import collect_stats
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Event Log & Statistics
# =============================================================================


@router.get("/logs")
async def list_logs(
    services: ServicesDep,
    mac_address: str | None = Query(None),
    event_type: str | None = Query(None),
    start: datetime.datetime | None = Query(None, description="Earliest timestamp"),
    end: datetime.datetime | None = Query(None, description="Latest timestamp"),
    limit: int = Query(DEFAULT_LOG_LIMIT, ge=1, le=MAX_LOG_LIMIT),
):
    """Query the DHCP event log, newest first."""
    events = services.events.query(
        mac_address=mac_address.lower() if mac_address else None,
        event_type=event_type,
        start=start,
        end=end,
        limit=limit,
    )
    return [event.to_dict() for event in events]


@router.get("/stats")
async def get_stats(services: ServicesDep):
    """Pool, lease and reservation counts plus per-pool utilisation."""
    return collect_stats(services.pools, services.engine, services.clock())


# =============================================================================
# Configuration
# =============================================================================


@router.get("/config")
async def preview_config(services: ServicesDep):
    """Render the Kea configuration without writing it."""
    return services.kea.build()


@router.post("/apply")
async def apply_config(services: ServicesDep):
    """
    Render, write and reload the Kea configuration.

    Validation failures return 422 and leave the current file in place;
    write or reload failures return 502.
    """
    result = await run_in_executor(services.kea_applier.apply)
    return result.to_dict()


# =============================================================================
# Address Lookup & Maintenance
# =============================================================================


@router.get("/next-ip/{pool_id}")
async def next_ip(pool_id: int, services: ServicesDep):
    """Lowest free address in a pool, or null when it is full or inactive."""
    ip_address = services.engine.next_free_address(pool_id)
    return {
        "pool_id": pool_id,
        "ip_address": ip_address,
        "available": ip_address is not None,
        "pool_active": services.pools.get(pool_id).is_active,
    }


@router.post("/cleanup")
async def cleanup_expired(services: ServicesDep):
    """Run the expiry sweep now."""
    result = services.manager.sweep_expired()
    logger.info(f"Manual cleanup expired {result.processed} lease(s)")
    return result.to_dict()
