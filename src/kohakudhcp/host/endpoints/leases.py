"""
Lease Endpoints.

Listing, allocation, release and renewal of dynamic leases.
"""

from fastapi import APIRouter, Body, Query

from kohakudhcp.core.address import normalize_mac
from kohakudhcp.host.dependencies import ServicesDep
from kohakudhcp.models.requests import LeaseAllocateRequest, LeaseRenewRequest
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Queries
# =============================================================================


@router.get("/leases")
async def list_leases(
    services: ServicesDep,
    pool_id: int | None = Query(None, description="Filter by pool"),
):
    """List active leases ordered by address."""
    now = services.clock()
    return [lease.to_dict(now) for lease in services.manager.list_active(pool_id)]


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("/leases")
async def allocate_lease(request: LeaseAllocateRequest, services: ServicesDep):
    """
    Allocate an address for a client.

    Returns the client's existing live lease when it already holds one in
    the pool. A full pool answers 409 with error "pool_exhausted".
    """
    logger.debug(f"Allocate request: {request.model_dump()}")
    lease = services.manager.allocate(
        request.mac_address,
        request.pool_id,
        hostname=request.hostname,
        duration=request.lease_time,
        authorized=request.authorized,
    )
    return lease.to_dict(services.clock())


@router.post("/leases/{mac_address}/release")
async def release_lease(mac_address: str, services: ServicesDep):
    """Release the client's active lease. Releasing twice is a no-op."""
    released = services.manager.release(mac_address)
    return {"mac_address": normalize_mac(mac_address), "released": released}


@router.post("/leases/{lease_id}/renew")
async def renew_lease(
    lease_id: int,
    services: ServicesDep,
    request: LeaseRenewRequest | None = Body(None),
):
    """Extend a live lease. Expired leases are refused with 409."""
    duration = request.lease_time if request else None
    lease = services.manager.renew(lease_id, duration)
    return lease.to_dict(services.clock())
