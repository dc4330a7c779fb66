"""
Pool Management Endpoints.

CRUD over DHCP address pools. Overlap and validation failures surface as
structured errors through the app's DhcpError handler.
"""

from fastapi import APIRouter, Query

from kohakudhcp.host.dependencies import ServicesDep
from kohakudhcp.models.requests import PoolCreateRequest, PoolUpdateRequest
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/pools")
async def list_pools(
    services: ServicesDep,
    active_only: bool = Query(False, description="Only return active pools"),
):
    """List pools ordered by VLAN and id."""
    pools = services.pools.list_active() if active_only else services.pools.list_all()
    return [pool.to_dict() for pool in pools]


@router.post("/pools", status_code=201)
async def create_pool(request: PoolCreateRequest, services: ServicesDep):
    """Create a pool. Fails with 409 if its range overlaps an active pool."""
    logger.debug(f"Create pool request: {request.model_dump()}")
    pool = services.pools.add(request)
    return pool.to_dict()


@router.get("/pools/{pool_id}")
async def get_pool(pool_id: int, services: ServicesDep):
    """Get a pool with its current utilisation."""
    pool = services.pools.get(pool_id)
    return {
        **pool.to_dict(),
        "usage": services.engine.pool_usage(pool).to_dict(),
    }


@router.put("/pools/{pool_id}")
async def update_pool(
    pool_id: int, request: PoolUpdateRequest, services: ServicesDep
):
    """Apply a partial update; the merged pool is re-validated."""
    pool = services.pools.update(pool_id, request)
    return pool.to_dict()


@router.delete("/pools/{pool_id}")
async def delete_pool(pool_id: int, services: ServicesDep):
    """Delete a pool that no live lease or active reservation references."""
    services.pools.remove(pool_id)
    return {"message": f"Pool {pool_id} deleted."}
