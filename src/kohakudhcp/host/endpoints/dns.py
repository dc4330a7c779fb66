"""
DNS Resolver Endpoints.

Upstream resolver list and Unbound configuration preview/apply.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from kohakudhcp.db.base import run_in_executor
from kohakudhcp.host.dependencies import ServicesDep
from kohakudhcp.models.requests import UpstreamResolverRequest

router = APIRouter()


@router.get("/upstreams")
async def list_upstreams(services: ServicesDep):
    """List upstream resolvers ordered by priority."""
    return [resolver.to_dict() for resolver in services.upstreams.list_all()]


@router.post("/upstreams", status_code=201)
async def create_upstream(request: UpstreamResolverRequest, services: ServicesDep):
    resolver = services.upstreams.add(request)
    return resolver.to_dict()


@router.delete("/upstreams/{resolver_id}")
async def delete_upstream(resolver_id: int, services: ServicesDep):
    services.upstreams.remove(resolver_id)
    return {"message": f"Upstream resolver {resolver_id} removed."}


@router.get("/config", response_class=PlainTextResponse)
async def preview_config(services: ServicesDep):
    """Render the Unbound configuration without writing it."""
    return services.unbound.render()


@router.post("/apply")
async def apply_config(services: ServicesDep):
    """Write the Unbound configuration and reload the resolver."""
    result = await run_in_executor(services.unbound_applier.apply)
    return result.to_dict()
