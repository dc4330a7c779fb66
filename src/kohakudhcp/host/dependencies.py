"""
FastAPI dependencies for the host API.

Endpoints receive the service container through ``ServicesDep`` instead of
reaching for module globals, so tests can build an app over a scratch
datastore.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from kohakudhcp.host.services import DhcpServices


def get_services(request: Request) -> DhcpServices:
    """Get the service container attached to the running app."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Datastore not initialized",
        )
    return services


ServicesDep = Annotated[DhcpServices, Depends(get_services)]
