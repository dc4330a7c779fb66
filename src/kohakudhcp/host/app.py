"""
HakuDHCP Host FastAPI Application.

This module provides the operator API for the DHCP/DNS appliance.

Responsibilities:
    - Pool, reservation and lease management
    - Kea and Unbound configuration preview and apply
    - Periodic expiry sweep of leases
"""

import asyncio
import contextlib
import datetime
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kohakudhcp import __version__
from kohakudhcp.core.exceptions import DhcpError
from kohakudhcp.db.base import Datastore
from kohakudhcp.host.background.lease_sweeper import sweep_expired_leases
from kohakudhcp.host.config import HostConfig, config
from kohakudhcp.host.endpoints import dhcp, dns, health, leases, pools, reservations
from kohakudhcp.host.services import build_services
from kohakudhcp.models.enums import LogLevel
from kohakudhcp.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Handling
# =============================================================================


async def dhcp_error_handler(request: Request, exc: DhcpError) -> JSONResponse:
    """Map DhcpError subclasses to their HTTP status and structured detail."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {exc.status_code}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    host_config: HostConfig | None = None,
    datastore: Datastore | None = None,
    clock=datetime.datetime.now,
) -> FastAPI:
    """
    Build the host application.

    Args:
        host_config: Configuration; defaults to the global config.
        datastore: Already opened datastore. When omitted, startup opens
            one at DB_FILE and shutdown closes it.
        clock: Callable returning the current naive datetime.
    """
    cfg = host_config or config
    background_tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def startup_event():
        """Open the datastore, wire services and start background tasks."""
        logger.info("Host server starting up")
        logger.debug(f"Database file: {cfg.DB_FILE}")

        if getattr(app.state, "services", None) is None:
            db_dir = os.path.dirname(os.path.abspath(cfg.DB_FILE))
            os.makedirs(db_dir, exist_ok=True)
            app.state.owns_datastore = True
            app.state.services = build_services(
                Datastore(cfg.DB_FILE).open(), cfg, clock
            )

        if cfg.SWEEP_ENABLED:
            task = asyncio.create_task(
                sweep_expired_leases(app.state.services), name="lease_sweeper"
            )
            background_tasks.add(task)
            task.add_done_callback(background_tasks.discard)
            logger.debug("Started lease sweeper")

    async def shutdown_event():
        """Stop background tasks and close the datastore we opened."""
        logger.info("Host server shutting down")

        for task in background_tasks:
            task.cancel()
        if background_tasks:
            await asyncio.gather(*background_tasks, return_exceptions=True)

        if getattr(app.state, "owns_datastore", False):
            app.state.services.store.close()
            app.state.services = None

        logger.info("Host server shut down complete")

    @contextlib.asynccontextmanager
    async def lifespan(_: FastAPI):
        await startup_event()
        try:
            yield
        finally:
            await shutdown_event()

    app = FastAPI(
        title="HakuDHCP Host",
        description="DHCP pool, lease and resolver configuration manager",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.owns_datastore = False
    app.state.services = (
        build_services(datastore, cfg, clock) if datastore is not None else None
    )

    app.add_exception_handler(DhcpError, dhcp_error_handler)

    # Include API routers (all under /api prefix)
    app.include_router(pools.router, prefix="/api/dhcp", tags=["Pools"])
    app.include_router(reservations.router, prefix="/api/dhcp", tags=["Reservations"])
    app.include_router(leases.router, prefix="/api/dhcp", tags=["Leases"])
    app.include_router(dhcp.router, prefix="/api/dhcp", tags=["DHCP"])
    app.include_router(dns.router, prefix="/api/dns", tags=["DNS"])
    app.include_router(health.router, prefix="/api", tags=["Health"])

    return app


# =============================================================================
# Server Entry Points
# =============================================================================


def load_config(path: str | None = None) -> HostConfig:
    """
    Load host configuration.

    Reads the YAML file at path (or $KOHAKUDHCP_CONFIG) when given, then
    applies KOHAKUDHCP_<FIELD> environment overrides.
    """
    path = path or os.environ.get("KOHAKUDHCP_CONFIG")
    cfg = HostConfig.from_file(path) if path else HostConfig()
    cfg.apply_env()
    return cfg


def run(host_config: HostConfig | None = None):
    """Run the host server using uvicorn."""
    import uvicorn

    cfg = host_config or config

    # Configure logging before starting uvicorn
    configure_logging(cfg.LOG_LEVEL, cfg.HOST_LOG_FILE or None)

    # Map log levels to uvicorn levels
    uvicorn_level_map = {
        LogLevel.FULL: "debug",
        LogLevel.DEBUG: "debug",
        LogLevel.INFO: "info",
        LogLevel.WARNING: "warning",
    }
    uvicorn_level = uvicorn_level_map.get(cfg.LOG_LEVEL, "info")

    logger.info(f"Starting host server on {cfg.HOST_BIND_IP}:{cfg.HOST_PORT}")

    uvicorn.run(
        create_app(cfg),
        host=cfg.HOST_BIND_IP,
        port=cfg.HOST_PORT,
        log_level=uvicorn_level,
        log_config=None,  # Disable uvicorn's default logging config (use loguru)
    )


def main():
    """Entry point for the host server."""
    run(load_config())


if __name__ == "__main__":
    main()
