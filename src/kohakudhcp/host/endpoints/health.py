"""Health check endpoint."""

import peewee
from fastapi import APIRouter

from kohakudhcp import __version__
from kohakudhcp.host.dependencies import ServicesDep
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health(services: ServicesDep):
    """Report service and datastore status."""
    try:
        services.store.db.execute_sql("SELECT 1")
        database = "ok"
    except peewee.PeeweeException as e:
        logger.error(f"Health check database error: {e}")
        database = "error"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": __version__,
        "database": database,
        "sweeper_enabled": services.config.SWEEP_ENABLED,
    }
