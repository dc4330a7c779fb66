"""
Lease Sweeper Background Task.

Periodically transitions expired leases to the expired state so that their
addresses show up as free and the event log records the expiry.
"""

import asyncio

from kohakudhcp.db.base import run_in_executor
from kohakudhcp.host.services import DhcpServices
from kohakudhcp.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


# =============================================================================
# Background Task
# =============================================================================


async def sweep_expired_leases(services: DhcpServices) -> None:
    """
    Run the expiry sweep every SWEEP_INTERVAL_SECONDS.

    The sweep itself is blocking database work and runs in the default
    executor. Errors are logged and the loop keeps going.
    """
    interval = services.config.SWEEP_INTERVAL_SECONDS
    logger.debug(f"Lease sweeper started (interval={interval}s)")

    while True:
        await asyncio.sleep(interval)

        try:
            result = await run_in_executor(services.manager.sweep_expired)
            if result.skipped_ids:
                logger.warning(
                    f"Sweeper skipped {len(result.skipped_ids)} lease(s): "
                    f"{result.skipped_ids}"
                )
        except Exception as e:
            logger.error(f"Error sweeping expired leases: {e}")
            logger.debug(f"Sweeper traceback:\n{format_traceback(e)}")
