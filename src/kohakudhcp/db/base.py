"""
Database base configuration and utilities.

This module provides the foundation for HakuDHCP's database layer using
Peewee ORM with SQLite backend.

Components:
    - BaseModel: Base class for all HakuDHCP database models
    - Datastore: Explicitly constructed database handle. The process entry
      point owns its lifecycle (open/close) and passes it to every service.
      peewee binds models per class, so only one Datastore may be open at a
      time; opening a second one while the first is open raises.
    - run_in_executor: Async wrapper for blocking DB operations
"""

import asyncio

import peewee

from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

SQLITE_PRAGMAS = {
    "journal_mode": "wal",
    "foreign_keys": 1,
    "busy_timeout": 5000,
    "synchronous": "normal",
}


# =============================================================================
# Base Model
# =============================================================================


class BaseModel(peewee.Model):
    """
    Base model for all HakuDHCP database models.

    Models are unbound until a Datastore is opened; the Datastore binds them
    to its connection.
    """

    class Meta:
        database = None


def _all_models() -> list[type[BaseModel]]:
    # Import here to avoid circular imports
    from kohakudhcp.db.event import DhcpEvent
    from kohakudhcp.db.lease import Lease
    from kohakudhcp.db.pool import Pool
    from kohakudhcp.db.reservation import Reservation
    from kohakudhcp.db.resolver import UpstreamResolver

    return [Pool, Reservation, Lease, DhcpEvent, UpstreamResolver]


# =============================================================================
# Datastore
# =============================================================================


class Datastore:
    """
    Handle to the lease/reservation/pool tables.

    Usage:
        store = Datastore("/var/lib/kohakudhcp/dhcp.db")
        store.open()
        registry = PoolRegistry(store)
        ...
        store.close()
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.db = peewee.SqliteDatabase(db_path, pragmas=SQLITE_PRAGMAS)
        self.models = _all_models()

    def open(self) -> "Datastore":
        """
        Bind models, connect and create tables and indexes.

        Raises:
            RuntimeError: If another Datastore is open and holds the models.
            peewee.OperationalError: If database connection fails.
        """
        bound = self.models[0]._meta.database
        if bound is not None and bound is not self.db:
            raise RuntimeError(
                f"Cannot open '{self.db_path}': models are bound to "
                f"'{bound.database}', close that Datastore first"
            )

        logger.debug(f"Initializing database at: {self.db_path}")
        try:
            self.db.bind(self.models)
            self.db.connect(reuse_if_open=True)
            self.db.create_tables(self.models, safe=True)
        except peewee.OperationalError as e:
            logger.error(f"Failed to initialize database '{self.db_path}': {e}")
            self._unbind()
            raise
        logger.info(f"Database initialized: {self.db_path}")
        return self

    def close(self) -> None:
        """Close the database connection and release the model binding."""
        if not self.db.is_closed():
            self.db.close()
            logger.debug("Database connection closed")
        self._unbind()

    def _unbind(self) -> None:
        if self.models[0]._meta.database is self.db:
            for model in self.models:
                model.bind(None, bind_refs=False, bind_backrefs=False)

    def write(self):
        """
        Start a write transaction.

        BEGIN IMMEDIATE takes the SQLite write lock up front, so a check
        followed by an insert/update inside the block is a single writer
        commit.
        """
        return self.db.atomic("IMMEDIATE")

    def read(self):
        """Start a read transaction (consistent snapshot)."""
        return self.db.atomic()

    def __enter__(self) -> "Datastore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# =============================================================================
# Async Utilities
# =============================================================================


async def run_in_executor(func, *args, **kwargs):
    """
    Run a blocking database function in a thread pool executor.

    Use this in async contexts to avoid blocking the event loop.

    Example:
        result = await run_in_executor(manager.sweep_expired)
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: func(*args, **kwargs))
