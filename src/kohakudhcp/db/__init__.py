"""
Database models for HakuDHCP.

Re-exports the models and the Datastore handle. Prefer importing from
specific modules:
    - kohakudhcp.db.pool for Pool
    - kohakudhcp.db.reservation for Reservation
    - kohakudhcp.db.lease for Lease
    - kohakudhcp.db.event for DhcpEvent
    - kohakudhcp.db.resolver for UpstreamResolver
    - kohakudhcp.db.base for BaseModel, Datastore, run_in_executor
"""

from kohakudhcp.db.base import BaseModel, Datastore, run_in_executor
from kohakudhcp.db.event import DhcpEvent
from kohakudhcp.db.lease import Lease
from kohakudhcp.db.pool import Pool
from kohakudhcp.db.reservation import Reservation
from kohakudhcp.db.resolver import UpstreamResolver

__all__ = [
    "BaseModel",
    "Datastore",
    "run_in_executor",
    "Pool",
    "Reservation",
    "Lease",
    "DhcpEvent",
    "UpstreamResolver",
]
