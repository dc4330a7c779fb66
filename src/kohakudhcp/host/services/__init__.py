"""
Host services for HakuDHCP.

``build_services`` wires every component to one Datastore, one clock and
one configuration; the app factory keeps the result on ``app.state``.
"""

import datetime
from dataclasses import dataclass

from kohakudhcp.db.base import Datastore
from kohakudhcp.host.config import HostConfig
from kohakudhcp.host.services.allocation import AllocationEngine
from kohakudhcp.host.services.config_apply import ConfigApplier
from kohakudhcp.host.services.event_log import EventLog
from kohakudhcp.host.services.kea_config import KeaConfigRenderer
from kohakudhcp.host.services.lease_manager import LeaseLifecycleManager
from kohakudhcp.host.services.lease_store import LeaseStore
from kohakudhcp.host.services.pool_registry import PoolRegistry
from kohakudhcp.host.services.reservation_store import ReservationStore
from kohakudhcp.host.services.unbound_config import (
    UnboundConfigRenderer,
    UpstreamRegistry,
)


@dataclass
class DhcpServices:
    """Service container shared by endpoints and background tasks."""

    store: Datastore
    config: HostConfig
    clock: object
    events: EventLog
    pools: PoolRegistry
    reservations: ReservationStore
    leases: LeaseStore
    engine: AllocationEngine
    manager: LeaseLifecycleManager
    kea: KeaConfigRenderer
    upstreams: UpstreamRegistry
    unbound: UnboundConfigRenderer
    kea_applier: ConfigApplier
    unbound_applier: ConfigApplier


def build_services(
    store: Datastore, config: HostConfig, clock=datetime.datetime.now
) -> DhcpServices:
    """Construct all services over an open datastore."""
    events = EventLog(store, clock)
    pools = PoolRegistry(store, events, clock)
    reservations = ReservationStore(store, events, clock)
    leases = LeaseStore(store)
    engine = AllocationEngine(pools, leases, reservations, clock)
    manager = LeaseLifecycleManager(
        store,
        pools,
        leases,
        reservations,
        engine,
        events,
        clock=clock,
        max_attempts=config.ALLOCATION_MAX_ATTEMPTS,
        default_lease_seconds=config.DEFAULT_LEASE_SECONDS,
        default_max_lease_seconds=config.DEFAULT_MAX_LEASE_SECONDS,
    )
    kea = KeaConfigRenderer(store, pools, reservations, config)
    upstreams = UpstreamRegistry(store, clock)
    unbound = UnboundConfigRenderer(upstreams, config)

    return DhcpServices(
        store=store,
        config=config,
        clock=clock,
        events=events,
        pools=pools,
        reservations=reservations,
        leases=leases,
        engine=engine,
        manager=manager,
        kea=kea,
        upstreams=upstreams,
        unbound=unbound,
        kea_applier=ConfigApplier(
            "kea",
            kea.render,
            config.KEA_CONFIG_PATH,
            config.KEA_RELOAD_COMMAND,
            events,
        ),
        unbound_applier=ConfigApplier(
            "unbound",
            unbound.render,
            config.UNBOUND_CONFIG_PATH,
            config.UNBOUND_RELOAD_COMMAND,
            events,
        ),
    )
