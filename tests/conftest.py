"""Pytest configuration and fixtures for HakuDHCP tests.

Every test gets its own SQLite file under tmp_path. File databases (not
:memory:) are used because peewee keeps one connection per thread and the
FastAPI TestClient serves requests from a different thread.
"""

import datetime

import pytest

from kohakudhcp.db.base import Datastore
from kohakudhcp.host.config import HostConfig
from kohakudhcp.host.services import build_services
from kohakudhcp.models.requests import PoolCreateRequest

T0 = datetime.datetime(2024, 1, 1, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime.datetime = T0):
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> datetime.datetime:
        self.now += datetime.timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def host_config(tmp_path):
    """Configuration pointing every path into tmp_path, no reload commands."""
    cfg = HostConfig()
    cfg.DB_FILE = str(tmp_path / "dhcp.db")
    cfg.SWEEP_ENABLED = False
    cfg.KEA_CONFIG_PATH = str(tmp_path / "kea" / "kea-dhcp4.conf")
    cfg.UNBOUND_CONFIG_PATH = str(tmp_path / "unbound" / "kohakudhcp.conf")
    cfg.KEA_RELOAD_COMMAND = []
    cfg.UNBOUND_RELOAD_COMMAND = []
    return cfg


@pytest.fixture
def datastore(host_config):
    store = Datastore(host_config.DB_FILE).open()
    yield store
    store.close()


@pytest.fixture
def services(datastore, host_config, clock):
    return build_services(datastore, host_config, clock)


def build_pool_request(**overrides) -> PoolCreateRequest:
    """A valid /24 pool request; override any field."""
    data = {
        "name": "office",
        "vlan_id": 10,
        "network_cidr": "10.0.0.0/24",
        "start_ip": "10.0.0.100",
        "end_ip": "10.0.0.200",
        "gateway_ip": "10.0.0.1",
        "dns_servers": ["1.1.1.1", "8.8.8.8"],
        "lease_seconds": "24 hours",
        "max_lease_seconds": "7 days",
    }
    data.update(overrides)
    return PoolCreateRequest(**data)


@pytest.fixture
def pool_request():
    return build_pool_request


@pytest.fixture
def make_pool(services):
    """Create a pool through the registry."""

    def _make(**overrides):
        return services.pools.add(build_pool_request(**overrides))

    return _make
