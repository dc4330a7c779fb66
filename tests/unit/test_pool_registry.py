"""
Unit tests for the pool registry.

Tests creation, the non-overlap guarantee, partial updates and removal
guards against a temporary SQLite datastore.
"""

import pytest

from kohakudhcp.core.exceptions import (
    ConflictError,
    NotFoundError,
    OverlapError,
    ValidationError,
)
from kohakudhcp.db.pool import Pool
from kohakudhcp.host.services.pool_registry import find_overlaps
from kohakudhcp.models.requests import PoolUpdateRequest, ReservationCreateRequest

LAN = {
    "network_cidr": "192.168.1.0/24",
    "gateway_ip": "192.168.1.1",
}


class TestPoolCreation:
    """Test PoolRegistry.add."""

    def test_add_stores_normalized_pool(self, services, make_pool):
        pool = make_pool()

        stored = services.pools.get(pool.id)
        assert stored.name == "office"
        assert stored.start_ip == "10.0.0.100"
        assert stored.size == 101
        assert stored.lease_seconds == 86400
        assert stored.max_lease_seconds == 604800
        assert stored.get_dns_servers() == ["1.1.1.1", "8.8.8.8"]

    def test_overlapping_pool_rejected(self, services, make_pool):
        """Test that an intersecting active range is refused and not stored."""
        existing = make_pool(
            name="lan-high", start_ip="192.168.1.100", end_ip="192.168.1.200", **LAN
        )

        with pytest.raises(OverlapError) as exc_info:
            make_pool(
                name="lan-low", start_ip="192.168.1.50", end_ip="192.168.1.150", **LAN
            )

        assert exc_info.value.other["id"] == existing.id
        assert exc_info.value.to_dict()["error"] == "pool_overlap"
        assert Pool.select().count() == 1

    def test_touching_ranges_overlap(self, make_pool):
        make_pool(name="a", start_ip="192.168.1.10", end_ip="192.168.1.20", **LAN)
        with pytest.raises(OverlapError):
            make_pool(name="b", start_ip="192.168.1.20", end_ip="192.168.1.30", **LAN)

    def test_adjacent_ranges_allowed(self, services, make_pool):
        make_pool(name="a", start_ip="192.168.1.10", end_ip="192.168.1.20", **LAN)
        make_pool(name="b", start_ip="192.168.1.21", end_ip="192.168.1.30", **LAN)
        assert len(services.pools.list_active()) == 2

    def test_inactive_pool_may_overlap(self, services, make_pool):
        """Test that only active pools take part in the overlap check."""
        make_pool(name="a", start_ip="192.168.1.10", end_ip="192.168.1.20", **LAN)
        make_pool(
            name="b",
            start_ip="192.168.1.15",
            end_ip="192.168.1.30",
            is_active=False,
            **LAN,
        )
        assert len(services.pools.list_all()) == 2
        assert len(services.pools.list_active()) == 1

    def test_invalid_request_rejected(self, pool_request):
        """Test range, network and lifetime checks at the request boundary."""
        with pytest.raises(ValueError):
            pool_request(start_ip="10.0.0.200", end_ip="10.0.0.100")
        with pytest.raises(ValueError):
            pool_request(end_ip="10.0.1.10")
        with pytest.raises(ValueError):
            pool_request(lease_seconds="8 days", max_lease_seconds="7 days")
        with pytest.raises(ValueError):
            pool_request(dns_servers=[])
        with pytest.raises(ValueError):
            pool_request(vlan_id=5000)

    def test_pool_creation_is_logged(self, services, make_pool):
        pool = make_pool()
        events = services.events.query(event_type="pool_created")
        assert [e.pool_id for e in events] == [pool.id]


class TestPoolQueries:
    """Test lookups and ordering."""

    def test_get_missing_pool(self, services):
        with pytest.raises(NotFoundError):
            services.pools.get(999)

    def test_list_orders_by_vlan(self, services, make_pool):
        make_pool(name="v20", vlan_id=20)
        make_pool(
            name="v5",
            vlan_id=5,
            network_cidr="10.0.5.0/24",
            start_ip="10.0.5.10",
            end_ip="10.0.5.20",
            gateway_ip="10.0.5.1",
        )
        assert [p.name for p in services.pools.list_all()] == ["v5", "v20"]

    def test_find_overlaps_reports_each_pair_once(self):
        pools = [
            Pool(id=1, name="a", start_ip="10.0.0.10", end_ip="10.0.0.50"),
            Pool(id=2, name="b", start_ip="10.0.0.40", end_ip="10.0.0.60"),
            Pool(id=3, name="c", start_ip="10.0.0.45", end_ip="10.0.0.46"),
            Pool(id=4, name="d", start_ip="10.0.0.100", end_ip="10.0.0.110"),
        ]
        pairs = [(a.id, b.id) for a, b in find_overlaps(pools)]
        assert pairs == [(1, 2), (1, 3), (2, 3)]


class TestPoolUpdate:
    """Test PoolRegistry.update."""

    def test_partial_update(self, services, make_pool):
        pool = make_pool()
        updated = services.pools.update(
            pool.id, PoolUpdateRequest(end_ip="10.0.0.150", lease_seconds="12 hours")
        )
        assert updated.end_ip == "10.0.0.150"
        assert updated.lease_seconds == 43200
        assert updated.name == "office"

    def test_update_revalidates_merged_record(self, services, make_pool):
        pool = make_pool()
        with pytest.raises(ValidationError) as exc_info:
            services.pools.update(pool.id, {"start_ip": "10.0.0.250"})
        assert exc_info.value.errors
        assert services.pools.get(pool.id).start_ip == "10.0.0.100"

    def test_update_into_overlap_rejected(self, services, make_pool):
        make_pool(name="a", start_ip="192.168.1.10", end_ip="192.168.1.20", **LAN)
        b = make_pool(name="b", start_ip="192.168.1.30", end_ip="192.168.1.40", **LAN)

        with pytest.raises(OverlapError):
            services.pools.update(b.id, {"start_ip": "192.168.1.15"})

    def test_activating_overlapping_pool_rejected(self, services, make_pool):
        make_pool(name="a", start_ip="192.168.1.10", end_ip="192.168.1.20", **LAN)
        b = make_pool(
            name="b",
            start_ip="192.168.1.15",
            end_ip="192.168.1.30",
            is_active=False,
            **LAN,
        )
        with pytest.raises(OverlapError):
            services.pools.update(b.id, {"is_active": True})

    def test_update_own_range_does_not_self_overlap(self, services, make_pool):
        pool = make_pool()
        services.pools.update(pool.id, {"end_ip": "10.0.0.199"})
        assert services.pools.get(pool.id).end_ip == "10.0.0.199"

    def test_shrinking_past_reservation_refused(self, services, make_pool):
        """Test that a range change may not strand a reservation."""
        pool = make_pool()
        services.reservations.add(
            ReservationCreateRequest(
                mac_address="aa:bb:cc:dd:ee:05",
                ip_address="10.0.0.150",
                pool_id=pool.id,
            )
        )

        with pytest.raises(ConflictError) as exc_info:
            services.pools.update(pool.id, {"end_ip": "10.0.0.120"})

        assert exc_info.value.field == "ip"
        assert "10.0.0.150" in str(exc_info.value)
        assert services.pools.get(pool.id).end_ip == "10.0.0.200"
        assert services.kea.validate() == []

    def test_shrinking_around_reservation_allowed(self, services, make_pool):
        pool = make_pool()
        services.reservations.add(
            ReservationCreateRequest(
                mac_address="aa:bb:cc:dd:ee:05",
                ip_address="10.0.0.150",
                pool_id=pool.id,
            )
        )

        services.pools.update(
            pool.id, {"start_ip": "10.0.0.140", "end_ip": "10.0.0.160"}
        )

        assert services.pools.get(pool.id).start_ip == "10.0.0.140"


class TestPoolRemoval:
    """Test PoolRegistry.remove guards."""

    def test_remove_unused_pool(self, services, make_pool):
        pool = make_pool()
        services.pools.remove(pool.id)
        with pytest.raises(NotFoundError):
            services.pools.get(pool.id)

    def test_remove_with_live_lease_refused(self, services, make_pool):
        pool = make_pool()
        services.manager.allocate("aa:bb:cc:dd:ee:01", pool.id)

        with pytest.raises(ConflictError) as exc_info:
            services.pools.remove(pool.id)
        assert exc_info.value.field == "pool_id"

    def test_remove_after_lease_expired(self, services, make_pool, clock):
        """Test that an expired lease no longer pins the pool."""
        pool = make_pool()
        lease = services.manager.allocate("aa:bb:cc:dd:ee:01", pool.id)
        clock.advance(days=2)

        services.pools.remove(pool.id)

        assert services.leases.get(lease.id).pool_id is None

    def test_remove_with_reservation_refused(self, services, make_pool):
        pool = make_pool()
        services.reservations.add(
            ReservationCreateRequest(
                mac_address="aa:bb:cc:dd:ee:02",
                ip_address="10.0.0.150",
                pool_id=pool.id,
            )
        )
        with pytest.raises(ConflictError):
            services.pools.remove(pool.id)


class TestConsistency:
    """Test verify_consistency on rows written behind the registry's back."""

    def test_clean_set_has_no_problems(self, services, make_pool):
        make_pool()
        assert services.pools.verify_consistency() == []

    def test_detects_overlap_and_bad_rows(self, services, make_pool):
        make_pool(name="a", start_ip="192.168.1.10", end_ip="192.168.1.20", **LAN)
        Pool.create(
            name="rogue",
            vlan_id=1,
            network_cidr="192.168.1.0/24",
            start_ip="192.168.1.15",
            end_ip="192.168.1.12",
            gateway_ip="192.168.1.1",
            dns_servers="[]",
        )

        problems = services.pools.verify_consistency()

        assert any("overlaps" in p for p in problems)
        assert any("is after end_ip" in p for p in problems)
        assert any("no DNS servers" in p for p in problems)
