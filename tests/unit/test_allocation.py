"""
Unit tests for the allocation engine.
"""

import pytest

from kohakudhcp.core.exceptions import NotFoundError, PoolExhaustedError
from kohakudhcp.models.requests import ReservationCreateRequest

MAC_A = "aa:bb:cc:00:00:01"
MAC_B = "aa:bb:cc:00:00:02"
MAC_C = "aa:bb:cc:00:00:03"


class TestNextFreeAddress:
    """Test free-address scans."""

    def test_sequential_allocation_then_exhaustion(self, services, make_pool):
        """Test that a two-address pool hands out both, then reports full."""
        pool = make_pool(start_ip="10.0.0.100", end_ip="10.0.0.101")

        first = services.manager.allocate(MAC_A, pool.id)
        second = services.manager.allocate(MAC_B, pool.id)

        assert first.ip_address == "10.0.0.100"
        assert second.ip_address == "10.0.0.101"
        assert services.engine.next_free_address(pool.id) is None
        with pytest.raises(PoolExhaustedError) as exc_info:
            services.manager.allocate(MAC_C, pool.id)
        assert exc_info.value.pool_id == pool.id
        assert exc_info.value.to_dict()["range"] == {
            "start_ip": "10.0.0.100",
            "end_ip": "10.0.0.101",
        }

    def test_released_address_is_reused(self, services, make_pool):
        pool = make_pool()
        lease = services.manager.allocate(MAC_A, pool.id)
        services.manager.allocate(MAC_B, pool.id)

        assert services.manager.release(MAC_A) is True

        assert services.engine.next_free_address(pool.id) == lease.ip_address

    def test_expired_lease_frees_address_without_sweep(
        self, services, make_pool, clock
    ):
        """Test that freedom is derived from lease_end, not the state column."""
        pool = make_pool()
        services.manager.allocate(MAC_A, pool.id, duration="1 hour")
        assert services.engine.next_free_address(pool.id) == "10.0.0.101"

        clock.advance(hours=2)

        assert services.engine.next_free_address(pool.id) == "10.0.0.100"
        lease = services.manager.allocate(MAC_B, pool.id)
        assert lease.ip_address == "10.0.0.100"

    def test_gateway_inside_range_is_skipped(self, services, make_pool):
        pool = make_pool(start_ip="10.0.0.1", end_ip="10.0.0.5", gateway_ip="10.0.0.1")
        assert services.engine.next_free_address(pool.id) == "10.0.0.2"

    def test_reserved_address_is_skipped(self, services, make_pool):
        pool = make_pool()
        services.reservations.add(
            ReservationCreateRequest(
                mac_address=MAC_B, ip_address="10.0.0.100", pool_id=pool.id
            )
        )
        lease = services.manager.allocate(MAC_A, pool.id)
        assert lease.ip_address == "10.0.0.101"

    def test_missing_pool(self, services):
        with pytest.raises(NotFoundError):
            services.engine.next_free_address(42)

    def test_inactive_pool_has_no_candidate(self, services, make_pool):
        """Test that a deactivated pool offers nothing, matching allocate."""
        pool = make_pool(is_active=False)
        assert services.engine.next_free_address(pool.id) is None

        services.pools.update(pool.id, {"is_active": True})
        assert services.engine.next_free_address(pool.id) == "10.0.0.100"


class TestPoolUsage:
    """Test utilisation counts."""

    def test_usage_counts(self, services, make_pool):
        pool = make_pool(start_ip="10.0.0.100", end_ip="10.0.0.103")
        services.manager.allocate(MAC_A, pool.id)
        services.reservations.add(
            ReservationCreateRequest(
                mac_address=MAC_B, ip_address="10.0.0.103", pool_id=pool.id
            )
        )

        usage = services.engine.pool_usage(pool)

        assert usage.total == 4
        assert usage.leased == 1
        assert usage.reserved == 1
        assert usage.free == 2
        assert usage.utilization == 50.0

    def test_reserved_and_leased_address_counted_once(self, services, make_pool):
        pool = make_pool(start_ip="10.0.0.100", end_ip="10.0.0.101")
        services.reservations.add(
            ReservationCreateRequest(
                mac_address=MAC_A, ip_address="10.0.0.100", pool_id=pool.id
            )
        )
        services.manager.allocate(MAC_A, pool.id)

        usage = services.engine.pool_usage(pool)

        assert (usage.leased, usage.reserved, usage.free) == (1, 0, 1)
