"""
Unit tests for the lease lifecycle manager.

Covers creation conflicts, allocation policy, renewal, release, decline and
the expiry sweep, all against a controllable clock.
"""

import datetime

import pytest

from kohakudhcp.core.exceptions import (
    ConflictError,
    LeaseExpiredError,
    NotFoundError,
    UnknownClientError,
    ValidationError,
)
from kohakudhcp.models.enums import DhcpEventType, LeaseState
from kohakudhcp.models.requests import ReservationCreateRequest

MAC_A = "aa:bb:cc:00:00:01"
MAC_B = "aa:bb:cc:00:00:02"
MAC_C = "aa:bb:cc:00:00:03"


def _state(services, lease_id):
    return services.leases.get(lease_id).state


class TestCreate:
    """Test LeaseLifecycleManager.create."""

    def test_create_sets_window(self, services, make_pool, clock):
        pool = make_pool()
        lease = services.manager.create(
            "AA-BB-CC-00-00-01", "10.0.0.120", pool.id, "1 hour"
        )

        assert lease.mac_address == MAC_A
        assert lease.lease_start == clock.now
        assert lease.lease_end == clock.now + datetime.timedelta(hours=1)
        assert lease.state == LeaseState.ACTIVE.value
        assert lease.renewal_count == 0

    def test_mac_conflict(self, services, make_pool):
        pool = make_pool()
        services.manager.create(MAC_A, "10.0.0.120", pool.id, 3600)

        with pytest.raises(ConflictError) as exc_info:
            services.manager.create(MAC_A, "10.0.0.121", pool.id, 3600)
        assert exc_info.value.field == "mac"

    def test_ip_conflict(self, services, make_pool):
        pool = make_pool()
        services.manager.create(MAC_A, "10.0.0.120", pool.id, 3600)

        with pytest.raises(ConflictError) as exc_info:
            services.manager.create(MAC_B, "10.0.0.120", pool.id, 3600)
        assert exc_info.value.field == "ip"

    def test_ip_reserved_for_other_client(self, services, make_pool):
        pool = make_pool()
        services.reservations.add(
            ReservationCreateRequest(
                mac_address=MAC_B, ip_address="10.0.0.120", pool_id=pool.id
            )
        )
        with pytest.raises(ConflictError) as exc_info:
            services.manager.create(MAC_A, "10.0.0.120", pool.id, 3600)
        assert exc_info.value.field == "ip"

    def test_stale_lease_expired_on_commit(self, services, make_pool, clock):
        """Test that a passed-but-unswept lease does not block a new one."""
        pool = make_pool()
        old = services.manager.create(MAC_A, "10.0.0.120", pool.id, 3600)
        clock.advance(hours=2)

        new = services.manager.create(MAC_B, "10.0.0.120", pool.id, 3600)

        assert new.ip_address == "10.0.0.120"
        assert _state(services, old.id) == LeaseState.EXPIRED.value
        expired = services.events.query(event_type=DhcpEventType.LEASE_EXPIRED.value)
        assert [e.lease_id for e in expired] == [old.id]

    def test_non_positive_duration_rejected(self, services, make_pool):
        pool = make_pool()
        with pytest.raises(ValidationError):
            services.manager.create(MAC_A, "10.0.0.120", pool.id, 0)

    def test_missing_pool(self, services):
        with pytest.raises(NotFoundError):
            services.manager.create(MAC_A, "10.0.0.120", 77, 3600)


class TestAllocate:
    """Test allocation precedence and policy."""

    def test_existing_lease_returned(self, services, make_pool):
        pool = make_pool()
        first = services.manager.allocate(MAC_A, pool.id)
        again = services.manager.allocate(MAC_A.upper(), pool.id)
        assert again.id == first.id

    def test_live_lease_in_other_pool_conflicts(self, services, make_pool):
        office = make_pool()
        lab = make_pool(
            name="lab",
            vlan_id=20,
            network_cidr="10.0.20.0/24",
            start_ip="10.0.20.10",
            end_ip="10.0.20.20",
            gateway_ip="10.0.20.1",
        )
        services.manager.allocate(MAC_A, office.id)

        with pytest.raises(ConflictError) as exc_info:
            services.manager.allocate(MAC_A, lab.id)
        assert exc_info.value.field == "mac"

    def test_reservation_preempts_dynamic(self, services, make_pool):
        """Test that a reserved client gets its address, hostname and lifetime."""
        pool = make_pool()
        services.reservations.add(
            ReservationCreateRequest(
                mac_address=MAC_A,
                ip_address="10.0.0.150",
                hostname="printer",
                pool_id=pool.id,
                lease_time="2 hours",
            )
        )

        lease = services.manager.allocate(MAC_A, pool.id)

        assert lease.ip_address == "10.0.0.150"
        assert lease.hostname == "printer"
        assert lease.lease_end - lease.lease_start == datetime.timedelta(hours=2)

    def test_known_clients_only(self, services, make_pool):
        pool = make_pool(allow_unknown_clients=False)
        services.reservations.add(
            ReservationCreateRequest(
                mac_address=MAC_B, ip_address="10.0.0.150", pool_id=pool.id
            )
        )

        with pytest.raises(UnknownClientError):
            services.manager.allocate(MAC_A, pool.id)
        assert services.manager.allocate(MAC_B, pool.id).ip_address == "10.0.0.150"

    def test_authorization_required(self, services, make_pool):
        pool = make_pool(require_authorization=True)
        with pytest.raises(UnknownClientError) as exc_info:
            services.manager.allocate(MAC_A, pool.id)
        assert exc_info.value.to_dict()["error"] == "client_not_allowed"

        lease = services.manager.allocate(MAC_A, pool.id, authorized=True)
        assert lease.ip_address == "10.0.0.100"

    def test_inactive_pool_refused(self, services, make_pool):
        pool = make_pool(is_active=False)
        with pytest.raises(ConflictError) as exc_info:
            services.manager.allocate(MAC_A, pool.id)
        assert exc_info.value.field == "pool_id"

    def test_duration_capped_at_pool_max(self, services, make_pool):
        pool = make_pool()
        lease = services.manager.allocate(MAC_A, pool.id, duration="30 days")
        assert lease.lease_end - lease.lease_start == datetime.timedelta(days=7)

    def test_pool_lease_time_is_default(self, services, make_pool):
        pool = make_pool(lease_seconds="12 hours")
        lease = services.manager.allocate(MAC_A, pool.id)
        assert lease.lease_end - lease.lease_start == datetime.timedelta(hours=12)

    def test_lost_race_is_retried(self, services, make_pool, monkeypatch):
        """Test that an IP conflict after the scan triggers a fresh scan."""
        pool = make_pool()
        services.manager.create(MAC_B, "10.0.0.100", pool.id, 3600)

        original_scan = services.engine.scan
        calls = []

        def racing_scan(p, now=None):
            calls.append(1)
            if len(calls) == 1:
                return "10.0.0.100"
            return original_scan(p, now)

        monkeypatch.setattr(services.engine, "scan", racing_scan)

        lease = services.manager.allocate(MAC_A, pool.id)

        assert lease.ip_address == "10.0.0.101"
        assert len(calls) == 2

    def test_gives_up_after_max_attempts(self, services, make_pool, monkeypatch):
        pool = make_pool()
        services.manager.create(MAC_B, "10.0.0.100", pool.id, 3600)
        monkeypatch.setattr(services.engine, "scan", lambda p, now=None: "10.0.0.100")

        with pytest.raises(ConflictError) as exc_info:
            services.manager.allocate(MAC_A, pool.id)
        assert "after 3 attempts" in str(exc_info.value)


class TestRenew:
    """Test renewal and the expiry sweep interaction."""

    def test_renew_then_sweep_keeps_lease(self, services, make_pool, clock):
        """Test that a renewed lease survives a sweep past its original end."""
        pool = make_pool()
        lease = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        original_end = lease.lease_end

        clock.advance(minutes=30)
        renewed = services.manager.renew(lease.id)

        assert renewed.renewal_count == 1
        assert renewed.last_renewal == clock.now
        assert renewed.lease_end > original_end

        clock.now = original_end + datetime.timedelta(minutes=1)
        result = services.manager.sweep_expired()

        assert result.processed == 0
        assert _state(services, lease.id) == LeaseState.ACTIVE.value

    def test_renew_uses_requested_duration(self, services, make_pool, clock):
        pool = make_pool()
        lease = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        renewed = services.manager.renew(lease.id, "3 hours")
        assert renewed.lease_end == clock.now + datetime.timedelta(hours=3)

    def test_renew_capped_at_pool_max(self, services, make_pool, clock):
        pool = make_pool()
        lease = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        renewed = services.manager.renew(lease.id, "30 days")
        assert renewed.lease_end == clock.now + datetime.timedelta(days=7)

    def test_renew_after_end_rejected(self, services, make_pool, clock):
        pool = make_pool()
        lease = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        clock.advance(hours=1)

        with pytest.raises(LeaseExpiredError):
            services.manager.renew(lease.id)

    def test_renew_released_lease_rejected(self, services, make_pool):
        pool = make_pool()
        lease = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        services.manager.release(MAC_A)

        with pytest.raises(ConflictError) as exc_info:
            services.manager.renew(lease.id)
        assert exc_info.value.field == "state"

    def test_renew_missing_lease(self, services):
        with pytest.raises(NotFoundError):
            services.manager.renew(12345)


class TestReleaseAndDecline:
    """Test client-initiated terminal transitions."""

    def test_release_is_idempotent(self, services, make_pool):
        pool = make_pool()
        lease = services.manager.allocate(MAC_A, pool.id)

        assert services.manager.release(MAC_A) is True
        assert services.manager.release(MAC_A) is False
        assert _state(services, lease.id) == LeaseState.RELEASED.value
        released = services.events.query(
            mac_address=MAC_A, event_type=DhcpEventType.LEASE_RELEASED.value
        )
        assert len(released) == 1

    def test_release_unknown_mac(self, services):
        assert services.manager.release(MAC_C) is False

    def test_client_gets_new_lease_after_release(self, services, make_pool):
        pool = make_pool()
        first = services.manager.allocate(MAC_A, pool.id)
        services.manager.release(MAC_A)

        second = services.manager.allocate(MAC_A, pool.id)

        assert second.id != first.id
        assert _state(services, first.id) == LeaseState.RELEASED.value

    def test_decline(self, services, make_pool):
        pool = make_pool()
        lease = services.manager.allocate(MAC_A, pool.id)

        assert services.manager.decline(MAC_A, "10.0.0.150") is False
        assert services.manager.decline(MAC_A, lease.ip_address) is True
        assert _state(services, lease.id) == LeaseState.DECLINED.value


class TestSweep:
    """Test LeaseLifecycleManager.sweep_expired."""

    def test_sweep_expires_only_passed_leases(self, services, make_pool, clock):
        pool = make_pool()
        short = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        exact = services.manager.create(MAC_B, "10.0.0.121", pool.id, "2 hours")
        long = services.manager.create(MAC_C, "10.0.0.122", pool.id, "3 hours")

        clock.advance(hours=2)
        result = services.manager.sweep_expired()

        assert result.processed == 2
        assert result.skipped_ids == []
        assert _state(services, short.id) == LeaseState.EXPIRED.value
        assert _state(services, exact.id) == LeaseState.EXPIRED.value
        assert _state(services, long.id) == LeaseState.ACTIVE.value

    def test_sweep_is_repeatable(self, services, make_pool, clock):
        pool = make_pool()
        services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        clock.advance(hours=2)

        assert services.manager.sweep_expired().processed == 1
        assert services.manager.sweep_expired().processed == 0

    def test_ineligible_rows_are_skipped(self, services, make_pool, monkeypatch):
        """Test that a row renewed between listing and update is reported."""
        pool = make_pool()
        live = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        monkeypatch.setattr(services.leases, "expired_ids", lambda now: [live.id])

        result = services.manager.sweep_expired()

        assert result.processed == 0
        assert result.skipped_ids == [live.id]
        assert _state(services, live.id) == LeaseState.ACTIVE.value

    def test_failing_row_does_not_abort_batch(
        self, services, make_pool, clock, monkeypatch
    ):
        """Test that an error while expiring one lease skips only that lease."""
        pool = make_pool()
        first = services.manager.create(MAC_A, "10.0.0.120", pool.id, "1 hour")
        second = services.manager.create(MAC_B, "10.0.0.121", pool.id, "1 hour")
        clock.advance(hours=2)

        record = services.events.record

        def record_or_fail(event_type, message, **kwargs):
            if kwargs.get("lease_id") == first.id:
                raise RuntimeError("event log unavailable")
            return record(event_type, message, **kwargs)

        monkeypatch.setattr(services.events, "record", record_or_fail)

        result = services.manager.sweep_expired()

        assert result.processed == 1
        assert result.skipped_ids == [first.id]
        assert _state(services, first.id) == LeaseState.ACTIVE.value
        assert _state(services, second.id) == LeaseState.EXPIRED.value
