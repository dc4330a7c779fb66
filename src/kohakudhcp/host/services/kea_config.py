"""
Kea DHCPv4 configuration synthesis.

Renders the active pools and their reservations as a ``kea-dhcp4``
configuration document. The output depends only on stored state: pools are
ordered by (VLAN, id), reservations by address, and nothing time-dependent
is emitted, so identical state renders byte-identical JSON.

Rendering refuses inconsistent state instead of emitting a best effort.
"""

import json

from kohakudhcp.core.address import in_range, parse_ip
from kohakudhcp.core.exceptions import ValidationError
from kohakudhcp.db.base import Datastore
from kohakudhcp.db.pool import Pool
from kohakudhcp.db.reservation import Reservation
from kohakudhcp.host.config import HostConfig
from kohakudhcp.host.services.pool_registry import PoolRegistry
from kohakudhcp.host.services.reservation_store import ReservationStore
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

# Lease reclamation timers (seconds / counts)
EXPIRED_LEASES_PROCESSING = {
    "reclaim-timer-wait-time": 10,
    "flush-reclaimed-timer-wait-time": 25,
    "hold-reclaimed-time": 3600,
    "max-reclaim-leases": 100,
    "max-reclaim-time": 250,
}


class KeaConfigRenderer:
    """
    Build the Dhcp4 document from pools and reservations.

    Validation and output are computed from one read of pools and
    reservations taken inside a single read transaction.

    Args:
        store: Open datastore providing the read snapshot.
        pools: Pool registry.
        reservations: Reservation store.
        config: Host configuration (daemon paths, global lifetimes).
    """

    def __init__(
        self,
        store: Datastore,
        pools: PoolRegistry,
        reservations: ReservationStore,
        config: HostConfig,
    ):
        self.store = store
        self.pools = pools
        self.reservations = reservations
        self.config = config

    # =========================================================================
    # Public API
    # =========================================================================

    def validate(self) -> list[str]:
        """
        Collect every problem that would make the output inconsistent.

        Returns:
            Problem descriptions; empty when rendering is safe.
        """
        with self.store.read():
            return self._problems(*self._snapshot())

    def build(self) -> dict:
        """
        Build the configuration as a dict.

        Raises:
            ValidationError: Listing every problem found.
        """
        with self.store.read():
            pools, reservations = self._snapshot()
            errors = self._problems(pools, reservations)
            if errors:
                logger.warning(f"Kea config rejected with {len(errors)} problem(s)")
                raise ValidationError(errors)

            subnets = [self._subnet(pool, reservations[pool.id]) for pool in pools]

        cfg = self.config
        return {
            "Dhcp4": {
                "interfaces-config": {
                    "interfaces": list(cfg.KEA_INTERFACES),
                    "dhcp-socket-type": "raw",
                },
                "control-socket": {
                    "socket-type": "unix",
                    "socket-name": cfg.KEA_CONTROL_SOCKET,
                },
                "lease-database": {
                    "type": "memfile",
                    "persist": True,
                    "name": cfg.KEA_LEASE_FILE,
                    "lfc-interval": 3600,
                },
                "expired-leases-processing": dict(EXPIRED_LEASES_PROCESSING),
                "valid-lifetime": cfg.DEFAULT_LEASE_SECONDS,
                "max-valid-lifetime": cfg.DEFAULT_MAX_LEASE_SECONDS,
                "authoritative": True,
                "subnet4": subnets,
                "loggers": [
                    {
                        "name": "kea-dhcp4",
                        "output_options": [
                            {
                                "output": cfg.KEA_LOG_FILE,
                                "maxver": 8,
                                "maxsize": 204800,
                                "flush": True,
                            }
                        ],
                        "severity": "INFO",
                        "debuglevel": 0,
                    }
                ],
                "hooks-libraries": [
                    {"library": library} for library in cfg.KEA_HOOK_LIBRARIES
                ],
            }
        }

    def render(self) -> str:
        """Render the configuration as JSON text (4-space indent)."""
        return json.dumps(self.build(), indent=4) + "\n"

    # =========================================================================
    # Helpers
    # =========================================================================

    def _snapshot(self) -> tuple[list[Pool], dict[int, list[Reservation]]]:
        pools = self.pools.list_active()
        reservations = {
            pool.id: self.reservations.list_active(pool.id) for pool in pools
        }
        return pools, reservations

    def _problems(
        self, pools: list[Pool], reservations: dict[int, list[Reservation]]
    ) -> list[str]:
        errors = list(self.pools.verify_consistency(pools))
        for pool in pools:
            errors.extend(_reservation_problems(pool, reservations[pool.id]))
        return errors

    @staticmethod
    def _subnet(pool: Pool, reservations: list[Reservation]) -> dict:
        entries = []
        for reservation in reservations:
            entry = {
                "hw-address": reservation.mac_address,
                "ip-address": reservation.ip_address,
            }
            if reservation.hostname:
                entry["hostname"] = reservation.hostname
            entries.append(entry)

        return {
            "id": pool.id,
            "subnet": pool.network_cidr,
            "pools": [{"pool": f"{pool.start_ip} - {pool.end_ip}"}],
            "option-data": [
                {"name": "routers", "data": pool.gateway_ip},
                {
                    "name": "domain-name-servers",
                    "data": ", ".join(pool.get_dns_servers()),
                },
                {"name": "domain-name", "data": pool.domain_name or "local"},
            ],
            "valid-lifetime": pool.lease_seconds,
            "max-valid-lifetime": pool.max_lease_seconds,
            "user-context": {"name": pool.name, "vlan": pool.vlan_id},
            "reservations": entries,
        }


def _reservation_problems(pool: Pool, reservations: list[Reservation]) -> list[str]:
    problems = []
    seen_macs: dict[str, int] = {}
    seen_ips: dict[str, int] = {}
    start, end = pool.start_ordinal, pool.end_ordinal

    for reservation in reservations:
        label = f"Reservation {reservation.id} ({reservation.mac_address})"
        if not in_range(parse_ip(reservation.ip_address), start, end):
            problems.append(
                f"{label}: {reservation.ip_address} is outside pool "
                f"'{pool.name}' ({pool.start_ip} - {pool.end_ip})"
            )
        if reservation.mac_address in seen_macs:
            problems.append(
                f"{label}: duplicate hw-address in pool '{pool.name}' "
                f"(also reservation {seen_macs[reservation.mac_address]})"
            )
        if reservation.ip_address in seen_ips:
            problems.append(
                f"{label}: duplicate ip-address {reservation.ip_address} in pool "
                f"'{pool.name}' (also reservation {seen_ips[reservation.ip_address]})"
            )
        seen_macs.setdefault(reservation.mac_address, reservation.id)
        seen_ips.setdefault(reservation.ip_address, reservation.id)

    return problems
