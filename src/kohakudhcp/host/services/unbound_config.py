"""
Unbound forward-zone synthesis.

Renders a fixed ``server:`` block plus one forward zone for "." listing the
active upstream resolvers by (priority, id). DNS over TLS is switched on
only when every active upstream supports it, since Unbound applies
forward-tls-upstream to the whole zone.
"""

import datetime

from kohakudhcp.core.exceptions import NotFoundError
from kohakudhcp.db.base import Datastore
from kohakudhcp.db.resolver import UpstreamResolver
from kohakudhcp.host.config import HostConfig
from kohakudhcp.models.requests import UpstreamResolverRequest
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

DOT_PORT = 853


class UpstreamRegistry:
    """CRUD over upstream resolvers."""

    def __init__(self, store: Datastore, clock=datetime.datetime.now):
        self.store = store
        self.clock = clock

    def list_all(self) -> list[UpstreamResolver]:
        return list(
            UpstreamResolver.select().order_by(
                UpstreamResolver.priority, UpstreamResolver.id
            )
        )

    def list_active(self) -> list[UpstreamResolver]:
        return [r for r in self.list_all() if r.is_active]

    def add(self, request: UpstreamResolverRequest) -> UpstreamResolver:
        with self.store.write():
            resolver = UpstreamResolver.create(
                created_at=self.clock(), **request.model_dump()
            )
        logger.info(
            f"Upstream resolver added: {resolver.name} {resolver.ip_address} "
            f"(priority={resolver.priority}, dot={resolver.supports_dot})"
        )
        return resolver

    def remove(self, resolver_id: int) -> None:
        with self.store.write():
            deleted = (
                UpstreamResolver.delete()
                .where(UpstreamResolver.id == resolver_id)
                .execute()
            )
        if not deleted:
            raise NotFoundError("upstream resolver", resolver_id)
        logger.info(f"Upstream resolver removed: id={resolver_id}")


class UnboundConfigRenderer:
    """Render the Unbound include file."""

    def __init__(self, upstreams: UpstreamRegistry, config: HostConfig):
        self.upstreams = upstreams
        self.config = config

    def render(self) -> str:
        cfg = self.config
        lines = [
            "# Managed by kohakudhcp; local changes are overwritten.",
            "",
            "server:",
            f"    interface: {cfg.UNBOUND_INTERFACE}",
            f"    port: {cfg.UNBOUND_PORT}",
            "    do-ip4: yes",
            "    do-ip6: yes",
            "    do-udp: yes",
            "    do-tcp: yes",
            "",
            "    hide-identity: yes",
            "    hide-version: yes",
            "    harden-glue: yes",
            "    harden-dnssec-stripped: yes",
            "    use-caps-for-id: yes",
            "",
            "    cache-min-ttl: 60",
            "    cache-max-ttl: 86400",
            "    prefetch: yes",
            "    prefetch-key: yes",
        ]

        active = self.upstreams.list_active()
        use_tls = bool(active) and all(resolver.uses_tls() for resolver in active)
        if use_tls:
            lines.append(f"    tls-cert-bundle: {cfg.UNBOUND_TLS_CERT_BUNDLE}")

        lines.append("")
        lines.extend(
            f"    access-control: {network} allow"
            for network in cfg.UNBOUND_ACCESS_CONTROL
        )

        if active:
            lines += ["", "forward-zone:", '    name: "."']
            if use_tls:
                lines.append("    forward-tls-upstream: yes")
            for resolver in active:
                lines.append(f"    forward-addr: {_forward_addr(resolver, use_tls)}")
        else:
            logger.warning("No active upstream resolvers, forward zone omitted")

        return "\n".join(lines) + "\n"


def _forward_addr(resolver: UpstreamResolver, use_tls: bool) -> str:
    if use_tls:
        return f"{resolver.ip_address}@{DOT_PORT}#{resolver.dot_hostname}"
    if resolver.port and resolver.port != 53:
        return f"{resolver.ip_address}@{resolver.port}"
    return resolver.ip_address
