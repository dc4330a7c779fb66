"""
Unit tests for upstream resolvers and Unbound config synthesis.
"""

import pytest

from kohakudhcp.core.exceptions import NotFoundError
from kohakudhcp.models.requests import UpstreamResolverRequest


def _add(services, **fields):
    return services.upstreams.add(UpstreamResolverRequest(**fields))


class TestUpstreamRegistry:
    """Test resolver CRUD."""

    def test_ordered_by_priority(self, services):
        _add(services, name="quad9", ip_address="9.9.9.9", priority=20)
        _add(services, name="cloudflare", ip_address="1.1.1.1", priority=10)
        assert [r.name for r in services.upstreams.list_all()] == [
            "cloudflare",
            "quad9",
        ]

    def test_remove(self, services):
        resolver = _add(services, name="quad9", ip_address="9.9.9.9")
        services.upstreams.remove(resolver.id)
        assert services.upstreams.list_all() == []
        with pytest.raises(NotFoundError):
            services.upstreams.remove(resolver.id)

    def test_dot_requires_hostname(self):
        with pytest.raises(ValueError):
            UpstreamResolverRequest(name="x", ip_address="1.1.1.1", supports_dot=True)


class TestUnboundRender:
    """Test UnboundConfigRenderer.render."""

    def test_plain_forwarders(self, services):
        _add(services, name="quad9", ip_address="9.9.9.9", priority=20)
        _add(services, name="local", ip_address="192.168.1.53", port=5353, priority=10)

        text = services.unbound.render()

        assert 'forward-zone:\n    name: "."\n' in text
        assert "forward-tls-upstream" not in text
        assert "tls-cert-bundle" not in text
        assert text.index("forward-addr: 192.168.1.53@5353") < text.index(
            "forward-addr: 9.9.9.9\n"
        )

    def test_all_dot_enables_tls(self, services, host_config):
        _add(
            services,
            name="cloudflare",
            ip_address="1.1.1.1",
            supports_dot=True,
            dot_hostname="cloudflare-dns.com",
        )

        text = services.unbound.render()

        assert "    forward-tls-upstream: yes\n" in text
        assert "forward-addr: 1.1.1.1@853#cloudflare-dns.com" in text
        assert f"tls-cert-bundle: {host_config.UNBOUND_TLS_CERT_BUNDLE}" in text

    def test_mixed_upstreams_fall_back_to_plain(self, services):
        _add(
            services,
            name="cloudflare",
            ip_address="1.1.1.1",
            supports_dot=True,
            dot_hostname="cloudflare-dns.com",
        )
        _add(services, name="isp", ip_address="203.0.113.53")

        text = services.unbound.render()

        assert "forward-tls-upstream" not in text
        assert "forward-addr: 1.1.1.1\n" in text

    def test_inactive_upstream_excluded(self, services):
        _add(services, name="off", ip_address="9.9.9.9", is_active=False)
        _add(services, name="on", ip_address="1.1.1.1")
        text = services.unbound.render()
        assert "9.9.9.9" not in text

    def test_no_upstreams_omits_forward_zone(self, services, host_config):
        text = services.unbound.render()
        assert "forward-zone" not in text
        for network in host_config.UNBOUND_ACCESS_CONTROL:
            assert f"access-control: {network} allow" in text
