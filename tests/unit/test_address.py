"""
Unit tests for IPv4 and MAC address helpers.
"""

import pytest

from kohakudhcp.core.address import (
    format_ip,
    in_range,
    network_bounds,
    normalize_mac,
    normalize_network,
    parse_ip,
    range_size,
    ranges_overlap,
)
from kohakudhcp.core.exceptions import InvalidAddress


class TestIpConversion:
    """Test dotted-quad <-> ordinal conversion."""

    def test_parse_ip_values(self):
        """Test known ordinals."""
        assert parse_ip("0.0.0.0") == 0
        assert parse_ip("10.0.0.100") == 167772260
        assert parse_ip("255.255.255.255") == 2**32 - 1

    def test_format_ip_inverts_parse(self):
        for text in ("10.0.0.1", "192.168.1.254", "172.16.0.0"):
            assert format_ip(parse_ip(text)) == text

    @pytest.mark.parametrize(
        "text",
        ["10.0.0", "10.0.0.256", "10.0.0.1.2", "a.b.c.d", "", " 10.0.0.1"],
    )
    def test_parse_ip_rejects_malformed(self, text):
        """Test that malformed text raises InvalidAddress."""
        with pytest.raises(InvalidAddress):
            parse_ip(text)

    def test_parse_ip_rejects_non_string(self):
        with pytest.raises(InvalidAddress):
            parse_ip(167772160)

    @pytest.mark.parametrize("ordinal", [-1, 2**32])
    def test_format_ip_rejects_out_of_range(self, ordinal):
        with pytest.raises(InvalidAddress):
            format_ip(ordinal)

    def test_invalid_address_is_value_error(self):
        """InvalidAddress doubles as ValueError for pydantic validators."""
        with pytest.raises(ValueError):
            parse_ip("300.1.1.1")


class TestRanges:
    """Test range arithmetic."""

    def test_range_size_is_inclusive(self):
        assert range_size(parse_ip("10.0.0.100"), parse_ip("10.0.0.101")) == 2
        assert range_size(5, 5) == 1

    def test_range_size_rejects_inverted(self):
        with pytest.raises(ValueError):
            range_size(10, 5)

    def test_in_range_bounds(self):
        assert in_range(5, 5, 10)
        assert in_range(10, 5, 10)
        assert not in_range(11, 5, 10)
        assert not in_range(4, 5, 10)

    def test_ranges_overlap(self):
        """Test that touching ranges overlap and disjoint ones do not."""
        assert ranges_overlap(1, 10, 10, 20)
        assert ranges_overlap(1, 10, 3, 4)
        assert ranges_overlap(3, 4, 1, 10)
        assert not ranges_overlap(1, 10, 11, 20)
        assert not ranges_overlap(11, 20, 1, 10)


class TestNetworks:
    """Test CIDR helpers."""

    def test_network_bounds(self):
        first, last, prefix = network_bounds("10.0.0.0/24")
        assert format_ip(first) == "10.0.0.0"
        assert format_ip(last) == "10.0.0.255"
        assert prefix == 24

    def test_network_bounds_rejects_host_bits(self):
        with pytest.raises(InvalidAddress):
            network_bounds("10.0.0.5/24")

    def test_network_bounds_requires_prefix(self):
        with pytest.raises(InvalidAddress):
            network_bounds("10.0.0.0")

    def test_normalize_network(self):
        assert normalize_network("192.168.0.0/16") == "192.168.0.0/16"


class TestMacAddresses:
    """Test MAC normalization."""

    @pytest.mark.parametrize(
        "text",
        [
            "AA:BB:CC:DD:EE:FF",
            "aa-bb-cc-dd-ee-ff",
            "aabbccddeeff",
            " Aa:bB:cc:dd:ee:ff ",
        ],
    )
    def test_normalize_mac_forms(self, text):
        assert normalize_mac(text) == "aa:bb:cc:dd:ee:ff"

    @pytest.mark.parametrize(
        "text", ["aa:bb:cc:dd:ee", "aa:bb-cc:dd:ee:ff", "zz:bb:cc:dd:ee:ff", ""]
    )
    def test_normalize_mac_rejects_malformed(self, text):
        with pytest.raises(InvalidAddress):
            normalize_mac(text)
