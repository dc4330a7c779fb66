"""
IPv4 address arithmetic.

Converts between dotted-quad text and unsigned 32-bit ordinals, and answers
range size and membership questions for pool bookkeeping. Everything here is
pure; malformed input raises InvalidAddress and never leaves partial state.

Examples:
    >>> parse_ip("10.0.0.100")
    167772260
    >>> format_ip(167772260)
    '10.0.0.100'
    >>> range_size(parse_ip("10.0.0.100"), parse_ip("10.0.0.101"))
    2
"""

from __future__ import annotations

import ipaddress
import re

from kohakudhcp.core.exceptions import InvalidAddress

MAX_ORDINAL = 2**32 - 1

_MAC_RE = re.compile(r"^[0-9a-f]{2}([:-])[0-9a-f]{2}(\1[0-9a-f]{2}){4}$")
_MAC_BARE_RE = re.compile(r"^[0-9a-f]{12}$")


# =============================================================================
# IPv4 Addresses
# =============================================================================


def parse_ip(text: str) -> int:
    """
    Parse dotted-quad text into its 32-bit ordinal.

    Args:
        text: Address such as "192.168.1.10". Four decimal octets 0-255,
              no surrounding whitespace, no leading zeros.

    Returns:
        Unsigned ordinal value.

    Raises:
        InvalidAddress: If the text is not a well-formed IPv4 address.
    """
    if not isinstance(text, str):
        raise InvalidAddress(text, "expected dotted-quad text")
    try:
        return int(ipaddress.IPv4Address(text))
    except ipaddress.AddressValueError as e:
        raise InvalidAddress(text, str(e)) from None


def format_ip(ordinal: int) -> str:
    """Format a 32-bit ordinal as dotted-quad text."""
    if isinstance(ordinal, bool) or not isinstance(ordinal, int):
        raise InvalidAddress(ordinal, "ordinal must be an integer")
    if ordinal < 0 or ordinal > MAX_ORDINAL:
        raise InvalidAddress(ordinal, "ordinal outside 0..2^32-1")
    return str(ipaddress.IPv4Address(ordinal))


def normalize_ip(text: str) -> str:
    """Validate an address and return its canonical text."""
    return format_ip(parse_ip(text))


def range_size(start: int, end: int) -> int:
    """Number of addresses in the inclusive range [start, end]."""
    if end < start:
        raise ValueError(f"Range end {end} precedes start {start}")
    return end - start + 1


def in_range(addr: int, start: int, end: int) -> bool:
    """Whether addr lies inside the inclusive range [start, end]."""
    return start <= addr <= end


def ranges_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Two inclusive ranges intersect iff neither ends before the other starts."""
    return not (end1 < start2 or end2 < start1)


# =============================================================================
# Networks
# =============================================================================


def network_bounds(cidr: str) -> tuple[int, int, int]:
    """
    Get the ordinal bounds of a network.

    Args:
        cidr: Network in CIDR notation, e.g. "10.0.0.0/24". Host bits must
              be clear.

    Returns:
        Tuple of (network ordinal, broadcast ordinal, prefix length).

    Raises:
        InvalidAddress: If the CIDR is malformed or has host bits set.
    """
    if not isinstance(cidr, str) or "/" not in cidr:
        raise InvalidAddress(cidr, "expected CIDR notation like 10.0.0.0/24")
    try:
        network = ipaddress.IPv4Network(cidr, strict=True)
    except ValueError as e:
        raise InvalidAddress(cidr, str(e)) from None
    return (
        int(network.network_address),
        int(network.broadcast_address),
        network.prefixlen,
    )


def normalize_network(cidr: str) -> str:
    """Validate a CIDR and return its canonical text."""
    first, _, prefix = network_bounds(cidr)
    return f"{format_ip(first)}/{prefix}"


# =============================================================================
# Hardware Addresses
# =============================================================================


def normalize_mac(text: str) -> str:
    """
    Normalize a MAC address to lower-case colon-separated form.

    Accepts "AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff" and "aabbccddeeff".

    Raises:
        InvalidAddress: If the text is not a 48-bit hardware address.
    """
    if not isinstance(text, str):
        raise InvalidAddress(text, "expected MAC address text")
    value = text.strip().lower()
    if _MAC_BARE_RE.match(value):
        return ":".join(value[i : i + 2] for i in range(0, 12, 2))
    if not _MAC_RE.match(value):
        raise InvalidAddress(text, "not a valid MAC address")
    return value.replace("-", ":")
