"""HakuDHCP: DHCP pool allocation and lease lifecycle management."""

__version__ = "0.1.0"
