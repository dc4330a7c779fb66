"""
Pydantic models for API requests.

This module defines the data transfer objects used between the CLI and the
host API. Address fields are normalized on the way in so services always
see canonical text (lower-case colon MACs, canonical dotted quads).

Model Categories:
    - Pool Requests: Pool creation and partial update
    - Reservation Requests: Static MAC -> IP bindings
    - Lease Requests: Allocation and renewal
    - DNS Requests: Upstream resolver management
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from kohakudhcp.core.address import (
    in_range,
    network_bounds,
    normalize_ip,
    normalize_mac,
    normalize_network,
    parse_ip,
)
from kohakudhcp.models.duration import DurationSeconds


# =============================================================================
# Pool Request Models
# =============================================================================


class PoolCreateRequest(BaseModel):
    """
    Request body for creating a pool.

    Lease lifetimes accept either integer seconds or text such as
    "24 hours"; both are stored as seconds.
    """

    name: str = Field(..., min_length=1, description="Pool name")
    description: str | None = Field(default=None, description="Free text")
    vlan_id: int = Field(..., ge=1, le=4094, description="VLAN tag")
    network_cidr: str = Field(..., description="Network, e.g. 10.0.0.0/24")
    start_ip: str = Field(..., description="First dynamic address")
    end_ip: str = Field(..., description="Last dynamic address")
    gateway_ip: str = Field(..., description="Default router")
    dns_servers: list[str] = Field(..., min_length=1, description="Ordered resolvers")
    domain_name: str = Field(default="local", description="Domain name option")
    lease_seconds: DurationSeconds = Field(default=86400, gt=0)
    max_lease_seconds: DurationSeconds = Field(default=604800, gt=0)
    is_active: bool = True
    allow_unknown_clients: bool = True
    require_authorization: bool = False

    @field_validator("network_cidr")
    @classmethod
    def _check_network(cls, value: str) -> str:
        return normalize_network(value)

    @field_validator("start_ip", "end_ip", "gateway_ip")
    @classmethod
    def _check_address(cls, value: str) -> str:
        return normalize_ip(value)

    @field_validator("dns_servers")
    @classmethod
    def _check_dns(cls, value: list[str]) -> list[str]:
        return [normalize_ip(v) for v in value]

    @model_validator(mode="after")
    def _check_consistency(self) -> "PoolCreateRequest":
        first, last, _ = network_bounds(self.network_cidr)
        start = parse_ip(self.start_ip)
        end = parse_ip(self.end_ip)

        if start > end:
            raise ValueError(
                f"start_ip {self.start_ip} is after end_ip {self.end_ip}"
            )
        for label, addr in (
            ("start_ip", start),
            ("end_ip", end),
            ("gateway_ip", parse_ip(self.gateway_ip)),
        ):
            if not in_range(addr, first, last):
                raise ValueError(f"{label} is outside {self.network_cidr}")
        if self.lease_seconds > self.max_lease_seconds:
            raise ValueError(
                f"lease_seconds ({self.lease_seconds}) exceeds "
                f"max_lease_seconds ({self.max_lease_seconds})"
            )
        return self


class PoolUpdateRequest(BaseModel):
    """
    Partial pool update. Only fields that are set are applied.

    The merged record is validated as a whole by the registry.
    """

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    vlan_id: int | None = Field(default=None, ge=1, le=4094)
    network_cidr: str | None = None
    start_ip: str | None = None
    end_ip: str | None = None
    gateway_ip: str | None = None
    dns_servers: list[str] | None = None
    domain_name: str | None = None
    lease_seconds: DurationSeconds | None = None
    max_lease_seconds: DurationSeconds | None = None
    is_active: bool | None = None
    allow_unknown_clients: bool | None = None
    require_authorization: bool | None = None


# =============================================================================
# Reservation Request Models
# =============================================================================


class ReservationCreateRequest(BaseModel):
    """Request body for a static MAC -> IP reservation."""

    mac_address: str = Field(..., description="Client hardware address")
    ip_address: str = Field(..., description="Reserved IPv4 address")
    hostname: str | None = None
    pool_id: int | None = Field(default=None, description="Owning pool, optional")
    lease_time: DurationSeconds | None = Field(
        default=None, description="Lease lifetime override"
    )
    description: str | None = None

    @field_validator("mac_address")
    @classmethod
    def _check_mac(cls, value: str) -> str:
        return normalize_mac(value)

    @field_validator("ip_address")
    @classmethod
    def _check_ip(cls, value: str) -> str:
        return normalize_ip(value)

    @field_validator("lease_time")
    @classmethod
    def _check_lease_time(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("lease_time must be positive")
        return value


# =============================================================================
# Lease Request Models
# =============================================================================


class LeaseAllocateRequest(BaseModel):
    """Request body for allocating an address to a client."""

    mac_address: str
    pool_id: int
    hostname: str | None = None
    lease_time: DurationSeconds | None = None
    authorized: bool = False

    @field_validator("mac_address")
    @classmethod
    def _check_mac(cls, value: str) -> str:
        return normalize_mac(value)


class LeaseRenewRequest(BaseModel):
    """Request body for renewing a lease. Omit lease_time for the default."""

    lease_time: DurationSeconds | None = None


# =============================================================================
# DNS Request Models
# =============================================================================


class UpstreamResolverRequest(BaseModel):
    """Request body for adding an upstream DNS resolver."""

    name: str = Field(..., min_length=1)
    ip_address: str
    port: int = Field(default=53, ge=1, le=65535)
    supports_dot: bool = False
    dot_hostname: str | None = None
    priority: int = Field(default=100, ge=0)
    is_active: bool = True

    @field_validator("ip_address")
    @classmethod
    def _check_ip(cls, value: str) -> str:
        return normalize_ip(value)

    @model_validator(mode="after")
    def _check_dot(self) -> "UpstreamResolverRequest":
        if self.supports_dot and not self.dot_hostname:
            raise ValueError("dot_hostname is required when supports_dot is set")
        return self
