"""
API client for CLI commands.

Provides functions to interact with the HakuDHCP host API.
Returns structured data instead of printing.
"""

import httpx

from kohakudhcp.cli import config as cli_config
from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)


class APIError(Exception):
    """API request error with status code and detail."""

    def __init__(self, message: str, status_code: int | None = None, detail=None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


def _get_host_url() -> str:
    """Get the host API URL from config."""
    return f"http://{cli_config.HOST_ADDRESS}:{cli_config.HOST_PORT}/api"


def _make_request(method: str, url: str, **kwargs) -> httpx.Response:
    """Make an HTTP request."""
    kwargs.setdefault("timeout", cli_config.REQUEST_TIMEOUT)
    return httpx.request(method.upper(), url, **kwargs)


def _describe_detail(detail) -> str:
    """Turn a structured error body into one line."""
    if isinstance(detail, dict):
        message = detail.get("message") or detail.get("error") or str(detail)
        errors = detail.get("errors")
        if errors:
            message += " (" + "; ".join(errors) + ")"
        return message
    if isinstance(detail, list):
        # FastAPI request validation errors
        return "; ".join(
            f"{'.'.join(str(p) for p in item.get('loc', []))}: {item.get('msg')}"
            for item in detail
            if isinstance(item, dict)
        )
    return str(detail)


def _handle_http_error(e: httpx.HTTPStatusError, context: str = "request") -> None:
    """Handle HTTP errors with consistent logging."""
    status = e.response.status_code
    try:
        body = e.response.json()
        detail = body.get("detail", body) if isinstance(body, dict) else body
    except ValueError:
        detail = e.response.text

    detail_str = _describe_detail(detail)
    logger.debug(f"HTTP {status} on {context}: {detail_str}")
    raise APIError(f"HTTP {status}: {detail_str}", status_code=status, detail=detail)


def _request(method: str, path: str, context: str, **kwargs):
    url = f"{_get_host_url()}{path}"
    try:
        response = _make_request(method, url, **kwargs)
        response.raise_for_status()
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return response.text
    except httpx.HTTPStatusError as e:
        _handle_http_error(e, context)
    except httpx.RequestError as e:
        logger.debug(f"Request error: {e}")
        raise APIError(f"Network error: {e}")


# =============================================================================
# Pool Operations
# =============================================================================


def get_pools(active_only: bool = False) -> list[dict]:
    """Get all pools."""
    params = {"active_only": "true"} if active_only else None
    return _request("get", "/dhcp/pools", "get pools", params=params)


def get_pool(pool_id: int) -> dict:
    return _request("get", f"/dhcp/pools/{pool_id}", f"get pool {pool_id}")


def create_pool(payload: dict) -> dict:
    return _request("post", "/dhcp/pools", "create pool", json=payload)


def update_pool(pool_id: int, payload: dict) -> dict:
    return _request(
        "put", f"/dhcp/pools/{pool_id}", f"update pool {pool_id}", json=payload
    )


def delete_pool(pool_id: int) -> dict:
    return _request("delete", f"/dhcp/pools/{pool_id}", f"delete pool {pool_id}")


def get_next_ip(pool_id: int) -> dict:
    return _request(
        "get", f"/dhcp/next-ip/{pool_id}", f"next ip for pool {pool_id}"
    )


# =============================================================================
# Reservation Operations
# =============================================================================


def get_reservations(pool_id: int | None = None) -> list[dict]:
    params = {"pool_id": pool_id} if pool_id is not None else None
    return _request("get", "/dhcp/reservations", "get reservations", params=params)


def create_reservation(payload: dict) -> dict:
    return _request("post", "/dhcp/reservations", "create reservation", json=payload)


def delete_reservation(reservation_id: int) -> dict:
    return _request(
        "delete",
        f"/dhcp/reservations/{reservation_id}",
        f"delete reservation {reservation_id}",
    )


# =============================================================================
# Lease Operations
# =============================================================================


def get_leases(pool_id: int | None = None) -> list[dict]:
    params = {"pool_id": pool_id} if pool_id is not None else None
    return _request("get", "/dhcp/leases", "get leases", params=params)


def allocate_lease(payload: dict) -> dict:
    return _request("post", "/dhcp/leases", "allocate lease", json=payload)


def release_lease(mac_address: str) -> dict:
    return _request(
        "post", f"/dhcp/leases/{mac_address}/release", f"release {mac_address}"
    )


def renew_lease(lease_id: int, lease_time: str | None = None) -> dict:
    payload = {"lease_time": lease_time} if lease_time else None
    return _request(
        "post",
        f"/dhcp/leases/{lease_id}/renew",
        f"renew lease {lease_id}",
        json=payload,
    )


def cleanup_leases() -> dict:
    return _request("post", "/dhcp/cleanup", "cleanup expired leases")


# =============================================================================
# DHCP Operations
# =============================================================================


def get_stats() -> dict:
    return _request("get", "/dhcp/stats", "get stats")


def get_logs(
    mac_address: str | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[dict]:
    params = {"limit": limit}
    if mac_address:
        params["mac_address"] = mac_address
    if event_type:
        params["event_type"] = event_type
    return _request("get", "/dhcp/logs", "get logs", params=params)


def get_dhcp_config() -> dict:
    return _request("get", "/dhcp/config", "preview dhcp config")


def apply_dhcp_config() -> dict:
    return _request("post", "/dhcp/apply", "apply dhcp config", timeout=60.0)


# =============================================================================
# DNS Operations
# =============================================================================


def get_upstreams() -> list[dict]:
    return _request("get", "/dns/upstreams", "get upstreams")


def create_upstream(payload: dict) -> dict:
    return _request("post", "/dns/upstreams", "create upstream", json=payload)


def delete_upstream(resolver_id: int) -> dict:
    return _request(
        "delete", f"/dns/upstreams/{resolver_id}", f"delete upstream {resolver_id}"
    )


def get_dns_config() -> str:
    return _request("get", "/dns/config", "preview dns config")


def apply_dns_config() -> dict:
    return _request("post", "/dns/apply", "apply dns config", timeout=60.0)


def get_health() -> dict:
    return _request("get", "/health", "health check")
