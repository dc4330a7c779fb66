"""
DHCP-related exception classes.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can report structured details without guessing.
"""


class DhcpError(Exception):
    """Base exception for HakuDHCP operations."""

    code = "dhcp_error"
    status_code = 500

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class InvalidAddress(DhcpError, ValueError):
    """Malformed IPv4 address, network or MAC address text."""

    code = "invalid_address"
    status_code = 422

    def __init__(self, value, reason: str = "not a valid IPv4 address"):
        self.value = value
        super().__init__(f"Invalid address {value!r}: {reason}")


class OverlapError(DhcpError):
    """Two active pool ranges intersect."""

    code = "pool_overlap"
    status_code = 409

    def __init__(self, pool: dict, other: dict):
        # pool/other: {"id", "name", "start_ip", "end_ip"}
        self.pool = pool
        self.other = other
        super().__init__(
            f"Pool '{pool['name']}' ({pool['start_ip']} - {pool['end_ip']}) overlaps "
            f"pool '{other['name']}' (id={other['id']}, "
            f"{other['start_ip']} - {other['end_ip']})"
        )

    def to_dict(self) -> dict:
        return {**super().to_dict(), "pool": self.pool, "conflicting_pool": self.other}


class ConflictError(DhcpError):
    """A lease or reservation precondition was violated."""

    code = "conflict"
    status_code = 409

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class LeaseExpiredError(ConflictError):
    """Renewal attempted on a lease whose end time has already passed."""

    code = "lease_expired"

    def __init__(self, lease_id: int):
        self.lease_id = lease_id
        super().__init__(
            f"Lease {lease_id} has already expired; request a new allocation",
            field="lease_end",
        )


class UnknownClientError(ConflictError):
    """Pool policy refuses dynamic allocation for this client."""

    code = "client_not_allowed"

    def __init__(self, mac_address: str, pool_name: str, reason: str):
        self.mac_address = mac_address
        super().__init__(
            f"Client {mac_address} not allowed in pool '{pool_name}': {reason}",
            field="mac_address",
        )


class PoolExhaustedError(DhcpError):
    """
    The pool has no free address.

    This is an expected outcome rather than a fault; callers should surface
    it as "pool full".
    """

    code = "pool_exhausted"
    status_code = 409

    def __init__(self, pool_id: int, pool_name: str, start_ip: str, end_ip: str):
        self.pool_id = pool_id
        self.pool_name = pool_name
        self.start_ip = start_ip
        self.end_ip = end_ip
        super().__init__(
            f"Pool '{pool_name}' ({start_ip} - {end_ip}) has no free addresses"
        )

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "pool_id": self.pool_id,
            "pool_name": self.pool_name,
            "range": {"start_ip": self.start_ip, "end_ip": self.end_ip},
        }


class ValidationError(DhcpError):
    """Inconsistent state detected; nothing was rendered or written."""

    code = "validation_failed"
    status_code = 422

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "validation failed")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "errors": self.errors}


class NotFoundError(DhcpError):
    """Referenced pool, lease, reservation or resolver does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, kind: str, ident):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind.capitalize()} {ident} not found")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "kind": self.kind, "id": self.ident}


class ConfigApplyError(DhcpError):
    """Writing the daemon configuration or reloading the daemon failed."""

    code = "apply_failed"
    status_code = 502

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "path": self.path}
