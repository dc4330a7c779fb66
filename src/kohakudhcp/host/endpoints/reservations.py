"""Static reservation endpoints."""

from fastapi import APIRouter, Query

from kohakudhcp.host.dependencies import ServicesDep
from kohakudhcp.models.requests import ReservationCreateRequest

router = APIRouter()


@router.get("/reservations")
async def list_reservations(
    services: ServicesDep,
    pool_id: int | None = Query(None, description="Filter by pool"),
):
    """List active reservations ordered by address."""
    return [r.to_dict() for r in services.reservations.list_active(pool_id)]


@router.post("/reservations", status_code=201)
async def create_reservation(
    request: ReservationCreateRequest, services: ServicesDep
):
    """Reserve an address for a MAC."""
    reservation = services.reservations.add(request)
    return reservation.to_dict()


@router.delete("/reservations/{reservation_id}")
async def delete_reservation(reservation_id: int, services: ServicesDep):
    """Deactivate a reservation."""
    services.reservations.remove(reservation_id)
    return {"message": f"Reservation {reservation_id} removed."}
