from datetime import date

from fastapi import APIRouter, Query, status

from backend.app.routers.dependencies import ReservationServiceDep
from backend.app.routers.schemas import ReservationIn, ReservationOut


router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationIn,
    service: ReservationServiceDep,
) -> ReservationOut:
    reservation = await service.create_reservation(
        guest_name=payload.guest_name,
        guest_email=str(payload.guest_email),
        party_size=payload.party_size,
        reservation_date=payload.reservation_date,
        reservation_time=payload.reservation_time,
        special_request=payload.special_request,
    )
    return ReservationOut.model_validate(reservation)


@router.get("", response_model=list[ReservationOut])
async def list_reservations(service: ReservationServiceDep) -> list[ReservationOut]:
    """All reservations, newest first. Cancelled ones are included."""
    return [ReservationOut.model_validate(r) for r in await service.list_all()]


@router.get("/date", response_model=list[ReservationOut])
async def list_reservations_by_date(
    service: ReservationServiceDep,
    reservation_date: date = Query(alias="date"),
) -> list[ReservationOut]:
    return [ReservationOut.model_validate(r) for r in await service.list_by_date(reservation_date)]


@router.get("/confirmed", response_model=list[ReservationOut])
async def list_confirmed_reservations(
    service: ReservationServiceDep,
    start: date,
    end: date,
) -> list[ReservationOut]:
    reservations = await service.list_confirmed_between(start, end)
    return [ReservationOut.model_validate(r) for r in reservations]


@router.get("/{reservation_id}", response_model=ReservationOut)
async def get_reservation(reservation_id: int, service: ReservationServiceDep) -> ReservationOut:
    return ReservationOut.model_validate(await service.get_by_id(reservation_id))


@router.delete("/{reservation_id}", response_model=ReservationOut)
async def cancel_reservation(reservation_id: int, service: ReservationServiceDep) -> ReservationOut:
    """Cancel a reservation. The record is kept with status CANCELLED."""
    return ReservationOut.model_validate(await service.cancel(reservation_id))
