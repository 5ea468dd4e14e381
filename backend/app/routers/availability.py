from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Query
from fastapi.exceptions import RequestValidationError

from backend.app.routers.dependencies import ReservationServiceDep
from backend.app.routers.schemas import AvailabilityOut


router = APIRouter(tags=["availability"])


@router.get("/reservations/availability", response_model=AvailabilityOut)
async def check_availability(
    service: ReservationServiceDep,
    slot_date: date = Query(alias="date"),
    slot_time: time = Query(alias="time"),
) -> AvailabilityOut:
    """Free tables for a slot. Informational only; booking re-checks under the slot lock."""
    if slot_time.tzinfo is not None:
        raise RequestValidationError(
            [
                {
                    "loc": ("query", "time"),
                    "msg": "time must be a local time without a UTC offset",
                    "type": "value_error",
                    "input": slot_time.isoformat(),
                }
            ]
        )
    available = await service.available_seats(slot_date, slot_time)
    return AvailabilityOut(
        date=slot_date,
        time=slot_time,
        available_tables=available,
        total_tables=service.max_tables,
        is_available=available > 0,
    )
