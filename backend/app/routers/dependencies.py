from typing import Annotated

from fastapi import Depends

from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.db.session import SessionLocal
from backend.app.services.availability_cache import AvailabilityCache
from backend.app.services.reservations import ReservationService


def get_reservation_service() -> ReservationService:
    """Build the admission controller on the shared session factory and Redis client."""
    cache = None
    if redis_module.redis_client is not None:
        cache = AvailabilityCache(redis_module.redis_client, settings.AVAILABILITY_CACHE_TTL_SECONDS)
    return ReservationService(SessionLocal, cache=cache)


ReservationServiceDep = Annotated[ReservationService, Depends(get_reservation_service)]
