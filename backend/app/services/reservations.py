import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, time, timedelta
from typing import TypeVar
from zoneinfo import ZoneInfo

from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from backend.app.core.config import settings
from backend.app.db import store
from backend.app.db.errors import is_conflict, is_transient
from backend.app.db.models import Reservation, ReservationStatus, utcnow
from backend.app.services.availability_cache import AvailabilityCache
from backend.app.services.errors import (
    AlreadyCancelled,
    FullyBooked,
    PastDateNotAllowed,
    ReservationNotFound,
    StoreUnavailable,
    TooFarInFuture,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def restaurant_today() -> date:
    """Current date on the restaurant's clock."""
    if settings.RESTAURANT_TIMEZONE:
        return datetime.now(ZoneInfo(settings.RESTAURANT_TIMEZONE)).date()
    return date.today()


def _slot_time(value: time) -> time:
    if value.tzinfo is not None:
        raise ValueError(f"slot time must be local, got offset {value.tzinfo}")
    return value.replace(microsecond=0)


def slot_label(slot_date: date, slot_time: time) -> str:
    return f"{slot_date.isoformat()} {slot_time.strftime('%H:%M')}"


class ReservationService:
    """Admission control for table reservations.

    Each operation opens its own session and transaction, so the service can
    be shared by concurrent requests. Capacity is enforced by the store's
    slot lock, not by anything held in this process.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        cache: AvailabilityCache | None = None,
        today: Callable[[], date] = restaurant_today,
        max_tables: int | None = None,
        max_advance_days: int | None = None,
        retry_attempts: int | None = None,
        retry_wait: wait_base | None = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.today = today
        self.max_tables = max_tables if max_tables is not None else settings.MAX_TABLES
        self.max_advance_days = (
            max_advance_days if max_advance_days is not None else settings.MAX_ADVANCE_DAYS
        )
        self.retry_attempts = max(
            1, retry_attempts if retry_attempts is not None else settings.TX_RETRY_ATTEMPTS
        )
        self.retry_wait = retry_wait or wait_random_exponential(
            multiplier=settings.TX_RETRY_WAIT_SECONDS, max=settings.TX_RETRY_MAX_WAIT_SECONDS
        )

    async def _transaction(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``work`` in a fresh transaction, committing on success.

        Deadlock and serialization losers are re-run from the start, so a retry
        repeats the capacity check along with the insert.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(DBAPIError) & retry_if_exception(is_conflict),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    async with self.session_factory() as session:
                        async with session.begin():
                            return await work(session)
        except DBAPIError as exc:
            if is_conflict(exc):
                raise StoreUnavailable("Transaction kept conflicting, retries exhausted") from exc
            if is_transient(exc):
                raise StoreUnavailable("Database unavailable") from exc
            raise
        except (PoolTimeoutError, OSError) as exc:
            raise StoreUnavailable("Database unavailable") from exc

    async def create_reservation(
        self,
        *,
        guest_name: str,
        guest_email: str,
        party_size: int,
        reservation_date: date,
        reservation_time: time,
        special_request: str | None = None,
    ) -> Reservation:
        """Admit a new reservation or raise the first rule it breaks.

        Raises:
            PastDateNotAllowed: the date is before today
            TooFarInFuture: the date is past the booking window
            FullyBooked: the slot already holds ``max_tables`` confirmed bookings
        """
        logger.info(
            "Reservation requested: date=%s time=%s party=%s",
            reservation_date, reservation_time, party_size,
        )
        today = self.today()
        if reservation_date < today:
            raise PastDateNotAllowed(reservation_date)
        if reservation_date > today + timedelta(days=self.max_advance_days):
            raise TooFarInFuture(reservation_date, self.max_advance_days)

        slot_time = _slot_time(reservation_time)

        async def admit(session: AsyncSession) -> Reservation:
            await store.lock_slot(session, slot_date=reservation_date, slot_time=slot_time)
            confirmed = await store.count_confirmed(
                session, slot_date=reservation_date, slot_time=slot_time
            )
            logger.debug(
                "Slot %s holds %s/%s confirmed",
                slot_label(reservation_date, slot_time), confirmed, self.max_tables,
            )
            if confirmed >= self.max_tables:
                raise FullyBooked(slot_label(reservation_date, slot_time))
            return await store.insert(
                session,
                Reservation(
                    guest_name=guest_name,
                    guest_email=guest_email,
                    party_size=party_size,
                    reservation_date=reservation_date,
                    reservation_time=slot_time,
                    special_request=special_request,
                    status=ReservationStatus.CONFIRMED,
                ),
            )

        reservation = await self._transaction(admit)
        logger.info("Reservation created: id=%s", reservation.id)
        if self.cache is not None:
            await self.cache.invalidate(reservation.reservation_date, reservation.reservation_time)
        return reservation

    async def list_all(self) -> list[Reservation]:
        """All reservations, most recently created first."""
        return await self._transaction(store.find_all)

    async def get_by_id(self, reservation_id: int) -> Reservation:
        async def fetch(session: AsyncSession) -> Reservation:
            reservation = await store.find_by_id(session, reservation_id)
            if reservation is None:
                raise ReservationNotFound(reservation_id)
            return reservation

        return await self._transaction(fetch)

    async def list_by_date(self, reservation_date: date) -> list[Reservation]:
        async def fetch(session: AsyncSession) -> list[Reservation]:
            return await store.find_by_date(session, reservation_date)

        return await self._transaction(fetch)

    async def list_confirmed_between(self, start_date: date, end_date: date) -> list[Reservation]:
        if start_date > end_date:
            return []

        async def fetch(session: AsyncSession) -> list[Reservation]:
            return await store.find_confirmed_between(session, start_date, end_date)

        return await self._transaction(fetch)

    async def cancel(self, reservation_id: int) -> Reservation:
        """Cancel a confirmed reservation. Cancelling twice is an error.

        Raises:
            ReservationNotFound: no reservation has this id
            AlreadyCancelled: the reservation was cancelled before
        """

        async def apply(session: AsyncSession) -> Reservation:
            if await store.mark_cancelled(session, reservation_id, at=utcnow()):
                return await store.find_by_id(session, reservation_id, refresh=True)
            if await store.find_by_id(session, reservation_id) is None:
                raise ReservationNotFound(reservation_id)
            raise AlreadyCancelled(reservation_id)

        reservation = await self._transaction(apply)
        logger.info("Reservation cancelled: id=%s", reservation_id)
        if self.cache is not None:
            await self.cache.invalidate(reservation.reservation_date, reservation.reservation_time)
        return reservation

    async def available_seats(self, slot_date: date, slot_time: time) -> int:
        """Free tables for a slot. May lag behind concurrent bookings."""
        slot_time = _slot_time(slot_time)
        if self.cache is not None:
            cached = await self.cache.get(slot_date, slot_time)
            if cached is not None:
                return cached

        async def count(session: AsyncSession) -> int:
            return await store.count_confirmed(session, slot_date=slot_date, slot_time=slot_time)

        available = max(0, self.max_tables - await self._transaction(count))
        if self.cache is not None:
            # A create or cancel that commits after the count above has already
            # invalidated the key, so this value can stay stale for up to the TTL.
            await self.cache.set(slot_date, slot_time, available)
        return available
