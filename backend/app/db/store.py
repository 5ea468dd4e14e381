"""Reservation persistence.

Every function takes the caller's session so the caller owns the transaction
boundary. ``lock_slot`` and ``mark_cancelled`` only give their guarantees when
run inside an explicit transaction.
"""

from datetime import date, datetime, time

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import Reservation, ReservationSlot, ReservationStatus


def _dialect_insert(session: AsyncSession):
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Slot locking is not supported on {dialect}")


async def lock_slot(session: AsyncSession, *, slot_date: date, slot_time: time) -> None:
    """Row-lock the slot guard for (slot_date, slot_time) until the transaction ends.

    The guard row is created on first use. The UPDATE is what takes the lock:
    a concurrent transaction for the same slot blocks here until this one
    commits or rolls back, and then sees its committed rows.
    """
    dialect_insert = _dialect_insert(session)
    await session.execute(
        dialect_insert(ReservationSlot.__table__)
        .values(slot_date=slot_date, slot_time=slot_time, lock_version=0)
        .on_conflict_do_nothing(index_elements=["slot_date", "slot_time"])
    )
    await session.execute(
        update(ReservationSlot)
        .where(
            ReservationSlot.slot_date == slot_date,
            ReservationSlot.slot_time == slot_time,
        )
        .values(lock_version=ReservationSlot.lock_version + 1)
        .execution_options(synchronize_session=False)
    )


async def count_confirmed(session: AsyncSession, *, slot_date: date, slot_time: time) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Reservation)
        .where(
            Reservation.reservation_date == slot_date,
            Reservation.reservation_time == slot_time,
            Reservation.status == ReservationStatus.CONFIRMED,
        )
    )
    return int(result.scalar_one())


async def insert(session: AsyncSession, reservation: Reservation) -> Reservation:
    """Persist a new reservation; id and timestamps are filled in on flush."""
    session.add(reservation)
    await session.flush()
    return reservation


async def find_by_id(
    session: AsyncSession,
    reservation_id: int,
    *,
    refresh: bool = False,
) -> Reservation | None:
    return await session.get(Reservation, reservation_id, populate_existing=refresh)


async def find_all(session: AsyncSession) -> list[Reservation]:
    result = await session.execute(
        select(Reservation).order_by(Reservation.created_at.desc(), Reservation.id.desc())
    )
    return list(result.scalars().all())


async def find_by_date(session: AsyncSession, reservation_date: date) -> list[Reservation]:
    result = await session.execute(
        select(Reservation)
        .where(Reservation.reservation_date == reservation_date)
        .order_by(Reservation.reservation_time.asc(), Reservation.id.asc())
    )
    return list(result.scalars().all())


async def find_confirmed_between(
    session: AsyncSession,
    start_date: date,
    end_date: date,
) -> list[Reservation]:
    result = await session.execute(
        select(Reservation)
        .where(
            Reservation.reservation_date.between(start_date, end_date),
            Reservation.status == ReservationStatus.CONFIRMED,
        )
        .order_by(
            Reservation.reservation_date.asc(),
            Reservation.reservation_time.asc(),
            Reservation.id.asc(),
        )
    )
    return list(result.scalars().all())


async def mark_cancelled(session: AsyncSession, reservation_id: int, *, at: datetime) -> bool:
    """Flip CONFIRMED to CANCELLED in a single conditional UPDATE.

    Returns False when the row is missing or already cancelled. Of two
    concurrent calls for one id, only one can match the WHERE clause.
    """
    result = await session.execute(
        update(Reservation)
        .where(
            Reservation.id == reservation_id,
            Reservation.status == ReservationStatus.CONFIRMED,
        )
        .values(status=ReservationStatus.CANCELLED, updated_at=at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
