import enum
from datetime import date, datetime, time, timezone

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Time,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ReservationStatus(str, enum.Enum):
    """Reservation lifecycle; CONFIRMED -> CANCELLED is the only transition."""

    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Reservation(Base):
    """A guest's booking of one table slot."""

    __tablename__ = "reservation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guest_name: Mapped[str] = mapped_column(String(100), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(255), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    reservation_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status", native_enum=False, length=20),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
    )
    special_request: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("party_size BETWEEN 1 AND 4", name="ck_reservation_party_size"),
        Index("idx_reservation_slot_status", "reservation_date", "reservation_time", "status"),
        Index("idx_reservation_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"Reservation(id={self.id!r}, date={self.reservation_date}, "
            f"time={self.reservation_time}, status={self.status})"
        )


class ReservationSlot(Base):
    """Per (date, time) guard row, row-locked while a slot's capacity is checked."""

    __tablename__ = "reservation_slot"

    slot_date: Mapped[date] = mapped_column(Date, nullable=False)
    slot_time: Mapped[time] = mapped_column(Time, nullable=False)
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (PrimaryKeyConstraint("slot_date", "slot_time", name="pk_reservation_slot"),)
