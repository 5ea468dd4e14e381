from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from backend.app.db.models import ReservationStatus


class ReservationIn(BaseModel):
    guest_name: str = Field(min_length=1, max_length=100)
    guest_email: EmailStr
    party_size: int = Field(ge=1, le=4)
    reservation_date: date
    # "HH:MM" or "HH:MM:SS"
    reservation_time: time
    special_request: str | None = Field(default=None, max_length=500)

    @field_validator("guest_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("guest_name must not be blank")
        return value

    @field_validator("reservation_time")
    @classmethod
    def time_is_local(cls, value: time) -> time:
        if value.tzinfo is not None:
            raise ValueError("reservation_time must be a local time without a UTC offset")
        return value

    @field_validator("guest_email", mode="before")
    @classmethod
    def email_length(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) > 255:
            raise ValueError("guest_email must be at most 255 characters")
        return value


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    guest_name: str
    guest_email: str
    party_size: int
    reservation_date: date
    reservation_time: time
    status: ReservationStatus
    special_request: str | None
    created_at: datetime
    updated_at: datetime


class AvailabilityOut(BaseModel):
    date: date
    time: time
    available_tables: int
    total_tables: int
    is_available: bool


class FieldError(BaseModel):
    field: str
    rejected_value: Any = None
    message: str


class ErrorResponse(BaseModel):
    status: int
    error_code: str
    message: str
    timestamp: datetime
    field_errors: list[FieldError] | None = None
