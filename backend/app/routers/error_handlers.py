import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.routers.schemas import ErrorResponse, FieldError
from backend.app.services.errors import (
    AlreadyCancelled,
    FullyBooked,
    PastDateNotAllowed,
    ReservationError,
    ReservationNotFound,
    StoreUnavailable,
    TooFarInFuture,
)


logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[ReservationError], int] = {
    PastDateNotAllowed: status.HTTP_400_BAD_REQUEST,
    TooFarInFuture: status.HTTP_400_BAD_REQUEST,
    ReservationNotFound: status.HTTP_404_NOT_FOUND,
    FullyBooked: status.HTTP_409_CONFLICT,
    AlreadyCancelled: status.HTTP_409_CONFLICT,
}


def _error_response(
    status_code: int,
    error_code: str,
    message: str,
    field_errors: list[FieldError] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error_code=error_code,
        message=message,
        timestamp=datetime.now(timezone.utc),
        field_errors=field_errors,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
    )


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    status_code = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning("Reservation rejected: error_code=%s message=%s", exc.error_code, exc)
    return _error_response(status_code, exc.error_code, str(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Request validation failed: %s", exc.errors())
    field_errors = [
        FieldError(
            field=".".join(str(part) for part in error["loc"] if part != "body"),
            rejected_value=error.get("input"),
            message=error["msg"],
        )
        for error in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_FAILED",
        "The request contains invalid fields.",
        field_errors,
    )


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("Store unavailable: %s", exc, exc_info=exc)
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "SERVICE_UNAVAILABLE",
        "The reservation service is temporarily unavailable. Please try again shortly.",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred. Please try again later.",
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
