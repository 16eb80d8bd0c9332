"""
Custom exception hierarchy for habitcore.

Rule: every error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

The engine raises these for a single habit / pair / challenge; batch
operations catch them per item and carry on with the rest.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class HabitCoreException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigurationError(HabitCoreException):
    """Malformed habit definition, e.g. WEEKLY cadence with no days."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "CONFIGURATION_ERROR"

    def __init__(self, habit_id: Any, reason: str):
        self.habit_id = habit_id
        super().__init__(
            message=f"Habit {habit_id} is misconfigured: {reason}",
            details={"habit_id": habit_id, "reason": reason},
        )


class DataIntegrityError(HabitCoreException):
    """Log history violates an upstream invariant. Never auto-corrected."""
    http_status = status.HTTP_409_CONFLICT
    code = "DATA_INTEGRITY_ERROR"

    def __init__(self, habit_id: Any, day: date, reason: str):
        self.habit_id = habit_id
        self.day = day
        super().__init__(
            message=f"Log for habit {habit_id} on {day}: {reason}",
            details={"habit_id": habit_id, "day": str(day), "reason": reason},
        )


class InsufficientDataError(HabitCoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INSUFFICIENT_DATA"

    def __init__(self, required: int, available: int, what: str = "samples"):
        self.required = required
        self.available = available
        super().__init__(
            message=f"Need at least {required} {what}, got {available}.",
            details={"required": required, "available": available},
        )


class RangeError(HabitCoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_RANGE"

    def __init__(self, start: Optional[date], end: Optional[date], reason: str = "inverted date range"):
        super().__init__(
            message=f"Invalid range {start} → {end}: {reason}",
            details={
                "start": str(start) if start else None,
                "end": str(end) if end else None,
                "reason": reason,
            },
        )


class NotFoundError(HabitCoreException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} {resource_id} not found.",
            details={"resource": resource, "id": resource_id},
        )


class InvalidStatusTransitionError(HabitCoreException):
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, challenge_id: Any, current: str, requested: str):
        super().__init__(
            message=f"Challenge {challenge_id} cannot move from {current} to {requested}.",
            details={"challenge_id": challenge_id, "current": current, "requested": requested},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def habitcore_exception_handler(request: Request, exc: HabitCoreException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
