"""
Check-in error taxonomy.

Every failure a caller can see carries a ``kind`` it can branch on, the HTTP
status the API answers with, and a human readable message. Raw storage errors
never leave this package; they are logged and re-raised as StorageUnavailable.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CheckinError(Exception):
    """Base class: kind + status code + message"""

    kind = "CheckinError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Check-in operation failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"success": False, "error": self.kind, "message": self.message}


class InvalidInput(CheckinError):
    kind = "InvalidInput"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class AlreadyCheckedIn(CheckinError):
    kind = "AlreadyCheckedIn"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You already have an active check-in. Please check out first."


class NoActiveCheckin(CheckinError):
    kind = "NoActiveCheckin"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No active check-in found"


class Unauthenticated(CheckinError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated. Please login."


class Forbidden(CheckinError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient role"


class StorageUnavailable(CheckinError):
    kind = "StorageUnavailable"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage is temporarily unavailable. Please retry."


async def handle_checkin_error(request: Request, exc: CheckinError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s at %s: %s", exc.kind, request.url.path, exc.message)
    else:
        logger.info("%s at %s: %s", exc.kind, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies/queries are client input errors (400), not 422."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    error = InvalidInput("; ".join(parts) or InvalidInput.default_message)
    logger.info("InvalidInput at %s: %s", request.url.path, error.message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app):
    app.add_exception_handler(CheckinError, handle_checkin_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
