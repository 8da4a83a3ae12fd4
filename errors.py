"""
Error taxonomy shared by every route.

Each error is an HTTPException so it can be raised from service helpers and
dependencies alike; main.py renders all of them as {"message": ...}.
"""
from typing import Optional

from fastapi import HTTPException
from pydantic import ValidationError


class APIError(HTTPException):
    status = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(status_code=self.status, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class BadInput(APIError):
    status = 400
    default_message = "Invalid request"


class Unauthorized(APIError):
    status = 401
    default_message = "Access token required"


class Forbidden(APIError):
    status = 403
    default_message = "Invalid or expired token"


class NotFound(APIError):
    status = 404
    default_message = "Not found"


class Conflict(APIError):
    # uniqueness violations are reported as 400, not 409
    status = 400
    default_message = "Already exists"


class ValidationFailed(APIError):
    status = 400
    default_message = "Validation failed"


class InvalidOrExpired(APIError):
    status = 400
    default_message = "Invalid or expired reset token"


class ServerError(APIError):
    status = 500


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)
