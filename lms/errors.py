"""
Error taxonomy for the LMS API

Every kind is an HTTPException so routers and dependencies can raise them
directly and FastAPI renders {"detail": ...} with the matching status code.
"""

from typing import Optional
from fastapi import HTTPException


class LMSError(HTTPException):
    status_code = 500
    default_detail = "Server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class Unauthenticated(LMSError):
    """Missing or malformed bearer credential"""
    status_code = 401
    default_detail = "No authorization token provided"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(LMSError):
    """Bad signature or expired credential"""
    status_code = 403
    default_detail = "Forbidden access - Invalid token"


class Forbidden(LMSError):
    status_code = 403
    default_detail = "Access denied"


class ValidationError(LMSError):
    status_code = 400
    default_detail = "Invalid request"


class InvalidStatus(ValidationError):
    default_detail = "Invalid status"


class InvalidId(ValidationError):
    default_detail = "Invalid id"


class NotFound(LMSError):
    status_code = 404
    default_detail = "Not found"


class Conflict(LMSError):
    status_code = 409
    default_detail = "Already exists"


class StoreError(LMSError):
    """Underlying persistence failure"""
    status_code = 500
    default_detail = "Database error"


class PartialEnrollmentFailure(LMSError):
    """
    Checkout failed after some steps were applied.
    Completed steps have been compensated before this is raised.
    """
    status_code = 500
    default_detail = "Checkout failed and was rolled back"

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"Checkout failed at '{step}' and was rolled back: {cause}")
