"""
core/errors.py
--------------
Domain exceptions raised by services and dependencies.

Each error carries an HTTP status and a machine-readable code. The handlers
registered in main.py render them as:

    {"detail": "<message>", "code": "<CODE>", "errors": [...]}

Services never build HTTP responses themselves.
"""

from typing import List, Optional


class BikeDeskError(Exception):
    """Base exception for all application errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An internal error occurred",
        code: Optional[str] = None,
        details: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or []

    def to_dict(self) -> dict:
        rv = {"detail": self.message, "code": self.code}
        if self.details:
            rv["errors"] = self.details
        return rv


class Unauthenticated(BikeDeskError):
    status_code = 401
    code = "NOT_AUTHENTICATED"

    def __init__(self, message: str = "Not authenticated", **kwargs) -> None:
        super().__init__(message, **kwargs)


class TokenExpired(Unauthenticated):
    """The client should re-authenticate rather than retry."""

    code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Token expired", **kwargs) -> None:
        super().__init__(message, **kwargs)


class Forbidden(BikeDeskError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", **kwargs) -> None:
        super().__init__(message, **kwargs)


class NotFound(BikeDeskError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", **kwargs) -> None:
        super().__init__(message, **kwargs)


class Conflict(BikeDeskError):
    status_code = 409
    code = "CONFLICT"

    def __init__(self, message: str = "Conflict", **kwargs) -> None:
        super().__init__(message, **kwargs)


class ValidationFailed(BikeDeskError):
    status_code = 400
    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[List[str]] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, details=details or [message], **kwargs)


class RateLimited(BikeDeskError):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, message: str = "Too many requests", **kwargs) -> None:
        super().__init__(message, **kwargs)


class ServiceUnavailable(BikeDeskError):
    status_code = 503
    code = "MAINTENANCE"

    def __init__(
        self,
        message: str = "System is under maintenance. Please try again later.",
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
