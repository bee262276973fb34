"""
Typed failures raised by the clinic services.

Services raise these instead of HTTPException so the same rules can be driven
without a web request; main.py turns them into JSON responses.
"""

from typing import Any, Optional

from fastapi import status


class ClinicError(Exception):
    code: str = "clinic_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    headers: Optional[dict[str, str]] = None

    def __init__(self, message: str = "", *, code: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(ClinicError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidAppointmentTime(ValidationFailed):
    code = "invalid_appointment_time"


class ConflictError(ClinicError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ClinicError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthenticationError(ClinicError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(ClinicError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class TransactionFailed(ClinicError):
    """The store rejected the transaction; nothing was persisted and the call can be retried."""

    code = "transaction_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class RateLimited(ClinicError):
    code = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: int):
        super().__init__(message, details={"retry_after": retry_after})
        self.headers = {"Retry-After": str(retry_after)}
