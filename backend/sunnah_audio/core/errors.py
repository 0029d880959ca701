# sunnah_audio/core/errors.py
"""
Application error taxonomy.

Every failure that reaches a caller is one of the subclasses below. Library
exceptions are translated at the boundary where they occur; the exception
handlers registered in `main.py` render them into the JSON failure envelope.
"""
from fastapi import status


class AppError(Exception):
    """Base class. `status_code` decides the HTTP status of the response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error has occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid login credentials"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "The requested item was not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class OtpInvalid(AppError):
    # Same message for mismatch, expiry and unknown email
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired OTP. Please request a new one."


class UpstreamFailure(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed"


class InternalFailure(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
