"""
Error taxonomy shared by services and routers.

Domain errors map to 4xx statuses, infrastructure errors to 5xx. Routers never
build their own error payloads: a single exception handler renders
``to_response()`` for anything deriving from MediKeepError.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class MediKeepError(Exception):
    """Base class for every error the services raise on purpose."""

    code = "INTERNAL_ERROR"
    http_status = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": {"code": self.code, "message": self.message, "retryable": self.retryable}}


class Unauthorized(MediKeepError):
    code = "UNAUTHORIZED"
    http_status = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ValidationError(MediKeepError):
    code = "VALIDATION_ERROR"
    http_status = 422

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        first = self.errors[0].message if self.errors else "Invalid input"
        super().__init__(first)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)])

    def to_response(self) -> dict:
        payload = super().to_response()
        payload["error"]["fields"] = [asdict(err) for err in self.errors]
        return payload


class NotFound(MediKeepError):
    """Record absent or owned by someone else; callers cannot tell which."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class AssetError(MediKeepError):
    code = "ASSET_ERROR"
    http_status = 500


class DeliveryError(MediKeepError):
    code = "DELIVERY_ERROR"
    http_status = 502


class ConflictError(MediKeepError):
    code = "CONFLICT"
    http_status = 409


class RateLimited(MediKeepError):
    code = "RATE_LIMITED"
    http_status = 429
    retryable = True


class ServiceUnavailable(MediKeepError):
    """A downstream dependency timed out or is unreachable; safe to retry."""

    code = "SERVICE_UNAVAILABLE"
    http_status = 503
    retryable = True

    def __init__(self, message: str, dependency: str):
        super().__init__(message)
        self.dependency = dependency
