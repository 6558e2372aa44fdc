"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class IllegalTransitionException(AppException):
    code = "ILLEGAL_TRANSITION"
    status_code = 409


class AlreadyAssignedException(AppException):
    code = "ALREADY_ASSIGNED"
    status_code = 409


class NotOwnerException(AppException):
    code = "NOT_OWNER"
    status_code = 403


class NotClaimableException(AppException):
    code = "NOT_CLAIMABLE"
    status_code = 409


class NotReleasableException(AppException):
    code = "NOT_RELEASABLE"
    status_code = 409


class StoreUnavailableException(AppException):
    """The backing store could not be reached. Never carries driver details."""

    code = "STORE_UNAVAILABLE"
    status_code = 503
