"""Typed failures raised by the user lifecycle and reporting workflows."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Caller-facing error category; the HTTP layer maps each one to a status code."""

    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class UserServiceError(Exception):
    """Base class for domain errors surfaced to callers as typed outcomes."""

    kind: ErrorKind = ErrorKind.BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(UserServiceError):
    kind = ErrorKind.BAD_REQUEST


class InvalidIdentifierError(ValidationError):
    def __init__(self, user_id: object) -> None:
        super().__init__(f"invalid user id: {user_id!r}")
        self.user_id = user_id


class DuplicateEmailError(UserServiceError):
    kind = ErrorKind.CONFLICT

    def __init__(self, email: str) -> None:
        super().__init__("user with this email already exists")
        self.email = email


class UserNotFoundError(UserServiceError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, user_id: object) -> None:
        super().__init__("user not found")
        self.user_id = user_id


class StoreUnavailableError(Exception):
    """The persistence backend could not be reached; fatal for the current request."""
