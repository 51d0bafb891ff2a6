"""Transport-neutral command interface over the user and report services.

Callers hand in one command value and get back either :class:`Ok` with the
payload or :class:`Err` with the error kind and message. Store outages are not
domain outcomes: :class:`~app.domain.errors.StoreUnavailableError` propagates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union
from uuid import UUID

from .contracts import CreateUserInput, UserChanges
from .errors import ErrorKind, UserServiceError
from .reporting import ReportService
from .service import UserService


@dataclass(frozen=True, slots=True)
class CreateUser:
    attrs: CreateUserInput


@dataclass(frozen=True, slots=True)
class UpdateUser:
    user_id: str | UUID
    changes: UserChanges = field(default_factory=UserChanges)


@dataclass(frozen=True, slots=True)
class DeleteUser:
    user_id: str | UUID


@dataclass(frozen=True, slots=True)
class GetUser:
    user_id: str | UUID


@dataclass(frozen=True, slots=True)
class ListUsers:
    page: int | None = None
    page_size: int | None = None


@dataclass(frozen=True, slots=True)
class CityReport:
    pass


Command = Union[CreateUser, UpdateUser, DeleteUser, GetUser, ListUsers, CityReport]


@dataclass(frozen=True, slots=True)
class Ok:
    payload: Any


@dataclass(frozen=True, slots=True)
class Err:
    kind: ErrorKind
    message: str


Result = Union[Ok, Err]


def _dispatch(command: Command, users: UserService, reports: ReportService) -> Any:
    if isinstance(command, CreateUser):
        return users.create_user(command.attrs)
    if isinstance(command, UpdateUser):
        return users.update_user(command.user_id, command.changes)
    if isinstance(command, DeleteUser):
        return users.delete_user(command.user_id)
    if isinstance(command, GetUser):
        return users.get_user(command.user_id)
    if isinstance(command, ListUsers):
        return users.list_users(command.page, command.page_size)
    if isinstance(command, CityReport):
        return reports.city_report()
    raise TypeError(f"unsupported command: {type(command).__name__}")


def execute(command: Command, users: UserService, reports: ReportService) -> Result:
    """Run ``command`` and wrap its outcome."""
    try:
        return Ok(_dispatch(command, users, reports))
    except UserServiceError as exc:
        return Err(exc.kind, exc.message)
