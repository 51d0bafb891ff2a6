"""Persistence boundary required by the user workflows."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from .user import CityStat, User


class UserRepository(Protocol):
    """Store of user records with a uniqueness constraint on ``email``.

    Implementations raise :class:`~app.domain.errors.DuplicateEmailError` when the
    unique constraint rejects an insert and
    :class:`~app.domain.errors.StoreUnavailableError` when the backend cannot be reached.
    """

    def find_by_email(self, email: str) -> User | None: ...

    def find_by_id(self, user_id: UUID) -> User | None: ...

    def insert(self, user: User) -> User: ...

    def update(self, user: User) -> User | None: ...

    def delete(self, user_id: UUID) -> User | None: ...

    def list_page(self, page: int, page_size: int) -> tuple[list[User], int]: ...

    def aggregate_by_city(self) -> list[CityStat]: ...
