"""In-memory user store for local development and tests."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Callable

from .domain.errors import DuplicateEmailError
from .domain.reporting import build_city_report
from .domain.user import Address, CityStat, User


def _copy(user: User) -> User:
    return replace(user, roles=list(user.roles), address=replace(user.address))


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryUserRepository:
    """Thread-safe dict-backed store with the same contract as the Postgres repository.

    Records are kept in insertion order, which doubles as the listing order.
    Callers always receive copies, so mutating a returned record never alters the store.
    """

    def __init__(self, now: Callable[[], datetime] = _utc_now) -> None:
        self._users: dict[uuid.UUID, User] = {}
        self._ids_by_email: dict[str, uuid.UUID] = {}
        self._now = now
        self._lock = Lock()

    def find_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._ids_by_email.get(email)
            return _copy(self._users[user_id]) if user_id else None

    def find_by_id(self, user_id: uuid.UUID) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return _copy(user) if user else None

    def insert(self, user: User) -> User:
        """Store ``user`` under a fresh id, enforcing email uniqueness atomically."""
        with self._lock:
            if user.email in self._ids_by_email:
                raise DuplicateEmailError(user.email)
            now = self._now()
            stored = replace(
                _copy(user),
                user_id=uuid.uuid4(),
                created_at=now,
                updated_at=now,
            )
            self._users[stored.user_id] = stored
            self._ids_by_email[stored.email] = stored.user_id
            return _copy(stored)

    def update(self, user: User) -> User | None:
        """Overwrite the mutable fields of an existing record."""
        with self._lock:
            current = self._users.get(user.user_id)
            if current is None:
                return None
            stored = replace(
                current,
                first_name=user.first_name,
                last_name=user.last_name,
                user_name=user.user_name,
                phone_number=user.phone_number,
                gender=user.gender,
                address=Address(lga=user.address.lga, city=user.address.city, state=user.address.state),
                age=user.age,
                updated_at=max(current.updated_at, self._now()),
            )
            self._users[stored.user_id] = stored
            return _copy(stored)

    def delete(self, user_id: uuid.UUID) -> User | None:
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                return None
            del self._ids_by_email[user.email]
            return user

    def list_page(self, page: int, page_size: int) -> tuple[list[User], int]:
        offset = (page - 1) * page_size
        with self._lock:
            ordered = list(self._users.values())
            return [_copy(user) for user in ordered[offset : offset + page_size]], len(ordered)

    def aggregate_by_city(self) -> list[CityStat]:
        with self._lock:
            snapshot = [_copy(user) for user in self._users.values()]
        return build_city_report(snapshot)
