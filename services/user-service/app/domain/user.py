from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class UserRole(str, Enum):
    user = "user"
    admin = "admin"


@dataclass(slots=True)
class Address:
    """Postal sub-record; every part is optional and set independently."""

    lga: str | None = None
    city: str | None = None
    state: str | None = None


@dataclass(slots=True)
class User:
    """Aggregate root for a managed user record."""

    user_id: UUID | None
    email: str
    first_name: str
    last_name: str
    dob: date
    user_name: str | None = None
    phone_number: str | None = None
    gender: Gender = Gender.other
    roles: list[UserRole] = field(default_factory=lambda: [UserRole.user])
    address: Address = field(default_factory=Address)
    age: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(slots=True)
class UserSummary:
    """Per-user projection embedded in a city report group."""

    full_name: str
    city: str | None
    gender: Gender
    age: int | None


@dataclass(slots=True)
class CityStat:
    """One group of the city report."""

    city: str | None
    average_age: float | None
    total_users: int
    users: list[UserSummary]


@dataclass(slots=True)
class UserPage:
    """A page of users together with the numbers needed to render pagination."""

    items: list[User]
    page: int
    page_size: int
    total_users: int
    total_pages: int
