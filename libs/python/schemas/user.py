"""User record DTOs shared across services, serialised in camelCase."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class Role(str, Enum):
    user = "user"
    admin = "admin"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Address(CamelModel):
    lga: str | None = None
    city: str | None = None
    state: str | None = None


class UserRecord(CamelModel):
    """Public representation of a stored user."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    user_name: str | None = None
    dob: date
    age: int | None = None
    phone_number: str | None = None
    gender: Gender = Gender.other
    roles: list[Role] = Field(default_factory=lambda: [Role.user])
    address: Address = Field(default_factory=Address)
    created_at: datetime
    updated_at: datetime


class UserSummary(CamelModel):
    full_name: str
    city: str | None = None
    gender: Gender
    age: int | None = None


class CityStat(CamelModel):
    """One city group of the users-by-city report."""

    city: str | None = None
    average_age: float | None = None
    total_users: int
    users: list[UserSummary] = Field(default_factory=list)


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_users: int
