"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from .user import Gender, UserRole


@dataclass(slots=True)
class AddressInput:
    lga: str | None = None
    city: str | None = None
    state: str | None = None


@dataclass(slots=True)
class CreateUserInput:
    """Shape-validated inputs required to create a user."""

    email: str
    first_name: str
    last_name: str
    dob: date
    user_name: str | None = None
    phone_number: str | None = None
    gender: Gender = Gender.other
    roles: list[UserRole] = field(default_factory=lambda: [UserRole.user])
    address: AddressInput | None = None


@dataclass(slots=True)
class AddressChanges:
    """Address parts to merge into the stored address; ``None`` keeps the current value."""

    lga: str | None = None
    city: str | None = None
    state: str | None = None


@dataclass(slots=True)
class UserChanges:
    """The updatable fields of a user.

    Only these fields can change through an update. A ``None`` value means the
    field was not submitted and the stored value is kept.
    """

    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    user_name: str | None = None
    address: AddressChanges | None = None
    gender: Gender | None = None
