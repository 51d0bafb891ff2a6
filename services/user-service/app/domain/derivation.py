"""Fields computed from other fields at save time."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

from .user import User


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def calculate_age(dob: date, today: date) -> int:
    """Return the number of whole years elapsed between ``dob`` and ``today``."""
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def derive_fields(user: User, today: date) -> User:
    """Return a copy of ``user`` with ``age`` recomputed for ``today``."""
    return replace(user, age=calculate_age(user.dob, today))
