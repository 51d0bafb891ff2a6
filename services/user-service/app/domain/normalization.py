"""Canonicalisation of raw user fields before they are persisted."""

from __future__ import annotations

from dataclasses import replace

from .user import User

COUNTRY_CALLING_CODE = "234"
NATIONAL_NUMBER_LENGTH = 11


def normalize_phone_number(phone_number: str | None) -> str | None:
    """Rewrite an 11-character national number (``0XXXXXXXXXX``) into international form.

    The national trunk prefix ``0`` is replaced by the fixed country calling code,
    so ``08012345678`` becomes ``2348012345678``. Any other value is returned as is.
    """
    if phone_number and phone_number.startswith("0") and len(phone_number) == NATIONAL_NUMBER_LENGTH:
        return f"{COUNTRY_CALLING_CODE}{phone_number[1:]}"
    return phone_number


def normalize_user(user: User) -> User:
    """Return a copy of ``user`` with every normalised field in canonical form."""
    return replace(user, phone_number=normalize_phone_number(user.phone_number))
