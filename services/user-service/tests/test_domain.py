from __future__ import annotations

from datetime import date

import pytest

from app.domain.derivation import calculate_age, derive_fields
from app.domain.normalization import normalize_phone_number, normalize_user
from app.domain.user import User


def _user(**overrides) -> User:
    fields = dict(
        user_id=None,
        email="ada@example.com",
        first_name="Ada",
        last_name="Obi",
        dob=date(2000, 6, 15),
    )
    fields.update(overrides)
    return User(**fields)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("08012345678", "2348012345678"),
        ("2348012345678", "2348012345678"),
        ("123", "123"),
        ("0801234567", "0801234567"),
        ("080123456789", "080123456789"),
        ("18012345678", "18012345678"),
        (None, None),
        ("", ""),
    ],
)
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


def test_normalize_user_only_touches_phone_number():
    user = _user(phone_number="08012345678", user_name="ada")
    normalized = normalize_user(user)

    assert normalized.phone_number == "2348012345678"
    assert normalized.user_name == "ada"
    assert normalized.email == user.email
    # input is left untouched
    assert user.phone_number == "08012345678"


@pytest.mark.parametrize(
    ("today", "expected"),
    [
        (date(2024, 6, 14), 23),
        (date(2024, 6, 15), 24),
        (date(2024, 6, 16), 24),
        (date(2024, 5, 31), 23),
        (date(2024, 12, 31), 24),
        (date(2025, 1, 1), 24),
    ],
)
def test_calculate_age_counts_whole_years(today, expected):
    assert calculate_age(date(2000, 6, 15), today) == expected


def test_calculate_age_for_leap_day_birthday():
    assert calculate_age(date(2004, 2, 29), date(2023, 2, 28)) == 18
    assert calculate_age(date(2004, 2, 29), date(2023, 3, 1)) == 19


def test_derive_fields_overwrites_stale_age():
    user = _user(age=99)
    derived = derive_fields(user, date(2024, 6, 15))
    assert derived.age == 24
    assert user.age == 99
