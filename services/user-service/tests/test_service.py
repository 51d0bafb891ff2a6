from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from prometheus_client import REGISTRY

from app.domain.contracts import AddressChanges, AddressInput, CreateUserInput, UserChanges
from app.domain.errors import (
    DuplicateEmailError,
    ErrorKind,
    InvalidIdentifierError,
    StoreUnavailableError,
    UserNotFoundError,
)
from app.domain.service import UserService
from app.domain.user import Gender, UserRole
from app.memory_repository import InMemoryUserRepository

TODAY = date(2024, 6, 14)


class RacingRepository(InMemoryUserRepository):
    """Store whose email lookup always misses, as if a concurrent insert had not landed yet."""

    def find_by_email(self, email: str):
        return None


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self) -> None:
        self._now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def repository() -> InMemoryUserRepository:
    return InMemoryUserRepository(now=TickingClock())


@pytest.fixture
def service(repository) -> UserService:
    return UserService(repository, clock=lambda: TODAY)


def _create_input(email: str = "ada@example.com", **overrides) -> CreateUserInput:
    fields = dict(
        email=email,
        first_name="Ada",
        last_name="Obi",
        dob=date(2000, 6, 15),
    )
    fields.update(overrides)
    return CreateUserInput(**fields)


def test_create_user_normalizes_and_derives(service):
    user = service.create_user(
        _create_input(
            phone_number="08012345678",
            address=AddressInput(lga="Ikeja", city="Lagos", state="Lagos"),
        )
    )

    assert isinstance(user.user_id, uuid.UUID)
    assert user.phone_number == "2348012345678"
    assert user.age == 23
    assert user.gender is Gender.other
    assert user.roles == [UserRole.user]
    assert user.address.city == "Lagos"
    assert user.created_at == user.updated_at


def test_create_user_deduplicates_roles(service):
    user = service.create_user(
        _create_input(roles=[UserRole.admin, UserRole.user, UserRole.admin])
    )
    assert user.roles == [UserRole.admin, UserRole.user]


def test_create_user_rejects_duplicate_email(service, repository):
    service.create_user(_create_input())

    with pytest.raises(DuplicateEmailError) as excinfo:
        service.create_user(_create_input(first_name="Other"))

    assert excinfo.value.kind is ErrorKind.CONFLICT
    _, total = repository.list_page(1, 10)
    assert total == 1


def test_store_constraint_rejects_duplicate_after_precheck_race():
    repository = RacingRepository()
    service = UserService(repository, clock=lambda: TODAY)
    service.create_user(_create_input())

    with pytest.raises(DuplicateEmailError):
        service.create_user(_create_input())

    _, total = repository.list_page(1, 10)
    assert total == 1


def test_get_user_roundtrip_and_missing(service):
    created = service.create_user(_create_input())

    assert service.get_user(str(created.user_id)) == created
    with pytest.raises(UserNotFoundError) as excinfo:
        service.get_user(uuid.uuid4())
    assert excinfo.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.parametrize("bad_id", ["", "not-a-uuid", "507f1f77bcf86cd799439011", "123"])
def test_malformed_identifiers_are_rejected_before_lookup(service, bad_id):
    with pytest.raises(InvalidIdentifierError) as excinfo:
        service.get_user(bad_id)
    assert excinfo.value.kind is ErrorKind.BAD_REQUEST
    with pytest.raises(InvalidIdentifierError):
        service.delete_user(bad_id)
    with pytest.raises(InvalidIdentifierError):
        service.update_user(bad_id, UserChanges(first_name="x"))


def test_update_merges_address_parts(service):
    created = service.create_user(
        _create_input(address=AddressInput(lga="Ikeja", city="Lagos", state="Lagos"))
    )

    updated = service.update_user(created.user_id, UserChanges(address=AddressChanges(city="Abuja")))

    assert updated.address.city == "Abuja"
    assert updated.address.state == "Lagos"
    assert updated.address.lga == "Ikeja"


def test_update_only_changes_submitted_fields(service):
    created = service.create_user(_create_input(user_name="ada", phone_number="2348012345678"))

    updated = service.update_user(
        created.user_id,
        UserChanges(first_name="Adaeze", phone_number="08099999999", gender=Gender.female),
    )

    assert updated.first_name == "Adaeze"
    assert updated.last_name == "Obi"
    assert updated.user_name == "ada"
    assert updated.phone_number == "2348099999999"
    assert updated.gender is Gender.female
    assert updated.email == created.email
    assert updated.dob == created.dob
    assert updated.roles == created.roles
    assert updated.created_at == created.created_at
    assert updated.updated_at >= created.updated_at


def test_update_recomputes_age_without_dob_change(repository):
    today = {"value": date(2024, 6, 14)}
    service = UserService(repository, clock=lambda: today["value"])
    created = service.create_user(_create_input())
    assert created.age == 23

    today["value"] = date(2024, 6, 15)
    updated = service.update_user(created.user_id, UserChanges(last_name="Okafor"))

    assert updated.age == 24


def test_update_missing_user(service):
    with pytest.raises(UserNotFoundError):
        service.update_user(uuid.uuid4(), UserChanges(first_name="Ghost"))


def test_delete_returns_last_state_and_removes(service, repository):
    created = service.create_user(_create_input())

    deleted = service.delete_user(created.user_id)

    assert deleted == created
    assert repository.find_by_id(created.user_id) is None
    # the email is free again
    service.create_user(_create_input())


def test_delete_unknown_id_never_mutates(service, repository):
    service.create_user(_create_input())

    for _ in range(2):
        with pytest.raises(UserNotFoundError):
            service.delete_user(uuid.uuid4())

    _, total = repository.list_page(1, 10)
    assert total == 1


def _seed(service: UserService, count: int) -> None:
    for idx in range(count):
        service.create_user(_create_input(email=f"user{idx}@example.com", first_name=f"User{idx}"))


def test_list_users_paginates(service):
    _seed(service, 25)

    first = service.list_users(1, 10)
    assert len(first.items) == 10
    assert first.total_pages == 3
    assert first.total_users == 25

    last = service.list_users(3, 10)
    assert len(last.items) == 5

    beyond = service.list_users(4, 10)
    assert beyond.items == []
    assert beyond.total_pages == 3


def test_list_users_pages_do_not_overlap(service):
    _seed(service, 25)

    seen = []
    for page in (1, 2, 3):
        seen.extend(user.user_id for user in service.list_users(page, 10).items)

    assert len(seen) == 25
    assert len(set(seen)) == 25
    assert [user.first_name for user in service.list_users(1, 3).items] == ["User0", "User1", "User2"]


@pytest.mark.parametrize(
    ("page", "page_size", "expected"),
    [
        (None, None, (1, 10)),
        (0, 0, (1, 10)),
        (-2, -5, (1, 10)),
        ("abc", "xyz", (1, 10)),
        ("2", "5", (2, 5)),
        (1, 1000, (1, 1000)),
    ],
)
def test_list_users_falls_back_to_defaults(service, page, page_size, expected):
    result = service.list_users(page, page_size)
    assert (result.page, result.page_size) == expected


def test_list_users_honours_large_page_size(service):
    _seed(service, 150)

    result = service.list_users(1, 150)

    assert len(result.items) == 150
    assert result.page_size == 150
    assert result.total_pages == 1


def test_list_users_on_empty_store(service):
    result = service.list_users()
    assert result.items == []
    assert result.total_pages == 0


def test_store_outage_propagates(service, monkeypatch):
    def unavailable(*_args, **_kwargs):
        raise StoreUnavailableError("connection refused")

    monkeypatch.setattr(service._repository, "find_by_id", unavailable)

    with pytest.raises(StoreUnavailableError):
        service.get_user(uuid.uuid4())


def test_operations_are_counted(service):
    def sample(outcome: str) -> float:
        value = REGISTRY.get_sample_value(
            "user_operations_total", {"operation": "create", "outcome": outcome}
        )
        return value or 0.0

    ok_before = sample("ok")
    conflict_before = sample("conflict")

    service.create_user(_create_input())
    with pytest.raises(DuplicateEmailError):
        service.create_user(_create_input())

    assert sample("ok") == ok_before + 1
    assert sample("conflict") == conflict_before + 1
