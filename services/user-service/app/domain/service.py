"""User service orchestrating normalisation, derivation, and persistence."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date
from typing import Callable
from uuid import UUID

from .contracts import AddressChanges, CreateUserInput, UserChanges
from .derivation import derive_fields, utc_today
from .errors import DuplicateEmailError, InvalidIdentifierError, UserNotFoundError
from .normalization import normalize_user
from .ports import UserRepository
from .user import Address, User, UserPage
from ..metrics import track_operation

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10


def parse_user_id(user_id: str | UUID) -> UUID:
    """Parse a caller-supplied identifier, rejecting malformed values before any store access."""
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except ValueError as exc:
        raise InvalidIdentifierError(user_id) from exc


def _positive_or_default(value: object, default: int) -> int:
    try:
        number = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def _keep(new: object, current: object):
    return current if new is None else new


def _merge_address(current: Address, changes: AddressChanges) -> Address:
    return Address(
        lga=_keep(changes.lga, current.lga),
        city=_keep(changes.city, current.city),
        state=_keep(changes.state, current.state),
    )


class UserService:
    """User lifecycle workflows backed by a :class:`UserRepository`.

    Every write passes through the same pipeline before it reaches the store:
    normalisation (canonical phone numbers), then derivation (age recomputed from
    the date of birth for the current day). Uniqueness of ``email`` is enforced by
    the store; the lookup done here first only spares a failed insert.
    """

    def __init__(self, repository: UserRepository, clock: Callable[[], date] = utc_today) -> None:
        """Store the repository and the clock used for age derivation."""
        self._repository = repository
        self._clock = clock

    def _prepare(self, user: User) -> User:
        return derive_fields(normalize_user(user), self._clock())

    def create_user(self, payload: CreateUserInput) -> User:
        """Create a user, failing with :class:`DuplicateEmailError` if the email is taken."""
        with track_operation("create"):
            if self._repository.find_by_email(payload.email) is not None:
                raise DuplicateEmailError(payload.email)

            address = payload.address
            user = User(
                user_id=None,
                email=payload.email,
                first_name=payload.first_name,
                last_name=payload.last_name,
                dob=payload.dob,
                user_name=payload.user_name,
                phone_number=payload.phone_number,
                gender=payload.gender,
                roles=list(dict.fromkeys(payload.roles)),
                address=Address(lga=address.lga, city=address.city, state=address.state)
                if address
                else Address(),
            )
            created = self._repository.insert(self._prepare(user))
        logger.info("user %s created", created.user_id)
        return created

    def get_user(self, user_id: str | UUID) -> User:
        """Return the user with ``user_id`` or raise :class:`UserNotFoundError`."""
        with track_operation("get"):
            uid = parse_user_id(user_id)
            user = self._repository.find_by_id(uid)
            if user is None:
                raise UserNotFoundError(uid)
        return user

    def list_users(self, page: object = None, page_size: object = None) -> UserPage:
        """Return one page of users.

        Missing, malformed or non-positive ``page``/``page_size`` values fall back to
        the defaults (page 1, 10 per page). Large page sizes are honoured as given.
        A page past the end is empty rather than an error.
        """
        with track_operation("list"):
            page_number = _positive_or_default(page, DEFAULT_PAGE)
            size = _positive_or_default(page_size, DEFAULT_PAGE_SIZE)
            items, total = self._repository.list_page(page_number, size)
        return UserPage(
            items=items,
            page=page_number,
            page_size=size,
            total_users=total,
            total_pages=math.ceil(total / size),
        )

    def update_user(self, user_id: str | UUID, changes: UserChanges) -> User:
        """Apply ``changes`` to a stored user and return the saved record.

        Only the fields of :class:`UserChanges` can be modified. Address parts are
        merged one by one into the stored address. Age is recomputed even when the
        date of birth is untouched.
        """
        with track_operation("update"):
            uid = parse_user_id(user_id)
            current = self._repository.find_by_id(uid)
            if current is None:
                raise UserNotFoundError(uid)

            address = current.address
            if changes.address is not None:
                address = _merge_address(current.address, changes.address)
            changed = replace(
                current,
                first_name=_keep(changes.first_name, current.first_name),
                last_name=_keep(changes.last_name, current.last_name),
                phone_number=_keep(changes.phone_number, current.phone_number),
                user_name=_keep(changes.user_name, current.user_name),
                gender=_keep(changes.gender, current.gender),
                address=address,
            )
            updated = self._repository.update(self._prepare(changed))
            if updated is None:
                # removed between the lookup and the write
                raise UserNotFoundError(uid)
        logger.info("user %s updated", uid)
        return updated

    def delete_user(self, user_id: str | UUID) -> User:
        """Delete a user and return its last state before removal."""
        with track_operation("delete"):
            uid = parse_user_id(user_id)
            if self._repository.find_by_id(uid) is None:
                raise UserNotFoundError(uid)
            deleted = self._repository.delete(uid)
            if deleted is None:
                raise UserNotFoundError(uid)
        logger.info("user %s deleted", uid)
        return deleted
