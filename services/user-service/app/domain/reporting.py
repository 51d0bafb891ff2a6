"""City report: group users by city, aggregate, then rank the groups."""

from __future__ import annotations

import logging
from typing import Iterable

from .ports import UserRepository
from .user import CityStat, User, UserSummary
from ..metrics import track_operation

logger = logging.getLogger(__name__)


def summarize(user: User) -> UserSummary:
    return UserSummary(
        full_name=user.full_name,
        city=user.address.city,
        gender=user.gender,
        age=user.age,
    )


def city_sort_key(stat: CityStat) -> tuple[int, bool, str]:
    """Order by descending size, then by city name with the no-city group last."""
    return (-stat.total_users, stat.city is None, stat.city or "")


def build_city_report(users: Iterable[User]) -> list[CityStat]:
    """Group ``users`` by ``address.city`` and rank the groups.

    The transform runs in three stages:

    1. group by city, users without a city forming their own group;
    2. aggregate each group into its mean age, its size and the per-user summaries,
       keeping the input order of the users;
    3. sort groups by size descending, ties broken by :func:`city_sort_key`.

    Users whose age is unknown count towards ``total_users`` but not towards the mean.
    """
    groups: dict[str | None, list[User]] = {}
    for user in users:
        groups.setdefault(user.address.city, []).append(user)

    report: list[CityStat] = []
    for city, members in groups.items():
        ages = [member.age for member in members if member.age is not None]
        report.append(
            CityStat(
                city=city,
                average_age=sum(ages) / len(ages) if ages else None,
                total_users=len(members),
                users=[summarize(member) for member in members],
            )
        )

    report.sort(key=city_sort_key)
    return report


class ReportService:
    """Read-only reporting workflows over the full user set."""

    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    def city_report(self) -> list[CityStat]:
        """Compute the city report from scratch against the current store contents."""
        with track_operation("city_report"):
            report = self._repository.aggregate_by_city()
        logger.debug("city report computed with %d groups", len(report))
        return report
