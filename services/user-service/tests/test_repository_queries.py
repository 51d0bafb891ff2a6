"""Statement-level tests for the Postgres repository, run against a fake pool."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone

from app.domain.user import Gender, UserRole
from app.repository import PostgresUserRepository

CREATED = datetime(2024, 6, 14, 12, 0, tzinfo=timezone.utc)


def _row(email: str) -> tuple:
    return (
        uuid.uuid4(),
        email,
        "Ada",
        "Obi",
        None,
        date(2000, 6, 15),
        23,
        "2348012345678",
        "female",
        ["user"],
        "Ikeja",
        "Lagos",
        "Lagos",
        CREATED,
        CREATED,
    )


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self._connection = connection

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def execute(self, query: str, params: tuple | None = None) -> None:
        self._connection.statements.append(" ".join(query.split()))

    def fetchall(self) -> list[tuple]:
        return list(self._connection.rows)

    def fetchone(self) -> tuple:
        return (self._connection.total,)


class FakeConnection:
    def __init__(self, rows: list[tuple], total: int) -> None:
        self.rows = rows
        self.total = total
        self.statements: list[str] = []
        self.commits = 0

    def cursor(self, row_factory=None) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1


class FakePool:
    def __init__(self, connection: FakeConnection) -> None:
        self._connection = connection

    @contextmanager
    def connection(self):
        yield self._connection


def test_list_page_reads_page_and_count_from_one_snapshot():
    connection = FakeConnection([_row("ada@example.com"), _row("bola@example.com")], total=7)
    repository = PostgresUserRepository(FakePool(connection))

    items, total = repository.list_page(2, 2)

    assert connection.statements[0] == "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ"
    assert connection.statements[1].startswith("SELECT")
    assert "LIMIT %s OFFSET %s" in connection.statements[1]
    assert connection.statements[2] == "SELECT count(*) FROM users"
    assert connection.commits == 1
    assert total == 7
    assert [user.email for user in items] == ["ada@example.com", "bola@example.com"]
    assert items[0].gender is Gender.female
    assert items[0].roles == [UserRole.user]
    assert items[0].address.city == "Lagos"
