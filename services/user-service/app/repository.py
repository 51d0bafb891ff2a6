"""Postgres repository for user records."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool, PoolTimeout

from .domain.errors import DuplicateEmailError, StoreUnavailableError
from .domain.user import Address, CityStat, Gender, User, UserRole, UserSummary

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, email, first_name, last_name, user_name, dob, age, phone_number, gender, roles,
    address_lga, address_city, address_state, created_at, updated_at
"""

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id uuid PRIMARY KEY,
        email text NOT NULL,
        first_name text NOT NULL,
        last_name text NOT NULL,
        user_name text,
        dob date NOT NULL,
        age integer,
        phone_number text,
        gender text NOT NULL DEFAULT 'other',
        roles text[] NOT NULL DEFAULT ARRAY['user'],
        address_lga text,
        address_city text,
        address_state text,
        created_at timestamptz NOT NULL,
        updated_at timestamptz NOT NULL
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS users_email_key ON users (email)",
    "CREATE INDEX IF NOT EXISTS users_created_at_id_idx ON users (created_at, id)",
)


class PostgresUserRepository:
    """Postgres-backed user persistence.

    Email uniqueness is enforced by the ``users_email_key`` unique index, so two
    concurrent inserts for the same address cannot both succeed. Listings are
    ordered by ``(created_at, id)``.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        """Borrow a pooled connection, translating backend outages into ``StoreUnavailableError``."""
        try:
            with self._pool.connection() as conn:
                yield conn
        except (PoolTimeout, psycopg.OperationalError) as exc:
            logger.error("user store unavailable: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc

    def ensure_schema(self) -> None:
        """Create the ``users`` table and its indexes when they do not exist yet."""
        with self._connection() as conn:
            with conn.cursor() as cur:
                for statement in _SCHEMA:
                    cur.execute(statement)
            conn.commit()

    def find_by_email(self, email: str) -> User | None:
        """Return the user registered with exactly ``email``, if any."""
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email = %s", (email,))
                row = cur.fetchone()
        return self._map_record(row) if row else None

    def find_by_id(self, user_id: uuid.UUID) -> User | None:
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM users WHERE id = %s", (user_id,))
                row = cur.fetchone()
        return self._map_record(row) if row else None

    def insert(self, user: User) -> User:
        """Persist a new user and return it with its id and timestamps assigned."""
        now = datetime.now(timezone.utc)
        try:
            with self._connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO users (
                            id, email, first_name, last_name, user_name, dob, age, phone_number,
                            gender, roles, address_lga, address_city, address_state,
                            created_at, updated_at
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            uuid.uuid4(),
                            user.email,
                            user.first_name,
                            user.last_name,
                            user.user_name,
                            user.dob,
                            user.age,
                            user.phone_number,
                            user.gender.value,
                            [role.value for role in user.roles],
                            user.address.lga,
                            user.address.city,
                            user.address.state,
                            now,
                            now,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except UniqueViolation as exc:
            raise DuplicateEmailError(user.email) from exc
        return self._map_record(row)

    def update(self, user: User) -> User | None:
        """Write the mutable fields of ``user``; ``None`` when the record no longer exists."""
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE users
                    SET first_name = %s,
                        last_name = %s,
                        user_name = %s,
                        phone_number = %s,
                        gender = %s,
                        address_lga = %s,
                        address_city = %s,
                        address_state = %s,
                        age = %s,
                        updated_at = GREATEST(updated_at, %s)
                    WHERE id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (
                        user.first_name,
                        user.last_name,
                        user.user_name,
                        user.phone_number,
                        user.gender.value,
                        user.address.lga,
                        user.address.city,
                        user.address.state,
                        user.age,
                        datetime.now(timezone.utc),
                        user.user_id,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        return self._map_record(row) if row else None

    def delete(self, user_id: uuid.UUID) -> User | None:
        """Remove a user and return the row as it was before deletion."""
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"DELETE FROM users WHERE id = %s RETURNING {_COLUMNS}", (user_id,))
                row = cur.fetchone()
            conn.commit()
        return self._map_record(row) if row else None

    def list_page(self, page: int, page_size: int) -> tuple[list[User], int]:
        """Return the requested page and the total number of users.

        Both queries run in one ``REPEATABLE READ`` transaction, so the count
        and the page come from the same snapshot.
        """
        offset = (page - 1) * page_size
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM users
                    ORDER BY created_at, id
                    LIMIT %s OFFSET %s
                    """,
                    (page_size, offset),
                )
                items = [self._map_record(row) for row in cur.fetchall()]
                cur.execute("SELECT count(*) FROM users")
                (total,) = cur.fetchone()
            conn.commit()
        return items, total

    def aggregate_by_city(self) -> list[CityStat]:
        """Group users by city in the database and rank the groups by size.

        City names are compared with the ``C`` collation so the tie-break matches the
        code-point ordering used by the in-memory report.
        """
        with self._connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    """
                    SELECT address_city,
                           AVG(age)::float8 AS average_age,
                           COUNT(*) AS total_users,
                           json_agg(
                               json_build_object(
                                   'full_name', first_name || ' ' || last_name,
                                   'city', address_city,
                                   'gender', gender,
                                   'age', age
                               )
                               ORDER BY created_at, id
                           ) AS users
                    FROM users
                    GROUP BY address_city
                    ORDER BY total_users DESC, address_city COLLATE "C" ASC NULLS LAST
                    """
                )
                rows = cur.fetchall()
        return [
            CityStat(
                city=row[0],
                average_age=row[1],
                total_users=row[2],
                users=[self._map_summary(item) for item in row[3]],
            )
            for row in rows
        ]

    def _map_summary(self, item: dict[str, Any]) -> UserSummary:
        return UserSummary(
            full_name=item["full_name"],
            city=item["city"],
            gender=Gender(item["gender"]),
            age=item["age"],
        )

    def _map_record(self, row: tuple) -> User:
        """Convert a raw database tuple into the domain ``User`` dataclass."""
        return User(
            user_id=row[0],
            email=row[1],
            first_name=row[2],
            last_name=row[3],
            user_name=row[4],
            dob=row[5],
            age=row[6],
            phone_number=row[7],
            gender=Gender(row[8]),
            roles=[UserRole(role) for role in row[9] or []],
            address=Address(lga=row[10], city=row[11], state=row[12]),
            created_at=row[13],
            updated_at=row[14],
        )
