"""Prometheus instrumentation for user workflows."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter

from .domain.errors import StoreUnavailableError, UserServiceError

# Labels stay low-cardinality: operation name and outcome only, never ids or emails.
USER_OPERATIONS = Counter(
    "user_operations_total",
    "User lifecycle and reporting operations by outcome.",
    ["operation", "outcome"],
)


@contextmanager
def track_operation(operation: str) -> Iterator[None]:
    """Count one execution of ``operation`` under the outcome it ended with."""
    try:
        yield
    except UserServiceError as exc:
        USER_OPERATIONS.labels(operation=operation, outcome=exc.kind.value).inc()
        raise
    except StoreUnavailableError:
        USER_OPERATIONS.labels(operation=operation, outcome="store_unavailable").inc()
        raise
    USER_OPERATIONS.labels(operation=operation, outcome="ok").inc()
