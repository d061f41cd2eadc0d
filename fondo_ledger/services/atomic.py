"""Optimistic read-compute-write units with bounded retry"""

import logging
import time
from typing import Callable, TypeVar

from fondo_ledger.domain.exceptions import ConcurrencyConflictError, StaleVersionError
from fondo_ledger.infrastructure.observability.metrics import concurrency_conflict_counter, concurrency_retry_counter

T = TypeVar("T")


def run_atomic(
    operation: Callable[[], T],
    rollback: Callable[[], None],
    max_attempts: int = 3,
    backoff_seconds: float = 0.0,
    name: str = "operation",
) -> T:
    """
    Run operation until its write lands without a version conflict.

    The operation must re-read everything it needs on each call; the store
    raises StaleVersionError when another writer committed in between.

    Retry strategy:
    - Up to max_attempts calls in total
    - Linear backoff (backoff_seconds * attempt) between attempts
    - Business errors are rolled back and re-raised immediately

    Raises:
        ConcurrencyConflictError: conflict persisted through every attempt
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except StaleVersionError:
            rollback()
            if attempt >= max_attempts:
                concurrency_conflict_counter.labels(operation=name).inc()
                logging.error(
                    "Concurrency conflict not resolved",
                    extra={"operation": name, "attempts": attempt},
                )
                raise ConcurrencyConflictError(attempt)

            concurrency_retry_counter.labels(operation=name).inc()
            logging.warning(
                "Stale write, retrying",
                extra={"operation": name, "attempt": attempt},
            )
            if backoff_seconds > 0:
                time.sleep(backoff_seconds * attempt)
        except Exception:
            rollback()
            raise
