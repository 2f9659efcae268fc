"""Retry of reservation transactions that hit transient database failures."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from .config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes for serialization failure and deadlock
_RETRYABLE_SQLSTATES = {"40001", "40P01"}
_RETRYABLE_MESSAGES = ("database is locked", "deadlock detected", "could not serialize access")


def is_transient_db_error(exc: BaseException) -> bool:
    """Return True for database errors that succeed when the transaction is replayed."""
    if not isinstance(exc, DBAPIError):
        return False

    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True

    if isinstance(exc, OperationalError):
        message = str(exc.orig).lower()
        return any(fragment in message for fragment in _RETRYABLE_MESSAGES)

    return False


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    attempts: int | None = None,
    base_delay: float | None = None,
) -> T:
    """
    Run ``operation`` and replay it on transient database failures.

    The operation must roll back its own transaction on failure so every
    attempt starts from a clean session. Domain errors propagate immediately.

    Args:
        operation: Zero-argument coroutine factory performing one full transaction
        name: Operation name for logging
        attempts: Maximum attempts (defaults to settings)
        base_delay: Initial backoff in seconds, doubled per attempt (defaults to settings)

    Returns:
        The operation's result
    """
    max_attempts = attempts or settings.transaction_retry_attempts
    delay = settings.transaction_retry_base_delay if base_delay is None else base_delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except DBAPIError as e:
            if not is_transient_db_error(e) or attempt == max_attempts:
                raise

            backoff = delay * (2 ** (attempt - 1))
            logger.warning(
                "Transient database failure, retrying transaction",
                extra={
                    "operation": name,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "backoff_seconds": backoff,
                    "error": str(e.orig),
                }
            )
            await asyncio.sleep(backoff)

    # Unreachable: the loop either returns or raises on the last attempt
    raise RuntimeError(f"{name}: retry loop exhausted")
