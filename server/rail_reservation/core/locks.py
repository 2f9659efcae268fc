"""Per-train serialization of seat counter mutations."""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, DefaultDict
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class TrainLockRegistry:
    """
    Process-local registry of one asyncio lock per train.

    Holding the lock for a train serializes every reserve/cancel transaction on
    that train inside this process. Other processes are kept in line by the
    database: the PostgreSQL advisory lock taken in ``train_lock`` and the
    conditional counter updates of the inventory ledger.
    """

    def __init__(self) -> None:
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, train_id: UUID | str) -> asyncio.Lock:
        """Return the lock guarding the given train."""
        return self._locks[str(train_id)]

    def reset(self) -> None:
        """Drop all locks (locks bind to the running event loop on first contention)."""
        self._locks.clear()

    def __len__(self) -> int:
        return len(self._locks)


async def acquire_advisory_lock(db: AsyncSession, train_id: UUID | str) -> None:
    """
    Take a transaction-scoped PostgreSQL advisory lock for the train.

    The lock is released automatically when the transaction ends. Other
    dialects (SQLite in tests) rely on the process-local lock alone.
    """
    if db.bind is not None and db.bind.dialect.name == "postgresql":
        await db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:train_id))"),
            {"train_id": str(train_id)}
        )


@asynccontextmanager
async def train_lock(db: AsyncSession, train_id: UUID | str) -> AsyncIterator[None]:
    """Serialize the enclosed transaction against all other work on ``train_id``."""
    async with train_locks.get(train_id):
        await acquire_advisory_lock(db, train_id)
        logger.debug("Acquired train lock", extra={"train_id": str(train_id)})
        yield


# Global lock registry
train_locks = TrainLockRegistry()
