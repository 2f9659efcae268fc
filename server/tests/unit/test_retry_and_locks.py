"""Unit tests for transaction retry and per-train locking."""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from rail_reservation.core.exceptions import InsufficientCapacityError
from rail_reservation.core.locks import train_lock, train_locks
from rail_reservation.core.retry import is_transient_db_error, run_with_retry


def _locked() -> OperationalError:
    return OperationalError("UPDATE trains", {}, Exception("database is locked"))


def test_transient_error_detection():
    assert is_transient_db_error(_locked())
    assert not is_transient_db_error(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))
    assert not is_transient_db_error(ValueError("not a database error"))


@pytest.mark.asyncio
async def test_retry_replays_transient_failures():
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) < 3:
            raise _locked()
        return "done"

    assert await run_with_retry(operation, name="test", attempts=5, base_delay=0) == "done"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_retry_gives_up_after_attempts():
    calls = []

    async def operation():
        calls.append(1)
        raise _locked()

    with pytest.raises(OperationalError):
        await run_with_retry(operation, name="test", attempts=2, base_delay=0)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_domain_errors_are_not_retried():
    calls = []

    async def operation():
        calls.append(1)
        raise InsufficientCapacityError(train_id="t", requested_seats=1, available_seats=0)

    with pytest.raises(InsufficientCapacityError):
        await run_with_retry(operation, name="test", attempts=5, base_delay=0)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_train_lock_serializes_same_train(test_session):
    train_id = uuid4()
    events = []

    async def critical(tag: str):
        async with train_lock(test_session, train_id):
            events.append(f"{tag}-in")
            await asyncio.sleep(0.01)
            events.append(f"{tag}-out")

    await asyncio.gather(critical("a"), critical("b"))

    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert len(train_locks) == 1


@pytest.mark.asyncio
async def test_train_lock_is_per_train(test_session):
    assert train_locks.get(uuid4()) is not train_locks.get(uuid4())
