"""Unit tests for the inventory ledger."""

from uuid import uuid4

import pytest
from sqlalchemy import update

from rail_reservation.core.exceptions import (
    CapacityOverflowError,
    InsufficientCapacityError,
    NotFoundError,
    ValidationError,
)
from rail_reservation.models import Reservation, Train
from rail_reservation.services.inventory_service import InventoryLedger


@pytest.mark.asyncio
async def test_get_capacity(test_session, make_train):
    train = await make_train(total_seats=5)

    capacity = await InventoryLedger(test_session).get_capacity(train.id)

    assert capacity.total == 5
    assert capacity.available == 5


@pytest.mark.asyncio
async def test_get_capacity_unknown_train(test_session):
    with pytest.raises(NotFoundError):
        await InventoryLedger(test_session).get_capacity(uuid4())


@pytest.mark.asyncio
async def test_try_decrement_takes_seats(test_session, make_train):
    train = await make_train(total_seats=5)
    ledger = InventoryLedger(test_session)

    capacity = await ledger.try_decrement(train.id, 3)
    await test_session.commit()

    assert capacity.available == 2
    assert (await ledger.get_capacity(train.id)).available == 2


@pytest.mark.asyncio
async def test_try_decrement_refuses_and_leaves_counter(test_session, make_train):
    train = await make_train(total_seats=2)
    ledger = InventoryLedger(test_session)

    with pytest.raises(InsufficientCapacityError) as exc_info:
        await ledger.try_decrement(train.id, 3)

    assert exc_info.value.available_seats == 2
    assert exc_info.value.status_code == 409
    assert exc_info.value.code == "INSUFFICIENT_CAPACITY"
    assert (await ledger.get_capacity(train.id)).available == 2


@pytest.mark.asyncio
async def test_try_decrement_unknown_train(test_session):
    with pytest.raises(NotFoundError):
        await InventoryLedger(test_session).try_decrement(uuid4(), 1)


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -1])
async def test_quantity_must_be_positive(test_session, make_train, quantity):
    train = await make_train(total_seats=2)
    ledger = InventoryLedger(test_session)

    with pytest.raises(ValidationError):
        await ledger.try_decrement(train.id, quantity)
    with pytest.raises(ValidationError):
        await ledger.increment(train.id, quantity)


@pytest.mark.asyncio
async def test_increment_after_decrement(test_session, make_train):
    train = await make_train(total_seats=2)
    ledger = InventoryLedger(test_session)

    await ledger.try_decrement(train.id, 2)
    capacity = await ledger.increment(train.id, 1)

    assert capacity.available == 1


@pytest.mark.asyncio
async def test_increment_never_exceeds_total(test_session, make_train):
    train = await make_train(total_seats=2)
    ledger = InventoryLedger(test_session)

    with pytest.raises(CapacityOverflowError) as exc_info:
        await ledger.increment(train.id, 1)

    assert exc_info.value.status_code == 500
    assert exc_info.value.code == "CAPACITY_OVERFLOW"
    assert (await ledger.get_capacity(train.id)).available == 2


@pytest.mark.asyncio
async def test_check_invariant_counts_bookings_and_reservations(test_session, make_train):
    train = await make_train(total_seats=10)
    ledger = InventoryLedger(test_session)

    await ledger.try_decrement(train.id, 3)
    test_session.add(Reservation(train_id=train.id, name="Walk-in", passenger_count=3))
    await test_session.commit()

    result = await ledger.check_invariant(train.id)

    assert result.expected_available == 7
    assert result.stored_available == 7
    assert result.consistent


@pytest.mark.asyncio
async def test_reconcile_reports_drift_without_repair(test_session, make_train):
    train = await make_train(total_seats=4)
    ledger = InventoryLedger(test_session)

    await test_session.execute(update(Train).where(Train.id == train.id).values(available_seats=1))
    await test_session.commit()

    result = await ledger.reconcile(train.id)

    assert result.drift == -3
    assert not result.repaired
    assert (await ledger.get_capacity(train.id)).available == 1


@pytest.mark.asyncio
async def test_reconcile_repairs_drift(test_session, make_train):
    train = await make_train(total_seats=4)
    ledger = InventoryLedger(test_session)

    await test_session.execute(update(Train).where(Train.id == train.id).values(available_seats=1))
    await test_session.commit()

    result = await ledger.reconcile(train.id, repair=True)

    assert result.repaired
    assert (await ledger.get_capacity(train.id)).available == 4


@pytest.mark.asyncio
async def test_reconcile_all(test_session, make_train):
    consistent = await make_train(total_seats=3)
    drifted = await make_train(total_seats=3)
    await test_session.execute(update(Train).where(Train.id == drifted.id).values(available_seats=0))
    await test_session.commit()

    result = await InventoryLedger(test_session).reconcile_all(repair=True)

    assert result.checked == 2
    assert [drift.train_id for drift in result.drifted] == [drifted.id]
    assert consistent.id not in {drift.train_id for drift in result.drifted}
