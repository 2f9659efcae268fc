"""Unit tests for the train catalogue service."""

from datetime import time
from uuid import uuid4

import pytest

from conftest import train_request
from rail_reservation.core.exceptions import ConflictError, NotFoundError
from rail_reservation.schemas.train import SearchTrainsRequest
from rail_reservation.services.inventory_service import InventoryLedger
from rail_reservation.services.train_service import TrainService


@pytest.mark.asyncio
async def test_create_train_starts_with_all_seats_available(test_session):
    train = await TrainService(test_session).create_train(train_request(total_seats=50))

    assert train.total_seats == 50
    assert train.available_seats == 50
    assert train.occupancy_percent == 0


@pytest.mark.asyncio
async def test_duplicate_train_number_conflicts(test_session):
    service = TrainService(test_session)
    await service.create_train(train_request(train_number="12951"))

    with pytest.raises(ConflictError):
        await service.create_train(train_request(train_number="12951"))


@pytest.mark.asyncio
async def test_list_trains_ordered_by_departure(test_session, make_train):
    late = await make_train(departure_time=time(10, 0), arrival_time=time(15, 0))
    early = await make_train(departure_time=time(8, 0))

    trains = await TrainService(test_session).list_trains()

    assert [train.id for train in trains] == [early.id, late.id]


@pytest.mark.asyncio
async def test_search_is_case_insensitive_substring(test_session, make_train):
    mumbai = await make_train(destination_station="Mumbai Central")
    await make_train(source_station="Howrah", destination_station="New Delhi")
    service = TrainService(test_session)

    found = await service.search_trains(SearchTrainsRequest(from_station="delhi", to_station="MUMBAI"))

    assert [train.id for train in found] == [mumbai.id]


@pytest.mark.asyncio
async def test_search_with_empty_filters_returns_all(test_session, make_train):
    await make_train()
    await make_train(source_station="Howrah")

    found = await TrainService(test_session).search_trains(SearchTrainsRequest())

    assert len(found) == 2


@pytest.mark.asyncio
async def test_search_escapes_like_wildcards(test_session, make_train):
    await make_train(source_station="New Delhi")

    found = await TrainService(test_session).search_trains(SearchTrainsRequest(from_station="%"))

    assert found == []


@pytest.mark.asyncio
async def test_train_details_reflect_bookings(test_session, make_train):
    train = await make_train(total_seats=4)
    await InventoryLedger(test_session).try_decrement(train.id, 1)
    await test_session.commit()

    details = await TrainService(test_session).get_train_details(train.id)

    assert details.available_seats == 3
    assert details.occupancy_percent == 25


@pytest.mark.asyncio
async def test_get_unknown_train(test_session):
    with pytest.raises(NotFoundError):
        await TrainService(test_session).get_train_details(uuid4())
