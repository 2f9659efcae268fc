"""API tests for the booking, train and legacy endpoints."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from conftest import make_token


async def _create(client, headers, train_id, data):
    return await client.post(
        "/v1/booking/create",
        json={"train_id": str(train_id), **data},
        headers=headers
    )


@pytest.mark.asyncio
async def test_booking_requires_authentication(test_client, make_train, sample_booking_data):
    train = await make_train()

    response = await _create(test_client, {}, train.id, sample_booking_data)

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_booking_rejects_token_with_wrong_secret(test_client, make_train, sample_booking_data):
    import jwt

    train = await make_train()
    token = jwt.encode({"sub": "user-1"}, "not-the-secret", algorithm="HS256")

    response = await _create(test_client, {"Authorization": f"Bearer {token}"}, train.id, sample_booking_data)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_request_validation_lists_violations(test_client, user_headers, make_train, sample_booking_data):
    train = await make_train()

    response = await _create(
        test_client, user_headers, train.id, {**sample_booking_data, "passenger_age": 0}
    )

    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert any(v["path"].endswith("passenger_age") for v in data["violations"])


@pytest.mark.asyncio
async def test_past_travel_date_is_a_validation_error(test_client, user_headers, make_train, sample_booking_data):
    train = await make_train()
    yesterday = (date.today() - timedelta(days=2)).isoformat()

    response = await _create(
        test_client, user_headers, train.id, {**sample_booking_data, "travel_date": yesterday}
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_create_and_cancel_flow(test_client, user_headers, make_train, sample_booking_data):
    train = await make_train(total_seats=1)
    train_id = train.id

    response = await _create(test_client, user_headers, train_id, sample_booking_data)
    assert response.status_code == 200
    data = response.json()
    booking_id = data["booking"]["id"]
    assert data["booking"]["status"] == "confirmed"
    assert data["booking"]["seat_number"] == "S1"
    assert data["capacity"] == {"total": 1, "available": 0}

    response = await _create(test_client, user_headers, train_id, sample_booking_data)
    assert response.status_code == 409
    assert response.json()["code"] == "INSUFFICIENT_CAPACITY"
    assert response.json()["retryable"] is False

    response = await test_client.post("/v1/booking/cancel", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "cancelled"
    assert response.json()["capacity"]["available"] == 1

    response = await test_client.post("/v1/booking/cancel", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"

    response = await test_client.post("/v1/train/capacity", json={"train_id": str(train_id)})
    assert response.json()["available"] == 1


@pytest.mark.asyncio
async def test_get_list_edit_and_delete(test_client, user_headers, other_user_headers, make_train, sample_booking_data):
    train = await make_train(total_seats=3)
    created = await _create(test_client, user_headers, train.id, sample_booking_data)
    booking_id = created.json()["booking"]["id"]

    response = await test_client.post("/v1/booking/get", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["train"]["train_number"] == train.train_number

    response = await test_client.post("/v1/booking/get", json={"booking_id": booking_id}, headers=other_user_headers)
    assert response.status_code == 403

    response = await test_client.post(
        "/v1/booking/edit",
        json={"booking_id": booking_id, "passenger_name": "Ravi Kumar", "passenger_gender": "male"},
        headers=user_headers
    )
    assert response.status_code == 200
    assert response.json()["booking"]["passenger_name"] == "Ravi Kumar"
    assert response.json()["booking"]["passenger_gender"] == "male"

    response = await test_client.post("/v1/booking/edit", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 422

    response = await test_client.post("/v1/booking/delete", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 409

    await test_client.post("/v1/booking/cancel", json={"booking_id": booking_id}, headers=user_headers)

    response = await test_client.post("/v1/booking/list", json={}, headers=user_headers)
    data = response.json()
    assert data["cancelled_count"] == 1
    assert data["confirmed_count"] == 0

    response = await test_client.post("/v1/booking/list", json={"status": "confirmed"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["items"] == []

    response = await test_client.post("/v1/booking/delete", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"booking_id": booking_id, "deleted": True}

    response = await test_client.post("/v1/booking/get", json={"booking_id": booking_id}, headers=user_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_booking_is_not_found(test_client, user_headers):
    response = await test_client.post(
        "/v1/booking/cancel", json={"booking_id": str(uuid4())}, headers=user_headers
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_train_catalogue(test_client, make_train):
    train = await make_train(total_seats=4, source_station="New Delhi", destination_station="Bhopal")
    await make_train(source_station="Howrah", destination_station="Patna")

    response = await test_client.post("/v1/train/list", json={})
    assert len(response.json()["items"]) == 2

    response = await test_client.post("/v1/train/search", json={"from_station": "new del", "to_station": "bho"})
    assert [item["id"] for item in response.json()["items"]] == [str(train.id)]

    response = await test_client.post("/v1/train/get", json={"train_id": str(train.id)})
    assert response.status_code == 200
    assert response.json()["occupancy_percent"] == 0

    response = await test_client.post("/v1/train/get", json={"train_id": str(uuid4())})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_train_requires_admin(test_client, user_headers, admin_headers):
    payload = {
        "train_number": "22691",
        "train_name": "Rajdhani Express",
        "source_station": "Bengaluru",
        "destination_station": "New Delhi",
        "departure_time": "20:00:00",
        "arrival_time": "05:30:00",
        "total_seats": 50,
        "price": "2100.00",
    }

    response = await test_client.post("/v1/train/create", json=payload, headers=user_headers)
    assert response.status_code == 403

    response = await test_client.post("/v1/train/create", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["available_seats"] == 50

    response = await test_client.post("/v1/train/create", json=payload, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_admin_role_from_app_metadata(test_client):
    token = make_token("admin-2", app_metadata={"roles": ["admin"]})

    response = await test_client.post(
        "/v1/train/reconcile", json={}, headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 200
    assert response.json() == {"checked": 0, "drifted": []}


@pytest.mark.asyncio
async def test_legacy_list_and_reserve(test_client, make_train):
    train = await make_train(total_seats=5, train_name="Shatabdi Express")

    response = await test_client.get("/api/trains")
    assert response.status_code == 200
    assert response.json() == [
        {"id": str(train.id), "name": "Shatabdi Express", "departure": "08:00", "arrival": "12:00", "seats": 5}
    ]

    response = await test_client.post(
        f"/api/trains/{train.id}/reserve", json={"name": "Group", "passengerCount": 3}
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Reservation successful!"}

    response = await test_client.post(
        f"/api/trains/{train.train_number}/reserve", json={"name": "Group", "passengerCount": 3}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Not enough seats available!"}

    response = await test_client.post("/api/trains/unknown/reserve", json={"name": "Solo", "passengerCount": 1})
    assert response.status_code == 404
    assert response.json() == {"error": "Train not found!"}

    response = await test_client.get("/api/trains")
    assert response.json()[0]["seats"] == 2


@pytest.mark.asyncio
async def test_legacy_large_group_gets_not_enough_seats(test_client, make_train):
    train = await make_train(total_seats=50)

    response = await test_client.post(
        f"/api/trains/{train.id}/reserve", json={"name": "School trip", "passengerCount": 120}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Not enough seats available!"}

    response = await test_client.get("/api/trains")
    assert response.json()[0]["seats"] == 50


@pytest.mark.asyncio
async def test_legacy_reservations_count_in_reconciliation(test_client, admin_headers, make_train):
    train = await make_train(total_seats=5)
    await test_client.post(f"/api/trains/{train.id}/reserve", json={"name": "Group", "passengerCount": 2})

    response = await test_client.post(
        "/v1/train/reconcile", json={"train_id": str(train.id)}, headers=admin_headers
    )

    assert response.json() == {"checked": 1, "drifted": []}
