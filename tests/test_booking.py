import pytest
from fastapi import status

from app.models.booking import Booking
from app.models.status import BookingStatus

from tests.conf_tests import (
    add_booking,
    admin_headers,
    auth_headers,
    clear_db,
    client,
    future_day,
    other_headers,
    test_db,
    test_room,
)

BOOKING_DAY = future_day(5)


def booking_payload(room_id, start="09:00", end="12:00", **overrides):
    data = {
        "room_id": room_id,
        "date": BOOKING_DAY.isoformat(),
        "start_time": start,
        "end_time": end,
        "customer_name": "Ada Lovelace",
        "customer_email": "ada@example.com",
        "customer_phone": "+33 1 23 45 67 89",
        "number_of_people": 6,
    }
    data.update(overrides)
    return data


@pytest.fixture
def test_booking(test_db, test_room):  # pylint: disable=redefined-outer-name
    return add_booking(test_db, test_room, BOOKING_DAY, "14:00", "16:00")


# Tests
# pylint: disable-next=redefined-outer-name
def test_create_booking_success(auth_headers, test_room):
    response = client.post("/bookings/", json=booking_payload(test_room.id), headers=auth_headers)
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["room_id"] == test_room.id
    assert data["user_id"] == "user_1"
    assert data["date"] == BOOKING_DAY.isoformat()
    assert data["start_time"] == "09:00"
    assert data["end_time"] == "12:00"
    assert data["total_price"] == 150
    assert data["status"] == BookingStatus.PENDING_PAYMENT.value


# pylint: disable-next=redefined-outer-name
def test_create_booking_normalises_times(auth_headers, test_room):
    response = client.post(
        "/bookings/", json=booking_payload(test_room.id, "9:00", "10:30"), headers=auth_headers
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["start_time"] == "09:00"
    # minutes are not billed
    assert data["total_price"] == 50


# pylint: disable-next=redefined-outer-name
def test_create_booking_unauthorized(test_room):
    response = client.post("/bookings/", json=booking_payload(test_room.id))
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]
    assert response.json()["success"] is False


# pylint: disable-next=redefined-outer-name
def test_create_booking_invalid_token(test_room):
    response = client.post(
        "/bookings/",
        json=booking_payload(test_room.id),
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


# pylint: disable-next=redefined-outer-name
@pytest.mark.parametrize("start,end", [("25:00", "26:00"), ("9am", "10:00"), ("12:60", "13:00")])
def test_create_booking_invalid_time(auth_headers, test_room, start, end):
    response = client.post(
        "/bookings/", json=booking_payload(test_room.id, start, end), headers=auth_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "Invalid time format" in error["message"]


# pylint: disable-next=redefined-outer-name
@pytest.mark.parametrize("start,end", [("12:00", "12:00"), ("13:00", "09:00")])
def test_create_booking_end_before_start(auth_headers, test_room, start, end):
    response = client.post(
        "/bookings/", json=booking_payload(test_room.id, start, end), headers=auth_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "End time must be after start time" in response.json()["error"]["message"]


# pylint: disable-next=redefined-outer-name
def test_create_booking_invalid_email(auth_headers, test_room):
    response = client.post(
        "/bookings/",
        json=booking_payload(test_room.id, customer_email="not-an-email"),
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["details"][0]["field"] == "customer_email"


# pylint: disable-next=redefined-outer-name
def test_create_booking_room_not_found(auth_headers):
    response = client.post("/bookings/", json=booking_payload(999), headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "ROOM_NOT_FOUND"


# pylint: disable-next=redefined-outer-name
def test_create_booking_insufficient_capacity(auth_headers, test_room):
    response = client.post(
        "/bookings/",
        json=booking_payload(test_room.id, number_of_people=20),  # More than test room capacity
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "capacity insufficient" in response.json()["error"]["message"]


# pylint: disable-next=redefined-outer-name
def test_create_booking_overlapping(auth_headers, test_room, test_booking):
    response = client.post(
        "/bookings/",
        json=booking_payload(test_room.id, "15:00", "17:00"),  # Overlaps 14:00-16:00
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    error = response.json()["error"]
    assert error["code"] == "TIME_CONFLICT"
    assert "already booked" in error["message"]


# pylint: disable-next=redefined-outer-name
def test_create_booking_adjacent_is_allowed(auth_headers, test_room, test_booking):
    response = client.post(
        "/bookings/", json=booking_payload(test_room.id, "16:00", "17:00"), headers=auth_headers
    )
    assert response.status_code == status.HTTP_201_CREATED


# pylint: disable-next=redefined-outer-name
def test_get_my_bookings(auth_headers, other_headers, test_room, test_booking, test_db):
    add_booking(test_db, test_room, BOOKING_DAY, "09:00", "10:00", user_id="user_2")

    response = client.get("/bookings/me", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["id"] == test_booking.id

    response = client.get("/bookings/me", headers=other_headers)
    assert len(response.json()["data"]) == 1


# pylint: disable-next=redefined-outer-name
def test_get_booking(auth_headers, test_booking):
    response = client.get(f"/bookings/{test_booking.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["id"] == test_booking.id


# pylint: disable-next=redefined-outer-name
def test_get_booking_of_other_user(other_headers, admin_headers, test_booking):
    response = client.get(f"/bookings/{test_booking.id}", headers=other_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = client.get(f"/bookings/{test_booking.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK


# pylint: disable-next=redefined-outer-name
def test_get_booking_not_found(auth_headers):
    response = client.get("/bookings/999", headers=auth_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "BOOKING_NOT_FOUND"


# pylint: disable-next=redefined-outer-name
def test_update_booking(auth_headers, test_booking):
    response = client.put(
        f"/bookings/{test_booking.id}",
        json={"start_time": "09:00", "end_time": "13:00"},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["status"] == BookingStatus.MODIFIED.value
    assert data["total_price"] == 200


# pylint: disable-next=redefined-outer-name
def test_update_booking_conflict(auth_headers, test_room, test_booking, test_db):
    add_booking(test_db, test_room, BOOKING_DAY, "09:00", "10:00", user_id="user_2")
    response = client.put(
        f"/bookings/{test_booking.id}",
        json={"start_time": "09:30", "end_time": "11:00"},
        headers=auth_headers,
    )
    assert response.status_code == status.HTTP_409_CONFLICT


# pylint: disable-next=redefined-outer-name
def test_update_booking_unauthorized(test_booking):
    response = client.put(f"/bookings/{test_booking.id}", json={"number_of_people": 2})
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


# pylint: disable-next=redefined-outer-name
def test_update_completed_booking(auth_headers, test_room, test_db):
    booking = add_booking(test_db, test_room, BOOKING_DAY, "09:00", "10:00", status=BookingStatus.COMPLETED)
    response = client.put(f"/bookings/{booking.id}", json={"number_of_people": 2}, headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "BOOKING_NOT_MODIFIABLE"


# pylint: disable-next=redefined-outer-name
def test_cancel_booking(auth_headers, test_booking, test_db):
    response = client.delete(f"/bookings/{test_booking.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["status"] == BookingStatus.CANCELLED_BY_USER.value

    stored = test_db.get(Booking, test_booking.id)
    test_db.refresh(stored)
    assert stored.cancelled_at is not None

    response = client.delete(f"/bookings/{test_booking.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "BOOKING_ALREADY_CANCELLED"


# pylint: disable-next=redefined-outer-name
def test_cancel_completed_booking(auth_headers, test_room, test_db):
    booking = add_booking(test_db, test_room, BOOKING_DAY, "09:00", "10:00", status=BookingStatus.COMPLETED)
    response = client.delete(f"/bookings/{booking.id}", headers=auth_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "BOOKING_COMPLETED"


# pylint: disable-next=redefined-outer-name
def test_cancel_someone_elses_booking(other_headers, test_booking):
    response = client.delete(f"/bookings/{test_booking.id}", headers=other_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_unknown_route_uses_error_envelope():
    response = client.get("/nowhere")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "error": {"code": "NOT_FOUND", "message": "Not Found"}}


def test_health():
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"
