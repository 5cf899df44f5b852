from datetime import date
from fastapi import status

from app.models.room import Room
from app.models.status import BookingStatus
from tests.conf_tests import (
    add_booking,
    admin_headers,
    auth_headers,
    clear_db,
    client,
    future_day,
    test_db,
    test_room,
)

NEW_ROOM = {
    "name": "Meeting Room",
    "description": "Ground floor, garden side",
    "capacity": 5,
    "price_per_hour": 30,
    "equipment": ["screen"],
}


# Public listing
def test_get_rooms_with_data(test_room, test_db):
    test_db.add(Room(name="Old Room", capacity=4, price_per_hour=10, is_active=False))
    test_db.commit()

    response = client.get("/rooms/")
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["id"] == test_room.id
    assert body["data"][0]["name"] == test_room.name
    assert body["data"][0]["equipment"] == ["projector", "whiteboard"]


def test_get_rooms_empty():
    response = client.get("/rooms/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == []


def test_get_room_success(test_room):
    response = client.get(f"/rooms/{test_room.id}")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["id"] == test_room.id
    assert data["capacity"] == test_room.capacity
    assert data["price_per_hour"] == 50
    assert data["available_slots"][0]["date"] == date.today().isoformat()


def test_get_room_hides_booked_hours(test_room, test_db):
    day = future_day(1)
    add_booking(test_db, test_room, day, "09:00", "11:00")
    add_booking(test_db, test_room, day, "14:00", "15:00", status=BookingStatus.CANCELLED_BY_USER)

    response = client.get(f"/rooms/{test_room.id}")
    slots = {d["date"]: d["slots"] for d in response.json()["data"]["available_slots"]}
    assert slots[day.isoformat()] == ["11:00", "12:00", "14:00", "15:00", "16:00", "17:00"]


def test_get_room_not_found():
    response = client.get("/rooms/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"]["code"] == "ROOM_NOT_FOUND"


def test_get_inactive_room(test_room, test_db):
    test_room.is_active = False
    test_db.commit()
    response = client.get(f"/rooms/{test_room.id}")
    assert response.status_code == status.HTTP_404_NOT_FOUND


# Administration
def test_create_room_unauthorized():
    response = client.post("/admin/rooms", json=NEW_ROOM)
    assert response.status_code in [
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
    ]


def test_create_room_forbidden_for_users(auth_headers):
    response = client.post("/admin/rooms", json=NEW_ROOM, headers=auth_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_create_room_success(admin_headers):
    response = client.post("/admin/rooms", json=NEW_ROOM, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["name"] == NEW_ROOM["name"]
    assert data["is_active"] is True

    assert client.get(f"/rooms/{data['id']}").status_code == status.HTTP_200_OK


def test_create_room_invalid(admin_headers):
    response = client.post(
        "/admin/rooms", json={**NEW_ROOM, "capacity": 0}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_update_room(admin_headers, test_room):
    response = client.put(
        f"/admin/rooms/{test_room.id}",
        json={"name": "Updated Name", "price_per_hour": 80},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["name"] == "Updated Name"
    assert data["price_per_hour"] == 80
    assert data["capacity"] == test_room.capacity


def test_update_room_not_found(admin_headers):
    response = client.put("/admin/rooms/9999", json={"name": "Nope"}, headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_deactivate_room(admin_headers, test_room):
    response = client.delete(f"/admin/rooms/{test_room.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["is_active"] is False
    assert client.get("/rooms/").json()["data"] == []


def test_deactivate_room_with_future_bookings(admin_headers, test_room, test_db):
    add_booking(test_db, test_room, future_day(3), "09:00", "10:00")
    response = client.delete(f"/admin/rooms/{test_room.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "HAS_FUTURE_BOOKINGS"


def test_deactivate_room_ignores_released_bookings(admin_headers, test_room, test_db):
    add_booking(test_db, test_room, future_day(3), "09:00", "10:00", status=BookingStatus.CANCELLED_BY_USER)
    response = client.delete(f"/admin/rooms/{test_room.id}", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK


def test_purge_room(admin_headers, test_room, test_db):
    room_id = test_room.id
    response = client.delete(f"/admin/rooms/{test_room.id}/purge", headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "ROOM_ACTIVE"

    client.delete(f"/admin/rooms/{test_room.id}", headers=admin_headers)
    response = client.delete(f"/admin/rooms/{test_room.id}/purge", headers=admin_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    test_db.expire_all()
    assert test_db.get(Room, room_id) is None


def test_purge_room_with_history(admin_headers, test_room, test_db):
    add_booking(test_db, test_room, future_day(3), "09:00", "10:00", status=BookingStatus.REFUNDED)
    client.delete(f"/admin/rooms/{test_room.id}", headers=admin_headers)
    response = client.delete(f"/admin/rooms/{test_room.id}/purge", headers=admin_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"]["code"] == "ROOM_HAS_BOOKINGS"
