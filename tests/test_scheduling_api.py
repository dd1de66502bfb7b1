# tests/test_scheduling_api.py
from http import HTTPStatus

import pytest

from conftest import FakeMeetingProvider

MONDAY = "2025-09-08"
SUNDAY = "2025-09-07"


def _booking_payload(**overrides):
    payload = {
        "selectedDate": MONDAY,
        "selectedTime": "2:00 PM",
        "userDetails": {
            "firstName": "Monday",
            "lastName": "Test",
            "email": "monday.test@example.com",
            "companyName": "Test Company",
            "revenue": "500,000 - 1M",
        },
        "guestEmails": ["jane.doe@example.com"],
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("time_input", ["14:00", "2:00 PM"])
def test_check_availability_accepts_both_formats(client, time_input):
    resp = client.get("/api/check-availability", params={"date": MONDAY, "time": time_input})

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["available"] is True
    assert data["reason"] == "Available"
    assert data["time"] == "14:00"
    assert data["displayTime"] == "2:00 PM"
    assert data["dayOfWeek"] == "Monday"
    assert data["isWeekday"] is True
    assert data["isBusinessHours"] is True
    assert data["isFuture"] is True
    assert data["isBooked"] is False


def test_check_availability_on_weekend(client):
    resp = client.get("/api/check-availability", params={"date": SUNDAY, "time": "10:00"})

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["available"] is False
    assert data["reason"] == "Not a weekday"
    assert data["message"] == "Meetings are only available Monday to Friday."


def test_check_availability_invalid_time(client):
    resp = client.get("/api/check-availability", params={"date": MONDAY, "time": "25:99"})

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "InvalidTimeFormat"


def test_check_availability_missing_params(client):
    resp = client.get("/api/check-availability", params={"date": MONDAY})

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "Missing or invalid fields"
    assert body["details"]


def test_available_slots_for_weekday(client):
    resp = client.get("/api/available-slots", params={"date": MONDAY})

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["dayOfWeek"] == "Monday"
    assert data["totalSlots"] == 18
    assert data["availableSlots"] == 18
    assert data["timezone"] == "Asia/Calcutta (GMT+5:30)"
    assert data["slots"][0] == {
        "time": "09:00",
        "displayTime": "9:00 AM",
        "available": True,
        "reason": "Available",
    }


def test_available_slots_on_sunday_is_empty(client):
    resp = client.get("/api/available-slots", params={"date": SUNDAY})

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["slots"] == []
    assert data["available"] is False


def test_booking_flow_end_to_end(client, meeting_provider, mail_transport):
    resp = client.post("/api/schedule-discovery-call", json=_booking_payload())

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["success"] is True
    assert data["meeting"]["id"] == "meeting-1"
    assert data["meeting"]["joinUrl"] == "https://teams.example.com/join/abc"
    assert data["emailSent"] is True
    assert [r["type"] for r in data["emailResults"]] == [
        "confirmation",
        "confirmation",
        "organizer_notification",
        "admin_notification",
    ]
    assert len(mail_transport.sent) == 4

    # The slot now shows as booked everywhere.
    booked = client.get("/api/booked-slots", params={"date": MONDAY}).json()
    assert booked["totalBooked"] == 1
    assert booked["bookedSlots"] == [{"time": "14:00", "displayTime": "2:00 PM", "booked": True}]

    check = client.get("/api/check-availability", params={"date": MONDAY, "time": "14:00"}).json()
    assert check["available"] is False
    assert check["reason"] == "Already booked"

    slots = client.get("/api/available-slots", params={"date": MONDAY}).json()
    assert slots["availableSlots"] == 17

    # Second booking for the same slot is rejected without a new meeting.
    again = client.post("/api/schedule-discovery-call", json=_booking_payload(selectedTime="14:00"))
    assert again.status_code == HTTPStatus.BAD_REQUEST
    assert again.json()["error"] == "SlotAlreadyBooked"
    assert len(meeting_provider.calls) == 1


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"selectedDate": SUNDAY}, "NotAWeekday"),
        ({"selectedTime": "7:00 PM"}, "OutsideBusinessHours"),
        ({"selectedDate": "2025-08-29", "selectedTime": "10:00"}, "PastTimeSlot"),
        ({"selectedTime": "noonish"}, "InvalidTimeFormat"),
        ({"selectedTime": "9:15 AM"}, "InvalidTimeFormat"),
    ],
)
def test_booking_rejections(client, meeting_provider, overrides, error):
    resp = client.post("/api/schedule-discovery-call", json=_booking_payload(**overrides))

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == error
    assert meeting_provider.calls == []


@pytest.mark.parametrize("missing", ["selectedDate", "selectedTime", "userDetails"])
def test_booking_missing_fields(client, missing):
    payload = _booking_payload()
    payload.pop(missing)

    resp = client.post("/api/schedule-discovery-call", json=payload)

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json()["error"] == "Missing or invalid fields"


def test_booking_invalid_email(client):
    payload = _booking_payload(guestEmails=["not-an-email"])

    resp = client.post("/api/schedule-discovery-call", json=payload)

    assert resp.status_code == HTTPStatus.BAD_REQUEST


@pytest.mark.parametrize("meeting_provider", [FakeMeetingProvider(fail=True)])
def test_booking_meeting_failure_returns_500(client, meeting_provider):
    resp = client.post("/api/schedule-discovery-call", json=_booking_payload())

    assert resp.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert resp.json()["error"] == "MeetingCreationFailed"

    booked = client.get("/api/booked-slots", params={"date": MONDAY}).json()
    assert booked["totalBooked"] == 0


def test_create_meeting_endpoint(client, meeting_provider, mail_transport):
    resp = client.post(
        "/api/create-meeting",
        json={
            "subject": "Follow-up",
            "startTime": "2025-09-06T10:00:00+05:30",
            "endTime": "2025-09-06T11:00:00+05:30",
            "attendees": ["a.person@example.com", "b.person@example.com"],
        },
    )

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["success"] is True
    assert len(data["emailResults"]) == 2
    assert meeting_provider.calls[0]["subject"] == "Follow-up"
    assert client.get("/api/booked-slots", params={"date": "2025-09-06"}).json()["totalBooked"] == 0


def test_create_meeting_rejects_end_before_start(client):
    resp = client.post(
        "/api/create-meeting",
        json={
            "subject": "Backwards",
            "startTime": "2025-09-06T11:00:00+05:30",
            "endTime": "2025-09-06T10:00:00+05:30",
            "attendees": ["a.person@example.com"],
        },
    )

    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_check_availability_rejects_time_off_the_slot_grid(client):
    resp = client.get("/api/check-availability", params={"date": MONDAY, "time": "9:15 AM"})

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.json()["error"] == "InvalidTimeFormat"
