"""Tests for calendar slots, bookings and tuition sessions."""

from __future__ import annotations

from conftest import OTHER_TUTEE_ID, TUTEE_ID

SLOT = {"date": "2026-04-10", "startTime": "16:00", "endTime": "17:00"}


def _create_slot(admin_client, **overrides) -> dict:
    resp = admin_client.post("/api/calendar/slots", json={**SLOT, **overrides})
    assert resp.status_code == 201
    return resp.get_json()["slot"]


class TestSlots:
    def test_create_and_list_ordered(self, admin_client, tutee_client):
        _create_slot(admin_client, date="2026-04-12")
        _create_slot(admin_client)
        _create_slot(admin_client, startTime="09:00", endTime="10:00")
        _create_slot(admin_client, date="2026-04-11", eventType="exam", notes="Maths SATs")

        slots = tutee_client.get("/api/calendar/slots").get_json()["slots"]
        assert [(s["date"], s["startTime"]) for s in slots] == [
            ("2026-04-10", "09:00"), ("2026-04-10", "16:00"),
            ("2026-04-11", "16:00"), ("2026-04-12", "16:00"),
        ]
        assert slots[2]["eventType"] == "exam"

    def test_range_filter(self, admin_client):
        _create_slot(admin_client, date="2026-04-01")
        _create_slot(admin_client, date="2026-05-01")
        slots = admin_client.get("/api/calendar/slots?start=2026-04-15&end=2026-05-31").get_json()["slots"]
        assert [s["date"] for s in slots] == ["2026-05-01"]

    def test_seconds_are_dropped(self, admin_client):
        slot = _create_slot(admin_client, startTime="09:00:00", endTime="10:30:00")
        assert (slot["startTime"], slot["endTime"]) == ("09:00", "10:30")

    def test_tutee_cannot_create(self, tutee_client):
        assert tutee_client.post("/api/calendar/slots", json=SLOT).status_code == 403

    def test_invalid_event_type(self, admin_client):
        resp = admin_client.post("/api/calendar/slots", json={**SLOT, "eventType": "party"})
        assert resp.status_code == 400

    def test_unknown_tutee(self, admin_client):
        resp = admin_client.post("/api/calendar/slots", json={**SLOT, "tuteeId": "nobody"})
        assert resp.status_code == 400

    def test_non_text_notes_rejected(self, admin_client):
        assert admin_client.post("/api/calendar/slots", json={**SLOT, "notes": 5}).status_code == 400
        slot = _create_slot(admin_client)
        resp = admin_client.patch(f"/api/calendar/slots/{slot['id']}", json={"notes": ["a"]})
        assert resp.status_code == 400

    def test_non_text_tutee_rejected(self, admin_client):
        resp = admin_client.post("/api/calendar/slots", json={**SLOT, "tuteeId": {"id": TUTEE_ID}})
        assert resp.status_code == 400

    def test_update_empty_notes_become_null(self, admin_client):
        slot = _create_slot(admin_client, notes="Bring calculator")
        resp = admin_client.patch(f"/api/calendar/slots/{slot['id']}", json={"notes": "   "})
        assert resp.status_code == 200
        assert resp.get_json()["slot"]["notes"] is None

    def test_update_rejects_inverted_times(self, admin_client):
        slot = _create_slot(admin_client)
        resp = admin_client.patch(f"/api/calendar/slots/{slot['id']}", json={"endTime": "15:00"})
        assert resp.status_code == 400

    def test_delete(self, admin_client):
        slot = _create_slot(admin_client)
        assert admin_client.delete(f"/api/calendar/slots/{slot['id']}").status_code == 200
        assert admin_client.get(f"/api/calendar/slots/{slot['id']}").status_code == 404


class TestSlotBooking:
    def test_book_and_cancel(self, admin_client, tutee_client):
        slot = _create_slot(admin_client)
        resp = tutee_client.post(f"/api/calendar/slots/{slot['id']}/book")
        assert resp.status_code == 200
        booked = resp.get_json()["slot"]
        assert booked["bookedBy"] == TUTEE_ID
        assert booked["isAvailable"] is False

        sessions = tutee_client.get("/api/calendar/sessions").get_json()["sessions"]
        assert len(sessions) == 1
        assert sessions[0]["status"] == "scheduled"

        resp = tutee_client.post(f"/api/calendar/slots/{slot['id']}/cancel")
        assert resp.get_json()["slot"]["bookedBy"] is None
        assert resp.get_json()["slot"]["isAvailable"] is True
        assert tutee_client.get("/api/calendar/sessions").get_json()["sessions"] == []
        cancelled = tutee_client.get("/api/calendar/sessions?includeCancelled=true").get_json()["sessions"]
        assert cancelled[0]["status"] == "cancelled"

    def test_cannot_double_book(self, admin_client, tutee_client, other_tutee_client):
        slot = _create_slot(admin_client)
        tutee_client.post(f"/api/calendar/slots/{slot['id']}/book")
        assert other_tutee_client.post(f"/api/calendar/slots/{slot['id']}/book").status_code == 409

    def test_reserved_slot(self, admin_client, other_tutee_client):
        slot = _create_slot(admin_client, tuteeId=TUTEE_ID)
        assert other_tutee_client.post(f"/api/calendar/slots/{slot['id']}/book").status_code == 409

    def test_exam_not_bookable(self, admin_client, tutee_client):
        slot = _create_slot(admin_client, eventType="test")
        assert tutee_client.post(f"/api/calendar/slots/{slot['id']}/book").status_code == 409

    def test_other_tutee_cannot_cancel(self, admin_client, tutee_client, other_tutee_client):
        slot = _create_slot(admin_client)
        tutee_client.post(f"/api/calendar/slots/{slot['id']}/book")
        assert other_tutee_client.post(f"/api/calendar/slots/{slot['id']}/cancel").status_code == 403

    def test_admin_books_for_tutee(self, admin_client):
        slot = _create_slot(admin_client)
        resp = admin_client.post(f"/api/calendar/slots/{slot['id']}/book", json={"tuteeId": OTHER_TUTEE_ID})
        assert resp.get_json()["slot"]["bookedBy"] == OTHER_TUTEE_ID
        sessions = admin_client.get(f"/api/calendar/sessions?tuteeId={OTHER_TUTEE_ID}").get_json()["sessions"]
        assert len(sessions) == 1

    def test_admin_booking_needs_text_tutee_id(self, admin_client):
        slot = _create_slot(admin_client)
        resp = admin_client.post(f"/api/calendar/slots/{slot['id']}/book", json={"tuteeId": [TUTEE_ID]})
        assert resp.status_code == 400
