"""Tests for tutee profile routes and the admin overview."""

from __future__ import annotations

from conftest import OTHER_TUTEE_ID, TUTEE_ID, TUTEE_PIN


class TestListAndGet:
    def test_list_is_public(self, client):
        tutees = client.get("/api/tutees").get_json()["tutees"]
        assert sorted(t["id"] for t in tutees) == [TUTEE_ID, OTHER_TUTEE_ID]

    def test_get_own(self, tutee_client):
        tutee = tutee_client.get(f"/api/tutees/{TUTEE_ID}").get_json()["tutee"]
        assert tutee["name"] == "Primary School"
        assert tutee["description"] == "Year 5 maths"
        assert tutee["colorScheme"]["primary"] == "pink"

    def test_get_other_forbidden(self, tutee_client):
        assert tutee_client.get(f"/api/tutees/{OTHER_TUTEE_ID}").status_code == 403

    def test_get_unknown(self, admin_client):
        assert admin_client.get("/api/tutees/nobody").status_code == 404


class TestAdminManagement:
    def test_create(self, admin_client, client):
        resp = admin_client.post("/api/tutees", json={
            "id": "gcse-physics", "name": "GCSE Physics", "pin": "4321",
            "colorScheme": {"primary": "green"},
        })
        assert resp.status_code == 201
        tutee = resp.get_json()["tutee"]
        assert tutee["colorScheme"]["primary"] == "green"
        assert tutee["colorScheme"]["secondary"] == "purple"

        login = client.post("/api/auth/tutee", json={"tuteeId": "gcse-physics", "pin": "4321"})
        assert login.status_code == 200

    def test_create_duplicate(self, admin_client):
        resp = admin_client.post("/api/tutees", json={"id": TUTEE_ID, "name": "Again", "pin": "1111"})
        assert resp.status_code == 409

    def test_create_validates(self, admin_client):
        assert admin_client.post("/api/tutees", json={"id": "Bad Id", "name": "X", "pin": "1111"}).status_code == 400
        assert admin_client.post("/api/tutees", json={"id": "ok-id", "name": "", "pin": "1111"}).status_code == 400
        assert admin_client.post("/api/tutees", json={"id": "ok-id", "name": "X", "pin": "11"}).status_code == 400

    def test_tutee_cannot_create(self, tutee_client):
        resp = tutee_client.post("/api/tutees", json={"id": "sneaky", "name": "X", "pin": "1111"})
        assert resp.status_code == 403

    def test_update_info(self, admin_client):
        resp = admin_client.patch(f"/api/tutees/{TUTEE_ID}", json={"description": "Year 6 maths"})
        tutee = resp.get_json()["tutee"]
        assert tutee["description"] == "Year 6 maths"
        assert tutee["name"] == "Primary School"

    def test_update_unknown(self, admin_client):
        assert admin_client.patch("/api/tutees/nobody", json={"name": "X"}).status_code == 404

    def test_delete_cascades(self, app, admin_client):
        admin_client.post(f"/api/tutees/{TUTEE_ID}/learning-points", json={
            "sessionDate": "2026-03-01", "bulletPoints": ["Fractions"],
        })
        assert admin_client.delete(f"/api/tutees/{TUTEE_ID}").status_code == 200
        with app.app_context():
            from database import get_db
            count = get_db().execute(
                "SELECT COUNT(*) FROM learning_points WHERE tutee_id = ?", (TUTEE_ID,)
            ).fetchone()[0]
        assert count == 0
        assert admin_client.delete(f"/api/tutees/{TUTEE_ID}").status_code == 404


class TestSelfService:
    def test_colors(self, tutee_client):
        resp = tutee_client.put(f"/api/tutees/{TUTEE_ID}/colors", json={
            "primary": "teal", "gradient": "from-teal-500 to-cyan-600",
        })
        scheme = resp.get_json()["tutee"]["colorScheme"]
        assert scheme == {"primary": "teal", "secondary": "purple", "gradient": "from-teal-500 to-cyan-600"}

    def test_colors_required(self, tutee_client):
        assert tutee_client.put(f"/api/tutees/{TUTEE_ID}/colors", json={}).status_code == 400

    def test_icon(self, tutee_client):
        resp = tutee_client.put(f"/api/tutees/{TUTEE_ID}/icon", json={"icon": "Rocket"})
        assert resp.get_json()["tutee"]["icon"] == "Rocket"

    def test_cannot_change_other_icon(self, tutee_client):
        resp = tutee_client.put(f"/api/tutees/{OTHER_TUTEE_ID}/icon", json={"icon": "Rocket"})
        assert resp.status_code == 403

    def test_change_pin(self, tutee_client, client):
        resp = tutee_client.put(f"/api/tutees/{TUTEE_ID}/pin", json={"currentPin": TUTEE_PIN, "newPin": "9999"})
        assert resp.status_code == 200
        assert client.post("/api/auth/tutee", json={"tuteeId": TUTEE_ID, "pin": TUTEE_PIN}).status_code == 401
        assert client.post("/api/auth/tutee", json={"tuteeId": TUTEE_ID, "pin": "9999"}).status_code == 200

    def test_change_pin_wrong_current(self, tutee_client):
        resp = tutee_client.put(f"/api/tutees/{TUTEE_ID}/pin", json={"currentPin": "0000", "newPin": "9999"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Current PIN is incorrect"


class TestOverview:
    def test_overview(self, admin_client):
        admin_client.post(f"/api/tutees/{TUTEE_ID}/learning-points", json={
            "sessionDate": "2026-03-01", "bulletPoints": ["Fractions", "Decimals"],
        })
        admin_client.post("/api/bookings", json={
            "tuteeId": TUTEE_ID, "requestedDate": "2026-04-10",
            "requestedStartTime": "16:00", "requestedEndTime": "17:00",
        })
        data = admin_client.get("/api/admin/overview").get_json()
        primary = next(t for t in data["tutees"] if t["id"] == TUTEE_ID)
        assert primary["sessionCount"] == 1
        assert primary["pointCount"] == 2
        assert primary["dueReviews"] == 1
        assert data["pendingBookings"] == 1
        assert data["recentActivity"][0]["action"] == "admin_login_success"

    def test_overview_admin_only(self, tutee_client):
        assert tutee_client.get("/api/admin/overview").status_code == 403

    def test_healthz(self, client):
        assert client.get("/healthz").get_json() == {"status": "ok", "database": "ok"}
