"""Security tests: SQL injection, path traversal, headers, input validation."""

from __future__ import annotations

from conftest import TUTEE_ID


class TestSQLInjection:
    """Verify parameterized queries prevent SQL injection."""

    def test_tutee_login_injection(self, client):
        resp = client.post("/api/auth/tutee", json={"tuteeId": "' OR 1=1 --", "pin": "1234"})
        assert resp.status_code == 401

    def test_injection_in_query_params(self, admin_client):
        resp = admin_client.get("/api/calendar/slots?start=2026-01-01; DROP TABLE tutees;--")
        assert resp.status_code == 400
        assert admin_client.get("/api/tutees").status_code == 200

    def test_injection_in_tags(self, tutee_client):
        resp = tutee_client.post(f"/api/tutees/{TUTEE_ID}/learning-points", json={
            "sessionDate": "2026-03-01",
            "bulletPoints": ["Fractions"],
            "tags": ["'); DELETE FROM learning_points; --"],
        })
        assert resp.status_code == 201
        session = tutee_client.get(f"/api/tutees/{TUTEE_ID}/learning-points/2026-03-01").get_json()["session"]
        assert session["tags"] == ["'); DELETE FROM learning_points; --"]


class TestPathTraversal:
    def test_storage_path_outside_bucket(self, tutee_client):
        resp = tutee_client.get(f"/api/storage/shared-files/{TUTEE_ID}/../../../config.py")
        assert resp.status_code in (403, 404)

    def test_unknown_object(self, tutee_client):
        assert tutee_client.get(f"/api/storage/shared-files/{TUTEE_ID}/missing.pdf").status_code == 404


class TestHeaders:
    def test_security_headers(self, client):
        resp = client.get("/healthz")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in resp.headers["Content-Security-Policy"]

    def test_request_id_header(self, client):
        assert client.get("/healthz").headers.get("X-Request-ID")


class TestErrors:
    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_method_not_allowed_is_json(self, client):
        resp = client.delete("/api/tutees")
        assert resp.status_code == 405
        assert "error" in resp.get_json()

    def test_non_json_body(self, tutee_client):
        resp = tutee_client.post(f"/api/tutees/{TUTEE_ID}/learning-points",
                                 data="not json", content_type="text/plain")
        assert resp.status_code == 400
