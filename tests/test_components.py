"""Tests for dashboard components and per-tutee assignment."""

from __future__ import annotations

from conftest import OTHER_TUTEE_ID, TUTEE_ID


def _component(admin_client, name: str = "learning_points") -> dict:
    resp = admin_client.post("/api/components", json={
        "name": name, "displayName": "Learning Points", "componentType": "card",
        "config": {"showTags": True},
    })
    assert resp.status_code == 201
    return resp.get_json()["component"]


def _assign(admin_client, component_id: str, order: int = 0, tutee_id: str = TUTEE_ID) -> dict:
    resp = admin_client.post(f"/api/tutees/{tutee_id}/components", json={
        "componentId": component_id, "displayOrder": order,
    })
    assert resp.status_code == 201
    return resp.get_json()["component"]


class TestCatalogue:
    def test_create_and_list(self, admin_client):
        component = _component(admin_client)
        assert component["config"] == {"showTags": True}
        names = [c["name"] for c in admin_client.get("/api/components").get_json()["components"]]
        assert names == ["learning_points"]

    def test_duplicate_name(self, admin_client):
        _component(admin_client)
        resp = admin_client.post("/api/components", json={
            "name": "learning_points", "displayName": "Again", "componentType": "card",
        })
        assert resp.status_code == 409

    def test_invalid_name(self, admin_client):
        resp = admin_client.post("/api/components", json={
            "name": "Has Spaces", "displayName": "X", "componentType": "card",
        })
        assert resp.status_code == 400

    def test_admin_only(self, tutee_client):
        assert tutee_client.get("/api/components").status_code == 403


class TestAssignments:
    def test_ordered_with_component(self, admin_client, tutee_client):
        calendar = _component(admin_client, "calendar")
        points = _component(admin_client, "learning_points")
        _assign(admin_client, points["id"], order=2)
        _assign(admin_client, calendar["id"], order=1)

        assigned = tutee_client.get(f"/api/tutees/{TUTEE_ID}/components").get_json()["components"]
        assert [a["component"]["name"] for a in assigned] == ["calendar", "learning_points"]

    def test_unknown_component(self, admin_client):
        resp = admin_client.post(f"/api/tutees/{TUTEE_ID}/components", json={"componentId": "nope"})
        assert resp.status_code == 404

    def test_unknown_tutee(self, admin_client):
        component = _component(admin_client)
        resp = admin_client.post("/api/tutees/nobody/components", json={"componentId": component["id"]})
        assert resp.status_code == 404

    def test_deactivate_hides_by_default(self, admin_client):
        assignment = _assign(admin_client, _component(admin_client)["id"])
        resp = admin_client.patch(f"/api/tutee-components/{assignment['id']}", json={"isActive": False})
        assert resp.get_json()["component"]["isActive"] is False

        base = f"/api/tutees/{TUTEE_ID}/components"
        assert admin_client.get(base).get_json()["components"] == []
        assert len(admin_client.get(f"{base}?all=true").get_json()["components"]) == 1

    def test_update_config_and_order(self, admin_client):
        assignment = _assign(admin_client, _component(admin_client)["id"])
        resp = admin_client.patch(f"/api/tutee-components/{assignment['id']}", json={
            "displayOrder": 5, "config": {"limit": 3},
        })
        updated = resp.get_json()["component"]
        assert updated["displayOrder"] == 5
        assert updated["config"] == {"limit": 3}

    def test_remove(self, admin_client):
        assignment = _assign(admin_client, _component(admin_client)["id"], tutee_id=OTHER_TUTEE_ID)
        assert admin_client.delete(f"/api/tutee-components/{assignment['id']}").status_code == 200
        assert admin_client.delete(f"/api/tutee-components/{assignment['id']}").status_code == 404

    def test_other_tutee_cannot_read(self, admin_client, other_tutee_client):
        _assign(admin_client, _component(admin_client)["id"])
        assert other_tutee_client.get(f"/api/tutees/{TUTEE_ID}/components").status_code == 403
