"""Tests for web push delivery, notification logging and review reminders."""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

from pywebpush import WebPushException

from conftest import OTHER_TUTEE_ID, TUTEE_ID
from db_stores import LearningPointReviewStoreDB, NotificationLogDB, PushSubscriptionStoreDB
from push import build_payload, notify, run_review_reminders, send_push

ENDPOINT = "https://push.example/device-1"
SUBSCRIPTION = {"endpoint": ENDPOINT, "keys": {"p256dh": "p256-key", "auth": "auth-secret"}}


def _subscribe(tutee_id: str = TUTEE_ID, endpoint: str = ENDPOINT) -> None:
    PushSubscriptionStoreDB.subscribe(tutee_id, endpoint, "p256-key", "auth-secret")


def _gone(status: int) -> WebPushException:
    return WebPushException("push failed", response=MagicMock(status_code=status))


class TestPayload:
    def test_service_worker_shape(self, app):
        with app.app_context():
            payload = json.loads(build_payload("Hi", "There", "/tuition"))
        assert payload == {
            "title": "Hi",
            "body": "There",
            "icon": "/logo.png",
            "badge": "/logo.png",
            "data": {"url": "/tuition"},
            "actions": [],
        }


class TestSendPush:
    def test_delivers_to_every_subscription(self, app, webpush_mock):
        with app.app_context():
            _subscribe()
            _subscribe(endpoint="https://push.example/device-2")
            assert send_push(TUTEE_ID, "Hi", "There") == 2
        kwargs = webpush_mock.call_args.kwargs
        assert kwargs["vapid_private_key"] == "test-private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:test@example.com"}

    def test_gone_subscription_deleted(self, app, webpush_mock):
        webpush_mock.side_effect = _gone(410)
        with app.app_context():
            _subscribe()
            assert send_push(TUTEE_ID, "Hi", "There") == 0
            assert PushSubscriptionStoreDB.get_for_tutee(TUTEE_ID) == []

    def test_other_failure_keeps_subscription(self, app, webpush_mock):
        webpush_mock.side_effect = _gone(500)
        with app.app_context():
            _subscribe()
            assert send_push(TUTEE_ID, "Hi", "There") == 0
            assert len(PushSubscriptionStoreDB.get_for_tutee(TUTEE_ID)) == 1

    def test_skipped_without_vapid_key(self, app, webpush_mock):
        app.config["VAPID_PRIVATE_KEY"] = ""
        with app.app_context():
            _subscribe()
            assert send_push(TUTEE_ID, "Hi", "There") == 0
        webpush_mock.assert_not_called()


class TestNotify:
    def test_logs_outcomes(self, app):
        with app.app_context():
            notify("custom", TUTEE_ID, "Hi", "Nobody listening")
            _subscribe()
            notify("custom", TUTEE_ID, "Hi", "Delivered")
            statuses = [log.status for log in NotificationLogDB.recent(tutee_id=TUTEE_ID)]
        assert statuses == ["sent", "no_subscriptions"]

    def test_never_raises(self, app):
        with app.app_context():
            with patch("push.PushSubscriptionStoreDB.get_for_tutee", side_effect=RuntimeError("boom")):
                assert notify("custom", TUTEE_ID, "Hi", "There") == 0
            log = NotificationLogDB.recent(tutee_id=TUTEE_ID)[0]
        assert log.status == "failed"
        assert log.error == "boom"


class TestReviewReminders:
    def _due_review(self, session_date: str = "2026-03-01") -> None:
        LearningPointReviewStoreDB(TUTEE_ID).record_review(
            session_date, reviewed_at=datetime.now() - timedelta(days=5),
        )

    def test_sends_once_per_day(self, app, webpush_mock):
        with app.app_context():
            _subscribe()
            self._due_review()
            assert run_review_reminders() == [{"tuteeId": TUTEE_ID, "sessionDate": "2026-03-01"}]
            assert run_review_reminders() == []
        assert webpush_mock.call_count == 1
        payload = json.loads(webpush_mock.call_args.kwargs["data"])
        assert payload["title"] == "Review Time! 📚"
        assert payload["data"]["url"] == f"/tuition?tuteeId={TUTEE_ID}&learningPoints=true"

    def test_not_due_is_skipped(self, app, webpush_mock):
        with app.app_context():
            _subscribe()
            LearningPointReviewStoreDB(TUTEE_ID).record_review("2026-03-01")
            assert run_review_reminders() == []
        webpush_mock.assert_not_called()

    def test_each_session_reminded(self, app):
        with app.app_context():
            _subscribe()
            self._due_review("2026-03-01")
            self._due_review("2026-03-08")
            assert len(run_review_reminders()) == 2

    def test_admin_route(self, app, admin_client):
        with app.app_context():
            _subscribe()
            self._due_review()
        resp = admin_client.post("/api/notifications/review-reminders")
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Sent 1 notifications"


class TestRoutes:
    def test_subscribe_status_unsubscribe(self, tutee_client):
        assert tutee_client.post("/api/push/subscribe", json={"subscription": SUBSCRIPTION}).status_code == 200
        assert tutee_client.get(f"/api/push/status?endpoint={ENDPOINT}").get_json() == {"subscribed": True}

        tutee_client.post("/api/push/unsubscribe", json={"endpoint": ENDPOINT})
        assert tutee_client.get(f"/api/push/status?endpoint={ENDPOINT}").get_json() == {"subscribed": False}

    def test_subscribe_twice_keeps_one_row(self, app, tutee_client):
        tutee_client.post("/api/push/subscribe", json={"subscription": SUBSCRIPTION})
        tutee_client.post("/api/push/subscribe", json={"subscription": SUBSCRIPTION})
        with app.app_context():
            assert len(PushSubscriptionStoreDB.get_for_tutee(TUTEE_ID)) == 1

    def test_admin_subscription_stored_as_admin(self, app, admin_client):
        admin_client.post("/api/push/subscribe", json={"subscription": SUBSCRIPTION})
        with app.app_context():
            assert len(PushSubscriptionStoreDB.get_for_tutee("admin")) == 1

    def test_invalid_subscription(self, tutee_client):
        resp = tutee_client.post("/api/push/subscribe", json={"subscription": {"endpoint": ENDPOINT}})
        assert resp.status_code == 400

    def test_malformed_subscription_shapes(self, tutee_client):
        for body in (
            {"subscription": "not-an-object"},
            {"subscription": {"endpoint": ENDPOINT, "keys": ["p256-key", "auth-secret"]}},
            {"subscription": {"endpoint": 42, "keys": {"p256dh": "p256-key", "auth": "auth-secret"}}},
        ):
            assert tutee_client.post("/api/push/subscribe", json=body).status_code == 400
        assert tutee_client.post("/api/push/unsubscribe", json={"endpoint": ["x"]}).status_code == 400

    def test_vapid_key_is_public(self, client):
        assert client.get("/api/push/vapid-key").get_json() == {"publicKey": "test-public-key"}

    def test_send_custom(self, app, admin_client, webpush_mock):
        with app.app_context():
            _subscribe(OTHER_TUTEE_ID)
        resp = admin_client.post("/api/notifications/send", json={
            "tuteeId": OTHER_TUTEE_ID, "title": "Homework", "message": "Page 12 please",
        })
        assert resp.get_json() == {"success": True, "sent": 1}

    def test_send_requires_admin(self, tutee_client):
        resp = tutee_client.post("/api/notifications/send", json={
            "tuteeId": TUTEE_ID, "title": "x", "message": "y",
        })
        assert resp.status_code == 403

    def test_test_mode(self, app, admin_client):
        with app.app_context():
            _subscribe()
        resp = admin_client.post("/api/notifications/test")
        assert resp.get_json()["testResults"] == [{"success": True, "tutee": TUTEE_ID}]

    def test_logs(self, admin_client):
        admin_client.post("/api/notifications/send", json={
            "tuteeId": TUTEE_ID, "title": "Hi", "message": "There",
        })
        logs = admin_client.get("/api/notifications/logs").get_json()["logs"]
        assert logs[0]["type"] == "custom"
        assert logs[0]["status"] == "no_subscriptions"
