"""
Web Push notification sender and review reminders.

Uses pywebpush with VAPID authentication to deliver notifications to every
enabled subscription of a recipient (a tutee id, or "admin"). Delivery is
fire-and-forget: failures are logged and recorded in notification_logs,
never raised to the caller of notify().
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from flask import current_app
from pywebpush import WebPushException, webpush

from db_stores import (
    LearningPointReviewStoreDB,
    NotificationLogDB,
    PushSubscriptionStoreDB,
    TuteeStoreDB,
)
from models import PushSubscription
from spaced_repetition import review_status

logger = logging.getLogger(__name__)

REVIEW_REMINDER = "review_reminder"
_GONE_STATUSES = (404, 410)


def review_url(tutee_id: str) -> str:
    return f"/tuition?tuteeId={tutee_id}&learningPoints=true"


def build_payload(title: str, body: str, url: str = "/", actions: list | None = None) -> str:
    """JSON payload understood by the service worker."""
    icon = current_app.config.get("PUSH_ICON", "/logo.png")
    return json.dumps({
        "title": title,
        "body": body,
        "icon": icon,
        "badge": icon,
        "data": {"url": url or "/"},
        "actions": actions or [],
    })


def _deliver(sub: PushSubscription, payload: str) -> bool:
    """Send to one subscription. Gone subscriptions are deleted."""
    try:
        webpush(
            subscription_info=sub.subscription_info(),
            data=payload,
            vapid_private_key=current_app.config.get("VAPID_PRIVATE_KEY", ""),
            vapid_claims={"sub": current_app.config.get("VAPID_CLAIMS_EMAIL", "mailto:admin@example.com")},
        )
        return True
    except WebPushException as e:
        status = e.response.status_code if e.response is not None else None
        if status in _GONE_STATUSES:
            PushSubscriptionStoreDB.delete(sub.id)
            logger.info("Removed expired push subscription %s (status %s)", sub.id, status)
        else:
            logger.warning("Push to subscription %s failed: %s", sub.id, e)
        return False


def send_push(tutee_id: str, title: str, body: str, url: str = "/") -> int:
    """Send a push notification to all subscriptions of a recipient.

    Returns the number of successful deliveries.
    """
    if not current_app.config.get("VAPID_PRIVATE_KEY"):
        logger.warning("VAPID_PRIVATE_KEY not set; push to %s skipped", tutee_id)
        return 0

    payload = build_payload(title, body, url)
    sent = 0
    for sub in PushSubscriptionStoreDB.get_for_tutee(tutee_id):
        if _deliver(sub, payload):
            sent += 1
    return sent


def notify(notif_type: str, tutee_id: str, title: str, message: str, url: str = "/",
           data: dict | None = None) -> int:
    """Push a notification and record the outcome. Never raises.

    Returns the number of devices reached.
    """
    try:
        has_subscriptions = bool(PushSubscriptionStoreDB.get_for_tutee(tutee_id))
        sent = send_push(tutee_id, title, message, url) if has_subscriptions else 0
        if not has_subscriptions:
            status = "no_subscriptions"
        else:
            status = "sent" if sent else "failed"
        NotificationLogDB.add(tutee_id, notif_type, title, message, url, status,
                              sent_count=sent, data=data)
        return sent
    except Exception as e:
        logger.exception("Notification %s to %s failed", notif_type, tutee_id)
        try:
            NotificationLogDB.add(tutee_id, notif_type, title, message, url, "failed",
                                  error=str(e), data=data)
        except Exception:
            logger.exception("Could not record failed notification %s", notif_type)
        return 0


# ── Review reminders ─────────────────────────────────────────────────


def run_review_reminders(now: datetime | None = None) -> list[dict]:
    """Remind tutees of due sessions, at most once per session per day."""
    now = now or datetime.now()
    names = {t.id: t.name for t in TuteeStoreDB.list()}
    sent: list[dict] = []

    for record in LearningPointReviewStoreDB.all_records():
        if not review_status(record, now).is_due:
            continue
        if NotificationLogDB.sent_today(record.tutee_id, REVIEW_REMINDER, record.session_date):
            continue

        name = names.get(record.tutee_id, "Student")
        count = notify(
            REVIEW_REMINDER,
            record.tutee_id,
            "Review Time! 📚",
            f"Hey {name}, it's time to review your learning points from {record.session_date}!",
            review_url(record.tutee_id),
            data={"sessionDate": record.session_date},
        )
        if count:
            sent.append({"tuteeId": record.tutee_id, "sessionDate": record.session_date})

    logger.info("Review reminder sweep sent %d notifications", len(sent))
    return sent


def send_review_reminders(app) -> list[dict]:
    """Run the reminder sweep inside an app context (scheduler entry point)."""
    with app.app_context():
        return run_review_reminders()


def send_test_notifications() -> list[dict]:
    """Push a test notification to every enabled subscription."""
    if not current_app.config.get("VAPID_PRIVATE_KEY"):
        logger.warning("VAPID_PRIVATE_KEY not set; test notifications skipped")
        return []
    names = {t.id: t.name for t in TuteeStoreDB.list()}
    results = []
    for sub in PushSubscriptionStoreDB.all():
        name = names.get(sub.tutee_id, "Student")
        payload = build_payload(
            "Test Notification! 🚀",
            f"Hello {name}! This is a test push notification.",
            "/tuition",
        )
        ok = _deliver(sub, payload)
        results.append({"success": ok, "tutee": sub.tutee_id})
    return results
