"""Push subscription and notification routes."""

from __future__ import annotations

import sqlite3

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from db_stores import NotificationLogDB, PushSubscriptionStoreDB, TuteeStoreDB
from helpers import admin_required, api_error, is_admin, json_body
from models import ADMIN_RECIPIENT
from push import notify, run_review_reminders, send_test_notifications

bp = Blueprint("notifications", __name__)


def _recipient() -> str:
    """Subscriptions of the admin are stored under "admin"."""
    return ADMIN_RECIPIENT if is_admin() else current_user.tutee_id


@bp.route("/api/push/subscribe", methods=["POST"])
@login_required
def api_push_subscribe():
    data = json_body()
    sub = data.get("subscription")
    keys = sub.get("keys") if isinstance(sub, dict) else None
    if not isinstance(keys, dict):
        return jsonify({"error": "Invalid subscription"}), 400
    endpoint = sub.get("endpoint")
    if not all(isinstance(v, str) and v for v in (endpoint, keys.get("p256dh"), keys.get("auth"))):
        return jsonify({"error": "Invalid subscription"}), 400

    try:
        PushSubscriptionStoreDB.subscribe(
            tutee_id=_recipient(),
            endpoint=endpoint,
            p256dh=keys["p256dh"],
            auth=keys["auth"],
            user_agent=request.headers.get("User-Agent", ""),
        )
    except sqlite3.Error:
        return api_error("enable notifications")
    return jsonify({"success": True})


@bp.route("/api/push/unsubscribe", methods=["POST"])
@login_required
def api_push_unsubscribe():
    endpoint = json_body().get("endpoint")
    if not isinstance(endpoint, str) or not endpoint:
        return jsonify({"error": "Endpoint is required"}), 400
    try:
        PushSubscriptionStoreDB.unsubscribe(_recipient(), endpoint)
    except sqlite3.Error:
        return api_error("disable notifications")
    return jsonify({"success": True})


@bp.route("/api/push/status")
@login_required
def api_push_status():
    endpoint = request.args.get("endpoint", "")
    subscribed = bool(endpoint) and PushSubscriptionStoreDB.is_subscribed(_recipient(), endpoint)
    return jsonify({"subscribed": subscribed})


@bp.route("/api/push/vapid-key")
def api_vapid_key():
    return jsonify({"publicKey": current_app.config.get("VAPID_PUBLIC_KEY", "")})


@bp.route("/api/notifications/send", methods=["POST"])
@admin_required
def api_send_notification():
    """Send a custom notification to one tutee (or to the admin devices)."""
    data = json_body()
    tutee_id = str(data.get("tuteeId", "")).strip()
    title = str(data.get("title", "")).strip()
    message = str(data.get("message", "")).strip()
    if not title or not message:
        return jsonify({"error": "Title and message are required"}), 400
    if tutee_id != ADMIN_RECIPIENT and not TuteeStoreDB.exists(tutee_id):
        return jsonify({"error": "Tutee not found"}), 404

    sent = notify("custom", tutee_id, title, message, data.get("url") or "/tuition")
    return jsonify({"success": True, "sent": sent})


@bp.route("/api/notifications/test", methods=["POST"])
@admin_required
def api_test_notifications():
    try:
        results = send_test_notifications()
    except sqlite3.Error:
        return api_error("send test notifications")
    return jsonify({"testResults": results})


@bp.route("/api/notifications/review-reminders", methods=["POST"])
@admin_required
def api_review_reminders():
    """Run the review reminder sweep now."""
    try:
        sent = run_review_reminders()
    except sqlite3.Error:
        return api_error("send review reminders")
    return jsonify({"success": True, "message": f"Sent {len(sent)} notifications", "sent": sent})


@bp.route("/api/notifications/logs")
@admin_required
def api_notification_logs():
    try:
        limit = max(1, min(200, int(request.args.get("limit", 50))))
    except ValueError:
        return jsonify({"error": "limit must be a number"}), 400
    try:
        logs = NotificationLogDB.recent(limit, request.args.get("tuteeId", ""))
    except sqlite3.Error:
        return api_error("load notification logs")
    return jsonify({"logs": [entry.to_dict() for entry in logs]})
