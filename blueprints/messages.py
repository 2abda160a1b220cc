"""Direct messages between the admin and a tutee."""

from __future__ import annotations

import sqlite3

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from db_stores import MessageStoreDB
from helpers import api_error, current_actor, is_admin, json_body, parse_text, tutee_access_required
from models import ADMIN_RECIPIENT
from push import notify

bp = Blueprint("messages", __name__)

MESSAGE_MAX = 4000
PREVIEW_LENGTH = 50


def _preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH - 3] + "..."
    return content


def _reader() -> str:
    return ADMIN_RECIPIENT if is_admin() else current_user.tutee_id


@bp.route("/api/tutees/<tutee_id>/messages")
@tutee_access_required
def get_conversation(tutee_id):
    try:
        messages = MessageStoreDB.conversation(tutee_id)
    except sqlite3.Error:
        return api_error("load messages")
    return jsonify({"messages": [m.to_dict() for m in messages]})


@bp.route("/api/tutees/<tutee_id>/messages", methods=["POST"])
@tutee_access_required
def send_message(tutee_id):
    """Send to the other side of the conversation and push a preview to them."""
    try:
        content = parse_text(json_body().get("content"), "content", required=True,
                             max_length=MESSAGE_MAX)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if is_admin():
        sender, receiver = ADMIN_RECIPIENT, tutee_id
        title = "New Message from Admin! 💬"
    else:
        sender, receiver = tutee_id, ADMIN_RECIPIENT
        title = f"New Message from {current_actor()}! 💬"

    try:
        message = MessageStoreDB.send(sender, receiver, content)
    except sqlite3.Error:
        return api_error("send message")

    url = "/tuition" if receiver != ADMIN_RECIPIENT else f"/tuition/admin?tab=messages&tuteeId={tutee_id}"
    notify("new_message", receiver, title, _preview(content), url, {"messageId": message.id})
    return jsonify({"message": message.to_dict()}), 201


@bp.route("/api/tutees/<tutee_id>/messages/read", methods=["POST"])
@tutee_access_required
def mark_read(tutee_id):
    try:
        marked = MessageStoreDB.mark_read(tutee_id, _reader())
    except sqlite3.Error:
        return api_error("mark messages as read")
    return jsonify({"success": True, "marked": marked})


@bp.route("/api/messages/unread")
@login_required
def unread_count():
    """Unread count for the signed-in side; the admin also gets it per tutee."""
    try:
        if is_admin():
            by_tutee = MessageStoreDB.unread_by_tutee()
            return jsonify({"unread": sum(by_tutee.values()), "byTutee": by_tutee})
        return jsonify({"unread": MessageStoreDB.unread_count(current_user.tutee_id, ADMIN_RECIPIENT)})
    except sqlite3.Error:
        return api_error("load unread messages")
