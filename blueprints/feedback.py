"""Feedback: bug reports, feature requests and questions from tutees."""

from __future__ import annotations

import logging
import sqlite3

from flask import Blueprint, jsonify, request
from flask_login import login_required

from db_stores import FeedbackStoreDB
from helpers import (
    admin_required,
    api_error,
    can_access,
    current_actor,
    is_admin,
    json_body,
    parse_choice,
    parse_text,
    tutee_access_required,
)
from models import (
    ADMIN_RECIPIENT,
    FEEDBACK_PRIORITIES,
    FEEDBACK_STATUSES,
    FEEDBACK_TYPES,
)
from push import notify

logger = logging.getLogger(__name__)

bp = Blueprint("feedback", __name__)

TITLE_MAX = 200
DESCRIPTION_MAX = 5000

# Fields a tutee may change on their own feedback; the admin may change all.
_TUTEE_FIELDS = ("type", "title", "description", "priority")


def _feedback_fields(data: dict, partial: bool) -> dict:
    """Validate feedback input. Raises ValueError with a user-facing message."""
    fields: dict = {}
    if not partial or "type" in data:
        fields["type"] = parse_choice(data.get("type", "other"), "type", FEEDBACK_TYPES)
    if not partial or "title" in data:
        fields["title"] = parse_text(data.get("title"), "title", required=True, max_length=TITLE_MAX)
    if not partial or "description" in data:
        fields["description"] = parse_text(
            data.get("description"), "description", required=True, max_length=DESCRIPTION_MAX,
        )
    if not partial or "priority" in data:
        fields["priority"] = parse_choice(data.get("priority", "medium"), "priority",
                                          FEEDBACK_PRIORITIES)
    if partial and "status" in data:
        fields["status"] = parse_choice(data["status"], "status", FEEDBACK_STATUSES)
    if partial and "adminNotes" in data:
        fields["admin_notes"] = parse_text(data["adminNotes"], "adminNotes") or None
    return fields


@bp.route("/api/tutees/<tutee_id>/feedback")
@tutee_access_required
def list_feedback(tutee_id):
    try:
        items = FeedbackStoreDB.list(tutee_id)
    except sqlite3.Error:
        return api_error("load feedback")
    return jsonify({"feedback": [f.to_dict() for f in items]})


@bp.route("/api/tutees/<tutee_id>/feedback", methods=["POST"])
@tutee_access_required
def create_feedback(tutee_id):
    try:
        fields = _feedback_fields(json_body(), partial=False)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        item = FeedbackStoreDB.create(
            tutee_id, fields["type"], fields["title"], fields["description"], fields["priority"],
        )
    except sqlite3.Error:
        return api_error("send feedback")

    if not is_admin():
        notify(
            "new_feedback",
            ADMIN_RECIPIENT,
            "New Feedback 📝",
            f"{current_actor()}: {item.title}",
            "/tuition/admin?tab=feedback",
            {"feedbackId": item.id},
        )
    return jsonify({"feedback": item.to_dict()}), 201


@bp.route("/api/feedback")
@admin_required
def list_all_feedback():
    status = request.args.get("status", "")
    if status and status not in FEEDBACK_STATUSES:
        return jsonify({"error": "Unknown status"}), 400
    try:
        items = FeedbackStoreDB.list_all(status)
    except sqlite3.Error:
        return api_error("load feedback")
    return jsonify({"feedback": [f.to_dict() for f in items]})


@bp.route("/api/feedback/<feedback_id>", methods=["PATCH"])
@login_required
def update_feedback(feedback_id):
    item = FeedbackStoreDB.get(feedback_id)
    if item is None:
        return jsonify({"error": "Feedback not found"}), 404
    if not can_access(item.tutee_id):
        return jsonify({"error": "Access denied"}), 403

    data = json_body()
    if not is_admin() and any(k in data for k in ("status", "adminNotes")):
        return jsonify({"error": "Only the admin can change status or notes"}), 403
    try:
        fields = _feedback_fields(data, partial=True)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if not is_admin():
        fields = {k: v for k, v in fields.items() if k in _TUTEE_FIELDS}

    try:
        updated = FeedbackStoreDB.update(feedback_id, fields)
    except sqlite3.Error:
        return api_error("update feedback")
    if updated is None:
        return jsonify({"error": "Feedback not found"}), 404

    if updated.status != item.status:
        notify(
            "feedback_status",
            updated.tutee_id,
            "Feedback Updated 📝",
            f'"{updated.title}" is now {updated.status.replace("_", " ")}.',
            f"/tuition?tuteeId={updated.tutee_id}",
            {"feedbackId": updated.id},
        )
    return jsonify({"feedback": updated.to_dict()})


@bp.route("/api/feedback/<feedback_id>", methods=["DELETE"])
@login_required
def delete_feedback(feedback_id):
    item = FeedbackStoreDB.get(feedback_id)
    if item is None:
        return jsonify({"error": "Feedback not found"}), 404
    if not can_access(item.tutee_id):
        return jsonify({"error": "Access denied"}), 403
    try:
        FeedbackStoreDB.delete(feedback_id)
    except sqlite3.Error:
        return api_error("delete feedback")
    return jsonify({"success": True})
