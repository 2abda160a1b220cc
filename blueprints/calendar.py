"""Calendar routes: slots, exams and tests, slot booking and tuition sessions."""

from __future__ import annotations

import sqlite3

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from db_stores import AvailableDateStoreDB, TuitionSessionStoreDB, TuteeStoreDB
from helpers import (
    admin_required,
    api_error,
    can_access,
    is_admin,
    json_body,
    parse_date,
    parse_time,
    parse_time_range,
)
from models import EVENT_TYPES

bp = Blueprint("calendar", __name__)


def _slot_fields(data: dict, partial: bool) -> dict:
    """Validate slot input. Raises ValueError with a user-facing message."""
    fields: dict = {}
    if not partial or "date" in data:
        fields["date"] = parse_date(data.get("date"))
    if not partial:
        fields["start_time"], fields["end_time"] = parse_time_range(
            data.get("startTime"), data.get("endTime"),
        )
    else:
        if "startTime" in data:
            fields["start_time"] = parse_time(data["startTime"])
        if "endTime" in data:
            fields["end_time"] = parse_time(data["endTime"])
    if "eventType" in data:
        if data["eventType"] not in EVENT_TYPES:
            raise ValueError("Unknown event type")
        fields["event_type"] = data["eventType"]
    if "isAvailable" in data:
        fields["is_available"] = bool(data["isAvailable"])
    if "tuteeId" in data:
        tutee_id = data["tuteeId"] or None
        if tutee_id is not None and not isinstance(tutee_id, str):
            raise ValueError("tuteeId must be text")
        if tutee_id and not TuteeStoreDB.exists(tutee_id):
            raise ValueError("Unknown tutee")
        fields["tutee_id"] = tutee_id
    if "notes" in data:
        if not isinstance(data["notes"], (str, type(None))):
            raise ValueError("notes must be text")
        fields["notes"] = data["notes"]
    return fields


@bp.route("/api/calendar/slots")
@login_required
def list_slots():
    try:
        start = parse_date(request.args["start"]) if request.args.get("start") else ""
        end = parse_date(request.args["end"]) if request.args.get("end") else ""
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        slots = AvailableDateStoreDB.list(start, end)
    except sqlite3.Error:
        return api_error("load calendar")
    return jsonify({"slots": [s.to_dict() for s in slots]})


@bp.route("/api/calendar/slots/<slot_id>")
@login_required
def get_slot(slot_id):
    slot = AvailableDateStoreDB.get(slot_id)
    if slot is None:
        return jsonify({"error": "Slot not found"}), 404
    return jsonify({"slot": slot.to_dict()})


@bp.route("/api/calendar/slots", methods=["POST"])
@admin_required
def create_slot():
    try:
        fields = _slot_fields(json_body(), partial=False)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        slot = AvailableDateStoreDB.create(
            fields["date"], fields["start_time"], fields["end_time"],
            is_available=fields.get("is_available", True),
            tutee_id=fields.get("tutee_id"),
            notes=fields.get("notes"),
            event_type=fields.get("event_type", "time_slot"),
        )
    except sqlite3.Error:
        return api_error("create slot")
    return jsonify({"slot": slot.to_dict()}), 201


@bp.route("/api/calendar/slots/<slot_id>", methods=["PATCH"])
@admin_required
def update_slot(slot_id):
    try:
        fields = _slot_fields(json_body(), partial=True)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    current = AvailableDateStoreDB.get(slot_id)
    if current is None:
        return jsonify({"error": "Slot not found"}), 404
    if fields.get("end_time", current.end_time) <= fields.get("start_time", current.start_time):
        return jsonify({"error": "End time must be after start time"}), 400

    try:
        slot = AvailableDateStoreDB.update(slot_id, fields)
    except sqlite3.Error:
        return api_error("update slot")
    return jsonify({"slot": slot.to_dict()})


@bp.route("/api/calendar/slots/<slot_id>", methods=["DELETE"])
@admin_required
def delete_slot(slot_id):
    try:
        deleted = AvailableDateStoreDB.delete(slot_id)
    except sqlite3.Error:
        return api_error("delete slot")
    if not deleted:
        return jsonify({"error": "Slot not found"}), 404
    return jsonify({"success": True})


@bp.route("/api/calendar/slots/<slot_id>/book", methods=["POST"])
@login_required
def book_slot(slot_id):
    tutee_id = json_body().get("tuteeId", "") if is_admin() else current_user.tutee_id
    if not isinstance(tutee_id, str):
        return jsonify({"error": "tuteeId must be text"}), 400
    if not tutee_id or not TuteeStoreDB.exists(tutee_id):
        return jsonify({"error": "Tutee not found"}), 404

    slot = AvailableDateStoreDB.get(slot_id)
    if slot is None:
        return jsonify({"error": "Slot not found"}), 404
    if slot.event_type != "time_slot" or not slot.is_available or slot.booked_by:
        return jsonify({"error": "Slot is not available"}), 409
    if slot.tutee_id and slot.tutee_id != tutee_id:
        return jsonify({"error": "Slot is reserved for another tutee"}), 409

    try:
        slot = AvailableDateStoreDB.book(slot_id, tutee_id)
    except sqlite3.Error:
        return api_error("book slot")
    return jsonify({"slot": slot.to_dict()})


@bp.route("/api/calendar/slots/<slot_id>/cancel", methods=["POST"])
@login_required
def cancel_slot_booking(slot_id):
    slot = AvailableDateStoreDB.get(slot_id)
    if slot is None:
        return jsonify({"error": "Slot not found"}), 404
    if not slot.booked_by:
        return jsonify({"error": "Slot is not booked"}), 400
    if not can_access(slot.booked_by):
        return jsonify({"error": "Access denied"}), 403
    try:
        slot = AvailableDateStoreDB.cancel_booking(slot_id)
    except sqlite3.Error:
        return api_error("cancel booking")
    return jsonify({"slot": slot.to_dict()})


@bp.route("/api/calendar/sessions")
@login_required
def list_sessions():
    tutee_id = request.args.get("tuteeId", "") if is_admin() else current_user.tutee_id
    include_cancelled = request.args.get("includeCancelled") == "true"
    try:
        sessions = TuitionSessionStoreDB.list(tutee_id, include_cancelled=include_cancelled)
    except sqlite3.Error:
        return api_error("load tuition sessions")
    return jsonify({"sessions": [s.to_dict() for s in sessions]})
