"""Worksheet tracker: worksheets set for a tutee and how far they got."""

from __future__ import annotations

import sqlite3

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import WorksheetStoreDB
from helpers import (
    api_error,
    can_access,
    json_body,
    parse_choice,
    parse_date,
    parse_text,
    tutee_access_required,
)
from models import WORKSHEET_STATUSES

bp = Blueprint("worksheets", __name__)

NAME_MAX = 200


def _percentage(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ValueError("completionPercentage must be a whole number from 0 to 100")
    return value


def _worksheet_fields(data: dict, partial: bool) -> dict:
    """Validate worksheet input. Raises ValueError with a user-facing message."""
    fields: dict = {}
    if not partial or "worksheetName" in data:
        fields["worksheet_name"] = parse_text(data.get("worksheetName"), "worksheetName",
                                              required=True, max_length=NAME_MAX)
    if not partial or "completedDate" in data:
        fields["completed_date"] = parse_date(data.get("completedDate"))
    if "studentName" in data:
        fields["student_name"] = parse_text(data["studentName"], "studentName", max_length=NAME_MAX)
    if "status" in data:
        fields["status"] = parse_choice(data["status"], "status", WORKSHEET_STATUSES)
    if "completionPercentage" in data:
        fields["completion_percentage"] = _percentage(data["completionPercentage"])
    if "notes" in data:
        if not isinstance(data["notes"], (str, type(None))):
            raise ValueError("notes must be text")
        fields["notes"] = data["notes"]
    # Completing a worksheet implies 100%
    if fields.get("status") == "Completed" and "completion_percentage" not in fields:
        fields["completion_percentage"] = 100
    return fields


@bp.route("/api/tutees/<tutee_id>/worksheets")
@tutee_access_required
def list_worksheets(tutee_id):
    try:
        worksheets = WorksheetStoreDB(tutee_id).list()
    except sqlite3.Error:
        return api_error("load worksheets")
    return jsonify({"worksheets": [w.to_dict() for w in worksheets]})


@bp.route("/api/tutees/<tutee_id>/worksheets", methods=["POST"])
@tutee_access_required
def create_worksheet(tutee_id):
    try:
        fields = _worksheet_fields(json_body(), partial=False)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        worksheet = WorksheetStoreDB(tutee_id).create(
            fields["worksheet_name"], fields["completed_date"],
            student_name=fields.get("student_name", ""),
            status=fields.get("status", "Upcoming"),
            completion_percentage=fields.get("completion_percentage", 0),
            notes=fields.get("notes"),
        )
    except sqlite3.Error:
        return api_error("save worksheet")
    return jsonify({"worksheet": worksheet.to_dict()}), 201


@bp.route("/api/worksheets/<worksheet_id>", methods=["PATCH"])
@login_required
def update_worksheet(worksheet_id):
    current = WorksheetStoreDB.get(worksheet_id)
    if current is None:
        return jsonify({"error": "Worksheet not found"}), 404
    if not can_access(current.tutee_id):
        return jsonify({"error": "Access denied"}), 403
    try:
        fields = _worksheet_fields(json_body(), partial=True)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        worksheet = WorksheetStoreDB.update(worksheet_id, fields)
    except sqlite3.Error:
        return api_error("update worksheet")
    if worksheet is None:
        return jsonify({"error": "Worksheet not found"}), 404
    return jsonify({"worksheet": worksheet.to_dict()})


@bp.route("/api/worksheets/<worksheet_id>", methods=["DELETE"])
@login_required
def delete_worksheet(worksheet_id):
    current = WorksheetStoreDB.get(worksheet_id)
    if current is None:
        return jsonify({"error": "Worksheet not found"}), 404
    if not can_access(current.tutee_id):
        return jsonify({"error": "Access denied"}), 403
    try:
        WorksheetStoreDB.delete(worksheet_id)
    except sqlite3.Error:
        return api_error("delete worksheet")
    return jsonify({"success": True})
