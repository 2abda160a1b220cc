"""Admin progress reports built from a tutee's recent activity."""

from __future__ import annotations

import logging
import sqlite3

from flask import Blueprint, jsonify, request

from ai_client import LLMError
from db_stores import TuteeStoreDB
from helpers import admin_required, api_error, json_body, parse_text
from progress_report import DEFAULT_DAYS, MAX_DAYS, fetch_report_data, generate_report

logger = logging.getLogger(__name__)

bp = Blueprint("reports", __name__)


def _days(value) -> int:
    if value is None or value == "":
        return DEFAULT_DAYS
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= MAX_DAYS:
        raise ValueError(f"days must be a whole number from 1 to {MAX_DAYS}")
    return value


@bp.route("/api/admin/tutees/<tutee_id>/progress-report")
@admin_required
def report_data(tutee_id):
    """The figures a report would be written from, without calling the model."""
    tutee = TuteeStoreDB.get(tutee_id)
    if tutee is None:
        return jsonify({"error": "Tutee not found"}), 404
    try:
        days = _days(request.args.get("days"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        data = fetch_report_data(tutee, days)
    except sqlite3.Error:
        return api_error("load report data")
    return jsonify({
        "stats": data.stats(),
        "sessions": [s.to_dict() for s in data.sessions],
        "learningPoints": [s.to_dict() for s in data.learning_points],
        "reviews": [r.to_dict() for r in data.reviews],
        "worksheets": [w.to_dict() for w in data.worksheets],
    })


@bp.route("/api/admin/tutees/<tutee_id>/progress-report", methods=["POST"])
@admin_required
def create_report(tutee_id):
    tutee = TuteeStoreDB.get(tutee_id)
    if tutee is None:
        return jsonify({"error": "Tutee not found"}), 404
    body = json_body()
    try:
        days = _days(body.get("days"))
        notes = parse_text(body.get("customNotes"), "customNotes", max_length=2000)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        data = fetch_report_data(tutee, days)
    except sqlite3.Error:
        return api_error("load report data")
    try:
        report = generate_report(data, notes)
    except LLMError:
        logger.exception("Progress report failed for %s", tutee_id)
        return jsonify({"error": "Failed to generate AI progress report. Please try again."}), 502
    return jsonify({"report": report, "stats": data.stats()})
