"""Learning points, spaced repetition reviews and AI review quizzes."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from flask import Blueprint, jsonify

from ai_client import LLMError
from db_stores import LearningPointReviewStoreDB, LearningPointStoreDB, TuteeStoreDB
from helpers import (
    api_error,
    json_body,
    parse_date,
    parse_string_list,
    tutee_access_required,
)
from review_quiz import ReviewQuizError, generate_review_questions, verify_review_answers
from spaced_repetition import clean_bullet_points, review_status, split_bullet_points

logger = logging.getLogger(__name__)

bp = Blueprint("learning_points", __name__)


def _bullets_from(data: dict) -> list[str]:
    """Accept bulletPoints as a list or as newline-separated bullet text."""
    value = data.get("bulletPoints")
    if isinstance(value, str):
        return split_bullet_points(value)
    return clean_bullet_points(parse_string_list(value, "bulletPoints"))


def _session_payload(session, record, now: datetime) -> dict:
    payload = session.to_dict()
    payload["review"] = record.to_dict() if record else None
    payload["reviewStatus"] = review_status(record, now).to_dict()
    return payload


@bp.route("/api/tutees/<tutee_id>/learning-points")
@tutee_access_required
def list_learning_points(tutee_id):
    try:
        sessions = LearningPointStoreDB(tutee_id).sessions()
        reviews = LearningPointReviewStoreDB(tutee_id).by_date()
    except sqlite3.Error:
        return api_error("load learning points")
    now = datetime.now()
    return jsonify({
        "sessions": [_session_payload(s, reviews.get(s.session_date), now) for s in sessions],
    })


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>")
@tutee_access_required
def get_learning_points(tutee_id, session_date):
    session = LearningPointStoreDB(tutee_id).session(session_date)
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    record = LearningPointReviewStoreDB(tutee_id).get(session_date)
    return jsonify({"session": _session_payload(session, record, datetime.now())})


@bp.route("/api/tutees/<tutee_id>/learning-points", methods=["POST"])
@tutee_access_required
def add_learning_points(tutee_id):
    data = json_body()
    try:
        session_date = parse_date(data.get("sessionDate"))
        bullets = _bullets_from(data)
        tags = parse_string_list(data.get("tags"), "tags")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if not bullets:
        return jsonify({"error": "At least one learning point is required"}), 400

    try:
        session = LearningPointStoreDB(tutee_id).add_points(session_date, bullets, tags)
    except sqlite3.Error:
        return api_error("save learning points")
    return jsonify({"session": session.to_dict()}), 201


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>", methods=["PUT"])
@tutee_access_required
def replace_learning_points(tutee_id, session_date):
    """Overwrite a session. Removing every point deletes the session."""
    data = json_body()
    try:
        bullets = _bullets_from(data)
        tags = parse_string_list(data.get("tags"), "tags")
        new_date = parse_date(data["newDate"]) if data.get("newDate") else None
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    store = LearningPointStoreDB(tutee_id)
    try:
        if not bullets:
            if not store.delete_session(session_date):
                return jsonify({"error": "Session not found"}), 404
            return jsonify({"session": None, "deleted": True})
        session = store.replace_session(session_date, bullets, tags, new_date=new_date)
    except sqlite3.Error:
        return api_error("update learning points")
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    return jsonify({"session": session.to_dict()})


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>/tags", methods=["PUT"])
@tutee_access_required
def update_learning_point_tags(tutee_id, session_date):
    try:
        tags = parse_string_list(json_body().get("tags"), "tags")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    try:
        session = LearningPointStoreDB(tutee_id).update_tags(session_date, tags)
    except sqlite3.Error:
        return api_error("update tags")
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    return jsonify({"session": session.to_dict()})


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>", methods=["DELETE"])
@tutee_access_required
def delete_learning_points(tutee_id, session_date):
    try:
        deleted = LearningPointStoreDB(tutee_id).delete_session(session_date)
    except sqlite3.Error:
        return api_error("delete learning points")
    if not deleted:
        return jsonify({"error": "Session not found"}), 404
    return jsonify({"success": True})


# ── Reviews ──────────────────────────────────────────────────────────


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>/review", methods=["POST"])
@tutee_access_required
def mark_reviewed(tutee_id, session_date):
    """Record a completed review cycle, with the quiz history that earned it."""
    history = json_body().get("history") or []
    if not isinstance(history, list) or not all(isinstance(h, dict) for h in history):
        return jsonify({"error": "history must be a list of objects"}), 400
    entries = [
        {
            "question": str(h.get("question", "")),
            "answer": str(h.get("answer", "")),
            "feedback": str(h.get("feedback", "")),
            "reviewedAt": datetime.now().isoformat(),
        }
        for h in history
    ]

    if LearningPointStoreDB(tutee_id).session(session_date) is None:
        return jsonify({"error": "Session not found"}), 404
    try:
        record = LearningPointReviewStoreDB(tutee_id).record_review(session_date, entries)
    except sqlite3.Error:
        return api_error("mark as reviewed")
    return jsonify({
        "review": record.to_dict(),
        "reviewStatus": review_status(record).to_dict(),
    })


@bp.route("/api/tutees/<tutee_id>/reviews")
@tutee_access_required
def list_reviews(tutee_id):
    now = datetime.now()
    try:
        records = LearningPointReviewStoreDB(tutee_id).records
    except sqlite3.Error:
        return api_error("load reviews")
    return jsonify({
        "reviews": [
            {**r.to_dict(), "reviewStatus": review_status(r, now).to_dict()} for r in records
        ],
    })


@bp.route("/api/tutees/<tutee_id>/reviews/due")
@tutee_access_required
def due_reviews(tutee_id):
    """Sessions due for review, most overdue first. Never-reviewed sessions are due."""
    now = datetime.now()
    try:
        sessions = LearningPointStoreDB(tutee_id).sessions()
        reviews = LearningPointReviewStoreDB(tutee_id).by_date()
    except sqlite3.Error:
        return api_error("load due reviews")

    due = []
    for s in sessions:
        record = reviews.get(s.session_date)
        if review_status(record, now).is_due:
            due.append(_session_payload(s, record, now))
    due.sort(key=lambda p: p["reviewStatus"]["daysOverdue"], reverse=True)
    return jsonify({"due": due, "count": len(due)})


# ── AI review quiz ───────────────────────────────────────────────────


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>/quiz", methods=["POST"])
@tutee_access_required
def create_quiz(tutee_id, session_date):
    session = LearningPointStoreDB(tutee_id).session(session_date)
    if session is None:
        return jsonify({"error": "Session not found"}), 404
    tutee = TuteeStoreDB.get(tutee_id)

    try:
        questions = generate_review_questions(tutee.name, tutee.description, session.bullet_points)
    except (ReviewQuizError, LLMError):
        logger.exception("Quiz generation failed for %s %s", tutee_id, session_date)
        return jsonify({"error": "Failed to generate review questions. Please try again."}), 502
    return jsonify({"questions": questions, "learningPoints": session.bullet_points})


@bp.route("/api/tutees/<tutee_id>/learning-points/<session_date>/quiz/verify", methods=["POST"])
@tutee_access_required
def verify_quiz(tutee_id, session_date):
    data = json_body()
    try:
        questions = parse_string_list(data.get("questions"), "questions")
        answers = parse_string_list(data.get("answers"), "answers")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if not questions or len(questions) != len(answers):
        return jsonify({"error": "Each question needs exactly one answer"}), 400
    if any(not a.strip() for a in answers):
        return jsonify({"error": "Please answer every question"}), 400
    if LearningPointStoreDB(tutee_id).session(session_date) is None:
        return jsonify({"error": "Session not found"}), 404
    tutee = TuteeStoreDB.get(tutee_id)

    try:
        result = verify_review_answers(tutee.name, tutee.description, questions, answers)
    except (ReviewQuizError, LLMError):
        logger.exception("Quiz verification failed for %s %s", tutee_id, session_date)
        return jsonify({"error": "Failed to verify answers. Please try again."}), 502
    return jsonify({"verification": result.to_dict()})
