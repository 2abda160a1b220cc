"""Core routes: health check and the admin overview."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from flask import Blueprint, jsonify

from audit import recent_events
from database import get_db
from db_stores import (
    BookingRequestStoreDB,
    FeedbackStoreDB,
    LearningPointReviewStoreDB,
    LearningPointStoreDB,
    MessageStoreDB,
    TuteeStoreDB,
)
from helpers import admin_required, api_error
from spaced_repetition import review_status

logger = logging.getLogger(__name__)

bp = Blueprint("core", __name__)


@bp.route("/healthz")
def healthz():
    try:
        get_db().execute("SELECT 1").fetchone()
    except sqlite3.Error:
        logger.exception("Health check failed")
        return jsonify({"status": "error", "database": "unavailable"}), 503
    return jsonify({"status": "ok", "database": "ok"})


@bp.route("/api/admin/overview")
@admin_required
def admin_overview():
    """Per-tutee summary for the admin dashboard."""
    try:
        now = datetime.now()
        unread = MessageStoreDB.unread_by_tutee()
        tutees = []
        for tutee in TuteeStoreDB.list():
            sessions = LearningPointStoreDB(tutee.id).sessions()
            reviews = LearningPointReviewStoreDB(tutee.id).by_date()
            due = sum(1 for s in sessions if review_status(reviews.get(s.session_date), now).is_due)
            tutees.append({
                **tutee.to_dict(),
                "sessionCount": len(sessions),
                "pointCount": sum(len(s.bullet_points) for s in sessions),
                "dueReviews": due,
                "unreadMessages": unread.get(tutee.id, 0),
            })
        return jsonify({
            "tutees": tutees,
            "pendingBookings": BookingRequestStoreDB.pending_count(),
            "openFeedback": FeedbackStoreDB.open_count(),
            "recentActivity": recent_events(20),
        })
    except sqlite3.Error:
        return api_error("load the overview")
