"""Tests for AI progress reports built from review history."""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from ai_client import LLMError
from conftest import TUTEE_ID
from db_stores import (
    AvailableDateStoreDB,
    LearningPointReviewStoreDB,
    LearningPointStoreDB,
    TuteeStoreDB,
    WorksheetStoreDB,
)
from progress_report import build_prompt, fetch_report_data, generate_report

URL = f"/api/admin/tutees/{TUTEE_ID}/progress-report"


def _reply(text: str) -> dict:
    return {"response": text, "model": "gpt-4o-mini", "usage": None}


def _seed(recent: str, old: str) -> None:
    """One lesson, session and review inside the window and one outside it."""
    for date in (recent, old):
        slot = AvailableDateStoreDB.create(date, "16:00", "17:30")
        AvailableDateStoreDB.book(slot.id, TUTEE_ID)
        LearningPointStoreDB(TUTEE_ID).add_points(date, [f"Topic {date}"])
        LearningPointReviewStoreDB(TUTEE_ID).record_review(
            date, [{"question": "Q", "answer": "A", "feedback": "Good"}],
        )
    LearningPointReviewStoreDB(TUTEE_ID).record_review(recent)
    WorksheetStoreDB(TUTEE_ID).create("Fractions 1", recent, status="Completed",
                                      completion_percentage=100)


class TestReportData:
    def test_window_filters_by_date(self, app):
        with app.app_context():
            _seed("2026-04-10", "2026-01-10")
            data = fetch_report_data(TuteeStoreDB.get(TUTEE_ID), 30, today=datetime(2026, 4, 20))
        assert data.since == "2026-03-21"
        assert [s.session_date for s in data.sessions] == ["2026-04-10"]
        assert [s.session_date for s in data.learning_points] == ["2026-04-10"]
        assert [r.session_date for r in data.reviews] == ["2026-04-10"]

        stats = data.stats()
        assert stats["lessons"] == 1
        assert stats["lessonHours"] == 1.5
        assert stats["reviewsCompleted"] == 2
        assert stats["worksheetsCompleted"] == 1

    def test_prompt_carries_review_history(self, app):
        with app.app_context():
            _seed("2026-04-10", "2026-01-10")
            data = fetch_report_data(TuteeStoreDB.get(TUTEE_ID), 30, today=datetime(2026, 4, 20))
        prompt = build_prompt(data, "Working towards SATs")
        assert "Name: Primary School" in prompt
        assert "Level: Year 5 maths" in prompt
        assert "Session 2026-04-10: 2 review(s) completed" in prompt
        assert "1 quiz answers recorded" in prompt
        assert "Fractions 1: Completed (100%)" in prompt
        assert "Tutor's notes: Working towards SATs" in prompt
        assert "2026-01-10" not in prompt

    def test_empty_window(self, app):
        with app.app_context():
            data = fetch_report_data(TuteeStoreDB.get(TUTEE_ID))
        assert "- no reviews completed" in build_prompt(data)

    @patch("progress_report.chat_completion")
    def test_empty_model_reply_is_an_error(self, mock_chat, app):
        mock_chat.return_value = _reply("   ")
        with app.app_context():
            data = fetch_report_data(TuteeStoreDB.get(TUTEE_ID))
        with pytest.raises(LLMError):
            generate_report(data)


class TestReportRoutes:
    def _seed_recent(self, app):
        recent = (datetime.now() - timedelta(days=3)).date().isoformat()
        with app.app_context():
            _seed(recent, "2020-01-01")

    def test_data_route(self, app, admin_client):
        self._seed_recent(app)
        data = admin_client.get(f"{URL}?days=14").get_json()
        assert data["stats"]["days"] == 14
        assert data["stats"]["lessons"] == 1
        assert len(data["reviews"]) == 1

    @patch("progress_report.chat_completion")
    def test_generate(self, mock_chat, app, admin_client):
        self._seed_recent(app)
        mock_chat.return_value = _reply("## Executive Summary\nGreat month 📈")
        resp = admin_client.post(URL, json={"customNotes": "Keen on fractions"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["report"].startswith("## Executive Summary")
        assert body["stats"]["reviewRecords"] == 1
        assert "Keen on fractions" in mock_chat.call_args.args[0]

    @patch("progress_report.chat_completion", side_effect=LLMError("upstream down"))
    def test_model_failure_is_502(self, mock_chat, admin_client):
        resp = admin_client.post(URL, json={})
        assert resp.status_code == 502
        assert resp.get_json()["error"] == "Failed to generate AI progress report. Please try again."

    def test_invalid_days(self, admin_client):
        assert admin_client.get(f"{URL}?days=0").status_code == 400
        assert admin_client.post(URL, json={"days": "lots"}).status_code == 400

    def test_admin_only(self, tutee_client):
        assert tutee_client.get(URL).status_code == 403
        assert tutee_client.post(URL, json={}).status_code == 403

    def test_unknown_tutee(self, admin_client):
        assert admin_client.get("/api/admin/tutees/nobody/progress-report").status_code == 404
