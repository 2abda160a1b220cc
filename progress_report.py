"""
AI progress reports for parents.

The report covers a recent window (30 days by default): lessons attended,
topics from the learning points, how consistently the tutee completed their
spaced-repetition reviews, and worksheet progress. The numbers are gathered
here and handed to the model as plain text; the model only writes prose.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ai_client import LLMError, chat_completion
from db_stores import (
    LearningPointReviewStoreDB,
    LearningPointStoreDB,
    TuitionSessionStoreDB,
    WorksheetStoreDB,
)
from models import (
    LearningPointSession,
    ReviewRecord,
    TuitionSession,
    Tutee,
    Worksheet,
)

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 30
MAX_DAYS = 365
REPORT_TEMPERATURE = 0.7

SYSTEM_PROMPT = """You are an expert educational consultant and private tutor. Write a monthly progress report for a parent from raw student data.

TONE: professional, data-driven, encouraging and personal. Avoid generic praise; name specific achievements and areas for growth.

STRUCTURE:
1. Executive Summary: a 2-3 sentence overview of the period.
2. Academic Highlights: topics covered and how well they were retained.
3. Engagement & Learning Habits: consistency with reviews and practice.
4. Strategic Focus: 1-2 specific areas to target next.
5. Personal Note to Student: a short, motivating message.

Use headers and bullet points. Use emojis sparingly. Return only the report text."""


@dataclass
class ReportData:
    tutee: Tutee
    days: int
    since: str  # YYYY-MM-DD
    sessions: list[TuitionSession] = field(default_factory=list)
    learning_points: list[LearningPointSession] = field(default_factory=list)
    reviews: list[ReviewRecord] = field(default_factory=list)
    worksheets: list[Worksheet] = field(default_factory=list)

    @property
    def lesson_hours(self) -> float:
        return round(sum(_duration_hours(s) for s in self.sessions), 2)

    def stats(self) -> dict:
        completed = [w for w in self.worksheets if w.status == "Completed"]
        return {
            "days": self.days,
            "since": self.since,
            "lessons": len(self.sessions),
            "lessonHours": self.lesson_hours,
            "learningPointSessions": len(self.learning_points),
            "learningPoints": sum(len(s.bullet_points) for s in self.learning_points),
            "reviewRecords": len(self.reviews),
            "reviewsCompleted": sum(r.review_count + 1 for r in self.reviews),
            "worksheets": len(self.worksheets),
            "worksheetsCompleted": len(completed),
        }


def _duration_hours(session: TuitionSession) -> float:
    start = datetime.strptime(session.start_time, "%H:%M")
    end = datetime.strptime(session.end_time, "%H:%M")
    return max((end - start).total_seconds() / 3600, 0.0)


def fetch_report_data(tutee: Tutee, days: int = DEFAULT_DAYS,
                      today: datetime | None = None) -> ReportData:
    """Collect everything dated within the last `days` days."""
    since_dt = (today or datetime.now()) - timedelta(days=days)
    since = since_dt.date().isoformat()

    sessions = [
        s for s in TuitionSessionStoreDB.list(tutee.id) if s.session_date >= since
    ]
    learning_points = [
        s for s in LearningPointStoreDB(tutee.id).sessions() if s.session_date >= since
    ]
    reviews = sorted(
        (r for r in LearningPointReviewStoreDB(tutee.id).records if r.session_date >= since),
        key=lambda r: r.last_reviewed,
        reverse=True,
    )
    worksheets = WorksheetStoreDB(tutee.id).updated_since(since_dt.isoformat())

    return ReportData(
        tutee=tutee, days=days, since=since, sessions=sessions,
        learning_points=learning_points, reviews=reviews, worksheets=worksheets,
    )


def build_prompt(data: ReportData, custom_notes: str = "") -> str:
    lessons = "\n".join(
        f"- {s.session_date}: {_duration_hours(s):g}h" for s in data.sessions
    ) or "- none recorded"
    topics = "\n".join(
        f"- {s.session_date}: {'; '.join(s.bullet_points)}" for s in data.learning_points
    ) or "- none recorded"
    reviews = "\n".join(
        f"- Session {r.session_date}: {r.review_count + 1} review(s) completed, last on "
        f"{r.last_reviewed[:10]}."
        + (f" {len(r.history)} quiz answers recorded." if r.history else "")
        for r in data.reviews
    ) or "- no reviews completed"
    worksheets = "\n".join(
        f"- {w.worksheet_name}: {w.status} ({w.completion_percentage}%)" for w in data.worksheets
    ) or "- none recorded"

    parts = [
        "STUDENT PROFILE:",
        f"- Name: {data.tutee.name}",
        f"- Level: {data.tutee.description or 'not given'}",
        "",
        f"DATA FOR THE LAST {data.days} DAYS (since {data.since}):",
        f"- Attendance: {len(data.sessions)} lessons, {data.lesson_hours:g} hours",
        lessons,
        "",
        "- Topics covered:",
        topics,
        "",
        "- Spaced-repetition reviews:",
        reviews,
        "",
        "- Worksheet progress:",
        worksheets,
    ]
    if custom_notes:
        parts += ["", f"- Tutor's notes: {custom_notes}"]
    parts += ["", "Write the progress report for the parent."]
    return "\n".join(parts)


def generate_report(data: ReportData, custom_notes: str = "") -> str:
    """Ask the model for the report text. LLMError propagates to the caller."""
    result = chat_completion(
        build_prompt(data, custom_notes),
        system_prompt=SYSTEM_PROMPT,
        temperature=REPORT_TEMPERATURE,
    )
    report = (result["response"] or "").strip()
    if not report:
        raise LLMError("Empty progress report from model")
    logger.info("Progress report generated for %s (%d days, %d chars)",
                data.tutee.id, data.days, len(report))
    return report
