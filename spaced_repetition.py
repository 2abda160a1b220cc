"""
Spaced repetition for learning-point sessions.

Two pure pieces live here:

- The review scheduler. A session becomes due again a fixed number of days
  after its last review, taken from an escalating interval table indexed by
  the record's review count. The table plateaus at its last entry.
- The session merge view. Learning points are stored as rows that may share
  a (tutee, date) pair; readers see one session per date.

Nothing here touches the database. Review status is always derived from the
current time at the call site and must never be persisted.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from models import LearningPoint, LearningPointSession, ReviewRecord

# Days until the next review, indexed by review count.
REVIEW_INTERVALS: tuple[int, ...] = (1, 3, 7, 14, 30, 60, 90)

_SECONDS_PER_DAY = 86400
_BULLET_PREFIX = re.compile(r"^\s*(?:[•\-*]\s*)+")


# ── Review scheduler ─────────────────────────────────────────────────


@dataclass
class ReviewStatus:
    is_due: bool
    next_review_date: Optional[datetime]
    days_until: int
    days_overdue: int
    review_count: Optional[int] = None
    last_reviewed: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "isDue": self.is_due,
            "nextReviewDate": self.next_review_date.isoformat() if self.next_review_date else None,
            "daysUntil": self.days_until,
            "daysOverdue": self.days_overdue,
            "reviewCount": self.review_count,
            "lastReviewed": self.last_reviewed,
        }


def interval_for(review_count: int) -> int:
    """Interval in days for a record that has been reviewed review_count times."""
    if review_count < 0:
        raise ValueError("review_count must be >= 0")
    return REVIEW_INTERVALS[min(review_count, len(REVIEW_INTERVALS) - 1)]


def parse_timestamp(value: str) -> datetime:
    """Parse a stored ISO timestamp into a naive local datetime.

    Timestamps written by other clients may carry a UTC offset or a
    trailing "Z"; those are converted to local time.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def next_review_at(review_count: int, last_reviewed: datetime) -> datetime:
    return last_reviewed + timedelta(days=interval_for(review_count))


def review_status(record: Optional[ReviewRecord], now: Optional[datetime] = None) -> ReviewStatus:
    """Derive the due state of a session from its review record.

    A session without a record has never been reviewed and is due at once.
    """
    if record is None:
        return ReviewStatus(is_due=True, next_review_date=None, days_until=0, days_overdue=0)

    now = now or datetime.now()
    next_due = next_review_at(record.review_count, parse_timestamp(record.last_reviewed))
    days_until = math.ceil((next_due - now).total_seconds() / _SECONDS_PER_DAY)
    return ReviewStatus(
        is_due=days_until <= 0,
        next_review_date=next_due,
        days_until=days_until,
        days_overdue=max(0, -days_until),
        review_count=record.review_count,
        last_reviewed=record.last_reviewed,
    )


def next_review_count(record: Optional[ReviewRecord]) -> int:
    """Review count to store after a completed review.

    The first completed review creates the record at 0, so the session comes
    back after REVIEW_INTERVALS[0] days; each later review adds exactly one.
    """
    if record is None:
        return 0
    return record.review_count + 1


# ── Session merge view ───────────────────────────────────────────────


def split_bullet_points(text: str) -> list[str]:
    """Split stored bullet text into points, one per non-empty line."""
    points = []
    for line in text.splitlines():
        point = _BULLET_PREFIX.sub("", line).strip()
        if point:
            points.append(point)
    return points


def format_bullet_points(points: Iterable[str]) -> str:
    return "\n".join(f"• {p.strip()}" for p in points if p and p.strip())


def clean_bullet_points(points: Iterable[str]) -> list[str]:
    """Strip whitespace and bullet markers, dropping empty entries."""
    cleaned = []
    for p in points:
        point = _BULLET_PREFIX.sub("", p or "").strip()
        if point:
            cleaned.append(point)
    return cleaned


def union_tags(*tag_lists: Iterable[str]) -> list[str]:
    """Union of tag lists, first occurrence order preserved."""
    seen: dict[str, None] = {}
    for tags in tag_lists:
        for tag in tags:
            tag = tag.strip()
            if tag:
                seen.setdefault(tag, None)
    return list(seen)


def merge_rows(rows: list[LearningPoint]) -> LearningPointSession:
    """Coalesce the rows of one (tutee, date) into a single session.

    Bullet points are concatenated in row order, tags unioned, created_at is
    the earliest row's and updated_at the latest row's.
    """
    if not rows:
        raise ValueError("cannot merge an empty list of learning points")

    bullets: list[str] = []
    for row in rows:
        bullets.extend(split_bullet_points(row.points))

    return LearningPointSession(
        tutee_id=rows[0].tutee_id,
        session_date=rows[0].session_date,
        bullet_points=bullets,
        tags=union_tags(*(row.tags for row in rows)),
        created_at=min(row.created_at for row in rows),
        updated_at=max(row.updated_at for row in rows),
        ids=[row.id for row in rows],
    )


def merge_sessions(rows: list[LearningPoint]) -> list[LearningPointSession]:
    """Group rows by session date and merge each group, newest date first."""
    grouped: dict[str, list[LearningPoint]] = {}
    for row in rows:
        grouped.setdefault(row.session_date, []).append(row)
    sessions = [merge_rows(group) for group in grouped.values()]
    sessions.sort(key=lambda s: s.session_date, reverse=True)
    return sessions
