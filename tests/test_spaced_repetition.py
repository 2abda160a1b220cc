"""Tests for the review scheduler and the session merge view."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models import LearningPoint, ReviewRecord
from spaced_repetition import (
    REVIEW_INTERVALS,
    format_bullet_points,
    interval_for,
    merge_rows,
    merge_sessions,
    next_review_at,
    next_review_count,
    parse_timestamp,
    review_status,
    split_bullet_points,
    union_tags,
)

T = datetime(2026, 3, 1, 16, 0, 0)


def _record(review_count: int, last_reviewed: datetime = T) -> ReviewRecord:
    return ReviewRecord(
        id="r1", tutee_id="primary-school", session_date="2026-02-28",
        last_reviewed=last_reviewed.isoformat(), review_count=review_count,
    )


def _row(row_id: str, date: str, points: str, tags: list[str],
         created: str = "2026-03-01T10:00:00", updated: str = "2026-03-01T10:00:00") -> LearningPoint:
    return LearningPoint(id=row_id, tutee_id="primary-school", session_date=date,
                         points=points, tags=tags, created_at=created, updated_at=updated)


# ── Scheduler ───────────────────────────────────────────────


class TestIntervals:
    @pytest.mark.parametrize("count,days", list(enumerate([1, 3, 7, 14, 30, 60, 90])))
    def test_table(self, count, days):
        assert interval_for(count) == days

    @pytest.mark.parametrize("count", [7, 8, 50, 1000])
    def test_plateaus_at_last_interval(self, count):
        assert interval_for(count) == 90

    def test_index_is_clamped_count(self):
        for count in range(20):
            assert interval_for(count) == REVIEW_INTERVALS[min(count, 6)]

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            interval_for(-1)

    def test_next_review_at(self):
        assert next_review_at(2, T) == T + timedelta(days=7)


class TestReviewStatus:
    def test_no_record_is_due(self):
        status = review_status(None, T)
        assert status.is_due is True
        assert status.days_until == 0
        assert status.days_overdue == 0
        assert status.next_review_date is None

    def test_six_days_after_second_interval_not_due(self):
        status = review_status(_record(2), T + timedelta(days=6))
        assert status.is_due is False
        assert status.days_until == 1
        assert status.days_overdue == 0

    def test_due_on_the_day(self):
        status = review_status(_record(2), T + timedelta(days=7))
        assert status.is_due is True
        assert status.days_overdue == 0

    def test_overdue_by_two_days(self):
        status = review_status(_record(2), T + timedelta(days=9))
        assert status.is_due is True
        assert status.days_overdue == 2

    def test_partial_day_rounds_up(self):
        status = review_status(_record(2), T + timedelta(days=6, hours=12))
        assert status.is_due is False
        assert status.days_until == 1

    def test_first_review_comes_back_after_one_day(self):
        record = _record(next_review_count(None))
        assert review_status(record, T + timedelta(hours=12)).is_due is False
        assert review_status(record, T + timedelta(days=1)).is_due is True

    def test_status_is_derived_from_now(self):
        record = _record(0)
        assert review_status(record, T).is_due is False
        assert review_status(record, T + timedelta(days=2)).is_due is True

    def test_to_dict_uses_camel_case(self):
        payload = review_status(_record(1), T).to_dict()
        assert payload["isDue"] is False
        assert payload["daysUntil"] == 3
        assert payload["reviewCount"] == 1
        assert payload["nextReviewDate"].startswith("2026-03-04")


class TestReviewCount:
    def test_first_review_creates_count_zero(self):
        assert next_review_count(None) == 0

    def test_each_review_adds_one(self):
        assert next_review_count(_record(0)) == 1
        assert next_review_count(_record(6)) == 7


def test_parse_timestamp_converts_utc_to_local():
    parsed = parse_timestamp("2026-03-01T12:00:00Z")
    expected = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert parsed == expected
    assert parsed.tzinfo is None


def test_parse_timestamp_naive_unchanged():
    assert parse_timestamp("2026-03-01T12:00:00") == datetime(2026, 3, 1, 12, 0)


# ── Merge view ──────────────────────────────────────────────


class TestBulletPoints:
    def test_split_strips_markers_and_blank_lines(self):
        text = "• Fractions\n- Decimals\n\n* Percentages\nRatios  \n   "
        assert split_bullet_points(text) == ["Fractions", "Decimals", "Percentages", "Ratios"]

    def test_format(self):
        assert format_bullet_points(["A", " B ", ""]) == "• A\n• B"

    def test_split_of_format_keeps_points(self):
        points = ["Long division", "Column addition"]
        assert split_bullet_points(format_bullet_points(points)) == points


class TestMerge:
    def test_concatenates_in_row_order_and_unions_tags(self):
        rows = [
            _row("a", "2026-03-01", "• A\n• B", ["maths", "year5"]),
            _row("b", "2026-03-01", "• C", ["maths", "homework"],
                 created="2026-03-01T11:00:00", updated="2026-03-01T12:00:00"),
        ]
        session = merge_rows(rows)
        assert session.bullet_points == ["A", "B", "C"]
        assert session.tags == ["maths", "year5", "homework"]
        assert session.created_at == "2026-03-01T10:00:00"
        assert session.updated_at == "2026-03-01T12:00:00"
        assert session.ids == ["a", "b"]

    def test_empty_rows_rejected(self):
        with pytest.raises(ValueError):
            merge_rows([])

    def test_sessions_grouped_by_date_newest_first(self):
        rows = [
            _row("a", "2026-02-01", "• Old", []),
            _row("b", "2026-03-01", "• New", []),
            _row("c", "2026-02-01", "• Older too", []),
        ]
        sessions = merge_sessions(rows)
        assert [s.session_date for s in sessions] == ["2026-03-01", "2026-02-01"]
        assert sessions[1].bullet_points == ["Old", "Older too"]

    def test_union_tags_ignores_blanks(self):
        assert union_tags(["a", " ", "b"], ["b", "c"]) == ["a", "b", "c"]
