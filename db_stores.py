"""
DB-backed store classes for the tuition portal.

Each store maps rows of one table group to the dataclasses in models.py and
back. Stores scoped to a tutee take the tutee id in their constructor; stores
the admin reads across all tutees expose static methods.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from database import get_db
from models import (
    ADMIN_RECIPIENT,
    AvailableDate,
    BookingRequest,
    DashboardComponent,
    Feedback,
    LearningPoint,
    LearningPointSession,
    Message,
    NotificationLog,
    PushSubscription,
    ReviewRecord,
    SharedFile,
    Tutee,
    TuitionSession,
    TuteeComponent,
    Worksheet,
)
from spaced_repetition import (
    format_bullet_points,
    merge_rows,
    merge_sessions,
    next_review_count,
    split_bullet_points,
    union_tags,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now().isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


# ── Tutees ───────────────────────────────────────────────────────────


class TuteeStoreDB:
    """Tutee profiles and their PINs."""

    _UPDATABLE = ("name", "description", "icon", "color_primary", "color_secondary", "color_gradient")

    @staticmethod
    def list() -> list[Tutee]:
        db = get_db()
        rows = db.execute("SELECT * FROM tutees ORDER BY name").fetchall()
        return [TuteeStoreDB._row_to_tutee(r) for r in rows]

    @staticmethod
    def get(tutee_id: str) -> Optional[Tutee]:
        db = get_db()
        row = db.execute("SELECT * FROM tutees WHERE id = ?", (tutee_id,)).fetchone()
        return TuteeStoreDB._row_to_tutee(row) if row else None

    @staticmethod
    def exists(tutee_id: str) -> bool:
        db = get_db()
        return db.execute("SELECT 1 FROM tutees WHERE id = ?", (tutee_id,)).fetchone() is not None

    @staticmethod
    def create(tutee_id: str, name: str, pin: str, *, description: str = "",
               icon: str = "BookOpen", color_primary: str = "pink",
               color_secondary: str = "purple",
               color_gradient: str = "from-pink-500 to-purple-600") -> Tutee:
        db = get_db()
        now = _now()
        db.execute(
            "INSERT INTO tutees (id, name, pin_hash, description, icon, color_primary, "
            "color_secondary, color_gradient, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (tutee_id, name, generate_password_hash(pin), description, icon,
             color_primary, color_secondary, color_gradient, now, now),
        )
        db.commit()
        return TuteeStoreDB.get(tutee_id)

    @staticmethod
    def update(tutee_id: str, **fields) -> Optional[Tutee]:
        """Update profile fields (info, colors, icon). Unknown keys are ignored."""
        sets = []
        vals = []
        for key in TuteeStoreDB._UPDATABLE:
            if fields.get(key) is not None:
                sets.append(f"{key}=?")
                vals.append(fields[key])
        if sets:
            sets.append("updated_at=?")
            vals.extend([_now(), tutee_id])
            db = get_db()
            db.execute(f"UPDATE tutees SET {', '.join(sets)} WHERE id=?", vals)
            db.commit()
        return TuteeStoreDB.get(tutee_id)

    @staticmethod
    def verify_pin(tutee_id: str, pin: str) -> bool:
        db = get_db()
        row = db.execute("SELECT pin_hash FROM tutees WHERE id = ?", (tutee_id,)).fetchone()
        if not row or not row["pin_hash"]:
            return False
        return check_password_hash(row["pin_hash"], pin)

    @staticmethod
    def change_pin(tutee_id: str, current_pin: str, new_pin: str) -> bool:
        """Replace the PIN if current_pin matches. Returns False otherwise."""
        if not TuteeStoreDB.verify_pin(tutee_id, current_pin):
            return False
        db = get_db()
        db.execute(
            "UPDATE tutees SET pin_hash=?, updated_at=? WHERE id=?",
            (generate_password_hash(new_pin), _now(), tutee_id),
        )
        db.commit()
        return True

    @staticmethod
    def delete(tutee_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM tutees WHERE id = ?", (tutee_id,))
        db.execute("DELETE FROM push_subscriptions WHERE tutee_id = ?", (tutee_id,))
        db.execute("DELETE FROM messages WHERE sender_id = ? OR receiver_id = ?", (tutee_id, tutee_id))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def _row_to_tutee(r) -> Tutee:
        return Tutee(
            id=r["id"], name=r["name"], description=r["description"], icon=r["icon"],
            color_primary=r["color_primary"], color_secondary=r["color_secondary"],
            color_gradient=r["color_gradient"], created_at=r["created_at"],
            updated_at=r["updated_at"],
        )


# ── Booking Requests ─────────────────────────────────────────────────


class BookingRequestStoreDB:
    """Booking requests raised by tutees and decided by the admin."""

    _COLUMNS = {
        "status": "status",
        "requested_date": "requested_date",
        "requested_start_time": "requested_start_time",
        "requested_end_time": "requested_end_time",
        "admin_notes": "admin_notes",
        "tutee_notes": "tutee_notes",
    }

    @staticmethod
    def list(status: str = "", tutee_id: str = "") -> list[BookingRequest]:
        clauses = []
        vals: list = []
        if status:
            clauses.append("status = ?")
            vals.append(status)
        if tutee_id:
            clauses.append("tutee_id = ?")
            vals.append(tutee_id)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        db = get_db()
        rows = db.execute(
            f"SELECT * FROM booking_requests {where}ORDER BY created_at DESC", vals,
        ).fetchall()
        return [BookingRequestStoreDB._row_to_request(r) for r in rows]

    @staticmethod
    def get(request_id: str) -> Optional[BookingRequest]:
        db = get_db()
        row = db.execute("SELECT * FROM booking_requests WHERE id = ?", (request_id,)).fetchone()
        return BookingRequestStoreDB._row_to_request(row) if row else None

    @staticmethod
    def create(tutee_id: str, requested_date: str, start_time: str, end_time: str,
               tutee_notes: Optional[str] = None) -> BookingRequest:
        db = get_db()
        request_id = _new_id()
        now = _now()
        db.execute(
            "INSERT INTO booking_requests (id, tutee_id, requested_date, requested_start_time, "
            "requested_end_time, status, tutee_notes, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, 'pending', ?, ?, ?)",
            (request_id, tutee_id, requested_date, start_time, end_time,
             tutee_notes or None, now, now),
        )
        db.commit()
        return BookingRequestStoreDB.get(request_id)

    @staticmethod
    def update(request_id: str, **fields) -> Optional[BookingRequest]:
        """Update the given fields; a value of None leaves the column untouched."""
        sets = []
        vals = []
        for key, column in BookingRequestStoreDB._COLUMNS.items():
            if fields.get(key) is not None:
                sets.append(f"{column}=?")
                vals.append(fields[key])
        if not sets:
            return BookingRequestStoreDB.get(request_id)
        sets.append("updated_at=?")
        vals.extend([_now(), request_id])
        db = get_db()
        cur = db.execute(f"UPDATE booking_requests SET {', '.join(sets)} WHERE id=?", vals)
        db.commit()
        if cur.rowcount == 0:
            return None
        return BookingRequestStoreDB.get(request_id)

    @staticmethod
    def delete(request_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM booking_requests WHERE id = ?", (request_id,))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def pending_count() -> int:
        db = get_db()
        row = db.execute(
            "SELECT COUNT(*) AS cnt FROM booking_requests WHERE status = 'pending'"
        ).fetchone()
        return row["cnt"] if row else 0

    @staticmethod
    def _row_to_request(r) -> BookingRequest:
        return BookingRequest(
            id=r["id"], tutee_id=r["tutee_id"], requested_date=r["requested_date"],
            requested_start_time=r["requested_start_time"],
            requested_end_time=r["requested_end_time"], status=r["status"],
            admin_notes=r["admin_notes"] or None, tutee_notes=r["tutee_notes"] or None,
            created_at=r["created_at"], updated_at=r["updated_at"],
        )


# ── Calendar Slots ───────────────────────────────────────────────────


class AvailableDateStoreDB:
    """Calendar slots: open time slots, booked lessons, exams and tests."""

    @staticmethod
    def list(start_date: str = "", end_date: str = "") -> list[AvailableDate]:
        clauses = []
        vals = []
        if start_date:
            clauses.append("date >= ?")
            vals.append(start_date)
        if end_date:
            clauses.append("date <= ?")
            vals.append(end_date)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        db = get_db()
        rows = db.execute(
            f"SELECT * FROM available_dates {where}ORDER BY date, start_time", vals,
        ).fetchall()
        return [AvailableDateStoreDB._row_to_slot(r) for r in rows]

    @staticmethod
    def get(slot_id: str) -> Optional[AvailableDate]:
        db = get_db()
        row = db.execute("SELECT * FROM available_dates WHERE id = ?", (slot_id,)).fetchone()
        return AvailableDateStoreDB._row_to_slot(row) if row else None

    @staticmethod
    def find_open_slot(date: str, tutee_id: str) -> Optional[AvailableDate]:
        """First available slot on a date reserved for the given tutee."""
        db = get_db()
        row = db.execute(
            "SELECT * FROM available_dates WHERE date = ? AND tutee_id = ? AND is_available = 1 "
            "ORDER BY start_time LIMIT 1",
            (date, tutee_id),
        ).fetchone()
        return AvailableDateStoreDB._row_to_slot(row) if row else None

    @staticmethod
    def create(date: str, start_time: str, end_time: str, *, is_available: bool = True,
               tutee_id: Optional[str] = None, notes: Optional[str] = None,
               event_type: str = "time_slot") -> AvailableDate:
        db = get_db()
        slot_id = _new_id()
        db.execute(
            "INSERT INTO available_dates (id, date, start_time, end_time, is_available, "
            "tutee_id, notes, event_type, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (slot_id, date, start_time, end_time, 1 if is_available else 0,
             tutee_id or None, _clean_notes(notes), event_type, _now()),
        )
        db.commit()
        return AvailableDateStoreDB.get(slot_id)

    @staticmethod
    def update(slot_id: str, fields: dict) -> Optional[AvailableDate]:
        """Apply a partial update.

        Keys present in fields are written, including explicit None for the
        nullable columns (booked_by, tutee_id) to clear them. Empty notes are
        stored as NULL.
        """
        sets = []
        vals = []
        for key in ("date", "start_time", "end_time", "event_type"):
            if fields.get(key) is not None:
                sets.append(f"{key}=?")
                vals.append(fields[key])
        if fields.get("is_available") is not None:
            sets.append("is_available=?")
            vals.append(1 if fields["is_available"] else 0)
        for key in ("booked_by", "tutee_id"):
            if key in fields:
                sets.append(f"{key}=?")
                vals.append(fields[key] or None)
        if "notes" in fields:
            sets.append("notes=?")
            vals.append(_clean_notes(fields["notes"]))
        if not sets:
            return AvailableDateStoreDB.get(slot_id)
        vals.append(slot_id)
        db = get_db()
        cur = db.execute(f"UPDATE available_dates SET {', '.join(sets)} WHERE id=?", vals)
        db.commit()
        if cur.rowcount == 0:
            return None
        return AvailableDateStoreDB.get(slot_id)

    @staticmethod
    def delete(slot_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM available_dates WHERE id = ?", (slot_id,))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def book(slot_id: str, tutee_id: str) -> Optional[AvailableDate]:
        """Mark a slot booked by a tutee and record the tuition session."""
        slot = AvailableDateStoreDB.update(slot_id, {"booked_by": tutee_id, "is_available": False})
        if slot is None:
            return None
        TuitionSessionStoreDB.create_for_slot(slot, tutee_id)
        return slot

    @staticmethod
    def cancel_booking(slot_id: str) -> Optional[AvailableDate]:
        """Free a booked slot and cancel its tuition session."""
        slot = AvailableDateStoreDB.update(slot_id, {"booked_by": None, "is_available": True})
        if slot is None:
            return None
        TuitionSessionStoreDB.cancel_for_slot(slot_id)
        return slot

    @staticmethod
    def _row_to_slot(r) -> AvailableDate:
        return AvailableDate(
            id=r["id"], date=r["date"],
            start_time=(r["start_time"] or "")[:5], end_time=(r["end_time"] or "")[:5],
            is_available=bool(r["is_available"]), booked_by=r["booked_by"] or None,
            tutee_id=r["tutee_id"] or None, notes=r["notes"] or None,
            event_type=r["event_type"] or "time_slot", created_at=r["created_at"],
        )


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


# ── Tuition Sessions ─────────────────────────────────────────────────


class TuitionSessionStoreDB:
    """Lessons created from booked slots."""

    @staticmethod
    def create_for_slot(slot: AvailableDate, tutee_id: str) -> TuitionSession:
        db = get_db()
        session_id = _new_id()
        db.execute(
            "INSERT INTO tuition_sessions (id, tutee_id, slot_id, session_date, start_time, "
            "end_time, status, created_at) VALUES (?, ?, ?, ?, ?, ?, 'scheduled', ?)",
            (session_id, tutee_id, slot.id, slot.date, slot.start_time, slot.end_time, _now()),
        )
        db.commit()
        return TuitionSessionStoreDB.get(session_id)

    @staticmethod
    def cancel_for_slot(slot_id: str) -> int:
        db = get_db()
        cur = db.execute(
            "UPDATE tuition_sessions SET status='cancelled' WHERE slot_id=? AND status='scheduled'",
            (slot_id,),
        )
        db.commit()
        return cur.rowcount

    @staticmethod
    def get(session_id: str) -> Optional[TuitionSession]:
        db = get_db()
        row = db.execute("SELECT * FROM tuition_sessions WHERE id = ?", (session_id,)).fetchone()
        return TuitionSessionStoreDB._row_to_session(row) if row else None

    @staticmethod
    def list(tutee_id: str = "", include_cancelled: bool = False) -> list[TuitionSession]:
        clauses = []
        vals = []
        if tutee_id:
            clauses.append("tutee_id = ?")
            vals.append(tutee_id)
        if not include_cancelled:
            clauses.append("status = 'scheduled'")
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        db = get_db()
        rows = db.execute(
            f"SELECT * FROM tuition_sessions {where}ORDER BY session_date, start_time", vals,
        ).fetchall()
        return [TuitionSessionStoreDB._row_to_session(r) for r in rows]

    @staticmethod
    def _row_to_session(r) -> TuitionSession:
        return TuitionSession(
            id=r["id"], tutee_id=r["tutee_id"], slot_id=r["slot_id"],
            session_date=r["session_date"], start_time=r["start_time"],
            end_time=r["end_time"], status=r["status"], created_at=r["created_at"],
        )


# ── Learning Points ──────────────────────────────────────────────────


class LearningPointStoreDB:
    """Learning points of one tutee, read and written as merged sessions.

    Writes that touch a session replace all of its rows with one merged row
    inside a single transaction, so a failure part way leaves the previous
    rows in place.
    """

    def __init__(self, tutee_id: str):
        self.tutee_id = tutee_id

    @property
    def rows(self) -> list[LearningPoint]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM learning_points WHERE tutee_id=? ORDER BY session_date DESC, created_at, id",
            (self.tutee_id,),
        ).fetchall()
        return [self._row_to_point(r) for r in rows]

    def sessions(self) -> list[LearningPointSession]:
        return merge_sessions(self.rows)

    def session(self, session_date: str) -> Optional[LearningPointSession]:
        rows = self._rows_for(session_date)
        return merge_rows(rows) if rows else None

    def add_points(self, session_date: str, bullet_points: list[str],
                   tags: Optional[list[str]] = None) -> LearningPointSession:
        """Append points to the session on session_date, creating it if needed."""
        existing = self.session(session_date)
        if existing:
            bullets = existing.bullet_points + list(bullet_points)
            merged_tags = union_tags(existing.tags, tags or [])
        else:
            bullets = list(bullet_points)
            merged_tags = union_tags(tags or [])
        return self._write_session(session_date, bullets, merged_tags, [session_date])

    def replace_session(self, session_date: str, bullet_points: list[str],
                        tags: Optional[list[str]] = None,
                        new_date: Optional[str] = None) -> Optional[LearningPointSession]:
        """Overwrite a session's points and tags, optionally moving it to new_date.

        Moving onto a date that already has points merges into that session,
        keeping its points first.
        """
        if not self._rows_for(session_date):
            return None
        target = new_date or session_date
        bullets = list(bullet_points)
        merged_tags = union_tags(tags or [])
        dates = [session_date]
        if target != session_date:
            dates.append(target)
            existing = self.session(target)
            if existing:
                bullets = existing.bullet_points + bullets
                merged_tags = union_tags(existing.tags, merged_tags)
        return self._write_session(target, bullets, merged_tags, dates)

    def update_tags(self, session_date: str, tags: list[str]) -> Optional[LearningPointSession]:
        existing = self.session(session_date)
        if existing is None:
            return None
        return self._write_session(session_date, existing.bullet_points, union_tags(tags),
                                   [session_date])

    def delete_session(self, session_date: str) -> bool:
        """Delete every row of the session together with its review record."""
        db = get_db()
        try:
            cur = db.execute(
                "DELETE FROM learning_points WHERE tutee_id=? AND session_date=?",
                (self.tutee_id, session_date),
            )
            db.execute(
                "DELETE FROM learning_point_reviews WHERE tutee_id=? AND session_date=?",
                (self.tutee_id, session_date),
            )
            db.commit()
        except sqlite3.Error:
            db.rollback()
            raise
        return cur.rowcount > 0

    def _rows_for(self, session_date: str) -> list[LearningPoint]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM learning_points WHERE tutee_id=? AND session_date=? ORDER BY created_at, id",
            (self.tutee_id, session_date),
        ).fetchall()
        return [self._row_to_point(r) for r in rows]

    def _write_session(self, session_date: str, bullets: list[str], tags: list[str],
                       replaced_dates: list[str]) -> LearningPointSession:
        """Replace all rows of replaced_dates with one row on session_date."""
        db = get_db()
        now = _now()
        placeholders = ",".join("?" * len(replaced_dates))
        try:
            row = db.execute(
                f"SELECT MIN(created_at) AS created_at FROM learning_points "
                f"WHERE tutee_id=? AND session_date IN ({placeholders})",
                (self.tutee_id, *replaced_dates),
            ).fetchone()
            created_at = row["created_at"] if row and row["created_at"] else now
            db.execute(
                f"DELETE FROM learning_points WHERE tutee_id=? AND session_date IN ({placeholders})",
                (self.tutee_id, *replaced_dates),
            )
            # a moved session leaves no review record behind on its old date
            for old_date in replaced_dates:
                if old_date != session_date:
                    db.execute(
                        "DELETE FROM learning_point_reviews WHERE tutee_id=? AND session_date=?",
                        (self.tutee_id, old_date),
                    )
            db.execute(
                "INSERT INTO learning_points (id, tutee_id, session_date, points, tags, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (_new_id(), self.tutee_id, session_date, format_bullet_points(bullets),
                 json.dumps(tags), created_at, now),
            )
            db.commit()
        except sqlite3.Error:
            db.rollback()
            logger.exception("Learning point write rolled back (tutee=%s date=%s)",
                             self.tutee_id, session_date)
            raise
        return self.session(session_date)

    @staticmethod
    def _row_to_point(r) -> LearningPoint:
        return LearningPoint(
            id=r["id"], tutee_id=r["tutee_id"], session_date=r["session_date"],
            points=r["points"], tags=json.loads(r["tags"] or "[]"),
            created_at=r["created_at"], updated_at=r["updated_at"],
        )


# ── Learning Point Reviews ───────────────────────────────────────────


class LearningPointReviewStoreDB:
    """Spaced repetition review records of one tutee, keyed by session date."""

    def __init__(self, tutee_id: str):
        self.tutee_id = tutee_id

    @property
    def records(self) -> list[ReviewRecord]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM learning_point_reviews WHERE tutee_id=? ORDER BY session_date DESC",
            (self.tutee_id,),
        ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def by_date(self) -> dict[str, ReviewRecord]:
        return {r.session_date: r for r in self.records}

    def get(self, session_date: str) -> Optional[ReviewRecord]:
        db = get_db()
        row = db.execute(
            "SELECT * FROM learning_point_reviews WHERE tutee_id=? AND session_date=?",
            (self.tutee_id, session_date),
        ).fetchone()
        return self._row_to_record(row) if row else None

    def record_review(self, session_date: str, history: Optional[list[dict]] = None,
                      reviewed_at: Optional[datetime] = None) -> ReviewRecord:
        """Record a completed review cycle for the session.

        Creates the record on the first review and otherwise increments its
        count by one. Quiz history from this cycle is appended.
        """
        current = self.get(session_date)
        count = next_review_count(current)
        reviewed = (reviewed_at or datetime.now()).isoformat()
        now = _now()
        entries = (current.history if current else []) + list(history or [])
        db = get_db()
        db.execute(
            "INSERT INTO learning_point_reviews (id, tutee_id, session_date, last_reviewed, "
            "review_count, history, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(tutee_id, session_date) DO UPDATE SET "
            "last_reviewed=excluded.last_reviewed, review_count=excluded.review_count, "
            "history=excluded.history, updated_at=excluded.updated_at",
            (_new_id(), self.tutee_id, session_date, reviewed, count,
             json.dumps(entries), now, now),
        )
        db.commit()
        return self.get(session_date)

    def delete(self, session_date: str) -> bool:
        db = get_db()
        cur = db.execute(
            "DELETE FROM learning_point_reviews WHERE tutee_id=? AND session_date=?",
            (self.tutee_id, session_date),
        )
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def all_records() -> list[ReviewRecord]:
        """Every review record across all tutees (reminder sweep)."""
        db = get_db()
        rows = db.execute(
            "SELECT * FROM learning_point_reviews ORDER BY tutee_id, session_date"
        ).fetchall()
        return [LearningPointReviewStoreDB._row_to_record(r) for r in rows]

    @staticmethod
    def _row_to_record(r) -> ReviewRecord:
        return ReviewRecord(
            id=r["id"], tutee_id=r["tutee_id"], session_date=r["session_date"],
            last_reviewed=r["last_reviewed"], review_count=r["review_count"],
            history=json.loads(r["history"] or "[]"),
            created_at=r["created_at"], updated_at=r["updated_at"],
        )


# ── Shared Files ─────────────────────────────────────────────────────


class SharedFileStoreDB:
    """Metadata for files and links shared with one tutee."""

    def __init__(self, tutee_id: str):
        self.tutee_id = tutee_id

    def list(self) -> list[SharedFile]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM shared_files WHERE tutee_id=? ORDER BY created_at DESC",
            (self.tutee_id,),
        ).fetchall()
        return [self._row_to_file(r) for r in rows]

    def add_file(self, file_name: str, file_path: str, file_size: int,
                 file_type: str, uploaded_by: str) -> SharedFile:
        return self._insert(kind="file", file_name=file_name, file_path=file_path,
                            file_size=file_size, file_type=file_type, url="",
                            uploaded_by=uploaded_by)

    def add_link(self, title: str, url: str, uploaded_by: str) -> SharedFile:
        return self._insert(kind="link", file_name=title, file_path="", file_size=0,
                            file_type="text/uri-list", url=url, uploaded_by=uploaded_by)

    def _insert(self, **values) -> SharedFile:
        db = get_db()
        file_id = _new_id()
        db.execute(
            "INSERT INTO shared_files (id, tutee_id, kind, file_name, file_path, file_size, "
            "file_type, url, uploaded_by, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (file_id, self.tutee_id, values["kind"], values["file_name"], values["file_path"],
             values["file_size"], values["file_type"], values["url"], values["uploaded_by"],
             _now()),
        )
        db.commit()
        return SharedFileStoreDB.get(file_id)

    @staticmethod
    def get(file_id: str) -> Optional[SharedFile]:
        db = get_db()
        row = db.execute("SELECT * FROM shared_files WHERE id = ?", (file_id,)).fetchone()
        return SharedFileStoreDB._row_to_file(row) if row else None

    @staticmethod
    def delete(file_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM shared_files WHERE id = ?", (file_id,))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def _row_to_file(r) -> SharedFile:
        return SharedFile(
            id=r["id"], tutee_id=r["tutee_id"], kind=r["kind"], file_name=r["file_name"],
            file_path=r["file_path"], file_size=r["file_size"], file_type=r["file_type"],
            url=r["url"], uploaded_by=r["uploaded_by"], created_at=r["created_at"],
        )


# ── Push Subscriptions ───────────────────────────────────────────────


class PushSubscriptionStoreDB:
    """Manage web push subscriptions."""

    @staticmethod
    def subscribe(tutee_id: str, endpoint: str, p256dh: str, auth: str,
                  user_agent: str = "") -> None:
        """Upsert on (tutee_id, endpoint); subscribing again re-enables the row."""
        db = get_db()
        now = _now()
        db.execute(
            "INSERT INTO push_subscriptions (tutee_id, endpoint, p256dh, auth, user_agent, "
            "is_enabled, created_at, updated_at) VALUES (?, ?, ?, ?, ?, 1, ?, ?) "
            "ON CONFLICT(tutee_id, endpoint) DO UPDATE SET p256dh=excluded.p256dh, "
            "auth=excluded.auth, user_agent=excluded.user_agent, is_enabled=1, "
            "updated_at=excluded.updated_at",
            (tutee_id, endpoint, p256dh, auth, user_agent, now, now),
        )
        db.commit()

    @staticmethod
    def unsubscribe(tutee_id: str, endpoint: str) -> bool:
        db = get_db()
        cur = db.execute(
            "DELETE FROM push_subscriptions WHERE tutee_id = ? AND endpoint = ?",
            (tutee_id, endpoint),
        )
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def is_subscribed(tutee_id: str, endpoint: str) -> bool:
        db = get_db()
        row = db.execute(
            "SELECT 1 FROM push_subscriptions WHERE tutee_id = ? AND endpoint = ? AND is_enabled = 1",
            (tutee_id, endpoint),
        ).fetchone()
        return row is not None

    @staticmethod
    def get_for_tutee(tutee_id: str) -> list[PushSubscription]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM push_subscriptions WHERE tutee_id = ? AND is_enabled = 1",
            (tutee_id,),
        ).fetchall()
        return [PushSubscriptionStoreDB._row_to_subscription(r) for r in rows]

    @staticmethod
    def all() -> list[PushSubscription]:
        db = get_db()
        rows = db.execute("SELECT * FROM push_subscriptions WHERE is_enabled = 1").fetchall()
        return [PushSubscriptionStoreDB._row_to_subscription(r) for r in rows]

    @staticmethod
    def delete(subscription_id: int) -> None:
        db = get_db()
        db.execute("DELETE FROM push_subscriptions WHERE id = ?", (subscription_id,))
        db.commit()

    @staticmethod
    def _row_to_subscription(r) -> PushSubscription:
        return PushSubscription(
            id=r["id"], tutee_id=r["tutee_id"], endpoint=r["endpoint"], p256dh=r["p256dh"],
            auth=r["auth"], user_agent=r["user_agent"], is_enabled=bool(r["is_enabled"]),
        )


# ── Notification Log ─────────────────────────────────────────────────


class NotificationLogDB:
    """Outcome of every notification dispatch."""

    @staticmethod
    def add(tutee_id: str, notif_type: str, title: str, body: str, url: str,
            status: str, sent_count: int = 0, error: str = "",
            data: Optional[dict] = None) -> int:
        db = get_db()
        cur = db.execute(
            "INSERT INTO notification_logs (tutee_id, type, title, body, url, status, "
            "sent_count, error, data, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (tutee_id, notif_type, title, body, url, status, sent_count, error,
             json.dumps(data or {}), _now()),
        )
        db.commit()
        return cur.lastrowid

    @staticmethod
    def recent(limit: int = 50, tutee_id: str = "") -> list[NotificationLog]:
        db = get_db()
        if tutee_id:
            rows = db.execute(
                "SELECT * FROM notification_logs WHERE tutee_id = ? ORDER BY id DESC LIMIT ?",
                (tutee_id, limit),
            ).fetchall()
        else:
            rows = db.execute(
                "SELECT * FROM notification_logs ORDER BY id DESC LIMIT ?", (limit,),
            ).fetchall()
        return [NotificationLogDB._row_to_log(r) for r in rows]

    @staticmethod
    def sent_today(tutee_id: str, notif_type: str, session_date: str) -> bool:
        """Whether a notification of this type for this session went out today."""
        db = get_db()
        today = datetime.now().date().isoformat()
        rows = db.execute(
            "SELECT data FROM notification_logs WHERE tutee_id = ? AND type = ? "
            "AND status = 'sent' AND created_at LIKE ?",
            (tutee_id, notif_type, f"{today}%"),
        ).fetchall()
        return any(json.loads(r["data"] or "{}").get("sessionDate") == session_date for r in rows)

    @staticmethod
    def _row_to_log(r) -> NotificationLog:
        return NotificationLog(
            id=r["id"], tutee_id=r["tutee_id"], type=r["type"], title=r["title"],
            body=r["body"], url=r["url"], status=r["status"], sent_count=r["sent_count"],
            error=r["error"], data=json.loads(r["data"] or "{}"), created_at=r["created_at"],
        )


# ── Dashboard Components ─────────────────────────────────────────────


class ComponentStoreDB:
    """Dashboard components and their assignment to tutees."""

    @staticmethod
    def list_components() -> list[DashboardComponent]:
        db = get_db()
        rows = db.execute("SELECT * FROM dashboard_components ORDER BY name").fetchall()
        return [ComponentStoreDB._row_to_component(r) for r in rows]

    @staticmethod
    def get_component(component_id: str) -> Optional[DashboardComponent]:
        db = get_db()
        row = db.execute(
            "SELECT * FROM dashboard_components WHERE id = ?", (component_id,)
        ).fetchone()
        return ComponentStoreDB._row_to_component(row) if row else None

    @staticmethod
    def create_component(name: str, display_name: str, component_type: str,
                         description: Optional[str] = None,
                         config: Optional[dict] = None) -> DashboardComponent:
        db = get_db()
        component_id = _new_id()
        now = _now()
        db.execute(
            "INSERT INTO dashboard_components (id, name, display_name, description, "
            "component_type, config, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (component_id, name, display_name, description, component_type,
             json.dumps(config or {}), now, now),
        )
        db.commit()
        return ComponentStoreDB.get_component(component_id)

    @staticmethod
    def tutee_components(tutee_id: str, active_only: bool = True) -> list[TuteeComponent]:
        db = get_db()
        sql = "SELECT * FROM tutee_components WHERE tutee_id = ?"
        if active_only:
            sql += " AND is_active = 1"
        rows = db.execute(sql + " ORDER BY display_order", (tutee_id,)).fetchall()
        components = {c.id: c for c in ComponentStoreDB.list_components()}
        return [ComponentStoreDB._row_to_assignment(r, components.get(r["component_id"]))
                for r in rows]

    @staticmethod
    def get_assignment(assignment_id: str) -> Optional[TuteeComponent]:
        db = get_db()
        row = db.execute(
            "SELECT * FROM tutee_components WHERE id = ?", (assignment_id,)
        ).fetchone()
        if not row:
            return None
        return ComponentStoreDB._row_to_assignment(
            row, ComponentStoreDB.get_component(row["component_id"]),
        )

    @staticmethod
    def assign(tutee_id: str, component_id: str, display_order: int = 0,
               config: Optional[dict] = None) -> TuteeComponent:
        db = get_db()
        assignment_id = _new_id()
        now = _now()
        db.execute(
            "INSERT INTO tutee_components (id, tutee_id, component_id, display_order, "
            "is_active, config, created_at, updated_at) VALUES (?, ?, ?, ?, 1, ?, ?, ?)",
            (assignment_id, tutee_id, component_id, display_order,
             json.dumps(config or {}), now, now),
        )
        db.commit()
        return ComponentStoreDB.get_assignment(assignment_id)

    @staticmethod
    def update_assignment(assignment_id: str, *, display_order: Optional[int] = None,
                          is_active: Optional[bool] = None,
                          config: Optional[dict] = None) -> Optional[TuteeComponent]:
        sets = []
        vals: list = []
        if display_order is not None:
            sets.append("display_order=?")
            vals.append(display_order)
        if is_active is not None:
            sets.append("is_active=?")
            vals.append(1 if is_active else 0)
        if config is not None:
            sets.append("config=?")
            vals.append(json.dumps(config))
        if sets:
            sets.append("updated_at=?")
            vals.extend([_now(), assignment_id])
            db = get_db()
            db.execute(f"UPDATE tutee_components SET {', '.join(sets)} WHERE id=?", vals)
            db.commit()
        return ComponentStoreDB.get_assignment(assignment_id)

    @staticmethod
    def remove_assignment(assignment_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM tutee_components WHERE id = ?", (assignment_id,))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def _row_to_component(r) -> DashboardComponent:
        return DashboardComponent(
            id=r["id"], name=r["name"], display_name=r["display_name"],
            description=r["description"] or None, component_type=r["component_type"],
            config=json.loads(r["config"] or "{}"), created_at=r["created_at"],
            updated_at=r["updated_at"],
        )

    @staticmethod
    def _row_to_assignment(r, component: Optional[DashboardComponent]) -> TuteeComponent:
        return TuteeComponent(
            id=r["id"], tutee_id=r["tutee_id"], component_id=r["component_id"],
            display_order=r["display_order"], is_active=bool(r["is_active"]),
            config=json.loads(r["config"] or "{}"), component=component,
            created_at=r["created_at"], updated_at=r["updated_at"],
        )


# ── Feedback ─────────────────────────────────────────────────────────


class FeedbackStoreDB:
    """Bug reports, feature requests and questions raised by tutees."""

    _COLUMNS = ("type", "title", "description", "status", "priority", "admin_notes")

    @staticmethod
    def list(tutee_id: str) -> list[Feedback]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM feedback WHERE tutee_id=? ORDER BY created_at DESC, id",
            (tutee_id,),
        ).fetchall()
        return [FeedbackStoreDB._row_to_feedback(r) for r in rows]

    @staticmethod
    def list_all(status: str = "") -> list[Feedback]:
        """Every item with its tutee joined in, newest first (admin view)."""
        where = "WHERE f.status = ? " if status else ""
        db = get_db()
        rows = db.execute(
            "SELECT f.*, t.name AS t_name, t.icon AS t_icon, t.color_primary AS t_primary, "
            "t.color_secondary AS t_secondary, t.color_gradient AS t_gradient "
            f"FROM feedback f LEFT JOIN tutees t ON t.id = f.tutee_id {where}"
            "ORDER BY f.created_at DESC, f.id",
            (status,) if status else (),
        ).fetchall()
        items = []
        for r in rows:
            item = FeedbackStoreDB._row_to_feedback(r)
            item.tutee = Tutee(
                id=r["tutee_id"], name=r["t_name"] or "Unknown", icon=r["t_icon"] or "BookOpen",
                color_primary=r["t_primary"] or "pink",
                color_secondary=r["t_secondary"] or "purple",
                color_gradient=r["t_gradient"] or "from-pink-500 to-purple-600",
            )
            items.append(item)
        return items

    @staticmethod
    def get(feedback_id: str) -> Optional[Feedback]:
        db = get_db()
        row = db.execute("SELECT * FROM feedback WHERE id = ?", (feedback_id,)).fetchone()
        return FeedbackStoreDB._row_to_feedback(row) if row else None

    @staticmethod
    def create(tutee_id: str, feedback_type: str, title: str, description: str,
               priority: str = "medium") -> Feedback:
        db = get_db()
        feedback_id = _new_id()
        now = _now()
        db.execute(
            "INSERT INTO feedback (id, tutee_id, type, title, description, status, priority, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, 'open', ?, ?, ?)",
            (feedback_id, tutee_id, feedback_type, title, description, priority, now, now),
        )
        db.commit()
        return FeedbackStoreDB.get(feedback_id)

    @staticmethod
    def update(feedback_id: str, fields: dict) -> Optional[Feedback]:
        sets = []
        vals = []
        for column in FeedbackStoreDB._COLUMNS:
            if column in fields:
                sets.append(f"{column}=?")
                vals.append(fields[column])
        if not sets:
            return FeedbackStoreDB.get(feedback_id)
        sets.append("updated_at=?")
        vals.extend([_now(), feedback_id])
        db = get_db()
        cur = db.execute(f"UPDATE feedback SET {', '.join(sets)} WHERE id=?", vals)
        db.commit()
        if cur.rowcount == 0:
            return None
        return FeedbackStoreDB.get(feedback_id)

    @staticmethod
    def delete(feedback_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM feedback WHERE id = ?", (feedback_id,))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def open_count() -> int:
        db = get_db()
        row = db.execute(
            "SELECT COUNT(*) AS cnt FROM feedback WHERE status IN ('open', 'in_progress')"
        ).fetchone()
        return row["cnt"] if row else 0

    @staticmethod
    def _row_to_feedback(r) -> Feedback:
        return Feedback(
            id=r["id"], tutee_id=r["tutee_id"], type=r["type"], title=r["title"],
            description=r["description"], status=r["status"], priority=r["priority"],
            admin_notes=r["admin_notes"] or None, created_at=r["created_at"],
            updated_at=r["updated_at"],
        )


# ── Messages ─────────────────────────────────────────────────────────


class MessageStoreDB:
    """Direct messages. Every conversation is between the admin and one tutee."""

    @staticmethod
    def conversation(tutee_id: str) -> list[Message]:
        """Messages exchanged with one tutee, oldest first."""
        db = get_db()
        rows = db.execute(
            "SELECT * FROM messages WHERE (sender_id=? AND receiver_id=?) "
            "OR (sender_id=? AND receiver_id=?) ORDER BY created_at, id",
            (tutee_id, ADMIN_RECIPIENT, ADMIN_RECIPIENT, tutee_id),
        ).fetchall()
        return [MessageStoreDB._row_to_message(r) for r in rows]

    @staticmethod
    def send(sender_id: str, receiver_id: str, content: str) -> Message:
        db = get_db()
        message_id = _new_id()
        db.execute(
            "INSERT INTO messages (id, sender_id, receiver_id, content, is_read, created_at) "
            "VALUES (?, ?, ?, ?, 0, ?)",
            (message_id, sender_id, receiver_id, content, _now()),
        )
        db.commit()
        row = db.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
        return MessageStoreDB._row_to_message(row)

    @staticmethod
    def mark_read(tutee_id: str, reader: str) -> int:
        """Mark the other side's messages in a conversation as read.

        reader is "admin" or the tutee id itself.
        """
        if reader == ADMIN_RECIPIENT:
            sender, receiver = tutee_id, ADMIN_RECIPIENT
        else:
            sender, receiver = ADMIN_RECIPIENT, tutee_id
        db = get_db()
        cur = db.execute(
            "UPDATE messages SET is_read=1 WHERE sender_id=? AND receiver_id=? AND is_read=0",
            (sender, receiver),
        )
        db.commit()
        return cur.rowcount

    @staticmethod
    def unread_count(receiver_id: str, sender_id: str = "") -> int:
        clause = " AND sender_id=?" if sender_id else ""
        vals = (receiver_id, sender_id) if sender_id else (receiver_id,)
        db = get_db()
        row = db.execute(
            f"SELECT COUNT(*) AS cnt FROM messages WHERE receiver_id=? AND is_read=0{clause}", vals,
        ).fetchone()
        return row["cnt"] if row else 0

    @staticmethod
    def unread_by_tutee() -> dict[str, int]:
        """Unread admin inbox counts keyed by sending tutee."""
        db = get_db()
        rows = db.execute(
            "SELECT sender_id, COUNT(*) AS cnt FROM messages "
            "WHERE receiver_id=? AND is_read=0 GROUP BY sender_id",
            (ADMIN_RECIPIENT,),
        ).fetchall()
        return {r["sender_id"]: r["cnt"] for r in rows}

    @staticmethod
    def _row_to_message(r) -> Message:
        return Message(
            id=r["id"], sender_id=r["sender_id"], receiver_id=r["receiver_id"],
            content=r["content"], is_read=bool(r["is_read"]), created_at=r["created_at"],
        )


# ── Worksheets ───────────────────────────────────────────────────────


class WorksheetStoreDB:
    """Worksheet tracker entries of one tutee."""

    _COLUMNS = (
        "worksheet_name", "student_name", "completed_date", "status",
        "completion_percentage", "notes",
    )

    def __init__(self, tutee_id: str):
        self.tutee_id = tutee_id

    def list(self) -> list[Worksheet]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM worksheets WHERE tutee_id=? ORDER BY completed_date DESC, created_at DESC",
            (self.tutee_id,),
        ).fetchall()
        return [self._row_to_worksheet(r) for r in rows]

    def updated_since(self, since: str) -> list[Worksheet]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM worksheets WHERE tutee_id=? AND updated_at >= ? ORDER BY updated_at DESC",
            (self.tutee_id, since),
        ).fetchall()
        return [self._row_to_worksheet(r) for r in rows]

    def create(self, worksheet_name: str, completed_date: str, *, student_name: str = "",
               status: str = "Upcoming", completion_percentage: int = 0,
               notes: Optional[str] = None) -> Worksheet:
        db = get_db()
        worksheet_id = _new_id()
        now = _now()
        db.execute(
            "INSERT INTO worksheets (id, tutee_id, worksheet_name, student_name, completed_date, "
            "status, completion_percentage, notes, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (worksheet_id, self.tutee_id, worksheet_name, student_name, completed_date,
             status, completion_percentage, _clean_notes(notes), now, now),
        )
        db.commit()
        return WorksheetStoreDB.get(worksheet_id)

    @staticmethod
    def get(worksheet_id: str) -> Optional[Worksheet]:
        db = get_db()
        row = db.execute("SELECT * FROM worksheets WHERE id = ?", (worksheet_id,)).fetchone()
        return WorksheetStoreDB._row_to_worksheet(row) if row else None

    @staticmethod
    def update(worksheet_id: str, fields: dict) -> Optional[Worksheet]:
        sets = []
        vals = []
        for column in WorksheetStoreDB._COLUMNS:
            if column in fields:
                sets.append(f"{column}=?")
                value = fields[column]
                vals.append(_clean_notes(value) if column == "notes" else value)
        if not sets:
            return WorksheetStoreDB.get(worksheet_id)
        sets.append("updated_at=?")
        vals.extend([_now(), worksheet_id])
        db = get_db()
        cur = db.execute(f"UPDATE worksheets SET {', '.join(sets)} WHERE id=?", vals)
        db.commit()
        if cur.rowcount == 0:
            return None
        return WorksheetStoreDB.get(worksheet_id)

    @staticmethod
    def delete(worksheet_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM worksheets WHERE id = ?", (worksheet_id,))
        db.commit()
        return cur.rowcount > 0

    @staticmethod
    def _row_to_worksheet(r) -> Worksheet:
        return Worksheet(
            id=r["id"], tutee_id=r["tutee_id"], worksheet_name=r["worksheet_name"],
            student_name=r["student_name"], completed_date=r["completed_date"],
            status=r["status"], completion_percentage=r["completion_percentage"],
            notes=r["notes"], created_at=r["created_at"], updated_at=r["updated_at"],
        )
