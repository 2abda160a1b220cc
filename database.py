"""
SQLite database layer for the tuition portal.

Uses raw sqlite3 with WAL mode and parameterized queries.
A schema_version table handles migrations.
"""

from __future__ import annotations

import fcntl
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from flask import current_app, g

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent / "tuition.db"


SCHEMA = """
-- Migration tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL,
    applied_at TEXT NOT NULL
);

-- Tutees (student profiles)
CREATE TABLE IF NOT EXISTS tutees (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    pin_hash TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    icon TEXT NOT NULL DEFAULT 'BookOpen',
    color_primary TEXT NOT NULL DEFAULT 'pink',
    color_secondary TEXT NOT NULL DEFAULT 'purple',
    color_gradient TEXT NOT NULL DEFAULT 'from-pink-500 to-purple-600',
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);

-- Booking requests
CREATE TABLE IF NOT EXISTS booking_requests (
    id TEXT PRIMARY KEY,
    tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
    requested_date TEXT NOT NULL,
    requested_start_time TEXT NOT NULL,
    requested_end_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'rejected', 'cancelled')),
    admin_notes TEXT,
    tutee_notes TEXT,
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_booking_tutee ON booking_requests(tutee_id, created_at);

-- Calendar slots
CREATE TABLE IF NOT EXISTS available_dates (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    is_available INTEGER NOT NULL DEFAULT 1,
    booked_by TEXT,
    tutee_id TEXT,
    notes TEXT,
    event_type TEXT NOT NULL DEFAULT 'time_slot'
        CHECK (event_type IN ('time_slot', 'exam', 'test')),
    created_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_available_dates_date ON available_dates(date, start_time);

-- Learning points (several rows may share a session date)
CREATE TABLE IF NOT EXISTS learning_points (
    id TEXT PRIMARY KEY,
    tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
    session_date TEXT NOT NULL,
    points TEXT NOT NULL DEFAULT '',
    tags TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_learning_points_session ON learning_points(tutee_id, session_date);

-- Spaced repetition review records
CREATE TABLE IF NOT EXISTS learning_point_reviews (
    id TEXT PRIMARY KEY,
    tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
    session_date TEXT NOT NULL,
    last_reviewed TEXT NOT NULL,
    review_count INTEGER NOT NULL DEFAULT 0 CHECK (review_count >= 0),
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT '',
    UNIQUE(tutee_id, session_date)
);

-- Shared files
CREATE TABLE IF NOT EXISTS shared_files (
    id TEXT PRIMARY KEY,
    tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
    file_name TEXT NOT NULL,
    file_path TEXT NOT NULL DEFAULT '',
    file_size INTEGER NOT NULL DEFAULT 0,
    file_type TEXT NOT NULL DEFAULT '',
    uploaded_by TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_shared_files_tutee ON shared_files(tutee_id, created_at);

-- Web push subscriptions; tutee_id is a tutee id or 'admin'
CREATE TABLE IF NOT EXISTS push_subscriptions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tutee_id TEXT NOT NULL,
    endpoint TEXT NOT NULL,
    p256dh TEXT NOT NULL DEFAULT '',
    auth TEXT NOT NULL DEFAULT '',
    user_agent TEXT NOT NULL DEFAULT '',
    is_enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT '',
    UNIQUE(tutee_id, endpoint)
);

-- Dashboard components
CREATE TABLE IF NOT EXISTS dashboard_components (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL,
    description TEXT,
    component_type TEXT NOT NULL,
    config TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS tutee_components (
    id TEXT PRIMARY KEY,
    tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
    component_id TEXT NOT NULL REFERENCES dashboard_components(id) ON DELETE CASCADE,
    display_order INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    config TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_tutee_components_tutee ON tutee_components(tutee_id, display_order);
"""


# Versioned migrations applied after SCHEMA, in order.
MIGRATIONS: list[tuple[int, str]] = [
    # Migration 2: Notification delivery log
    (2, """
        CREATE TABLE IF NOT EXISTS notification_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            tutee_id TEXT NOT NULL,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            body TEXT NOT NULL DEFAULT '',
            url TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'sent',
            sent_count INTEGER NOT NULL DEFAULT 0,
            error TEXT NOT NULL DEFAULT '',
            data TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_notification_logs_tutee
            ON notification_logs(tutee_id, type, created_at);
    """),

    # Migration 3: Tuition sessions created when a slot is booked
    (3, """
        CREATE TABLE IF NOT EXISTS tuition_sessions (
            id TEXT PRIMARY KEY,
            tutee_id TEXT NOT NULL,
            slot_id TEXT REFERENCES available_dates(id) ON DELETE SET NULL,
            session_date TEXT NOT NULL,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'scheduled',
            created_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_tuition_sessions_tutee ON tuition_sessions(tutee_id, session_date);
    """),

    # Migration 4: Quiz history on review records
    (4, """
        ALTER TABLE learning_point_reviews ADD COLUMN history TEXT NOT NULL DEFAULT '[]';
    """),

    # Migration 5: Shared links alongside uploaded files
    (5, """
        ALTER TABLE shared_files ADD COLUMN kind TEXT NOT NULL DEFAULT 'file';
        ALTER TABLE shared_files ADD COLUMN url TEXT NOT NULL DEFAULT '';
    """),

    # Migration 6: Audit trail for PIN logins
    (6, """
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            actor TEXT,
            action TEXT NOT NULL,
            detail TEXT NOT NULL DEFAULT '',
            ip_address TEXT NOT NULL DEFAULT '',
            user_agent TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_audit_log_created ON audit_log(created_at);
    """),

    # Migration 7: Tutee feedback, bug reports and feature requests
    (7, """
        CREATE TABLE IF NOT EXISTS feedback (
            id TEXT PRIMARY KEY,
            tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
            type TEXT NOT NULL DEFAULT 'other'
                CHECK (type IN ('bug', 'feature_request', 'question', 'other')),
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'open'
                CHECK (status IN ('open', 'in_progress', 'resolved', 'closed')),
            priority TEXT NOT NULL DEFAULT 'medium'
                CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
            admin_notes TEXT,
            created_at TEXT NOT NULL DEFAULT '',
            updated_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_feedback_tutee ON feedback(tutee_id, created_at);
    """),

    # Migration 8: Direct messages between the admin and a tutee
    (8, """
        CREATE TABLE IF NOT EXISTS messages (
            id TEXT PRIMARY KEY,
            sender_id TEXT NOT NULL,
            receiver_id TEXT NOT NULL,
            content TEXT NOT NULL,
            is_read INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_messages_receiver ON messages(receiver_id, is_read);
        CREATE INDEX IF NOT EXISTS idx_messages_sender ON messages(sender_id, created_at);
    """),

    # Migration 9: Worksheet tracker
    (9, """
        CREATE TABLE IF NOT EXISTS worksheets (
            id TEXT PRIMARY KEY,
            tutee_id TEXT NOT NULL REFERENCES tutees(id) ON DELETE CASCADE,
            worksheet_name TEXT NOT NULL,
            student_name TEXT NOT NULL DEFAULT '',
            completed_date TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'Upcoming'
                CHECK (status IN ('Upcoming', 'In Progress', 'Completed')),
            completion_percentage INTEGER NOT NULL DEFAULT 0
                CHECK (completion_percentage BETWEEN 0 AND 100),
            notes TEXT,
            created_at TEXT NOT NULL DEFAULT '',
            updated_at TEXT NOT NULL DEFAULT ''
        );
        CREATE INDEX IF NOT EXISTS idx_worksheets_tutee ON worksheets(tutee_id, completed_date);
    """),
]


def get_db() -> sqlite3.Connection:
    """Return a DB connection from Flask g, creating if needed."""
    if "db" not in g:
        db_path = current_app.config.get("DATABASE", str(DEFAULT_DB_PATH))
        g.db = sqlite3.connect(db_path)
        g.db.row_factory = sqlite3.Row
        g.db.execute("PRAGMA journal_mode=WAL")
        g.db.execute("PRAGMA foreign_keys=ON")
    return g.db


def close_db(e=None) -> None:
    """Teardown handler: close the DB connection."""
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db() -> None:
    """Execute schema DDL to create all base tables."""
    db = get_db()
    db.executescript(SCHEMA)
    db.commit()


def run_migrations() -> None:
    """Apply any unapplied versioned migrations.

    Uses file-based locking so several workers starting at once do not
    apply the same migration twice.
    """
    db_path = current_app.config.get("DATABASE", str(DEFAULT_DB_PATH))
    lock_file = None
    if db_path != ":memory:":
        try:
            lock_file = open(Path(db_path).with_suffix(".migration.lock"), "w")
            fcntl.flock(lock_file, fcntl.LOCK_EX)
        except OSError:
            lock_file = None

    try:
        db = get_db()
        applied = {
            row["version"]
            for row in db.execute("SELECT version FROM schema_version").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version in applied:
                continue
            try:
                db.executescript(sql)
            except sqlite3.OperationalError as e:
                err_msg = str(e).lower()
                if "duplicate column" not in err_msg and "already exists" not in err_msg:
                    raise
            db.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (version, datetime.now().isoformat()),
            )
            db.commit()
            logger.info("Applied migration %d", version)
    finally:
        if lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_UN)
            lock_file.close()


def init_app(app) -> None:
    """Register teardown and auto-init on first request."""
    app.teardown_appcontext(close_db)

    @app.before_request
    def _ensure_db():
        if not getattr(app, "_db_initialized", False):
            init_db()
            run_migrations()
            app._db_initialized = True
