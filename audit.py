"""
Audit logging: records security-relevant events (PIN logins, PIN changes).

Events are written to both the audit_log table and structured logging.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from flask import has_request_context, request

from database import get_db

logger = logging.getLogger(__name__)


def log_event(action: str, actor: str | None = None, detail: str = "") -> None:
    """Insert an audit log entry and emit a structured log line."""
    ip = (request.remote_addr or "") if has_request_context() else ""
    ua = request.headers.get("User-Agent", "") if has_request_context() else ""

    try:
        db = get_db()
        db.execute(
            "INSERT INTO audit_log (actor, action, detail, ip_address, user_agent, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (actor, action, detail, ip, ua, datetime.now().isoformat()),
        )
        db.commit()
    except sqlite3.Error:
        logger.exception("Could not write audit event %s", action)

    logger.info("audit: %s actor=%s detail=%s ip=%s", action, actor, detail, ip)


def recent_events(limit: int = 50) -> list[dict]:
    db = get_db()
    rows = db.execute(
        "SELECT actor, action, detail, ip_address, created_at FROM audit_log "
        "ORDER BY id DESC LIMIT ?",
        (limit,),
    ).fetchall()
    return [
        {"actor": r["actor"], "action": r["action"], "detail": r["detail"],
         "ipAddress": r["ip_address"], "createdAt": r["created_at"]}
        for r in rows
    ]
