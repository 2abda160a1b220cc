"""
Shared helpers used across blueprints.

Access-control decorators, request parsing and the generic error response.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from typing import Any

from flask import jsonify, request
from flask_login import current_user

from auth import login_manager
from db_stores import TuteeStoreDB

logger = logging.getLogger(__name__)

_TIME = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$")


def is_admin() -> bool:
    return current_user.is_authenticated and current_user.is_admin


def current_actor() -> str:
    """Display name recorded as uploader: "Admin" or the tutee's name."""
    if is_admin():
        return "Admin"
    return current_user.name or current_user.tutee_id


def can_access(tutee_id: str) -> bool:
    """Admin may access everything; a tutee only their own resources."""
    if not current_user.is_authenticated:
        return False
    return current_user.is_admin or current_user.tutee_id == tutee_id


def admin_required(f: Callable) -> Callable:
    """Decorator that requires the admin session."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated


def tutee_access_required(f: Callable) -> Callable:
    """Decorator for routes taking a tutee_id: admin or that tutee, tutee must exist."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        tutee_id = kwargs.get("tutee_id", "")
        if not can_access(tutee_id):
            return jsonify({"error": "Access denied"}), 403
        if not TuteeStoreDB.exists(tutee_id):
            return jsonify({"error": "Tutee not found"}), 404
        return f(*args, **kwargs)
    return decorated


def api_error(action: str):
    """Log the active exception and return the generic 500 response."""
    logger.exception("Failed to %s", action)
    return jsonify({"error": f"Failed to {action}. Please try again."}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_date(value: Any) -> str:
    """Validate a YYYY-MM-DD date string. Raises ValueError."""
    if not isinstance(value, str):
        raise ValueError("Date must be YYYY-MM-DD")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date().isoformat()
    except ValueError as e:
        raise ValueError("Date must be YYYY-MM-DD") from e


def parse_time(value: Any) -> str:
    """Validate a time string and normalise it to HH:mm. Raises ValueError."""
    if not isinstance(value, str) or not _TIME.match(value.strip()):
        raise ValueError("Time must be HH:mm")
    return value.strip()[:5]


def parse_time_range(start: Any, end: Any) -> tuple[str, str]:
    start_time, end_time = parse_time(start), parse_time(end)
    if end_time <= start_time:
        raise ValueError("End time must be after start time")
    return start_time, end_time


def parse_string_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{name} must be a list of strings")
    return value


def parse_text(value: Any, name: str, *, required: bool = False, max_length: int = 0) -> str:
    """Validate a free-text field and strip it. Missing optional text is ""."""
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValueError(f"{name} must be text")
    value = value.strip()
    if required and not value:
        raise ValueError(f"{name} is required")
    if max_length and len(value) > max_length:
        raise ValueError(f"{name} must be at most {max_length} characters")
    return value


def parse_choice(value: Any, name: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValueError(f"{name} must be one of: {', '.join(choices)}")
    return value
