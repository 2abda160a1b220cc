"""
PIN sessions via Flask-Login.

Two kinds of principal sign in: the admin, with the single configured
8-digit PIN, and a tutee, with their own 4-digit PIN. The session user id is
"admin" or "tutee:<tuteeId>".
"""

from __future__ import annotations

import hmac
import re

from flask import Blueprint, current_app, jsonify, request
from flask_login import LoginManager, UserMixin, current_user, login_required, login_user, logout_user

from audit import log_event
from db_stores import TuteeStoreDB
from extensions import limiter
from models import ADMIN_RECIPIENT

ADMIN_PIN_PATTERN = re.compile(r"^\d{8}$")
TUTEE_PIN_PATTERN = re.compile(r"^\d{4}$")
_TUTEE_PREFIX = "tutee:"

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class Principal(UserMixin):
    """The signed-in admin or tutee."""

    def __init__(self, role: str, tutee_id: str | None = None, name: str = ""):
        self.role = role
        self.tutee_id = tutee_id
        self.name = name

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def get_id(self) -> str:
        if self.is_admin:
            return ADMIN_RECIPIENT
        return f"{_TUTEE_PREFIX}{self.tutee_id}"

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "tuteeId": self.tutee_id,
            "name": self.name,
        }

    @staticmethod
    def admin() -> Principal:
        return Principal("admin", name="Admin")


@login_manager.user_loader
def load_user(user_id: str):
    if user_id == ADMIN_RECIPIENT:
        return Principal.admin()
    if user_id.startswith(_TUTEE_PREFIX):
        tutee = TuteeStoreDB.get(user_id[len(_TUTEE_PREFIX):])
        if tutee:
            return Principal("tutee", tutee.id, tutee.name)
    return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


def check_admin_pin(pin: str) -> bool:
    expected = current_app.config.get("ADMIN_PIN", "")
    if not expected or not ADMIN_PIN_PATTERN.match(pin or ""):
        return False
    return hmac.compare_digest(pin.encode(), expected.encode())


@auth_bp.route("/api/auth/admin", methods=["POST"])
@limiter.limit("10 per 15 minutes")
def admin_login():
    data = request.get_json(silent=True) or {}
    pin = str(data.get("pin", "")).strip()

    if not check_admin_pin(pin):
        log_event("admin_login_failed")
        return jsonify({"error": "Invalid PIN"}), 401

    login_user(Principal.admin(), remember=True)
    log_event("admin_login_success", ADMIN_RECIPIENT)
    return jsonify({"success": True, "user": current_user.to_dict()})


@auth_bp.route("/api/auth/tutee", methods=["POST"])
@limiter.limit("10 per 15 minutes")
def tutee_login():
    data = request.get_json(silent=True) or {}
    tutee_id = str(data.get("tuteeId", "")).strip()
    pin = str(data.get("pin", "")).strip()

    if not tutee_id or not TUTEE_PIN_PATTERN.match(pin):
        return jsonify({"error": "Tutee and a 4-digit PIN are required"}), 400

    tutee = TuteeStoreDB.get(tutee_id)
    if not tutee or not TuteeStoreDB.verify_pin(tutee_id, pin):
        log_event("tutee_login_failed", f"{_TUTEE_PREFIX}{tutee_id}")
        return jsonify({"error": "Invalid PIN"}), 401

    login_user(Principal("tutee", tutee.id, tutee.name), remember=True)
    log_event("tutee_login_success", current_user.get_id())
    return jsonify({"success": True, "user": current_user.to_dict(), "tutee": tutee.to_dict()})


@auth_bp.route("/api/auth/logout", methods=["POST"])
@login_required
def logout():
    log_event("logout", current_user.get_id())
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/auth/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})
