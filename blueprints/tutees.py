"""Tutee profile routes: listing, admin management, colours, icon and PIN changes."""

from __future__ import annotations

import re
import sqlite3

from flask import Blueprint, jsonify

from audit import log_event
from auth import TUTEE_PIN_PATTERN
from db_stores import TuteeStoreDB
from helpers import admin_required, api_error, json_body, tutee_access_required

bp = Blueprint("tutees", __name__)

_SLUG = re.compile(r"^[a-z0-9][a-z0-9-]{1,48}$")


@bp.route("/api/tutees")
def list_tutees():
    """Public: the login screen needs the tutee list."""
    try:
        return jsonify({"tutees": [t.to_dict() for t in TuteeStoreDB.list()]})
    except sqlite3.Error:
        return api_error("load tutees")


@bp.route("/api/tutees/<tutee_id>")
@tutee_access_required
def get_tutee(tutee_id):
    return jsonify({"tutee": TuteeStoreDB.get(tutee_id).to_dict()})


@bp.route("/api/tutees", methods=["POST"])
@admin_required
def create_tutee():
    data = json_body()
    tutee_id = str(data.get("id", "")).strip().lower()
    name = str(data.get("name", "")).strip()
    pin = str(data.get("pin", "")).strip()

    if not _SLUG.match(tutee_id):
        return jsonify({"error": "Id must be a lowercase slug"}), 400
    if not name:
        return jsonify({"error": "Name is required"}), 400
    if not TUTEE_PIN_PATTERN.match(pin):
        return jsonify({"error": "PIN must be 4 digits"}), 400
    if TuteeStoreDB.exists(tutee_id):
        return jsonify({"error": "A tutee with this id already exists"}), 409

    colors = data.get("colorScheme") or {}
    try:
        tutee = TuteeStoreDB.create(
            tutee_id, name, pin,
            description=str(data.get("description", "")).strip(),
            icon=data.get("icon") or "BookOpen",
            color_primary=colors.get("primary") or "pink",
            color_secondary=colors.get("secondary") or "purple",
            color_gradient=colors.get("gradient") or "from-pink-500 to-purple-600",
        )
    except sqlite3.Error:
        return api_error("create tutee")
    log_event("tutee_created", "admin", f"tutee={tutee_id}")
    return jsonify({"tutee": tutee.to_dict()}), 201


@bp.route("/api/tutees/<tutee_id>", methods=["PATCH"])
@admin_required
def update_tutee_info(tutee_id):
    data = json_body()
    if "name" in data and not str(data["name"]).strip():
        return jsonify({"error": "Name cannot be empty"}), 400
    try:
        tutee = TuteeStoreDB.update(
            tutee_id,
            name=str(data["name"]).strip() if "name" in data else None,
            description=str(data["description"]).strip() if "description" in data else None,
        )
    except sqlite3.Error:
        return api_error("update tutee")
    if tutee is None:
        return jsonify({"error": "Tutee not found"}), 404
    return jsonify({"tutee": tutee.to_dict()})


@bp.route("/api/tutees/<tutee_id>/colors", methods=["PUT"])
@tutee_access_required
def update_colors(tutee_id):
    data = json_body()
    if not any(data.get(k) for k in ("primary", "secondary", "gradient")):
        return jsonify({"error": "At least one colour is required"}), 400
    try:
        tutee = TuteeStoreDB.update(
            tutee_id,
            color_primary=data.get("primary"),
            color_secondary=data.get("secondary"),
            color_gradient=data.get("gradient"),
        )
    except sqlite3.Error:
        return api_error("update colours")
    return jsonify({"tutee": tutee.to_dict()})


@bp.route("/api/tutees/<tutee_id>/icon", methods=["PUT"])
@tutee_access_required
def update_icon(tutee_id):
    icon = str(json_body().get("icon", "")).strip()
    if not icon:
        return jsonify({"error": "Icon is required"}), 400
    try:
        tutee = TuteeStoreDB.update(tutee_id, icon=icon)
    except sqlite3.Error:
        return api_error("update icon")
    return jsonify({"tutee": tutee.to_dict()})


@bp.route("/api/tutees/<tutee_id>/pin", methods=["PUT"])
@tutee_access_required
def change_pin(tutee_id):
    data = json_body()
    current_pin = str(data.get("currentPin", "")).strip()
    new_pin = str(data.get("newPin", "")).strip()

    if not TUTEE_PIN_PATTERN.match(new_pin):
        return jsonify({"error": "New PIN must be 4 digits"}), 400
    try:
        changed = TuteeStoreDB.change_pin(tutee_id, current_pin, new_pin)
    except sqlite3.Error:
        return api_error("change PIN")
    if not changed:
        log_event("pin_change_failed", f"tutee:{tutee_id}")
        return jsonify({"error": "Current PIN is incorrect"}), 400
    log_event("pin_changed", f"tutee:{tutee_id}")
    return jsonify({"success": True})


@bp.route("/api/tutees/<tutee_id>", methods=["DELETE"])
@admin_required
def delete_tutee(tutee_id):
    try:
        deleted = TuteeStoreDB.delete(tutee_id)
    except sqlite3.Error:
        return api_error("delete tutee")
    if not deleted:
        return jsonify({"error": "Tutee not found"}), 404
    log_event("tutee_deleted", "admin", f"tutee={tutee_id}")
    return jsonify({"success": True})
