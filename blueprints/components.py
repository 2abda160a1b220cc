"""Dashboard component catalogue and per-tutee assignment."""

from __future__ import annotations

import re
import sqlite3

from flask import Blueprint, jsonify, request

from db_stores import ComponentStoreDB
from helpers import admin_required, api_error, json_body, tutee_access_required

bp = Blueprint("components", __name__)

_NAME = re.compile(r"^[a-z][a-z0-9_-]{1,63}$")


@bp.route("/api/components")
@admin_required
def list_components():
    try:
        components = ComponentStoreDB.list_components()
    except sqlite3.Error:
        return api_error("load components")
    return jsonify({"components": [c.to_dict() for c in components]})


@bp.route("/api/components", methods=["POST"])
@admin_required
def create_component():
    data = json_body()
    name = str(data.get("name", "")).strip()
    display_name = str(data.get("displayName", "")).strip()
    component_type = str(data.get("componentType", "")).strip()
    config = data.get("config") or {}

    if not _NAME.match(name):
        return jsonify({"error": "Name must be a lowercase identifier"}), 400
    if not display_name or not component_type:
        return jsonify({"error": "displayName and componentType are required"}), 400
    if not isinstance(config, dict):
        return jsonify({"error": "config must be an object"}), 400

    try:
        component = ComponentStoreDB.create_component(
            name, display_name, component_type,
            description=data.get("description"), config=config,
        )
    except sqlite3.IntegrityError:
        return jsonify({"error": "A component with this name already exists"}), 409
    except sqlite3.Error:
        return api_error("create component")
    return jsonify({"component": component.to_dict()}), 201


@bp.route("/api/tutees/<tutee_id>/components")
@tutee_access_required
def tutee_components(tutee_id):
    active_only = request.args.get("all") != "true"
    try:
        assignments = ComponentStoreDB.tutee_components(tutee_id, active_only=active_only)
    except sqlite3.Error:
        return api_error("load components")
    return jsonify({"components": [a.to_dict() for a in assignments]})


@bp.route("/api/tutees/<tutee_id>/components", methods=["POST"])
@admin_required
def assign_component(tutee_id):
    data = json_body()
    component_id = data.get("componentId", "")
    if ComponentStoreDB.get_component(component_id) is None:
        return jsonify({"error": "Component not found"}), 404
    display_order = data.get("displayOrder", 0)
    if not isinstance(display_order, int):
        return jsonify({"error": "displayOrder must be an integer"}), 400

    try:
        assignment = ComponentStoreDB.assign(tutee_id, component_id, display_order,
                                             config=data.get("config") or {})
    except sqlite3.IntegrityError:
        return jsonify({"error": "Tutee not found"}), 404
    except sqlite3.Error:
        return api_error("assign component")
    return jsonify({"component": assignment.to_dict()}), 201


@bp.route("/api/tutee-components/<assignment_id>", methods=["PATCH"])
@admin_required
def update_assignment(assignment_id):
    data = json_body()
    display_order = data.get("displayOrder")
    if display_order is not None and not isinstance(display_order, int):
        return jsonify({"error": "displayOrder must be an integer"}), 400
    config = data.get("config")
    if config is not None and not isinstance(config, dict):
        return jsonify({"error": "config must be an object"}), 400

    try:
        assignment = ComponentStoreDB.update_assignment(
            assignment_id,
            display_order=display_order,
            is_active=data.get("isActive"),
            config=config,
        )
    except sqlite3.Error:
        return api_error("update component")
    if assignment is None:
        return jsonify({"error": "Component assignment not found"}), 404
    return jsonify({"component": assignment.to_dict()})


@bp.route("/api/tutee-components/<assignment_id>", methods=["DELETE"])
@admin_required
def remove_assignment(assignment_id):
    try:
        removed = ComponentStoreDB.remove_assignment(assignment_id)
    except sqlite3.Error:
        return api_error("remove component")
    if not removed:
        return jsonify({"error": "Component assignment not found"}), 404
    return jsonify({"success": True})
