"""Shared files and links between the admin and a tutee."""

from __future__ import annotations

import logging
import sqlite3
from urllib.parse import urlparse

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

from db_stores import SharedFileStoreDB
import storage
from helpers import api_error, can_access, current_actor, is_admin, json_body, tutee_access_required
from models import ADMIN_RECIPIENT, SharedFile
from push import notify

logger = logging.getLogger(__name__)

bp = Blueprint("files", __name__)


def _file_payload(f: SharedFile) -> dict:
    payload = f.to_dict()
    payload["publicUrl"] = storage.public_url(f.file_path) if f.kind == "file" else f.url
    return payload


def _notify_admin_of_share(tutee_id: str, name: str) -> None:
    if is_admin():
        return
    notify(
        "file_shared",
        ADMIN_RECIPIENT,
        "New File Shared 📎",
        f"{current_actor()} shared {name}.",
        f"/tuition?tuteeId={tutee_id}",
    )


@bp.route("/api/tutees/<tutee_id>/files")
@tutee_access_required
def list_files(tutee_id):
    try:
        files = SharedFileStoreDB(tutee_id).list()
    except sqlite3.Error:
        return api_error("load files")
    return jsonify({"files": [_file_payload(f) for f in files]})


@bp.route("/api/tutees/<tutee_id>/files", methods=["POST"])
@tutee_access_required
def upload_file(tutee_id):
    """Store the upload, then record it. The stored object is removed if recording fails."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400

    path = storage.object_path(tutee_id, upload.filename)
    try:
        size = storage.upload(path, upload)
    except OSError:
        return api_error("upload file")

    try:
        shared = SharedFileStoreDB(tutee_id).add_file(
            upload.filename, path, size,
            upload.mimetype or "application/octet-stream",
            current_actor(),
        )
    except sqlite3.Error:
        storage.remove(path)
        return api_error("upload file")

    _notify_admin_of_share(tutee_id, upload.filename)
    return jsonify({"file": _file_payload(shared)}), 201


@bp.route("/api/tutees/<tutee_id>/links", methods=["POST"])
@tutee_access_required
def add_link(tutee_id):
    data = json_body()
    url = str(data.get("url", "")).strip()
    title = str(data.get("title", "")).strip() or url
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return jsonify({"error": "A valid http(s) URL is required"}), 400

    try:
        link = SharedFileStoreDB(tutee_id).add_link(title, url, current_actor())
    except sqlite3.Error:
        return api_error("share link")

    _notify_admin_of_share(tutee_id, title)
    return jsonify({"file": _file_payload(link)}), 201


@bp.route("/api/files/<file_id>", methods=["DELETE"])
@login_required
def delete_file(file_id):
    shared = SharedFileStoreDB.get(file_id)
    if shared is None:
        return jsonify({"error": "File not found"}), 404
    if not can_access(shared.tutee_id):
        return jsonify({"error": "Access denied"}), 403

    try:
        if shared.kind == "file" and shared.file_path:
            storage.remove(shared.file_path)
        SharedFileStoreDB.delete(file_id)
    except (OSError, sqlite3.Error):
        return api_error("delete file")
    return jsonify({"success": True})


@bp.route("/api/files/<file_id>/download")
@login_required
def download_file(file_id):
    shared = SharedFileStoreDB.get(file_id)
    if shared is None or shared.kind != "file":
        return jsonify({"error": "File not found"}), 404
    if not can_access(shared.tutee_id):
        return jsonify({"error": "Access denied"}), 403
    return _send_object(shared.file_path, shared.file_name)


@bp.route("/api/storage/shared-files/<path:path>")
@login_required
def download_object(path):
    """Serve a bucket object by path; the first resolved segment is the owning tutee."""
    try:
        owner = storage.owner(path)
    except storage.StorageError:
        return jsonify({"error": "File not found"}), 404
    if not can_access(owner):
        return jsonify({"error": "Access denied"}), 403
    return _send_object(path)


def _send_object(path: str, download_name: str | None = None):
    try:
        target = storage.resolve(path)
    except storage.StorageError:
        return jsonify({"error": "File not found"}), 404
    if not target.is_file():
        return jsonify({"error": "File not found"}), 404
    return send_file(target, download_name=download_name, as_attachment=download_name is not None)
