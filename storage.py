"""
Local object storage for shared files.

Files live in a single bucket directory under STORAGE_DIR. Object paths
follow "{tuteeId}/{randomId}-{timestamp}.{ext}" and are always resolved
inside the bucket.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from flask import current_app, url_for
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

BUCKET = "shared-files"


class StorageError(Exception):
    """Raised for invalid object paths."""


def bucket_dir() -> Path:
    root = Path(current_app.config.get("STORAGE_DIR", "storage"))
    path = root / BUCKET
    path.mkdir(parents=True, exist_ok=True)
    return path


def object_path(tutee_id: str, filename: str) -> str:
    """Build a fresh object path for an upload."""
    safe = secure_filename(filename or "")
    ext = safe.rsplit(".", 1)[1].lower() if "." in safe else "bin"
    random_id = secrets.token_hex(6)
    return f"{tutee_id}/{random_id}-{int(time.time() * 1000)}.{ext}"


def resolve(path: str) -> Path:
    """Absolute filesystem location of an object path."""
    base = bucket_dir().resolve()
    target = (base / path).resolve()
    if not path or base not in target.parents:
        raise StorageError(f"Invalid object path: {path!r}")
    return target


def owner(path: str) -> str:
    """Tutee id owning an object path, taken after normalisation."""
    target = resolve(path)
    return target.relative_to(bucket_dir().resolve()).parts[0]


def upload(path: str, file: FileStorage) -> int:
    """Write an upload to the bucket. Returns its size in bytes."""
    target = resolve(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    file.save(target)
    size = target.stat().st_size
    logger.info("Stored %s (%d bytes)", path, size)
    return size


def remove(path: str) -> bool:
    target = resolve(path)
    if not target.exists():
        return False
    target.unlink()
    logger.info("Removed %s", path)
    return True


def public_url(path: str) -> str:
    return url_for("files.download_object", path=path, _external=False)
