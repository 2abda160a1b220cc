"""
Structured logging configuration.

Every record written while a request is being handled carries the request
id and the signed-in principal ("admin", "tutee:<id>" or "-"), so store,
push and audit lines can be traced back to the portal user that caused
them. Production emits JSON lines; development a readable text line.
"""

from __future__ import annotations

import json
import logging
import re
import time
import uuid

from flask import Flask, g, has_request_context, request
from flask_login import current_user

_CONTEXT_FIELDS = ("request_id", "principal")

# Client supplied ids are echoed back, so only short opaque tokens are kept.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s %(principal)s]: %(message)s"


class RequestContextFilter(logging.Filter):
    """Stamp request id and principal onto records; "-" outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = getattr(record, "request_id", None) or g.get("request_id", "-")
            record.principal = getattr(record, "principal", None) or _principal()
        else:
            record.request_id = getattr(record, "request_id", "-")
            record.principal = getattr(record, "principal", "-")
        return True


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, "-")
            if value != "-":
                entry[name] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _principal() -> str:
    if current_user and current_user.is_authenticated:
        return current_user.get_id()
    return "-"


def request_id_from(header: str | None) -> str:
    """Keep a well-formed incoming X-Request-ID, otherwise mint one."""
    if header and _REQUEST_ID_RE.match(header):
        return header
    return uuid.uuid4().hex[:12]


def init_logging(app: Flask) -> None:
    """Configure the root logger and the per-request access log."""
    log_format = app.config.get("LOG_FORMAT", "text")
    log_level = app.config.get("LOG_LEVEL", "INFO")

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    # Push delivery and the OpenAI SDK log every HTTP call at INFO
    for noisy in ("werkzeug", "apscheduler", "httpx", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    @app.before_request
    def _attach_request_id():
        g.request_id = request_id_from(request.headers.get("X-Request-ID"))
        g.request_start = time.time()

    @app.after_request
    def _log_request(response):
        duration_ms = (time.time() - g.get("request_start", time.time())) * 1000
        response.headers["X-Request-ID"] = g.get("request_id", "-")
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        size = f" {request.content_length}B" if request.content_length else ""
        app.logger.log(
            level,
            "%s %s %s %.0fms%s",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            size,
        )
        return response
