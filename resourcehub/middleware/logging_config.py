"""
Logging setup for ResourceHub.

One stderr handler on the root logger:

    production           → one JSON object per line
    development/testing  → short coloured lines for a terminal

Every record passing through the handler is stamped with the current
request id and user id (when inside a request), so service-layer log lines
such as "Allocation rejected ..." can be joined with the access log emitted
by ``middleware.timing``.

Level: LOG_LEVEL env var / config, else INFO in production and DEBUG
elsewhere.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Attributes copied from ``extra=`` onto JSON lines when present.
CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "project_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "urllib3")


class RequestContextFilter(logging.Filter):
    """Attach request_id / user_id from ``flask.g`` to each record."""

    def filter(self, record):
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = getattr(g, "request_id", None)
            if getattr(record, "user_id", None) is None:
                user = getattr(g, "current_user", None)
                record.user_id = user.id if user is not None else None
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname[:4]}{self.RESET} {record.name}: {record.getMessage()}"
        request_id = getattr(record, "request_id", None)
        if request_id:
            line += f" rid={request_id}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" ({duration:.0f}ms)"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_level(app, production):
    name = os.getenv("LOG_LEVEL") or app.config.get("LOG_LEVEL") or ("INFO" if production else "DEBUG")
    return name.upper(), getattr(logging, name.upper(), logging.INFO)


def configure_logging(app):
    """Install the ResourceHub handler on the root logger.

    Safe to call once per ``create_app``; previous root handlers are
    replaced so a test session creating several apps logs each line once.
    """
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing
    level_name, level = _resolve_level(app, production)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready level=%s json=%s", level_name, production)
