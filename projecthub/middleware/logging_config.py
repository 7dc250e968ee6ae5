"""
Structured logging configuration.

- Development: human-readable colored format
- Production: JSON format, one object per line
- Log level: LOG_LEVEL env variable

Services attach audit context through ``extra=``, for example
``extra={"user_id": 3, "entity_type": "risk", "entity_id": 12,
"transition": "resolve"}``. Both formatters render it: the JSON formatter
as top-level keys, the readable formatter as a short suffix.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
AUDIT_FIELDS = ("user_id", "entity_type", "entity_id", "wbs_num", "transition")

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine")


def _audit_suffix(record: logging.LogRecord) -> str:
    """Render audit context as ``[risk #12 resolve] (user 3)``."""
    parts = []
    entity_type = getattr(record, "entity_type", None)
    if entity_type:
        target = getattr(record, "wbs_num", None) or getattr(record, "entity_id", None)
        parts.append(f"{entity_type} {target}" if target is not None else entity_type)
    transition = getattr(record, "transition", None)
    if transition:
        parts.append(transition)
    suffix = f" [{' '.join(str(p) for p in parts)}]" if parts else ""

    user_id = getattr(record, "user_id", None)
    if user_id is not None:
        suffix += f" (user {user_id})"
    duration = getattr(record, "duration_ms", None)
    if duration is not None:
        suffix += f" [{duration:.0f}ms]"
    return suffix


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in REQUEST_FIELDS + AUDIT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        line += _audit_suffix(record)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install one stderr handler on the root logger.

    LOG_LEVEL (env, then app config) wins; otherwise DEBUG in development
    and INFO in production. Production uses ``JSONFormatter``.
    """
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = (os.getenv("LOG_LEVEL") or app.config.get("LOG_LEVEL")
                  or ("INFO" if production else "DEBUG")).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if production else "readable")
