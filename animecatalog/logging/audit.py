"""JSON audit trail for the catalog API and the sync job.

One JSON object per line on stdout (and AUDIT_LOG_FILE when set). Each
line carries the request id that the edge middleware also returns in
``X-Request-Id``, so a caller's report can be matched to the gate
decision, the route outcome or the 500 that produced it. Sync runs log
outside any request and carry an empty request id.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from animecatalog.config.settings import get_settings

AUDIT_LOGGER_NAME = "catalog.audit"

# Set once per request by the edge middleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class JSONFormatter(logging.Formatter):
    """Renders a record as one JSON line, merging its ``catalog_fields``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        entry.update(getattr(record, "catalog_fields", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _json_handler(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    """Point the audit logger at stdout (plus the optional file) as JSON lines."""
    settings = get_settings()

    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.addHandler(_json_handler(logging.StreamHandler(sys.stdout)))
    if settings.audit_log_file:
        logger.addHandler(_json_handler(logging.FileHandler(settings.audit_log_file)))
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)


def log_event(level: int, message: str, *, exc_info: bool = False, **fields) -> None:
    """Write one audit line; keyword fields become top-level JSON keys.

    Example:
        log_event(logging.WARNING, "Request rejected at gate", client_ip=ip, status=429)
    """
    get_audit_logger().log(level, message, exc_info=exc_info, extra={"catalog_fields": fields})


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestTimer:
    """Wall-clock latency of a block, in milliseconds."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
