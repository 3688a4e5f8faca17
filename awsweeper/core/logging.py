"""Logging setup for sweep runs.

Every record carries the run ID. Records about a single resource also carry
its type and ID (see ``resource_fields``), which the JSON output exposes as
top-level keys so a run can be filtered per resource.
"""
import functools
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

_RUN_ID: Optional[str] = None

# Structured fields copied from LogRecord attributes into JSON output
EXTRA_FIELDS = ("resource_type", "resource_id", "action", "pass_number", "duration")

LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)

QUIET_LOGGERS = ("botocore", "boto3", "urllib3")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] [%(run_id)s] %(message)s"


def get_run_id() -> str:
    """Get or create the current run ID."""
    global _RUN_ID
    if _RUN_ID is None:
        _RUN_ID = uuid.uuid4().hex[:8]
    return _RUN_ID


def resource_fields(resource_type: str, resource_id: Optional[str] = None,
                    action: Optional[str] = None, pass_number: Optional[int] = None) -> Dict[str, Any]:
    """``extra`` mapping for a log call about one resource. None values are left out."""
    fields = {
        "resource_type": resource_type,
        "resource_id": resource_id,
        "action": action,
        "pass_number": pass_number,
    }
    return {k: v for k, v in fields.items() if v is not None}


class RunIdFilter(logging.Filter):
    """Stamps every record with the run ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "run_id": getattr(record, "run_id", get_run_id()),
            "message": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(verbosity: int = 0, json_format: bool = False, stream: Optional[TextIO] = None) -> None:
    """Replace the root handlers with a single stream handler.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2 or more=DEBUG
        json_format: Use JSON formatter if True
        stream: Where to write; stderr by default so reports on stdout stay clean
    """
    level = LEVELS[min(max(verbosity, 0), len(LEVELS) - 1)]

    handler = logging.StreamHandler(stream)
    handler.addFilter(RunIdFilter())
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    # AWS SDK wire logs drown everything else at DEBUG
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def timed(func):
    """Log how long a run phase took, also as a ``duration`` field."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.monotonic()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed = time.monotonic() - start
            logging.info(f"{func.__qualname__} took {elapsed:.2f}s", extra={"duration": round(elapsed, 3)})
    return wrapper
