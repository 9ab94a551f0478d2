import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

from .config import get_settings

_LOGGING_CONFIGURED = False

# Extras copied onto every JSON line when a log call passes them
STRUCTURED_FIELDS = (
    "request_id",
    "brief_id",
    "proposal_id",
    "actor_id",
    "step",
    "effect_id",
    "effect_type",
)


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Only the whitelisted ``STRUCTURED_FIELDS`` extras are emitted, so callers
    cannot leak arbitrary payloads into the log stream by accident.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", "sourcing_engagements"),
        }
        entry.update(
            {name: getattr(record, name) for name in STRUCTURED_FIELDS if hasattr(record, name)}
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: int | str | None = None) -> None:
    """
    Install the JSON handler on the root logger. Only the first call has an
    effect; the API process and Celery workers both call this at import time.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    if level is None:
        level = get_settings().LOG_LEVEL.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    _LOGGING_CONFIGURED = True
