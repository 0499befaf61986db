"""Logging setup: JSON lines in production, human-readable text elsewhere."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

_EXTRA_KEYS = ("owner_id", "record_id", "error_code", "dependency", "path")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure the root logger once; repeated calls replace our handler."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_medikeep", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler._medikeep = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
