"""Logging helpers.

The scheduler uses Python logging with a JSON formatter so each submission is
a single greppable line.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from colonybuild.errors import PolicyViolationError

_EXTRA_KEYS = (
    "event",
    "tick",
    "territory",
    "structure_type",
    "x",
    "y",
    "reason",
    "dependency",
    "budget",
    "remaining_global",
    "code",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Common structured extras (when provided).
        for k in _EXTRA_KEYS:
            v = getattr(record, k, None)
            if v is not None:
                base[k] = v

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(base, ensure_ascii=True, sort_keys=True)


def apply_logging_config(path: Path) -> None:
    if not path.exists():
        raise PolicyViolationError(f"Missing required config file: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise PolicyViolationError(f"Invalid logging config YAML root object: {path}")
    logging.config.dictConfig(raw)
