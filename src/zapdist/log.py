"""Logging setup and structured event lines.

Plain ``logging`` throughout. Operational milestones (epoch generated,
generation skipped, root anchored) are emitted as single-line JSON
events so they can be grepped and shipped as-is.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler at ``level`` (a logging level name)."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)


def _now_ms() -> int:
    return int(time.time() * 1000)


def log_event(logger: logging.Logger, event: str, **fields: Any) -> None:
    """Emit one JSON log line: ``{"event": ..., "ts_ms": ..., **fields}``.

    Values that are not JSON-native (Decimal, Path) are rendered with str().
    """
    payload: Dict[str, Any] = {"ts_ms": _now_ms(), "event": str(event)}
    payload.update(fields)
    logger.info(json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str))
