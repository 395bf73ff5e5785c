"""
Structured JSON logging configuration for Tomekeeper.

All log records are emitted as single-line JSON objects to both the
configured log file and stderr.

Usage::

    from tomekeeper.utils.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("rulebook extracted", extra={"item_id": iid, "rulebook_id": rid})

For the ingestion pipeline, which needs batch-scoped context on every record::

    from tomekeeper.utils.logging_config import get_logger, BatchAdapter

    raw = get_logger("tomekeeper.ingest")
    logger = BatchAdapter(raw, batch_id="3f2a...")
    logger.info("batch started")        # automatically includes batch_id
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

class JSONFormatter(logging.Formatter):
    """Emits each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Merge extra fields (batch_id, item_id, etc.)
        for key in ("batch_id", "item_id", "rulebook_id", "world_id", "status",
                     "attempt", "duration_ms", "metadata"):
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


# ---------------------------------------------------------------------------
# BatchAdapter: attaches batch_id to every log call
# ---------------------------------------------------------------------------

class BatchAdapter(logging.LoggerAdapter):
    """Logger adapter that injects ``batch_id`` into every record."""

    def __init__(self, logger: logging.Logger, batch_id: str):
        super().__init__(logger, {"batch_id": batch_id})

    def process(
        self,
        msg: str,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.setdefault("extra", {})
        extra.update(self.extra)
        return msg, kwargs


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_CONFIGURED = False


def setup_logging(log_file: str | None = None, level: int = logging.INFO) -> None:
    """Configure the root ``tomekeeper`` logger with JSON handlers.

    Safe to call multiple times; only the first call has effect.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    root = logging.getLogger("tomekeeper")
    root.setLevel(level)
    root.propagate = False

    formatter = JSONFormatter()

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)

    # Stderr handler, for docker / systemd journal visibility
    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(formatter)
    sh.setLevel(logging.WARNING)
    root.addHandler(sh)


def get_logger(name: str = "tomekeeper") -> logging.Logger:
    """Return a child logger under the ``tomekeeper`` namespace.

    Handlers are attached once by :func:`setup_logging`, which the
    application entry point calls with the configured log file.
    """
    if name.startswith("tomekeeper"):
        return logging.getLogger(name)
    return logging.getLogger(f"tomekeeper.{name}")
