"""
Logging Configuration — stderr logging for the CLI and embedding apps.

Two renderings of the same records:
- json: one object per line, with mirror context fields kept as keys
- text: short colored lines; context fields appear as a `key=value` tail

Mirror context is attached with `extra=`, e.g.

    logger.info("Activated", extra={"mirror_url": url, "epoch": 3})

## Environment Variables

- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_FORMAT: json, text (default: text)

## Usage

    from asset_mirror.logging_config import setup_logging

    setup_logging()  # once, at startup
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

# Keys accepted through `extra=`; anything else stays out of the output
CONTEXT_FIELDS = ("mirror_url", "catalog_url", "epoch", "probe_url")

# Third-party loggers that narrate every request at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3")


def _context(record: logging.LogRecord) -> List[Tuple[str, Any]]:
    return [(name, getattr(record, name)) for name in CONTEXT_FIELDS if hasattr(record, name)]


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON object (ts, level, logger, message, context)."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """
    Compact formatter for terminals.

        12:34:56 INFO    [controller     ] Activated mirror A (epoch 3)  mirror_url=cdnA epoch=3
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:7}"
        if self.color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"
        source = record.name.rsplit(".", 1)[-1][:15]

        line = f"{stamp} {level} [{source:15}] {record.getMessage()}"
        context = _context(record)
        if context:
            line += "  " + " ".join(f"{k}={v}" for k, v in context)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str | None = None, format_type: str | None = None) -> None:
    """
    Replace the root logger's handlers with one stderr handler.

    Args:
        level: Level name; falls back to LOG_LEVEL, then INFO
        format_type: "json" or "text"; falls back to LOG_FORMAT, then text
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    fmt = (format_type or os.environ.get("LOG_FORMAT") or "text").lower()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if fmt == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = HumanFormatter(color=sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).debug(f"Logging ready (level={level_name}, format={fmt})")
