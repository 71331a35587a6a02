"""
Audit Ledger — Append-only NDJSON record of activation events.

Each line is one JSON object. Events are never edited, only appended.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


class AuditWriter:
    """
    Append-only NDJSON audit ledger writer.

    Usage:
        audit = AuditWriter(Path("audit/activations.ndjson"))
        audit.emit("activation_committed", mirror_url="https://cdn-a/", epoch=2)
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.touch()

    def emit(
        self,
        event_type: str,
        mirror_url: str = "",
        level: str = "info",
        epoch: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Append an event and return its id.

        Ledger write failures are logged, never raised: the audit trail
        must not be able to fail an activation.
        """
        event_id = f"E-{uuid4().hex[:12]}"
        event = {
            "event_id": event_id,
            "ts_iso": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "type": event_type,
            "level": level,
            "mirror_url": mirror_url,
            "epoch": epoch,
            "details": details or {},
        }
        line = json.dumps(event, separators=(",", ":"), default=str)

        try:
            with self._lock, self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error(f"Failed to append audit event {event_type}: {e}")

        return event_id

    def read_all(self) -> List[Dict[str, Any]]:
        """Read every event; malformed lines are skipped."""
        events = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed audit line in {self.path.name}")
        return events
