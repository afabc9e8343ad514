# shiur_recorder/core/logging/event_log.py

"""Bounded event log for debugging false starts and stops."""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class EventRecord:
    """Single timestamped entry in the event log"""
    timestamp: datetime
    event: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Export as dict"""
        return {
            'timestamp': self.timestamp.isoformat(),
            'event': self.event,
            **self.details
        }

    def __str__(self) -> str:
        details = ", ".join(f"{k}={v}" for k, v in self.details.items())
        text = f"[{self.timestamp.strftime('%H:%M:%S')}] {self.event}"
        return f"{text} ({details})" if details else text


class EventLog:
    """
    Ring of the most recent N event records.

    Every record is also forwarded to structlog, so the file log keeps the
    full history while the ring only holds what the operator can inspect.
    Safe to call from the audio callback thread and the export worker.
    """

    def __init__(self, max_entries: int = 100, enabled: bool = True):
        """
        Args:
            max_entries: Ring capacity (oldest entries are dropped)
            enabled: Disable to skip the ring (structlog still receives events)
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self.max_entries = max_entries
        self.enabled = enabled
        self._records: deque = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._total = 0

    def record(self, event: str, level: str = "info", **details: Any) -> EventRecord:
        """Append a record and emit it through structlog."""
        entry = EventRecord(timestamp=datetime.now(), event=event, details=details)

        if self.enabled:
            with self._lock:
                self._records.append(entry)
                self._total += 1

        getattr(logger, level, logger.info)(event, **details)
        return entry

    def recent(self, n: Optional[int] = None) -> List[EventRecord]:
        """Most recent records, oldest first"""
        with self._lock:
            records = list(self._records)
        if n is None or n >= len(records):
            return records
        return records[-n:] if n > 0 else []

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    @property
    def total_recorded(self) -> int:
        """Records appended since creation (including dropped ones)"""
        return self._total

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
