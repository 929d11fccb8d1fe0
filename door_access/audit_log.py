"""
Audit Log Module

Append-only, in-memory record of every decision the engine makes.

Events are stored oldest-first and read newest-first. When several requests
complete at the same time, the stored order is the order in which their
appends acquired the lock (completion order), not the order the requests
arrived in.

Retention is unbounded for the lifetime of the process.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from door_access.registry import utc_now

# Setup logging
logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """What an audit entry records."""
    GRANTED = "granted"
    DENIED = "denied"
    ENROLLMENT = "enrollment"
    ERROR = "error"


@dataclass(frozen=True)
class AccessEvent:
    """
    One immutable audit entry.

    Attributes:
        description: Human-readable summary, e.g. "Access GRANTED - alice".
        granted: True only for a granted access check.
        person_name: Matched or enrolled person, None when nobody matched.
        confidence: Normalized match confidence (0.0-1.0), None when no match.
        kind: Category of the entry.
        timestamp: When the entry was created (UTC).
    """

    description: str
    granted: bool
    person_name: Optional[str] = None
    confidence: Optional[float] = None
    kind: EventKind = EventKind.DENIED
    timestamp: datetime = field(default_factory=utc_now)


class AuditLog:
    """Thread-safe append-only sequence of AccessEvents."""

    def __init__(self):
        self._events: List[AccessEvent] = []
        self._lock = threading.Lock()

    def append(self, event: AccessEvent) -> None:
        """Add an event to the end of the log."""
        with self._lock:
            self._events.append(event)
        logger.info(event.description)

    def recent(self, limit: int) -> List[AccessEvent]:
        """
        Return up to `limit` of the most recently appended events, newest first.

        Args:
            limit: Maximum number of events. 0 returns an empty list.

        Raises:
            ValueError: If limit is negative.
        """
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        if limit == 0:
            return []

        with self._lock:
            snapshot = self._events[-limit:]

        snapshot.reverse()
        return snapshot

    def stats(self) -> Dict[str, int]:
        """Count entries by outcome."""
        with self._lock:
            snapshot = list(self._events)

        granted = sum(1 for e in snapshot if e.kind == EventKind.GRANTED)
        denied = sum(1 for e in snapshot if e.kind == EventKind.DENIED)
        return {
            "total_events": len(snapshot),
            "granted": granted,
            "denied": denied,
            "errors": sum(1 for e in snapshot if e.kind == EventKind.ERROR),
            "enrollments": sum(1 for e in snapshot if e.kind == EventKind.ENROLLMENT),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
