"""Process-lifetime holder for the most recent analysis."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from .models import Analysis


class SnapshotCache:
    """Holds at most one Analysis, replaced whole on every store.

    The analysis and its store time live in one tuple swapped under the lock,
    so readers always see a matching pair without taking the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entry: tuple[Analysis, datetime] | None = None

    def get(self) -> Analysis | None:
        entry = self._entry
        return entry[0] if entry else None

    @property
    def stored_at(self) -> datetime | None:
        entry = self._entry
        return entry[1] if entry else None

    def replace(self, analysis: Analysis) -> None:
        with self._lock:
            self._entry = (analysis, datetime.now(timezone.utc))

    def clear(self) -> None:
        with self._lock:
            self._entry = None
