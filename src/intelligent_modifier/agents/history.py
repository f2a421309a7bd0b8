"""Append-only per-session modification history.

The history is a best-effort cache, not a ledger: entries are mirrored to
the session store when it is reachable and simply kept in memory when it
is not.
"""

import logging
import threading
from collections import Counter
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from intelligent_modifier.agents.exceptions import CacheUnavailable
from intelligent_modifier.cache.session_store import (
    NAMESPACE_HISTORY,
    InMemorySessionStore,
    SessionStore,
)
from intelligent_modifier.models.change_models import ChangeType, ModificationChange

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_SIZE = 5
MOST_MODIFIED_LIMIT = 10

_CHANGE_ICONS = {
    ChangeType.CREATED: "📝",
    ChangeType.MODIFIED: "🔄",
    ChangeType.UPDATED: "⚡",
}


def _format_duration(seconds: float) -> str:
    minutes, remainder = divmod(int(max(seconds, 0)), 60)
    return f"{minutes}m {remainder}s" if minutes else f"{remainder}s"


class ModificationHistory:
    """Change log keyed by session id."""

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self._clock = clock
        self._entries: dict[str, list[ModificationChange]] = {}
        self._started: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def record(self, session_id: str, change: ModificationChange) -> None:
        """Append one entry to the session's log."""
        self._ensure_loaded(session_id)
        with self._lock:
            self._entries.setdefault(session_id, []).append(change)
            self._started.setdefault(session_id, change.timestamp)
            snapshot = list(self._entries[session_id])
            started = self._started[session_id]
        self._persist(session_id, snapshot, started)

    def changes(self, session_id: str) -> tuple[ModificationChange, ...]:
        self._ensure_loaded(session_id)
        with self._lock:
            return tuple(self._entries.get(session_id, ()))

    def get_recent_summary(self, session_id: str, n: int = DEFAULT_SUMMARY_SIZE) -> str:
        """Render the last ``n`` entries as context for the next classification.

        Returns:
            Multi-line summary, or an empty string for a session with no history.
        """
        changes = self.changes(session_id)
        if not changes:
            return ""

        lines = ["**RECENT MODIFICATIONS IN THIS SESSION:**"]
        for change in changes[-n:]:
            icon = _CHANGE_ICONS.get(change.type, "🔧")
            status = " (failed)" if not change.success else ""
            lines.append(f"• {icon} {change.file}{status}: {change.description}")

        with self._lock:
            started = self._started.get(session_id, changes[0].timestamp)
        unique_files = {change.file for change in changes if change.success}
        duration = (self._clock() - started).total_seconds()
        lines.extend([
            "",
            "**Session Context:**",
            f"• Total files modified: {len(unique_files)}",
            f"• Session duration: {_format_duration(duration)}",
        ])
        return "\n".join(lines)

    def get_most_modified_files(
        self,
        session_id: str,
        limit: int = MOST_MODIFIED_LIMIT,
    ) -> list[tuple[str, int]]:
        """Return (file, edit count) pairs, most edited first."""
        counts = Counter(change.file for change in self.changes(session_id) if change.success)
        return counts.most_common(limit)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)
            self._started.pop(session_id, None)
        try:
            self.store.delete(session_id, NAMESPACE_HISTORY)
        except CacheUnavailable as exc:
            logger.warning("Could not delete stored history for %s: %s", session_id, exc)

    def _ensure_loaded(self, session_id: str) -> None:
        with self._lock:
            if session_id in self._entries:
                return
        try:
            raw = self.store.get(session_id, NAMESPACE_HISTORY)
        except CacheUnavailable as exc:
            logger.warning("History unavailable for %s: %s", session_id, exc)
            raw = None

        entries: list[ModificationChange] = []
        started: Optional[datetime] = None
        if raw:
            try:
                entries = [ModificationChange.model_validate(item) for item in raw.get("changes", [])]
                if raw.get("started_at"):
                    started = datetime.fromisoformat(raw["started_at"])
            except (ValidationError, ValueError, AttributeError) as exc:
                logger.warning("Discarding malformed history for %s: %s", session_id, exc)
                entries, started = [], None

        with self._lock:
            if session_id in self._entries:
                return
            self._entries[session_id] = entries
            if started is not None:
                self._started[session_id] = started
            elif entries:
                self._started[session_id] = entries[0].timestamp

    def _persist(
        self,
        session_id: str,
        changes: list[ModificationChange],
        started: datetime,
    ) -> None:
        payload = {
            "started_at": started.isoformat(),
            "changes": [change.model_dump(mode="json") for change in changes],
        }
        try:
            self.store.set(session_id, NAMESPACE_HISTORY, payload)
        except CacheUnavailable as exc:
            logger.warning("Could not persist history for %s: %s", session_id, exc)
