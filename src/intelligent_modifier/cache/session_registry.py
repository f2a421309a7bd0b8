"""Session lifecycle bookkeeping: creation, activity, TTL expiry."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from intelligent_modifier.agents.exceptions import CacheUnavailable
from intelligent_modifier.cache.session_store import (
    NAMESPACE_SESSION,
    InMemorySessionStore,
    SessionStore,
)
from intelligent_modifier.models.project_models import SessionContext

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 3600


class SessionRegistry:
    """Tracks a SessionContext per session id.

    Contexts are mirrored to the session store under the "session" namespace
    so a restarted process keeps message counts and cached summaries.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def open(self, session_id: str, build_directory: str) -> SessionContext:
        """Return the session's context, creating it on first use."""
        with self._lock:
            context = self._sessions.get(session_id)
        if context is None:
            context = self._load(session_id) or SessionContext(
                session_id=session_id,
                build_directory=build_directory,
                created_at=self._clock(),
                last_activity=self._clock(),
            )
        if context.build_directory != build_directory:
            logger.info("Session %s moved to build directory %s", session_id, build_directory)
            context.build_directory = build_directory
            context.cached_summary = None
        context.last_activity = self._clock()
        with self._lock:
            self._sessions[session_id] = context
        self._persist(context)
        return context

    def get(self, session_id: str) -> Optional[SessionContext]:
        with self._lock:
            return self._sessions.get(session_id)

    def touch(
        self,
        session_id: str,
        phase: Optional[str] = None,
        cached_summary: Optional[str] = None,
    ) -> Optional[SessionContext]:
        """Record activity (and optionally a phase or summary) on a session."""
        with self._lock:
            context = self._sessions.get(session_id)
            if context is None:
                return None
            context.last_activity = self._clock()
            if phase is not None:
                context.phase = phase
            if cached_summary is not None:
                context.cached_summary = cached_summary
        self._persist(context)
        return context

    def invalidate_summary(self, session_id: str) -> None:
        """Drop the cached project summary so the next request re-renders it."""
        with self._lock:
            context = self._sessions.get(session_id)
            if context is None or context.cached_summary is None:
                return
            context.cached_summary = None
        self._persist(context)

    def next_message_number(self, session_id: str) -> int:
        """Increment and return the session's request counter."""
        with self._lock:
            context = self._sessions.get(session_id)
            if context is None:
                raise KeyError(f"Unknown session: {session_id}")
            context.message_count += 1
            number = context.message_count
        self._persist(context)
        return number

    def sessions_for_build(self, build_directory: str) -> list[SessionContext]:
        """Return every open session working on the given build directory."""
        with self._lock:
            return [
                context for context in self._sessions.values()
                if context.build_directory == build_directory
            ]

    def expired(self, now: Optional[datetime] = None) -> list[str]:
        """Return ids of sessions idle for longer than the TTL."""
        cutoff = (now or self._clock()) - self.ttl
        with self._lock:
            return [
                session_id for session_id, context in self._sessions.items()
                if context.last_activity < cutoff
            ]

    def close(self, session_id: str) -> None:
        """Forget a session and delete all of its stored namespaces."""
        with self._lock:
            self._sessions.pop(session_id, None)
        try:
            self.store.delete(session_id)
        except CacheUnavailable as exc:
            logger.warning("Could not delete stored session %s: %s", session_id, exc)

    def _load(self, session_id: str) -> Optional[SessionContext]:
        try:
            raw = self.store.get(session_id, NAMESPACE_SESSION)
        except CacheUnavailable as exc:
            logger.warning("Session store unavailable for %s: %s", session_id, exc)
            return None
        if not raw:
            return None
        try:
            return SessionContext.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding malformed session record %s: %s", session_id, exc)
            return None

    def _persist(self, context: SessionContext) -> None:
        try:
            self.store.set(context.session_id, NAMESPACE_SESSION, context.model_dump(mode="json"))
        except CacheUnavailable as exc:
            logger.warning("Could not persist session %s: %s", context.session_id, exc)
