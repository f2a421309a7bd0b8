"""Session-scoped project file cache backed by a persistent session store."""

import logging
import threading
from datetime import datetime
from typing import Mapping, Optional

from intelligent_modifier.agents.exceptions import CacheUnavailable
from intelligent_modifier.cache.session_store import (
    NAMESPACE_FILES,
    InMemorySessionStore,
    SessionStore,
)
from intelligent_modifier.models.project_models import ProjectFile

logger = logging.getLogger(__name__)


class ProjectFileCache:
    """Map of path -> ProjectFile per session.

    Every write goes through ``put`` or ``bulk_replace``, both of which build
    a fresh ``ProjectFile`` so the content hash is recomputed. Readers get
    snapshot copies, so a bulk replace is never observed half-applied.
    Store failures are logged and degrade to an empty map.
    """

    def __init__(self, store: Optional[SessionStore] = None):
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self._sessions: dict[str, dict[str, ProjectFile]] = {}
        self._lock = threading.Lock()

    def hydrate(self, session_id: str) -> dict[str, ProjectFile]:
        """Load a session's files from memory or the persistent store.

        Returns:
            Snapshot of the session's files; empty on a miss or store failure.
        """
        with self._lock:
            if session_id in self._sessions:
                return dict(self._sessions[session_id])

        try:
            raw = self.store.get(session_id, NAMESPACE_FILES)
        except CacheUnavailable as exc:
            logger.warning("Session store unavailable for %s, starting empty: %s", session_id, exc)
            raw = None

        files = self._deserialize(session_id, raw) if raw else {}
        with self._lock:
            self._sessions[session_id] = files
        logger.info("Hydrated %d cached files for session %s", len(files), session_id)
        return dict(files)

    def get(self, session_id: str) -> dict[str, ProjectFile]:
        """Return a snapshot of the session's files (empty if never hydrated)."""
        with self._lock:
            return dict(self._sessions.get(session_id, {}))

    def get_file(self, session_id: str, path: str) -> Optional[ProjectFile]:
        with self._lock:
            return self._sessions.get(session_id, {}).get(path)

    def put(self, session_id: str, path: str, content: str) -> ProjectFile:
        """Write one file into the session, recomputing its hash."""
        project_file = ProjectFile.from_content(path, content)
        with self._lock:
            session_files = self._sessions.setdefault(session_id, {})
            session_files[path] = project_file
            snapshot = dict(session_files)
        self._persist(session_id, snapshot)
        return project_file

    def discard(self, session_id: str, path: str) -> None:
        """Forget one file of the session."""
        with self._lock:
            session_files = self._sessions.get(session_id)
            if session_files is None or path not in session_files:
                return
            del session_files[path]
            snapshot = dict(session_files)
        self._persist(session_id, snapshot)

    def bulk_replace(
        self,
        session_id: str,
        files: Mapping[str, str | ProjectFile],
    ) -> dict[str, ProjectFile]:
        """Atomically swap the session's whole file map."""
        replacement: dict[str, ProjectFile] = {}
        for path, value in files.items():
            content = value.content if isinstance(value, ProjectFile) else value
            replacement[path] = ProjectFile.from_content(path, content)
        with self._lock:
            self._sessions[session_id] = replacement
        self._persist(session_id, replacement)
        return dict(replacement)

    def invalidate(self, session_id: str) -> None:
        """Drop the session's files from memory and the persistent store."""
        with self._lock:
            self._sessions.pop(session_id, None)
        try:
            self.store.delete(session_id, NAMESPACE_FILES)
        except CacheUnavailable as exc:
            logger.warning("Could not delete stored files for %s: %s", session_id, exc)

    def _persist(self, session_id: str, files: dict[str, ProjectFile]) -> None:
        payload = {
            path: {
                "content": project_file.content,
                "content_hash": project_file.content_hash,
                "last_modified": project_file.last_modified.isoformat(),
            }
            for path, project_file in files.items()
        }
        try:
            self.store.set(session_id, NAMESPACE_FILES, payload)
        except CacheUnavailable as exc:
            logger.warning("Could not persist files for %s: %s", session_id, exc)

    def _deserialize(self, session_id: str, raw: dict) -> dict[str, ProjectFile]:
        files: dict[str, ProjectFile] = {}
        for path, entry in raw.items():
            try:
                project_file = ProjectFile.from_content(
                    path,
                    entry["content"],
                    last_modified=datetime.fromisoformat(entry["last_modified"]),
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Dropping malformed cache entry %s in %s: %s", path, session_id, exc)
                continue
            if entry.get("content_hash") != project_file.content_hash:
                logger.debug("Stored hash for %s was stale; recomputed", path)
            files[path] = project_file
        return files
