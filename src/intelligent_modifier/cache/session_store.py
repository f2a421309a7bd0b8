"""Persistent session store keyed by (session_id, namespace).

Values are JSON-compatible structures. Two implementations are provided:
an in-process store for single-run use and tests, and a JSON-file store
that survives process restarts.
"""

import hashlib
import json
import logging
import os
import re
import shutil
import threading
from pathlib import Path
from typing import Any, Protocol

from intelligent_modifier.agents.exceptions import CacheUnavailable

logger = logging.getLogger(__name__)

NAMESPACE_FILES = "files"
NAMESPACE_HISTORY = "history"
NAMESPACE_SESSION = "session"

_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


class SessionStore(Protocol):
    """Key-value store scoped by session and namespace."""

    def get(self, session_id: str, namespace: str) -> Any | None:
        """Return the stored value, or None on a miss.

        Raises:
            CacheUnavailable: If the backing store cannot be read.
        """
        ...

    def set(self, session_id: str, namespace: str, value: Any) -> None:
        ...

    def delete(self, session_id: str, namespace: str | None = None) -> None:
        """Delete one namespace, or every namespace of the session when None."""
        ...


class InMemorySessionStore:
    """Thread-safe dict-backed store. Values are deep-copied via JSON."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str, namespace: str) -> Any | None:
        with self._lock:
            raw = self._data.get((session_id, namespace))
        return json.loads(raw) if raw is not None else None

    def set(self, session_id: str, namespace: str, value: Any) -> None:
        raw = json.dumps(value, default=str)
        with self._lock:
            self._data[(session_id, namespace)] = raw

    def delete(self, session_id: str, namespace: str | None = None) -> None:
        with self._lock:
            if namespace is not None:
                self._data.pop((session_id, namespace), None)
                return
            for key in [key for key in self._data if key[0] == session_id]:
                del self._data[key]


class JsonFileSessionStore:
    """Stores each (session, namespace) pair as ``<root>/<session>/<namespace>.json``."""

    def __init__(self, root_dir: str | Path):
        self.root_dir = Path(root_dir).resolve()

    def _session_dir(self, session_id: str) -> Path:
        if _SAFE_KEY_RE.match(session_id):
            return self.root_dir / session_id
        digest = hashlib.sha256(session_id.encode("utf-8")).hexdigest()[:32]
        return self.root_dir / digest

    def _path(self, session_id: str, namespace: str) -> Path:
        if not _SAFE_KEY_RE.match(namespace):
            raise ValueError(f"Invalid namespace: {namespace!r}")
        return self._session_dir(session_id) / f"{namespace}.json"

    def get(self, session_id: str, namespace: str) -> Any | None:
        path = self._path(session_id, namespace)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise CacheUnavailable(f"Failed to read {path}: {exc}") from exc

    def set(self, session_id: str, namespace: str, value: Any) -> None:
        path = self._path(session_id, namespace)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, default=str)
            os.replace(tmp_path, path)
        except (OSError, TypeError) as exc:
            raise CacheUnavailable(f"Failed to write {path}: {exc}") from exc

    def delete(self, session_id: str, namespace: str | None = None) -> None:
        try:
            if namespace is None:
                shutil.rmtree(self._session_dir(session_id), ignore_errors=False)
            else:
                self._path(session_id, namespace).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CacheUnavailable(f"Failed to delete session {session_id}: {exc}") from exc
