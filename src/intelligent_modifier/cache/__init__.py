"""Session-scoped caching: persistent store, file cache and session registry."""

from intelligent_modifier.cache.file_cache import ProjectFileCache
from intelligent_modifier.cache.session_registry import SessionRegistry
from intelligent_modifier.cache.session_store import (
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionStore,
)

__all__ = [
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "ProjectFileCache",
    "SessionRegistry",
    "SessionStore",
]
