"""Tests for the session store implementations."""

import json

import pytest

from intelligent_modifier.agents.exceptions import CacheUnavailable
from intelligent_modifier.cache.session_store import (
    NAMESPACE_FILES,
    NAMESPACE_HISTORY,
    InMemorySessionStore,
    JsonFileSessionStore,
)


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemorySessionStore()
    return JsonFileSessionStore(tmp_path / "sessions")


class TestSessionStoreContract:
    """Behaviour shared by every store."""

    def test_miss_returns_none(self, store):
        assert store.get("s1", NAMESPACE_FILES) is None

    def test_set_then_get(self, store):
        store.set("s1", NAMESPACE_FILES, {"src/App.tsx": {"content": "x"}})
        assert store.get("s1", NAMESPACE_FILES) == {"src/App.tsx": {"content": "x"}}

    def test_values_are_copies(self, store):
        value = {"a": [1]}
        store.set("s1", NAMESPACE_HISTORY, value)
        value["a"].append(2)
        loaded = store.get("s1", NAMESPACE_HISTORY)
        loaded["a"].append(3)
        assert store.get("s1", NAMESPACE_HISTORY) == {"a": [1]}

    def test_namespaces_are_independent(self, store):
        store.set("s1", NAMESPACE_FILES, {"f": 1})
        store.set("s1", NAMESPACE_HISTORY, {"h": 1})
        store.delete("s1", NAMESPACE_FILES)
        assert store.get("s1", NAMESPACE_FILES) is None
        assert store.get("s1", NAMESPACE_HISTORY) == {"h": 1}

    def test_delete_whole_session(self, store):
        store.set("s1", NAMESPACE_FILES, {"f": 1})
        store.set("s1", NAMESPACE_HISTORY, {"h": 1})
        store.set("s2", NAMESPACE_FILES, {"other": 1})
        store.delete("s1")
        assert store.get("s1", NAMESPACE_FILES) is None
        assert store.get("s1", NAMESPACE_HISTORY) is None
        assert store.get("s2", NAMESPACE_FILES) == {"other": 1}

    def test_delete_missing_is_a_no_op(self, store):
        store.delete("never-seen")
        store.delete("never-seen", NAMESPACE_FILES)


class TestJsonFileSessionStore:
    """Tests specific to the JSON-file store."""

    def test_survives_a_new_instance(self, tmp_path):
        JsonFileSessionStore(tmp_path).set("s1", NAMESPACE_FILES, {"f": 1})
        assert JsonFileSessionStore(tmp_path).get("s1", NAMESPACE_FILES) == {"f": 1}

    def test_layout_on_disk(self, tmp_path):
        JsonFileSessionStore(tmp_path).set("s1", NAMESPACE_FILES, {"f": 1})
        path = tmp_path / "s1" / "files.json"
        assert json.loads(path.read_text()) == {"f": 1}

    def test_unsafe_session_ids_are_hashed(self, tmp_path):
        store = JsonFileSessionStore(tmp_path)
        store.set("../escape", NAMESPACE_FILES, {"f": 1})
        assert not (tmp_path.parent / "escape").exists()
        assert store.get("../escape", NAMESPACE_FILES) == {"f": 1}

    def test_invalid_namespace_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid namespace"):
            JsonFileSessionStore(tmp_path).get("s1", "../files")

    def test_corrupt_file_raises_cache_unavailable(self, tmp_path):
        (tmp_path / "s1").mkdir()
        (tmp_path / "s1" / "files.json").write_text("{not json")
        with pytest.raises(CacheUnavailable):
            JsonFileSessionStore(tmp_path).get("s1", NAMESPACE_FILES)
