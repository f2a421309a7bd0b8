"""Tests for ModificationHistory."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from intelligent_modifier.agents.exceptions import CacheUnavailable
from intelligent_modifier.agents.history import ModificationHistory
from intelligent_modifier.cache.session_store import InMemorySessionStore
from intelligent_modifier.models.change_models import ChangeType, ModificationChange

START = datetime(2026, 3, 1, 12, 0, 0)


def make_change(file: str, change_type: ChangeType = ChangeType.MODIFIED, success: bool = True,
                minutes: int = 0) -> ModificationChange:
    return ModificationChange(
        type=change_type,
        file=file,
        description=f"Changed {file}",
        approach="TARGETED_NODES",
        success=success,
        timestamp=START + timedelta(minutes=minutes),
    )


@pytest.fixture
def history():
    return ModificationHistory(clock=lambda: START + timedelta(minutes=2, seconds=5))


class TestModificationHistory:
    """Tests for recording and summarising changes."""

    def test_empty_summary(self, history):
        assert history.get_recent_summary("s1") == ""

    def test_record_is_append_only(self, history):
        history.record("s1", make_change("a.tsx"))
        history.record("s1", make_change("b.tsx"))
        assert [c.file for c in history.changes("s1")] == ["a.tsx", "b.tsx"]

    def test_summary_format(self, history):
        history.record("s1", make_change("src/pages/FAQ.tsx", ChangeType.CREATED))
        history.record("s1", make_change("src/App.tsx"))
        summary = history.get_recent_summary("s1")
        lines = summary.splitlines()
        assert lines[0] == "**RECENT MODIFICATIONS IN THIS SESSION:**"
        assert lines[1] == "• 📝 src/pages/FAQ.tsx: Changed src/pages/FAQ.tsx"
        assert lines[2] == "• 🔄 src/App.tsx: Changed src/App.tsx"
        assert "• Total files modified: 2" in summary
        assert "• Session duration: 2m 5s" in summary

    def test_summary_limited_to_last_n(self, history):
        for i in range(8):
            history.record("s1", make_change(f"f{i}.tsx"))
        summary = history.get_recent_summary("s1", n=3)
        assert "f4.tsx" not in summary
        assert "f5.tsx" in summary and "f7.tsx" in summary
        assert "• Total files modified: 8" in summary

    def test_failed_entries_are_marked_and_not_counted(self, history):
        history.record("s1", make_change("(no files)", ChangeType.UPDATED, success=False))
        history.record("s1", make_change("a.tsx"))
        summary = history.get_recent_summary("s1")
        assert "⚡ (no files) (failed)" in summary
        assert "• Total files modified: 1" in summary

    def test_most_modified_files(self, history):
        for file in ("a.tsx", "b.tsx", "a.tsx", "a.tsx", "b.tsx", "c.tsx"):
            history.record("s1", make_change(file))
        assert history.get_most_modified_files("s1", limit=2) == [("a.tsx", 3), ("b.tsx", 2)]

    def test_clear(self, history):
        history.record("s1", make_change("a.tsx"))
        history.clear("s1")
        assert history.changes("s1") == ()

    def test_persists_across_instances(self):
        store = InMemorySessionStore()
        ModificationHistory(store).record("s1", make_change("a.tsx"))
        reloaded = ModificationHistory(store).changes("s1")
        assert len(reloaded) == 1
        assert reloaded[0].file == "a.tsx"
        assert reloaded[0].type == ChangeType.MODIFIED

    def test_unavailable_store_keeps_history_in_memory(self):
        store = MagicMock()
        store.get.side_effect = CacheUnavailable("down")
        store.set.side_effect = CacheUnavailable("down")
        history = ModificationHistory(store)
        history.record("s1", make_change("a.tsx"))
        assert len(history.changes("s1")) == 1
