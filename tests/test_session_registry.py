"""Tests for SessionRegistry."""

from datetime import datetime, timedelta

import pytest

from intelligent_modifier.cache.session_registry import SessionRegistry
from intelligent_modifier.cache.session_store import InMemorySessionStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def registry(clock):
    return SessionRegistry(ttl_seconds=60, clock=clock)


class TestSessionRegistry:
    """Tests for session lifecycle bookkeeping."""

    def test_open_creates_context(self, registry, clock):
        context = registry.open("s1", "/builds/a")
        assert context.session_id == "s1"
        assert context.build_directory == "/builds/a"
        assert context.created_at == clock.now
        assert context.message_count == 0

    def test_open_is_idempotent(self, registry):
        first = registry.open("s1", "/builds/a")
        assert registry.open("s1", "/builds/a") is first

    def test_next_message_number_increments(self, registry):
        registry.open("s1", "/builds/a")
        assert registry.next_message_number("s1") == 1
        assert registry.next_message_number("s1") == 2

    def test_next_message_number_unknown_session(self, registry):
        with pytest.raises(KeyError):
            registry.next_message_number("missing")

    def test_touch_updates_phase_and_summary(self, registry, clock):
        registry.open("s1", "/builds/a")
        clock.advance(10)
        context = registry.touch("s1", phase="CLASSIFIED", cached_summary="Project: 3 files")
        assert context.phase == "CLASSIFIED"
        assert context.cached_summary == "Project: 3 files"
        assert context.last_activity == clock.now

    def test_touch_unknown_session_returns_none(self, registry):
        assert registry.touch("missing") is None

    def test_moving_build_directory_drops_cached_summary(self, registry):
        registry.open("s1", "/builds/a")
        registry.touch("s1", cached_summary="old")
        context = registry.open("s1", "/builds/b")
        assert context.build_directory == "/builds/b"
        assert context.cached_summary is None

    def test_invalidate_summary(self, registry):
        registry.open("s1", "/builds/a")
        registry.touch("s1", cached_summary="Project: 3 files")
        registry.invalidate_summary("s1")
        assert registry.get("s1").cached_summary is None
        registry.invalidate_summary("missing")

    def test_expired(self, registry, clock):
        registry.open("old", "/builds/a")
        clock.advance(120)
        registry.open("fresh", "/builds/a")
        assert registry.expired() == ["old"]

    def test_sessions_for_build(self, registry):
        registry.open("s1", "/builds/a")
        registry.open("s2", "/builds/b")
        assert [c.session_id for c in registry.sessions_for_build("/builds/a")] == ["s1"]

    def test_close_forgets_session(self, registry):
        registry.open("s1", "/builds/a")
        registry.close("s1")
        assert registry.get("s1") is None

    def test_context_survives_restart(self, clock):
        store = InMemorySessionStore()
        first = SessionRegistry(store, clock=clock)
        first.open("s1", "/builds/a")
        first.next_message_number("s1")
        first.touch("s1", cached_summary="summary")

        second = SessionRegistry(store, clock=clock)
        context = second.open("s1", "/builds/a")
        assert context.message_count == 1
        assert context.cached_summary == "summary"
