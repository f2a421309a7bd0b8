"""Tests for orchestrator state module."""
import typing

from intelligent_modifier.orchestrator.state import (
    ModificationState,
    executing_phase,
    make_initial_state,
)


class TestMakeInitialState:
    """Tests for the make_initial_state factory function."""

    def test_make_initial_state_defaults(self):
        state = make_initial_state("add a FAQ page", "s1", "/tmp/build")

        assert state["request"] == "add a FAQ page"
        assert state["session_id"] == "s1"
        assert state["build_directory"] == "/tmp/build"
        assert state["phase"] == "INIT"
        assert state["scope"] is None
        assert state["pending_strategy"] is None
        assert state["attempted"] == []
        assert state["previous_failed"] is False
        assert state["cancel_token"] is None

    def test_every_declared_key_is_initialised(self):
        state = make_initial_state("r", "s1", "/tmp")
        assert set(state) == set(typing.get_type_hints(ModificationState))

    def test_accumulating_lists_start_empty(self):
        state = make_initial_state("r", "s1", "/tmp")
        for key in ("attempts", "transitions", "errors"):
            assert state[key] == []


def test_executing_phase():
    assert executing_phase("FULL_FILE") == "EXECUTING:FULL_FILE"
