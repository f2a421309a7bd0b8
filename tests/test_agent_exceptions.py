"""Tests for agent exception classes."""

import pytest

from intelligent_modifier.agents.exceptions import (
    CacheUnavailable,
    ClassificationFailure,
    IntegrationError,
    IOFailure,
    ModificationCancelled,
    ModifierError,
    ResolutionFailure,
    SourceParseError,
    SynthesisFailure,
)
from intelligent_modifier.orchestrator.exceptions import (
    GraphBuildError,
    OrchestratorError,
    UnknownStrategyError,
)


class TestAgentExceptions:
    """Tests for the modifier exception hierarchy."""

    def test_modifier_error_exists(self):
        """Test that ModifierError base exception exists."""
        exc = ModifierError("Base error")
        assert isinstance(exc, Exception)
        assert str(exc) == "Base error"

    @pytest.mark.parametrize("exc_class", [
        ClassificationFailure,
        ResolutionFailure,
        SynthesisFailure,
        IntegrationError,
        IOFailure,
        CacheUnavailable,
        SourceParseError,
        ModificationCancelled,
    ])
    def test_subclasses_inherit_from_modifier_error(self, exc_class):
        exc = exc_class("failed")
        assert isinstance(exc, ModifierError)
        assert str(exc) == "failed"

    def test_integration_error_is_a_synthesis_failure(self):
        """Integration problems are reported like any other synthesis failure."""
        with pytest.raises(SynthesisFailure):
            raise IntegrationError("no <Routes>")

    def test_names_do_not_shadow_builtins(self):
        assert IOFailure is not IOError
        assert not issubclass(IOFailure, OSError)


class TestOrchestratorExceptions:
    """Tests for orchestrator exception hierarchy."""

    def test_graph_build_error_inherits_from_orchestrator_error(self):
        assert isinstance(GraphBuildError("x"), OrchestratorError)

    def test_unknown_strategy_error_inherits_from_orchestrator_error(self):
        assert isinstance(UnknownStrategyError("x"), OrchestratorError)

    def test_orchestrator_errors_are_not_modifier_errors(self):
        assert not isinstance(OrchestratorError("x"), ModifierError)
