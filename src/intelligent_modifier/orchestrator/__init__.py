"""LangGraph orchestrator package for the modification pipeline."""

from intelligent_modifier.orchestrator.exceptions import (
    GraphBuildError,
    OrchestratorError,
    UnknownStrategyError,
)
from intelligent_modifier.orchestrator.fallback import EMERGENCY, FALLBACK_CHAIN, next_strategy
from intelligent_modifier.orchestrator.graph import build_graph
from intelligent_modifier.orchestrator.service import (
    ModificationOrchestrator,
    ServiceBundle,
    create_services,
)
from intelligent_modifier.orchestrator.state import ModificationState, make_initial_state

__all__ = [
    "EMERGENCY",
    "FALLBACK_CHAIN",
    "GraphBuildError",
    "ModificationOrchestrator",
    "ModificationState",
    "OrchestratorError",
    "ServiceBundle",
    "UnknownStrategyError",
    "build_graph",
    "create_services",
    "make_initial_state",
    "next_strategy",
]
