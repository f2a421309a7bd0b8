"""LangGraph orchestrator graph for the modification pipeline.

Wires the structure mapper, scope classifier and strategy executors into a
StateGraph whose conditional edge walks the fallback chain.
"""

import logging
from typing import Callable, Mapping

from langgraph.graph import END, START, StateGraph

from intelligent_modifier.agents.exceptions import ModificationCancelled
from intelligent_modifier.agents.executors.base import ExecutionContext, StrategyExecutor
from intelligent_modifier.agents.history import DEFAULT_SUMMARY_SIZE, ModificationHistory
from intelligent_modifier.agents.scope_classifier import ScopeClassifier
from intelligent_modifier.agents.structure_mapper import ProjectStructureMapper, render_summary
from intelligent_modifier.cache.file_cache import ProjectFileCache
from intelligent_modifier.cache.session_registry import SessionRegistry
from intelligent_modifier.models import (
    AttemptRecord,
    ChangeType,
    FullFileScope,
    ModificationChange,
)
from intelligent_modifier.orchestrator.exceptions import GraphBuildError, UnknownStrategyError
from intelligent_modifier.orchestrator.fallback import EMERGENCY, next_strategy
from intelligent_modifier.orchestrator.state import (
    PHASE_CACHE_READY,
    PHASE_CLASSIFIED,
    PHASE_DONE,
    PHASE_INIT,
    ModificationState,
    executing_phase,
)
from intelligent_modifier.utils.workspace import ProjectWorkspace

logger = logging.getLogger(__name__)

FAILED_ATTEMPT_FILE = "(no files)"


def _check_cancelled(state: ModificationState, phase: str) -> None:
    token = state.get("cancel_token")
    if token is not None:
        token.raise_if_cancelled(phase)


def make_hydrate_node(
    mapper: ProjectStructureMapper,
    cache: ProjectFileCache,
    registry: SessionRegistry,
    history: ModificationHistory,
    summary_size: int = DEFAULT_SUMMARY_SIZE,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that makes the session's cache ready.

    The closure:
    1. Opens the session and bumps its message counter
    2. Hydrates the file cache; on a cold cache, scans the build directory
       and bulk-replaces the cache with the scanned contents
    3. Renders (or reuses) the project summary and the recent history

    On error: returns {"errors": [str], "files_available": False}
    """

    def hydrate_node(state: ModificationState) -> dict:
        _check_cancelled(state, "hydrate")
        session_id = state["session_id"]
        update: dict = {
            "phase": PHASE_CACHE_READY,
            "transitions": [f"{PHASE_INIT}->{PHASE_CACHE_READY}"],
        }
        try:
            context = registry.open(session_id, state["build_directory"])
            update["message_number"] = registry.next_message_number(session_id)

            files = cache.hydrate(session_id)
            structure = None
            summary = context.cached_summary
            if not files:
                scan = mapper.scan(state["build_directory"], state.get("cancel_token"))
                files = cache.bulk_replace(session_id, scan.contents)
                structure = scan.structure
                summary = None
            if summary is None:
                if structure is None:
                    structure = mapper.map_project(state["build_directory"])
                summary = render_summary(structure)
                registry.touch(session_id, phase=PHASE_CACHE_READY, cached_summary=summary)
            else:
                registry.touch(session_id, phase=PHASE_CACHE_READY)

            description = state.get("project_description")
            update.update({
                "files_available": bool(files),
                "structure": structure,
                "project_summary": f"Project description: {description}\n{summary}" if description else summary,
                "history_summary": history.get_recent_summary(session_id, summary_size),
            })
        except ModificationCancelled:
            raise
        except Exception as exc:
            logger.warning("Hydration failed for session %s: %s", session_id, exc)
            update.update({"errors": [f"hydrate_node error: {exc}"], "files_available": False})
        return update

    return hydrate_node


def make_classify_node(
    classifier: ScopeClassifier,
    cache: ProjectFileCache,
    registry: SessionRegistry,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that classifies the request.

    The classifier never raises; its degrade path already yields a
    TARGETED_NODES scope.
    """

    def classify_node(state: ModificationState) -> dict:
        _check_cancelled(state, "classify")
        scope = classifier.classify(
            state["request"],
            state["project_summary"],
            state["history_summary"],
            files=cache.get(state["session_id"]),
            structure=state.get("structure"),
            project_description=state.get("project_description"),
        )
        registry.touch(state["session_id"], phase=PHASE_CLASSIFIED)
        return {
            "scope": scope,
            "classified_scope": scope.kind,
            "pending_strategy": scope.kind,
            "phase": PHASE_CLASSIFIED,
            "transitions": [f"{PHASE_CACHE_READY}->{PHASE_CLASSIFIED}"],
        }

    return classify_node


def make_execute_node(
    executors: Mapping[str, StrategyExecutor],
    cache: ProjectFileCache,
    registry: SessionRegistry,
    history: ModificationHistory,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that runs the pending strategy.

    The closure:
    1. Builds the scope for the strategy (fallbacks get a fresh FULL_FILE scope)
    2. Runs the executor and records every change, or the failure, in history
    3. Picks the next fallback strategy, if any

    Executor exceptions are caught and turned into a failed attempt; only
    ModificationCancelled unwinds the request.
    """

    def execute_node(state: ModificationState) -> dict:
        strategy = state["pending_strategy"]
        _check_cancelled(state, f"execute {strategy}")
        session_id = state["session_id"]
        phase = executing_phase(strategy)
        registry.touch(session_id, phase=phase)

        scope = state["scope"]
        if scope is None or scope.kind != strategy:
            scope = FullFileScope(
                reasoning=f"Fallback after {state['attempted'][-1] if state['attempted'] else 'classification'} failed"
            )

        result = None
        error = None
        try:
            executor = executors.get(strategy)
            if executor is None:
                raise UnknownStrategyError(f"No executor registered for {strategy}")
            ctx = ExecutionContext(
                session_id=session_id,
                request=state["request"],
                workspace=ProjectWorkspace(state["build_directory"]),
                cache=cache,
                project_summary=state["project_summary"],
                history_summary=state["history_summary"],
                project_description=state.get("project_description"),
                project_id=state.get("project_id"),
                previous_error=state.get("last_error"),
            )
            result = executor.execute(None if strategy == EMERGENCY else scope, ctx)
        except ModificationCancelled:
            raise
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.warning("%s failed: %s", strategy, error)

        success = result is not None and result.success
        if result is not None:
            for change in result.changes:
                history.record(session_id, change)
            if success and (result.files_added or result.files_modified):
                registry.invalidate_summary(session_id)
            if not success:
                error = result.reasoning or "executor reported no changes"
        if not success:
            history.record(session_id, ModificationChange(
                type=ChangeType.UPDATED,
                file=FAILED_ATTEMPT_FILE,
                description=f"{strategy} failed: {error}",
                approach=strategy,
                success=False,
                reasoning=getattr(scope, "reasoning", ""),
            ))

        attempted = list(state["attempted"]) + [strategy]
        follow_up = next_strategy(
            state["classified_scope"], attempted, not success, state["files_available"]
        )
        if follow_up is not None:
            logger.info("%s failed, falling back to %s", strategy, follow_up)

        previous_phase = state["phase"]
        return {
            "phase": phase,
            "attempted": attempted,
            "previous_failed": not success,
            "last_error": error,
            "last_result": result,
            "pending_strategy": follow_up,
            "attempts": [AttemptRecord(
                strategy=strategy,
                success=success,
                reasoning=result.reasoning if result is not None else "",
                error=error,
            )],
            "transitions": [f"{previous_phase}->{phase}"],
        }

    return execute_node


def make_finalize_node(registry: SessionRegistry) -> Callable[[ModificationState], dict]:
    def finalize_node(state: ModificationState) -> dict:
        registry.touch(state["session_id"], phase=PHASE_DONE)
        outcome = "failed" if state["previous_failed"] or state["last_result"] is None else "success"
        return {
            "phase": PHASE_DONE,
            "transitions": [f"{state['phase']}->{PHASE_DONE}({outcome})"],
        }

    return finalize_node


def fallback_or_done(state: ModificationState) -> str:
    """Conditional edge: loop to execute_node while a fallback is pending."""
    return "fallback" if state.get("pending_strategy") else "done"


def build_graph(
    mapper: ProjectStructureMapper,
    classifier: ScopeClassifier,
    executors: Mapping[str, StrategyExecutor],
    cache: ProjectFileCache,
    registry: SessionRegistry,
    history: ModificationHistory,
    summary_size: int = DEFAULT_SUMMARY_SIZE,
):
    """Build and compile the orchestrator StateGraph.

    Edge topology:
      START -> hydrate_node -> classify_node -> execute_node
      execute_node -> conditional(fallback_or_done) -> {execute_node, finalize_node}
      finalize_node -> END

    No checkpointer: session state lives in the file cache, history and
    session registry, not in the graph.

    Returns:
        CompiledStateGraph ready to invoke.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(ModificationState)

        graph.add_node("hydrate_node", make_hydrate_node(mapper, cache, registry, history, summary_size))
        graph.add_node("classify_node", make_classify_node(classifier, cache, registry))
        graph.add_node("execute_node", make_execute_node(executors, cache, registry, history))
        graph.add_node("finalize_node", make_finalize_node(registry))

        graph.add_edge(START, "hydrate_node")
        graph.add_edge("hydrate_node", "classify_node")
        graph.add_edge("classify_node", "execute_node")
        graph.add_conditional_edges(
            "execute_node",
            fallback_or_done,
            {
                "fallback": "execute_node",
                "done": "finalize_node",
            },
        )
        graph.add_edge("finalize_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build orchestrator graph: {exc}") from exc
