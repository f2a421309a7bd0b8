"""Request-level entry point: the ModificationOrchestrator and its services."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from intelligent_modifier.agents.exceptions import ModificationCancelled
from intelligent_modifier.agents.executors import (
    ASTNodeEditExecutor,
    ComponentSynthesisExecutor,
    DesignTokenExecutor,
    EmergencyPlaceholderWriter,
    TextReplaceExecutor,
    WholeFileRegenExecutor,
)
from intelligent_modifier.agents.history import ModificationHistory
from intelligent_modifier.agents.project_history import FileProjectHistory, ProjectHistory
from intelligent_modifier.agents.scope_classifier import ScopeClassifier
from intelligent_modifier.agents.structure_mapper import ProjectStructureMapper
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.cache import (
    InMemorySessionStore,
    JsonFileSessionStore,
    ProjectFileCache,
    SessionRegistry,
    SessionStore,
)
from intelligent_modifier.config import ModifierSettings
from intelligent_modifier.models import (
    ModificationRequest,
    ModificationResult,
    ScopeKind,
    UsageStats,
)
from intelligent_modifier.orchestrator.fallback import EMERGENCY, reported_approach
from intelligent_modifier.orchestrator.graph import build_graph
from intelligent_modifier.orchestrator.state import PHASE_DONE, make_initial_state
from intelligent_modifier.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

UNCLASSIFIED = "UNCLASSIFIED"


class ServiceBundle(BaseModel):
    """Every collaborator the orchestrator uses, injected explicitly."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    mapper: ProjectStructureMapper
    classifier: ScopeClassifier
    executors: dict[str, Any]
    cache: ProjectFileCache
    registry: SessionRegistry
    history: ModificationHistory
    synthesis: Optional[Any] = None
    summary_size: int = Field(default=5, ge=1)


def create_services(
    settings: ModifierSettings,
    synthesis: Optional[Any] = None,
    store: Optional[SessionStore] = None,
    project_history: Optional[ProjectHistory] = None,
) -> ServiceBundle:
    """Wire the default services for a settings object.

    Args:
        settings: Resolved runtime settings.
        synthesis: Synthesis collaborator; built from settings when API keys
            are configured, otherwise the engine runs without one.
        store: Session store; defaults to a JSON-file store under
            ``settings.store_dir`` or an in-memory store when that is None.
        project_history: Project-history collaborator; defaults to file
            records under ``settings.records_dir`` when set.
    """
    if store is None:
        store = JsonFileSessionStore(settings.store_dir) if settings.store_dir else InMemorySessionStore()
    if synthesis is None and settings.has_llm_credentials():
        synthesis = SynthesisClient(
            api_key=settings.anthropic_api_key,
            model=settings.model,
            llm_provider=settings.llm_provider,
            llm_fallback_provider=settings.llm_fallback_provider,
            allow_fallback=settings.allow_llm_fallback,
            openai_api_key=settings.openai_api_key,
        )
    if project_history is None and settings.records_dir:
        project_history = FileProjectHistory(settings.records_dir)

    executors = {
        ScopeKind.TEXT_BASED_CHANGE.value: TextReplaceExecutor(),
        ScopeKind.TARGETED_NODES.value: ASTNodeEditExecutor(synthesis),
        ScopeKind.COMPONENT_ADDITION.value: ComponentSynthesisExecutor(synthesis),
        ScopeKind.DESIGN_TOKEN_CHANGE.value: DesignTokenExecutor(synthesis, project_history),
        ScopeKind.FULL_FILE.value: WholeFileRegenExecutor(synthesis, settings.max_regen_files),
        EMERGENCY: EmergencyPlaceholderWriter(),
    }
    return ServiceBundle(
        mapper=ProjectStructureMapper(max_workers=settings.mapper_workers),
        classifier=ScopeClassifier(synthesis),
        executors=executors,
        cache=ProjectFileCache(store),
        registry=SessionRegistry(store, ttl_seconds=settings.session_ttl_seconds),
        history=ModificationHistory(store),
        synthesis=synthesis,
        summary_size=settings.summary_size,
    )


def _usage_since(before: UsageStats, after: UsageStats) -> UsageStats:
    return UsageStats(
        api_calls=after.api_calls - before.api_calls,
        input_tokens=after.input_tokens - before.input_tokens,
        output_tokens=after.output_tokens - before.output_tokens,
    )


class ModificationOrchestrator:
    """Runs one modification request end to end.

    The caller serializes requests per session; the orchestrator holds no
    cross-request locks of its own.
    """

    def __init__(self, services: ServiceBundle):
        self.services = services
        self.graph = build_graph(
            mapper=services.mapper,
            classifier=services.classifier,
            executors=services.executors,
            cache=services.cache,
            registry=services.registry,
            history=services.history,
            summary_size=services.summary_size,
        )

    def _usage_snapshot(self) -> UsageStats:
        usage = getattr(self.services.synthesis, "usage", None)
        return usage.model_copy() if isinstance(usage, UsageStats) else UsageStats()

    def process(
        self,
        request: ModificationRequest,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ModificationResult:
        """Process a request and return its result.

        Never raises for request-level failures: a missing build directory,
        cancellation and exhausted fallbacks all come back as
        ``success=False`` results.
        """
        if not Path(request.build_directory).is_dir():
            message = f"Build directory not found: {request.build_directory}"
            logger.error(message)
            return ModificationResult(
                success=False,
                approach=UNCLASSIFIED,
                reasoning=message,
                error=message,
            )

        usage_before = self._usage_snapshot()
        state = make_initial_state(
            request=request.request,
            session_id=request.session_id,
            build_directory=request.build_directory,
            project_description=request.project_description,
            project_id=request.project_id,
            cancel_token=cancel_token,
        )
        try:
            final = self.graph.invoke(state)
        except ModificationCancelled as exc:
            logger.info("Request for session %s cancelled: %s", request.session_id, exc)
            self.services.registry.touch(request.session_id, phase=PHASE_DONE)
            return ModificationResult(
                success=False,
                approach=UNCLASSIFIED,
                reasoning="Request cancelled",
                error=str(exc),
                modification_summary=self.services.history.get_recent_summary(request.session_id),
                usage=_usage_since(usage_before, self._usage_snapshot()),
            )

        result = self._build_result(final)
        result.usage = _usage_since(usage_before, self._usage_snapshot())
        if not result.success:
            logger.error("Request for session %s failed: %s", request.session_id, result.error)
        return result

    def _build_result(self, final: dict) -> ModificationResult:
        executed = final.get("last_result")
        attempted = final.get("attempted") or []
        success = executed is not None and executed.success and not final.get("previous_failed")

        if attempted:
            approach = reported_approach(attempted[-1])
        else:
            approach = final.get("classified_scope") or UNCLASSIFIED

        error = None
        if not success:
            error = final.get("last_error") or "; ".join(final.get("errors") or []) or "Modification failed"

        return ModificationResult(
            success=success,
            approach=approach,
            files_modified=list(executed.files_modified) if success else [],
            files_added=list(executed.files_added) if success else [],
            reasoning=executed.reasoning if executed is not None else (error or ""),
            error=error,
            classified_scope=final.get("classified_scope"),
            attempts=list(final.get("attempts") or []),
            transitions=list(final.get("transitions") or []),
            modification_summary=self.services.history.get_recent_summary(
                final["session_id"], self.services.summary_size
            ),
        )

    def cleanup_session(self, session_id: str) -> None:
        """Drop a session's cached files, history and metadata."""
        self.services.cache.invalidate(session_id)
        self.services.history.clear(session_id)
        self.services.registry.close(session_id)
        logger.info("Cleaned up session %s", session_id)

    def expire_idle_sessions(self, now: Optional[datetime] = None) -> list[str]:
        """Clean up every session idle for longer than the TTL."""
        expired = self.services.registry.expired(now)
        for session_id in expired:
            self.cleanup_session(session_id)
        return expired
