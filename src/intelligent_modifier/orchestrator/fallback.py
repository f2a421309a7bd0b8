"""Fallback chain data and pure helpers for choosing the next strategy.

All functions are stateless and have no external dependencies.
"""

from typing import Callable, NamedTuple, Optional

from intelligent_modifier.models.scope_models import ScopeKind

EMERGENCY = "EMERGENCY_PLACEHOLDER"


class FallbackConditions(NamedTuple):
    previous_failed: bool
    files_available: bool


class FallbackStep(NamedTuple):
    """A strategy to try next, guarded by a precondition."""

    strategy: str
    precondition: Callable[[FallbackConditions], bool]


def _previous_failed(conditions: FallbackConditions) -> bool:
    return conditions.previous_failed


def _previous_failed_with_files(conditions: FallbackConditions) -> bool:
    return conditions.previous_failed and conditions.files_available


_REGENERATE_THEN_PLACEHOLDER = (
    FallbackStep(ScopeKind.FULL_FILE.value, _previous_failed_with_files),
    FallbackStep(EMERGENCY, _previous_failed),
)

FALLBACK_CHAIN: dict[ScopeKind, tuple[FallbackStep, ...]] = {
    ScopeKind.TEXT_BASED_CHANGE: (),
    ScopeKind.TARGETED_NODES: _REGENERATE_THEN_PLACEHOLDER,
    ScopeKind.COMPONENT_ADDITION: _REGENERATE_THEN_PLACEHOLDER,
    ScopeKind.DESIGN_TOKEN_CHANGE: (),
    ScopeKind.FULL_FILE: (FallbackStep(EMERGENCY, _previous_failed),),
}


def next_strategy(
    classified_scope: str,
    attempted: list[str],
    previous_failed: bool,
    files_available: bool,
) -> Optional[str]:
    """Return the first untried fallback whose precondition holds.

    Args:
        classified_scope: Scope kind the classifier chose.
        attempted: Strategies already run for this request.
        previous_failed: Whether the most recent attempt failed.
        files_available: Whether the session has any cached files.

    Returns:
        Strategy name, or None when the request is finished.
    """
    if not previous_failed:
        return None
    conditions = FallbackConditions(previous_failed, files_available)
    for step in FALLBACK_CHAIN.get(ScopeKind(classified_scope), ()):
        if step.strategy in attempted:
            continue
        if step.precondition(conditions):
            return step.strategy
    return None


def reported_approach(strategy: str) -> str:
    """Approach name reported to callers; the placeholder counts as an addition."""
    return ScopeKind.COMPONENT_ADDITION.value if strategy == EMERGENCY else strategy
