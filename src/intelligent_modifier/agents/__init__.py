"""Agent components for the modification engine.

Only the exception taxonomy is re-exported here; the cache and utility
layers import it, so pulling in the agents themselves would create cycles.
"""

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

__all__ = [
    "CacheUnavailable",
    "ClassificationFailure",
    "IOFailure",
    "IntegrationError",
    "ModificationCancelled",
    "ModifierError",
    "ResolutionFailure",
    "SourceParseError",
    "SynthesisFailure",
]
