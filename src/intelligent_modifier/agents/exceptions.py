"""Exceptions for modification agents.

Note: Names chosen to avoid collisions with stdlib exceptions (IOFailure, not IOError).
"""


class ModifierError(Exception):
    """Base exception for all modification operations."""


class ClassificationFailure(ModifierError):
    """Raised when the scope classifier cannot decide on a strategy."""


class ResolutionFailure(ModifierError):
    """Raised when a target node reference no longer matches current content."""


class SynthesisFailure(ModifierError):
    """Raised when the synthesis collaborator returns unusable or unparseable content."""


class IntegrationError(SynthesisFailure):
    """Raised when a component integration plan cannot be spliced into existing files."""


class IOFailure(ModifierError):
    """Raised when a filesystem read or write fails."""


class CacheUnavailable(ModifierError):
    """Raised when the persistent session store cannot be reached."""


class SourceParseError(ModifierError):
    """Raised when a source file cannot be parsed into a clean syntax tree."""


class ModificationCancelled(ModifierError):
    """Raised at a phase boundary when the caller cancelled the request."""
