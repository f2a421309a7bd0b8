"""Shared executor contract and file-commit helpers."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from intelligent_modifier.cache.file_cache import ProjectFileCache
from intelligent_modifier.models.change_models import (
    ChangeType,
    ExecutorResult,
    ModificationChange,
)
from intelligent_modifier.models.project_models import ProjectFile
from intelligent_modifier.utils.diff_generator import count_changed_lines, generate_unified_diff
from intelligent_modifier.utils.workspace import ProjectWorkspace

logger = logging.getLogger(__name__)


class ExecutionContext(BaseModel):
    """Everything an executor may read or write for one request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    request: str
    workspace: ProjectWorkspace
    cache: ProjectFileCache
    project_summary: str = ""
    history_summary: str = ""
    project_description: Optional[str] = None
    project_id: Optional[str] = None
    previous_error: Optional[str] = None

    def files(self) -> dict[str, ProjectFile]:
        """Snapshot of the session's cached files."""
        return self.cache.get(self.session_id)

    def current_content(self, path: str) -> Optional[str]:
        """Cached content of a file, falling back to disk."""
        cached = self.cache.get_file(self.session_id, path)
        if cached is not None:
            return cached.content
        if self.workspace.exists(path):
            return self.workspace.read_text(path)
        return None


@runtime_checkable
class StrategyExecutor(Protocol):
    """One executor per modification scope kind."""

    strategy: str

    def execute(self, scope: Any, ctx: ExecutionContext) -> ExecutorResult:
        """Apply the scope to the project and report what changed."""


def commit_file(
    ctx: ExecutionContext,
    path: str,
    content: str,
    approach: str,
    description: str,
    reasoning: str = "",
    previous: Optional[str] = None,
) -> ModificationChange:
    """Write a file to disk, then refresh its cache entry.

    Args:
        previous: Content before the change; None marks the file as new.

    Returns:
        History entry for the change, carrying a unified diff for edits.

    Raises:
        IOFailure: If the disk write fails. The cache is left untouched.
    """
    ctx.workspace.write_text(path, content)
    ctx.cache.put(ctx.session_id, path, content)
    created = previous is None
    return ModificationChange(
        type=ChangeType.CREATED if created else ChangeType.MODIFIED,
        file=path,
        description=description,
        approach=approach,
        reasoning=reasoning,
        diff="" if created else generate_unified_diff(path, previous, content),
    )


def failed_result(strategy: str, reasoning: str, **details: Any) -> ExecutorResult:
    logger.info("%s produced no changes: %s", strategy, reasoning)
    return ExecutorResult(
        strategy=strategy,
        success=False,
        reasoning=reasoning,
        details=dict(details),
    )


def successful_result(
    strategy: str,
    changes: list[ModificationChange],
    reasoning: str,
    details: Optional[dict[str, Any]] = None,
) -> ExecutorResult:
    details = dict(details or {})
    details.setdefault("changed_lines", sum(count_changed_lines(c.diff) for c in changes))
    logger.info("%s changed %d lines across %d files", strategy, details["changed_lines"], len(changes))
    return ExecutorResult(
        strategy=strategy,
        success=True,
        files_modified=[c.file for c in changes if c.type != ChangeType.CREATED],
        files_added=[c.file for c in changes if c.type == ChangeType.CREATED],
        changes=changes,
        reasoning=reasoning,
        details=details,
    )
