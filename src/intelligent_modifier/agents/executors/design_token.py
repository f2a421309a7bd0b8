"""Global design-token rewrites (Tailwind config plus global stylesheet)."""

import logging
from typing import Optional

from intelligent_modifier.agents.exceptions import IOFailure, SourceParseError, SynthesisFailure
from intelligent_modifier.agents.executors.base import (
    ExecutionContext,
    commit_file,
    successful_result,
)
from intelligent_modifier.agents.project_history import ProjectHistory
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.models.change_models import ExecutorResult
from intelligent_modifier.models.scope_models import DesignTokenChangeScope
from intelligent_modifier.utils.ast_parser import validate_source

logger = logging.getLogger(__name__)

STRATEGY = "DESIGN_TOKEN_CHANGE"

TOKEN_CONFIG_CANDIDATES = (
    "tailwind.config.ts",
    "tailwind.config.js",
    "tailwind.config.cjs",
    "tailwind.config.mjs",
)
STYLESHEET_CANDIDATES = (
    "src/index.css",
    "src/globals.css",
    "src/styles/globals.css",
    "src/App.css",
)
DEFAULT_TOKEN_CONFIG = "tailwind.config.ts"
DEFAULT_STYLESHEET = "src/index.css"
VARIABLE_REFERENCE = "var(--"


def _token_hint(scope: DesignTokenChangeScope) -> str:
    hint = f"{scope.token_type} -> {scope.value or 'as described'} ({scope.target_scope})"
    if scope.color_changes:
        hint += "; " + ", ".join(f"{c.type}: {c.color}" for c in scope.color_changes)
    return hint


class DesignTokenExecutor:
    """Rewrites the token config and global stylesheet as a pair.

    Both rewrites must parse and use absolute values only; if either does
    not, nothing is written. Existing originals are backed up first.
    """

    strategy = STRATEGY

    def __init__(
        self,
        synthesis: Optional[SynthesisClient] = None,
        project_history: Optional[ProjectHistory] = None,
    ):
        self.synthesis = synthesis
        self.project_history = project_history

    def execute(self, scope: DesignTokenChangeScope, ctx: ExecutionContext) -> ExecutorResult:
        if self.synthesis is None:
            raise SynthesisFailure("Design token rewrites need a synthesis collaborator")

        config_path = self._find(ctx, TOKEN_CONFIG_CANDIDATES) or DEFAULT_TOKEN_CONFIG
        stylesheet_path = self._find(ctx, STYLESHEET_CANDIDATES) or DEFAULT_STYLESHEET
        config_before = ctx.current_content(config_path)
        stylesheet_before = ctx.current_content(stylesheet_path)

        rewrite = self.synthesis.rewrite_design_tokens(
            ctx.request,
            self._design_description(ctx),
            (config_path, config_before or ""),
            (stylesheet_path, stylesheet_before or ""),
            _token_hint(scope),
        )
        self._check(config_path, rewrite.token_config)
        self._check(stylesheet_path, rewrite.stylesheet)

        backups = [
            backup for backup in (
                ctx.workspace.backup(path)
                for path, before in ((config_path, config_before), (stylesheet_path, stylesheet_before))
                if before is not None
            )
            if backup
        ]

        changes = [commit_file(
            ctx,
            config_path,
            rewrite.token_config,
            approach=STRATEGY,
            description=f"Rewrote design tokens ({scope.token_type})",
            reasoning=scope.reasoning,
            previous=config_before,
        )]
        try:
            changes.append(commit_file(
                ctx,
                stylesheet_path,
                rewrite.stylesheet,
                approach=STRATEGY,
                description=f"Rewrote global styles ({scope.token_type})",
                reasoning=scope.reasoning,
                previous=stylesheet_before,
            ))
        except IOFailure:
            self._restore(ctx, config_path, config_before)
            raise

        return successful_result(
            STRATEGY,
            changes,
            rewrite.summary or f"Updated {config_path} and {stylesheet_path}",
            {"backups": backups, "token_config": config_path, "stylesheet": stylesheet_path},
        )

    def _find(self, ctx: ExecutionContext, candidates: tuple[str, ...]) -> Optional[str]:
        cached = ctx.files()
        for candidate in candidates:
            if candidate in cached or ctx.workspace.exists(candidate):
                return candidate
        return None

    def _design_description(self, ctx: ExecutionContext) -> Optional[str]:
        if self.project_history is None or not ctx.project_id:
            return ctx.project_description
        try:
            return self.project_history.get_design_description(ctx.project_id) or ctx.project_description
        except IOFailure as exc:
            logger.warning("Design description unavailable for %s: %s", ctx.project_id, exc)
            return ctx.project_description

    def _check(self, path: str, content: str) -> None:
        """Raise SynthesisFailure unless the rewrite avoids CSS variables and parses."""
        if VARIABLE_REFERENCE in content:
            raise SynthesisFailure(f"Rewritten {path} references CSS variables")
        try:
            validate_source(content, path)
        except SourceParseError as exc:
            raise SynthesisFailure(f"Rewritten {path} does not parse: {exc}") from exc

    def _restore(self, ctx: ExecutionContext, path: str, content: Optional[str]) -> None:
        """Put back the pre-rewrite content; a file that did not exist is removed."""
        try:
            if content is None:
                ctx.workspace.remove(path)
                ctx.cache.discard(ctx.session_id, path)
            else:
                ctx.workspace.write_text(path, content)
                ctx.cache.put(ctx.session_id, path, content)
        except IOFailure as exc:
            logger.error("Could not restore %s after a failed token write: %s", path, exc)
