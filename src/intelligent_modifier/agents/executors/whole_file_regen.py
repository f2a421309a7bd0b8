"""Last-resort strategy: regenerate whole files."""

import logging
import re
from typing import Mapping, Optional

from intelligent_modifier.agents.exceptions import SourceParseError, SynthesisFailure
from intelligent_modifier.agents.executors.base import (
    ExecutionContext,
    commit_file,
    successful_result,
)
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.models.change_models import ExecutorResult
from intelligent_modifier.models.scope_models import FullFileScope
from intelligent_modifier.utils.ast_parser import is_parseable, validate_source

logger = logging.getLogger(__name__)

STRATEGY = "FULL_FILE"
DEFAULT_MAX_FILES = 5
MAIN_FILES = ("src/App.tsx", "src/App.jsx", "src/main.tsx")
CANDIDATE_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js", ".css")
MIN_KEYWORD_SCORE = 30
CONTENT_MATCH_SCORE = 10

# (request keywords, path fragments that make a file relevant, score)
_KEYWORD_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...], int], ...] = (
    (("color", "style", "theme", "design", "background", "text"), ("component", "page"), 40),
    (("layout", "grid", "responsive", "flex"), ("component", "page"), 40),
    (("component", "button", "form", "modal"), ("component",), 50),
    (("nav", "header", "footer", "menu"), ("nav", "header", "footer"), 50),
)


def keyword_file_selection(
    request: str,
    files: Mapping[str, str],
    limit: int = DEFAULT_MAX_FILES,
) -> list[str]:
    """Rank candidate files against request keywords in their path and content.

    The main application file is always included when it exists.
    """
    lowered = request.lower()
    words = {word for word in re.findall(r"[a-z]{4,}", lowered)}
    main = next((path for path in MAIN_FILES if path in files), None)
    scored: list[tuple[int, str]] = []
    for path, content in files.items():
        if path == main:
            continue
        lowered_path = path.lower()
        score = 30 if path in MAIN_FILES or "/app." in lowered_path else 0
        for keywords, fragments, points in _KEYWORD_RULES:
            if any(k in lowered for k in keywords) and any(f in lowered_path for f in fragments):
                score += points
        lowered_content = content.lower()
        score += CONTENT_MATCH_SCORE * sum(1 for word in words if word in lowered_content)
        if score > MIN_KEYWORD_SCORE:
            scored.append((score, path))

    scored.sort(key=lambda item: (-item[0], item[1]))
    selected = [main] if main else []
    selected.extend(path for _, path in scored)
    return selected[:limit]


class WholeFileRegenExecutor:
    """Picks a handful of files and has them rewritten in full."""

    strategy = STRATEGY

    def __init__(
        self,
        synthesis: Optional[SynthesisClient] = None,
        max_files: int = DEFAULT_MAX_FILES,
    ):
        self.synthesis = synthesis
        self.max_files = max_files

    def execute(self, scope: FullFileScope, ctx: ExecutionContext) -> ExecutorResult:
        if self.synthesis is None:
            raise SynthesisFailure("Whole-file regeneration needs a synthesis collaborator")

        contents = {path: project_file.content for path, project_file in ctx.files().items()}
        selected = self._select(ctx, contents)
        if not selected:
            raise SynthesisFailure("No files available to regenerate")

        regenerated = self.synthesis.regenerate_files(
            ctx.request,
            ctx.project_summary,
            {path: contents[path] for path in selected},
        )

        changes = []
        rejected: dict[str, str] = {}
        for synthesized in regenerated.files:
            path = synthesized.file_path.lstrip("/")
            if path not in selected:
                rejected[path] = "not one of the selected files"
                continue
            if synthesized.content == contents[path]:
                continue
            try:
                validate_source(synthesized.content, path)
            except SourceParseError as exc:
                rejected[path] = str(exc)
                continue
            changes.append(commit_file(
                ctx,
                path,
                synthesized.content,
                approach=STRATEGY,
                description=regenerated.summary or "Regenerated file",
                reasoning=scope.reasoning,
                previous=contents[path],
            ))

        if not changes:
            raise SynthesisFailure(f"No regenerated file was usable: {rejected or 'no changes'}")
        return successful_result(
            STRATEGY,
            changes,
            regenerated.summary or f"Regenerated {len(changes)} files",
            {"selected_files": selected, "rejected_files": rejected},
        )

    def _select(self, ctx: ExecutionContext, contents: Mapping[str, str]) -> list[str]:
        candidates = [
            path for path in sorted(contents)
            if path.endswith(CANDIDATE_EXTENSIONS) and is_parseable(path)
        ]
        if not candidates:
            return []

        chosen: list[str] = []
        try:
            selection = self.synthesis.select_files(
                ctx.request, ctx.project_summary, candidates, self.max_files
            )
            chosen = [p.lstrip("/") for p in selection.file_paths if p.lstrip("/") in contents]
        except SynthesisFailure as exc:
            logger.warning("File selection failed, using keyword scoring: %s", exc)
        if not chosen:
            chosen = keyword_file_selection(
                ctx.request, {path: contents[path] for path in candidates}, self.max_files
            )

        chosen = list(dict.fromkeys(chosen))[: self.max_files]
        logger.info("Regenerating %s", ", ".join(chosen))
        return chosen
