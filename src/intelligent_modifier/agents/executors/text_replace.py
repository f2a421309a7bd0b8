"""Literal find/replace across the cached project files."""

import logging
import re

from intelligent_modifier.agents.exceptions import SourceParseError
from intelligent_modifier.agents.executors.base import (
    ExecutionContext,
    commit_file,
    failed_result,
    successful_result,
)
from intelligent_modifier.models.change_models import ExecutorResult
from intelligent_modifier.models.scope_models import TextBasedChangeScope, TextChangeAnalysis
from intelligent_modifier.utils.ast_parser import validate_source

logger = logging.getLogger(__name__)

STRATEGY = "TEXT_BASED_CHANGE"
TEXT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".html", ".md", ".json", ".css")


def replacement_map(analysis: TextChangeAnalysis) -> dict[str, str]:
    """Map every search form to its replacement, mirroring case variants."""
    search = analysis.search_term
    replacement = analysis.replacement_term
    mapping = {search: replacement}
    for variant in analysis.search_variations:
        if not variant or variant in mapping:
            continue
        if variant == search.upper():
            mapping[variant] = replacement.upper()
        elif variant == search.lower():
            mapping[variant] = replacement.lower()
        elif variant == search.title():
            mapping[variant] = replacement.title()
        else:
            mapping[variant] = replacement
    return mapping


def _compile(mapping: dict[str, str]) -> re.Pattern[str]:
    # Longest first so "Sign Up Now" wins over "Sign Up"
    terms = sorted(mapping, key=len, reverse=True)
    return re.compile("|".join(re.escape(term) for term in terms))


class TextReplaceExecutor:
    """Applies a literal text swap to every cached file that contains it.

    A file is only rewritten when at least one occurrence is found, and a
    script that parsed before the swap must still parse after it.
    """

    strategy = STRATEGY

    def execute(self, scope: TextBasedChangeScope, ctx: ExecutionContext) -> ExecutorResult:
        analysis = scope.text_change
        mapping = replacement_map(analysis)
        pattern = _compile(mapping)

        per_file: dict[str, int] = {}
        skipped: dict[str, str] = {}
        changes = []
        occurrences_before = 0
        occurrences_after = 0

        for path, project_file in sorted(ctx.files().items()):
            if not path.endswith(TEXT_EXTENSIONS):
                continue
            content = project_file.content
            found = len(pattern.findall(content))
            if found == 0:
                continue
            occurrences_before += found

            updated = pattern.sub(lambda match: mapping[match.group(0)], content)
            if not self._still_valid(path, content, updated):
                skipped[path] = "replacement would break the file's syntax"
                occurrences_after += found
                continue

            changes.append(commit_file(
                ctx,
                path,
                updated,
                approach=STRATEGY,
                description=f'Replaced "{analysis.search_term}" with "{analysis.replacement_term}" ({found}x)',
                reasoning=scope.reasoning,
                previous=content,
            ))
            per_file[path] = found
            occurrences_after += len(pattern.findall(updated))

        details = {
            "replacements": per_file,
            "occurrences_before": occurrences_before,
            "occurrences_after": occurrences_after,
            "skipped": skipped,
        }
        if not changes:
            reason = (
                f'No occurrences of "{analysis.search_term}" found in cached files'
                if occurrences_before == 0
                else f'Every file containing "{analysis.search_term}" would have been broken by the swap'
            )
            return failed_result(STRATEGY, reason, **details)

        total = sum(per_file.values())
        logger.info("Replaced %d occurrences in %d files", total, len(per_file))
        return successful_result(
            STRATEGY,
            changes,
            f'Replaced {total} occurrences of "{analysis.search_term}" in {len(per_file)} files',
            details,
        )

    def _still_valid(self, path: str, before: str, after: str) -> bool:
        try:
            validate_source(before, path)
        except SourceParseError:
            return True  # only files that parsed cleanly are guarded
        try:
            validate_source(after, path)
        except SourceParseError:
            return False
        return True
