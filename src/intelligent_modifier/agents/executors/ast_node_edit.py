"""Structural JSX node edits."""

import logging
import textwrap
from typing import Optional

from intelligent_modifier.agents.exceptions import ResolutionFailure, SynthesisFailure
from intelligent_modifier.agents.executors.base import (
    ExecutionContext,
    commit_file,
    failed_result,
    successful_result,
)
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.models.change_models import ExecutorResult, ModificationChange
from intelligent_modifier.models.scope_models import TargetedNodesScope, TargetNode
from intelligent_modifier.models.synthesis_models import RequiredImport
from intelligent_modifier.utils.ast_parser import (
    all_imported_names,
    has_syntax_errors,
    import_insertion_offset,
    imported_names,
    node_text,
    parse_source,
    resolve_structural_path,
)
from intelligent_modifier.utils.diff_generator import detect_code_style

logger = logging.getLogger(__name__)

STRATEGY = "TARGETED_NODES"


def _is_ancestor(ancestor: list[int], descendant: list[int]) -> bool:
    return len(ancestor) < len(descendant) and descendant[: len(ancestor)] == ancestor


def drop_nested_targets(targets: list[TargetNode]) -> list[TargetNode]:
    """Remove targets that sit inside another target of the same file."""
    kept = []
    for target in targets:
        if any(
            other is not target
            and other.file_path == target.file_path
            and _is_ancestor(other.structural_path, target.structural_path)
            for other in targets
        ):
            continue
        kept.append(target)
    return kept


def splice_node(
    source: str,
    target: TargetNode,
    new_code: str,
    expected_text: Optional[str] = None,
) -> str:
    """Replace one node, re-resolved against ``source``, with new code.

    Continuation lines of ``new_code`` are re-indented to the node's own
    line so the surrounding formatting is preserved.

    Raises:
        ResolutionFailure: If the node no longer resolves, or its text is no
            longer ``expected_text``.
    """
    tree, _ = parse_source(source, target.file_path)
    node = resolve_structural_path(tree, target.structural_path, target.node_kind, target.tag_name)
    source_bytes = source.encode("utf-8")
    if expected_text is not None and node_text(node, source_bytes) != expected_text:
        raise ResolutionFailure(
            f"Node {target.node_id or target.structural_path} in {target.file_path} changed since it was resolved"
        )

    line_start = source_bytes.rfind(b"\n", 0, node.start_byte) + 1
    prefix = source_bytes[line_start:node.start_byte].decode("utf-8")
    indent = prefix[: len(prefix) - len(prefix.lstrip())]

    lines = textwrap.dedent(new_code.strip("\n")).splitlines()
    body = "\n".join([lines[0]] + [f"{indent}{line}" if line else line for line in lines[1:]])
    return (
        source_bytes[: node.start_byte] + body.encode("utf-8") + source_bytes[node.end_byte:]
    ).decode("utf-8")


def add_required_imports(source: str, file_path: str, required: list[RequiredImport]) -> str:
    """Insert import lines for names the file does not bind yet."""
    if not required:
        return source
    tree, _ = parse_source(source, file_path)
    source_bytes = source.encode("utf-8")
    bound = all_imported_names(tree, source_bytes)
    style = detect_code_style(source)
    quote = "'" if style["quotes"] == "single" else '"'
    terminator = ";" if style["semicolons"] == "yes" else ""

    new_lines = []
    for spec in required:
        existing = imported_names(tree, source_bytes, spec.source)
        default = spec.default if spec.default and spec.default not in bound | existing else None
        names = [name for name in spec.names if name not in bound and name not in existing]
        if not default and not names:
            continue
        clause = ", ".join(filter(None, [default, f"{{ {', '.join(names)} }}" if names else None]))
        new_lines.append(f"import {clause} from {quote}{spec.source}{quote}{terminator}")
        bound |= set(names) | ({default} if default else set())

    if not new_lines:
        return source
    offset = import_insertion_offset(tree)
    block = "\n".join(new_lines)
    if offset == 0:
        return f"{block}\n{source}"
    return (
        source_bytes[:offset] + f"\n{block}".encode("utf-8") + source_bytes[offset:]
    ).decode("utf-8")


class ASTNodeEditExecutor:
    """Rewrites individual JSX nodes located by structural path.

    Every node is re-resolved against the current cached content right before
    it is edited. Nodes that no longer resolve, and edits that would leave
    the file unparseable, are skipped and reported; the run succeeds when at
    least one node was applied.
    """

    strategy = STRATEGY

    def __init__(self, synthesis: Optional[SynthesisClient] = None):
        self.synthesis = synthesis

    def execute(self, scope: TargetedNodesScope, ctx: ExecutionContext) -> ExecutorResult:
        if not scope.target_nodes:
            return failed_result(STRATEGY, "No target nodes to edit")
        if self.synthesis is None:
            return failed_result(STRATEGY, "Node edits need a synthesis collaborator")

        targets = drop_nested_targets(sorted(scope.target_nodes, key=lambda t: t.rank))
        by_file: dict[str, list[TargetNode]] = {}
        for target in targets:
            by_file.setdefault(target.file_path, []).append(target)

        applied: list[str] = []
        skipped: dict[str, str] = {}
        changes: list[ModificationChange] = []
        for file_path, file_targets in by_file.items():
            change = self._edit_file(ctx, file_path, file_targets, scope.reasoning, applied, skipped)
            if change is not None:
                changes.append(change)

        details = {"applied_nodes": applied, "skipped_nodes": skipped}
        if not applied:
            return failed_result(STRATEGY, "No target node could be edited", **details)
        return successful_result(
            STRATEGY,
            changes,
            f"Edited {len(applied)} of {len(targets)} target nodes in {len(changes)} files",
            details,
        )

    def _edit_file(
        self,
        ctx: ExecutionContext,
        file_path: str,
        targets: list[TargetNode],
        reasoning: str,
        applied: list[str],
        skipped: dict[str, str],
    ) -> Optional[ModificationChange]:
        original = ctx.current_content(file_path)
        if original is None:
            for target in targets:
                skipped[target.node_id] = f"{file_path} no longer exists"
            return None

        tree, _ = parse_source(original, file_path)
        source_bytes = original.encode("utf-8")
        resolved: dict[str, TargetNode] = {}
        resolved_nodes: dict[str, tuple[int, str]] = {}  # node id -> (start byte, text)
        snippets: list[tuple[str, str]] = []
        for target in targets:
            try:
                node = resolve_structural_path(
                    tree, target.structural_path, target.node_kind, target.tag_name
                )
            except ResolutionFailure as exc:
                skipped[target.node_id] = str(exc)
                continue
            text = node_text(node, source_bytes)
            resolved[target.node_id] = target
            resolved_nodes[target.node_id] = (node.start_byte, text)
            snippets.append((target.node_id, text))

        if not resolved:
            return None

        try:
            batch = self.synthesis.propose_node_edits(
                ctx.request, file_path, original, snippets, detect_code_style(original)
            )
        except SynthesisFailure as exc:
            logger.warning("Node edit synthesis failed for %s: %s", file_path, exc)
            for node_id in resolved:
                skipped[node_id] = f"synthesis failed: {exc}"
            return None

        for edit in batch.edits:
            if edit.node_id not in resolved:
                logger.debug("Ignoring edit for unrequested node %s", edit.node_id)

        # Splice from the end of the file backwards so earlier paths stay valid
        edits = sorted(
            (edit for edit in batch.edits if edit.node_id in resolved),
            key=lambda edit: resolved_nodes[edit.node_id][0],
            reverse=True,
        )
        working = original
        imports: list[RequiredImport] = []
        for edit in edits:
            if edit.node_id in applied:
                continue
            target = resolved[edit.node_id]
            try:
                candidate = splice_node(
                    working, target, edit.new_code, expected_text=resolved_nodes[edit.node_id][1]
                )
            except ResolutionFailure as exc:
                skipped[edit.node_id] = str(exc)
                continue
            candidate_tree, _ = parse_source(candidate, file_path)
            if has_syntax_errors(candidate_tree):
                skipped[edit.node_id] = "edit would leave the file unparseable"
                continue
            working = candidate
            applied.append(edit.node_id)
            imports.extend(edit.required_imports)

        # Imports shift top-level node indices, so they go in after every splice
        if imports:
            with_imports = add_required_imports(working, file_path, imports)
            if has_syntax_errors(parse_source(with_imports, file_path)[0]):
                logger.warning("Skipping imports for %s: result does not parse", file_path)
            else:
                working = with_imports

        for node_id in resolved:
            if node_id not in applied and node_id not in skipped:
                skipped[node_id] = "no edit proposed"

        if working == original:
            return None
        return commit_file(
            ctx,
            file_path,
            working,
            approach=STRATEGY,
            description=f"Edited {sum(1 for t in resolved if t in applied)} JSX nodes",
            reasoning=reasoning,
            previous=original,
        )
