"""Scope classifier: decides which strategy applies a modification request."""

import logging
import re
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from intelligent_modifier.agents.exceptions import ClassificationFailure
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.models.project_models import (
    JsxNodeInfo,
    ProjectFile,
    ProjectStructureMap,
)
from intelligent_modifier.models.scope_models import (
    ColorChange,
    ComponentAdditionScope,
    DesignTokenChangeScope,
    FullFileScope,
    ModificationScope,
    TargetedNodesScope,
    TargetNode,
    TextBasedChangeScope,
    TextChangeAnalysis,
    TreeInformation,
)
from intelligent_modifier.models.synthesis_models import ScopeDecision
from intelligent_modifier.utils.ast_parser import (
    collect_jsx_nodes,
    extract_imports,
    has_syntax_errors,
    is_script,
    parse_source,
)

logger = logging.getLogger(__name__)

MAX_TARGET_NODES = 10  # Max ranked targets carried by a TARGETED_NODES scope
MAX_TREE_LINES = 400  # Max node lines in the compact tree shown to the LLM
DEFAULT_COMPONENT_NAME = "NewComponent"

_QUOTE_OPEN = "\"'“‘"
_QUOTE_CLOSE = "\"'”’"
_TEXT_CHANGE_PATTERNS = (
    re.compile(
        r"(?:rename|replace|change|swap|update)\s+(?:all\s+|every\s+|the\s+)?"
        r"(?:(?:text|word|phrase|label|copy)\s+)?"
        rf"[{_QUOTE_OPEN}](?P<search>[^{_QUOTE_CLOSE}]+)[{_QUOTE_CLOSE}]\s+"
        r"(?:(?:text|word|phrase|label|copy)\s+)?(?:to|with|into|by)\s+"
        rf"[{_QUOTE_OPEN}](?P<replace>[^{_QUOTE_CLOSE}]*)[{_QUOTE_CLOSE}]",
        re.IGNORECASE,
    ),
    re.compile(
        rf"[{_QUOTE_OPEN}](?P<search>[^{_QUOTE_CLOSE}]+)[{_QUOTE_CLOSE}]\s*(?:->|→|=>)\s*"
        rf"[{_QUOTE_OPEN}](?P<replace>[^{_QUOTE_CLOSE}]*)[{_QUOTE_CLOSE}]",
    ),
)

_COLOR_PATTERNS = (
    re.compile(r"(?:change|make|set)\s+(?:the\s+)?(?:background|bg)\s+(?:color\s+)?(?:to\s+)?([a-z]+|#[0-9a-f]{3,6})"),
    re.compile(r"(?:change|make|set)\s+(?:the\s+)?(primary|secondary|accent)\s+colou?r\s+(?:to\s+)?([a-z]+|#[0-9a-f]{3,6})"),
    re.compile(r"make\s+it\s+([a-z]+)"),
)
_GENERAL_COLOR_RE = re.compile(
    r"\b(red|blue|green|yellow|purple|orange|pink|black|white|gray|grey|teal|indigo)\b"
)
_COMPONENT_NAME_PATTERNS = (
    re.compile(r"(?:add|create|build|make|new)\s+(?:an?\s+|the\s+)?([A-Z][a-zA-Z]+)", re.IGNORECASE),
    re.compile(r"([A-Z][a-zA-Z]+)\s+(?:component|page)", re.IGNORECASE),
    re.compile(r"(?:component|page)\s+(?:called|named)\s+([A-Z][a-zA-Z]+)", re.IGNORECASE),
)

_ADDITION_VERBS_RE = re.compile(r"\b(add|create|build|new|insert)\b")
_NEW_SURFACE_RE = re.compile(
    r"\b(page|component|section|screen|modal|dialog|form|widget|banner|testimonials?|faq|pricing)\b"
)
_DESIGN_TOKEN_RE = re.compile(
    r"\b(colou?rs?|palette|theme|font|fonts|typography|spacing|brand|dark mode|light mode)\b"
)

# Request word -> JSX tags it refers to
ELEMENT_TAGS: dict[str, tuple[str, ...]] = {
    "button": ("button", "Button"),
    "buttons": ("button", "Button"),
    "link": ("a", "Link", "NavLink"),
    "links": ("a", "Link", "NavLink"),
    "header": ("header", "Header"),
    "footer": ("footer", "Footer"),
    "nav": ("nav", "Navbar", "Nav"),
    "navbar": ("nav", "Navbar", "Nav"),
    "navigation": ("nav", "Navbar", "Nav"),
    "heading": ("h1", "h2", "h3"),
    "title": ("h1", "h2", "title"),
    "headline": ("h1", "h2"),
    "image": ("img", "Image"),
    "logo": ("img", "Logo"),
    "card": ("Card", "article"),
    "cards": ("Card", "article"),
    "input": ("input", "Input"),
    "form": ("form",),
    "hero": ("section",),
    "menu": ("nav", "ul", "Menu"),
    "sidebar": ("aside", "Sidebar"),
    "paragraph": ("p",),
    "list": ("ul", "ol"),
}
_STOPWORDS = frozenset({
    "the", "and", "for", "with", "make", "change", "update", "set", "into", "from",
    "this", "that", "all", "every", "please", "more", "less", "should", "have",
})


def build_search_variations(term: str) -> list[str]:
    """Return case variants of a search term, excluding the term itself."""
    variations: list[str] = []
    for variant in (term.upper(), term.lower(), term.title()):
        if variant != term and variant not in variations:
            variations.append(variant)
    return variations


def detect_text_change(request: str) -> Optional[TextChangeAnalysis]:
    """Recognise an explicit quoted find/replace request."""
    for pattern in _TEXT_CHANGE_PATTERNS:
        match = pattern.search(request)
        if not match:
            continue
        search = match.group("search").strip()
        replacement = match.group("replace").strip()
        if search and search != replacement:
            return TextChangeAnalysis(
                search_term=search,
                replacement_term=replacement,
                search_variations=build_search_variations(search),
            )
    return None


def extract_color_changes(request: str) -> list[ColorChange]:
    """Pull colour changes out of a request."""
    lowered = request.lower()
    changes: list[ColorChange] = []
    for pattern in _COLOR_PATTERNS:
        for match in pattern.finditer(lowered):
            phrase = match.group(0)
            color = match.group(match.lastindex or 1)
            if "background" in phrase or " bg" in phrase:
                change_type = "background"
            elif "primary" in phrase:
                change_type = "primary"
            elif "secondary" in phrase:
                change_type = "secondary"
            elif "accent" in phrase:
                change_type = "accent"
            else:
                change_type = "general"
            changes.append(ColorChange(type=change_type, color=color, target=change_type))

    if not changes:
        general = _GENERAL_COLOR_RE.search(lowered)
        if general:
            changes.append(ColorChange(type="general", color=general.group(1), target="general"))
    return changes


def extract_component_name(request: str) -> str:
    """Best-effort PascalCase component name from a request."""
    for pattern in _COMPONENT_NAME_PATTERNS:
        match = pattern.search(request)
        if match and match.group(1):
            name = match.group(1).strip()
            return name[0].upper() + name[1:]
    return DEFAULT_COMPONENT_NAME


def determine_component_type(request: str) -> str:
    lowered = request.lower()
    if any(word in lowered for word in ("page", "route", "screen")):
        return "page"
    if any(word in lowered for word in ("app", "main", "application")):
        return "app"
    return "component"


class NodeIndex(BaseModel):
    """JSX nodes of the cached project, addressable by short ids."""

    model_config = ConfigDict(frozen=False)

    nodes: dict[str, JsxNodeInfo] = Field(default_factory=dict)
    tree_information: TreeInformation = Field(default_factory=TreeInformation)

    def target(self, node_id: str, rank: int) -> Optional[TargetNode]:
        info = self.nodes.get(node_id)
        if info is None:
            return None
        return TargetNode(
            file_path=info.file_path,
            node_kind=info.node_kind,
            structural_path=list(info.structural_path),
            tag_name=info.tag_name,
            rank=rank,
            node_id=node_id,
            description=_describe(info),
        )


def _describe(info: JsxNodeInfo) -> str:
    parts = [f"<{info.tag_name}>"]
    if info.class_name:
        parts.append(f".{info.class_name.split()[0]}")
    if info.display_text:
        parts.append(f'"{info.display_text}"')
    return " ".join(parts)


def build_node_index(files: Mapping[str, ProjectFile | str]) -> NodeIndex:
    """Parse every cached script and index its JSX nodes."""
    index = NodeIndex()
    lines: list[str] = []
    total_files = 0
    total_imports = 0
    counter = 0

    for path in sorted(files):
        if not is_script(path):
            continue
        value = files[path]
        content = value.content if isinstance(value, ProjectFile) else value
        tree, language = parse_source(content, path)
        if has_syntax_errors(tree):
            logger.debug("Skipping %s in node index: syntax errors", path)
            continue
        total_files += 1
        total_imports += len(extract_imports(tree, language))
        file_nodes = collect_jsx_nodes(tree, path)
        if file_nodes:
            lines.append(f"## {path}")
        for info in file_nodes:
            counter += 1
            node_id = f"n{counter}"
            index.nodes[node_id] = info
            if len(lines) < MAX_TREE_LINES:
                lines.append(
                    f"{node_id}:{_describe(info)}{' *' if info.is_interactive else ''}"
                    f" (L{info.start_line}-{info.end_line})"
                )

    index.tree_information = TreeInformation(
        total_files=total_files,
        total_nodes=counter,
        total_imports=total_imports,
        compact_tree="\n".join(lines),
    )
    return index


class ScopeClassifier:
    """Maps a request plus project context onto exactly one ModificationScope."""

    def __init__(
        self,
        synthesis: Optional[SynthesisClient] = None,
        max_target_nodes: int = MAX_TARGET_NODES,
    ):
        """Initialize the classifier.

        Args:
            synthesis: LLM collaborator; without one, keyword heuristics decide.
            max_target_nodes: Cap on ranked targets for TARGETED_NODES.
        """
        self.synthesis = synthesis
        self.max_target_nodes = max_target_nodes

    def classify(
        self,
        request: str,
        project_summary: str,
        history_summary: str = "",
        files: Optional[Mapping[str, ProjectFile | str]] = None,
        structure: Optional[ProjectStructureMap] = None,
        project_description: Optional[str] = None,
    ) -> ModificationScope:
        """Classify a request.

        Never raises: any internal error degrades to an empty TARGETED_NODES
        scope whose reasoning records the failure.
        """
        try:
            scope = self._classify(
                request, project_summary, history_summary, files or {}, structure, project_description
            )
        except Exception as exc:
            logger.warning("Classification failed, degrading to TARGETED_NODES: %s", exc)
            return TargetedNodesScope(
                reasoning=f"Classification failed ({type(exc).__name__}: {exc}); defaulting to a targeted edit",
            )
        logger.info("Classified request as %s", scope.kind)
        return scope

    def _classify(
        self,
        request: str,
        project_summary: str,
        history_summary: str,
        files: Mapping[str, ProjectFile | str],
        structure: Optional[ProjectStructureMap],
        project_description: Optional[str],
    ) -> ModificationScope:
        text_change = detect_text_change(request)
        if text_change is not None:
            return TextBasedChangeScope(
                reasoning=(
                    f'Literal replacement requested: "{text_change.search_term}" '
                    f'-> "{text_change.replacement_term}"'
                ),
                text_change=text_change,
            )

        index = build_node_index(files)
        if self.synthesis is None:
            return self._heuristic_scope(request, index, files, structure)

        decision = self.synthesis.decide_scope(
            request,
            project_summary,
            history_summary,
            index.tree_information.compact_tree,
            project_description,
        )
        return self._scope_from_decision(decision, request, index, files, structure)

    def _scope_from_decision(
        self,
        decision: ScopeDecision,
        request: str,
        index: NodeIndex,
        files: Mapping[str, ProjectFile | str],
        structure: Optional[ProjectStructureMap],
    ) -> ModificationScope:
        reasoning = decision.reasoning

        if decision.scope == "TEXT_BASED_CHANGE":
            if not decision.search_term or decision.replacement_term is None:
                raise ClassificationFailure("text change decided without search/replacement terms")
            variations = list(decision.search_variations)
            for variant in build_search_variations(decision.search_term):
                if variant not in variations:
                    variations.append(variant)
            return TextBasedChangeScope(
                reasoning=reasoning,
                text_change=TextChangeAnalysis(
                    search_term=decision.search_term,
                    replacement_term=decision.replacement_term,
                    search_variations=[v for v in variations if v != decision.search_term],
                ),
            )

        if decision.scope == "TARGETED_NODES":
            targets: list[TargetNode] = []
            for node_id in decision.target_node_ids:
                target = index.target(node_id, rank=len(targets))
                if target is None:
                    logger.debug("Ignoring unknown node id %s", node_id)
                    continue
                targets.append(target)
                if len(targets) >= self.max_target_nodes:
                    break
            return TargetedNodesScope(
                reasoning=reasoning,
                tree_information=index.tree_information,
                target_nodes=targets,
            )

        if decision.scope == "COMPONENT_ADDITION":
            name = decision.component_name or extract_component_name(request)
            if _unit_exists(name, files, structure):
                return self._existing_unit_scope(request, index, name)
            component_type = decision.component_type or determine_component_type(request)
            return ComponentAdditionScope(
                reasoning=reasoning,
                component_name=name,
                component_type=component_type,
            )

        if decision.scope == "DESIGN_TOKEN_CHANGE":
            color_changes = extract_color_changes(request)
            return DesignTokenChangeScope(
                reasoning=reasoning,
                token_type=decision.token_type or ("color" if color_changes else "typography"),
                value=decision.token_value or (color_changes[0].color if color_changes else ""),
                target_scope=decision.target_scope or "global",
                color_changes=color_changes,
            )

        return FullFileScope(reasoning=reasoning)

    def _heuristic_scope(
        self,
        request: str,
        index: NodeIndex,
        files: Mapping[str, ProjectFile | str],
        structure: Optional[ProjectStructureMap],
    ) -> ModificationScope:
        lowered = request.lower()
        words = set(re.findall(r"[a-z]+", lowered))
        wants_addition = bool(_ADDITION_VERBS_RE.search(lowered))

        if not wants_addition and words & set(ELEMENT_TAGS):
            return TargetedNodesScope(
                reasoning="Request names an existing UI element",
                tree_information=index.tree_information,
                target_nodes=self.match_nodes(request, index),
            )

        if wants_addition and _NEW_SURFACE_RE.search(lowered):
            name = extract_component_name(request)
            if _unit_exists(name, files, structure):
                return self._existing_unit_scope(request, index, name)
            return ComponentAdditionScope(
                reasoning=f"Request asks for new surface area ({name})",
                component_name=name,
                component_type=determine_component_type(request),
            )

        if _DESIGN_TOKEN_RE.search(lowered) or extract_color_changes(request):
            color_changes = extract_color_changes(request)
            return DesignTokenChangeScope(
                reasoning="Request concerns global visual tokens",
                token_type="color" if color_changes else "typography",
                value=color_changes[0].color if color_changes else "",
                target_scope="global",
                color_changes=color_changes,
            )

        return FullFileScope(reasoning="No narrower strategy matched the request")

    def _existing_unit_scope(self, request: str, index: NodeIndex, name: str) -> TargetedNodesScope:
        return TargetedNodesScope(
            reasoning=f"{name} already exists in the project; editing it instead of adding it",
            tree_information=index.tree_information,
            target_nodes=self.match_nodes(request, index),
        )

    def match_nodes(self, request: str, index: NodeIndex) -> list[TargetNode]:
        """Rank indexed nodes by overlap with the request's words."""
        words = [
            word for word in re.findall(r"[a-z0-9]+", request.lower())
            if len(word) > 2 and word not in _STOPWORDS
        ]
        scored: list[tuple[int, int, str]] = []
        for order, (node_id, info) in enumerate(index.nodes.items()):
            score = 0
            class_name = (info.class_name or "").lower()
            text = info.display_text.lower()
            for word in words:
                if info.tag_name in ELEMENT_TAGS.get(word, ()):
                    score += 3
                if word in class_name:
                    score += 1
                if word in text:
                    score += 2
            if score > 0:
                scored.append((score, order, node_id))

        scored.sort(key=lambda item: (-item[0], item[1]))
        targets: list[TargetNode] = []
        for _, _, node_id in scored[: self.max_target_nodes]:
            target = index.target(node_id, rank=len(targets))
            if target is not None:
                targets.append(target)
        return targets


def _unit_exists(
    name: str,
    files: Mapping[str, ProjectFile | str],
    structure: Optional[ProjectStructureMap],
) -> bool:
    lowered = name.lower()
    if any(Path(path).stem.lower() == lowered for path in files if is_script(path)):
        return True
    if structure is None:
        return False
    for mapped in structure.files:
        if Path(mapped.file).stem.lower() == lowered:
            return True
        if any(export.lower() == lowered for export in mapped.exports):
            return True
    return False
