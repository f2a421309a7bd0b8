"""New component or page synthesis plus deterministic integration."""

import logging
import posixpath
import re
from typing import Mapping, Optional

from intelligent_modifier.agents.exceptions import (
    IntegrationError,
    SourceParseError,
    SynthesisFailure,
)
from intelligent_modifier.agents.executors.base import (
    ExecutionContext,
    commit_file,
    successful_result,
)
from intelligent_modifier.agents.synthesis_client import SynthesisClient
from intelligent_modifier.models.change_models import ExecutorResult
from intelligent_modifier.models.scope_models import ComponentAdditionScope
from intelligent_modifier.models.synthesis_models import ComponentPlan
from intelligent_modifier.utils.ast_parser import (
    all_imported_names,
    closing_element,
    find_jsx_elements,
    first_jsx_element,
    import_insertion_offset,
    parse_source,
    validate_source,
)
from intelligent_modifier.utils.diff_generator import detect_code_style, indent_unit

logger = logging.getLogger(__name__)

STRATEGY = "COMPONENT_ADDITION"
ROUTING_CANDIDATES = ("src/App.tsx", "src/App.jsx", "src/routes.tsx", "src/router.tsx", "src/main.tsx")
COMPONENT_EXTENSIONS = (".tsx", ".jsx")

_KEBAB_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def route_path_for(component_name: str) -> str:
    """Default URL path for a page: ``ContactUs`` -> ``/contact-us``."""
    return "/" + _KEBAB_RE.sub("-", component_name).lower()


def import_specifier(from_file: str, target_file: str) -> str:
    """Relative module specifier from one project file to another."""
    target = posixpath.splitext(target_file)[0]
    relative = posixpath.relpath(target, posixpath.dirname(from_file) or ".")
    return relative if relative.startswith(".") else f"./{relative}"


def find_routing_file(files: Mapping[str, str]) -> Optional[str]:
    for candidate in ROUTING_CANDIDATES:
        if candidate in files and "<Routes" in files[candidate]:
            return candidate
    for path in sorted(files):
        if path.endswith(COMPONENT_EXTENSIONS) and "<Routes" in files[path]:
            return path
    for candidate in ROUTING_CANDIDATES:
        if candidate in files:
            return candidate
    return None


def _insert(source: str, offset: int, text: str) -> str:
    source_bytes = source.encode("utf-8")
    return (source_bytes[:offset] + text.encode("utf-8") + source_bytes[offset:]).decode("utf-8")


def _line_indent(source: str, offset: int) -> str:
    source_bytes = source.encode("utf-8")
    line_start = source_bytes.rfind(b"\n", 0, offset) + 1
    prefix = source_bytes[line_start:offset].decode("utf-8")
    return prefix[: len(prefix) - len(prefix.lstrip())]


def add_route(source: str, file_path: str, component_name: str, route_path: str) -> str:
    """Insert a ``<Route>`` entry before ``</Routes>`` unless the path is taken.

    Raises:
        IntegrationError: If the file has no ``<Routes>`` element.
    """
    if re.search(rf"path=[\"']{re.escape(route_path)}[\"']", source):
        return source
    tree, _ = parse_source(source, file_path)
    routes = find_jsx_elements(tree, "Routes")
    closing = closing_element(routes[0]) if routes else None
    if closing is None:
        raise IntegrationError(f"{file_path} has no <Routes> block to extend")

    indent = _line_indent(source, closing.start_byte)
    unit = indent_unit(detect_code_style(source))
    entry = f'<Route path="{route_path}" element={{<{component_name} />}} />'
    return _insert(source, closing.start_byte, f"{unit}{entry}\n{indent}")


def mount_component(source: str, file_path: str, component_name: str) -> str:
    """Render ``<Name />`` as the last child of the file's outermost element."""
    if re.search(rf"<{component_name}[\s/>]", source):
        return source
    tree, _ = parse_source(source, file_path)
    root = first_jsx_element(tree)
    closing = closing_element(root) if root is not None else None
    if closing is None:
        raise IntegrationError(f"{file_path} has no JSX element to mount {component_name} in")

    indent = _line_indent(source, closing.start_byte)
    unit = indent_unit(detect_code_style(source))
    return _insert(source, closing.start_byte, f"{unit}<{component_name} />\n{indent}")


def add_default_import(source: str, file_path: str, component_name: str, specifier: str) -> str:
    """Insert ``import Name from '<specifier>'`` after the last import."""
    tree, _ = parse_source(source, file_path)
    if component_name in all_imported_names(tree, source.encode("utf-8")):
        return source
    style = detect_code_style(source)
    quote = "'" if style["quotes"] == "single" else '"'
    terminator = ";" if style["semicolons"] == "yes" else ""
    line = f"import {component_name} from {quote}{specifier}{quote}{terminator}"

    offset = import_insertion_offset(tree)
    if offset == 0:
        return f"{line}\n{source}"
    return _insert(source, offset, f"\n{line}")


def apply_integration_plan(files: Mapping[str, str], plan: ComponentPlan) -> dict[str, str]:
    """Splice a plan's route and import into existing files.

    Pure and idempotent: applying the same plan to its own output returns
    no further changes.

    Returns:
        Path -> new content for every file that changed.

    Raises:
        IntegrationError: If a splice site is missing or the result does not parse.
    """
    name = plan.component_name
    integration = plan.integration
    updated: dict[str, str] = {}

    def current(path: str) -> str:
        if path in updated:
            return updated[path]
        if path not in files:
            raise IntegrationError(f"Integration site {path} does not exist")
        return files[path]

    sites: list[str] = []
    if plan.component_type == "page":
        route_file = integration.route_file or find_routing_file(files)
        if route_file is None:
            raise IntegrationError("No routing file found for the new page")
        route_path = integration.route_path or route_path_for(name)
        if not route_path.startswith("/"):
            route_path = f"/{route_path}"
        updated[route_file] = add_route(current(route_file), route_file, name, route_path)
        sites.append(route_file)

    if integration.import_site and integration.mount_in_parent:
        site = integration.import_site
        updated[site] = mount_component(current(site), site, name)
        sites.append(site)
    elif integration.import_site:
        sites.append(integration.import_site)

    for site in dict.fromkeys(sites):
        updated[site] = add_default_import(
            current(site), site, name, import_specifier(site, plan.file_path)
        )

    changed: dict[str, str] = {}
    for path, content in updated.items():
        if content == files.get(path):
            continue
        try:
            validate_source(content, path)
        except SourceParseError as exc:
            raise IntegrationError(f"Integration left {path} unparseable: {exc}") from exc
        changed[path] = content
    return changed


class ComponentSynthesisExecutor:
    """Adds one new unit in two phases.

    Phase 1 asks the synthesis collaborator for the unit and an integration
    plan. Phase 2 splices that plan into existing files without any LLM
    involvement, then writes everything.
    """

    strategy = STRATEGY

    def __init__(self, synthesis: Optional[SynthesisClient] = None):
        self.synthesis = synthesis

    def execute(self, scope: ComponentAdditionScope, ctx: ExecutionContext) -> ExecutorResult:
        if self.synthesis is None:
            raise SynthesisFailure("Component synthesis needs a synthesis collaborator")

        contents = {path: project_file.content for path, project_file in ctx.files().items()}
        routing_file = find_routing_file(contents)
        routing = (routing_file, contents[routing_file]) if routing_file else None
        style = detect_code_style(contents.get(routing_file, "")) if routing_file else detect_code_style("")

        plan = self.synthesis.plan_component(
            ctx.request,
            scope.component_name,
            "page" if scope.component_type == "page" else "component",
            ctx.project_summary,
            routing,
            style,
        )
        plan = self._normalize_plan(plan, routing_file)
        self._validate_unit(plan, contents)

        integration_updates = apply_integration_plan(contents, plan)

        changes = []
        if contents.get(plan.file_path) != plan.content:
            changes.append(commit_file(
                ctx,
                plan.file_path,
                plan.content,
                approach=STRATEGY,
                description=f"Created {plan.component_type} {plan.component_name}",
                reasoning=scope.reasoning,
                previous=contents.get(plan.file_path),
            ))
        for path, content in integration_updates.items():
            changes.append(commit_file(
                ctx,
                path,
                content,
                approach=STRATEGY,
                description=f"Wired {plan.component_name} into {path}",
                reasoning=scope.reasoning,
                previous=contents[path],
            ))

        logger.info("Added %s at %s (%d integration edits)",
                    plan.component_name, plan.file_path, len(integration_updates))
        return successful_result(
            STRATEGY,
            changes,
            f"Created {plan.component_type} {plan.component_name} at {plan.file_path}",
            {
                "component_name": plan.component_name,
                "file_path": plan.file_path,
                "integration_files": sorted(integration_updates),
            },
        )

    def _normalize_plan(self, plan: ComponentPlan, routing_file: Optional[str]) -> ComponentPlan:
        file_path = plan.file_path.lstrip("/").replace("\\", "/")
        integration = plan.integration.model_copy()
        if plan.component_type == "page" and not integration.route_file:
            integration.route_file = routing_file
        return plan.model_copy(update={"file_path": file_path, "integration": integration})

    def _validate_unit(self, plan: ComponentPlan, contents: Mapping[str, str]) -> None:
        if not plan.file_path.startswith("src/") or not plan.file_path.endswith(COMPONENT_EXTENSIONS):
            raise SynthesisFailure(f"Unexpected location for a new unit: {plan.file_path}")
        existing = contents.get(plan.file_path)
        if existing is not None and existing != plan.content:
            raise SynthesisFailure(f"{plan.file_path} already exists")
        try:
            validate_source(plan.content, plan.file_path)
        except SourceParseError as exc:
            raise SynthesisFailure(f"Synthesized unit does not parse: {exc}") from exc
