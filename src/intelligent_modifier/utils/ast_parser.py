"""AST parser utility for JavaScript/TypeScript/CSS using tree-sitter."""

import json
import re
from pathlib import Path
from typing import Iterator, Optional

import tree_sitter_css as tscss
import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser, Query, QueryCursor, Tree

from intelligent_modifier.agents.exceptions import ResolutionFailure, SourceParseError
from intelligent_modifier.models.project_models import JsxNodeInfo

# Initialize language objects
JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())
CSS_LANGUAGE = Language(tscss.language())

_EXTENSION_LANGUAGES = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".css": "css",
}

_LANGUAGES = {
    "javascript": JS_LANGUAGE,
    "typescript": TS_LANGUAGE,
    "tsx": TSX_LANGUAGE,
    "css": CSS_LANGUAGE,
}

SCRIPT_LANGUAGES = frozenset({"javascript", "typescript", "tsx"})

JSX_NODE_TYPES = ("jsx_element", "jsx_self_closing_element")
INTERACTIVE_TAGS = frozenset({
    "a", "button", "input", "select", "textarea", "form", "Link", "Button", "NavLink",
})
MAX_DISPLAY_WORDS = 8

LOCAL_IMPORT_PREFIXES = ("@/", "./", "../")
LOCAL_IMPORT_CATEGORIES = (
    "components",
    "pages",
    "contexts",
    "utils",
    "lib",
    "types",
    "supabase",
)


def get_language_for_file(file_path: str) -> str:
    """Map file extension to tree-sitter language name.

    Args:
        file_path: Path to the file

    Returns:
        Language name ("javascript", "typescript", "tsx", "css")

    Raises:
        ValueError: If file extension is not supported
    """
    ext = Path(file_path).suffix
    if ext not in _EXTENSION_LANGUAGES:
        raise ValueError(f"Unsupported file extension: {ext}")
    return _EXTENSION_LANGUAGES[ext]


def is_parseable(file_path: str) -> bool:
    """Return True if the file has a tree-sitter grammar."""
    return Path(file_path).suffix in _EXTENSION_LANGUAGES


def is_script(file_path: str) -> bool:
    """Return True for JavaScript/TypeScript sources (import/export capable)."""
    return _EXTENSION_LANGUAGES.get(Path(file_path).suffix) in SCRIPT_LANGUAGES


def get_parser(language: str) -> Parser:
    """Return a tree-sitter Parser for the given language name.

    Args:
        language: Language name ("javascript", "typescript", "tsx", "css")

    Returns:
        Configured Parser instance
    """
    if language not in _LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    parser = Parser()
    parser.language = _LANGUAGES[language]
    return parser


def parse_source(source: str, file_path: str) -> tuple[Tree, Language]:
    """Parse in-memory source text, picking the grammar from the file extension.

    Args:
        source: File content
        file_path: Path used only to select the grammar

    Returns:
        Tuple of (tree, language)
    """
    language_name = get_language_for_file(file_path)
    parser = get_parser(language_name)
    tree = parser.parse(source.encode("utf-8"))
    return tree, _LANGUAGES[language_name]


def has_syntax_errors(tree: Tree) -> bool:
    """Return True if tree-sitter recovered from any ERROR or MISSING node."""
    return bool(tree.root_node.has_error)


def validate_source(source: str, file_path: str) -> None:
    """Check that content parses cleanly for its file type.

    JSON files are checked with the json module; files without a grammar
    are accepted as-is.

    Raises:
        SourceParseError: If the content does not parse.
    """
    if Path(file_path).suffix == ".json":
        try:
            json.loads(source)
        except json.JSONDecodeError as exc:
            raise SourceParseError(f"{file_path}: invalid JSON: {exc}") from exc
        return
    if not is_parseable(file_path):
        return
    tree, _ = parse_source(source, file_path)
    if has_syntax_errors(tree):
        line = _first_error_line(tree.root_node)
        raise SourceParseError(f"{file_path}: syntax error near line {line}")


def _first_error_line(node: Node) -> int:
    for child in _walk(node):
        if child.is_error or child.is_missing:
            return child.start_point[0] + 1
    return node.start_point[0] + 1


def _walk(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from _walk(child)


def node_text(node: Node, source_bytes: bytes) -> str:
    """Decode the source slice covered by a node."""
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8")


def _strip_quotes(text: str) -> str:
    return text.strip("'\"`")


def extract_imports(tree: Tree, language: Language) -> list[str]:
    """Extract import paths from import statements.

    Args:
        tree: Parsed tree-sitter Tree
        language: Language object

    Returns:
        List of import path strings
    """
    imports = []

    import_query = Query(language, """
        (import_statement
            source: (string) @source)
    """)
    import_cursor = QueryCursor(import_query)

    for match in import_cursor.matches(tree.root_node):
        _, captures = match
        if "source" in captures:
            source_node = captures["source"][0]
            source_text = source_node.text
            if source_text:
                imports.append(_strip_quotes(source_text.decode("utf-8")))

    return imports


def categorize_import(import_path: str) -> str:
    """Map an import specifier to a coarse category.

    Local imports are tagged by the directory they point into, framework and
    data-layer imports by name, anything else by its package name.
    """
    if import_path.startswith(LOCAL_IMPORT_PREFIXES):
        for category in LOCAL_IMPORT_CATEGORIES:
            if category in import_path:
                return category
        return "local"
    if import_path.startswith("react"):
        return "react"
    if "router" in import_path:
        return "router"
    if "supabase" in import_path:
        return "supabase"
    return import_path.split("/")[0]


def extract_exports(tree: Tree) -> list[str]:
    """Extract exported names in source order.

    Default exports resolve to the identifier or declaration name when there
    is one and to "default" otherwise. Declaration-form exports (const,
    function, class, interface, type, enum) and export specifiers are all
    included; aliased specifiers report the exported alias.

    Args:
        tree: Parsed tree-sitter Tree

    Returns:
        List of exported symbol names
    """
    exports: list[str] = []
    for node in tree.root_node.named_children:
        if node.type == "export_statement":
            exports.extend(_export_statement_names(node))
    return exports


def _export_statement_names(node: Node) -> list[str]:
    declaration = node.child_by_field_name("declaration")
    value = node.child_by_field_name("value")

    if any(child.type == "default" for child in node.children):
        target = declaration or value
        name = None
        if target is not None:
            if target.type == "identifier":
                name = target.text.decode("utf-8")
            else:
                name_node = target.child_by_field_name("name")
                if name_node is not None:
                    name = name_node.text.decode("utf-8")
        return [name or "default"]

    names: list[str] = []
    if declaration is not None:
        if declaration.type in ("lexical_declaration", "variable_declaration"):
            for declarator in declaration.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    names.append(name_node.text.decode("utf-8"))
        else:
            name_node = declaration.child_by_field_name("name")
            if name_node is not None:
                names.append(name_node.text.decode("utf-8"))
        return names

    for child in node.named_children:
        if child.type != "export_clause":
            continue
        for specifier in child.named_children:
            if specifier.type != "export_specifier":
                continue
            exported = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
            if exported is not None:
                names.append(_strip_quotes(exported.text.decode("utf-8")))
    return names


# ---------------------------------------------------------------------------
# JSX nodes
# ---------------------------------------------------------------------------

def jsx_tag_name(node: Node) -> str:
    """Return the tag name of a JSX element ("fragment" for <>...</>)."""
    if node.type == "jsx_self_closing_element":
        name_node = node.child_by_field_name("name")
    else:
        opening = _opening_element(node)
        name_node = opening.child_by_field_name("name") if opening is not None else None
    if name_node is None:
        return "fragment"
    return name_node.text.decode("utf-8")


def _opening_element(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type == "jsx_opening_element":
            return child
    return None


def _attribute_owner(node: Node) -> Optional[Node]:
    if node.type == "jsx_self_closing_element":
        return node
    return _opening_element(node)


def jsx_attribute_value(node: Node, attribute: str) -> Optional[str]:
    """Return a JSX attribute's value text, unquoted for string literals."""
    owner = _attribute_owner(node)
    if owner is None:
        return None
    for child in owner.named_children:
        if child.type != "jsx_attribute" or not child.named_children:
            continue
        name_node = child.named_children[0]
        if name_node.text.decode("utf-8") != attribute:
            continue
        if len(child.named_children) < 2:
            return ""
        value_node = child.named_children[1]
        text = value_node.text.decode("utf-8")
        if value_node.type == "string":
            return _strip_quotes(text)
        return text
    return None


def _display_text(node: Node) -> str:
    words: list[str] = []
    for child in node.named_children:
        if child.type == "jsx_text":
            words.extend(child.text.decode("utf-8").split())
        if len(words) >= MAX_DISPLAY_WORDS:
            break
    return " ".join(words[:MAX_DISPLAY_WORDS])


def collect_jsx_nodes(tree: Tree, file_path: str) -> list[JsxNodeInfo]:
    """Enumerate every JSX element with its structural path.

    The structural path is the sequence of named-child indices from the
    root, so a node can be found again after the file has been re-parsed.
    """
    nodes: list[JsxNodeInfo] = []

    def walk(node: Node, path: list[int]) -> None:
        for index, child in enumerate(node.named_children):
            child_path = path + [index]
            if child.type in JSX_NODE_TYPES:
                tag = jsx_tag_name(child)
                nodes.append(JsxNodeInfo(
                    file_path=file_path,
                    node_kind=child.type,
                    structural_path=child_path,
                    tag_name=tag,
                    class_name=jsx_attribute_value(child, "className"),
                    display_text=_display_text(child),
                    start_line=child.start_point[0] + 1,
                    end_line=child.end_point[0] + 1,
                    is_interactive=tag in INTERACTIVE_TAGS or jsx_attribute_value(child, "onClick") is not None,
                ))
            walk(child, child_path)

    walk(tree.root_node, [])
    return nodes


def resolve_structural_path(
    tree: Tree,
    structural_path: list[int],
    node_kind: str,
    tag_name: Optional[str] = None,
) -> Node:
    """Walk a structural path in a freshly parsed tree.

    Raises:
        ResolutionFailure: If the path runs off the tree or lands on a node
            of a different kind or tag.
    """
    node = tree.root_node
    for depth, index in enumerate(structural_path):
        children = node.named_children
        if index >= len(children):
            raise ResolutionFailure(
                f"structural path {structural_path} breaks at depth {depth}"
            )
        node = children[index]
    if node.type != node_kind:
        raise ResolutionFailure(
            f"expected {node_kind} at {structural_path}, found {node.type}"
        )
    if tag_name is not None and node.type in JSX_NODE_TYPES and jsx_tag_name(node) != tag_name:
        raise ResolutionFailure(
            f"expected <{tag_name}> at {structural_path}, found <{jsx_tag_name(node)}>"
        )
    return node


def find_jsx_elements(tree: Tree, tag_name: str) -> list[Node]:
    """Return all JSX elements with the given tag, in source order."""
    return [
        node for node in _walk(tree.root_node)
        if node.type in JSX_NODE_TYPES and jsx_tag_name(node) == tag_name
    ]


def first_jsx_element(tree: Tree) -> Optional[Node]:
    """Return the outermost, first JSX element in the file."""
    for node in _walk(tree.root_node):
        if node.type == "jsx_element":
            return node
    return None


def closing_element(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type == "jsx_closing_element":
            return child
    return None


def import_insertion_offset(tree: Tree) -> int:
    """Byte offset just after the last top-level import statement (0 if none)."""
    offset = 0
    for child in tree.root_node.named_children:
        if child.type == "import_statement":
            offset = child.end_byte
    return offset


_NAMED_IMPORT_RE = re.compile(r"\{([^}]*)\}")


def imported_names(tree: Tree, source_bytes: bytes, module: str) -> set[str]:
    """Return every local name bound by imports from ``module``."""
    names: set[str] = set()
    for child in tree.root_node.named_children:
        if child.type != "import_statement":
            continue
        source_node = child.child_by_field_name("source")
        if source_node is None or _strip_quotes(node_text(source_node, source_bytes)) != module:
            continue
        statement = node_text(child, source_bytes)
        head = statement.split(" from ")[0].replace("import", "", 1)
        braced = _NAMED_IMPORT_RE.search(head)
        if braced:
            for part in braced.group(1).split(","):
                part = part.strip()
                if part:
                    names.add(part.split(" as ")[-1].strip())
            head = _NAMED_IMPORT_RE.sub("", head)
        default = head.strip().strip(",").strip()
        if default and not default.startswith("*"):
            names.add(default)
    return names


def all_imported_names(tree: Tree, source_bytes: bytes) -> set[str]:
    """Return every local name bound by any import statement."""
    names: set[str] = set()
    for child in tree.root_node.named_children:
        if child.type != "import_statement":
            continue
        source_node = child.child_by_field_name("source")
        if source_node is not None:
            module = _strip_quotes(node_text(source_node, source_bytes))
            names |= imported_names(tree, source_bytes, module)
    return names
