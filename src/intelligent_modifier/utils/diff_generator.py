"""Utilities for describing file changes and source style."""

import difflib


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
) -> str:
    """Generate a git-compatible unified diff.

    Args:
        file_path: Relative path from project root (e.g. "src/App.tsx").
        original_content: File content before the modification.
        modified_content: File content after the modification.

    Returns:
        Unified diff string with a/ b/ prefixes. Empty string if no changes.
    """
    if original_content == modified_content:
        return ""

    diff_lines = difflib.unified_diff(
        original_content.splitlines(keepends=True),
        modified_content.splitlines(keepends=True),
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    )
    return "\n".join(line.rstrip("\n") for line in diff_lines)


def count_changed_lines(diff_text: str) -> int:
    """Count added plus removed lines in a unified diff."""
    changed = 0
    for line in diff_text.splitlines():
        if line.startswith(("+++", "---")):
            continue
        if line.startswith(("+", "-")):
            changed += 1
    return changed


def detect_code_style(source_code: str) -> dict[str, str]:
    """Detect code style conventions from source code.

    Args:
        source_code: The source code to analyse.

    Returns:
        Dict with keys:
            "indent": e.g. "2 spaces", "4 spaces", "tabs"
            "quotes": "single" or "double"
            "semicolons": "yes" or "no"
    """
    indent_style = "2 spaces"
    if not source_code:
        return {"indent": indent_style, "quotes": "single", "semicolons": "yes"}

    indent_counts: dict[int, int] = {}
    for line in source_code.splitlines():
        if not line or not line[0].isspace():
            continue
        if line[0] == "\t":
            indent_style = "tabs"
            break
        spaces = len(line) - len(line.lstrip(" "))
        if spaces > 0:
            indent_counts[spaces] = indent_counts.get(spaces, 0) + 1

    if indent_style != "tabs" and indent_counts:
        indent_style = f"{min(indent_counts)} spaces"

    quote_style = "single" if source_code.count("'") > source_code.count('"') else "double"

    statement_lines = [
        line.rstrip() for line in source_code.splitlines()
        if line.strip().startswith(("import ", "const ", "let ", "return "))
    ]
    with_semicolon = sum(1 for line in statement_lines if line.endswith(";"))
    semicolons = "no" if statement_lines and with_semicolon * 2 < len(statement_lines) else "yes"

    return {"indent": indent_style, "quotes": quote_style, "semicolons": semicolons}


def indent_unit(style: dict[str, str]) -> str:
    """Return the literal indentation string for a detected style."""
    if style.get("indent") == "tabs":
        return "\t"
    try:
        width = int(style.get("indent", "2 spaces").split()[0])
    except ValueError:
        width = 2
    return " " * width
