"""Tests for diff_generator utility functions."""

import pytest

from intelligent_modifier.utils.diff_generator import (
    count_changed_lines,
    detect_code_style,
    generate_unified_diff,
    indent_unit,
)


def test_generate_unified_diff_basic():
    """Basic diff has --- a/ and +++ b/ headers and changed lines."""
    diff = generate_unified_diff(
        "src/App.tsx",
        "const title = 'Sign Up';\n",
        "const title = 'Join Now';\n",
    )
    assert diff.startswith("--- a/src/App.tsx")
    assert "+++ b/src/App.tsx" in diff
    assert "-const title = 'Sign Up';" in diff
    assert "+const title = 'Join Now';" in diff


def test_generate_unified_diff_no_changes():
    """Identical content returns empty string."""
    assert generate_unified_diff("a.tsx", "hello\n", "hello\n") == ""


def test_count_changed_lines_ignores_headers():
    diff = generate_unified_diff("f.tsx", "line1\nline2\nline3\n", "line1\nchanged\nline3\nline4\n")
    assert count_changed_lines(diff) == 3
    assert count_changed_lines("") == 0


class TestDetectCodeStyle:
    """Tests for detect_code_style."""

    def test_empty_source_defaults(self):
        assert detect_code_style("") == {"indent": "2 spaces", "quotes": "single", "semicolons": "yes"}

    def test_two_space_single_quotes_no_semicolons(self):
        source = "import React from 'react'\nconst a = 'x'\n\nfunction f() {\n  return a\n}\n"
        assert detect_code_style(source) == {"indent": "2 spaces", "quotes": "single", "semicolons": "no"}

    def test_four_spaces_with_semicolons(self):
        source = 'import x from "x";\nfunction f() {\n    if (x) {\n        return "y";\n    }\n}\n'
        assert detect_code_style(source) == {"indent": "4 spaces", "quotes": "double", "semicolons": "yes"}

    def test_tabs(self):
        assert detect_code_style("function f() {\n\treturn 1;\n}\n")["indent"] == "tabs"


@pytest.mark.parametrize("style,unit", [
    ({"indent": "tabs"}, "\t"),
    ({"indent": "4 spaces"}, "    "),
    ({"indent": "odd"}, "  "),
    ({}, "  "),
])
def test_indent_unit(style, unit):
    assert indent_unit(style) == unit
