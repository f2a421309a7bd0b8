"""Utilities for the modification engine."""

from intelligent_modifier.utils.cancellation import CancellationToken
from intelligent_modifier.utils.diff_generator import (
    count_changed_lines,
    detect_code_style,
    generate_unified_diff,
)
from intelligent_modifier.utils.workspace import ProjectWorkspace

__all__ = [
    "CancellationToken",
    "ProjectWorkspace",
    "count_changed_lines",
    "detect_code_style",
    "generate_unified_diff",
]
