"""Emergency placeholder unit, written without any synthesis call."""

import logging
import re

from intelligent_modifier.agents.executors.base import (
    ExecutionContext,
    commit_file,
    successful_result,
)
from intelligent_modifier.models.change_models import ExecutorResult

logger = logging.getLogger(__name__)

STRATEGY = "EMERGENCY_PLACEHOLDER"
DEFAULT_NAME = "NewComponent"
_SKIP_WORDS = frozenset({"the", "and", "create", "add", "make", "new", "for"})
_PAGE_HINTS = ("page", "about", "contact", "dashboard", "home")

PLACEHOLDER_TEMPLATE = """import React from 'react';

const {name} = () => {{
  return (
    <div className="min-h-screen bg-gray-50 py-12 px-4">
      <div className="max-w-4xl mx-auto">
        <h1 className="text-3xl font-bold text-gray-900 mb-6">{title}</h1>
        <p className="text-gray-600">{request}</p>
      </div>
    </div>
  );
}};

export default {name};
"""


def placeholder_name(request: str) -> str:
    for word in re.findall(r"[A-Za-z]+", request):
        if len(word) > 2 and word.lower() not in _SKIP_WORDS:
            return word[0].upper() + word[1:].lower()
    return DEFAULT_NAME


def placeholder_content(name: str, request: str) -> str:
    safe_request = re.sub(r"[{}<>]", "", request).strip() or "Content coming soon."
    return PLACEHOLDER_TEMPLATE.format(
        name=name,
        title=re.sub(r"(?<=[a-z])(?=[A-Z])", " ", name),
        request=safe_request,
    )


class EmergencyPlaceholderWriter:
    """Writes a minimal page or component straight to disk.

    Used only after every other strategy has failed. Existing files are
    never overwritten; a numeric suffix is appended instead.
    """

    strategy = STRATEGY

    def execute(self, scope: object, ctx: ExecutionContext) -> ExecutorResult:
        name = placeholder_name(ctx.request)
        lowered = ctx.request.lower()
        folder = "pages" if any(hint in lowered for hint in _PAGE_HINTS) else "components"

        candidate, suffix = name, 1
        path = f"src/{folder}/{candidate}.tsx"
        while ctx.workspace.exists(path) or ctx.cache.get_file(ctx.session_id, path) is not None:
            suffix += 1
            candidate = f"{name}{suffix}"
            path = f"src/{folder}/{candidate}.tsx"

        change = commit_file(
            ctx,
            path,
            placeholder_content(candidate, ctx.request),
            approach=STRATEGY,
            description=f"Created placeholder {candidate}",
            reasoning=ctx.previous_error or "",
        )
        logger.warning("Wrote emergency placeholder %s", path)
        return successful_result(
            STRATEGY,
            [change],
            f"Created placeholder {folder[:-1]} {candidate} after other strategies failed",
            {"component_name": candidate},
        )
