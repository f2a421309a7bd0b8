"""Strategy executors, one per modification scope kind."""

from intelligent_modifier.agents.executors.ast_node_edit import ASTNodeEditExecutor
from intelligent_modifier.agents.executors.base import ExecutionContext, StrategyExecutor
from intelligent_modifier.agents.executors.component_synthesis import ComponentSynthesisExecutor
from intelligent_modifier.agents.executors.design_token import DesignTokenExecutor
from intelligent_modifier.agents.executors.emergency import EmergencyPlaceholderWriter
from intelligent_modifier.agents.executors.text_replace import TextReplaceExecutor
from intelligent_modifier.agents.executors.whole_file_regen import WholeFileRegenExecutor

__all__ = [
    "ASTNodeEditExecutor",
    "ComponentSynthesisExecutor",
    "DesignTokenExecutor",
    "EmergencyPlaceholderWriter",
    "ExecutionContext",
    "StrategyExecutor",
    "TextReplaceExecutor",
    "WholeFileRegenExecutor",
]
