"""Data models for the modification engine."""

from intelligent_modifier.models.change_models import (
    AttemptRecord,
    ChangeType,
    ExecutorResult,
    ModificationChange,
    ModificationRequest,
    ModificationResult,
    UsageStats,
)
from intelligent_modifier.models.project_models import (
    DataLayerInfo,
    JsxNodeInfo,
    MappedFile,
    ProjectFile,
    ProjectScan,
    ProjectStructureMap,
    SessionContext,
    StructureSummary,
    StructureValidation,
    content_hash,
)
from intelligent_modifier.models.scope_models import (
    ColorChange,
    ComponentAdditionScope,
    DesignTokenChangeScope,
    FullFileScope,
    ModificationScope,
    ScopeKind,
    TargetedNodesScope,
    TargetNode,
    TextBasedChangeScope,
    TextChangeAnalysis,
    TreeInformation,
)

__all__ = [
    "AttemptRecord",
    "ChangeType",
    "ColorChange",
    "ComponentAdditionScope",
    "DataLayerInfo",
    "DesignTokenChangeScope",
    "ExecutorResult",
    "FullFileScope",
    "JsxNodeInfo",
    "MappedFile",
    "ModificationChange",
    "ModificationRequest",
    "ModificationResult",
    "ModificationScope",
    "ProjectFile",
    "ProjectScan",
    "ProjectStructureMap",
    "ScopeKind",
    "SessionContext",
    "StructureSummary",
    "StructureValidation",
    "TargetedNodesScope",
    "TargetNode",
    "TextBasedChangeScope",
    "TextChangeAnalysis",
    "TreeInformation",
    "UsageStats",
    "content_hash",
]
