"""Modification scope models: the closed set of strategies a request can take."""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ScopeKind(str, Enum):
    """The five execution strategies."""

    TEXT_BASED_CHANGE = "TEXT_BASED_CHANGE"
    TARGETED_NODES = "TARGETED_NODES"
    COMPONENT_ADDITION = "COMPONENT_ADDITION"
    DESIGN_TOKEN_CHANGE = "DESIGN_TOKEN_CHANGE"
    FULL_FILE = "FULL_FILE"


class TextChangeAnalysis(BaseModel):
    """Find/replace terms for a literal text swap."""

    model_config = ConfigDict(frozen=False)

    search_term: str = Field(min_length=1)
    replacement_term: str
    search_variations: list[str] = Field(default_factory=list)


class TargetNode(BaseModel):
    """A structurally addressed JSX node.

    ``structural_path`` is the list of named-child indices from the file root.
    It is re-resolved against current content before every edit.
    """

    model_config = ConfigDict(frozen=False)

    file_path: str
    node_kind: str  # tree-sitter node type, e.g. "jsx_element"
    structural_path: list[int]
    tag_name: Optional[str] = None
    rank: int = 0  # 0 = most relevant
    node_id: str = ""
    description: str = ""


class TreeInformation(BaseModel):
    """Counts and compact rendering of the JSX node tree."""

    model_config = ConfigDict(frozen=False)

    total_files: int = 0
    total_nodes: int = 0
    total_imports: int = 0
    compact_tree: str = ""


class ColorChange(BaseModel):
    model_config = ConfigDict(frozen=False)

    type: str  # "background", "primary", "secondary", "accent", "general"
    color: str
    target: str


class TextBasedChangeScope(BaseModel):
    model_config = ConfigDict(frozen=False)

    kind: Literal["TEXT_BASED_CHANGE"] = "TEXT_BASED_CHANGE"
    reasoning: str = ""
    text_change: TextChangeAnalysis


class TargetedNodesScope(BaseModel):
    model_config = ConfigDict(frozen=False)

    kind: Literal["TARGETED_NODES"] = "TARGETED_NODES"
    reasoning: str = ""
    tree_information: TreeInformation = Field(default_factory=TreeInformation)
    target_nodes: list[TargetNode] = Field(default_factory=list)


class ComponentAdditionScope(BaseModel):
    model_config = ConfigDict(frozen=False)

    kind: Literal["COMPONENT_ADDITION"] = "COMPONENT_ADDITION"
    reasoning: str = ""
    component_name: Optional[str] = None  # hint only
    component_type: Literal["page", "component", "app"] = "component"


class DesignTokenChangeScope(BaseModel):
    model_config = ConfigDict(frozen=False)

    kind: Literal["DESIGN_TOKEN_CHANGE"] = "DESIGN_TOKEN_CHANGE"
    reasoning: str = ""
    token_type: str = "color"  # "color", "typography", "spacing"
    value: str = ""
    target_scope: str = "global"
    color_changes: list[ColorChange] = Field(default_factory=list)


class FullFileScope(BaseModel):
    model_config = ConfigDict(frozen=False)

    kind: Literal["FULL_FILE"] = "FULL_FILE"
    reasoning: str = ""


ModificationScope = Annotated[
    Union[
        TextBasedChangeScope,
        TargetedNodesScope,
        ComponentAdditionScope,
        DesignTokenChangeScope,
        FullFileScope,
    ],
    Field(discriminator="kind"),
]
