"""Typed responses of the code-synthesis collaborator.

Each model doubles as the tool-use input schema sent to the LLM and as the
validator applied to whatever comes back.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

COMPONENT_NAME_PATTERN = r"^[A-Z][A-Za-z0-9]*$"


class ScopeDecision(BaseModel):
    """Classification verdict for a modification request."""

    model_config = ConfigDict(extra="ignore")

    scope: Literal[
        "TEXT_BASED_CHANGE",
        "TARGETED_NODES",
        "COMPONENT_ADDITION",
        "DESIGN_TOKEN_CHANGE",
        "FULL_FILE",
    ]
    reasoning: str = Field(description="Short explanation of the choice")
    search_term: Optional[str] = Field(default=None, description="Exact text to find")
    replacement_term: Optional[str] = Field(default=None, description="Text to put in its place")
    search_variations: list[str] = Field(default_factory=list)
    target_node_ids: list[str] = Field(
        default_factory=list,
        description="Ids from the compact node tree, most relevant first",
    )
    component_name: Optional[str] = None
    component_type: Optional[Literal["page", "component", "app"]] = None
    token_type: Optional[str] = Field(default=None, description="color, typography or spacing")
    token_value: Optional[str] = None
    target_scope: Optional[str] = None


class RequiredImport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: str = Field(min_length=1, description="Module specifier, e.g. 'lucide-react'")
    default: Optional[str] = None
    names: list[str] = Field(default_factory=list)


class NodeEdit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    node_id: str
    new_code: str = Field(min_length=1, description="Replacement JSX for the whole node")
    required_imports: list[RequiredImport] = Field(default_factory=list)


class NodeEditBatch(BaseModel):
    """Edits for the target nodes of one file."""

    model_config = ConfigDict(extra="ignore")

    edits: list[NodeEdit] = Field(default_factory=list)


class IntegrationPlan(BaseModel):
    """Where a synthesized unit gets wired into the project."""

    model_config = ConfigDict(extra="ignore")

    route_path: Optional[str] = Field(default=None, description="URL path for a page, e.g. /faq")
    route_file: Optional[str] = Field(default=None, description="File holding the <Routes> table")
    import_site: Optional[str] = Field(default=None, description="File that must import the unit")
    mount_in_parent: bool = Field(
        default=False,
        description="Render the component inside the import site's top-level JSX",
    )


class ComponentPlan(BaseModel):
    """A new self-contained unit plus its integration plan."""

    model_config = ConfigDict(extra="ignore")

    component_name: str = Field(pattern=COMPONENT_NAME_PATTERN)
    component_type: Literal["page", "component"]
    file_path: str = Field(description="Relative path, e.g. src/pages/FAQ.tsx")
    content: str = Field(min_length=1)
    integration: IntegrationPlan = Field(default_factory=IntegrationPlan)


class DesignTokenRewrite(BaseModel):
    """Full rewrites of the token config and the global stylesheet."""

    model_config = ConfigDict(extra="ignore")

    token_config: str = Field(min_length=1, description="Complete tailwind config file")
    stylesheet: str = Field(min_length=1, description="Complete global stylesheet")
    summary: str = ""


class FileSelection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_paths: list[str] = Field(default_factory=list)
    reasoning: str = ""


class SynthesizedFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_path: str
    content: str = Field(min_length=1)


class RegeneratedFiles(BaseModel):
    model_config = ConfigDict(extra="ignore")

    files: list[SynthesizedFile] = Field(min_length=1)
    summary: str = ""
