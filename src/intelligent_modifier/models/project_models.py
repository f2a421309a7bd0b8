"""Project-level data models: cached files, structure map, session context."""

import hashlib
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def content_hash(content: str) -> str:
    """Return the SHA256 hex digest of file content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ProjectFile(BaseModel):
    """A single cached project file.

    Instances are frozen; a write produces a new instance through
    ``ProjectFile.from_content`` so the hash always matches the content.
    """

    model_config = ConfigDict(frozen=True)

    path: str  # relative POSIX path, e.g. "src/App.tsx"
    content: str
    content_hash: str
    last_modified: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_content(
        cls,
        path: str,
        content: str,
        last_modified: Optional[datetime] = None,
    ) -> "ProjectFile":
        return cls(
            path=path,
            content=content,
            content_hash=content_hash(content),
            last_modified=last_modified or datetime.now(),
        )


class MappedFile(BaseModel):
    """One entry of the structure map."""

    model_config = ConfigDict(frozen=False)

    file: str  # file name, e.g. "App.tsx"
    path: str  # "/"-prefixed relative path, e.g. "/src/App.tsx"
    imports: list[str] = Field(default_factory=list)  # import categories
    exports: list[str] = Field(default_factory=list)  # exported symbol names
    parse_error: Optional[str] = None


class StructureSummary(BaseModel):
    """Aggregate figures over the mapped tree."""

    model_config = ConfigDict(frozen=False)

    total_files: int = 0
    files_by_type: dict[str, int] = Field(default_factory=dict)
    structure_depth: int = 0
    has_valid_structure: bool = False


class StructureValidation(BaseModel):
    """Boolean layout checks over the mapped tree."""

    model_config = ConfigDict(frozen=False)

    file_structure: bool = False  # a /src/ layout is recognisable
    data_layer_present: bool = False  # a /supabase/ directory exists
    styling_config_present: bool = False  # a tailwind config exists


class DataLayerInfo(BaseModel):
    """Facts about the data-layer directory (supabase/)."""

    model_config = ConfigDict(frozen=False)

    files_found: int = 0
    has_config: bool = False
    migration_count: int = 0
    has_seed_file: bool = False


class ProjectStructureMap(BaseModel):
    """Complete structure map. Rebuilt wholesale on every scan."""

    model_config = ConfigDict(frozen=False)

    root: str
    files: list[MappedFile] = Field(default_factory=list)
    summary: StructureSummary = Field(default_factory=StructureSummary)
    validation: StructureValidation = Field(default_factory=StructureValidation)
    data_layer: DataLayerInfo = Field(default_factory=DataLayerInfo)
    scanned_at: datetime = Field(default_factory=datetime.now)


class SessionContext(BaseModel):
    """Per-session bookkeeping kept by the session registry."""

    model_config = ConfigDict(frozen=False)

    session_id: str
    build_directory: str
    created_at: datetime = Field(default_factory=datetime.now)
    last_activity: datetime = Field(default_factory=datetime.now)
    cached_summary: Optional[str] = None
    phase: str = "INIT"
    message_count: int = 0


class JsxNodeInfo(BaseModel):
    """A JSX element located in a parsed file."""

    model_config = ConfigDict(frozen=False)

    file_path: str
    node_kind: str  # "jsx_element" or "jsx_self_closing_element"
    structural_path: list[int]
    tag_name: str
    class_name: Optional[str] = None
    display_text: str = ""
    start_line: int
    end_line: int
    is_interactive: bool = False


class ProjectScan(BaseModel):
    """Result of one directory walk: the structure map plus file contents."""

    model_config = ConfigDict(frozen=False)

    structure: ProjectStructureMap
    contents: dict[str, str] = Field(default_factory=dict)  # relative path -> text
