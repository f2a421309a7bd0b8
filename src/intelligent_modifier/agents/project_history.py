"""Read-only access to a project's generation records."""

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from intelligent_modifier.agents.exceptions import IOFailure

logger = logging.getLogger(__name__)

DESIGN_RECORD = "design.json"
GENERATIONS_DIR = "generations"


class ProjectHistory(Protocol):
    """Lookup of how a project was originally generated."""

    def get_design_description(self, project_id: str) -> Optional[str]:
        ...

    def prior_generated_files(self, project_id: str) -> dict[str, str]:
        ...


class FileProjectHistory:
    """Project history stored as JSON records on disk.

    Layout::

        <records_dir>/<project_id>/design.json          {"description": "..."}
        <records_dir>/<project_id>/generations/*.json   {"files": {"path": "content"}}

    Generation records are merged in file-name order, so later records win
    for a path that appears in several of them.
    """

    def __init__(self, records_dir: str | Path):
        self.records_dir = Path(records_dir)

    def _project_dir(self, project_id: str) -> Path:
        candidate = (self.records_dir / project_id).resolve()
        if not candidate.is_relative_to(self.records_dir.resolve()):
            raise IOFailure(f"Invalid project id: {project_id}")
        return candidate

    def _load(self, path: Path) -> Optional[dict]:
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise IOFailure(f"Failed to read project record {path}: {exc}") from exc
        return data if isinstance(data, dict) else None

    def get_design_description(self, project_id: str) -> Optional[str]:
        record = self._load(self._project_dir(project_id) / DESIGN_RECORD)
        if record is None:
            return None
        description = record.get("description")
        return description if isinstance(description, str) and description else None

    def prior_generated_files(self, project_id: str) -> dict[str, str]:
        """Return every file recorded across all generations of a project."""
        generations = self._project_dir(project_id) / GENERATIONS_DIR
        if not generations.is_dir():
            return {}

        merged: dict[str, str] = {}
        for record_path in sorted(generations.glob("*.json")):
            record = self._load(record_path)
            if record is None:
                logger.warning("Ignoring malformed generation record %s", record_path)
                continue
            files = record.get("files", {})
            if not isinstance(files, dict):
                continue
            merged.update({
                str(path): content for path, content in files.items()
                if isinstance(content, str)
            })
        return merged
