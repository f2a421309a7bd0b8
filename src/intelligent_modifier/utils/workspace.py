"""Filesystem access confined to a session's build directory."""

import logging
import shutil
from pathlib import Path

from intelligent_modifier.agents.exceptions import IOFailure

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


class ProjectWorkspace:
    """Reads and writes files under one working root.

    All paths are relative POSIX paths; anything that resolves outside the
    root is rejected.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def resolve(self, relative_path: str) -> Path:
        """Map a relative path to an absolute one inside the root.

        Raises:
            IOFailure: If the path escapes the root.
        """
        candidate = (self.root / relative_path.lstrip("/")).resolve()
        if not candidate.is_relative_to(self.root):
            raise IOFailure(f"Path escapes workspace root: {relative_path}")
        return candidate

    def exists(self, relative_path: str) -> bool:
        try:
            return self.resolve(relative_path).is_file()
        except IOFailure:
            return False

    def read_text(self, relative_path: str) -> str:
        path = self.resolve(relative_path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise IOFailure(f"Failed to read '{relative_path}': {exc}") from exc

    def write_text(self, relative_path: str, content: str) -> None:
        """Write a file, creating parent directories as needed."""
        path = self.resolve(relative_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise IOFailure(f"Failed to write '{relative_path}': {exc}") from exc
        logger.debug("Wrote %s (%d chars)", relative_path, len(content))

    def remove(self, relative_path: str) -> None:
        """Delete a file; a missing file is not an error."""
        path = self.resolve(relative_path)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise IOFailure(f"Failed to remove '{relative_path}': {exc}") from exc
        logger.debug("Removed %s", relative_path)

    def backup(self, relative_path: str) -> str | None:
        """Copy an existing file to ``<file>.backup``.

        Returns:
            The backup's relative path, or None when there was nothing to copy.
        """
        source = self.resolve(relative_path)
        if not source.is_file():
            return None
        backup_relative = f"{relative_path}{BACKUP_SUFFIX}"
        try:
            shutil.copy2(source, self.resolve(backup_relative))
        except OSError as exc:
            raise IOFailure(f"Failed to back up '{relative_path}': {exc}") from exc
        logger.info("Backed up %s", relative_path)
        return backup_relative
