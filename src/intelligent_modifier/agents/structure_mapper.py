"""Project structure mapper for generated web projects."""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from intelligent_modifier.agents.exceptions import SourceParseError
from intelligent_modifier.models.project_models import (
    DataLayerInfo,
    MappedFile,
    ProjectScan,
    ProjectStructureMap,
    StructureSummary,
    StructureValidation,
)
from intelligent_modifier.utils.ast_parser import (
    categorize_import,
    extract_exports,
    extract_imports,
    has_syntax_errors,
    is_script,
    parse_source,
)
from intelligent_modifier.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = frozenset({
    "node_modules", ".git", "dist", "build", ".next", ".nuxt",
    "coverage", ".nyc_output", "temp-builds", ".temp",
})
EXCLUDED_FILES = frozenset({
    ".DS_Store", "Thumbs.db", ".gitignore", ".env.local", ".env.development",
    ".env.production", "yarn.lock", "package-lock.json", "pnpm-lock.yaml",
})
PRIORITY_DIRS = frozenset({
    "src", "supabase", "public", "components", "pages", "utils", "lib", "types", "contexts",
})
RELEVANT_EXTENSIONS = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".json", ".css", ".scss", ".sass", ".html",
    ".md", ".sql", ".env", ".yml", ".yaml", ".toml",
})
KEY_FILES = frozenset({"package.json", "tailwind.config.ts", "vite.config.ts", "tsconfig.json"})
PRIORITY_FILES = (
    "package.json",
    "tailwind.config.ts",
    "vite.config.ts",
    "tsconfig.json",
    "src/App.tsx",
    "src/main.tsx",
    "src/index.tsx",
)
STYLESHEET_EXTENSIONS = frozenset({".css", ".scss", ".sass"})
DATA_LAYER_DIR = "supabase"

MAX_FILE_SIZE = 200_000  # Max chars kept in the file cache per file
MAX_SUMMARY_FILES = 60  # Max files listed in a rendered summary
DEFAULT_MAX_WORKERS = 4


def _sort_key(relative_path: str) -> tuple[int, int, str]:
    if relative_path in PRIORITY_FILES:
        return (0, PRIORITY_FILES.index(relative_path), relative_path)
    if relative_path.startswith("src/"):
        return (1, 0, relative_path)
    return (2, 0, relative_path)


class ProjectStructureMapper:
    """Walks a project tree and builds its structure map."""

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        """Initialize the mapper.

        Args:
            max_workers: Thread count for the per-file parse phase; 1 parses inline.
            max_file_size: Files larger than this are mapped but not cached.
        """
        self.max_workers = max(1, max_workers)
        self.max_file_size = max_file_size

    def scan(
        self,
        root: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProjectScan:
        """Map a project and collect its file contents in one walk.

        A file that fails to read or parse is recorded with empty imports and
        exports; the scan always returns a complete structure.

        Args:
            root: Path to the project root
            cancel_token: Checked before each file is processed

        Returns:
            ProjectScan with the structure map and relative path -> content

        Raises:
            FileNotFoundError: If the root does not exist
            ModificationCancelled: If the token is cancelled mid-scan
        """
        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise FileNotFoundError(f"Project root not found: {root}")

        relative_paths = self._discover_files(root_path)

        def process(relative_path: str) -> tuple[MappedFile, Optional[str]]:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(f"scanning {relative_path}")
            return self._map_file(root_path, relative_path)

        if self.max_workers > 1 and len(relative_paths) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(process, relative_paths))
        else:
            results = [process(relative_path) for relative_path in relative_paths]

        mapped_files = [mapped for mapped, _ in results]
        contents = {
            relative_path: content
            for relative_path, (_, content) in zip(relative_paths, results)
            if content is not None
        }

        structure = ProjectStructureMap(
            root=str(root_path),
            files=mapped_files,
            summary=self._build_summary(mapped_files),
            validation=self._build_validation(mapped_files),
            data_layer=self._data_layer_info(mapped_files),
        )
        failed = sum(1 for mapped in mapped_files if mapped.parse_error)
        logger.info(
            "Mapped %d files under %s (%d with parse errors)",
            len(mapped_files), root_path, failed,
        )
        return ProjectScan(structure=structure, contents=contents)

    def map_project(self, root: str) -> ProjectStructureMap:
        return self.scan(root).structure

    def collect_files(self, root: str) -> dict[str, str]:
        return self.scan(root).contents

    def _discover_files(self, root_path: Path) -> list[str]:
        """Walk the tree and return relevant relative paths in priority order.

        Root-level directories are always entered; deeper ones only when some
        component of their path is a priority directory.
        """
        found: list[str] = []

        def walk(directory: Path, relative: str) -> None:
            for entry in sorted(directory.iterdir(), key=lambda p: p.name):
                # Skip symlinks to prevent path traversal
                if entry.is_symlink():
                    continue
                entry_relative = f"{relative}/{entry.name}" if relative else entry.name
                if entry.is_dir():
                    if entry.name in EXCLUDED_DIRS:
                        continue
                    if relative == "" or any(
                        part in PRIORITY_DIRS for part in entry_relative.split("/")
                    ):
                        walk(entry, entry_relative)
                elif entry.is_file():
                    if entry.name in EXCLUDED_FILES:
                        continue
                    if entry.name in KEY_FILES or entry.suffix in RELEVANT_EXTENSIONS:
                        found.append(entry_relative)

        walk(root_path, "")
        return sorted(found, key=_sort_key)

    def _map_file(self, root_path: Path, relative_path: str) -> tuple[MappedFile, Optional[str]]:
        name = Path(relative_path).name
        mapped = MappedFile(file=name, path=f"/{relative_path}")
        try:
            content = (root_path / relative_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", relative_path, exc)
            mapped.parse_error = str(exc)
            return mapped, None

        if is_script(relative_path):
            try:
                mapped.imports, mapped.exports = self._analyze_source(relative_path, content)
            except (SourceParseError, ValueError) as exc:
                logger.warning("Parse failed for %s: %s", relative_path, exc)
                mapped.parse_error = str(exc)
        else:
            mapped.imports = self._heuristic_imports(name)

        if len(content) > self.max_file_size:
            logger.debug("Not caching %s (%d chars)", relative_path, len(content))
            return mapped, None
        return mapped, content

    def _analyze_source(self, relative_path: str, content: str) -> tuple[list[str], list[str]]:
        """Parse a script and return (import categories, export names).

        Raises:
            SourceParseError: If the file has syntax errors.
        """
        tree, language = parse_source(content, relative_path)
        if has_syntax_errors(tree):
            raise SourceParseError(f"{relative_path}: syntax error")

        categories: list[str] = []
        for import_path in extract_imports(tree, language):
            category = categorize_import(import_path)
            if category not in categories:
                categories.append(category)
        return categories, extract_exports(tree)

    def _heuristic_imports(self, name: str) -> list[str]:
        suffix = Path(name).suffix
        if suffix in STYLESHEET_EXTENSIONS:
            if "tailwind" in name or name == "index.css":
                return ["tailwindcss"]
            return []
        if name == "package.json":
            return ["dependencies", "devDependencies"]
        return []

    def _build_summary(self, files: list[MappedFile]) -> StructureSummary:
        files_by_type: dict[str, int] = {}
        for mapped in files:
            ext = Path(mapped.file).suffix.lstrip(".") or "other"
            files_by_type[ext] = files_by_type.get(ext, 0) + 1

        has_src = any("/src/" in mapped.path for mapped in files)
        has_package_json = any(mapped.file == "package.json" for mapped in files)
        return StructureSummary(
            total_files=len(files),
            files_by_type=files_by_type,
            structure_depth=max((mapped.path.count("/") for mapped in files), default=0),
            has_valid_structure=has_src and has_package_json,
        )

    def _build_validation(self, files: list[MappedFile]) -> StructureValidation:
        return StructureValidation(
            file_structure=any("/src/" in mapped.path for mapped in files),
            data_layer_present=any(f"/{DATA_LAYER_DIR}/" in mapped.path for mapped in files),
            styling_config_present=any("tailwind" in mapped.file for mapped in files),
        )

    def _data_layer_info(self, files: list[MappedFile]) -> DataLayerInfo:
        data_files = [mapped for mapped in files if mapped.path.startswith(f"/{DATA_LAYER_DIR}/")]
        return DataLayerInfo(
            files_found=len(data_files),
            has_config=any(mapped.file == "config.toml" for mapped in data_files),
            migration_count=sum(
                1 for mapped in data_files
                if "/migrations/" in mapped.path and mapped.file.endswith(".sql")
            ),
            has_seed_file=any(
                mapped.file.startswith("seed") and mapped.file.endswith(".sql")
                for mapped in data_files
            ),
        )


def render_summary(
    structure: ProjectStructureMap,
    project_description: Optional[str] = None,
    max_files: int = MAX_SUMMARY_FILES,
) -> str:
    """Render a structure map as compact prompt context."""
    summary = structure.summary
    validation = structure.validation
    by_type = ", ".join(f"{ext}: {count}" for ext, count in sorted(summary.files_by_type.items()))

    lines = []
    if project_description:
        lines.append(f"Project description: {project_description}")
    lines.append(f"Project: {summary.total_files} files ({by_type}), depth {summary.structure_depth}")
    data_layer = "no"
    if validation.data_layer_present:
        data_layer = (
            f"yes ({structure.data_layer.files_found} files, "
            f"{structure.data_layer.migration_count} migrations)"
        )
    lines.append(
        f"Layout: src={'yes' if validation.file_structure else 'no'}, "
        f"data layer={data_layer}, "
        f"styling config={'yes' if validation.styling_config_present else 'no'}"
    )
    lines.append("Files:")
    for mapped in structure.files[:max_files]:
        detail = ""
        if mapped.imports:
            detail += f" imports[{', '.join(mapped.imports)}]"
        if mapped.exports:
            detail += f" exports[{', '.join(mapped.exports)}]"
        if mapped.parse_error:
            detail += " (unparsed)"
        lines.append(f"- {mapped.path}{detail}")
    remaining = len(structure.files) - max_files
    if remaining > 0:
        lines.append(f"... and {remaining} more files")
    return "\n".join(lines)
