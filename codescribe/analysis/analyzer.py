"""Directory-batched parallel codebase analyzer.

Discovers candidate files under a project root, groups them by
directory and analyzes the directories in fixed-size concurrent
batches. Per-file facts are then aggregated into a ProjectAnalysis
together with detected frameworks, databases, deployment targets, the
architecture summary and the holistic sweep.

Usage::

    analysis = asyncio.run(analyze("path/to/project"))
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional

from codescribe.analysis.detectors import (
    detect_databases,
    detect_deployments,
    detect_frameworks,
)
from codescribe.analysis.holistic import holistic_sweep, summarize_architecture
from codescribe.parsers.file_types import classify_file, is_script
from codescribe.parsers.js_parser import JSParser
from codescribe.parsers.python_parser import PythonParser
from codescribe.parsers.structure import FileRecord, FileType, ProjectAnalysis
from codescribe.parsers.syntax import SourceParseError
from codescribe.utils.config import AnalysisConfig

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

# Failures that degrade a single file to a shell-only record. Deeply nested
# sources exhaust the parser stack or the recursion limit.
FILE_ERRORS = (
    SourceParseError,
    SyntaxError,
    UnicodeDecodeError,
    json.JSONDecodeError,
    OSError,
    RecursionError,
    MemoryError,
)


@dataclass
class AnalyzerContext:
    """State for one analysis run.

    Built fresh by every ``analyze`` call and passed explicitly, so
    concurrent runs in one process never share parser or manifest state.

    Attributes:
        root: Resolved project root.
        config: Discovery and batching settings.
        manifest: Parsed root package.json, or an empty dict.
        js_parser: Extractor for JS/TS sources.
        python_parser: Extractor for Python sources.
    """

    root: Path
    config: AnalysisConfig
    manifest: dict[str, Any] = field(default_factory=dict)
    js_parser: JSParser = field(default_factory=JSParser)
    python_parser: PythonParser = field(default_factory=PythonParser)


class CodebaseAnalyzer:
    """Analyzes a project directory into a ProjectAnalysis.

    Args:
        root_path: Project root directory.
        config: Analysis settings. Defaults to ``AnalysisConfig()``.
    """

    def __init__(self, root_path: str, config: Optional[AnalysisConfig] = None) -> None:
        self.root_path = root_path
        self.config = config or AnalysisConfig()

    async def analyze(
        self, progress_callback: Optional[ProgressCallback] = None
    ) -> ProjectAnalysis:
        """Run the full analysis.

        Args:
            progress_callback: Called as ``callback(status, percent)`` at
                coarse milestones. Percentages never decrease.

        Returns:
            The aggregated project analysis.

        Raises:
            FileNotFoundError: If the root does not exist.
            NotADirectoryError: If the root is not a directory.
        """
        root = Path(self.root_path).resolve()
        if not root.exists():
            raise FileNotFoundError(f"Project root not found: {self.root_path}")
        if not root.is_dir():
            raise NotADirectoryError(f"Project root is not a directory: {self.root_path}")

        def report(status: str, percent: float) -> None:
            if progress_callback is not None:
                progress_callback(status, percent)

        report("Reading project configuration...", 0)
        context = AnalyzerContext(root=root, config=self.config, manifest=read_manifest(root))

        report("Discovering files...", 10)
        paths = await asyncio.to_thread(discover_files, root, self.config)

        report("Organizing by directories...", 20)
        groups = group_by_directory(root, paths)

        report("Processing directories in parallel...", 30)
        files = await self._analyze_in_batches(context, groups, report)

        report("Detecting frameworks and technologies...", 80)
        frameworks = detect_frameworks(files)
        databases = detect_databases(files)
        scripts = _string_map(context.manifest.get("scripts"))
        deployments = detect_deployments(str(root), scripts)

        report("Analyzing architecture...", 90)
        architecture = summarize_architecture(files)

        report("Running holistic sweep...", 95)
        holistic = holistic_sweep(files, frameworks)

        report("Analysis complete", 100)
        logger.info(
            "Analyzed %d files in %d directories under %s", len(files), len(groups), root
        )

        return ProjectAnalysis(
            project_name=str(context.manifest.get("name") or root.name),
            root_path=str(root),
            files=files,
            dependencies=_string_map(context.manifest.get("dependencies")),
            dev_dependencies=_string_map(context.manifest.get("devDependencies")),
            scripts=scripts,
            frameworks=frameworks,
            databases=databases,
            deployments=deployments,
            architecture=architecture,
            holistic=holistic,
        )

    async def _analyze_in_batches(
        self,
        context: AnalyzerContext,
        groups: dict[str, list[Path]],
        report: ProgressCallback,
    ) -> list[FileRecord]:
        """Analyze directories ``batch_size`` at a time.

        Directories of one batch run concurrently; the next batch starts
        only after the whole batch finished. Results are appended by this
        coroutine alone, between batches.
        """
        directories = list(groups)
        batch_size = max(1, context.config.batch_size)
        total_batches = (len(directories) + batch_size - 1) // batch_size
        files: list[FileRecord] = []

        for index, start in enumerate(range(0, len(directories), batch_size), start=1):
            batch = directories[start : start + batch_size]
            results = await asyncio.gather(
                *(self._analyze_directory(context, d, groups[d]) for d in batch)
            )
            for records in results:
                files.extend(records)
            report(
                f"Processed batch {index}/{total_batches} ({', '.join(batch)})",
                30 + 50 * index / total_batches,
            )
        return files

    async def _analyze_directory(
        self, context: AnalyzerContext, directory: str, paths: list[Path]
    ) -> list[FileRecord]:
        """Analyze every file of one directory concurrently."""
        logger.debug("Processing %s (%d files)", directory, len(paths))
        return list(await asyncio.gather(*(self._analyze_file(context, p) for p in paths)))

    async def _analyze_file(self, context: AnalyzerContext, path: Path) -> FileRecord:
        work = asyncio.to_thread(build_record, context, path)
        timeout = context.config.file_timeout
        if timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, timeout)
        except asyncio.TimeoutError:
            relative = path.relative_to(context.root).as_posix()
            logger.warning("Timed out after %ss analyzing %s", timeout, relative)
            return FileRecord(
                path=str(path), relative_path=relative, file_type=classify_file(relative)
            )


async def analyze(
    root_path: str,
    progress_callback: Optional[ProgressCallback] = None,
    config: Optional[AnalysisConfig] = None,
) -> ProjectAnalysis:
    """Analyze a project directory.

    Args:
        root_path: Project root directory.
        progress_callback: Optional ``callback(status, percent)``.
        config: Analysis settings.

    Returns:
        The aggregated project analysis.
    """
    return await CodebaseAnalyzer(root_path, config).analyze(progress_callback)


def read_manifest(root: Path) -> dict[str, Any]:
    """Read the root package.json.

    Returns:
        The parsed manifest, or an empty dict when it is missing or
        malformed (a warning is logged).
    """
    path = root / "package.json"
    if not path.is_file():
        logger.warning("No package.json in %s, dependency and script maps are empty", root)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top-level value is not an object", path)
        return {}
    return data


def discover_files(root: Path, config: AnalysisConfig) -> list[Path]:
    """Find candidate files under ``root``.

    A file is picked up when its suffix is in ``include_extensions``, its
    name is in ``include_filenames`` or it lives under one of the
    ``include_directories``. Ignored directories are pruned anywhere in
    the tree and file names matching ``ignore_patterns`` are skipped.

    Returns:
        Absolute paths in a stable, sorted walk order.
    """
    extensions = {ext.lower() for ext in config.include_extensions}
    filenames = set(config.include_filenames)
    include_dirs = set(config.include_directories)
    ignore_dirs = set(config.ignore_directories)

    found: list[Path] = []
    for dirpath, dirnames, names in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in ignore_dirs)
        current = Path(dirpath)
        in_included_dir = bool(include_dirs.intersection(current.relative_to(root).parts))
        for name in sorted(names):
            if any(fnmatch(name, pattern) for pattern in config.ignore_patterns):
                continue
            path = current / name
            if in_included_dir or name in filenames or path.suffix.lower() in extensions:
                found.append(path)

    logger.debug("Discovered %d files under %s", len(found), root)
    return found


def group_by_directory(root: Path, paths: list[Path]) -> dict[str, list[Path]]:
    """Group paths by their directory relative to ``root``.

    The root directory itself is keyed ``"."``; groups keep discovery order.
    """
    groups: dict[str, list[Path]] = {}
    for path in paths:
        directory = path.parent.relative_to(root).as_posix()
        groups.setdefault(directory, []).append(path)
    return groups


def build_record(context: AnalyzerContext, path: Path) -> FileRecord:
    """Read one file and extract its facts.

    Any failure in reading or parsing leaves a shell-only record and
    logs a warning; it never propagates.

    Args:
        context: The current run.
        path: Absolute file path under the root.

    Returns:
        The file's record.
    """
    relative = path.relative_to(context.root).as_posix()
    record = FileRecord(path=str(path), relative_path=relative, file_type=classify_file(relative))
    try:
        stat = path.stat()
        record.size = stat.st_size
        record.last_modified = datetime.fromtimestamp(stat.st_mtime)
        record.content = path.read_text(encoding="utf-8")
        _extract_facts(context, record)
    except FILE_ERRORS as e:
        record.clear_facts()
        logger.warning("Failed to parse %s: %s", relative, e)
    return record


def _extract_facts(context: AnalyzerContext, record: FileRecord) -> None:
    if is_script(record.file_type):
        context.js_parser.parse_source(record.content, record)
    elif record.file_type == FileType.PYTHON:
        context.python_parser.parse_source(record.content, record)
    elif record.file_type == FileType.JSON:
        data = json.loads(record.content)
        if PurePosixPath(record.relative_path).name == "package.json" and isinstance(data, dict):
            record.dependencies = list(_string_map(data.get("dependencies")))


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(item) for key, item in value.items()}
