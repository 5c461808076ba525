"""Data models for the structural facts extracted from a codebase.

Defines dataclasses for per-file facts (functions, classes, UI
components, routes, queries), the per-file record that bundles them,
and the project-wide analysis built from all records. These models
form the shared vocabulary between the parsers, the analyzer, the
workflow classifier and the documentation generators.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class FileType(str, Enum):
    """Semantic tag assigned to every discovered file."""

    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    VUE = "vue"
    SVELTE = "svelte"
    CSS = "css"
    SCSS = "scss"
    HTML = "html"
    JSON = "json"
    YAML = "yaml"
    MARKDOWN = "markdown"
    PYTHON = "python"
    GO = "go"
    RUST = "rust"
    JAVA = "java"
    CONFIG = "config"
    UNKNOWN = "unknown"


@dataclass
class FunctionFact:
    """A function or method signature.

    Attributes:
        name: Function name, or ``"anonymous"``.
        params: Parameter names in declaration order. Destructured
            parameters are reported as ``"param"``.
        is_async: Whether the function is declared async.
        is_exported: Whether the declaration sits directly inside an
            export statement.
        start_line: 1-based first line.
        end_line: 1-based last line.
    """

    name: str
    params: list[str] = field(default_factory=list)
    is_async: bool = False
    is_exported: bool = False
    start_line: int = 0
    end_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary.

        Returns:
            Dictionary representation of this function.
        """
        return {
            "name": self.name,
            "params": list(self.params),
            "is_async": self.is_async,
            "is_exported": self.is_exported,
            "start_line": self.start_line,
            "end_line": self.end_line,
        }


@dataclass
class ClassFact:
    """A class declaration and its methods.

    Attributes:
        name: Class name.
        methods: Method signatures in body order.
        superclass: Name of the extended class, if any.
        is_exported: Whether the class is exported.
    """

    name: str
    methods: list[FunctionFact] = field(default_factory=list)
    superclass: Optional[str] = None
    is_exported: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary.

        Returns:
            Dictionary representation of this class.
        """
        return {
            "name": self.name,
            "methods": [m.to_dict() for m in self.methods],
            "superclass": self.superclass,
            "is_exported": self.is_exported,
        }


@dataclass
class ComponentFact:
    """A UI component, keyed by the function that renders markup.

    Attributes:
        name: Name of the rendering function.
        props: Prop names taken from the first parameter.
        hooks: ``useXxx`` hooks called in the function body.
        is_exported: Whether the rendering function is exported.
        framework: Framework tag, ``"react"`` for JSX.
    """

    name: str
    props: list[str] = field(default_factory=list)
    hooks: list[str] = field(default_factory=list)
    is_exported: bool = False
    framework: str = "react"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "props": list(self.props),
            "hooks": list(self.hooks),
            "is_exported": self.is_exported,
            "framework": self.framework,
        }


@dataclass
class RouteFact:
    """An HTTP route registration such as ``app.get('/users', handler)``.

    Attributes:
        method: Uppercased HTTP verb.
        path: Route path pattern as written in the source.
        handler: Source text of the handler argument, or ``"handler"``.
        middleware: Middleware arguments between the path and the handler.
        params: Path parameter names.
    """

    method: str
    path: str
    handler: str = "handler"
    middleware: list[str] = field(default_factory=list)
    params: list[str] = field(default_factory=list)

    @property
    def signature(self) -> str:
        """The ``"METHOD /path"`` form used in summaries."""
        return f"{self.method} {self.path}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "handler": self.handler,
            "middleware": list(self.middleware),
            "params": list(self.params),
        }


@dataclass
class QueryFact:
    """A raw database query call.

    The table is never resolved from the query text, so ``table`` is
    always ``"unknown"``.

    Attributes:
        operation: Lowercased callee name (query, select, insert, ...).
        query: The string literal passed as first argument.
        location: ``"<relative path>:<line>"``.
        table: Table name, ``"unknown"``.
    """

    operation: str
    query: str
    location: str
    table: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "table": self.table,
            "query": self.query,
            "location": self.location,
        }


@dataclass
class FileRecord:
    """All structural facts extracted from one discovered file.

    A record whose parse failed keeps its metadata and content but has
    empty fact lists ("shell only").

    Attributes:
        path: Absolute path.
        relative_path: POSIX path relative to the project root, unique
            within one analysis.
        file_type: Semantic file tag.
        size: Size in bytes.
        last_modified: Modification time.
        content: Full text content.
        dependencies: Import targets in source order, duplicates kept.
        exports: Exported identifier names, without duplicates.
        functions: Function signatures.
        classes: Class declarations.
        components: UI components.
        routes: HTTP route registrations.
        queries: Raw database query calls.
    """

    path: str
    relative_path: str
    file_type: FileType = FileType.UNKNOWN
    size: int = 0
    last_modified: Optional[datetime] = None
    content: str = ""
    dependencies: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)
    functions: list[FunctionFact] = field(default_factory=list)
    classes: list[ClassFact] = field(default_factory=list)
    components: list[ComponentFact] = field(default_factory=list)
    routes: list[RouteFact] = field(default_factory=list)
    queries: list[QueryFact] = field(default_factory=list)

    def add_export(self, name: str) -> None:
        """Record an exported name once."""
        if name not in self.exports:
            self.exports.append(name)

    def clear_facts(self) -> None:
        """Drop every extracted fact, leaving a shell-only record."""
        self.dependencies.clear()
        self.exports.clear()
        self.functions.clear()
        self.classes.clear()
        self.components.clear()
        self.routes.clear()
        self.queries.clear()

    def facts_dict(self) -> dict[str, Any]:
        """Serialize only the extracted facts.

        Returns:
            Dictionary of the fact lists, independent of timestamps.
        """
        return {
            "dependencies": list(self.dependencies),
            "exports": list(self.exports),
            "functions": [f.to_dict() for f in self.functions],
            "classes": [c.to_dict() for c in self.classes],
            "components": [c.to_dict() for c in self.components],
            "routes": [r.to_dict() for r in self.routes],
            "queries": [q.to_dict() for q in self.queries],
        }

    def to_dict(self, include_content: bool = False) -> dict[str, Any]:
        """Serialize to a dictionary.

        Args:
            include_content: Whether to include the raw file content.

        Returns:
            Dictionary representation of this record.
        """
        data: dict[str, Any] = {
            "path": self.path,
            "relative_path": self.relative_path,
            "file_type": self.file_type.value,
            "size": self.size,
            "last_modified": (
                self.last_modified.isoformat() if self.last_modified else None
            ),
        }
        if include_content:
            data["content"] = self.content
        data.update(self.facts_dict())
        return data


@dataclass
class DatabaseInfo:
    """A detected database technology."""

    type: str
    tables: list[str] = field(default_factory=list)


@dataclass
class DeploymentInfo:
    """A detected deployment platform."""

    platform: str


@dataclass
class ArchitectureSummary:
    """Projection of the file records onto architectural layers.

    Attributes:
        frontend: Files declaring UI components.
        backend: Files declaring routes.
        database: Files issuing raw queries.
        apis: ``"METHOD /path"`` signatures of every route.
    """

    frontend: list[str] = field(default_factory=list)
    backend: list[str] = field(default_factory=list)
    database: list[str] = field(default_factory=list)
    apis: list[str] = field(default_factory=list)


@dataclass
class CodeQualityMetrics:
    complexity: float = 0.0
    test_coverage: float = 0.0
    code_smells: list[str] = field(default_factory=list)
    duplications: int = 0


@dataclass
class ArchitecturalPatterns:
    identified: list[str] = field(default_factory=list)
    anti_patterns: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class DependencyInsights:
    """Import-level dependency facts.

    Only ``unique_imports`` is computed; the other lists need external
    tooling (registry lookups, audits) and stay empty.
    """

    unique_imports: list[str] = field(default_factory=list)
    outdated: list[str] = field(default_factory=list)
    unused: list[str] = field(default_factory=list)
    vulnerabilities: list[str] = field(default_factory=list)


@dataclass
class SecurityFinding:
    type: str
    severity: str
    file: str
    description: str
    line: int = 0


@dataclass
class SecurityInsights:
    vulnerabilities: list[SecurityFinding] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    score: int = 100


@dataclass
class PerformanceInsights:
    bottlenecks: list[str] = field(default_factory=list)
    optimizations: list[str] = field(default_factory=list)
    score: int = 100


@dataclass
class MaintainabilityScore:
    """Overall maintainability and its four equally weighted factors."""

    score: int = 0
    complexity: int = 0
    documentation: int = 0
    testability: int = 0
    modularity: int = 0


@dataclass
class HolisticInsights:
    """Secondary metrics derived from already extracted facts."""

    code_quality: CodeQualityMetrics = field(default_factory=CodeQualityMetrics)
    patterns: ArchitecturalPatterns = field(default_factory=ArchitecturalPatterns)
    dependencies: DependencyInsights = field(default_factory=DependencyInsights)
    security: SecurityInsights = field(default_factory=SecurityInsights)
    performance: PerformanceInsights = field(default_factory=PerformanceInsights)
    maintainability: MaintainabilityScore = field(default_factory=MaintainabilityScore)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectAnalysis:
    """The aggregate result of one analysis run.

    Attributes:
        project_name: Name from package.json, or the root directory name.
        root_path: Absolute project root.
        files: File records in discovery order.
        dependencies: ``dependencies`` from package.json.
        dev_dependencies: ``devDependencies`` from package.json.
        scripts: ``scripts`` from package.json.
        frameworks: Detected framework tags, without duplicates.
        databases: Detected database technologies.
        deployments: Detected deployment platforms.
        architecture: Layer projection of ``files``.
        holistic: Secondary metrics, when the sweep ran.
    """

    project_name: str
    root_path: str
    files: list[FileRecord] = field(default_factory=list)
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)
    frameworks: list[str] = field(default_factory=list)
    databases: list[DatabaseInfo] = field(default_factory=list)
    deployments: list[DeploymentInfo] = field(default_factory=list)
    architecture: ArchitectureSummary = field(default_factory=ArchitectureSummary)
    holistic: Optional[HolisticInsights] = None

    @property
    def routes(self) -> list[RouteFact]:
        """Every route of every file, in file order."""
        return [route for record in self.files for route in record.routes]

    @property
    def components(self) -> list[ComponentFact]:
        """Every UI component of every file, in file order."""
        return [comp for record in self.files for comp in record.components]

    def get_file(self, relative_path: str) -> Optional[FileRecord]:
        """Look up a record by its project-relative path.

        Args:
            relative_path: POSIX path relative to the root.

        Returns:
            The matching record, or None.
        """
        for record in self.files:
            if record.relative_path == relative_path:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary.

        Returns:
            Dictionary representation of the analysis, without file
            contents.
        """
        return {
            "project_name": self.project_name,
            "root_path": self.root_path,
            "files": [f.to_dict() for f in self.files],
            "dependencies": dict(self.dependencies),
            "dev_dependencies": dict(self.dev_dependencies),
            "scripts": dict(self.scripts),
            "frameworks": list(self.frameworks),
            "databases": [asdict(db) for db in self.databases],
            "deployments": [asdict(d) for d in self.deployments],
            "architecture": asdict(self.architecture),
            "holistic": self.holistic.to_dict() if self.holistic else None,
        }
