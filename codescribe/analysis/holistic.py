"""Architecture projection and the holistic code-quality sweep.

Everything here is a pure function of already extracted file records
(plus detected framework tags); nothing re-reads or re-parses source.
The numeric thresholds are fixed heuristics, kept stable so scores stay
comparable between runs.
"""

import logging
import math
from typing import Sequence

from codescribe.analysis.detectors import FRONTEND_FRAMEWORKS
from codescribe.parsers.structure import (
    ArchitecturalPatterns,
    ArchitectureSummary,
    CodeQualityMetrics,
    DependencyInsights,
    FileRecord,
    HolisticInsights,
    MaintainabilityScore,
    PerformanceInsights,
    SecurityFinding,
    SecurityInsights,
)

logger = logging.getLogger(__name__)

TEST_MARKERS = (".test.", ".spec.", "__tests__")
COMMENT_MARKERS = ("/**", "//", "#")

MAX_FUNCTIONS_PER_FILE = 10
LARGE_FILE_CHARS = 1000
MAX_PARAMS = 5
SECURITY_PENALTY = 10
PERFORMANCE_PENALTY = 5


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _mean(total: float, count: int) -> float:
    return total / count if count else 0.0


def _is_test_file(record: FileRecord) -> bool:
    return any(marker in record.relative_path for marker in TEST_MARKERS)


def _line_of(content: str, needle: str) -> int:
    index = content.find(needle)
    return content.count("\n", 0, index) + 1 if index >= 0 else 0


def summarize_architecture(files: Sequence[FileRecord]) -> ArchitectureSummary:
    """Project file records onto frontend, backend and database layers.

    Args:
        files: File records of the project.

    Returns:
        Paths of files with components, routes and queries, plus every
        route signature.
    """
    summary = ArchitectureSummary()
    for record in files:
        if record.components:
            summary.frontend.append(record.relative_path)
        if record.routes:
            summary.backend.append(record.relative_path)
            summary.apis.extend(route.signature for route in record.routes)
        if record.queries:
            summary.database.append(record.relative_path)
    return summary


def analyze_code_quality(files: Sequence[FileRecord]) -> CodeQualityMetrics:
    """Compute the complexity proxy, code smells and test coverage proxy.

    Per-file complexity is ``functions * 2 + classes * 3``; the project
    value is the mean over files. Coverage is ``min(100, tests / files * 200)``.
    """
    total_complexity = 0
    smells: list[str] = []
    for record in files:
        total_complexity += len(record.functions) * 2 + len(record.classes) * 3
        if len(record.functions) > MAX_FUNCTIONS_PER_FILE:
            smells.append(f"Too many functions in {record.relative_path}")
        if len(record.content) > LARGE_FILE_CHARS and len(record.functions) < 2:
            smells.append(f"Large file with few functions: {record.relative_path}")
        if any(len(func.params) > MAX_PARAMS for func in record.functions):
            smells.append(f"Functions with too many parameters in {record.relative_path}")

    test_files = sum(1 for record in files if _is_test_file(record))
    coverage = min(100.0, _mean(test_files, len(files)) * 200)
    return CodeQualityMetrics(
        complexity=_mean(total_complexity, len(files)),
        test_coverage=coverage,
        code_smells=smells,
    )


def identify_patterns(
    files: Sequence[FileRecord], frameworks: Sequence[str]
) -> ArchitecturalPatterns:
    """Match well-known architectural patterns against file paths.

    Args:
        files: File records of the project.
        frameworks: Detected framework tags.

    Returns:
        Identified patterns, anti-patterns and recommendations.
    """
    patterns = ArchitecturalPatterns()
    paths = [record.relative_path for record in files]

    has_controllers = any("controller" in p for p in paths)
    has_models = any("model" in p for p in paths)
    has_views = any("view" in r.relative_path or r.components for r in files)
    if has_controllers and has_models and has_views:
        patterns.identified.append("MVC (Model-View-Controller)")

    if any(tag in FRONTEND_FRAMEWORKS for tag in frameworks):
        patterns.identified.append("Component-based Architecture")
        component_files = [r for r in files if r.components]
        if len(component_files) > 10 and not any("components/" in p for p in paths):
            patterns.anti_patterns.append("Components not organized in dedicated folder")
            patterns.recommendations.append(
                "Organize components in a dedicated components/ directory"
            )

    if any(record.routes for record in files):
        patterns.identified.append("RESTful API Pattern")

    has_services = any("service" in p for p in paths)
    has_repositories = any("repository" in p or "dao" in p for p in paths)
    if has_services and has_repositories:
        patterns.identified.append("Layered Architecture")

    return patterns


def analyze_dependencies(files: Sequence[FileRecord]) -> DependencyInsights:
    unique: list[str] = []
    seen: set[str] = set()
    for record in files:
        for dependency in record.dependencies:
            if dependency not in seen:
                seen.add(dependency)
                unique.append(dependency)
    return DependencyInsights(unique_imports=unique)


def analyze_security(files: Sequence[FileRecord]) -> SecurityInsights:
    """Flag risky constructs by substring match on file content.

    Each finding costs 10 points from 100, floored at 0.
    """
    findings: list[SecurityFinding] = []
    for record in files:
        content = record.content
        if "eval(" in content:
            findings.append(
                SecurityFinding(
                    type="Code Injection",
                    severity="high",
                    file=record.relative_path,
                    line=_line_of(content, "eval("),
                    description="Use of eval() can lead to code injection vulnerabilities",
                )
            )
        if "innerHTML" in content and "DOMPurify" not in content:
            findings.append(
                SecurityFinding(
                    type="XSS Vulnerability",
                    severity="medium",
                    file=record.relative_path,
                    line=_line_of(content, "innerHTML"),
                    description="Direct innerHTML assignment without sanitization",
                )
            )
        if "process.env" in content and "client" in record.relative_path:
            findings.append(
                SecurityFinding(
                    type="Information Disclosure",
                    severity="medium",
                    file=record.relative_path,
                    line=_line_of(content, "process.env"),
                    description="Environment variables used in client-side code",
                )
            )

    for finding in findings:
        logger.debug("Security finding in %s:%d: %s", finding.file, finding.line, finding.type)

    score = max(0, 100 - len(findings) * SECURITY_PENALTY)
    recommendations = []
    if score < 80:
        recommendations.append("Review and fix identified security vulnerabilities")
    if not any("security" in r.relative_path or "auth" in r.relative_path for r in files):
        recommendations.append("Consider implementing dedicated security/authentication modules")
    return SecurityInsights(vulnerabilities=findings, recommendations=recommendations, score=score)


def analyze_performance(files: Sequence[FileRecord]) -> PerformanceInsights:
    """Flag likely performance issues. Each one costs 5 points from 100."""
    insights = PerformanceInsights()

    def flag(bottleneck: str, optimization: str) -> None:
        insights.bottlenecks.append(bottleneck)
        if optimization not in insights.optimizations:
            insights.optimizations.append(optimization)

    for record in files:
        content = record.content
        if "useEffect" in content and "[]" not in content:
            flag(
                f"Potential re-render issue in {record.relative_path}",
                "Add dependency arrays to useEffect hooks",
            )
        if "map(" in content and "filter(" in content:
            flag(
                f"Multiple array iterations in {record.relative_path}",
                "Consider combining map and filter operations",
            )
        if any(f.name.lower().endswith("sync") and not f.is_async for f in record.functions):
            flag(
                f"Synchronous operations in {record.relative_path}",
                "Consider making blocking operations asynchronous",
            )

    insights.score = max(0, 100 - len(insights.bottlenecks) * PERFORMANCE_PENALTY)
    return insights


def maintainability_score(files: Sequence[FileRecord]) -> MaintainabilityScore:
    """Average four sub-scores into one maintainability score.

    - complexity: ``100 - avg(functions + classes) * 5``, floored at 0
    - documentation: share of files containing a comment marker, x100
    - testability: 80 with any test/spec file, else 20
    - modularity: 90 if a nested file has exports, else 30
    """
    count = len(files)
    avg_complexity = _mean(sum(len(r.functions) + len(r.classes) for r in files), count)
    documented = sum(
        1 for r in files if any(marker in r.content for marker in COMMENT_MARKERS)
    )

    complexity = max(0.0, 100 - avg_complexity * 5)
    documentation = _mean(documented, count) * 100
    has_tests = any(".test." in r.relative_path or ".spec." in r.relative_path for r in files)
    testability = 80 if has_tests else 20
    modular = any("/" in r.relative_path and r.exports for r in files)
    modularity = 90 if modular else 30

    overall = (complexity + documentation + testability + modularity) / 4
    return MaintainabilityScore(
        score=_round_half_up(overall),
        complexity=_round_half_up(complexity),
        documentation=_round_half_up(documentation),
        testability=testability,
        modularity=modularity,
    )


def holistic_sweep(files: Sequence[FileRecord], frameworks: Sequence[str]) -> HolisticInsights:
    """Run every holistic heuristic over the extracted facts.

    Args:
        files: File records of the project.
        frameworks: Detected framework tags.

    Returns:
        The combined insights.
    """
    return HolisticInsights(
        code_quality=analyze_code_quality(files),
        patterns=identify_patterns(files, frameworks),
        dependencies=analyze_dependencies(files),
        security=analyze_security(files),
        performance=analyze_performance(files),
        maintainability=maintainability_score(files),
    )
