"""Project archetype detectors for workflow generation.

Each detector independently decides whether one archetype (CLI tool,
API service, web application, page-based site) applies to a project,
recording the reasons and the evidence it inspected. A detector also
owns the prompt for its archetype's user flows and the conversion of
the model's JSON reply into UserFlow records.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from codescribe.analysis.detectors import FRONTEND_FRAMEWORKS
from codescribe.generators.template_manager import TemplateManager
from codescribe.parsers.structure import ProjectAnalysis
from codescribe.utils.slug import slug
from codescribe.workflows.flows import UserFlow, UserFlowStep, strip_code_fences

logger = logging.getLogger(__name__)

CLI_DEPENDENCIES = ("commander", "yargs", "@oclif/core", "minimist")
WEB_DEPENDENCIES = ("react", "vue", "angular", "svelte", "next", "nuxt", "express", "fastify")
API_DEPENDENCIES = ("express", "fastify", "koa", "hapi", "restify", "@nestjs/core")
MODERN_WEB_DEPENDENCIES = ("react", "next", "vue")
PAGE_FRAMEWORKS = frozenset({"React", "Vue", "Angular", "Next.js", "Nuxt.js", "Express"})

# Script values using these are web dev/build conventions, not CLI entry points.
_WEB_SCRIPT_MARKERS = ("react-scripts", "next", "dev", "start")
_COMMAND_RE = re.compile(r"\.command\(\s*['\"`]([^'\"`]+)['\"`]")
_MODEL_RE = re.compile(r"(?:const|let|var)\s+(\w+)\s*=.*?(?:Schema|model)")


@dataclass
class DetectorReport:
    """Outcome of evaluating one detector against a project.

    Attributes:
        name: Detector key (``cli``, ``api``, ``webapp``, ``pages``).
        can_handle: Whether the archetype applies.
        reasons: Human-readable findings, in evaluation order.
        evidence: Named facts that were inspected.
    """

    name: str
    can_handle: bool
    reasons: list[str] = field(default_factory=list)
    evidence: dict[str, Any] = field(default_factory=dict)


def modern_web_evidence(analysis: ProjectAnalysis) -> list[str]:
    """Frontend framework tags and core web dependencies of the project."""
    found = [tag for tag in analysis.frameworks if tag in FRONTEND_FRAMEWORKS]
    found.extend(dep for dep in MODERN_WEB_DEPENDENCIES if dep in analysis.dependencies)
    return found


class WorkflowDetector(ABC):
    """Base class for archetype detectors.

    Subclasses set ``name``, ``label`` and ``template`` and implement
    ``evaluate``, ``prompt_context`` and ``convert``.
    """

    name = ""
    label = ""
    template = ""

    @abstractmethod
    def evaluate(self, analysis: ProjectAnalysis) -> DetectorReport:
        """Decide whether the archetype applies, with reasons and evidence."""

    def can_handle(self, analysis: ProjectAnalysis) -> bool:
        return self.evaluate(analysis).can_handle

    def prompt_context(self, analysis: ProjectAnalysis) -> dict[str, Any]:
        return {}

    def build_prompt(self, analysis: ProjectAnalysis, templates: TemplateManager) -> str:
        """Render this archetype's workflow prompt for the project."""
        return templates.render_workflow_prompt(
            self.template, analysis=analysis, **self.prompt_context(analysis)
        )

    def parse_response(self, response: str) -> list[UserFlow]:
        """Decode a model reply into user flows.

        Raises:
            json.JSONDecodeError: If the reply is not JSON.
            ValueError: If the reply, its flows or their steps are not
                JSON objects.
            KeyError: If a flow lacks its name.
        """
        data = json.loads(strip_code_fences(response))
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from the {self.label} prompt")
        return self.convert(data)

    @abstractmethod
    def convert(self, data: dict[str, Any]) -> list[UserFlow]:
        """Build user flows from the decoded reply."""

    def _flows(self, items: Optional[list[dict[str, Any]]], step_builder) -> list[UserFlow]:
        flows = []
        for item in _objects(items, "flow"):
            name = _name(item)
            flows.append(
                UserFlow(
                    name=name,
                    slug=item.get("slug") or slug(name),
                    description=item.get("description", ""),
                    steps=[step_builder(step) for step in _objects(item.get("steps"), "step")],
                )
            )
        return flows


class CLIDetector(WorkflowDetector):
    """Detects command-line tools.

    Applies when any of: a CLI argument-parsing dependency, a CLI-like
    script, or a CLI-like file (``cli.``, ``bin/``, command paths,
    shebang lines). Web-app evidence does not veto the detector; it is
    only reported, and the engine's priority rules decide.
    """

    name = "cli"
    label = "CLI"
    template = "workflow_cli.j2"

    def evaluate(self, analysis: ProjectAnalysis) -> DetectorReport:
        report = DetectorReport(name=self.name, can_handle=False)

        deps = [dep for dep in CLI_DEPENDENCIES if dep in analysis.dependencies]
        report.evidence["cli_dependencies"] = deps
        if deps:
            report.reasons.append(f"Found CLI dependencies: {', '.join(deps)}")

        scripts = [
            key
            for key, command in analysis.scripts.items()
            if "cli" in key
            or "bin" in key
            or ("node " in command and not any(m in command for m in _WEB_SCRIPT_MARKERS))
        ]
        report.evidence["cli_scripts"] = [f"{key}: {analysis.scripts[key]}" for key in scripts]
        if scripts:
            report.reasons.append(f"Found CLI scripts: {', '.join(scripts)}")

        files = [
            record.relative_path
            for record in analysis.files
            if _is_cli_file(record.relative_path, record.content)
        ]
        report.evidence["cli_files"] = files
        if files:
            report.reasons.append(f"Found CLI files: {', '.join(files)}")

        web_indicators = {
            "frontend_framework": any(tag in FRONTEND_FRAMEWORKS for tag in analysis.frameworks),
            "ui_components": any(record.components for record in analysis.files),
            "web_paths": any(
                marker in record.relative_path
                for record in analysis.files
                for marker in ("components/", "pages/", "app/")
            ),
            "web_dependencies": any(
                dep in analysis.dependencies for dep in MODERN_WEB_DEPENDENCIES
            ),
        }
        report.evidence["web_app_indicators"] = web_indicators

        report.can_handle = bool(deps or scripts or files)
        if report.can_handle and any(web_indicators.values()):
            report.reasons.append(
                "WARNING: project shows both CLI and web app patterns; priority rules decide"
            )
            logger.warning("%s shows both CLI and web app patterns", analysis.project_name)
        if not report.can_handle:
            report.reasons.append("No CLI patterns detected")
        return report

    def prompt_context(self, analysis: ProjectAnalysis) -> dict[str, Any]:
        commands = []
        for record in analysis.files:
            for command in _COMMAND_RE.findall(record.content):
                commands.append(f"{command}: found in {record.relative_path}")
            if "yargs" in record.content or ".argv" in record.content:
                commands.append(f"Yargs-style argument parsing in {record.relative_path}")

        config_files = [
            record.relative_path
            for record in analysis.files
            if any(
                marker in record.relative_path.lower()
                for marker in (".env", "config", ".rc", ".yaml", ".yml")
            )
        ]
        return {
            "cli_commands": commands,
            "config_files": config_files,
            "dependency_names": list(analysis.dependencies)[:15],
        }

    def convert(self, data: dict[str, Any]) -> list[UserFlow]:
        def step(item: dict[str, Any]) -> UserFlowStep:
            commands = item.get("commands") or []
            return UserFlowStep(
                action=item.get("action", ""),
                component="CLI",
                event="command",
                api_endpoint=", ".join(commands) or item.get("details", ""),
                service_function="CLI execution",
                result=item.get("result", ""),
            )

        return self._flows(data.get("workflows"), step)


class APIDetector(WorkflowDetector):
    """Detects HTTP API services.

    Applies when any of: a server framework dependency, API-like paths
    (``routes/``, ``controllers/``, ``api/``, ``server.``), any route
    fact, or more routes than UI components.
    """

    name = "api"
    label = "API"
    template = "workflow_api.j2"

    def evaluate(self, analysis: ProjectAnalysis) -> DetectorReport:
        report = DetectorReport(name=self.name, can_handle=False)

        deps = [dep for dep in API_DEPENDENCIES if dep in analysis.dependencies]
        files = [
            record.relative_path
            for record in analysis.files
            if any(
                marker in record.relative_path
                for marker in ("routes/", "controllers/", "api/", "server.")
            )
        ]
        route_count = len(analysis.routes)
        component_count = len(analysis.components)
        primarily_api = route_count > component_count

        report.evidence.update(
            {
                "api_dependencies": deps,
                "api_files": files,
                "route_count": route_count,
                "component_count": component_count,
            }
        )
        if deps:
            report.reasons.append(f"Found server framework dependencies: {', '.join(deps)}")
        if files:
            report.reasons.append(f"Found API files: {', '.join(files)}")
        if route_count:
            report.reasons.append(f"Found {route_count} route registrations")
        if primarily_api:
            report.reasons.append(
                f"Routes outnumber UI components ({route_count} > {component_count})"
            )

        report.can_handle = bool(deps or files or route_count or primarily_api)
        if not report.can_handle:
            report.reasons.append("No API patterns detected")
        return report

    def prompt_context(self, analysis: ProjectAnalysis) -> dict[str, Any]:
        routes = [
            f"{route.signature} -> {route.handler} ({record.relative_path})"
            for record in analysis.files
            for route in record.routes
        ]
        middleware: list[str] = []
        for route in analysis.routes:
            for name in route.middleware:
                if name not in middleware:
                    middleware.append(name)

        models: list[str] = []
        for record in analysis.files:
            for name in _MODEL_RE.findall(record.content):
                if name not in models:
                    models.append(name)
        return {
            "api_routes": routes,
            "middleware": middleware,
            "models": models,
            "dependency_names": list(analysis.dependencies)[:12],
        }

    def convert(self, data: dict[str, Any]) -> list[UserFlow]:
        def step(item: dict[str, Any]) -> UserFlowStep:
            method = item.get("method") or ""
            endpoint = item.get("endpoint") or ""
            return UserFlowStep(
                action=item.get("action", ""),
                component="API Client",
                component_slug=slug(endpoint or "api-client"),
                event=method.lower() or "request",
                api_endpoint=endpoint,
                api_slug=slug(f"{method or 'GET'} {endpoint}"),
                service_function=item.get("handler") or "API handler",
                db_model=item.get("model") or "",
                result=item.get("result", ""),
            )

        return self._flows(data.get("workflows"), step)


class WebAppDetector(WorkflowDetector):
    """Detects web applications.

    Applies when any of: a frontend framework tag, a frontend or server
    dependency, web-like paths (``components/``, ``pages/``, ``views/``,
    ``.tsx``, ``.vue``), or any UI component fact.
    """

    name = "webapp"
    label = "WebApp"
    template = "workflow_webapp.j2"

    def evaluate(self, analysis: ProjectAnalysis) -> DetectorReport:
        report = DetectorReport(name=self.name, can_handle=False)

        tags = [tag for tag in analysis.frameworks if tag in FRONTEND_FRAMEWORKS]
        deps = [dep for dep in WEB_DEPENDENCIES if dep in analysis.dependencies]
        files = [
            record.relative_path
            for record in analysis.files
            if any(
                marker in record.relative_path
                for marker in ("components/", "pages/", "views/", ".tsx", ".vue")
            )
        ]
        components = [comp.name for comp in analysis.components]

        report.evidence.update(
            {
                "frontend_frameworks": tags,
                "web_dependencies": deps,
                "web_files": files,
                "ui_components": components,
            }
        )
        if tags:
            report.reasons.append(f"Found frontend frameworks: {', '.join(tags)}")
        if deps:
            report.reasons.append(f"Found web dependencies: {', '.join(deps)}")
        if files:
            report.reasons.append(f"Found web files: {', '.join(files)}")
        if components:
            report.reasons.append(f"Found UI components: {', '.join(components)}")

        report.can_handle = bool(tags or deps or files or components)
        if not report.can_handle:
            report.reasons.append("No web app patterns detected")
        return report

    def prompt_context(self, analysis: ProjectAnalysis) -> dict[str, Any]:
        return {
            "components": list(dict.fromkeys(comp.name for comp in analysis.components)),
            "endpoints": list(dict.fromkeys(route.signature for route in analysis.routes)),
        }

    def convert(self, data: dict[str, Any]) -> list[UserFlow]:
        def step(item: dict[str, Any]) -> UserFlowStep:
            return UserFlowStep(
                action=item.get("action", ""),
                component=item.get("component", ""),
                component_slug=item.get("componentSlug", ""),
                event=item.get("event", ""),
                api_endpoint=item.get("apiEndpoint", ""),
                api_slug=item.get("apiSlug", ""),
                service_function=item.get("serviceFunction", ""),
                db_model=item.get("dbModel", ""),
                result=item.get("result", ""),
            )

        return self._flows(data.get("userFlows") or data.get("workflows"), step)


class PageBasedDetector(WorkflowDetector):
    """Detects sites best documented page by page.

    Applies when the project has pages, views or components and also
    has routes or a web framework tag.
    """

    name = "pages"
    label = "PageBased"
    template = "workflow_pages.j2"

    def evaluate(self, analysis: ProjectAnalysis) -> DetectorReport:
        report = DetectorReport(name=self.name, can_handle=False)

        page_files = [
            record.relative_path
            for record in analysis.files
            if _is_page_path(record.relative_path)
        ]
        has_pages = bool(page_files) or bool(analysis.components)
        has_routes = bool(analysis.routes)
        frameworks = [tag for tag in analysis.frameworks if tag in PAGE_FRAMEWORKS]

        report.evidence.update(
            {"page_files": page_files, "has_routes": has_routes, "web_frameworks": frameworks}
        )
        if has_pages:
            report.reasons.append("Found pages, views or components")
        if has_routes:
            report.reasons.append("Found route registrations")
        if frameworks:
            report.reasons.append(f"Found web frameworks: {', '.join(frameworks)}")

        report.can_handle = has_pages and (has_routes or bool(frameworks))
        if not report.can_handle:
            report.reasons.append("No page-based structure detected")
        return report

    def prompt_context(self, analysis: ProjectAnalysis) -> dict[str, Any]:
        pages = [
            record.relative_path
            for record in analysis.files
            if "pages/" in record.relative_path or "views/" in record.relative_path
        ]
        return {
            "pages": pages,
            "components": list(dict.fromkeys(c.name for c in analysis.components))[:15],
            "endpoints": list(dict.fromkeys(r.signature for r in analysis.routes))[:10],
        }

    def convert(self, data: dict[str, Any]) -> list[UserFlow]:
        flows = []
        for page in _objects(data.get("pageFlows"), "page"):
            name = _name(page)
            page_slug = page.get("slug") or slug(name)
            steps = []
            for action in _objects(page.get("actions"), "action"):
                backend = action.get("backendFunction") or {}
                if not isinstance(backend, dict):
                    raise ValueError("Expected backendFunction to be a JSON object")
                operations = _objects(backend.get("databaseOperations"), "operation") or [{}]
                target = action.get("navigatesTo")
                steps.append(
                    UserFlowStep(
                        action=action.get("name", ""),
                        component=name,
                        component_slug=page_slug,
                        event=action.get("trigger", ""),
                        api_endpoint=backend.get("apiEndpoint", ""),
                        api_slug=backend.get("slug", ""),
                        service_function=backend.get("functionName", ""),
                        db_model=operations[0].get("table", ""),
                        result=f"Navigate to {target}" if target else action.get("description", ""),
                    )
                )
            flows.append(
                UserFlow(
                    name=name,
                    slug=page_slug,
                    description=page.get("description", ""),
                    steps=steps,
                )
            )
        return flows


DETECTORS: dict[str, type[WorkflowDetector]] = {
    "cli": CLIDetector,
    "api": APIDetector,
    "webapp": WebAppDetector,
    "pages": PageBasedDetector,
}

DEFAULT_DETECTORS = ("cli", "api", "webapp")


def build_detectors(names: Sequence[str] = DEFAULT_DETECTORS) -> list[WorkflowDetector]:
    """Instantiate detectors in registration order.

    Args:
        names: Detector keys; unknown keys are logged and skipped.

    Returns:
        Detector instances in the given order.
    """
    detectors = []
    for name in names:
        detector_cls = DETECTORS.get(name)
        if detector_cls is None:
            logger.warning("Unknown workflow detector '%s', skipping", name)
            continue
        detectors.append(detector_cls())
    return detectors


def _objects(items: Any, what: str) -> list[dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError(f"Expected a list of {what} objects in the reply")
    return items


def _name(item: dict[str, Any]) -> str:
    name = item["name"]
    if not isinstance(name, str):
        raise ValueError(f"Expected a string name, got {name!r}")
    return name


def _is_cli_file(relative_path: str, content: str) -> bool:
    path = relative_path.lower()
    return (
        "cli." in path
        or "bin/" in path
        or ("command" in path and "components" not in path and "node_modules" not in path)
        or (content.startswith("#!") and "node_modules" not in path)
    )


def _is_page_path(relative_path: str) -> bool:
    return any(marker in relative_path for marker in ("pages/", "views/", "components/"))
