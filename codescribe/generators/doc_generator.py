"""Documentation generation from a project analysis.

Renders one prompt per documentation section, sends it to the text
generation client and collects the replies, together with a
per-endpoint API reference, the user flows from the workflow
classifier and a Mermaid architecture diagram.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from codescribe.generators.api_docs import ApiEndpointDoc, fallback_api_docs, parse_api_docs
from codescribe.generators.diagrams import architecture_diagram
from codescribe.generators.llm_client import LLMClient
from codescribe.generators.template_manager import SECTIONS, TemplateManager
from codescribe.parsers.structure import ProjectAnalysis
from codescribe.workflows.engine import ClassificationVerdict, WorkflowClassifier
from codescribe.workflows.flows import UserFlow

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

# Reply problems that switch the API reference to the route-built entries.
API_REPLY_ERRORS = (AttributeError, json.JSONDecodeError, KeyError, TypeError, ValueError)


@dataclass
class GeneratedDocumentation:
    """Everything written to the output directory.

    Attributes:
        project_name: Name of the documented project.
        sections: Markdown per section name (overview, frontend, ...).
        api_docs: Per-endpoint reference entries.
        user_flows: Flows from the workflow classifier.
        verdict: The classification the flows were generated under.
        architecture_diagram: Mermaid source.
        endpoints: One entry per route (method, path, handler, file).
        components: One entry per UI component (name, props, file).
        used_fallback: Whether the generic flows replaced failed generation.
    """

    project_name: str
    sections: dict[str, str] = field(default_factory=dict)
    api_docs: list[ApiEndpointDoc] = field(default_factory=list)
    user_flows: list[UserFlow] = field(default_factory=list)
    verdict: Optional[ClassificationVerdict] = None
    architecture_diagram: str = ""
    endpoints: list[dict[str, Any]] = field(default_factory=list)
    components: list[dict[str, Any]] = field(default_factory=list)
    used_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "sections": dict(self.sections),
            "api_docs": [entry.to_dict() for entry in self.api_docs],
            "user_flows": [flow.to_dict() for flow in self.user_flows],
            "classification": self.verdict.to_dict() if self.verdict else None,
            "architecture_diagram": self.architecture_diagram,
            "endpoints": list(self.endpoints),
            "components": list(self.components),
            "used_fallback": self.used_fallback,
        }


class DocumentationGenerator:
    """Generates project documentation with an LLM.

    Args:
        llm: Text generation client.
        templates: Prompt templates. Uses the packaged templates if omitted.
        classifier: Workflow classifier. Built from ``llm`` and
            ``templates`` with the default detectors if omitted.
    """

    def __init__(
        self,
        llm: LLMClient,
        templates: Optional[TemplateManager] = None,
        classifier: Optional[WorkflowClassifier] = None,
    ) -> None:
        self.llm = llm
        self.templates = templates or TemplateManager()
        self.classifier = classifier or WorkflowClassifier(llm=llm, templates=self.templates)

    def generate(
        self,
        analysis: ProjectAnalysis,
        progress: Optional[StatusCallback] = None,
    ) -> GeneratedDocumentation:
        """Generate every documentation section for a project.

        Args:
            analysis: The project analysis.
            progress: Optional callback receiving a status line per step.

        Returns:
            The generated documentation.

        Raises:
            ValueError: If the API key is not set.
            anthropic.APIError: If a section request fails after retries.
        """

        def report(status: str) -> None:
            if progress is not None:
                progress(status)

        doc = GeneratedDocumentation(project_name=analysis.project_name)
        for section in SECTIONS:
            report(f"Generating {section} documentation...")
            prompt = self.templates.render_section_prompt(section, analysis)
            doc.sections[section] = self.llm.complete(prompt)

        report("Documenting API endpoints...")
        doc.api_docs = self.generate_api_docs(analysis)

        report("Mapping user workflows...")
        result = self.classifier.generate_workflows(analysis)
        doc.user_flows = result.flows
        doc.verdict = result.verdict
        doc.used_fallback = result.used_fallback

        report("Creating architecture diagram...")
        doc.architecture_diagram = architecture_diagram(analysis)

        doc.endpoints = [
            {
                "method": route.method,
                "path": route.path,
                "handler": route.handler,
                "params": list(route.params),
                "file": record.relative_path,
            }
            for record in analysis.files
            for route in record.routes
        ]
        doc.components = [
            {"name": comp.name, "props": list(comp.props), "file": record.relative_path}
            for record in analysis.files
            for comp in record.components
        ]

        logger.info(
            "Generated documentation for %s: %d sections, %d user flows",
            analysis.project_name,
            len(doc.sections),
            len(doc.user_flows),
        )
        return doc

    def generate_api_docs(self, analysis: ProjectAnalysis) -> list[ApiEndpointDoc]:
        """Generate the per-endpoint API reference.

        Args:
            analysis: The project analysis.

        Returns:
            Entries decoded from the model's reply, or entries built from
            the routes when the reply cannot be decoded. Empty without
            routes, in which case the model is not called.
        """
        routes = analysis.routes
        if not routes:
            return []

        reply = self.llm.complete(self.templates.render_api_prompt(analysis))
        try:
            return parse_api_docs(reply)
        except API_REPLY_ERRORS as e:
            logger.warning("Could not decode the API reference reply, using route facts: %s", e)
            return fallback_api_docs(routes)
