"""Markdown output generation for project documentation.

Writes one Markdown page per documentation section, the API reference,
the user flows and the architecture diagram, plus a JSON dump of
everything generated and an optional report of the workflow
classification.
"""

import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from codescribe.generators.api_docs import ApiEndpointDoc
from codescribe.generators.doc_generator import GeneratedDocumentation
from codescribe.utils.slug import slug
from codescribe.workflows.engine import ClassificationVerdict
from codescribe.workflows.flows import UserFlow

logger = logging.getLogger(__name__)

# Page file stem and title, in navigation order.
PAGES = (
    ("overview", "Overview"),
    ("frontend", "Frontend"),
    ("backend", "Backend"),
    ("api", "API Reference"),
    ("database", "Database"),
    ("user-flows", "User Flows"),
    ("architecture", "Architecture"),
    ("deployment", "Deployment"),
    ("troubleshooting", "Troubleshooting"),
)

JSON_FILE = "documentation.json"
REPORT_FILE = "workflow-classification.md"


class MarkdownWriter:
    """Writes generated documentation as Markdown files.

    Args:
        output_dir: Directory where the Markdown files are written.
    """

    def __init__(self, output_dir: str = "docs") -> None:
        self.output_dir = Path(output_dir)

    def has_documentation(self) -> bool:
        """Whether the output directory already holds generated docs."""
        return (self.output_dir / JSON_FILE).exists()

    def backup_existing(self) -> Optional[Path]:
        """Move an existing output directory to a timestamped sibling.

        Returns:
            The backup path, or None if there was nothing to move.
        """
        if not self.output_dir.exists():
            return None
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        backup = self.output_dir.with_name(f"{self.output_dir.name}.backup-{stamp}")
        shutil.move(str(self.output_dir), str(backup))
        logger.info("Moved existing documentation to %s", backup)
        return backup

    def write_documentation(self, doc: GeneratedDocumentation) -> list[Path]:
        """Write every documentation page and the JSON dump.

        Args:
            doc: The generated documentation.

        Returns:
            Paths of the written files, pages first.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for stem, title in PAGES:
            path = self.output_dir / f"{stem}.md"
            path.write_text(self.render_page(stem, title, doc), encoding="utf-8")
            written.append(path)

        json_path = self.output_dir / JSON_FILE
        json_path.write_text(json.dumps(doc.to_dict(), indent=2), encoding="utf-8")
        written.append(json_path)

        logger.info("Wrote %d documentation files to %s", len(written), self.output_dir)
        return written

    def write_classification_report(
        self, verdict: ClassificationVerdict, project_name: str
    ) -> Path:
        """Write the classification reasoning next to the documentation."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / REPORT_FILE
        path.write_text(render_classification_report(verdict, project_name), encoding="utf-8")
        logger.info("Wrote classification report: %s", path)
        return path

    def render_page(self, stem: str, title: str, doc: GeneratedDocumentation) -> str:
        """Render a single documentation page.

        Args:
            stem: Page file stem from ``PAGES``.
            title: Page heading.
            doc: The generated documentation.

        Returns:
            Markdown text ending in a newline.
        """
        lines = [f"# {title}", ""]

        if stem == "user-flows":
            lines.extend(_render_flows(doc.user_flows))
        elif stem == "api":
            lines.extend(_render_api_docs(doc.api_docs))
        elif stem == "architecture":
            lines.extend(["```mermaid", doc.architecture_diagram.rstrip("\n"), "```", ""])
        else:
            body = doc.sections.get(stem, "").strip()
            if body:
                lines.extend([body, ""])

        if stem == "frontend" and doc.components:
            lines.extend(["## Components", "", "| Component | Props | File |", "|---|---|---|"])
            for comp in doc.components:
                props = ", ".join(comp["props"]) or "-"
                lines.append(f"| {comp['name']} | {props} | `{comp['file']}` |")
            lines.append("")

        if stem == "backend" and doc.endpoints:
            lines.extend(
                ["## Endpoints", "", "| Method | Path | Handler | File |", "|---|---|---|---|"]
            )
            for route in doc.endpoints:
                lines.append(
                    f"| {route['method']} | `{route['path']}` | {route['handler']} "
                    f"| `{route['file']}` |"
                )
            lines.append("")

        return "\n".join(lines).rstrip("\n") + "\n"


def _render_api_docs(entries: list[ApiEndpointDoc]) -> list[str]:
    if not entries:
        return ["No API endpoints were found.", ""]

    lines = []
    for entry in entries:
        lines.extend([f"## {entry.method} {entry.endpoint}", ""])
        if entry.description:
            lines.extend([entry.description, ""])
        if entry.parameters:
            lines.extend(["**Parameters:**", ""])
            for param in entry.parameters:
                required = "required" if param.required else "optional"
                lines.append(f"- `{param.name}` ({param.type}, {required}): {param.description}")
            lines.append("")
        if entry.responses:
            lines.extend(["**Responses:**", ""])
            for response in entry.responses:
                schema = f" ({response.schema})" if response.schema else ""
                lines.append(f"- `{response.status}` {response.description}{schema}")
            lines.append("")
        for example in entry.examples:
            lines.extend([f"### {example.title}", "", "```", example.request, "```", ""])
            if example.response:
                lines.extend(["```json", example.response, "```", ""])
    return lines


def _render_flows(flows: list[UserFlow]) -> list[str]:
    if not flows:
        return ["No user flows were identified.", ""]

    lines = []
    for flow in flows:
        lines.extend([f"<a id=\"{flow.slug or slug(flow.name)}\"></a>", "", f"## {flow.name}", ""])
        if flow.description:
            lines.extend([flow.description, ""])
        for number, step in enumerate(flow.steps, start=1):
            lines.append(f"{number}. **{step.action}**")
            if step.component:
                lines.append(f"   - Component: {step.component}")
            if step.event:
                lines.append(f"   - Event: `{step.event}`")
            if step.api_endpoint:
                lines.append(f"   - Endpoint: `{step.api_endpoint}`")
            if step.service_function:
                lines.append(f"   - Handled by: {step.service_function}")
            if step.db_model:
                lines.append(f"   - Data: {step.db_model}")
            if step.result:
                lines.append(f"   - Result: {step.result}")
        lines.append("")
    return lines


def render_classification_report(verdict: ClassificationVerdict, project_name: str) -> str:
    """Render a verdict and its reasoning trail as Markdown.

    Args:
        verdict: The classification verdict.
        project_name: Name shown in the heading.

    Returns:
        Markdown text ending in a newline.
    """
    lines = [
        f"# Workflow Classification: {project_name}",
        "",
        f"**Selected archetype:** {verdict.candidate_name}",
        "",
        "## Reasoning",
        "",
    ]
    lines.extend(f"{number}. {entry}" for number, entry in enumerate(verdict.reason_trail, 1))
    lines.append("")

    if verdict.reports:
        lines.extend(["## Detectors", "", "| Detector | Applicable |", "|---|---|"])
        for report in verdict.reports:
            lines.append(f"| {report.name} | {'yes' if report.can_handle else 'no'} |")
        lines.append("")

    web_evidence = verdict.evidence.get("modern_web_evidence")
    if web_evidence:
        lines.extend(["## Modern Web Evidence", ""])
        lines.extend(f"- {item}" for item in web_evidence)
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"
