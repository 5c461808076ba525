"""Template manager for loading and rendering Jinja2 prompt templates.

Provides one interface for rendering the documentation section prompts,
the API reference prompt and the per-archetype workflow prompts stored
in the package's ``templates/`` directory.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from codescribe.parsers.structure import ProjectAnalysis

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

SECTIONS = ("overview", "frontend", "backend", "database", "deployment", "troubleshooting")


class TemplateManager:
    """Loads and renders Jinja2 prompt templates.

    Args:
        templates_dir: Path to the templates directory. Uses the
            packaged templates if not specified.
    """

    def __init__(self, templates_dir: Optional[str] = None) -> None:
        self._templates_path = Path(templates_dir) if templates_dir else _DEFAULT_TEMPLATES_DIR

        if not self._templates_path.exists():
            logger.warning("Templates directory not found: %s", self._templates_path)

        self._env = Environment(
            loader=FileSystemLoader(str(self._templates_path)),
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        logger.debug("Template manager initialized with: %s", self._templates_path)

    def render_section_prompt(self, section: str, analysis: ProjectAnalysis) -> str:
        """Render the prompt for one documentation section.

        Args:
            section: One of ``SECTIONS``.
            analysis: The project analysis.

        Returns:
            Rendered prompt string ready for LLM submission.

        Raises:
            ValueError: If the section is unknown.
        """
        if section not in SECTIONS:
            raise ValueError(f"Unknown documentation section: {section}")
        return self._render(f"{section}.j2", analysis=analysis)

    def render_api_prompt(self, analysis: ProjectAnalysis) -> str:
        """Render the prompt for the per-endpoint API reference."""
        return self._render("api.j2", analysis=analysis)

    def render_workflow_prompt(self, template_name: str, **context: Any) -> str:
        """Render an archetype's workflow prompt.

        Args:
            template_name: Template file, e.g. ``workflow_cli.j2``.
            **context: Template context; always includes ``analysis``.

        Returns:
            Rendered prompt string ready for LLM submission.
        """
        return self._render(template_name, **context)

    def _render(self, template_name: str, **kwargs: Any) -> str:
        """Render a template with the given context variables.

        Raises:
            TemplateNotFound: If the template file does not exist.
        """
        template = self._env.get_template(template_name)
        rendered = template.render(**kwargs)
        logger.debug("Rendered template %s (%d chars)", template_name, len(rendered))
        return rendered

    def list_templates(self) -> list[str]:
        """List all available template files."""
        return self._env.list_templates()
