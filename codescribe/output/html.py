"""HTML output generator compatible with MkDocs.

Lays the generated Markdown out as an MkDocs project: a ``docs/``
directory with the documentation pages and an index, plus a
``mkdocs.yml`` whose navigation follows the page order.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from codescribe.generators.doc_generator import GeneratedDocumentation
from codescribe.output.markdown import PAGES, MarkdownWriter

logger = logging.getLogger(__name__)


class HtmlWriter:
    """Generates an MkDocs-compatible documentation site.

    Args:
        output_dir: Root directory for the MkDocs project.
    """

    def __init__(self, output_dir: str = "site_docs") -> None:
        self.output_dir = Path(output_dir)
        self.docs_dir = self.output_dir / "docs"

    def write_site(self, doc: GeneratedDocumentation, theme: str = "readthedocs") -> Path:
        """Write the pages and the MkDocs configuration.

        Args:
            doc: The generated documentation.
            theme: MkDocs theme name.

        Returns:
            Path to the generated mkdocs.yml file.
        """
        MarkdownWriter(output_dir=str(self.docs_dir)).write_documentation(doc)
        self._write_index(doc)
        config_path = self.generate_mkdocs_config(doc.project_name, theme=theme)
        logger.info("Wrote MkDocs site to %s", self.output_dir)
        return config_path

    def generate_mkdocs_config(self, project_name: str, theme: str = "readthedocs") -> Path:
        """Generate the mkdocs.yml configuration file.

        Args:
            project_name: Name of the project for the site title.
            theme: MkDocs theme name.

        Returns:
            Path to the generated mkdocs.yml file.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        config: dict[str, Any] = {
            "site_name": f"{project_name} Documentation",
            "theme": {"name": theme},
            "nav": self._build_navigation(),
            "markdown_extensions": [
                "admonition",
                "toc",
                "pymdownx.superfences",
            ],
        }

        config_path = self.output_dir / "mkdocs.yml"
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

        logger.info("Generated mkdocs.yml at %s", config_path)
        return config_path

    def _write_index(self, doc: GeneratedDocumentation) -> Path:
        lines = [f"# {doc.project_name}", ""]
        lines.append("## Contents")
        lines.append("")
        lines.extend(f"- [{title}]({stem}.md)" for stem, title in PAGES)
        lines.append("")
        lines.append(f"- **{len(doc.endpoints)}** API endpoints")
        lines.append(f"- **{len(doc.components)}** UI components")
        lines.append(f"- **{len(doc.user_flows)}** user flows")
        lines.append("")

        self.docs_dir.mkdir(parents=True, exist_ok=True)
        index_path = self.docs_dir / "index.md"
        index_path.write_text("\n".join(lines), encoding="utf-8")
        return index_path

    def _build_navigation(self) -> list[dict[str, str]]:
        nav = [{"Home": "index.md"}]
        nav.extend({title: f"{stem}.md"} for stem, title in PAGES)
        return nav
