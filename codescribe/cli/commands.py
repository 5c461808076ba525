"""CLI commands for codescribe.

Provides the Click-based command group 'codescribe' with subcommands
for analyzing a codebase, classifying its workflow archetype and
generating or updating its documentation.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import anthropic
import click
import jinja2

from codescribe import __version__
from codescribe.analysis.analyzer import analyze as analyze_project
from codescribe.generators.doc_generator import DocumentationGenerator
from codescribe.generators.llm_client import LLMClient
from codescribe.generators.template_manager import TemplateManager
from codescribe.output.html import HtmlWriter
from codescribe.output.markdown import MarkdownWriter
from codescribe.parsers.structure import ProjectAnalysis
from codescribe.utils.config import AppConfig, load_config
from codescribe.utils.logging import setup_logging
from codescribe.workflows.detectors import build_detectors
from codescribe.workflows.engine import WorkflowClassifier

logger = logging.getLogger(__name__)


def _echo_progress(status: str, percent: float) -> None:
    click.echo(f"[{percent:.0f}%] {status}")


def _run_analysis(path: str, config: AppConfig, show_progress: bool = True) -> ProjectAnalysis:
    """Run the analyzer to completion from synchronous code."""
    callback = _echo_progress if show_progress else None
    return asyncio.run(analyze_project(path, callback, config.analysis))


def _summary_lines(analysis: ProjectAnalysis) -> list[str]:
    lines = [
        f"Project: {analysis.project_name}",
        f"Files analyzed: {len(analysis.files)}",
        f"Frameworks: {', '.join(analysis.frameworks) or 'none'}",
        f"Databases: {', '.join(db.type for db in analysis.databases) or 'none'}",
        f"Deployments: {', '.join(d.platform for d in analysis.deployments) or 'none'}",
        f"API endpoints: {len(analysis.routes)}",
        f"UI components: {len(analysis.components)}",
    ]
    if analysis.holistic is not None:
        lines.append(f"Maintainability: {analysis.holistic.maintainability.score}/100")
    return lines


@click.group()
@click.version_option(version=__version__, prog_name="codescribe")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a YAML config file.",
)
@click.pass_context
def codescribe(ctx: click.Context, config_path: Optional[str]) -> None:
    """codescribe: analyze a codebase and generate its documentation."""
    config = load_config(config_path)
    setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file,
    )
    ctx.obj = config


@codescribe.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("--output-dir", type=click.Path(), default=None, help="Output directory.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["md", "html"]),
    default=None,
    help="Output format. Defaults to the configured format.",
)
@click.option("--force", is_flag=True, help="Regenerate over existing documentation.")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Analyze and classify without calling the API.",
)
@click.pass_obj
def generate(
    config: AppConfig,
    path: str,
    output_dir: Optional[str],
    output_format: Optional[str],
    force: bool,
    dry_run: bool,
) -> None:
    """Generate documentation for the project at PATH.

    Analyzes the codebase, selects its workflow archetype and asks the
    LLM for each documentation section and the user flows.
    """
    out_dir = Path(output_dir or config.output.output_dir)
    fmt = output_format or config.output.default_format
    pages_dir = out_dir / "docs" if fmt == "html" else out_dir

    existing = MarkdownWriter(output_dir=str(pages_dir)).has_documentation()
    if existing and not force and not dry_run:
        raise click.ClickException(
            f"Documentation already exists in {out_dir}. Use --force to regenerate."
        )

    analysis = _run_analysis(path, config)
    for line in _summary_lines(analysis):
        click.echo(line)

    detectors = build_detectors(config.classification.detectors)

    if dry_run:
        verdict = WorkflowClassifier(detectors).classify(analysis)
        click.echo(f"Workflow archetype: {verdict.candidate_name}")
        click.echo("Dry run complete. No API calls made.")
        return

    llm = LLMClient(config=config.api)
    templates = TemplateManager()
    classifier = WorkflowClassifier(detectors, llm=llm, templates=templates)
    generator = DocumentationGenerator(llm, templates, classifier)

    try:
        doc = generator.generate(analysis, progress=click.echo)
    except (anthropic.APIError, jinja2.TemplateError, ValueError) as e:
        logger.error("Documentation generation failed: %s", e)
        raise click.ClickException(f"Documentation generation failed: {e}") from e

    if force:
        MarkdownWriter(output_dir=str(out_dir)).backup_existing()

    if fmt == "html":
        HtmlWriter(output_dir=str(out_dir)).write_site(doc)
    else:
        MarkdownWriter(output_dir=str(out_dir)).write_documentation(doc)

    if config.classification.write_report and doc.verdict is not None:
        MarkdownWriter(output_dir=str(pages_dir)).write_classification_report(
            doc.verdict, analysis.project_name
        )

    if doc.used_fallback:
        click.echo("Workflow generation failed, generic user flows were written instead.")
    usage = llm.total_usage
    click.echo(
        f"Tokens used: {usage.total_tokens:,} "
        f"({usage.input_tokens:,} in, {usage.output_tokens:,} out)"
    )
    click.echo(f"Documentation written to {out_dir}")


@codescribe.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("--output-dir", type=click.Path(), default=None, help="Output directory.")
@click.pass_context
def update(ctx: click.Context, path: str, output_dir: Optional[str]) -> None:
    """Regenerate documentation, backing up the previous output."""
    ctx.invoke(
        generate,
        path=path,
        output_dir=output_dir,
        output_format=None,
        force=True,
        dry_run=False,
    )


@codescribe.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the full analysis as JSON.")
@click.pass_obj
def analyze(config: AppConfig, path: str, as_json: bool) -> None:
    """Analyze the project at PATH and print a summary."""
    analysis = _run_analysis(path, config, show_progress=not as_json)

    if as_json:
        click.echo(json.dumps(analysis.to_dict(), indent=2))
        return

    for line in _summary_lines(analysis):
        click.echo(line)
    if analysis.routes:
        click.echo("\nEndpoints:")
        for route in analysis.routes:
            click.echo(f"  {route.signature} -> {route.handler}")
    if analysis.components:
        click.echo("\nComponents:")
        for component in analysis.components:
            click.echo(f"  {component.name}")


@codescribe.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.pass_obj
def classify(config: AppConfig, path: str) -> None:
    """Classify the workflow archetype of the project at PATH."""
    analysis = _run_analysis(path, config)
    classifier = WorkflowClassifier(build_detectors(config.classification.detectors))
    verdict = classifier.classify(analysis)

    click.echo(f"Workflow archetype: {verdict.candidate_name}")
    click.echo("Reasoning:")
    for number, entry in enumerate(verdict.reason_trail, start=1):
        click.echo(f"  {number}. {entry}")
