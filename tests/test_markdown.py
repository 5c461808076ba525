"""Tests for the Markdown output generator."""

import json
from pathlib import Path

import pytest

from codescribe.generators.api_docs import (
    ApiEndpointDoc,
    ApiExample,
    ApiParameter,
    ApiResponse,
)
from codescribe.generators.doc_generator import GeneratedDocumentation
from codescribe.output.markdown import (
    JSON_FILE,
    PAGES,
    REPORT_FILE,
    MarkdownWriter,
    render_classification_report,
)
from codescribe.workflows.detectors import DetectorReport
from codescribe.workflows.engine import ClassificationVerdict
from codescribe.workflows.flows import UserFlow, UserFlowStep


@pytest.fixture
def writer(tmp_path: Path) -> MarkdownWriter:
    """Create a MarkdownWriter with a temp output directory."""
    return MarkdownWriter(output_dir=str(tmp_path / "docs"))


def _verdict() -> ClassificationVerdict:
    return ClassificationVerdict(
        candidate_name="webapp",
        reason_trail=["CLI: applicable", "WebApp: applicable", "Selected WebApp"],
        evidence={"modern_web_evidence": ["React"]},
        reports=[
            DetectorReport(name="cli", can_handle=True),
            DetectorReport(name="webapp", can_handle=True),
            DetectorReport(name="api", can_handle=False),
        ],
    )


def _sample_doc() -> GeneratedDocumentation:
    return GeneratedDocumentation(
        project_name="login-app",
        sections={
            "overview": "An app for signing in.",
            "frontend": "React frontend.",
            "backend": "Express backend.",
            "database": "No database.",
            "deployment": "Run npm start.",
            "troubleshooting": "Check the logs.",
        },
        user_flows=[
            UserFlow(
                name="Sign In",
                slug="sign-in",
                description="A user signs in.",
                steps=[
                    UserFlowStep(
                        action="Submit the login form",
                        component="LoginForm",
                        event="submit",
                        api_endpoint="POST /login",
                        service_function="loginHandler",
                        result="The dashboard opens",
                    )
                ],
            )
        ],
        api_docs=[
            ApiEndpointDoc(
                endpoint="/login",
                method="POST",
                description="Signs a user in.",
                parameters=[ApiParameter(name="email", description="Email address")],
                responses=[ApiResponse(status=200, description="Success", schema="JSON")],
                examples=[
                    ApiExample(title="Sign in", request="POST /login", response='{"ok": true}')
                ],
            )
        ],
        verdict=_verdict(),
        architecture_diagram="graph TB\n    FE0 --> BE0\n",
        endpoints=[
            {
                "method": "POST",
                "path": "/login",
                "handler": "loginHandler",
                "params": [],
                "file": "src/routes.ts",
            }
        ],
        components=[{"name": "LoginForm", "props": ["onSubmit"], "file": "src/LoginForm.tsx"}],
    )


class TestWriteDocumentation:
    """Tests for write_documentation()."""

    def test_writes_every_page_and_json(self, writer: MarkdownWriter) -> None:
        paths = writer.write_documentation(_sample_doc())
        assert [p.name for p in paths] == [f"{stem}.md" for stem, _ in PAGES] + [JSON_FILE]
        assert "api.md" in [p.name for p in paths]
        assert all(p.exists() for p in paths)

    def test_json_dump(self, writer: MarkdownWriter) -> None:
        writer.write_documentation(_sample_doc())
        data = json.loads((writer.output_dir / JSON_FILE).read_text())
        assert data["project_name"] == "login-app"
        assert data["classification"]["candidate_name"] == "webapp"
        assert data["endpoints"][0]["path"] == "/login"
        assert data["api_docs"][0]["responses"][0]["status"] == 200

    def test_has_documentation(self, writer: MarkdownWriter) -> None:
        assert not writer.has_documentation()
        writer.write_documentation(_sample_doc())
        assert writer.has_documentation()


class TestRenderPage:
    """Tests for render_page()."""

    def test_section_page(self, writer: MarkdownWriter) -> None:
        page = writer.render_page("overview", "Overview", _sample_doc())
        assert page == "# Overview\n\nAn app for signing in.\n"

    def test_backend_endpoints_table(self, writer: MarkdownWriter) -> None:
        page = writer.render_page("backend", "Backend", _sample_doc())
        assert "## Endpoints" in page
        assert "| POST | `/login` | loginHandler | `src/routes.ts` |" in page

    def test_frontend_components_table(self, writer: MarkdownWriter) -> None:
        page = writer.render_page("frontend", "Frontend", _sample_doc())
        assert "| LoginForm | onSubmit | `src/LoginForm.tsx` |" in page

    def test_user_flows(self, writer: MarkdownWriter) -> None:
        page = writer.render_page("user-flows", "User Flows", _sample_doc())
        assert '<a id="sign-in"></a>' in page
        assert "## Sign In" in page
        assert "1. **Submit the login form**" in page
        assert "   - Endpoint: `POST /login`" in page
        assert "   - Result: The dashboard opens" in page

    def test_no_user_flows(self, writer: MarkdownWriter) -> None:
        doc = GeneratedDocumentation(project_name="x")
        page = writer.render_page("user-flows", "User Flows", doc)
        assert "No user flows were identified." in page

    def test_api_page(self, writer: MarkdownWriter) -> None:
        page = writer.render_page("api", "API Reference", _sample_doc())
        assert page.startswith("# API Reference\n\n## POST /login\n\nSigns a user in.\n")
        assert "- `email` (string, required): Email address" in page
        assert "- `200` Success (JSON)" in page
        assert "### Sign in\n\n```\nPOST /login\n```" in page
        assert '```json\n{"ok": true}\n```' in page

    def test_api_page_without_endpoints(self, writer: MarkdownWriter) -> None:
        doc = GeneratedDocumentation(project_name="x")
        page = writer.render_page("api", "API Reference", doc)
        assert "No API endpoints were found." in page

    def test_architecture_page(self, writer: MarkdownWriter) -> None:
        page = writer.render_page("architecture", "Architecture", _sample_doc())
        assert "```mermaid\ngraph TB\n    FE0 --> BE0\n```" in page

    def test_missing_section(self, writer: MarkdownWriter) -> None:
        doc = GeneratedDocumentation(project_name="x")
        assert writer.render_page("database", "Database", doc) == "# Database\n"


class TestBackup:
    """Tests for backup_existing()."""

    def test_nothing_to_back_up(self, writer: MarkdownWriter) -> None:
        assert writer.backup_existing() is None

    def test_moves_existing_directory(self, writer: MarkdownWriter) -> None:
        writer.write_documentation(_sample_doc())
        backup = writer.backup_existing()
        assert backup is not None
        assert backup.name.startswith("docs.backup-")
        assert (backup / JSON_FILE).exists()
        assert not writer.output_dir.exists()


class TestClassificationReport:
    """Tests for the classification report."""

    def test_render(self) -> None:
        report = render_classification_report(_verdict(), "login-app")
        assert report.startswith("# Workflow Classification: login-app\n")
        assert "**Selected archetype:** webapp" in report
        assert "1. CLI: applicable" in report
        assert "3. Selected WebApp" in report
        assert "| api | no |" in report
        assert "- React" in report

    def test_generic_without_reports(self) -> None:
        report = render_classification_report(
            ClassificationVerdict(candidate_name="generic"), "x"
        )
        assert "## Detectors" not in report
        assert "## Modern Web Evidence" not in report

    def test_write(self, writer: MarkdownWriter) -> None:
        path = writer.write_classification_report(_verdict(), "login-app")
        assert path.name == REPORT_FILE
        assert "webapp" in path.read_text()
