"""Tests for the Jinja2 template manager."""

import pytest
from jinja2 import TemplateNotFound

from codescribe.generators.template_manager import SECTIONS, TemplateManager
from codescribe.parsers.structure import (
    ComponentFact,
    DatabaseInfo,
    FileRecord,
    FunctionFact,
    ProjectAnalysis,
    QueryFact,
    RouteFact,
)


@pytest.fixture
def manager() -> TemplateManager:
    """Create a TemplateManager with the default templates directory."""
    return TemplateManager()


@pytest.fixture
def analysis() -> ProjectAnalysis:
    """A small full-stack project."""
    return ProjectAnalysis(
        project_name="login-app",
        root_path="/proj",
        files=[
            FileRecord(
                path="/proj/src/components/LoginForm.tsx",
                relative_path="src/components/LoginForm.tsx",
                components=[
                    ComponentFact(name="LoginForm", props=["onSubmit"], hooks=["useState"])
                ],
            ),
            FileRecord(
                path="/proj/src/api/routes.ts",
                relative_path="src/api/routes.ts",
                functions=[FunctionFact(name="loginHandler", params=["req", "res"])],
                routes=[RouteFact(method="POST", path="/login", handler="loginHandler")],
                queries=[
                    QueryFact(
                        operation="SELECT",
                        query="SELECT * FROM users WHERE email = $1",
                        location="src/api/routes.ts:12",
                        table="users",
                    )
                ],
            ),
        ],
        dependencies={"express": "^4.18.0", "react": "^18.2.0"},
        scripts={"start": "node server.js"},
        frameworks=["React", "Express"],
        databases=[DatabaseInfo(type="PostgreSQL")],
    )


class TestTemplateManagerInit:
    """Tests for TemplateManager initialization."""

    def test_default_templates_dir(self) -> None:
        manager = TemplateManager()
        assert manager._templates_path.exists()

    def test_custom_templates_dir(self, tmp_path) -> None:
        (tmp_path / "test.j2").write_text("Hello {{ name }}")
        manager = TemplateManager(templates_dir=str(tmp_path))
        assert manager._templates_path == tmp_path
        assert manager._render("test.j2", name="World") == "Hello World"

    def test_list_templates(self, manager: TemplateManager) -> None:
        templates = manager.list_templates()
        for section in SECTIONS:
            assert f"{section}.j2" in templates
        assert "api.j2" in templates
        for archetype in ("cli", "api", "webapp", "pages"):
            assert f"workflow_{archetype}.j2" in templates


class TestSectionPrompts:
    """Tests for the documentation section prompts."""

    @pytest.mark.parametrize("section", SECTIONS)
    def test_every_section_renders(
        self, manager: TemplateManager, analysis: ProjectAnalysis, section: str
    ) -> None:
        prompt = manager.render_section_prompt(section, analysis)
        assert "login-app" in prompt

    def test_overview_lists_dependencies(
        self, manager: TemplateManager, analysis: ProjectAnalysis
    ) -> None:
        prompt = manager.render_section_prompt("overview", analysis)
        assert "express: ^4.18.0" in prompt
        assert "React, Express" in prompt

    def test_backend_lists_routes(
        self, manager: TemplateManager, analysis: ProjectAnalysis
    ) -> None:
        prompt = manager.render_section_prompt("backend", analysis)
        assert "POST /login" in prompt
        assert "loginHandler" in prompt

    def test_frontend_lists_components(
        self, manager: TemplateManager, analysis: ProjectAnalysis
    ) -> None:
        prompt = manager.render_section_prompt("frontend", analysis)
        assert "LoginForm" in prompt
        assert "onSubmit" in prompt

    def test_database_lists_queries(
        self, manager: TemplateManager, analysis: ProjectAnalysis
    ) -> None:
        prompt = manager.render_section_prompt("database", analysis)
        assert "PostgreSQL" in prompt
        assert "SELECT" in prompt

    def test_empty_project(self, manager: TemplateManager) -> None:
        empty = ProjectAnalysis(project_name="empty", root_path="/empty")
        for section in SECTIONS:
            assert "empty" in manager.render_section_prompt(section, empty)

    def test_unknown_section(self, manager: TemplateManager, analysis: ProjectAnalysis) -> None:
        with pytest.raises(ValueError, match="Unknown documentation section"):
            manager.render_section_prompt("changelog", analysis)


class TestApiPrompt:
    """Tests for the API reference prompt."""

    def test_lists_every_route(
        self, manager: TemplateManager, analysis: ProjectAnalysis
    ) -> None:
        prompt = manager.render_api_prompt(analysis)
        assert "**POST /login** (src/api/routes.ts)" in prompt
        assert "Handler: loginHandler" in prompt
        assert "Middleware: none" in prompt
        assert '"apis"' in prompt

    def test_without_routes(self, manager: TemplateManager) -> None:
        empty = ProjectAnalysis(project_name="empty", root_path="/empty")
        assert "empty" in manager.render_api_prompt(empty)


class TestWorkflowPrompts:
    """Tests for the archetype workflow prompts."""

    def test_webapp_prompt(self, manager: TemplateManager, analysis: ProjectAnalysis) -> None:
        prompt = manager.render_workflow_prompt(
            "workflow_webapp.j2",
            analysis=analysis,
            components=["LoginForm"],
            endpoints=["POST /login"],
        )
        assert "LoginForm" in prompt
        assert "POST /login" in prompt

    def test_missing_template(self, manager: TemplateManager, analysis: ProjectAnalysis) -> None:
        with pytest.raises(TemplateNotFound):
            manager.render_workflow_prompt("workflow_desktop.j2", analysis=analysis)
