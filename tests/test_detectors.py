"""Tests for framework, database and deployment detection."""

from pathlib import Path

from codescribe.analysis.detectors import (
    FRAMEWORK_KEYWORDS,
    detect_databases,
    detect_deployments,
    detect_frameworks,
    match_keywords,
)
from codescribe.parsers.structure import FileRecord


def _record(relative_path: str, dependencies: list[str]) -> FileRecord:
    return FileRecord(
        path=f"/proj/{relative_path}", relative_path=relative_path, dependencies=dependencies
    )


class TestMatchKeywords:
    """Tests for the table matcher."""

    def test_substring_match(self) -> None:
        files = [_record("a.ts", ["@vue/runtime-core"])]
        assert match_keywords(files, FRAMEWORK_KEYWORDS) == ["Vue"]

    def test_order_of_first_discovery(self) -> None:
        files = [
            _record("server.js", ["express"]),
            _record("App.jsx", ["react", "express"]),
        ]
        assert detect_frameworks(files) == ["Express", "React"]

    def test_no_duplicates(self) -> None:
        files = [_record("a.js", ["react"]), _record("b.js", ["react-dom"])]
        assert detect_frameworks(files) == ["React"]

    def test_python_frameworks(self) -> None:
        files = [_record("app.py", ["fastapi", "sqlalchemy.orm"])]
        assert detect_frameworks(files) == ["FastAPI"]
        assert [db.type for db in detect_databases(files)] == ["SQL (SQLAlchemy)"]

    def test_nothing_detected(self) -> None:
        assert detect_frameworks([_record("a.js", ["lodash"])]) == []
        assert detect_frameworks([]) == []


class TestDetectDatabases:
    """Tests for database detection."""

    def test_databases(self) -> None:
        files = [
            _record("db.ts", ["@prisma/client"]),
            _record("models/user.js", ["mongoose"]),
            _record("other.ts", ["@prisma/client"]),
        ]
        databases = detect_databases(files)
        assert [db.type for db in databases] == [
            "PostgreSQL/MySQL (Prisma)",
            "MongoDB (Mongoose)",
        ]
        assert all(db.tables == [] for db in databases)


class TestDetectDeployments:
    """Tests for deployment detection."""

    def test_root_files(self, tmp_path: Path) -> None:
        (tmp_path / "vercel.json").write_text("{}")
        (tmp_path / "Dockerfile").write_text("FROM node:20\n")
        platforms = [d.platform for d in detect_deployments(str(tmp_path), {})]
        assert platforms == ["Vercel", "Docker"]

    def test_nested_files_are_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "deploy").mkdir()
        (tmp_path / "deploy" / "Dockerfile").write_text("FROM node:20\n")
        assert detect_deployments(str(tmp_path), {}) == []

    def test_generic_node_needs_build_and_start(self, tmp_path: Path) -> None:
        both = detect_deployments(str(tmp_path), {"build": "tsc", "start": "node dist"})
        only_start = detect_deployments(str(tmp_path), {"start": "node index.js"})
        assert [d.platform for d in both] == ["Generic Node.js"]
        assert only_start == []
