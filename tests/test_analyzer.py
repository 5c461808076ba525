"""Tests for the directory-batched analyzer."""

import asyncio
import json
import logging
import time
from pathlib import Path

import pytest

from codescribe.analysis import analyzer as analyzer_module
from codescribe.analysis.analyzer import (
    AnalyzerContext,
    CodebaseAnalyzer,
    analyze,
    build_record,
    discover_files,
    group_by_directory,
    read_manifest,
)
from codescribe.parsers.python_parser import PythonParser
from codescribe.parsers.structure import FileRecord, FileType
from codescribe.utils.config import AnalysisConfig

ROUTES_TS = """\
import express from 'express';
const router = express.Router();
router.post('/login', loginHandler);
export default router;
"""

LOGIN_FORM_TSX = """\
import React from 'react';
export default function LoginForm() {
  return <button onClick={() => submit()}>Log in</button>;
}
"""


def _write(root: Path, relative_path: str, content: str) -> Path:
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def web_project(tmp_path: Path) -> Path:
    """A small React + Express project with a CLI dependency."""
    root = tmp_path / "web-project"
    _write(
        root,
        "package.json",
        json.dumps(
            {
                "name": "login-app",
                "dependencies": {"commander": "^11.0.0", "react": "^18.2.0"},
                "devDependencies": {"typescript": "^5.0.0"},
                "scripts": {"build": "tsc", "start": "node dist/server.js"},
            }
        ),
    )
    _write(root, "src/routes.ts", ROUTES_TS)
    _write(root, "src/components/LoginForm.tsx", LOGIN_FORM_TSX)
    return root


class TestDiscovery:
    """Tests for discover_files() and group_by_directory()."""

    def test_filters(self, tmp_path: Path) -> None:
        _write(tmp_path, "index.js", "")
        _write(tmp_path, "notes.txt", "")
        _write(tmp_path, "app.min.js", "")
        _write(tmp_path, "src/api.test.ts", "")
        _write(tmp_path, "node_modules/react/index.js", "")
        _write(tmp_path, "supabase/migrations/001_init.sql", "")
        _write(tmp_path, "src/App.TSX", "")

        found = discover_files(tmp_path, AnalysisConfig())
        relative = [p.relative_to(tmp_path).as_posix() for p in found]
        assert relative == ["index.js", "src/App.TSX", "supabase/migrations/001_init.sql"]

    def test_group_by_directory(self, tmp_path: Path) -> None:
        paths = [tmp_path / "a.js", tmp_path / "src" / "b.js", tmp_path / "src" / "c.js"]
        groups = group_by_directory(tmp_path, paths)
        assert list(groups) == [".", "src"]
        assert groups["src"] == paths[1:]


class TestReadManifest:
    """Tests for read_manifest()."""

    def test_missing(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="codescribe"):
            assert read_manifest(tmp_path) == {}
        assert "No package.json" in caplog.text

    def test_malformed(self, tmp_path: Path) -> None:
        _write(tmp_path, "package.json", "{ not json")
        assert read_manifest(tmp_path) == {}

    def test_not_an_object(self, tmp_path: Path) -> None:
        _write(tmp_path, "package.json", "[1, 2]")
        assert read_manifest(tmp_path) == {}


class TestBuildRecord:
    """Tests for build_record()."""

    def test_script_file(self, web_project: Path) -> None:
        context = AnalyzerContext(root=web_project, config=AnalysisConfig())
        record = build_record(context, web_project / "src" / "routes.ts")
        assert record.relative_path == "src/routes.ts"
        assert record.file_type == FileType.TYPESCRIPT
        assert record.size == len(ROUTES_TS.encode())
        assert record.last_modified is not None
        assert [r.signature for r in record.routes] == ["POST /login"]

    def test_package_json_dependencies(self, web_project: Path) -> None:
        context = AnalyzerContext(root=web_project, config=AnalysisConfig())
        record = build_record(context, web_project / "package.json")
        assert record.dependencies == ["commander", "react"]

    def test_syntax_error_degrades(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = _write(tmp_path, "src/broken.js", "import x from 'x';\nfunction (\n")
        context = AnalyzerContext(root=tmp_path, config=AnalysisConfig())
        with caplog.at_level(logging.WARNING, logger="codescribe"):
            record = build_record(context, path)
        assert record.dependencies == []
        assert record.functions == []
        assert record.content.startswith("import")
        assert "src/broken.js" in caplog.text

    def test_undecodable_file_degrades(self, tmp_path: Path) -> None:
        path = tmp_path / "binary.js"
        path.write_bytes(b"\xff\xfe\x00bad")
        context = AnalyzerContext(root=tmp_path, config=AnalysisConfig())
        record = build_record(context, path)
        assert record.relative_path == "binary.js"
        assert record.facts_dict()["functions"] == []

    def test_python_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "app.py", "from flask import Flask\n\ndef index():\n    pass\n")
        context = AnalyzerContext(root=tmp_path, config=AnalysisConfig())
        record = build_record(context, path)
        assert record.dependencies == ["flask"]
        assert [f.name for f in record.functions] == ["index"]


class TestAnalyze:
    """Tests for the full analysis."""

    def test_web_project(self, web_project: Path) -> None:
        analysis = asyncio.run(analyze(str(web_project)))

        assert analysis.project_name == "login-app"
        assert [r.signature for r in analysis.routes] == ["POST /login"]
        assert [c.name for c in analysis.components] == ["LoginForm"]
        assert "React" in analysis.frameworks
        assert "Express" in analysis.frameworks
        assert analysis.dependencies == {"commander": "^11.0.0", "react": "^18.2.0"}
        assert analysis.dev_dependencies == {"typescript": "^5.0.0"}
        assert [d.platform for d in analysis.deployments] == ["Generic Node.js"]
        assert analysis.architecture.apis == ["POST /login"]
        assert analysis.architecture.frontend == ["src/components/LoginForm.tsx"]
        assert analysis.holistic is not None

    def test_project_name_falls_back_to_directory(self, tmp_path: Path) -> None:
        root = tmp_path / "plain"
        _write(root, "main.py", "print('hi')\n")
        analysis = asyncio.run(analyze(str(root)))
        assert analysis.project_name == "plain"
        assert analysis.dependencies == {}
        assert analysis.scripts == {}

    def test_relative_paths_are_unique(self, web_project: Path) -> None:
        _write(web_project, "lib/routes.ts", ROUTES_TS)
        analysis = asyncio.run(analyze(str(web_project)))
        paths = [record.relative_path for record in analysis.files]
        assert len(paths) == len(set(paths))

    def test_failure_is_isolated(self, web_project: Path) -> None:
        clean = asyncio.run(analyze(str(web_project)))
        _write(web_project, "src/broken.ts", "export const = ;\n")
        analysis = asyncio.run(analyze(str(web_project)))

        for record in clean.files:
            other = analysis.get_file(record.relative_path)
            assert other is not None
            assert other.facts_dict() == record.facts_dict()

        broken = analysis.get_file("src/broken.ts")
        assert broken is not None
        assert broken.exports == []
        assert [r.signature for r in analysis.routes] == ["POST /login"]
        assert [c.name for c in analysis.components] == ["LoginForm"]

    @pytest.mark.parametrize("error", [RecursionError, MemoryError])
    def test_parser_exhaustion_is_isolated(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, error: type
    ) -> None:
        _write(tmp_path, "good.js", "app.get('/users', handler);\n")
        _write(tmp_path, "gen.py", "x = " + "-" * 50 + "1\n")

        def exhausted(self, source: str, record: FileRecord) -> None:
            raise error("parser stack overflow")

        monkeypatch.setattr(PythonParser, "parse_source", exhausted)
        analysis = asyncio.run(analyze(str(tmp_path)))

        assert [r.signature for r in analysis.routes] == ["GET /users"]
        generated = analysis.get_file("gen.py")
        assert generated is not None
        assert generated.facts_dict()["functions"] == []

    def test_idempotent(self, web_project: Path) -> None:
        first = asyncio.run(analyze(str(web_project)))
        second = asyncio.run(analyze(str(web_project)))
        assert [r.relative_path for r in first.files] == [r.relative_path for r in second.files]
        assert [r.facts_dict() for r in first.files] == [r.facts_dict() for r in second.files]
        assert first.frameworks == second.frameworks
        assert first.holistic == second.holistic

    def test_progress_is_monotonic(self, web_project: Path) -> None:
        events: list[tuple[str, float]] = []
        asyncio.run(analyze(str(web_project), lambda status, pct: events.append((status, pct))))

        percents = [pct for _, pct in events]
        assert percents[0] == 0
        assert percents[-1] == 100
        assert percents == sorted(percents)
        assert events[-1][0] == "Analysis complete"

    def test_concurrent_runs_are_independent(self, web_project: Path, tmp_path: Path) -> None:
        other = tmp_path / "other"
        _write(other, "server.js", "app.get('/health', health);\n")

        async def both():
            return await asyncio.gather(analyze(str(web_project)), analyze(str(other)))

        web, api = asyncio.run(both())
        assert [r.signature for r in web.routes] == ["POST /login"]
        assert [r.signature for r in api.routes] == ["GET /health"]
        assert api.components == []

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            asyncio.run(analyze(str(tmp_path / "nope")))

    def test_root_is_a_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "file.js", "")
        with pytest.raises(NotADirectoryError):
            asyncio.run(analyze(str(path)))


class _CountingAnalyzer(CodebaseAnalyzer):
    """Records how many directories are in flight at once."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.max_in_flight = 0
        self.seen: list[str] = []

    async def _analyze_directory(self, context, directory, paths):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.seen.append(directory)
        try:
            await asyncio.sleep(0.01)
            return await super()._analyze_directory(context, directory, paths)
        finally:
            self.in_flight -= 1


class TestBatching:
    """Tests for the directory batch bound."""

    @pytest.mark.parametrize("batch_size", [1, 2, 4])
    def test_at_most_batch_size_directories_in_flight(
        self, tmp_path: Path, batch_size: int
    ) -> None:
        for index in range(5):
            _write(tmp_path, f"dir{index}/mod.js", f"export const v{index} = {index};\n")

        runner = _CountingAnalyzer(str(tmp_path), AnalysisConfig(batch_size=batch_size))
        analysis = asyncio.run(runner.analyze())

        assert runner.max_in_flight == min(batch_size, 5)
        assert sorted(runner.seen) == [f"dir{i}" for i in range(5)]
        assert len(analysis.files) == 5

    def test_batch_progress_events(self, tmp_path: Path) -> None:
        for index in range(4):
            _write(tmp_path, f"d{index}/a.js", "")
        events: list[float] = []
        asyncio.run(
            analyze(str(tmp_path), lambda _, pct: events.append(pct), AnalysisConfig(batch_size=2))
        )
        assert 55 in events
        assert 80 in events


class TestFileTimeout:
    """Tests for the optional per-file timeout."""

    def test_slow_file_degrades(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path, "slow.js", "export const a = 1;\n")

        def slow_build(context: AnalyzerContext, path: Path) -> FileRecord:
            time.sleep(0.3)
            return FileRecord(path=str(path), relative_path="slow.js", exports=["a"])

        monkeypatch.setattr(analyzer_module, "build_record", slow_build)
        config = AnalysisConfig(file_timeout=0.01)
        analysis = asyncio.run(analyze(str(tmp_path), config=config))

        record = analysis.get_file("slow.js")
        assert record is not None
        assert record.exports == []
        assert record.file_type == FileType.JAVASCRIPT
