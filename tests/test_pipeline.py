"""Unit tests for the pipeline orchestrator (stackforge.pipeline).

Tests cover:
- GenerationError and request validation
- Stage gating by request options and by an empty tree
- Failure isolation and upstream filtering
- Extraction misses, malformed records, failing file hooks and path collisions
- Entities dropped past the configured cap
- Import resolution over the assembled tree
- The CLI entry point, including the JSON result report
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

from stackforge.config import AssemblerConfig
from stackforge.pipeline import GenerationError, Orchestrator, main
from stackforge.stages.registry import StageContext, StageRegistry, StageSpec


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _files_stage(*records: dict[str, Any]):
    def _stage(ctx: StageContext) -> list[dict[str, Any]]:
        return list(records)

    return _stage


def _failing_stage(ctx: StageContext) -> None:
    raise RuntimeError("model timed out")


def _generated(result) -> list[str]:
    """Paths excluding the static config files."""
    return [f.path for f in result.files if f.source_stage != "config"]


# ---------------------------------------------------------------------------
# GenerationError / request validation
# ---------------------------------------------------------------------------

class TestGenerationError:
    @pytest.mark.unit
    def test_message_includes_stage(self):
        err = GenerationError("request", "project_name is required")
        assert err.stage == "request"
        assert str(err) == "request: project_name is required"


class TestRequestValidation:
    @pytest.mark.unit
    async def test_non_mapping_rejected(self):
        with pytest.raises(GenerationError, match="expected a mapping"):
            await Orchestrator(StageRegistry([])).generate(["not", "a", "request"])

    @pytest.mark.unit
    async def test_missing_requirements_rejected(self):
        with pytest.raises(GenerationError) as exc_info:
            await Orchestrator(StageRegistry([])).generate({"projectName": "x"})
        assert exc_info.value.stage == "request"

    @pytest.mark.unit
    async def test_blank_project_name_rejected(self, minimal_request):
        with pytest.raises(GenerationError):
            await Orchestrator(StageRegistry([])).generate({**minimal_request, "project_name": " "})


# ---------------------------------------------------------------------------
# Stage scheduling
# ---------------------------------------------------------------------------

class TestStageScheduling:
    @pytest.mark.unit
    async def test_disabled_stage_has_no_outcome(self, minimal_request):
        registry = StageRegistry([
            StageSpec("a", _files_stage({"path": "src/a.ts", "content": "export {};"})),
            StageSpec("b", _files_stage({"path": "src/b.ts"}), option="generate_tests"),
        ])
        request = {**minimal_request, "options": {"generateTests": False}}
        result = await Orchestrator(registry).generate(request)

        assert [o.name for o in result.stage_outcomes] == ["a"]
        assert "src/b.ts" not in _generated(result)

    @pytest.mark.unit
    async def test_report_only_skipped_on_empty_tree(self, minimal_request):
        calls: list[str] = []

        def _report(ctx: StageContext) -> dict[str, Any]:
            calls.append("report")
            return {}

        registry = StageRegistry([StageSpec("report", _report, report_only=True)])
        result = await Orchestrator(registry).generate(minimal_request)

        assert calls == []
        assert result.stage_outcomes == []

    @pytest.mark.unit
    async def test_report_only_sees_snapshot_and_keeps_summary(self, minimal_request):
        seen: list[str] = []

        def _report(ctx: StageContext) -> dict[str, Any]:
            seen.extend(f.path for f in ctx.files)
            return {"checked": len(ctx.files)}

        registry = StageRegistry([
            StageSpec("a", _files_stage({"path": "src/a.ts", "content": "export {};"})),
            StageSpec("report", _report, report_only=True),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        assert seen == ["src/a.ts"]
        outcome = result.outcome("report")
        assert outcome.summary == {"checked": 1}
        assert outcome.produced_file_count == 0
        assert result.find("src/a.ts").content == "export {};"

    @pytest.mark.unit
    async def test_entities_normalized_once(self, minimal_request):
        seen: list[list[str]] = []

        def _record(ctx: StageContext) -> list[Any]:
            seen.append([e.canonical_name for e in ctx.entities])
            return []

        registry = StageRegistry([StageSpec("a", _record), StageSpec("b", _record)])
        request = {**minimal_request, "requirements": {"description": "track orders and customers"}}
        await Orchestrator(registry).generate(request)

        assert seen[0] == seen[1]
        assert seen[0]


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------

class TestFailureIsolation:
    @pytest.mark.unit
    async def test_failed_stage_recorded_and_run_continues(self, minimal_request):
        registry = StageRegistry([
            StageSpec("a", _failing_stage),
            StageSpec("b", _files_stage({"path": "src/b.ts"})),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        failed = result.outcome("a")
        assert failed.success is False
        assert failed.error == "model timed out"
        assert result.outcome("b").success is True
        assert _generated(result) == ["src/b.ts"]
        assert result.success is True

    @pytest.mark.unit
    async def test_failed_dependency_missing_from_upstream(self, minimal_request):
        seen: list[dict[str, Any]] = []

        def _consumer(ctx: StageContext) -> list[Any]:
            seen.append(dict(ctx.upstream))
            return []

        registry = StageRegistry([
            StageSpec("a", _failing_stage),
            StageSpec("b", lambda ctx: {"files": [], "token": 7}),
            StageSpec("c", _consumer, depends_on=("a", "b")),
        ])
        await Orchestrator(registry).generate(minimal_request)

        assert seen == [{"b": {"files": [], "token": 7}}]

    @pytest.mark.unit
    async def test_async_stage_failure(self, minimal_request):
        async def _broken(ctx: StageContext) -> None:
            raise ValueError

        result = await Orchestrator(StageRegistry([StageSpec("a", _broken)])).generate(minimal_request)
        assert result.outcome("a").error == "ValueError"


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

class TestAssembly:
    @pytest.mark.unit
    async def test_extraction_miss_recorded(self, minimal_request):
        registry = StageRegistry([StageSpec("a", lambda ctx: 42)])
        result = await Orchestrator(registry).generate(minimal_request)

        outcome = result.outcome("a")
        assert outcome.success is True
        assert outcome.produced_file_count == 0
        assert [(m.stage, m.output_type) for m in result.diagnostics.extraction_misses] == [("a", "int")]

    @pytest.mark.unit
    async def test_last_write_wins(self, minimal_request):
        registry = StageRegistry([
            StageSpec("a", _files_stage({"path": "src/x.ts", "content": "// a"})),
            StageSpec("b", _files_stage({"path": "src/x.ts", "content": "// b"})),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        assert result.find("src/x.ts").content == "// b"
        assert _generated(result) == ["src/x.ts"]
        collision = result.diagnostics.collisions[0]
        assert (collision.previous_stage, collision.winning_stage) == ("a", "b")

    @pytest.mark.unit
    async def test_file_hooks_applied(self, minimal_request):
        def _upper(files):
            return [f.with_content(f.content.upper()) for f in files]

        registry = StageRegistry([
            StageSpec("a", _files_stage({"path": "src/x.ts", "content": "abc"}), file_hooks=(_upper,)),
        ])
        result = await Orchestrator(registry).generate(minimal_request)
        assert result.find("src/x.ts").content == "ABC"

    @pytest.mark.unit
    async def test_malformed_record_does_not_abort_run(self, minimal_request):
        registry = StageRegistry([
            StageSpec("a", _files_stage({"path": "src/a.ts", "content": "export {};"})),
            StageSpec("b", _files_stage({"filename": "dir/", "content": "x"})),
            StageSpec("c", _files_stage({"path": "src/c.ts"})),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        assert _generated(result) == ["src/a.ts", "src/c.ts"]
        assert result.outcome("b").success is True
        assert result.outcome("b").produced_file_count == 0
        assert result.outcome("c").success is True

    @pytest.mark.unit
    async def test_raising_file_hook_fails_only_its_stage(self, minimal_request):
        def _explode(files):
            raise KeyError("entry point")

        seen: list[dict[str, Any]] = []

        def _consumer(ctx: StageContext) -> list[Any]:
            seen.append(dict(ctx.upstream))
            return [{"path": "src/c.ts"}]

        registry = StageRegistry([
            StageSpec("a", _files_stage({"path": "src/a.ts"})),
            StageSpec("b", _files_stage({"path": "src/b.ts"}), file_hooks=(_explode,)),
            StageSpec("c", _consumer, depends_on=("b",)),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        failed = result.outcome("b")
        assert failed.success is False
        assert "could not assemble output" in failed.error
        assert "entry point" in failed.error
        assert seen == [{}]
        assert _generated(result) == ["src/a.ts", "src/c.ts"]
        assert result.success is True

    @pytest.mark.unit
    async def test_file_hook_returning_non_files(self, minimal_request):
        registry = StageRegistry([
            StageSpec(
                "a",
                _files_stage({"path": "src/a.ts"}),
                file_hooks=(lambda files: [f.path for f in files],),
            ),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        outcome = result.outcome("a")
        assert outcome.success is False
        assert "expected LogicalFile" in outcome.error
        assert _generated(result) == []

    @pytest.mark.unit
    async def test_entities_past_cap_reported(self, minimal_request):
        seen: list[list[str]] = []

        def _record(ctx: StageContext) -> list[Any]:
            seen.append([e.canonical_name for e in ctx.entities])
            return []

        request = {**minimal_request, "requirements": {"description": "tasks, users and orders"}}
        orchestrator = Orchestrator(
            StageRegistry([StageSpec("a", _record)]), AssemblerConfig(max_entities=2)
        )
        result = await orchestrator.generate(request)

        assert seen == [["Task", "User"]]
        assert result.diagnostics.dropped_entities == ["Order"]

    @pytest.mark.unit
    async def test_no_entities_dropped_under_cap(self, minimal_request):
        result = await Orchestrator(StageRegistry([])).generate(minimal_request)
        assert result.diagnostics.dropped_entities == []

    @pytest.mark.unit
    async def test_config_files_appended(self, minimal_request):
        result = await Orchestrator(StageRegistry([])).generate(minimal_request)

        roots = [f for f in result.files if f.is_root_artifact]
        assert [f.path for f in roots] == ["package.json"]
        assert result.find("backend/package.json") is not None
        assert "@prisma/client" not in result.find("backend/package.json").content

    @pytest.mark.unit
    async def test_cross_stage_import_resolved(self, minimal_request):
        registry = StageRegistry([
            StageSpec("a", _files_stage({
                "path": "backend/src/controllers/thing.controller.ts",
                "content": "import { ThingService } from 'services/thing.service';\n",
            })),
            StageSpec("b", _files_stage({
                "path": "backend/src/services/thing.service.ts",
                "content": "export class ThingService {}\n",
            })),
        ])
        result = await Orchestrator(registry).generate(minimal_request)

        controller = result.find("backend/src/controllers/thing.controller.ts")
        assert "from '../services/thing.service'" in controller.content
        assert controller.source_stage == "a"
        assert result.diagnostics.rewritten_references == 1
        assert result.diagnostics.unresolved_references == []

    @pytest.mark.unit
    async def test_metrics(self, minimal_request):
        registry = StageRegistry([StageSpec("a", _files_stage({"path": "src/x.ts", "content": "a\nb"}))])
        result = await Orchestrator(registry).generate(minimal_request)

        assert result.metrics.total_files == len(result.files)
        assert result.metrics.total_lines == sum(f.line_count for f in result.files)
        assert result.metrics.files_by_type["typescript"] >= 1
        assert result.metadata.version == "0.3.0"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestMain:
    @pytest.mark.unit
    def test_writes_tree(self, tmp_path: Path, monkeypatch, sample_request):
        request = tmp_path / "request.json"
        request.write_text(json.dumps(sample_request))
        out = tmp_path / "out"
        monkeypatch.setattr(sys, "argv", ["stackforge", str(request), "-o", str(out)])

        main()

        assert (out / "package.json").exists()
        assert (out / "backend" / "src" / "server.ts").exists()
        assert (out / "frontend" / "src" / "main.tsx").exists()

    @pytest.mark.unit
    def test_writes_report(self, tmp_path: Path, monkeypatch, sample_request):
        request = tmp_path / "request.json"
        request.write_text(json.dumps(sample_request))
        report = tmp_path / "reports" / "result.json"
        monkeypatch.setattr(sys, "argv", ["stackforge", str(request), "--report", str(report)])

        main()

        data = json.loads(report.read_text())
        assert data["success"] is True
        assert data["project_name"] == "Task Manager"
        assert [o["name"] for o in data["stage_outcomes"]][:2] == ["architecture", "schema"]
        assert data["diagnostics"]["unresolved_references"] == []

    @pytest.mark.unit
    def test_missing_request_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["stackforge", str(tmp_path / "nope.json")])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_malformed_request(self, tmp_path: Path, monkeypatch):
        request = tmp_path / "request.yaml"
        request.write_text("projectName: only\n")
        monkeypatch.setattr(sys, "argv", ["stackforge", str(request)])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
