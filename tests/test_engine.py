"""End-to-end tests for the roadmap engine."""

import json
from datetime import datetime, timedelta

import pytest

from brainstorming import HeuristicSuggestionProvider
from contracts import (
    AnalysisRequest,
    ExportFormat,
    GapforgeError,
    ItemStatus,
    Priority,
    Roadmap,
    RoadmapGenerationError,
)
from orchestrator import RoadmapEngine, analyze
from orchestrator.engine import resolve_specs_dir


SPEC = """# F001: Backups

### FR1: Create Backup
Create a backup with source and destination.

### FR2: Restore Archive
**Priority:** P0
"""

BACKUP_PY = '''def create_backup(source, destination):
    data = read(source)
    write(destination, data)
    return destination
'''


def _write(root, files):
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


def _make_project(tmp_path, spec=SPEC):
    root = tmp_path / "proj"
    _write(root, {
        "specs/F001-backups/spec.md": spec,
        "src/backup.py": BACKUP_PY,
        "tests/test_backup.py": "def test_backup():\n    assert True\n",
        "README.md": "# Demo\n\n## Features\n- Supports roadmap exports\n",
    })
    return root


def _run(root, **overrides):
    data = dict(directory=str(root), formats=[ExportFormat.MARKDOWN, ExportFormat.JSON, ExportFormat.CSV])
    data.update(overrides)
    return RoadmapEngine(suggestion_provider=HeuristicSuggestionProvider()).run(AnalysisRequest(**data))


class TestRoadmapEngine:
    """Test a full run on a small project."""

    def test_full_run(self, tmp_path):
        root = _make_project(tmp_path)
        result = _run(root, output_dir="out")

        assert [g.id for g in result.spec_gaps] == ["gap-f001-fr2"]
        assert result.spec_gaps[0].priority == Priority.P0
        assert result.completeness.priorities["p0"].total == 1
        assert len(result.feature_gaps) == 1
        assert result.features
        assert "gap-f001-fr2" in [i.id for i in result.roadmap.all_items]
        assert result.context.name == "proj"
        assert not result.partial

        out = root / "out"
        for name in ["ROADMAP.md", "roadmap.json", "roadmap.csv", "run_summary.json"]:
            assert (out / name).is_file()
        summary = json.loads((out / "run_summary.json").read_text(encoding="utf-8"))
        assert summary["suggestion_provider"] == "heuristic"
        assert summary["spec_gaps"] == 1
        assert len(summary["artifacts_produced"]) == 3

    def test_runs_are_repeatable(self, tmp_path):
        root = _make_project(tmp_path)
        first = _run(root).roadmap.model_dump(exclude={"metadata"})
        second = _run(root).roadmap.model_dump(exclude={"metadata"})
        assert first == second

    def test_without_output_dir_nothing_is_written(self, tmp_path):
        root = _make_project(tmp_path)
        result = _run(root, formats=[ExportFormat.JSON])
        assert result.exports[0].success
        assert result.exports[0].output_path is None
        assert Roadmap.model_validate_json(result.exports[0].content).metadata.project_name == "proj"
        assert not (root / "roadmap").exists()

    def test_project_name_override(self, tmp_path):
        result = _run(_make_project(tmp_path), project_name="Backup Tool")
        assert result.context.name == "Backup Tool"

    def test_missing_specs_is_a_warning(self, tmp_path):
        root = tmp_path / "bare"
        _write(root, {"app.py": "def main():\n    run()\n"})
        result = _run(root)
        assert result.spec_gaps == []
        assert "NO_SPECS" in [w.code for w in result.warnings]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(GapforgeError):
            _run(tmp_path / "nope")

    def test_hard_cycle_aborts(self, tmp_path):
        spec = "# F001: Demo\n\n### FR1: Foo\nBlocked by FR2.\n\n### FR2: Bar\nBlocked by FR1.\n"
        with pytest.raises(RoadmapGenerationError):
            _run(_make_project(tmp_path, spec))

    def test_previous_roadmap_closes_items(self, tmp_path):
        root = _make_project(tmp_path)
        _run(root, output_dir="out")
        previous = Roadmap.model_validate_json((root / "out" / "roadmap.json").read_text(encoding="utf-8"))
        for phase in previous.phases:
            for item in phase.items:
                if item.id == "gap-f001-fr2":
                    item.status = ItemStatus.COMPLETED
        (root / "previous.json").write_text(previous.model_dump_json(), encoding="utf-8")

        result = _run(root, previous_roadmap="previous.json")
        assert "gap-f001-fr2" not in [i.id for i in result.roadmap.all_items]

        reinstated = _run(root, previous_roadmap="previous.json", reinstate=["gap-f001-fr2"])
        assert "gap-f001-fr2" in [i.id for i in reinstated.roadmap.all_items]

    def test_unreadable_previous_roadmap_is_a_warning(self, tmp_path):
        root = _make_project(tmp_path)
        (root / "previous.json").write_text("{broken", encoding="utf-8")
        result = _run(root, previous_roadmap="previous.json")
        assert "PREVIOUS_UNREADABLE" in [w.code for w in result.warnings]

    def test_track_progress(self, tmp_path):
        root = _make_project(tmp_path)
        result = _run(root, output_dir="out")
        engine = RoadmapEngine(suggestion_provider=HeuristicSuggestionProvider())
        progress, report_path = engine.track_progress(result.roadmap, root / "out")
        assert report_path == root / "out" / "PROGRESS.md"
        assert report_path.read_text(encoding="utf-8").startswith("# Roadmap Progress Report")
        assert (root / "out" / "ROADMAP.progress.json").is_file()
        assert len(progress.history) == 1

    def test_progress_survives_regeneration(self, tmp_path):
        root = _make_project(tmp_path)
        engine = RoadmapEngine(suggestion_provider=HeuristicSuggestionProvider())
        first = _run(root, output_dir="out")
        start = datetime(2026, 2, 2, 9, 0)
        engine.track_progress(first.roadmap, root / "out", now=start)

        roadmap_json = root / "out" / "roadmap.json"
        previous = Roadmap.model_validate_json(roadmap_json.read_text(encoding="utf-8"))
        for phase in previous.phases:
            for item in phase.items:
                if item.id == "gap-f001-fr2":
                    item.status = ItemStatus.COMPLETED
        roadmap_json.write_text(previous.model_dump_json(), encoding="utf-8")

        second = _run(root, output_dir="out", previous_roadmap="out/roadmap.json")
        assert "gap-f001-fr2" not in [i.id for i in second.roadmap.all_items]
        assert [i.id for i in second.roadmap.closed_items] == ["gap-f001-fr2"]

        progress, report_path = engine.track_progress(second.roadmap, root / "out", now=start + timedelta(weeks=1))
        assert progress.items_complete == 1
        assert progress.items_total == len(first.roadmap.all_items)
        assert progress.velocity.items_per_week == 1.0
        report = report_path.read_text(encoding="utf-8")
        assert "Completed (1)" in report
        assert "Removed" not in report

    def test_analyze_convenience(self, tmp_path):
        root = _make_project(tmp_path)
        request = AnalysisRequest(directory=str(root), formats=[ExportFormat.CSV])
        result = analyze(request, suggestion_provider=HeuristicSuggestionProvider())
        assert result.exports[0].content.startswith("Priority,Phase,Title")


class TestResolveSpecsDir:
    """Test specs directory lookup."""

    def test_explicit(self, tmp_path):
        assert resolve_specs_dir(tmp_path, "requirements") == tmp_path / "requirements"

    def test_conventional(self, tmp_path):
        (tmp_path / "docs" / "specs").mkdir(parents=True)
        assert resolve_specs_dir(tmp_path) == tmp_path / "docs" / "specs"

    def test_none_found(self, tmp_path):
        assert resolve_specs_dir(tmp_path) is None
