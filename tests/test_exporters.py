"""Tests for the roadmap exporters."""

import csv
import io
import json
from datetime import datetime
from unittest.mock import patch

import pytest

from contracts import (
    ExportError,
    ExportFormat,
    ExportOptions,
    ItemSource,
    Phase,
    Priority,
    Roadmap,
    RoadmapItem,
    RoadmapItemType,
    RoadmapMetadata,
)
from contracts import create_effort_estimate
from exporters import RoadmapExporter, export, issue_body
from exporters.exporter import CSV_HEADER
from runtime import RunContext


def _make_item(item_id: str, title: str, phase: int, priority: Priority = Priority.P1, **overrides) -> RoadmapItem:
    data = dict(
        id=item_id,
        type=RoadmapItemType.SPEC_GAP,
        title=title,
        description=f"Implement {title}",
        priority=priority,
        effort=create_effort_estimate(12),
        phase=phase,
        tags=["missing", "f001"],
    )
    data.update(overrides)
    return RoadmapItem(**data)


def _make_roadmap() -> Roadmap:
    first = [
        _make_item("gap-f001-fr1", "FR1: Parse specs, quickly", 1, Priority.P0,
                   acceptance_criteria=["Specs load"],
                   source=ItemSource(type="spec-gap", ref="gap-f001-fr1", spec="F001", requirement="FR1")),
        _make_item("gap-f001-fr2", 'FR2: Export "all" | formats', 1, dependencies=["gap-f001-fr1"]),
    ]
    second = [
        _make_item("feature-testing-fixtures", "Shared <script> fixtures", 2, Priority.P2,
                   type=RoadmapItemType.TESTING, tags=["testing"], owner="sam"),
    ]
    return Roadmap(
        metadata=RoadmapMetadata(generated=datetime(2026, 1, 5, 9, 30), project_name="demo", tool_version="1.0.0"),
        phases=[
            Phase(number=1, name="Phase 1: Critical Fixes", goal="Fix blocking issues", items=first),
            Phase(number=2, name="Phase 2: Enhancements", items=second),
        ],
        warnings=["[spec-gaps] Could not parse specs/broken.md"],
    )


class TestFormats:
    """Test each rendered format."""

    def test_csv_and_json_have_same_item_count(self):
        roadmap = _make_roadmap()
        exporter = RoadmapExporter()
        rows = list(csv.reader(io.StringIO(exporter.export(roadmap, ExportFormat.CSV).content)))
        items = json.loads(exporter.export(roadmap, ExportFormat.JSON).content)["all_items"]
        assert rows[0] == CSV_HEADER
        assert len(rows) - 1 == len(items) == 3
        assert [r[2] for r in rows[1:]] == [i["title"] for i in items]

    def test_csv_quotes_awkward_titles(self):
        rows = list(csv.reader(io.StringIO(RoadmapExporter().export_csv(_make_roadmap()))))
        assert rows[1] == ["P0", "1", "FR1: Parse specs, quickly", "spec-gap", "12", "not-started", "missing; f001", ""]
        assert rows[2][2] == 'FR2: Export "all" | formats'
        assert rows[2][7] == "gap-f001-fr1"

    def test_json_round_trip(self):
        roadmap = _make_roadmap()
        restored = Roadmap.model_validate_json(RoadmapExporter().export_json(roadmap))
        assert restored.model_dump() == roadmap.model_dump()

    def test_markdown(self):
        content = RoadmapExporter().export_markdown(_make_roadmap())
        assert content.startswith("# demo Roadmap\n")
        assert "## Phase 1: Critical Fixes" in content
        assert "## Phase 2: Enhancements" in content
        assert "| `gap-f001-fr1` | P0 |" in content
        assert 'FR2: Export "all" \\| formats' in content
        assert "- [spec-gaps] Could not parse specs/broken.md" in content

    def test_html_escapes_text(self):
        content = RoadmapExporter().export_html(_make_roadmap())
        assert "Shared &lt;script&gt; fixtures" in content
        assert "<script>" not in content

    def test_github_issues(self):
        options = ExportOptions(label_prefix="roadmap:", milestone_name="v2", default_assignee="lee")
        issues = RoadmapExporter().github_issues(_make_roadmap(), options)
        assert len(issues) == 3
        first = issues[0]
        assert first["labels"][:2] == ["roadmap:P0", "roadmap:spec-gap"]
        assert first["milestone"] == "v2 - Phase 1"
        assert first["assignee"] == "lee"
        assert "## Acceptance Criteria" in first["body"]
        assert "**Requirement:** FR1" in first["body"]
        assert issues[2]["assignee"] == "sam"
        assert issues[2]["labels"] == ["roadmap:P2", "roadmap:testing"]

    def test_issue_body_lists_dependencies(self):
        item = _make_roadmap().all_items[1]
        body = issue_body(item)
        assert "- Depends on: `gap-f001-fr1`" in body
        assert body.endswith("**Priority:** P1 | **Phase:** 1 | **Type:** spec-gap")


class TestExport:
    """Test writing and failure handling."""

    def test_export_writes_file(self, tmp_path):
        path = tmp_path / "out" / "ROADMAP.md"
        result = export(_make_roadmap(), "markdown", ExportOptions(output_path=str(path)))
        assert result.success
        assert path.read_text(encoding="utf-8") == result.content

    def test_content_only_without_path(self, tmp_path):
        result = export(_make_roadmap(), ExportFormat.JSON)
        assert result.output_path is None
        assert json.loads(result.content)["metadata"]["project_name"] == "demo"

    def test_unsupported_format(self):
        with pytest.raises(ExportError) as exc_info:
            export(_make_roadmap(), "pdf")
        assert exc_info.value.format == "pdf"

    def test_failed_render_keeps_existing_file(self, tmp_path):
        path = tmp_path / "roadmap.csv"
        path.write_text("previous", encoding="utf-8")
        with patch.object(RoadmapExporter, "export_csv", side_effect=ValueError("boom")):
            exporter = RoadmapExporter()
            with pytest.raises(ExportError) as exc_info:
                exporter.export(_make_roadmap(), ExportFormat.CSV, ExportOptions(output_path=str(path)))
        assert exc_info.value.format == "csv"
        assert path.read_text(encoding="utf-8") == "previous"

    def test_export_all_isolates_failures(self, tmp_path):
        # A directory where the CSV file should go makes that write fail
        (tmp_path / "roadmap.csv").mkdir()
        context = RunContext()
        results = RoadmapExporter().export_all(
            _make_roadmap(), tmp_path, ["markdown", "csv", "json", "pdf"], context,
        )
        outcome = {r.format: r.success for r in results}
        assert outcome == {ExportFormat.MARKDOWN: True, ExportFormat.CSV: False, ExportFormat.JSON: True}
        assert (tmp_path / "ROADMAP.md").is_file()
        assert (tmp_path / "roadmap.json").is_file()
        assert [w.stage for w in context.warnings] == ["export", "export"]
        assert context.warnings[0].path == str(tmp_path / "roadmap.csv")
        assert list(tmp_path.glob(".roadmap.csv.*")) == []
