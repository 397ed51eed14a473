"""Tests for the markdown specification parser."""

from pathlib import Path

import pytest

from analyzers import SpecParser, find_spec_files
from contracts import CriterionStatus, Priority, RequirementKind, SpecParsingError


FULL_SPEC = """# F008: Roadmap Generation

**Status:** In Progress
**Priority:** P1
**Effort:** 40h

## Requirements

### FR1: Create Backup
**Priority:** P0
**Function:** `create_backup(source, destination)`
**Implementation:** `src/backup.py`

Creates a backup archive. Depends on FR2 and FR3.

#### Acceptance Criteria
- ✅ Backups are written atomically
- ❌ Old backups are pruned
- [ ] Restores are verified

### FR2: Prune Backups
Blocked by FR3.

### NFR1: Fast Startup
Startup takes under a second.

### FR1: Duplicate heading
Second one.

## Success Metrics
- **Coverage:** 90% of requirements verified

## Phase 1: Foundations (2 weeks)
- [x] Parser
- [ ] Verifier
"""


def _parse(text: str, path: str = "specs/F008-roadmap/spec.md"):
    return SpecParser().parse_text(text, Path(path))


class TestDocumentFields:
    """Test spec-level metadata."""

    def test_header_fields(self):
        spec = _parse(FULL_SPEC)
        assert spec.id == "F008"
        assert spec.title == "Roadmap Generation"
        assert spec.status == "In Progress"
        assert spec.priority == Priority.P1
        assert spec.effort == "40h"

    def test_id_from_path(self):
        spec = _parse("# Backups\n\n- FR1: Create backups\n", "specs/F002-backups/spec.md")
        assert spec.id == "F002"
        assert spec.title == "Backups"
        assert spec.priority == Priority.P2

    def test_id_from_directory_name(self):
        spec = _parse("# Authentication\n\n### FR1: Login\n", "specs/auth/spec.md")
        assert spec.id == "auth"

    def test_success_metrics_and_phases(self):
        spec = _parse(FULL_SPEC)
        assert spec.success_metrics == {"Coverage": "90% of requirements verified"}
        assert len(spec.phases) == 1
        phase = spec.phases[0]
        assert (phase.number, phase.name, phase.effort) == (1, "Foundations", "2 weeks")
        assert phase.tasks == ["Parser", "Verifier"]
        assert phase.completed_tasks == ["Parser"]


class TestRequirements:
    """Test requirement sections and bullets."""

    def test_requirement_ids(self):
        spec = _parse(FULL_SPEC)
        assert [r.id for r in spec.requirements] == ["FR1", "FR2", "NFR1", "FR1-2"]
        assert spec.requirements[2].kind == RequirementKind.NON_FUNCTIONAL
        assert spec.requirements[0].kind == RequirementKind.FUNCTIONAL

    def test_requirement_fields(self):
        requirement = _parse(FULL_SPEC).requirements[0]
        assert requirement.title == "Create Backup"
        assert requirement.priority == Priority.P0
        assert "Creates a backup archive." in requirement.description
        assert requirement.dependencies == ["FR2", "FR3"]
        assert requirement.hard_dependencies == []

    def test_symbol_hints(self):
        hint = _parse(FULL_SPEC).requirements[0].hints[0]
        assert hint.name == "create_backup"
        assert hint.params == ["source", "destination"]
        assert hint.file == "src/backup.py"

    def test_file_symbol_hint(self):
        text = "# Backups\n\n### FR1: Create Backup\n**Implementation:** `src/backup.py:create_backup`\n"
        hint = _parse(text).requirements[0].hints[0]
        assert (hint.name, hint.file, hint.params) == ("create_backup", "src/backup.py", None)

    def test_acceptance_criteria_glyphs(self):
        criteria = _parse(FULL_SPEC).requirements[0].acceptance_criteria
        assert [(c.text, c.status) for c in criteria] == [
            ("Backups are written atomically", CriterionStatus.MET),
            ("Old backups are pruned", CriterionStatus.UNMET),
            ("Restores are verified", CriterionStatus.UNMET),
        ]

    def test_blocked_by_is_hard(self):
        requirement = _parse(FULL_SPEC).requirements[1]
        assert requirement.hard_dependencies == ["FR3"]
        assert requirement.dependencies == []

    def test_bullet_requirements(self):
        spec = _parse("# Backups\n\n- **FR1:** Create backups\n- FR2: Prune old backups\n")
        assert [(r.id, r.title) for r in spec.requirements] == [
            ("FR1", "Create backups"),
            ("FR2", "Prune old backups"),
        ]


class TestErrors:
    """Test unparseable documents."""

    def test_empty_file(self):
        with pytest.raises(SpecParsingError):
            _parse("   \n")

    def test_no_structure(self):
        with pytest.raises(SpecParsingError) as exc_info:
            _parse("just some prose\nwithout headings\n")
        assert exc_info.value.details["spec_path"].endswith("spec.md")

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(SpecParsingError):
            SpecParser().parse_file(tmp_path / "missing.md")


class TestFindSpecFiles:
    """Test spec discovery."""

    def test_finds_spec_documents(self, tmp_path):
        for relative in ["F001-a/spec.md", "F002-b/spec.md", "overview.md", "README.md", "notes.txt",
                         "F001-a/plan.md"]:
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("# x\n", encoding="utf-8")
        found = find_spec_files(tmp_path)
        assert [p.relative_to(tmp_path).as_posix() for p in found] == [
            "F001-a/spec.md", "F002-b/spec.md", "overview.md",
        ]

    def test_missing_directory(self, tmp_path):
        assert find_spec_files(tmp_path / "nope") == []
