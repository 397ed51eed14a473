"""Tests for the completeness assessment."""

import pytest

from analyzers.completeness import assess_completeness, categorize
from analyzers.gap_analyzer import RequirementOutcome
from contracts import (
    FeatureGap,
    GapStatus,
    Priority,
    Requirement,
    SpecGap,
    create_effort_estimate,
)


def _make_outcome(req_id: str, title: str, priority: Priority, status: GapStatus) -> RequirementOutcome:
    return RequirementOutcome(
        spec="F001",
        requirement=Requirement(id=req_id, title=title),
        priority=priority,
        status=status,
        confidence=90,
    )


def _make_gap(req_id: str, title: str, priority: Priority, status: GapStatus = GapStatus.MISSING,
              excluded: bool = False) -> SpecGap:
    return SpecGap(
        id=f"gap-f001-{req_id.lower()}",
        spec="F001",
        requirement=req_id,
        title=title,
        status=status,
        confidence=90,
        effort=create_effort_estimate(16),
        priority=priority,
        excluded=excluded,
    )


def _make_feature_gap(accuracy: int) -> FeatureGap:
    return FeatureGap(
        id=f"feature-gap-readme-{accuracy}",
        advertised_feature="Export",
        claim="Exports things",
        source="README.md:1",
        accuracy_score=accuracy,
    )


def _make_mixed_project():
    outcomes = [
        _make_outcome("FR1", "User authentication tokens", Priority.P0, GapStatus.MISSING),
        _make_outcome("FR2", "Create backup", Priority.P0, GapStatus.COMPLETE),
        _make_outcome("FR3", "Export CSV", Priority.P1, GapStatus.COMPLETE),
        _make_outcome("FR4", "Write user guide", Priority.P2, GapStatus.PARTIAL),
    ]
    gaps = [
        _make_gap("FR1", "User authentication tokens", Priority.P0),
        _make_gap("FR4", "Write user guide", Priority.P2, GapStatus.PARTIAL),
    ]
    return gaps, outcomes


class TestCategorize:
    """Test keyword categories."""

    @pytest.mark.parametrize("text,category", [
        ("Encrypt stored passwords", "security"),
        ("Add e2e coverage", "testing"),
        ("Publish API docs", "documentation"),
        ("Kubernetes deployment pipeline", "deployment"),
        ("Retry failed uploads", "error_handling"),
        ("Cache parsed files", "performance"),
        ("Create backup", "core_features"),
    ])
    def test_categorize(self, text, category):
        assert categorize(text) == category


class TestAssessCompleteness:
    """Test per-priority and per-category aggregation."""

    def test_priorities_and_overall(self):
        gaps, outcomes = _make_mixed_project()
        assessment = assess_completeness(gaps, outcomes=outcomes)
        assert assessment.priorities["p0"].model_dump() == {"total": 2, "complete": 1, "percentage": 50.0}
        assert assessment.priorities["p1"].percentage == 100.0
        assert assessment.priorities["p2"].percentage == 0.0
        assert assessment.priorities["p3"].total == 0
        assert assessment.overall == 57.9

    def test_categories_and_readiness(self):
        gaps, outcomes = _make_mixed_project()
        assessment = assess_completeness(gaps, outcomes=outcomes)
        assert assessment.categories.core_features == 100.0
        assert assessment.categories.security == 0.0
        assert assessment.categories.documentation == 0.0
        assert assessment.categories.testing == 100.0
        assert assessment.production_readiness == 65.0

    def test_critical_gaps_and_recommendations(self):
        gaps, outcomes = _make_mixed_project()
        assessment = assess_completeness(gaps, outcomes=outcomes)
        assert [g.requirement for g in assessment.critical_gaps] == ["FR1"]
        assert assessment.recommendations == [
            "Address 1 critical (P0) gap(s) before release: FR1",
            "Improve documentation (0% complete)",
            "Improve security (0% complete)",
        ]

    def test_documentation_blends_feature_accuracy(self):
        gaps, outcomes = _make_mixed_project()
        assessment = assess_completeness(gaps, [_make_feature_gap(100), _make_feature_gap(0)], outcomes)
        assert assessment.categories.documentation == 25.0
        assert assessment.recommendations[-1] == "Correct 1 documentation claim(s) the code does not support"

    def test_feature_accuracy_alone_sets_documentation(self):
        assessment = assess_completeness([], [_make_feature_gap(60)], outcomes=[])
        assert assessment.categories.documentation == 60.0

    def test_gaps_only_skip_excluded(self):
        gaps = [
            _make_gap("FR1", "Export CSV", Priority.P1),
            _make_gap("FR2", "Import CSV", Priority.P0, excluded=True),
        ]
        assessment = assess_completeness(gaps)
        assert assessment.priorities["p1"].total == 1
        assert assessment.priorities["p0"].total == 0
        assert assessment.overall == 0.0

    def test_nothing_to_do(self):
        assessment = assess_completeness([])
        assert assessment.overall == 100.0
        assert assessment.production_readiness == 100.0
        assert assessment.recommendations == ["No blocking gaps found; focus on strategic enhancements"]

    def test_all_complete_is_production_ready(self):
        outcomes = [_make_outcome("FR1", "Create backup", Priority.P0, GapStatus.COMPLETE)]
        assessment = assess_completeness([], [_make_feature_gap(95)], outcomes)
        assert assessment.overall == 100.0
        assert assessment.production_readiness == 100.0
