"""Tests for multi-criteria feature scoring."""

import pytest

from brainstorming import ScoringEngine, priority_for_score, score_features
from contracts import (
    DesirableFeature,
    EstimationMethod,
    FeatureCategory,
    Priority,
    ProjectContext,
    SpecGap,
    create_effort_estimate,
)
from runtime import RunContext


def _make_secret_scanning(**overrides) -> DesirableFeature:
    data = dict(
        id="feature-security-secret-scanning",
        category=FeatureCategory.SECURITY,
        name="Secret scanning",
        description="Detect credentials accidentally committed to inputs or outputs.",
        strategic_alignment=["security posture"],
        files_touched=3,
        confidence=0.6,
    )
    data.update(overrides)
    return DesirableFeature(**data)


def _make_guide(**overrides) -> DesirableFeature:
    data = dict(
        id="feature-documentation-getting-started-guide",
        category=FeatureCategory.DOCUMENTATION,
        name="Getting started guide",
        description="Step-by-step guide from installation to the first useful result.",
        files_touched=1,
        confidence=0.6,
    )
    data.update(overrides)
    return DesirableFeature(**data)


def _make_p0_gap(title: str, excluded: bool = False) -> SpecGap:
    return SpecGap(
        id="gap-f001-fr1",
        spec="F001",
        requirement="FR1",
        title=title,
        status="missing",
        confidence=90,
        effort=create_effort_estimate(16),
        priority=Priority.P0,
        excluded=excluded,
    )


PROJECT = ProjectContext(name="demo")


class TestSubScores:
    """Test each sub-score against hand-computed values."""

    def test_security_feature(self):
        scored = ScoringEngine(RunContext()).score_feature(_make_secret_scanning(), PROJECT)
        assert (scored.impact_score, scored.effort_score, scored.strategic_value, scored.risk_score) == (9, 5, 6, 3)
        assert scored.roi == 1.8
        assert scored.priority_score == pytest.approx(5.04)
        assert scored.priority == Priority.P1
        assert scored.effort.hours == 28
        assert scored.effort.method == EstimationMethod.COMPLEXITY
        assert scored.scoring_details.strategic_factors == ["security posture"]
        assert scored.scoring_details.risk_factors == ["Security implications"]
        assert scored.scoring_details.impact_factors == ["General improvement"]

    def test_documentation_feature(self):
        scored = ScoringEngine(RunContext()).score_feature(_make_guide(), PROJECT)
        assert (scored.impact_score, scored.effort_score, scored.strategic_value, scored.risk_score) == (6, 3, 5, 1)
        assert scored.roi == 2.0
        assert scored.priority_score == pytest.approx(3.9)
        assert scored.priority == Priority.P2
        assert scored.effort.hours == 16
        assert scored.scoring_details.effort_factors == ["Documentation only"]

    def test_closing_a_p0_gap_raises_strategic_value(self):
        gap = _make_p0_gap("Secret rotation for credentials")
        scored = ScoringEngine(RunContext()).score_feature(_make_secret_scanning(), PROJECT, [gap])
        assert scored.strategic_value == 8
        assert "Closes P0 gap FR1" in scored.scoring_details.strategic_factors

    def test_unlocking_other_categories(self):
        scored = ScoringEngine(RunContext()).score_feature(_make_guide(dependencies=["testing coverage"]), PROJECT)
        assert scored.strategic_value == 6
        assert "Unlocks other categories" in scored.scoring_details.strategic_factors

    def test_new_dependencies_and_large_codebase(self):
        feature = _make_guide(new_dependencies=["a", "b", "c"])
        large = ProjectContext(name="big", lines_of_code=200_000)
        scored = ScoringEngine(RunContext()).score_feature(feature, large)
        assert scored.effort_score == 6
        assert scored.risk_score == 3
        assert "3 new dependencies" in scored.scoring_details.effort_factors
        assert "Large codebase" in scored.scoring_details.effort_factors

    def test_low_confidence_adds_risk(self):
        scored = ScoringEngine(RunContext()).score_feature(_make_guide(confidence=0.2), PROJECT)
        assert scored.risk_score == 3
        assert "Low-confidence estimate" in scored.scoring_details.risk_factors


class TestScoreFeatures:
    """Test scoring a batch of features."""

    def test_sorted_by_priority_score(self):
        scored = score_features([_make_guide(), _make_secret_scanning()], PROJECT)
        assert [f.name for f in scored] == ["Secret scanning", "Getting started guide"]

    def test_excluded_gaps_do_not_count(self):
        gap = _make_p0_gap("Secret rotation for credentials", excluded=True)
        scored = score_features([_make_secret_scanning()], PROJECT, [gap])
        assert scored[0].strategic_value == 6

    def test_unscorable_feature_becomes_warning(self):
        context = RunContext()
        engine = ScoringEngine(context, weights={"impact": 0.4})
        assert engine.score_features([_make_guide()], PROJECT) == []
        assert [w.code for w in context.warnings] == ["SCORING_ERROR"]
        assert context.warnings[0].path == "feature-documentation-getting-started-guide"

    def test_custom_weights(self):
        engine = ScoringEngine(RunContext(), weights={"impact": 1.0, "roi": 0.0, "strategic": 0.0, "risk": 0.0})
        assert engine.score_feature(_make_guide(), PROJECT).priority_score == 6.0


class TestPriorityForScore:
    """Test priority tiers."""

    @pytest.mark.parametrize("value,priority", [
        (7.0, Priority.P0),
        (6.5, Priority.P0),
        (5.0, Priority.P1),
        (3.5, Priority.P2),
        (3.49, Priority.P3),
    ])
    def test_tiers(self, value, priority):
        assert priority_for_score(value) == priority
