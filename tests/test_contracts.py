"""Tests for the Pydantic contracts.

Verifies that contracts can be instantiated with valid data and that the
auto-correcting validators hold their invariants.
"""

import pytest
from datetime import datetime
from pydantic import ValidationError

from contracts import (
    # Estimation
    EffortEstimate,
    EffortRange,
    EstimateConfidence,
    EstimationMethod,
    create_effort_estimate,
    sum_efforts,
    # Gaps
    AcceptanceCriterion,
    CriterionStatus,
    Evidence,
    EvidenceType,
    FeatureGap,
    FeatureGapStatus,
    GapStatus,
    ParsedSpec,
    Priority,
    Requirement,
    SpecGap,
    status_for_accuracy,
    # Features
    FeatureCategory,
    ScoredFeature,
    SuggestedFeature,
    # Roadmap
    Phase,
    Roadmap,
    RoadmapItem,
    RoadmapItemType,
    RoadmapMetadata,
    # Progress
    FieldChange,
    Velocity,
    VelocityStatus,
    # Run
    RunWarning,
    # Errors
    ExportError,
    GapforgeError,
    RoadmapGenerationError,
    SpecParsingError,
)


def _make_gap(confidence: int = 80, **overrides) -> SpecGap:
    data = dict(
        id="gap-f001-fr1",
        spec="F001",
        requirement="FR1",
        title="Create Backup",
        status=GapStatus.MISSING,
        confidence=confidence,
        effort=create_effort_estimate(16),
        priority=Priority.P1,
    )
    data.update(overrides)
    return SpecGap(**data)


def _make_item(item_id: str, hours: float = 8) -> RoadmapItem:
    return RoadmapItem(
        id=item_id,
        type=RoadmapItemType.ENHANCEMENT,
        title=item_id,
        priority=Priority.P2,
        effort=create_effort_estimate(hours),
    )


class TestEstimationContracts:
    """Test effort estimates and ranges."""

    def test_create_effort_estimate_range(self):
        estimate = create_effort_estimate(20)
        assert estimate.range.optimistic == 14
        assert estimate.range.realistic == 20
        assert estimate.range.pessimistic == 30
        assert estimate.display == "20h (14-30h)"

    def test_range_is_reordered(self):
        effort_range = EffortRange(optimistic=30, realistic=10, pessimistic=20)
        assert effort_range.optimistic <= effort_range.realistic <= effort_range.pessimistic
        assert (effort_range.optimistic, effort_range.realistic, effort_range.pessimistic) == (10, 20, 30)

    def test_hours_realign_realistic(self):
        estimate = EffortEstimate(
            hours=40,
            range=EffortRange(optimistic=5, realistic=10, pessimistic=15),
        )
        assert estimate.range.realistic == 40
        assert estimate.range.optimistic <= estimate.range.realistic <= estimate.range.pessimistic

    @pytest.mark.parametrize("hours", [0, 0.5, 3, 16, 119.5, 1000])
    def test_range_ordering_holds(self, hours):
        estimate = create_effort_estimate(hours)
        assert estimate.range.optimistic <= estimate.range.realistic <= estimate.range.pessimistic

    def test_negative_hours_rejected(self):
        with pytest.raises(ValidationError):
            create_effort_estimate(-1)

    def test_sum_efforts(self):
        total = sum_efforts([
            create_effort_estimate(10, EstimateConfidence.HIGH),
            create_effort_estimate(6, EstimateConfidence.LOW),
        ])
        assert total.hours == 16
        assert total.confidence == EstimateConfidence.LOW
        assert total.method == EstimationMethod.COMPLEXITY

    def test_sum_efforts_empty(self):
        total = sum_efforts([])
        assert total.hours == 0
        assert total.display == "0h (0-0h)"

    def test_weeks(self):
        assert create_effort_estimate(70).weeks == 2


class TestGapContracts:
    """Test spec gaps, feature gaps and requirements."""

    @pytest.mark.parametrize("raw,expected", [(-20, 0), (0, 0), (55, 55), (100, 100), (180, 100)])
    def test_confidence_is_clamped(self, raw, expected):
        gap = _make_gap(confidence=raw)
        assert gap.confidence == expected
        assert 0 <= gap.confidence <= 100

    def test_evidence_impact_bounds(self):
        Evidence(type=EvidenceType.FILE_NOT_FOUND, description="gone", confidence_impact=-50)
        with pytest.raises(ValidationError):
            Evidence(type=EvidenceType.FILE_NOT_FOUND, description="gone", confidence_impact=-60)

    def test_priority_rank(self):
        assert [p.rank for p in Priority] == [0, 1, 2, 3]

    @pytest.mark.parametrize("accuracy,status", [
        (100, FeatureGapStatus.ACCURATE),
        (90, FeatureGapStatus.ACCURATE),
        (89, FeatureGapStatus.MISLEADING),
        (40, FeatureGapStatus.MISLEADING),
        (39, FeatureGapStatus.FALSE),
        (0, FeatureGapStatus.FALSE),
    ])
    def test_status_for_accuracy(self, accuracy, status):
        assert status_for_accuracy(accuracy) == status

    def test_feature_gap_status_follows_accuracy(self):
        gap = FeatureGap(
            id="feature-gap-readme-3",
            advertised_feature="Export",
            claim="Supports PDF export",
            source="README.md:3",
            accuracy_score=95,
            status=FeatureGapStatus.FALSE,
        )
        assert gap.status == FeatureGapStatus.ACCURATE

    def test_unmet_criteria(self):
        requirement = Requirement(
            id="FR1",
            title="Create Backup",
            acceptance_criteria=[
                AcceptanceCriterion(text="a", status=CriterionStatus.MET),
                AcceptanceCriterion(text="b", status=CriterionStatus.PARTIAL),
                AcceptanceCriterion(text="c", status=CriterionStatus.UNMET),
                AcceptanceCriterion(text="d"),
            ],
        )
        assert [c.text for c in requirement.unmet_criteria] == ["b", "c"]

    def test_duplicate_requirement_ids_are_suffixed(self):
        spec = ParsedSpec(
            id="F001",
            title="Backups",
            path="specs/F001-backups/spec.md",
            requirements=[
                Requirement(id="FR1", title="One"),
                Requirement(id="FR1", title="Two"),
            ],
        )
        assert [r.id for r in spec.requirements] == ["FR1", "FR1-2"]


class TestFeatureContracts:
    """Test suggestions and scored features."""

    def test_suggested_feature_strips_name(self):
        suggestion = SuggestedFeature(name="  Dry run mode ", description="Preview changes without applying them")
        assert suggestion.name == "Dry run mode"

    def test_suggested_feature_rejects_blank(self):
        with pytest.raises(ValidationError):
            SuggestedFeature(name="   ", description="Preview changes without applying them")

    def test_suggested_feature_ignores_extra_fields(self):
        suggestion = SuggestedFeature(
            name="Dry run mode", description="Preview changes without applying them", color="blue",
        )
        assert not hasattr(suggestion, "color")

    def test_roi_recomputed(self):
        feature = ScoredFeature(
            id="feature-core-functionality-dry-run",
            category=FeatureCategory.CORE_FUNCTIONALITY,
            name="Dry run",
            description="Preview changes",
            impact_score=8,
            effort_score=4,
            roi=99,
            strategic_value=5,
            risk_score=2,
        )
        assert feature.roi == 2.0

    def test_sub_scores_bounded(self):
        with pytest.raises(ValidationError):
            ScoredFeature(
                id="x", category=FeatureCategory.TESTING, name="x", description="x",
                impact_score=11, effort_score=4, strategic_value=5, risk_score=2,
            )


class TestRoadmapContracts:
    """Test phases and the roadmap container."""

    def test_phase_total_effort(self):
        phase = Phase(number=1, name="Phase 1: Core Features", items=[_make_item("a", 8), _make_item("b", 12)])
        assert phase.total_effort.hours == 20

    def test_all_items_follow_phases(self):
        roadmap = Roadmap(
            metadata=RoadmapMetadata(generated=datetime(2026, 1, 5), project_name="demo"),
            phases=[
                Phase(number=1, name="Phase 1: Core Features", items=[_make_item("a")]),
                Phase(number=2, name="Phase 2: Enhancements", items=[_make_item("b")]),
            ],
            all_items=[_make_item("b")],
        )
        assert [i.id for i in roadmap.all_items] == ["a", "b"]
        assert roadmap.get_item("b").id == "b"
        assert roadmap.get_item("missing") is None

    def test_item_phase_not_negative(self):
        with pytest.raises(ValidationError):
            RoadmapItem(
                id="a", type=RoadmapItemType.TESTING, title="a", priority=Priority.P3,
                effort=create_effort_estimate(1), phase=-1,
            )


class TestProgressContracts:
    """Test velocity markers and field changes."""

    def test_insufficient_velocity_has_no_rate(self):
        velocity = Velocity.insufficient(1)
        assert velocity.status == VelocityStatus.INSUFFICIENT_DATA
        assert velocity.items_per_week is None
        assert not velocity.is_known

    def test_field_change_describe(self):
        assert FieldChange(field="priority", old="P2", new="P0").describe() == "Priority changed from P2 to P0"
        assert FieldChange(field="owner", old=None, new="sam").describe() == "Owner changed from none to sam"
        assert FieldChange(field="title", old="a", new="b").describe() == 'Title changed from "a" to "b"'


class TestErrorsAndWarnings:
    """Test error payloads and warning rendering."""

    def test_roadmap_generation_error_sorts_ids(self):
        error = RoadmapGenerationError("cycle", item_ids=["c", "a", "b"])
        assert error.item_ids == ["a", "b", "c"]
        assert error.to_dict()["code"] == "ROADMAP_GENERATION_ERROR"
        assert isinstance(error, GapforgeError)

    def test_export_error_carries_format(self):
        error = ExportError("csv", "disk full")
        assert error.format == "csv"
        assert "csv" in error.message

    def test_spec_parsing_error_details(self):
        error = SpecParsingError("specs/a.md", "file is empty")
        assert error.details == {"spec_path": "specs/a.md"}

    def test_run_warning_str(self):
        warning = RunWarning(stage="export", message="failed", path="out/roadmap.csv")
        assert str(warning) == "[export] failed (out/roadmap.csv)"
        assert str(RunWarning(stage="brainstorm", message="timeout")) == "[brainstorm] timeout"
