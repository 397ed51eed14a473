"""Roadmap generation: gaps and scored features become a phased roadmap.

Flow: items (1:1 with their source finding) → previous-run exclusion →
priority rules and dependency ordering → first-fit phase packing → summary,
risks, milestones and timeline.
"""

import re
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from config import settings
from contracts import (
    CLOSED_STATUSES,
    AnalysisBasis,
    CompletenessAssessment,
    Dependency,
    DependencyType,
    FeatureCategory,
    FeatureGap,
    FeatureGapRecommendation,
    FeatureGapStatus,
    ItemSource,
    ItemStatus,
    Level,
    Milestone,
    Phase,
    Priority,
    PriorityBucket,
    ProjectContext,
    Risk,
    Roadmap,
    RoadmapItem,
    RoadmapItemType,
    RoadmapMetadata,
    RoadmapSummary,
    ScoredFeature,
    SpecGap,
    create_effort_estimate,
)
from logging_config import get_logger
from runtime import RunContext
from .prioritizer import Prioritizer, rank
from .timeline import estimate_timeline, weeks_for

logger = get_logger(__name__)


# Edge confidence by where the dependency was declared
SPEC_EDGE_CONFIDENCE = 90
BRAINSTORM_EDGE_CONFIDENCE = 60
INFERRED_EDGE_CONFIDENCE = 40

HIGH_EFFORT_HOURS = 40
MANY_DEPENDENCIES = 2

CATEGORY_ITEM_TYPES = {
    FeatureCategory.TESTING: RoadmapItemType.TESTING,
    FeatureCategory.DOCUMENTATION: RoadmapItemType.DOCUMENTATION,
    FeatureCategory.DEVELOPER_EXPERIENCE: RoadmapItemType.TECHNICAL_DEBT,
}

PHASE_THEMES = {
    Priority.P0: ("Critical Fixes", "Fix blocking issues"),
    Priority.P1: ("Core Features", "Implement essential features"),
    Priority.P2: ("Enhancements", "Add valuable enhancements"),
    Priority.P3: ("Polish", "Nice-to-have improvements"),
}

FEATURE_GAP_TITLES = {
    FeatureGapRecommendation.IMPLEMENT_FEATURE: "Implement advertised feature: {}",
    FeatureGapRecommendation.UPDATE_DOCUMENTATION: "Correct documentation for: {}",
    FeatureGapRecommendation.ADD_DISCLAIMER: "Clarify documented scope of: {}",
    FeatureGapRecommendation.REMOVE_CLAIM: "Remove documentation claim: {}",
}


def _words(text: str) -> Set[str]:
    return set(re.findall(r"[a-z]{4,}", text.lower()))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


# Item conversion

def item_from_gap(gap: SpecGap) -> RoadmapItem:
    return RoadmapItem(
        id=gap.id,
        type=RoadmapItemType.SPEC_GAP,
        title=f"{gap.requirement}: {gap.title}",
        description=gap.recommendation or gap.description,
        priority=gap.priority,
        effort=gap.effort,
        success_criteria=[f"{gap.requirement} of {gap.spec} implemented and verified"],
        acceptance_criteria=list(gap.acceptance_criteria),
        tags=[gap.status.value, gap.spec.lower()],
        source=ItemSource(type="spec-gap", ref=gap.id, spec=gap.spec, requirement=gap.requirement),
        confidence=gap.confidence,
    )


def item_from_feature_gap(gap: FeatureGap) -> RoadmapItem:
    template = FEATURE_GAP_TITLES.get(gap.recommendation, "Review documentation claim: {}")
    item_type = (
        RoadmapItemType.FEATURE_GAP
        if gap.recommendation == FeatureGapRecommendation.IMPLEMENT_FEATURE
        else RoadmapItemType.DOCUMENTATION
    )
    return RoadmapItem(
        id=gap.id,
        type=item_type,
        title=template.format(gap.advertised_feature),
        description=gap.reality or gap.claim,
        priority=Priority.P1,
        effort=gap.effort or create_effort_estimate(4),
        success_criteria=[f"Documentation accurately describes: {gap.advertised_feature}"],
        tags=[f"{gap.status.value}-claim", gap.recommendation.value],
        source=ItemSource(type="feature-gap", ref=gap.id, document=gap.source),
        confidence=100 - gap.accuracy_score,
    )


def item_from_feature(feature: ScoredFeature) -> RoadmapItem:
    return RoadmapItem(
        id=feature.id,
        type=CATEGORY_ITEM_TYPES.get(feature.category, RoadmapItemType.ENHANCEMENT),
        title=feature.name,
        description=feature.description,
        priority=feature.priority,
        effort=feature.effort,
        success_criteria=[feature.value] if feature.value else [],
        tags=[feature.category.value] + list(feature.strategic_alignment),
        source=ItemSource(type="brainstorm", ref=feature.id, category=feature.category.value),
        roi=feature.roi,
        priority_score=feature.priority_score,
        confidence=int(round(feature.confidence * 100)),
    )


def declared_dependencies(
    gaps: Sequence[SpecGap],
    features: Sequence[ScoredFeature],
    feature_gaps: Sequence[FeatureGap],
) -> List[Dependency]:
    """Edges stated by specs and suggestions, plus edges inferred from shared vocabulary."""
    edges: List[Dependency] = []
    for gap in gaps:
        for target in gap.dependencies:
            edges.append(Dependency(
                dependent=gap.id, depends_on=target, type=DependencyType.PREREQUISITE,
                reason=f"{gap.requirement} depends on it in {gap.spec}", confidence=SPEC_EDGE_CONFIDENCE,
            ))
        for target in gap.hard_dependencies:
            edges.append(Dependency(
                dependent=gap.id, depends_on=target, type=DependencyType.SEQUENTIAL,
                reason=f"{gap.requirement} is blocked by it in {gap.spec}", is_hard=True, confidence=100,
            ))

    by_name = {f.name.lower(): f.id for f in features}
    by_id = {f.id for f in features}
    for feature in features:
        for ref in feature.dependencies:
            target = ref if ref in by_id else by_name.get(ref.lower())
            if target and target != feature.id:
                edges.append(Dependency(
                    dependent=feature.id, depends_on=target, type=DependencyType.PREREQUISITE,
                    reason="Declared by the feature suggestion", confidence=BRAINSTORM_EDGE_CONFIDENCE,
                ))

    for fg in feature_gaps:
        if fg.recommendation != FeatureGapRecommendation.IMPLEMENT_FEATURE:
            continue
        claim_words = _words(fg.advertised_feature)
        for gap in gaps:
            if len(claim_words & _words(gap.title)) >= 2:
                edges.append(Dependency(
                    dependent=fg.id, depends_on=gap.id, type=DependencyType.RELATED,
                    reason="Claim and requirement describe the same capability",
                    confidence=INFERRED_EDGE_CONFIDENCE,
                ))
    return edges


# Phases

def create_phases(
    ordered_items: Sequence[RoadmapItem],
    max_phases: Optional[int] = None,
    tolerance: Optional[float] = None,
    context: Optional[RunContext] = None,
) -> List[List[RoadmapItem]]:
    """First-fit packing of a dependency-ordered item list into phases.

    Capacity per phase is total/N scaled by the overflow tolerance. An item
    goes to the earliest phase at or after its dependencies' phases that has
    room; when none has room it goes to the least-loaded eligible phase, and
    a phase beyond N is opened only when the last phase is the sole eligible
    one. Empty phases are dropped. Sets item.phase and returns the groups.
    """
    max_phases = max_phases or settings.max_phases
    tolerance = settings.phase_overflow_tolerance if tolerance is None else tolerance
    total = sum(item.effort.hours for item in ordered_items)
    capacity = total / max_phases * (1 + tolerance)

    loads = [0.0] * max_phases
    groups: List[List[RoadmapItem]] = [[] for _ in range(max_phases)]
    placed: Dict[str, int] = {}

    for item in ordered_items:
        earliest = max((placed[d] for d in item.dependencies if d in placed), default=0)
        eligible = range(earliest, len(loads))
        hours = item.effort.hours
        target = next((p for p in eligible if not groups[p] or loads[p] + hours <= capacity), None)
        if target is None:
            if len(eligible) > 1:
                target = min(eligible, key=lambda p: (loads[p], p))
            else:
                loads.append(0.0)
                groups.append([])
                target = len(loads) - 1
                message = (
                    f"Phase cap relaxed to {len(loads)} phases so {item.id} stays after its dependencies"
                )
                if context:
                    context.warn("roadmap", message, code="PHASE_CAP_RELAXED")
                else:
                    logger.warning(message)
        loads[target] += hours
        groups[target].append(item)
        placed[item.id] = target

    groups = [g for g in groups if g]
    for number, group in enumerate(groups, start=1):
        for item in group:
            item.phase = number
    return groups


def build_phase(
    number: int,
    items: List[RoadmapItem],
    start_week: int,
    team_size: int,
    phase_of: Optional[Dict[str, int]] = None,
) -> Phase:
    phase_of = phase_of or {}
    dominant = min(items, key=lambda i: i.priority.rank).priority
    label, goal = PHASE_THEMES[dominant]
    hours = sum(i.effort.hours for i in items)
    weeks = max(1, weeks_for(hours, team_size))

    p0_count = sum(1 for i in items if i.priority == Priority.P0)
    if p0_count:
        outcome = f"{_plural(p0_count, 'critical issue')} resolved"
    else:
        outcome = f"{_plural(len(items), 'item')} completed"

    return Phase(
        number=number,
        name=f"Phase {number}: {label}",
        goal=goal,
        duration=_plural(weeks, "week"),
        start_week=start_week,
        end_week=start_week + weeks,
        items=items,
        outcome=outcome,
        success_criteria=list(dict.fromkeys(c for i in items for c in i.success_criteria)),
        deliverables=[i.title for i in items],
        dependencies=sorted({
            phase_of[d] for i in items for d in i.dependencies if phase_of.get(d, number) < number
        }),
    )


class RoadmapGenerator:
    """Builds a Roadmap from analysis results.

    Usage:
        generator = RoadmapGenerator(context)
        roadmap = generator.generate_roadmap(gaps, features, project, feature_gaps)
    """

    def __init__(
        self,
        context: Optional[RunContext] = None,
        max_phases: Optional[int] = None,
        team_size: Optional[int] = None,
        team_sizes: Optional[Sequence[int]] = None,
    ):
        self.context = context or RunContext()
        self.max_phases = max_phases or settings.max_phases
        self.team_size = team_size or settings.default_team_size
        self.team_sizes = list(team_sizes or settings.team_sizes)

    def generate_roadmap(
        self,
        gaps: Sequence[SpecGap],
        features: Sequence[ScoredFeature],
        project: ProjectContext,
        feature_gaps: Sequence[FeatureGap] = (),
        previous: Optional[Roadmap] = None,
        reinstate: Iterable[str] = (),
        completeness: Optional[CompletenessAssessment] = None,
        start: Optional[date] = None,
    ) -> Roadmap:
        """Generate the roadmap.

        Raises:
            RoadmapGenerationError: If a dependency cycle of hard edges exists
        """
        planned_gaps = [g for g in gaps if not g.excluded]
        open_feature_gaps = [g for g in feature_gaps if g.status != FeatureGapStatus.ACCURATE]
        items = (
            [item_from_gap(g) for g in planned_gaps]
            + [item_from_feature_gap(g) for g in open_feature_gaps]
            + [item_from_feature(f) for f in features]
        )
        items = self._dedupe_ids(items)
        edges = declared_dependencies(planned_gaps, features, open_feature_gaps)
        items, closed_items = self._apply_previous(items, previous, set(reinstate))

        prioritizer = Prioritizer()
        ordered = prioritizer.prioritize(items, edges)
        groups = create_phases(ordered, self.max_phases, context=self.context)

        phase_of = {item.id: item.phase for item in ordered}
        phases = []
        week = 0
        for number, group in enumerate(groups, start=1):
            phase = build_phase(number, group, week, self.team_size, phase_of)
            phases.append(phase)
            week = phase.end_week

        all_items = [item for phase in phases for item in phase.items]
        dependencies = sorted(prioritizer.graph.edges.values(), key=lambda d: (d.dependent, d.depends_on))
        timeline = estimate_timeline(phases, self.team_sizes, dependencies, start=start)

        risks = prioritizer.risks + self._effort_risks(all_items)
        roadmap = Roadmap(
            metadata=RoadmapMetadata(
                generated=datetime.now(),
                project_name=project.name,
                project_path=project.path,
                tool_version=settings.tool_version,
                analysis_basis=AnalysisBasis(
                    specs_analyzed=len(project.specs),
                    gaps_found=len(planned_gaps) + len(open_feature_gaps),
                    features_identified=len(features),
                    total_items=len(all_items),
                ),
            ),
            summary=self._summary(all_items, phases, planned_gaps, open_feature_gaps, features, completeness),
            phases=phases,
            all_items=all_items,
            closed_items=closed_items,
            priorities=self._priorities(all_items),
            timeline=timeline,
            risks=risks,
            dependencies=dependencies,
            milestones=[
                Milestone(name=f"Complete {p.name}", phase=p.number, target_week=p.end_week,
                          criteria=p.success_criteria[:5])
                for p in phases
            ],
            success_criteria=self._success_criteria(all_items),
            recommendations=self._recommendations(all_items),
            warnings=[str(w) for w in self.context.warnings],
        )
        logger.info(
            "Generated roadmap: %d items in %d phases, %d risk(s)", len(all_items), len(phases), len(risks),
        )
        return roadmap

    def _dedupe_ids(self, items: List[RoadmapItem]) -> List[RoadmapItem]:
        seen: Set[str] = set()
        unique = []
        for item in items:
            if item.id in seen:
                self.context.warn("roadmap", f"Duplicate item id {item.id} dropped", code="DUPLICATE_ITEM")
                continue
            seen.add(item.id)
            unique.append(item)
        return unique

    def _apply_previous(
        self, items: List[RoadmapItem], previous: Optional[Roadmap], reinstate: Set[str]
    ) -> Tuple[List[RoadmapItem], List[RoadmapItem]]:
        """Split out items the previous roadmap closed; carry over status and owner of open ones.

        Returns the items to plan and the closed items, which keep their
        earlier status and phase so progress tracking still counts them.
        """
        if previous is None:
            return items, []
        earlier = {item.id: item for item in previous.tracked_items}
        closed = [
            item.model_copy(deep=True) for i, item in earlier.items()
            if item.status in CLOSED_STATUSES and i not in reinstate
        ]
        closed_ids = {item.id for item in closed}
        kept = []
        for item in items:
            if item.id in closed_ids:
                continue
            old = earlier.get(item.id)
            if old is not None and item.id not in reinstate:
                item.status = old.status
                item.owner = old.owner
            kept.append(item)
        if closed:
            logger.info("Excluded %d item(s) closed in the previous roadmap", len(closed))
        return kept, closed

    @staticmethod
    def _priorities(items: List[RoadmapItem]) -> Dict[str, PriorityBucket]:
        buckets = {}
        for priority in Priority:
            members = [i for i in items if i.priority == priority]
            buckets[priority.value.lower()] = PriorityBucket(
                count=len(members),
                effort_hours=round(sum(i.effort.hours for i in members), 2),
                items=[i.id for i in members],
            )
        return buckets

    @staticmethod
    def _effort_risks(items: List[RoadmapItem]) -> List[Risk]:
        risks = []
        heavy = [i.id for i in items if i.effort.hours > HIGH_EFFORT_HOURS]
        if heavy:
            risks.append(Risk(
                id="risk-high-effort",
                title="High-effort items may take longer than estimated",
                description=f"{_plural(len(heavy), 'item')} exceed {HIGH_EFFORT_HOURS}h of estimated effort.",
                likelihood=Level.MEDIUM,
                impact=Level.HIGH,
                severity=Level.MEDIUM,
                mitigations=["Break down large items into smaller tasks", "Add buffer time"],
                affected_items=heavy,
            ))
        tangled = [i.id for i in items if len(i.dependencies) > MANY_DEPENDENCIES]
        if tangled:
            risks.append(Risk(
                id="risk-complex-dependencies",
                title="Complex dependencies may cause delays",
                description=f"{_plural(len(tangled), 'item')} depend on more than {MANY_DEPENDENCIES} other items.",
                likelihood=Level.MEDIUM,
                impact=Level.MEDIUM,
                severity=Level.MEDIUM,
                mitigations=["Identify the critical path", "Start independent items in parallel"],
                affected_items=tangled,
            ))
        return risks

    def _summary(
        self,
        items: List[RoadmapItem],
        phases: List[Phase],
        gaps: Sequence[SpecGap],
        feature_gaps: Sequence[FeatureGap],
        features: Sequence[ScoredFeature],
        completeness: Optional[CompletenessAssessment],
    ) -> RoadmapSummary:
        overview = (
            f"Project has {_plural(len(gaps), 'spec gap')} and {_plural(len(feature_gaps), 'feature gap')}. "
            f"{_plural(len(features), 'desirable feature')} identified. "
            f"Total roadmap: {_plural(len(items), 'item')} across {_plural(len(phases), 'phase')}."
        )
        if completeness is not None:
            completion = completeness.overall
            current = (
                f"{completeness.overall:.0f}% of specified requirements complete; "
                f"production readiness {completeness.production_readiness:.0f}%."
            )
        else:
            done = sum(1 for i in items if i.status == ItemStatus.COMPLETED)
            completion = round(done / len(items) * 100, 1) if items else 100.0
            current = f"{done} of {_plural(len(items), 'roadmap item')} complete."

        return RoadmapSummary(
            overview=overview,
            current_state=current,
            target_state="All P0 and P1 items delivered and documentation claims accurate",
            completion=completion,
            highlights=[f"{i.priority.value}: {i.title}" for i in rank(items)[:3]],
            next_steps=self._next_steps(items),
        )

    @staticmethod
    def _next_steps(items: List[RoadmapItem]) -> List[str]:
        p0 = sum(1 for i in items if i.priority == Priority.P0)
        p1 = sum(1 for i in items if i.priority == Priority.P1)
        steps = []
        if p0:
            steps.append(f"Address {p0} critical (P0) issue{'' if p0 == 1 else 's'} immediately")
        if p1:
            steps.append(f"Plan implementation of {p1} high-priority (P1) item{'' if p1 == 1 else 's'}")
        steps.append("Review and prioritize roadmap with team")
        steps.append("Set up project tracking in GitHub Issues or similar")
        steps.append("Begin Phase 1 implementation")
        return steps

    @staticmethod
    def _success_criteria(items: List[RoadmapItem]) -> List[str]:
        criteria = []
        p0 = sum(1 for i in items if i.priority == Priority.P0)
        p1 = sum(1 for i in items if i.priority == Priority.P1)
        if p0:
            criteria.append(f"All {p0} P0 critical issues resolved")
        if p1:
            criteria.append(f"{p1} P1 high-priority items delivered")
        criteria.append("All tests passing")
        criteria.append("Documentation updated and accurate")
        return criteria

    @staticmethod
    def _recommendations(items: List[RoadmapItem]) -> List[str]:
        recommendations = []
        if sum(1 for i in items if i.priority == Priority.P0) > 3:
            recommendations.append("Consider addressing P0 items before adding new features")
        gap_items = sum(1 for i in items if i.type in (RoadmapItemType.SPEC_GAP, RoadmapItemType.FEATURE_GAP))
        if items and gap_items > len(items) * 0.5:
            recommendations.append("Focus on gap fixes to improve reliability before adding features")
        recommendations.append("Review roadmap quarterly and adjust priorities based on progress")
        recommendations.append("Track velocity to improve future estimates")
        return recommendations


def generate_roadmap(
    gaps: Sequence[SpecGap],
    features: Sequence[ScoredFeature],
    project: ProjectContext,
    context: Optional[RunContext] = None,
    feature_gaps: Sequence[FeatureGap] = (),
    previous: Optional[Roadmap] = None,
    reinstate: Iterable[str] = (),
) -> Roadmap:
    """Convenience function for one-off generation."""
    return RoadmapGenerator(context).generate_roadmap(
        gaps, features, project, feature_gaps, previous=previous, reinstate=reinstate,
    )
