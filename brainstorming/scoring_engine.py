"""Multi-criteria scoring of brainstormed features.

Every sub-score starts from a base and is moved by keyword rules. Rules are
data: (pattern, delta, factor) tuples, matched against the feature's name and
description.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from config import settings
from contracts import (
    DesirableFeature,
    EstimationMethod,
    FeatureCategory,
    Priority,
    ProjectContext,
    ScoredFeature,
    ScoringDetails,
    ScoringError,
    SpecGap,
    create_effort_estimate,
)
from logging_config import get_logger
from runtime import RunContext

logger = get_logger(__name__)


Rule = Tuple[re.Pattern, int, str]


def _rule(pattern: str, delta: int, factor: str = "") -> Rule:
    return (re.compile(pattern, re.I), delta, factor)


IMPACT_RULES: List[Rule] = [
    _rule(r"security|vulnerab", 3, "Security improvement"),
    _rule(r"performance|speed|faster", 2, "Performance enhancement"),
    _rule(r"user experience|\bux\b|usability", 2, "UX improvement"),
    _rule(r"automat", 2, "Automation benefit"),
    _rule(r"\berror|crash|\bbug", 2, "Reliability improvement"),
    _rule(r"data loss|corruption", 3, "Data safety"),
]

CATEGORY_IMPACT = {
    FeatureCategory.CORE_FUNCTIONALITY: 3,
    FeatureCategory.SECURITY: 3,
    FeatureCategory.DEVELOPER_EXPERIENCE: 2,
    FeatureCategory.USER_EXPERIENCE: 2,
    FeatureCategory.PERFORMANCE: 2,
    FeatureCategory.INTEGRATION: 1,
    FeatureCategory.DOCUMENTATION: 1,
    FeatureCategory.TESTING: 1,
}

EFFORT_RULES: List[Rule] = [
    _rule(r"\bai\b|machine learning|\bml\b|\bllm", 3, "AI/ML complexity"),
    _rule(r"distributed|scalab", 2, "Distributed systems work"),
    _rule(r"migration|refactor", 2, "Migration required"),
    _rule(r"architecture|redesign", 2, "Architecture changes"),
    _rule(r"third-party|external service", 2, "Third-party integration"),
    _rule(r"real-time|streaming", 2, "Real-time processing"),
    _rule(r"\bast\b|parser|syntax tree", 1, "Parsing work"),
    _rule(r"simple|basic", -2, "Simple change"),
    _rule(r"\bui\b|display", -1, "UI-only change"),
    _rule(r"logging|error message", -1, "Logging or messages only"),
    _rule(r"documentation|readme|guide", -2, "Documentation only"),
]

STRATEGIC_RULES: List[Rule] = [
    _rule(r"\bai\b|\bllm", 2, "AI trend alignment"),
    _rule(r"cloud|serverless", 1, "Cloud alignment"),
    _rule(r"real-time|collaboration", 1, "Collaboration trend"),
    _rule(r"unique|innovative", 2, "Differentiating capability"),
    _rule(r"differentiator|competitive", 1, "Competitive advantage"),
    _rule(r"requested|demand", 2, "User demand"),
]

RISK_RULES: List[Rule] = [
    _rule(r"breaking|migration", 3, "Breaking changes"),
    _rule(r"payment|billing|authentication|authorization|\bauth\b", 3, "Payment or auth surface"),
    _rule(r"security|credential|secret|encrypt", 2, "Security implications"),
    _rule(r"experimental|beta", 2, "Experimental"),
    _rule(r"database.*schema|schema.*database", 2, "Schema changes"),
    _rule(r"third-party|external", 1, "External dependencies"),
    _rule(r"refactor|rewrite", 1, "Rewrite risk"),
]

EFFORT_HOURS = {1: 4, 2: 8, 3: 16, 4: 20, 5: 28, 6: 40, 7: 50, 8: 64, 9: 80, 10: 120}

LARGE_CODEBASE_LINES = 100_000

# Scored-feature priority tiers by priority_score
SCORE_TIERS = [
    (6.5, Priority.P0),
    (5.0, Priority.P1),
    (3.5, Priority.P2),
]


def priority_for_score(priority_score: float) -> Priority:
    for threshold, priority in SCORE_TIERS:
        if priority_score >= threshold:
            return priority
    return Priority.P3


def _clamp(value: float) -> int:
    return int(max(1, min(10, round(value))))


def _apply(rules: Iterable[Rule], text: str) -> Tuple[int, List[str]]:
    total, factors = 0, []
    for pattern, delta, factor in rules:
        if pattern.search(text):
            total += delta
            if factor:
                factors.append(factor)
    return total, factors


def _keywords(text: str) -> set:
    return {w for w in re.findall(r"[a-z]{4,}", text.lower())}


class ScoringEngine:
    """Scores features on impact, effort, ROI, strategic value and risk."""

    def __init__(self, context: Optional[RunContext] = None, weights: Optional[dict] = None):
        self.context = context or RunContext()
        self.weights = weights or settings.priority_weights()

    def score_features(
        self,
        features: Sequence[DesirableFeature],
        project: ProjectContext,
        gaps: Sequence[SpecGap] = (),
    ) -> List[ScoredFeature]:
        """Score every feature; malformed ones are dropped with a warning.

        Returns features sorted by priority_score descending, then id.
        """
        open_p0 = [g for g in gaps if g.priority == Priority.P0 and not g.excluded]
        scored = []
        for feature in features:
            try:
                scored.append(self.score_feature(feature, project, open_p0))
            except ScoringError as e:
                self.context.warn_error("scoring", e, path=feature.id)
        scored.sort(key=lambda f: (-f.priority_score, f.id))
        if scored:
            logger.info("Scored %d features; top: %s (%.2f)", len(scored), scored[0].name, scored[0].priority_score)
        return scored

    def score_feature(
        self, feature: DesirableFeature, project: ProjectContext, open_p0: Sequence[SpecGap] = ()
    ) -> ScoredFeature:
        """Score one feature.

        Raises:
            ScoringError: If the feature cannot be scored
        """
        try:
            text = f"{feature.name} {feature.description}"
            impact, impact_factors = self.score_impact(feature, text)
            effort, effort_factors = self.score_effort(feature, text, project)
            strategic, strategic_factors = self.score_strategic_value(feature, text, open_p0)
            risk, risk_factors = self.score_risk(feature, text)
            roi = impact / effort
            priority_score = round(
                self.weights["impact"] * impact
                + self.weights["roi"] * roi
                + self.weights["strategic"] * strategic
                - self.weights["risk"] * risk,
                4,
            )
            return ScoredFeature(
                **feature.model_dump(exclude={"effort", "priority"}),
                effort=create_effort_estimate(
                    EFFORT_HOURS[effort], feature.effort.confidence, EstimationMethod.COMPLEXITY,
                ),
                priority=priority_for_score(priority_score),
                impact_score=impact,
                effort_score=effort,
                roi=roi,
                strategic_value=strategic,
                risk_score=risk,
                priority_score=priority_score,
                scoring_details=ScoringDetails(
                    impact_factors=impact_factors or ["General improvement"],
                    effort_factors=effort_factors or ["Standard implementation"],
                    strategic_factors=strategic_factors or ["Standard feature"],
                    risk_factors=risk_factors or ["Low risk"],
                ),
            )
        except (KeyError, TypeError, ValueError, ZeroDivisionError, ValidationError) as e:
            raise ScoringError(feature.name, str(e)) from e

    def score_impact(self, feature: DesirableFeature, text: str) -> Tuple[int, List[str]]:
        delta, factors = _apply(IMPACT_RULES, text)
        delta += CATEGORY_IMPACT[feature.category]
        if feature.category == FeatureCategory.CORE_FUNCTIONALITY:
            factors.append("Core functionality")
        if feature.strategic_alignment:
            delta += min(len(feature.strategic_alignment), 2)
        return _clamp(5 + delta), factors

    def score_effort(self, feature: DesirableFeature, text: str, project: ProjectContext) -> Tuple[int, List[str]]:
        delta, factors = _apply(EFFORT_RULES, text)
        if feature.new_dependencies:
            delta += min(len(feature.new_dependencies), 2)
            factors.append(f"{len(feature.new_dependencies)} new dependenc{'y' if len(feature.new_dependencies) == 1 else 'ies'}")
        if feature.files_touched > 10:
            delta += 1
            factors.append(f"Touches {feature.files_touched} files")
        if project.lines_of_code > LARGE_CODEBASE_LINES:
            delta += 1
            factors.append("Large codebase")
        return _clamp(5 + delta), factors

    def score_strategic_value(
        self, feature: DesirableFeature, text: str, open_p0: Sequence[SpecGap] = ()
    ) -> Tuple[int, List[str]]:
        delta, factors = _apply(STRATEGIC_RULES, text)
        factors = list(feature.strategic_alignment) + factors
        delta += min(len(feature.strategic_alignment) * 0.5, 3)

        others = [c for c in FeatureCategory if c != feature.category]
        links = " ".join(feature.dependencies + feature.alternatives).lower()
        if any(c.value.replace("-", " ") in links or c.value in links for c in others):
            delta += 1
            factors.append("Unlocks other categories")

        words = _keywords(text)
        closes = [g for g in open_p0 if words & _keywords(g.title)]
        if closes:
            delta += 2
            factors.append(f"Closes P0 gap {closes[0].requirement}")
        return _clamp(5 + delta), factors

    def score_risk(self, feature: DesirableFeature, text: str) -> Tuple[int, List[str]]:
        delta, factors = _apply(RISK_RULES, text)
        if feature.new_dependencies:
            delta += 2 if len(feature.new_dependencies) > 2 else 1
            factors.append("New dependencies")
        if feature.confidence < 0.4:
            delta += 2
            factors.append("Low-confidence estimate")
        return _clamp(1 + delta), factors


def score_features(
    features: Sequence[DesirableFeature],
    project: ProjectContext,
    gaps: Sequence[SpecGap] = (),
    context: Optional[RunContext] = None,
) -> List[ScoredFeature]:
    """Convenience function for one-off scoring."""
    return ScoringEngine(context).score_features(features, project, gaps)
