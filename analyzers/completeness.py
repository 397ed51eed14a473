"""Completeness assessment: how far a project is from its specs."""

import re
from typing import Dict, List, Optional, Sequence

from contracts import (
    CategoryCompletion,
    CompletenessAssessment,
    FeatureGap,
    FeatureGapStatus,
    GapStatus,
    Priority,
    PriorityCompletion,
    SpecGap,
)
from logging_config import get_logger
from .feature_analyzer import calculate_accuracy
from .gap_analyzer import RequirementOutcome

logger = get_logger(__name__)


PRIORITY_WEIGHTS = {
    Priority.P0: 0.5,
    Priority.P1: 0.3,
    Priority.P2: 0.15,
    Priority.P3: 0.05,
}

READINESS_WEIGHTS = {
    "core_features": 0.3,
    "testing": 0.2,
    "security": 0.2,
    "documentation": 0.15,
    "deployment": 0.15,
}

# First matching category wins; everything else is core_features
CATEGORY_PATTERNS = [
    ("security", re.compile(r"secur|auth|encrypt|password|token|permission|vulnerab|secret|credential", re.I)),
    ("testing", re.compile(r"\btest|coverage|e2e\b", re.I)),
    ("documentation", re.compile(r"\bdoc|readme|guide|tutorial", re.I)),
    ("deployment", re.compile(r"deploy|docker|container|kubernetes|\bci\b|release|pipeline|install", re.I)),
    ("error_handling", re.compile(r"error|exception|retry|fallback|failure|recover", re.I)),
    ("performance", re.compile(r"perform|cache|latency|speed|optimi|memory|scal|throughput", re.I)),
]

CATEGORY_LABELS = {
    "core_features": "core features",
    "documentation": "documentation",
    "testing": "testing",
    "security": "security",
    "deployment": "deployment",
    "error_handling": "error handling",
    "performance": "performance",
}


def categorize(text: str) -> str:
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return "core_features"


def _percentage(complete: int, total: int) -> float:
    return round(100.0 * complete / total, 1) if total else 100.0


def assess_completeness(
    gaps: Sequence[SpecGap],
    feature_gaps: Optional[Sequence[FeatureGap]] = None,
    outcomes: Optional[Sequence[RequirementOutcome]] = None,
) -> CompletenessAssessment:
    """Aggregate per-priority and per-category completion.

    With `outcomes` (every classified requirement, complete ones included)
    totals cover the whole spec set; without them only the gaps are known and
    each non-excluded gap counts as one incomplete requirement.
    """
    rows = []  # (priority, category, is_complete)
    if outcomes is not None:
        for outcome in outcomes:
            text = f"{outcome.requirement.title} {outcome.requirement.description}"
            rows.append((outcome.priority, categorize(text), outcome.status == GapStatus.COMPLETE))
    else:
        for gap in gaps:
            if not gap.excluded:
                rows.append((gap.priority, categorize(f"{gap.title} {gap.description}"), gap.status == GapStatus.COMPLETE))

    priorities: Dict[str, PriorityCompletion] = {}
    weighted, weight_total = 0.0, 0.0
    for priority in Priority:
        total = sum(1 for p, _, _ in rows if p == priority)
        complete = sum(1 for p, _, done in rows if p == priority and done)
        priorities[priority.value.lower()] = PriorityCompletion(
            total=total, complete=complete, percentage=_percentage(complete, total),
        )
        if total:
            weighted += PRIORITY_WEIGHTS[priority] * _percentage(complete, total)
            weight_total += PRIORITY_WEIGHTS[priority]
    overall = round(weighted / weight_total, 1) if weight_total else 100.0

    category_values = {}
    for category in CATEGORY_LABELS:
        total = sum(1 for _, c, _ in rows if c == category)
        complete = sum(1 for _, c, done in rows if c == category and done)
        category_values[category] = _percentage(complete, total)
    if feature_gaps:
        accuracy = calculate_accuracy(list(feature_gaps))
        has_doc_requirements = any(c == "documentation" for _, c, _ in rows)
        category_values["documentation"] = round(
            (category_values["documentation"] + accuracy) / 2 if has_doc_requirements else accuracy, 1
        )
    categories = CategoryCompletion(**category_values)

    open_rows = [r for r in rows if not r[2]]
    if not open_rows and not any(g.status != FeatureGapStatus.ACCURATE for g in feature_gaps or []):
        readiness = 100.0
    else:
        readiness = round(sum(category_values[c] * w for c, w in READINESS_WEIGHTS.items()), 1)

    critical = [g for g in gaps if g.priority == Priority.P0 and g.status != GapStatus.COMPLETE]
    assessment = CompletenessAssessment(
        overall=overall,
        categories=categories,
        priorities=priorities,
        production_readiness=readiness,
        critical_gaps=critical,
        recommendations=_recommendations(category_values, critical, feature_gaps or []),
    )
    logger.info("Completeness %.1f%%, production readiness %.1f%%", overall, readiness)
    return assessment


def _recommendations(
    category_values: Dict[str, float], critical: List[SpecGap], feature_gaps: Sequence[FeatureGap]
) -> List[str]:
    recommendations = []
    if critical:
        ids = ", ".join(g.requirement for g in critical[:5])
        recommendations.append(f"Address {len(critical)} critical (P0) gap(s) before release: {ids}")
    for category, value in sorted(category_values.items(), key=lambda kv: (kv[1], kv[0])):
        if value < 80:
            recommendations.append(f"Improve {CATEGORY_LABELS[category]} ({value:.0f}% complete)")
    false_claims = [g for g in feature_gaps if g.status == FeatureGapStatus.FALSE]
    if false_claims:
        recommendations.append(
            f"Correct {len(false_claims)} documentation claim(s) the code does not support"
        )
    if not recommendations:
        recommendations.append("No blocking gaps found; focus on strategic enhancements")
    return recommendations
