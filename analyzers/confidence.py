"""Evidence weighting and confidence scoring.

Each evidence type has a natural weight measured toward "the requirement is
implemented". The weight recorded on an Evidence is oriented toward the
classification it supports, and confidence is clamp(50 + sum, 0, 100).
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from contracts import Evidence, EvidenceType, GapStatus


EVIDENCE_WEIGHTS = {
    EvidenceType.EXACT_FUNCTION_MATCH: 50,
    EvidenceType.AST_SIGNATURE_VERIFIED: 40,
    EvidenceType.TEST_FILE_EXISTS: 20,
    EvidenceType.NAME_SIMILARITY_ONLY: 10,
    EvidenceType.FILE_NOT_FOUND: -50,
    EvidenceType.FUNCTION_NOT_FOUND: -40,
    EvidenceType.RETURNS_TODO_COMMENT: -30,
    EvidenceType.RETURNS_GUIDANCE_TEXT: -35,
    EvidenceType.TEST_FILE_MISSING: -20,
    EvidenceType.COMMENTS_SUGGEST_INCOMPLETE: -25,
    EvidenceType.CRITERIA_UNMET: -15,
    EvidenceType.UNKNOWN: -5,
}

BASE_CONFIDENCE = 50

# Levels: score >= threshold
CONFIDENCE_LEVELS = [
    (90, "very-high"),
    (70, "high"),
    (50, "medium"),
    (30, "low"),
    (0, "very-low"),
]


@dataclass(frozen=True)
class Observation:
    """Unweighted evidence collected before a status is decided."""
    type: EvidenceType
    description: str
    location: Optional[str] = None


def oriented_impact(evidence_type: EvidenceType, status: GapStatus) -> int:
    """Weight of an evidence type as support for the given status."""
    weight = EVIDENCE_WEIGHTS[evidence_type]
    if evidence_type == EvidenceType.UNKNOWN:
        return weight
    if status == GapStatus.MISSING:
        return -weight
    if status in (GapStatus.STUB, GapStatus.PARTIAL):
        return abs(weight)
    return weight


def weigh(observations: Iterable[Observation], status: GapStatus) -> List[Evidence]:
    """Turn observations into Evidence oriented toward status."""
    return [
        Evidence(
            type=o.type,
            description=o.description,
            confidence_impact=oriented_impact(o.type, status),
            location=o.location,
        )
        for o in observations
    ]


def calculate_confidence(evidence: Iterable[Evidence]) -> int:
    """clamp(50 + sum of impacts, 0, 100)."""
    total = BASE_CONFIDENCE + sum(e.confidence_impact for e in evidence)
    return max(0, min(100, total))


def score(observations: Iterable[Observation], status: GapStatus) -> Tuple[List[Evidence], int]:
    evidence = weigh(observations, status)
    return evidence, calculate_confidence(evidence)


def confidence_level(value: int) -> str:
    for threshold, label in CONFIDENCE_LEVELS:
        if value >= threshold:
            return label
    return "very-low"
