"""Effort estimators for gaps.

The complexity estimator works from status and criteria count alone. The
historical estimator matches titles against past records and is consulted
first when a records file is configured.
"""

import json
import math
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from contracts import (
    EffortEstimate,
    EstimateConfidence,
    EstimationMethod,
    GapforgeError,
    GapStatus,
    create_effort_estimate,
)
from logging_config import get_logger
from .verification import extract_keywords

logger = get_logger(__name__)


BASE_HOURS = {
    GapStatus.MISSING: 16,
    GapStatus.STUB: 12,
    GapStatus.PARTIAL: 8,
    GapStatus.COMPLETE: 2,
}


class EffortEstimator(ABC):
    """Estimates the effort to close one gap."""

    @abstractmethod
    def estimate(self, title: str, status: GapStatus, criteria_count: int = 0) -> Optional[EffortEstimate]:
        """Return an estimate, or None when this estimator has no basis."""
        pass


class ComplexityEstimator(EffortEstimator):
    """Status base hours, scaled up for requirements with many criteria."""

    def estimate(self, title: str, status: GapStatus, criteria_count: int = 0) -> EffortEstimate:
        hours = BASE_HOURS[status]
        if criteria_count > 5:
            hours *= 1.5
        elif criteria_count > 3:
            hours *= 1.2
        confidence = EstimateConfidence.LOW if criteria_count > 5 else EstimateConfidence.MEDIUM
        return create_effort_estimate(math.ceil(hours), confidence, EstimationMethod.COMPLEXITY)


class HistoricalRecord(BaseModel):
    title: str
    hours: float = Field(..., gt=0)


class HistoricalEstimator(EffortEstimator):
    """Averages past efforts of records whose titles overlap enough (Jaccard)."""

    def __init__(self, records: List[HistoricalRecord], min_similarity: float = 0.5):
        self.records = records
        self.min_similarity = min_similarity

    @classmethod
    def from_file(cls, path: Path, min_similarity: float = 0.5) -> "HistoricalEstimator":
        """Load records from a JSON list of {"title", "hours"} objects.

        Raises:
            GapforgeError: If the file is missing or malformed
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
            records = [HistoricalRecord.model_validate(r) for r in raw]
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            raise GapforgeError(f"Invalid historical efforts file {path}: {e}", {"path": str(path)}) from e
        logger.info("Loaded %d historical effort records from %s", len(records), path)
        return cls(records, min_similarity)

    @staticmethod
    def _similarity(a: str, b: str) -> float:
        words_a, words_b = set(extract_keywords(a)), set(extract_keywords(b))
        if not words_a or not words_b:
            return 0.0
        return len(words_a & words_b) / len(words_a | words_b)

    def estimate(self, title: str, status: GapStatus, criteria_count: int = 0) -> Optional[EffortEstimate]:
        matches = [r.hours for r in self.records if self._similarity(title, r.title) >= self.min_similarity]
        if not matches:
            return None
        confidence = EstimateConfidence.HIGH if len(matches) >= 3 else EstimateConfidence.MEDIUM
        hours = round(sum(matches) / len(matches), 1)
        return create_effort_estimate(hours, confidence, EstimationMethod.HISTORICAL)


class HybridEstimator(EffortEstimator):
    """Historical estimate when one exists, complexity estimate otherwise."""

    def __init__(self, historical: Optional[HistoricalEstimator] = None):
        self.historical = historical
        self.fallback = ComplexityEstimator()

    def estimate(self, title: str, status: GapStatus, criteria_count: int = 0) -> EffortEstimate:
        if self.historical is not None:
            found = self.historical.estimate(title, status, criteria_count)
            if found is not None:
                return found
        return self.fallback.estimate(title, status, criteria_count)
