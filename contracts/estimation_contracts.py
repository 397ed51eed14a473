"""Effort estimation contracts shared by gaps, features and roadmap items."""

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field, model_validator


HOURS_PER_WEEK = 35


class EstimateConfidence(str, Enum):
    """How much trust to place in an effort estimate."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EstimationMethod(str, Enum):
    """Where an effort estimate came from."""
    HISTORICAL = "historical"
    AI = "ai"
    COMPLEXITY = "complexity"
    ANALOGY = "analogy"
    EXPERT = "expert"
    PLACEHOLDER = "placeholder"


class EffortRange(BaseModel):
    """Three-point range around an estimate, in hours."""
    optimistic: float = Field(..., ge=0, description="Best-case hours")
    realistic: float = Field(..., ge=0, description="Most likely hours")
    pessimistic: float = Field(..., ge=0, description="Worst-case hours")

    @model_validator(mode='after')
    def order_points(self) -> 'EffortRange':
        """Keep optimistic <= realistic <= pessimistic; reorder when inputs disagree."""
        low, mid, high = sorted([self.optimistic, self.realistic, self.pessimistic])
        object.__setattr__(self, 'optimistic', low)
        object.__setattr__(self, 'realistic', mid)
        object.__setattr__(self, 'pessimistic', high)
        return self


class EffortEstimate(BaseModel):
    """Effort estimate with a three-point range and a human-readable display."""
    hours: float = Field(..., ge=0, description="Realistic effort in hours")
    confidence: EstimateConfidence = Field(EstimateConfidence.MEDIUM, description="Confidence in the estimate")
    method: EstimationMethod = Field(EstimationMethod.COMPLEXITY, description="How the estimate was produced")
    range: EffortRange = Field(..., description="Optimistic / realistic / pessimistic hours")
    display: str = Field("", description="Display string, e.g. '16h (11-24h)'")

    @model_validator(mode='before')
    @classmethod
    def derive_range(cls, data):
        """Derive the three-point range from hours when it is omitted."""
        if isinstance(data, dict) and not data.get('range') and data.get('hours') is not None:
            hours = float(data['hours'])
            data['range'] = {
                'optimistic': round(hours * 0.7),
                'realistic': hours,
                'pessimistic': round(hours * 1.5),
            }
        return data

    @model_validator(mode='after')
    def validate_display(self) -> 'EffortEstimate':
        """Keep range.realistic aligned with hours and refresh the display string."""
        if abs(self.range.realistic - self.hours) > 0.01:
            object.__setattr__(self.range, 'realistic', self.hours)
            low, _, high = sorted([self.range.optimistic, self.hours, self.range.pessimistic])
            object.__setattr__(self.range, 'optimistic', low)
            object.__setattr__(self.range, 'pessimistic', high)
        expected = f"{_fmt(self.hours)}h ({_fmt(self.range.optimistic)}-{_fmt(self.range.pessimistic)}h)"
        if self.display != expected:
            object.__setattr__(self, 'display', expected)
        return self

    @property
    def weeks(self) -> float:
        """Single-developer weeks at a 35h week."""
        return self.hours / HOURS_PER_WEEK


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def create_effort_estimate(
    hours: float,
    confidence: EstimateConfidence = EstimateConfidence.MEDIUM,
    method: EstimationMethod = EstimationMethod.COMPLEXITY,
) -> EffortEstimate:
    """Build an estimate with the standard 0.7x / 1.5x range around the realistic value."""
    return EffortEstimate(hours=hours, confidence=confidence, method=method)


def sum_efforts(estimates: Iterable[EffortEstimate]) -> EffortEstimate:
    """Add estimates point by point; confidence is the weakest of the inputs."""
    estimates = list(estimates)
    if not estimates:
        return EffortEstimate(
            hours=0,
            method=EstimationMethod.COMPLEXITY,
            range=EffortRange(optimistic=0, realistic=0, pessimistic=0),
        )

    order = [EstimateConfidence.LOW, EstimateConfidence.MEDIUM, EstimateConfidence.HIGH]
    weakest = min((e.confidence for e in estimates), key=order.index)
    return EffortEstimate(
        hours=round(sum(e.hours for e in estimates), 2),
        confidence=weakest,
        method=estimates[0].method if len({e.method for e in estimates}) == 1 else EstimationMethod.COMPLEXITY,
        range=EffortRange(
            optimistic=round(sum(e.range.optimistic for e in estimates), 2),
            realistic=round(sum(e.range.realistic for e in estimates), 2),
            pessimistic=round(sum(e.range.pessimistic for e in estimates), 2),
        ),
    )
