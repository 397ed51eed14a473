"""Feature brainstorming and scoring contracts."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .estimation_contracts import EffortEstimate, create_effort_estimate, EstimationMethod
from .gap_contracts import Priority
from .roadmap_contracts import Risk


class FeatureCategory(str, Enum):
    """The eight fixed brainstorming categories."""
    CORE_FUNCTIONALITY = "core-functionality"
    USER_EXPERIENCE = "user-experience"
    INTEGRATION = "integration"
    PERFORMANCE = "performance"
    SECURITY = "security"
    DEVELOPER_EXPERIENCE = "developer-experience"
    DOCUMENTATION = "documentation"
    TESTING = "testing"


class BrainstormSource(str, Enum):
    AI_GENERATED = "ai-generated"
    GAP_ANALYSIS = "gap-analysis"
    COMPETITIVE_ANALYSIS = "competitive-analysis"
    BEST_PRACTICES = "best-practices"
    USER_REQUEST = "user-request"
    MANUAL = "manual"


class SuggestedFeature(BaseModel):
    """Strict schema for one feature returned by a suggestion provider.

    Provider output is untrusted; anything that does not validate here is dropped.
    """
    model_config = {"extra": "ignore"}

    name: str = Field(..., min_length=3, max_length=120)
    description: str = Field(..., min_length=10, max_length=2000)
    rationale: str = Field("", max_length=2000)
    value: str = Field("", max_length=1000)
    effort_hours: float = Field(16, gt=0, le=1000, description="Rough effort in hours")
    confidence: float = Field(0.5, ge=0.0, le=1.0, description="Provider confidence in the suggestion")
    dependencies: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
    new_dependencies: List[str] = Field(default_factory=list, description="Third-party packages the feature adds")
    files_touched: int = Field(0, ge=0, le=10000)
    strategic_alignment: List[str] = Field(default_factory=list)

    @field_validator('name', 'description')
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class SuggestionBatch(BaseModel):
    """Top-level JSON object a suggestion provider must return."""
    features: List[SuggestedFeature] = Field(default_factory=list)


class DesirableFeature(BaseModel):
    """A candidate new feature."""
    id: str
    category: FeatureCategory
    name: str
    description: str
    rationale: str = ""
    value: str = ""
    effort: EffortEstimate = Field(default_factory=lambda: create_effort_estimate(16, method=EstimationMethod.PLACEHOLDER))
    priority: Priority = Priority.P2
    dependencies: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
    risks: List[Risk] = Field(default_factory=list)
    source: BrainstormSource = BrainstormSource.AI_GENERATED
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    new_dependencies: List[str] = Field(default_factory=list)
    files_touched: int = 0
    strategic_alignment: List[str] = Field(default_factory=list)


class ScoringDetails(BaseModel):
    impact_factors: List[str] = Field(default_factory=list)
    effort_factors: List[str] = Field(default_factory=list)
    strategic_factors: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)


class ScoredFeature(DesirableFeature):
    """A DesirableFeature with multi-criteria scores."""
    impact_score: int = Field(..., ge=1, le=10)
    effort_score: int = Field(..., ge=1, le=10)
    roi: float = Field(0.0, ge=0, description="impact / effort")
    strategic_value: int = Field(..., ge=1, le=10)
    risk_score: int = Field(..., ge=1, le=10)
    priority_score: float = 0.0
    scoring_details: ScoringDetails = Field(default_factory=ScoringDetails)

    @model_validator(mode='after')
    def validate_roi(self) -> 'ScoredFeature':
        """Ensure roi = impact / effort; auto-fix stale values."""
        expected = round(self.impact_score / self.effort_score, 4)
        if abs(self.roi - expected) > 0.001:
            object.__setattr__(self, 'roi', expected)
        return self
