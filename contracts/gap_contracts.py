"""Gap contracts: parsed specifications, evidence, spec gaps and feature gaps."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .estimation_contracts import EffortEstimate


class Priority(str, Enum):
    """Roadmap priority tier. P0 is the most urgent."""
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def rank(self) -> int:
        return int(self.value[1])


class GapStatus(str, Enum):
    """Implementation status of a requirement."""
    COMPLETE = "complete"
    PARTIAL = "partial"
    STUB = "stub"
    MISSING = "missing"


class CriterionStatus(str, Enum):
    """Status glyph attached to an acceptance criterion."""
    MET = "met"  # ✅ or [x]
    PARTIAL = "partial"  # ⚠️
    UNMET = "unmet"  # ❌ or [ ]
    UNKNOWN = "unknown"


class RequirementKind(str, Enum):
    FUNCTIONAL = "functional"
    NON_FUNCTIONAL = "non-functional"


class EvidenceType(str, Enum):
    """Kinds of evidence collected while verifying a requirement or claim."""
    EXACT_FUNCTION_MATCH = "exact-function-match"
    AST_SIGNATURE_VERIFIED = "ast-signature-verified"
    TEST_FILE_EXISTS = "test-file-exists"
    NAME_SIMILARITY_ONLY = "name-similarity-only"
    FILE_NOT_FOUND = "file-not-found"
    FUNCTION_NOT_FOUND = "function-not-found"
    RETURNS_TODO_COMMENT = "returns-todo-comment"
    RETURNS_GUIDANCE_TEXT = "returns-guidance-text"
    TEST_FILE_MISSING = "test-file-missing"
    COMMENTS_SUGGEST_INCOMPLETE = "comments-suggest-incomplete"
    CRITERIA_UNMET = "criteria-unmet"
    UNKNOWN = "unknown"


class AcceptanceCriterion(BaseModel):
    """One acceptance criterion of a requirement."""
    text: str = Field(..., description="Criterion text without the status glyph")
    status: CriterionStatus = Field(CriterionStatus.UNKNOWN)


class SymbolHint(BaseModel):
    """Explicit implementation hint given in a spec (**Function:** / **Implementation:**)."""
    name: str = Field(..., description="Expected symbol name")
    params: Optional[List[str]] = Field(None, description="Expected parameter names, when given")
    file: Optional[str] = Field(None, description="Expected file, relative to the code directory")


class Requirement(BaseModel):
    """A requirement extracted from a specification document."""
    id: str = Field(..., description="Requirement id, e.g. FR1 or NFR2")
    title: str
    description: str = ""
    kind: RequirementKind = RequirementKind.FUNCTIONAL
    priority: Optional[Priority] = Field(None, description="Requirement priority; falls back to the spec's")
    acceptance_criteria: List[AcceptanceCriterion] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list, description="Requirement ids this depends on")
    hard_dependencies: List[str] = Field(default_factory=list, description="Ids this is blocked by")
    hints: List[SymbolHint] = Field(default_factory=list)

    @property
    def unmet_criteria(self) -> List[AcceptanceCriterion]:
        return [c for c in self.acceptance_criteria if c.status in (CriterionStatus.UNMET, CriterionStatus.PARTIAL)]


class SpecPhase(BaseModel):
    """A '### Phase N: Name (effort)' section inside a spec."""
    number: int
    name: str
    effort: str = ""
    tasks: List[str] = Field(default_factory=list)
    completed_tasks: List[str] = Field(default_factory=list)


class ParsedSpec(BaseModel):
    """A specification document after parsing."""
    id: str
    title: str
    path: str
    status: str = ""
    priority: Priority = Priority.P2
    effort: str = ""
    requirements: List[Requirement] = Field(default_factory=list)
    success_metrics: Dict[str, str] = Field(default_factory=dict)
    phases: List[SpecPhase] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'ParsedSpec':
        """Requirement ids are unique within a spec; later duplicates get a suffix."""
        seen: Dict[str, int] = {}
        for req in self.requirements:
            if req.id in seen:
                seen[req.id] += 1
                object.__setattr__(req, 'id', f"{req.id}-{seen[req.id]}")
            else:
                seen[req.id] = 1
        return self


class Evidence(BaseModel):
    """A single observation supporting or contradicting a classification."""
    type: EvidenceType
    description: str
    confidence_impact: int = Field(..., ge=-50, le=50, description="Signed contribution to confidence")
    location: Optional[str] = Field(None, description="file[:line] the evidence refers to")


class SpecGap(BaseModel):
    """A requirement whose implementation is incomplete or absent."""
    id: str
    spec: str = Field(..., description="Id of the spec the requirement belongs to")
    requirement: str = Field(..., description="Requirement id")
    title: str
    description: str = ""
    status: GapStatus
    confidence: int = Field(..., description="0-100 certainty in the status classification")
    evidence: List[Evidence] = Field(default_factory=list)
    expected_locations: List[str] = Field(default_factory=list)
    actual_locations: List[str] = Field(default_factory=list)
    effort: EffortEstimate
    priority: Priority
    impact: str = ""
    recommendation: str = ""
    dependencies: List[str] = Field(default_factory=list, description="Gap ids this gap depends on")
    hard_dependencies: List[str] = Field(default_factory=list)
    acceptance_criteria: List[str] = Field(default_factory=list)
    excluded: bool = Field(False, description="Below the confidence threshold; kept but not planned")

    @model_validator(mode='after')
    def clamp_confidence(self) -> 'SpecGap':
        """Confidence is always within 0..100."""
        clamped = max(0, min(100, self.confidence))
        if clamped != self.confidence:
            object.__setattr__(self, 'confidence', clamped)
        return self


class FeatureGapStatus(str, Enum):
    ACCURATE = "accurate"
    MISLEADING = "misleading"
    FALSE = "false"


class FeatureGapRecommendation(str, Enum):
    NONE = "none"
    IMPLEMENT_FEATURE = "implement-feature"
    UPDATE_DOCUMENTATION = "update-documentation"
    ADD_DISCLAIMER = "add-disclaimer"
    REMOVE_CLAIM = "remove-claim"


class DocType(str, Enum):
    README = "readme"
    ROADMAP = "roadmap"
    GUIDE = "guide"
    SPEC = "spec"
    CHANGELOG = "changelog"
    OTHER = "other"


class DocumentationClaim(BaseModel):
    """A feature claim found in documentation."""
    claim: str
    source: str = Field(..., description="Documentation file the claim came from")
    doc_type: DocType = DocType.OTHER
    line: int = 0
    section: str = ""
    keywords: List[str] = Field(default_factory=list)


def status_for_accuracy(accuracy: int) -> FeatureGapStatus:
    """>= 90 accurate, 40-89 misleading, < 40 false."""
    if accuracy >= 90:
        return FeatureGapStatus.ACCURATE
    if accuracy >= 40:
        return FeatureGapStatus.MISLEADING
    return FeatureGapStatus.FALSE


class FeatureGap(BaseModel):
    """Mismatch between an advertised feature and the code."""
    id: str
    advertised_feature: str
    claim: str
    source: str
    reality: str = ""
    accuracy_score: int = Field(..., ge=0, le=100)
    status: FeatureGapStatus = FeatureGapStatus.FALSE
    recommendation: FeatureGapRecommendation = FeatureGapRecommendation.NONE
    evidence: List[Evidence] = Field(default_factory=list)
    effort: Optional[EffortEstimate] = None

    @model_validator(mode='after')
    def validate_status(self) -> 'FeatureGap':
        """Status always follows the accuracy thresholds."""
        expected = status_for_accuracy(self.accuracy_score)
        if self.status != expected:
            object.__setattr__(self, 'status', expected)
        return self


class PriorityCompletion(BaseModel):
    total: int = 0
    complete: int = 0
    percentage: float = 100.0


class CategoryCompletion(BaseModel):
    """Completion percentage per analysis category."""
    core_features: float = 100.0
    documentation: float = 100.0
    testing: float = 100.0
    security: float = 100.0
    deployment: float = 100.0
    error_handling: float = 100.0
    performance: float = 100.0


class CompletenessAssessment(BaseModel):
    """Aggregated completion picture of a project."""
    overall: float = Field(..., ge=0, le=100)
    categories: CategoryCompletion = Field(default_factory=CategoryCompletion)
    priorities: Dict[str, PriorityCompletion] = Field(default_factory=dict, description="Keyed p0..p3")
    production_readiness: float = Field(..., ge=0, le=100)
    critical_gaps: List[SpecGap] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
