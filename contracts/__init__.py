"""Pydantic contracts for the gap analysis and roadmap pipeline.

Every stage-to-stage handoff is typed through these contracts.
"""

from .errors import (
    GapforgeError,
    SpecParsingError,
    GapDetectionError,
    ScoringError,
    RoadmapGenerationError,
    ExportError,
    ProviderError,
)

from .estimation_contracts import (
    HOURS_PER_WEEK,
    EstimateConfidence,
    EstimationMethod,
    EffortRange,
    EffortEstimate,
    create_effort_estimate,
    sum_efforts,
)

from .gap_contracts import (
    Priority,
    GapStatus,
    CriterionStatus,
    RequirementKind,
    EvidenceType,
    AcceptanceCriterion,
    SymbolHint,
    Requirement,
    SpecPhase,
    ParsedSpec,
    Evidence,
    SpecGap,
    FeatureGapStatus,
    FeatureGapRecommendation,
    DocType,
    DocumentationClaim,
    FeatureGap,
    status_for_accuracy,
    PriorityCompletion,
    CategoryCompletion,
    CompletenessAssessment,
)

from .roadmap_contracts import (
    RoadmapItemType,
    ItemStatus,
    CLOSED_STATUSES,
    Level,
    Risk,
    ItemSource,
    RoadmapItem,
    DependencyType,
    Dependency,
    Phase,
    Milestone,
    TeamEstimate,
    CriticalPath,
    Timeline,
    AnalysisBasis,
    RoadmapMetadata,
    RoadmapSummary,
    PriorityBucket,
    Roadmap,
)

from .feature_contracts import (
    FeatureCategory,
    BrainstormSource,
    SuggestedFeature,
    SuggestionBatch,
    DesirableFeature,
    ScoringDetails,
    ScoredFeature,
)

from .progress_contracts import (
    ProgressSnapshot,
    VelocityStatus,
    Velocity,
    BreakdownEntry,
    BurndownPoint,
    RoadmapProgress,
    FieldChange,
    ItemChange,
    RoadmapDelta,
)

from .project import ProjectRoute, ProjectContext

from .run_contracts import (
    ExportFormat,
    DEFAULT_FILENAMES,
    ExportOptions,
    ExportResult,
    RunWarning,
    AnalysisRequest,
    AnalysisResult,
)

__all__ = [
    # Errors
    "GapforgeError",
    "SpecParsingError",
    "GapDetectionError",
    "ScoringError",
    "RoadmapGenerationError",
    "ExportError",
    "ProviderError",
    # Estimation
    "HOURS_PER_WEEK",
    "EstimateConfidence",
    "EstimationMethod",
    "EffortRange",
    "EffortEstimate",
    "create_effort_estimate",
    "sum_efforts",
    # Gaps
    "Priority",
    "GapStatus",
    "CriterionStatus",
    "RequirementKind",
    "EvidenceType",
    "AcceptanceCriterion",
    "SymbolHint",
    "Requirement",
    "SpecPhase",
    "ParsedSpec",
    "Evidence",
    "SpecGap",
    "FeatureGapStatus",
    "FeatureGapRecommendation",
    "DocType",
    "DocumentationClaim",
    "FeatureGap",
    "status_for_accuracy",
    "PriorityCompletion",
    "CategoryCompletion",
    "CompletenessAssessment",
    # Roadmap
    "RoadmapItemType",
    "ItemStatus",
    "CLOSED_STATUSES",
    "Level",
    "Risk",
    "ItemSource",
    "RoadmapItem",
    "DependencyType",
    "Dependency",
    "Phase",
    "Milestone",
    "TeamEstimate",
    "CriticalPath",
    "Timeline",
    "AnalysisBasis",
    "RoadmapMetadata",
    "RoadmapSummary",
    "PriorityBucket",
    "Roadmap",
    # Features
    "FeatureCategory",
    "BrainstormSource",
    "SuggestedFeature",
    "SuggestionBatch",
    "DesirableFeature",
    "ScoringDetails",
    "ScoredFeature",
    # Progress
    "ProgressSnapshot",
    "VelocityStatus",
    "Velocity",
    "BreakdownEntry",
    "BurndownPoint",
    "RoadmapProgress",
    "FieldChange",
    "ItemChange",
    "RoadmapDelta",
    # Project
    "ProjectRoute",
    "ProjectContext",
    # Run
    "ExportFormat",
    "DEFAULT_FILENAMES",
    "ExportOptions",
    "ExportResult",
    "RunWarning",
    "AnalysisRequest",
    "AnalysisResult",
]
