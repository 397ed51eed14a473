"""Roadmap contracts: items, phases, dependencies, risks, timeline and the roadmap itself.

Roadmap is the only artifact persisted across runs; its JSON export must
round-trip through Roadmap.model_validate_json.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .estimation_contracts import EffortEstimate, sum_efforts
from .gap_contracts import Priority


class RoadmapItemType(str, Enum):
    SPEC_GAP = "spec-gap"
    FEATURE_GAP = "feature-gap"
    ENHANCEMENT = "enhancement"
    TECHNICAL_DEBT = "technical-debt"
    DOCUMENTATION = "documentation"
    TESTING = "testing"


class ItemStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    WONT_DO = "wont-do"


# Items in these states are not regenerated on the next run unless reinstated.
CLOSED_STATUSES = (ItemStatus.COMPLETED, ItemStatus.WONT_DO)


class Level(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Risk(BaseModel):
    """A delivery risk attached to the roadmap."""
    id: str
    title: str
    description: str = ""
    likelihood: Level = Level.MEDIUM
    impact: Level = Level.MEDIUM
    severity: Level = Level.MEDIUM
    mitigations: List[str] = Field(default_factory=list)
    contingency: Optional[str] = None
    affected_items: List[str] = Field(default_factory=list)


class ItemSource(BaseModel):
    """Provenance of a roadmap item."""
    type: str = Field(..., description="spec-gap, feature-gap or brainstorm")
    ref: str = Field(..., description="Id of the gap or feature the item came from")
    spec: Optional[str] = None
    requirement: Optional[str] = None
    document: Optional[str] = None
    category: Optional[str] = None


class RoadmapItem(BaseModel):
    """A unit of planned work."""
    id: str
    type: RoadmapItemType
    title: str
    description: str = ""
    priority: Priority
    effort: EffortEstimate
    phase: int = Field(0, ge=0, description="Phase number; 0 until phases are created")
    status: ItemStatus = ItemStatus.NOT_STARTED
    owner: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list, description="Item ids this item depends on")
    blocks: List[str] = Field(default_factory=list, description="Item ids that depend on this item")
    success_criteria: List[str] = Field(default_factory=list)
    acceptance_criteria: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    source: Optional[ItemSource] = None
    roi: Optional[float] = Field(None, description="Impact/effort ratio for scored features")
    priority_score: Optional[float] = None
    confidence: int = Field(100, ge=0, le=100, description="Confidence in the underlying finding")


class DependencyType(str, Enum):
    SEQUENTIAL = "sequential"
    PREREQUISITE = "prerequisite"
    RELATED = "related"
    OPTIONAL = "optional"


class Dependency(BaseModel):
    """Edge 'dependent depends on depends_on' in the item graph."""
    dependent: str
    depends_on: str
    type: DependencyType = DependencyType.PREREQUISITE
    reason: str = ""
    is_hard: bool = Field(False, description="Hard edges are never broken to resolve a cycle")
    confidence: int = Field(50, ge=0, le=100, description="Confidence that the edge is real")


class Phase(BaseModel):
    """A dependency-respecting group of items sharing a milestone goal."""
    number: int = Field(..., ge=1)
    name: str
    goal: str = ""
    duration: str = ""
    start_week: int = 0
    end_week: int = 0
    items: List[RoadmapItem] = Field(default_factory=list)
    total_effort: Optional[EffortEstimate] = None
    outcome: str = ""
    success_criteria: List[str] = Field(default_factory=list)
    deliverables: List[str] = Field(default_factory=list)
    dependencies: List[int] = Field(default_factory=list, description="Earlier phase numbers this phase depends on")

    @model_validator(mode='after')
    def validate_total_effort(self) -> 'Phase':
        """Total effort is the sum of item efforts."""
        total = sum_efforts(i.effort for i in self.items)
        if self.total_effort is None or abs(self.total_effort.hours - total.hours) > 0.01:
            object.__setattr__(self, 'total_effort', total)
        return self


class Milestone(BaseModel):
    name: str
    phase: int
    target_week: int
    criteria: List[str] = Field(default_factory=list)


class TeamEstimate(BaseModel):
    team_size: int = Field(..., ge=1)
    weeks: int = Field(..., ge=0)
    completion_date: date
    assumptions: List[str] = Field(default_factory=list)


class CriticalPath(BaseModel):
    items: List[str] = Field(default_factory=list)
    hours: float = 0.0
    duration_weeks: int = 0


class Timeline(BaseModel):
    """Calendar view of the roadmap effort."""
    total_hours: float = 0.0
    total_weeks: int = 0
    by_team_size: Dict[int, TeamEstimate] = Field(default_factory=dict)
    critical_path: CriticalPath = Field(default_factory=CriticalPath)
    parallelizable_work: List[str] = Field(default_factory=list)


class AnalysisBasis(BaseModel):
    specs_analyzed: int = 0
    gaps_found: int = 0
    features_identified: int = 0
    total_items: int = 0


class RoadmapMetadata(BaseModel):
    generated: datetime
    project_name: str
    project_path: str = ""
    tool_version: str = ""
    analysis_basis: AnalysisBasis = Field(default_factory=AnalysisBasis)


class RoadmapSummary(BaseModel):
    overview: str = ""
    current_state: str = ""
    target_state: str = ""
    completion: float = 0.0
    highlights: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)


class PriorityBucket(BaseModel):
    count: int = 0
    effort_hours: float = 0.0
    items: List[str] = Field(default_factory=list)


class Roadmap(BaseModel):
    """The generated roadmap."""
    metadata: RoadmapMetadata
    summary: RoadmapSummary = Field(default_factory=RoadmapSummary)
    phases: List[Phase] = Field(default_factory=list)
    all_items: List[RoadmapItem] = Field(default_factory=list)
    closed_items: List[RoadmapItem] = Field(
        default_factory=list,
        description="Items closed in earlier roadmaps; kept for progress tracking, never phased",
    )
    priorities: Dict[str, PriorityBucket] = Field(default_factory=dict, description="Keyed p0..p3")
    timeline: Timeline = Field(default_factory=Timeline)
    risks: List[Risk] = Field(default_factory=list)
    dependencies: List[Dependency] = Field(default_factory=list)
    milestones: List[Milestone] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_all_items(self) -> 'Roadmap':
        """all_items is always the flattened phase items, in phase order."""
        flattened = [item for phase in self.phases for item in phase.items]
        if self.phases and [i.id for i in flattened] != [i.id for i in self.all_items]:
            object.__setattr__(self, 'all_items', flattened)
        return self

    def get_item(self, item_id: str) -> Optional[RoadmapItem]:
        for item in self.all_items:
            if item.id == item_id:
                return item
        return None

    @property
    def tracked_items(self) -> List[RoadmapItem]:
        """Planned items followed by closed ones, as progress tracking sees them."""
        planned = {i.id for i in self.all_items}
        return self.all_items + [i for i in self.closed_items if i.id not in planned]
