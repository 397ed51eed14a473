"""Progress tracking contracts: snapshots, velocity and run-to-run deltas."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .roadmap_contracts import Roadmap, RoadmapItem


class ProgressSnapshot(BaseModel):
    """Completion state at one point in time."""
    timestamp: datetime
    percent_complete: float = 0.0
    items_complete: int = 0
    items_total: int = 0
    remaining_hours: float = 0.0


class VelocityStatus(str, Enum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient-data"


class Velocity(BaseModel):
    """Completed items per week.

    items_per_week is None whenever status is insufficient-data; it is never
    reported as 0 for lack of history.
    """
    status: VelocityStatus
    items_per_week: Optional[float] = None
    window_snapshots: int = 0
    window_weeks: float = 0.0

    @classmethod
    def insufficient(cls, snapshots: int = 0) -> 'Velocity':
        return cls(status=VelocityStatus.INSUFFICIENT_DATA, window_snapshots=snapshots)

    @property
    def is_known(self) -> bool:
        return self.status == VelocityStatus.OK


class BreakdownEntry(BaseModel):
    total: int = 0
    complete: int = 0
    percentage: float = 0.0


class BurndownPoint(BaseModel):
    timestamp: datetime
    remaining_items: int
    remaining_hours: float


class RoadmapProgress(BaseModel):
    """Progress of a roadmap across runs."""
    roadmap: Optional[Roadmap] = None
    timestamp: datetime
    percent_complete: float = 0.0
    items_complete: int = 0
    items_total: int = 0
    counts_by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, BreakdownEntry] = Field(default_factory=dict)
    by_phase: Dict[int, BreakdownEntry] = Field(default_factory=dict)
    velocity: Velocity = Field(default_factory=Velocity.insufficient)
    estimated_completion: Optional[date] = None
    history: List[ProgressSnapshot] = Field(default_factory=list)
    burndown: List[BurndownPoint] = Field(default_factory=list)


class FieldChange(BaseModel):
    field: str
    old: Optional[str] = None
    new: Optional[str] = None

    def describe(self) -> str:
        if self.field == "title":
            return f'Title changed from "{self.old}" to "{self.new}"'
        return f"{self.field.capitalize()} changed from {self.old or 'none'} to {self.new or 'none'}"


class ItemChange(BaseModel):
    item: RoadmapItem
    changes: List[FieldChange] = Field(default_factory=list)


class RoadmapDelta(BaseModel):
    """Differences between two roadmap runs, keyed by item id."""
    added: List[RoadmapItem] = Field(default_factory=list)
    removed: List[RoadmapItem] = Field(default_factory=list)
    completed: List[RoadmapItem] = Field(default_factory=list)
    regressions: List[RoadmapItem] = Field(default_factory=list)
    modified: List[ItemChange] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.completed or self.regressions or self.modified)
