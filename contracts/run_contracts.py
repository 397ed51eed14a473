"""Run-level contracts: analysis requests, results, warnings and export results."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .feature_contracts import ScoredFeature
from .gap_contracts import CompletenessAssessment, FeatureGap, SpecGap
from .project import ProjectContext
from .roadmap_contracts import Roadmap


class ExportFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"
    CSV = "csv"
    GITHUB_ISSUES = "github-issues"
    HTML = "html"


DEFAULT_FILENAMES: Dict[ExportFormat, str] = {
    ExportFormat.MARKDOWN: "ROADMAP.md",
    ExportFormat.JSON: "roadmap.json",
    ExportFormat.CSV: "roadmap.csv",
    ExportFormat.GITHUB_ISSUES: "github-issues.json",
    ExportFormat.HTML: "roadmap.html",
}


class ExportOptions(BaseModel):
    output_path: Optional[str] = Field(None, description="File to write; content only when omitted")
    label_prefix: str = ""
    milestone_name: Optional[str] = None
    default_assignee: Optional[str] = None


class ExportResult(BaseModel):
    format: ExportFormat
    success: bool
    content: str = ""
    output_path: Optional[str] = None
    error: Optional[str] = None


class RunWarning(BaseModel):
    """A recoverable problem recorded during a run."""
    stage: str = Field(..., description="Pipeline stage, e.g. spec-gaps, brainstorm, export")
    message: str
    path: Optional[str] = None
    code: Optional[str] = None

    def __str__(self) -> str:
        where = f" ({self.path})" if self.path else ""
        return f"[{self.stage}] {self.message}{where}"


class AnalysisRequest(BaseModel):
    """What the invoking caller supplies."""
    directory: str = Field(..., description="Project root")
    specs_dir: Optional[str] = Field(None, description="Defaults to specs/ or production-readiness-specs/")
    docs_dir: Optional[str] = Field(None, description="Defaults to the project root")
    code_dir: Optional[str] = Field(None, description="Defaults to the project root")
    formats: List[ExportFormat] = Field(default_factory=lambda: [ExportFormat.MARKDOWN, ExportFormat.JSON])
    confidence_threshold: Optional[int] = Field(None, ge=0, le=100)
    team_sizes: Optional[List[int]] = None
    output_dir: Optional[str] = None
    previous_roadmap: Optional[str] = Field(None, description="Path to a previous roadmap.json")
    reinstate: List[str] = Field(default_factory=list, description="Closed item ids to plan again")
    project_name: Optional[str] = None


class AnalysisResult(BaseModel):
    """Everything a run produced, always with its warnings."""
    run_id: str
    started_at: datetime
    duration_seconds: float = 0.0
    context: ProjectContext
    roadmap: Roadmap
    spec_gaps: List[SpecGap] = Field(default_factory=list)
    feature_gaps: List[FeatureGap] = Field(default_factory=list)
    completeness: Optional[CompletenessAssessment] = None
    features: List[ScoredFeature] = Field(default_factory=list)
    exports: List[ExportResult] = Field(default_factory=list)
    warnings: List[RunWarning] = Field(default_factory=list)
    partial: bool = Field(False, description="True when the soft deadline cut the run short")
