"""Project context contracts.

The ProjectContext is the compressed description of the analysed project that
feeds brainstorming prompts and scoring heuristics.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class ProjectRoute(str, Enum):
    """How established the project is."""
    GREENFIELD = "greenfield"
    BROWNFIELD = "brownfield"


class ProjectContext(BaseModel):
    """What the pipeline knows about the project under analysis."""

    name: str
    path: str = ""
    language: str = Field("unknown", description="Dominant source language, e.g. python, typescript")
    tech_stack: List[str] = Field(default_factory=list, description="Detected libraries and runtimes")
    frameworks: List[str] = Field(default_factory=list)
    current_features: List[str] = Field(
        default_factory=list,
        description="Features the project already advertises (README bullets, spec titles)",
    )
    route: ProjectRoute = ProjectRoute.GREENFIELD
    lines_of_code: int = Field(0, ge=0)
    file_count: int = Field(0, ge=0)
    specs: List[str] = Field(default_factory=list, description="Spec file paths")
    docs: List[str] = Field(default_factory=list, description="Documentation file paths")
