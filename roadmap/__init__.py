"""Prioritization, phase planning and timeline estimation."""

from .prioritizer import (
    DependencyGraph,
    Prioritizer,
    assign_priority,
    break_cycles,
    build_dependency_graph,
    detect_cycles,
    find_ready_items,
    group_by_priority,
    rank,
    resolve_dependencies,
)
from .generator import RoadmapGenerator, create_phases, generate_roadmap
from .timeline import critical_path, estimate_timeline, team_multiplier

__all__ = [
    "DependencyGraph",
    "Prioritizer",
    "assign_priority",
    "build_dependency_graph",
    "detect_cycles",
    "break_cycles",
    "resolve_dependencies",
    "group_by_priority",
    "find_ready_items",
    "rank",
    "RoadmapGenerator",
    "create_phases",
    "generate_roadmap",
    "estimate_timeline",
    "critical_path",
    "team_multiplier",
]
