"""Calendar estimates for a phased roadmap.

Team sizes do not divide effort linearly: two developers finish in 0.55 of
the single-developer time, three in 0.4, and larger teams follow n^-0.83.
"""

import math
from datetime import date, timedelta
from graphlib import CycleError, TopologicalSorter
from typing import Dict, Iterable, List, Optional, Sequence

from config import settings
from contracts import (
    CriticalPath,
    Dependency,
    Phase,
    RoadmapGenerationError,
    RoadmapItem,
    TeamEstimate,
    Timeline,
)
from logging_config import get_logger

logger = get_logger(__name__)


TEAM_MULTIPLIERS = {1: 1.0, 2: 0.55, 3: 0.4}


def team_multiplier(team_size: int) -> float:
    if team_size < 1:
        raise ValueError(f"team size must be at least 1, got {team_size}")
    if team_size in TEAM_MULTIPLIERS:
        return TEAM_MULTIPLIERS[team_size]
    return team_size ** -0.83


def weeks_for(hours: float, team_size: int = 1, hours_per_week: Optional[float] = None) -> int:
    """Calendar weeks for hours of work on a team of team_size."""
    if hours <= 0:
        return 0
    return math.ceil(hours * team_multiplier(team_size) / (hours_per_week or settings.hours_per_week))


def _edges(items: Sequence[RoadmapItem], dependencies: Optional[Iterable[Dependency]]) -> Dict[str, List[str]]:
    ids = {item.id for item in items}
    if dependencies is None:
        pairs = [(item.id, d) for item in items for d in item.dependencies]
    else:
        pairs = [(d.dependent, d.depends_on) for d in dependencies]
    graph: Dict[str, List[str]] = {item.id: [] for item in items}
    for dependent, depends_on in pairs:
        if dependent in ids and depends_on in ids and depends_on not in graph[dependent]:
            graph[dependent].append(depends_on)
    return graph


def critical_path(
    items: Sequence[RoadmapItem], dependencies: Optional[Iterable[Dependency]] = None
) -> CriticalPath:
    """Longest path by cumulative realistic hours through the dependency DAG.

    Raises:
        RoadmapGenerationError: If the dependencies contain a cycle
    """
    if not items:
        return CriticalPath()

    graph = _edges(items, dependencies)
    hours = {item.id: item.effort.hours for item in items}
    try:
        order = list(TopologicalSorter({k: sorted(v) for k, v in sorted(graph.items())}).static_order())
    except CycleError as e:
        raise RoadmapGenerationError("Cannot compute critical path of a cyclic graph", item_ids=e.args[1]) from e

    best: Dict[str, float] = {}
    previous: Dict[str, Optional[str]] = {}
    for item_id in order:
        # Ties go to the lexicographically smallest predecessor
        pred = min(graph[item_id], key=lambda d: (-best[d], d), default=None)
        best[item_id] = hours[item_id] + (best[pred] if pred else 0.0)
        previous[item_id] = pred

    end = min(best, key=lambda i: (-best[i], i))
    path = []
    node: Optional[str] = end
    while node is not None:
        path.append(node)
        node = previous[node]
    path.reverse()

    total = round(best[end], 2)
    return CriticalPath(items=path, hours=total, duration_weeks=weeks_for(total))


def estimate_timeline(
    phases: Sequence[Phase],
    team_sizes: Optional[Sequence[int]] = None,
    dependencies: Optional[Iterable[Dependency]] = None,
    start: Optional[date] = None,
) -> Timeline:
    """Total effort, per-team-size completion and the critical path of a roadmap."""
    items = [item for phase in phases for item in phase.items]
    total_hours = round(sum(item.effort.hours for item in items), 2)
    start = start or date.today()
    hours_per_week = settings.hours_per_week

    by_team_size = {}
    for size in sorted(set(team_sizes or settings.team_sizes)):
        weeks = weeks_for(total_hours, size, hours_per_week)
        by_team_size[size] = TeamEstimate(
            team_size=size,
            weeks=weeks,
            completion_date=start + timedelta(weeks=weeks),
            assumptions=[
                f"{hours_per_week:g} productive hours per developer per week",
                f"Coordination multiplier {team_multiplier(size):.2f} for a team of {size}",
                "Realistic effort; optimistic and pessimistic ranges are per item",
            ],
        )

    path = critical_path(items, dependencies)
    on_path = set(path.items)
    timeline = Timeline(
        total_hours=total_hours,
        total_weeks=weeks_for(total_hours, 1, hours_per_week),
        by_team_size=by_team_size,
        critical_path=path,
        parallelizable_work=[item.id for item in items if item.id not in on_path],
    )
    logger.info(
        "Timeline: %.1fh total, critical path %d item(s) / %.1fh",
        total_hours, len(path.items), path.hours,
    )
    return timeline
