"""Priority assignment and dependency ordering of roadmap items."""

import heapq
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from contracts import (
    Dependency,
    DependencyType,
    Level,
    Priority,
    Risk,
    RoadmapGenerationError,
    RoadmapItem,
    RoadmapItemType,
)
from brainstorming.scoring_engine import priority_for_score
from logging_config import get_logger

logger = get_logger(__name__)


_SECURITY_RE = re.compile(r"secur|vulnerab|credential|injection|xss|csrf|authenticat|authoriz", re.I)
_DATA_LOSS_RE = re.compile(r"data loss|corrupt", re.I)
_CORE_RE = re.compile(r"\bcore\b", re.I)


def _text(item: RoadmapItem) -> str:
    return f"{item.title} {item.description}"


@dataclass(frozen=True)
class PriorityRule:
    name: str
    test: Callable[[RoadmapItem], bool]
    priority: Priority


# Ordered; the first rule that matches decides. Scored enhancements skip the table.
PRIORITY_RULES: List[PriorityRule] = [
    PriorityRule("security", lambda i: i.type != RoadmapItemType.ENHANCEMENT and bool(_SECURITY_RE.search(_text(i))), Priority.P0),
    PriorityRule("data-loss", lambda i: bool(_DATA_LOSS_RE.search(_text(i))), Priority.P0),
    PriorityRule("blocks-production", lambda i: i.type == RoadmapItemType.SPEC_GAP and i.priority == Priority.P0, Priority.P0),
    PriorityRule("misleading-docs", lambda i: "false-claim" in i.tags, Priority.P0),
    PriorityRule("core-value", lambda i: i.type == RoadmapItemType.SPEC_GAP and i.priority == Priority.P1, Priority.P1),
    PriorityRule("advertised-feature", lambda i: i.type == RoadmapItemType.FEATURE_GAP or "misleading-claim" in i.tags, Priority.P1),
    PriorityRule("core-functionality", lambda i: "core-functionality" in i.tags or bool(_CORE_RE.search(i.title)), Priority.P1),
    PriorityRule("enhancement", lambda i: i.type in (RoadmapItemType.ENHANCEMENT, RoadmapItemType.TECHNICAL_DEBT), Priority.P2),
    PriorityRule("planned-requirement", lambda i: i.type == RoadmapItemType.SPEC_GAP and i.priority == Priority.P2, Priority.P2),
]


def assign_priority(item: RoadmapItem) -> Priority:
    """Deterministic priority for an item; scored features use their priority_score."""
    if item.priority_score is not None:
        return priority_for_score(item.priority_score)
    for rule in PRIORITY_RULES:
        if rule.test(item):
            return rule.priority
    return Priority.P3


def sort_key(item: RoadmapItem) -> Tuple[int, float, str]:
    """Priority, then ROI descending, then id."""
    return (item.priority.rank, -(item.roi or 0.0), item.id)


def rank(items: Iterable[RoadmapItem]) -> List[RoadmapItem]:
    return sorted(items, key=sort_key)


def group_by_priority(items: Iterable[RoadmapItem]) -> Dict[Priority, List[RoadmapItem]]:
    groups: Dict[Priority, List[RoadmapItem]] = {p: [] for p in Priority}
    for item in items:
        groups[item.priority].append(item)
    return groups


def find_ready_items(items: Iterable[RoadmapItem], completed_ids: Set[str]) -> List[RoadmapItem]:
    """Items not yet completed whose dependencies are all completed."""
    return [
        item for item in items
        if item.id not in completed_ids and all(d in completed_ids for d in item.dependencies)
    ]


@dataclass
class DependencyGraph:
    """Item graph; an edge (a, b) means a depends on b."""
    items: Dict[str, RoadmapItem] = field(default_factory=dict)
    edges: Dict[Tuple[str, str], Dependency] = field(default_factory=dict)

    def depends_on(self, item_id: str) -> List[str]:
        return sorted(b for (a, b) in self.edges if a == item_id)

    def dependents(self, item_id: str) -> List[str]:
        return sorted(a for (a, b) in self.edges if b == item_id)

    def remove_edge(self, dependent: str, depends_on: str) -> Dependency:
        return self.edges.pop((dependent, depends_on))

    def apply(self) -> None:
        """Write the graph's edges back into each item's dependencies and blocks."""
        for item_id, item in self.items.items():
            item.dependencies = self.depends_on(item_id)
            item.blocks = self.dependents(item_id)


def build_dependency_graph(
    items: Sequence[RoadmapItem], dependencies: Iterable[Dependency] = ()
) -> DependencyGraph:
    """Graph of the declared edges between known items; self and dangling edges are dropped."""
    graph = DependencyGraph(items={item.id: item for item in items})
    for dep in dependencies:
        if dep.dependent in graph.items and dep.depends_on in graph.items and dep.dependent != dep.depends_on:
            graph.edges[(dep.dependent, dep.depends_on)] = dep
    for item in items:
        for target in item.dependencies:
            key = (item.id, target)
            if target in graph.items and target != item.id and key not in graph.edges:
                graph.edges[key] = Dependency(
                    dependent=item.id, depends_on=target, type=DependencyType.PREREQUISITE, confidence=50,
                )
    return graph


WHITE, GREY, BLACK = 0, 1, 2


def detect_cycles(graph: DependencyGraph) -> List[List[str]]:
    """Cycles found by a three-colour DFS, each as the ids along the cycle."""
    colour = {item_id: WHITE for item_id in graph.items}
    adjacency = {item_id: graph.depends_on(item_id) for item_id in graph.items}
    cycles: List[List[str]] = []

    for root in sorted(graph.items):
        if colour[root] != WHITE:
            continue
        colour[root] = GREY
        path = [root]
        stack = [iter(adjacency[root])]
        while stack:
            advanced = False
            for target in stack[-1]:
                if colour[target] == WHITE:
                    colour[target] = GREY
                    path.append(target)
                    stack.append(iter(adjacency[target]))
                    advanced = True
                    break
                if colour[target] == GREY:
                    cycles.append(path[path.index(target):])
            if not advanced:
                colour[path.pop()] = BLACK
                stack.pop()
    return cycles


def break_cycles(graph: DependencyGraph) -> List[Risk]:
    """Remove the weakest soft edge of every cycle, one Risk per removed edge.

    Raises:
        RoadmapGenerationError: If a cycle consists only of hard edges
    """
    risks: List[Risk] = []
    while True:
        cycles = detect_cycles(graph)
        if not cycles:
            return risks
        cycle = cycles[0]
        pairs = [(cycle[i], cycle[(i + 1) % len(cycle)]) for i in range(len(cycle))]
        soft = [graph.edges[p] for p in pairs if not graph.edges[p].is_hard]
        if not soft:
            raise RoadmapGenerationError(
                f"Dependency cycle of hard edges cannot be resolved: {' -> '.join(cycle + [cycle[0]])}",
                item_ids=cycle,
            )
        weakest = min(soft, key=lambda d: (d.confidence, d.dependent, d.depends_on))
        graph.remove_edge(weakest.dependent, weakest.depends_on)
        logger.warning(
            "Broke dependency cycle %s by removing %s -> %s (confidence %d)",
            " -> ".join(cycle), weakest.dependent, weakest.depends_on, weakest.confidence,
        )
        risks.append(Risk(
            id=f"risk-cycle-{len(risks) + 1}",
            title="Circular dependency broken",
            description=(
                f"Items {', '.join(cycle)} formed a dependency cycle. The dependency of "
                f"{weakest.dependent} on {weakest.depends_on} (confidence {weakest.confidence}) "
                f"was removed to order the roadmap."
            ),
            likelihood=Level.MEDIUM,
            impact=Level.MEDIUM,
            severity=Level.MEDIUM,
            mitigations=[f"Confirm whether {weakest.dependent} really needs {weakest.depends_on} first"],
            contingency=f"Re-sequence {weakest.dependent} after {weakest.depends_on} if the dependency is real",
            affected_items=sorted(cycle),
        ))


def resolve_dependencies(items: Sequence[RoadmapItem], graph: Optional[DependencyGraph] = None) -> List[RoadmapItem]:
    """Kahn topological order; ready ties by priority, ROI descending, then id.

    Raises:
        RoadmapGenerationError: If some items can never become ready
    """
    graph = graph or build_dependency_graph(items)
    in_degree = {item.id: len(graph.depends_on(item.id)) for item in items}
    ready = [(sort_key(item), item.id) for item in items if in_degree[item.id] == 0]
    heapq.heapify(ready)

    ordered: List[RoadmapItem] = []
    while ready:
        _, item_id = heapq.heappop(ready)
        ordered.append(graph.items[item_id])
        for dependent in graph.dependents(item_id):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, (sort_key(graph.items[dependent]), dependent))

    if len(ordered) < len(items):
        stuck = sorted(i for i, degree in in_degree.items() if degree > 0)
        raise RoadmapGenerationError("Dependencies could not be ordered", item_ids=stuck)
    return ordered


class Prioritizer:
    """Assigns priorities and produces a dependency-respecting order."""

    def __init__(self):
        self.risks: List[Risk] = []
        self.graph: Optional[DependencyGraph] = None

    def prioritize(
        self, items: Sequence[RoadmapItem], dependencies: Iterable[Dependency] = ()
    ) -> List[RoadmapItem]:
        for item in items:
            item.priority = assign_priority(item)
        self.graph = build_dependency_graph(items, dependencies)
        self.risks = break_cycles(self.graph)
        self.graph.apply()
        return resolve_dependencies(items, self.graph)
