"""Progress tracking across roadmap runs.

Progress lives in a `<stem>.progress.json` sidecar next to an exported
roadmap. Each update appends a snapshot; velocity is computed from the most
recent snapshots and is explicitly unknown until there are at least two.
"""

import math
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from config import settings
from contracts import (
    BreakdownEntry,
    BurndownPoint,
    CLOSED_STATUSES,
    FieldChange,
    GapforgeError,
    ItemChange,
    ItemStatus,
    Priority,
    ProgressSnapshot,
    Roadmap,
    RoadmapDelta,
    RoadmapItem,
    RoadmapProgress,
    Velocity,
    VelocityStatus,
)
from logging_config import get_logger
from runtime import atomic_write_text

logger = get_logger(__name__)


VELOCITY_WINDOW = 4
REPORT_LIMIT = 10
SECONDS_PER_WEEK = 7 * 24 * 3600
TRACKED_FIELDS = ("title", "priority", "phase", "effort", "owner", "status")


def progress_path_for(path: Union[str, Path]) -> Path:
    """Sidecar path for an exported artifact, e.g. ROADMAP.md → ROADMAP.progress.json."""
    path = Path(path)
    if path.name.endswith(".progress.json"):
        return path
    return path.with_name(f"{path.stem}.progress.json")


def _percentage(complete: int, total: int) -> float:
    return round(complete / total * 100, 1) if total else 0.0


def _breakdown(items: List[RoadmapItem]) -> BreakdownEntry:
    complete = sum(1 for i in items if i.status == ItemStatus.COMPLETED)
    return BreakdownEntry(total=len(items), complete=complete, percentage=_percentage(complete, len(items)))


def measure(roadmap: Roadmap, now: Optional[datetime] = None) -> RoadmapProgress:
    """Progress of a single roadmap, without history."""
    items = roadmap.tracked_items
    complete = sum(1 for i in items if i.status == ItemStatus.COMPLETED)
    counts: Dict[str, int] = {s.value: 0 for s in ItemStatus}
    for item in items:
        counts[item.status.value] += 1

    return RoadmapProgress(
        roadmap=roadmap,
        timestamp=now or datetime.now(),
        percent_complete=_percentage(complete, len(items)),
        items_complete=complete,
        items_total=len(items),
        counts_by_status=counts,
        by_priority={
            p.value.lower(): _breakdown([i for i in items if i.priority == p]) for p in Priority
        },
        by_phase={
            phase.number: _breakdown(phase.items) for phase in roadmap.phases
        },
    )


def _remaining_hours(roadmap: Optional[Roadmap]) -> float:
    if roadmap is None:
        return 0.0
    return round(sum(i.effort.hours for i in roadmap.tracked_items if i.status not in CLOSED_STATUSES), 2)


def load_progress(path: Union[str, Path], now: Optional[datetime] = None) -> RoadmapProgress:
    """Recover progress for an exported roadmap.

    Reads the sidecar when present, otherwise rebuilds progress from
    roadmap.json (the path itself or a sibling). Missing → empty progress.

    Raises:
        GapforgeError: If a progress or roadmap file exists but cannot be read
    """
    path = Path(path)
    sidecar = progress_path_for(path)
    try:
        if sidecar.exists():
            return RoadmapProgress.model_validate_json(sidecar.read_text(encoding="utf-8"))
        for candidate in (path, path.with_name("roadmap.json")):
            if candidate.suffix == ".json" and candidate.exists():
                roadmap = Roadmap.model_validate_json(candidate.read_text(encoding="utf-8"))
                return measure(roadmap, now)
    except (OSError, ValidationError) as e:
        raise GapforgeError(f"Could not load progress for {path}: {e}", {"path": str(path)}) from e

    logger.info("No progress recorded for %s; starting fresh", path)
    return RoadmapProgress(timestamp=now or datetime.now())


def calculate_velocity(progress: RoadmapProgress) -> Velocity:
    """Completed items per week over the last snapshots; insufficient-data below two."""
    window = progress.history[-VELOCITY_WINDOW:]
    if len(window) < 2:
        return Velocity.insufficient(len(window))
    weeks = (window[-1].timestamp - window[0].timestamp).total_seconds() / SECONDS_PER_WEEK
    if weeks <= 0:
        return Velocity.insufficient(len(window))
    completed = max(0, window[-1].items_complete - window[0].items_complete)
    return Velocity(
        status=VelocityStatus.OK,
        items_per_week=round(completed / weeks, 2),
        window_snapshots=len(window),
        window_weeks=round(weeks, 2),
    )


def estimate_completion(progress: RoadmapProgress, today: Optional[date] = None) -> Optional[date]:
    """Velocity-based completion date, falling back to remaining effort at one developer."""
    today = today or progress.timestamp.date()
    dropped = progress.counts_by_status.get(ItemStatus.WONT_DO.value, 0)
    remaining = progress.items_total - progress.items_complete - dropped
    if remaining <= 0:
        return today

    velocity = progress.velocity
    if velocity.is_known and velocity.items_per_week:
        return today + timedelta(weeks=math.ceil(remaining / velocity.items_per_week))

    hours = _remaining_hours(progress.roadmap)
    if hours <= 0 and progress.history:
        hours = progress.history[-1].remaining_hours
    if hours <= 0:
        return None
    return today + timedelta(weeks=math.ceil(hours / settings.hours_per_week))


def update_progress(
    old: RoadmapProgress, new_roadmap: Roadmap, now: Optional[datetime] = None
) -> RoadmapProgress:
    """Progress of new_roadmap with its snapshot appended to old's history."""
    progress = measure(new_roadmap, now)
    snapshot = ProgressSnapshot(
        timestamp=progress.timestamp,
        percent_complete=progress.percent_complete,
        items_complete=progress.items_complete,
        items_total=progress.items_total,
        remaining_hours=_remaining_hours(new_roadmap),
    )
    progress.history = list(old.history) + [snapshot]
    progress.burndown = [
        BurndownPoint(
            timestamp=s.timestamp,
            remaining_items=s.items_total - s.items_complete,
            remaining_hours=s.remaining_hours,
        )
        for s in progress.history
    ]
    progress.velocity = calculate_velocity(progress)
    progress.estimated_completion = estimate_completion(progress)
    return progress


def _field_value(item: RoadmapItem, field: str) -> Optional[str]:
    value = getattr(item, field)
    if field == "effort":
        return f"{value.hours:g}h"
    if value is None:
        return None
    return value.value if hasattr(value, "value") else str(value)


def calculate_delta(old: Roadmap, new: Roadmap) -> RoadmapDelta:
    """Item-level differences between two roadmaps, keyed by id."""
    old_items = {i.id: i for i in old.tracked_items}
    new_items = {i.id: i for i in new.tracked_items}
    delta = RoadmapDelta()

    for item_id, item in new_items.items():
        if item_id not in old_items:
            delta.added.append(item)

    for item_id, before in old_items.items():
        after = new_items.get(item_id)
        if after is None:
            delta.removed.append(before)
            continue
        if before.status != ItemStatus.COMPLETED and after.status == ItemStatus.COMPLETED:
            delta.completed.append(after)
        elif before.status == ItemStatus.COMPLETED and after.status != ItemStatus.COMPLETED:
            delta.regressions.append(after)

        changes = [
            FieldChange(field=field, old=_field_value(before, field), new=_field_value(after, field))
            for field in TRACKED_FIELDS
            if _field_value(before, field) != _field_value(after, field)
        ]
        if changes:
            delta.modified.append(ItemChange(item=after, changes=changes))
    return delta


def save_progress(progress: RoadmapProgress, path: Union[str, Path]) -> Path:
    """Write the progress sidecar atomically; returns the sidecar path."""
    target = progress_path_for(path)
    atomic_write_text(target, progress.model_dump_json(indent=2))
    logger.info("Saved progress to %s", target)
    return target


def _section(title: str, items: List[RoadmapItem], limit: Optional[int] = REPORT_LIMIT) -> List[str]:
    if not items:
        return []
    lines = [f"### {title} ({len(items)})\n"]
    lines.extend(f"- {item.title}" for item in items[:limit])
    lines.append("")
    return lines


def generate_progress_report(progress: RoadmapProgress, delta: Optional[RoadmapDelta] = None) -> str:
    """Markdown progress report."""
    velocity = (
        f"{progress.velocity.items_per_week:.1f} items/week"
        if progress.velocity.is_known
        else "insufficient data"
    )
    completion = progress.estimated_completion.isoformat() if progress.estimated_completion else "unknown"

    parts = ["# Roadmap Progress Report\n", f"**Generated:** {progress.timestamp.date().isoformat()}\n"]
    parts.append("## Overall Progress\n")
    parts.append(f"- **Completion:** {progress.percent_complete:g}%")
    parts.append(f"- **Items Complete:** {progress.items_complete} / {progress.items_total}")
    parts.append(f"- **Velocity:** {velocity}")
    parts.append(f"- **Estimated Completion:** {completion}\n")

    if progress.by_priority:
        parts.append("## By Priority\n")
        parts.append("| Priority | Complete | Total | % |")
        parts.append("|----------|----------|-------|---|")
        for key, entry in sorted(progress.by_priority.items()):
            parts.append(f"| {key.upper()} | {entry.complete} | {entry.total} | {entry.percentage:g}% |")
        parts.append("")

    if delta is not None and not delta.is_empty:
        parts.append("## Recent Changes\n")
        parts.extend(_section("Completed", delta.completed))
        parts.extend(_section("Added", delta.added))
        parts.extend(_section("Removed", delta.removed))
        parts.extend(_section("Regressions", delta.regressions, limit=None))
        if delta.modified:
            parts.append(f"### Modified ({len(delta.modified)})\n")
            for change in delta.modified[:REPORT_LIMIT]:
                described = "; ".join(c.describe() for c in change.changes)
                parts.append(f"- {change.item.title}: {described}")
            parts.append("")

    if progress.history:
        parts.append("## Progress History\n")
        parts.append("| Date | Complete | Total | % |")
        parts.append("|------|----------|-------|---|")
        for snapshot in reversed(progress.history[-REPORT_LIMIT:]):
            parts.append(
                f"| {snapshot.timestamp.date().isoformat()} | {snapshot.items_complete} | "
                f"{snapshot.items_total} | {snapshot.percent_complete:g}% |"
            )
        parts.append("")

    return "\n".join(parts)
