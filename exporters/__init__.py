"""Roadmap exports and progress tracking."""

from .exporter import RoadmapExporter, export, export_all, issue_body
from .progress_tracker import (
    calculate_delta,
    calculate_velocity,
    estimate_completion,
    generate_progress_report,
    load_progress,
    progress_path_for,
    save_progress,
    update_progress,
)

__all__ = [
    "RoadmapExporter",
    "export",
    "export_all",
    "issue_body",
    "load_progress",
    "update_progress",
    "calculate_delta",
    "calculate_velocity",
    "estimate_completion",
    "save_progress",
    "generate_progress_report",
    "progress_path_for",
]
