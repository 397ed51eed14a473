"""Orchestrator module for Gapforge analysis runs."""

from .engine import RoadmapEngine, analyze, resolve_specs_dir

__all__ = [
    "RoadmapEngine",
    "analyze",
    "resolve_specs_dir",
]
