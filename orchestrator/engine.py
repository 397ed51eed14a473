"""Roadmap engine - runs the whole analysis pipeline for one project.

The engine:
1. Indexes the code once and shares the index between analyzers
2. Finds spec gaps, documentation gaps and overall completeness
3. Brainstorms and scores new features
4. Builds the phased roadmap, exports it and optionally tracks progress

Recoverable problems become run warnings. A RoadmapGenerationError (an
unbreakable dependency cycle) or a missing project directory aborts the run.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

from analyzers import CodeIndex, FeatureGapAnalyzer, SpecGapAnalyzer, assess_completeness
from brainstorming import FeatureBrainstormer, ScoringEngine, build_project_context, get_suggestion_provider
from brainstorming.suggestion_provider import LLMSuggestionProvider, SuggestionProvider
from config import SPEC_DIR_CANDIDATES
from contracts import (
    AnalysisRequest,
    AnalysisResult,
    ExportFormat,
    ExportResult,
    GapforgeError,
    Roadmap,
    RoadmapProgress,
)
from exporters import (
    RoadmapExporter,
    calculate_delta,
    generate_progress_report,
    load_progress,
    save_progress,
    update_progress,
)
from logging_config import get_logger
from roadmap import RoadmapGenerator
from runtime import RunContext, atomic_write_text

logger = get_logger(__name__)


def resolve_specs_dir(root: Path, specs_dir: Optional[str] = None) -> Optional[Path]:
    """The explicit specs directory, or the first conventional one that exists."""
    if specs_dir:
        path = Path(specs_dir)
        return path if path.is_absolute() else root / path
    for candidate in SPEC_DIR_CANDIDATES:
        if (root / candidate).is_dir():
            return root / candidate
    return None


def _resolve(root: Path, value: Optional[str]) -> Path:
    if not value:
        return root
    path = Path(value)
    return path if path.is_absolute() else root / path


class RoadmapEngine:
    """Runs analysis requests.

    Usage:
        engine = RoadmapEngine(provider="anthropic")
        result = engine.run(AnalysisRequest(directory="."))
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        suggestion_provider: Optional[SuggestionProvider] = None,
    ):
        """Initialize the engine.

        Args:
            provider: Suggestion provider name (heuristic, anthropic, openai, deepseek, litellm)
            model: Model name override for LLM-backed providers
            suggestion_provider: Ready-made provider; takes precedence over provider/model
        """
        self.provider = provider
        self.model = model
        self.suggestion_provider = suggestion_provider
        self.exporter = RoadmapExporter()

    def run(self, request: AnalysisRequest, context: Optional[RunContext] = None) -> AnalysisResult:
        """Execute a complete analysis run.

        Raises:
            GapforgeError: If the project directory does not exist
            RoadmapGenerationError: If dependencies contain an unbreakable cycle
        """
        context = context or RunContext()
        root = Path(request.directory)
        if not root.is_dir():
            raise GapforgeError(f"Project directory not found: {root}", {"directory": str(root)})

        code_dir = _resolve(root, request.code_dir)
        docs_dir = _resolve(root, request.docs_dir)
        specs_dir = resolve_specs_dir(root, request.specs_dir)
        logger.info("[%s] Analyzing %s", context.run_id, root)

        index = CodeIndex.build(code_dir, context)

        # Step 1: Spec gaps
        spec_analyzer = SpecGapAnalyzer(context, request.confidence_threshold, index=index)
        if specs_dir is not None:
            gaps = spec_analyzer.analyze_specs(specs_dir, code_dir)
        else:
            context.warn("spec-gaps", f"No specs directory found under {root}", path=str(root), code="NO_SPECS")
            gaps = []

        # Step 2: Documentation claims
        feature_analyzer = FeatureGapAnalyzer(context, index)
        feature_gaps = feature_analyzer.analyze_features(docs_dir, code_dir)

        # Step 3: Completeness
        completeness = assess_completeness(gaps, feature_gaps, spec_analyzer.outcomes)

        # Step 4: Brainstorm and score
        project = build_project_context(
            root,
            index,
            spec_titles=[s.title for s in spec_analyzer.specs],
            specs=[s.path for s in spec_analyzer.specs],
            docs=sorted({c.source for c in feature_analyzer.claims}),
        )
        if request.project_name:
            project.name = request.project_name
        provider = self.suggestion_provider or get_suggestion_provider(self.provider, self.model)
        features = FeatureBrainstormer(provider, context).brainstorm_features(project)
        scored = ScoringEngine(context).score_features(features, project, gaps)

        # Step 5: Roadmap
        previous = self._load_previous(request.previous_roadmap, root, context)
        roadmap = RoadmapGenerator(context, team_sizes=request.team_sizes).generate_roadmap(
            gaps,
            scored,
            project,
            feature_gaps,
            previous=previous,
            reinstate=request.reinstate,
            completeness=completeness,
        )

        # Step 6: Exports
        output_dir = _resolve(root, request.output_dir) if request.output_dir else None
        exports = self._export(roadmap, request.formats, output_dir, context)

        result = AnalysisResult(
            run_id=context.run_id,
            started_at=context.started_at,
            duration_seconds=round(context.elapsed_seconds, 2),
            context=project,
            roadmap=roadmap,
            spec_gaps=gaps,
            feature_gaps=feature_gaps,
            completeness=completeness,
            features=scored,
            exports=exports,
            warnings=context.warnings,
            partial=context.partial,
        )
        if output_dir is not None:
            self._save_run_summary(result, output_dir, provider)
        return result

    def _load_previous(self, path: Optional[str], root: Path, context: RunContext) -> Optional[Roadmap]:
        if not path:
            return None
        previous_path = _resolve(root, path)
        try:
            return Roadmap.model_validate_json(previous_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            context.warn("roadmap", f"Previous roadmap ignored: {e}", path=str(previous_path), code="PREVIOUS_UNREADABLE")
            return None

    def _export(
        self,
        roadmap: Roadmap,
        formats: Iterable[ExportFormat],
        output_dir: Optional[Path],
        context: RunContext,
    ) -> List[ExportResult]:
        if output_dir is not None:
            return self.exporter.export_all(roadmap, output_dir, formats, context)

        # No output directory: render content only
        results = []
        for format in formats:
            try:
                results.append(self.exporter.export(roadmap, format))
            except GapforgeError as e:
                context.warn_error("export", e)
                results.append(ExportResult(format=format, success=False, error=e.message))
        return results

    def _save_run_summary(self, result: AnalysisResult, output_dir: Path, provider: SuggestionProvider) -> None:
        """Save run summary next to the exported artifacts."""
        summary = {
            "run_id": result.run_id,
            "started_at": result.started_at.isoformat(),
            "completed_at": datetime.now().isoformat(),
            "duration_seconds": result.duration_seconds,
            "partial": result.partial,
            "suggestion_provider": provider.name,
            "spec_gaps": len(result.spec_gaps),
            "feature_gaps": len(result.feature_gaps),
            "features": len(result.features),
            "roadmap_items": len(result.roadmap.all_items),
            "warnings": [str(w) for w in result.warnings],
            "artifacts_produced": [e.output_path for e in result.exports if e.success],
        }
        if isinstance(provider, LLMSuggestionProvider):
            summary["token_usage"] = {
                "input_tokens": provider.input_tokens,
                "output_tokens": provider.output_tokens,
                "cost": round(provider.cost, 6),
            }
        atomic_write_text(output_dir / "run_summary.json", json.dumps(summary, indent=2))

    def track_progress(
        self, roadmap: Roadmap, output_dir: Path, now: Optional[datetime] = None
    ) -> Tuple[RoadmapProgress, Path]:
        """Update the progress sidecar of ROADMAP.md and write PROGRESS.md.

        Returns the new progress and the report path.
        """
        anchor = Path(output_dir) / "ROADMAP.md"
        old = load_progress(anchor, now)
        progress = update_progress(old, roadmap, now)
        delta = calculate_delta(old.roadmap, roadmap) if old.roadmap is not None else None
        save_progress(progress, anchor)
        report_path = Path(output_dir) / "PROGRESS.md"
        atomic_write_text(report_path, generate_progress_report(progress, delta))
        return progress, report_path


def analyze(
    request: AnalysisRequest,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    suggestion_provider: Optional[SuggestionProvider] = None,
) -> AnalysisResult:
    """Convenience function to run one analysis.

    Args:
        request: What to analyze and where to write
        provider: Suggestion provider name; defaults to settings.suggestion_provider
        model: Model name for LLM-backed providers
        suggestion_provider: Ready-made provider, e.g. a deterministic fake in tests

    Returns:
        AnalysisResult with the roadmap and every warning of the run
    """
    engine = RoadmapEngine(provider=provider, model=model, suggestion_provider=suggestion_provider)
    return engine.run(request)
