"""Spec gap analysis: compare parsed specifications against the code."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from config import settings
from contracts import (
    GapStatus,
    ParsedSpec,
    Priority,
    Requirement,
    SpecGap,
    SpecParsingError,
)
from logging_config import get_logger
from runtime import RunContext, map_bounded
from .code_index import CodeIndex
from .confidence import score
from .estimators import EffortEstimator, HistoricalEstimator, HybridEstimator
from .spec_parser import SpecParser, find_spec_files
from .verification import SignatureVerifier

logger = get_logger(__name__)


IMPACT_TEXT = {
    GapStatus.MISSING: "{title} is not implemented. This blocks {spec}.",
    GapStatus.STUB: "{title} is only a stub. Users will encounter non-functional code.",
    GapStatus.PARTIAL: "{title} is partially implemented. Some acceptance criteria are not met.",
}

RECOMMENDATION_TEXT = {
    GapStatus.MISSING: "Implement {title} according to specification.",
    GapStatus.STUB: "Complete the stub implementation of {title}.",
    GapStatus.PARTIAL: "Finish implementing remaining acceptance criteria for {title}.",
}


@dataclass
class RequirementOutcome:
    """Classification of one requirement, including complete ones."""
    spec: str
    requirement: Requirement
    priority: Priority
    status: GapStatus
    confidence: int


def gap_id(spec_id: str, requirement_id: str) -> str:
    return f"gap-{spec_id}-{requirement_id}".lower()


def default_estimator() -> EffortEstimator:
    """Hybrid estimator, using historical records when settings name a file."""
    historical = None
    if settings.historical_efforts_path:
        historical = HistoricalEstimator.from_file(Path(settings.historical_efforts_path))
    return HybridEstimator(historical)


class SpecGapAnalyzer:
    """Finds requirements whose implementation is missing, a stub, or partial.

    Usage:
        analyzer = SpecGapAnalyzer(RunContext())
        gaps = analyzer.analyze_specs(Path("specs"), Path("src"))
    """

    def __init__(
        self,
        context: Optional[RunContext] = None,
        confidence_threshold: Optional[int] = None,
        estimator: Optional[EffortEstimator] = None,
        index: Optional[CodeIndex] = None,
    ):
        self.context = context or RunContext()
        self.confidence_threshold = (
            confidence_threshold if confidence_threshold is not None else settings.confidence_threshold
        )
        self.estimator = estimator or default_estimator()
        self.parser = SpecParser()
        self.index = index
        self.specs: List[ParsedSpec] = []
        self.outcomes: List[RequirementOutcome] = []

    def parse_specs(self, specs_dir: Path) -> List[ParsedSpec]:
        """Parse every spec file; malformed files become warnings."""
        files = find_spec_files(Path(specs_dir))
        if not files:
            self.context.warn("spec-gaps", f"No spec files found in {specs_dir}", path=str(specs_dir), code="NO_SPECS")
            return []

        def parse_one(path: Path) -> Optional[ParsedSpec]:
            try:
                return self.parser.parse_file(path)
            except SpecParsingError as e:
                self.context.warn_error("spec-gaps", e, path=str(path))
                return None

        parsed = map_bounded(parse_one, files, self.context, stage="spec-gaps")
        return [spec for spec in parsed if spec is not None]

    def analyze_specs(self, specs_dir: Path, code_dir: Path) -> List[SpecGap]:
        """Parse specs, verify each requirement against code_dir and return the gaps."""
        self.specs = self.parse_specs(specs_dir)
        if self.index is None:
            self.index = CodeIndex.build(Path(code_dir), self.context)
        verifier = SignatureVerifier(self.index)

        gaps: List[SpecGap] = []
        self.outcomes = []
        for spec in self.specs:
            if self.context.expired:
                self.context.mark_partial("spec-gaps")
                break
            for requirement in spec.requirements:
                gap = self._analyze_requirement(spec, requirement, verifier)
                if gap is not None:
                    gaps.append(gap)

        known = {g.id for g in gaps}
        for gap in gaps:
            gap.dependencies = [d for d in gap.dependencies if d in known]
            gap.hard_dependencies = [d for d in gap.hard_dependencies if d in known]

        logger.info(
            "Analyzed %d specs, %d requirements: %d gaps (%d excluded below confidence %d)",
            len(self.specs), len(self.outcomes), len(gaps),
            sum(1 for g in gaps if g.excluded), self.confidence_threshold,
        )
        return gaps

    def _analyze_requirement(
        self, spec: ParsedSpec, requirement: Requirement, verifier: SignatureVerifier
    ) -> Optional[SpecGap]:
        verification = verifier.verify(
            requirement.title,
            requirement.description,
            hints=requirement.hints,
            unmet_criteria=len(requirement.unmet_criteria),
        )
        status = verification.status
        evidence, confidence = score(verification.observations, status)
        priority = requirement.priority or spec.priority
        self.outcomes.append(RequirementOutcome(spec.id, requirement, priority, status, confidence))

        if status == GapStatus.COMPLETE:
            return None
        if status == GapStatus.STUB and not settings.include_stubs:
            return None
        if status == GapStatus.PARTIAL and not settings.include_partial:
            return None

        criteria = requirement.unmet_criteria or requirement.acceptance_criteria
        return SpecGap(
            id=gap_id(spec.id, requirement.id),
            spec=spec.id,
            requirement=requirement.id,
            title=requirement.title,
            description=requirement.description or requirement.title,
            status=status,
            confidence=confidence,
            evidence=evidence,
            expected_locations=verification.expected_locations,
            actual_locations=verification.actual_locations,
            effort=self.estimator.estimate(requirement.title, status, len(requirement.acceptance_criteria)),
            priority=priority,
            impact=IMPACT_TEXT[status].format(title=requirement.title, spec=spec.title),
            recommendation=RECOMMENDATION_TEXT[status].format(title=requirement.title),
            dependencies=[gap_id(spec.id, d) for d in requirement.dependencies],
            hard_dependencies=[gap_id(spec.id, d) for d in requirement.hard_dependencies],
            acceptance_criteria=[c.text for c in criteria],
            excluded=confidence < self.confidence_threshold,
        )


def analyze_specs(
    specs_dir: Path,
    code_dir: Path,
    context: Optional[RunContext] = None,
    confidence_threshold: Optional[int] = None,
) -> List[SpecGap]:
    """Convenience function for one-off spec gap analysis."""
    return SpecGapAnalyzer(context, confidence_threshold).analyze_specs(specs_dir, code_dir)
