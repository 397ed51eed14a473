"""Feature brainstorming across the eight fixed categories.

One prompt per category goes to the suggestion provider on a small pool.
Responses are parsed and validated entry by entry, then merged and
deduplicated by normalized-name similarity.
"""

import json
import math
import re
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import settings
from contracts import (
    BrainstormSource,
    DesirableFeature,
    EstimateConfidence,
    EstimationMethod,
    FeatureCategory,
    ProjectContext,
    SuggestedFeature,
    SuggestionBatch,
    create_effort_estimate,
)
from logging_config import get_logger
from runtime import RunContext
from .suggestion_provider import (
    HeuristicSuggestionProvider,
    SuggestionOutcome,
    SuggestionProvider,
    get_suggestion_provider,
)

logger = get_logger(__name__)


CATEGORY_DESCRIPTIONS = {
    FeatureCategory.CORE_FUNCTIONALITY: "New capabilities that extend what the project fundamentally does",
    FeatureCategory.USER_EXPERIENCE: "Improvements to how users interact with the project: usability, feedback, ergonomics",
    FeatureCategory.INTEGRATION: "Connections to other tools, services, platforms and workflows",
    FeatureCategory.PERFORMANCE: "Speed, memory, scalability and efficiency improvements",
    FeatureCategory.SECURITY: "Protection of data, credentials and users; hardening and auditing",
    FeatureCategory.DEVELOPER_EXPERIENCE: "Tooling, debugging, configuration and contribution workflow",
    FeatureCategory.DOCUMENTATION: "Guides, references, examples and onboarding material",
    FeatureCategory.TESTING: "Test coverage, test infrastructure and quality gates",
}


def normalize_name(name: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^a-z0-9]+", " ", name.lower())).strip()


def name_similarity(a: str, b: str) -> float:
    return SequenceMatcher(None, normalize_name(a), normalize_name(b)).ratio()


def feature_id(category: FeatureCategory, name: str) -> str:
    return f"feature-{category.value}-{normalize_name(name).replace(' ', '-')}"


def _estimate_confidence(value: float) -> EstimateConfidence:
    if value >= 0.75:
        return EstimateConfidence.HIGH
    if value >= 0.4:
        return EstimateConfidence.MEDIUM
    return EstimateConfidence.LOW


def build_prompt(project: ProjectContext, category: FeatureCategory, count: int) -> str:
    """Category prompt with project facts and the strict output schema."""
    features = "\n".join(f"- {f}" for f in project.current_features[:25]) or "- (none recorded)"
    schema = json.dumps(SuggestionBatch.model_json_schema(), indent=2)
    return (
        f"# PROJECT\n\n"
        f"Name: {project.name}\n"
        f"Language: {project.language}\n"
        f"Tech stack: {', '.join(project.tech_stack) or 'unknown'}\n"
        f"Frameworks: {', '.join(project.frameworks) or 'none detected'}\n"
        f"Lines of code: {project.lines_of_code}\n"
        f"Stage: {project.route.value}\n\n"
        f"Current features:\n{features}\n\n"
        f"# CATEGORY\n\n"
        f"{category.value}: {CATEGORY_DESCRIPTIONS[category]}\n\n"
        f"# TASK\n\n"
        f"Suggest up to {count} features in this category that the project does not already have.\n\n"
        f"# OUTPUT FORMAT\n\n"
        f"You MUST respond with valid JSON matching this schema:\n\n"
        f"```json\n{schema}\n```"
    )


def parse_suggestions(response_text: str) -> Tuple[List[SuggestedFeature], int]:
    """Parse a provider response into validated suggestions.

    Returns the valid entries and the number of dropped ones.

    Raises:
        json.JSONDecodeError: If the response holds no parseable JSON
        ValueError: If the JSON is not an object or list of features
    """
    text = response_text.strip()

    # Handle markdown code blocks
    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        text = text[start:end if end != -1 else None].strip()
    elif "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        text = text[start:end if end != -1 else None].strip()

    data = json.loads(text)
    if isinstance(data, dict):
        entries = data.get("features")
    else:
        entries = data
    if not isinstance(entries, list):
        raise ValueError("response has no 'features' list")

    valid, dropped = [], 0
    for entry in entries:
        try:
            valid.append(SuggestedFeature.model_validate(entry))
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropped invalid suggestion: %s", e)
    return valid, dropped


class FeatureBrainstormer:
    """Generates DesirableFeatures for a project.

    Usage:
        brainstormer = FeatureBrainstormer(HeuristicSuggestionProvider(), RunContext())
        features = brainstormer.brainstorm_features(project_context)
    """

    def __init__(
        self,
        provider: Optional[SuggestionProvider] = None,
        context: Optional[RunContext] = None,
        categories: Optional[List[str]] = None,
        max_per_category: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
    ):
        self.provider = provider or get_suggestion_provider()
        self.context = context or RunContext()
        self.categories = [FeatureCategory(c) for c in (categories or settings.brainstorm_categories)]
        self.max_per_category = max_per_category or settings.max_features_per_category
        self.similarity_threshold = (
            similarity_threshold if similarity_threshold is not None else settings.dedup_similarity
        )
        self.outcomes: Dict[str, SuggestionOutcome] = {}

    def brainstorm_features(self, project: ProjectContext) -> List[DesirableFeature]:
        outcomes = self._collect(project)
        features: List[DesirableFeature] = []
        for category in self.categories:
            outcome = outcomes.get(category.value)
            if outcome is None:
                continue
            features.extend(self._features_from(category, outcome))

        features = [f for f in features if not self._already_present(f, project)]
        merged = self.deduplicate(features)
        logger.info(
            "Brainstormed %d features across %d categories (%d after dedup)",
            len(features), len(self.categories), len(merged),
        )
        return merged

    def _collect(self, project: ProjectContext) -> Dict[str, SuggestionOutcome]:
        """Run every category on the provider pool; timed-out categories are skipped.

        Each category gets provider_timeout_seconds from the moment a worker
        picks it up. A category still queued once every round could have
        finished times out without running, and nothing outlives the run
        deadline.
        """
        if self.context.expired:
            self.context.mark_partial("brainstorm")
            return {}

        timeout = self.context.provider_timeout_seconds
        workers = self.context.provider_workers
        rounds = max(math.ceil(len(self.categories) / workers), 1)
        now = time.monotonic()
        run_end = now + self.context.remaining_seconds
        queue_end = min(now + timeout * rounds, run_end)
        started: Dict[FeatureCategory, float] = {}

        def suggest(category: FeatureCategory) -> SuggestionOutcome:
            started[category] = time.monotonic()
            return self.provider.suggest(build_prompt(project, category, self.max_per_category), category)

        def expires_at(category: FeatureCategory) -> float:
            if category in started:
                return min(started[category] + timeout, run_end)
            return queue_end

        executor = ThreadPoolExecutor(max_workers=workers)
        futures = {executor.submit(suggest, c): c for c in self.categories}
        pending = set(futures)
        self.outcomes = {}
        try:
            while pending:
                now = time.monotonic()
                next_expiry = min(expires_at(futures[f]) for f in pending)
                done, pending = wait(pending, timeout=max(min(next_expiry - now, timeout), 0),
                                     return_when=FIRST_COMPLETED)
                for future in done:
                    self.outcomes[futures[future].value] = future.result()

                now = time.monotonic()
                for future in [f for f in futures if f in pending and not f.done() and now >= expires_at(futures[f])]:
                    pending.discard(future)
                    future.cancel()
                    category = futures[future]
                    self.context.warn(
                        "brainstorm",
                        f"Suggestion provider timed out for category {category.value}"
                        + ("" if category in started else " before it started"),
                        code="PROVIDER_TIMEOUT",
                    )
            if self.context.expired:
                self.context.mark_partial("brainstorm")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return dict(self.outcomes)

    def _features_from(self, category: FeatureCategory, outcome: SuggestionOutcome) -> List[DesirableFeature]:
        if not outcome.ok:
            self.context.warn(
                "brainstorm", f"No suggestions for {category.value}: {outcome.error}", code="PROVIDER_ERROR",
            )
            return []
        try:
            suggestions, dropped = parse_suggestions(outcome.content)
        except (json.JSONDecodeError, ValueError) as e:
            self.context.warn(
                "brainstorm", f"Malformed suggestions for {category.value}: {e}", code="MALFORMED_SUGGESTIONS",
            )
            return []
        if dropped:
            self.context.warn(
                "brainstorm", f"Dropped {dropped} invalid suggestion(s) for {category.value}",
                code="INVALID_SUGGESTION",
            )
        return [self._to_feature(category, s) for s in suggestions[:self.max_per_category]]

    def _to_feature(self, category: FeatureCategory, suggestion: SuggestedFeature) -> DesirableFeature:
        heuristic = isinstance(self.provider, HeuristicSuggestionProvider)
        return DesirableFeature(
            id=feature_id(category, suggestion.name),
            category=category,
            name=suggestion.name,
            description=suggestion.description,
            rationale=suggestion.rationale,
            value=suggestion.value,
            effort=create_effort_estimate(
                suggestion.effort_hours,
                _estimate_confidence(suggestion.confidence),
                EstimationMethod.ANALOGY if heuristic else EstimationMethod.AI,
            ),
            dependencies=suggestion.dependencies,
            alternatives=suggestion.alternatives,
            source=BrainstormSource.BEST_PRACTICES if heuristic else BrainstormSource.AI_GENERATED,
            confidence=suggestion.confidence,
            new_dependencies=suggestion.new_dependencies,
            files_touched=suggestion.files_touched,
            strategic_alignment=suggestion.strategic_alignment,
        )

    def _already_present(self, feature: DesirableFeature, project: ProjectContext) -> bool:
        return any(name_similarity(feature.name, f) >= self.similarity_threshold for f in project.current_features)

    def deduplicate(self, features: List[DesirableFeature]) -> List[DesirableFeature]:
        """Merge features whose normalized names are at least the similarity threshold apart.

        The merged feature keeps the higher-confidence entry's identity,
        rationale and effort and unions the list fields.
        """
        merged: List[DesirableFeature] = []
        for feature in features:
            for index, existing in enumerate(merged):
                if name_similarity(feature.name, existing.name) >= self.similarity_threshold:
                    merged[index] = self._merge(existing, feature)
                    break
            else:
                merged.append(feature)
        return merged

    @staticmethod
    def _merge(a: DesirableFeature, b: DesirableFeature) -> DesirableFeature:
        winner, other = (b, a) if b.confidence > a.confidence else (a, b)

        def union(field: str) -> List[str]:
            return list(dict.fromkeys(getattr(winner, field) + getattr(other, field)))

        return winner.model_copy(update={
            "dependencies": union("dependencies"),
            "alternatives": union("alternatives"),
            "new_dependencies": union("new_dependencies"),
            "strategic_alignment": union("strategic_alignment"),
        })


def brainstorm_features(
    project: ProjectContext,
    provider: Optional[SuggestionProvider] = None,
    context: Optional[RunContext] = None,
) -> List[DesirableFeature]:
    """Convenience function for one-off brainstorming."""
    return FeatureBrainstormer(provider, context).brainstorm_features(project)
