"""Suggestion providers: where brainstormed feature ideas come from.

A provider turns a prompt into raw text that should hold a JSON object of
the SuggestionBatch shape. Output is untrusted and validated by the
brainstormer. `suggest()` never raises: provider failures come back as a
failed SuggestionOutcome.
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from config import settings
from contracts import FeatureCategory, ProviderError
from logging_config import get_logger
from providers import LLMProvider, get_provider

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are a senior product engineer brainstorming features for an existing software project.
Suggest concrete, buildable features that fit the project's stack and current state.
Respond with JSON only."""


@dataclass
class SuggestionOutcome:
    """Result of one provider call: raw text on success, an error message otherwise."""
    category: str
    ok: bool
    content: str = ""
    error: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0

    @classmethod
    def failure(cls, category: str, error: str) -> "SuggestionOutcome":
        return cls(category=category, ok=False, error=error)


class SuggestionProvider(ABC):
    """Produces raw feature suggestions for one category."""

    name = "base"

    @abstractmethod
    def generate(self, prompt: str, category: Optional[FeatureCategory] = None) -> str:
        """Return raw provider text for the prompt."""
        pass

    def suggest(self, prompt: str, category: FeatureCategory) -> SuggestionOutcome:
        """Call generate() and convert any provider exception into a failed outcome."""
        try:
            content = self.generate(prompt, category)
        # Provider SDKs raise their own exception hierarchies; none may escape a category
        except Exception as e:
            logger.warning("Suggestion provider %s failed for %s: %s", self.name, category.value, e)
            return SuggestionOutcome.failure(category.value, f"{type(e).__name__}: {e}")
        return SuggestionOutcome(category=category.value, ok=True, content=content or "")


class LLMSuggestionProvider(SuggestionProvider):
    """Suggestions from an LLM through the providers package."""

    name = "llm"

    def __init__(
        self,
        llm_provider: LLMProvider,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.llm_provider = llm_provider
        self.model = model or llm_provider.default_model
        self.max_tokens = max_tokens or settings.max_tokens_per_suggestion
        self.timeout = timeout or settings.provider_timeout_seconds
        self.name = llm_provider.name
        self.input_tokens = 0
        self.output_tokens = 0
        self.cost = 0.0
        # suggest() runs on the provider pool
        self._lock = threading.Lock()

    def generate(self, prompt: str, category: Optional[FeatureCategory] = None) -> str:
        response = self.llm_provider.complete(
            system_prompt=SYSTEM_PROMPT,
            user_message=prompt,
            model=self.model,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
        )
        with self._lock:
            self.input_tokens += response.input_tokens
            self.output_tokens += response.output_tokens
            self.cost += response.cost
        if response.truncated:
            raise ProviderError(
                self.name, f"response cut off at {self.max_tokens} tokens; raise max_tokens_per_suggestion",
                response.model,
            )
        return response.content


# Built-in ideas per category: name, description, effort hours, extra fields
HEURISTIC_FEATURES: Dict[FeatureCategory, List[dict]] = {
    FeatureCategory.CORE_FUNCTIONALITY: [
        {"name": "Batch processing mode", "description": "Process many inputs in one run with a summary of per-item results.",
         "effort_hours": 24, "files_touched": 4},
        {"name": "Configurable profiles", "description": "Named configuration profiles selectable per run instead of editing defaults.",
         "effort_hours": 16, "files_touched": 3},
        {"name": "Undo last operation", "description": "Record enough state to revert the most recent destructive operation.",
         "effort_hours": 40, "files_touched": 8, "strategic_alignment": ["data safety"]},
        {"name": "Plugin extension points", "description": "Register third-party handlers through a documented plugin interface.",
         "effort_hours": 48, "files_touched": 12, "strategic_alignment": ["ecosystem growth"]},
        {"name": "Dry run mode", "description": "Show what an operation would change without applying it.",
         "effort_hours": 8, "files_touched": 3},
    ],
    FeatureCategory.USER_EXPERIENCE: [
        {"name": "Progress indicators", "description": "Show progress and remaining time for long-running operations.",
         "effort_hours": 8, "files_touched": 2},
        {"name": "Actionable error messages", "description": "Error messages that name the cause and the next step to take.",
         "effort_hours": 12, "files_touched": 6},
        {"name": "Interactive setup wizard", "description": "Guided first-run setup that writes a valid configuration file.",
         "effort_hours": 20, "files_touched": 3},
        {"name": "Shell completion", "description": "Tab completion for commands and options in common shells.",
         "effort_hours": 6, "files_touched": 1},
    ],
    FeatureCategory.INTEGRATION: [
        {"name": "Webhook notifications", "description": "Send webhook notifications when runs complete or fail.",
         "effort_hours": 16, "files_touched": 3, "new_dependencies": ["httpx"]},
        {"name": "CI pipeline integration", "description": "Ready-made CI job that runs the tool and fails on regressions.",
         "effort_hours": 12, "files_touched": 2, "strategic_alignment": ["automation"]},
        {"name": "REST API endpoint", "description": "Expose the main operations over a small authenticated REST API.",
         "effort_hours": 40, "files_touched": 8, "new_dependencies": ["fastapi"]},
        {"name": "Issue tracker sync", "description": "Create and update third-party issue tracker tickets from results.",
         "effort_hours": 32, "files_touched": 5, "new_dependencies": ["requests"]},
    ],
    FeatureCategory.PERFORMANCE: [
        {"name": "Result caching", "description": "Cache expensive intermediate results keyed by input content hash.",
         "effort_hours": 16, "files_touched": 4},
        {"name": "Parallel execution", "description": "Run independent work items concurrently with a bounded worker pool.",
         "effort_hours": 24, "files_touched": 5},
        {"name": "Incremental processing", "description": "Reprocess only inputs that changed since the last run.",
         "effort_hours": 32, "files_touched": 6},
        {"name": "Streaming large inputs", "description": "Stream large inputs instead of loading them fully into memory.",
         "effort_hours": 20, "files_touched": 4},
    ],
    FeatureCategory.SECURITY: [
        {"name": "Secret scanning", "description": "Detect credentials accidentally committed to inputs or outputs.",
         "effort_hours": 16, "files_touched": 3, "strategic_alignment": ["security posture"]},
        {"name": "Input validation hardening", "description": "Validate and bound every external input before use.",
         "effort_hours": 12, "files_touched": 6},
        {"name": "Audit logging", "description": "Append-only audit log of security-relevant actions with timestamps.",
         "effort_hours": 20, "files_touched": 4},
        {"name": "Dependency vulnerability checks", "description": "Check third-party dependencies against known vulnerability advisories.",
         "effort_hours": 8, "files_touched": 2, "new_dependencies": ["pip-audit"]},
    ],
    FeatureCategory.DEVELOPER_EXPERIENCE: [
        {"name": "Structured debug logging", "description": "Opt-in debug logging with stable, machine-readable fields.",
         "effort_hours": 8, "files_touched": 5},
        {"name": "Development container", "description": "Reproducible development container with all tooling preinstalled.",
         "effort_hours": 6, "files_touched": 2},
        {"name": "Pre-commit hooks", "description": "Formatting and lint checks that run before every commit.",
         "effort_hours": 4, "files_touched": 1},
        {"name": "Typed public API", "description": "Complete type annotations on the public API checked in CI.",
         "effort_hours": 16, "files_touched": 10},
    ],
    FeatureCategory.DOCUMENTATION: [
        {"name": "Getting started guide", "description": "Step-by-step guide from installation to the first useful result.",
         "effort_hours": 6, "files_touched": 1},
        {"name": "API reference", "description": "Generated reference documentation for every public module.",
         "effort_hours": 12, "files_touched": 2},
        {"name": "Architecture overview", "description": "Document the main components, data flow and extension points.",
         "effort_hours": 8, "files_touched": 1},
        {"name": "Troubleshooting guide", "description": "Common failure modes with their causes and fixes.",
         "effort_hours": 6, "files_touched": 1},
    ],
    FeatureCategory.TESTING: [
        {"name": "Integration test suite", "description": "End-to-end tests that exercise the main workflows on fixture projects.",
         "effort_hours": 24, "files_touched": 6},
        {"name": "Property-based tests", "description": "Property-based tests for parsers and core invariants.",
         "effort_hours": 16, "files_touched": 4, "new_dependencies": ["hypothesis"]},
        {"name": "Coverage reporting", "description": "Measure and publish test coverage with a minimum threshold in CI.",
         "effort_hours": 4, "files_touched": 2},
        {"name": "Regression fixtures", "description": "Golden-file fixtures that catch unintended output changes.",
         "effort_hours": 12, "files_touched": 3},
    ],
}


class HeuristicSuggestionProvider(SuggestionProvider):
    """Deterministic built-in suggestions; needs no network or API key."""

    name = "heuristic"

    def __init__(self, max_per_category: Optional[int] = None):
        self.max_per_category = max_per_category or settings.max_features_per_category

    def generate(self, prompt: str, category: Optional[FeatureCategory] = None) -> str:
        ideas = HEURISTIC_FEATURES.get(category, []) if category else []
        features = []
        for idea in ideas[:self.max_per_category]:
            features.append({
                "rationale": f"Common {category.value.replace('-', ' ')} improvement for projects of this kind",
                "value": idea["description"],
                "confidence": 0.6,
                **idea,
            })
        return json.dumps({"features": features}, indent=2)


def get_suggestion_provider(name: Optional[str] = None, model: Optional[str] = None) -> SuggestionProvider:
    """Build the configured suggestion provider.

    'heuristic' (the default) needs nothing. Any other name selects an LLM
    provider; when it has no API key the heuristic provider is used instead.
    """
    name = (name or settings.suggestion_provider or "heuristic").lower()
    if name == "heuristic":
        return HeuristicSuggestionProvider()

    llm_provider = get_provider(provider_name=name, model=model or settings.suggestion_model or None)
    if not llm_provider.is_available():
        logger.warning("Provider %s has no API key configured; using heuristic suggestions", name)
        return HeuristicSuggestionProvider()
    return LLMSuggestionProvider(llm_provider, model=model or settings.suggestion_model or None)
