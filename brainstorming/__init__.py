"""Feature brainstorming and scoring."""

from .brainstormer import FeatureBrainstormer, brainstorm_features, parse_suggestions
from .project_context import build_project_context
from .scoring_engine import ScoringEngine, priority_for_score, score_features
from .suggestion_provider import (
    HeuristicSuggestionProvider,
    LLMSuggestionProvider,
    SuggestionOutcome,
    SuggestionProvider,
    get_suggestion_provider,
)

__all__ = [
    "FeatureBrainstormer",
    "brainstorm_features",
    "parse_suggestions",
    "build_project_context",
    "ScoringEngine",
    "score_features",
    "priority_for_score",
    "SuggestionProvider",
    "SuggestionOutcome",
    "HeuristicSuggestionProvider",
    "LLMSuggestionProvider",
    "get_suggestion_provider",
]
