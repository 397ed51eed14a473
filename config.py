"""Configuration settings for Gapforge."""

# Load .env into os.environ so provider keys (e.g. ANTHROPIC_API_KEY) are visible
from dotenv import load_dotenv
load_dotenv()

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Dict, List, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Global settings for Gapforge.

    Settings can be overridden via environment variables with GAPFORGE_ prefix.
    Example: GAPFORGE_CONFIDENCE_THRESHOLD=70
    """

    # Gap detection
    confidence_threshold: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Gaps below this confidence are kept but flagged excluded"
    )
    include_stubs: bool = Field(
        default=True,
        description="Report stub implementations as gaps"
    )
    include_partial: bool = Field(
        default=True,
        description="Report partial implementations as gaps"
    )
    small_effort_hours: float = Field(
        default=16.0,
        description="False feature claims at or under this effort are recommended for implementation"
    )
    historical_efforts_path: str = Field(
        default="",
        description="JSON file of past {title, hours} records used before the complexity estimator"
    )

    # Brainstorming
    brainstorm_categories: List[str] = Field(
        default=[
            "core-functionality",
            "user-experience",
            "integration",
            "performance",
            "security",
            "developer-experience",
            "documentation",
            "testing",
        ],
        description="Categories to brainstorm; subset of the eight fixed categories"
    )
    max_features_per_category: int = Field(
        default=5,
        ge=1,
        description="Features requested per brainstorming category"
    )
    dedup_similarity: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Normalized-name similarity above which two features are merged"
    )

    # Scoring weights: priority = impact*w + roi*w + strategic*w - risk*w
    weight_impact: float = Field(default=0.4, description="Priority score weight for impact")
    weight_roi: float = Field(default=0.3, description="Priority score weight for ROI")
    weight_strategic: float = Field(default=0.2, description="Priority score weight for strategic value")
    weight_risk: float = Field(default=0.1, description="Priority score penalty weight for risk")

    # Roadmap
    max_phases: int = Field(
        default=4,
        ge=1,
        description="Target phase count; relaxed only to keep dependency order"
    )
    phase_overflow_tolerance: float = Field(
        default=0.25,
        ge=0.0,
        description="Fraction a phase may exceed its effort target"
    )
    default_team_size: int = Field(
        default=2,
        ge=1,
        description="Team size used for phase week ranges"
    )
    team_sizes: List[int] = Field(
        default=[1, 2, 3],
        description="Team sizes reported in the timeline"
    )
    hours_per_week: float = Field(
        default=35.0,
        gt=0,
        description="Productive hours per developer per week"
    )

    # Concurrency and limits
    file_workers: int = Field(
        default=10,
        ge=1,
        description="Worker threads for file discovery and parsing"
    )
    provider_workers: int = Field(
        default=3,
        ge=1,
        description="Concurrent suggestion-provider calls"
    )
    provider_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Per-category suggestion-provider timeout"
    )
    run_deadline_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Soft deadline for a whole run; exceeding it yields a partial result"
    )
    parse_cache_size: int = Field(
        default=1024,
        ge=1,
        description="Maximum parsed files cached per run"
    )
    max_file_bytes: int = Field(
        default=1_000_000,
        description="Source files larger than this are skipped"
    )

    # Suggestion provider
    suggestion_provider: str = Field(
        default="heuristic",
        description="heuristic, anthropic, openai, deepseek or litellm"
    )
    suggestion_model: str = Field(
        default="",
        description="Model for LLM-backed suggestion providers (provider default when empty)"
    )
    max_tokens_per_suggestion: int = Field(
        default=4096,
        description="Maximum tokens per suggestion-provider call"
    )

    # API settings (env: GAPFORGE_<KEY> or standard env var)
    anthropic_api_key: str = Field(
        default="",
        description="Anthropic API key (env: GAPFORGE_ANTHROPIC_API_KEY)",
    )
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key (env: GAPFORGE_OPENAI_API_KEY)",
    )
    deepseek_api_key: str = Field(
        default="",
        description="Deepseek API key (env: GAPFORGE_DEEPSEEK_API_KEY)",
    )

    # Paths and output
    output_dir: str = Field(
        default="./roadmap",
        description="Directory for exported artifacts"
    )
    export_formats: List[str] = Field(
        default=["markdown", "json", "csv", "github-issues"],
        description="Formats written when the caller does not choose"
    )
    tool_version: str = Field(
        default="0.3.0",
        description="Version stamped into roadmap metadata"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    model_config = {
        "env_prefix": "GAPFORGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # ignore extra env vars (e.g. OPENAI_API_KEY) not in schema
    }

    def get_output_path(self, override: Optional[str] = None) -> Path:
        """Absolute output directory: the override when given, else output_dir."""
        return Path(override or self.output_dir).resolve()

    def priority_weights(self) -> Dict[str, float]:
        """Weights used by the priority score formula."""
        return {
            "impact": self.weight_impact,
            "roi": self.weight_roi,
            "strategic": self.weight_strategic,
            "risk": self.weight_risk,
        }


# Spec directories searched, in order, when the caller gives none
SPEC_DIR_CANDIDATES: List[str] = ["specs", "production-readiness-specs", "docs/specs"]


# Create singleton instance
settings = Settings()
