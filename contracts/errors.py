"""Error types raised by the analysis pipeline.

Per-file and per-item failures are caught by the stage that raised them and
turned into run warnings. Only RoadmapGenerationError aborts a run.
"""

from typing import Any, Dict, List, Optional


class GapforgeError(Exception):
    """Base class for all pipeline errors."""

    code = "GAPFORGE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for run summaries and CLI output."""
        return {"code": self.code, "message": self.message, "details": self.details}


class SpecParsingError(GapforgeError):
    """A specification document could not be parsed."""

    code = "SPEC_PARSING_ERROR"

    def __init__(self, spec_path: str, message: str):
        super().__init__(f"Failed to parse spec {spec_path}: {message}", {"spec_path": spec_path})
        self.spec_path = spec_path


class GapDetectionError(GapforgeError):
    """A source file could not be read or parsed during verification."""

    code = "GAP_DETECTION_ERROR"

    def __init__(self, file_path: str, message: str):
        super().__init__(f"Failed to analyze {file_path}: {message}", {"file_path": file_path})
        self.file_path = file_path


class ScoringError(GapforgeError):
    """A brainstormed feature could not be scored."""

    code = "SCORING_ERROR"

    def __init__(self, feature_name: str, message: str):
        super().__init__(f"Failed to score feature '{feature_name}': {message}", {"feature": feature_name})
        self.feature_name = feature_name


class RoadmapGenerationError(GapforgeError):
    """The dependency graph holds a contradiction that cannot be resolved."""

    code = "ROADMAP_GENERATION_ERROR"

    def __init__(self, message: str, item_ids: Optional[List[str]] = None):
        ids = sorted(item_ids or [])
        super().__init__(message, {"item_ids": ids})
        self.item_ids = ids


class ExportError(GapforgeError):
    """Serializing or writing one export format failed."""

    code = "EXPORT_ERROR"

    def __init__(self, format: str, message: str):
        super().__init__(f"Export to {format} failed: {message}", {"format": format})
        self.format = format


class ProviderError(GapforgeError):
    """An LLM provider call failed or returned an unusable response."""

    code = "PROVIDER_ERROR"

    def __init__(self, provider: str, message: str, model: Optional[str] = None):
        super().__init__(f"{provider} request failed: {message}", {"provider": provider, "model": model})
        self.provider = provider
        self.model = model
