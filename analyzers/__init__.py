"""Gap analyzers: specs vs code, docs vs code, and completeness."""

from .code_index import CodeIndex
from .completeness import assess_completeness
from .feature_analyzer import FeatureGapAnalyzer, calculate_accuracy, parse_documentation
from .gap_analyzer import RequirementOutcome, SpecGapAnalyzer, analyze_specs
from .source_parser import get_parser
from .spec_parser import SpecParser, find_spec_files

__all__ = [
    "CodeIndex",
    "SpecParser",
    "find_spec_files",
    "get_parser",
    "SpecGapAnalyzer",
    "RequirementOutcome",
    "analyze_specs",
    "FeatureGapAnalyzer",
    "parse_documentation",
    "calculate_accuracy",
    "assess_completeness",
]
