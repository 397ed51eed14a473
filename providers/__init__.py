"""LLM SDK adapters used by LLM-backed feature suggestions."""

from .base import LLMProvider, LLMResponse
from .factory import PROVIDERS, get_provider, list_providers

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "PROVIDERS",
    "get_provider",
    "list_providers",
]
