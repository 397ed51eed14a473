"""Provider selection by name or by model."""

from typing import Dict, Optional, Type

from .base import LLMProvider
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider, DeepseekProvider
from .litellm_provider import LiteLLMProvider

PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "deepseek": DeepseekProvider,
    "litellm": LiteLLMProvider,
}

ALIASES = {"claude": "anthropic", "gpt": "openai"}

# Model name prefix -> provider, checked in order
MODEL_PREFIXES = (
    ("claude", "anthropic"),
    ("sonnet", "anthropic"),
    ("opus", "anthropic"),
    ("haiku", "anthropic"),
    ("gpt-", "openai"),
    ("o1", "openai"),
    ("deepseek", "deepseek"),
)


def _build(provider_key: str, model: Optional[str]) -> LLMProvider:
    # litellm takes its model up front; the others resolve it per call
    if provider_key == "litellm":
        return LiteLLMProvider(model)
    return PROVIDERS[provider_key]()


def get_provider(provider_name: Optional[str] = None, model: Optional[str] = None) -> LLMProvider:
    """Return a provider instance.

    With a name, that provider is used. Without one the provider is
    inferred from the model: a routed name (``vendor/model``) goes to
    litellm, known prefixes go to their vendor, anything else to Anthropic.

    Raises:
        ValueError: If provider_name is not registered
    """
    if provider_name:
        key = ALIASES.get(provider_name.lower(), provider_name.lower())
        if key not in PROVIDERS:
            raise ValueError(f"Unknown provider: {provider_name}. Available: {sorted(PROVIDERS)}")
        return _build(key, model)

    if model:
        lowered = model.lower()
        if "/" in lowered:
            return LiteLLMProvider(model)
        for prefix, key in MODEL_PREFIXES:
            if lowered.startswith(prefix):
                return _build(key, model)
    return AnthropicProvider()


def list_providers() -> Dict[str, bool]:
    """Registered providers and whether each is usable right now."""
    return {name: provider_class().is_available() for name, provider_class in PROVIDERS.items()}
