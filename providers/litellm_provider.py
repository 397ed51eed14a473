"""LiteLLM-backed provider: one implementation for any model litellm can route."""

from typing import Dict, Optional

from .anthropic_provider import AnthropicProvider
from .base import LLMProvider, LLMResponse, chat_messages, timeout_kwargs
from .openai_provider import DeepseekProvider, OpenAIProvider

DEFAULT_MODEL = "gpt-4o-mini"

# litellm route prefix per vendor; OpenAI models need none
VENDOR_PREFIXES = {
    "anthropic": (AnthropicProvider.MODELS, "claude"),
    "deepseek": (DeepseekProvider.MODELS, "deepseek"),
}


def _alias_table() -> Dict[str, str]:
    table = dict(OpenAIProvider.MODELS)
    for vendor, (models, _) in VENDOR_PREFIXES.items():
        table.update({alias: f"{vendor}/{full}" for alias, full in models.items()})
    return table


ALIASES = _alias_table()


def to_litellm_model(model: Optional[str]) -> str:
    """Map a bare alias or vendor model name to a litellm route string.

    Strings that already carry a route (``gemini/...``) and unknown names
    are returned unchanged.
    """
    if not model:
        return DEFAULT_MODEL
    if "/" in model:
        return model
    key = model.lower()
    if key in ALIASES:
        return ALIASES[key]
    for vendor, (_, family) in VENDOR_PREFIXES.items():
        if key.startswith(family + "-"):
            return f"{vendor}/{model}"
    return model


class LiteLLMProvider(LLMProvider):
    """Delegates to litellm.completion(); keys are read from the environment by litellm."""

    def __init__(self, default_model: Optional[str] = None, metadata: Optional[dict] = None):
        """Initialize with the model to use by default.

        Args:
            default_model: litellm route string or alias
            metadata: Passed through to litellm callbacks (e.g. the category)
        """
        self._default_model = to_litellm_model(default_model)
        self._metadata = metadata or {}

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def resolve_model(self, model: Optional[str]) -> str:
        return to_litellm_model(model) if model else self._default_model

    def _send(self, system_prompt, user_message, model, max_tokens, timeout) -> LLMResponse:
        import litellm

        response = litellm.completion(
            model=model,
            messages=chat_messages(system_prompt, user_message),
            max_tokens=max_tokens,
            metadata=dict(self._metadata),
            **timeout_kwargs(timeout),
        )
        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        hidden = getattr(response, "_hidden_params", None) or {}
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=getattr(response, "model", None) or model,
            provider=self.name,
            cost=float(hidden.get("response_cost", 0) or 0),
            stop_reason=getattr(choice, "finish_reason", None),
        )

    def is_available(self) -> bool:
        return bool(self._default_model)
