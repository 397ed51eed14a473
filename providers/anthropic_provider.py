"""Anthropic (Claude) provider."""

import os
from typing import Optional

from config import settings
from .base import LLMProvider, LLMResponse, timeout_kwargs

SONNET = "claude-sonnet-4-20250514"
HAIKU = "claude-3-5-haiku-20241022"


class AnthropicProvider(LLMProvider):
    """Messages API; the system prompt goes in its own field."""

    MODELS = {
        "claude-sonnet": SONNET,
        "claude-opus": "claude-opus-4-20250514",
        "claude-haiku": HAIKU,
        "sonnet": SONNET,
        "opus": "claude-opus-4-20250514",
        "haiku": HAIKU,
    }

    def __init__(self, api_key: Optional[str] = None):
        # GAPFORGE_ANTHROPIC_API_KEY first, then the SDK's own variable
        self.api_key = api_key or settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._client = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return SONNET

    def _get_client(self):
        if self._client is None:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key)
        return self._client

    def _send(self, system_prompt, user_message, model, max_tokens, timeout) -> LLMResponse:
        response = self._get_client().messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
            **timeout_kwargs(timeout),
        )
        text = "".join(getattr(block, "text", "") for block in response.content)
        return LLMResponse(
            content=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
            provider=self.name,
            stop_reason=getattr(response, "stop_reason", None),
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
