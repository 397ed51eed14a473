"""OpenAI-compatible providers: OpenAI and Deepseek."""

import os
from typing import Optional

from config import settings
from .base import LLMProvider, LLMResponse, chat_messages, timeout_kwargs


class OpenAIProvider(LLMProvider):
    """Chat-completions API. Subclasses point base_url at a compatible vendor."""

    MODELS = {
        "gpt-4o": "gpt-4o",
        "gpt-4o-mini": "gpt-4o-mini",
        "gpt-4-turbo": "gpt-4-turbo",
        "o1": "o1",
        "o1-mini": "o1-mini",
    }
    base_url: Optional[str] = None
    env_key = "OPENAI_API_KEY"
    setting_key = "openai_api_key"

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the provider.

        Args:
            api_key: API key. Falls back to the GAPFORGE_ setting, then the
                vendor's standard environment variable.
        """
        self.api_key = api_key or getattr(settings, self.setting_key) or os.environ.get(self.env_key)
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            kwargs = {"api_key": self.api_key}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = OpenAI(**kwargs)
        return self._client

    def _send(self, system_prompt, user_message, model, max_tokens, timeout) -> LLMResponse:
        response = self._get_client().chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            messages=chat_messages(system_prompt, user_message),
            **timeout_kwargs(timeout),
        )
        choice = response.choices[0]
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=response.usage.prompt_tokens,
            output_tokens=response.usage.completion_tokens,
            model=model,
            provider=self.name,
            stop_reason=getattr(choice, "finish_reason", None),
        )

    def is_available(self) -> bool:
        return bool(self.api_key)


class DeepseekProvider(OpenAIProvider):
    """Deepseek through its OpenAI-compatible endpoint."""

    MODELS = {
        "deepseek-chat": "deepseek-chat",
        "deepseek-coder": "deepseek-coder",
        "deepseek-reasoner": "deepseek-reasoner",
    }
    base_url = "https://api.deepseek.com/v1"
    env_key = "DEEPSEEK_API_KEY"
    setting_key = "deepseek_api_key"

    @property
    def name(self) -> str:
        return "deepseek"

    @property
    def default_model(self) -> str:
        return "deepseek-chat"
