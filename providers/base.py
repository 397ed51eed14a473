"""LLM provider interface for brainstorming calls.

Subclasses implement `_send()` against one SDK. `complete()` wraps it:
resolves the model, times the call and turns SDK exceptions into
ProviderError so callers only handle one type.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from contracts import ProviderError

# Stop reasons meaning the answer was cut off at max_tokens
TRUNCATION_REASONS = {"max_tokens", "length"}


@dataclass
class LLMResponse:
    """One completion, normalized across SDKs."""
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    cost: float = 0.0
    stop_reason: Optional[str] = None
    latency_seconds: float = 0.0

    @property
    def truncated(self) -> bool:
        return self.stop_reason in TRUNCATION_REASONS


def chat_messages(system_prompt: str, user_message: str) -> List[Dict[str, str]]:
    """System + user message list for chat-completions style APIs."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ]


def timeout_kwargs(timeout: Optional[float]) -> dict:
    """Pass timeout only when set so the SDK default applies otherwise."""
    return {"timeout": timeout} if timeout is not None else {}


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    # Short aliases accepted by resolve_model()
    MODELS: Dict[str, str] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (anthropic, openai, deepseek, litellm)."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        pass

    def resolve_model(self, model: Optional[str]) -> str:
        """Resolve an alias to the full model name."""
        if not model:
            return self.default_model
        return self.MODELS.get(model, model)

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            system_prompt: System/instruction prompt
            user_message: User message/query
            model: Model or alias (defaults to provider's default)
            max_tokens: Maximum tokens in response
            timeout: Request timeout in seconds (SDK default when None)

        Returns:
            LLMResponse with content, token counts and latency

        Raises:
            ProviderError: If the SDK call fails
        """
        resolved_model = self.resolve_model(model)
        started = time.monotonic()
        try:
            response = self._send(system_prompt, user_message, resolved_model, max_tokens, timeout)
        # Each SDK has its own exception tree
        except Exception as e:
            raise ProviderError(self.name, f"{type(e).__name__}: {e}", resolved_model) from e
        response.latency_seconds = round(time.monotonic() - started, 3)
        return response

    @abstractmethod
    def _send(
        self,
        system_prompt: str,
        user_message: str,
        model: str,
        max_tokens: int,
        timeout: Optional[float],
    ) -> LLMResponse:
        """Make the SDK call with an already resolved model."""
        pass

    def is_available(self) -> bool:
        """Check if this provider is available (API key set, etc.)."""
        return True
