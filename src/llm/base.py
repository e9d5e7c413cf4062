"""Base LLM provider abstraction."""

from abc import ABC, abstractmethod


class LLMError(Exception):
    """Base LLM error."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure."""


class LLMProvider(ABC):
    """Abstract text-completion provider.

    The interview engine only needs "prompt in, text out"; providers are
    injected so tests can substitute deterministic stand-ins.
    """

    provider_name: str = "base"

    @abstractmethod
    async def generate(
        self, messages: list[dict], system: str | None = None, max_tokens: int = 1024
    ) -> str:
        """Generate a response from messages.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            system: Optional system prompt
            max_tokens: Max response tokens

        Returns:
            Generated text

        Raises:
            LLMError: on transport failure or non-success status
        """
        ...

    async def complete(self, prompt: str, max_tokens: int = 1024) -> str:
        """Single-turn convenience wrapper around generate()."""
        return await self.generate(
            messages=[{"role": "user", "content": prompt}], max_tokens=max_tokens
        )
