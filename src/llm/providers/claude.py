"""Claude (Anthropic) LLM provider."""

from cli.retry import llm_retry

from ..base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError

DEFAULT_MODEL = "claude-sonnet-4-6"


class ClaudeProvider(LLMProvider):
    """Anthropic Claude provider backed by the async SDK client."""

    provider_name = "claude"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.model = model or DEFAULT_MODEL

        if client:
            self.client = client
            return

        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise LLMError("anthropic package not installed. Run: pip install anthropic")

        self.client = AsyncAnthropic(api_key=api_key)

    def _get_exceptions(self):
        from anthropic import APIError, AuthenticationError, RateLimitError

        return AuthenticationError, RateLimitError, APIError

    def _handle_error(self, e: Exception):
        AuthenticationError, RateLimitError, APIError = self._get_exceptions()
        if isinstance(e, AuthenticationError):
            raise LLMAuthError(f"Claude auth failed: {e}") from e
        if isinstance(e, RateLimitError):
            raise LLMRateLimitError(f"Claude rate limit: {e}") from e
        if isinstance(e, APIError):
            raise LLMError(f"Claude API error: {e}") from e
        raise LLMError(f"Claude error: {e}") from e

    @llm_retry(max_attempts=3, exceptions=(LLMRateLimitError,))
    async def generate(
        self, messages: list[dict], system: str | None = None, max_tokens: int = 1024
    ) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except Exception as e:
            self._handle_error(e)

        if not response.content:
            raise LLMError("Empty response from Claude")
        return response.content[0].text
