"""LLM provider factory with auto-detection."""

import os

from .base import LLMError, LLMProvider

_PROVIDER_ENV_KEYS = {
    "claude": "ANTHROPIC_API_KEY",
}

_AUTO_DETECT_ORDER = ["claude"]

# Extraction and branch generation run on every interview turn.
_CHEAP_MODELS = {
    "claude": "claude-haiku-4-5",
}


def create_cheap_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    client=None,
) -> LLMProvider:
    """Create a cheap-tier provider for extraction calls."""
    resolved = provider or "auto"
    if resolved == "auto":
        resolved = _auto_detect_provider(api_key)
    cheap_model = model or _CHEAP_MODELS.get(resolved)
    return create_llm_provider(provider=resolved, api_key=api_key, model=cheap_model, client=client)


def create_llm_provider(
    provider: str | None = None,
    api_key: str | None = None,
    model: str | None = None,
    client=None,
) -> LLMProvider:
    """Create an LLM provider instance.

    Args:
        provider: "claude", "auto", or None (auto-detect)
        api_key: Explicit API key (overrides env var)
        model: Model name (None = provider default)
        client: Pre-built SDK client for testing/DI
    """
    resolved = provider or "auto"

    if resolved == "auto":
        resolved = _auto_detect_provider(api_key)

    if not api_key and not client:
        env_var = _PROVIDER_ENV_KEYS.get(resolved)
        if env_var:
            api_key = os.getenv(env_var)

    if resolved == "claude":
        from .providers.claude import ClaudeProvider

        return ClaudeProvider(api_key=api_key, model=model, client=client)
    raise LLMError(f"Unknown provider: {resolved}. Use: claude")


def _auto_detect_provider(api_key: str | None = None) -> str:
    """Detect provider from explicit key prefix, then env vars."""
    if api_key and api_key.startswith("sk-ant-"):
        return "claude"

    for name in _AUTO_DETECT_ORDER:
        if os.getenv(_PROVIDER_ENV_KEYS[name]):
            return name
    raise LLMError("No LLM API key found. Set ANTHROPIC_API_KEY")
