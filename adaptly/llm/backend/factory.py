"""Backend factory for creating LLM backends from model specifications.

Provides a unified entry point for creating any supported LLM backend.
"""

from .base import LLMBackend
from .model_spec import (
    DEFAULT_MODEL,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    default_model_for,
    get_llm_spec,
)


def create_llm_backend(
    model: str | LLMModel | LLMSpec | None = None,
    *,
    provider: str | LLMProviderType | None = None,
    api_key: str | None = None,
    **kwargs,
) -> LLMBackend:
    """Create an LLM backend from a model specification.

    Routes to the backend class matching the model's provider. When only
    a provider is given, that provider's default model is used.

    Args:
        model: Model to use. Can be:
            - String model name (e.g., "gemini-2.0-flash", "gpt-4.1-mini")
            - LLMModel enum value (e.g., LLMModel.CLAUDE_SONNET_4_5)
            - LLMSpec instance
            - None for the provider default (or DEFAULT_MODEL)
        provider: Provider name, needed for model names not in the registry.
        api_key: API key for remote providers. Falls back to environment
            variable if not provided.
        **kwargs: Additional arguments passed to backend constructor
            (e.g., timeout, or responses for the scripted backend).

    Returns:
        Configured LLMBackend instance.

    Raises:
        ValueError: If model or provider is unknown.
        AuthenticationError: If API key required but not provided.

    Example:
        >>> backend = create_llm_backend()
        >>> backend = create_llm_backend("claude-sonnet-4-5")
        >>> backend = create_llm_backend(provider="openai", timeout=30.0)
    """
    if model is None:
        model = default_model_for(provider) if provider is not None else DEFAULT_MODEL
    spec = get_llm_spec(model, provider=provider)

    if spec.provider == LLMProviderType.GOOGLE:
        from .google import GoogleBackend

        return GoogleBackend(api_key=api_key, model=spec.name, **kwargs)

    if spec.provider == LLMProviderType.OPENAI:
        from .openai import OpenAIBackend

        return OpenAIBackend(api_key=api_key, model=spec.name, **kwargs)

    if spec.provider == LLMProviderType.ANTHROPIC:
        from .anthropic import AnthropicBackend

        return AnthropicBackend(api_key=api_key, model=spec.name, **kwargs)

    if spec.provider == LLMProviderType.SCRIPTED:
        from .scripted import ScriptedBackend

        kwargs.pop("timeout", None)
        return ScriptedBackend(**kwargs)

    raise ValueError(f"Unsupported provider type: {spec.provider}")


__all__ = ["create_llm_backend"]
