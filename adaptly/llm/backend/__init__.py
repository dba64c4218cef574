"""LLM backend implementations.

Provides abstract base class and concrete implementations for the
supported text-generation providers (Google, OpenAI, Anthropic) plus a
scripted backend for tests.
"""

from .base import (
    FINISH_LENGTH,
    AuthenticationError,
    BackendConnectionError,
    BackendTimeoutError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    LLMBackend,
    LLMError,
    QuotaExceededError,
    RateLimitError,
    normalize_finish_reason,
    translate_error,
)
from .factory import create_llm_backend
from .model_spec import (
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_GOOGLE_MODEL,
    DEFAULT_MODEL,
    DEFAULT_OPENAI_MODEL,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    default_model_for,
    get_llm_spec,
)
from .scripted import ScriptedBackend

__all__ = [
    # Base classes and types
    "LLMBackend",
    "GenerationConfig",
    "GenerationResult",
    "ScriptedBackend",
    "FINISH_LENGTH",
    "normalize_finish_reason",
    # Exceptions
    "LLMError",
    "RateLimitError",
    "QuotaExceededError",
    "ContextLengthError",
    "AuthenticationError",
    "BackendTimeoutError",
    "BackendConnectionError",
    "translate_error",
    # Model specification
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "get_llm_spec",
    "default_model_for",
    # Defaults
    "DEFAULT_MODEL",
    "DEFAULT_GOOGLE_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    # Factory
    "create_llm_backend",
]
