"""LLM integration layer for adaptive layouts.

This module provides multi-provider text-generation support for turning
natural language goals into layout proposals.

Main components:
- Gateway: Builds the prompt, calls one backend under a timeout, extracts
  the structured payload and classifies failures
- LLMBackend: Abstract interface for LLM providers
- create_llm_backend: Factory function for creating backends

Supported providers:
- Google (Gemini 2.x)
- OpenAI (GPT-4.x)
- Anthropic (Claude 4.5)
- Scripted (canned replies, for tests)

Example:
    >>> from adaptly.llm import Gateway, create_llm_backend
    >>> gateway = Gateway(create_llm_backend(provider="google"))
    >>> result = gateway.request_layout("show revenue", state, schema, capacity)
"""

from .backend import (
    DEFAULT_MODEL,
    AuthenticationError,
    BackendConnectionError,
    BackendTimeoutError,
    GenerationConfig,
    GenerationResult,
    LLMBackend,
    LLMError,
    LLMModel,
    LLMProviderType,
    QuotaExceededError,
    RateLimitError,
    ScriptedBackend,
    create_llm_backend,
)
from .gateway import (
    ErrorCategory,
    Gateway,
    GatewayError,
    GatewayResult,
    RequestState,
    extract_payload,
)

__all__ = [
    # Main API
    "Gateway",
    "create_llm_backend",
    # Gateway types
    "GatewayResult",
    "GatewayError",
    "ErrorCategory",
    "RequestState",
    "extract_payload",
    # Backend types
    "LLMBackend",
    "ScriptedBackend",
    "GenerationConfig",
    "GenerationResult",
    "LLMModel",
    "LLMProviderType",
    "DEFAULT_MODEL",
    # Exceptions
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "QuotaExceededError",
    "BackendTimeoutError",
    "BackendConnectionError",
]
