"""Abstract base class for LLM backends.

Defines the interface that all text-generation provider implementations
follow, plus the exception hierarchy providers' errors are translated into.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, NoReturn

import httpx

FINISH_LENGTH = "length"
_LENGTH_REASONS = frozenset({"length", "max_tokens"})


@dataclass
class GenerationConfig:
    """Options for one layout request.

    Attributes:
        temperature: Sampling temperature (0.0-2.0). Lower = more deterministic.
        max_tokens: Reply budget in tokens. A layout reply cut off here is
            truncated JSON.
        json_mode: Ask for a bare JSON object: native JSON output where the
            provider has it, a prefilled opening brace otherwise.
    """

    temperature: float = 0.7
    max_tokens: int = 4096
    json_mode: bool = True


@dataclass
class GenerationResult:
    """Result from LLM text generation.

    Attributes:
        content: Generated text content.
        finish_reason: Why generation stopped, normalized across providers
            ('stop', 'length', 'content_filter', ...).
        usage: Token usage dict (prompt_tokens, completion_tokens, total_tokens).
        model: Model identifier that was used.
        raw_response: Provider-specific raw response for debugging.
    """

    content: str
    finish_reason: str
    usage: dict[str, int]
    model: str
    raw_response: Any = None

    @property
    def truncated(self) -> bool:
        """True when the reply stopped at the token budget."""
        return self.finish_reason == FINISH_LENGTH


def normalize_finish_reason(reason: Any) -> str:
    """Map a provider stop reason onto a lower-case name.

    Anthropic's ``max_tokens`` and Gemini's ``MAX_TOKENS`` become ``length``,
    the name OpenAI uses.

    Example:
        >>> normalize_finish_reason("max_tokens")
        'length'
    """
    if reason is None or reason == "":
        return "unknown"
    name = str(getattr(reason, "name", reason)).lower()
    return FINISH_LENGTH if name in _LENGTH_REASONS else name


class LLMError(Exception):
    """Base exception for LLM backend errors."""


class RateLimitError(LLMError):
    """Raised when API rate limit is exceeded.

    Attributes:
        retry_after: Suggested wait time in seconds before retry.
    """

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class QuotaExceededError(LLMError):
    """Raised when the account's usage quota or billing limit is exhausted."""


class ContextLengthError(LLMError):
    """Raised when prompt exceeds the model's context window."""


class AuthenticationError(LLMError):
    """Raised when API authentication fails (invalid or missing key)."""


class BackendTimeoutError(LLMError):
    """Raised when the provider does not answer in time."""


class BackendConnectionError(LLMError):
    """Raised when the provider cannot be reached."""


# =============================================================================
# Error translation
# =============================================================================


def _status_code(error: BaseException) -> int | None:
    for attr in ("status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _error_chain(error: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _is_timeout(error: BaseException) -> bool:
    for item in _error_chain(error):
        if isinstance(item, (TimeoutError, httpx.TimeoutException)):
            return True
        name = type(item).__name__
        if name.endswith("TimeoutError") or name == "DeadlineExceeded":
            return True
    return False


def _is_connection(error: BaseException) -> bool:
    for item in _error_chain(error):
        if isinstance(item, (ConnectionError, httpx.TransportError)):
            return True
        if type(item).__name__ in ("APIConnectionError", "ServiceUnavailable"):
            return True
    return False


def translate_error(error: Exception) -> LLMError:
    """Map a provider or transport exception onto the LLMError hierarchy.

    Args:
        error: Exception raised by a provider SDK or its HTTP transport.

    Returns:
        The matching LLMError subclass instance (an LLMError is returned as is).
    """
    if isinstance(error, LLMError):
        return error

    message = str(error) or type(error).__name__
    error_str = message.lower()
    status = _status_code(error)

    if _is_timeout(error) or status in (408, 504) or "timed out" in error_str:
        return BackendTimeoutError(message)
    if _is_connection(error) or "connection error" in error_str:
        return BackendConnectionError(message)
    if (
        status in (401, 403)
        or "authentication" in error_str
        or "invalid api key" in error_str
        or "api key not valid" in error_str
        or "permission denied" in error_str
    ):
        return AuthenticationError(message)
    if (
        "quota" in error_str
        or "resource exhausted" in error_str
        or "resource_exhausted" in error_str
        or "billing" in error_str
    ):
        return QuotaExceededError(message)
    if (
        status == 429
        or "rate limit" in error_str
        or "rate_limit" in error_str
        or "too many requests" in error_str
    ):
        return RateLimitError(message)
    if "context length" in error_str or "maximum context" in error_str:
        return ContextLengthError(message)
    return LLMError(message)


class LLMBackend(ABC):
    """Abstract interface for LLM text generation backends.

    LLM backends turn a prompt into raw text. Implementations use external
    APIs (Google Gemini, OpenAI, Anthropic) or scripted replies for tests.

    Example:
        >>> backend = GoogleBackend(model="gemini-2.0-flash")
        >>> result = backend.generate("Show my revenue metrics")
        >>> print(result.content)
    """

    @abstractmethod
    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Generate text from a prompt.

        Args:
            prompt: User prompt text.
            system_prompt: Optional system instruction for context.
            config: Generation configuration options.

        Returns:
            GenerationResult with generated content and metadata.

        Raises:
            LLMError: If generation fails.
            AuthenticationError: If credentials are rejected.
            RateLimitError: If API rate limit is exceeded.
            QuotaExceededError: If the account quota is exhausted.
            BackendTimeoutError: If the provider does not answer in time.
            BackendConnectionError: If the provider cannot be reached.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model identifier.

        Returns:
            String model name (e.g., 'gemini-2.0-flash', 'gpt-4.1-mini').
        """

    @property
    @abstractmethod
    def provider(self) -> str:
        """Get the provider identifier.

        Returns:
            String provider name (e.g., 'google', 'openai').
        """

    @property
    def name(self) -> str:
        """Get backend identifier for logging.

        Returns:
            String in format 'provider:model'.
        """
        return f"{self.provider}:{self.model_name}"

    @property
    @abstractmethod
    def supports_json_mode(self) -> bool:
        """Check if backend natively supports JSON mode."""

    @property
    @abstractmethod
    def context_window(self) -> int:
        """Get maximum context window size in tokens."""

    def _handle_error(self, error: Exception) -> NoReturn:
        """Convert provider errors to standard exceptions.

        Raises:
            LLMError: Always; the subclass matching the failure.
        """
        translated = translate_error(error)
        if translated is error:
            raise error
        raise translated from error


__all__ = [
    "LLMBackend",
    "GenerationConfig",
    "GenerationResult",
    "FINISH_LENGTH",
    "normalize_finish_reason",
    "LLMError",
    "RateLimitError",
    "QuotaExceededError",
    "ContextLengthError",
    "AuthenticationError",
    "BackendTimeoutError",
    "BackendConnectionError",
    "translate_error",
]
