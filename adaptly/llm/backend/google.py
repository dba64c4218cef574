"""Google Gemini backend implementation.

Supports Gemini 2.x models via the Google AI Studio API.
"""

import logging
from typing import Any

from ...config import EnvVar, get_environment
from .base import (
    AuthenticationError,
    GenerationConfig,
    GenerationResult,
    LLMBackend,
    normalize_finish_reason,
)
from .model_spec import DEFAULT_GOOGLE_MODEL, LLMCapability, get_llm_spec

logger = logging.getLogger(__name__)


class GoogleBackend(LLMBackend):
    """Google Gemini backend.

    Environment:
        GOOGLE_API_KEY: API key (required if not passed to constructor).

    Example:
        >>> backend = GoogleBackend()
        >>> result = backend.generate("Show my revenue metrics")
        >>> print(result.content)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_GOOGLE_MODEL.spec.name,
        timeout: float = 60.0,
    ):
        """Initialize Gemini backend.

        Args:
            api_key: Google API key. Falls back to GOOGLE_API_KEY env var.
            model: Model name (gemini-2.0-flash, gemini-2.5-pro, etc.).
            timeout: Request timeout in seconds.

        Raises:
            AuthenticationError: If no API key available.
        """
        self._api_key = api_key or get_environment(EnvVar.GOOGLE_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "Google API key required. Set GOOGLE_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model, provider="google")
        self._timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily configure the google.generativeai module.

        Raises:
            ImportError: If google-generativeai package not installed.
        """
        if self._client is None:
            try:
                import google.generativeai as genai

                genai.configure(api_key=self._api_key)
                self._client = genai
            except ImportError as e:
                raise ImportError(
                    "google-generativeai package required. "
                    "Install with: pip install google-generativeai"
                ) from e
        return self._client

    @property
    def model_name(self) -> str:
        return self._spec.name

    @property
    def provider(self) -> str:
        return "google"

    @property
    def supports_json_mode(self) -> bool:
        return self._spec.supports(LLMCapability.JSON_MODE)

    @property
    def context_window(self) -> int:
        return self._spec.context_window

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Generate text using the Gemini generate_content API."""
        config = config or GenerationConfig()
        genai = self._get_client()

        generation_kwargs: dict[str, Any] = {
            "temperature": config.temperature,
            "max_output_tokens": config.max_tokens,
        }
        if config.json_mode and self.supports_json_mode:
            generation_kwargs["response_mime_type"] = "application/json"

        try:
            model = genai.GenerativeModel(
                model_name=self._spec.name,
                generation_config=genai.GenerationConfig(**generation_kwargs),
                system_instruction=system_prompt or None,
            )
            response = model.generate_content(
                prompt,
                request_options={"timeout": self._timeout},
            )
            content = response.text
        except Exception as e:
            logger.debug(f"Gemini request failed: {e}")
            self._handle_error(e)

        finish_reason = "unknown"
        if getattr(response, "candidates", None):
            finish_reason = normalize_finish_reason(response.candidates[0].finish_reason)

        metadata = getattr(response, "usage_metadata", None)
        usage = {
            "prompt_tokens": getattr(metadata, "prompt_token_count", 0) or 0,
            "completion_tokens": getattr(metadata, "candidates_token_count", 0) or 0,
            "total_tokens": getattr(metadata, "total_token_count", 0) or 0,
        }

        return GenerationResult(
            content=content or "",
            finish_reason=finish_reason,
            usage=usage,
            model=self._spec.name,
            raw_response=response,
        )


__all__ = ["GoogleBackend"]
