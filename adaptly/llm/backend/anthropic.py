"""Anthropic Claude backend implementation.

Sends layout requests to Claude models through the Messages API.
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
from .model_spec import DEFAULT_ANTHROPIC_MODEL, get_llm_spec

logger = logging.getLogger(__name__)

JSON_PREFILL = "{"


class AnthropicBackend(LLMBackend):
    """Anthropic Claude backend.

    Claude has no native JSON mode. With ``json_mode`` the assistant turn
    is prefilled with an opening brace, so the reply continues a JSON
    object instead of opening with prose; the brace is put back in front
    of the returned text.

    Environment:
        ANTHROPIC_API_KEY: API key (required if not passed to constructor).

    Example:
        >>> backend = AnthropicBackend(model="claude-sonnet-4-5")
        >>> result = backend.generate(user_part, system_prompt=rules)
        >>> result.content[0]
        '{'
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_ANTHROPIC_MODEL.spec.name,
        timeout: float = 60.0,
        max_retries: int = 0,
    ):
        """Initialize Anthropic backend.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model name (claude-sonnet-4-5, claude-haiku-4-5, etc.).
            timeout: Request timeout in seconds.
            max_retries: SDK-level retry attempts.

        Raises:
            AuthenticationError: If no API key available.
        """
        self._api_key = api_key or get_environment(EnvVar.ANTHROPIC_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model, provider="anthropic")
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic

            self._client = anthropic.Anthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
        return self._client

    @property
    def model_name(self) -> str:
        return self._spec.name

    @property
    def provider(self) -> str:
        return "anthropic"

    @property
    def supports_json_mode(self) -> bool:
        return False

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
        """Send one layout request through the Messages API."""
        config = config or GenerationConfig()
        client = self._get_client()

        prefill = JSON_PREFILL if config.json_mode else ""
        messages = [{"role": "user", "content": prompt}]
        if prefill:
            messages.append({"role": "assistant", "content": prefill})

        kwargs: dict[str, Any] = {
            "model": self._spec.name,
            "messages": messages,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = client.messages.create(**kwargs)
        except Exception as e:
            logger.debug(f"Anthropic request failed: {e}")
            self._handle_error(e)

        text = "".join(
            block.text for block in response.content if getattr(block, "text", None)
        )
        usage = response.usage
        return GenerationResult(
            content=prefill + text if text else "",
            finish_reason=normalize_finish_reason(response.stop_reason),
            usage={
                "prompt_tokens": usage.input_tokens,
                "completion_tokens": usage.output_tokens,
                "total_tokens": usage.input_tokens + usage.output_tokens,
            },
            model=response.model,
            raw_response=response,
        )


__all__ = ["AnthropicBackend"]
