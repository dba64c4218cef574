"""OpenAI GPT backend implementation.

Sends layout requests to OpenAI chat models. The layout rules and reply
contract travel as the system message, the catalogue, current layout and
goal as the user message.
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
from .model_spec import DEFAULT_OPENAI_MODEL, LLMCapability, get_llm_spec

logger = logging.getLogger(__name__)


def _mentions_json(messages: list[dict[str, str]]) -> bool:
    # The API refuses json_object mode unless a message mentions JSON.
    return any("json" in message["content"].lower() for message in messages)


class OpenAIBackend(LLMBackend):
    """OpenAI GPT backend.

    A refusal comes back as the reply text, so the gateway reports it as
    prose rather than as an empty reply.

    Environment:
        OPENAI_API_KEY: API key (required if not passed to constructor).

    Example:
        >>> backend = OpenAIBackend(model="gpt-4.1")
        >>> result = backend.generate(user_part, system_prompt=rules)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OPENAI_MODEL.spec.name,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 0,
    ):
        """Initialize OpenAI backend.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            model: Model name (gpt-4.1-mini, gpt-4.1, etc.).
            base_url: Optional OpenAI-compatible endpoint.
            timeout: Request timeout in seconds.
            max_retries: SDK-level retry attempts. The gateway does not retry,
                so this defaults to 0.

        Raises:
            AuthenticationError: If no API key available.
        """
        self._api_key = api_key or get_environment(EnvVar.OPENAI_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "OpenAI API key required. Set OPENAI_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model, provider="openai")
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
        return self._client

    @property
    def model_name(self) -> str:
        return self._spec.name

    @property
    def provider(self) -> str:
        return "openai"

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
        """Send one layout request through the Chat Completions API."""
        config = config or GenerationConfig()
        client = self._get_client()

        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        kwargs: dict[str, Any] = {
            "model": self._spec.name,
            "messages": messages,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        if config.json_mode and self.supports_json_mode and _mentions_json(messages):
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.debug(f"OpenAI request failed: {e}")
            self._handle_error(e)

        choice = response.choices[0]
        refusal = getattr(choice.message, "refusal", None)
        if refusal:
            logger.info(f"{self.name} refused the layout request")
        usage = response.usage
        return GenerationResult(
            content=choice.message.content or refusal or "",
            finish_reason=normalize_finish_reason(choice.finish_reason),
            usage={
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            model=response.model,
            raw_response=response,
        )


__all__ = ["OpenAIBackend"]
