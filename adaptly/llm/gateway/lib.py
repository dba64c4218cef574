"""Text-Generation Gateway.

Sends one layout request to a text-generation backend and turns the reply
into candidates for the Schema Validator. The gateway never retries and
never raises for backend failures: every outcome is a GatewayResult whose
error, if any, is classified as auth, quota, network or unknown.

Request lifecycle::

    IDLE -> SENDING -> PARSED_WITH_CANDIDATES | PARSED_EMPTY | FAILED -> IDLE
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from adaptly.prompt import LayoutPrompt, PromptBuilder
from adaptly.schema import ComponentSchema
from adaptly.state import Capacity, LayoutHints, UIState

from ..backend import (
    AuthenticationError,
    BackendConnectionError,
    BackendTimeoutError,
    GenerationConfig,
    LLMBackend,
    QuotaExceededError,
    RateLimitError,
    translate_error,
)
from .extract import extract_payload, read_candidates, read_layout_hints, read_rationale

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    """Where a layout request is in its lifecycle."""

    IDLE = "idle"
    SENDING = "sending"
    PARSED_WITH_CANDIDATES = "parsed_with_candidates"
    PARSED_EMPTY = "parsed_empty"
    FAILED = "failed"


class ErrorCategory(str, Enum):
    """Coarse classification of backend failures."""

    AUTH = "auth"
    QUOTA = "quota"
    NETWORK = "network"
    UNKNOWN = "unknown"


_CATEGORY_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.AUTH: "Authentication with the text-generation service failed",
    ErrorCategory.QUOTA: "The text-generation service quota or rate limit was exceeded",
    ErrorCategory.NETWORK: "The text-generation service could not be reached",
    ErrorCategory.UNKNOWN: "The text-generation request failed",
}


@dataclass(frozen=True)
class GatewayError:
    """Classified backend failure.

    Attributes:
        category: auth, quota, network or unknown.
        message: Human-readable description, suitable for status display.
    """

    category: ErrorCategory
    message: str


@dataclass
class GatewayResult:
    """Outcome of one layout request.

    Attributes:
        ok: False only when the backend call failed.
        candidates: Raw element candidates (unvalidated).
        layout_hints: Proposed arrangement metadata, if any.
        rationale: Backend's explanation, or the raw reply when it held no
            structured payload.
        raw_response: Unmodified backend reply text.
        error: Failure classification when ok is False.
        state: Terminal request state.
    """

    ok: bool
    candidates: list[Any] = field(default_factory=list)
    layout_hints: LayoutHints | None = None
    rationale: str | None = None
    raw_response: str | None = None
    error: GatewayError | None = None
    state: RequestState = RequestState.IDLE


def classify_error(error: BaseException) -> GatewayError:
    """Map a backend exception to a GatewayError.

    Example:
        >>> classify_error(RateLimitError("slow down")).category
        <ErrorCategory.QUOTA: 'quota'>
    """
    if isinstance(error, FutureTimeoutError):
        error = BackendTimeoutError(str(error) or "request timed out")
    elif isinstance(error, Exception):
        error = translate_error(error)

    if isinstance(error, AuthenticationError):
        category = ErrorCategory.AUTH
    elif isinstance(error, (QuotaExceededError, RateLimitError)):
        category = ErrorCategory.QUOTA
    elif isinstance(error, (BackendTimeoutError, BackendConnectionError)):
        category = ErrorCategory.NETWORK
    else:
        category = ErrorCategory.UNKNOWN

    detail = str(error)
    message = _CATEGORY_MESSAGES[category]
    if detail:
        message = f"{message}: {detail}"
    return GatewayError(category=category, message=message)


class Gateway:
    """Single-call gateway between the reconciler and a backend.

    Args:
        backend: Text-generation backend.
        timeout: Default seconds to wait for a reply.
        prompt_builder: Builds the request prompt (default PromptBuilder()).
        generation_config: Options passed to the backend.

    Example:
        >>> gateway = Gateway(create_llm_backend(), timeout=30.0)
        >>> result = gateway.request_layout(
        ...     "show revenue", state, schema, Capacity(6, 6)
        ... )
        >>> if result.ok:
        ...     report = filter_elements(result.candidates, schema)
    """

    def __init__(
        self,
        backend: LLMBackend,
        *,
        timeout: float = 60.0,
        prompt_builder: PromptBuilder | None = None,
        generation_config: GenerationConfig | None = None,
    ):
        self.backend = backend
        self.timeout = timeout
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.generation_config = generation_config or GenerationConfig(temperature=0.4)
        self._state = RequestState.IDLE

    @property
    def state(self) -> RequestState:
        return self._state

    def _call_backend(self, request: LayoutPrompt, timeout: float) -> str:
        """Run the backend call on a worker thread, waiting at most `timeout`.

        The call itself is not cancelled on timeout; its result is discarded.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="adaptly-llm")
        try:
            future = executor.submit(
                self.backend.generate,
                request.user,
                system_prompt=request.system,
                config=self.generation_config,
            )
            result = future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise BackendTimeoutError(
                f"no reply within {timeout:g}s from {self.backend.name}"
            ) from e
        finally:
            executor.shutdown(wait=False)
        if result.truncated:
            logger.warning(
                f"Reply from {self.backend.name} hit the "
                f"{self.generation_config.max_tokens}-token limit and may be cut off"
            )
        return result.content

    def request_layout(
        self,
        goal: str,
        current_state: UIState,
        schema: ComponentSchema,
        capacity: Capacity,
        *,
        timeout: float | None = None,
    ) -> GatewayResult:
        """Request a layout proposal for `goal`.

        Args:
            goal: User's natural language description.
            current_state: UI-State the proposal will replace.
            schema: Component catalogue offered to the backend.
            capacity: Free space in grid tracks.
            timeout: Seconds to wait (gateway default when None).

        Returns:
            GatewayResult. Never raises for backend failures.
        """
        wait = self.timeout if timeout is None else timeout
        request = self.prompt_builder.build_request(goal, current_state, schema, capacity)

        self._state = RequestState.SENDING
        logger.debug(f"Sending layout request to {self.backend.name}")
        try:
            try:
                raw = self._call_backend(request, wait)
            except Exception as e:
                error = classify_error(e)
                logger.warning(f"Layout request failed ({error.category.value}): {e}")
                return GatewayResult(ok=False, error=error, state=RequestState.FAILED)

            payload = extract_payload(raw)
            if payload is None:
                return GatewayResult(
                    ok=True,
                    rationale=raw,
                    raw_response=raw,
                    state=RequestState.PARSED_EMPTY,
                )

            candidates = read_candidates(payload)
            result = GatewayResult(
                ok=True,
                candidates=candidates,
                layout_hints=read_layout_hints(payload),
                rationale=read_rationale(payload) or raw,
                raw_response=raw,
                state=(
                    RequestState.PARSED_WITH_CANDIDATES
                    if candidates
                    else RequestState.PARSED_EMPTY
                ),
            )
            logger.info(
                f"Layout reply from {self.backend.name}: "
                f"{len(candidates)} candidate(s)"
            )
            return result
        finally:
            self._state = RequestState.IDLE


__all__ = [
    "RequestState",
    "ErrorCategory",
    "GatewayError",
    "GatewayResult",
    "Gateway",
    "classify_error",
]
