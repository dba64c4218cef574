"""Scripted backend that replays canned replies.

Used by tests and by offline demos (``ADAPTLY_PROVIDER=scripted``). Each
call consumes the next scripted item; an Exception item is raised instead
of returned. Once the script is exhausted the last item repeats.
"""

import threading
import time
from collections.abc import Iterable

from .base import GenerationConfig, GenerationResult, LLMBackend
from .model_spec import LLMModel


class ScriptedBackend(LLMBackend):
    """Backend returning pre-recorded replies.

    Args:
        responses: Replies (text) or exceptions to raise, in call order.
        delay: Seconds to sleep before answering, to exercise timeouts.

    Attributes:
        calls: ``(prompt, system_prompt)`` pairs received, in order.

    Example:
        >>> backend = ScriptedBackend(['{"elements": []}'])
        >>> backend.generate("anything").content
        '{"elements": []}'
    """

    def __init__(
        self,
        responses: Iterable[str | Exception] | str | None = None,
        *,
        delay: float = 0.0,
    ):
        if responses is None:
            responses = []
        elif isinstance(responses, str):
            responses = [responses]
        self._responses: list[str | Exception] = list(responses)
        self._index = 0
        self._delay = delay
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str | None]] = []

    @property
    def model_name(self) -> str:
        return LLMModel.SCRIPTED.spec.name

    @property
    def provider(self) -> str:
        return "scripted"

    @property
    def supports_json_mode(self) -> bool:
        return True

    @property
    def context_window(self) -> int:
        return LLMModel.SCRIPTED.spec.context_window

    def _next(self) -> str | Exception:
        with self._lock:
            if not self._responses:
                return ""
            item = self._responses[min(self._index, len(self._responses) - 1)]
            self._index += 1
            return item

    def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        self.calls.append((prompt, system_prompt))
        if self._delay:
            time.sleep(self._delay)

        item = self._next()
        if isinstance(item, Exception):
            self._handle_error(item)

        return GenerationResult(
            content=item,
            finish_reason="stop",
            usage={
                "prompt_tokens": len(prompt) // 4,
                "completion_tokens": len(item) // 4,
                "total_tokens": (len(prompt) + len(item)) // 4,
            },
            model=self.model_name,
        )


__all__ = ["ScriptedBackend"]
