"""Tests for the Text-Generation Gateway."""

import json
import threading
import time
from unittest.mock import MagicMock

import pytest

from adaptly.prompt import PromptBuilder
from adaptly.state import Capacity, LayoutHints, UIState

from ..backend import (
    FINISH_LENGTH,
    AuthenticationError,
    BackendConnectionError,
    GenerationConfig,
    GenerationResult,
    LLMError,
    QuotaExceededError,
    RateLimitError,
    ScriptedBackend,
)
from .extract import extract_payload, read_candidates, read_layout_hints, read_rationale
from .lib import ErrorCategory, Gateway, RequestState, classify_error

PAYLOAD = {
    "elements": [
        {"id": "rev", "type": "MetricCard", "props": {"title": "Revenue", "value": "$1"}}
    ],
    "layout": {"type": "grid", "spacing": 4, "columns": 4},
    "rationale": "Revenue first",
}


class TestExtractPayload:
    """Tests for extract_payload."""

    @pytest.mark.unit
    def test_plain_json(self):
        assert extract_payload(json.dumps(PAYLOAD)) == PAYLOAD

    @pytest.mark.unit
    def test_fenced_json(self):
        text = f"Here you go:\n```json\n{json.dumps(PAYLOAD)}\n```\nEnjoy!"
        assert extract_payload(text) == PAYLOAD

    @pytest.mark.unit
    def test_bare_fence(self):
        text = f"```\n{json.dumps(PAYLOAD)}\n```"
        assert extract_payload(text) == PAYLOAD

    @pytest.mark.unit
    def test_fence_preferred_over_earlier_object(self):
        text = 'Example {"a": 1} then\n```json\n{"b": 2}\n```'
        assert extract_payload(text) == {"b": 2}

    @pytest.mark.unit
    def test_embedded_in_prose(self):
        text = f"I designed this layout: {json.dumps(PAYLOAD)} Let me know!"
        assert extract_payload(text) == PAYLOAD

    @pytest.mark.unit
    def test_braces_inside_strings(self):
        """Braces in string literals do not unbalance the scan."""
        text = 'Reply: {"rationale": "use {curly} braces }", "elements": []} done'
        assert extract_payload(text) == {
            "rationale": "use {curly} braces }",
            "elements": [],
        }

    @pytest.mark.unit
    def test_first_object_wins(self):
        assert extract_payload('{"a": 1} and {"b": 2}') == {"a": 1}

    @pytest.mark.unit
    def test_skips_malformed_object(self):
        assert extract_payload('{not json} but {"ok": true}') == {"ok": True}

    @pytest.mark.unit
    def test_trailing_comma_repair(self):
        text = '{"elements": [{"id": "a", "type": "T",},], "rationale": "x",}'
        assert extract_payload(text) == {
            "elements": [{"id": "a", "type": "T"}],
            "rationale": "x",
        }

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text", [None, "", "I can't help with that.", "[1, 2, 3]", "{unclosed"]
    )
    def test_no_payload(self, text):
        assert extract_payload(text) is None

    @pytest.mark.unit
    def test_object_inside_unclosed_brace(self):
        assert extract_payload('{"draft": {"elements": []}') == {"elements": []}

    @pytest.mark.unit
    def test_large_unbalanced_reply_is_linear(self):
        start = time.perf_counter()
        assert extract_payload("{" * 200_000) is None
        found = extract_payload("{" * 200_000 + '{"elements": []}')
        assert found == {"elements": []}
        assert time.perf_counter() - start < 5.0


class TestPayloadReaders:
    """Tests for interpreting a payload."""

    @pytest.mark.unit
    def test_candidates(self):
        assert read_candidates(PAYLOAD) == PAYLOAD["elements"]
        assert read_candidates({"components": [{"id": "a"}]}) == [{"id": "a"}]
        assert read_candidates({"elements": {"id": "a"}}) == []
        assert read_candidates({}) == []

    @pytest.mark.unit
    def test_layout_object(self):
        assert read_layout_hints(PAYLOAD) == LayoutHints("grid", 4, 4)

    @pytest.mark.unit
    def test_layout_string_and_top_level(self):
        hints = read_layout_hints({"layout": "flex", "spacing": 2, "trackCount": 3})
        assert hints == LayoutHints("flex", 2, 3)

    @pytest.mark.unit
    def test_top_level_overrides(self):
        hints = read_layout_hints(
            {"layout": {"type": "grid", "columns": 6}, "arrangementMode": "absolute", "columns": 2}
        )
        assert hints == LayoutHints("absolute", None, 2)

    @pytest.mark.unit
    def test_no_hints(self):
        assert read_layout_hints({"elements": []}) is None

    @pytest.mark.unit
    def test_rationale(self):
        assert read_rationale({"rationale": "why"}) == "why"
        assert read_rationale({"reasoning": "legacy"}) == "legacy"
        assert read_rationale({"reasoning": {"focus": "sales"}}) == '{"focus": "sales"}'
        assert read_rationale({}) is None


class TestClassifyError:
    """Tests for error classification."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error,category",
        [
            (AuthenticationError("bad key"), ErrorCategory.AUTH),
            (QuotaExceededError("no credits"), ErrorCategory.QUOTA),
            (RateLimitError("slow down"), ErrorCategory.QUOTA),
            (BackendConnectionError("refused"), ErrorCategory.NETWORK),
            (TimeoutError(), ErrorCategory.NETWORK),
            (LLMError("odd"), ErrorCategory.UNKNOWN),
            (ValueError("boom"), ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, error, category):
        assert classify_error(error).category is category

    @pytest.mark.unit
    def test_message_is_readable(self):
        error = classify_error(AuthenticationError("key rejected"))
        assert error.message.startswith("Authentication")
        assert "key rejected" in error.message


class TestGateway:
    """Tests for Gateway.request_layout."""

    @pytest.fixture
    def request_args(self, metric_schema):
        return ("show revenue", UIState(), metric_schema, Capacity(6, 6))

    @pytest.mark.unit
    def test_parsed_with_candidates(self, request_args):
        backend = ScriptedBackend([f"```json\n{json.dumps(PAYLOAD)}\n```"])
        gateway = Gateway(backend)

        result = gateway.request_layout(*request_args)

        assert result.ok
        assert result.state is RequestState.PARSED_WITH_CANDIDATES
        assert result.candidates == PAYLOAD["elements"]
        assert result.layout_hints == LayoutHints("grid", 4, 4)
        assert result.rationale == "Revenue first"
        assert gateway.state is RequestState.IDLE

    @pytest.mark.unit
    def test_prompt_embeds_goal_and_schema(self, request_args):
        backend = ScriptedBackend(["{}"])
        Gateway(backend).request_layout(*request_args)

        prompt, system_prompt = backend.calls[0]
        assert "show revenue" in prompt
        assert "MetricCard" in prompt
        assert system_prompt == PromptBuilder().system_prompt
        assert "show revenue" not in system_prompt

    @pytest.mark.unit
    def test_truncated_reply_logged(self, request_args, caplog):
        backend = MagicMock()
        backend.name = "mock:model"
        backend.generate.return_value = GenerationResult(
            content='{"elements": [', finish_reason=FINISH_LENGTH, usage={}, model="m"
        )
        gateway = Gateway(backend, generation_config=GenerationConfig(max_tokens=64))

        with caplog.at_level("WARNING", logger="adaptly.llm.gateway.lib"):
            result = gateway.request_layout(*request_args)

        assert result.ok
        assert result.state is RequestState.PARSED_EMPTY
        assert "64-token limit" in caplog.text

    @pytest.mark.unit
    def test_prose_only_reply(self, request_args):
        """A reply without structure is a successful, empty proposal."""
        reply = "I'm not sure what you mean. Could you describe the dashboard?"
        result = Gateway(ScriptedBackend([reply])).request_layout(*request_args)

        assert result.ok
        assert result.candidates == []
        assert result.rationale == reply
        assert result.state is RequestState.PARSED_EMPTY

    @pytest.mark.unit
    def test_empty_elements(self, request_args):
        result = Gateway(ScriptedBackend(['{"elements": []}'])).request_layout(
            *request_args
        )
        assert result.ok
        assert result.state is RequestState.PARSED_EMPTY

    @pytest.mark.unit
    def test_missing_rationale_uses_reply(self, request_args):
        reply = 'Here is your dashboard.\n{"elements": []}'
        result = Gateway(ScriptedBackend([reply])).request_layout(*request_args)

        assert result.ok
        assert result.rationale == reply

    @pytest.mark.unit
    def test_backend_failure(self, request_args):
        backend = ScriptedBackend([Exception("Invalid API key provided")])
        result = Gateway(backend).request_layout(*request_args)

        assert not result.ok
        assert result.state is RequestState.FAILED
        assert result.error.category is ErrorCategory.AUTH
        assert result.candidates == []

    @pytest.mark.unit
    def test_mock_backend_raw_exception(self, request_args):
        """Untranslated exceptions from custom backends are still classified."""
        backend = MagicMock()
        backend.name = "mock:model"
        backend.generate.side_effect = ConnectionError("reset by peer")

        result = Gateway(backend).request_layout(*request_args)
        assert result.error.category is ErrorCategory.NETWORK

    @pytest.mark.unit
    def test_timeout_is_network(self, request_args):
        backend = ScriptedBackend(['{"elements": []}'], delay=0.5)
        result = Gateway(backend, timeout=30).request_layout(*request_args, timeout=0.05)

        assert not result.ok
        assert result.error.category is ErrorCategory.NETWORK
        assert "0.05" in result.error.message

    @pytest.mark.unit
    def test_state_is_sending_during_call(self, request_args):
        seen = []
        gateway = None

        def generate(prompt, **kwargs):
            seen.append(gateway.state)
            return GenerationResult(
                content="{}", finish_reason="stop", usage={}, model="m"
            )

        backend = MagicMock()
        backend.name = "mock:model"
        backend.generate.side_effect = generate
        gateway = Gateway(backend)

        gateway.request_layout(*request_args)

        assert seen == [RequestState.SENDING]
        assert gateway.state is RequestState.IDLE

    @pytest.mark.unit
    def test_no_internal_retries(self, request_args):
        backend = ScriptedBackend([RateLimitError("slow"), '{"elements": []}'])
        result = Gateway(backend).request_layout(*request_args)

        assert result.error.category is ErrorCategory.QUOTA
        assert len(backend.calls) == 1

    @pytest.mark.unit
    def test_timeout_does_not_block_next_call(self, request_args):
        release = threading.Event()

        def generate(prompt, **kwargs):
            release.wait(2)
            return GenerationResult(content="{}", finish_reason="stop", usage={}, model="m")

        slow = MagicMock()
        slow.name = "mock:slow"
        slow.generate.side_effect = generate
        gateway = Gateway(slow)

        first = gateway.request_layout(*request_args, timeout=0.05)
        release.set()
        second = gateway.request_layout(*request_args, timeout=2)

        assert not first.ok
        assert second.ok
