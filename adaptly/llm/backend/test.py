"""Tests for LLM backend implementations."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest

from .base import (
    FINISH_LENGTH,
    AuthenticationError,
    BackendConnectionError,
    BackendTimeoutError,
    ContextLengthError,
    GenerationConfig,
    GenerationResult,
    LLMError,
    QuotaExceededError,
    RateLimitError,
    normalize_finish_reason,
    translate_error,
)
from .factory import create_llm_backend
from .model_spec import (
    DEFAULT_MODEL,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    default_model_for,
    get_llm_spec,
)
from .scripted import ScriptedBackend


class TestLLMModel:
    """Tests for the model registry."""

    @pytest.mark.unit
    def test_default_is_gemini_flash(self):
        assert DEFAULT_MODEL.spec.name == "gemini-2.0-flash"
        assert DEFAULT_MODEL.spec.provider == LLMProviderType.GOOGLE

    @pytest.mark.unit
    def test_by_name_lookup(self):
        """Test looking up models by name."""
        assert LLMModel.by_name("claude-sonnet-4-5") == LLMModel.CLAUDE_SONNET_4_5
        assert LLMModel.by_name("nonexistent") is None

    @pytest.mark.unit
    def test_list_by_provider(self):
        google_models = LLMModel.list_by_provider(LLMProviderType.GOOGLE)
        assert len(google_models) >= 2
        assert all(m.spec.api_key_env_var == "GOOGLE_API_KEY" for m in google_models)

    @pytest.mark.unit
    def test_default_model_for(self):
        assert default_model_for("openai") == LLMModel.GPT_4_1_MINI
        assert default_model_for(LLMProviderType.ANTHROPIC) == LLMModel.CLAUDE_SONNET_4_5

    @pytest.mark.unit
    def test_provider_parse(self):
        assert LLMProviderType.parse(" Google ") == LLMProviderType.GOOGLE
        with pytest.raises(ValueError, match="Unknown provider"):
            LLMProviderType.parse("ollama")


class TestGetLLMSpec:
    """Tests for get_llm_spec helper."""

    @pytest.mark.unit
    def test_from_string(self):
        assert get_llm_spec("gpt-4.1-mini").name == "gpt-4.1-mini"

    @pytest.mark.unit
    def test_from_enum(self):
        assert get_llm_spec(LLMModel.GEMINI_2_5_PRO).name == "gemini-2.5-pro"

    @pytest.mark.unit
    def test_unknown_model_raises(self):
        with pytest.raises(ValueError, match="Unknown model"):
            get_llm_spec("nonexistent-model")

    @pytest.mark.unit
    def test_unregistered_name_with_provider(self):
        """Unregistered names inherit the provider default's limits."""
        spec = get_llm_spec("gemini-exp-1206", provider="google")
        assert spec.name == "gemini-exp-1206"
        assert spec.provider == LLMProviderType.GOOGLE
        assert spec.supports(LLMCapability.JSON_MODE)


class TestGenerationConfig:
    @pytest.mark.unit
    def test_defaults(self):
        config = GenerationConfig()
        assert config.temperature == 0.7
        assert config.json_mode is True
        assert config.max_tokens == 4096


class TestFinishReason:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "reason,expected",
        [
            ("stop", "stop"),
            ("length", FINISH_LENGTH),
            ("max_tokens", FINISH_LENGTH),
            (SimpleNamespace(name="MAX_TOKENS"), FINISH_LENGTH),
            (SimpleNamespace(name="SAFETY"), "safety"),
            (None, "unknown"),
        ],
    )
    def test_normalized(self, reason, expected):
        assert normalize_finish_reason(reason) == expected

    @pytest.mark.unit
    def test_truncated(self):
        result = GenerationResult(
            content="{", finish_reason=FINISH_LENGTH, usage={}, model="m"
        )
        assert result.truncated
        assert not GenerationResult("{}", "stop", {}, "m").truncated


class TestTranslateError:
    """Provider errors map onto the LLMError hierarchy."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error,expected",
        [
            (TimeoutError("slow"), BackendTimeoutError),
            (httpx.ReadTimeout("read timed out"), BackendTimeoutError),
            (httpx.ConnectError("refused"), BackendConnectionError),
            (ConnectionError("reset"), BackendConnectionError),
            (Exception("Invalid API key provided"), AuthenticationError),
            (Exception("API key not valid. Please pass a valid API key."), AuthenticationError),
            (Exception("429 Resource has been exhausted (e.g. check quota)."), QuotaExceededError),
            (Exception("You exceeded your current quota"), QuotaExceededError),
            (Exception("Rate limit reached for requests"), RateLimitError),
            (Exception("maximum context length is 128000 tokens"), ContextLengthError),
            (Exception("something odd"), LLMError),
        ],
    )
    def test_mapping(self, error, expected):
        assert type(translate_error(error)) is expected

    @pytest.mark.unit
    def test_status_code_attribute(self):
        error = Exception("denied")
        error.status_code = 401
        assert isinstance(translate_error(error), AuthenticationError)

        error = Exception("slow down")
        error.status_code = 429
        assert isinstance(translate_error(error), RateLimitError)

    @pytest.mark.unit
    def test_sdk_timeout_class_name(self):
        class APITimeoutError(Exception):
            pass

        assert isinstance(translate_error(APITimeoutError("x")), BackendTimeoutError)

    @pytest.mark.unit
    def test_wrapped_transport_error(self):
        try:
            try:
                raise httpx.ConnectTimeout("connect")
            except httpx.ConnectTimeout as inner:
                raise RuntimeError("request failed") from inner
        except RuntimeError as outer:
            assert isinstance(translate_error(outer), BackendTimeoutError)

    @pytest.mark.unit
    def test_llm_error_passes_through(self):
        error = QuotaExceededError("out")
        assert translate_error(error) is error


class TestScriptedBackend:
    """Tests for the scripted backend."""

    @pytest.mark.unit
    def test_replays_in_order_then_repeats(self):
        backend = ScriptedBackend(["one", "two"])
        assert backend.generate("a").content == "one"
        assert backend.generate("b").content == "two"
        assert backend.generate("c").content == "two"
        assert [call[0] for call in backend.calls] == ["a", "b", "c"]

    @pytest.mark.unit
    def test_raises_scripted_errors(self):
        backend = ScriptedBackend([Exception("Invalid API key")])
        with pytest.raises(AuthenticationError):
            backend.generate("a")

    @pytest.mark.unit
    def test_empty_script(self):
        assert ScriptedBackend().generate("a").content == ""

    @pytest.mark.unit
    def test_identity(self):
        backend = ScriptedBackend("x")
        assert backend.name == "scripted:scripted"
        assert backend.supports_json_mode


def _openai_response(content='{"elements": []}', finish_reason="stop", refusal=None):
    return SimpleNamespace(
        choices=[
            SimpleNamespace(
                message=SimpleNamespace(content=content, refusal=refusal),
                finish_reason=finish_reason,
            )
        ],
        usage=SimpleNamespace(prompt_tokens=5, completion_tokens=3, total_tokens=8),
        model="gpt-4.1-mini",
    )


class TestOpenAIBackend:
    """Tests for OpenAI backend."""

    @pytest.mark.unit
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        from .openai import OpenAIBackend

        with pytest.raises(AuthenticationError, match="API key required"):
            OpenAIBackend()

    @pytest.mark.unit
    def test_generate(self):
        from .openai import OpenAIBackend

        backend = OpenAIBackend(api_key="test-key-12345")
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_response()
        backend._client = client

        result = backend.generate("catalogue and goal", system_prompt="Reply in JSON.")

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "Reply in JSON."},
            {"role": "user", "content": "catalogue and goal"},
        ]
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "seed" not in kwargs
        assert result.content == '{"elements": []}'
        assert result.usage["total_tokens"] == 8

    @pytest.mark.unit
    def test_json_mode_needs_json_in_messages(self):
        from .openai import OpenAIBackend

        backend = OpenAIBackend(api_key="test-key-12345")
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_response()
        backend._client = client

        backend.generate("hello", system_prompt="rules")

        assert "response_format" not in client.chat.completions.create.call_args.kwargs

    @pytest.mark.unit
    def test_refusal_becomes_reply_text(self):
        from .openai import OpenAIBackend

        backend = OpenAIBackend(api_key="test-key-12345")
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_response(
            content=None, refusal="I can't help with that."
        )
        backend._client = client

        assert backend.generate("hello").content == "I can't help with that."

    @pytest.mark.unit
    def test_length_finish_is_truncated(self):
        from .openai import OpenAIBackend

        backend = OpenAIBackend(api_key="test-key-12345")
        client = MagicMock()
        client.chat.completions.create.return_value = _openai_response(
            content='{"elements": [', finish_reason="length"
        )
        backend._client = client

        assert backend.generate("hello").truncated

    @pytest.mark.unit
    def test_error_translated(self):
        from .openai import OpenAIBackend

        backend = OpenAIBackend(api_key="test-key-12345")
        client = MagicMock()
        client.chat.completions.create.side_effect = Exception("Rate limit reached")
        backend._client = client

        with pytest.raises(RateLimitError):
            backend.generate("hello")


class TestAnthropicBackend:
    """Tests for Anthropic backend."""

    @pytest.mark.unit
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        from .anthropic import AnthropicBackend

        with pytest.raises(AuthenticationError, match="API key required"):
            AnthropicBackend()

    @staticmethod
    def _backend(text, stop_reason="end_turn"):
        from .anthropic import AnthropicBackend

        backend = AnthropicBackend(api_key="test-key-12345")
        client = MagicMock()
        client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text=text)],
            stop_reason=stop_reason,
            usage=SimpleNamespace(input_tokens=4, output_tokens=2),
            model="claude-sonnet-4-5",
        )
        backend._client = client
        return backend, client

    @pytest.mark.unit
    def test_json_mode_prefills_brace(self):
        backend, client = self._backend('"elements": []}')

        result = backend.generate("catalogue and goal", system_prompt="rules")

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "rules"
        assert kwargs["messages"] == [
            {"role": "user", "content": "catalogue and goal"},
            {"role": "assistant", "content": "{"},
        ]
        assert result.content == '{"elements": []}'
        assert result.usage["total_tokens"] == 6
        assert backend.supports_json_mode is False

    @pytest.mark.unit
    def test_no_prefill_without_json_mode(self):
        backend, client = self._backend("Plain words.")

        result = backend.generate("hello", config=GenerationConfig(json_mode=False))

        assert len(client.messages.create.call_args.kwargs["messages"]) == 1
        assert "system" not in client.messages.create.call_args.kwargs
        assert result.content == "Plain words."

    @pytest.mark.unit
    def test_max_tokens_is_truncated(self):
        backend, _ = self._backend('"elements": [', stop_reason="max_tokens")
        result = backend.generate("hello")
        assert result.finish_reason == FINISH_LENGTH
        assert result.truncated


class TestGoogleBackend:
    """Tests for Google Gemini backend."""

    @pytest.mark.unit
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        from .google import GoogleBackend

        with pytest.raises(AuthenticationError, match="API key required"):
            GoogleBackend()

    @pytest.mark.unit
    def test_generate(self):
        from .google import GoogleBackend

        backend = GoogleBackend(api_key="test-key-12345", timeout=12.0)
        genai = MagicMock()
        model = genai.GenerativeModel.return_value
        model.generate_content.return_value = SimpleNamespace(
            text='{"elements": []}',
            candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name="STOP"))],
            usage_metadata=SimpleNamespace(
                prompt_token_count=7, candidates_token_count=3, total_token_count=10
            ),
        )
        backend._client = genai

        result = backend.generate("hello", system_prompt="rules")

        assert genai.GenerativeModel.call_args.kwargs["system_instruction"] == "rules"
        config_kwargs = genai.GenerationConfig.call_args.kwargs
        assert config_kwargs["response_mime_type"] == "application/json"
        assert model.generate_content.call_args.kwargs["request_options"] == {
            "timeout": 12.0
        }
        assert result.finish_reason == "stop"
        assert result.usage["total_tokens"] == 10

    @pytest.mark.unit
    def test_quota_error(self):
        from .google import GoogleBackend

        backend = GoogleBackend(api_key="test-key-12345")
        genai = MagicMock()
        genai.GenerativeModel.return_value.generate_content.side_effect = Exception(
            "429 Resource has been exhausted (e.g. check quota)."
        )
        backend._client = genai

        with pytest.raises(QuotaExceededError):
            backend.generate("hello")


class TestCreateLLMBackend:
    """Tests for create_llm_backend factory."""

    @pytest.mark.unit
    def test_creates_google_backend(self):
        backend = create_llm_backend(api_key="test-key")
        assert backend.provider == "google"

    @pytest.mark.unit
    def test_creates_openai_backend(self):
        backend = create_llm_backend(LLMModel.GPT_4_1_MINI, api_key="test-key")
        assert backend.provider == "openai"

    @pytest.mark.unit
    def test_creates_anthropic_backend(self):
        backend = create_llm_backend("claude-sonnet-4-5", api_key="test-key")
        assert backend.provider == "anthropic"

    @pytest.mark.unit
    def test_provider_default_model(self):
        backend = create_llm_backend(provider="openai", api_key="test-key")
        assert backend.model_name == "gpt-4.1-mini"

    @pytest.mark.unit
    def test_creates_scripted_backend(self):
        backend = create_llm_backend(provider="scripted", responses=["x"], timeout=5)
        assert isinstance(backend, ScriptedBackend)
        assert backend.generate("p").content == "x"

    @pytest.mark.unit
    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_llm_backend(provider="ollama")
