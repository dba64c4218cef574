"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    AdaptlyConfig,
    EnvConfig,
    EnvVar,
    get_api_key,
    get_available_llm_providers,
    get_environment,
    get_environment_info,
    get_storage_path,
    list_environment_variables,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("ADAPTLY_STORAGE_KEY", raising=False)
        assert get_environment(EnvVar.ADAPTLY_STORAGE_KEY) == "adaptly-ui"

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("ADAPTLY_PROVIDER", "anthropic")
        result = get_environment(EnvVar.ADAPTLY_PROVIDER, override="openai")
        assert result == "openai"

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("ADAPTLY_STORAGE_VERSION", "2.0.0")
        assert get_environment(EnvVar.ADAPTLY_STORAGE_VERSION) == "2.0.0"

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float type conversion from string."""
        monkeypatch.setenv("ADAPTLY_REQUEST_TIMEOUT", "12.5")
        result = get_environment(EnvVar.ADAPTLY_REQUEST_TIMEOUT)
        assert result == 12.5
        assert isinstance(result, float)

    @pytest.mark.unit
    def test_invalid_float_returns_default(self, monkeypatch):
        """Unparseable numbers fall back to the default."""
        monkeypatch.setenv("ADAPTLY_REQUEST_TIMEOUT", "soon")
        assert get_environment(EnvVar.ADAPTLY_REQUEST_TIMEOUT) == 60.0

    @pytest.mark.unit
    def test_bool_type_conversion(self, monkeypatch):
        """Boolean type conversion for true and false values."""
        for value in ("true", "1", "yes", "TRUE"):
            monkeypatch.setenv("ADAPTLY_STORAGE_ENABLED", value)
            assert get_environment(EnvVar.ADAPTLY_STORAGE_ENABLED) is True
        for value in ("false", "0", "no", "No"):
            monkeypatch.setenv("ADAPTLY_STORAGE_ENABLED", value)
            assert get_environment(EnvVar.ADAPTLY_STORAGE_ENABLED) is False

    @pytest.mark.unit
    def test_path_type_conversion(self, monkeypatch, tmp_path):
        """Path variables are converted to Path."""
        monkeypatch.setenv("ADAPTLY_STORAGE_PATH", str(tmp_path / "s.db"))
        result = get_environment(EnvVar.ADAPTLY_STORAGE_PATH)
        assert result == tmp_path / "s.db"
        assert isinstance(result, Path)


class TestEnvironmentInfo:
    """Tests for introspection helpers."""

    @pytest.mark.unit
    def test_info_returns_config(self):
        info = get_environment_info(EnvVar.GOOGLE_API_KEY)
        assert isinstance(info, EnvConfig)
        assert info.name == "GOOGLE_API_KEY"
        assert info.category == "llm"

    @pytest.mark.unit
    def test_list_by_category(self):
        storage_vars = list_environment_variables("storage")
        assert EnvVar.ADAPTLY_STORAGE_KEY in storage_vars
        assert EnvVar.OPENAI_API_KEY not in storage_vars

    @pytest.mark.unit
    def test_list_all(self):
        assert len(list_environment_variables()) == len(EnvVar)


class TestConvenienceFunctions:
    """Tests for provider and storage helpers."""

    @pytest.mark.unit
    def test_storage_path_override(self, tmp_path):
        assert get_storage_path(tmp_path / "x.db") == tmp_path / "x.db"

    @pytest.mark.unit
    def test_storage_path_default(self, monkeypatch):
        monkeypatch.delenv("ADAPTLY_STORAGE_PATH", raising=False)
        assert get_storage_path().name == "state.db"

    @pytest.mark.unit
    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert get_api_key("anthropic") == "sk-ant-test"
        assert get_api_key("anthropic", override="explicit") == "explicit"

    @pytest.mark.unit
    def test_api_key_unknown_provider(self):
        assert get_api_key("scripted") is None

    @pytest.mark.unit
    def test_available_providers(self, monkeypatch):
        for name in ("GOOGLE_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert get_available_llm_providers() == ["openai"]


class TestAdaptlyConfig:
    """Tests for the construction-time config bundle."""

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch, metric_schema, tmp_path):
        monkeypatch.setenv("ADAPTLY_PROVIDER", "scripted")
        monkeypatch.setenv("ADAPTLY_STORAGE_KEY", "widget-a")
        monkeypatch.setenv("ADAPTLY_STORAGE_PATH", str(tmp_path / "s.db"))
        config = AdaptlyConfig.from_environment(metric_schema)

        assert config.provider == "scripted"
        assert config.storage_key == "widget-a"
        assert config.storage_path == tmp_path / "s.db"
        assert config.schema is metric_schema

    @pytest.mark.unit
    def test_from_environment_overrides(self, metric_schema):
        config = AdaptlyConfig.from_environment(
            metric_schema, provider=None, storage_enabled=False
        )
        assert config.provider is None
        assert config.storage_enabled is False

    @pytest.mark.unit
    def test_config_is_frozen(self, metric_schema):
        config = AdaptlyConfig(schema=metric_schema)
        with pytest.raises(AttributeError):
            config.storage_key = "other"  # type: ignore[misc]
