"""Centralized environment configuration management for adaptly.

Provides a unified interface for all environment variables with:
- Single `get_environment()` function for all configuration
- Type-safe enum with metadata (default, type, description)
- Consistent resolution: override > environment > default

It also defines `AdaptlyConfig`, the immutable bundle of everything a
reconciler needs at construction time (schema, default state, storage
settings and backend choice).

Example:
    >>> from adaptly.config import EnvVar, get_environment
    >>>
    >>> timeout = get_environment(EnvVar.ADAPTLY_REQUEST_TIMEOUT)  # float
    >>> api_key = get_environment(EnvVar.OPENAI_API_KEY)  # str | None
    >>>
    >>> # Override at runtime
    >>> provider = get_environment(EnvVar.ADAPTLY_PROVIDER, override="openai")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, overload

if TYPE_CHECKING:
    from adaptly.schema import ComponentSchema
    from adaptly.state import UIState

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "ADAPTLY_PROVIDER").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, float, bool, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by adaptly.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - llm: Provider API keys, provider and model selection
        - storage: Persistence settings
        - general: Schema location and logging
    """

    # -------------------------------------------------------------------------
    # LLM API Keys
    # -------------------------------------------------------------------------
    GOOGLE_API_KEY = EnvConfig(
        name="GOOGLE_API_KEY",
        default=None,
        var_type=str,
        description="Google AI Studio API key for Gemini models",
        category="llm",
    )
    OPENAI_API_KEY = EnvConfig(
        name="OPENAI_API_KEY",
        default=None,
        var_type=str,
        description="OpenAI API key for GPT models",
        category="llm",
    )
    ANTHROPIC_API_KEY = EnvConfig(
        name="ANTHROPIC_API_KEY",
        default=None,
        var_type=str,
        description="Anthropic API key for Claude models",
        category="llm",
    )
    ADAPTLY_PROVIDER = EnvConfig(
        name="ADAPTLY_PROVIDER",
        default="google",
        var_type=str,
        description="Text-generation provider (google, openai, anthropic, scripted)",
        category="llm",
    )
    ADAPTLY_MODEL = EnvConfig(
        name="ADAPTLY_MODEL",
        default=None,  # Provider default when unset
        var_type=str,
        description="Model identifier for the selected provider",
        category="llm",
    )
    ADAPTLY_REQUEST_TIMEOUT = EnvConfig(
        name="ADAPTLY_REQUEST_TIMEOUT",
        default=60.0,
        var_type=float,
        description="Seconds to wait for one layout request",
        category="llm",
    )

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    ADAPTLY_STORAGE_ENABLED = EnvConfig(
        name="ADAPTLY_STORAGE_ENABLED",
        default=True,
        var_type=bool,
        description="Persist UI state between sessions",
        category="storage",
    )
    ADAPTLY_STORAGE_PATH = EnvConfig(
        name="ADAPTLY_STORAGE_PATH",
        default=None,  # Computed from the user's home directory
        var_type=Path,
        description="SQLite file holding persisted UI state",
        category="storage",
    )
    ADAPTLY_STORAGE_KEY = EnvConfig(
        name="ADAPTLY_STORAGE_KEY",
        default="adaptly-ui",
        var_type=str,
        description="Key under which this application's UI state is stored",
        category="storage",
    )
    ADAPTLY_STORAGE_VERSION = EnvConfig(
        name="ADAPTLY_STORAGE_VERSION",
        default="1.0.0",
        var_type=str,
        description="Schema version stamped on persisted records",
        category="storage",
    )

    # -------------------------------------------------------------------------
    # General
    # -------------------------------------------------------------------------
    ADAPTLY_SCHEMA_PATH = EnvConfig(
        name="ADAPTLY_SCHEMA_PATH",
        default=Path("adaptly.json"),
        var_type=Path,
        description="Component schema file",
        category="general",
    )
    ADAPTLY_LOG_LEVEL = EnvConfig(
        name="ADAPTLY_LOG_LEVEL",
        default="info",
        var_type=str,
        description="Log level (debug, info, warn, error)",
        category="general",
    )


# Provider name -> environment variable holding its credential
PROVIDER_KEY_VARS: dict[str, EnvVar] = {
    "google": EnvVar.GOOGLE_API_KEY,
    "openai": EnvVar.OPENAI_API_KEY,
    "anthropic": EnvVar.ANTHROPIC_API_KEY,
}


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _parse_bool(value: str) -> bool | None:
    """Parse string to boolean.

    Recognizes: true/false, 1/0, yes/no (case-insensitive).
    Returns None for unrecognized values.
    """
    normalized = value.lower().strip()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type is int:
        try:
            return int(value)
        except ValueError:
            return default

    if var_type is float:
        try:
            return float(value)
        except ValueError:
            return default

    if var_type is bool:
        result = _parse_bool(value)
        return result if result is not None else default

    if var_type is Path:
        return Path(value)

    # Unknown type, return as-is
    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: float) -> float: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type.

    Example:
        >>> get_environment(EnvVar.ADAPTLY_STORAGE_KEY)
        'adaptly-ui'
        >>> get_environment(EnvVar.ADAPTLY_STORAGE_KEY, override="widget-a")
        'widget-a'
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable."""
    return env_var.value


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (llm, storage, general).
                 None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


# =============================================================================
# Convenience Functions
# =============================================================================


def get_storage_path(override: Path | str | None = None) -> Path:
    """Get the SQLite file used for persisted UI state.

    Resolution: override > ADAPTLY_STORAGE_PATH > ~/.adaptly/state.db
    """
    if override is not None:
        return Path(override)

    env_path = get_environment(EnvVar.ADAPTLY_STORAGE_PATH)
    if env_path:
        return env_path

    return Path.home() / ".adaptly" / "state.db"


def get_api_key(provider: str, override: str | None = None) -> str | None:
    """Get the credential for a provider.

    Args:
        provider: Provider name (google, openai, anthropic).
        override: Explicit key that bypasses the environment.

    Returns:
        The key, or None if the provider needs none or none is set.
    """
    if override:
        return override
    env_var = PROVIDER_KEY_VARS.get(provider)
    if env_var is None:
        return None
    return get_environment(env_var)


def get_available_llm_providers() -> list[str]:
    """Get list of providers that have credentials configured.

    Returns:
        List of provider names (e.g., ["google", "openai"]).
    """
    return [name for name, var in PROVIDER_KEY_VARS.items() if get_environment(var)]


# =============================================================================
# Construction-time configuration
# =============================================================================


@dataclass(frozen=True)
class AdaptlyConfig:
    """Everything a reconciler is built from; immutable for the process lifetime.

    Attributes:
        schema: Validated component schema.
        default_state: State restored on reset (None means empty).
        storage_enabled: Whether UI state is persisted.
        storage_path: SQLite file for persisted state (None keeps it in memory).
        storage_key: Application-chosen key. Independent reconcilers sharing
            one storage file must use distinct keys.
        storage_version: Version stamped on records; mismatches are discarded.
        provider: Backend provider name, or None to run without a backend.
        model: Model identifier (provider default when None).
        api_key: Credential for the provider (environment when None).
        request_timeout: Seconds to wait for one layout request.
        capacity_height: Grid rows offered to the backend as free space.
    """

    schema: ComponentSchema
    default_state: UIState | None = None
    storage_enabled: bool = True
    storage_path: Path | None = None
    storage_key: str = "adaptly-ui"
    storage_version: str = "1.0.0"
    provider: str | None = "google"
    model: str | None = None
    api_key: str | None = None
    request_timeout: float = 60.0
    capacity_height: int = 6

    @classmethod
    def from_environment(
        cls,
        schema: ComponentSchema | None = None,
        **overrides: Any,
    ) -> AdaptlyConfig:
        """Build a config from environment variables.

        Args:
            schema: Component schema; loaded from ADAPTLY_SCHEMA_PATH if None.
            **overrides: Field values taking priority over the environment.

        Raises:
            ConfigurationError: If the schema file is missing or malformed.
        """
        if schema is None:
            from adaptly.schema import load_schema

            schema = load_schema(get_environment(EnvVar.ADAPTLY_SCHEMA_PATH))

        config = cls(
            schema=schema,
            storage_enabled=get_environment(EnvVar.ADAPTLY_STORAGE_ENABLED),
            storage_path=get_storage_path(),
            storage_key=get_environment(EnvVar.ADAPTLY_STORAGE_KEY),
            storage_version=get_environment(EnvVar.ADAPTLY_STORAGE_VERSION),
            provider=get_environment(EnvVar.ADAPTLY_PROVIDER),
            model=get_environment(EnvVar.ADAPTLY_MODEL),
            request_timeout=get_environment(EnvVar.ADAPTLY_REQUEST_TIMEOUT),
        )
        return replace(config, **overrides) if overrides else config


__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    "PROVIDER_KEY_VARS",
    "AdaptlyConfig",
    # Main interface
    "get_environment",
    "get_environment_info",
    "list_environment_variables",
    # Convenience functions
    "get_storage_path",
    "get_api_key",
    "get_available_llm_providers",
]
