"""Centralized configuration management for adaptly.

Example:
    >>> from adaptly.config import EnvVar, get_environment
    >>>
    >>> provider = get_environment(EnvVar.ADAPTLY_PROVIDER)  # "google"
    >>> api_key = get_environment(EnvVar.GOOGLE_API_KEY)  # str | None
    >>>
    >>> for var in list_environment_variables("storage"):
    ...     info = get_environment_info(var)
    ...     print(f"{info.name}: {info.description}")

Environment Variable Categories:
    llm: API keys, provider and model selection, request timeout
    storage: Persistence toggle, file location, key and version
    general: Schema location and log level
"""

from .lib import (
    PROVIDER_KEY_VARS,
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

__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    "PROVIDER_KEY_VARS",
    "AdaptlyConfig",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_storage_path",
    "get_api_key",
    "get_available_llm_providers",
    # Introspection
    "list_environment_variables",
]
