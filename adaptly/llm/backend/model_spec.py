"""Model specification system for LLM backends.

Provides a registry of supported LLM models with their capabilities,
context windows, and provider information.
"""

from dataclasses import dataclass, field
from enum import Enum


class LLMCapability(Enum):
    """Capabilities that an LLM model may support."""

    JSON_MODE = "json_mode"  # Native JSON output enforcement
    STREAMING = "streaming"  # Streaming response support
    SYSTEM_PROMPT = "system_prompt"  # Dedicated system role


class LLMProviderType(Enum):
    """Available LLM backend providers."""

    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    SCRIPTED = "scripted"

    @classmethod
    def parse(cls, value: "str | LLMProviderType") -> "LLMProviderType":
        """Parse a provider name (case-insensitive).

        Raises:
            ValueError: If the name is not a known provider.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for provider in cls:
            if provider.value == normalized:
                return provider
        raise ValueError(f"Unknown provider: {value}")


@dataclass(frozen=True)
class LLMSpec:
    """Specification for an LLM model.

    Attributes:
        name: Model identifier (e.g., 'gemini-2.0-flash', 'gpt-4.1-mini').
        provider: Backend provider type.
        context_window: Maximum context size in tokens.
        max_output_tokens: Maximum generation tokens.
        capabilities: Set of supported capabilities.
        description: Human-readable description.
        requires_api_key: Whether this model needs an API key.
        api_key_env_var: Environment variable name for API key.
    """

    name: str
    provider: LLMProviderType
    context_window: int
    max_output_tokens: int
    capabilities: frozenset[LLMCapability] = field(default_factory=frozenset)
    description: str = ""
    requires_api_key: bool = True
    api_key_env_var: str = ""

    def supports(self, capability: LLMCapability) -> bool:
        """Check if model supports a capability."""
        return capability in self.capabilities


# Common capability sets
_GOOGLE_FULL = frozenset(
    {
        LLMCapability.JSON_MODE,
        LLMCapability.STREAMING,
        LLMCapability.SYSTEM_PROMPT,
    }
)

_OPENAI_FULL = frozenset(
    {
        LLMCapability.JSON_MODE,
        LLMCapability.STREAMING,
        LLMCapability.SYSTEM_PROMPT,
    }
)

_ANTHROPIC_FULL = frozenset(
    {
        LLMCapability.STREAMING,
        LLMCapability.SYSTEM_PROMPT,
    }
)


class LLMModel(Enum):
    """Registry of available LLM models."""

    # === Google Gemini Models ===
    GEMINI_2_0_FLASH = LLMSpec(
        name="gemini-2.0-flash",
        provider=LLMProviderType.GOOGLE,
        context_window=1048576,
        max_output_tokens=8192,
        capabilities=_GOOGLE_FULL,
        description="Google fast multimodal model",
        api_key_env_var="GOOGLE_API_KEY",
    )

    GEMINI_2_5_FLASH = LLMSpec(
        name="gemini-2.5-flash",
        provider=LLMProviderType.GOOGLE,
        context_window=1048576,
        max_output_tokens=65536,
        capabilities=_GOOGLE_FULL,
        description="Google price-performance model with thinking",
        api_key_env_var="GOOGLE_API_KEY",
    )

    GEMINI_2_5_PRO = LLMSpec(
        name="gemini-2.5-pro",
        provider=LLMProviderType.GOOGLE,
        context_window=1048576,
        max_output_tokens=65536,
        capabilities=_GOOGLE_FULL,
        description="Google most capable reasoning model",
        api_key_env_var="GOOGLE_API_KEY",
    )

    # === OpenAI Models ===
    GPT_4_1 = LLMSpec(
        name="gpt-4.1",
        provider=LLMProviderType.OPENAI,
        context_window=128000,
        max_output_tokens=16384,
        capabilities=_OPENAI_FULL,
        description="OpenAI developer favorite for coding",
        api_key_env_var="OPENAI_API_KEY",
    )

    GPT_4_1_MINI = LLMSpec(
        name="gpt-4.1-mini",
        provider=LLMProviderType.OPENAI,
        context_window=128000,
        max_output_tokens=16384,
        capabilities=_OPENAI_FULL,
        description="OpenAI fast and efficient small model",
        api_key_env_var="OPENAI_API_KEY",
    )

    # === Anthropic Claude Models ===
    CLAUDE_SONNET_4_5 = LLMSpec(
        name="claude-sonnet-4-5",
        provider=LLMProviderType.ANTHROPIC,
        context_window=200000,
        max_output_tokens=64000,
        capabilities=_ANTHROPIC_FULL,
        description="Anthropic balanced model for agents and coding",
        api_key_env_var="ANTHROPIC_API_KEY",
    )

    CLAUDE_HAIKU_4_5 = LLMSpec(
        name="claude-haiku-4-5",
        provider=LLMProviderType.ANTHROPIC,
        context_window=200000,
        max_output_tokens=64000,
        capabilities=_ANTHROPIC_FULL,
        description="Anthropic fastest model",
        api_key_env_var="ANTHROPIC_API_KEY",
    )

    # === Test double ===
    SCRIPTED = LLMSpec(
        name="scripted",
        provider=LLMProviderType.SCRIPTED,
        context_window=1000000,
        max_output_tokens=1000000,
        capabilities=frozenset({LLMCapability.JSON_MODE}),
        description="Replays canned replies; for tests and demos",
        requires_api_key=False,
    )

    @property
    def spec(self) -> LLMSpec:
        """Get the LLMSpec for this model."""
        return self.value

    @classmethod
    def by_name(cls, name: str) -> "LLMModel | None":
        """Look up model by name string.

        Args:
            name: Model name to find.

        Returns:
            LLMModel if found, None otherwise.
        """
        for model in cls:
            if model.spec.name == name:
                return model
        return None

    @classmethod
    def list_by_provider(cls, provider: LLMProviderType) -> list["LLMModel"]:
        """Get all models for a specific provider."""
        return [m for m in cls if m.spec.provider == provider]


# Default models for each provider
DEFAULT_GOOGLE_MODEL = LLMModel.GEMINI_2_0_FLASH
DEFAULT_OPENAI_MODEL = LLMModel.GPT_4_1_MINI
DEFAULT_ANTHROPIC_MODEL = LLMModel.CLAUDE_SONNET_4_5

# Overall default
DEFAULT_MODEL = DEFAULT_GOOGLE_MODEL

_PROVIDER_DEFAULTS: dict[LLMProviderType, LLMModel] = {
    LLMProviderType.GOOGLE: DEFAULT_GOOGLE_MODEL,
    LLMProviderType.OPENAI: DEFAULT_OPENAI_MODEL,
    LLMProviderType.ANTHROPIC: DEFAULT_ANTHROPIC_MODEL,
    LLMProviderType.SCRIPTED: LLMModel.SCRIPTED,
}


def default_model_for(provider: str | LLMProviderType) -> LLMModel:
    """Get the default model of a provider."""
    return _PROVIDER_DEFAULTS[LLMProviderType.parse(provider)]


def get_llm_spec(
    model: str | LLMModel | LLMSpec,
    provider: str | LLMProviderType | None = None,
) -> LLMSpec:
    """Resolve a model reference to its LLMSpec.

    Unregistered model names are accepted when `provider` is given; they
    inherit the limits and capabilities of that provider's default model.

    Args:
        model: Model name string, LLMModel enum, or LLMSpec.
        provider: Provider to assume for unregistered names.

    Returns:
        The resolved LLMSpec.

    Raises:
        ValueError: If model name is not found and no provider is given.
    """
    if isinstance(model, LLMSpec):
        return model
    if isinstance(model, LLMModel):
        return model.spec
    found = LLMModel.by_name(model)
    if found:
        return found.spec
    if provider is not None:
        base = default_model_for(provider).spec
        return LLMSpec(
            name=model,
            provider=base.provider,
            context_window=base.context_window,
            max_output_tokens=base.max_output_tokens,
            capabilities=base.capabilities,
            requires_api_key=base.requires_api_key,
            api_key_env_var=base.api_key_env_var,
        )
    raise ValueError(f"Unknown model: {model}")


__all__ = [
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "DEFAULT_GOOGLE_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_MODEL",
    "default_model_for",
    "get_llm_spec",
]
