"""Authoritative Schema Module for adaptive UI element definitions.

This module is the single source of truth for what UI elements exist and
what arguments they accept. It provides:
- Pydantic models for the developer-declared component catalogue
- Eager, side-effect free schema validation (`validate_schema`)
- Loading from a JSON file (`load_schema`)
- LLM-optimized schema exports

A schema that violates the catalogue invariants raises ConfigurationError;
the system must never start half-configured.
"""

import json
import logging
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the component schema or construction config is malformed."""


class ArgumentType(str, Enum):
    """Runtime type tags an element argument may declare."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"
    STRUCTURED = "structured"


# Spellings accepted in hand-written schema files
ARGUMENT_TYPE_ALIASES: dict[str, ArgumentType] = {
    "text": ArgumentType.TEXT,
    "string": ArgumentType.TEXT,
    "str": ArgumentType.TEXT,
    "number": ArgumentType.NUMBER,
    "int": ArgumentType.NUMBER,
    "integer": ArgumentType.NUMBER,
    "float": ArgumentType.NUMBER,
    "boolean": ArgumentType.BOOLEAN,
    "bool": ArgumentType.BOOLEAN,
    "list": ArgumentType.LIST,
    "array": ArgumentType.LIST,
    "structured": ArgumentType.STRUCTURED,
    "object": ArgumentType.STRUCTURED,
    "dict": ArgumentType.STRUCTURED,
}


class ArgumentSpec(BaseModel):
    """Contract for one argument of an element type.

    Attributes:
        type: Declared runtime type.
        required: Whether elements must carry a non-empty value.
        allowed_values: Optional closed set of permitted values.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: ArgumentType
    required: bool = False
    allowed_values: list[Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("allowed_values", "allowedValues", "allowed"),
        serialization_alias="allowedValues",
    )

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            resolved = ARGUMENT_TYPE_ALIASES.get(value.strip().lower())
            if resolved is not None:
                return resolved
        return value


class SpaceHint(BaseModel):
    """Advisory sizing in grid tracks, passed through to the backend.

    Each bound is a ``[width, height]`` pair.
    """

    model_config = ConfigDict(frozen=True)

    min: tuple[int, int]
    max: tuple[int, int]
    preferred: tuple[int, int]

    @field_validator("min", "max", "preferred")
    @classmethod
    def _non_negative(cls, value: tuple[int, int]) -> tuple[int, int]:
        if value[0] < 0 or value[1] < 0:
            raise ValueError("space hint dimensions must be non-negative")
        return value


class ComponentDefinition(BaseModel):
    """Rich definition of a UI element type.

    Attributes:
        name: Unique element type name, matched against UIElement.type.
        description: Free text guiding the text-generation backend.
        arguments: Argument name to contract.
        use_cases: Phrases that help the backend pick this type.
        space_hint: Advisory min/max/preferred size.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    arguments: dict[str, ArgumentSpec] = Field(
        validation_alias=AliasChoices("arguments", "props"),
    )
    use_cases: list[str] = Field(
        validation_alias=AliasChoices("use_cases", "useCases"),
        serialization_alias="useCases",
    )
    space_hint: SpaceHint = Field(
        validation_alias=AliasChoices("space_hint", "spaceHint", "space"),
        serialization_alias="spaceHint",
    )

    @property
    def required_arguments(self) -> list[str]:
        """Names of arguments every element of this type must carry."""
        return [name for name, spec in self.arguments.items() if spec.required]

    def to_llm_dict(self) -> dict[str, Any]:
        """Convert definition to a compact dictionary for prompt injection."""
        arguments: dict[str, Any] = {}
        for arg_name, spec in self.arguments.items():
            entry: dict[str, Any] = {
                "type": spec.type.value,
                "required": spec.required,
            }
            if spec.allowed_values:
                entry["allowed"] = list(spec.allowed_values)
            arguments[arg_name] = entry
        return {
            "description": self.description,
            "arguments": arguments,
            "useCases": list(self.use_cases),
            "space": {
                "min": list(self.space_hint.min),
                "max": list(self.space_hint.max),
                "preferred": list(self.space_hint.preferred),
            },
        }


class ComponentSchema(BaseModel):
    """Developer-declared catalogue of element types.

    Build instances through `validate_schema` or `load_schema` so the
    catalogue invariants are enforced.
    """

    model_config = ConfigDict(frozen=True)

    version: str = "1.0.0"
    components: dict[str, ComponentDefinition]

    def get(self, name: str) -> ComponentDefinition | None:
        """Look up an element type by name."""
        return self.components.get(name)

    @property
    def names(self) -> list[str]:
        """Element type names in declaration order."""
        return list(self.components)

    def __contains__(self, name: object) -> bool:
        return name in self.components

    def __len__(self) -> int:
        return len(self.components)

    def to_llm_dict(self) -> dict[str, Any]:
        """Convert the catalogue to a dictionary for prompt injection."""
        return {
            name: definition.to_llm_dict()
            for name, definition in self.components.items()
        }


# =============================================================================
# Validation
# =============================================================================


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigurationError(message)


def _check_space(name: str, space: Any) -> None:
    _require(
        isinstance(space, Mapping),
        f"Component '{name}' must have space requirements (min, max, preferred)",
    )
    for bound in ("min", "max", "preferred"):
        value = space.get(bound)
        _require(
            isinstance(value, (list, tuple)) and len(value) == 2,
            f"Component '{name}' space hint '{bound}' must be a [width, height] pair",
        )


def _check_component(name: str, raw: Any) -> None:
    """Check the presence invariants of one raw component entry."""
    _require(isinstance(raw, Mapping), f"Component '{name}' must be an object")
    _require(bool(raw.get("description")), f"Component '{name}' must have a description")

    arguments = raw.get("arguments", raw.get("props"))
    _require(
        isinstance(arguments, Mapping) and len(arguments) > 0,
        f"Component '{name}' must have arguments defined",
    )

    use_cases = raw.get("useCases", raw.get("use_cases"))
    _require(
        isinstance(use_cases, list) and len(use_cases) > 0,
        f"Component '{name}' must have a non-empty useCases array",
    )

    space = raw.get("spaceHint", raw.get("space_hint", raw.get("space")))
    _check_space(name, space)


def _normalize_components(raw_components: Any) -> dict[str, dict[str, Any]]:
    """Accept either a name->definition mapping or a list of named definitions."""
    if isinstance(raw_components, Mapping):
        normalized: dict[str, dict[str, Any]] = {}
        for name, entry in raw_components.items():
            _check_component(str(name), entry)
            normalized[str(name)] = {**entry, "name": str(name)}
        return normalized

    if isinstance(raw_components, list):
        normalized = {}
        for index, entry in enumerate(raw_components):
            _require(
                isinstance(entry, Mapping) and bool(entry.get("name")),
                f"Component at index {index} must have a name",
            )
            name = str(entry["name"])
            _require(name not in normalized, f"Duplicate component name: {name}")
            _check_component(name, entry)
            normalized[name] = dict(entry)
        return normalized

    raise ConfigurationError(
        "Schema must define at least one component in the 'components' section"
    )


def validate_schema(raw: ComponentSchema | Mapping[str, Any]) -> ComponentSchema:
    """Validate a component catalogue and return it as a ComponentSchema.

    Pure and idempotent: validating an already-built schema returns an
    equal schema.

    Args:
        raw: Parsed schema document (``{"version": ..., "components": ...}``)
            or an existing ComponentSchema.

    Returns:
        The validated schema.

    Raises:
        ConfigurationError: If no element types are defined, or any element
            type lacks description, arguments, useCases or a complete
            spaceHint, or an argument contract is malformed.

    Example:
        >>> schema = validate_schema({
        ...     "version": "1.0.0",
        ...     "components": {
        ...         "MetricCard": {
        ...             "description": "Single KPI",
        ...             "props": {"title": {"type": "string", "required": True}},
        ...             "useCases": ["revenue"],
        ...             "space": {"min": [1, 1], "max": [3, 2], "preferred": [2, 1]},
        ...         }
        ...     },
        ... })
    """
    if isinstance(raw, ComponentSchema):
        raw = raw.model_dump(by_alias=True)

    _require(isinstance(raw, Mapping), "Schema document must be an object")

    components = _normalize_components(raw.get("components"))
    _require(
        len(components) > 0,
        "Schema must define at least one component in the 'components' section",
    )

    try:
        schema = ComponentSchema.model_validate(
            {"version": str(raw.get("version", "1.0.0")), "components": components}
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid component schema: {e}") from e

    logger.debug(f"Validated component schema with {len(schema)} element types")
    return schema


def load_schema(path: Path | str) -> ComponentSchema:
    """Load and validate a schema file (adaptly.json).

    Raises:
        ConfigurationError: If the file cannot be read, is not JSON, or
            fails `validate_schema`.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read schema file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Schema file {path} is not valid JSON: {e}") from e

    schema = validate_schema(raw)
    logger.info(f"Loaded component schema from {path}")
    return schema


def export_llm_schema(schema: ComponentSchema) -> dict[str, Any]:
    """Export the catalogue in the compact shape used inside prompts.

    Returns:
        ``{"version": ..., "components": {name: {...}}}``
    """
    return {"version": schema.version, "components": schema.to_llm_dict()}


__all__ = [
    "ConfigurationError",
    "ArgumentType",
    "ARGUMENT_TYPE_ALIASES",
    "ArgumentSpec",
    "SpaceHint",
    "ComponentDefinition",
    "ComponentSchema",
    "validate_schema",
    "load_schema",
    "export_llm_schema",
]
