"""Schema module - authoritative source for UI element definitions.

This module provides:
- Component catalogue models (types, arguments, use cases, space hints)
- Eager schema validation raising ConfigurationError
- LLM-optimized schema export for prompt injection

Example usage:
    >>> from adaptly.schema import load_schema, export_llm_schema
    >>> schema = load_schema("adaptly.json")
    >>> catalogue = export_llm_schema(schema)  # For LLM prompt injection
"""

from .lib import (
    ARGUMENT_TYPE_ALIASES,
    ArgumentSpec,
    ArgumentType,
    ComponentDefinition,
    ComponentSchema,
    ConfigurationError,
    SpaceHint,
    export_llm_schema,
    load_schema,
    validate_schema,
)

__all__ = [
    # Errors
    "ConfigurationError",
    # Models
    "ArgumentType",
    "ARGUMENT_TYPE_ALIASES",
    "ArgumentSpec",
    "SpaceHint",
    "ComponentDefinition",
    "ComponentSchema",
    # Loading and validation
    "validate_schema",
    "load_schema",
    # Schema generation
    "export_llm_schema",
]
