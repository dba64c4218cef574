"""Schema Validator: filters untrusted element candidates against the schema.

Candidates usually come from a text-generation backend and may be missing
arguments, use unknown types, carry wrongly-typed values or placeholder
content. This module decides, element by element, what is allowed onto the
screen. It is total: every input shape yields a report, and each dropped
candidate is described by a ValidationRejection instead of an exception.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from adaptly.schema import ArgumentSpec, ArgumentType, ComponentSchema
from adaptly.state import UIElement

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    """Why a candidate element was dropped."""

    UNKNOWN_TYPE = "unknown_type"
    MISSING_REQUIRED = "missing_required"
    TYPE_MISMATCH = "type_mismatch"
    DISALLOWED_VALUE = "disallowed_value"
    DEGENERATE_CONTENT = "degenerate_content"
    MALFORMED = "malformed"
    DUPLICATE_ID = "duplicate_id"


@dataclass(frozen=True)
class ValidationRejection:
    """Diagnostic for one dropped candidate.

    Attributes:
        element_id: Candidate id, if it had a usable one.
        element_type: Candidate type, if it had a usable one.
        reason: Machine-readable classification.
        message: Human-readable description.
    """

    element_id: str | None
    element_type: str | None
    reason: RejectionReason
    message: str


@dataclass
class ValidationReport:
    """Result of filtering a batch of candidates.

    Attributes:
        elements: Surviving elements, in original relative order.
        rejections: One entry per dropped candidate.
    """

    elements: list[UIElement] = field(default_factory=list)
    rejections: list[ValidationRejection] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejections

    @property
    def accepted_count(self) -> int:
        return len(self.elements)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)

    def reasons(self) -> list[RejectionReason]:
        return [r.reason for r in self.rejections]


# =============================================================================
# Degenerate content
# =============================================================================

_ZERO_LIKE = re.compile(r"^[$€£¥]?\s*0+(?:\.0+)?\s*%?$")


@dataclass(frozen=True)
class DegenerateContentRule:
    """Rejects placeholder content for a narrow set of element types.

    A value is degenerate when it is empty, zero-like (``0``, ``0.0``,
    ``$0``, ``0%``) or equals one of `placeholder_phrases`, compared
    case-insensitively after trimming.

    Attributes:
        element_types: Element types the rule applies to.
        arguments: Argument names inspected on those types.
        placeholder_phrases: Lower-case phrases treated as placeholders.
    """

    element_types: frozenset[str]
    arguments: frozenset[str]
    placeholder_phrases: frozenset[str] = frozenset()

    def applies_to(self, element_type: str) -> bool:
        return element_type in self.element_types

    def is_degenerate(self, value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float)):
            return value == 0
        if isinstance(value, str):
            normalized = value.strip().lower()
            if not normalized:
                return True
            if _ZERO_LIKE.match(normalized):
                return True
            return normalized in self.placeholder_phrases
        return False

    def check(self, element_type: str, arguments: Mapping[str, Any]) -> str | None:
        """Return the first degenerate argument name, or None."""
        if not self.applies_to(element_type):
            return None
        for name in sorted(self.arguments):
            if name in arguments and self.is_degenerate(arguments[name]):
                return name
        return None


DEFAULT_DEGENERATE_RULES: tuple[DegenerateContentRule, ...] = (
    DegenerateContentRule(
        element_types=frozenset({"MetricCard", "StatCard"}),
        arguments=frozenset({"value"}),
        placeholder_phrases=frozenset(
            {"summary", "n/a", "tbd", "placeholder", "lorem ipsum", "value"}
        ),
    ),
)


# =============================================================================
# Argument checks
# =============================================================================


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _matches_type(value: Any, arg_type: ArgumentType) -> bool:
    if arg_type is ArgumentType.TEXT:
        return isinstance(value, str)
    if arg_type is ArgumentType.NUMBER:
        # bool is an int subclass; never accept it as a number
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if arg_type is ArgumentType.BOOLEAN:
        return isinstance(value, bool)
    if arg_type is ArgumentType.LIST:
        return isinstance(value, (list, tuple))
    if arg_type is ArgumentType.STRUCTURED:
        return isinstance(value, Mapping)
    return False


def _check_arguments(
    element: UIElement,
    specs: Mapping[str, ArgumentSpec],
) -> tuple[RejectionReason, str] | None:
    arguments = element.arguments

    for name, spec in specs.items():
        if spec.required and _is_empty(arguments.get(name)):
            return (
                RejectionReason.MISSING_REQUIRED,
                f"required argument '{name}' is missing or empty",
            )

    for name, spec in specs.items():
        value = arguments.get(name)
        if value is None:
            continue
        if not _matches_type(value, spec.type):
            return (
                RejectionReason.TYPE_MISMATCH,
                f"argument '{name}' expected {spec.type.value}, "
                f"got {type(value).__name__}",
            )
        if spec.allowed_values and value not in spec.allowed_values:
            return (
                RejectionReason.DISALLOWED_VALUE,
                f"argument '{name}' value {value!r} not in {spec.allowed_values!r}",
            )

    return None


# =============================================================================
# Public interface
# =============================================================================


def _reject(
    element_id: Any,
    element_type: Any,
    reason: RejectionReason,
    message: str,
) -> ValidationRejection:
    rejection = ValidationRejection(
        element_id=element_id if isinstance(element_id, str) else None,
        element_type=element_type if isinstance(element_type, str) else None,
        reason=reason,
        message=message,
    )
    logger.warning(
        f"Rejected element '{rejection.element_id}' "
        f"({rejection.element_type}): {reason.value}: {message}"
    )
    return rejection


def validate_element(
    candidate: Any,
    schema: ComponentSchema,
    *,
    rules: Iterable[DegenerateContentRule] = DEFAULT_DEGENERATE_RULES,
) -> tuple[UIElement | None, ValidationRejection | None]:
    """Validate a single candidate against the schema.

    The candidate must carry its own id; `filter_elements` assigns one to
    candidates that lack it.

    Args:
        candidate: Raw mapping (or an existing UIElement).
        schema: Component schema to check against.
        rules: Degenerate-content rules to apply.

    Returns:
        ``(element, None)`` when accepted, ``(None, rejection)`` otherwise.
    """
    if isinstance(candidate, UIElement):
        candidate = candidate.model_dump()

    if not isinstance(candidate, Mapping):
        return None, _reject(
            None,
            None,
            RejectionReason.MALFORMED,
            f"candidate must be an object, got {type(candidate).__name__}",
        )

    element_id = candidate.get("id")
    element_type = candidate.get("type")

    if not isinstance(element_id, str) or not element_id:
        return None, _reject(
            element_id, element_type, RejectionReason.MALFORMED, "missing element id"
        )
    if not isinstance(element_type, str) or not element_type:
        return None, _reject(
            element_id, element_type, RejectionReason.MALFORMED, "missing element type"
        )

    definition = schema.get(element_type)
    if definition is None:
        return None, _reject(
            element_id,
            element_type,
            RejectionReason.UNKNOWN_TYPE,
            f"type '{element_type}' is not declared in the schema",
        )

    try:
        element = UIElement.model_validate(dict(candidate))
    except ValidationError as e:
        return None, _reject(
            element_id,
            element_type,
            RejectionReason.MALFORMED,
            f"invalid structure ({e.error_count()} error(s))",
        )

    problem = _check_arguments(element, definition.arguments)
    if problem is not None:
        reason, message = problem
        return None, _reject(element_id, element_type, reason, message)

    for rule in rules:
        offending = rule.check(element_type, element.arguments)
        if offending is not None:
            return None, _reject(
                element_id,
                element_type,
                RejectionReason.DEGENERATE_CONTENT,
                f"argument '{offending}' holds placeholder content "
                f"{element.arguments.get(offending)!r}",
            )

    return element, None


def _generate_id(element_type: Any, index: int, taken: set[str]) -> str:
    prefix = element_type if isinstance(element_type, str) and element_type else "element"
    base = f"{prefix}-{index}"
    element_id, suffix = base, 2
    while element_id in taken:
        element_id = f"{base}-{suffix}"
        suffix += 1
    taken.add(element_id)
    return element_id


def filter_elements(
    candidates: Any,
    schema: ComponentSchema,
    *,
    rules: Iterable[DegenerateContentRule] = DEFAULT_DEGENERATE_RULES,
    reserved_ids: Iterable[str] = (),
) -> ValidationReport:
    """Filter a batch of candidates down to schema-conformant elements.

    Never raises. Every dropped candidate is logged at WARNING and recorded
    in the report. Later candidates reusing an accepted id are dropped.
    Candidates without an id get ``"{type}-{index}"``, made unique against
    every id in the batch and `reserved_ids`.

    Args:
        candidates: List of raw candidate mappings (any other shape yields an
            empty report with one malformed rejection).
        schema: Component schema to check against.
        rules: Degenerate-content rules to apply.
        reserved_ids: Ids already in use outside the batch.

    Returns:
        ValidationReport with survivors in original order.

    Example:
        >>> report = filter_elements(payload["elements"], schema)
        >>> for rejection in report.rejections:
        ...     print(rejection.element_id, rejection.reason.value)
    """
    report = ValidationReport()
    rules = tuple(rules)

    if not isinstance(candidates, (list, tuple)):
        report.rejections.append(
            _reject(
                None,
                None,
                RejectionReason.MALFORMED,
                f"candidates must be a list, got {type(candidates).__name__}",
            )
        )
        return report

    taken = {
        c["id"]
        for c in candidates
        if isinstance(c, Mapping) and isinstance(c.get("id"), str)
    }
    taken.update(reserved_ids)

    seen: set[str] = set()
    for index, candidate in enumerate(candidates):
        try:
            if isinstance(candidate, Mapping) and candidate.get("id") in (None, ""):
                generated = _generate_id(candidate.get("type"), index, taken)
                candidate = {**candidate, "id": generated}
            element, rejection = validate_element(candidate, schema, rules=rules)
        except Exception as e:
            element, rejection = None, _reject(
                None, None, RejectionReason.MALFORMED, f"unexpected error: {e}"
            )

        if rejection is not None:
            report.rejections.append(rejection)
            continue

        if element.id in seen:
            report.rejections.append(
                _reject(
                    element.id,
                    element.type,
                    RejectionReason.DUPLICATE_ID,
                    f"id '{element.id}' already used in this batch",
                )
            )
            continue

        seen.add(element.id)
        report.elements.append(element)

    if report.rejections:
        logger.info(
            f"Validated {len(candidates)} candidate(s): "
            f"{report.accepted_count} accepted, {report.rejected_count} rejected"
        )
    return report


__all__ = [
    "RejectionReason",
    "ValidationRejection",
    "ValidationReport",
    "DegenerateContentRule",
    "DEFAULT_DEGENERATE_RULES",
    "validate_element",
    "filter_elements",
]
