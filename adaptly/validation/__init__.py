"""Schema validation for untrusted element candidates."""

from adaptly.validation.lib import (
    DEFAULT_DEGENERATE_RULES,
    DegenerateContentRule,
    RejectionReason,
    ValidationRejection,
    ValidationReport,
    filter_elements,
    validate_element,
)

__all__ = [
    "RejectionReason",
    "ValidationRejection",
    "ValidationReport",
    "DegenerateContentRule",
    "DEFAULT_DEGENERATE_RULES",
    "validate_element",
    "filter_elements",
]
