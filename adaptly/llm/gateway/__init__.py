"""Text-Generation Gateway: one bounded backend call per layout request."""

from adaptly.state import Capacity, LayoutHints

from .extract import extract_payload, read_candidates, read_layout_hints, read_rationale
from .lib import (
    ErrorCategory,
    Gateway,
    GatewayError,
    GatewayResult,
    RequestState,
    classify_error,
)

__all__ = [
    "Gateway",
    "GatewayResult",
    "GatewayError",
    "ErrorCategory",
    "RequestState",
    "Capacity",
    "LayoutHints",
    "classify_error",
    "extract_payload",
    "read_candidates",
    "read_layout_hints",
    "read_rationale",
]
