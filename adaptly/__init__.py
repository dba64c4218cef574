"""adaptly: Adaptation Reconciliation Engine for natural-language UI layouts."""

from adaptly.config import AdaptlyConfig
from adaptly.reconciler import AdaptationReconciler, ReconcilerStatus, build_reconciler
from adaptly.render import RenderedElement, RendererRegistry, render_state
from adaptly.schema import ComponentSchema, ConfigurationError, load_schema, validate_schema
from adaptly.state import ArrangementMode, LayoutHints, Placement, UIElement, UIState
from adaptly.validation import ValidationReport, filter_elements

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "AdaptlyConfig",
    "ConfigurationError",
    # Schema
    "ComponentSchema",
    "validate_schema",
    "load_schema",
    # State
    "UIState",
    "UIElement",
    "Placement",
    "ArrangementMode",
    "LayoutHints",
    # Validation
    "filter_elements",
    "ValidationReport",
    # Reconciler
    "AdaptationReconciler",
    "ReconcilerStatus",
    "build_reconciler",
    # Rendering
    "RendererRegistry",
    "RenderedElement",
    "render_state",
]
