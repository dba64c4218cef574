"""UI-State data model."""

from adaptly.state.lib import (
    ArrangementMode,
    Capacity,
    LayoutHints,
    Placement,
    UIElement,
    UIState,
)

__all__ = [
    "ArrangementMode",
    "Placement",
    "UIElement",
    "UIState",
    "LayoutHints",
    "Capacity",
]
