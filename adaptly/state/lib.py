"""UI-State data model.

The UI-State is the single source of truth for what is currently on screen:
an ordered list of element instances plus arrangement metadata. Elements are
only ever created from candidates that passed the Schema Validator, so every
UIElement here is known to conform to the component schema it was checked
against.

Records written to storage use camelCase keys; `UIState.from_record` also
accepts the legacy spellings (``components``, ``layout``, ``columns``,
``props``, ``position``).
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ArrangementMode(str, Enum):
    """How the renderer lays elements out."""

    GRID = "grid"
    FLOW = "flow"
    ABSOLUTE = "absolute"

    @classmethod
    def parse(cls, value: Any) -> "ArrangementMode":
        """Parse a mode name, mapping legacy ``flex`` to FLOW.

        Raises:
            ValueError: If the value names no known mode.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "flex":
                return cls.FLOW
            for mode in cls:
                if mode.value == normalized:
                    return mode
        raise ValueError(f"Unknown arrangement mode: {value!r}")


class Placement(BaseModel):
    """Grid position and size of one element, in tracks."""

    model_config = ConfigDict(frozen=True)

    x: Annotated[int, Field(ge=0)] = 0
    y: Annotated[int, Field(ge=0)] = 0
    w: Annotated[int, Field(ge=0)] = 1
    h: Annotated[int, Field(ge=0)] = 1


class UIElement(BaseModel):
    """One element instance on screen.

    Attributes:
        id: Unique identifier within the state.
        type: Element type name from the component schema.
        arguments: Argument values passed to the renderer unchanged.
        placement: Position and size in grid tracks.
        visible: Hidden elements stay in the state but are not rendered.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique element identifier")
    type: str = Field(..., min_length=1, description="Element type name")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("arguments", "props"),
        serialization_alias="props",
    )
    placement: Placement = Field(
        default_factory=Placement,
        validation_alias=AliasChoices("placement", "position"),
        serialization_alias="position",
    )
    visible: bool = True

    def with_arguments(self, partial: dict[str, Any]) -> "UIElement":
        """Return a copy with `partial` merged over the current arguments."""
        return self.model_copy(update={"arguments": {**self.arguments, **partial}})


class UIState(BaseModel):
    """Ordered elements plus arrangement metadata.

    Attributes:
        elements: Elements in render order. Ids are unique.
        arrangement_mode: Grid, flow or absolute layout.
        spacing: Gap between elements, non-negative.
        track_count: Number of grid columns, at least one.
    """

    model_config = ConfigDict(populate_by_name=True)

    elements: list[UIElement] = Field(
        default_factory=list,
        validation_alias=AliasChoices("elements", "components"),
    )
    arrangement_mode: ArrangementMode = Field(
        default=ArrangementMode.GRID,
        validation_alias=AliasChoices("arrangement_mode", "arrangementMode", "layout"),
        serialization_alias="arrangementMode",
    )
    spacing: Annotated[int, Field(ge=0)] = 6
    track_count: Annotated[int, Field(ge=1)] = Field(
        default=6,
        validation_alias=AliasChoices("track_count", "trackCount", "columns"),
        serialization_alias="trackCount",
    )

    @field_validator("arrangement_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        if isinstance(value, dict):
            value = value.get("type", ArrangementMode.GRID)
        return ArrangementMode.parse(value)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def find(self, element_id: str) -> UIElement | None:
        """Return the element with `element_id`, or None."""
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    @property
    def ids(self) -> list[str]:
        return [element.id for element in self.elements]

    def summary(self) -> dict[str, Any]:
        """Compact description of the state for prompt building."""
        return {
            "elementCount": len(self.elements),
            "visibleCount": sum(1 for e in self.elements if e.visible),
            "types": dict(Counter(e.type for e in self.elements)),
            "arrangementMode": self.arrangement_mode.value,
            "spacing": self.spacing,
            "trackCount": self.track_count,
        }

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible camelCase dict."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "UIState":
        """Rebuild a state from `to_record` output (or a legacy record).

        Raises:
            pydantic.ValidationError: If the record is structurally invalid.
        """
        return cls.model_validate(record)

    def copy_state(self) -> "UIState":
        """Deep copy, safe to hand to callers."""
        return self.model_copy(deep=True)


@dataclass(frozen=True)
class LayoutHints:
    """Arrangement metadata proposed alongside candidate elements.

    Values are kept as received; the reconciler validates each one and
    ignores those that do not fit.
    """

    arrangement_mode: Any = None
    spacing: Any = None
    track_count: Any = None

    @property
    def is_empty(self) -> bool:
        return (
            self.arrangement_mode is None
            and self.spacing is None
            and self.track_count is None
        )


@dataclass(frozen=True)
class Capacity:
    """Free screen space offered to the backend, in grid tracks."""

    width: int
    height: int


__all__ = [
    "ArrangementMode",
    "Placement",
    "UIElement",
    "UIState",
    "LayoutHints",
    "Capacity",
]
