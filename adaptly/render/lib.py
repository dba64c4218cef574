"""Renderer interface.

The engine never draws anything itself. A caller injects a registry that
maps element type names to renderer callables; ``render_state`` walks the
visible elements in order and hands each renderer the element's arguments
unchanged. Types missing from the registry (for example a type removed from
the schema after a state was persisted) render as an inert placeholder.
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from adaptly.state import Placement, UIState

logger = logging.getLogger(__name__)

Renderer = Callable[[str, dict[str, Any], Placement], Any]


@dataclass(frozen=True)
class RenderedElement:
    """Output of rendering one element.

    Attributes:
        element_id: Id of the rendered element.
        element_type: Type name the element declared.
        placement: Position and size in grid tracks.
        output: Whatever the renderer returned.
        inert: True when the output is a placeholder.
    """

    element_id: str
    element_type: str
    placement: Placement
    output: Any
    inert: bool = False


def placeholder_renderer(
    element_id: str, element_type: str, placement: Placement
) -> dict[str, Any]:
    """Default inert placeholder: a plain description, no behaviour."""
    return {
        "placeholder": True,
        "id": element_id,
        "type": element_type,
        "message": f"Element type '{element_type}' is not available",
    }


class RendererRegistry:
    """Capability map from element type name to renderer.

    Registries are plain instances; independent reconcilers can render
    through different registries side by side.

    Args:
        renderers: Initial ``type -> renderer`` mapping.
        placeholder: Called as ``placeholder(element_id, element_type,
            placement)`` for types with no renderer.

    Example:
        >>> registry = RendererRegistry()
        >>> @registry.register("MetricCard")
        ... def metric_card(element_id, arguments, placement):
        ...     return f"{arguments['title']}: {arguments['value']}"
        >>> [r.output for r in render_state(state, registry)]
        ['Revenue: $45,231']
    """

    def __init__(
        self,
        renderers: Mapping[str, Renderer] | None = None,
        *,
        placeholder: Callable[[str, str, Placement], Any] = placeholder_renderer,
    ):
        self._renderers: dict[str, Renderer] = dict(renderers or {})
        self.placeholder = placeholder

    def register(self, type_name: str, renderer: Renderer | None = None):
        """Register a renderer, directly or as a decorator."""
        if renderer is not None:
            self._renderers[type_name] = renderer
            return renderer

        def decorator(func: Renderer) -> Renderer:
            self._renderers[type_name] = func
            return func

        return decorator

    def get(self, type_name: str) -> Renderer | None:
        return self._renderers.get(type_name)

    def names(self) -> list[str]:
        return list(self._renderers)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._renderers

    def __len__(self) -> int:
        return len(self._renderers)


def iter_rendered(state: UIState, registry: RendererRegistry) -> Iterator[RenderedElement]:
    """Render visible elements lazily, in state order."""
    for element in state.elements:
        if not element.visible:
            continue

        renderer = registry.get(element.type)
        if renderer is None:
            logger.warning(
                f"No renderer for type '{element.type}', "
                f"rendering placeholder for '{element.id}'"
            )
            yield RenderedElement(
                element_id=element.id,
                element_type=element.type,
                placement=element.placement,
                output=registry.placeholder(element.id, element.type, element.placement),
                inert=True,
            )
            continue

        yield RenderedElement(
            element_id=element.id,
            element_type=element.type,
            placement=element.placement,
            output=renderer(element.id, element.arguments, element.placement),
        )


def render_state(state: UIState, registry: RendererRegistry) -> list[RenderedElement]:
    """Render every visible element of `state` through `registry`.

    Args:
        state: UI-State to render.
        registry: Injected renderer capability map.

    Returns:
        One RenderedElement per visible element, in order. Unknown types
        yield inert placeholders instead of failing.
    """
    return list(iter_rendered(state, registry))


__all__ = [
    "Renderer",
    "RenderedElement",
    "RendererRegistry",
    "placeholder_renderer",
    "iter_rendered",
    "render_state",
]
