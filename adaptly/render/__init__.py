"""Renderer interface for UI-State.

Renders visible elements through an injected registry of renderers, with an
inert placeholder for unknown element types.
"""

from adaptly.render.lib import (
    RenderedElement,
    Renderer,
    RendererRegistry,
    iter_rendered,
    placeholder_renderer,
    render_state,
)

__all__ = [
    "Renderer",
    "RenderedElement",
    "RendererRegistry",
    "placeholder_renderer",
    "iter_rendered",
    "render_state",
]
