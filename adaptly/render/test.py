"""Tests for the renderer interface."""

from unittest.mock import MagicMock

import pytest

from adaptly.state import Placement, UIElement, UIState

from .lib import RenderedElement, RendererRegistry, placeholder_renderer, render_state


@pytest.fixture
def registry():
    reg = RendererRegistry()

    @reg.register("MetricCard")
    def metric_card(element_id, arguments, placement):
        return f"{arguments['title']}: {arguments['value']}"

    return reg


class TestRendererRegistry:
    """Tests for RendererRegistry."""

    @pytest.mark.unit
    def test_register_decorator_returns_function(self):
        reg = RendererRegistry()

        def note(element_id, arguments, placement):
            return arguments

        assert reg.register("NoteCard")(note) is note
        assert reg.get("NoteCard") is note

    @pytest.mark.unit
    def test_register_directly(self):
        reg = RendererRegistry()
        renderer = MagicMock()
        reg.register("StatCard", renderer)
        assert "StatCard" in reg
        assert reg.names() == ["StatCard"]
        assert len(reg) == 1

    @pytest.mark.unit
    def test_registries_are_independent(self):
        first = RendererRegistry({"A": MagicMock()})
        second = RendererRegistry()
        assert "A" in first
        assert "A" not in second
        assert second.get("A") is None


class TestRenderState:
    """Tests for render_state."""

    @pytest.mark.unit
    def test_renders_in_order(self, registry, sample_state):
        rendered = render_state(sample_state, registry)
        assert [r.output for r in rendered] == ["Revenue: $45,231", "Users: 2,350"]
        assert all(not r.inert for r in rendered)

    @pytest.mark.unit
    def test_arguments_passed_unchanged(self):
        renderer = MagicMock(return_value="ok")
        arguments = {"title": "Tasks", "tasks": [{"done": False}], "meta": {"a": 1}}
        state = UIState(
            elements=[
                UIElement(
                    id="t",
                    type="TaskList",
                    arguments=arguments,
                    placement=Placement(x=1, y=2, w=3, h=3),
                )
            ]
        )

        render_state(state, RendererRegistry({"TaskList": renderer}))

        renderer.assert_called_once_with("t", arguments, Placement(x=1, y=2, w=3, h=3))

    @pytest.mark.unit
    def test_hidden_elements_skipped(self, registry, sample_state):
        hidden = sample_state.elements[0].model_copy(update={"visible": False})
        state = sample_state.model_copy(update={"elements": [hidden, sample_state.elements[1]]})
        assert [r.element_id for r in render_state(state, registry)] == ["users"]

    @pytest.mark.unit
    def test_unknown_type_renders_placeholder(self, registry, caplog):
        """A type missing from the registry never crashes rendering."""
        state = UIState(
            elements=[
                UIElement(id="old", type="RetiredChart", arguments={"series": [1, 2]}),
                UIElement(id="rev", type="MetricCard", arguments={"title": "R", "value": "1"}),
            ]
        )

        with caplog.at_level("WARNING"):
            rendered = render_state(state, registry)

        assert rendered[0] == RenderedElement(
            element_id="old",
            element_type="RetiredChart",
            placement=Placement(),
            output=placeholder_renderer("old", "RetiredChart", Placement()),
            inert=True,
        )
        assert rendered[1].output == "R: 1"
        assert "RetiredChart" in caplog.text

    @pytest.mark.unit
    def test_custom_placeholder(self):
        registry = RendererRegistry(placeholder=lambda element_id, element_type, placement: None)
        state = UIState(elements=[UIElement(id="x", type="Gone")])
        (rendered,) = render_state(state, registry)
        assert rendered.inert
        assert rendered.output is None

    @pytest.mark.unit
    def test_empty_state(self, registry):
        assert render_state(UIState(), registry) == []
