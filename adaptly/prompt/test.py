"""Tests for PromptBuilder module."""

import pytest

from adaptly.prompt import LayoutPrompt, PromptBuilder, PromptConfig, PromptContext
from adaptly.state import Capacity, UIElement, UIState


class TestPromptConfig:
    """Tests for PromptConfig dataclass."""

    @pytest.mark.unit
    def test_default_config(self):
        config = PromptConfig()
        assert config.include_schema is True
        assert config.include_current_elements is True
        assert config.max_current_elements == 20


class TestPromptBuilder:
    """Tests for PromptBuilder class."""

    @pytest.mark.unit
    def test_sections_present(self, metric_schema, sample_state):
        """Goal, catalogue, current layout and capacity are embedded."""
        prompt = PromptBuilder().build(
            "show revenue metrics", sample_state, metric_schema, Capacity(6, 4)
        )

        assert '"show revenue metrics"' in prompt
        assert "## Component Catalogue" in prompt
        assert "MetricCard" in prompt
        assert '"changeType"' in prompt
        assert "- Elements: 2 (2 visible)" in prompt
        assert "revenue (MetricCard)" in prompt
        assert "6x4 grid tracks" in prompt
        assert '"elements"' in prompt

    @pytest.mark.unit
    def test_no_schema(self, metric_schema):
        config = PromptConfig(include_schema=False)
        prompt = PromptBuilder(config=config).build(
            "notes", UIState(), metric_schema, Capacity(6, 6)
        )
        assert "## Component Catalogue" not in prompt
        assert "## User Request" in prompt

    @pytest.mark.unit
    def test_current_elements_truncated(self, metric_schema):
        state = UIState(
            elements=[
                UIElement(id=f"n{i}", type="NoteCard", arguments={"title": "t"})
                for i in range(5)
            ]
        )
        config = PromptConfig(max_current_elements=2)
        prompt = PromptBuilder(config=config).build(
            "x", state, metric_schema, Capacity(6, 6)
        )
        assert "n1 (NoteCard)" in prompt
        assert "n2 (NoteCard)" not in prompt
        assert "and 3 more" in prompt

    @pytest.mark.unit
    def test_build_with_context(self, metric_schema, sample_state):
        request, context = PromptBuilder().build_with_context(
            "kpis", sample_state, metric_schema, Capacity(6, 6)
        )

        assert isinstance(context, PromptContext)
        assert context.goal == "kpis"
        assert context.schema_included is True
        assert context.component_count == 4
        assert context.element_count == 2
        assert context.total_tokens_estimate == len(request.text) // 4

    @pytest.mark.unit
    def test_request_split_by_role(self, metric_schema, sample_state):
        """Rules and reply contract are the system part; the rest is per request."""
        builder = PromptBuilder()
        request = builder.build_request(
            "kpis", sample_state, metric_schema, Capacity(6, 6)
        )

        assert isinstance(request, LayoutPrompt)
        assert request.system == builder.system_prompt
        assert "JSON" in request.system
        assert '"rationale"' in request.system
        assert "kpis" not in request.system
        assert '"kpis"' in request.user
        assert "## Component Catalogue" in request.user
        assert "Rules:" not in request.user
        assert builder.build("kpis", sample_state, metric_schema, Capacity(6, 6)) == (
            request.text
        )
