"""Unit tests for the UI-State model."""

import pytest
from pydantic import ValidationError

from adaptly.state import ArrangementMode, Placement, UIElement, UIState


class TestArrangementMode:
    """Tests for ArrangementMode parsing."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("grid", ArrangementMode.GRID),
            ("FLOW", ArrangementMode.FLOW),
            ("flex", ArrangementMode.FLOW),
            (" absolute ", ArrangementMode.ABSOLUTE),
        ],
    )
    def test_parse(self, raw, expected):
        assert ArrangementMode.parse(raw) is expected

    @pytest.mark.unit
    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            ArrangementMode.parse("masonry")


class TestUIElement:
    """Tests for UIElement."""

    @pytest.mark.unit
    def test_defaults(self):
        element = UIElement(id="a", type="MetricCard")
        assert element.arguments == {}
        assert element.placement == Placement()
        assert element.visible is True

    @pytest.mark.unit
    def test_legacy_aliases(self):
        """props/position spellings are accepted."""
        element = UIElement.model_validate(
            {
                "id": "a",
                "type": "MetricCard",
                "props": {"title": "Revenue"},
                "position": {"x": 1, "y": 2, "w": 3, "h": 1},
            }
        )
        assert element.arguments == {"title": "Revenue"}
        assert element.placement.x == 1

    @pytest.mark.unit
    def test_negative_placement_rejected(self):
        with pytest.raises(ValidationError):
            UIElement.model_validate(
                {"id": "a", "type": "T", "position": {"x": -1, "y": 0, "w": 1, "h": 1}}
            )

    @pytest.mark.unit
    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            UIElement(id="", type="T")

    @pytest.mark.unit
    def test_with_arguments_merges(self):
        element = UIElement(id="a", type="T", arguments={"title": "x", "value": "1"})
        updated = element.with_arguments({"value": "2"})
        assert updated.arguments == {"title": "x", "value": "2"}
        assert element.arguments["value"] == "1"


class TestUIState:
    """Tests for UIState."""

    @pytest.mark.unit
    def test_defaults(self):
        state = UIState()
        assert state.elements == []
        assert state.arrangement_mode is ArrangementMode.GRID
        assert state.spacing == 6
        assert state.track_count == 6

    @pytest.mark.unit
    def test_spacing_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            UIState(spacing=-1)

    @pytest.mark.unit
    def test_track_count_at_least_one(self):
        with pytest.raises(ValidationError):
            UIState(track_count=0)

    @pytest.mark.unit
    def test_find_and_ids(self, sample_state):
        assert sample_state.ids == ["revenue", "users"]
        assert sample_state.find("users").type == "MetricCard"
        assert sample_state.find("missing") is None

    @pytest.mark.unit
    def test_record_round_trip(self, sample_state):
        record = sample_state.to_record()

        assert record["arrangementMode"] == "grid"
        assert record["trackCount"] == 6
        assert record["elements"][0]["props"]["title"] == "Revenue"
        assert UIState.from_record(record) == sample_state

    @pytest.mark.unit
    def test_from_legacy_record(self):
        """Records using the components/layout/columns spelling load."""
        state = UIState.from_record(
            {
                "components": [{"id": "a", "type": "T", "props": {}}],
                "layout": "flex",
                "spacing": 4,
                "columns": 3,
            }
        )
        assert state.arrangement_mode is ArrangementMode.FLOW
        assert state.track_count == 3
        assert state.ids == ["a"]

    @pytest.mark.unit
    def test_layout_object_form(self):
        state = UIState.model_validate({"layout": {"type": "absolute"}})
        assert state.arrangement_mode is ArrangementMode.ABSOLUTE

    @pytest.mark.unit
    def test_summary(self, sample_state):
        summary = sample_state.summary()
        assert summary["elementCount"] == 2
        assert summary["types"] == {"MetricCard": 2}
        assert summary["arrangementMode"] == "grid"

    @pytest.mark.unit
    def test_copy_state_is_independent(self, sample_state):
        copied = sample_state.copy_state()
        copied.elements.clear()
        assert len(sample_state.elements) == 2
