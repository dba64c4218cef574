"""Unit tests for the Schema Validator."""

import logging

import pytest

from adaptly.validation import (
    DEFAULT_DEGENERATE_RULES,
    DegenerateContentRule,
    RejectionReason,
    ValidationRejection,
    filter_elements,
    validate_element,
)


def _metric(element_id="m1", **props):
    arguments = {"title": "Revenue", "value": "$45,231"}
    arguments.update(props)
    return {"id": element_id, "type": "MetricCard", "props": arguments}


class TestFailClosed:
    """Anything not conforming to the schema is dropped."""

    @pytest.mark.unit
    def test_valid_candidate_passes(self, metric_schema, metric_candidate):
        report = filter_elements([metric_candidate], metric_schema)
        assert report.ok
        assert report.elements[0].id == "sales"
        assert report.elements[0].arguments["changeType"] == "positive"

    @pytest.mark.unit
    def test_unknown_type(self, metric_schema):
        report = filter_elements(
            [{"id": "x", "type": "FancyChart", "props": {}}], metric_schema
        )
        assert report.elements == []
        assert report.reasons() == [RejectionReason.UNKNOWN_TYPE]
        assert report.rejections[0].element_id == "x"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "candidate",
        [
            "not an object",
            42,
            None,
            {"id": "x"},
            {"id": ["x"], "type": "MetricCard"},
            {"id": 7, "type": "MetricCard"},
        ],
    )
    def test_malformed_candidates(self, metric_schema, candidate):
        report = filter_elements([candidate], metric_schema)
        assert report.elements == []
        assert report.reasons() == [RejectionReason.MALFORMED]

    @pytest.mark.unit
    def test_bad_placement_is_malformed(self, metric_schema):
        candidate = _metric()
        candidate["position"] = {"x": -3, "y": 0, "w": 1, "h": 1}
        report = filter_elements([candidate], metric_schema)
        assert report.reasons() == [RejectionReason.MALFORMED]

    @pytest.mark.unit
    @pytest.mark.parametrize("candidates", [None, "text", {"elements": []}, 3])
    def test_non_list_input_never_raises(self, metric_schema, candidates):
        report = filter_elements(candidates, metric_schema)
        assert report.elements == []
        assert report.reasons() == [RejectionReason.MALFORMED]

    @pytest.mark.unit
    def test_empty_list(self, metric_schema):
        report = filter_elements([], metric_schema)
        assert report.elements == []
        assert report.ok


class TestRequiredArguments:
    """Required arguments must be present and non-empty."""

    @pytest.mark.unit
    def test_missing_required(self, metric_schema):
        candidate = {"id": "m1", "type": "MetricCard", "props": {"title": "Revenue"}}
        report = filter_elements([candidate], metric_schema)
        assert report.reasons() == [RejectionReason.MISSING_REQUIRED]
        assert "value" in report.rejections[0].message

    @pytest.mark.unit
    @pytest.mark.parametrize("empty", ["", "   ", None])
    def test_empty_required(self, metric_schema, empty):
        report = filter_elements([_metric(title=empty)], metric_schema)
        assert report.reasons() == [RejectionReason.MISSING_REQUIRED]

    @pytest.mark.unit
    def test_optional_may_be_absent(self, metric_schema):
        report = filter_elements([_metric()], metric_schema)
        assert report.ok


class TestTypeMismatch:
    """A wrongly typed argument drops only its element."""

    @pytest.mark.unit
    def test_isolation(self, metric_schema):
        """Other candidates in the batch are unaffected."""
        candidates = [
            _metric("a"),
            _metric("b", progress="75"),
            _metric("c", progress=75),
        ]
        report = filter_elements(candidates, metric_schema)

        assert [e.id for e in report.elements] == ["a", "c"]
        assert report.rejections[0].element_id == "b"
        assert report.rejections[0].reason is RejectionReason.TYPE_MISMATCH

    @pytest.mark.unit
    def test_bool_is_not_a_number(self, metric_schema):
        report = filter_elements([_metric(progress=True)], metric_schema)
        assert report.reasons() == [RejectionReason.TYPE_MISMATCH]

    @pytest.mark.unit
    def test_float_is_a_number(self, metric_schema):
        report = filter_elements([_metric(progress=12.5)], metric_schema)
        assert report.ok

    @pytest.mark.unit
    def test_object_prop_for_text(self, metric_schema):
        """Nested objects where text is expected are rejected."""
        report = filter_elements(
            [_metric(change={"label": "up", "onClick": "go()"})], metric_schema
        )
        assert report.reasons() == [RejectionReason.TYPE_MISMATCH]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "props,ok",
        [
            ({"tasks": ["a", "b"]}, True),
            ({"tasks": "a,b"}, False),
            ({"meta": {"owner": "me"}}, True),
            ({"meta": ["owner"]}, False),
        ],
    )
    def test_list_and_structured(self, metric_schema, props, ok):
        candidate = {"id": "t", "type": "TaskList", "props": {"title": "Todo", **props}}
        report = filter_elements([candidate], metric_schema)
        assert report.ok is ok

    @pytest.mark.unit
    def test_boolean(self, metric_schema):
        good = {"id": "n1", "type": "NoteCard", "props": {"title": "x", "pinned": True}}
        bad = {"id": "n2", "type": "NoteCard", "props": {"title": "x", "pinned": "yes"}}
        report = filter_elements([good, bad], metric_schema)
        assert [e.id for e in report.elements] == ["n1"]


class TestAllowedValues:
    """Closed value sets."""

    @pytest.mark.unit
    def test_disallowed_value(self, metric_schema):
        report = filter_elements([_metric(changeType="sideways")], metric_schema)
        assert report.reasons() == [RejectionReason.DISALLOWED_VALUE]

    @pytest.mark.unit
    def test_allowed_value(self, metric_schema):
        report = filter_elements([_metric(changeType="negative")], metric_schema)
        assert report.ok


class TestDegenerateContent:
    """Placeholder content on metric-like cards."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value",
        ["0", "0.0", "$0", "0%", "Summary", " n/a ", "TBD", "placeholder",
         "Lorem Ipsum", "value"],
    )
    def test_placeholder_values_rejected(self, metric_schema, value):
        report = filter_elements([_metric(value=value)], metric_schema)
        assert report.reasons() == [RejectionReason.DEGENERATE_CONTENT]

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["$45,231", "0.5%", "10", "Summary of Q3"])
    def test_real_values_accepted(self, metric_schema, value):
        report = filter_elements([_metric(value=value)], metric_schema)
        assert report.ok

    @pytest.mark.unit
    def test_stat_card_covered(self, metric_schema):
        candidate = {"id": "s", "type": "StatCard", "props": {"label": "Users", "value": "tbd"}}
        report = filter_elements([candidate], metric_schema)
        assert report.reasons() == [RejectionReason.DEGENERATE_CONTENT]

    @pytest.mark.unit
    def test_other_types_not_covered(self, metric_schema):
        """The heuristic does not touch types outside its allow-list."""
        candidate = {"id": "n", "type": "NoteCard", "props": {"title": "placeholder"}}
        report = filter_elements([candidate], metric_schema)
        assert report.ok

    @pytest.mark.unit
    def test_rules_injectable(self, metric_schema):
        rule = DegenerateContentRule(
            element_types=frozenset({"NoteCard"}),
            arguments=frozenset({"title"}),
            placeholder_phrases=frozenset({"untitled"}),
        )
        candidate = {"id": "n", "type": "NoteCard", "props": {"title": "Untitled"}}

        assert filter_elements([candidate], metric_schema, rules=[rule]).reasons() == [
            RejectionReason.DEGENERATE_CONTENT
        ]
        assert filter_elements([_metric(value="0")], metric_schema, rules=()).ok

    @pytest.mark.unit
    def test_numeric_zero(self):
        rule = DEFAULT_DEGENERATE_RULES[0]
        assert rule.is_degenerate(0)
        assert rule.is_degenerate(0.0)
        assert not rule.is_degenerate(3)
        assert not rule.is_degenerate(False)


class TestDuplicatesAndOrder:
    """Batch-level behavior."""

    @pytest.mark.unit
    def test_later_duplicate_dropped(self, metric_schema):
        report = filter_elements(
            [_metric("a", title="First"), _metric("a", title="Second")], metric_schema
        )
        assert len(report.elements) == 1
        assert report.elements[0].arguments["title"] == "First"
        assert report.reasons() == [RejectionReason.DUPLICATE_ID]

    @pytest.mark.unit
    def test_order_preserved(self, metric_schema):
        candidates = [_metric(str(i)) for i in range(5)]
        candidates.insert(2, {"id": "bad", "type": "Nope"})
        report = filter_elements(candidates, metric_schema)
        assert [e.id for e in report.elements] == ["0", "1", "2", "3", "4"]

    @pytest.mark.unit
    def test_undeclared_arguments_pass_through(self, metric_schema):
        report = filter_elements([_metric(icon="chart")], metric_schema)
        assert report.elements[0].arguments["icon"] == "chart"

    @pytest.mark.unit
    def test_rejections_logged(self, metric_schema, caplog):
        with caplog.at_level(logging.WARNING, logger="adaptly.validation.lib"):
            filter_elements([{"id": "x", "type": "Nope"}], metric_schema)
        assert any("unknown_type" in record.message for record in caplog.records)


class TestGeneratedIds:
    """Candidates without an id are named after their type and position."""

    @pytest.mark.unit
    def test_batch_without_ids(self, metric_schema):
        report = filter_elements(
            [
                {"type": "MetricCard", "arguments": {"title": "Revenue"}},
                {"type": "MetricCard", "arguments": {"title": "Users", "value": "1,204"}},
            ],
            metric_schema,
        )
        assert [e.id for e in report.elements] == ["MetricCard-1"]
        assert report.elements[0].arguments["value"] == "1,204"
        assert report.reasons() == [RejectionReason.MISSING_REQUIRED]
        assert report.rejections[0].element_id == "MetricCard-0"

    @pytest.mark.unit
    def test_empty_id_is_replaced(self, metric_schema):
        report = filter_elements([{**_metric(), "id": ""}], metric_schema)
        assert [e.id for e in report.elements] == ["MetricCard-0"]

    @pytest.mark.unit
    def test_skips_ids_used_in_batch(self, metric_schema):
        unnamed = _metric()
        del unnamed["id"]
        report = filter_elements([unnamed, _metric("MetricCard-0")], metric_schema)
        assert [e.id for e in report.elements] == ["MetricCard-0-2", "MetricCard-0"]
        assert report.ok

    @pytest.mark.unit
    def test_skips_reserved_ids(self, metric_schema):
        unnamed = _metric()
        del unnamed["id"]
        report = filter_elements(
            [unnamed], metric_schema, reserved_ids=["MetricCard-0", "MetricCard-0-2"]
        )
        assert [e.id for e in report.elements] == ["MetricCard-0-3"]

    @pytest.mark.unit
    def test_missing_type_uses_generic_prefix(self, metric_schema):
        report = filter_elements([{"props": {}}], metric_schema)
        assert report.reasons() == [RejectionReason.MALFORMED]
        assert report.rejections[0].element_id == "element-0"

    @pytest.mark.unit
    def test_validate_element_requires_id(self, metric_schema):
        unnamed = _metric()
        del unnamed["id"]
        element, rejection = validate_element(unnamed, metric_schema)
        assert element is None
        assert rejection.reason is RejectionReason.MALFORMED


class TestValidateElement:
    """Tests for single-element validation."""

    @pytest.mark.unit
    def test_accepts(self, metric_schema, metric_candidate):
        element, rejection = validate_element(metric_candidate, metric_schema)
        assert rejection is None
        assert element.placement.w == 2

    @pytest.mark.unit
    def test_rejects(self, metric_schema):
        element, rejection = validate_element({"id": "x", "type": "Nope"}, metric_schema)
        assert element is None
        assert isinstance(rejection, ValidationRejection)
        assert rejection.element_type == "Nope"

    @pytest.mark.unit
    def test_revalidates_existing_element(self, metric_schema, sample_state):
        element, rejection = validate_element(sample_state.elements[0], metric_schema)
        assert rejection is None
        assert element == sample_state.elements[0]


class TestMetricCardScenario:
    """A mixed backend batch is reduced to its valid, meaningful cards."""

    @pytest.mark.unit
    def test_scenario(self, metric_schema):
        candidates = [
            _metric("revenue", value="$45,231", change="+20.1%", changeType="positive"),
            _metric("empty", value="$0"),
            {"id": "broken", "type": "MetricCard", "props": {"value": "12"}},
            {"id": "chart", "type": "PieChart", "props": {"title": "Share"}},
            _metric("users", value="2,350", progress=75),
        ]
        report = filter_elements(candidates, metric_schema)

        assert [e.id for e in report.elements] == ["revenue", "users"]
        assert {r.element_id: r.reason for r in report.rejections} == {
            "empty": RejectionReason.DEGENERATE_CONTENT,
            "broken": RejectionReason.MISSING_REQUIRED,
            "chart": RejectionReason.UNKNOWN_TYPE,
        }
