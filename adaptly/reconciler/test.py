"""Tests for the Adaptation Reconciler."""

import json
import threading
from unittest.mock import MagicMock

import pytest

from adaptly.config import AdaptlyConfig
from adaptly.llm import Gateway, GenerationResult, ScriptedBackend
from adaptly.schema import ConfigurationError
from adaptly.state import ArrangementMode, LayoutHints, UIElement, UIState
from adaptly.storage import InMemoryStorage, SQLiteStorage, StateStore
from adaptly.validation import RejectionReason

from .lib import BUSY_MESSAGE, AdaptationReconciler, ReconcilerStatus, build_reconciler

KEY = "dashboard"
VERSION = "1.0.0"


def _metric(element_id, title="Revenue", value="$45,231", **extra):
    return {
        "id": element_id,
        "type": "MetricCard",
        "props": {"title": title, "value": value, **extra},
        "position": {"x": 0, "y": 0, "w": 2, "h": 1},
    }


@pytest.fixture
def store():
    return StateStore(InMemoryStorage())


@pytest.fixture
def reconciler(metric_schema, store):
    rec = AdaptationReconciler(
        metric_schema, store=store, storage_key=KEY, storage_version=VERSION
    )
    yield rec
    rec.close()


def _gateway(*replies, **kwargs):
    return Gateway(ScriptedBackend(list(replies), **kwargs))


class TestConstruction:
    """Tests for reconciler construction."""

    @pytest.mark.unit
    def test_malformed_schema_raises(self):
        with pytest.raises(ConfigurationError):
            AdaptationReconciler({"version": "1", "components": {}})

    @pytest.mark.unit
    def test_accepts_raw_schema_document(self, schema_document):
        rec = AdaptationReconciler(schema_document)
        assert "MetricCard" in rec.schema

    @pytest.mark.unit
    def test_invalid_default_state_raises(self, metric_schema):
        default = UIState(elements=[UIElement(id="x", type="PieChart")])
        with pytest.raises(ConfigurationError, match="Default state"):
            AdaptationReconciler(metric_schema, default_state=default)

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["", "index:ui"])
    def test_unusable_storage_key_raises(self, metric_schema, store, key):
        with pytest.raises(ConfigurationError, match="storage key"):
            AdaptationReconciler(metric_schema, store=store, storage_key=key)

    @pytest.mark.unit
    def test_starts_from_default(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        assert rec.state == sample_state
        assert rec.status == ReconcilerStatus()

    @pytest.mark.unit
    def test_restores_persisted_state(self, metric_schema, store, sample_state):
        store.save(KEY, VERSION, sample_state)
        rec = AdaptationReconciler(
            metric_schema, store=store, storage_key=KEY, storage_version=VERSION
        )
        assert rec.state == sample_state

    @pytest.mark.unit
    def test_restore_refilters_against_schema(self, metric_schema, store, sample_state):
        """Elements whose type left the schema are dropped on load."""
        stale = sample_state.model_copy(
            update={
                "elements": [
                    *sample_state.elements,
                    UIElement(id="gone", type="RetiredWidget"),
                ]
            }
        )
        store.save(KEY, VERSION, stale)
        rec = AdaptationReconciler(
            metric_schema, store=store, storage_key=KEY, storage_version=VERSION
        )
        assert rec.state.ids == ["revenue", "users"]

    @pytest.mark.unit
    def test_restore_ignores_other_version(self, metric_schema, store, sample_state):
        store.save(KEY, "0.9.0", sample_state)
        rec = AdaptationReconciler(
            metric_schema, store=store, storage_key=KEY, storage_version=VERSION
        )
        assert rec.state.elements == []

    @pytest.mark.unit
    def test_state_is_a_copy(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        snapshot = rec.state
        snapshot.elements.clear()
        assert len(rec.state.elements) == 2


class TestReplaceAll:
    """Tests for replace_all."""

    @pytest.mark.unit
    def test_replaces_wholesale(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        rec.replace_all([_metric("sales", title="Sales")])
        assert rec.state.ids == ["sales"]

    @pytest.mark.unit
    def test_idempotent(self, reconciler):
        batch = [_metric("a"), _metric("b", title="Users", value="1,204")]
        reconciler.replace_all(batch)
        first = reconciler.state
        reconciler.replace_all(batch)
        assert reconciler.state == first

    @pytest.mark.unit
    def test_end_to_end_missing_required(self, reconciler):
        """Only the complete card survives the batch."""
        report = reconciler.replace_all(
            [
                {"type": "MetricCard", "arguments": {"title": "Revenue"}},
                {"type": "MetricCard", "arguments": {"title": "Users", "value": "1,204"}},
            ]
        )
        assert report.reasons() == [RejectionReason.MISSING_REQUIRED]
        state = reconciler.state
        assert len(state.elements) == 1
        assert state.elements[0].arguments == {"title": "Users", "value": "1,204"}

    @pytest.mark.unit
    def test_applies_valid_hints(self, reconciler):
        reconciler.replace_all([_metric("a")], LayoutHints("flex", 2, 4))
        state = reconciler.state
        assert state.arrangement_mode is ArrangementMode.FLOW
        assert state.spacing == 2
        assert state.track_count == 4

    @pytest.mark.unit
    def test_ignores_invalid_hints(self, reconciler, caplog):
        with caplog.at_level("WARNING", logger="adaptly.reconciler.lib"):
            reconciler.replace_all(
                [_metric("a")], LayoutHints("diagonal", -3, 2)
            )
        state = reconciler.state
        assert state.arrangement_mode is ArrangementMode.GRID
        assert state.spacing == 6
        assert state.track_count == 2
        assert "Ignoring layout hint" in caplog.text

    @pytest.mark.unit
    def test_malformed_batch_empties_state(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        report = rec.replace_all("not a list")
        assert rec.state.elements == []
        assert report.reasons() == [RejectionReason.MALFORMED]


class TestElementMutations:
    """Tests for add, remove and update."""

    @pytest.mark.unit
    def test_add(self, reconciler, metric_candidate):
        report = reconciler.add(metric_candidate)
        assert report.ok
        assert reconciler.state.ids == ["sales"]

    @pytest.mark.unit
    def test_add_invalid_is_noop(self, reconciler):
        report = reconciler.add({"id": "x", "type": "MetricCard", "props": {"title": "T"}})
        assert report.reasons() == [RejectionReason.MISSING_REQUIRED]
        assert reconciler.state.elements == []

    @pytest.mark.unit
    def test_add_duplicate_id_rejected(self, reconciler, metric_candidate):
        reconciler.add(metric_candidate)
        report = reconciler.add({**metric_candidate, "props": {"title": "B", "value": "2"}})
        assert report.reasons() == [RejectionReason.DUPLICATE_ID]
        assert reconciler.state.find("sales").arguments["title"] == "Sales"

    @pytest.mark.unit
    def test_add_ui_element(self, reconciler):
        element = UIElement(id="n", type="NoteCard", arguments={"title": "Todo"})
        assert reconciler.add(element).ok
        assert reconciler.state.find("n") == element

    @pytest.mark.unit
    def test_add_without_id_avoids_screen_ids(self, reconciler):
        reconciler.add(_metric("MetricCard-0"))
        unnamed = _metric(None)
        del unnamed["id"]
        report = reconciler.add(unnamed)
        assert report.ok
        assert reconciler.state.ids == ["MetricCard-0", "MetricCard-0-2"]

    @pytest.mark.unit
    def test_remove_is_idempotent(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        assert rec.remove("revenue") is True
        assert rec.remove("revenue") is False
        assert rec.remove("never-existed") is False
        assert rec.state.ids == ["users"]

    @pytest.mark.unit
    def test_update_merges_arguments(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        report = rec.update("users", {"value": "2,400"})
        assert report.ok
        users = rec.state.find("users")
        assert users.arguments == {"title": "Users", "value": "2,400", "change": "+12%"}

    @pytest.mark.unit
    def test_update_drops_newly_invalid(self, metric_schema, sample_state):
        """An update introducing a disallowed value removes the element."""
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        report = rec.update("revenue", {"changeType": "sideways"})
        assert report.reasons() == [RejectionReason.DISALLOWED_VALUE]
        assert rec.state.ids == ["users"]

    @pytest.mark.unit
    def test_update_unknown_id_is_noop(self, metric_schema, sample_state):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        report = rec.update("ghost", {"value": "1"})
        assert report.ok
        assert rec.state == sample_state


class TestArrangement:
    """Tests for set_arrangement."""

    @pytest.mark.unit
    def test_set_arrangement(self, reconciler):
        reconciler.set_arrangement("absolute", spacing=0, track_count=12)
        state = reconciler.state
        assert state.arrangement_mode is ArrangementMode.ABSOLUTE
        assert (state.spacing, state.track_count) == (0, 12)

    @pytest.mark.unit
    def test_mode_only_keeps_metrics(self, reconciler):
        reconciler.set_arrangement(ArrangementMode.FLOW)
        assert (reconciler.state.spacing, reconciler.state.track_count) == (6, 6)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"mode": "diagonal"},
            {"mode": "grid", "spacing": -1},
            {"mode": "grid", "track_count": 0},
            {"mode": "grid", "track_count": True},
        ],
    )
    def test_invalid_arguments_raise(self, reconciler, kwargs):
        with pytest.raises(ValueError):
            reconciler.set_arrangement(**kwargs)
        assert reconciler.state.arrangement_mode is ArrangementMode.GRID


class TestPersistence:
    """Tests for background and explicit persistence."""

    @pytest.mark.unit
    def test_mutation_persists_in_background(self, reconciler, store, metric_candidate):
        reconciler.add(metric_candidate)
        assert reconciler.flush(timeout=5)
        assert store.load(KEY, VERSION).ids == ["sales"]

    @pytest.mark.unit
    def test_writes_land_in_order(self, reconciler, store):
        for i in range(20):
            reconciler.replace_all([_metric(f"m{i}")])
        reconciler.flush(timeout=5)
        assert store.load(KEY, VERSION).ids == ["m19"]

    @pytest.mark.unit
    def test_remove_unknown_does_not_persist(self, metric_schema):
        store = MagicMock(spec=StateStore)
        store.load.return_value = None
        rec = AdaptationReconciler(metric_schema, store=store)
        rec.remove("ghost")
        rec.flush()
        store.save.assert_not_called()

    @pytest.mark.unit
    def test_save_is_synchronous(self, reconciler, store, metric_candidate):
        reconciler.add(metric_candidate)
        assert reconciler.save() is True
        assert store.exists(KEY, VERSION)

    @pytest.mark.unit
    def test_save_without_store(self, metric_schema):
        assert AdaptationReconciler(metric_schema).save() is False

    @pytest.mark.unit
    def test_persist_failure_is_swallowed(self, metric_schema, metric_candidate):
        storage = MagicMock()
        storage.get.return_value = None
        storage.set.side_effect = OSError("disk full")
        rec = AdaptationReconciler(metric_schema, store=StateStore(storage))

        report = rec.add(metric_candidate)
        rec.flush(timeout=5)

        assert report.ok
        assert rec.state.ids == ["sales"]
        assert rec.save() is False

    @pytest.mark.unit
    def test_round_trip_via_new_reconciler(self, metric_schema, tmp_path, metric_candidate):
        db_path = tmp_path / "ui.db"
        with AdaptationReconciler(
            metric_schema, store=StateStore(SQLiteStorage(db_path)), storage_key=KEY
        ) as first:
            first.add(metric_candidate)
            first.set_arrangement("flow", spacing=3)
            expected = first.state

        with AdaptationReconciler(
            metric_schema, store=StateStore(SQLiteStorage(db_path)), storage_key=KEY
        ) as second:
            assert second.state == expected
            assert second.has_stored_state()

    @pytest.mark.unit
    def test_load_from_storage(self, reconciler, store, sample_state):
        assert reconciler.load_from_storage() is None
        store.save(KEY, VERSION, sample_state)
        assert reconciler.load_from_storage() == sample_state
        assert reconciler.state == sample_state

    @pytest.mark.unit
    def test_close_is_idempotent(self, metric_schema, store):
        rec = AdaptationReconciler(metric_schema, store=store)
        rec.close()
        rec.close()


class TestReset:
    """Tests for reset_to_default."""

    @pytest.mark.unit
    def test_reset_clears_persistence(self, metric_schema, store, sample_state):
        rec = AdaptationReconciler(
            metric_schema,
            default_state=sample_state,
            store=store,
            storage_key=KEY,
            storage_version=VERSION,
        )
        rec.replace_all([_metric("other")])
        assert rec.save()

        assert rec.reset_to_default() is True

        assert not store.exists(KEY)
        assert not rec.has_stored_state()
        assert rec.state == sample_state

    @pytest.mark.unit
    def test_reset_clears_status(self, metric_schema):
        rec = AdaptationReconciler(
            metric_schema, gateway=_gateway(Exception("connection error"))
        )
        rec.submit_goal("anything")
        assert rec.status.last_error

        rec.reset_to_default()
        assert rec.status == ReconcilerStatus()

    @pytest.mark.unit
    def test_reset_without_default_is_empty(self, reconciler, metric_candidate):
        reconciler.add(metric_candidate)
        reconciler.reset_to_default()
        assert reconciler.state == UIState()


class TestSubmitGoal:
    """Tests for submit_goal."""

    @pytest.mark.unit
    def test_round_trip(self, metric_schema, store):
        reply = json.dumps(
            {
                "elements": [_metric("rev"), _metric("bad", value="$0")],
                "layout": {"type": "grid", "spacing": 4, "columns": 4},
                "rationale": "Revenue up front",
            }
        )
        rec = AdaptationReconciler(
            metric_schema, store=store, storage_key=KEY, gateway=_gateway(f"```json\n{reply}\n```")
        )

        status = rec.submit_goal("show revenue")
        rec.flush(timeout=5)

        assert status == ReconcilerStatus(last_rationale="Revenue up front")
        assert rec.state.ids == ["rev"]
        assert rec.state.track_count == 4
        assert store.load(KEY, VERSION).ids == ["rev"]

    @pytest.mark.unit
    def test_capacity_sent_to_backend(self, metric_schema):
        backend = ScriptedBackend(["{}"])
        rec = AdaptationReconciler(
            metric_schema, gateway=Gateway(backend), capacity_height=9
        )
        rec.set_arrangement("grid", track_count=8)
        rec.submit_goal("layout please")
        prompt, _ = backend.calls[0]
        assert "8x9" in prompt

    @pytest.mark.unit
    def test_prose_reply_leaves_state(self, metric_schema, sample_state):
        reply = "Which metrics matter most to you?"
        rec = AdaptationReconciler(
            metric_schema, default_state=sample_state, gateway=_gateway(reply)
        )
        status = rec.submit_goal("make it better")
        assert status.last_rationale == reply
        assert status.last_error is None
        assert rec.state == sample_state

    @pytest.mark.unit
    def test_gateway_error_leaves_state(self, metric_schema, sample_state):
        rec = AdaptationReconciler(
            metric_schema,
            default_state=sample_state,
            gateway=_gateway(Exception("You exceeded your current quota")),
        )
        status = rec.submit_goal("show revenue")
        assert not status.is_processing
        assert "quota" in status.last_error.lower()
        assert rec.state == sample_state

    @pytest.mark.unit
    def test_timeout_surfaces_network_error(self, metric_schema):
        rec = AdaptationReconciler(
            metric_schema, gateway=_gateway('{"elements": []}', delay=0.5)
        )
        status = rec.submit_goal("show revenue", timeout=0.05)
        assert "could not be reached" in status.last_error

    @pytest.mark.unit
    def test_all_candidates_rejected_clears_screen(
        self, metric_schema, sample_state, caplog
    ):
        reply = json.dumps({"elements": [{"type": "PieChart", "props": {}}]})
        rec = AdaptationReconciler(
            metric_schema, default_state=sample_state, gateway=_gateway(reply)
        )
        with caplog.at_level("WARNING", logger="adaptly.reconciler.lib"):
            status = rec.submit_goal("pie chart please")

        assert status.last_error is None
        assert rec.state.elements == []
        assert "Every proposed element was rejected" in caplog.text

    @pytest.mark.unit
    def test_reentrant_call_rejected(self, metric_schema):
        started = threading.Event()
        release = threading.Event()

        def generate(prompt, **kwargs):
            started.set()
            release.wait(5)
            return GenerationResult(
                content=json.dumps({"elements": [_metric("first")]}),
                finish_reason="stop",
                usage={},
                model="mock",
            )

        backend = MagicMock()
        backend.name = "mock:model"
        backend.generate.side_effect = generate
        rec = AdaptationReconciler(metric_schema, gateway=Gateway(backend))

        worker = threading.Thread(target=rec.submit_goal, args=("first goal",))
        worker.start()
        assert started.wait(5)
        assert rec.status.is_processing

        second = rec.submit_goal("second goal")
        release.set()
        worker.join(5)

        assert second.last_error == BUSY_MESSAGE
        assert backend.generate.call_count == 1
        assert rec.state.ids == ["first"]
        assert not rec.status.is_processing

    @pytest.mark.unit
    def test_hints_only_reply(self, metric_schema, sample_state):
        rec = AdaptationReconciler(
            metric_schema,
            default_state=sample_state,
            gateway=_gateway('{"elements": [], "layout": "flow"}'),
        )
        rec.submit_goal("stack them")
        assert rec.state.arrangement_mode is ArrangementMode.FLOW
        assert rec.state.ids == ["revenue", "users"]


class TestApplyCommand:
    """Tests for the keyword fallback."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text,mode",
        [
            ("switch to grid", ArrangementMode.GRID),
            ("use a flex layout", ArrangementMode.FLOW),
            ("Flow please", ArrangementMode.FLOW),
            ("absolute positioning", ArrangementMode.ABSOLUTE),
        ],
    )
    def test_mode_keywords(self, metric_schema, text, mode):
        rec = AdaptationReconciler(metric_schema)
        rec.set_arrangement("absolute" if mode is ArrangementMode.GRID else "grid")
        assert rec.apply_command(text) is True
        assert rec.state.arrangement_mode is mode

    @pytest.mark.unit
    def test_reset_keyword(self, metric_schema, sample_state, metric_candidate):
        rec = AdaptationReconciler(metric_schema, default_state=sample_state)
        rec.add(metric_candidate)
        assert rec.apply_command("Reset everything")
        assert rec.state == sample_state

    @pytest.mark.unit
    def test_no_match(self, metric_schema):
        rec = AdaptationReconciler(metric_schema)
        assert rec.apply_command("make it pop") is False

    @pytest.mark.unit
    def test_submit_goal_without_gateway(self, metric_schema):
        rec = AdaptationReconciler(metric_schema)
        status = rec.submit_goal("flex layout")
        assert status.last_error is None
        assert status.last_rationale == "Applied command: flex layout"
        assert rec.state.arrangement_mode is ArrangementMode.FLOW

    @pytest.mark.unit
    def test_submit_goal_without_gateway_no_match(self, metric_schema):
        status = AdaptationReconciler(metric_schema).submit_goal("dark mode")
        assert "no command matched" in status.last_error


class TestBuildReconciler:
    """Tests for build_reconciler."""

    @pytest.mark.unit
    def test_scripted_provider(self, metric_schema):
        config = AdaptlyConfig(schema=metric_schema, provider="scripted")
        with build_reconciler(config) as rec:
            status = rec.submit_goal("anything")
        # Scripted backend with no script replies with empty text
        assert status.last_error is None
        assert rec.state.elements == []

    @pytest.mark.unit
    def test_missing_credentials_falls_back(self, metric_schema, monkeypatch, caplog):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config = AdaptlyConfig(schema=metric_schema, provider="openai")
        with caplog.at_level("WARNING"):
            rec = build_reconciler(config)
        status = rec.submit_goal("grid")
        assert status.last_error is None
        assert "keyword commands" in caplog.text
        rec.close()

    @pytest.mark.unit
    def test_sqlite_storage(self, metric_schema, tmp_path, metric_candidate):
        db_path = tmp_path / "state.db"
        config = AdaptlyConfig(
            schema=metric_schema, provider=None, storage_path=db_path, storage_key=KEY
        )
        with build_reconciler(config) as rec:
            rec.add(metric_candidate)
        assert StateStore(SQLiteStorage(db_path)).load(KEY, VERSION).ids == ["sales"]

    @pytest.mark.unit
    def test_storage_disabled(self, metric_schema, metric_candidate):
        config = AdaptlyConfig(schema=metric_schema, provider=None, storage_enabled=False)
        with build_reconciler(config) as rec:
            rec.add(metric_candidate)
            assert rec.save() is False
            assert not rec.has_stored_state()
