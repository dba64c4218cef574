"""Adaptation Reconciler.

Owns the live UI-State and every mutation of it. Candidates from any source
pass through the Schema Validator before they reach the state; mutations
schedule a best-effort persist on a single background worker so writes land
in mutation order and never block or fail the caller.
"""

import logging
import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from typing import Any

from adaptly.config import AdaptlyConfig
from adaptly.llm import Gateway, LLMError, create_llm_backend
from adaptly.schema import ComponentSchema, ConfigurationError, validate_schema
from adaptly.state import ArrangementMode, Capacity, LayoutHints, UIElement, UIState
from adaptly.storage import InMemoryStorage, SQLiteStorage, StateStore, record_key
from adaptly.validation import (
    DEFAULT_DEGENERATE_RULES,
    DegenerateContentRule,
    RejectionReason,
    ValidationRejection,
    ValidationReport,
    filter_elements,
)

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "A layout request is already in progress"


@dataclass(frozen=True)
class ReconcilerStatus:
    """Caller-visible request state.

    Attributes:
        is_processing: True while a submit_goal request is in flight.
        last_rationale: Explanation from the last completed request.
        last_error: Human-readable failure from the last request, if any.
    """

    is_processing: bool = False
    last_rationale: str | None = None
    last_error: str | None = None


def _check_spacing(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"spacing must be a number, got {value!r}")
    if value < 0 or value != int(value):
        raise ValueError(f"spacing must be a non-negative integer, got {value!r}")
    return int(value)


def _check_track_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"track_count must be a number, got {value!r}")
    if value < 1 or value != int(value):
        raise ValueError(f"track_count must be an integer >= 1, got {value!r}")
    return int(value)


class AdaptationReconciler:
    """Single owner of one UI-State.

    Args:
        schema: Component schema (raw document or ComponentSchema). Validated
            here; ConfigurationError propagates.
        default_state: State used at startup and restored on reset.
        store: Persistence layer. None keeps state in memory only.
        storage_key: Application-chosen key. Reconcilers sharing one store
            must use distinct keys.
        storage_version: Version stamped on saved records.
        gateway: Text-generation gateway. None makes submit_goal fall back to
            keyword commands.
        capacity_height: Grid rows offered to the backend as free space.
        rules: Degenerate-content rules passed to the validator.

    Raises:
        ConfigurationError: If the schema is malformed, the storage key is
            empty or reserved, or the default state holds elements the
            schema rejects.

    Example:
        >>> reconciler = AdaptationReconciler(schema, store=StateStore(storage))
        >>> reconciler.replace_all([
        ...     {"id": "rev", "type": "MetricCard",
        ...      "props": {"title": "Revenue", "value": "$45,231"}},
        ... ])
        >>> reconciler.state.ids
        ['rev']
    """

    def __init__(
        self,
        schema: ComponentSchema | Mapping[str, Any],
        *,
        default_state: UIState | None = None,
        store: StateStore | None = None,
        storage_key: str = "adaptly-ui",
        storage_version: str = "1.0.0",
        gateway: Gateway | None = None,
        capacity_height: int = 6,
        rules: Iterable[DegenerateContentRule] = DEFAULT_DEGENERATE_RULES,
    ):
        self._schema = validate_schema(schema)
        try:
            record_key(storage_key, storage_version)
        except ValueError as e:
            raise ConfigurationError(f"Invalid storage key: {e}") from e
        self._rules = tuple(rules)
        self._store = store
        self._storage_key = storage_key
        self._storage_version = storage_version
        self._gateway = gateway
        self._capacity_height = capacity_height

        default = default_state.copy_state() if default_state else UIState()
        report = filter_elements(default.elements, self._schema, rules=self._rules)
        if report.rejections:
            details = "; ".join(r.message for r in report.rejections)
            raise ConfigurationError(f"Default state is not valid for the schema: {details}")
        self._default = default
        self._state = default.copy_state()

        self._busy = threading.Lock()
        self._processing = False
        self._last_rationale: str | None = None
        self._last_error: str | None = None

        self._executor: ThreadPoolExecutor | None = None
        self._pending: list[Future] = []
        self._closed = False

        if self._store is not None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="adaptly-persist"
            )
            self._restore()

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def schema(self) -> ComponentSchema:
        return self._schema

    @property
    def state(self) -> UIState:
        """Independent copy of the current UI-State."""
        return self._state.copy_state()

    @property
    def status(self) -> ReconcilerStatus:
        return ReconcilerStatus(
            is_processing=self._processing,
            last_rationale=self._last_rationale,
            last_error=self._last_error,
        )

    @property
    def capacity(self) -> Capacity:
        """Free space offered to the backend: current tracks by capacity_height."""
        return Capacity(width=self._state.track_count, height=self._capacity_height)

    # =========================================================================
    # Mutations
    # =========================================================================

    def replace_all(
        self,
        candidates: Any,
        layout_hints: LayoutHints | None = None,
    ) -> ValidationReport:
        """Replace every element with the candidates that pass validation.

        Validation completes before the state changes. Layout hints that are
        present and valid are applied; invalid ones are ignored with a warning.

        Returns:
            ValidationReport for the candidate batch.
        """
        report = filter_elements(candidates, self._schema, rules=self._rules)
        state = self._state.model_copy(update={"elements": list(report.elements)})
        if layout_hints is not None:
            state = self._apply_hints(state, layout_hints)
        self._state = state
        logger.debug(
            f"Replaced elements: {report.accepted_count} accepted, "
            f"{report.rejected_count} rejected"
        )
        self._schedule_persist()
        return report

    def add(self, element: UIElement | Mapping[str, Any]) -> ValidationReport:
        """Append one element if it validates and its id is unused.

        An element without an id is given one not already on screen.
        """
        report = filter_elements(
            [element], self._schema, rules=self._rules, reserved_ids=self._state.ids
        )
        if not report.elements:
            return report

        accepted = report.elements[0]
        if self._state.find(accepted.id) is not None:
            message = f"element id '{accepted.id}' is already on screen"
            logger.warning(f"Rejected element '{accepted.id}' ({accepted.type}): {message}")
            return ValidationReport(
                rejections=[
                    ValidationRejection(
                        element_id=accepted.id,
                        element_type=accepted.type,
                        reason=RejectionReason.DUPLICATE_ID,
                        message=message,
                    )
                ]
            )

        elements = [*self._state.elements, accepted]
        self._state = self._state.model_copy(update={"elements": elements})
        self._schedule_persist()
        return report

    def remove(self, element_id: str) -> bool:
        """Remove an element. Unknown ids are a no-op.

        Returns:
            True if an element was removed.
        """
        elements = [e for e in self._state.elements if e.id != element_id]
        if len(elements) == len(self._state.elements):
            logger.debug(f"remove: no element '{element_id}'")
            return False
        self._state = self._state.model_copy(update={"elements": elements})
        self._schedule_persist()
        return True

    def update(self, element_id: str, partial_arguments: Mapping[str, Any]) -> ValidationReport:
        """Merge arguments into one element, then re-validate every element.

        Elements that no longer validate (including the updated one) are
        dropped. Unknown ids are a no-op.

        Returns:
            ValidationReport over all elements after the update.
        """
        if self._state.find(element_id) is None:
            logger.debug(f"update: no element '{element_id}'")
            return ValidationReport(elements=list(self._state.elements))

        merged = [
            e.with_arguments(dict(partial_arguments)) if e.id == element_id else e
            for e in self._state.elements
        ]
        report = filter_elements(merged, self._schema, rules=self._rules)
        self._state = self._state.model_copy(update={"elements": list(report.elements)})
        self._schedule_persist()
        return report

    def reset_to_default(self) -> bool:
        """Restore the default state and clear persisted state.

        Returns:
            True if persisted state was cleared (or there is no store).
        """
        self._state = self._default.copy_state()
        self._last_rationale = None
        self._last_error = None
        logger.info("UI state reset to default")
        return self.clear_storage()

    def set_arrangement(
        self,
        mode: ArrangementMode | str,
        spacing: int | None = None,
        track_count: int | None = None,
    ) -> None:
        """Change arrangement metadata.

        Raises:
            ValueError: For an unknown mode, spacing < 0 or track_count < 1.
        """
        update: dict[str, Any] = {"arrangement_mode": ArrangementMode.parse(mode)}
        if spacing is not None:
            update["spacing"] = _check_spacing(spacing)
        if track_count is not None:
            update["track_count"] = _check_track_count(track_count)
        self._state = self._state.model_copy(update=update)
        self._schedule_persist()

    def _apply_hints(self, state: UIState, hints: LayoutHints) -> UIState:
        update: dict[str, Any] = {}
        checks = (
            ("arrangement_mode", hints.arrangement_mode, ArrangementMode.parse),
            ("spacing", hints.spacing, _check_spacing),
            ("track_count", hints.track_count, _check_track_count),
        )
        for name, value, check in checks:
            if value is None:
                continue
            try:
                update[name] = check(value)
            except ValueError as e:
                logger.warning(f"Ignoring layout hint {name}={value!r}: {e}")
        return state.model_copy(update=update) if update else state

    # =========================================================================
    # Goals
    # =========================================================================

    def submit_goal(self, text: str, *, timeout: float | None = None) -> ReconcilerStatus:
        """Turn a natural language goal into a new UI-State.

        Runs Gateway -> Validator -> replace_all. A call made while another
        is in flight is rejected and leaves everything untouched. Gateway
        failures set ``last_error`` and leave the UI-State unchanged. Without
        a gateway, falls back to :meth:`apply_command`.

        A reply with no candidates (prose, or an empty ``elements`` list)
        keeps the current elements and applies only its layout hints. A
        reply with candidates replaces the screen wholesale with whatever
        survives validation: if every candidate is rejected, the screen is
        left empty and a warning is logged.

        Args:
            text: User's goal.
            timeout: Seconds to wait for the backend (gateway default if None).

        Returns:
            Status after the request.
        """
        if not self._busy.acquire(blocking=False):
            logger.warning("submit_goal rejected: request already in flight")
            return ReconcilerStatus(
                is_processing=True,
                last_rationale=self._last_rationale,
                last_error=BUSY_MESSAGE,
            )

        try:
            self._processing = True
            self._last_rationale = None
            self._last_error = None

            if self._gateway is None:
                logger.info("No text-generation backend configured, using keyword commands")
                if not self.apply_command(text):
                    self._last_error = "No text-generation backend configured and no command matched"
                return self.status

            result = self._gateway.request_layout(
                text,
                self._state.copy_state(),
                self._schema,
                self.capacity,
                timeout=timeout,
            )
            if not result.ok:
                self._last_error = result.error.message if result.error else "Request failed"
                return self.status

            if result.candidates:
                report = self.replace_all(result.candidates, result.layout_hints)
                if not report.elements:
                    logger.warning("Every proposed element was rejected")
            elif result.layout_hints is not None:
                self._state = self._apply_hints(self._state, result.layout_hints)
                self._schedule_persist()
            self._last_rationale = result.rationale
            return self.status
        finally:
            self._processing = False
            self._busy.release()

    def apply_command(self, text: str) -> bool:
        """Keyword fallback used when no backend is configured.

        Recognises "reset"/"default", "grid", "flow"/"flex" and "absolute".

        Returns:
            True if any keyword matched.
        """
        lowered = text.lower()
        matched = False

        if "reset" in lowered or "default" in lowered:
            self.reset_to_default()
            matched = True

        for keywords, mode in (
            (("grid",), ArrangementMode.GRID),
            (("flow", "flex"), ArrangementMode.FLOW),
            (("absolute",), ArrangementMode.ABSOLUTE),
        ):
            if any(word in lowered for word in keywords):
                self.set_arrangement(mode)
                matched = True

        if matched:
            self._last_rationale = f"Applied command: {text}"
        return matched

    # =========================================================================
    # Persistence
    # =========================================================================

    def _restore(self) -> None:
        """Load the persisted state, re-filtered against the current schema."""
        loaded = self._store.load(self._storage_key, self._storage_version)
        if loaded is None:
            return
        report = filter_elements(loaded.elements, self._schema, rules=self._rules)
        if report.rejections:
            logger.warning(
                f"Dropped {report.rejected_count} persisted element(s) "
                f"no longer valid for the schema"
            )
        self._state = loaded.model_copy(update={"elements": list(report.elements)})

    def _persist(self, snapshot: UIState) -> bool:
        ok = self._store.save(self._storage_key, self._storage_version, snapshot)
        if not ok:
            logger.warning("Background persist did not complete")
        return ok

    def _schedule_persist(self) -> None:
        if self._store is None or self._executor is None or self._closed:
            return
        snapshot = self._state.copy_state()
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(self._executor.submit(self._persist, snapshot))

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued background persists.

        Returns:
            True if every queued persist finished within `timeout`.
        """
        if not self._pending:
            return True
        _, not_done = wait_futures(list(self._pending), timeout=timeout)
        self._pending = list(not_done)
        return not not_done

    def save(self) -> bool:
        """Persist the current state synchronously.

        Returns:
            True if the state is durably stored.
        """
        if self._store is None:
            return False
        self.flush()
        return self._store.save(self._storage_key, self._storage_version, self._state)

    def load_from_storage(self) -> UIState | None:
        """Replace the state with the persisted one, if a matching record exists.

        Returns:
            The loaded state, or None (state unchanged).
        """
        if self._store is None:
            return None
        self.flush()
        loaded = self._store.load(self._storage_key, self._storage_version)
        if loaded is None:
            return None
        report = filter_elements(loaded.elements, self._schema, rules=self._rules)
        self._state = loaded.model_copy(update={"elements": list(report.elements)})
        return self.state

    def clear_storage(self) -> bool:
        """Delete persisted state for this reconciler's key."""
        if self._store is None:
            return True
        self.flush()
        return self._store.clear(self._storage_key)

    def has_stored_state(self) -> bool:
        if self._store is None:
            return False
        self.flush()
        return self._store.exists(self._storage_key, self._storage_version)

    def close(self) -> None:
        """Flush pending persists and stop the persistence worker."""
        if self._closed:
            return
        self.flush()
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        if self._store is not None:
            self._store.close()

    def __enter__(self) -> "AdaptationReconciler":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


# =============================================================================
# Construction from configuration
# =============================================================================


def build_reconciler(
    config: AdaptlyConfig,
    *,
    gateway: Gateway | None = None,
) -> AdaptationReconciler:
    """Wire store, backend, gateway and reconciler from an AdaptlyConfig.

    A backend that cannot be created (unknown model, missing credentials)
    is logged and the reconciler runs without one.

    Args:
        config: Construction-time configuration.
        gateway: Pre-built gateway, overriding the configured provider.

    Raises:
        ConfigurationError: If the schema or default state is malformed.

    Example:
        >>> config = AdaptlyConfig.from_environment()
        >>> with build_reconciler(config) as reconciler:
        ...     reconciler.submit_goal("show me sales")
    """
    store = None
    if config.storage_enabled:
        storage = (
            SQLiteStorage(config.storage_path)
            if config.storage_path is not None
            else InMemoryStorage()
        )
        store = StateStore(storage)

    if gateway is None and config.provider:
        try:
            backend = create_llm_backend(
                config.model,
                provider=config.provider,
                api_key=config.api_key,
                timeout=config.request_timeout,
            )
            gateway = Gateway(backend, timeout=config.request_timeout)
        except (LLMError, ValueError) as e:
            logger.warning(f"Text-generation backend unavailable, using keyword commands: {e}")

    return AdaptationReconciler(
        config.schema,
        default_state=config.default_state,
        store=store,
        storage_key=config.storage_key,
        storage_version=config.storage_version,
        gateway=gateway,
        capacity_height=config.capacity_height,
    )


__all__ = [
    "BUSY_MESSAGE",
    "ReconcilerStatus",
    "AdaptationReconciler",
    "build_reconciler",
]
