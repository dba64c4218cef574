"""Versioned persistence of UI state.

StateStore writes one record per (key, version):

    "{key}_{version}" -> {"state": {...}, "savedAtEpochMillis": int,
                          "schemaVersion": str}

plus an index row ``"index:{key}" -> version`` naming the last version saved,
so a key can be cleared or checked without knowing its version. Application
keys may not start with ``index:``; a record key is the application key
followed by ``_``, so it can never collide with an index row. A record saved
under a different version than the one requested is stale: it is treated as
absent and removed. Every operation is best-effort; storage failures are
logged and reported as False/None, never raised.
"""

import json
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from adaptly.state import UIState
from adaptly.storage.protocol import KeyValueStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredRecordInfo:
    """Metadata about a persisted record.

    Attributes:
        key: Application storage key.
        schema_version: Version the record was saved under.
        saved_at_epoch_millis: Save time in milliseconds since the epoch.
        element_count: Number of elements in the stored state.
        size_bytes: Size of the serialized record.
    """

    key: str
    schema_version: str
    saved_at_epoch_millis: int
    element_count: int
    size_bytes: int

    @property
    def saved_at(self) -> datetime:
        return datetime.fromtimestamp(self.saved_at_epoch_millis / 1000, tz=UTC)


INDEX_PREFIX = "index:"


def _check_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise ValueError(f"storage key must be a non-empty string, got {key!r}")
    if key.startswith(INDEX_PREFIX):
        raise ValueError(f"storage key may not start with '{INDEX_PREFIX}': {key!r}")
    return key


def record_key(key: str, version: str) -> str:
    """Storage key for the record of `key` at `version`.

    Raises:
        ValueError: If `key` is empty or starts with INDEX_PREFIX.
    """
    return f"{_check_key(key)}_{version}"


def index_key(key: str) -> str:
    """Storage key of the row naming the last version saved for `key`."""
    return f"{INDEX_PREFIX}{_check_key(key)}"


class StateStore:
    """Best-effort, versioned save/load of UIState over a key-value backend.

    Args:
        storage: Key-value backend (SQLiteStorage, InMemoryStorage, ...).
        enabled: When False every operation is a no-op returning False/None.

    Example:
        >>> store = StateStore(SQLiteStorage("~/.adaptly/state.db"))
        >>> store.save("dashboard", "1.0.0", state)
        True
        >>> store.load("dashboard", "1.0.0")
        UIState(...)
    """

    def __init__(self, storage: KeyValueStorage, *, enabled: bool = True):
        self.storage = storage
        self.enabled = enabled

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _indexed_version(self, key: str) -> str | None:
        return self.storage.get(index_key(key))

    def _discard(self, key: str, version: str) -> None:
        self.storage.delete(record_key(key, version))
        if self._indexed_version(key) == version:
            self.storage.delete(index_key(key))

    def _read_record(self, key: str, version: str) -> dict[str, Any] | None:
        """Read and structurally check one record, discarding it if corrupt."""
        raw = self.storage.get(record_key(key, version))
        if raw is None:
            return None
        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding corrupt state record for '{key}' ({version})")
            self._discard(key, version)
            return None
        if not isinstance(record, dict) or "state" not in record:
            logger.warning(f"Discarding malformed state record for '{key}' ({version})")
            self._discard(key, version)
            return None
        return record

    # =========================================================================
    # Public interface
    # =========================================================================

    def save(self, key: str, version: str, state: UIState) -> bool:
        """Persist `state` under (key, version).

        Saving under a new version removes the record of the previous one.

        Returns:
            True if the record was written.
        """
        if not self.enabled:
            return False
        try:
            record = {
                "state": state.to_record(),
                "savedAtEpochMillis": int(time.time() * 1000),
                "schemaVersion": version,
            }
            previous = self._indexed_version(key)
            self.storage.set(record_key(key, version), json.dumps(record))
            self.storage.set(index_key(key), version)
            if previous is not None and previous != version:
                self.storage.delete(record_key(key, previous))
        except Exception as e:
            logger.error(f"Failed to save UI state for '{key}': {e}")
            return False

        logger.debug(f"Saved UI state for '{key}' ({len(state.elements)} elements)")
        return True

    def load(self, key: str, version: str) -> UIState | None:
        """Load the state saved under (key, version).

        Returns:
            The stored state, or None if absent, stale, corrupt or on failure.
        """
        if not self.enabled:
            return None
        try:
            record = self._read_record(key, version)
            if record is None:
                stale = self._indexed_version(key)
                if stale is not None and stale != version:
                    logger.info(
                        f"Discarding stored UI state for '{key}': "
                        f"version {stale} does not match {version}"
                    )
                    self._discard(key, stale)
                return None

            if record.get("schemaVersion") != version:
                logger.info(
                    f"Discarding stored UI state for '{key}': version "
                    f"{record.get('schemaVersion')} does not match {version}"
                )
                self._discard(key, version)
                return None

            try:
                state = UIState.from_record(record["state"])
            except ValidationError as e:
                logger.warning(
                    f"Discarding invalid stored UI state for '{key}': "
                    f"{e.error_count()} error(s)"
                )
                self._discard(key, version)
                return None
        except Exception as e:
            logger.error(f"Failed to load UI state for '{key}': {e}")
            return None

        logger.info(f"Loaded UI state for '{key}' ({len(state.elements)} elements)")
        return state

    def clear(self, key: str, version: str | None = None) -> bool:
        """Remove the stored record for `key`.

        Args:
            key: Application storage key.
            version: Record version; the last saved version when None.

        Returns:
            True if the storage accepted the deletion.
        """
        if not self.enabled:
            return False
        try:
            target = version if version is not None else self._indexed_version(key)
            if target is not None:
                self.storage.delete(record_key(key, target))
            if version is None or self._indexed_version(key) == version:
                self.storage.delete(index_key(key))
        except Exception as e:
            logger.error(f"Failed to clear UI state for '{key}': {e}")
            return False

        logger.debug(f"Cleared stored UI state for '{key}'")
        return True

    def exists(self, key: str, version: str | None = None) -> bool:
        """Check whether a record is stored for `key` (at `version`, if given)."""
        if not self.enabled:
            return False
        try:
            target = version if version is not None else self._indexed_version(key)
            if target is None:
                return False
            return self.storage.contains(record_key(key, target))
        except Exception as e:
            logger.error(f"Failed to check UI state for '{key}': {e}")
            return False

    def info(self, key: str, version: str) -> StoredRecordInfo | None:
        """Describe the record stored under (key, version), if any."""
        if not self.enabled:
            return None
        try:
            raw = self.storage.get(record_key(key, version))
            if raw is None:
                return None
            record = json.loads(raw)
            return StoredRecordInfo(
                key=key,
                schema_version=str(record.get("schemaVersion", "")),
                saved_at_epoch_millis=int(record.get("savedAtEpochMillis", 0)),
                element_count=len(record.get("state", {}).get("elements", [])),
                size_bytes=len(raw.encode("utf-8")),
            )
        except Exception as e:
            logger.warning(f"Failed to read UI state info for '{key}': {e}")
            return None

    def close(self) -> None:
        try:
            self.storage.close()
        except Exception as e:
            logger.warning(f"Failed to close state storage: {e}")


__all__ = [
    "StoredRecordInfo",
    "StateStore",
    "INDEX_PREFIX",
    "index_key",
    "record_key",
]
