"""Storage protocol for persisted UI state.

Defines the key-value interface that storage backends implement.
"""

from typing import Protocol


class KeyValueStorage(Protocol):
    """Protocol defining the key-value interface used by StateStore.

    Values are JSON text. Backends may raise on I/O failure; StateStore
    turns every failure into a logged, best-effort result.
    """

    def get(self, key: str) -> str | None:
        """Get the value stored under `key`.

        Returns:
            Stored text, or None if absent.
        """
        ...

    def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""
        ...

    def delete(self, key: str) -> bool:
        """Delete `key`.

        Returns:
            True if a value was deleted, False if none existed.
        """
        ...

    def contains(self, key: str) -> bool:
        """Check whether `key` holds a value."""
        ...

    def close(self) -> None:
        """Release any held resources."""
        ...
