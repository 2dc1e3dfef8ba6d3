"""Recoverable key/value storage boundary used by draft checkpoints.

The store is an opaque string blob store with no transactional guarantees.
"""

from __future__ import annotations

from typing import Protocol


class RecoverableStorage(Protocol):
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is a no-op."""


class InMemoryStorage:
    """Dict-backed RecoverableStorage for tests and headless callers."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial) if initial else {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data)
