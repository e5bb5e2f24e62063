from __future__ import annotations

import threading
from typing import Generic, TypeVar

_V = TypeVar("_V")


class KeyedCache(Generic[_V]):
    """Lock-guarded map with explicit invalidation.

    Entries are only ever written by the process that computed them and are
    removed only through ``delete``/``clear``; there is no expiry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, _V] = {}

    def get(self, key: str) -> _V | None:
        with self._lock:
            return self._entries.get(key)

    def set_if_absent(self, key: str, value: _V) -> _V:
        with self._lock:
            return self._entries.setdefault(key, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
