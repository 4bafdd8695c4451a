"""
Memoization for phasekit calculations.

Entries are keyed by a hashable structural key (a tuple built from the inputs
that determine the result) and only go away when the caller invalidates them.
Entries never expire.
"""
from typing import Callable, Dict, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class Memoizer(Generic[K, V]):
    """Cache of ``compute(key)`` results."""

    def __init__(self, compute: Callable[[K], V]) -> None:
        self._compute = compute
        self._entries: Dict[K, V] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: K) -> V:
        """Return the cached value for ``key``, computing it on first use."""
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        value = self._compute(key)
        self._entries[key] = value
        return value

    def invalidate(self, key: K) -> bool:
        """Drop one entry. Returns whether it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_where(self, predicate: Callable[[K], bool]) -> int:
        """Drop every entry whose key matches. Returns how many were dropped."""
        stale = [key for key in self._entries if predicate(key)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
