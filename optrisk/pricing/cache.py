"""Explicit memoization for repeated pricing calls."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import TYPE_CHECKING, Hashable

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .black76 import PriceOutcome


class PriceCache:
    """Bounded LRU cache of :class:`~optrisk.pricing.black76.PriceOutcome` values.

    Keys are ``(option_type, forward, strike, T, r, vol)`` tuples. The cache
    is owned and passed in by the caller; nothing in :mod:`optrisk` keeps a
    module-level instance.
    """

    def __init__(self, maxsize: int = 4096) -> None:
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        self._data: OrderedDict[Hashable, "PriceOutcome"] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> "PriceOutcome | None":
        with self._lock:
            value = self._data.get(key)
            if value is None:
                self.misses += 1
                return None
            self._data.move_to_end(key)
            self.hits += 1
            return value

    def put(self, key: Hashable, value: "PriceOutcome") -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._data)


__all__ = ["PriceCache"]
