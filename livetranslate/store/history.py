"""Size-bounded FIFO windows kept for one session."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable


class ContextWindow:
    """Last N corrected sentences, oldest first, fed to the proofreader."""

    def __init__(self, size: int = 20) -> None:
        self._items: Deque[str] = deque(maxlen=max(1, int(size)))

    @property
    def size(self) -> int:
        return self._items.maxlen or 0

    def extend(self, sentences: Iterable[str]) -> None:
        self._items.extend(sentences)

    def sentences(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class RecentOutputs:
    """Last K emitted outputs in normalized form, used to catch looping models."""

    def __init__(self, size: int = 10) -> None:
        self._items: Deque[str] = deque(maxlen=max(1, int(size)))

    def count(self, value: str) -> int:
        return sum(1 for item in self._items if item == value)

    def push(self, value: str) -> None:
        self._items.append(value)

    def values(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["ContextWindow", "RecentOutputs"]
