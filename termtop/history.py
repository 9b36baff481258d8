"""Fixed-capacity circular history used for every scrolling graph."""

from __future__ import annotations

HISTORY_SIZE = 120


class HistorySeries:
    """Circular buffer of the N most recent samples of one metric.

    The buffer is allocated full of zeros and overwritten in place: a write
    stores at ``cursor`` and advances it modulo the capacity, so the oldest
    sample always sits at ``cursor``.
    """

    __slots__ = ("_values", "_cursor")

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be positive")
        self._values: list[float] = [0.0] * capacity
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._values)

    @property
    def capacity(self) -> int:
        return len(self._values)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def last(self) -> float:
        """Most recently written value."""
        return self._values[self._cursor - 1]

    def push(self, value: float) -> None:
        self._values[self._cursor] = value
        self._cursor = (self._cursor + 1) % len(self._values)

    def latest(self, width: int) -> list[float]:
        """Return the *width* most recent values, oldest first."""
        capacity = len(self._values)
        if width < 0 or width > capacity:
            raise ValueError(f"width must be within 0..{capacity}, got {width}")
        start = (self._cursor - width + capacity) % capacity
        return [self._values[(start + i) % capacity] for i in range(width)]
