"""Ordering of the process list."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import IntEnum
from typing import Any

from termtop.processes import ProcessEntity


class SortMode(IntEnum):
    """Selectable sort keys. The ordinal is what the settings file stores."""

    CPU_SMOOTHED = 0
    CPU_INSTANT = 1
    MEMORY = 2
    PID = 3
    NAME = 4

    @property
    def label(self) -> str:
        return _LABELS[self]

    def step(self, delta: int) -> SortMode:
        """Cycle forward (positive) or backward (negative), wrapping around."""
        return SortMode((self.value + delta) % len(SortMode))

    @classmethod
    def from_name(cls, name: str) -> SortMode:
        """Parse a config name such as ``"cpu_smoothed"`` or ``"mem"``."""
        key = name.strip().lower().replace("-", "_")
        try:
            return _ALIASES[key]
        except KeyError:
            raise ValueError(f"unknown sort mode: {name!r}") from None


_LABELS = {
    SortMode.CPU_SMOOTHED: "CPU-L",
    SortMode.CPU_INSTANT: "CPU-D",
    SortMode.MEMORY: "Mem",
    SortMode.PID: "PID",
    SortMode.NAME: "Name",
}

_ALIASES = {
    **{mode.name.lower(): mode for mode in SortMode},
    "cpu": SortMode.CPU_SMOOTHED,
    "cpu_l": SortMode.CPU_SMOOTHED,
    "cpu_d": SortMode.CPU_INSTANT,
    "mem": SortMode.MEMORY,
}

SortKey = Callable[[ProcessEntity], tuple[Any, int]]


def _with_pid_tiebreak(primary: Callable[[ProcessEntity], Any]) -> SortKey:
    """Order by *primary*, then by ascending pid."""

    def key(proc: ProcessEntity) -> tuple[Any, int]:
        return (primary(proc), proc.pid)

    return key


# Numeric keys are negated for descending order
_SORT_KEYS: dict[SortMode, SortKey] = {
    SortMode.CPU_SMOOTHED: _with_pid_tiebreak(lambda p: -p.cpu_smoothed),
    SortMode.CPU_INSTANT: _with_pid_tiebreak(lambda p: -p.cpu_percent),
    SortMode.MEMORY: _with_pid_tiebreak(lambda p: -p.rss_kb),
    SortMode.PID: _with_pid_tiebreak(lambda p: p.pid),
    SortMode.NAME: _with_pid_tiebreak(lambda p: p.name.lower()),
}


def rank(processes: Iterable[ProcessEntity], mode: SortMode) -> list[ProcessEntity]:
    return sorted(processes, key=_SORT_KEYS[mode])
