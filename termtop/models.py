"""Raw counter records for one poll, and keyed storage for tracked entities.

Everything here is produced by the collector and consumed by the engines.
Records are immutable; a missing record (``None``) means the source had no
data this poll.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

TICK_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")


@dataclass(slots=True, frozen=True)
class CoreSample:
    """Cumulative tick counters of one core (or of all cores together)."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0

    @classmethod
    def from_fields(cls, values: Sequence[int]) -> CoreSample:
        """Build from counters in kernel order; missing trailing fields are 0."""
        if len(values) < 4:
            raise ValueError(f"expected at least 4 tick counters, got {len(values)}")
        padded = list(values[: len(TICK_FIELDS)])
        padded += [0] * (len(TICK_FIELDS) - len(padded))
        return cls(*padded)

    @property
    def total(self) -> int:
        return (
            self.user + self.nice + self.system + self.idle
            + self.iowait + self.irq + self.softirq + self.steal
        )

    @property
    def idle_total(self) -> int:
        return self.idle + self.iowait


@dataclass(slots=True, frozen=True)
class MemorySample:
    """Memory and swap figures, all in kB."""

    total: int = 0
    free: int = 0
    available: int = 0
    buffers: int = 0
    cached: int = 0
    swap_total: int = 0
    swap_free: int = 0


@dataclass(slots=True, frozen=True)
class NetSample:
    """Receive/transmit byte counters summed over non-loopback interfaces."""

    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass(slots=True, frozen=True)
class DiskSample:
    name: str
    read_sectors: int
    write_sectors: int
    sector_size: int = 512


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """One process as read this poll."""

    pid: int
    name: str
    state: str  # 'R', 'S', 'D', 'Z', ...
    utime: int  # ticks
    stime: int  # ticks
    rss_kb: int
    user: str
    cmdline: str

    @property
    def ticks(self) -> int:
        return self.utime + self.stime


@dataclass(slots=True, frozen=True)
class BatterySample:
    percent: int
    status: str  # "Charging", "Discharging", "Full" or "Unknown"


@dataclass(slots=True)
class Snapshot:
    """Every raw reading taken during one poll."""

    overall: CoreSample | None = None
    cores: dict[int, CoreSample] = field(default_factory=dict)
    memory: MemorySample | None = None
    net: NetSample | None = None
    disks: list[DiskSample] = field(default_factory=list)
    processes: list[ProcessSample] = field(default_factory=list)
    battery: BatterySample | None = None


# ── Keyed entity storage ───────────────────────────────────────────────────


class CapacityExceededError(Exception):
    """Raised when a new key is admitted into a full table."""

    def __init__(self, kind: str, capacity: int) -> None:
        super().__init__(f"{kind} table full ({capacity} entries)")
        self.kind = kind
        self.capacity = capacity


K = TypeVar("K")
V = TypeVar("V")


class KeyedTable(Generic[K, V]):
    """Insertion-ordered map from entity key to entity, bounded in size.

    Replacing the value of a key already present never counts against the
    capacity; admitting a new key into a full table raises
    :class:`CapacityExceededError`.
    """

    def __init__(self, capacity: int, kind: str = "entity") -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._kind = kind
        self._items: dict[K, V] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def kind(self) -> str:
        return self._kind

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[K]:
        return iter(self._items)

    def get(self, key: K) -> V | None:
        return self._items.get(key)

    def values(self) -> list[V]:
        return list(self._items.values())

    def items(self) -> list[tuple[K, V]]:
        return list(self._items.items())

    def admit(self, key: K, value: V) -> None:
        if key not in self._items and len(self._items) >= self._capacity:
            raise CapacityExceededError(self._kind, self._capacity)
        self._items[key] = value

    def discard(self, key: K) -> V | None:
        return self._items.pop(key, None)

    def retain(self, keys: set[K]) -> list[K]:
        """Drop every entry whose key is not in *keys*; return dropped keys."""
        gone = [k for k in self._items if k not in keys]
        for k in gone:
            del self._items[k]
        return gone
