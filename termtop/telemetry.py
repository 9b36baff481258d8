"""Delta/rate engine: turns cumulative kernel counters into percentages and rates.

Each tracked scalar owns a :class:`~termtop.history.HistorySeries` and
records its (rounded) value there once per poll.

Counter anomalies are policy, not errors:

* CPU: a non-positive total tick delta holds the previous percentage.
* Byte counters: a negative delta (wrap, device reset) is a zero rate.
* Elapsed time is floor-clamped to :data:`ELAPSED_EPSILON`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from termtop.history import HISTORY_SIZE, HistorySeries
from termtop.models import (
    BatterySample,
    CapacityExceededError,
    CoreSample,
    DiskSample,
    KeyedTable,
    MemorySample,
    NetSample,
    Snapshot,
)

log = structlog.get_logger()

ELAPSED_EPSILON = 0.001  # seconds
MAX_CORES = 256
MAX_DISKS = 32


def clamp_elapsed(seconds: float) -> float:
    return max(seconds, ELAPSED_EPSILON)


def cpu_percent(previous: CoreSample, current: CoreSample, held: float) -> float:
    """Busy percentage between two samples of the same core.

    ``held`` is returned unchanged when the total tick delta is not positive.
    """
    total_diff = current.total - previous.total
    if total_diff <= 0:
        return held
    idle_diff = current.idle_total - previous.idle_total
    pct = 100.0 * (total_diff - idle_diff) / total_diff
    return min(100.0, max(0.0, pct))


def rate_kib(previous: int, current: int, elapsed: float) -> float:
    """KiB per second between two cumulative byte counts."""
    delta = current - previous
    if delta <= 0:
        return 0.0
    return delta / 1024.0 / clamp_elapsed(elapsed)


def used_percent(total: int, free: int) -> float | None:
    if total <= 0:
        return None
    return (total - free) * 100.0 / total


# ── Per-entity counters ────────────────────────────────────────────────────


@dataclass(slots=True)
class CpuCounter:
    """Tick counters of one core across polls."""

    history: HistorySeries
    previous: CoreSample | None = None
    percent: float = 0.0

    def update(self, sample: CoreSample) -> float:
        if self.previous is not None:
            self.percent = cpu_percent(self.previous, sample, self.percent)
        self.previous = sample
        self.history.push(round(self.percent))
        return self.percent

    def hold(self) -> None:
        self.history.push(round(self.percent))


@dataclass(slots=True)
class RateCounter:
    """One cumulative byte counter and the rate derived from it (KiB/s)."""

    history: HistorySeries
    previous: int | None = None
    rate: float = 0.0

    def update(self, current: int, elapsed: float) -> float:
        if self.previous is None:
            self.rate = 0.0
        else:
            self.rate = rate_kib(self.previous, current, elapsed)
        self.previous = current
        self.history.push(round(self.rate))
        return self.rate

    def hold(self) -> None:
        self.history.push(round(self.rate))


@dataclass(slots=True)
class DiskState:
    name: str
    sector_size: int
    read: RateCounter
    write: RateCounter

    @property
    def read_kib(self) -> float:
        return self.read.rate

    @property
    def write_kib(self) -> float:
        return self.write.rate


@dataclass(slots=True)
class TelemetryUpdate:
    """What changed during one :meth:`TelemetryEngine.update`."""

    disks_added: list[str] = field(default_factory=list)
    disks_removed: list[str] = field(default_factory=list)
    dropped_disks: int = 0
    dropped_cores: int = 0


class TelemetryEngine:
    """Holds the previous poll's counters and the history of every scalar."""

    def __init__(
        self,
        history_size: int = HISTORY_SIZE,
        max_cores: int = MAX_CORES,
        max_disks: int = MAX_DISKS,
    ) -> None:
        self.history_size = history_size
        self.overall = CpuCounter(HistorySeries(history_size))
        self.cores: KeyedTable[int, CpuCounter] = KeyedTable(max_cores, "core")
        self.memory: MemorySample | None = None
        self.mem_percent = 0.0
        self.swap_percent = 0.0
        self.mem_history = HistorySeries(history_size)
        self.net_rx = RateCounter(HistorySeries(history_size))
        self.net_tx = RateCounter(HistorySeries(history_size))
        self.disks: KeyedTable[str, DiskState] = KeyedTable(max_disks, "disk")
        self.battery: BatterySample | None = None
        self.polls = 0

    @property
    def core_count(self) -> int:
        return len(self.cores)

    def core_percents(self) -> list[tuple[int, CpuCounter]]:
        """Cores in index order."""
        return sorted(self.cores.items())

    def update(self, snapshot: Snapshot, elapsed: float) -> TelemetryUpdate:
        elapsed = clamp_elapsed(elapsed)
        result = TelemetryUpdate()
        self._update_cpu(snapshot.overall, snapshot.cores, result)
        self._update_memory(snapshot.memory)
        self._update_net(snapshot.net, elapsed)
        self._update_disks(snapshot.disks, elapsed, result)
        self.battery = snapshot.battery
        self.polls += 1
        return result

    def _update_cpu(
        self,
        overall: CoreSample | None,
        cores: dict[int, CoreSample],
        result: TelemetryUpdate,
    ) -> None:
        if overall is None:
            self.overall.hold()
        else:
            self.overall.update(overall)

        for index in sorted(cores):
            counter = self.cores.get(index)
            if counter is None:
                counter = CpuCounter(HistorySeries(self.history_size))
                try:
                    self.cores.admit(index, counter)
                except CapacityExceededError:
                    result.dropped_cores += 1
                    continue
            counter.update(cores[index])

        # Offline or unreadable cores keep their last value
        for index, counter in self.cores.items():
            if index not in cores:
                counter.hold()

        if result.dropped_cores:
            log.warning(
                "core_table_full",
                capacity=self.cores.capacity,
                dropped=result.dropped_cores,
            )

    def _update_memory(self, memory: MemorySample | None) -> None:
        if memory is not None:
            self.memory = memory
            mem = used_percent(memory.total, memory.available)
            if mem is not None:
                self.mem_percent = mem
            swap = used_percent(memory.swap_total, memory.swap_free)
            self.swap_percent = swap if swap is not None else 0.0
        self.mem_history.push(round(self.mem_percent))

    def _update_net(self, net: NetSample | None, elapsed: float) -> None:
        if net is None:
            self.net_rx.hold()
            self.net_tx.hold()
            return
        self.net_rx.update(net.rx_bytes, elapsed)
        self.net_tx.update(net.tx_bytes, elapsed)

    def _update_disks(
        self,
        disks: list[DiskSample],
        elapsed: float,
        result: TelemetryUpdate,
    ) -> None:
        seen: set[str] = set()
        for sample in disks:
            if sample.name in seen:
                continue
            state = self.disks.get(sample.name)
            if state is None:
                state = DiskState(
                    name=sample.name,
                    sector_size=sample.sector_size,
                    read=RateCounter(HistorySeries(self.history_size)),
                    write=RateCounter(HistorySeries(self.history_size)),
                )
                try:
                    self.disks.admit(sample.name, state)
                except CapacityExceededError:
                    result.dropped_disks += 1
                    continue
                result.disks_added.append(sample.name)
            seen.add(sample.name)
            state.sector_size = sample.sector_size
            state.read.update(sample.read_sectors * sample.sector_size, elapsed)
            state.write.update(sample.write_sectors * sample.sector_size, elapsed)

        result.disks_removed = self.disks.retain(seen)
        if result.disks_removed:
            log.info("disks_removed", names=result.disks_removed)
        if result.dropped_disks:
            log.warning(
                "disk_table_full",
                capacity=self.disks.capacity,
                dropped=result.dropped_disks,
            )
