"""Process tracker: per-process identity and CPU usage across polls."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from termtop.models import CapacityExceededError, KeyedTable, ProcessSample
from termtop.telemetry import clamp_elapsed

log = structlog.get_logger()

MAX_PROCESSES = 4096
DEFAULT_CLOCK_TICKS = 100
SMOOTHING_FACTOR = 0.3


@dataclass(slots=True)
class ProcessEntity:
    """A process as tracked since it was first seen under its pid."""

    pid: int
    name: str
    cmdline: str
    user: str
    state: str
    utime: int
    stime: int
    rss_kb: int
    cpu_percent: float = 0.0
    cpu_smoothed: float = 0.0
    mem_percent: float = 0.0

    @classmethod
    def from_sample(cls, sample: ProcessSample) -> ProcessEntity:
        return cls(
            pid=sample.pid,
            name=sample.name,
            cmdline=sample.cmdline or sample.name,
            user=sample.user,
            state=sample.state,
            utime=sample.utime,
            stime=sample.stime,
            rss_kb=sample.rss_kb,
        )

    @property
    def ticks(self) -> int:
        return self.utime + self.stime

    @property
    def is_running(self) -> bool:
        return self.state == "R"


def instant_cpu_percent(
    delta_ticks: int,
    clock_ticks: int,
    elapsed: float,
    core_count: int,
) -> float:
    """Share of the whole machine used over *elapsed* seconds."""
    if delta_ticks <= 0 or clock_ticks <= 0 or core_count <= 0 or elapsed <= 0:
        return 0.0
    return 100.0 * delta_ticks / (clock_ticks * elapsed * core_count)


def smooth(previous: float, instant: float) -> float:
    if previous > 0 or instant > 0:
        return previous * (1.0 - SMOOTHING_FACTOR) + instant * SMOOTHING_FACTOR
    return instant


@dataclass(slots=True)
class TrackerUpdate:
    admitted: int = 0
    retired: int = 0
    dropped: int = 0


class ProcessTracker:
    """Keeps the process set of the previous poll and derives CPU usage.

    Identity is the pid alone. A pid missing from one poll is forgotten, so
    if it shows up again later it starts over as a new process.
    """

    def __init__(
        self,
        capacity: int = MAX_PROCESSES,
        clock_ticks: int = DEFAULT_CLOCK_TICKS,
    ) -> None:
        self.capacity = capacity
        self.clock_ticks = clock_ticks if clock_ticks > 0 else DEFAULT_CLOCK_TICKS
        self._table: KeyedTable[int, ProcessEntity] = KeyedTable(capacity, "process")
        self.running_count = 0

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, pid: object) -> bool:
        return pid in self._table

    def get(self, pid: int) -> ProcessEntity | None:
        return self._table.get(pid)

    def entities(self) -> list[ProcessEntity]:
        return self._table.values()

    def update(
        self,
        samples: Iterable[ProcessSample],
        elapsed: float,
        core_count: int,
        total_mem_kb: int,
    ) -> TrackerUpdate:
        elapsed = clamp_elapsed(elapsed)
        previous = self._table
        current: KeyedTable[int, ProcessEntity] = KeyedTable(self.capacity, "process")
        result = TrackerUpdate()

        for sample in samples:
            if sample.pid in current:
                continue
            entity = ProcessEntity.from_sample(sample)
            prior = previous.get(sample.pid)
            if prior is not None:
                entity.cpu_percent = instant_cpu_percent(
                    sample.ticks - prior.ticks, self.clock_ticks, elapsed, core_count
                )
                entity.cpu_smoothed = smooth(prior.cpu_smoothed, entity.cpu_percent)
            if total_mem_kb > 0:
                entity.mem_percent = sample.rss_kb * 100.0 / total_mem_kb
            try:
                current.admit(sample.pid, entity)
            except CapacityExceededError:
                result.dropped += 1
                continue
            if prior is None:
                result.admitted += 1

        result.retired = sum(1 for pid in previous if pid not in current)
        self._table = current
        self.running_count = sum(1 for e in current.values() if e.is_running)

        if result.dropped:
            log.warning(
                "process_table_full", capacity=self.capacity, dropped=result.dropped
            )
        return result
