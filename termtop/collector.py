"""Reads one Snapshot of raw counters from the running system.

CPU, network and disk counters come straight from ``/proc`` text (no
sleeps, no derived values); memory, processes and battery come from
psutil. Every source fails independently: an unreadable source yields
``None`` (or an empty list) for this poll and a malformed line is skipped.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from pathlib import Path

import psutil
import structlog

from termtop.models import (
    BatterySample,
    CoreSample,
    DiskSample,
    MemorySample,
    NetSample,
    ProcessSample,
    Snapshot,
)

log = structlog.get_logger()

DEFAULT_SECTOR_SIZE = 512
DEFAULT_DISK_EXCLUDE = ("loop", "ram", "zram", "dm-")

_MEMINFO_KEYS = {
    "MemTotal": "total",
    "MemFree": "free",
    "MemAvailable": "available",
    "Buffers": "buffers",
    "Cached": "cached",
    "SwapTotal": "swap_total",
    "SwapFree": "swap_free",
}

_STATUS_CHARS = {
    psutil.STATUS_RUNNING: "R",
    psutil.STATUS_SLEEPING: "S",
    psutil.STATUS_DISK_SLEEP: "D",
    psutil.STATUS_STOPPED: "T",
    psutil.STATUS_TRACING_STOP: "t",
    psutil.STATUS_ZOMBIE: "Z",
    psutil.STATUS_DEAD: "X",
    psutil.STATUS_WAKING: "W",
    psutil.STATUS_IDLE: "I",
    psutil.STATUS_PARKED: "P",
}

_PROC_ATTRS = ["pid", "name", "status", "cpu_times", "memory_info", "username", "cmdline"]


def clock_ticks() -> int:
    """Kernel clock ticks per second (USER_HZ)."""
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError, AttributeError):
        return 100
    return ticks if ticks > 0 else 100


# ── Text parsers ───────────────────────────────────────────────────────────


def parse_cpu_stat(text: str) -> tuple[CoreSample | None, dict[int, CoreSample]]:
    """Parse ``/proc/stat`` into the aggregate sample and per-core samples."""
    overall: CoreSample | None = None
    cores: dict[int, CoreSample] = {}
    for line in text.splitlines():
        if not line.startswith("cpu"):
            continue
        parts = line.split()
        try:
            sample = CoreSample.from_fields([int(v) for v in parts[1:]])
            if parts[0] == "cpu":
                overall = sample
            else:
                cores[int(parts[0][3:])] = sample
        except (ValueError, IndexError):
            log.debug("malformed_record", source="stat", line=line)
    return overall, cores


def parse_meminfo(text: str) -> MemorySample | None:
    values: dict[str, int] = {}
    for line in text.splitlines():
        key, _, rest = line.partition(":")
        field = _MEMINFO_KEYS.get(key.strip())
        if field is None:
            continue
        try:
            values[field] = int(rest.split()[0])
        except (ValueError, IndexError):
            log.debug("malformed_record", source="meminfo", line=line)
    if "total" not in values:
        return None
    return MemorySample(**values)


def parse_net_dev(text: str) -> NetSample | None:
    """Sum receive/transmit bytes of every interface except loopback."""
    lines = text.splitlines()[2:]
    if not lines:
        return None
    rx = tx = 0
    for line in lines:
        iface, sep, rest = line.partition(":")
        if not sep:
            continue
        if iface.strip() == "lo":
            continue
        fields = rest.split()
        try:
            rx += int(fields[0])
            tx += int(fields[8])
        except (ValueError, IndexError):
            log.debug("malformed_record", source="net", line=line)
    return NetSample(rx_bytes=rx, tx_bytes=tx)


def parse_diskstats(
    text: str,
    exclude_prefixes: Iterable[str] = DEFAULT_DISK_EXCLUDE,
    sector_size: Callable[[str], int] = lambda name: DEFAULT_SECTOR_SIZE,
) -> list[DiskSample]:
    prefixes = tuple(exclude_prefixes)
    disks: list[DiskSample] = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 10:
            continue
        name = fields[2]
        if prefixes and name.startswith(prefixes):
            continue
        try:
            read_sectors = int(fields[5])
            write_sectors = int(fields[9])
        except ValueError:
            log.debug("malformed_record", source="diskstats", line=line)
            continue
        disks.append(
            DiskSample(
                name=name,
                read_sectors=read_sectors,
                write_sectors=write_sectors,
                sector_size=sector_size(name),
            )
        )
    return disks


def read_sector_size(name: str, sys_block: Path = Path("/sys/block")) -> int:
    try:
        size = int((sys_block / name / "queue" / "hw_sector_size").read_text().strip())
    except (OSError, ValueError):
        return DEFAULT_SECTOR_SIZE
    return size if size > 0 else DEFAULT_SECTOR_SIZE


# ── psutil sources ─────────────────────────────────────────────────────────


def collect_memory() -> MemorySample | None:
    try:
        vm = psutil.virtual_memory()
        sw = psutil.swap_memory()
    except (OSError, RuntimeError) as e:
        log.debug("source_unavailable", source="memory", error=str(e))
        return None
    return MemorySample(
        total=vm.total // 1024,
        free=vm.free // 1024,
        available=vm.available // 1024,
        buffers=getattr(vm, "buffers", 0) // 1024,
        cached=getattr(vm, "cached", 0) // 1024,
        swap_total=sw.total // 1024,
        swap_free=sw.free // 1024,
    )


def _process_sample(info: dict, ticks_per_second: int) -> ProcessSample | None:
    """Build a sample from ``proc.info``; None if a required field is missing."""
    cpu_times = info.get("cpu_times")
    mem_info = info.get("memory_info")
    status = info.get("status")
    username = info.get("username")
    if cpu_times is None or mem_info is None or status is None or username is None:
        return None
    name = info.get("name") or ""
    cmdline = info.get("cmdline") or []
    return ProcessSample(
        pid=info["pid"],
        name=name,
        state=_STATUS_CHARS.get(status, "?"),
        utime=round(cpu_times.user * ticks_per_second),
        stime=round(cpu_times.system * ticks_per_second),
        rss_kb=mem_info.rss // 1024,
        user=username,
        cmdline=" ".join(cmdline) if cmdline else name,
    )


def collect_processes(ticks_per_second: int) -> list[ProcessSample]:
    """One record per readable process; vanished or denied ones are skipped.

    ``process_iter`` fills unreadable attributes with None, so a process that
    exits or denies access mid-scan lacks a required field and is dropped.
    """
    samples: list[ProcessSample] = []
    for proc in psutil.process_iter(attrs=_PROC_ATTRS, ad_value=None):
        sample = _process_sample(proc.info, ticks_per_second)
        if sample is not None:
            samples.append(sample)
    return samples


def collect_battery() -> BatterySample | None:
    try:
        battery = psutil.sensors_battery()
    except (AttributeError, OSError, RuntimeError):
        return None
    if battery is None:
        return None
    percent = int(round(battery.percent))
    if battery.power_plugged is None:
        status = "Unknown"
    elif not battery.power_plugged:
        status = "Discharging"
    elif percent >= 100:
        status = "Full"
    else:
        status = "Charging"
    return BatterySample(percent=percent, status=status)


# ── Collector ──────────────────────────────────────────────────────────────


class Collector:
    """Produces a fresh :class:`Snapshot` on every call to :meth:`snapshot`."""

    def __init__(
        self,
        proc_root: Path = Path("/proc"),
        sys_block: Path = Path("/sys/block"),
        disk_exclude: Iterable[str] = DEFAULT_DISK_EXCLUDE,
        ticks_per_second: int | None = None,
    ) -> None:
        self.proc_root = proc_root
        self.sys_block = sys_block
        self.disk_exclude = tuple(disk_exclude)
        self.ticks_per_second = ticks_per_second or clock_ticks()

    def _read(self, name: str) -> str | None:
        path = self.proc_root / name
        try:
            return path.read_text()
        except OSError as e:
            log.debug("source_unavailable", source=str(path), error=str(e))
            return None

    def snapshot(self) -> Snapshot:
        snap = Snapshot()

        stat = self._read("stat")
        if stat is not None:
            snap.overall, snap.cores = parse_cpu_stat(stat)

        snap.memory = collect_memory()

        net = self._read("net/dev")
        if net is not None:
            snap.net = parse_net_dev(net)

        diskstats = self._read("diskstats")
        if diskstats is not None:
            snap.disks = parse_diskstats(
                diskstats,
                self.disk_exclude,
                lambda name: read_sector_size(name, self.sys_block),
            )

        snap.processes = collect_processes(self.ticks_per_second)
        snap.battery = collect_battery()
        return snap
