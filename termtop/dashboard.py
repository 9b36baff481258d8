"""Interactive terminal dashboard: termtop's curses front end.

Displays live CPU (overall and per-core), memory, disk, network and process
panes using curses. Pane geometry comes from :mod:`termtop.layout`; every
number drawn comes from :class:`termtop.state.DashboardState`.

Usage:
    termtop
    termtop --refresh 500 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import os
import sys
import time
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from termtop.collector import Collector
from termtop.config import dump_default_config, load_config
from termtop.history import HistorySeries
from termtop.layout import (
    CoreMode,
    CpuLayout,
    Layout,
    Pane,
    PaneFlags,
    ProcColumns,
    Region,
    TooSmall,
    process_columns,
)
from termtop.logsetup import LOG_LEVELS, configure_logging
from termtop.processes import ProcessEntity
from termtop.ranking import SortMode
from termtop.settings import (
    clamp_refresh,
    default_settings,
    load_settings,
    save_settings,
    settings_path,
)
from termtop.state import DashboardState
from termtop.telemetry import DiskState

log = structlog.get_logger()

# ── Constants ──────────────────────────────────────────────────────────────

VERSION = "0.1.0"
BLOCKS = "▁▂▃▄▅▆▇█"
BAR_FILL = "█"
BAR_EMPTY = "░"
SUPERSCRIPTS = {1: "¹", 2: "²", 3: "³", 4: "⁴", 5: "⁵"}
RATE_FULL_SCALE_KIB = 10_000.0
HELP_TEXT = "1-5:toggle | C-f/b:sort | C-n/p:nav | C-v/M-v:page | C-a/e:home/end | q:quit"
ESC_WAIT_MS = 50
DISK_BLOCK_ROWS = 4
DISK_TWO_COLUMN_WIDTH = 60

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_BLUE = 6
C_SELECTED = 7

# Raw key codes
KEY_ESC = 27
KEY_CTRL_A = 1
KEY_CTRL_B = 2
KEY_CTRL_C = 3
KEY_CTRL_E = 5
KEY_CTRL_F = 6
KEY_CTRL_N = 14
KEY_CTRL_P = 16
KEY_CTRL_V = 22


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_BLUE, curses.COLOR_BLUE, -1)
    curses.init_pair(C_SELECTED, curses.COLOR_BLACK, curses.COLOR_CYAN)


def _severity_color(value: float, warn: float, crit: float) -> int:
    if value > crit:
        return C_CRITICAL
    if value > warn:
        return C_WARNING
    return C_NORMAL


def usage_color(pct: float) -> int:
    """Colour band for CPU and memory percentages."""
    return _severity_color(pct, 50.0, 80.0)


def proc_cpu_color(pct: float) -> int:
    return _severity_color(pct, 20.0, 50.0)


def battery_color(pct: int) -> int:
    if pct < 20:
        return C_CRITICAL
    if pct < 50:
        return C_WARNING
    return C_NORMAL


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def fmt_rate(kib_per_s: float) -> str:
    """Human-readable transfer rate from KiB/s."""
    if kib_per_s < 1024:
        return f"{kib_per_s:.1f} KB/s"
    if kib_per_s < 1024 * 1024:
        return f"{kib_per_s / 1024:.1f} MB/s"
    return f"{kib_per_s / 1024 ** 2:.1f} GB/s"


def fmt_mem_kb(kb: int) -> str:
    """Compact resident size for the process list (fits 7 columns)."""
    if kb < 1024:
        return f"{kb}K"
    if kb < 1024 * 1024:
        return f"{kb / 1024:.1f}M"
    return f"{kb / 1024 ** 2:.1f}G"


def section_header(pane: Pane) -> str:
    return f"[{SUPERSCRIPTS[pane.value]}{pane.title}]"


def mini_bar(pct: float, width: int) -> tuple[str, str]:
    """Return the (filled, empty) parts of a *width*-cell bar."""
    if width <= 0:
        return "", ""
    filled = int(width * max(0.0, min(pct, 100.0)) / 100.0)
    return BAR_FILL * filled, BAR_EMPTY * (width - filled)


def graph_rows(values: list[float], height: int, max_val: float = 100.0) -> list[str]:
    """Render *values* as a block graph *height* rows tall, top row first."""
    if height <= 0:
        return []
    levels = len(BLOCKS)
    columns: list[list[str]] = []
    for v in values:
        frac = max(0.0, min(v / max_val, 1.0)) if max_val > 0 else 0.0
        units = round(frac * height * levels)
        column = []
        for r in range(height):
            fill = units - r * levels
            if fill >= levels:
                column.append(BLOCKS[-1])
            elif fill > 0:
                column.append(BLOCKS[fill - 1])
            else:
                column.append(" ")
        columns.append(column)
    return ["".join(col[r] for col in columns) for r in range(height - 1, -1, -1)]


def recent(series: HistorySeries, width: int) -> list[float]:
    """The newest values that fit *width* cells, never more than recorded."""
    return series.latest(max(0, min(width, series.capacity)))


def rate_percent(kib_per_s: float) -> float:
    return min(100.0, kib_per_s * 100.0 / RATE_FULL_SCALE_KIB)


def battery_text(percent: int, status: str) -> str:
    arrow = {"Charging": "▲", "Discharging": "▼"}.get(status, "●")
    return f"BAT{arrow} {percent}%"


def process_row(proc: ProcessEntity, cols: ProcColumns, sort_mode: SortMode) -> str:
    """One line of the process list, laid out by *cols*."""
    cpu = proc.cpu_percent if sort_mode is SortMode.CPU_INSTANT else proc.cpu_smoothed
    parts = [
        f"{proc.pid:>{cols.pid - 1}} ",
        f"{proc.name[: cols.program]:<{cols.program}}",
    ]
    if cols.show_command:
        parts.append(f" {proc.cmdline[: cols.command]:<{cols.command}}")
    if cols.show_user:
        parts.append(f" {proc.user[: cols.user]:<{cols.user}}")
    parts.append(f" {fmt_mem_kb(proc.rss_kb):>{cols.mem - 1}}")
    parts.append(f"{cpu:>{cols.cpu - 1}.1f}%")
    return "".join(parts)


def process_header(cols: ProcColumns) -> str:
    parts = [f"{'PID':>{cols.pid - 1}} ", f"{'PROGRAM':<{cols.program}}"]
    if cols.show_command:
        parts.append(f" {'COMMAND':<{cols.command}}")
    if cols.show_user:
        parts.append(f" {'USER':<{cols.user}}")
    parts.append(f" {'MEM':>{cols.mem - 1}}")
    parts.append(f"{'CPU%':>{cols.cpu}}")
    return "".join(parts)


def process_footer(state: DashboardState) -> str:
    total = len(state.ranked)
    selected = state.selected + 1 if total else 0
    return (
        f"{state.tracker.running_count}/{total} | {selected} | "
        f"Sort:{state.settings.sort_mode.label}"
    )


def too_small_lines(
    width: int, height: int, verdict: TooSmall, flags: PaneFlags
) -> list[str]:
    lines = [
        "ERROR: Terminal too small!",
        "",
        f"Current size: {width}x{height}",
        f"Required size: {verdict.min_width}x{verdict.min_height}",
        "",
        "Pane Status:",
    ]
    for pane in Pane:
        state = "ON" if flags.visible(pane) else "OFF"
        lines.append(f"  [{pane.value}] {pane.title.upper()}: {state}")
    lines += [
        "",
        "Press 1-5 to toggle panes, or resize terminal.",
        "Press 'q' to quit.",
    ]
    return lines


# ── Keys ───────────────────────────────────────────────────────────────────


class Action(Enum):
    QUIT = "quit"
    RESIZE = "resize"
    TOGGLE_CPU = "toggle-cpu"
    TOGGLE_MEMORY = "toggle-memory"
    TOGGLE_DISK = "toggle-disk"
    TOGGLE_NETWORK = "toggle-network"
    TOGGLE_PROCESSES = "toggle-processes"
    SORT_NEXT = "sort-next"
    SORT_PREV = "sort-prev"
    DOWN = "down"
    UP = "up"
    PAGE_DOWN = "page-down"
    PAGE_UP = "page-up"
    HOME = "home"
    END = "end"


TOGGLE_PANES = {
    Action.TOGGLE_CPU: Pane.CPU,
    Action.TOGGLE_MEMORY: Pane.MEMORY,
    Action.TOGGLE_DISK: Pane.DISK,
    Action.TOGGLE_NETWORK: Pane.NETWORK,
    Action.TOGGLE_PROCESSES: Pane.PROCESSES,
}

NAVIGATION = {
    Action.DOWN,
    Action.UP,
    Action.PAGE_DOWN,
    Action.PAGE_UP,
    Action.HOME,
    Action.END,
}

_KEYMAP: dict[int, Action] = {
    ord("q"): Action.QUIT,
    ord("Q"): Action.QUIT,
    KEY_ESC: Action.QUIT,
    KEY_CTRL_C: Action.QUIT,
    curses.KEY_RESIZE: Action.RESIZE,
    ord("1"): Action.TOGGLE_CPU,
    ord("2"): Action.TOGGLE_MEMORY,
    ord("3"): Action.TOGGLE_DISK,
    ord("4"): Action.TOGGLE_NETWORK,
    ord("5"): Action.TOGGLE_PROCESSES,
    KEY_CTRL_F: Action.SORT_NEXT,
    KEY_CTRL_B: Action.SORT_PREV,
    KEY_CTRL_N: Action.DOWN,
    curses.KEY_DOWN: Action.DOWN,
    KEY_CTRL_P: Action.UP,
    curses.KEY_UP: Action.UP,
    KEY_CTRL_V: Action.PAGE_DOWN,
    curses.KEY_NPAGE: Action.PAGE_DOWN,
    curses.KEY_PPAGE: Action.PAGE_UP,
    KEY_CTRL_A: Action.HOME,
    curses.KEY_HOME: Action.HOME,
    KEY_CTRL_E: Action.END,
    curses.KEY_END: Action.END,
}


def key_action(key: int, meta: bool = False) -> Action | None:
    """Map a key code to an action. *meta* means the key followed an Esc."""
    if meta:
        return Action.PAGE_UP if key in (ord("v"), ord("V")) else None
    return _KEYMAP.get(key)


def apply_action(state: DashboardState, action: Action) -> bool:
    """Apply a non-quit action. Returns True when a fresh poll is needed."""
    if action in TOGGLE_PANES:
        state.toggle_pane(TOGGLE_PANES[action])
        return True
    if action is Action.SORT_NEXT:
        state.cycle_sort(1)
    elif action is Action.SORT_PREV:
        state.cycle_sort(-1)
    elif action in NAVIGATION and state.navigable:
        if action is Action.DOWN:
            state.move_selection(1)
        elif action is Action.UP:
            state.move_selection(-1)
        elif action is Action.PAGE_DOWN:
            state.page_down()
        elif action is Action.PAGE_UP:
            state.page_up()
        elif action is Action.HOME:
            state.home()
        elif action is Action.END:
            state.end()
    return False


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_bar(
    win: curses.window,
    y: int,
    x: int,
    width: int,
    pct: float,
    color: int = C_NORMAL,
) -> None:
    filled, empty = mini_bar(pct, width)
    _safe(win, y, x, filled, curses.color_pair(color) | curses.A_BOLD)
    _safe(win, empty, curses.color_pair(C_DIM))


def _draw_graph(
    win: curses.window,
    y: int,
    x: int,
    width: int,
    height: int,
    values: list[float],
    max_val: float = 100.0,
    color: int = C_BLUE,
) -> None:
    """Draw *values* right-aligned in a *width* x *height* area."""
    if width <= 0 or height <= 0:
        return
    values = values[-width:]
    offset = width - len(values)
    for i, row in enumerate(graph_rows(values, height, max_val)):
        _safe(win, y + i, x + offset, row, curses.color_pair(color))


def _draw_section(win: curses.window, region: Region, suffix: str = "") -> None:
    _safe(
        win,
        region.y,
        region.x,
        section_header(region.pane),
        curses.color_pair(C_TITLE) | curses.A_BOLD,
    )
    if suffix:
        _safe(win, suffix, curses.color_pair(C_DIM))


# ── Panel renderers ────────────────────────────────────────────────────────


def draw_cpu_panel(win: curses.window, cpu: CpuLayout, state: DashboardState) -> None:
    region = cpu.region
    telemetry = state.telemetry
    total = telemetry.overall.percent

    _draw_section(win, region)
    bar_w = 12 if region.width > 40 else 8 if region.width > 30 else 5
    hx = region.x + len(section_header(region.pane)) + 1
    _draw_bar(win, region.y, hx, bar_w, total, usage_color(total))
    _safe(win, f" {total:3.0f}%", curses.color_pair(usage_color(total)) | curses.A_BOLD)
    _safe(win, f"  {telemetry.core_count} cores", curses.color_pair(C_DIM))

    g = cpu.graph
    _draw_graph(
        win,
        g.y,
        g.x + 1,
        g.width,
        g.height,
        recent(telemetry.overall.history, g.width),
        100.0,
        usage_color(total),
    )

    grid = cpu.grid
    counters = dict(telemetry.core_percents())
    num_w = grid.label_width - 1
    for cell in grid.cells:
        counter = counters.get(cell.core)
        if counter is None:
            continue
        pct = counter.percent
        color = usage_color(pct)
        label = f"C{cell.core:<{num_w}}"
        cx = cell.x + 1
        _safe(win, cell.y, cx, label, curses.color_pair(C_DIM))
        if grid.mode is CoreMode.TWO_LINE:
            bar_w = min(10, cell.width - grid.label_width - 5)
            _draw_bar(win, cell.y, cx + grid.label_width, bar_w, pct, color)
            _safe(win, f"{pct:3.0f}%", curses.color_pair(color))
            spark_w = cell.width - 2
            _draw_graph(
                win,
                cell.y + 1,
                cx,
                spark_w,
                1,
                recent(counter.history, spark_w),
                100.0,
                color,
            )
        else:
            _draw_bar(win, cell.y, cx + grid.label_width, 2, pct, color)
            _safe(win, f"{pct:2.0f}%", curses.color_pair(color))

    if grid.hidden > 0:
        note = f"+{grid.hidden} cores"
        _safe(
            win,
            region.bottom - 1,
            region.right - len(note) - 1,
            note,
            curses.color_pair(C_DIM),
        )


def draw_mem_panel(win: curses.window, region: Region, state: DashboardState) -> None:
    telemetry = state.telemetry
    pct = telemetry.mem_percent
    _draw_section(win, region, f" {pct:3.0f}%  swap {telemetry.swap_percent:3.0f}%")

    mem = telemetry.memory
    row = region.y + 1
    if mem is not None:
        rows = [
            ("Used", (mem.total - mem.available) * 1024),
            ("Total", mem.total * 1024),
            ("Free", mem.free * 1024),
            ("Cached", mem.cached * 1024),
        ]
        for label, value in rows:
            if row >= region.bottom:
                return
            _safe(win, row, region.x + 1, f"{label:<7}", curses.color_pair(C_DIM))
            _safe(win, fmt_bytes(value)[: region.width - 9], curses.color_pair(C_NORMAL))
            row += 1

    graph_h = min(3, region.bottom - row)
    width = region.width - 2
    _draw_graph(
        win,
        row,
        region.x + 1,
        width,
        graph_h,
        recent(telemetry.mem_history, width),
        100.0,
        usage_color(pct),
    )


def _disk_combined(disk: DiskState, width: int) -> list[float]:
    reads = recent(disk.read.history, width)
    writes = recent(disk.write.history, width)
    return [rate_percent(r + w) for r, w in zip(reads, writes)]


def draw_disk_panel(win: curses.window, region: Region, state: DashboardState) -> None:
    disks = state.telemetry.disks.values()
    _draw_section(win, region, f" {len(disks)} devices")

    per_row = 2 if region.width > DISK_TWO_COLUMN_WIDTH else 1
    block_w = (region.width - 1) // per_row
    for i, disk in enumerate(disks):
        y = region.y + 1 + (i // per_row) * DISK_BLOCK_ROWS
        x = region.x + 1 + (i % per_row) * block_w
        if y + 2 >= region.bottom:
            break
        inner = block_w - 2
        _safe(win, y, x, disk.name[:inner], curses.color_pair(C_TITLE))
        _safe(win, y + 1, x, f"▼ {fmt_rate(disk.read_kib)}"[:inner], curses.color_pair(C_NORMAL))
        _safe(win, y + 2, x, f"▲ {fmt_rate(disk.write_kib)}"[:inner], curses.color_pair(C_WARNING))
        if y + 3 < region.bottom:
            _draw_graph(win, y + 3, x, inner, 1, _disk_combined(disk, inner), 100.0)


def draw_net_panel(win: curses.window, region: Region, state: DashboardState) -> None:
    telemetry = state.telemetry
    _draw_section(win, region)
    width = region.width - 2
    x = region.x + 1
    rows = region.bottom - (region.y + 1)
    graph_h = max(1, (rows - 2) // 2)

    y = region.y + 1
    _safe(win, y, x, f"▼ {fmt_rate(telemetry.net_rx.rate)}", curses.color_pair(C_NORMAL))
    y += 1
    if y + graph_h <= region.bottom:
        rx = [rate_percent(v) for v in recent(telemetry.net_rx.history, width)]
        _draw_graph(win, y, x, width, graph_h, rx, 100.0, C_NORMAL)
        y += graph_h
    if y >= region.bottom:
        return
    _safe(win, y, x, f"▲ {fmt_rate(telemetry.net_tx.rate)}", curses.color_pair(C_WARNING))
    y += 1
    graph_h = min(graph_h, region.bottom - y)
    tx = [rate_percent(v) for v in recent(telemetry.net_tx.history, width)]
    _draw_graph(win, y, x, width, graph_h, tx, 100.0, C_WARNING)


def draw_proc_panel(win: curses.window, region: Region, state: DashboardState) -> None:
    _draw_section(win, region)
    cols = process_columns(region.width)
    _safe(
        win,
        region.y + 1,
        region.x,
        process_header(cols)[: region.width],
        curses.color_pair(C_TITLE) | curses.A_BOLD,
    )

    mode = state.settings.sort_mode
    for offset, (index, proc) in enumerate(state.visible_processes()):
        line = process_row(proc, cols, mode)[: region.width]
        if index == state.selected:
            attr = curses.color_pair(C_SELECTED) | curses.A_BOLD
            line = line.ljust(region.width)
        else:
            cpu = proc.cpu_percent if mode is SortMode.CPU_INSTANT else proc.cpu_smoothed
            attr = curses.color_pair(proc_cpu_color(cpu))
        _safe(win, region.y + 2 + offset, region.x, line, attr)

    _safe(
        win,
        region.bottom - 1,
        region.x,
        process_footer(state)[: region.width],
        curses.color_pair(C_DIM),
    )


_PANEL_RENDERERS = {
    Pane.MEMORY: draw_mem_panel,
    Pane.DISK: draw_disk_panel,
    Pane.NETWORK: draw_net_panel,
    Pane.PROCESSES: draw_proc_panel,
}


# ── Status and help bars ───────────────────────────────────────────────────


def _draw_header(win: curses.window, w: int, state: DashboardState) -> None:
    ts = time.strftime("%H:%M:%S")
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    _safe(win, 0, 0, " " * (w - 1), attr)
    _safe(win, 0, 1, f"termtop v{VERSION}", attr | curses.A_BOLD)
    _safe(win, 0, (w - len(ts)) // 2, ts, attr)

    battery = state.telemetry.battery
    if battery is not None and w > 40:
        x = w - 20
        color = battery_color(battery.percent)
        _safe(win, 0, x, battery_text(battery.percent, battery.status), attr)
        filled, empty = mini_bar(battery.percent, 5)
        _safe(win, f" {filled}", curses.color_pair(color) | curses.A_BOLD)
        _safe(win, empty, curses.color_pair(C_DIM))


def _draw_help(win: curses.window, row: int, w: int) -> None:
    _safe(win, row, 1, HELP_TEXT[: w - 2], curses.color_pair(C_DIM))


def _draw_too_small(
    win: curses.window, w: int, h: int, verdict: TooSmall, flags: PaneFlags
) -> None:
    for i, line in enumerate(too_small_lines(w, h, verdict, flags)):
        if i >= h:
            break
        attr = curses.color_pair(C_CRITICAL) | curses.A_BOLD if i == 0 else curses.color_pair(C_DIM)
        _safe(win, i, 0, line[: w - 1], attr)


def draw_screen(win: curses.window, state: DashboardState) -> None:
    win.erase()
    layout = state.layout
    if isinstance(layout, TooSmall):
        _draw_too_small(win, state.width, state.height, layout, state.settings.panes)
    elif isinstance(layout, Layout):
        _draw_header(win, layout.width, state)
        if layout.cpu is not None:
            draw_cpu_panel(win, layout.cpu, state)
        for pane, renderer in _PANEL_RENDERERS.items():
            region = layout.region(pane)
            if region is not None:
                renderer(win, region, state)
        _draw_help(win, layout.help_row, layout.width)
    win.refresh()


# ── Main loop ──────────────────────────────────────────────────────────────


def _read_key(stdscr: curses.window) -> tuple[int, bool]:
    """Read one key; Esc followed quickly by ``v`` is the Alt-V chord.

    Any other key following Esc is pushed back so it is read next.
    """
    key = stdscr.getch()
    if key != KEY_ESC:
        return key, False
    stdscr.timeout(ESC_WAIT_MS)
    follow = stdscr.getch()
    if follow in (ord("v"), ord("V")):
        return follow, True
    if follow != -1:
        curses.ungetch(follow)
    return key, False


def _dashboard_loop(
    stdscr: curses.window,
    state: DashboardState,
    collector: Collector,
    settings_file: Path,
) -> None:
    _init_colors()
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)

    max_y, max_x = stdscr.getmaxyx()
    state.relayout(max_x, max_y)

    refresh_s = state.settings.refresh_ms / 1000.0
    last_poll = time.monotonic()
    state.refresh(collector.snapshot(), refresh_s)
    next_tick = last_poll + refresh_s

    while True:
        draw_screen(stdscr, state)

        stdscr.timeout(max(0, int((next_tick - time.monotonic()) * 1000)))
        key, meta = _read_key(stdscr)
        force_poll = False
        if key != -1:
            action = key_action(key, meta)
            if action is Action.QUIT:
                return
            if action is Action.RESIZE:
                max_y, max_x = stdscr.getmaxyx()
                state.relayout(max_x, max_y)
            elif action is not None:
                force_poll = apply_action(state, action)
                if force_poll:
                    save_settings(settings_file, state.settings)

        now = time.monotonic()
        if force_poll or now >= next_tick:
            if force_poll or not state.too_small:
                snapshot = collector.snapshot()
                polled = time.monotonic()
                state.refresh(snapshot, polled - last_poll)
                last_poll = polled
            refresh_s = state.settings.refresh_ms / 1000.0
            next_tick = now + refresh_s


# ── CLI entry point ────────────────────────────────────────────────────────


def _build_state(config: dict[str, Any], refresh_ms: int | None) -> tuple[DashboardState, Collector, Path]:
    settings_file = settings_path()
    settings = load_settings(settings_file, default_settings(config))
    if refresh_ms is not None:
        settings = replace(settings, refresh_ms=clamp_refresh(refresh_ms))

    limits = config.get("limits", {})
    disks = config.get("disks", {})
    collector = Collector(disk_exclude=disks.get("exclude_prefixes", ()))
    state = DashboardState(
        settings,
        history_size=int(config.get("history_size", 120)),
        max_processes=int(limits.get("max_processes", 4096)),
        max_cores=int(limits.get("max_cores", 256)),
        max_disks=int(limits.get("max_disks", 32)),
        clock_ticks=collector.ticks_per_second,
    )
    return state, collector, settings_file


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Terminal resource monitor with per-core, memory, disk, network and process panes.",
    )
    parser.add_argument(
        "--refresh",
        type=int,
        default=None,
        metavar="MS",
        help="Milliseconds between refreshes, 100-10000 (default: from settings, 1000)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write the JSON log here instead of the state directory",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Log level (default: warning)",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args()

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    log_cfg = config.get("logging", {})
    log_file = args.log_file or (Path(log_cfg["file"]) if log_cfg.get("file") else None)
    try:
        configure_logging(
            args.log_level or str(log_cfg.get("level", "warning")),
            log_file,
            int(log_cfg.get("max_bytes", 1_048_576)),
            int(log_cfg.get("backup_count", 3)),
        )
    except ValueError as e:
        print(f"termtop: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    state, collector, settings_file = _build_state(config, args.refresh)
    os.environ.setdefault("ESCDELAY", "25")
    log.info("startup", version=VERSION, refresh_ms=state.settings.refresh_ms)

    try:
        curses.wrapper(_dashboard_loop, state, collector, settings_file)
    except curses.error as e:
        print(f"termtop: cannot initialise terminal: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        pass
    save_settings(settings_file, state.settings)
    log.info("shutdown", polls=state.telemetry.polls)


if __name__ == "__main__":
    main()
