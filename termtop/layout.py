"""Screen layout: which rectangle each visible pane gets.

Everything in this module is a pure function of the terminal size, the
pane visibility flags and the core count, so it can be exercised without a
terminal. Coordinates are character cells, origin top-left.

Screen structure::

    row 0            status line
    rows 1..         CPU pane (full width)
                     memory / disk / network stacked | process list
    row height-1     help line
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

# ── Size constants ─────────────────────────────────────────────────────────

MIN_WIDTH = 80
MIN_HEIGHT = 10
STATUS_ROWS = 1
HELP_ROWS = 1

CPU_MIN_ROWS = 7  # header + graph + one two-line row of cores + spare row
SIDE_PANE_MIN_ROWS = 5
PROC_MIN_ROWS = 8
BOTTOM_MIN_ROWS = 6

SIDE_MIN_WIDTH = 20
PROC_MIN_WIDTH = 45
HORIZONTAL_MARGIN = 4

SIDE_WIDTH_PERCENT = 35
SIDE_FLOOR_WIDTH = 18
PROC_FLOOR_WIDTH = 40

CPU_GRAPH_MAX_WIDTH = 60

# Process list columns
PROC_PID_WIDTH = 8
PROC_CPU_WIDTH = 6
PROC_MEM_WIDTH = 8
PROC_PROG_MIN_WIDTH = 8
PROC_CMD_MIN_WIDTH = 8
PROC_USER_MIN_WIDTH = 6
PROC_COLUMN_SPACING = 4


class Pane(Enum):
    """Toggleable screen sections; the value is the toggle key."""

    CPU = 1
    MEMORY = 2
    DISK = 3
    NETWORK = 4
    PROCESSES = 5

    @property
    def title(self) -> str:
        return _PANE_TITLES[self]


_PANE_TITLES = {
    Pane.CPU: "cpu",
    Pane.MEMORY: "mem",
    Pane.DISK: "disk",
    Pane.NETWORK: "net",
    Pane.PROCESSES: "proc",
}

SIDE_PANES = (Pane.MEMORY, Pane.DISK, Pane.NETWORK)


@dataclass(frozen=True, slots=True)
class PaneFlags:
    cpu: bool = True
    memory: bool = True
    disk: bool = True
    network: bool = True
    processes: bool = True

    def visible(self, pane: Pane) -> bool:
        return bool(getattr(self, _FLAG_FIELDS[pane]))

    def toggled(self, pane: Pane) -> PaneFlags:
        name = _FLAG_FIELDS[pane]
        return replace(self, **{name: not getattr(self, name)})

    def side_panes(self) -> list[Pane]:
        return [p for p in SIDE_PANES if self.visible(p)]

    @property
    def any_bottom(self) -> bool:
        return self.processes or bool(self.side_panes())


_FLAG_FIELDS = {
    Pane.CPU: "cpu",
    Pane.MEMORY: "memory",
    Pane.DISK: "disk",
    Pane.NETWORK: "network",
    Pane.PROCESSES: "processes",
}


@dataclass(frozen=True, slots=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """First column past the rectangle."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """First row past the rectangle."""
        return self.y + self.height

    def overlaps(self, other: Rect) -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )

    def contains(self, other: Rect) -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


@dataclass(frozen=True, slots=True)
class Region(Rect):
    pane: Pane


@dataclass(frozen=True, slots=True)
class TooSmall:
    """Verdict for a terminal below the minimum size of the pane selection."""

    min_width: int
    min_height: int


# ── Per-core grid ──────────────────────────────────────────────────────────


class CoreMode(Enum):
    TWO_LINE = "two-line"  # label + bar, sparkline underneath
    ONE_LINE = "one-line"  # label + mini bar


@dataclass(frozen=True, slots=True)
class CoreCell(Rect):
    core: int


@dataclass(frozen=True, slots=True)
class CoreGrid:
    mode: CoreMode
    cores_per_row: int
    item_width: int
    label_width: int
    core_count: int
    cells: tuple[CoreCell, ...]

    @property
    def hidden(self) -> int:
        """Cores that did not fit and are not displayed."""
        return self.core_count - len(self.cells)


def core_label_width(core_count: int) -> int:
    if core_count >= 100:
        return 4
    if core_count >= 10:
        return 3
    return 2


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def _balanced_cores_per_row(core_count: int, max_per_row: int, rows: int) -> int:
    """Search downward from *max_per_row* for the most even two-line grid.

    A grid whose last row is as full as the others wins immediately;
    otherwise the narrowest grid that still fits is kept.
    """
    best = max_per_row
    best_rows = _ceil_div(core_count, max_per_row)
    for per_row in range(max_per_row, 0, -1):
        rows_needed = _ceil_div(core_count, per_row)
        if rows_needed * 2 > rows:
            break
        last_row = core_count - (rows_needed - 1) * per_row
        if last_row == per_row or rows_needed != best_rows:
            best, best_rows = per_row, rows_needed
            if last_row == per_row:
                break
    return best


def core_grid(core_count: int, x: int, y: int, width: int, rows: int) -> CoreGrid:
    """Place one cell per core inside the *width* x *rows* area at (x, y).

    Two-line mode is used whenever every core fits at two rows each;
    otherwise one-line mode, truncated to the cores that fit.
    """
    label_w = core_label_width(core_count)
    usable = width - 2
    if core_count <= 0 or rows <= 0 or usable <= 0:
        return CoreGrid(CoreMode.ONE_LINE, 0, 0, label_w, max(core_count, 0), ())

    two_line_item = label_w + 12
    max_per_row = max(1, usable // two_line_item)
    rows_needed = _ceil_div(core_count, max_per_row)

    if usable >= two_line_item and rows >= rows_needed * 2:
        per_row = _balanced_cores_per_row(core_count, max_per_row, rows)
        item_w = usable // per_row
        cells = tuple(
            CoreCell(
                x=x + (i % per_row) * item_w,
                y=y + (i // per_row) * 2,
                width=item_w,
                height=2,
                core=i,
            )
            for i in range(core_count)
        )
        return CoreGrid(CoreMode.TWO_LINE, per_row, item_w, label_w, core_count, cells)

    one_line_item = label_w + 6
    per_row = max(1, usable // one_line_item)
    item_w = min(one_line_item, usable)
    shown = min(core_count, per_row * rows)
    cells = tuple(
        CoreCell(
            x=x + (i % per_row) * item_w,
            y=y + i // per_row,
            width=item_w,
            height=1,
            core=i,
        )
        for i in range(shown)
    )
    return CoreGrid(CoreMode.ONE_LINE, per_row, item_w, label_w, core_count, cells)


@dataclass(frozen=True, slots=True)
class CpuLayout:
    region: Region
    graph: Rect
    grid: CoreGrid


def cpu_sub_layout(region: Region, core_count: int) -> CpuLayout:
    """Header row, overall history graph, then the per-core grid.

    The pane's last row is kept free.
    """
    graph_h = 2 if region.height > 8 else 1
    graph_w = max(0, min(region.width - 2, CPU_GRAPH_MAX_WIDTH))
    graph = Rect(region.x, region.y + 1, graph_w, graph_h)
    cores_y = region.y + 1 + graph_h
    core_rows = (region.bottom - 1) - cores_y
    grid = core_grid(core_count, region.x, cores_y, region.width, core_rows)
    return CpuLayout(region=region, graph=graph, grid=grid)


# ── Whole-screen layout ────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Layout:
    width: int
    height: int
    regions: dict[Pane, Region]
    cpu: CpuLayout | None = None

    @property
    def status_row(self) -> int:
        return 0

    @property
    def help_row(self) -> int:
        return self.height - 1

    def region(self, pane: Pane) -> Region | None:
        return self.regions.get(pane)


def _bottom_min_rows(flags: PaneFlags) -> int:
    if not flags.any_bottom:
        return 0
    side_rows = len(flags.side_panes()) * SIDE_PANE_MIN_ROWS
    proc_rows = PROC_MIN_ROWS if flags.processes else 0
    return max(side_rows, proc_rows, BOTTOM_MIN_ROWS)


def minimum_size(flags: PaneFlags) -> tuple[int, int]:
    """Smallest (width, height) at which *flags* can be laid out."""
    content_h = CPU_MIN_ROWS if flags.cpu else 0
    content_h += _bottom_min_rows(flags)
    min_h = max(MIN_HEIGHT, STATUS_ROWS + HELP_ROWS + content_h)

    min_w = MIN_WIDTH
    if flags.any_bottom:
        side_w = SIDE_MIN_WIDTH if flags.side_panes() else 0
        proc_w = PROC_MIN_WIDTH if flags.processes else 0
        min_w = max(min_w, side_w + proc_w + HORIZONTAL_MARGIN)
    return min_w, min_h


def _cpu_height(flags: PaneFlags, available: int) -> int:
    if not flags.cpu:
        return 0
    if not flags.any_bottom:
        return available
    height = CPU_MIN_ROWS
    surplus = available - CPU_MIN_ROWS - _bottom_min_rows(flags)
    if surplus > 0:
        # The process list, not the CPU graph, takes most of the extra rows
        cap = max(CPU_MIN_ROWS, available // 3)
        height = min(CPU_MIN_ROWS + surplus // 4, cap)
    return height


def _column_widths(flags: PaneFlags, width: int) -> tuple[int, int]:
    """Return (side column width, process list width)."""
    has_side = bool(flags.side_panes())
    if flags.processes and not has_side:
        return 0, width - 2
    if has_side and not flags.processes:
        return width - 2, 0
    if not flags.processes:
        return 0, 0
    inner = width - 3
    side_w = max(SIDE_FLOOR_WIDTH, inner * SIDE_WIDTH_PERCENT // 100)
    proc_w = inner - side_w
    if proc_w < PROC_FLOOR_WIDTH:
        proc_w = PROC_FLOOR_WIDTH
        side_w = inner - proc_w
    return side_w, proc_w


def _stack_side_panes(
    panes: list[Pane], x: int, y: int, width: int, height: int
) -> list[Region]:
    regions: list[Region] = []
    remaining = height
    share = height // len(panes)
    for i, pane in enumerate(panes):
        if remaining <= 0:
            break
        pane_h = remaining if i == len(panes) - 1 else share
        if pane_h < SIDE_PANE_MIN_ROWS:
            pane_h = remaining
        pane_h = min(pane_h, remaining)
        regions.append(Region(x=x, y=y, width=width, height=pane_h, pane=pane))
        y += pane_h
        remaining -= pane_h
    return regions


def compute_layout(
    width: int, height: int, flags: PaneFlags, core_count: int
) -> Layout | TooSmall:
    """Lay out the visible panes, or report the minimum size needed."""
    min_w, min_h = minimum_size(flags)
    if width < min_w or height < min_h:
        return TooSmall(min_w, min_h)

    available = height - STATUS_ROWS - HELP_ROWS
    regions: dict[Pane, Region] = {}
    top = STATUS_ROWS

    cpu: CpuLayout | None = None
    cpu_h = _cpu_height(flags, available)
    if cpu_h > 0:
        cpu_region = Region(x=1, y=top, width=width - 2, height=cpu_h, pane=Pane.CPU)
        regions[Pane.CPU] = cpu_region
        cpu = cpu_sub_layout(cpu_region, core_count)

    bottom_y = top + cpu_h
    bottom_h = available - cpu_h
    side_w, proc_w = _column_widths(flags, width)

    side = flags.side_panes()
    if side and side_w > 0 and bottom_h > 0:
        for region in _stack_side_panes(side, 1, bottom_y, side_w, bottom_h):
            regions[region.pane] = region

    if flags.processes and proc_w > 0 and bottom_h > 0:
        proc_x = side_w + 2 if side else 1
        regions[Pane.PROCESSES] = Region(
            x=proc_x, y=bottom_y, width=proc_w, height=bottom_h, pane=Pane.PROCESSES
        )

    return Layout(width=width, height=height, regions=regions, cpu=cpu)


# ── Process list columns ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProcColumns:
    """Column widths of the process list; 0 means the column is hidden."""

    pid: int
    program: int
    command: int
    user: int
    mem: int
    cpu: int

    @property
    def show_command(self) -> bool:
        return self.command > 0

    @property
    def show_user(self) -> bool:
        return self.user > 0


def process_columns(width: int) -> ProcColumns:
    fixed = PROC_PID_WIDTH + PROC_MEM_WIDTH + PROC_CPU_WIDTH + PROC_COLUMN_SPACING
    var = width - fixed
    command = user = 0
    if var < PROC_PROG_MIN_WIDTH + PROC_USER_MIN_WIDTH:
        program = max(6, var - 1)
    elif var < PROC_PROG_MIN_WIDTH + PROC_CMD_MIN_WIDTH + PROC_USER_MIN_WIDTH:
        program = max(PROC_PROG_MIN_WIDTH, var * 60 // 100)
        user = max(PROC_USER_MIN_WIDTH, var - program - 1)
    else:
        program = max(PROC_PROG_MIN_WIDTH, var * 30 // 100)
        command = max(PROC_CMD_MIN_WIDTH, var * 40 // 100)
        user = max(PROC_USER_MIN_WIDTH, var - program - command - 2)
    return ProcColumns(
        pid=PROC_PID_WIDTH,
        program=program,
        command=command,
        user=user,
        mem=PROC_MEM_WIDTH,
        cpu=PROC_CPU_WIDTH,
    )
