"""Tests for termtop.layout."""

from __future__ import annotations

import itertools

import pytest

from termtop.layout import (
    CPU_MIN_ROWS,
    CoreMode,
    Layout,
    Pane,
    PaneFlags,
    Rect,
    Region,
    TooSmall,
    compute_layout,
    core_grid,
    cpu_sub_layout,
    minimum_size,
    process_columns,
)

ALL = PaneFlags()


def _layout(width: int, height: int, flags: PaneFlags = ALL, cores: int = 4) -> Layout:
    result = compute_layout(width, height, flags, cores)
    assert isinstance(result, Layout)
    return result


# ── Minimum size ───────────────────────────────────────────────────────────


class TestMinimumSize:
    def test_all_panes(self) -> None:
        assert minimum_size(ALL) == (80, 24)

    def test_terminal_far_too_small(self) -> None:
        assert compute_layout(40, 10, ALL, 8) == TooSmall(80, 24)

    @pytest.mark.parametrize(
        "flags",
        [
            ALL,
            PaneFlags(cpu=False),
            PaneFlags(processes=False),
            PaneFlags(memory=False, disk=False, network=False),
            PaneFlags(cpu=True, memory=False, disk=False, network=False, processes=False),
            PaneFlags(cpu=False, memory=False, disk=False, network=False, processes=False),
        ],
    )
    def test_exact_minimum_fits_and_one_less_does_not(self, flags: PaneFlags) -> None:
        w, h = minimum_size(flags)
        assert isinstance(compute_layout(w, h, flags, 8), Layout)
        assert compute_layout(w - 1, h, flags, 8) == TooSmall(w, h)
        assert compute_layout(w, h - 1, flags, 8) == TooSmall(w, h)

    def test_processes_only(self) -> None:
        flags = PaneFlags(cpu=False, memory=False, disk=False, network=False)
        assert minimum_size(flags) == (80, 10)


# ── Vertical split ─────────────────────────────────────────────────────────


class TestVerticalSplit:
    def test_minimum_terminal(self) -> None:
        layout = _layout(80, 24)
        cpu = layout.region(Pane.CPU)
        proc = layout.region(Pane.PROCESSES)
        assert cpu is not None and proc is not None
        assert (cpu.y, cpu.height) == (1, CPU_MIN_ROWS)
        assert proc.y == cpu.bottom
        assert proc.bottom == layout.help_row

    def test_cpu_growth_is_capped(self) -> None:
        layout = _layout(120, 60)
        cpu = layout.region(Pane.CPU)
        assert cpu is not None
        # available 58, surplus 58 - 7 - 15 = 36, grows by a quarter
        assert cpu.height == 16
        assert cpu.height <= 58 // 3

    def test_cpu_alone_takes_all_rows(self) -> None:
        flags = PaneFlags(memory=False, disk=False, network=False, processes=False)
        cpu = _layout(100, 30, flags).region(Pane.CPU)
        assert cpu is not None
        assert cpu.height == 28

    def test_hidden_cpu_gives_rows_to_bottom(self) -> None:
        layout = _layout(80, 24, PaneFlags(cpu=False))
        proc = layout.region(Pane.PROCESSES)
        assert layout.region(Pane.CPU) is None
        assert proc is not None
        assert (proc.y, proc.height) == (1, 22)


# ── Horizontal split ───────────────────────────────────────────────────────


class TestHorizontalSplit:
    def test_side_column_gets_35_percent(self) -> None:
        layout = _layout(80, 24)
        mem = layout.region(Pane.MEMORY)
        proc = layout.region(Pane.PROCESSES)
        assert mem is not None and proc is not None
        assert mem.width == 26
        assert proc.width == 51
        assert proc.x > mem.right - 1

    def test_wide_terminal(self) -> None:
        layout = _layout(200, 40)
        mem = layout.region(Pane.MEMORY)
        proc = layout.region(Pane.PROCESSES)
        assert mem is not None and proc is not None
        assert mem.width == 197 * 35 // 100
        assert mem.width + proc.width == 197

    def test_processes_alone_full_width(self) -> None:
        flags = PaneFlags(memory=False, disk=False, network=False)
        proc = _layout(100, 30, flags).region(Pane.PROCESSES)
        assert proc is not None
        assert (proc.x, proc.width) == (1, 98)

    def test_side_alone_full_width(self) -> None:
        mem = _layout(100, 30, PaneFlags(processes=False)).region(Pane.MEMORY)
        assert mem is not None
        assert (mem.x, mem.width) == (1, 98)


# ── Side pane stacking ─────────────────────────────────────────────────────


class TestSidePanes:
    def test_fixed_order_and_full_height(self) -> None:
        layout = _layout(100, 40)
        panes = [layout.region(p) for p in (Pane.MEMORY, Pane.DISK, Pane.NETWORK)]
        assert all(r is not None for r in panes)
        regions = [r for r in panes if r is not None]
        assert [r.y for r in regions] == sorted(r.y for r in regions)
        for upper, lower in zip(regions, regions[1:]):
            assert upper.bottom == lower.y
        proc = layout.region(Pane.PROCESSES)
        assert proc is not None
        assert regions[-1].bottom == proc.bottom

    def test_last_pane_takes_remainder(self) -> None:
        layout = _layout(80, 25)
        heights = [
            r.height
            for p in (Pane.MEMORY, Pane.DISK, Pane.NETWORK)
            if (r := layout.region(p)) is not None
        ]
        assert heights == [5, 5, 6]

    def test_single_side_pane(self) -> None:
        flags = PaneFlags(disk=False, network=False)
        layout = _layout(80, 24, flags)
        mem = layout.region(Pane.MEMORY)
        assert mem is not None
        assert mem.height == 15
        assert layout.region(Pane.DISK) is None


# ── Region invariants ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("width", "height", "flags"),
    [
        (80, 24, ALL),
        (81, 25, ALL),
        (132, 43, ALL),
        (250, 70, ALL),
        (90, 30, PaneFlags(disk=False)),
        (90, 30, PaneFlags(cpu=False, network=False)),
        (120, 40, PaneFlags(processes=False)),
    ],
)
def test_regions_never_overlap_or_overflow(width: int, height: int, flags: PaneFlags) -> None:
    layout = _layout(width, height, flags, cores=16)
    screen = Rect(0, 1, width, height - 2)
    regions = list(layout.regions.values())
    assert {r.pane for r in regions} == {p for p in Pane if flags.visible(p)}
    for r in regions:
        assert r.width > 0 and r.height > 0
        assert screen.contains(r)
    for a, b in itertools.combinations(regions, 2):
        assert not a.overlaps(b)


def test_layout_is_deterministic() -> None:
    assert compute_layout(100, 40, ALL, 8) == compute_layout(100, 40, ALL, 8)


def test_no_panes_visible() -> None:
    flags = PaneFlags(cpu=False, memory=False, disk=False, network=False, processes=False)
    layout = _layout(80, 10, flags)
    assert layout.regions == {}
    assert layout.cpu is None


# ── Per-core grid ──────────────────────────────────────────────────────────


class TestCoreGrid:
    def test_two_line_even_rows(self) -> None:
        grid = core_grid(4, 1, 3, 78, 4)
        assert grid.mode is CoreMode.TWO_LINE
        assert grid.cores_per_row == 4
        assert grid.item_width == 19

    def test_prefers_grid_without_short_last_row(self) -> None:
        grid = core_grid(16, 1, 3, 78, 8)
        assert grid.mode is CoreMode.TWO_LINE
        assert grid.cores_per_row == 4

    def test_falls_back_to_one_line(self) -> None:
        grid = core_grid(16, 1, 3, 78, 4)
        assert grid.mode is CoreMode.ONE_LINE
        assert grid.hidden == 0

    def test_truncates_when_nothing_fits(self) -> None:
        grid = core_grid(64, 1, 3, 78, 2)
        assert grid.mode is CoreMode.ONE_LINE
        assert len(grid.cells) == 2 * grid.cores_per_row
        assert grid.hidden == 64 - len(grid.cells)

    def test_no_room(self) -> None:
        grid = core_grid(8, 1, 3, 78, 0)
        assert grid.cells == ()
        assert grid.hidden == 8

    @pytest.mark.parametrize(
        ("cores", "width", "rows"),
        list(itertools.product((1, 4, 16, 64), (40, 78, 130, 250), (1, 3, 8, 20, 40))),
    )
    def test_cells_unique_disjoint_and_inside(self, cores: int, width: int, rows: int) -> None:
        area = Rect(1, 3, width, rows)
        grid = core_grid(cores, area.x, area.y, area.width, area.height)
        indices = [c.core for c in grid.cells]
        assert indices == list(range(len(indices)))
        assert len(indices) + grid.hidden == cores
        for cell in grid.cells:
            assert area.contains(cell)
        for a, b in itertools.combinations(grid.cells, 2):
            assert not a.overlaps(b)

    @pytest.mark.parametrize("cores", [1, 4, 16, 64])
    def test_every_core_shown_with_room(self, cores: int) -> None:
        grid = core_grid(cores, 1, 3, 200, 40)
        assert grid.hidden == 0


class TestCpuSubLayout:
    def test_compact_pane(self) -> None:
        region = Region(x=1, y=1, width=78, height=7, pane=Pane.CPU)
        cpu = cpu_sub_layout(region, 4)
        assert cpu.graph == Rect(1, 2, 60, 1)
        assert cpu.grid.cells[0].y == 3
        assert all(c.bottom <= region.bottom - 1 for c in cpu.grid.cells)

    def test_tall_pane_gets_two_row_graph(self) -> None:
        region = Region(x=1, y=1, width=40, height=12, pane=Pane.CPU)
        cpu = cpu_sub_layout(region, 2)
        assert cpu.graph.height == 2
        assert cpu.graph.width == 38


# ── Process columns ────────────────────────────────────────────────────────


class TestProcessColumns:
    def test_all_columns(self) -> None:
        cols = process_columns(100)
        assert cols.show_command and cols.show_user
        assert cols.pid == 8 and cols.mem == 8 and cols.cpu == 6
        assert cols.program == 74 * 30 // 100
        assert cols.command == 74 * 40 // 100

    def test_command_dropped(self) -> None:
        cols = process_columns(40)
        assert not cols.show_command
        assert cols.show_user

    def test_narrowest(self) -> None:
        cols = process_columns(30)
        assert not cols.show_command
        assert not cols.show_user
        assert cols.program >= 6
