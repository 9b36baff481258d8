"""Dashboard state shared by the event loop and the renderer.

Everything here is terminal-free: the loop feeds it snapshots, key actions
and terminal sizes, and the renderer reads the results back.
"""

from __future__ import annotations

from dataclasses import replace

import structlog

from termtop.layout import Layout, Pane, TooSmall, compute_layout
from termtop.models import Snapshot
from termtop.processes import MAX_PROCESSES, ProcessEntity, ProcessTracker
from termtop.ranking import rank
from termtop.settings import Settings
from termtop.telemetry import MAX_CORES, MAX_DISKS, TelemetryEngine

log = structlog.get_logger()

PAGE_SIZE = 10
PROC_CHROME_ROWS = 3  # section header, column header, footer


class DashboardState:
    def __init__(
        self,
        settings: Settings,
        history_size: int = 120,
        max_processes: int = MAX_PROCESSES,
        max_cores: int = MAX_CORES,
        max_disks: int = MAX_DISKS,
        clock_ticks: int = 100,
    ) -> None:
        self.settings = settings
        self.telemetry = TelemetryEngine(history_size, max_cores, max_disks)
        self.tracker = ProcessTracker(max_processes, clock_ticks)
        self.ranked: list[ProcessEntity] = []
        self.selected = 0
        self.scroll = 0
        self.layout: Layout | TooSmall | None = None
        self.width = 0
        self.height = 0

    # ── Polling ────────────────────────────────────────────────────────────

    def refresh(self, snapshot: Snapshot, elapsed: float) -> None:
        """Fold one poll into the engines, then re-rank and re-layout."""
        cores_before = self.telemetry.core_count
        self.telemetry.update(snapshot, elapsed)
        total_mem = self.telemetry.memory.total if self.telemetry.memory else 0
        self.tracker.update(
            snapshot.processes,
            elapsed,
            max(1, self.telemetry.core_count),
            total_mem,
        )
        self.rerank()
        if self.telemetry.core_count != cores_before and self.width:
            self.relayout(self.width, self.height)

    def rerank(self) -> None:
        self.ranked = rank(self.tracker.entities(), self.settings.sort_mode)
        self._clamp_selection()

    def relayout(self, width: int, height: int) -> Layout | TooSmall:
        self.width, self.height = width, height
        self.layout = compute_layout(
            width, height, self.settings.panes, self.telemetry.core_count
        )
        self.scroll_into_view()
        return self.layout

    @property
    def too_small(self) -> bool:
        return isinstance(self.layout, TooSmall)

    # ── User actions ───────────────────────────────────────────────────────

    def toggle_pane(self, pane: Pane) -> None:
        self.settings = replace(self.settings, panes=self.settings.panes.toggled(pane))
        log.debug("pane_toggled", pane=pane.title, visible=self.settings.panes.visible(pane))
        if self.width:
            self.relayout(self.width, self.height)

    def cycle_sort(self, step: int) -> None:
        self.settings = replace(
            self.settings, sort_mode=self.settings.sort_mode.step(step)
        )
        self.rerank()

    @property
    def navigable(self) -> bool:
        """Whether selection keys apply right now."""
        return not self.too_small and self.settings.panes.processes

    def move_selection(self, delta: int) -> None:
        self.selected += delta
        self._clamp_selection()
        self.scroll_into_view()

    def home(self) -> None:
        self.selected = 0
        self.scroll_into_view()

    def end(self) -> None:
        self.selected = max(0, len(self.ranked) - 1)
        self.scroll_into_view()

    def page_down(self) -> None:
        self.move_selection(PAGE_SIZE)

    def page_up(self) -> None:
        self.move_selection(-PAGE_SIZE)

    # ── Scroll window ──────────────────────────────────────────────────────

    def list_height(self) -> int:
        """Rows available for process entries in the current layout."""
        if not isinstance(self.layout, Layout):
            return 0
        region = self.layout.region(Pane.PROCESSES)
        if region is None:
            return 0
        return max(0, region.height - PROC_CHROME_ROWS)

    def scroll_into_view(self) -> None:
        rows = self.list_height()
        if rows <= 0:
            self.scroll = 0
            return
        if self.selected < self.scroll:
            self.scroll = self.selected
        elif self.selected >= self.scroll + rows:
            self.scroll = self.selected - rows + 1
        self.scroll = max(0, min(self.scroll, max(0, len(self.ranked) - rows)))

    def visible_processes(self) -> list[tuple[int, ProcessEntity]]:
        """(index, process) pairs inside the scroll window."""
        rows = self.list_height()
        window = self.ranked[self.scroll : self.scroll + rows]
        return list(enumerate(window, start=self.scroll))

    def _clamp_selection(self) -> None:
        if not self.ranked:
            self.selected = 0
        else:
            self.selected = max(0, min(self.selected, len(self.ranked) - 1))
        self.scroll_into_view()
