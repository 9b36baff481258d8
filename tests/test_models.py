"""Tests for termtop.models."""

from __future__ import annotations

import pytest

from termtop.models import CapacityExceededError, CoreSample, KeyedTable, Snapshot


class TestCoreSample:
    def test_totals(self) -> None:
        s = CoreSample(user=10, nice=1, system=5, idle=80, iowait=4)
        assert s.total == 100
        assert s.idle_total == 84

    def test_from_fields_pads_missing_counters(self) -> None:
        s = CoreSample.from_fields([1, 2, 3, 4])
        assert s == CoreSample(user=1, nice=2, system=3, idle=4)

    def test_from_fields_ignores_extra_counters(self) -> None:
        s = CoreSample.from_fields([1, 2, 3, 4, 5, 6, 7, 8, 9, 10])
        assert s.steal == 8
        assert s.total == 36

    def test_from_fields_needs_four(self) -> None:
        with pytest.raises(ValueError):
            CoreSample.from_fields([1, 2, 3])


class TestKeyedTable:
    def test_admit_and_get(self) -> None:
        t: KeyedTable[str, int] = KeyedTable(2, "disk")
        t.admit("sda", 1)
        assert "sda" in t
        assert t.get("sda") == 1
        assert t.get("sdb") is None
        assert len(t) == 1

    def test_replacing_existing_key_ignores_capacity(self) -> None:
        t: KeyedTable[str, int] = KeyedTable(1)
        t.admit("a", 1)
        t.admit("a", 2)
        assert t.get("a") == 2

    def test_full_table_raises(self) -> None:
        t: KeyedTable[int, str] = KeyedTable(1, "process")
        t.admit(1, "init")
        with pytest.raises(CapacityExceededError) as exc:
            t.admit(2, "bash")
        assert exc.value.kind == "process"
        assert exc.value.capacity == 1
        assert 2 not in t

    def test_retain_returns_dropped_keys(self) -> None:
        t: KeyedTable[str, int] = KeyedTable(4)
        for i, k in enumerate(("a", "b", "c")):
            t.admit(k, i)
        assert t.retain({"b"}) == ["a", "c"]
        assert list(t) == ["b"]

    def test_discard(self) -> None:
        t: KeyedTable[str, int] = KeyedTable(4)
        t.admit("a", 1)
        assert t.discard("a") == 1
        assert t.discard("a") is None

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            KeyedTable(0)


def test_snapshot_defaults() -> None:
    snap = Snapshot()
    assert snap.overall is None
    assert snap.cores == {}
    assert snap.disks == []
    assert snap.processes == []
    assert snap.battery is None
