"""Tests for the failed-test differ."""

from __future__ import annotations

import random

from faildiff_core.differ import DiffStatus, diff
from faildiff_core.model import FailedTest

A1 = FailedTest("ClassA", "Test1", "x")
B2 = FailedTest("ClassB", "Test2", "y")
B2_CHANGED = FailedTest("ClassB", "Test2", "z")
C3 = FailedTest("ClassC", "Test3", "w")


def test_empty_sides():
    result = diff([], [])
    assert result.status == DiffStatus.NONE
    assert result.updated == []
    assert result.added == []
    assert not result.has_regressions


def test_reference_only_failures_are_dropped():
    result = diff([A1, B2], [])
    assert result.added == []
    assert result.updated == []
    assert result.status == DiffStatus.NONE


def test_on_demand_only_failures_are_all_new_and_sorted():
    result = diff([], [C3, A1, B2])
    assert result.added == [A1, B2, C3]
    assert result.status == DiffStatus.NEW


def test_identical_sides_are_same():
    result = diff([A1, B2], [B2, A1])
    assert result.updated == []
    assert result.added == []
    assert result.status == DiffStatus.SAME
    assert not result.has_regressions


def test_mixed_scenario():
    result = diff([A1, B2], [A1, B2_CHANGED, C3])
    assert result.updated == [B2_CHANGED]
    assert result.added == [C3]
    assert DiffStatus.NEW in result.status
    assert DiffStatus.UPDATED in result.status
    assert DiffStatus.SAME in result.status
    assert result.has_regressions
    assert result.status.labels() == ["new failures", "updated failures", "same failures"]


def test_keys_compare_ordinally():
    lower = FailedTest("alpha", "t", "")
    upper = FailedTest("Beta", "t", "")
    assert diff([], [lower, upper]).added == [upper, lower]


def test_output_independent_of_input_order():
    reference = [FailedTest(f"Class{i}", "test", "old") for i in range(0, 20, 2)]
    on_demand = [FailedTest(f"Class{i}", "test", "new" if i % 4 else "old") for i in range(20)]
    expected = diff(reference, on_demand)

    rng = random.Random(7)
    for _ in range(5):
        shuffled_ref, shuffled_ond = reference[:], on_demand[:]
        rng.shuffle(shuffled_ref)
        rng.shuffle(shuffled_ond)
        assert diff(shuffled_ref, shuffled_ond) == expected
