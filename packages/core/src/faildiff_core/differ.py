"""Compare the failed tests of a reference build with those of a verification build."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable

from faildiff_core.model import FailedTest


class DiffStatus(enum.Flag):
    NONE = 0
    NEW = enum.auto()
    UPDATED = enum.auto()
    SAME = enum.auto()

    def labels(self) -> list[str]:
        return [name for flag, name in _LABELS if flag in self]


_LABELS = (
    (DiffStatus.NEW, "new failures"),
    (DiffStatus.UPDATED, "updated failures"),
    (DiffStatus.SAME, "same failures"),
)


@dataclass(frozen=True)
class FailedTestDiff:
    status: DiffStatus = DiffStatus.NONE
    updated: list[FailedTest] = field(default_factory=list)
    added: list[FailedTest] = field(default_factory=list)

    @property
    def has_regressions(self) -> bool:
        return bool(self.status & (DiffStatus.NEW | DiffStatus.UPDATED))


def diff(reference: Iterable[FailedTest], on_demand: Iterable[FailedTest]) -> FailedTestDiff:
    """Merge-join both sides on ``class::test`` keys.

    Failures present only in the reference are fixed and are not reported.
    Output lists follow ascending key order whatever the input order was.
    """
    ref = sorted(reference, key=lambda t: t.key)
    ond = sorted(on_demand, key=lambda t: t.key)

    status = DiffStatus.NONE
    updated: list[FailedTest] = []
    added: list[FailedTest] = []
    i = j = 0
    while i < len(ref) and j < len(ond):
        ref_key, ond_key = ref[i].key, ond[j].key
        if ref_key == ond_key:
            if ref[i] == ond[j]:
                status |= DiffStatus.SAME
            else:
                updated.append(ond[j])
                status |= DiffStatus.UPDATED
            i += 1
            j += 1
        elif ref_key < ond_key:
            i += 1
        else:
            added.append(ond[j])
            status |= DiffStatus.NEW
            j += 1

    if j < len(ond):
        added.extend(ond[j:])
        status |= DiffStatus.NEW

    return FailedTestDiff(status=status, updated=updated, added=added)
