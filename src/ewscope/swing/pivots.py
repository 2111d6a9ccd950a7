"""Pivot bookkeeping shared by the swing detectors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Protocol, Sequence, Tuple, runtime_checkable

from ewscope.ew.core.model import Degree, Swing


class PivotType(Enum):
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class Pivot:
    index: int
    price: float
    kind: PivotType


def absorb_pivot(pivots: List[Pivot], pivot: Pivot) -> None:
    """Append `pivot`, folding runs of same-type pivots into the more extreme one.

    A HIGH replaces the previous HIGH when its price is >=, a LOW replaces the
    previous LOW when its price is <=. An opposite-type pivot is kept only when
    it moves against the last one (a LOW below the last HIGH, a HIGH above the
    last LOW), so the resulting swings strictly alternate in direction.
    """
    if math.isnan(pivot.price):
        return
    if not pivots:
        pivots.append(pivot)
        return
    last = pivots[-1]
    if last.kind != pivot.kind:
        if pivot.kind is PivotType.LOW and pivot.price < last.price:
            pivots.append(pivot)
        elif pivot.kind is PivotType.HIGH and pivot.price > last.price:
            pivots.append(pivot)
        return
    if pivot.kind is PivotType.HIGH and pivot.price >= last.price:
        pivots[-1] = pivot
    elif pivot.kind is PivotType.LOW and pivot.price <= last.price:
        pivots[-1] = pivot


def swings_from_pivots(pivots: Sequence[Pivot], degree: Degree) -> List[Swing]:
    return [
        Swing(a.index, b.index, a.price, b.price, degree)
        for a, b in zip(pivots, pivots[1:])
    ]


@dataclass(frozen=True)
class SwingDetection:
    swings: Tuple[Swing, ...]
    pivot_indexes: Tuple[int, ...]
    unstable_bars: int

    @staticmethod
    def from_pivots(pivots: Sequence[Pivot], degree: Degree, unstable_bars: int) -> "SwingDetection":
        if len(pivots) < 2:
            return SwingDetection((), tuple(p.index for p in pivots), unstable_bars)
        return SwingDetection(
            tuple(swings_from_pivots(pivots, degree)),
            tuple(p.index for p in pivots),
            unstable_bars,
        )


@runtime_checkable
class SwingDetector(Protocol):
    def detect(self, series: Any, index: int, degree: Degree) -> SwingDetection:
        """Swings confirmed at bar `index` (no swing may end after it)."""
        ...
