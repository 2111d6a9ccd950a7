"""Price channel projected from the latest rising and falling swings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from ewscope.ew.core.model import Swing, is_valid


@dataclass(frozen=True)
class Channel:
    upper: float
    lower: float
    median: float

    @staticmethod
    def invalid() -> "Channel":
        return Channel(math.nan, math.nan, math.nan)

    @property
    def is_valid(self) -> bool:
        return is_valid(self.upper) and is_valid(self.lower)

    @property
    def width(self) -> float:
        if not self.is_valid:
            return math.nan
        return self.upper - self.lower

    def contains(self, price: float, tolerance: float = 0.0) -> bool:
        if not self.is_valid or not is_valid(price):
            return False
        tol = tolerance if is_valid(tolerance) else 0.0
        return self.lower - tol <= price <= self.upper + tol


def _project(older: Swing, newer: Swing, index: int) -> float:
    span = newer.to_index - older.to_index
    if span == 0:
        return math.nan
    slope = (newer.to_price - older.to_price) / span
    return newer.to_price + slope * (index - newer.to_index)


def project_channel(swings: Sequence[Swing], index: int) -> Channel:
    """Project trend lines through the last two rising and last two falling swing ends."""
    rising: List[Swing] = []
    falling: List[Swing] = []
    for s in reversed(swings):
        if s.is_rising:
            if len(rising) < 2:
                rising.append(s)
        elif len(falling) < 2:
            falling.append(s)
        if len(rising) == 2 and len(falling) == 2:
            break
    if len(rising) < 2 or len(falling) < 2:
        return Channel.invalid()

    upper = _project(rising[1], rising[0], index)
    lower = _project(falling[1], falling[0], index)
    if not is_valid(upper) or not is_valid(lower):
        return Channel.invalid()
    return Channel(upper, lower, (upper + lower) / 2.0)
