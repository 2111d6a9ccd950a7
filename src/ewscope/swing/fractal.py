"""Fractal (lookback/lookforward window) swing extraction.

A bar is a HIGH pivot when its price is strictly above every valid neighbour in
the window around it, LOW symmetrically. Pivots are only confirmed once the
full lookforward window exists at or before the queried index, so the result
never looks ahead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ewscope.data.types import PriceSource, price_list
from ewscope.ew.core.model import Degree, Swing
from ewscope.logging import get_logger
from ewscope.swing.pivots import Pivot, PivotType, SwingDetection, absorb_pivot

log = get_logger("ewscope.swing.fractal")


@dataclass(frozen=True)
class FractalConfig:
    lookback: int = 2
    lookforward: int = 2
    allowed_equal_bars: int = 0

    def __post_init__(self) -> None:
        if self.lookback < 1 or self.lookforward < 1:
            raise ValueError("window lengths must be positive")
        if self.allowed_equal_bars < 0:
            raise ValueError("allowed_equal_bars must be non-negative")

    @property
    def unstable_bars(self) -> int:
        return self.lookback + self.lookforward


def _plateau_edge(prices: Sequence[float], p: int, target: int, allowed: int, step: int) -> Optional[int]:
    """Last index of the run of bars equal to prices[p] walking by `step`, or None."""
    v = prices[p]
    i = p
    used = 0
    while 0 <= i + step <= target and used < allowed:
        nxt = prices[i + step]
        if math.isnan(nxt):
            return None
        if nxt != v:
            break
        used += 1
        i += step
    if 0 <= i + step <= target and prices[i + step] == v:
        return None
    return i


def _dominates(prices: Sequence[float], edge: int, count: int, step: int, target: int, v: float, high: bool) -> bool:
    for k in range(1, count + 1):
        j = edge + step * k
        if j < 0 or j > target:
            return False
        x = prices[j]
        if math.isnan(x):
            return False
        if high and not v > x:
            return False
        if not high and not v < x:
            return False
    return True


def classify_pivot(prices: Sequence[float], p: int, target: int, cfg: FractalConfig) -> Optional[PivotType]:
    v = prices[p]
    if math.isnan(v):
        return None
    start = _plateau_edge(prices, p, target, cfg.allowed_equal_bars, -1)
    end = _plateau_edge(prices, p, target, cfg.allowed_equal_bars, +1)
    if start is None or end is None:
        return None
    for kind, high in ((PivotType.HIGH, True), (PivotType.LOW, False)):
        if _dominates(prices, start, cfg.lookback, -1, target, v, high) and _dominates(
            prices, end, cfg.lookforward, +1, target, v, high
        ):
            return kind
    return None


def fractal_pivots(prices: Sequence[float], index: int, cfg: FractalConfig) -> List[Pivot]:
    """Alternating pivots confirmed at `index`."""
    if index < 0 or index >= len(prices):
        return []
    last_candidate = index - cfg.lookforward
    if last_candidate < cfg.lookback:
        return []
    pivots: List[Pivot] = []
    for p in range(cfg.lookback, last_candidate + 1):
        kind = classify_pivot(prices, p, index, cfg)
        if kind is not None:
            absorb_pivot(pivots, Pivot(p, prices[p], kind))
    return pivots


@dataclass(frozen=True)
class FractalSwingDetector:
    cfg: FractalConfig = FractalConfig()
    column: str = "close"

    def detect(self, series: PriceSource, index: int, degree: Degree) -> SwingDetection:
        prices = price_list(series, self.column)
        pivots = fractal_pivots(prices, index, self.cfg)
        out = SwingDetection.from_pivots(pivots, degree, self.cfg.unstable_bars)
        log.debug(
            "fractal swings",
            extra={"index": index, "bars": len(prices), "pivots": len(pivots), "swings": len(out.swings)},
        )
        return out


def extract_swings(
    source: PriceSource,
    index: Optional[int] = None,
    *,
    lookback: int = 2,
    lookforward: Optional[int] = None,
    allowed_equal_bars: int = 0,
    degree: Degree = Degree.MINOR,
    column: str = "close",
) -> List[Swing]:
    """Swings at `index` (default: last bar); `lookforward` defaults to `lookback`."""
    prices = price_list(source, column)
    cfg = FractalConfig(lookback, lookback if lookforward is None else lookforward, allowed_equal_bars)
    target = len(prices) - 1 if index is None else index
    return list(FractalSwingDetector(cfg, column).detect(prices, target, degree).swings)


def pivot_indexes(
    source: PriceSource,
    index: Optional[int] = None,
    *,
    lookback: int = 2,
    lookforward: Optional[int] = None,
    allowed_equal_bars: int = 0,
    column: str = "close",
) -> List[int]:
    prices = price_list(source, column)
    cfg = FractalConfig(lookback, lookback if lookforward is None else lookforward, allowed_equal_bars)
    target = len(prices) - 1 if index is None else index
    return [p.index for p in fractal_pivots(prices, target, cfg)]
