"""Percentage-reversal ZigZag swing extraction.

A new pivot is confirmed once price moves `pct` percent against the running
extreme of the current leg. Only confirmed pivots are reported, so the last
(still developing) leg is never part of the output.

Public API:
- ZigZagConfig(pct=...)
- zigzag_from_close(close, cfg_or_pct) -> list[(idx, price)]
- ZigZagSwingDetector(cfg).detect(series, index, degree)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from ewscope.data.types import PriceSource, price_list
from ewscope.ew.core.model import Degree
from ewscope.logging import get_logger
from ewscope.swing.pivots import Pivot, PivotType, SwingDetection, absorb_pivot

log = get_logger("ewscope.swing.zigzag")


@dataclass(frozen=True)
class ZigZagConfig:
    pct: float = 1.0

    def __post_init__(self) -> None:
        if not self.pct > 0:
            raise ValueError("zigzag pct must be positive")


def _get_pct(cfg_or_pct: Any) -> float:
    if isinstance(cfg_or_pct, (int, float)):
        return float(cfg_or_pct)
    if isinstance(cfg_or_pct, dict) and "pct" in cfg_or_pct:
        return float(cfg_or_pct["pct"])
    if hasattr(cfg_or_pct, "pct"):
        return float(getattr(cfg_or_pct, "pct"))
    raise TypeError(f"expected ZigZagConfig or percentage, got {type(cfg_or_pct).__name__}")


def zigzag_pivots(prices: Sequence[float], index: int, pct: float) -> List[Pivot]:
    """Confirmed alternating pivots using bars 0..index."""
    thr = pct / 100.0
    pivots: List[Pivot] = []
    trend = 0
    hi_i = lo_i = -1
    for i in range(0, min(index, len(prices) - 1) + 1):
        px = prices[i]
        if math.isnan(px):
            continue
        if hi_i < 0:
            hi_i = lo_i = i
            continue
        if trend >= 0 and px > prices[hi_i]:
            hi_i = i
        if trend <= 0 and px < prices[lo_i]:
            lo_i = i

        if trend == 0:
            if px >= prices[lo_i] * (1.0 + thr) and lo_i < i:
                absorb_pivot(pivots, Pivot(lo_i, prices[lo_i], PivotType.LOW))
                trend, hi_i = 1, i
            elif px <= prices[hi_i] * (1.0 - thr) and hi_i < i:
                absorb_pivot(pivots, Pivot(hi_i, prices[hi_i], PivotType.HIGH))
                trend, lo_i = -1, i
        elif trend > 0 and px <= prices[hi_i] * (1.0 - thr):
            absorb_pivot(pivots, Pivot(hi_i, prices[hi_i], PivotType.HIGH))
            trend, lo_i = -1, i
        elif trend < 0 and px >= prices[lo_i] * (1.0 + thr):
            absorb_pivot(pivots, Pivot(lo_i, prices[lo_i], PivotType.LOW))
            trend, hi_i = 1, i
    return pivots


def zigzag_from_close(close: PriceSource, cfg_or_pct: Any = None) -> List[Tuple[int, float]]:
    pct = _get_pct(cfg_or_pct) if cfg_or_pct is not None else ZigZagConfig().pct
    prices = price_list(close)
    return [(p.index, p.price) for p in zigzag_pivots(prices, len(prices) - 1, pct)]


@dataclass(frozen=True)
class ZigZagSwingDetector:
    cfg: ZigZagConfig = ZigZagConfig()
    column: str = "close"

    def detect(self, series: PriceSource, index: int, degree: Degree) -> SwingDetection:
        prices = price_list(series, self.column)
        if index < 0 or index >= len(prices):
            return SwingDetection((), (), 0)
        pivots = zigzag_pivots(prices, index, self.cfg.pct)
        out = SwingDetection.from_pivots(pivots, degree, 0)
        log.debug("zigzag swings", extra={"index": index, "pct": self.cfg.pct, "swings": len(out.swings)})
        return out
