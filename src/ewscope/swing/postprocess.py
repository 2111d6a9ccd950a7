"""Swing post-processing: pluggable filters followed by amplitude/length compression.

Both stages are pure `swings -> swings` functions; a missing stage is identity.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ewscope.data.types import PriceSource, price_list
from ewscope.ew.core.model import Swing
from ewscope.logging import get_logger

log = get_logger("ewscope.swing.postprocess")


@runtime_checkable
class SwingFilter(Protocol):
    def filter(self, swings: Sequence[Swing]) -> List[Swing]:
        ...


@dataclass(frozen=True)
class MinMagnitudeSwingFilter:
    """Drops swings smaller than `pct` of the largest amplitude in the list."""

    pct: float = 0.2

    def __post_init__(self) -> None:
        if not 0.0 <= self.pct <= 1.0:
            raise ValueError("pct must be in range [0, 1]")

    def filter(self, swings: Sequence[Swing]) -> List[Swing]:
        if not swings:
            return []
        threshold = max(s.amplitude for s in swings) * self.pct
        return [s for s in swings if s.amplitude >= threshold]


@dataclass(frozen=True)
class SwingCompressor:
    """Removes swings with amplitude below `min_amplitude` or fewer than `min_bars` bars."""

    min_amplitude: Optional[float] = None
    min_bars: int = 0

    def __post_init__(self) -> None:
        if self.min_bars < 0:
            raise ValueError("minBars must be non-negative")
        if self.min_amplitude is not None and (math.isnan(self.min_amplitude) or self.min_amplitude < 0):
            raise ValueError("min_amplitude must be a non-negative number")

    @staticmethod
    def from_series(
        series: PriceSource,
        pct: float = 0.01,
        min_bars: int = 2,
        column: str = "close",
    ) -> "SwingCompressor":
        """Amplitude threshold as a fraction of the last valid price."""
        if not 0.0 < pct <= 1.0:
            raise ValueError("percentage must be in range (0, 1]")
        if min_bars < 0:
            raise ValueError("minBars must be non-negative")
        prices = price_list(series, column)
        if not prices:
            raise ValueError("series cannot be empty")
        last = next((p for p in reversed(prices) if not math.isnan(p)), math.nan)
        min_amp = None if math.isnan(last) else abs(last) * pct
        return SwingCompressor(min_amplitude=min_amp, min_bars=min_bars)

    def keeps(self, swing: Swing) -> bool:
        if self.min_amplitude is not None and swing.amplitude < self.min_amplitude:
            return False
        return swing.length >= self.min_bars

    def compress(self, swings: Sequence[Swing]) -> List[Swing]:
        return [s for s in swings if self.keeps(s)]


def postprocess_swings(
    swings: Sequence[Swing],
    swing_filter: Optional[SwingFilter] = None,
    compressor: Optional[SwingCompressor] = None,
) -> List[Swing]:
    out = list(swings)
    if swing_filter is not None:
        out = swing_filter.filter(out)
    if compressor is not None:
        out = compressor.compress(out)
    log.debug("postprocess", extra={"swings_in": len(swings), "swings_out": len(out)})
    return out
