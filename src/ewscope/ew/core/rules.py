"""Fibonacci ratio bands and structural impulse rules."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

from ewscope.ew.core.model import Swing

Band = Tuple[float, float]


def amplitude_ratio(numerator: Swing, denominator: Swing) -> float:
    """|numerator| / |denominator|, NaN when the denominator has no amplitude."""
    den = denominator.amplitude
    if den == 0:
        return math.nan
    return numerator.amplitude / den


@dataclass(frozen=True)
class FibonacciValidator:
    """Band checks and proximity scores for individual wave ratios.

    Every band is widened by `tolerance` on both sides. Retracement ratios are
    measured against the preceding leg (wave2/wave1, wave4/wave3, B/A);
    extensions and projections against wave 1 (wave3, wave5) or wave A (C).
    """

    tolerance: float = 0.05
    wave2: Band = (0.382, 0.786)
    wave3: Band = (1.0, 2.618)
    wave4: Band = (0.236, 0.786)
    wave5: Band = (0.618, 1.618)
    wave_b: Band = (0.382, 0.886)
    wave_b_flat: Band = (0.786, 0.886)
    wave_c: Band = (1.0, 1.618)

    def _between(self, ratio: float, band: Band) -> bool:
        if math.isnan(ratio):
            return False
        lo, hi = band
        return lo - self.tolerance <= ratio <= hi + self.tolerance

    def proximity(self, ratio: float, band: Band, ideal: float) -> float:
        """1 at the ideal ratio, falling by half per half-band of distance; 0 outside the band."""
        if math.isnan(ratio):
            return 0.0
        lo, hi = band
        if ratio < lo - self.tolerance or ratio > hi + self.tolerance:
            return 0.0
        half = (hi - lo) / 2.0
        if half == 0:
            return 1.0
        return min(1.0, max(0.0, 1.0 - (abs(ratio - ideal) / half) * 0.5))

    def is_wave2_valid(self, wave1: Swing, wave2: Swing) -> bool:
        return self._between(amplitude_ratio(wave2, wave1), self.wave2)

    def is_wave3_valid(self, wave1: Swing, wave3: Swing) -> bool:
        return self._between(amplitude_ratio(wave3, wave1), self.wave3)

    def is_wave4_valid(self, wave3: Swing, wave4: Swing) -> bool:
        return self._between(amplitude_ratio(wave4, wave3), self.wave4)

    def is_wave5_valid(self, wave1: Swing, wave5: Swing) -> bool:
        return self._between(amplitude_ratio(wave5, wave1), self.wave5)

    def is_wave_b_valid(self, wave_a: Swing, wave_b: Swing) -> bool:
        return self._between(amplitude_ratio(wave_b, wave_a), self.wave_b)

    def is_wave_b_flat_valid(self, wave_a: Swing, wave_b: Swing) -> bool:
        return self._between(amplitude_ratio(wave_b, wave_a), self.wave_b_flat)

    def is_wave_c_valid(self, wave_a: Swing, wave_c: Swing) -> bool:
        return self._between(amplitude_ratio(wave_c, wave_a), self.wave_c)

    def wave2_score(self, wave1: Swing, wave2: Swing) -> float:
        return self.proximity(amplitude_ratio(wave2, wave1), self.wave2, 0.618)

    def wave3_score(self, wave1: Swing, wave3: Swing) -> float:
        return self.proximity(amplitude_ratio(wave3, wave1), self.wave3, 1.618)

    def wave4_score(self, wave3: Swing, wave4: Swing) -> float:
        return self.proximity(amplitude_ratio(wave4, wave3), self.wave4, 0.382)

    def wave5_score(self, wave1: Swing, wave5: Swing) -> float:
        return self.proximity(amplitude_ratio(wave5, wave1), self.wave5, 1.0)

    def wave_b_score(self, wave_a: Swing, wave_b: Swing) -> float:
        return self.proximity(amplitude_ratio(wave_b, wave_a), self.wave_b, 0.618)

    def wave_c_score(self, wave_a: Swing, wave_c: Swing) -> float:
        return self.proximity(amplitude_ratio(wave_c, wave_a), self.wave_c, 1.0)


def alternates(swings: Sequence[Swing]) -> bool:
    return all(a.is_rising != b.is_rising for a, b in zip(swings, swings[1:]))


def is_valid_impulse(swings: Sequence[Swing]) -> bool:
    """Structural legality of a partial or complete impulse count.

    - consecutive swings alternate direction
    - wave 2 does not retrace beyond the start of wave 1
    - wave 4 does not enter wave 1 territory (beyond the end of wave 1)
    """
    if not swings or len(swings) > 5:
        return False
    if not alternates(swings):
        return False
    w1 = swings[0]
    up = w1.is_rising
    if len(swings) >= 2:
        end2 = swings[1].to_price
        if (up and end2 < w1.from_price) or (not up and end2 > w1.from_price):
            return False
    if len(swings) >= 4:
        end4 = swings[3].to_price
        if (up and end4 < w1.to_price) or (not up and end4 > w1.to_price):
            return False
    return True
