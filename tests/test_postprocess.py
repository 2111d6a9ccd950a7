import pytest

from ewscope.data.types import BarSeries
from ewscope.ew.core.model import Swing
from ewscope.swing.postprocess import MinMagnitudeSwingFilter, SwingCompressor, postprocess_swings

SWINGS = [
    Swing(0, 2, 100, 110),  # amp 10, 2 bars
    Swing(2, 3, 110, 108),  # amp 2, 1 bar
    Swing(3, 6, 108, 120),  # amp 12, 3 bars
    Swing(6, 7, 120, 116),  # amp 4, 1 bar
]


def test_compressor_drops_small_and_short_swings():
    out = SwingCompressor(min_amplitude=5.0, min_bars=2).compress(SWINGS)
    assert out == [SWINGS[0], SWINGS[2]]


def test_compressor_is_idempotent():
    c = SwingCompressor(min_amplitude=3.0, min_bars=1)
    once = c.compress(SWINGS)
    assert c.compress(once) == once


def test_compressor_without_thresholds_is_identity():
    assert SwingCompressor().compress(SWINGS) == SWINGS


def test_compressor_validation():
    with pytest.raises(ValueError, match="minBars"):
        SwingCompressor(min_bars=-1)


def test_from_series_uses_last_price():
    c = SwingCompressor.from_series(BarSeries.from_closes([50, 80, 200]), pct=0.01, min_bars=1)
    assert c.min_amplitude == pytest.approx(2.0)
    assert c.min_bars == 1


def test_from_series_errors():
    with pytest.raises(ValueError, match="percentage"):
        SwingCompressor.from_series([1.0, 2.0], pct=0.0)
    with pytest.raises(ValueError, match="percentage"):
        SwingCompressor.from_series([1.0, 2.0], pct=1.5)
    with pytest.raises(ValueError, match="empty"):
        SwingCompressor.from_series([], pct=0.1)


def test_min_magnitude_filter():
    out = MinMagnitudeSwingFilter(0.5).filter(SWINGS)
    assert out == [SWINGS[0], SWINGS[2]]
    assert MinMagnitudeSwingFilter(0.5).filter([]) == []
    with pytest.raises(ValueError):
        MinMagnitudeSwingFilter(1.5)


def test_postprocess_chains_filter_then_compressor():
    out = postprocess_swings(SWINGS, MinMagnitudeSwingFilter(0.3), SwingCompressor(min_bars=3))
    assert out == [SWINGS[2]]
    assert postprocess_swings(SWINGS) == SWINGS
