import pandas as pd
import pytest

from ewscope.ew.core.model import Degree
from ewscope.swing.zigzag import ZigZagConfig, ZigZagSwingDetector, zigzag_from_close


def test_zigzag_basic():
    idx = pd.date_range("2025-01-01", periods=6, freq="D")
    close = pd.Series([100, 102, 105, 100, 98, 103], index=idx)
    pts = zigzag_from_close(close, ZigZagConfig(pct=3.0))
    assert pts == [(0, 100.0), (2, 105.0), (4, 98.0)]


def test_zigzag_accepts_plain_pct():
    pts = zigzag_from_close([100, 102, 105, 100, 98, 103], 3.0)
    assert [i for i, _ in pts] == [0, 2, 4]


def test_zigzag_small_moves_are_ignored():
    assert zigzag_from_close([100, 100.5, 100.2, 100.7, 100.4], 3.0) == []


def test_zigzag_pct_must_be_positive():
    with pytest.raises(ValueError):
        ZigZagConfig(pct=0.0)


def test_zigzag_detector_respects_index():
    det = ZigZagSwingDetector(ZigZagConfig(pct=3.0))
    out = det.detect([100, 102, 105, 100, 98, 103], 3, Degree.MINOR)
    # only the low at 0 and the high at 2 are confirmed by bar 3
    assert len(out.swings) == 1
    assert out.swings[0].to_index == 2
    assert all(s.to_index <= 3 for s in out.swings)
