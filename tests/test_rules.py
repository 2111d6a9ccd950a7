import math

import pytest

from ewscope.ew.core.model import Swing
from ewscope.ew.core.rules import FibonacciValidator, alternates, amplitude_ratio, is_valid_impulse

W1 = Swing(0, 5, 100, 120)
W2 = Swing(5, 8, 120, 108)
W3 = Swing(8, 15, 108, 155)
W4 = Swing(15, 18, 155, 140)
W5 = Swing(18, 25, 140, 170)


def test_amplitude_ratio():
    assert amplitude_ratio(W2, W1) == pytest.approx(0.6)
    assert math.isnan(amplitude_ratio(W1, Swing(0, 1, 5, 5)))


def test_valid_impulse():
    assert is_valid_impulse([W1, W2, W3, W4, W5])
    assert is_valid_impulse([W1])
    assert alternates([W1, W2, W3])


def test_wave2_beyond_wave1_start_is_invalid():
    deep = Swing(5, 8, 120, 95)
    assert not is_valid_impulse([W1, deep])


def test_wave4_overlap_is_invalid():
    overlap = Swing(15, 18, 155, 115)
    assert not is_valid_impulse([W1, W2, W3, overlap])


def test_non_alternating_is_invalid():
    assert not is_valid_impulse([W1, Swing(5, 8, 120, 130)])
    assert not is_valid_impulse([])


def test_fibonacci_validator_bands():
    fib = FibonacciValidator()
    assert fib.is_wave2_valid(W1, W2)
    assert fib.is_wave3_valid(W1, W3)
    assert fib.is_wave4_valid(W3, W4)
    assert fib.is_wave5_valid(W1, W5)
    assert not fib.is_wave2_valid(W1, Swing(5, 8, 120, 119))


def test_fibonacci_flat_b():
    fib = FibonacciValidator()
    a = Swing(0, 4, 100, 120)
    assert fib.is_wave_b_flat_valid(a, Swing(4, 8, 120, 103))
    assert not fib.is_wave_b_flat_valid(a, Swing(4, 8, 120, 110))
    assert fib.is_wave_b_valid(a, Swing(4, 8, 120, 110))


def test_proximity_scores():
    fib = FibonacciValidator()
    assert fib.wave2_score(W1, Swing(5, 8, 120, 107.64)) == pytest.approx(1.0)
    assert fib.wave2_score(W1, Swing(5, 8, 120, 119)) == 0.0
    assert 0.0 < fib.wave3_score(W1, W3) < 1.0
