import math

import pytest

from ewscope.errors import DirectionUnknownError
from ewscope.ew.core.model import Confidence, Degree, Direction, Phase, ScenarioType, Swing
from ewscope.ew.core.scenario import Scenario, ScenarioSet, TrendBias, TrendDirection

UP = Swing(0, 5, 100, 120)
DOWN = Swing(0, 5, 120, 100)


def conf(v):
    return Confidence(v, v, v, v, v, v, "test")


def scenario(id, v, swings=(UP,), phase=Phase.WAVE1, **kw):
    return Scenario.create(id, phase, swings, conf(v), Degree.MINOR, **kw)


def test_invalidation_for_bullish_scenario():
    s = scenario("a", 0.8, invalidation_price=100.0)
    assert s.is_bullish
    assert s.is_invalidated_by(95.0)
    assert not s.is_invalidated_by(105.0)
    assert not s.is_invalidated_by(math.nan)


def test_invalidation_for_bearish_scenario():
    s = scenario("b", 0.8, swings=(DOWN,), invalidation_price=120.0)
    assert s.is_bearish
    assert s.is_invalidated_by(121.0)
    assert not s.is_invalidated_by(119.0)


def test_direction_comes_from_first_swing():
    s = scenario("a", 0.5, direction=Direction.BEARISH)
    assert s.direction is Direction.BULLISH
    s = scenario("b", 0.5, swings=(DOWN, UP), direction=Direction.BULLISH)
    assert s.direction is Direction.BEARISH


def test_direction_unknown_without_swings():
    s = scenario("x", 0.5, swings=())
    assert not s.has_known_direction
    with pytest.raises(DirectionUnknownError, match="'x'"):
        s.is_bullish
    s = scenario("y", 0.5, swings=(), direction=Direction.BEARISH)
    assert s.is_bearish


def test_primary_target_defaults_to_first():
    s = scenario("a", 0.5, targets=(130.0, 140.0))
    assert s.primary_target == 130.0
    assert s.all_targets == (130.0, 140.0)
    assert math.isnan(scenario("b", 0.5).primary_target)


def test_confidence_validation():
    with pytest.raises(ValueError):
        Confidence(1.5, 0, 0, 0, 0, 0)
    assert conf(0.75).is_high
    assert conf(0.2).is_low
    assert conf(0.5).as_percentage == pytest.approx(50.0)


def test_set_is_sorted_by_confidence():
    ss = ScenarioSet.of([scenario("a", 0.3), scenario("b", 0.9), scenario("c", 0.6)], bar_index=7)
    assert [s.id for s in ss.all()] == ["b", "c", "a"]
    assert ss.base().id == "b"
    assert [s.id for s in ss.alternatives()] == ["c", "a"]
    assert ss.bar_index == 7
    assert ss.confidence_spread() == pytest.approx(0.3)


def test_set_queries():
    ss = ScenarioSet.of([
        scenario("a", 0.8, phase=Phase.WAVE3),
        scenario("b", 0.75, phase=Phase.WAVE3),
        scenario("c", 0.2, phase=Phase.WAVE5, type=ScenarioType.IMPULSE),
    ])
    assert ss.high_confidence_count() == 2
    assert ss.low_confidence_count() == 1
    assert ss.consensus() is Phase.WAVE3
    assert not ss.has_strong_consensus()
    assert len(ss.by_phase(Phase.WAVE3)) == 2
    assert len(ss.by_type(ScenarioType.IMPULSE)) == 1
    assert ss.summary() == "3 scenario(s): Base case=WAVE3 (80.0%), 2 alternative(s), consensus=WAVE3"


def test_empty_set():
    ss = ScenarioSet.empty()
    assert ss.is_empty
    assert ss.base() is None
    assert ss.summary() == "No scenarios"
    assert ss.consensus() is Phase.NONE
    assert ss.trend_bias().is_unknown


def test_invalidated_and_valid_at():
    ss = ScenarioSet.of([
        scenario("bull", 0.8, invalidation_price=100.0),
        scenario("bear", 0.5, swings=(DOWN,), invalidation_price=120.0),
        scenario("none", 0.4, swings=()),
    ])
    assert [s.id for s in ss.invalidated_by(95.0)] == ["bull"]
    assert [s.id for s in ss.valid_at(95.0)] == ["bear", "none"]
    assert len(ss.valid_at(math.nan)) == 3


def test_trend_bias():
    ss = ScenarioSet.of([
        scenario("bull", 0.8),
        scenario("bear", 0.4, swings=(DOWN,)),
        scenario("none", 0.6, swings=()),
    ])
    bias = ss.trend_bias()
    assert bias.score == pytest.approx(1.0 / 3.0)
    assert bias.direction is TrendDirection.BULLISH
    assert bias.consensus
    assert bias.known_direction_count == 2
    assert bias.total_scenarios == 3


def test_trend_bias_neutral_and_split():
    ss = ScenarioSet.of([scenario("bull", 0.8), scenario("bear", 0.75, swings=(DOWN,))])
    bias = ss.trend_bias()
    assert bias.is_neutral
    assert not bias.consensus
    with pytest.raises(ValueError):
        TrendBias.from_scenarios(ss.all(), neutral_threshold=2.0)


def test_set_constructor_always_sorts():
    ss = ScenarioSet((scenario("a", 0.3), scenario("b", 0.9)), 4)
    assert [s.id for s in ss] == ["b", "a"]
    assert [s.id for s in ss.by_phase(Phase.WAVE1)] == ["b", "a"]
