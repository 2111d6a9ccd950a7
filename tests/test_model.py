from datetime import timedelta

import pytest

from ewscope.ew.core.model import Degree, DegreeRange, Phase, ScenarioType, Swing


def test_degree_navigation():
    assert Degree.MINOR.higher() is Degree.INTERMEDIATE
    assert Degree.MINOR.lower() is Degree.MINUTE
    assert Degree.GRAND_SUPERCYCLE.higher() is Degree.GRAND_SUPERCYCLE
    assert Degree.SUB_MINUETTE.lower() is Degree.SUB_MINUETTE
    assert Degree.PRIMARY.is_higher_or_equal(Degree.MINOR)
    assert Degree.MINUTE.is_lower_or_equal(Degree.MINUTE)


def test_degree_parse():
    assert Degree.parse("minor") is Degree.MINOR
    assert Degree.parse("Super Cycle") is Degree.SUPERCYCLE
    assert Degree.parse("sub-minuette") is Degree.SUB_MINUETTE
    with pytest.raises(ValueError):
        Degree.parse("tiny")


def test_history_fit():
    assert Degree.MINOR.history_fit_score(timedelta(days=1), 100) == 1.0
    assert Degree.MINOR.history_fit_score(timedelta(days=1), 10) == 0.0
    assert Degree.MINOR.history_fit_score(None, 100) == 0.0
    assert Degree.GRAND_SUPERCYCLE.history_fit_score(timedelta(days=365), 100) == 1.0


def test_degree_recommendation():
    assert Degree.recommended(timedelta(days=1), 100) == [Degree.MINOR, Degree.MINUTE, Degree.INTERMEDIATE]
    with pytest.raises(ValueError):
        Degree.recommended(timedelta(days=1), 0)


def test_degree_range():
    r = DegreeRange(60.0, 180.0)
    assert r.contains(60.0) and r.contains(180.0)
    assert r.score_for_days(30.0) == pytest.approx(0.5)
    assert r.score_for_days(360.0) == pytest.approx(0.5)
    assert not DegreeRange(20000.0, 0.0).has_max


def test_phase_helpers():
    assert Phase.impulse(3) is Phase.WAVE3
    assert Phase.corrective(5) is Phase.CORRECTIVE_C
    assert Phase.WAVE5.completes_structure
    assert not Phase.NONE.is_impulse and not Phase.NONE.is_corrective
    with pytest.raises(ValueError):
        Phase.impulse(6)


def test_scenario_type():
    assert ScenarioType.IMPULSE.expected_wave_count == 5
    assert ScenarioType.CORRECTIVE_FLAT.expected_wave_count == 3
    assert ScenarioType.CORRECTIVE_ZIGZAG.is_corrective
    assert not ScenarioType.UNKNOWN.is_impulse


def test_swing_validation():
    s = Swing(3, 7, 10, 8)
    assert not s.is_rising
    assert s.amplitude == 2.0
    assert s.length == 4
    with pytest.raises(ValueError):
        Swing(2, 2, 1.0, 2.0)
    with pytest.raises(ValueError):
        Swing(0, 1, float("nan"), 2.0)
    with pytest.raises(ValueError):
        Swing(-1, 1, 1.0, 2.0)
