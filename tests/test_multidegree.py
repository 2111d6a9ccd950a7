import pytest

from ewscope.data.types import BarSeries
from ewscope.errors import AnalysisError
from ewscope.ew.core.model import Confidence, Degree, Phase, ScenarioType, Swing
from ewscope.ew.core.scenario import Scenario, ScenarioSet
from ewscope.ew.detectors.analyzer import AnalysisResult
from ewscope.ew.detectors.multidegree import (
    MultiDegreeAnalyzer,
    compatibility,
    default_series_selector,
    degrees_to_analyze,
    scale,
)

UP = Swing(0, 5, 100, 120)
DOWN = Swing(0, 5, 120, 100)

BARS = {Degree.INTERMEDIATE: 200, Degree.MINOR: 100, Degree.MINUTE: 60}


def conf(v):
    return Confidence(v, v, v, v, v, v)


def scenario(id, v, swing, invalidation, type=ScenarioType.IMPULSE, phase=Phase.WAVE3, degree=Degree.MINOR):
    return Scenario.create(id, phase, [swing], conf(v), degree, invalidation_price=invalidation, type=type)


def result(degree, *scenarios):
    return AnalysisResult(degree, 0, (), (), ScenarioSet.of(scenarios))


def daily(n=250):
    return BarSeries.from_closes([100.0 + (i % 7) for i in range(n)], freq="D")


def by_degree_selector(series, degree):
    return series.tail(BARS[degree])


CANNED = {
    Degree.INTERMEDIATE: result(Degree.INTERMEDIATE, scenario("hi", 0.8, UP, 90.0)),
    Degree.MINOR: result(
        Degree.MINOR,
        scenario("bull", 0.6, UP, 100.0),
        scenario("bear", 0.65, DOWN, 125.0),
    ),
    Degree.MINUTE: result(
        Degree.MINUTE,
        scenario("lo", 0.5, DOWN, 130.0, type=ScenarioType.CORRECTIVE_ZIGZAG, phase=Phase.CORRECTIVE_B),
    ),
}


def canned_runner(series, degree):
    return CANNED[degree]


def test_degrees_to_analyze():
    assert degrees_to_analyze(Degree.MINOR, 1, 1) == [Degree.INTERMEDIATE, Degree.MINOR, Degree.MINUTE]
    assert degrees_to_analyze(Degree.MINOR, 2, 0) == [Degree.PRIMARY, Degree.INTERMEDIATE, Degree.MINOR]
    assert degrees_to_analyze(Degree.GRAND_SUPERCYCLE, 3, 0) == [Degree.GRAND_SUPERCYCLE]
    assert degrees_to_analyze(Degree.SUB_MINUETTE, 0, 2) == [Degree.SUB_MINUETTE]


def test_scale():
    assert scale(Degree.MINOR, Degree.INTERMEDIATE, 0.2, 1.5, 0.05, 0.6) == pytest.approx(0.3)
    assert scale(Degree.MINOR, Degree.MINUTE, 0.2, 1.5, 0.05, 0.6) == pytest.approx(0.2 / 1.5)
    assert scale(Degree.MINOR, Degree.GRAND_SUPERCYCLE, 0.2, 1.5, 0.05, 0.6) == 0.6


def test_compatibility():
    base = scenario("b", 0.6, UP, 100.0)
    agree = scenario("h", 0.8, UP, 90.0)
    assert compatibility(base, agree, Degree.MINOR, Degree.INTERMEDIATE) == pytest.approx(1.0)
    # a coarser degree invalidating inside the base level
    tight = scenario("h", 0.8, UP, 105.0)
    assert compatibility(base, tight, Degree.MINOR, Degree.INTERMEDIATE) == pytest.approx(0.85)
    assert compatibility(base, agree, Degree.MINOR, Degree.MINOR) == 0.0


def test_cross_degree_ranking():
    md = MultiDegreeAnalyzer(Degree.MINOR, 1, 1, by_degree_selector, canned_runner)
    out = md.analyze(daily())
    assert [a.degree for a in out.analyses] == [Degree.INTERMEDIATE, Degree.MINOR, Degree.MINUTE]
    assert all(a.history_fit_score == 1.0 for a in out.analyses)
    assert out.notes == ()

    best = out.best
    assert best.scenario.id == "bull"
    assert best.cross_degree_score == pytest.approx((1.0 + 0.615) / 2.0)
    assert best.composite_score == pytest.approx(0.7 * 0.6 + 0.3 * 0.8075)
    assert [m.scenario_id for m in best.supporting_matches] == ["hi", "lo"]

    bear = out.ranked[1]
    assert bear.scenario.id == "bear"
    assert bear.cross_degree_score == pytest.approx((0.375 + 0.76) / 2.0)
    assert out.base_analysis is CANNED[Degree.MINOR]


def test_base_weight_is_one_without_supporting_degrees():
    md = MultiDegreeAnalyzer(Degree.MINOR, 0, 0, by_degree_selector, canned_runner, base_confidence_weight=0.2)
    assert md.base_confidence_weight == 1.0
    out = md.analyze(daily())
    assert [a.scenario.id for a in out.ranked] == ["bear", "bull"]
    for a in out.ranked:
        assert a.composite_score == pytest.approx(a.confidence_score)
        assert a.cross_degree_score == 0.5


def test_empty_supporting_degree_is_neutral():
    def runner(series, degree):
        if degree is Degree.MINOR:
            return CANNED[degree]
        return result(degree)

    out = MultiDegreeAnalyzer(Degree.MINOR, 1, 1, by_degree_selector, runner).analyze(daily())
    assert all(a.cross_degree_score == 0.5 for a in out.ranked)
    assert all(a.supporting_matches == () for a in out.ranked)


def test_failing_supporting_degree_is_skipped():
    def runner(series, degree):
        if degree is Degree.MINUTE:
            raise ValueError("boom")
        if degree is Degree.INTERMEDIATE:
            return None
        return CANNED[degree]

    out = MultiDegreeAnalyzer(Degree.MINOR, 1, 1, by_degree_selector, runner).analyze(daily())
    assert [a.degree for a in out.analyses] == [Degree.MINOR]
    assert "Skipped MINUTE analysis: runner failed: boom" in out.notes
    assert "Skipped INTERMEDIATE analysis: runner returned null result" in out.notes
    assert out.analysis_for(Degree.MINUTE) is None


def test_base_failure_raises():
    def runner(series, degree):
        if degree is Degree.MINOR:
            raise ValueError("bad base")
        return CANNED[degree]

    with pytest.raises(AnalysisError, match="MINOR"):
        MultiDegreeAnalyzer(Degree.MINOR, 1, 1, by_degree_selector, runner).analyze(daily())

    with pytest.raises(AnalysisError):
        MultiDegreeAnalyzer(Degree.MINOR, 0, 0, by_degree_selector, lambda s, d: None).analyze(daily())


def test_history_fit_note():
    md = MultiDegreeAnalyzer(Degree.MINOR, 1, 0, lambda s, d: s.tail(100), canned_runner)
    out = md.analyze(daily())
    assert "Degree INTERMEDIATE has limited history fit: 0.00" in out.notes
    assert out.best.cross_degree_score == 0.5


def test_argument_validation():
    with pytest.raises(ValueError):
        MultiDegreeAnalyzer(Degree.MINOR, -1, 0)
    with pytest.raises(ValueError):
        MultiDegreeAnalyzer(Degree.MINOR, 1, 1, base_confidence_weight=1.5)
    with pytest.raises(ValueError):
        MultiDegreeAnalyzer(Degree.MINOR).analyze(BarSeries.from_closes([]))


def test_default_series_selector():
    series = daily(500)
    assert len(default_series_selector(series, Degree.MINUTE)) == 90
    assert len(default_series_selector(series, Degree.GRAND_SUPERCYCLE)) == 500
    plain = BarSeries.from_closes([1.0, 2.0, 3.0])
    assert default_series_selector(plain, Degree.MINUTE) is plain


def test_default_runner_end_to_end():
    closes = [100, 104, 101, 108, 103, 112, 106, 118, 110, 115, 107, 113, 104, 109, 101] * 4
    out = MultiDegreeAnalyzer(Degree.MINOR).analyze(BarSeries.from_closes(closes))
    assert out.base_analysis is not None
    assert out.base_degree is Degree.MINOR
    assert len(out.ranked) == len(out.base_analysis.scenario_set)
