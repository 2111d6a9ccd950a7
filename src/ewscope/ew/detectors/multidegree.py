"""Multi-degree cross-validation of base-degree scenarios.

The single-degree pipeline runs at the base degree plus N coarser and M finer
degrees, each on a slice of the series sized to that degree's recommended
history. Every base scenario is then re-scored against the best matching
scenario of each supporting degree:

    composite = w * own_confidence + (1 - w) * cross_degree_score

where the cross-degree score is the history-fit weighted mean of the best
matches' compatibility (0.5 when no supporting degree contributed).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from ewscope.data.types import BarSeries
from ewscope.errors import AnalysisError
from ewscope.ew.core.model import Degree, is_valid
from ewscope.ew.core.scenario import Scenario
from ewscope.ew.detectors.analyzer import AnalysisResult, WaveAnalyzer
from ewscope.logging import get_logger
from ewscope.swing.postprocess import MinMagnitudeSwingFilter, SwingCompressor

log = get_logger("ewscope.multidegree")

NEUTRAL_CROSS_DEGREE_SCORE = 0.5

SeriesSelector = Callable[[BarSeries, Degree], Optional[BarSeries]]
AnalysisRunner = Callable[[BarSeries, Degree], Optional[AnalysisResult]]


@dataclass(frozen=True)
class DegreeAnalysis:
    degree: Degree
    index: int
    bar_count: int
    bar_duration: Optional[timedelta]
    history_fit_score: float
    analysis: AnalysisResult


@dataclass(frozen=True)
class SupportingMatch:
    degree: Degree
    scenario_id: str
    supporting_confidence: float
    compatibility: float
    weighted_compatibility: float
    history_fit_score: float


@dataclass(frozen=True)
class ScenarioAssessment:
    scenario: Scenario
    confidence_score: float
    cross_degree_score: float
    composite_score: float
    supporting_matches: Tuple[SupportingMatch, ...] = ()


@dataclass(frozen=True)
class MultiDegreeResult:
    base_degree: Degree
    analyses: Tuple[DegreeAnalysis, ...]
    ranked: Tuple[ScenarioAssessment, ...]
    notes: Tuple[str, ...] = field(default=())

    def analysis_for(self, degree: Degree) -> Optional[DegreeAnalysis]:
        for a in self.analyses:
            if a.degree is degree:
                return a
        return None

    @property
    def base_analysis(self) -> Optional[AnalysisResult]:
        a = self.analysis_for(self.base_degree)
        return a.analysis if a is not None else None

    @property
    def best(self) -> Optional[ScenarioAssessment]:
        return self.ranked[0] if self.ranked else None


def _clamp01(v: float) -> float:
    return min(1.0, max(0.0, v))


def _safe_score(v: float) -> float:
    return _clamp01(v) if is_valid(v) else 0.0


def scale(base: Degree, target: Degree, value: float, factor: float, lo: float, hi: float) -> float:
    """value * factor ** (base.ordinal - target.ordinal), clamped to [lo, hi]."""
    delta = base.ordinal - target.ordinal
    return min(hi, max(lo, value * math.pow(factor, delta)))


def degrees_to_analyze(base: Degree, higher: int, lower: int) -> List[Degree]:
    """Coarser degrees (outermost first), the base, then finer degrees."""
    up: List[Degree] = []
    cur = base
    for _ in range(max(0, higher)):
        nxt = cur.higher()
        if nxt is cur:
            break
        up.append(nxt)
        cur = nxt
    out = list(reversed(up)) + [base]
    cur = base
    for _ in range(max(0, lower)):
        nxt = cur.lower()
        if nxt is cur:
            break
        out.append(nxt)
        cur = nxt
    return out


def default_series_selector(series: BarSeries, degree: Degree) -> BarSeries:
    """Keep the latest bars that fit in the degree's maximum recommended history."""
    if series.is_empty:
        return series
    duration = series.bar_duration
    history = degree.recommended_history
    if duration is None or not history.has_max:
        return series
    days_per_bar = duration / timedelta(days=1)
    if days_per_bar <= 0:
        return series
    max_bars = max(1, int(math.floor(history.max_days / days_per_bar)))
    if max_bars >= len(series):
        return series
    return series.tail(max_bars)


def default_runner(base: Degree) -> AnalysisRunner:
    """Fractal pipeline with filter/compressor thresholds scaled by distance from `base`."""

    def run(series: BarSeries, degree: Degree) -> AnalysisResult:
        delta = base.ordinal - degree.ordinal
        analyzer = WaveAnalyzer(
            degree=degree,
            swing_filter=MinMagnitudeSwingFilter(scale(base, degree, 0.20, 1.5, 0.05, 0.60)),
            compressor=SwingCompressor.from_series(
                series, scale(base, degree, 0.01, 1.5, 0.0025, 0.05), max(1, 2 + delta)
            ),
        )
        return analyzer.analyze(series)

    return run


def direction_compatibility(base: Scenario, other: Scenario) -> float:
    if not base.has_known_direction or not other.has_known_direction:
        return 0.5
    if base.direction is other.direction:
        return 1.0
    if base.type.is_corrective or other.type.is_corrective:
        return 0.6
    return 0.0


def structure_compatibility(base: Scenario, other: Scenario) -> float:
    a, b = base.type, other.type
    if a.is_impulse and b.is_impulse:
        return 1.0
    if a.is_corrective and b.is_corrective:
        return 0.9
    if (a.is_impulse and b.is_corrective) or (a.is_corrective and b.is_impulse):
        return 0.7
    return 0.5


def invalidation_compatibility(base: Scenario, other: Scenario, supporting_is_higher: bool) -> float:
    """1.0 when the supporting level sits where its degree says it should.

    A coarser degree should invalidate no earlier than the base (looser level);
    a finer degree at or inside the base level. Direction-aware.
    """
    if not base.has_known_direction or not other.has_known_direction:
        return 0.5
    if base.direction is not other.direction:
        return 0.5
    b, s = base.invalidation_price, other.invalidation_price
    if not is_valid(b) or not is_valid(s):
        return 0.5
    bullish = base.is_bullish
    if supporting_is_higher:
        ok = s <= b if bullish else s >= b
    else:
        ok = s >= b if bullish else s <= b
    return 1.0 if ok else 0.0


def compatibility(base: Scenario, other: Scenario, base_degree: Degree, supporting: Degree) -> float:
    if base_degree is supporting:
        return 0.0
    higher = supporting.ordinal < base_degree.ordinal
    score = (
        0.55 * direction_compatibility(base, other)
        + 0.30 * structure_compatibility(base, other)
        + 0.15 * invalidation_compatibility(base, other, higher)
    )
    return _clamp01(score)


class MultiDegreeAnalyzer:
    def __init__(
        self,
        base_degree: Degree,
        higher_degrees: int = 1,
        lower_degrees: int = 1,
        series_selector: Optional[SeriesSelector] = None,
        analysis_runner: Optional[AnalysisRunner] = None,
        base_confidence_weight: float = 0.7,
    ):
        if base_degree is None:
            raise TypeError("base_degree is required")
        if higher_degrees < 0 or lower_degrees < 0:
            raise ValueError("degree counts must be non-negative")
        if math.isnan(base_confidence_weight) or not 0.0 <= base_confidence_weight <= 1.0:
            raise ValueError("base_confidence_weight must be in [0, 1]")
        self.base_degree = base_degree
        self.higher_degrees = higher_degrees
        self.lower_degrees = lower_degrees
        self.series_selector: SeriesSelector = series_selector or default_series_selector
        self.analysis_runner: AnalysisRunner = analysis_runner or default_runner(base_degree)
        if higher_degrees == 0 and lower_degrees == 0:
            base_confidence_weight = 1.0
        self.base_confidence_weight = base_confidence_weight

    @property
    def degrees(self) -> List[Degree]:
        return degrees_to_analyze(self.base_degree, self.higher_degrees, self.lower_degrees)

    def analyze(self, series: BarSeries) -> MultiDegreeResult:
        if series is None:
            raise TypeError("series is required")
        if series.is_empty:
            raise ValueError("series cannot be empty")

        notes: List[str] = []
        analyses: List[DegreeAnalysis] = []
        base_result: Optional[AnalysisResult] = None

        for degree in self.degrees:
            is_base = degree is self.base_degree
            selected = self.series_selector(series, degree)
            if selected is None or selected.is_empty:
                self._skip(notes, degree, "selected series was empty", is_base)
                continue
            duration = selected.bar_duration
            fit = degree.history_fit_score(duration, len(selected))
            if duration is not None and fit < 1.0:
                notes.append(f"Degree {degree.name} has limited history fit: {fit:.2f}")

            try:
                result = self.analysis_runner(selected, degree)
            except (ValueError, ArithmeticError) as e:
                if is_base:
                    raise AnalysisError(f"Base degree {degree.name} analysis failed: {e}") from e
                self._skip(notes, degree, f"runner failed: {e}", is_base)
                continue
            if result is None:
                self._skip(notes, degree, "runner returned null result", is_base)
                continue

            analyses.append(DegreeAnalysis(degree, result.index, len(selected), duration, fit, result))
            if is_base:
                base_result = result

        if base_result is None:
            raise AnalysisError(f"Base degree {self.base_degree.name} analysis was not available")

        ranked = self._rank(base_result, analyses)
        log.debug(
            "multi-degree done",
            extra={"degrees": [a.degree.name for a in analyses], "ranked": len(ranked), "notes": len(notes)},
        )
        return MultiDegreeResult(self.base_degree, tuple(analyses), tuple(ranked), tuple(notes))

    @staticmethod
    def _skip(notes: List[str], degree: Degree, reason: str, is_base: bool) -> None:
        notes.append(f"Skipped {degree.name} analysis: {reason}")
        if not is_base:
            log.warning("degree skipped", extra={"degree": degree.name, "reason": reason})

    def _rank(self, base: AnalysisResult, analyses: Sequence[DegreeAnalysis]) -> List[ScenarioAssessment]:
        out: List[ScenarioAssessment] = []
        w = self.base_confidence_weight
        for scenario in base.scenario_set:
            own = _safe_score(scenario.confidence_score)
            matches, cross = self._cross_degree(scenario, analyses)
            out.append(ScenarioAssessment(scenario, own, cross, w * own + (1.0 - w) * cross, tuple(matches)))
        out.sort(key=lambda a: (-a.composite_score, -a.confidence_score))
        return out

    def _cross_degree(
        self, scenario: Scenario, analyses: Sequence[DegreeAnalysis]
    ) -> Tuple[List[SupportingMatch], float]:
        matches: List[SupportingMatch] = []
        total = weight = 0.0
        for a in analyses:
            if a.degree is self.base_degree:
                continue
            best: Optional[SupportingMatch] = None
            for other in a.analysis.scenario_set:
                c = compatibility(scenario, other, self.base_degree, a.degree)
                conf = _safe_score(other.confidence_score)
                if best is None or c * conf > best.weighted_compatibility:
                    best = SupportingMatch(a.degree, other.id, conf, c, c * conf, a.history_fit_score)
            if best is None:
                continue
            matches.append(best)
            total += a.history_fit_score * best.compatibility
            weight += a.history_fit_score
        if weight <= 0.0:
            return matches, NEUTRAL_CROSS_DEGREE_SCORE
        return matches, _clamp01(total / weight)
