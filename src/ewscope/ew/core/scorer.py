"""Confidence scoring for candidate wave counts.

Five factors, each in [0,1], combined by a weighted sum:
- fibonacci: ratio conformance of waves 2..5 (impulse only)
- time: bar-length proportions of waves 1, 3 and 5 (impulse only)
- alternation: depth/time contrast between waves 2 and 4 (impulse only)
- channel: fraction of swing endpoints inside the projected channel
- completeness: waves present versus waves expected for the pattern
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

from ewscope.ew.core.channel import Channel
from ewscope.ew.core.model import Confidence, Phase, ScenarioType, Swing

FACTORS: Tuple[str, ...] = ("fibonacci", "time", "alternation", "channel", "completeness")

REASONS = {
    "fibonacci": "Strong Fibonacci conformance",
    "time": "Good time proportions",
    "alternation": "Clear wave alternation",
    "channel": "Strong channel adherence",
    "completeness": "Complete structure",
}

NEUTRAL = 0.5


@dataclass(frozen=True)
class ConfidenceWeights:
    fibonacci: float = 0.35
    time: float = 0.20
    alternation: float = 0.15
    channel: float = 0.15
    completeness: float = 0.15

    def __post_init__(self) -> None:
        vals = [float(getattr(self, f)) for f in FACTORS]
        for name, v in zip(FACTORS, vals):
            if math.isnan(v) or not 0.0 <= v <= 1.0:
                raise ValueError(f"weight {name} must be in [0, 1], got {v}")
        if abs(sum(vals) - 1.0) > 1e-6:
            raise ValueError(f"weights must sum to 1.0, got {sum(vals):.6f}")

    def of(self, factor: str) -> float:
        return float(getattr(self, factor))


@dataclass(frozen=True)
class FactorScore:
    name: str
    score: float
    weight: float

    @property
    def contribution(self) -> float:
        return self.score * self.weight


@dataclass(frozen=True)
class ConfidenceBreakdown:
    confidence: Confidence
    factors: Tuple[FactorScore, ...]

    def factor(self, name: str) -> Optional[FactorScore]:
        for f in self.factors:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class AlternationDiagnostics:
    bars_wave2: int
    bars_wave4: int
    duration_ratio: float
    depth_difference: float
    time_difference: float
    score: float

    @staticmethod
    def neutral() -> "AlternationDiagnostics":
        return AlternationDiagnostics(0, 0, math.nan, 0.0, 0.0, NEUTRAL)


@runtime_checkable
class ConfidenceModel(Protocol):
    def score(
        self,
        swings: Sequence[Swing],
        phase: Phase,
        channel: Optional[Channel],
        scenario_type: ScenarioType,
    ) -> ConfidenceBreakdown:
        ...


def _ratio(num: Swing, den: Swing) -> float:
    d = den.amplitude
    return num.amplitude / d if d > 0 else 0.0


def retracement_score(ratio: float, lo: float, hi: float) -> float:
    if math.isnan(ratio) or ratio < lo * 0.8 or ratio > hi * 1.2:
        return 0.0
    if lo <= ratio <= hi:
        return 1.0
    if ratio < lo:
        return max(0.0, 1.0 - (lo - ratio) / lo)
    return max(0.0, 1.0 - (ratio - hi) / hi)


def extension_score(ratio: float, lo: float, hi: float, ideal: float) -> float:
    outer_lo, outer_hi = lo * 0.8, hi * 1.2
    if math.isnan(ratio) or ratio < outer_lo or ratio > outer_hi:
        return 0.0
    if ratio < lo:
        base = 0.7 * max(0.0, (ratio - outer_lo) / (lo - outer_lo))
    elif ratio > hi:
        base = 0.7 * max(0.0, (outer_hi - ratio) / (outer_hi - hi))
    else:
        base = 0.7
    bonus = 0.3 * max(0.0, 1.0 - abs(ratio - ideal) / ideal)
    return min(1.0, base + bonus)


def _expected_waves(scenario_type: ScenarioType, phase: Phase) -> int:
    n = scenario_type.expected_wave_count
    if n > 0:
        return n
    if phase.is_impulse:
        return 5
    if phase.is_corrective:
        return 3
    return 0


@dataclass(frozen=True)
class ConfidenceScorer:
    weights: ConfidenceWeights = ConfidenceWeights()

    def fibonacci_score(self, swings: Sequence[Swing], phase: Phase) -> float:
        if len(swings) < 2 or not phase.is_impulse:
            return 0.0
        subs = [retracement_score(_ratio(swings[1], swings[0]), 0.382, 0.786)]
        if len(swings) >= 3:
            subs.append(extension_score(_ratio(swings[2], swings[0]), 1.0, 2.618, 1.618))
        if len(swings) >= 4:
            subs.append(retracement_score(_ratio(swings[3], swings[2]), 0.236, 0.786))
        if len(swings) >= 5:
            subs.append(extension_score(_ratio(swings[4], swings[0]), 0.618, 1.618, 1.0))
        return sum(subs) / len(subs)

    def time_score(self, swings: Sequence[Swing], phase: Phase) -> float:
        if len(swings) < 3 or not phase.is_impulse:
            return NEUTRAL
        score = NEUTRAL
        w1 = swings[0].length
        if swings[2].length >= w1:
            score += 0.25
        if len(swings) >= 5 and w1 > 0 and 0.5 <= swings[4].length / w1 <= 1.5:
            score += 0.25
        return min(1.0, score)

    def alternation_diagnostics(self, swings: Sequence[Swing], phase: Phase) -> AlternationDiagnostics:
        if len(swings) < 4 or not phase.is_impulse:
            return AlternationDiagnostics.neutral()
        w2, w4 = swings[1], swings[3]
        depth2 = _ratio(w2, swings[0])
        depth4 = _ratio(w4, swings[2])
        depth_diff = abs(depth2 - depth4)
        t2, t4 = w2.length, w4.length
        time_diff = abs(t2 - t4) / max(t2, t4) if max(t2, t4) > 0 else 0.0
        duration_ratio = t4 / t2 if t2 > 0 else math.nan
        score = (min(1.0, 2.0 * depth_diff) + min(1.0, time_diff)) / 2.0
        return AlternationDiagnostics(t2, t4, duration_ratio, depth_diff, time_diff, score)

    def alternation_score(self, swings: Sequence[Swing], phase: Phase) -> float:
        return self.alternation_diagnostics(swings, phase).score

    def channel_score(self, swings: Sequence[Swing], channel: Optional[Channel]) -> float:
        if not swings or channel is None or not channel.is_valid:
            return NEUTRAL
        inside = 0
        for s in swings:
            inside += channel.contains(s.from_price) + channel.contains(s.to_price)
        return inside / (2 * len(swings))

    def completeness_score(self, swings: Sequence[Swing], phase: Phase, scenario_type: ScenarioType) -> float:
        expected = _expected_waves(scenario_type, phase)
        if not swings or expected == 0:
            return 0.0
        score = min(1.0, len(swings) / expected)
        if phase.completes_structure:
            score = min(1.0, score + 0.1)
        return score

    def score(
        self,
        swings: Sequence[Swing],
        phase: Phase,
        channel: Optional[Channel] = None,
        scenario_type: ScenarioType = ScenarioType.UNKNOWN,
    ) -> ConfidenceBreakdown:
        if not swings or phase is Phase.NONE:
            zero = Confidence.zero()
            return ConfidenceBreakdown(
                zero, tuple(FactorScore(f, 0.0, self.weights.of(f)) for f in FACTORS)
            )

        raw = {
            "fibonacci": self.fibonacci_score(swings, phase),
            "time": self.time_score(swings, phase),
            "alternation": self.alternation_score(swings, phase),
            "channel": self.channel_score(swings, channel),
            "completeness": self.completeness_score(swings, phase, scenario_type),
        }
        factors = tuple(FactorScore(f, raw[f], self.weights.of(f)) for f in FACTORS)
        overall = min(1.0, max(0.0, sum(f.contribution for f in factors)))

        # strict > keeps the earlier factor on ties
        best = factors[0]
        for f in factors[1:]:
            if f.contribution > best.contribution:
                best = f

        conf = Confidence(
            overall=overall,
            fibonacci=raw["fibonacci"],
            time=raw["time"],
            alternation=raw["alternation"],
            channel=raw["channel"],
            completeness=raw["completeness"],
            primary_reason=REASONS[best.name],
        )
        return ConfidenceBreakdown(conf, factors)

    def confidence(
        self,
        swings: Sequence[Swing],
        phase: Phase,
        channel: Optional[Channel] = None,
        scenario_type: ScenarioType = ScenarioType.UNKNOWN,
    ) -> Confidence:
        return self.score(swings, phase, channel, scenario_type).confidence
