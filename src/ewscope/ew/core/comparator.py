"""Scenario comparison, invalidation levels and Fibonacci/channel confluence."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from ewscope.ew.core.channel import Channel
from ewscope.ew.core.model import Phase, Swing, is_valid
from ewscope.ew.core.scenario import Scenario, ScenarioSet


def divergence_score(a: Optional[Scenario], b: Optional[Scenario]) -> float:
    """0 for identical interpretations, up to 1 for fully opposed ones."""
    if a is None or b is None:
        return 1.0
    score = 0.0
    if a.phase is not b.phase:
        score += 0.2
        if a.phase.is_impulse != b.phase.is_impulse:
            score += 0.2
    if a.has_known_direction and b.has_known_direction:
        if a.direction is not b.direction:
            score += 0.3
    else:
        score += 0.15
    if a.type is not b.type:
        score += 0.15
        if a.type.is_impulse != b.type.is_impulse:
            score += 0.15
    return min(1.0, score)


def shared_invalidation(scenarios: Iterable[Scenario]) -> float:
    """Level invalidating every scenario; NaN when directions disagree or nothing is known."""
    level = math.nan
    bullish: Optional[bool] = None
    for s in scenarios:
        if not is_valid(s.invalidation_price) or not s.has_known_direction:
            continue
        if bullish is None:
            bullish, level = s.is_bullish, s.invalidation_price
        elif bullish != s.is_bullish:
            return math.nan
        elif bullish:
            level = min(level, s.invalidation_price)
        else:
            level = max(level, s.invalidation_price)
    return level


def consensus_phase(scenarios: Iterable[Scenario]) -> Phase:
    phase: Optional[Phase] = None
    for s in scenarios:
        if not s.is_high_confidence:
            continue
        if phase is None:
            phase = s.phase
        elif phase is not s.phase:
            return Phase.NONE
    return phase or Phase.NONE


def average_confidence(scenarios: Iterable[Scenario]) -> float:
    vals = [s.confidence_score for s in scenarios if is_valid(s.confidence_score)]
    return sum(vals) / len(vals) if vals else 0.0


def has_directional_consensus(scenarios: Iterable[Scenario]) -> bool:
    seen = {s.direction for s in scenarios if s.is_high_confidence and s.has_known_direction}
    return len(seen) == 1


def common_target_range(scenarios: Iterable[Scenario]) -> Optional[Tuple[float, float]]:
    targets = [s.primary_target for s in scenarios if is_valid(s.primary_target)]
    if not targets:
        return None
    return min(targets), max(targets)


def compare_summary(a: Scenario, b: Scenario) -> str:
    lines = [
        "Scenario comparison:",
        f"  {a.id}: {a.phase.name} ({a.confidence.as_percentage:.1f}%)",
        f"  {b.id}: {b.phase.name} ({b.confidence.as_percentage:.1f}%)",
        f"  Divergence: {divergence_score(a, b) * 100.0:.1f}%",
        f"  Phase: {'AGREE' if a.phase is b.phase else 'DIFFER'}",
    ]
    if not a.has_known_direction or not b.has_known_direction:
        lines.append("  Direction: UNKNOWN (one or both scenarios lack direction info)")
    elif a.direction is b.direction:
        lines.append(f"  Direction: AGREE ({a.direction.value})")
    else:
        lines.append("  Direction: DIFFER")
    return "\n".join(lines)


class InvalidationMode(Enum):
    PRIMARY = "primary"
    CONSERVATIVE = "conservative"
    AGGRESSIVE = "aggressive"


def invalidation_level(scenario_set: ScenarioSet, mode: InvalidationMode = InvalidationMode.PRIMARY) -> float:
    """PRIMARY: base case level. CONSERVATIVE: tightest level among high-confidence
    scenarios. AGGRESSIVE: widest level among all scenarios."""
    if mode is InvalidationMode.PRIMARY:
        base = scenario_set.base()
        return base.invalidation_price if base is not None else math.nan
    if mode is InvalidationMode.CONSERVATIVE:
        pool = [s for s in scenario_set if s.is_high_confidence]
        tight = True
    elif mode is InvalidationMode.AGGRESSIVE:
        pool = scenario_set.all()
        tight = False
    else:
        raise ValueError(f"unhandled invalidation mode: {mode}")

    level = math.nan
    bullish: Optional[bool] = None
    for s in pool:
        if not is_valid(s.invalidation_price) or not s.has_known_direction:
            continue
        if bullish is None:
            bullish, level = s.is_bullish, s.invalidation_price
        elif bullish == tight:
            level = max(level, s.invalidation_price)
        else:
            level = min(level, s.invalidation_price)
    return level


def distance_to_invalidation(
    scenario_set: ScenarioSet,
    price: float,
    mode: InvalidationMode = InvalidationMode.PRIMARY,
) -> float:
    """Room left before the base case breaks (positive while it still holds)."""
    level = invalidation_level(scenario_set, mode)
    base = scenario_set.base()
    if not is_valid(level) or not is_valid(price) or base is None or not base.has_known_direction:
        return math.nan
    return price - level if base.is_bullish else level - price


class RatioType(Enum):
    NONE = "none"
    RETRACEMENT = "retracement"
    EXTENSION = "extension"


@dataclass(frozen=True)
class WaveRatio:
    value: float
    type: RatioType


def latest_ratio(swings: Sequence[Swing]) -> WaveRatio:
    """Latest swing against its predecessor: a retracement when it is not larger, else an extension."""
    if len(swings) < 2:
        return WaveRatio(math.nan, RatioType.NONE)
    prev, last = swings[-2], swings[-1]
    if prev.amplitude == 0:
        return WaveRatio(math.nan, RatioType.NONE)
    value = last.amplitude / prev.amplitude
    kind = RatioType.RETRACEMENT if value <= 1.0 else RatioType.EXTENSION
    return WaveRatio(value, kind)


@dataclass(frozen=True)
class ConfluenceConfig:
    retracements: Tuple[float, ...] = (0.236, 0.382, 0.5, 0.618, 0.786, 1.0)
    extensions: Tuple[float, ...] = (1.272, 1.414, 1.618, 2.0)
    ratio_tolerance: float = 0.05
    channel_tolerance: float = 0.5
    minimum_score: int = 2


def confluence_score(
    price: float,
    swings: Sequence[Swing],
    channel: Optional[Channel],
    cfg: ConfluenceConfig = ConfluenceConfig(),
) -> int:
    """One point for a Fibonacci level hit, one for the price sitting inside the channel."""
    score = 0
    ratio = latest_ratio(swings)
    if ratio.type is not RatioType.NONE:
        levels = cfg.retracements if ratio.type is RatioType.RETRACEMENT else cfg.extensions
        if any(abs(ratio.value - lv) <= cfg.ratio_tolerance for lv in levels):
            score += 1
    if channel is not None and channel.contains(price, cfg.channel_tolerance):
        score += 1
    return score


def is_confluent(score: int, minimum: int = ConfluenceConfig.minimum_score) -> bool:
    return score >= minimum
