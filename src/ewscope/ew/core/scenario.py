"""Scenarios (one interpretation of the current count) and their ranked container."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from ewscope.errors import DirectionUnknownError
from ewscope.ew.core.model import Confidence, Degree, Direction, Phase, ScenarioType, Swing, is_valid


@dataclass(frozen=True)
class Scenario:
    id: str
    phase: Phase
    swings: Tuple[Swing, ...]
    confidence: Confidence
    degree: Degree
    invalidation_price: float = math.nan
    primary_target: float = math.nan
    all_targets: Tuple[float, ...] = ()
    type: ScenarioType = ScenarioType.UNKNOWN
    start_index: int = 0
    direction: Direction = Direction.UNKNOWN

    def __post_init__(self) -> None:
        swings = tuple(self.swings)
        object.__setattr__(self, "swings", swings)
        object.__setattr__(self, "all_targets", tuple(float(t) for t in self.all_targets))
        # the first swing is the only source of direction once swings exist
        if swings:
            object.__setattr__(self, "direction", Direction.of(swings[0].is_rising))

    @staticmethod
    def create(
        id: str,
        phase: Phase,
        swings: Iterable[Swing],
        confidence: Confidence,
        degree: Degree,
        *,
        invalidation_price: float = math.nan,
        targets: Sequence[float] = (),
        primary_target: Optional[float] = None,
        type: ScenarioType = ScenarioType.UNKNOWN,
        start_index: int = 0,
        direction: Direction = Direction.UNKNOWN,
    ) -> "Scenario":
        """Primary target defaults to the first target (NaN when there is none)."""
        targets = tuple(targets)
        if primary_target is None:
            primary_target = targets[0] if targets else math.nan
        return Scenario(
            id=id,
            phase=phase,
            swings=tuple(swings),
            confidence=confidence,
            degree=degree,
            invalidation_price=invalidation_price,
            primary_target=primary_target,
            all_targets=targets,
            type=type,
            start_index=start_index,
            direction=direction,
        )

    @property
    def confidence_score(self) -> float:
        return self.confidence.overall

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence.is_high

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence.is_low

    @property
    def has_known_direction(self) -> bool:
        return self.direction is not Direction.UNKNOWN

    @property
    def is_bullish(self) -> bool:
        if not self.has_known_direction:
            raise DirectionUnknownError(self.id)
        return self.direction is Direction.BULLISH

    @property
    def is_bearish(self) -> bool:
        if not self.has_known_direction:
            raise DirectionUnknownError(self.id)
        return self.direction is Direction.BEARISH

    @property
    def wave_count(self) -> int:
        return len(self.swings)

    @property
    def expects_completion(self) -> bool:
        return self.phase.completes_structure

    def is_invalidated_by(self, price: float) -> bool:
        """Bullish counts break below the invalidation level, bearish ones above it."""
        if not is_valid(self.invalidation_price) or not is_valid(price):
            return False
        if self.is_bullish:
            return price < self.invalidation_price
        return price > self.invalidation_price


def _sort_key(s: Scenario) -> Tuple[int, float]:
    score = s.confidence_score
    if not is_valid(score):
        return (1, 0.0)
    return (0, -score)


class TrendDirection(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"


DEFAULT_NEUTRAL_THRESHOLD = 0.15


@dataclass(frozen=True)
class TrendBias:
    """Confidence-weighted directional lean of a scenario set."""

    score: float
    direction: TrendDirection
    consensus: bool
    bullish_weight: float
    bearish_weight: float
    known_direction_count: int
    total_scenarios: int

    @staticmethod
    def unknown(total: int = 0) -> "TrendBias":
        return TrendBias(math.nan, TrendDirection.UNKNOWN, False, 0.0, 0.0, 0, total)

    @property
    def is_bullish(self) -> bool:
        return self.direction is TrendDirection.BULLISH

    @property
    def is_bearish(self) -> bool:
        return self.direction is TrendDirection.BEARISH

    @property
    def is_neutral(self) -> bool:
        return self.direction is TrendDirection.NEUTRAL

    @property
    def is_unknown(self) -> bool:
        return self.direction is TrendDirection.UNKNOWN

    @staticmethod
    def from_scenarios(
        scenarios: Sequence[Scenario],
        neutral_threshold: float = DEFAULT_NEUTRAL_THRESHOLD,
    ) -> "TrendBias":
        if math.isnan(neutral_threshold) or not 0.0 <= neutral_threshold <= 1.0:
            raise ValueError("neutral threshold must be in [0, 1]")

        bull = bear = 0.0
        known = 0
        consensus = True
        agreed: Optional[Direction] = None
        for s in scenarios:
            if not s.has_known_direction or not is_valid(s.confidence_score):
                continue
            known += 1
            if s.direction is Direction.BULLISH:
                bull += s.confidence_score
            else:
                bear += s.confidence_score
            if s.is_high_confidence and consensus:
                if agreed is None:
                    agreed = s.direction
                elif agreed is not s.direction:
                    consensus = False

        total = bull + bear
        if known == 0 or total <= 0.0:
            return TrendBias.unknown(len(scenarios))

        score = (bull - bear) / total
        if abs(score) < neutral_threshold:
            direction = TrendDirection.NEUTRAL
        elif score > 0:
            direction = TrendDirection.BULLISH
        else:
            direction = TrendDirection.BEARISH
        return TrendBias(
            score=score,
            direction=direction,
            consensus=consensus and agreed is not None,
            bullish_weight=bull,
            bearish_weight=bear,
            known_direction_count=known,
            total_scenarios=len(scenarios),
        )


@dataclass(frozen=True)
class ScenarioSet:
    """Scenarios for one bar index, highest confidence first (NaN scores last)."""

    scenarios: Tuple[Scenario, ...] = ()
    bar_index: int = 0

    def __post_init__(self) -> None:
        items = tuple(sorted((s for s in self.scenarios if s is not None), key=_sort_key))
        object.__setattr__(self, "scenarios", items)

    @staticmethod
    def of(scenarios: Iterable[Scenario], bar_index: int = 0) -> "ScenarioSet":
        return ScenarioSet(tuple(scenarios), bar_index)

    @staticmethod
    def empty(bar_index: int = 0) -> "ScenarioSet":
        return ScenarioSet((), bar_index)

    def _subset(self, items: Iterable[Scenario]) -> "ScenarioSet":
        return ScenarioSet(tuple(items), self.bar_index)

    def base(self) -> Optional[Scenario]:
        return self.scenarios[0] if self.scenarios else None

    def alternatives(self) -> List[Scenario]:
        return list(self.scenarios[1:])

    def all(self) -> List[Scenario]:
        return list(self.scenarios)

    def __len__(self) -> int:
        return len(self.scenarios)

    def __iter__(self):
        return iter(self.scenarios)

    @property
    def is_empty(self) -> bool:
        return not self.scenarios

    def by_phase(self, phase: Phase) -> "ScenarioSet":
        return self._subset(s for s in self.scenarios if s.phase is phase)

    def by_type(self, scenario_type: ScenarioType) -> "ScenarioSet":
        return self._subset(s for s in self.scenarios if s.type is scenario_type)

    def high_confidence_count(self) -> int:
        return sum(1 for s in self.scenarios if s.is_high_confidence)

    def low_confidence_count(self) -> int:
        return sum(1 for s in self.scenarios if s.is_low_confidence)

    def consensus(self) -> Phase:
        """Phase shared by every high-confidence scenario, NONE otherwise."""
        phases = {s.phase for s in self.scenarios if s.is_high_confidence}
        if len(phases) != 1:
            return Phase.NONE
        return phases.pop()

    def confidence_spread(self) -> float:
        if len(self.scenarios) < 2:
            return 0.0
        a, b = self.scenarios[0].confidence_score, self.scenarios[1].confidence_score
        if not is_valid(a) or not is_valid(b):
            return 0.0
        return abs(a - b)

    def has_strong_consensus(self) -> bool:
        n = self.high_confidence_count()
        if n == 0:
            return False
        if n == 1:
            return True
        return self.confidence_spread() >= 0.3

    def trend_bias(self, neutral_threshold: float = DEFAULT_NEUTRAL_THRESHOLD) -> TrendBias:
        return TrendBias.from_scenarios(self.scenarios, neutral_threshold)

    def invalidated_by(self, price: float) -> List[Scenario]:
        if not is_valid(price):
            return []
        return [s for s in self.scenarios if s.has_known_direction and s.is_invalidated_by(price)]

    def valid_at(self, price: float) -> "ScenarioSet":
        if not is_valid(price):
            return self
        return self._subset(
            s for s in self.scenarios if not s.has_known_direction or not s.is_invalidated_by(price)
        )

    def summary(self) -> str:
        base = self.base()
        if base is None:
            return "No scenarios"
        out = f"{len(self)} scenario(s): Base case={base.phase.name} ({base.confidence.as_percentage:.1f}%)"
        if len(self) > 1:
            out += f", {len(self) - 1} alternative(s)"
        cons = self.consensus()
        if cons is not Phase.NONE:
            out += f", consensus={cons.name}"
        return out
