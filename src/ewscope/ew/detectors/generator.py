"""Scenario generation: enumerate, validate, de-duplicate, score, prune, rank.

For each start offset (0..2) the suffix of the swing list is read as
- an impulse of 1..5 waves (structurally validated),
- a zigzag of 1..3 waves,
- a flat of 2..3 waves when wave B retraces most of wave A.
"""

from __future__ import annotations

import itertools
import math
import threading
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ewscope.ew.core.channel import Channel
from ewscope.ew.core.model import Degree, Phase, ScenarioType, Swing
from ewscope.ew.core.pruner import SignatureGate, prune_and_rank
from ewscope.ew.core.rules import FibonacciValidator, is_valid_impulse
from ewscope.ew.core.scenario import Scenario, ScenarioSet
from ewscope.ew.core.scorer import ConfidenceBreakdown, ConfidenceModel, ConfidenceScorer
from ewscope.logging import get_logger

log = get_logger("ewscope.generator")

MAX_START_OFFSET = 2

_ID_PREFIX = {
    ScenarioType.IMPULSE: "impulse",
    ScenarioType.CORRECTIVE_ZIGZAG: "zigzag",
    ScenarioType.CORRECTIVE_FLAT: "flat",
}


@dataclass(frozen=True)
class PatternSet:
    types: FrozenSet[ScenarioType]

    @staticmethod
    def all() -> "PatternSet":
        return PatternSet(frozenset(ScenarioType))

    @staticmethod
    def of(*types: ScenarioType) -> "PatternSet":
        return PatternSet(frozenset(types))

    def allows(self, scenario_type: ScenarioType) -> bool:
        return scenario_type in self.types


def _project(base: float, amp: float, up: bool, mults: Sequence[float]) -> Tuple[float, ...]:
    sign = 1.0 if up else -1.0
    return tuple(base + sign * amp * m for m in mults)


def impulse_targets(swings: Sequence[Swing], phase: Phase) -> Tuple[Tuple[float, ...], float]:
    """(targets, primary) projected from the latest wave-2 or wave-4 terminus."""
    k = phase.impulse_index
    if k == 0:
        raise ValueError(f"not an impulse phase: {phase}")
    w1 = swings[0]
    if k in (2, 3):
        targets = _project(swings[1].to_price, w1.amplitude, w1.is_rising, (1.0, 1.618, 2.618))
        return targets, targets[1]
    if k in (4, 5):
        targets = _project(swings[3].to_price, w1.amplitude, w1.is_rising, (0.618, 1.0, 1.618))
        return targets, targets[1]
    return (), math.nan


def corrective_targets(swings: Sequence[Swing], phase: Phase) -> Tuple[Tuple[float, ...], float]:
    """(targets, primary) for wave C projected from the end of wave B."""
    k = phase.corrective_index
    if k == 0:
        raise ValueError(f"not a corrective phase: {phase}")
    if k == 1:
        return (), math.nan
    a = swings[0]
    targets = _project(swings[1].to_price, a.amplitude, a.is_rising, (0.618, 1.0, 1.618))
    return targets, targets[1]


class ScenarioGenerator:
    def __init__(
        self,
        min_confidence: float = 0.15,
        max_scenarios: int = 5,
        confidence_model: Optional[ConfidenceModel] = None,
        pattern_set: Optional[PatternSet] = None,
        fibonacci: Optional[FibonacciValidator] = None,
    ):
        if math.isnan(min_confidence) or not 0.0 <= min_confidence <= 1.0:
            raise ValueError("min_confidence must be in [0, 1]")
        if max_scenarios <= 0:
            raise ValueError("max_scenarios must be positive")
        self.min_confidence = float(min_confidence)
        self.max_scenarios = int(max_scenarios)
        self.confidence_model: ConfidenceModel = confidence_model or ConfidenceScorer()
        self.pattern_set = pattern_set or PatternSet.all()
        self.fibonacci = fibonacci or FibonacciValidator()
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def _next_id(self, scenario_type: ScenarioType) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{_ID_PREFIX[scenario_type]}-{n}"

    def generate(
        self,
        swings: Sequence[Swing],
        degree: Degree,
        channel: Optional[Channel] = None,
        bar_index: int = 0,
    ) -> ScenarioSet:
        scenarios, _ = self.generate_with_breakdowns(swings, degree, channel, bar_index)
        return scenarios

    def generate_with_breakdowns(
        self,
        swings: Sequence[Swing],
        degree: Degree,
        channel: Optional[Channel] = None,
        bar_index: int = 0,
    ) -> Tuple[ScenarioSet, dict]:
        """Like `generate`, also returning the confidence breakdown of every kept scenario by id."""
        swings = list(swings)
        if not swings:
            return ScenarioSet.empty(bar_index), {}

        gate = SignatureGate()
        candidates: List[Tuple[Scenario, ConfidenceBreakdown]] = []
        for offset in range(0, min(MAX_START_OFFSET, len(swings) - 1) + 1):
            seg = swings[offset:]
            if self.pattern_set.allows(ScenarioType.IMPULSE):
                candidates.extend(self._impulses(seg, degree, channel, offset, gate))
            if self.pattern_set.allows(ScenarioType.CORRECTIVE_ZIGZAG):
                candidates.extend(self._correctives(seg, ScenarioType.CORRECTIVE_ZIGZAG, 1, degree, channel, offset, gate))
            if self.pattern_set.allows(ScenarioType.CORRECTIVE_FLAT) and len(seg) >= 2:
                if self.fibonacci.is_wave_b_flat_valid(seg[0], seg[1]):
                    candidates.extend(self._correctives(seg, ScenarioType.CORRECTIVE_FLAT, 2, degree, channel, offset, gate))

        result = prune_and_rank(
            (s for s, _ in candidates),
            min_confidence=self.min_confidence,
            max_scenarios=self.max_scenarios,
            bar_index=bar_index,
        )
        kept = {s.id for s in result}
        breakdowns = {s.id: b for s, b in candidates if s.id in kept}
        log.debug(
            "scenarios generated",
            extra={"swings": len(swings), "signatures": len(gate), "candidates": len(candidates), "kept": len(result)},
        )
        return result, breakdowns

    def _build(
        self,
        legs: Sequence[Swing],
        phase: Phase,
        scenario_type: ScenarioType,
        degree: Degree,
        channel: Optional[Channel],
        offset: int,
        gate: SignatureGate,
    ) -> Optional[Tuple[Scenario, ConfidenceBreakdown]]:
        if not gate.admit((scenario_type, phase, offset)):
            return None
        breakdown = self.confidence_model.score(legs, phase, channel, scenario_type)
        if breakdown.confidence.overall < self.min_confidence:
            return None
        if scenario_type.is_impulse:
            targets, primary = impulse_targets(legs, phase)
        else:
            targets, primary = corrective_targets(legs, phase)
        scenario = Scenario.create(
            self._next_id(scenario_type),
            phase,
            legs,
            breakdown.confidence,
            degree,
            invalidation_price=legs[0].from_price,
            targets=targets,
            primary_target=primary,
            type=scenario_type,
            start_index=offset,
        )
        return scenario, breakdown

    def _impulses(self, seg, degree, channel, offset, gate):
        out = []
        for count in range(1, min(5, len(seg)) + 1):
            legs = seg[:count]
            if not is_valid_impulse(legs):
                continue
            built = self._build(legs, Phase.impulse(count), ScenarioType.IMPULSE, degree, channel, offset, gate)
            if built is not None:
                out.append(built)
        return out

    def _correctives(self, seg, scenario_type, first_count, degree, channel, offset, gate):
        out = []
        for count in range(first_count, min(3, len(seg)) + 1):
            legs = seg[:count]
            built = self._build(legs, Phase.corrective(count), scenario_type, degree, channel, offset, gate)
            if built is not None:
                out.append(built)
        return out
