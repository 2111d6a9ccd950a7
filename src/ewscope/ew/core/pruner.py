"""Candidate budget control: signature de-duplication, threshold pruning and ranking."""

from __future__ import annotations

from typing import Callable, Hashable, Iterable, List, Set, Tuple, TypeVar

from ewscope.ew.core.model import Phase, ScenarioType
from ewscope.ew.core.scenario import Scenario, ScenarioSet
from ewscope.logging import get_logger

log = get_logger("ewscope.pruner")

T = TypeVar("T")

Signature = Tuple[ScenarioType, Phase, int]


class SignatureGate:
    """Admits only the first candidate for each signature within one generation pass."""

    def __init__(self) -> None:
        self._seen: Set[Hashable] = set()

    def admit(self, signature: Hashable) -> bool:
        if signature in self._seen:
            return False
        self._seen.add(signature)
        return True

    def __len__(self) -> int:
        return len(self._seen)


def dedupe(items: Iterable[T], key_fn: Callable[[T], Hashable]) -> List[T]:
    gate = SignatureGate()
    return [it for it in items if gate.admit(key_fn(it))]


def prune_and_rank(
    candidates: Iterable[Scenario],
    *,
    min_confidence: float,
    max_scenarios: int,
    bar_index: int = 0,
) -> ScenarioSet:
    """Drop candidates under `min_confidence`, rank by confidence, keep `max_scenarios`."""
    cands = list(candidates)
    kept = [s for s in cands if s.confidence_score >= min_confidence]
    ranked = ScenarioSet.of(kept, bar_index).all()[: max(0, max_scenarios)]
    log.debug(
        "prune done",
        extra={"candidates": len(cands), "above_threshold": len(kept), "kept": len(ranked)},
    )
    return ScenarioSet.of(ranked, bar_index)
