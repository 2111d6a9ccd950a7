"""WaveOptions: the tuning knobs of the analysis pipeline.

Options are small and explicit; `from_config` maps the `analysis` section of a
loaded config dict onto them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from ewscope.ew.core.model import Degree, ScenarioType
from ewscope.ew.core.scorer import ConfidenceWeights


@dataclass(frozen=True)
class WaveOptions:
    degree: Degree = Degree.MINOR

    # swing extraction
    window: int = 2
    lookforward: Optional[int] = None
    allowed_equal_bars: int = 0

    # post-processing (None disables the stage)
    filter_pct: Optional[float] = None
    min_amplitude_pct: Optional[float] = None
    min_bars: int = 0

    # scenarios
    scenario_swing_window: int = 5
    min_confidence: float = 0.15
    max_scenarios: int = 5
    patterns: Tuple[ScenarioType, ...] = (
        ScenarioType.IMPULSE,
        ScenarioType.CORRECTIVE_ZIGZAG,
        ScenarioType.CORRECTIVE_FLAT,
    )
    weights: ConfidenceWeights = ConfidenceWeights()
    neutral_threshold: float = 0.15

    # multi-degree
    higher_degrees: int = 1
    lower_degrees: int = 1
    base_confidence_weight: float = 0.7

    def __post_init__(self) -> None:
        if self.window < 1 or (self.lookforward is not None and self.lookforward < 1):
            raise ValueError("window lengths must be positive")
        if self.scenario_swing_window < 0:
            raise ValueError("scenario_swing_window must be non-negative")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError("min_confidence must be in [0, 1]")
        if self.max_scenarios <= 0:
            raise ValueError("max_scenarios must be positive")
        if self.higher_degrees < 0 or self.lower_degrees < 0:
            raise ValueError("degree counts must be non-negative")
        if not 0.0 <= self.base_confidence_weight <= 1.0:
            raise ValueError("base_confidence_weight must be in [0, 1]")

    @property
    def forward(self) -> int:
        return self.window if self.lookforward is None else self.lookforward

    def with_overrides(self, **kw: Any) -> "WaveOptions":
        """Copy with the non-None keyword values applied."""
        return replace(self, **{k: v for k, v in kw.items() if v is not None})

    @staticmethod
    def from_config(cfg: Mapping[str, Any]) -> "WaveOptions":
        """Build from a loaded config dict by reading its `analysis` section."""
        section: Mapping[str, Any] = cfg.get("analysis") or {}
        known = {f.name for f in fields(WaveOptions)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ValueError(f"unknown analysis options: {unknown}")

        kw: Dict[str, Any] = dict(section)
        if "degree" in kw and not isinstance(kw["degree"], Degree):
            kw["degree"] = Degree.parse(str(kw["degree"]))
        if "patterns" in kw:
            kw["patterns"] = tuple(
                p if isinstance(p, ScenarioType) else ScenarioType(str(p).lower()) for p in kw["patterns"]
            )
        if "weights" in kw and isinstance(kw["weights"], Mapping):
            kw["weights"] = ConfidenceWeights(**{k: float(v) for k, v in kw["weights"].items()})
        for name in ("filter_pct", "min_amplitude_pct", "min_confidence", "neutral_threshold", "base_confidence_weight"):
            if kw.get(name) is not None:
                kw[name] = float(kw[name])
        return WaveOptions(**kw)
