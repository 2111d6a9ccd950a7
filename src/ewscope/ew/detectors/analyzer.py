"""Single-degree EW analyzer.

- Detect swings at the requested bar (fractal detector by default).
- Filter + compress the swings.
- Project the price channel and generate ranked scenarios over the most
  recent swings.
- Aggregate the scenario set into a trend bias.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ewscope.data.types import PriceSource, price_list
from ewscope.ew.core.channel import Channel, project_channel
from ewscope.ew.core.model import Degree, Swing
from ewscope.ew.core.options import WaveOptions
from ewscope.ew.core.scenario import DEFAULT_NEUTRAL_THRESHOLD, Scenario, ScenarioSet, TrendBias
from ewscope.ew.core.scorer import ConfidenceBreakdown, ConfidenceScorer
from ewscope.ew.detectors.generator import PatternSet, ScenarioGenerator
from ewscope.logging import get_logger
from ewscope.swing.fractal import FractalConfig, FractalSwingDetector
from ewscope.swing.pivots import SwingDetector
from ewscope.swing.postprocess import MinMagnitudeSwingFilter, SwingCompressor, SwingFilter, postprocess_swings

log = get_logger("ewscope.analyzer")

MIN_CHANNEL_SWINGS = 4


@dataclass(frozen=True)
class AnalysisResult:
    degree: Degree
    index: int
    raw_swings: Tuple[Swing, ...]
    processed_swings: Tuple[Swing, ...]
    scenario_set: ScenarioSet
    confidence_breakdowns: Dict[str, ConfidenceBreakdown] = field(default_factory=dict, hash=False)
    channel: Channel = Channel.invalid()
    trend_bias: TrendBias = TrendBias.unknown()

    @property
    def base_scenario(self) -> Optional[Scenario]:
        return self.scenario_set.base()

    def breakdown(self, scenario_id: str) -> Optional[ConfidenceBreakdown]:
        return self.confidence_breakdowns.get(scenario_id)


class WaveAnalyzer:
    def __init__(
        self,
        degree: Degree = Degree.MINOR,
        detector: Optional[SwingDetector] = None,
        swing_filter: Optional[SwingFilter] = None,
        compressor: Optional[SwingCompressor] = None,
        generator: Optional[ScenarioGenerator] = None,
        *,
        min_amplitude_pct: Optional[float] = None,
        min_bars: int = 0,
        scenario_swing_window: int = 5,
        neutral_threshold: float = DEFAULT_NEUTRAL_THRESHOLD,
    ):
        if scenario_swing_window < 0:
            raise ValueError("scenario_swing_window must be non-negative")
        self.degree = degree
        self.detector: SwingDetector = detector or FractalSwingDetector()
        self.swing_filter = swing_filter
        self.compressor = compressor
        self.generator = generator or ScenarioGenerator()
        self.min_amplitude_pct = min_amplitude_pct
        self.min_bars = min_bars
        self.scenario_swing_window = scenario_swing_window
        self.neutral_threshold = neutral_threshold

    @staticmethod
    def from_options(opts: WaveOptions, degree: Optional[Degree] = None) -> "WaveAnalyzer":
        return WaveAnalyzer(
            degree=degree or opts.degree,
            detector=FractalSwingDetector(FractalConfig(opts.window, opts.forward, opts.allowed_equal_bars)),
            swing_filter=MinMagnitudeSwingFilter(opts.filter_pct) if opts.filter_pct is not None else None,
            generator=ScenarioGenerator(
                min_confidence=opts.min_confidence,
                max_scenarios=opts.max_scenarios,
                confidence_model=ConfidenceScorer(opts.weights),
                pattern_set=PatternSet.of(*opts.patterns),
            ),
            min_amplitude_pct=opts.min_amplitude_pct,
            min_bars=opts.min_bars,
            scenario_swing_window=opts.scenario_swing_window,
            neutral_threshold=opts.neutral_threshold,
        )

    def _compressor_for(self, series: PriceSource, index: int) -> Optional[SwingCompressor]:
        if self.compressor is not None:
            return self.compressor
        if self.min_amplitude_pct is not None:
            return SwingCompressor.from_series(price_list(series)[: index + 1], self.min_amplitude_pct, self.min_bars)
        if self.min_bars > 0:
            return SwingCompressor(min_bars=self.min_bars)
        return None

    def analyze(self, series: PriceSource, index: Optional[int] = None) -> AnalysisResult:
        n = len(price_list(series))
        if n == 0:
            raise ValueError("series cannot be empty")
        idx = n - 1 if index is None else index
        if not 0 <= idx < n:
            raise ValueError(f"index {idx} outside series range [0, {n - 1}]")

        detection = self.detector.detect(series, idx, self.degree)
        raw = detection.swings
        processed = tuple(postprocess_swings(raw, self.swing_filter, self._compressor_for(series, idx)))
        recent = processed[-self.scenario_swing_window:] if self.scenario_swing_window > 0 else processed

        if len(processed) >= MIN_CHANNEL_SWINGS:
            channel = project_channel(processed, idx)
        else:
            channel = Channel.invalid()

        scenarios, breakdowns = self.generator.generate_with_breakdowns(recent, self.degree, channel, idx)
        bias = scenarios.trend_bias(self.neutral_threshold)
        log.debug(
            "analysis done",
            extra={
                "degree": self.degree.name,
                "index": idx,
                "raw_swings": len(raw),
                "swings": len(processed),
                "scenarios": len(scenarios),
                "channel_valid": channel.is_valid,
                "bias": bias.direction.value,
            },
        )
        return AnalysisResult(
            degree=self.degree,
            index=idx,
            raw_swings=tuple(raw),
            processed_swings=processed,
            scenario_set=scenarios,
            confidence_breakdowns=breakdowns,
            channel=channel,
            trend_bias=bias,
        )


def analyze_series(
    series: PriceSource,
    opts: WaveOptions = WaveOptions(),
    index: Optional[int] = None,
) -> AnalysisResult:
    return WaveAnalyzer.from_options(opts).analyze(series, index)
