"""Canonical Elliott Wave value objects.

Everything here is immutable. Numbers are plain floats and `math.nan` marks a
value that could not be computed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import List, Optional, Tuple

_DAY = timedelta(days=1)


def is_valid(x: Optional[float]) -> bool:
    return x is not None and not math.isnan(x) and not math.isinf(x)


@dataclass(frozen=True)
class DegreeRange:
    """Recommended history span in days; max_days == 0 means unbounded."""

    min_days: float
    max_days: float

    @property
    def has_max(self) -> bool:
        return self.max_days > 0.0

    def contains(self, days: float) -> bool:
        if days < self.min_days:
            return False
        return not (self.has_max and days > self.max_days)

    def score_for_days(self, days: float) -> float:
        if days < self.min_days:
            return days / self.min_days
        if self.has_max and days > self.max_days:
            return self.max_days / days
        return 1.0

    def midpoint_distance(self, days: float) -> float:
        if days < self.min_days:
            return self.min_days - days
        if not self.has_max:
            return 0.0
        if days > self.max_days:
            return days - self.max_days
        return abs(days - (self.min_days + self.max_days) / 2.0)


class Degree(Enum):
    """Wave degrees from coarsest (ordinal 0) to finest."""

    GRAND_SUPERCYCLE = 0
    SUPERCYCLE = 1
    CYCLE = 2
    PRIMARY = 3
    INTERMEDIATE = 4
    MINOR = 5
    MINUTE = 6
    MINUETTE = 7
    SUB_MINUETTE = 8

    @property
    def ordinal(self) -> int:
        return self.value

    def higher(self) -> "Degree":
        return self if self.value == 0 else Degree(self.value - 1)

    def lower(self) -> "Degree":
        return self if self.value == len(_RECOMMENDED_DAYS) - 1 else Degree(self.value + 1)

    def is_higher_or_equal(self, other: "Degree") -> bool:
        return self.value <= other.value

    def is_lower_or_equal(self, other: "Degree") -> bool:
        return self.value >= other.value

    @property
    def recommended_history(self) -> DegreeRange:
        return _RECOMMENDED_DAYS[self.value]

    def history_fit_score(self, bar_duration: Optional[timedelta], bar_count: int) -> float:
        """1.0 when bar_count bars of bar_duration fall inside the recommended span, else 0.0."""
        if bar_duration is None or bar_duration <= timedelta(0) or bar_count <= 0:
            return 0.0
        days = (bar_duration / _DAY) * bar_count
        return 1.0 if self.recommended_history.contains(days) else 0.0

    @staticmethod
    def parse(name: str) -> "Degree":
        key = name.strip().upper().replace("-", "_").replace(" ", "_")
        if key == "SUPER_CYCLE":
            key = "SUPERCYCLE"
        try:
            return Degree[key]
        except KeyError:
            raise ValueError(f"unknown degree: {name!r}") from None

    @staticmethod
    def recommended(bar_duration: timedelta, bar_count: int) -> List["Degree"]:
        """Degrees whose history range suits the covered span, best fit first."""
        if bar_count <= 0:
            raise ValueError("bar_count must be positive")
        if bar_duration <= timedelta(0):
            raise ValueError("bar_duration must be positive")

        days = (bar_duration / _DAY) * bar_count
        finest = _finest_degree_for(bar_duration)
        ranked: List[Tuple[float, float, int, Degree]] = []
        for d in Degree:
            if not d.is_higher_or_equal(finest):
                continue
            rng = d.recommended_history
            ranked.append((-rng.score_for_days(days), rng.midpoint_distance(days), d.value, d))
        ranked.sort()

        out = [d for neg_score, _, _, d in ranked if -neg_score >= _MIN_RECOMMENDATION_SCORE]
        if out or not ranked:
            return out
        return [ranked[0][3]]


_RECOMMENDED_DAYS: Tuple[DegreeRange, ...] = (
    DegreeRange(20000.0, 0.0),
    DegreeRange(7000.0, 20000.0),
    DegreeRange(1000.0, 7000.0),
    DegreeRange(400.0, 1000.0),
    DegreeRange(180.0, 400.0),
    DegreeRange(60.0, 180.0),
    DegreeRange(30.0, 90.0),
    DegreeRange(7.0, 30.0),
    DegreeRange(2.0, 7.0),
)
_MIN_RECOMMENDATION_SCORE = 0.5


def _finest_degree_for(bar_duration: timedelta) -> Degree:
    if bar_duration >= timedelta(days=7):
        return Degree.INTERMEDIATE
    if bar_duration >= timedelta(days=1):
        return Degree.MINUTE
    if bar_duration > timedelta(minutes=15):
        return Degree.MINUETTE
    return Degree.SUB_MINUETTE


class Phase(Enum):
    NONE = "none"
    WAVE1 = "wave1"
    WAVE2 = "wave2"
    WAVE3 = "wave3"
    WAVE4 = "wave4"
    WAVE5 = "wave5"
    CORRECTIVE_A = "corrective_a"
    CORRECTIVE_B = "corrective_b"
    CORRECTIVE_C = "corrective_c"

    @property
    def impulse_index(self) -> int:
        return _IMPULSE_PHASES.index(self) + 1 if self in _IMPULSE_PHASES else 0

    @property
    def corrective_index(self) -> int:
        return _CORRECTIVE_PHASES.index(self) + 1 if self in _CORRECTIVE_PHASES else 0

    @property
    def is_impulse(self) -> bool:
        return self.impulse_index > 0

    @property
    def is_corrective(self) -> bool:
        return self.corrective_index > 0

    @property
    def completes_structure(self) -> bool:
        return self in (Phase.WAVE5, Phase.CORRECTIVE_C)

    @staticmethod
    def impulse(count: int) -> "Phase":
        """Phase reached after `count` impulse waves (1..5)."""
        if not 1 <= count <= 5:
            raise ValueError(f"impulse wave count out of range: {count}")
        return _IMPULSE_PHASES[count - 1]

    @staticmethod
    def corrective(count: int) -> "Phase":
        """Phase reached after `count` corrective waves; 3 or more is wave C."""
        if count < 1:
            raise ValueError(f"corrective wave count out of range: {count}")
        return _CORRECTIVE_PHASES[min(count, 3) - 1]


_IMPULSE_PHASES = (Phase.WAVE1, Phase.WAVE2, Phase.WAVE3, Phase.WAVE4, Phase.WAVE5)
_CORRECTIVE_PHASES = (Phase.CORRECTIVE_A, Phase.CORRECTIVE_B, Phase.CORRECTIVE_C)


class ScenarioType(Enum):
    IMPULSE = "impulse"
    CORRECTIVE_ZIGZAG = "zigzag"
    CORRECTIVE_FLAT = "flat"
    CORRECTIVE_TRIANGLE = "triangle"
    CORRECTIVE_COMPLEX = "complex"
    UNKNOWN = "unknown"

    @property
    def expected_wave_count(self) -> int:
        if self in (ScenarioType.IMPULSE, ScenarioType.CORRECTIVE_TRIANGLE):
            return 5
        if self in (ScenarioType.CORRECTIVE_ZIGZAG, ScenarioType.CORRECTIVE_FLAT):
            return 3
        if self in (ScenarioType.CORRECTIVE_COMPLEX, ScenarioType.UNKNOWN):
            return 0
        raise ValueError(f"unhandled scenario type: {self}")

    @property
    def is_impulse(self) -> bool:
        return self is ScenarioType.IMPULSE

    @property
    def is_corrective(self) -> bool:
        return self in (
            ScenarioType.CORRECTIVE_ZIGZAG,
            ScenarioType.CORRECTIVE_FLAT,
            ScenarioType.CORRECTIVE_TRIANGLE,
            ScenarioType.CORRECTIVE_COMPLEX,
        )


class Direction(Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    UNKNOWN = "unknown"

    @staticmethod
    def of(rising: Optional[bool]) -> "Direction":
        if rising is None:
            return Direction.UNKNOWN
        return Direction.BULLISH if rising else Direction.BEARISH


@dataclass(frozen=True)
class Swing:
    """A directional move between two alternating pivots."""

    from_index: int
    to_index: int
    from_price: float
    to_price: float
    degree: Degree = Degree.MINOR

    def __post_init__(self) -> None:
        if self.from_index < 0 or self.to_index < 0:
            raise ValueError("swing indexes must be non-negative")
        if self.from_index == self.to_index:
            raise ValueError("swing from_index and to_index must differ")
        if not is_valid(self.from_price) or not is_valid(self.to_price):
            raise ValueError("swing prices must be valid numbers")
        object.__setattr__(self, "from_price", float(self.from_price))
        object.__setattr__(self, "to_price", float(self.to_price))

    @property
    def is_rising(self) -> bool:
        return self.to_price >= self.from_price

    @property
    def amplitude(self) -> float:
        return abs(self.to_price - self.from_price)

    @property
    def length(self) -> int:
        return abs(self.to_index - self.from_index)


def _unit(name: str, v: float) -> float:
    v = float(v)
    if math.isnan(v) or v < 0.0 or v > 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {v}")
    return v


@dataclass(frozen=True)
class Confidence:
    """Overall score plus the five factor scores it was built from."""

    overall: float
    fibonacci: float
    time: float
    alternation: float
    channel: float
    completeness: float
    primary_reason: str = ""

    HIGH = 0.7
    LOW = 0.3

    def __post_init__(self) -> None:
        for name in ("overall", "fibonacci", "time", "alternation", "channel", "completeness"):
            object.__setattr__(self, name, _unit(name, getattr(self, name)))

    @staticmethod
    def zero() -> "Confidence":
        return Confidence(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, "No valid structure")

    @property
    def is_high(self) -> bool:
        return self.overall >= Confidence.HIGH

    @property
    def is_low(self) -> bool:
        return self.overall < Confidence.LOW

    @property
    def is_valid(self) -> bool:
        return is_valid(self.overall)

    @property
    def as_percentage(self) -> float:
        return self.overall * 100.0
