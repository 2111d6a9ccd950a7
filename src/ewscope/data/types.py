from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, List, Optional, Sequence, Union

import pandas as pd


@dataclass(frozen=True)
class BarSeries:
    """A thin wrapper around a pandas DataFrame with at least a `close` column.

    Positions (0..len-1) are the bar indexes used throughout the analysis. When the
    index is a DatetimeIndex its median spacing is reported as `bar_duration`.
    """

    df: pd.DataFrame

    def validate(self) -> None:
        if "close" not in self.df.columns:
            raise ValueError("BarSeries missing columns: ['close']")
        if not isinstance(self.df.index, pd.DatetimeIndex) and not self.df.index.is_monotonic_increasing:
            raise ValueError("BarSeries index must be increasing")

    @property
    def close(self) -> pd.Series:
        return self.df["close"]

    def prices(self, column: str = "close") -> List[float]:
        return [float(x) for x in pd.to_numeric(self.df[column], errors="coerce").tolist()]

    @property
    def is_empty(self) -> bool:
        return len(self.df) == 0

    def __len__(self) -> int:
        return len(self.df)

    @property
    def begin_index(self) -> int:
        return 0

    @property
    def end_index(self) -> int:
        return len(self.df) - 1

    @property
    def bar_duration(self) -> Optional[timedelta]:
        idx = self.df.index
        if not isinstance(idx, pd.DatetimeIndex) or len(idx) < 2:
            return None
        step = pd.Series(idx).diff().dropna().median()
        if pd.isna(step) or step <= pd.Timedelta(0):
            return None
        return step.to_pytimedelta()

    def tail(self, n: int) -> "BarSeries":
        if n <= 0:
            return BarSeries(self.df.iloc[0:0])
        return BarSeries(self.df.iloc[-n:])

    @staticmethod
    def from_closes(
        values: Sequence[float],
        freq: Optional[str] = None,
        start: str = "2020-01-01",
    ) -> "BarSeries":
        """Build a close-only series; with `freq` the index is a date range."""
        if freq:
            index: Any = pd.date_range(start, periods=len(values), freq=freq)
        else:
            index = pd.RangeIndex(len(values))
        return BarSeries(pd.DataFrame({"close": [float(v) for v in values]}, index=index))


PriceSource = Union[BarSeries, pd.Series, pd.DataFrame, Sequence[float]]


def price_list(source: PriceSource, column: str = "close") -> List[float]:
    """Positional list of floats (NaN for missing) from any supported price source."""
    if isinstance(source, BarSeries):
        return source.prices(column)
    if isinstance(source, pd.DataFrame):
        return BarSeries(source).prices(column)
    if isinstance(source, pd.Series):
        return [float(x) for x in pd.to_numeric(source, errors="coerce").tolist()]
    return [math.nan if x is None else float(x) for x in source]
