"""
Single-entity time series container for tstune.

Holds the per-period observations (typically event counts) that a
forecasting model is tuned against. Timestamps are sorted and unique;
missing periods are allowed and simply absent from the index.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union
import numpy as np
import pandas as pd

from ..utils.logging import LoggingMixin


def median_spacing(index: pd.DatetimeIndex) -> pd.Timedelta:
    """Median gap between consecutive timestamps, independent of the index resolution."""
    return pd.Series(index).diff().dropna().median()


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One observation of the series."""

    timestamp: pd.Timestamp
    value: float


class TimeSeriesDataset(LoggingMixin):
    """
    Ordered collection of timestamped scalar observations for one entity.

    The dataset is read-only once constructed. Unsorted input is sorted,
    duplicate timestamps and non-finite values are rejected.
    """

    def __init__(
        self,
        series: pd.Series,
        freq: Optional[Union[str, pd.Timedelta]] = None,
        name: Optional[str] = None
    ) -> None:
        """
        Initialize dataset.

        Args:
            series: Values indexed by timestamp
            freq: Period length (pandas offset alias or Timedelta).
                Inferred from the observations when omitted.
            name: Optional entity name used in log messages
        """
        if not isinstance(series, pd.Series):
            raise ValueError("series must be a pandas Series")

        values = pd.to_numeric(series, errors="coerce").astype(float)
        values.index = pd.DatetimeIndex(pd.to_datetime(series.index))
        values.index.name = "timestamp"

        if values.index.has_duplicates:
            duplicated = values.index[values.index.duplicated()].unique()
            raise ValueError(f"Duplicate timestamps in series: {list(duplicated[:5])}")

        if not np.isfinite(values.to_numpy()).all():
            n_bad = int((~np.isfinite(values.to_numpy())).sum())
            raise ValueError(f"Series contains {n_bad} missing or non-finite values")

        if not values.index.is_monotonic_increasing:
            values = values.sort_index()

        self.name = name or (str(series.name) if series.name is not None else "series")
        self._series = values
        self._freq = freq if freq is not None else self._infer_freq()

        self.log_debug(
            f"Loaded dataset '{self.name}' with {len(values)} points, freq={self._freq}"
        )

    @classmethod
    def from_counts(
        cls,
        pairs: Iterable[Tuple[Any, float]],
        freq: Optional[Union[str, pd.Timedelta]] = None,
        name: Optional[str] = None
    ) -> "TimeSeriesDataset":
        """Build a dataset from ``(period start, count)`` pairs."""
        pairs = list(pairs)
        if not pairs:
            return cls(pd.Series([], dtype=float, index=pd.DatetimeIndex([])), freq=freq, name=name)

        periods, counts = zip(*pairs)
        return cls(pd.Series(list(counts), index=pd.to_datetime(list(periods))), freq=freq, name=name)

    @classmethod
    def from_frame(
        cls,
        data: pd.DataFrame,
        date_col: str = "period",
        value_col: str = "count",
        freq: Optional[Union[str, pd.Timedelta]] = None,
        name: Optional[str] = None
    ) -> "TimeSeriesDataset":
        """Build a dataset from a two-column DataFrame."""
        missing = [c for c in (date_col, value_col) if c not in data.columns]
        if missing:
            raise ValueError(f"Missing columns: {missing}")

        series = pd.Series(
            data[value_col].to_numpy(),
            index=pd.to_datetime(data[date_col]),
            name=name
        )
        return cls(series, freq=freq, name=name)

    @classmethod
    def from_csv(
        cls,
        filepath: Union[str, Path],
        date_col: str = "period",
        value_col: str = "count",
        freq: Optional[Union[str, pd.Timedelta]] = None
    ) -> "TimeSeriesDataset":
        """Load ``(period, count)`` rows from a CSV file."""
        filepath = Path(filepath)
        data = pd.read_csv(filepath)
        return cls.from_frame(data, date_col=date_col, value_col=value_col,
                              freq=freq, name=filepath.stem)

    def _infer_freq(self) -> Optional[Union[str, pd.Timedelta]]:
        """Infer the period length, tolerating gaps via the median spacing."""
        index = self._series.index
        if len(index) < 2:
            return None

        if len(index) >= 3:
            inferred = pd.infer_freq(index)
            if inferred is not None:
                return inferred

        return median_spacing(index)

    @property
    def series(self) -> pd.Series:
        """Copy of the underlying series."""
        return self._series.copy()

    @property
    def freq(self) -> Optional[Union[str, pd.Timedelta]]:
        return self._freq

    @property
    def timestamps(self) -> pd.DatetimeIndex:
        return self._series.index

    @property
    def start(self) -> Optional[pd.Timestamp]:
        return self._series.index[0] if len(self._series) else None

    @property
    def end(self) -> Optional[pd.Timestamp]:
        return self._series.index[-1] if len(self._series) else None

    def train_before(self, cutoff: Any) -> pd.Series:
        """All observations strictly earlier than ``cutoff``."""
        cutoff = pd.Timestamp(cutoff)
        return self._series[self._series.index < cutoff].copy()

    def value_at(self, cutoff: Any) -> Optional[float]:
        """Observation at ``cutoff``, or None if that period is missing."""
        cutoff = pd.Timestamp(cutoff)
        if cutoff not in self._series.index:
            return None
        return float(self._series.loc[cutoff])

    def points(self) -> List[TimeSeriesPoint]:
        return [TimeSeriesPoint(ts, float(v)) for ts, v in self._series.items()]

    def __len__(self) -> int:
        return len(self._series)

    def __repr__(self) -> str:
        return (
            f"TimeSeriesDataset(name={self.name!r}, points={len(self)}, "
            f"start={self.start}, end={self.end}, freq={self._freq})"
        )
