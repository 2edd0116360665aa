"""
Abstract forecasting model interface for tstune.

A forecasting model is a factory: ``fit`` takes a training series and a
hyperparameter vector and returns a fitted model, which produces point
forecasts with interval bounds for requested future timestamps.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional
import pandas as pd
import numpy as np
from scipy.stats import norm

from ..data.dataset import median_spacing
from ..errors import ModelFitError
from ..tuning.search_space import DimensionSpec
from ..utils.logging import LoggingMixin

FORECAST_COLUMNS = ['timestamp', 'yhat', 'yhat_lower', 'yhat_upper']


class FittedModel(ABC):
    """
    Model fitted to one training window.

    Subclasses implement ``_point_forecast`` for a number of steps ahead of
    the last training observation; horizon bookkeeping and interval bounds
    are shared.
    """

    def __init__(
        self,
        last_timestamp: pd.Timestamp,
        step: pd.Timedelta,
        residual_std: float,
        interval_width: float = 0.8
    ) -> None:
        self.last_timestamp = last_timestamp
        self.step = step
        self.residual_std = residual_std
        self.interval_width = interval_width

    @abstractmethod
    def _point_forecast(self, steps: int) -> np.ndarray:
        """Point forecasts for 1..steps periods ahead."""
        pass

    def horizon_steps(self, timestamp: Any) -> int:
        """Number of periods between the last training point and ``timestamp``."""
        delta = pd.Timestamp(timestamp) - self.last_timestamp
        if delta <= pd.Timedelta(0):
            raise ValueError(
                f"Forecast timestamp {timestamp} is not after training end {self.last_timestamp}"
            )
        return max(1, int(round(delta / self.step)))

    def predict(self, future_timestamps: Iterable[Any]) -> pd.DataFrame:
        """
        Forecast the requested timestamps.

        Args:
            future_timestamps: Timestamps after the training window

        Returns:
            DataFrame with columns timestamp, yhat, yhat_lower, yhat_upper
        """
        timestamps = [pd.Timestamp(t) for t in future_timestamps]
        if not timestamps:
            return pd.DataFrame(columns=FORECAST_COLUMNS)

        steps = [self.horizon_steps(t) for t in timestamps]
        path = self._point_forecast(max(steps))
        yhat = np.array([path[s - 1] for s in steps], dtype=float)

        z = norm.ppf(0.5 + self.interval_width / 2.0)
        half_width = z * self.residual_std * np.sqrt(np.array(steps, dtype=float))

        return pd.DataFrame({
            'timestamp': timestamps,
            'yhat': yhat,
            'yhat_lower': yhat - half_width,
            'yhat_upper': yhat + half_width
        })


class BaseForecastModel(ABC, LoggingMixin):
    """
    Abstract base class for forecasting models tuned by tstune.

    Concrete models declare their tunable hyperparameters with defaults in
    ``default_params`` and their default sampling ranges in
    ``default_search_space``.
    """

    name = "base"
    default_params: Dict[str, Any] = {}

    def __init__(self, interval_width: float = 0.8, random_state: int = 42) -> None:
        """
        Initialize model.

        Args:
            interval_width: Coverage of the forecast interval
            random_state: Random seed for models with stochastic fitting
        """
        if not 0.0 < interval_width < 1.0:
            raise ValueError("interval_width must be in (0, 1)")
        self.interval_width = interval_width
        self.random_state = random_state

    @abstractmethod
    def fit(self, series: pd.Series, hyperparameters: Dict[str, Any]) -> FittedModel:
        """
        Fit the model on a training window.

        Args:
            series: Training observations indexed by timestamp
            hyperparameters: Hyperparameter vector, keyed by dimension name

        Returns:
            Fitted model

        Raises:
            ModelFitError: If the window is degenerate or the fit fails
        """
        pass

    @classmethod
    def default_search_space(cls) -> List[DimensionSpec]:
        """Sampling ranges for the seed phase (empty when nothing is tunable)."""
        return []

    def resolve_params(self, hyperparameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Merge a hyperparameter vector over the model defaults."""
        hyperparameters = dict(hyperparameters or {})
        unknown = set(hyperparameters) - set(self.default_params)
        if unknown:
            raise ValueError(
                f"Unknown hyperparameters for {self.__class__.__name__}: {sorted(unknown)}"
            )
        params = dict(self.default_params)
        params.update(hyperparameters)
        return params

    def validate_series(self, series: pd.Series, min_points: int) -> np.ndarray:
        """
        Check a training window and return its values.

        Raises:
            ModelFitError: If the window is too short or not finite
        """
        if len(series) < min_points:
            raise ModelFitError(
                f"{self.__class__.__name__} needs at least {min_points} points, got {len(series)}"
            )
        values = series.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            raise ModelFitError("Training window contains non-finite values")
        return values

    @staticmethod
    def infer_step(series: pd.Series) -> pd.Timedelta:
        """Median spacing of the training window (one day for a single point)."""
        if len(series) < 2:
            return pd.Timedelta(days=1)
        return median_spacing(series.index)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(interval_width={self.interval_width})"
