"""
Holt linear-trend exponential smoothing.

Two continuous hyperparameters: ``alpha`` (level smoothing) and ``beta``
(trend smoothing). Observations are treated as consecutive periods; gaps in
the training window are not filled.
"""

from typing import Any, Dict, List
import pandas as pd
import numpy as np

from ..errors import ModelFitError
from ..tuning.search_space import DimensionSpec
from .base_model import BaseForecastModel, FittedModel


class FittedSmoothingModel(FittedModel):

    def __init__(self, level: float, trend: float, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.level = level
        self.trend = trend

    def _point_forecast(self, steps: int) -> np.ndarray:
        return self.level + self.trend * np.arange(1, steps + 1, dtype=float)


class SmoothingForecastModel(BaseForecastModel):
    """
    Holt's additive-trend exponential smoothing.

    Level is initialised at the first observation and trend at the first
    difference, so at least two observations are required.
    """

    name = "smoothing"
    default_params: Dict[str, Any] = {'alpha': 0.5, 'beta': 0.1}

    @classmethod
    def default_search_space(cls) -> List[DimensionSpec]:
        return [
            # Bimodal prior: either heavy smoothing or fast reaction
            DimensionSpec.mixture('alpha', (0.05, 0.2), (0.6, 0.95), floor=0.01, ceiling=1.0),
            DimensionSpec.uniform('beta', 0.0, 0.3, floor=0.0, ceiling=1.0),
        ]

    def fit(self, series: pd.Series, hyperparameters: Dict[str, Any]) -> FittedSmoothingModel:
        params = self.resolve_params(hyperparameters)
        alpha = float(params['alpha'])
        beta = float(params['beta'])

        if not 0.0 < alpha <= 1.0:
            raise ModelFitError(f"alpha must be in (0, 1], got {alpha}")
        if not 0.0 <= beta <= 1.0:
            raise ModelFitError(f"beta must be in [0, 1], got {beta}")

        values = self.validate_series(series, min_points=2)

        level = values[0]
        trend = values[1] - values[0]
        residuals = []

        for y in values[1:]:
            forecast = level + trend
            residuals.append(y - forecast)
            new_level = alpha * y + (1.0 - alpha) * forecast
            trend = beta * (new_level - level) + (1.0 - beta) * trend
            level = new_level

        if not (np.isfinite(level) and np.isfinite(trend)):
            raise ModelFitError("Smoothing recursion diverged")

        residual_std = float(np.std(residuals)) if len(residuals) > 1 else 0.0

        return FittedSmoothingModel(
            level=float(level),
            trend=float(trend),
            last_timestamp=series.index[-1],
            step=self.infer_step(series),
            residual_std=residual_std,
            interval_width=self.interval_width
        )
