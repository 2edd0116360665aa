"""
Naive last-value forecaster.

Baseline model with no tunable hyperparameters: every forecast equals the
last observation of the training window.
"""

from typing import Any, Dict
import pandas as pd
import numpy as np

from .base_model import BaseForecastModel, FittedModel


class FittedNaiveModel(FittedModel):

    def __init__(self, last_value: float, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.last_value = last_value

    def _point_forecast(self, steps: int) -> np.ndarray:
        return np.full(steps, self.last_value, dtype=float)


class NaiveForecastModel(BaseForecastModel):
    """Predicts the previous observed value."""

    name = "naive"
    default_params: Dict[str, Any] = {}

    def fit(self, series: pd.Series, hyperparameters: Dict[str, Any]) -> FittedNaiveModel:
        self.resolve_params(hyperparameters)
        values = self.validate_series(series, min_points=1)

        residual_std = float(np.std(np.diff(values))) if len(values) > 1 else 0.0

        return FittedNaiveModel(
            last_value=float(values[-1]),
            last_timestamp=series.index[-1],
            step=self.infer_step(series),
            residual_std=residual_std,
            interval_width=self.interval_width
        )
