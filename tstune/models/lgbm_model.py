"""
LightGBM lag-regression forecaster.

Wraps lightgbm.LGBMRegressor on a window of lagged observations and
forecasts multiple steps ahead recursively, feeding each prediction back
in as the newest lag.
"""

from typing import Any, Dict, List
import pandas as pd
import numpy as np

try:
    import lightgbm as lgb
except ImportError:
    raise ImportError("lightgbm is required but not installed. Run: pip install lightgbm")

from ..errors import ModelFitError
from ..tuning.search_space import DimensionSpec
from .base_model import BaseForecastModel, FittedModel


def lag_matrix(values: np.ndarray, n_lags: int) -> pd.DataFrame:
    """Rows of the previous ``n_lags`` values, newest first (lag_1)."""
    rows = [values[t - n_lags:t][::-1] for t in range(n_lags, len(values))]
    columns = [f"lag_{i}" for i in range(1, n_lags + 1)]
    return pd.DataFrame(rows, columns=columns, dtype=float)


class FittedLGBMModel(FittedModel):

    def __init__(self, regressor: "lgb.LGBMRegressor", history: np.ndarray, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.regressor = regressor
        self.history = history

    def _point_forecast(self, steps: int) -> np.ndarray:
        window = list(self.history)
        n_lags = len(self.history)
        columns = [f"lag_{i}" for i in range(1, n_lags + 1)]
        path = []
        for _ in range(steps):
            features = pd.DataFrame([window[-n_lags:][::-1]], columns=columns, dtype=float)
            yhat = float(self.regressor.predict(features)[0])
            path.append(yhat)
            window.append(yhat)
        return np.array(path, dtype=float)


class LGBMForecastModel(BaseForecastModel):
    """
    LightGBM regressor on lagged values.

    Tunable: ``learning_rate`` (continuous), ``num_leaves``, ``n_lags`` and
    ``n_estimators`` (integer).
    """

    name = "lgbm"
    default_params: Dict[str, Any] = {
        'learning_rate': 0.1,
        'num_leaves': 15,
        'n_lags': 3,
        'n_estimators': 100,
    }

    def __init__(
        self,
        interval_width: float = 0.8,
        random_state: int = 42,
        min_child_samples: int = 2,
        min_rows: int = 3
    ) -> None:
        """
        Initialize LightGBM forecaster.

        Args:
            interval_width: Coverage of the forecast interval
            random_state: Random seed passed to LightGBM
            min_child_samples: Minimum number of rows in a leaf
            min_rows: Minimum number of lagged training rows
        """
        super().__init__(interval_width=interval_width, random_state=random_state)
        self.min_child_samples = min_child_samples
        self.min_rows = min_rows

    @classmethod
    def default_search_space(cls) -> List[DimensionSpec]:
        return [
            DimensionSpec.mixture('learning_rate', (0.01, 0.05), (0.1, 0.3), floor=1e-4, ceiling=1.0),
            DimensionSpec.uniform('num_leaves', 4, 31, kind='int', floor=2),
            DimensionSpec.uniform('n_lags', 1, 6, kind='int', floor=1),
            DimensionSpec.uniform('n_estimators', 20, 200, kind='int', floor=1),
        ]

    def fit(self, series: pd.Series, hyperparameters: Dict[str, Any]) -> FittedLGBMModel:
        params = self.resolve_params(hyperparameters)
        learning_rate = float(params['learning_rate'])
        num_leaves = int(round(params['num_leaves']))
        n_lags = int(round(params['n_lags']))
        n_estimators = int(round(params['n_estimators']))

        if learning_rate <= 0:
            raise ModelFitError(f"learning_rate must be positive, got {learning_rate}")
        if num_leaves < 2:
            raise ModelFitError(f"num_leaves must be at least 2, got {num_leaves}")
        if n_lags < 1 or n_estimators < 1:
            raise ModelFitError(f"n_lags and n_estimators must be positive, got {n_lags}, {n_estimators}")

        values = self.validate_series(series, min_points=n_lags + self.min_rows)

        X = lag_matrix(values, n_lags)
        y = values[n_lags:]

        regressor = lgb.LGBMRegressor(
            learning_rate=learning_rate,
            num_leaves=num_leaves,
            n_estimators=n_estimators,
            min_child_samples=self.min_child_samples,
            random_state=self.random_state,
            n_jobs=1,
            verbose=-1
        )

        try:
            regressor.fit(X, y)
        except (lgb.basic.LightGBMError, ValueError) as e:
            raise ModelFitError(f"LightGBM fit failed: {e}") from e

        residuals = y - regressor.predict(X)
        residual_std = float(np.std(residuals)) if len(residuals) > 1 else 0.0

        return FittedLGBMModel(
            regressor=regressor,
            history=values[-n_lags:].copy(),
            last_timestamp=series.index[-1],
            step=self.infer_step(series),
            residual_std=residual_std,
            interval_width=self.interval_width
        )
