"""
Lookup of forecasting models by name.
"""

from typing import Any, Dict, Type

from .base_model import BaseForecastModel
from .lgbm_model import LGBMForecastModel
from .naive_model import NaiveForecastModel
from .smoothing_model import SmoothingForecastModel

MODEL_REGISTRY: Dict[str, Type[BaseForecastModel]] = {
    NaiveForecastModel.name: NaiveForecastModel,
    SmoothingForecastModel.name: SmoothingForecastModel,
    LGBMForecastModel.name: LGBMForecastModel,
}


def get_model(name: str, **kwargs: Any) -> BaseForecastModel:
    """Instantiate a registered forecasting model."""
    try:
        model_class = MODEL_REGISTRY[name]
    except KeyError:
        raise ValueError(f"Unknown model '{name}'. Available: {sorted(MODEL_REGISTRY)}")
    return model_class(**kwargs)
