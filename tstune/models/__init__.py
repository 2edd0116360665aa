"""
Forecasting models tuned by tstune.

Includes:
- base_model: Abstract base classes for models and fitted forecasters
- naive_model: Last-value baseline
- smoothing_model: Holt linear-trend exponential smoothing
- lgbm_model: LightGBM autoregressive regressor
- registry: Lookup of models by name
"""
