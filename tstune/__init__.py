"""
tstune

Bayesian hyperparameter tuning for time-series forecasting models, scored
by rolling-origin cross-validated MAPE.
"""

__version__ = "0.1.0"
__author__ = "tstune"
