"""
Shared fixtures for tstune tests.
"""

import pytest
import pandas as pd
import numpy as np

from tstune.data.dataset import TimeSeriesDataset


@pytest.fixture
def weekly_counts():
    """Six consecutive weekly counts starting on a Monday."""
    periods = pd.date_range("2024-01-01", periods=6, freq="W-MON")
    return TimeSeriesDataset.from_counts(zip(periods, [5, 6, 5, 7, 8, 9]), name="weekly")


@pytest.fixture
def trend_dataset():
    """Forty weekly counts with a linear trend and mild noise."""
    rng = np.random.default_rng(7)
    periods = pd.date_range("2023-01-02", periods=40, freq="W-MON")
    values = 100 + 2.0 * np.arange(40) + rng.normal(0, 3, 40)
    return TimeSeriesDataset(pd.Series(np.round(values), index=periods), name="trend")
