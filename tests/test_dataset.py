"""
Tests for the time-series dataset and fold schedules.
"""

import pytest
import pandas as pd
import numpy as np

from tstune.data.dataset import TimeSeriesDataset, TimeSeriesPoint
from tstune.evaluation.folds import Fold, FoldSchedule


class TestTimeSeriesDataset:
    """Test dataset construction and access."""

    def test_from_counts_sorts_input(self):
        """Test that unsorted pairs are stored in chronological order."""
        dataset = TimeSeriesDataset.from_counts([
            ("2024-01-15", 3),
            ("2024-01-01", 1),
            ("2024-01-08", 2),
        ])

        assert list(dataset.series.values) == [1.0, 2.0, 3.0]
        assert dataset.start == pd.Timestamp("2024-01-01")
        assert dataset.end == pd.Timestamp("2024-01-15")
        assert len(dataset) == 3

    def test_duplicate_timestamps_rejected(self):
        """Test that duplicate periods raise."""
        with pytest.raises(ValueError, match="Duplicate"):
            TimeSeriesDataset.from_counts([("2024-01-01", 1), ("2024-01-01", 2)])

    def test_non_finite_values_rejected(self):
        """Test that missing values raise instead of being imputed."""
        with pytest.raises(ValueError, match="non-finite"):
            TimeSeriesDataset.from_counts([("2024-01-01", 1), ("2024-01-08", np.nan)])

    def test_non_series_rejected(self):
        with pytest.raises(ValueError):
            TimeSeriesDataset([1, 2, 3])

    def test_frequency_inferred(self, weekly_counts):
        """Test frequency inference on a regular weekly series."""
        assert weekly_counts.freq == "W-MON"

    def test_frequency_inferred_with_gap(self):
        """Test that a gap falls back to the median spacing."""
        periods = pd.date_range("2024-01-01", periods=6, freq="W-MON").delete(3)
        dataset = TimeSeriesDataset.from_counts(zip(periods, [1, 2, 3, 4, 5]))

        assert dataset.freq == pd.Timedelta(days=7)

    def test_frequency_inferred_with_gap_microseconds(self):
        """Test that the median spacing does not depend on the index resolution."""
        periods = pd.date_range("2024-01-01", periods=6, freq="W-MON").delete(3).as_unit("us")
        dataset = TimeSeriesDataset(pd.Series([1.0, 2.0, 3.0, 4.0, 5.0], index=periods))

        assert dataset.freq == pd.Timedelta(days=7)

    def test_explicit_frequency_kept(self):
        dataset = TimeSeriesDataset.from_counts([("2024-01-01", 1), ("2024-01-08", 2)], freq="W-MON")
        assert dataset.freq == "W-MON"

    def test_train_before_is_strict(self, weekly_counts):
        """Test that the cutoff observation is excluded from training."""
        cutoff = pd.Timestamp("2024-01-22")
        train = weekly_counts.train_before(cutoff)

        assert len(train) == 3
        assert train.index.max() < cutoff

    def test_value_at(self, weekly_counts):
        assert weekly_counts.value_at("2024-01-22") == 7.0
        assert weekly_counts.value_at("2024-01-23") is None

    def test_series_is_a_copy(self, weekly_counts):
        """Test that callers cannot mutate the dataset."""
        series = weekly_counts.series
        series.iloc[0] = 1000

        assert weekly_counts.series.iloc[0] == 5.0

    def test_points(self, weekly_counts):
        points = weekly_counts.points()

        assert len(points) == 6
        assert points[0] == TimeSeriesPoint(pd.Timestamp("2024-01-01"), 5.0)

    def test_from_csv(self, tmp_path):
        """Test loading a CSV with custom column names."""
        path = tmp_path / "visits.csv"
        pd.DataFrame({
            'week': ["2024-01-01", "2024-01-08", "2024-01-15"],
            'visits': [10, 12, 11]
        }).to_csv(path, index=False)

        dataset = TimeSeriesDataset.from_csv(path, date_col="week", value_col="visits")

        assert dataset.name == "visits"
        assert len(dataset) == 3
        assert dataset.value_at("2024-01-08") == 12.0

    def test_from_frame_missing_column(self):
        with pytest.raises(ValueError, match="Missing columns"):
            TimeSeriesDataset.from_frame(pd.DataFrame({'period': ["2024-01-01"]}))

    def test_empty_dataset(self):
        dataset = TimeSeriesDataset.from_counts([])

        assert len(dataset) == 0
        assert dataset.start is None
        assert dataset.freq is None


class TestFoldSchedule:
    """Test fold cutoffs and splits."""

    def test_last_periods(self, weekly_counts):
        """Test that cutoffs are the last periods of the calendar."""
        schedule = FoldSchedule.last_periods(weekly_counts, 3)

        assert len(schedule) == 3
        assert list(schedule.cutoffs) == list(pd.date_range("2024-01-22", periods=3, freq="W-MON"))

    def test_last_periods_over_gap(self):
        """Test that cutoffs can land on missing periods."""
        periods = pd.date_range("2024-01-01", periods=6, freq="W-MON").delete(4)
        dataset = TimeSeriesDataset.from_counts(zip(periods, [1, 2, 3, 4, 5]))

        schedule = FoldSchedule.last_periods(dataset, 3)

        assert pd.Timestamp("2024-01-29") in schedule.cutoffs
        assert dataset.value_at("2024-01-29") is None

    def test_last_periods_over_gap_microseconds(self):
        periods = pd.date_range("2024-01-01", periods=6, freq="W-MON").delete(4).as_unit("us")
        dataset = TimeSeriesDataset(pd.Series([1.0, 2.0, 3.0, 4.0, 5.0], index=periods))

        schedule = FoldSchedule.last_periods(dataset, 3)

        assert list(schedule.cutoffs) == list(pd.date_range("2024-01-22", periods=3, freq="W-MON"))

    def test_frequency_not_anchored_on_last_observation(self, weekly_counts):
        """Test that a Sunday-anchored frequency on Monday data is rejected."""
        with pytest.raises(ValueError, match="not anchored"):
            FoldSchedule.last_periods(weekly_counts, 3, freq="W")

    def test_cutoffs_must_increase(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            FoldSchedule.from_cutoffs(["2024-01-08", "2024-01-01"])

        with pytest.raises(ValueError, match="strictly increasing"):
            FoldSchedule.from_cutoffs(["2024-01-08", "2024-01-08"])

    def test_invalid_fold_count(self, weekly_counts):
        with pytest.raises(ValueError):
            FoldSchedule.last_periods(weekly_counts, 0)

    def test_unknown_frequency(self):
        """Test that a single point has no frequency to step back with."""
        dataset = TimeSeriesDataset.from_counts([("2024-01-01", 1)])

        with pytest.raises(ValueError, match="frequency"):
            FoldSchedule.last_periods(dataset, 2)

    def test_fold_split(self, weekly_counts):
        train, actual = Fold(pd.Timestamp("2024-01-29")).split(weekly_counts)

        assert list(train.values) == [5.0, 6.0, 5.0, 7.0]
        assert actual == 8.0

    def test_iteration(self, weekly_counts):
        schedule = FoldSchedule.last_periods(weekly_counts, 2)
        folds = list(schedule)

        assert all(isinstance(f, Fold) for f in folds)
        assert folds[0].cutoff < folds[1].cutoff
