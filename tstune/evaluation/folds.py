"""
Fold schedules for rolling-origin cross-validation.

A fold is identified by its cutoff timestamp: the training window is every
observation strictly before the cutoff and the test point is the observation
at the cutoff, if there is one.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Tuple, Union
import pandas as pd

from ..data.dataset import TimeSeriesDataset


@dataclass(frozen=True)
class Fold:
    """One chronological train/test split."""

    cutoff: pd.Timestamp

    def split(self, dataset: TimeSeriesDataset) -> Tuple[pd.Series, Optional[float]]:
        """Return the training window and the test value (None if missing)."""
        return dataset.train_before(self.cutoff), dataset.value_at(self.cutoff)


@dataclass(frozen=True)
class FoldSchedule:
    """Fixed, chronologically ordered sequence of fold cutoffs."""

    cutoffs: Tuple[pd.Timestamp, ...]

    def __post_init__(self) -> None:
        cutoffs = tuple(pd.Timestamp(c) for c in self.cutoffs)
        for earlier, later in zip(cutoffs, cutoffs[1:]):
            if not earlier < later:
                raise ValueError(
                    f"Fold cutoffs must be strictly increasing, got {earlier} then {later}"
                )
        object.__setattr__(self, "cutoffs", cutoffs)

    @classmethod
    def from_cutoffs(cls, cutoffs: Iterable[Any]) -> "FoldSchedule":
        return cls(tuple(pd.Timestamp(c) for c in cutoffs))

    @classmethod
    def last_periods(
        cls,
        dataset: TimeSeriesDataset,
        n_folds: int,
        freq: Optional[Union[str, pd.Timedelta]] = None
    ) -> "FoldSchedule":
        """
        Cutoffs at the last ``n_folds`` periods of the dataset's calendar.

        The calendar is regular and ends at the last observation, so cutoffs
        can land on missing periods; those folds are skipped at evaluation.

        Args:
            dataset: Series the schedule is built for
            n_folds: Number of cutoffs
            freq: Period length; defaults to the dataset's frequency

        Returns:
            Fold schedule
        """
        if n_folds < 1:
            raise ValueError("n_folds must be at least 1")
        if len(dataset) == 0:
            raise ValueError("Cannot build a fold schedule for an empty dataset")

        freq = freq if freq is not None else dataset.freq
        if freq is None:
            raise ValueError(
                "Dataset frequency is unknown; pass freq explicitly or supply cutoffs"
            )

        cutoffs = pd.date_range(end=dataset.end, periods=n_folds, freq=freq)
        if cutoffs[-1] != dataset.end:
            raise ValueError(
                f"Frequency {freq} is not anchored on the last observation {dataset.end}; "
                f"the last cutoff would be {cutoffs[-1]}"
            )
        return cls(tuple(cutoffs))

    @property
    def folds(self) -> Tuple[Fold, ...]:
        return tuple(Fold(c) for c in self.cutoffs)

    def __iter__(self) -> Iterator[Fold]:
        return iter(self.folds)

    def __len__(self) -> int:
        return len(self.cutoffs)
