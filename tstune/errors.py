"""
Exception hierarchy for tstune.

Fold-level errors (insufficient data, failed fits, missing test points) are
raised and absorbed inside the rolling-origin evaluator. ``UnscorableCandidate``
is the only evaluation error that leaves the evaluator, and the optimization
loop converts it into a sentinel score. ``BoundsError`` signals an optimizer
bug and is never absorbed.
"""

from typing import Any, Dict, List, Optional


class TuningError(Exception):
    """Base class for all tstune errors."""


class InsufficientDataError(TuningError):
    """A fold's training window is smaller than the configured minimum."""

    def __init__(self, n_points: int, min_points: int) -> None:
        self.n_points = n_points
        self.min_points = min_points
        super().__init__(
            f"Training window has {n_points} points, need at least {min_points}"
        )


class ModelFitError(TuningError):
    """The forecasting model could not be fitted or produced an unusable forecast."""


class MissingTestPointError(TuningError):
    """The fold cutoff has no observation to score against."""

    def __init__(self, cutoff: Any) -> None:
        self.cutoff = cutoff
        super().__init__(f"No observation at cutoff {cutoff}")


class UnscorableCandidate(TuningError):
    """Every fold was skipped for a hyperparameter vector."""

    def __init__(
        self,
        hyperparameters: Dict[str, Any],
        skipped: Optional[List[Dict[str, Any]]] = None
    ) -> None:
        self.hyperparameters = dict(hyperparameters)
        self.skipped = list(skipped or [])
        super().__init__(
            f"No fold produced an error value for {self.hyperparameters} "
            f"({len(self.skipped)} folds skipped)"
        )


class BoundsError(TuningError):
    """A proposed candidate lies outside the hyperparameter space."""

    def __init__(self, name: str, value: float, low: float, high: float) -> None:
        self.name = name
        self.value = value
        self.low = low
        self.high = high
        super().__init__(
            f"Dimension '{name}' value {value} outside bounds [{low}, {high}]"
        )
