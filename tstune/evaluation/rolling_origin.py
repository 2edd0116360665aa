"""
Rolling-origin cross-validation for forecasting hyperparameters.

Scores one hyperparameter vector by refitting the forecasting model on
every observation before each fold cutoff and comparing its one-step-ahead
forecast with the observation at the cutoff. The score is the negated mean
absolute percentage error across the folds that produced a value.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping
import numpy as np
import pandas as pd

from ..data.dataset import TimeSeriesDataset
from ..errors import (
    InsufficientDataError,
    MissingTestPointError,
    ModelFitError,
    UnscorableCandidate,
)
from ..models.base_model import BaseForecastModel
from ..tuning.candidates import Candidate, SEED_PHASE, UNSCORABLE_SCORE
from ..utils.logging import LoggingMixin
from .folds import Fold, FoldSchedule

FOLD_ERRORS = (InsufficientDataError, MissingTestPointError, ModelFitError)


def absolute_percentage_error(actual: float, predicted: float) -> float:
    """
    ``|actual - predicted| / |actual|``.

    Returns NaN when ``actual`` is zero, where the percentage error is
    undefined.
    """
    actual = float(actual)
    if actual == 0.0:
        return float('nan')
    return abs(actual - float(predicted)) / abs(actual)


@dataclass
class EvaluationResult:
    """Cross-validated score of one hyperparameter vector."""

    hyperparameters: Dict[str, Any]
    score: float
    mape: float
    fold_errors: Dict[pd.Timestamp, float] = field(default_factory=dict)
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def n_folds(self) -> int:
        return len(self.fold_errors)


class RollingOriginEvaluator(LoggingMixin):
    """
    Rolling-origin evaluator for one forecasting model.

    Folds are evaluated sequentially in schedule order. Folds with too
    little history, no observation at the cutoff, a failed fit or an
    undefined percentage error are skipped and excluded from the mean.
    """

    def __init__(self, model: BaseForecastModel, min_train_size: int = 2) -> None:
        """
        Initialize evaluator.

        Args:
            model: Forecasting model used for every fold
            min_train_size: Minimum number of training observations per fold
        """
        if min_train_size < 1:
            raise ValueError("min_train_size must be at least 1")
        self.model = model
        self.min_train_size = min_train_size

    def evaluate(
        self,
        hyperparameters: Mapping[str, Any],
        dataset: TimeSeriesDataset,
        fold_schedule: FoldSchedule
    ) -> EvaluationResult:
        """
        Score a hyperparameter vector.

        Args:
            hyperparameters: Hyperparameter vector keyed by dimension name
            dataset: Series to cross-validate on
            fold_schedule: Cutoffs to evaluate, in chronological order

        Returns:
            Evaluation result with score = -MAPE

        Raises:
            UnscorableCandidate: If no fold produced an error value
        """
        hyperparameters = dict(hyperparameters)
        fold_errors: Dict[pd.Timestamp, float] = {}
        skipped: List[Dict[str, Any]] = []

        for fold in fold_schedule:
            try:
                error = self._evaluate_fold(fold, dataset, hyperparameters)
            except FOLD_ERRORS as e:
                self.log_debug(f"Skipping fold {fold.cutoff.date()}: {e}")
                skipped.append({'cutoff': fold.cutoff, 'reason': type(e).__name__, 'detail': str(e)})
                continue

            if not np.isfinite(error):
                self.log_debug(f"Skipping fold {fold.cutoff.date()}: percentage error undefined")
                skipped.append({'cutoff': fold.cutoff, 'reason': 'UndefinedPercentageError',
                                'detail': 'actual value is zero'})
                continue

            fold_errors[fold.cutoff] = error

        if not fold_errors:
            self.log_warning(
                f"Candidate {hyperparameters} is unscorable: all {len(fold_schedule)} folds skipped"
            )
            raise UnscorableCandidate(hyperparameters, skipped)

        mape = float(np.mean(list(fold_errors.values())))

        self.log_debug(
            f"Evaluated {hyperparameters}: MAPE={mape:.4f} over {len(fold_errors)} folds "
            f"({len(skipped)} skipped)"
        )

        return EvaluationResult(
            hyperparameters=hyperparameters,
            score=-mape,
            mape=mape,
            fold_errors=fold_errors,
            skipped=skipped
        )

    def _evaluate_fold(
        self,
        fold: Fold,
        dataset: TimeSeriesDataset,
        hyperparameters: Dict[str, Any]
    ) -> float:
        """Percentage error of the one-step-ahead forecast at one cutoff."""
        train, actual = fold.split(dataset)

        if len(train) < self.min_train_size:
            raise InsufficientDataError(len(train), self.min_train_size)

        if actual is None:
            raise MissingTestPointError(fold.cutoff)

        fitted = self.model.fit(train, hyperparameters)
        forecast = fitted.predict([fold.cutoff])
        predicted = float(forecast['yhat'].iloc[0])

        if not np.isfinite(predicted):
            raise ModelFitError(f"Non-finite forecast at {fold.cutoff}")

        return absolute_percentage_error(actual, predicted)

    def score_candidate(
        self,
        hyperparameters: Mapping[str, Any],
        dataset: TimeSeriesDataset,
        fold_schedule: FoldSchedule,
        phase: str = SEED_PHASE
    ) -> Candidate:
        """
        Evaluate a hyperparameter vector into an immutable candidate row.

        Unscorable vectors get ``UNSCORABLE_SCORE`` so the optimizer
        disfavors them without stopping.
        """
        try:
            result = self.evaluate(hyperparameters, dataset, fold_schedule)
        except UnscorableCandidate:
            return Candidate(params=hyperparameters, score=UNSCORABLE_SCORE,
                             scorable=False, phase=phase, n_folds=0)

        return Candidate(params=hyperparameters, score=result.score,
                         scorable=True, phase=phase, n_folds=result.n_folds)
