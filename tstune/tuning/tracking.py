"""
MLflow experiment tracking for tuning runs.

One parent run per tuning run, with a nested run per evaluated candidate.
Tracking problems are logged and never interrupt tuning.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
import mlflow

from ..utils.logging import LoggingMixin
from .candidates import Candidate


class MlflowTracker(LoggingMixin):
    """Logs candidates and the final tuning result to MLflow."""

    def __init__(
        self,
        experiment_name: str = "tstune",
        tracking_uri: Optional[str] = None
    ) -> None:
        """
        Initialize tracker.

        Args:
            experiment_name: MLflow experiment name
            tracking_uri: MLflow tracking URI (None for local)
        """
        self.experiment_name = experiment_name
        self.enabled = False

        if tracking_uri:
            mlflow.set_tracking_uri(tracking_uri)

        try:
            experiment = mlflow.get_experiment_by_name(experiment_name)
            if experiment is None:
                experiment_id = mlflow.create_experiment(experiment_name)
                self.log_info(f"Created MLflow experiment: {experiment_name}")
            else:
                experiment_id = experiment.experiment_id
                self.log_info(f"Using existing MLflow experiment: {experiment_name}")

            mlflow.set_experiment(experiment_id=experiment_id)
            self.enabled = True

        except Exception as e:
            self.log_warning(f"MLflow setup failed, tracking disabled: {e}")

    @contextmanager
    def run(self, run_name: str, params: Optional[Dict[str, Any]] = None) -> Iterator[None]:
        """Parent run wrapping one tuning run."""
        if not self.enabled:
            yield
            return

        try:
            active_run = mlflow.start_run(run_name=run_name)
        except Exception as e:
            self.log_warning(f"Failed to start MLflow run {run_name}, tracking disabled: {e}")
            self.enabled = False
            yield
            return

        with active_run:
            if params:
                self._safe(mlflow.log_params, params)
            yield

    def log_candidate(self, index: int, candidate: Candidate, best_score: float) -> None:
        if not self.enabled:
            return

        try:
            with mlflow.start_run(nested=True, run_name=f"candidate_{index}"):
                mlflow.log_params(dict(candidate.params))
                mlflow.log_param("phase", candidate.phase)
                mlflow.log_metric("score", candidate.score)
                mlflow.log_metric("scorable", float(candidate.scorable))
                mlflow.log_metric("n_folds", candidate.n_folds)
                mlflow.log_metric("best_score", best_score, step=index)
        except Exception as e:
            self.log_warning(f"Failed to log candidate {index} to MLflow: {e}")

    def log_summary(self, summary: Dict[str, Any]) -> None:
        if not self.enabled:
            return

        metrics = {k: float(v) for k, v in summary.items()
                   if isinstance(v, (int, float)) and not isinstance(v, bool)}
        self._safe(mlflow.log_metrics, metrics)
        self._safe(mlflow.log_params, {f"best_{k}": v for k, v in summary.get('best_params', {}).items()})
        self._safe(mlflow.log_dict, summary.get('space', {}), "search_space.json")

    def _safe(self, func, *args: Any) -> None:
        try:
            func(*args)
        except Exception as e:
            self.log_warning(f"MLflow call {func.__name__} failed: {e}")
