"""
CLI interface for tstune tuning and evaluation.

Provides command-line interface for Bayesian hyperparameter tuning of a
forecasting model on a CSV series, and for scoring a fixed hyperparameter
vector with rolling-origin cross-validation.
"""

import typer
from typing import Any, Dict, Optional
from pathlib import Path
import json

from ..config import TuningConfig
from ..data.dataset import TimeSeriesDataset
from ..evaluation.folds import FoldSchedule
from ..evaluation.rolling_origin import EvaluationResult, RollingOriginEvaluator
from ..models.registry import get_model
from ..tuning.bayes_loop import BayesianOptimizationLoop, TuningResult
from ..tuning.candidates import CandidateSet
from ..tuning.tracking import MlflowTracker
from ..utils.logging import LoggingMixin

app = typer.Typer(help="tstune - Forecasting hyperparameter tuning CLI")


def _json_default(value: Any) -> Any:
    if hasattr(value, "item"):
        return value.item()
    return str(value)


class TuningPipeline(LoggingMixin):
    """Loads data, builds components from config, runs and saves."""

    def __init__(self, config: TuningConfig):
        self.config = config
        self.log_info(f"Initialized tuning pipeline for model '{config.model}' "
                      f"with random_state={config.random_state}")

    def load_dataset(
        self,
        data_file: str,
        date_col: str = "period",
        value_col: str = "count"
    ) -> TimeSeriesDataset:
        dataset = TimeSeriesDataset.from_csv(
            data_file, date_col=date_col, value_col=value_col, freq=self.config.evaluation.freq
        )
        self.log_info(f"Loaded {dataset}")
        return dataset

    def build_evaluator(self) -> RollingOriginEvaluator:
        model = get_model(self.config.model, random_state=self.config.random_state)
        return RollingOriginEvaluator(model, min_train_size=self.config.evaluation.min_train_size)

    def build_schedule(self, dataset: TimeSeriesDataset) -> FoldSchedule:
        schedule = FoldSchedule.last_periods(dataset, self.config.evaluation.n_folds)
        self.log_info(
            f"Fold schedule: {len(schedule)} cutoffs from {schedule.cutoffs[0].date()} "
            f"to {schedule.cutoffs[-1].date()}"
        )
        return schedule

    def tune(
        self,
        dataset: TimeSeriesDataset,
        output_dir: str = "tuning_results",
        resume_file: Optional[str] = None
    ) -> TuningResult:
        """Run the optimization loop and write its artifacts."""
        evaluator = self.build_evaluator()
        schedule = self.build_schedule(dataset)
        specs = self.config.dimension_specs(evaluator.model.default_search_space())

        tracker = None
        if self.config.mlflow_experiment_name:
            tracker = MlflowTracker(
                experiment_name=self.config.mlflow_experiment_name,
                tracking_uri=self.config.mlflow_tracking_uri
            )

        initial = None
        if resume_file:
            initial = CandidateSet.read_csv(resume_file)
            self.log_info(f"Loaded {len(initial)} candidates from {resume_file}")

        loop = BayesianOptimizationLoop.from_config(self.config, evaluator, tracker=tracker)
        result = loop.run(dataset, schedule, specs, rng=self.config.random_state,
                          initial_candidates=initial)

        self.save_results(result, output_dir)
        return result

    def evaluate(
        self,
        dataset: TimeSeriesDataset,
        hyperparameters: Dict[str, Any]
    ) -> EvaluationResult:
        evaluator = self.build_evaluator()
        schedule = self.build_schedule(dataset)
        return evaluator.evaluate(hyperparameters, dataset, schedule)

    def save_results(self, result: TuningResult, output_dir: str) -> None:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        # Candidate table in evaluation order
        result.candidates.to_frame(columns=result.space.names).to_csv(
            output_path / "candidates.csv", index=False
        )

        with open(output_path / "best_params.json", 'w') as f:
            json.dump(result.best_params, f, indent=2, default=_json_default)

        tuning_results = result.summary()
        tuning_results['model'] = self.config.model
        tuning_results['config'] = self.config.to_dict()
        with open(output_path / "tuning_results.json", 'w') as f:
            json.dump(tuning_results, f, indent=2, default=_json_default)

        result.save(output_path / "tuning_result.pkl")

        self.log_info(f"Saved tuning results to {output_path}")


def load_config(
    config_file: Optional[str],
    overrides: Dict[str, Any],
    section_overrides: Dict[str, Dict[str, Any]]
) -> TuningConfig:
    """Config file values overridden by explicitly passed CLI options."""
    config = TuningConfig.from_json(config_file) if config_file else TuningConfig()
    values = config.to_dict()

    values.update({k: v for k, v in overrides.items() if v is not None})
    for section, options in section_overrides.items():
        values[section].update({k: v for k, v in options.items() if v is not None})

    return TuningConfig.from_dict(values)


@app.command("tune")
def tune_hyperparameters(
    data_file: str = typer.Argument(..., help="Path to CSV with period and count columns"),
    config_file: Optional[str] = typer.Option(None, "--config", help="Path to tuning config JSON file"),
    model: Optional[str] = typer.Option(None, help="Forecasting model to tune"),
    n_seed: Optional[int] = typer.Option(None, help="Number of random seed candidates"),
    n_iterations: Optional[int] = typer.Option(None, help="Number of Bayesian optimization iterations"),
    n_folds: Optional[int] = typer.Option(None, help="Number of rolling-origin folds"),
    kappa: Optional[float] = typer.Option(None, help="UCB exploration weight"),
    margin: Optional[float] = typer.Option(None, help="Search space widening around seed samples"),
    random_state: Optional[int] = typer.Option(None, help="Random state for reproducibility"),
    freq: Optional[str] = typer.Option(None, help="Pandas frequency alias of the series"),
    date_col: str = typer.Option("period", help="Name of the timestamp column"),
    value_col: str = typer.Option("count", help="Name of the value column"),
    resume: Optional[str] = typer.Option(None, help="Candidates CSV from a previous run to resume from"),
    output_dir: str = typer.Option("tuning_results", help="Output directory for results"),
    mlflow_experiment: Optional[str] = typer.Option(None, help="MLflow experiment name (tracking off if unset)"),
    progress: bool = typer.Option(False, "--progress/--no-progress", help="Show progress bars")
):
    """Tune forecasting hyperparameters with Bayesian optimization."""

    try:
        config = load_config(
            config_file,
            overrides={
                'model': model,
                'n_iterations': n_iterations,
                'margin': margin,
                'random_state': random_state,
                'mlflow_experiment_name': mlflow_experiment,
            },
            section_overrides={
                'evaluation': {'n_folds': n_folds, 'freq': freq},
                'sampler': {'n_candidates': n_seed, 'show_progress': progress or None},
                'acquisition': {'kappa': kappa},
            }
        )

        pipeline = TuningPipeline(config)
        dataset = pipeline.load_dataset(data_file, date_col=date_col, value_col=value_col)
        result = pipeline.tune(dataset, output_dir=output_dir, resume_file=resume)

        typer.echo("✅ Hyperparameter tuning completed")
        typer.echo(f"Best score: {result.best_score:.4f} (seed best {result.best_seed.score:.4f})")
        typer.echo(f"Improvement: {result.improvement:.4f}")
        typer.echo(f"Best params: {json.dumps(result.best_params, default=_json_default)}")
        typer.echo(f"Results saved to: {output_dir}")

    except Exception as e:
        typer.echo(f"❌ Hyperparameter tuning failed: {e}", err=True)
        raise typer.Exit(1)


@app.command("evaluate")
def evaluate_params(
    data_file: str = typer.Argument(..., help="Path to CSV with period and count columns"),
    params_file: str = typer.Argument(..., help="Path to hyperparameters JSON file"),
    model: str = typer.Option("smoothing", help="Forecasting model to evaluate"),
    n_folds: int = typer.Option(8, help="Number of rolling-origin folds"),
    min_train_size: int = typer.Option(4, help="Minimum training observations per fold"),
    freq: Optional[str] = typer.Option(None, help="Pandas frequency alias of the series"),
    date_col: str = typer.Option("period", help="Name of the timestamp column"),
    value_col: str = typer.Option("count", help="Name of the value column")
):
    """Score a hyperparameter vector with rolling-origin cross-validation."""

    try:
        with open(params_file, 'r') as f:
            hyperparameters = json.load(f)

        config = TuningConfig.from_dict({
            'model': model,
            'evaluation': {'n_folds': n_folds, 'min_train_size': min_train_size, 'freq': freq},
        })

        pipeline = TuningPipeline(config)
        dataset = pipeline.load_dataset(data_file, date_col=date_col, value_col=value_col)
        result = pipeline.evaluate(dataset, hyperparameters)

        typer.echo("✅ Evaluation completed")
        typer.echo(f"MAPE: {result.mape:.4f} (score {result.score:.4f})")
        typer.echo(f"Folds scored: {result.n_folds}, skipped: {len(result.skipped)}")
        for cutoff, error in result.fold_errors.items():
            typer.echo(f"  {cutoff.date()}: {error:.4f}")

    except Exception as e:
        typer.echo(f"❌ Evaluation failed: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
