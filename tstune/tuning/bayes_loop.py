"""
Bayesian optimization loop for forecasting hyperparameters.

Seeds a candidate pool with the random grid sampler, derives the search
space from it, then runs a fixed number of iterations of
surrogate refit -> acquisition maximization -> evaluation -> append.
The deliverable is the best row ever observed and its improvement over the
best seed row.
"""

from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
import joblib
import numpy as np
from tqdm import tqdm

from ..config import TuningConfig
from ..data.dataset import TimeSeriesDataset
from ..evaluation.folds import FoldSchedule
from ..evaluation.rolling_origin import RollingOriginEvaluator
from ..utils.logging import LoggingMixin
from .acquisition import AcquisitionOptimizer
from .candidates import Candidate, CandidateSet, OPTIMIZE_PHASE, SEED_PHASE
from .gaussian_process import GaussianProcessSurrogate
from .sampler import RandomGridSampler, as_generator
from .search_space import DimensionSpec, HyperparameterSpace
from .tracking import MlflowTracker


class LoopState(Enum):
    IDLE = "idle"
    SEEDING = "seeding"
    SURROGATE_FIT = "surrogate_fit"
    ACQUIRE = "acquire"
    EVALUATE = "evaluate"
    APPEND = "append"
    TERMINATED = "terminated"


@dataclass
class TuningResult:
    """Outcome of a tuning run."""

    best: Candidate
    best_seed: Candidate
    candidates: CandidateSet
    space: HyperparameterSpace
    best_score_history: List[float] = field(default_factory=list)

    @property
    def best_params(self) -> Dict[str, Any]:
        return dict(self.best.params)

    @property
    def best_score(self) -> float:
        return self.best.score

    @property
    def improvement(self) -> float:
        """Best overall score minus best seed-phase score (never negative)."""
        return self.best.score - self.best_seed.score

    def summary(self) -> Dict[str, Any]:
        return {
            'best_params': self.best_params,
            'best_score': self.best.score,
            'best_mape': -self.best.score if self.best.scorable else None,
            'best_scorable': self.best.scorable,
            'best_phase': self.best.phase,
            'best_seed_score': self.best_seed.score,
            'improvement': self.improvement,
            'n_candidates': len(self.candidates),
            'n_seed': len(self.candidates.by_phase(SEED_PHASE)),
            'n_unscorable': sum(1 for row in self.candidates if not row.scorable),
            'space': self.space.to_dict(),
        }

    def save(self, filepath: Union[str, Path]) -> None:
        joblib.dump(self, filepath)

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> "TuningResult":
        result = joblib.load(filepath)
        if not isinstance(result, cls):
            raise ValueError(f"{filepath} does not contain a TuningResult")
        return result


class BayesianOptimizationLoop(LoggingMixin):
    """
    Orchestrates seeding, surrogate refits, acquisition and evaluation.

    The loop is the single writer of the candidate set. Every proposed
    candidate is appended whether or not it improves on the best, and
    unscorable candidates are recorded with the sentinel score rather than
    stopping the run.
    """

    def __init__(
        self,
        evaluator: RollingOriginEvaluator,
        sampler: Optional[RandomGridSampler] = None,
        surrogate: Optional[GaussianProcessSurrogate] = None,
        optimizer: Optional[AcquisitionOptimizer] = None,
        n_iterations: int = 20,
        n_seed: int = 20,
        kappa: float = 0.1,
        margin: float = 0.2,
        tracker: Optional[MlflowTracker] = None,
        show_progress: bool = False
    ) -> None:
        """
        Initialize loop.

        Args:
            evaluator: Rolling-origin evaluator for the model being tuned
            sampler: Seed-phase sampler
            surrogate: Surrogate builder, refit every iteration
            optimizer: Acquisition optimizer
            n_iterations: Number of optimization iterations after seeding
            n_seed: Number of seed candidates
            kappa: UCB exploration weight
            margin: Fractional widening of the empirical seed bounds
            tracker: Optional MLflow tracker
            show_progress: Show a progress bar over iterations
        """
        if n_iterations < 0:
            raise ValueError("n_iterations must be non-negative")
        if n_seed < 1:
            raise ValueError("n_seed must be at least 1")

        self.evaluator = evaluator
        self.sampler = sampler or RandomGridSampler(show_progress=show_progress)
        self.surrogate = surrogate or GaussianProcessSurrogate()
        self.optimizer = optimizer or AcquisitionOptimizer()
        self.n_iterations = n_iterations
        self.n_seed = n_seed
        self.kappa = kappa
        self.margin = margin
        self.tracker = tracker
        self.show_progress = show_progress

        self.state = LoopState.IDLE

    @classmethod
    def from_config(
        cls,
        config: TuningConfig,
        evaluator: RollingOriginEvaluator,
        tracker: Optional[MlflowTracker] = None
    ) -> "BayesianOptimizationLoop":
        return cls(
            evaluator=evaluator,
            sampler=RandomGridSampler(show_progress=config.sampler.show_progress),
            surrogate=GaussianProcessSurrogate(
                length_scale=config.surrogate.length_scale,
                signal_variance=config.surrogate.signal_variance,
                noise=config.surrogate.noise,
                optimize=config.surrogate.optimize
            ),
            optimizer=AcquisitionOptimizer(
                n_samples=config.acquisition.n_samples,
                n_refine=config.acquisition.n_refine,
                random_state=config.random_state
            ),
            n_iterations=config.n_iterations,
            n_seed=config.sampler.n_candidates,
            kappa=config.acquisition.kappa,
            margin=config.margin,
            tracker=tracker,
            show_progress=config.sampler.show_progress
        )

    def run(
        self,
        dataset: TimeSeriesDataset,
        fold_schedule: FoldSchedule,
        dimension_specs: Sequence[DimensionSpec],
        rng: Union[int, np.random.Generator, None],
        initial_candidates: Optional[CandidateSet] = None
    ) -> TuningResult:
        """
        Run seeding followed by the fixed number of optimization iterations.

        Args:
            dataset: Series the model is tuned on
            fold_schedule: Cutoffs used for every evaluation
            dimension_specs: Sampling specs of the tuned dimensions
            rng: Generator (or seed) for sampling and acquisition search
            initial_candidates: Previously evaluated rows to resume from;
                seeding is skipped when given

        Returns:
            Tuning result
        """
        if not dimension_specs:
            raise ValueError("At least one dimension spec is required")

        rng = as_generator(rng)
        names = [spec.name for spec in dimension_specs]
        tracker_run = (
            self.tracker.run(f"tune_{dataset.name}", {'n_seed': self.n_seed, 'n_iterations': self.n_iterations,
                                                      'kappa': self.kappa, 'margin': self.margin})
            if self.tracker is not None else nullcontext()
        )

        with tracker_run:
            self.state = LoopState.SEEDING
            candidates = self._seed(dataset, fold_schedule, dimension_specs, rng, initial_candidates)

            seed_rows = candidates.by_phase(SEED_PHASE)
            if len(seed_rows) == 0:
                seed_rows = candidates
            self._check_dimensions(seed_rows, names)

            space = HyperparameterSpace.from_candidates(seed_rows.param_rows(), dimension_specs, margin=self.margin)
            self.log_info(f"Search space: {space}")

            best = candidates.best()
            history = [best.score]
            for index, row in enumerate(candidates):
                self._track(index, row, best.score)

            for iteration in tqdm(range(self.n_iterations), desc="Optimizing", disable=not self.show_progress):
                self.state = LoopState.SURROGATE_FIT
                surrogate = self.surrogate.fit(candidates, space)

                self.state = LoopState.ACQUIRE
                params = self.optimizer.propose(surrogate, space, kappa=self.kappa, rng=rng)

                self.state = LoopState.EVALUATE
                candidate = self.evaluator.score_candidate(params, dataset, fold_schedule, phase=OPTIMIZE_PHASE)

                self.state = LoopState.APPEND
                candidates.append(candidate)
                if candidate.beats(best):
                    best = candidate
                history.append(best.score)
                self._track(len(candidates) - 1, candidate, best.score)

                self.log_info(
                    f"Iteration {iteration + 1}/{self.n_iterations}: score={candidate.score:.4f}, "
                    f"best={best.score:.4f}, params={params}"
                )

            self.state = LoopState.TERMINATED

            result = TuningResult(
                best=best,
                best_seed=seed_rows.best(),
                candidates=candidates,
                space=space,
                best_score_history=history
            )

            if not result.best.scorable:
                self.log_warning("No candidate produced a score; best row is the unscorable sentinel")

            self.log_info(
                f"Tuning complete. Best score: {result.best_score:.4f} "
                f"(seed best {result.best_seed.score:.4f}, improvement {result.improvement:.4f})"
            )

            if self.tracker is not None:
                self.tracker.log_summary(result.summary())

        return result

    def _seed(
        self,
        dataset: TimeSeriesDataset,
        fold_schedule: FoldSchedule,
        dimension_specs: Sequence[DimensionSpec],
        rng: np.random.Generator,
        initial_candidates: Optional[CandidateSet]
    ) -> CandidateSet:
        if initial_candidates is not None and len(initial_candidates) > 0:
            self.log_info(f"Resuming from {len(initial_candidates)} evaluated candidates")
            return CandidateSet(initial_candidates.rows)

        return self.sampler.seed(self.n_seed, dimension_specs, rng, self.evaluator, dataset, fold_schedule)

    @staticmethod
    def _check_dimensions(candidates: CandidateSet, names: List[str]) -> None:
        for row in candidates:
            missing = [name for name in names if name not in row.params]
            if missing:
                raise ValueError(f"Candidate {dict(row.params)} is missing dimensions {missing}")

    def _track(self, index: int, candidate: Candidate, best_score: float) -> None:
        if self.tracker is not None:
            self.tracker.log_candidate(index, candidate, best_score)
