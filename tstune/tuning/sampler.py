"""
Random grid sampling for the seed phase.

Each dimension is drawn independently from its ``DimensionSpec``: a single
uniform range, or a stratified mixture of two uniform sub-ranges where each
sub-range receives a share of the draws proportional to its weight and the
combined draws are shuffled. All randomness comes from the generator passed
in, so a seeded generator reproduces the same candidates.
"""

import math
from typing import Any, Dict, List, Optional, Sequence, Union
import numpy as np
from tqdm import tqdm

from ..data.dataset import TimeSeriesDataset
from ..evaluation.folds import FoldSchedule
from ..evaluation.rolling_origin import RollingOriginEvaluator
from ..utils.logging import LoggingMixin
from .candidates import CandidateSet, SEED_PHASE
from .search_space import DimensionSpec


def as_generator(rng: Optional[Union[int, np.random.Generator]]) -> np.random.Generator:
    """Accept a seed or a generator."""
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def allocate_draws(n: int, weights: Sequence[float]) -> List[int]:
    """Split ``n`` draws across sub-ranges by weight (largest remainder)."""
    raw = [n * w for w in weights]
    counts = [int(math.floor(r)) for r in raw]
    remainders = sorted(range(len(raw)), key=lambda i: (-(raw[i] - counts[i]), i))
    for i in remainders[:n - sum(counts)]:
        counts[i] += 1
    return counts


class RandomGridSampler(LoggingMixin):
    """Draws and evaluates the initial candidate pool."""

    def __init__(self, show_progress: bool = False) -> None:
        self.show_progress = show_progress

    def sample(
        self,
        n: int,
        dimension_specs: Sequence[DimensionSpec],
        rng: Union[int, np.random.Generator, None]
    ) -> List[Dict[str, Any]]:
        """
        Draw ``n`` unevaluated hyperparameter vectors.

        Args:
            n: Number of candidates
            dimension_specs: Sampling spec per dimension
            rng: Generator (or seed) supplying all randomness

        Returns:
            List of hyperparameter dicts in draw order
        """
        if n < 1:
            raise ValueError("n must be at least 1")
        if not dimension_specs:
            raise ValueError("At least one dimension spec is required")

        rng = as_generator(rng)
        columns = {spec.name: self._draw_dimension(spec, n, rng) for spec in dimension_specs}
        return [{spec.name: columns[spec.name][i] for spec in dimension_specs} for i in range(n)]

    def _draw_dimension(
        self,
        spec: DimensionSpec,
        n: int,
        rng: np.random.Generator
    ) -> List[Any]:
        draws = []
        for (low, high), count in zip(spec.ranges, allocate_draws(n, spec.weights)):
            if spec.kind == 'int':
                lo, hi = math.ceil(low), math.floor(high)
                if lo > hi:
                    raise ValueError(f"Dimension '{spec.name}': no integer in range [{low}, {high}]")
                draws.append(rng.integers(lo, hi, endpoint=True, size=count))
            else:
                draws.append(rng.uniform(low, high, size=count))

        values = np.concatenate(draws)
        if spec.is_mixture:
            values = rng.permutation(values)

        if spec.kind == 'int':
            return [int(v) for v in values]
        return [float(v) for v in values]

    def seed(
        self,
        n: int,
        dimension_specs: Sequence[DimensionSpec],
        rng: Union[int, np.random.Generator, None],
        evaluator: RollingOriginEvaluator,
        dataset: TimeSeriesDataset,
        fold_schedule: FoldSchedule
    ) -> CandidateSet:
        """
        Draw ``n`` candidates and evaluate each one.

        A row joins the candidate set only after its score is known.

        Returns:
            Candidate set of seed-phase rows in draw order
        """
        rows = self.sample(n, dimension_specs, rng)
        candidate_set = CandidateSet()

        self.log_info(f"Evaluating {n} seed candidates over {len(fold_schedule)} folds")

        for params in tqdm(rows, desc="Seeding", disable=not self.show_progress):
            candidate = evaluator.score_candidate(params, dataset, fold_schedule, phase=SEED_PHASE)
            candidate_set.append(candidate)

        n_unscorable = sum(1 for row in candidate_set if not row.scorable)
        if n_unscorable:
            self.log_warning(f"{n_unscorable}/{n} seed candidates were unscorable")

        best = candidate_set.best()
        self.log_info(f"Seed phase complete. Best score: {best.score:.4f}")
        return candidate_set
