"""
Upper-confidence-bound acquisition and its bounded maximization.

The acquisition ``a(x) = mu(x) + kappa * sigma(x)`` is maximized over the
search space in the unit cube: a dense uniform sample (plus the already
observed points) locates promising regions, and L-BFGS-B refines the best
few of them within the box. The winning point is mapped back to the
original scale, integer dimensions are rounded, and the result is checked
against the space bounds.
"""

from typing import Any, Dict, Optional, Union
import numpy as np
from scipy.optimize import minimize

from ..utils.logging import LoggingMixin
from .gaussian_process import SurrogateModel
from .sampler import as_generator
from .search_space import HyperparameterSpace


def upper_confidence_bound(mu: np.ndarray, sigma: np.ndarray, kappa: float) -> np.ndarray:
    return mu + kappa * sigma


class AcquisitionOptimizer(LoggingMixin):
    """
    Proposes the next candidate by maximizing UCB against a surrogate.

    Ties are broken in favour of the point found first: random samples in
    draw order, then refinements in rank order of their starting points.
    """

    def __init__(self, n_samples: int = 2000, n_refine: int = 5, random_state: int = 0) -> None:
        """
        Initialize optimizer.

        Args:
            n_samples: Uniform samples drawn per proposal
            n_refine: Number of best samples refined with L-BFGS-B
            random_state: Seed used when no generator is passed to ``propose``
        """
        if n_samples < 1:
            raise ValueError("n_samples must be at least 1")
        if n_refine < 0:
            raise ValueError("n_refine must be non-negative")
        self.n_samples = n_samples
        self.n_refine = n_refine
        self.random_state = random_state
        self.last_proposal: Dict[str, float] = {}

    def propose(
        self,
        surrogate: SurrogateModel,
        space: HyperparameterSpace,
        kappa: float = 0.1,
        rng: Optional[Union[int, np.random.Generator]] = None
    ) -> Dict[str, Any]:
        """
        Find the candidate maximizing the UCB acquisition.

        Args:
            surrogate: Fitted surrogate model
            space: Bounded search space
            kappa: Exploration weight (0 is pure exploitation)
            rng: Generator for the dense sample; defaults to ``random_state``

        Returns:
            Hyperparameter dict inside the space bounds

        Raises:
            BoundsError: If the materialized candidate leaves the space
        """
        if kappa < 0:
            raise ValueError("kappa must be non-negative")

        rng = as_generator(self.random_state if rng is None else rng)
        n_dims = len(space)

        def acquisition(U: np.ndarray) -> np.ndarray:
            mu, sigma = surrogate.query_unit(U)
            return upper_confidence_bound(mu, sigma, kappa)

        U = rng.uniform(size=(self.n_samples, n_dims))
        U = np.vstack([U, np.clip(surrogate.X_train, 0.0, 1.0)])
        values = acquisition(U)

        ranked = np.argsort(-values, kind='stable')
        best_u = U[ranked[0]]
        best_value = float(values[ranked[0]])

        for idx in ranked[:self.n_refine]:
            result = minimize(
                lambda u: -float(acquisition(u)[0]),
                U[idx],
                method='L-BFGS-B',
                bounds=[(0.0, 1.0)] * n_dims
            )
            value = -float(result.fun)
            if np.isfinite(value) and value > best_value:
                best_value = value
                best_u = np.clip(result.x, 0.0, 1.0)

        params = space.to_params(space.from_unit(best_u)[0])
        space.validate(params)

        mu, sigma = surrogate.query_params(params)
        self.last_proposal = {'mu': mu, 'sigma': sigma, 'acquisition': mu + kappa * sigma}
        self.log_debug(f"Proposed {params}: mu={mu:.4f}, sigma={sigma:.4f}, ucb={mu + kappa * sigma:.4f}")

        return params
