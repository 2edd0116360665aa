"""
Gaussian-process surrogate of the cross-validated score.

Regresses score on hyperparameters with a squared-exponential kernel
(one length scale per dimension) over inputs scaled to the unit cube of the
search space. Targets are standardized before fitting. Kernel
hyperparameters are chosen by maximizing the log marginal likelihood, and
the posterior is computed through a Cholesky factorization with jitter
added when the kernel matrix is numerically singular.

Every ``fit`` is a full refit over the candidate set; nothing is carried
between fits.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Tuple
import numpy as np
from scipy.linalg import cho_solve, cholesky, solve_triangular
from scipy.optimize import minimize

from ..utils.logging import LoggingMixin
from .candidates import CandidateSet
from .search_space import HyperparameterSpace


def squared_exponential(
    A: np.ndarray,
    B: np.ndarray,
    length_scales: np.ndarray,
    signal_variance: float
) -> np.ndarray:
    """``s2 * exp(-0.5 * ||(a - b) / l||^2)`` for every pair of rows."""
    A = A / length_scales
    B = B / length_scales
    sq_dist = (
        np.sum(A ** 2, axis=1)[:, None]
        + np.sum(B ** 2, axis=1)[None, :]
        - 2.0 * A @ B.T
    )
    return signal_variance * np.exp(-0.5 * np.maximum(sq_dist, 0.0))


def stable_cholesky(
    K: np.ndarray,
    jitter: float = 1e-10,
    max_tries: int = 8
) -> Tuple[np.ndarray, float]:
    """
    Lower Cholesky factor of ``K``, adding diagonal jitter if needed.

    Returns:
        Tuple of (factor, jitter used)

    Raises:
        numpy.linalg.LinAlgError: If ``K`` stays singular at the largest jitter
    """
    eye = np.eye(len(K))
    current = 0.0
    for attempt in range(max_tries + 1):
        try:
            return cholesky(K + current * eye, lower=True), current
        except np.linalg.LinAlgError:
            current = jitter * (10.0 ** attempt)
    raise np.linalg.LinAlgError(f"Kernel matrix not positive definite with jitter {current:g}")


@dataclass(frozen=True)
class KernelParams:
    length_scales: np.ndarray
    signal_variance: float
    noise: float

    def to_vector(self) -> np.ndarray:
        return np.log(np.concatenate([self.length_scales, [self.signal_variance, self.noise]]))

    @classmethod
    def from_vector(cls, theta: np.ndarray) -> "KernelParams":
        values = np.exp(theta)
        return cls(length_scales=values[:-2], signal_variance=float(values[-2]), noise=float(values[-1]))


class SurrogateModel:
    """Posterior of a fitted Gaussian process."""

    def __init__(
        self,
        space: HyperparameterSpace,
        X_train: np.ndarray,
        chol: np.ndarray,
        alpha: np.ndarray,
        kernel: KernelParams,
        y_mean: float,
        y_std: float,
        log_marginal_likelihood: float
    ) -> None:
        self.space = space
        self.X_train = X_train
        self.chol = chol
        self.alpha = alpha
        self.kernel = kernel
        self.y_mean = y_mean
        self.y_std = y_std
        self.log_marginal_likelihood = log_marginal_likelihood

    def query_unit(self, U: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Posterior mean and standard deviation at unit-cube points."""
        U = np.atleast_2d(np.asarray(U, dtype=float))
        K_s = squared_exponential(U, self.X_train, self.kernel.length_scales, self.kernel.signal_variance)
        mean = K_s @ self.alpha

        v = solve_triangular(self.chol, K_s.T, lower=True)
        var = self.kernel.signal_variance - np.sum(v ** 2, axis=0)
        std = np.sqrt(np.maximum(var, 0.0))

        return mean * self.y_std + self.y_mean, std * self.y_std

    def query(self, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Posterior mean and standard deviation of the score.

        Args:
            X: Points in the original hyperparameter scale, shape (n, d) or (d,)

        Returns:
            Tuple of (mu, sigma) arrays of length n
        """
        return self.query_unit(self.space.to_unit(X))

    def query_params(self, params: Mapping[str, Any]) -> Tuple[float, float]:
        mu, sigma = self.query(self.space.to_array(params))
        return float(mu[0]), float(sigma[0])


class GaussianProcessSurrogate(LoggingMixin):
    """
    Builds a ``SurrogateModel`` from a candidate set.

    Unscorable rows enter the fit at a finite penalty just below the worst
    real score so the sentinel value cannot swamp target standardization.
    """

    def __init__(
        self,
        length_scale: float = 0.3,
        signal_variance: float = 1.0,
        noise: float = 1e-4,
        optimize: bool = True,
        length_scale_bounds: Tuple[float, float] = (1e-2, 10.0),
        signal_variance_bounds: Tuple[float, float] = (1e-2, 1e2),
        noise_bounds: Tuple[float, float] = (1e-6, 1.0),
        restarts: Sequence[float] = (0.1, 1.0),
        jitter: float = 1e-10
    ) -> None:
        """
        Initialize surrogate builder.

        Args:
            length_scale: Initial (or fixed) length scale in unit-cube units
            signal_variance: Initial (or fixed) kernel amplitude on standardized targets
            noise: Initial (or fixed) observation noise variance
            optimize: Estimate kernel hyperparameters by marginal likelihood
            length_scale_bounds: Search bounds for length scales
            signal_variance_bounds: Search bounds for the amplitude
            noise_bounds: Search bounds for the noise variance
            restarts: Extra initial length scales tried by the optimizer
            jitter: Smallest diagonal jitter tried on Cholesky failure
        """
        if length_scale <= 0 or signal_variance <= 0 or noise <= 0:
            raise ValueError("length_scale, signal_variance and noise must be positive")
        self.length_scale = length_scale
        self.signal_variance = signal_variance
        self.noise = noise
        self.optimize = optimize
        self.length_scale_bounds = length_scale_bounds
        self.signal_variance_bounds = signal_variance_bounds
        self.noise_bounds = noise_bounds
        self.restarts = tuple(restarts)
        self.jitter = jitter

    def fit(self, candidate_set: CandidateSet, space: HyperparameterSpace) -> SurrogateModel:
        """
        Fit the surrogate on every row observed so far.

        Args:
            candidate_set: Evaluated candidates (seed and optimization phase)
            space: Search space used to scale inputs

        Returns:
            Fitted surrogate
        """
        if len(candidate_set) == 0:
            raise ValueError("Cannot fit a surrogate on an empty candidate set")

        X = space.to_unit(np.array([space.to_array(row.params) for row in candidate_set]))
        y_raw = self._targets(candidate_set)

        y_mean = float(np.mean(y_raw))
        y_std = float(np.std(y_raw))
        if y_std < 1e-12:
            y_std = 1.0
        y = (y_raw - y_mean) / y_std

        initial = KernelParams(
            length_scales=np.full(X.shape[1], self.length_scale),
            signal_variance=self.signal_variance,
            noise=self.noise
        )
        kernel = self._optimize_kernel(X, y, initial) if self.optimize else initial

        chol, alpha, lml = self._posterior(X, y, kernel)

        self.log_debug(
            f"Fitted GP on {len(y)} rows: length_scales={np.round(kernel.length_scales, 4).tolist()}, "
            f"signal_variance={kernel.signal_variance:.4g}, noise={kernel.noise:.3g}, lml={lml:.3f}"
        )

        return SurrogateModel(
            space=space,
            X_train=X,
            chol=chol,
            alpha=alpha,
            kernel=kernel,
            y_mean=y_mean,
            y_std=y_std,
            log_marginal_likelihood=lml
        )

    @staticmethod
    def _targets(candidate_set: CandidateSet) -> np.ndarray:
        """Scores with unscorable rows mapped to a finite penalty."""
        real = np.array([row.score for row in candidate_set if row.scorable], dtype=float)
        if len(real):
            spread = max(float(np.ptp(real)), 0.1 * abs(float(real.min())), 1e-3)
            penalty = float(real.min()) - spread
        else:
            penalty = 0.0
        return np.array([row.score if row.scorable else penalty for row in candidate_set], dtype=float)

    def _posterior(
        self,
        X: np.ndarray,
        y: np.ndarray,
        kernel: KernelParams
    ) -> Tuple[np.ndarray, np.ndarray, float]:
        K = squared_exponential(X, X, kernel.length_scales, kernel.signal_variance)
        K[np.diag_indices_from(K)] += kernel.noise
        chol, _ = stable_cholesky(K, jitter=self.jitter)
        alpha = cho_solve((chol, True), y)
        lml = (
            -0.5 * float(y @ alpha)
            - float(np.sum(np.log(np.diag(chol))))
            - 0.5 * len(y) * np.log(2.0 * np.pi)
        )
        return chol, alpha, lml

    def _negative_lml(self, theta: np.ndarray, X: np.ndarray, y: np.ndarray) -> float:
        try:
            _, _, lml = self._posterior(X, y, KernelParams.from_vector(theta))
        except np.linalg.LinAlgError:
            return 1e25
        return -lml if np.isfinite(lml) else 1e25

    def _optimize_kernel(self, X: np.ndarray, y: np.ndarray, initial: KernelParams) -> KernelParams:
        """Maximize the log marginal likelihood from a few fixed starting points."""
        n_dims = X.shape[1]
        bounds = (
            [tuple(np.log(self.length_scale_bounds))] * n_dims
            + [tuple(np.log(self.signal_variance_bounds)), tuple(np.log(self.noise_bounds))]
        )

        starts = [initial.to_vector()]
        for scale in self.restarts:
            start = initial.to_vector().copy()
            start[:n_dims] = np.log(scale)
            starts.append(start)

        best_theta = initial.to_vector()
        best_value = self._negative_lml(best_theta, X, y)

        for start in starts:
            start = np.clip(start, [b[0] for b in bounds], [b[1] for b in bounds])
            result = minimize(
                self._negative_lml,
                start,
                args=(X, y),
                method='L-BFGS-B',
                bounds=bounds
            )
            if np.isfinite(result.fun) and result.fun < best_value:
                best_value = float(result.fun)
                best_theta = result.x

        return KernelParams.from_vector(best_theta)
