"""
Hyperparameter search space definitions.

Two layers:
- ``DimensionSpec`` describes how the seed phase samples one hyperparameter
  (one uniform range, or a stratified mixture of two sub-ranges) and any
  domain limits it must respect.
- ``HyperparameterSpace`` is the bounded box the Bayesian phase searches.
  Its bounds come from the empirical range of the seed sample, widened by
  a margin on each side and clipped to the domain limits.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple
import numpy as np

from ..errors import BoundsError

VALID_KINDS = ('float', 'int')


@dataclass(frozen=True)
class DimensionSpec:
    """Sampling configuration for one hyperparameter."""

    name: str
    kind: str = 'float'
    ranges: Tuple[Tuple[float, float], ...] = ((0.0, 1.0),)
    weights: Optional[Tuple[float, ...]] = None
    floor: Optional[float] = None
    ceiling: Optional[float] = None

    def __post_init__(self) -> None:
        if self.kind not in VALID_KINDS:
            raise ValueError(f"Dimension '{self.name}': kind must be one of {VALID_KINDS}, got '{self.kind}'")

        ranges = tuple((float(lo), float(hi)) for lo, hi in self.ranges)
        if len(ranges) not in (1, 2):
            raise ValueError(f"Dimension '{self.name}': expected one or two sampling ranges, got {len(ranges)}")
        for lo, hi in ranges:
            if lo > hi:
                raise ValueError(f"Dimension '{self.name}': range low {lo} exceeds high {hi}")
            if self.floor is not None and lo < self.floor:
                raise ValueError(f"Dimension '{self.name}': range {lo} below floor {self.floor}")
            if self.ceiling is not None and hi > self.ceiling:
                raise ValueError(f"Dimension '{self.name}': range {hi} above ceiling {self.ceiling}")

        if self.weights is None:
            weights = tuple(1.0 / len(ranges) for _ in ranges)
        else:
            weights = tuple(float(w) for w in self.weights)
            if len(weights) != len(ranges):
                raise ValueError(f"Dimension '{self.name}': {len(weights)} weights for {len(ranges)} ranges")
            if any(w <= 0 for w in weights):
                raise ValueError(f"Dimension '{self.name}': weights must be positive")
            total = sum(weights)
            weights = tuple(w / total for w in weights)

        object.__setattr__(self, 'ranges', ranges)
        object.__setattr__(self, 'weights', weights)

    @classmethod
    def uniform(
        cls,
        name: str,
        low: float,
        high: float,
        kind: str = 'float',
        floor: Optional[float] = None,
        ceiling: Optional[float] = None
    ) -> "DimensionSpec":
        return cls(name=name, kind=kind, ranges=((low, high),), floor=floor, ceiling=ceiling)

    @classmethod
    def mixture(
        cls,
        name: str,
        low_range: Tuple[float, float],
        high_range: Tuple[float, float],
        weights: Tuple[float, float] = (0.5, 0.5),
        kind: str = 'float',
        floor: Optional[float] = None,
        ceiling: Optional[float] = None
    ) -> "DimensionSpec":
        """Bimodal prior: sample both a low and a high sub-range."""
        return cls(name=name, kind=kind, ranges=(tuple(low_range), tuple(high_range)),
                   weights=tuple(weights), floor=floor, ceiling=ceiling)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "DimensionSpec":
        if 'ranges' in config:
            ranges = tuple(tuple(r) for r in config['ranges'])
        else:
            ranges = ((config['low'], config['high']),)
        weights = config.get('weights')
        return cls(
            name=config['name'],
            kind=config.get('kind', 'float'),
            ranges=ranges,
            weights=tuple(weights) if weights is not None else None,
            floor=config.get('floor'),
            ceiling=config.get('ceiling')
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'kind': self.kind,
            'ranges': [list(r) for r in self.ranges],
            'weights': list(self.weights),
            'floor': self.floor,
            'ceiling': self.ceiling
        }

    @property
    def is_mixture(self) -> bool:
        return len(self.ranges) > 1

    @property
    def span(self) -> Tuple[float, float]:
        """Smallest interval covering every sampling range."""
        return min(lo for lo, _ in self.ranges), max(hi for _, hi in self.ranges)


def expand_bounds(
    low: float,
    high: float,
    margin: float = 0.2,
    floor: Optional[float] = None,
    ceiling: Optional[float] = None,
    kind: str = 'float'
) -> Tuple[float, float]:
    """
    Widen ``[low, high]`` by ``margin`` of its width on each side.

    The result is clipped to the domain limits, and shrunk to integral
    endpoints for integer dimensions.

    A sampled range of [0.01, 0.08] with a 0.2 margin widens to roughly
    [-0.004, 0.094], or [0.0, 0.094] with ``floor=0``.
    """
    if margin < 0:
        raise ValueError("margin must be non-negative")
    if low > high:
        raise ValueError(f"low {low} exceeds high {high}")

    width = high - low
    lo = low - margin * width
    hi = high + margin * width

    if floor is not None:
        lo = max(lo, floor)
    if ceiling is not None:
        hi = min(hi, ceiling)

    if kind == 'int':
        lo = float(math.ceil(lo - 1e-9))
        hi = float(math.floor(hi + 1e-9))

    return lo, hi


@dataclass(frozen=True)
class Dimension:
    """One bounded dimension of the search space (inclusive bounds)."""

    name: str
    kind: str
    low: float
    high: float

    def __post_init__(self) -> None:
        if self.kind not in VALID_KINDS:
            raise ValueError(f"Dimension '{self.name}': kind must be one of {VALID_KINDS}")
        if self.low > self.high:
            raise ValueError(f"Dimension '{self.name}': low {self.low} exceeds high {self.high}")

    @property
    def width(self) -> float:
        return self.high - self.low

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def materialize(self, value: float) -> Any:
        """Clip into bounds and round integer dimensions to the nearest feasible integer."""
        value = min(max(float(value), self.low), self.high)
        if self.kind == 'int':
            return int(min(max(round(value), math.ceil(self.low)), math.floor(self.high)))
        return value


class HyperparameterSpace:
    """Ordered, bounded box of hyperparameter dimensions."""

    def __init__(self, dimensions: Sequence[Dimension]) -> None:
        names = [d.name for d in dimensions]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate dimension names: {names}")
        self.dimensions: Tuple[Dimension, ...] = tuple(dimensions)

    @classmethod
    def from_candidates(
        cls,
        param_rows: Iterable[Mapping[str, Any]],
        specs: Sequence[DimensionSpec],
        margin: float = 0.2
    ) -> "HyperparameterSpace":
        """
        Derive bounds from the empirical range of sampled candidates.

        A dimension whose sample has zero width falls back to the full
        sampling range of its DimensionSpec.

        Args:
            param_rows: Hyperparameter vectors of the seed sample
            specs: Sampling specs (kind and domain limits per dimension)
            margin: Fraction of the empirical width added on each side

        Returns:
            Hyperparameter space
        """
        rows = list(param_rows)
        if not rows:
            raise ValueError("Cannot derive a search space from an empty sample")

        dimensions = []
        for spec in specs:
            values = [float(row[spec.name]) for row in rows]
            low, high = min(values), max(values)
            if high == low:
                low, high = min(low, spec.span[0]), max(high, spec.span[1])
            lo, hi = expand_bounds(low, high, margin=margin, floor=spec.floor,
                                   ceiling=spec.ceiling, kind=spec.kind)
            dimensions.append(Dimension(spec.name, spec.kind, lo, hi))

        return cls(dimensions)

    @property
    def names(self) -> List[str]:
        return [d.name for d in self.dimensions]

    @property
    def bounds(self) -> np.ndarray:
        """Array of shape (n_dims, 2) with [low, high] rows."""
        return np.array([[d.low, d.high] for d in self.dimensions], dtype=float)

    def __len__(self) -> int:
        return len(self.dimensions)

    def __iter__(self) -> Iterator[Dimension]:
        return iter(self.dimensions)

    def __getitem__(self, name: str) -> Dimension:
        for dim in self.dimensions:
            if dim.name == name:
                return dim
        raise KeyError(name)

    def to_array(self, params: Mapping[str, Any]) -> np.ndarray:
        return np.array([float(params[d.name]) for d in self.dimensions], dtype=float)

    def to_params(self, x: Sequence[float]) -> Dict[str, Any]:
        """Materialize a point: clip to bounds and round integer dimensions."""
        return {d.name: d.materialize(v) for d, v in zip(self.dimensions, x)}

    def to_unit(self, X: np.ndarray) -> np.ndarray:
        """Scale points to the unit cube (zero-width dimensions map to 0)."""
        X = np.atleast_2d(np.asarray(X, dtype=float))
        bounds = self.bounds
        width = bounds[:, 1] - bounds[:, 0]
        safe = np.where(width > 0, width, 1.0)
        return np.where(width > 0, (X - bounds[:, 0]) / safe, 0.0)

    def from_unit(self, U: np.ndarray) -> np.ndarray:
        U = np.atleast_2d(np.asarray(U, dtype=float))
        bounds = self.bounds
        return bounds[:, 0] + U * (bounds[:, 1] - bounds[:, 0])

    def contains(self, params: Mapping[str, Any]) -> bool:
        return all(d.contains(float(params[d.name])) for d in self.dimensions)

    def validate(self, params: Mapping[str, Any]) -> None:
        """
        Raises:
            BoundsError: If any dimension lies outside its bounds
        """
        for dim in self.dimensions:
            value = float(params[dim.name])
            if not dim.contains(value):
                raise BoundsError(dim.name, value, dim.low, dim.high)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {d.name: {'kind': d.kind, 'low': d.low, 'high': d.high} for d in self.dimensions}

    def __repr__(self) -> str:
        dims = ", ".join(f"{d.name}[{d.kind}]=[{d.low:.4g}, {d.high:.4g}]" for d in self.dimensions)
        return f"HyperparameterSpace({dims})"
