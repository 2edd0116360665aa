"""
Configuration dataclasses for a tuning run.

Defaults live here; a JSON file can override any subset of fields, and CLI
options override the file.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .tuning.search_space import DimensionSpec


@dataclass
class EvaluationConfig:
    n_folds: int = 8
    min_train_size: int = 4
    freq: Optional[str] = None  # pandas offset alias; inferred from the data when None

    def __post_init__(self) -> None:
        if self.n_folds < 1:
            raise ValueError("evaluation.n_folds must be at least 1")
        if self.min_train_size < 1:
            raise ValueError("evaluation.min_train_size must be at least 1")


@dataclass
class SamplerConfig:
    n_candidates: int = 20
    # Dimension spec dicts; the model's default search space is used when empty
    dimensions: List[Dict[str, Any]] = field(default_factory=list)
    show_progress: bool = False

    def __post_init__(self) -> None:
        if self.n_candidates < 1:
            raise ValueError("sampler.n_candidates must be at least 1")


@dataclass
class SurrogateConfig:
    length_scale: float = 0.3
    signal_variance: float = 1.0
    noise: float = 1e-4
    optimize: bool = True


@dataclass
class AcquisitionConfig:
    kappa: float = 0.1
    n_samples: int = 2000
    n_refine: int = 5

    def __post_init__(self) -> None:
        if self.kappa < 0:
            raise ValueError("acquisition.kappa must be non-negative")


@dataclass
class TuningConfig:
    model: str = "smoothing"
    n_iterations: int = 20
    margin: float = 0.2
    random_state: int = 42
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    surrogate: SurrogateConfig = field(default_factory=SurrogateConfig)
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    # MLflow tracking is off unless an experiment name is set
    mlflow_experiment_name: Optional[str] = None
    mlflow_tracking_uri: Optional[str] = None

    def __post_init__(self) -> None:
        if self.n_iterations < 0:
            raise ValueError("n_iterations must be non-negative")
        if self.margin < 0:
            raise ValueError("margin must be non-negative")

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "TuningConfig":
        """Build a config from nested dicts, rejecting unknown keys."""
        sections = {
            'evaluation': EvaluationConfig,
            'sampler': SamplerConfig,
            'surrogate': SurrogateConfig,
            'acquisition': AcquisitionConfig,
        }
        known = {f.name for f in fields(cls)}
        unknown = set(config) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        kwargs = {}
        for key, value in config.items():
            if key in sections:
                section_cls = sections[key]
                section_known = {f.name for f in fields(section_cls)}
                section_unknown = set(value) - section_known
                if section_unknown:
                    raise ValueError(f"Unknown {key} config keys: {sorted(section_unknown)}")
                kwargs[key] = section_cls(**value)
            else:
                kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def from_json(cls, filepath: Union[str, Path]) -> "TuningConfig":
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def dimension_specs(self, default: List[DimensionSpec]) -> List[DimensionSpec]:
        """Configured dimension specs, or ``default`` when none are configured."""
        if not self.sampler.dimensions:
            return list(default)
        return [DimensionSpec.from_dict(d) for d in self.sampler.dimensions]
