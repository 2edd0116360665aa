"""
Tests for tuning configuration and logging setup.
"""

import json
import logging
import pytest

from tstune.config import AcquisitionConfig, TuningConfig
from tstune.models.smoothing_model import SmoothingForecastModel
from tstune.tuning.search_space import DimensionSpec
from tstune.utils.logging import LoggingMixin, get_logger, setup_logging


class TestTuningConfig:
    """Test config defaults, parsing and validation."""

    def test_defaults(self):
        config = TuningConfig()

        assert config.model == "smoothing"
        assert config.acquisition.kappa == 0.1
        assert config.margin == 0.2
        assert config.mlflow_experiment_name is None

    def test_from_dict(self):
        config = TuningConfig.from_dict({
            'model': 'lgbm',
            'n_iterations': 5,
            'evaluation': {'n_folds': 3},
            'acquisition': {'kappa': 1.5},
        })

        assert config.model == 'lgbm'
        assert config.n_iterations == 5
        assert config.evaluation.n_folds == 3
        assert config.evaluation.min_train_size == 4
        assert config.acquisition.kappa == 1.5

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="Unknown config keys"):
            TuningConfig.from_dict({'n_trials': 10})

        with pytest.raises(ValueError, match="Unknown sampler config keys"):
            TuningConfig.from_dict({'sampler': {'n_draws': 10}})

    def test_validation(self):
        with pytest.raises(ValueError):
            AcquisitionConfig(kappa=-0.1)
        with pytest.raises(ValueError):
            TuningConfig.from_dict({'evaluation': {'n_folds': 0}})
        with pytest.raises(ValueError):
            TuningConfig(margin=-1.0)

    def test_round_trip(self, tmp_path):
        config = TuningConfig.from_dict({'n_iterations': 7, 'sampler': {'n_candidates': 9}})
        path = tmp_path / "config.json"
        path.write_text(json.dumps(config.to_dict()))

        assert TuningConfig.from_json(path) == config

    def test_dimension_specs(self):
        default = SmoothingForecastModel.default_search_space()

        assert TuningConfig().dimension_specs(default) == default

        config = TuningConfig.from_dict({
            'sampler': {'dimensions': [{'name': 'alpha', 'low': 0.1, 'high': 0.9, 'floor': 0.0}]}
        })
        specs = config.dimension_specs(default)

        assert specs == [DimensionSpec.uniform('alpha', 0.1, 0.9, floor=0.0)]


class TestLogging:
    """Test logging setup and the logging mixin."""

    def test_setup_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "tstune.log"

        logger = setup_logging(log_level="DEBUG", log_file=str(log_file))
        get_logger("tests").debug("hello")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert "hello" in log_file.read_text()

        setup_logging(log_level="WARNING")

    def test_get_logger_namespace(self):
        assert get_logger("tuning").name == "tstune.tuning"

    def test_mixin_logger_name(self):
        class Widget(LoggingMixin):
            pass

        assert Widget().logger.name.startswith("tstune")
