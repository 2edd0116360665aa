"""
Tests for the tstune command-line interface.
"""

import json
import pytest
import pandas as pd
import numpy as np
from typer.testing import CliRunner

from tstune import __version__
from tstune.cli import app
from tstune.tuning.bayes_loop import TuningResult
from tstune.tuning.candidates import CandidateSet


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def counts_csv(tmp_path):
    """Write thirty weekly counts to a CSV file."""
    rng = np.random.default_rng(11)
    periods = pd.date_range("2023-01-02", periods=30, freq="W-MON")
    counts = np.round(200 + 3.0 * np.arange(30) + rng.normal(0, 5, 30))
    path = tmp_path / "counts.csv"
    pd.DataFrame({'period': periods.strftime("%Y-%m-%d"), 'count': counts}).to_csv(path, index=False)
    return path


class TestTuneCommand:
    """Test the tune command end to end."""

    def test_tune_writes_artifacts(self, runner, counts_csv, tmp_path):
        output_dir = tmp_path / "results"

        result = runner.invoke(app, [
            "tune", str(counts_csv),
            "--n-seed", "4",
            "--n-iterations", "2",
            "--n-folds", "4",
            "--output-dir", str(output_dir),
        ])

        assert result.exit_code == 0, result.output
        assert "Hyperparameter tuning completed" in result.output

        candidates = CandidateSet.read_csv(output_dir / "candidates.csv")
        best_params = json.loads((output_dir / "best_params.json").read_text())
        summary = json.loads((output_dir / "tuning_results.json").read_text())
        saved = TuningResult.load(output_dir / "tuning_result.pkl")

        assert len(candidates) == 6
        assert set(best_params) == {'alpha', 'beta'}
        assert summary['model'] == 'smoothing'
        assert summary['n_candidates'] == 6
        assert summary['config']['evaluation']['n_folds'] == 4
        assert saved.best_params == pytest.approx(best_params)

    def test_tune_with_config_file(self, runner, counts_csv, tmp_path):
        """Test that CLI options override config file values."""
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            'n_iterations': 1,
            'evaluation': {'n_folds': 3},
            'sampler': {
                'n_candidates': 3,
                'dimensions': [{'name': 'alpha', 'low': 0.2, 'high': 0.8, 'floor': 0.01, 'ceiling': 1.0}],
            },
        }))
        output_dir = tmp_path / "results"

        result = runner.invoke(app, [
            "tune", str(counts_csv),
            "--config", str(config_file),
            "--n-seed", "2",
            "--output-dir", str(output_dir),
        ])

        assert result.exit_code == 0, result.output
        summary = json.loads((output_dir / "tuning_results.json").read_text())
        assert summary['n_candidates'] == 3
        assert set(summary['best_params']) == {'alpha'}

    def test_tune_resume(self, runner, counts_csv, tmp_path):
        first_dir = tmp_path / "first"
        second_dir = tmp_path / "second"
        common = ["--n-folds", "3", "--n-seed", "3", "--n-iterations", "1"]

        first = runner.invoke(app, ["tune", str(counts_csv), "--output-dir", str(first_dir)] + common)
        second = runner.invoke(app, [
            "tune", str(counts_csv),
            "--resume", str(first_dir / "candidates.csv"),
            "--output-dir", str(second_dir),
        ] + common)

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert len(CandidateSet.read_csv(second_dir / "candidates.csv")) == 5

    def test_tune_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["tune", str(tmp_path / "missing.csv")])

        assert result.exit_code == 1

    def test_tune_unknown_model(self, runner, counts_csv, tmp_path):
        result = runner.invoke(app, [
            "tune", str(counts_csv), "--model", "prophet", "--output-dir", str(tmp_path / "out")
        ])

        assert result.exit_code == 1


class TestEvaluateCommand:

    def test_evaluate(self, runner, counts_csv, tmp_path):
        params_file = tmp_path / "params.json"
        params_file.write_text(json.dumps({'alpha': 0.5, 'beta': 0.1}))

        result = runner.invoke(app, ["evaluate", str(counts_csv), str(params_file), "--n-folds", "4"])

        assert result.exit_code == 0, result.output
        assert "MAPE:" in result.output
        assert "Folds scored: 4" in result.output

    def test_evaluate_unscorable(self, runner, counts_csv, tmp_path):
        """Test that an unscorable vector exits with an error."""
        params_file = tmp_path / "params.json"
        params_file.write_text(json.dumps({'alpha': 0.0, 'beta': 0.1}))

        result = runner.invoke(app, ["evaluate", str(counts_csv), str(params_file)])

        assert result.exit_code == 1


class TestInfoCommands:

    def test_version(self, runner):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self, runner):
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        for name in ("naive", "smoothing", "lgbm"):
            assert name in result.output
