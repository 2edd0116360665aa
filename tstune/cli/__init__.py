"""
Main CLI entry point for tstune.

Combines all command modules into a single CLI interface.
"""

import typer
from typing import Optional

from ..utils.logging import setup_logging

# Create main CLI app
app = typer.Typer(
    name="tstune",
    help="Bayesian hyperparameter tuning for time-series forecasters",
    add_completion=False
)

from .tune import (
    tune_hyperparameters,
    evaluate_params
)

app.command("tune")(tune_hyperparameters)
app.command("evaluate")(evaluate_params)


@app.command()
def version():
    """Show version information."""
    from .. import __version__
    typer.echo(f"tstune v{__version__}")


@app.command()
def info():
    """Show available models and their default search spaces."""
    from ..models.registry import MODEL_REGISTRY

    typer.echo("tstune - Forecasting hyperparameter tuning")
    typer.echo("=" * 40)
    typer.echo("Components:")
    typer.echo("  - Rolling-origin cross-validation (MAPE)")
    typer.echo("  - Random grid seeding")
    typer.echo("  - Gaussian-process surrogate")
    typer.echo("  - UCB acquisition")
    typer.echo("  - MLflow experiment tracking")
    typer.echo()
    typer.echo("Models:")
    for name, model_class in sorted(MODEL_REGISTRY.items()):
        typer.echo(f"  {name}")
        for spec in model_class.default_search_space():
            ranges = ", ".join(f"[{low:g}, {high:g}]" for low, high in spec.ranges)
            typer.echo(f"    {spec.name} ({spec.kind}): {ranges}")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log to file")
):
    """
    tstune

    Tunes forecasting model hyperparameters by seeding a random grid and
    running a Gaussian-process UCB search scored by rolling-origin MAPE.
    """
    if debug:
        log_level = "DEBUG"
    elif verbose:
        log_level = "INFO"
    else:
        log_level = "WARNING"

    setup_logging(log_level=log_level, log_file=log_file)


if __name__ == "__main__":
    app()
