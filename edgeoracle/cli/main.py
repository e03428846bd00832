"""Edge Oracle - Unified CLI.

Usage:
    python -m edgeoracle --help
    python -m edgeoracle evaluate --limit 50
    python -m edgeoracle resolve
    python -m edgeoracle backtest --output json
"""

from __future__ import annotations

import click

from ..core.config import load_config
from ..core.exceptions import ConfigError
from ..core.utils import setup_logging


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (default: from config).",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Set logging format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to JSON config (default: configs/default.json).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_format: str, config_path: str | None) -> None:
    """Edge Oracle - Model-vs-Market Forecast Toolkit.

    Compares a language model's probability estimates against
    prediction-market prices, sizes stakes with guarded Kelly,
    and scores the predictions once markets settle.

    \b
    Examples:
      python -m edgeoracle evaluate --limit 50
      python -m edgeoracle resolve
      python -m edgeoracle backtest --since 2026-01-01
      python -m edgeoracle history --days 14
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["log_format"] = log_format
    setup_logging(level=log_level or config.general.log_level, log_format=log_format)


# Import and register commands
from .commands import backtest, evaluate, history, resolve

cli.add_command(evaluate.evaluate)
cli.add_command(resolve.resolve)
cli.add_command(backtest.backtest)
cli.add_command(history.history)


if __name__ == "__main__":
    cli()
