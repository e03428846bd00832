"""Backtest command - Aggregate scored predictions."""

from __future__ import annotations

import click

from ..utils import (
    async_command,
    get_config,
    print_header,
    print_subheader,
    print_table_row,
    output_json,
    output_table,
)
from ...analysis.backtest import aggregate
from ...analysis.calibration import calibration_buckets
from ...storage.history import history_session


@click.command()
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite history database (default: from config).",
)
@click.option(
    "--since",
    default=None,
    help="Only include predictions dated on or after YYYY-MM-DD.",
)
@click.option(
    "--bucket-width",
    type=float,
    default=0.1,
    help="Calibration bucket width.",
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
@async_command
async def backtest(
    ctx: click.Context,
    db_path: str | None,
    since: str | None,
    bucket_width: float,
    output: str,
) -> None:
    """Summarize the track record of resolved predictions.

    Reports accuracy, Brier score, compounded ROI, win rate and
    drawdown, plus a calibration table.

    \b
    Examples:
      python -m edgeoracle backtest
      python -m edgeoracle backtest --since 2026-01-01 --output json
    """
    config = get_config(ctx)

    async with history_session(db_path or config.general.db_path) as store:
        scored = await store.get_scored(since=since)

    summary = aggregate(scored)
    buckets = calibration_buckets(scored, bucket_width=bucket_width)

    if output == "json":
        output_json({
            "summary": summary.to_dict(),
            "calibration": [
                {
                    "range": [b.prob_low, b.prob_high],
                    "avg_forecast": b.avg_forecast,
                    "actual_rate": b.actual_rate,
                    "sample_size": b.sample_size,
                    "significant": b.significant,
                }
                for b in buckets
            ],
        })
        return

    print_header("BACKTEST SUMMARY")
    if not summary.total:
        click.echo("No resolved predictions.")
        return

    print_table_row("Predictions", str(summary.total))
    print_table_row("Accuracy", f"{summary.accuracy:.1f}%")
    print_table_row("Win rate", f"{summary.win_rate:.1f}%")
    print_table_row("Brier score (avg)", f"{summary.avg_brier_score:.4f}")
    print_table_row("Compounded ROI", f"{summary.compounded_roi:+.2%}")
    print_table_row("Max drawdown", f"{summary.max_drawdown:.2%}")

    if buckets:
        print_subheader("CALIBRATION")
        rows = [
            [
                f"{b.prob_low:.0%}-{b.prob_high:.0%}",
                f"{b.avg_forecast:.1%}",
                f"{b.actual_rate:.1%}",
                b.sample_size,
                "*" if b.significant else "",
            ]
            for b in buckets
        ]
        output_table(["Bucket", "Forecast", "Actual", "N", "Sig"], rows)

    print_subheader("PREDICTIONS PER DATE")
    output_table(["Date", "Count"], [[p.date, p.count] for p in summary.time_series])
