"""History command - Daily prediction statistics."""

from __future__ import annotations

from dataclasses import asdict

import click

from ..utils import async_command, get_config, print_header, output_json, output_table
from ...storage.history import history_session


@click.command()
@click.option(
    "--days",
    type=int,
    default=7,
    help="Number of most recent evaluation dates.",
)
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite history database (default: from config).",
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
@async_command
async def history(ctx: click.Context, days: int, db_path: str | None, output: str) -> None:
    """Show per-date prediction statistics.

    \b
    Examples:
      python -m edgeoracle history
      python -m edgeoracle history --days 30 --output json
    """
    config = get_config(ctx)

    async with history_session(db_path or config.general.db_path) as store:
        stats = await store.get_daily_stats(days=days)

    if output == "json":
        output_json([asdict(s) for s in stats])
        return

    print_header(f"PREDICTION HISTORY (last {days} dates)")
    if not stats:
        click.echo("No predictions stored.")
        return

    rows = [
        [
            s.date,
            s.total_predictions,
            s.resolved,
            s.correct,
            f"{s.accuracy:.1f}%",
            f"{s.avg_edge * 100:.1f}pp",
            f"{s.avg_stake:.2f}",
        ]
        for s in stats
    ]
    output_table(["Date", "Total", "Resolved", "Correct", "Accuracy", "Avg edge", "Avg stake"], rows)
