"""Resolve command - Score pending predictions against settlements."""

from __future__ import annotations

import click

from ..utils import async_command, get_config, print_header, output_table
from ...adapters.gamma import GammaClient
from ...analysis.resolution_tracker import ResolutionTracker
from ...analysis.returns import ReturnModel
from ...storage.history import history_session


@click.command()
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite history database (default: from config).",
)
@click.pass_context
@async_command
async def resolve(ctx: click.Context, db_path: str | None) -> None:
    """Resolve pending predictions whose markets have settled.

    Each prediction is resolved once; later settlement corrections
    are not applied.

    \b
    Examples:
      python -m edgeoracle resolve
      python -m edgeoracle resolve --db-path data/other.db
    """
    config = get_config(ctx)

    async with history_session(db_path or config.general.db_path) as store:
        async with GammaClient(config.gamma) as gamma:
            tracker = ResolutionTracker(store, gamma, return_model=ReturnModel(config.returns))
            resolved = await tracker.resolve_pending()

    print_header("RESOLUTION CHECK")
    if not resolved:
        click.echo("No predictions resolved.")
        return

    rows = [
        [
            p.date,
            p.title[:40] or p.market_id,
            p.predicted_outcome[:15],
            p.winning_label[:15],
            "WON" if p.was_correct else "LOST",
            f"{p.realized_return:+.3f}",
        ]
        for p in resolved
    ]
    output_table(["Date", "Market", "Pick", "Winner", "Result", "Return"], rows)
    click.echo(f"\nResolved {len(resolved)} predictions.")
