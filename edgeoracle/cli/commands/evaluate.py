"""Evaluate command - Price active markets against the model."""

from __future__ import annotations

import click

from ..utils import (
    async_command,
    format_edge,
    format_price,
    get_config,
    print_header,
    print_subheader,
    output_json,
    output_table,
)
from ...adapters.gamma import GammaClient
from ...adapters.openrouter import OpenRouterClient
from ...core.cache import AnalysisCache
from ...core.config import Credentials
from ...core.rate_limiter import SlidingWindowRateLimiter
from ...core.utils import today_key
from ...pipeline.evaluator import MarketEvaluator, fetch_snapshots, screen_high_edge
from ...storage.history import history_session


@click.command()
@click.option(
    "--limit",
    type=int,
    default=None,
    help="Maximum number of events to fetch (default: from config).",
)
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite history database (default: from config).",
)
@click.option(
    "--date",
    "date_key",
    default=None,
    help="Evaluation date key YYYY-MM-DD (default: today, UTC).",
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Do not store recommendations.",
)
@click.pass_context
@async_command
async def evaluate(
    ctx: click.Context,
    limit: int | None,
    db_path: str | None,
    date_key: str | None,
    output: str,
    dry_run: bool,
) -> None:
    """Evaluate active markets and store stake recommendations.

    Fetches the highest-volume active events from Gamma, asks the
    model for a probability on each and sizes a stake with guarded
    Kelly. High-edge markets are listed as alerts.

    \b
    Examples:
      python -m edgeoracle evaluate
      python -m edgeoracle evaluate --limit 20 --dry-run
      python -m edgeoracle evaluate --output json
    """
    config = get_config(ctx)
    creds = Credentials.from_env()
    if not creds.has_inference:
        raise click.ClickException("OPENROUTER_API_KEY is not set.")

    date_key = date_key or today_key()
    cache = AnalysisCache.from_config(config.cache)
    limiter = SlidingWindowRateLimiter.from_config(config.rate_limit)

    async with GammaClient(config.gamma) as gamma:
        snapshots = await fetch_snapshots(gamma, limit or config.gamma.event_limit, cache)

    if not snapshots:
        click.echo("No active markets found.")
        return

    async with OpenRouterClient(creds.openrouter_api_key, config.inference) as model:
        evaluator = MarketEvaluator(
            inference=model,
            staking=config.staking,
            batch=config.batch,
            cache=cache,
            limiter=limiter,
        )
        result = await evaluator.evaluate(snapshots, date=date_key)

    stored = 0
    if not dry_run and result.recommendations:
        async with history_session(db_path or config.general.db_path) as store:
            stored = await store.save_recommendations(result.recommendations)

    alerts = screen_high_edge(result.recommendations, config.general.high_edge_threshold)

    if output == "json":
        output_json({
            "date": date_key,
            "stored": stored,
            "recommendations": [r.to_dict() for r in result.recommendations],
            "failures": [{"market_id": f.market_id, "error": f.error} for f in result.failures],
            "alerts": [a.recommendation.market_id for a in alerts],
        })
        return

    print_header(f"MARKET EVALUATION - {date_key}")
    rows = [
        [
            rec.title[:40] or rec.market_id,
            rec.predicted_outcome[:15],
            format_price(rec.predicted_probability),
            format_price(rec.market_side_probability),
            format_edge(rec.edge),
            f"{rec.stake_fraction:.2f}",
        ]
        for rec in result.recommendations
    ]
    output_table(["Market", "Pick", "Model", "Market", "Edge", "Stake"], rows)

    if alerts:
        print_subheader(f"HIGH-EDGE ALERTS ({len(alerts)})")
        for alert in alerts:
            marker = "HOT " if alert.is_hot else ""
            rec = alert.recommendation
            click.echo(f"  {marker}{rec.title[:50]} -> {rec.predicted_outcome} ({format_edge(alert.edge)})")

    click.echo(
        f"\nEvaluated {result.success_count}, failed {result.failure_count}, "
        f"stored {stored}{' (dry run)' if dry_run else ''}."
    )
