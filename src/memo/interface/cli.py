"""memo CLI: operator commands for inspecting and maintaining learning progress."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from pydantic import ValidationError

from memo.application.cache.invalidation import CacheInvalidator
from memo.application.config import AppConfig, resolve_config
from memo.application.factory import build_cache_invalidator, get_clock, get_progress_store
from memo.application.stats.aggregator import StatsAggregator
from memo.application.stats.service import StatsService
from memo.consts import VERSION
from memo.domain.errors import InvalidArgumentError, MemoError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="memo: flashcard practice progress and statistics.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage memo configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

T = TypeVar("T")

_LEVELS = {0: logging.WARNING, 1: logging.WARNING, 2: logging.INFO}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def humanize_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        details = "; ".join(err["msg"] for err in error.errors())
        return f"Invalid configuration: {details}"
    if isinstance(error, InvalidArgumentError):
        return f"Invalid argument: {error}"
    if isinstance(error, MemoError):
        return str(error)
    return f"Unexpected error: {error}"


def _config(ctx: typer.Context) -> AppConfig:
    obj = ctx.obj or {}
    return resolve_config({"database_url": obj.get("database_url"), "timezone": obj.get("timezone")})


class _Services:
    """Store-backed services for commands that do not need deck or card providers."""

    def __init__(self, config: AppConfig):
        self.store = get_progress_store(config)
        self.clock = get_clock(config)
        self.invalidator: CacheInvalidator = build_cache_invalidator(config)
        self.stats = StatsService(self.store, self.clock, self.invalidator)
        self.aggregator = StatsAggregator(self.store, self.clock, self.invalidator)


@contextmanager
def _handle_errors():
    """Turn memo and configuration errors into a red message and an exit code."""
    try:
        yield
    except (ValidationError, InvalidArgumentError) as e:
        typer.secho(humanize_error(e), fg="red", err=True)
        raise typer.Exit(2) from e
    except MemoError as e:
        typer.secho(humanize_error(e), fg="red", err=True)
        raise typer.Exit(1) from e


def _run(ctx: typer.Context, call: Callable[[_Services], Awaitable[T]]) -> T:
    with _handle_errors():
        services = _Services(_config(ctx))
        return asyncio.run(call(services))


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    database_url: Annotated[
        str | None, typer.Option("--database-url", help="SQLAlchemy URL, or memory://.")
    ] = None,
    timezone: Annotated[
        str | None, typer.Option("--timezone", help="Timezone that defines 'today'.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for memo."""
    ctx.ensure_object(dict)
    ctx.obj["database_url"] = database_url
    ctx.obj["timezone"] = timezone
    logging.getLogger().setLevel(_LEVELS.get(verbose, logging.DEBUG))


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def version():
    """Print the memo version."""
    typer.echo(VERSION)


@app.command()
def stats(
    ctx: typer.Context,
    deck_ids: Annotated[list[int], typer.Argument(help="Deck ids to summarize.")],
    as_json: Annotated[bool, typer.Option("--json", help="Emit JSON.")] = False,
):
    """Show all-time and today's totals per deck."""
    aggregates = _run(ctx, lambda s: s.stats.get_deck_aggregates(deck_ids))

    if as_json:
        typer.echo(json.dumps({str(k): asdict(v) for k, v in aggregates.items()}, indent=2))
        return

    for deck_id, agg in aggregates.items():
        typer.echo(
            f"Deck {deck_id}: sessions {agg.sessions_all} (today {agg.sessions_today}), "
            f"viewed {agg.viewed_all} (today {agg.viewed_today}), "
            f"correct {agg.correct_all} (today {agg.correct_today}), "
            f"hard {agg.hard_all} (today {agg.hard_today})"
        )


@app.command()
def daily(
    ctx: typer.Context,
    deck_id: Annotated[int, typer.Argument(help="Deck id.")],
):
    """List a deck's daily statistics rows."""
    rows = _run(ctx, lambda s: s.stats.get_daily_stats(deck_id))
    if not rows:
        typer.secho("No statistics recorded.", fg="yellow")
        return
    for row in rows:
        typer.echo(
            f"{row.date.isoformat()}  sessions={row.sessions} viewed={row.viewed} "
            f"correct={row.correct} hard={row.hard} durationMs={row.total_duration_ms} "
            f"answerDelayMs={row.total_answer_delay_ms}"
        )


@app.command()
def known(
    ctx: typer.Context,
    deck_id: Annotated[int, typer.Argument(help="Deck id.")],
):
    """Print the ids of a deck's known cards, one per line."""
    for card_id in sorted(_run(ctx, lambda s: s.stats.get_known_card_ids(deck_id))):
        typer.echo(str(card_id))


@app.command()
def mark(
    ctx: typer.Context,
    deck_id: Annotated[int, typer.Argument(help="Deck id.")],
    card_id: Annotated[int, typer.Argument(help="Card id.")],
    unknown: Annotated[
        bool, typer.Option("--unknown", help="Mark the card unknown instead of known.")
    ] = False,
):
    """Mark a single card known (or unknown)."""
    _run(ctx, lambda s: s.stats.set_card_known(deck_id, card_id, not unknown))
    typer.secho(f"Card {card_id} marked {'unknown' if unknown else 'known'}.", fg="green")


@app.command()
def record(
    ctx: typer.Context,
    deck_id: Annotated[int, typer.Argument(help="Deck id.")],
    viewed: Annotated[int, typer.Option(help="Cards viewed.")],
    correct: Annotated[int, typer.Option(help="Cards answered as known.")] = 0,
    hard: Annotated[int, typer.Option(help="Cards marked hard.")] = 0,
    duration_ms: Annotated[int, typer.Option(help="Session duration in ms.")] = 0,
    delay_ms: Annotated[int, typer.Option(help="Total answer delay in ms.")] = 0,
    known_ids: Annotated[
        list[int] | None, typer.Option("--known", help="Card id newly known. Repeatable.")
    ] = None,
):
    """Record one practice session's tallies for today."""
    written = _run(
        ctx,
        lambda s: s.aggregator.record_session(
            deck_id,
            viewed=viewed,
            correct=correct,
            hard=hard,
            duration_ms=duration_ms,
            answer_delay_ms=delay_ms,
            known_card_ids_delta=known_ids or [],
        )
    )
    if written:
        typer.secho(f"Session recorded for deck {deck_id}.", fg="green")
    else:
        typer.secho("Nothing viewed; session not recorded.", fg="yellow")


@app.command()
def reset(
    ctx: typer.Context,
    deck_id: Annotated[int, typer.Argument(help="Deck id.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation for destructive actions.")
    ] = False,
):
    """Delete all statistics and known cards of a deck. Irreversible."""
    if not force:
        typer.confirm(f"Reset all progress of deck {deck_id}?", abort=True)
    _run(ctx, lambda s: s.stats.reset_deck_progress(deck_id))
    typer.secho(f"Progress of deck {deck_id} reset.", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    with _handle_errors():
        config = _config(ctx)
    d = {
        k: str(v) if isinstance(v, Path) else getattr(v, "value", v)
        for k, v in config.model_dump().items()
    }
    typer.echo(json.dumps(d, indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
