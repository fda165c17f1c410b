"""flashdeck CLI — review commands, catalog editing, config and server."""

import asyncio
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from flashdeck.application.config import AlgorithmConfig
from flashdeck.domain.models import Item, Outcome
from flashdeck.interface._common import _resolve_with_overrides, format_days

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="flashdeck: spaced-repetition flashcards in your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage flashdeck configuration.", no_args_is_help=True)
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

_LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    catalog: Annotated[
        Path | None, typer.Option("--catalog", help="Catalog file (JSON or YAML).")
    ] = None,
    progress: Annotated[
        Path | None, typer.Option("--progress", help="Progress file (JSON).")
    ] = None,
    backend: Annotated[str | None, typer.Option(help="Store backend: json, memory.")] = None,
    seed: Annotated[
        int | None, typer.Option(help="Seed the random sources for reproducible sessions.")
    ] = None,
):
    """Global settings for flashdeck."""
    logging.getLogger().setLevel(_LOG_LEVELS[min(verbose, len(_LOG_LEVELS) - 1)])
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "catalog_path": catalog,
        "progress_path": progress,
        "backend": backend,
        "seed": seed,
    }


async def _scheduler(ctx: typer.Context):
    from flashdeck.application.factory import build_scheduler

    return await build_scheduler(_resolve_with_overrides(ctx))


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


@app.command("next")
def next_card(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the [bold green]next[/bold green] card to review."""

    async def run():
        scheduler = await _scheduler(ctx)
        picked = await scheduler.get_next_flashcard()

        if picked is None:
            if json_output:
                typer.echo(json.dumps(None))
            else:
                typer.secho("No cards available.", fg="yellow")
            return

        days = scheduler.algorithm.days_until_review(picked.progress)
        if json_output:
            typer.echo(
                json.dumps(
                    {
                        "item": picked.item.to_dict(),
                        "progress": picked.progress.to_dict(),
                        "days_until_review": days,
                    },
                    indent=2,
                )
            )
            return

        p = picked.progress
        typer.secho(f"[{picked.item.id}] {picked.item.question}", bold=True)
        typer.echo(f"Answer: {picked.item.answer}")
        if picked.item.tags:
            typer.echo(f"Tags: {', '.join(sorted(picked.item.tags))}")
        if p.is_new:
            typer.echo("New card")
        else:
            typer.echo(
                f"Reviews: {p.review_count}  Ease: {p.ease}  "
                f"Interval: {p.interval}d  Due: {format_days(days)}"
            )

    asyncio.run(run())


@app.command()
def review(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Flashcard ID.")],
    outcome: Annotated[
        Outcome, typer.Argument(help="How well you recalled it.", case_sensitive=False)
    ],
):
    """Record a review outcome: hard, good or easy."""

    async def run() -> bool:
        scheduler = await _scheduler(ctx)
        updated = await scheduler.record_review(item_id, outcome)
        if updated is None:
            typer.secho(f"Could not record review for '{item_id}'.", fg="red")
            return False

        days = scheduler.algorithm.days_until_review(updated)
        typer.secho(
            f"Recorded {outcome.value} for {item_id}: next review {format_days(days)} "
            f"(interval {updated.interval}d, ease {updated.ease})",
            fg="green",
        )
        return True

    if not asyncio.run(run()):
        raise typer.Exit(1)


@app.command()
def later(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Flashcard ID.")],
):
    """Defer a card to the repeat-later queue."""

    async def run() -> bool:
        scheduler = await _scheduler(ctx)
        return await scheduler.mark_for_later(item_id)

    if not asyncio.run(run()):
        typer.secho(f"Could not mark '{item_id}' for later.", fg="red")
        raise typer.Exit(1)
    typer.secho(f"Marked '{item_id}' for later.", fg="green")


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show scheduling and progress statistics."""

    async def run():
        scheduler = await _scheduler(ctx)
        return await scheduler.get_scheduling_stats(), await scheduler.get_progress_stats()

    sched, prog = asyncio.run(run())
    if sched is None or prog is None:
        typer.secho("Could not compute statistics.", fg="red")
        raise typer.Exit(1)

    if json_output:
        typer.echo(
            json.dumps(
                {"scheduling": dataclasses.asdict(sched), "progress": dataclasses.asdict(prog)},
                indent=2,
            )
        )
        return

    typer.echo(
        f"Total: {sched.total}  Due: {sched.due}  New: {sched.new}  Later: {sched.later}"
    )
    typer.echo(
        f"Completed: {prog.completed}/{prog.total} ({prog.percent_complete}%)  "
        f"Unshown: {prog.unshown}"
    )


@app.command()
def reset(
    ctx: typer.Context,
    item_id: Annotated[
        str | None, typer.Argument(help="Reset only this card. Omit to reset everything.")
    ] = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Reset review progress for one card, or for all cards."""
    if item_id is not None:

        async def run_one():
            scheduler = await _scheduler(ctx)
            return await scheduler.reset_item(item_id)

        if asyncio.run(run_one()) is None:
            typer.secho(f"Could not reset '{item_id}'.", fg="red")
            raise typer.Exit(1)
        typer.secho(f"Progress reset for '{item_id}'.", fg="green")
        return

    if not force:
        typer.confirm("Reset all progress? This cannot be undone.", abort=True)

    async def run() -> bool:
        scheduler = await _scheduler(ctx)
        return await scheduler.reset_progress()

    if not asyncio.run(run()):
        typer.secho("Failed to reset progress.", fg="red")
        raise typer.Exit(1)
    typer.secho("Progress reset.", fg="green")


@app.command()
def add(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question text.")],
    answer: Annotated[str, typer.Argument(help="Answer text.")],
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable).")
    ] = None,
    item_id: Annotated[
        str | None, typer.Option("--id", help="Explicit ID. Generated if omitted.")
    ] = None,
):
    """Append a new card to the catalog file."""
    import datetime as dt

    from flashdeck.application.id_service import generate_item_id
    from flashdeck.infrastructure.catalog import append_to_catalog

    config = _resolve_with_overrides(ctx)
    item = Item(
        id=item_id or generate_item_id(),
        question=question,
        answer=answer,
        tags=frozenset(tag or []),
        created_at=dt.datetime.now().isoformat(timespec="seconds"),
    )

    try:
        append_to_catalog(config.catalog_path, item)
    except Exception as e:
        typer.secho(f"Could not add card: {e}", fg="red")
        raise typer.Exit(1) from e

    logger.info(f"Added {item.id} to {config.catalog_path}")
    typer.echo(item.id)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration, including saved algorithm settings."""
    from flashdeck.application.factory import build_scheduler

    config = _resolve_with_overrides(ctx)

    async def run() -> AlgorithmConfig:
        scheduler = await build_scheduler(config)
        return scheduler.algorithm.config

    data = config.model_dump(mode="json")
    data["algorithm"] = asyncio.run(run()).model_dump(mode="json")
    typer.echo(json.dumps(data, indent=2))


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    pairs: Annotated[list[str], typer.Argument(help="Algorithm settings as KEY=VALUE.")],
):
    """Persist algorithm settings (e.g. base_ease=300 easy_bonus=150)."""
    config = _resolve_with_overrides(ctx)
    if config.backend == "memory":
        typer.secho(
            "The memory backend does not keep settings between runs; use the json backend.",
            fg="red",
        )
        raise typer.Exit(1)

    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or key not in AlgorithmConfig.model_fields:
            typer.secho(f"Invalid setting '{pair}'.", fg="red")
            typer.echo(f"Known keys: {', '.join(AlgorithmConfig.model_fields)}")
            raise typer.Exit(2)
        overrides[key] = value.strip()

    try:
        validated = AlgorithmConfig().merged(overrides)
    except ValidationError as e:
        typer.secho(f"Invalid value: {e}", fg="red")
        raise typer.Exit(2) from e

    typed = {k: getattr(validated, k) for k in overrides}

    async def run() -> bool:
        from flashdeck.application.factory import get_item_store

        return await get_item_store(config).save_algorithm_overrides(typed)

    if not asyncio.run(run()):
        typer.secho("Failed to save settings.", fg="red")
        raise typer.Exit(1)
    typer.echo(json.dumps(typed, indent=2))


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API server."""
    import uvicorn

    # The server resolves its own config; hand global options over via env.
    env_names = {
        "catalog_path": "FLASHDECK_CATALOG_PATH",
        "progress_path": "FLASHDECK_PROGRESS_PATH",
        "backend": "FLASHDECK_BACKEND",
        "seed": "FLASHDECK_SEED",
    }
    for key, value in (ctx.obj or {}).get("overrides", {}).items():
        if value is not None:
            os.environ[env_names[key]] = str(value)

    uvicorn.run("flashdeck.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
