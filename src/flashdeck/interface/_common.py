"""Shared helpers for CLI command modules."""

from typing import Any

import typer

from flashdeck.application.config import AppConfig, resolve_config


def _resolve_with_overrides(ctx: typer.Context | None = None, **kwargs: Any) -> AppConfig:
    """
    Build the effective config from global CLI options plus per-command overrides.

    Global options (--catalog, --progress, --backend, --seed) are stored on
    ctx.obj by the root callback.
    """
    overrides: dict[str, Any] = {}
    if ctx is not None and isinstance(ctx.obj, dict):
        overrides.update(ctx.obj.get("overrides", {}))
    overrides.update(kwargs)
    return resolve_config({k: v for k, v in overrides.items() if v is not None})


def format_days(days: int) -> str:
    if days == 0:
        return "now"
    if days < 0:
        return f"{-days} day(s) overdue"
    return f"in {days} day(s)"
