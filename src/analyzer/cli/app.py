"""
Root Typer application for the analyzer CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from analyzer import __version__

app = Typer(
    name="analyzer",
    help="analyzer — run static-analysis engines in sandboxed containers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"analyzer {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override ANALYZER_LOG_LEVEL."),
) -> None:
    """analyzer CLI — list and install engines."""
    from analyzer.core.logging import configure_logging
    from analyzer.core.settings import get_settings

    settings = get_settings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.log_json)


# ── Sub-command registration ─────────────────────────────────────────────

from analyzer.cli.engines import app as engines_app  # noqa: E402

app.add_typer(engines_app, name="engines", help="Engine manifest and image management.")
