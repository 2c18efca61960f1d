"""
CLI utility helpers: consoles and manifest loading.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from analyzer.core.errors import AnalyzerError
from analyzer.engines.registry import EngineRegistry

console = Console()
err_console = Console(stderr=True)


def fail(message: str, code: int = 1) -> typer.Exit:
    """Print an error line to stderr and return the ``Exit`` to raise."""
    err_console.print(f"[bold red]Error[/bold red]: {escape(message)}", highlight=False, soft_wrap=True)
    return typer.Exit(code=code)


def warn(message: str) -> None:
    err_console.print(f"[yellow]WARNING:[/yellow] {escape(message)}", highlight=False, soft_wrap=True)


def load_registry(manifest: Path) -> EngineRegistry:
    """Load the engine manifest, exiting with status 1 when it is unusable."""
    try:
        return EngineRegistry.from_yaml_file(manifest)
    except AnalyzerError as exc:
        raise fail(exc.message) from exc
