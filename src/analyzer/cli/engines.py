"""
CLI: ``analyzer engines`` — list and install analysis engines.
"""

from __future__ import annotations

from pathlib import Path

import typer

from analyzer.cli.utils import console, err_console, fail, load_registry, warn
from analyzer.core.errors import AnalyzerError, ImagePullFailure
from analyzer.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_engines(
    manifest: Path | None = typer.Option(None, "--manifest", "-m", help="Engine manifest (YAML)."),
) -> None:
    """List the engines in the manifest, sorted by name."""
    settings = get_settings()
    registry = load_registry(manifest or settings.manifest_path)

    console.print("Available engines:", highlight=False)
    for entry in registry.entries():
        console.print(f"- {entry.name}: {entry.description}", markup=False, highlight=False, soft_wrap=True)


@app.command("install")
def install_engines(
    manifest: Path | None = typer.Option(None, "--manifest", "-m", help="Engine manifest (YAML)."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Project configuration (YAML)."),
    channel: str | None = typer.Option(None, "--channel", help="Channel for engines that name none."),
) -> None:
    """Pull the images of every enabled engine."""
    from analyzer.engines.config import load_engine_config_file
    from analyzer.engines.installer import Installer
    from analyzer.execution.runtime import DockerRuntime

    settings = get_settings()
    registry = load_registry(manifest or settings.manifest_path)

    try:
        entries = load_engine_config_file(config or settings.config_path, settings.default_engines)
    except AnalyzerError as exc:
        raise fail(exc.message) from exc

    installer = Installer(
        registry,
        DockerRuntime(docker_binary=settings.docker_binary),
        default_channel=channel or settings.default_channel,
        warn=warn,
    )

    try:
        report = installer.install(entries)
    except ImagePullFailure as exc:
        raise fail(f"unable to pull image {exc.image}") from exc
    except AnalyzerError as exc:
        raise fail(exc.message) from exc

    if not report.pulled:
        err_console.print("No engine images to pull.", highlight=False)
        return
    for image in report.images:
        console.print(f"[green]✓[/green] pulled {image}", highlight=False)
