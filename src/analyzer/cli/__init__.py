"""Command-line interface (``analyzer`` entry point)."""

from analyzer.cli.app import app

__all__ = ["app"]
