"""Command line interface."""

from kubeshape.cli.main import cli

__all__ = ["cli"]
