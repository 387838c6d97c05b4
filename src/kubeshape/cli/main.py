"""Main CLI entry point."""

import asyncio
from pathlib import Path

import click

from kubeshape.cli.commands import reconcile_async, render, status_async
from kubeshape.core.models import ReconcileError
from kubeshape.utils.config import load_config
from kubeshape.utils.logging import setup_logging


@click.group()
@click.version_option()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to a file instead of stderr")
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_file: str | None) -> None:
    """kubeshape - Derive and reconcile workload resources from Application records."""
    setup_logging(log_level, log_file)
    try:
        ctx.obj = load_config()
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@cli.command("render")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["yaml", "json"]), default="yaml", help="Output format")
@click.option(
    "--identity-config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="ConfigMap manifest holding the shared identity federation settings",
)
@click.pass_obj
def render_command(settings, file: Path, output: str, identity_config: Path | None) -> None:
    """Print the child resources derived from an Application manifest."""
    try:
        render(file, output, identity_config, settings)
    except (ValueError, ReconcileError) as e:
        raise click.ClickException(str(e)) from e


@cli.command("reconcile")
@click.option("--namespace", "-n", default="default", help="Kubernetes namespace")
@click.argument("name")
@click.pass_obj
def reconcile(settings, namespace: str, name: str) -> None:
    """Run one reconciliation cycle for an Application."""
    try:
        result = asyncio.run(reconcile_async(name, namespace, settings))
    except ReconcileError as e:
        raise click.ClickException(e.to_display_string()) from e

    if not result.ok:
        raise click.ClickException(f"failed: {', '.join(result.failed)}")


@cli.command("status")
@click.option("--namespace", "-n", default="default", help="Kubernetes namespace")
@click.argument("name")
@click.pass_obj
def status(settings, namespace: str, name: str) -> None:
    """Show the per-resource conditions of an Application."""
    try:
        asyncio.run(status_async(name, namespace, settings))
    except ReconcileError as e:
        raise click.ClickException(e.to_display_string()) from e


if __name__ == "__main__":
    cli()
