"""CLI command implementations."""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.table import Table

from kubeshape.controller import CycleResult, Reconciler, render_desired
from kubeshape.core.models import Application, ConditionStatus, ReconcileError
from kubeshape.k8s.client import K8sClient
from kubeshape.utils.config import Settings

logger = logging.getLogger(__name__)

console = Console()

STATUS_STYLES = {
    ConditionStatus.SYNCED: "green",
    ConditionStatus.PROGRESSING: "yellow",
    ConditionStatus.PENDING: "dim",
    ConditionStatus.ERROR: "red",
}


def load_applications(path: Path) -> list[Application]:
    """Read every Application document from a YAML file."""
    with path.open() as f:
        documents = [doc for doc in yaml.safe_load_all(f) if doc]

    applications = []
    for doc in documents:
        if doc.get("kind") != Application.KIND:
            logger.debug(f"Skipping {doc.get('kind')} document in {path}")
            continue
        applications.append(Application.from_manifest(doc))
    return applications


def load_identity_config(path: Path | None) -> dict[str, str] | None:
    """Read the data of a ConfigMap manifest file."""
    if path is None:
        return None
    with path.open() as f:
        manifest = yaml.safe_load(f) or {}
    return dict(manifest.get("data") or {})


def render(path: Path, output: str, identity_config_path: Path | None, settings: Settings) -> list[dict[str, Any]]:
    """Print the children derived from the Applications in a file."""
    identity_config = load_identity_config(identity_config_path)

    manifests: list[dict[str, Any]] = []
    for application in load_applications(path):
        validation = application.validate()
        if validation.has_errors():
            raise ValueError(
                f"{application.get_full_name()} is invalid: " + "; ".join(str(e) for e in validation.errors)
            )
        manifests.extend(render_desired(application, identity_config, settings))

    if output == "json":
        print(json.dumps(manifests, indent=2))
    else:
        print(yaml.safe_dump_all(manifests, sort_keys=False), end="")
    return manifests


async def reconcile_async(name: str, namespace: str, settings: Settings) -> CycleResult:
    """Run one reconciliation cycle against the cluster."""
    k8s_client = K8sClient(kubeconfig_path=settings.kubeconfig_path)
    try:
        application = await k8s_client.get_application(namespace, name)
        reconciler = Reconciler(k8s_client, shared_config=k8s_client, events=k8s_client, settings=settings)
        result = await reconciler.reconcile(application)
    finally:
        k8s_client.close()

    _output_outcomes(result)
    return result


async def status_async(name: str, namespace: str, settings: Settings) -> None:
    """Show the per-resource conditions recorded on an Application."""
    k8s_client = K8sClient(kubeconfig_path=settings.kubeconfig_path)
    try:
        application = await k8s_client.get_application(namespace, name)
    finally:
        k8s_client.close()

    status = application.status
    if not status.controllers:
        console.print(f"No status recorded for {application.get_full_name()}")
        return

    table = Table(title=application.get_full_name())
    table.add_column("RESOURCE")
    table.add_column("STATUS")
    table.add_column("MESSAGE")
    table.add_column("UPDATED")

    for resource, condition in status.controllers.items():
        style = STATUS_STYLES.get(condition.status, "")
        table.add_row(
            resource,
            f"[{style}]{condition.status.value}[/{style}]" if style else condition.status.value,
            condition.message,
            condition.timestamp.strftime("%Y-%m-%d %H:%M:%S") if condition.timestamp else "",
        )

    console.print(table)
    if status.summary:
        console.print(f"Summary: {status.summary.status.value} {status.summary.message}".rstrip())


def _output_outcomes(result: CycleResult) -> None:
    """Output step outcomes as a table."""
    table = Table(title=result.application)
    table.add_column("RESOURCE")
    table.add_column("RESULT")
    table.add_column("ACTIONS")

    for name, outcome in result.outcomes.items():
        if outcome.error is None:
            state = "[green]ok[/green]"
        elif isinstance(outcome.error, ReconcileError):
            state = f"[red]{outcome.error.to_display_string()}[/red]"
        else:
            state = f"[red]{outcome.error}[/red]"
        table.add_row(name, state, ", ".join(a.value for a in outcome.actions))

    console.print(table)
