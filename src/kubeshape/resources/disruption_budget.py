"""PodDisruptionBudget builder."""

from typing import Any

from kubeshape.core.models import Application
from kubeshape.resources.autoscaler import effective_replicas
from kubeshape.resources.common import child_metadata, selector


def determine_min_available(min_replicas: int) -> int | str:
    """Half the pods must stay up once there is more than one replica."""
    if min_replicas > 1:
        return "50%"
    return 0


def build_disruption_budget(application: Application) -> dict[str, Any]:
    """Build the PodDisruptionBudget for the application's pods."""
    min_replicas, _ = effective_replicas(application.spec.replicas)

    return {
        "apiVersion": "policy/v1",
        "kind": "PodDisruptionBudget",
        "metadata": child_metadata(application),
        "spec": {
            "selector": selector(application),
            "minAvailable": determine_min_available(min_replicas),
        },
    }
