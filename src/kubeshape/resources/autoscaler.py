"""HorizontalPodAutoscaler builder."""

from typing import Any

from kubeshape.core.models import Application, Replicas
from kubeshape.core.models.application import DEFAULT_MAX_REPLICAS, DEFAULT_MIN_REPLICAS
from kubeshape.resources.common import child_metadata, ensure_valid

TARGET_CPU_UTILIZATION = 80


def effective_replicas(replicas: Replicas) -> tuple[int, int]:
    """
    Resolve the (min, max) bounds handed to the autoscaler.

    Unset bounds fall back to the platform baseline; declared bounds are
    copied verbatim.
    """
    min_replicas = replicas.min if replicas.min is not None else DEFAULT_MIN_REPLICAS
    max_replicas = replicas.max if replicas.max is not None else max(DEFAULT_MAX_REPLICAS, min_replicas)
    return min_replicas, max_replicas


def build_autoscaler(application: Application) -> dict[str, Any]:
    """Build the HorizontalPodAutoscaler scaling the Deployment on CPU."""
    ensure_valid(application, "HorizontalPodAutoscaler", "spec.replicas")
    min_replicas, max_replicas = effective_replicas(application.spec.replicas)

    return {
        "apiVersion": "autoscaling/v2",
        "kind": "HorizontalPodAutoscaler",
        "metadata": child_metadata(application),
        "spec": {
            "scaleTargetRef": {"apiVersion": "apps/v1", "kind": "Deployment", "name": application.name},
            "minReplicas": min_replicas,
            "maxReplicas": max_replicas,
            "metrics": [
                {
                    "type": "Resource",
                    "resource": {
                        "name": "cpu",
                        "target": {"type": "Utilization", "averageUtilization": TARGET_CPU_UTILIZATION},
                    },
                }
            ],
        },
    }
