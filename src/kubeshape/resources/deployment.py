"""Workload (Deployment) builder."""

from typing import Any

from kubeshape.core.models import Application
from kubeshape.core.models.application import DEFAULT_PRIORITY
from kubeshape.resources.common import COMMON_ANNOTATIONS, child_metadata, ensure_valid, selector

# Fixed identity for every workload container
RUN_AS_ID = 150

SCRATCH_VOLUME = "tmp"
SCRATCH_PATH = "/tmp"

DEFAULT_PRIORITY_CLASS_PREFIX = "kubeshape"


def priority_class_name(priority: str | None, prefix: str = DEFAULT_PRIORITY_CLASS_PREFIX) -> str:
    """Map a priority hint to its PriorityClass name."""
    return f"{prefix}-{priority or DEFAULT_PRIORITY}"


def container_security_context() -> dict[str, Any]:
    return {
        "privileged": False,
        "runAsNonRoot": True,
        "runAsUser": RUN_AS_ID,
        "runAsGroup": RUN_AS_ID,
        "readOnlyRootFilesystem": True,
        "allowPrivilegeEscalation": False,
    }


def pod_security_context() -> dict[str, Any]:
    return {
        "fsGroup": RUN_AS_ID,
        "supplementalGroups": [RUN_AS_ID],
        "seccompProfile": {"type": "RuntimeDefault"},
    }


def build_deployment(
    application: Application, priority_class_prefix: str = DEFAULT_PRIORITY_CLASS_PREFIX
) -> dict[str, Any]:
    """
    Build the Deployment for an application.

    The replica count is never set; the autoscaler owns it.
    """
    ensure_valid(application, "Deployment", "spec.image", "spec.port", "spec.priority")
    spec = application.spec

    container: dict[str, Any] = {
        "name": application.name,
        "image": spec.image,
        "imagePullPolicy": "Always",
        "ports": [{"name": "main", "containerPort": spec.port, "protocol": "TCP"}],
        "volumeMounts": [{"name": SCRATCH_VOLUME, "mountPath": SCRATCH_PATH}],
        "securityContext": container_security_context(),
    }

    if spec.command:
        container["command"] = list(spec.command)
    if spec.env:
        container["env"] = [{"name": e.name, "value": e.value} for e in spec.env]
    if spec.resources:
        resources = spec.resources.to_manifest()
        if resources:
            container["resources"] = resources

    template_annotations = dict(COMMON_ANNOTATIONS)
    template_annotations["prometheus.io/scrape"] = "true"

    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": child_metadata(application),
        "spec": {
            "selector": selector(application),
            "template": {
                "metadata": {
                    "labels": application.selector_labels(),
                    "annotations": template_annotations,
                },
                "spec": {
                    "containers": [container],
                    "volumes": [{"name": SCRATCH_VOLUME, "emptyDir": {}}],
                    "serviceAccountName": application.name,
                    "priorityClassName": priority_class_name(spec.priority, priority_class_prefix),
                    "securityContext": pod_security_context(),
                },
            },
        },
    }
