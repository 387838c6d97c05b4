"""Child resource specification builders."""

from kubeshape.resources.autoscaler import build_autoscaler, effective_replicas
from kubeshape.resources.common import COMMON_ANNOTATIONS, child_labels, child_metadata
from kubeshape.resources.deployment import build_deployment, priority_class_name
from kubeshape.resources.disruption_budget import build_disruption_budget, determine_min_available
from kubeshape.resources.gcp_auth import build_gcp_auth
from kubeshape.resources.network_policy import build_network_policy, platform_ingress
from kubeshape.resources.service import build_service
from kubeshape.resources.service_account import build_service_account

__all__ = [
    "COMMON_ANNOTATIONS",
    "build_autoscaler",
    "build_deployment",
    "build_disruption_budget",
    "build_gcp_auth",
    "build_network_policy",
    "build_service",
    "build_service_account",
    "child_labels",
    "child_metadata",
    "determine_min_available",
    "effective_replicas",
    "platform_ingress",
    "priority_class_name",
]
