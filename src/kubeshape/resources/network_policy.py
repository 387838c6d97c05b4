"""NetworkPolicy builder."""

from collections.abc import Sequence
from typing import Any

from kubeshape.core.models import Application
from kubeshape.core.services.access_policy import NAMESPACE_NAME_LABEL, NetworkPolicyRuleSet, synthesize
from kubeshape.resources.common import child_metadata, ensure_valid, selector


def platform_ingress(namespaces: Sequence[str]) -> list[dict[str, Any]]:
    """Ingress entries admitting every pod of the given platform namespaces."""
    return [{"from": [{"namespaceSelector": {"matchLabels": {NAMESPACE_NAME_LABEL: ns}}}]} for ns in namespaces]


def build_network_policy(
    application: Application,
    rule_set: NetworkPolicyRuleSet | None = None,
    platform_namespaces: Sequence[str] = (),
) -> dict[str, Any]:
    """
    Build the NetworkPolicy for an application.

    Ingress is always restricted, so undeclared peers are denied. The platform
    namespaces (ingress gateways, metrics scrapers) are admitted after the
    declared peers. Egress is only restricted once at least one outbound peer
    is declared.

    Both rule lists are always sent, so removing the last declared peer
    clears the stored rules.

    Args:
        application: Application to build for
        rule_set: Pre-synthesized rules; derived from the access policy if omitted
        platform_namespaces: Namespaces always allowed to reach the pods
    """
    ensure_valid(application, "NetworkPolicy", "spec.port", "spec.accessPolicy")

    if rule_set is None:
        rule_set, _ = synthesize(application.spec.access_policy, application)

    policy_types = ["Ingress"]
    if rule_set.egress:
        policy_types.append("Egress")

    spec: dict[str, Any] = {
        "podSelector": selector(application),
        "policyTypes": policy_types,
        "ingress": list(rule_set.ingress) + platform_ingress(platform_namespaces),
        "egress": list(rule_set.egress),
    }

    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicy",
        "metadata": child_metadata(application),
        "spec": spec,
    }
