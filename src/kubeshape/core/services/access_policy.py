"""Access policy synthesis - translate declared access into network rules."""

from dataclasses import dataclass, field
from typing import Any

from kubeshape.core.models import AccessPolicy, Application, ExternalPort, InternalRule

NAMESPACE_NAME_LABEL = "kubernetes.io/metadata.name"
APP_LABEL = "app"


@dataclass
class NetworkPolicyRuleSet:
    """Ingress and egress entries for a NetworkPolicy spec."""

    ingress: list[dict[str, Any]] = field(default_factory=list)
    egress: list[dict[str, Any]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.ingress and not self.egress


@dataclass
class ExternalServiceRegistration:
    """An external host the application may reach, with its ports."""

    host: str
    ports: list[ExternalPort] = field(default_factory=list)


class AccessPolicySynthesizer:
    """
    Translate an AccessPolicy into NetworkPolicy rules and external registrations.

    Declaration order is kept and duplicate rules are not collapsed, so the
    derived lists line up index-for-index with the declared rules.

    Egress ports use the declaring application's own port. Every application
    on the platform listens on a single declared port, so the peer is assumed
    to listen on the same one.
    """

    def synthesize(
        self, access_policy: AccessPolicy | None, application: Application
    ) -> tuple[NetworkPolicyRuleSet, list[ExternalServiceRegistration]]:
        """
        Derive the rule set for an application.

        Args:
            access_policy: Declared policy, or None when nothing is declared
            application: Application the policy belongs to

        Returns:
            Tuple of the NetworkPolicy rule set and external registrations
        """
        rule_set = NetworkPolicyRuleSet()
        registrations: list[ExternalServiceRegistration] = []

        if access_policy is None:
            return rule_set, registrations

        if access_policy.inbound:
            for rule in access_policy.inbound.rules:
                rule_set.ingress.append({"from": [self._peer(rule, application.namespace)]})

        for rule in access_policy.outbound.rules:
            rule_set.egress.append(
                {
                    "to": [self._peer(rule, application.namespace)],
                    "ports": [{"port": application.spec.port, "protocol": "TCP"}],
                }
            )

        for external in access_policy.outbound.external:
            registrations.append(ExternalServiceRegistration(host=external.host, ports=list(external.ports)))

        return rule_set, registrations

    def _peer(self, rule: InternalRule, default_namespace: str) -> dict[str, Any]:
        """Build the namespace + pod selector for one internal rule."""
        return {
            "namespaceSelector": {"matchLabels": {NAMESPACE_NAME_LABEL: rule.resolve_namespace(default_namespace)}},
            "podSelector": {"matchLabels": {APP_LABEL: rule.application}},
        }


def synthesize(
    access_policy: AccessPolicy | None, application: Application
) -> tuple[NetworkPolicyRuleSet, list[ExternalServiceRegistration]]:
    """Module-level shortcut for ``AccessPolicySynthesizer().synthesize``."""
    return AccessPolicySynthesizer().synthesize(access_policy, application)
