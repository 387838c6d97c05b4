"""Istio mesh identity and egress builders."""

import hashlib
from typing import Any, ClassVar

from kubeshape.core.models import Application, ExternalPort
from kubeshape.core.services.access_policy import ExternalServiceRegistration
from kubeshape.resources.common import child_metadata, selector


class IstioPolicyBuilder:
    """
    Builds the Istio objects layered onto every application.

    Strict mTLS and the management-path deny policy are applied regardless of
    the application's own access policy.
    """

    SECURITY_API_VERSION = "security.istio.io/v1beta1"
    NETWORKING_API_VERSION = "networking.istio.io/v1beta1"

    DEFAULT_INGRESS_NAMESPACE = "istio-gateways"
    SENSITIVE_PATHS: ClassVar[list[str]] = ["/actuator*"]

    DEFAULT_EXTERNAL_PORT = ExternalPort(name="https", port=443, protocol="HTTPS")

    def __init__(self, ingress_namespace: str = DEFAULT_INGRESS_NAMESPACE):
        self.ingress_namespace = ingress_namespace

    def build_peer_authentication(self, application: Application) -> dict[str, Any]:
        """Enforce strict mutual TLS for the application's pods."""
        return {
            "apiVersion": self.SECURITY_API_VERSION,
            "kind": "PeerAuthentication",
            "metadata": child_metadata(application),
            "spec": {
                "selector": selector(application),
                "mtls": {"mode": "STRICT"},
            },
        }

    def build_deny_policy(self, application: Application) -> dict[str, Any]:
        """Deny gateway traffic to management endpoints."""
        return {
            "apiVersion": self.SECURITY_API_VERSION,
            "kind": "AuthorizationPolicy",
            "metadata": child_metadata(application, self.deny_policy_name(application)),
            "spec": {
                "action": "DENY",
                "selector": selector(application),
                "rules": [
                    {
                        "from": [{"source": {"namespaces": [self.ingress_namespace]}}],
                        "to": [{"operation": {"paths": list(self.SENSITIVE_PATHS)}}],
                    }
                ],
            },
        }

    def build_service_entries(
        self, application: Application, registrations: list[ExternalServiceRegistration]
    ) -> list[dict[str, Any]]:
        """
        Build one ServiceEntry per external host.

        Istio rejects two entries for the same host in one namespace, so
        registrations sharing a host are collapsed here, merging their ports
        in declaration order.
        """
        collapsed: dict[str, list[ExternalPort]] = {}
        for registration in registrations:
            ports = collapsed.setdefault(registration.host, [])
            for port in registration.ports:
                if port not in ports:
                    ports.append(port)

        entries = []
        for host, ports in collapsed.items():
            entries.append(
                {
                    "apiVersion": self.NETWORKING_API_VERSION,
                    "kind": "ServiceEntry",
                    "metadata": child_metadata(application, self.service_entry_name(application, host)),
                    "spec": {
                        "hosts": [host],
                        "exportTo": ["."],
                        "location": "MESH_EXTERNAL",
                        "resolution": "DNS",
                        "ports": [self._port(p) for p in ports or [self.DEFAULT_EXTERNAL_PORT]],
                    },
                }
            )

        return entries

    def deny_policy_name(self, application: Application) -> str:
        return f"{application.name}-deny"

    def service_entry_name(self, application: Application, host: str) -> str:
        """
        Generate a stable ServiceEntry name for a host.

        Format: {application}-egress-{hash}
        """
        digest = hashlib.sha256(host.encode()).hexdigest()[:10]
        return f"{application.name}-egress-{digest}"

    def _port(self, port: ExternalPort) -> dict[str, Any]:
        return {"name": port.name, "number": port.port, "protocol": port.protocol}
