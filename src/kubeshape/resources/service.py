"""Service builder."""

from typing import Any

from kubeshape.core.models import Application
from kubeshape.resources.common import child_metadata, ensure_valid


def build_service(application: Application) -> dict[str, Any]:
    """Build the Service fronting the application's single port."""
    ensure_valid(application, "Service", "spec.port")
    port = application.spec.port

    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": child_metadata(application),
        "spec": {
            "selector": application.selector_labels(),
            "ports": [
                {
                    "name": "http",
                    "protocol": "TCP",
                    "appProtocol": "http",
                    "port": port,
                    "targetPort": port,
                }
            ],
        },
    }
