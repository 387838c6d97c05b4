"""ServiceAccount builder."""

from typing import Any

from kubeshape.core.models import Application
from kubeshape.resources.common import child_metadata


def build_service_account(application: Application) -> dict[str, Any]:
    """Build the ServiceAccount the workload runs as."""
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": child_metadata(application),
    }
