"""Identity federation ConfigMap builder."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from kubeshape.core.models import Application
from kubeshape.resources.common import child_metadata, ensure_valid

IDENTITY_POOL_KEY = "workloadIdentityPool"
IDENTITY_PROVIDER_KEY = "identityProvider"

TOKEN_FILE = "/var/run/secrets/tokens/gcp-ksa/token"
IMPERSONATION_URL = "https://iamcredentials.googleapis.com/v1/projects/-/serviceAccounts/{}:generateAccessToken"
SUBJECT_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:jwt"
TOKEN_URL = "https://sts.googleapis.com/v1/token"


@dataclass
class CredentialSource:
    file: str = TOKEN_FILE


@dataclass
class ExternalAccountConfig:
    """Credential configuration consumed by Google client libraries."""

    audience: str
    service_account_impersonation_url: str
    type: str = "external_account"
    subject_token_type: str = SUBJECT_TOKEN_TYPE
    token_url: str = TOKEN_URL
    credential_source: CredentialSource = field(default_factory=CredentialSource)

    def to_json(self) -> str:
        data = asdict(self)
        ordered = {
            "type": data["type"],
            "audience": data["audience"],
            "service_account_impersonation_url": data["service_account_impersonation_url"],
            "subject_token_type": data["subject_token_type"],
            "token_url": data["token_url"],
            "credential_source": data["credential_source"],
        }
        return json.dumps(ordered, separators=(",", ":"))


def gcp_auth_name(application: Application) -> str:
    return f"{application.name}-gcp-auth"


def build_gcp_auth(application: Application, identity_config: dict[str, str] | None) -> dict[str, Any] | None:
    """
    Build the identity federation ConfigMap.

    Args:
        application: Application to build for
        identity_config: Data of the shared identity record, None when absent

    Returns:
        ConfigMap manifest, or None when the application declares no cloud
        identity or the shared record is missing
    """
    if application.spec.gcp is None:
        return None
    ensure_valid(application, "ConfigMap", "spec.gcp")

    if identity_config is None:
        return None

    config = ExternalAccountConfig(
        audience="identitynamespace:{}:{}".format(
            identity_config.get(IDENTITY_POOL_KEY, ""), identity_config.get(IDENTITY_PROVIDER_KEY, "")
        ),
        service_account_impersonation_url=IMPERSONATION_URL.format(application.spec.gcp.service_account),
    )

    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": child_metadata(application, gcp_auth_name(application)),
        "data": {"config": config.to_json()},
    }
