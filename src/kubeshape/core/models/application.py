"""Application models."""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from kubeshape.core.models.access_policy import AccessPolicy
from kubeshape.core.models.status import ApplicationStatus
from kubeshape.core.models.validation import SpecValidation, ValidationError

# Operational baseline for the autoscaler when the spec leaves it out
DEFAULT_MIN_REPLICAS = 2
DEFAULT_MAX_REPLICAS = 5
DEFAULT_PRIORITY = "medium"

PRIORITIES = ("low", "medium", "high")


@dataclass
class Replicas:
    """Replica bounds for the autoscaler."""

    min: int | None = None
    max: int | None = None


@dataclass
class ResourceRequirements:
    """Container resource limits and requests."""

    limits: dict[str, str] = field(default_factory=dict)
    requests: dict[str, str] = field(default_factory=dict)

    def to_manifest(self) -> dict[str, Any]:
        manifest: dict[str, Any] = {}
        if self.limits:
            manifest["limits"] = dict(self.limits)
        if self.requests:
            manifest["requests"] = dict(self.requests)
        return manifest


@dataclass
class EnvVar:
    """Plain environment variable for the workload container."""

    name: str
    value: str = ""


@dataclass
class GCPConfig:
    """Cloud identity binding."""

    service_account: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GCPConfig":
        return cls(service_account=(data.get("auth") or {}).get("serviceAccount", ""))


@dataclass
class ApplicationSpec:
    """Declared intent of an Application."""

    image: str
    port: int
    replicas: Replicas = field(default_factory=Replicas)
    resources: ResourceRequirements | None = None
    priority: str | None = None
    command: list[str] = field(default_factory=list)
    env: list[EnvVar] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    access_policy: AccessPolicy | None = None
    gcp: GCPConfig | None = None

    def fill_defaults(self) -> None:
        """Fill unset fields with platform defaults.

        Only missing values are filled; anything declared explicitly is kept
        as-is, so ``replicas.min = 1`` stays 1.
        """
        if self.replicas.min is None:
            self.replicas.min = DEFAULT_MIN_REPLICAS
        if self.replicas.max is None:
            self.replicas.max = max(DEFAULT_MAX_REPLICAS, self.replicas.min)
        if not self.priority:
            self.priority = DEFAULT_PRIORITY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApplicationSpec":
        replicas_data = data.get("replicas") or {}
        resources_data = data.get("resources")
        access_policy_data = data.get("accessPolicy")
        gcp_data = data.get("gcp")

        return cls(
            image=data.get("image", ""),
            port=int(data.get("port", 0)),
            replicas=Replicas(min=replicas_data.get("min"), max=replicas_data.get("max")),
            resources=(
                ResourceRequirements(
                    limits=dict(resources_data.get("limits") or {}),
                    requests=dict(resources_data.get("requests") or {}),
                )
                if resources_data
                else None
            ),
            priority=data.get("priority"),
            command=list(data.get("command") or []),
            env=[EnvVar(name=e.get("name", ""), value=str(e.get("value", ""))) for e in data.get("env") or []],
            labels=dict(data.get("labels") or {}),
            access_policy=AccessPolicy.from_dict(access_policy_data) if access_policy_data is not None else None,
            gcp=GCPConfig.from_dict(gcp_data) if gcp_data else None,
        )


@dataclass
class Application:
    """The declarative unit this controller reconciles."""

    API_GROUP: ClassVar[str] = "kubeshape.io"
    API_VERSION: ClassVar[str] = "kubeshape.io/v1alpha1"
    KIND: ClassVar[str] = "Application"
    PLURAL: ClassVar[str] = "applications"

    # Identity
    name: str
    namespace: str
    spec: ApplicationSpec

    # Kubernetes metadata
    uid: str | None = None
    resource_version: str | None = None
    generation: int | None = None
    labels: dict[str, str] = field(default_factory=dict)

    status: ApplicationStatus = field(default_factory=ApplicationStatus)

    def get_full_name(self) -> str:
        """Get fully qualified application name."""
        return f"{self.namespace}/{self.name}"

    def selector_labels(self) -> dict[str, str]:
        """Labels selecting the pods of this application."""
        return {"app": self.name}

    def validate(self) -> SpecValidation:
        """Validate the spec, reporting errors by field path."""
        validation = SpecValidation()
        spec = self.spec

        if not spec.image:
            validation.errors.append(ValidationError(field="spec.image", message="image is required"))

        if not 0 < spec.port < 65536:
            validation.errors.append(
                ValidationError(field="spec.port", message=f"port {spec.port} is out of range", suggestion="1-65535")
            )

        if spec.replicas.min is not None and spec.replicas.min < 0:
            validation.errors.append(ValidationError(field="spec.replicas.min", message="must not be negative"))

        if (
            spec.replicas.min is not None
            and spec.replicas.max is not None
            and spec.replicas.max < max(spec.replicas.min, 1)
        ):
            validation.errors.append(
                ValidationError(
                    field="spec.replicas.max",
                    message=f"max ({spec.replicas.max}) is lower than min ({spec.replicas.min})",
                )
            )

        if spec.priority and spec.priority not in PRIORITIES:
            validation.errors.append(
                ValidationError(
                    field="spec.priority",
                    message=f"unknown priority {spec.priority!r}",
                    suggestion=", ".join(PRIORITIES),
                )
            )

        if spec.access_policy:
            inbound_rules = spec.access_policy.inbound.rules if spec.access_policy.inbound else []
            for i, rule in enumerate(inbound_rules):
                if not rule.application:
                    validation.errors.append(
                        ValidationError(
                            field=f"spec.accessPolicy.inbound.rules[{i}].application", message="application is required"
                        )
                    )
            for i, rule in enumerate(spec.access_policy.outbound.rules):
                if not rule.application:
                    validation.errors.append(
                        ValidationError(
                            field=f"spec.accessPolicy.outbound.rules[{i}].application",
                            message="application is required",
                        )
                    )
            for i, external in enumerate(spec.access_policy.outbound.external):
                if not external.host:
                    validation.errors.append(
                        ValidationError(
                            field=f"spec.accessPolicy.outbound.external[{i}].host", message="host is required"
                        )
                    )

        if spec.gcp is not None and not spec.gcp.service_account:
            validation.errors.append(
                ValidationError(field="spec.gcp.auth.serviceAccount", message="service account is required")
            )

        return validation

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> "Application":
        """Build an Application from its Kubernetes manifest."""
        metadata = manifest.get("metadata", {})
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", "") or "default",
            spec=ApplicationSpec.from_dict(manifest.get("spec") or {}),
            uid=metadata.get("uid"),
            resource_version=metadata.get("resourceVersion"),
            generation=metadata.get("generation"),
            labels=metadata.get("labels") or {},
            status=ApplicationStatus.from_dict(manifest.get("status")),
        )
