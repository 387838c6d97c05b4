"""Core domain models for kubeshape."""

from kubeshape.core.models.access_policy import (
    AccessPolicy,
    ExternalPort,
    ExternalRule,
    InboundPolicy,
    InternalRule,
    OutboundPolicy,
)
from kubeshape.core.models.application import (
    DEFAULT_MAX_REPLICAS,
    DEFAULT_MIN_REPLICAS,
    Application,
    ApplicationSpec,
    EnvVar,
    GCPConfig,
    Replicas,
    ResourceRequirements,
)
from kubeshape.core.models.errors import (
    ConflictError,
    ErrorType,
    NotFoundError,
    ReconcileCycleError,
    ReconcileError,
    StepTimeoutError,
    StoreUnavailableError,
    ValidationFailure,
)
from kubeshape.core.models.status import ApplicationStatus, ConditionStatus, ControllerCondition
from kubeshape.core.models.validation import SpecValidation, ValidationError

__all__ = [
    "DEFAULT_MAX_REPLICAS",
    "DEFAULT_MIN_REPLICAS",
    "AccessPolicy",
    "Application",
    "ApplicationSpec",
    "ApplicationStatus",
    "ConditionStatus",
    "ConflictError",
    "ControllerCondition",
    "EnvVar",
    "ErrorType",
    "ExternalPort",
    "ExternalRule",
    "GCPConfig",
    "InboundPolicy",
    "InternalRule",
    "NotFoundError",
    "OutboundPolicy",
    "ReconcileCycleError",
    "ReconcileError",
    "Replicas",
    "ResourceRequirements",
    "SpecValidation",
    "StepTimeoutError",
    "StoreUnavailableError",
    "ValidationError",
    "ValidationFailure",
]
