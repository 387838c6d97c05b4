"""Reconciliation error taxonomy."""

from enum import Enum


class ErrorType(Enum):
    """Type of reconciliation error."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    STORE_UNAVAILABLE = "store_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ReconcileError(Exception):
    """Base class for errors raised while reconciling a child resource."""

    error_type = ErrorType.UNKNOWN
    retryable = True

    def __init__(self, message: str, kind: str | None = None, name: str | None = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.name = name

    def to_display_string(self) -> str:
        """Convert error to a status condition message."""
        error_desc = self.error_type.value.replace("_", " ").title()
        if self.kind and self.name:
            return f"{error_desc}: {self.kind} {self.name}: {self.message}"
        return f"{error_desc}: {self.message}"


class NotFoundError(ReconcileError):
    """A referenced object does not exist."""

    error_type = ErrorType.NOT_FOUND


class ConflictError(ReconcileError):
    """A concurrent writer changed the object first."""

    error_type = ErrorType.CONFLICT


class ValidationFailure(ReconcileError):
    """Builder input or a write was rejected as malformed."""

    error_type = ErrorType.VALIDATION
    retryable = False


class StoreUnavailableError(ReconcileError):
    """The object store could not be reached."""

    error_type = ErrorType.STORE_UNAVAILABLE


class StepTimeoutError(ReconcileError):
    """A step ran past the cycle deadline."""

    error_type = ErrorType.TIMEOUT


class ReconcileCycleError(Exception):
    """Raised when at least one step of a cycle failed."""

    def __init__(self, application: str, failures: dict[str, Exception]):
        self.application = application
        self.failures = failures
        details = "; ".join(f"{name}: {error}" for name, error in failures.items())
        super().__init__(f"reconcile of {application} failed for {len(failures)} resource type(s): {details}")
