"""Application validation models."""

from dataclasses import dataclass, field


@dataclass
class ValidationError:
    """Represents a validation error in an application spec."""

    field: str  # Field path that has the error
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        base = f"{self.field}: {self.message}"
        return f"{base} ({self.suggestion})" if self.suggestion else base


@dataclass
class SpecValidation:
    """Validation result for one application spec."""

    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def has_errors(self) -> bool:
        """Check if validation has any errors."""
        return bool(self.errors)

    def errors_for(self, prefix: str) -> list[ValidationError]:
        """Get errors whose field path starts with ``prefix``."""
        return [e for e in self.errors if e.field == prefix or e.field.startswith(f"{prefix}.")]
