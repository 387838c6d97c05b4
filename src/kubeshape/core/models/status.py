"""Application status models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ConditionStatus(Enum):
    """Outcome of one controller step."""

    PENDING = "Pending"
    PROGRESSING = "Progressing"
    SYNCED = "Synced"  # Finished ok
    ERROR = "Error"


@dataclass
class ControllerCondition:
    """Status condition for a single child resource type."""

    status: ConditionStatus
    message: str = ""
    timestamp: datetime | None = None

    @classmethod
    def now(cls, status: ConditionStatus, message: str = "") -> "ControllerCondition":
        return cls(status=status, message=message, timestamp=datetime.now(timezone.utc).replace(microsecond=0))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.timestamp:
            data["timestamp"] = self.timestamp.isoformat().replace("+00:00", "Z")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ControllerCondition":
        try:
            status = ConditionStatus(data.get("status"))
        except ValueError:
            status = ConditionStatus.PENDING

        timestamp = None
        raw_timestamp = data.get("timestamp")
        if raw_timestamp:
            try:
                timestamp = datetime.fromisoformat(raw_timestamp.replace("Z", "+00:00"))
            except ValueError:
                timestamp = None

        return cls(status=status, message=data.get("message", ""), timestamp=timestamp)


@dataclass
class ApplicationStatus:
    """Aggregated status written back onto the Application record."""

    controllers: dict[str, ControllerCondition] = field(default_factory=dict)
    summary: ControllerCondition | None = None

    def is_ready(self) -> bool:
        """Ready when every tracked resource type finished ok."""
        if not self.controllers:
            return False
        return all(c.status == ConditionStatus.SYNCED for c in self.controllers.values())

    def failed_controllers(self) -> list[str]:
        """Get names of resource types that ended in error."""
        return [name for name, c in self.controllers.items() if c.status == ConditionStatus.ERROR]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"controllers": {name: c.to_dict() for name, c in self.controllers.items()}}
        if self.summary:
            data["summary"] = self.summary.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ApplicationStatus":
        data = data or {}
        summary = data.get("summary")
        return cls(
            controllers={
                name: ControllerCondition.from_dict(c) for name, c in (data.get("controllers") or {}).items()
            },
            summary=ControllerCondition.from_dict(summary) if summary else None,
        )
