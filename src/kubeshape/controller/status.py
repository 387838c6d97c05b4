"""Per-resource-type status tracking."""

import logging
from typing import Any

from kubeshape.core.interfaces import ObjectStore
from kubeshape.core.models import (
    Application,
    ApplicationStatus,
    ConditionStatus,
    ControllerCondition,
    ReconcileError,
)

logger = logging.getLogger(__name__)


class StatusTracker:
    """
    Tracks the outcome of each resource type during one cycle.

    Each transition is written to the Application's status subresource as a
    merge patch touching only that resource type's key, so steps running in
    parallel never overwrite each other. Write failures are logged and never
    fail the step being tracked.
    """

    def __init__(self, store: ObjectStore | None, application: Application):
        self.store = store
        self.application = application
        self.status = ApplicationStatus()

    async def start(self, names: list[str]) -> None:
        """Mark every tracked resource type Progressing."""
        for name in names:
            self.status.controllers[name] = ControllerCondition.now(ConditionStatus.PROGRESSING)
        await self._write({"controllers": {name: self.status.controllers[name].to_dict() for name in names}})

    async def set_progressing(self, name: str) -> None:
        await self._set(name, ControllerCondition.now(ConditionStatus.PROGRESSING))

    async def set_error(self, name: str, error: Exception) -> None:
        message = error.to_display_string() if isinstance(error, ReconcileError) else str(error)
        await self._set(name, ControllerCondition.now(ConditionStatus.ERROR, message))

    async def set_finished(self, name: str, error: Exception | None = None) -> None:
        """Record the final outcome of a step."""
        if error is not None:
            await self.set_error(name, error)
            return
        await self._set(name, ControllerCondition.now(ConditionStatus.SYNCED, f"{name} synced"))

    async def summarize(self) -> ControllerCondition:
        """Write and return the overall condition for the application."""
        failed = self.status.failed_controllers()
        if failed:
            summary = ControllerCondition.now(ConditionStatus.ERROR, "failed: " + ", ".join(failed))
        elif self.status.is_ready():
            summary = ControllerCondition.now(ConditionStatus.SYNCED, "all resources synced")
        else:
            summary = ControllerCondition.now(ConditionStatus.PROGRESSING, "reconciliation in progress")

        self.status.summary = summary
        await self._write({"summary": summary.to_dict()})
        return summary

    async def _set(self, name: str, condition: ControllerCondition) -> None:
        self.status.controllers[name] = condition
        await self._write({"controllers": {name: condition.to_dict()}})

    async def _write(self, patch: dict[str, Any]) -> None:
        if self.store is None:
            return
        try:
            await self.store.patch_status(
                Application.API_VERSION,
                Application.KIND,
                self.application.namespace,
                self.application.name,
                patch,
            )
        except ReconcileError as e:
            logger.warning(f"Failed to write status for {self.application.get_full_name()}: {e}")
