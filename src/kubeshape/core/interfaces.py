"""Core interfaces for kubeshape."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import Application


class ObjectStore(ABC):
    """Interface for the shared, versioned object store (the Kubernetes API)."""

    @abstractmethod
    async def get(self, api_version: str, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """
        Get one object.

        Raises:
            NotFoundError: if the object does not exist.
        """
        pass

    @abstractmethod
    async def list(
        self, api_version: str, kind: str, namespace: str, label_selector: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """List objects of a kind in a namespace."""
        pass

    @abstractmethod
    async def create(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Create an object and return it as stored."""
        pass

    @abstractmethod
    async def replace(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """
        Replace an object, checked against ``metadata.resourceVersion``.

        Raises:
            ConflictError: if the stored version moved on.
        """
        pass

    @abstractmethod
    async def delete(self, api_version: str, kind: str, namespace: str, name: str) -> None:
        """Delete an object."""
        pass

    @abstractmethod
    async def patch_status(
        self, api_version: str, kind: str, namespace: str, name: str, status: dict[str, Any]
    ) -> None:
        """Merge-patch the status subresource of an object."""
        pass


class SharedConfigLookup(ABC):
    """Read-only access to platform-wide configuration records."""

    @abstractmethod
    async def get_config(self, namespace: str, name: str) -> Optional[dict[str, str]]:
        """Get the data of a configuration record, or None when it is absent."""
        pass


class EventRecorder(ABC):
    """Interface for attaching human readable events to an Application."""

    @abstractmethod
    async def record(self, application: Application, event_type: str, reason: str, message: str) -> None:
        """
        Record an event on the application.

        Args:
            application: Application the event is about
            event_type: "Normal" or "Warning"
            reason: Short CamelCase reason
            message: Human readable description
        """
        pass
