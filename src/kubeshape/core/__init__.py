"""Core domain models and interfaces for kubeshape."""

from kubeshape.core.interfaces import EventRecorder, ObjectStore, SharedConfigLookup
from kubeshape.core.models import Application, ApplicationSpec, ApplicationStatus

__all__ = ["Application", "ApplicationSpec", "ApplicationStatus", "EventRecorder", "ObjectStore", "SharedConfigLookup"]
