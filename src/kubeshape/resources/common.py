"""Shared metadata helpers for child resource builders."""

from typing import Any

from kubeshape.core.models import Application, ValidationFailure

# Keeps GitOps tooling from pruning objects this controller owns
COMMON_ANNOTATIONS = {"argocd.argoproj.io/sync-options": "Prune=false"}


def child_labels(application: Application) -> dict[str, str]:
    """Labels put on every child resource."""
    labels = dict(application.spec.labels)
    labels.update(application.selector_labels())
    return labels


def child_metadata(application: Application, name: str | None = None) -> dict[str, Any]:
    """Build metadata for a child resource of the application."""
    return {
        "name": name or application.name,
        "namespace": application.namespace,
        "labels": child_labels(application),
        "annotations": dict(COMMON_ANNOTATIONS),
    }


def selector(application: Application) -> dict[str, Any]:
    """Label selector matching the application's pods."""
    return {"matchLabels": application.selector_labels()}


def ensure_valid(application: Application, kind: str, *fields: str) -> None:
    """
    Raise ValidationFailure if any of the given spec fields are invalid.

    Args:
        application: Application to check
        kind: Resource kind the check is for
        fields: Field path prefixes this builder depends on
    """
    validation = application.validate()
    errors = [e for f in fields for e in validation.errors_for(f)]
    if errors:
        raise ValidationFailure("; ".join(str(e) for e in errors), kind=kind, name=application.name)
