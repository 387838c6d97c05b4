"""Idempotent apply - get-or-create, then merge only the fields we own."""

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from kubeshape.core.interfaces import ObjectStore
from kubeshape.core.models import Application, NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)

# Top-level keys never taken from the desired object wholesale
UNOWNED_TOP_LEVEL = ("apiVersion", "kind", "metadata", "status")
OWNED_METADATA = ("labels", "annotations")


class ApplyAction(Enum):
    """What the apply engine did to the store."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"


@dataclass
class ApplyResult:
    """Outcome of applying one desired object."""

    object: dict[str, Any]
    action: ApplyAction

    @property
    def changed(self) -> bool:
        return self.action != ApplyAction.UNCHANGED


def owner_reference(owner: Application) -> dict[str, Any]:
    """Build a controller owner reference pointing at the application."""
    if not owner.uid:
        raise ValidationFailure(
            "cannot set owner reference: application has no uid", kind=Application.KIND, name=owner.name
        )
    return {
        "apiVersion": Application.API_VERSION,
        "kind": Application.KIND,
        "name": owner.name,
        "uid": owner.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def set_controller_reference(obj: dict[str, Any], reference: dict[str, Any]) -> None:
    """
    Make ``reference`` the controller owner of ``obj``.

    Other owner references are kept. An object already controlled by a
    different owner is refused.
    """
    metadata = obj.setdefault("metadata", {})
    references = metadata.get("ownerReferences") or []

    for existing in references:
        if existing.get("controller") and existing.get("uid") != reference["uid"]:
            raise ValidationFailure(
                f"already controlled by {existing.get('kind')} {existing.get('name')}",
                kind=obj.get("kind"),
                name=metadata.get("name"),
            )

    merged = [r for r in references if r.get("uid") != reference["uid"]]
    position = next((i for i, r in enumerate(references) if r.get("uid") == reference["uid"]), len(merged))
    merged.insert(position, dict(reference))
    metadata["ownerReferences"] = merged


def merge_value(current: Any, desired: Any) -> Any:
    """
    Merge a desired value over the current one.

    Dicts merge key by key, keeping keys only the current side has. An empty
    list or dict the current side lacks is skipped, since the API server
    omits empty collections. Lists of dicts with the same length merge
    element by element, so fields defaulted by the API server inside list
    items survive. Anything else is replaced.
    """
    if isinstance(current, dict) and isinstance(desired, dict):
        merged = copy.deepcopy(current)
        for key, value in desired.items():
            if key in current:
                merged[key] = merge_value(current[key], value)
            elif not _is_empty_collection(value):
                merged[key] = copy.deepcopy(value)
        return merged

    if (
        isinstance(current, list)
        and isinstance(desired, list)
        and len(current) == len(desired)
        and all(isinstance(c, dict) for c in current)
        and all(isinstance(d, dict) for d in desired)
    ):
        return [merge_value(c, d) for c, d in zip(current, desired)]

    return copy.deepcopy(desired)


def _is_empty_collection(value: Any) -> bool:
    return isinstance(value, (list, dict)) and not value


def merge_owned(existing: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Merge the fields this controller owns from ``desired`` into a copy of ``existing``."""
    merged = copy.deepcopy(existing)

    metadata = merged.setdefault("metadata", {})
    desired_metadata = desired.get("metadata", {})
    for key in OWNED_METADATA:
        if key in desired_metadata:
            metadata[key] = merge_value(metadata.get(key) or {}, desired_metadata[key])

    for key, value in desired.items():
        if key in UNOWNED_TOP_LEVEL:
            continue
        merged[key] = merge_value(merged[key], value) if key in merged else copy.deepcopy(value)

    return merged


class ApplyEngine:
    """Applies desired child objects to the store."""

    def __init__(self, store: ObjectStore):
        self.store = store

    async def apply(self, desired: dict[str, Any], owner: Application) -> ApplyResult:
        """
        Create the object, or merge owned fields into the existing one.

        Re-applying identical input issues no write.

        Raises:
            ValidationFailure: if the owner reference cannot be set
            ConflictError: if another writer got there first
        """
        reference = owner_reference(owner)

        api_version = desired["apiVersion"]
        kind = desired["kind"]
        namespace = desired["metadata"]["namespace"]
        name = desired["metadata"]["name"]
        logger.debug(f"Desired {kind} {namespace}/{name}: {desired}")

        try:
            existing = await self.store.get(api_version, kind, namespace, name)
        except NotFoundError:
            existing = None

        if existing is None:
            body = copy.deepcopy(desired)
            set_controller_reference(body, reference)
            logger.debug(f"Creating {kind} {namespace}/{name}")
            created = await self.store.create(body)
            return ApplyResult(object=created, action=ApplyAction.CREATED)

        merged = merge_owned(existing, desired)
        set_controller_reference(merged, reference)

        if merged == existing:
            logger.debug(f"{kind} {namespace}/{name} is up to date")
            return ApplyResult(object=existing, action=ApplyAction.UNCHANGED)

        logger.debug(f"Updating {kind} {namespace}/{name}")
        updated = await self.store.replace(merged)
        return ApplyResult(object=updated, action=ApplyAction.UPDATED)

    async def prune(self, api_version: str, kind: str, owner: Application, keep: set[str]) -> list[str]:
        """
        Delete objects of a kind controlled by ``owner`` that are not in ``keep``.

        Returns:
            Names of deleted objects
        """
        label_selector = ",".join(f"{k}={v}" for k, v in owner.selector_labels().items())
        candidates = await self.store.list(api_version, kind, owner.namespace, label_selector=label_selector)

        deleted = []
        for obj in candidates:
            metadata = obj.get("metadata", {})
            name = metadata.get("name")
            if not name or name in keep:
                continue
            controlled = any(
                r.get("controller") and r.get("uid") == owner.uid for r in metadata.get("ownerReferences") or []
            )
            if not controlled:
                continue

            logger.debug(f"Deleting stale {kind} {owner.namespace}/{name}")
            try:
                await self.store.delete(api_version, kind, owner.namespace, name)
            except NotFoundError:
                continue
            deleted.append(name)

        return deleted
