"""Shared fixtures and in-memory doubles."""

import asyncio
import copy
import itertools
from typing import Any, Optional

import pytest

from kubeshape.core.interfaces import EventRecorder, ObjectStore, SharedConfigLookup
from kubeshape.core.models import Application, ConflictError, NotFoundError


class FakeStore(ObjectStore):
    """In-memory object store with resource versions and per-kind failure injection."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.writes: list[tuple[str, str, str]] = []
        self.status_patches: list[dict[str, Any]] = []
        self.statuses: dict[tuple[str, str], dict[str, Any]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.delays: dict[str, float] = {}
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    def fail(self, kind: str, error: Exception, verb: str = "*") -> None:
        """Make every ``verb`` call for ``kind`` raise ``error``."""
        self.failures[(verb, kind)] = error

    def delay(self, kind: str, seconds: float) -> None:
        self.delays[kind] = seconds

    def put(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Seed an object without recording a write."""
        stored = copy.deepcopy(manifest)
        metadata = stored.setdefault("metadata", {})
        metadata["resourceVersion"] = str(next(self._versions))
        metadata.setdefault("uid", f"uid-{next(self._uids)}")
        self.objects[self._key(stored)] = stored
        return copy.deepcopy(stored)

    def stored(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        return self.objects[(kind, namespace, name)]

    def kinds_written(self) -> set[str]:
        return {kind for _, kind, _ in self.writes}

    async def _check(self, verb: str, kind: str) -> None:
        if kind in self.delays:
            await asyncio.sleep(self.delays[kind])
        error = self.failures.get((verb, kind)) or self.failures.get(("*", kind))
        if error is not None:
            raise error

    def _key(self, manifest: dict[str, Any]) -> tuple[str, str, str]:
        metadata = manifest["metadata"]
        return manifest["kind"], metadata.get("namespace", ""), metadata["name"]

    async def get(self, api_version: str, kind: str, namespace: str, name: str) -> dict[str, Any]:
        await self._check("get", kind)
        try:
            return copy.deepcopy(self.objects[(kind, namespace, name)])
        except KeyError:
            raise NotFoundError("not found", kind=kind, name=name) from None

    async def list(
        self, api_version: str, kind: str, namespace: str, label_selector: Optional[str] = None
    ) -> list[dict[str, Any]]:
        await self._check("list", kind)
        wanted = dict(pair.split("=", 1) for pair in label_selector.split(",")) if label_selector else {}
        result = []
        for (obj_kind, obj_namespace, _), obj in self.objects.items():
            if obj_kind != kind or obj_namespace != namespace:
                continue
            labels = obj["metadata"].get("labels") or {}
            if all(labels.get(k) == v for k, v in wanted.items()):
                result.append(copy.deepcopy(obj))
        return result

    async def create(self, manifest: dict[str, Any]) -> dict[str, Any]:
        await self._check("create", manifest["kind"])
        key = self._key(manifest)
        if key in self.objects:
            raise ConflictError("already exists", kind=key[0], name=key[2])
        self.writes.append(("create", key[0], key[2]))
        return self.put(manifest)

    async def replace(self, manifest: dict[str, Any]) -> dict[str, Any]:
        await self._check("replace", manifest["kind"])
        key = self._key(manifest)
        current = self.objects.get(key)
        if current is None:
            raise NotFoundError("not found", kind=key[0], name=key[2])
        if manifest["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ConflictError("the object has been modified", kind=key[0], name=key[2])
        self.writes.append(("replace", key[0], key[2]))
        stored = copy.deepcopy(manifest)
        stored["metadata"]["resourceVersion"] = str(next(self._versions))
        self.objects[key] = stored
        return copy.deepcopy(stored)

    async def delete(self, api_version: str, kind: str, namespace: str, name: str) -> None:
        await self._check("delete", kind)
        if (kind, namespace, name) not in self.objects:
            raise NotFoundError("not found", kind=kind, name=name)
        self.writes.append(("delete", kind, name))
        del self.objects[(kind, namespace, name)]

    async def patch_status(
        self, api_version: str, kind: str, namespace: str, name: str, status: dict[str, Any]
    ) -> None:
        await self._check("patch_status", kind)
        self.status_patches.append(copy.deepcopy(status))
        _merge(self.statuses.setdefault((namespace, name), {}), status)


class OmitEmptyStore(FakeStore):
    """Store that drops empty lists and maps on write, as the API server does for omitempty fields."""

    def put(self, manifest: dict[str, Any]) -> dict[str, Any]:
        return super().put(_omit_empty(manifest))

    async def replace(self, manifest: dict[str, Any]) -> dict[str, Any]:
        return await super().replace(_omit_empty(manifest))


def _omit_empty(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _omit_empty(v) for k, v in value.items() if not (isinstance(v, (list, dict)) and not v)}
    if isinstance(value, list):
        return [_omit_empty(v) for v in value]
    return value


def _merge(target: dict[str, Any], patch: dict[str, Any]) -> None:
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class FakeEvents(EventRecorder):
    def __init__(self) -> None:
        self.events: list[tuple[str, str, str]] = []

    async def record(self, application: Application, event_type: str, reason: str, message: str) -> None:
        self.events.append((event_type, reason, message))

    def reasons(self) -> list[str]:
        return [reason for _, reason, _ in self.events]


class FakeSharedConfig(SharedConfigLookup):
    def __init__(self, records: Optional[dict[tuple[str, str], dict[str, str]]] = None) -> None:
        self.records = records or {}

    async def get_config(self, namespace: str, name: str) -> Optional[dict[str, str]]:
        return self.records.get((namespace, name))


def make_application(name: str = "web", namespace: str = "team-a", uid: str | None = "app-uid", **spec: Any):
    """Build an Application from camelCase spec fields."""
    spec_data = {"image": "registry.example.com/web:1.0", "port": 8080}
    spec_data.update(spec)
    manifest = {
        "apiVersion": Application.API_VERSION,
        "kind": Application.KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec_data,
    }
    if uid:
        manifest["metadata"]["uid"] = uid
    return Application.from_manifest(manifest)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def server_store() -> OmitEmptyStore:
    return OmitEmptyStore()


@pytest.fixture
def events() -> FakeEvents:
    return FakeEvents()


@pytest.fixture
def application() -> Application:
    return make_application()


@pytest.fixture
def app_factory():
    return make_application


@pytest.fixture
def shared_config() -> FakeSharedConfig:
    return FakeSharedConfig()


class FakeCluster(FakeStore):
    """Store that also answers Application reads, config lookups and events, like the real client."""

    def __init__(self) -> None:
        super().__init__()
        self.configs: dict[tuple[str, str], dict[str, str]] = {}
        self.events: list[tuple[str, str, str]] = []
        self.closed = False

    async def get_application(self, namespace: str, name: str) -> Application:
        manifest = await self.get(Application.API_VERSION, Application.KIND, namespace, name)
        manifest["status"] = copy.deepcopy(self.statuses.get((namespace, name), {}))
        return Application.from_manifest(manifest)

    async def get_config(self, namespace: str, name: str) -> Optional[dict[str, str]]:
        return self.configs.get((namespace, name))

    async def record(self, application: Application, event_type: str, reason: str, message: str) -> None:
        self.events.append((event_type, reason, message))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()
