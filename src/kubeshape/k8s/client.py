"""Kubernetes client implementation."""

import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar

import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from kubeshape.core.interfaces import EventRecorder, ObjectStore, SharedConfigLookup
from kubeshape.core.models import (
    Application,
    ConflictError,
    NotFoundError,
    ReconcileError,
    StoreUnavailableError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

MERGE_PATCH = "application/merge-patch+json"


def translate_api_exception(e: ApiException, kind: str | None = None, name: str | None = None) -> ReconcileError:
    """Map an API error onto the reconciliation error taxonomy."""
    message = e.reason or str(e)
    if e.status == 404:
        return NotFoundError(message, kind=kind, name=name)
    if e.status == 409:
        return ConflictError(message, kind=kind, name=name)
    if e.status in (400, 422):
        return ValidationFailure(message, kind=kind, name=name)
    return StoreUnavailableError(f"{e.status} {message}", kind=kind, name=name)


class K8sClient(ObjectStore, SharedConfigLookup, EventRecorder):
    """Kubernetes client implementation."""

    # Built-in kinds and the typed API serving them
    BUILTIN_KINDS: ClassVar[dict[tuple[str, str], tuple[str, str]]] = {
        ("v1", "ServiceAccount"): ("core_v1", "namespaced_service_account"),
        ("v1", "Service"): ("core_v1", "namespaced_service"),
        ("v1", "ConfigMap"): ("core_v1", "namespaced_config_map"),
        ("apps/v1", "Deployment"): ("apps_v1", "namespaced_deployment"),
        ("autoscaling/v2", "HorizontalPodAutoscaler"): ("autoscaling_v2", "namespaced_horizontal_pod_autoscaler"),
        ("policy/v1", "PodDisruptionBudget"): ("policy_v1", "namespaced_pod_disruption_budget"),
        ("networking.k8s.io/v1", "NetworkPolicy"): ("networking_v1", "namespaced_network_policy"),
    }

    def __init__(self, kubeconfig_path: str | None = None, component: str = "kubeshape"):
        """Initialize Kubernetes client."""
        self.kubeconfig_path = kubeconfig_path
        self.component = component
        self._api_client: client.ApiClient | None = None
        self._apis: dict[str, Any] = {}

    def _ensure_connected(self) -> None:
        """Ensure client is connected."""
        if self._api_client is None:
            try:
                if self.kubeconfig_path:
                    config.load_kube_config(config_file=self.kubeconfig_path)
                else:
                    # Try in-cluster config first, then default kubeconfig
                    try:
                        config.load_incluster_config()
                    except config.ConfigException:
                        config.load_kube_config()

                self._api_client = client.ApiClient()
                self._apis = {
                    "core_v1": client.CoreV1Api(self._api_client),
                    "apps_v1": client.AppsV1Api(self._api_client),
                    "autoscaling_v2": client.AutoscalingV2Api(self._api_client),
                    "policy_v1": client.PolicyV1Api(self._api_client),
                    "networking_v1": client.NetworkingV1Api(self._api_client),
                    "custom_objects": client.CustomObjectsApi(self._api_client),
                }

            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Kubernetes cluster: {e}") from e

    async def _call(
        self, fn: Callable[..., Any], error_kind: str | None = None, error_name: str | None = None, **kwargs: Any
    ) -> Any:
        """Run a blocking API call in the default executor, translating errors."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, **kwargs))
        except ApiException as e:
            raise translate_api_exception(e, kind=error_kind, name=error_name) from e
        except urllib3.exceptions.HTTPError as e:
            raise StoreUnavailableError(str(e), kind=error_kind, name=error_name) from e

    def _to_dict(self, obj: Any, api_version: str, kind: str) -> dict[str, Any]:
        """Serialize a typed API object to its camelCase manifest."""
        assert self._api_client is not None
        result = self._api_client.sanitize_for_serialization(obj)
        result = result if isinstance(result, dict) else {}
        # Typed reads leave apiVersion/kind empty
        result.setdefault("apiVersion", api_version)
        result.setdefault("kind", kind)
        return result

    def _split_api_version(self, api_version: str) -> tuple[str, str]:
        if "/" in api_version:
            group, version = api_version.split("/", 1)
            return group, version
        return "", api_version

    def _get_plural_name(self, kind: str) -> str:
        """Get plural name for a custom resource kind."""
        plural_map = {
            "AuthorizationPolicy": "authorizationpolicies",
            "PeerAuthentication": "peerauthentications",
            "ServiceEntry": "serviceentries",
            Application.KIND: Application.PLURAL,
        }

        return plural_map.get(kind, kind.lower() + "s")

    def _builtin(self, api_version: str, kind: str, verb: str) -> Callable[..., Any] | None:
        entry = self.BUILTIN_KINDS.get((api_version, kind))
        if entry is None:
            return None
        api_name, suffix = entry
        return getattr(self._apis[api_name], f"{verb}_{suffix}")

    def _custom(self, api_version: str, kind: str) -> dict[str, str]:
        group, version = self._split_api_version(api_version)
        return {"group": group, "version": version, "plural": self._get_plural_name(kind)}

    async def get(self, api_version: str, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Get one object."""
        self._ensure_connected()

        read = self._builtin(api_version, kind, "read")
        if read is not None:
            obj = await self._call(read, error_kind=kind, error_name=name, name=name, namespace=namespace)
            return self._to_dict(obj, api_version, kind)

        return await self._call(
            self._apis["custom_objects"].get_namespaced_custom_object,
            error_kind=kind,
            error_name=name,
            namespace=namespace,
            name=name,
            **self._custom(api_version, kind),
        )

    async def list(
        self, api_version: str, kind: str, namespace: str, label_selector: str | None = None
    ) -> list[dict[str, Any]]:
        """List objects of a kind in a namespace."""
        self._ensure_connected()

        list_fn = self._builtin(api_version, kind, "list")
        if list_fn is not None:
            response = await self._call(list_fn, error_kind=kind, namespace=namespace, label_selector=label_selector)
            return [self._to_dict(item, api_version, kind) for item in response.items]

        try:
            response = await self._call(
                self._apis["custom_objects"].list_namespaced_custom_object,
                error_kind=kind,
                namespace=namespace,
                label_selector=label_selector,
                **self._custom(api_version, kind),
            )
        except NotFoundError:
            # Resource type doesn't exist
            return []

        items = response.get("items", [])
        return items if isinstance(items, list) else []

    async def create(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Create an object."""
        self._ensure_connected()
        api_version, kind, namespace, name = self._identity(manifest)

        create = self._builtin(api_version, kind, "create")
        if create is not None:
            obj = await self._call(create, error_kind=kind, error_name=name, namespace=namespace, body=manifest)
            return self._to_dict(obj, api_version, kind)

        return await self._call(
            self._apis["custom_objects"].create_namespaced_custom_object,
            error_kind=kind,
            error_name=name,
            namespace=namespace,
            body=manifest,
            **self._custom(api_version, kind),
        )

    async def replace(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Replace an object; the API server checks ``metadata.resourceVersion``."""
        self._ensure_connected()
        api_version, kind, namespace, name = self._identity(manifest)

        replace = self._builtin(api_version, kind, "replace")
        if replace is not None:
            obj = await self._call(
                replace, error_kind=kind, error_name=name, name=name, namespace=namespace, body=manifest
            )
            return self._to_dict(obj, api_version, kind)

        return await self._call(
            self._apis["custom_objects"].replace_namespaced_custom_object,
            error_kind=kind,
            error_name=name,
            namespace=namespace,
            name=name,
            body=manifest,
            **self._custom(api_version, kind),
        )

    async def delete(self, api_version: str, kind: str, namespace: str, name: str) -> None:
        """Delete an object."""
        self._ensure_connected()

        delete = self._builtin(api_version, kind, "delete")
        if delete is not None:
            await self._call(delete, error_kind=kind, error_name=name, name=name, namespace=namespace)
            return

        await self._call(
            self._apis["custom_objects"].delete_namespaced_custom_object,
            error_kind=kind,
            error_name=name,
            namespace=namespace,
            name=name,
            **self._custom(api_version, kind),
        )

    async def patch_status(
        self, api_version: str, kind: str, namespace: str, name: str, status: dict[str, Any]
    ) -> None:
        """Merge-patch the status subresource of a custom object."""
        self._ensure_connected()
        await self._call(
            self._apis["custom_objects"].patch_namespaced_custom_object_status,
            error_kind=kind,
            error_name=name,
            namespace=namespace,
            name=name,
            body={"status": status},
            _content_type=MERGE_PATCH,
            **self._custom(api_version, kind),
        )

    async def get_application(self, namespace: str, name: str) -> Application:
        """Read an Application record."""
        manifest = await self.get(Application.API_VERSION, Application.KIND, namespace, name)
        return Application.from_manifest(manifest)

    async def get_config(self, namespace: str, name: str) -> dict[str, str] | None:
        """Get the data of a ConfigMap, or None when it does not exist."""
        self._ensure_connected()
        try:
            config_map = await self._call(
                self._apis["core_v1"].read_namespaced_config_map,
                error_kind="ConfigMap",
                error_name=name,
                name=name,
                namespace=namespace,
            )
        except NotFoundError:
            return None
        return dict(config_map.data or {})

    async def record(self, application: Application, event_type: str, reason: str, message: str) -> None:
        """Create a core/v1 Event attached to the application."""
        self._ensure_connected()
        now = datetime.now(timezone.utc).isoformat()
        body = {
            "apiVersion": "v1",
            "kind": "Event",
            "metadata": {"generateName": f"{application.name}.", "namespace": application.namespace},
            "involvedObject": {
                "apiVersion": Application.API_VERSION,
                "kind": Application.KIND,
                "name": application.name,
                "namespace": application.namespace,
                "uid": application.uid,
            },
            "type": event_type,
            "reason": reason,
            "message": message,
            "source": {"component": self.component},
            "firstTimestamp": now,
            "lastTimestamp": now,
            "count": 1,
        }
        logger.debug(f"Recording {event_type} event {reason} on {application.get_full_name()}")
        await self._call(
            self._apis["core_v1"].create_namespaced_event,
            error_kind="Event",
            namespace=application.namespace,
            body=body,
        )

    def _identity(self, manifest: dict[str, Any]) -> tuple[str, str, str, str]:
        metadata = manifest.get("metadata", {})
        return manifest["apiVersion"], manifest["kind"], metadata.get("namespace", ""), metadata.get("name", "")

    def close(self) -> None:
        """Close the client connection."""
        if self._api_client is not None:
            self._api_client.close()
        self._api_client = None
        self._apis = {}
