"""Unit tests for the reconciliation orchestrator."""

import asyncio

import pytest

from kubeshape.controller import ApplyAction, Reconciler, render_desired
from kubeshape.core.models import (
    ConditionStatus,
    ConflictError,
    ReconcileCycleError,
    StepTimeoutError,
    StoreUnavailableError,
    ValidationFailure,
)
from kubeshape.utils.config import Settings

IDENTITY_CONFIG = {"workloadIdentityPool": "project.svc.id.goog", "identityProvider": "https://issuer.example.com"}

GCP = {"auth": {"serviceAccount": "web@project.iam.gserviceaccount.com"}}

PLATFORM_INGRESS = [
    {"from": [{"namespaceSelector": {"matchLabels": {"kubernetes.io/metadata.name": "istio-gateways"}}}]},
    {"from": [{"namespaceSelector": {"matchLabels": {"kubernetes.io/metadata.name": "monitoring"}}}]},
]

BASE_KINDS = {
    "ServiceAccount",
    "Deployment",
    "Service",
    "HorizontalPodAutoscaler",
    "PodDisruptionBudget",
    "NetworkPolicy",
    "PeerAuthentication",
    "AuthorizationPolicy",
}


class TestReconciler:
    """Test Reconciler."""

    def test_minimal_application(self, store, events, application):
        """Test a bare application gets the full baseline set of children."""
        result = asyncio.run(Reconciler(store, events=events).reconcile(application))

        assert result.ok
        assert result.changed
        assert set(result.outcomes) == set(Reconciler.STEP_NAMES)
        assert store.kinds_written() == BASE_KINDS
        assert result.summary.status == ConditionStatus.SYNCED

        hpa = store.stored("HorizontalPodAutoscaler", "team-a", "web")
        assert hpa["spec"]["minReplicas"] == 2
        assert hpa["spec"]["maxReplicas"] == 5
        assert store.stored("PodDisruptionBudget", "team-a", "web")["spec"]["minAvailable"] == "50%"
        assert store.stored("NetworkPolicy", "team-a", "web")["spec"]["ingress"] == PLATFORM_INGRESS
        assert events.events == []

        controllers = store.statuses[("team-a", "web")]["controllers"]
        assert all(c["status"] == "Synced" for c in controllers.values())
        assert store.statuses[("team-a", "web")]["summary"]["status"] == "Synced"

    def test_second_cycle_writes_nothing(self, store, application):
        """Test reconciling an unchanged application is a no-op on the children."""
        reconciler = Reconciler(store)

        asyncio.run(reconciler.reconcile(application))
        writes = list(store.writes)
        result = asyncio.run(reconciler.reconcile(application))

        assert result.ok
        assert not result.changed
        assert store.writes == writes

    def test_second_cycle_writes_nothing_when_store_drops_empty_lists(self, server_store, application):
        """Test the no-op re-apply holds when the store omits empty collections like the API server."""
        with_platform = Reconciler(server_store)
        without_platform = Reconciler(server_store, settings=Settings(monitoring_namespace="", ingress_namespace=""))

        for runner in (with_platform, without_platform):
            asyncio.run(runner.reconcile(application))
            writes = list(server_store.writes)
            result = asyncio.run(runner.reconcile(application))

            assert result.ok
            assert not result.changed
            assert server_store.writes == writes

    def test_input_not_mutated(self, store, application):
        asyncio.run(Reconciler(store).reconcile(application))

        assert application.spec.replicas.min is None
        assert application.spec.priority is None

    def test_partial_failure_isolated(self, store, events, application):
        """Test one failing resource type does not stop the others."""
        store.fail("Service", StoreUnavailableError("apiserver unavailable", kind="Service", name="web"))

        result = asyncio.run(Reconciler(store, events=events).reconcile(application))

        assert not result.ok
        assert set(result.failed) == {"Service"}
        assert store.kinds_written() == BASE_KINDS - {"Service"}
        assert result.summary.status == ConditionStatus.ERROR
        assert result.summary.message == "failed: Service"

        status = store.statuses[("team-a", "web")]
        assert status["controllers"]["Service"]["status"] == "Error"
        assert status["controllers"]["Deployment"]["status"] == "Synced"
        assert events.reasons() == ["ReconcileFailed"]

        with pytest.raises(ReconcileCycleError):
            result.raise_for_failure()

    def test_disruption_budget_conflict_isolated(self, store, application):
        """Test a conflicting budget write leaves the service and scaler synced."""
        store.fail("PodDisruptionBudget", ConflictError("the object has been modified"))

        result = asyncio.run(Reconciler(store).reconcile(application))

        controllers = store.statuses[("team-a", "web")]["controllers"]
        assert set(result.failed) == {"PodDisruptionBudget"}
        assert result.failed["PodDisruptionBudget"].retryable
        assert controllers["PodDisruptionBudget"]["status"] == "Error"
        assert controllers["Service"]["status"] == "Synced"
        assert controllers["HorizontalPodAutoscaler"]["status"] == "Synced"

    def test_minimal_scenario(self, store, app_factory):
        """Test the reference scenario: minimal in ns1, image "image", port 8080."""
        application = app_factory(name="minimal", namespace="ns1", image="image", port=8080)

        result = asyncio.run(Reconciler(store).reconcile(application))

        assert result.ok
        container = store.stored("Deployment", "ns1", "minimal")["spec"]["template"]["spec"]["containers"][0]
        assert container["ports"][0]["containerPort"] == 8080
        assert container["securityContext"]["readOnlyRootFilesystem"] is True
        assert container["securityContext"]["runAsUser"] == 150
        assert container["securityContext"]["runAsGroup"] == 150

        hpa = store.stored("HorizontalPodAutoscaler", "ns1", "minimal")["spec"]
        assert (hpa["minReplicas"], hpa["maxReplicas"]) == (2, 5)
        assert hpa["metrics"][0]["resource"]["target"]["averageUtilization"] == 80

        deny = store.stored("AuthorizationPolicy", "ns1", "minimal-deny")["spec"]
        assert deny["action"] == "DENY"
        assert deny["rules"][0]["to"] == [{"operation": {"paths": ["/actuator*"]}}]

    def test_unexpected_exception_captured(self, store, application):
        store.fail("Deployment", RuntimeError("boom"))

        result = asyncio.run(Reconciler(store).reconcile(application))

        assert set(result.failed) == {"Deployment"}
        assert isinstance(result.failed["Deployment"], RuntimeError)
        assert "Service" in store.kinds_written()

    def test_invalid_spec_fails_dependent_steps(self, store, app_factory):
        """Test a missing image fails the workload while independent children still apply."""
        application = app_factory(image="")

        result = asyncio.run(Reconciler(store).reconcile(application))

        assert isinstance(result.failed["Deployment"], ValidationFailure)
        assert "Deployment" not in store.kinds_written()
        assert "Service" in store.kinds_written()

    def test_timeout(self, store, application):
        """Test a step running past the cycle deadline is reported as timed out."""
        store.delay("Deployment", 5)

        result = asyncio.run(Reconciler(store).reconcile(application, timeout=0.2))

        assert set(result.failed) == {"Deployment"}
        assert isinstance(result.failed["Deployment"], StepTimeoutError)
        assert "Service" in store.kinds_written()

    def test_sequential_steps(self, store, application):
        reconciler = Reconciler(store, settings=Settings(parallel_steps=False))

        result = asyncio.run(reconciler.reconcile(application))

        assert result.ok
        assert list(result.outcomes) == list(Reconciler.STEP_NAMES)
        assert store.writes[0] == ("create", "ServiceAccount", "web")

    def test_service_entries_applied_and_pruned(self, store, app_factory):
        """Test external hosts get ServiceEntries and dropped hosts are removed."""
        reconciler = Reconciler(store)
        both = app_factory(
            accessPolicy={"outbound": {"external": [{"host": "api.example.com"}, {"host": "db.example.com"}]}}
        )
        one = app_factory(accessPolicy={"outbound": {"external": [{"host": "api.example.com"}]}})

        asyncio.run(reconciler.reconcile(both))
        entries = [key for key in store.objects if key[0] == "ServiceEntry"]
        assert len(entries) == 2

        result = asyncio.run(reconciler.reconcile(one))

        entries = [key for key in store.objects if key[0] == "ServiceEntry"]
        assert len(entries) == 1
        assert ApplyAction.DELETED in result.outcomes["ServiceEntry"].actions
        kept = store.stored(*entries[0])
        assert kept["spec"]["hosts"] == ["api.example.com"]

    def test_egress_restricted_by_outbound_rules(self, store, app_factory):
        application = app_factory(accessPolicy={"outbound": {"rules": [{"application": "db"}]}})

        asyncio.run(Reconciler(store).reconcile(application))

        spec = store.stored("NetworkPolicy", "team-a", "web")["spec"]
        assert spec["policyTypes"] == ["Ingress", "Egress"]
        assert spec["egress"][0]["ports"] == [{"port": 8080, "protocol": "TCP"}]

    def test_gcp_auth_applied(self, store, events, shared_config, app_factory):
        shared_config.records[("kubeshape-system", "gcp-identity-config")] = IDENTITY_CONFIG
        application = app_factory(gcp=GCP)

        result = asyncio.run(Reconciler(store, shared_config=shared_config, events=events).reconcile(application))

        assert result.ok
        assert ("ConfigMap", "team-a", "web-gcp-auth") in store.objects
        assert events.events == []

    def test_gcp_auth_missing_shared_record(self, store, events, shared_config, app_factory):
        """Test a missing shared record raises a warning event and skips the ConfigMap."""
        application = app_factory(gcp=GCP)

        result = asyncio.run(Reconciler(store, shared_config=shared_config, events=events).reconcile(application))

        assert result.ok
        assert "ConfigMap" not in store.kinds_written()
        assert events.events == [
            ("Warning", "Missing", "Cannot find configmap named gcp-identity-config in namespace kubeshape-system")
        ]

    def test_settings_flow_into_children(self, store, app_factory):
        settings = Settings(ingress_namespace="edge", priority_class_prefix="platform")

        asyncio.run(Reconciler(store, settings=settings).reconcile(app_factory(priority="low")))

        deployment = store.stored("Deployment", "team-a", "web")
        deny = store.stored("AuthorizationPolicy", "team-a", "web-deny")
        assert deployment["spec"]["template"]["spec"]["priorityClassName"] == "platform-low"
        assert deny["spec"]["rules"][0]["from"] == [{"source": {"namespaces": ["edge"]}}]


class TestRenderDesired:
    def test_minimal(self, application):
        manifests = render_desired(application)

        assert [m["kind"] for m in manifests] == [
            "ServiceAccount",
            "Deployment",
            "Service",
            "HorizontalPodAutoscaler",
            "PodDisruptionBudget",
            "NetworkPolicy",
            "PeerAuthentication",
            "AuthorizationPolicy",
        ]

    def test_with_external_hosts_and_identity(self, app_factory):
        application = app_factory(gcp=GCP, accessPolicy={"outbound": {"external": [{"host": "api.example.com"}]}})

        manifests = render_desired(application, IDENTITY_CONFIG)

        kinds = [m["kind"] for m in manifests]
        assert kinds[-2:] == ["ServiceEntry", "ConfigMap"]

    def test_platform_namespaces_admitted(self, application):
        """Test the gateway namespace the deny policy names can reach the pods."""
        manifests = {m["kind"]: m for m in render_desired(application)}

        gateway = manifests["AuthorizationPolicy"]["spec"]["rules"][0]["from"][0]["source"]["namespaces"][0]
        ingress = manifests["NetworkPolicy"]["spec"]["ingress"]

        assert ingress == PLATFORM_INGRESS
        assert ingress[0]["from"][0]["namespaceSelector"]["matchLabels"]["kubernetes.io/metadata.name"] == gateway

    def test_platform_namespaces_from_settings(self, application):
        settings = Settings(ingress_namespace="edge", monitoring_namespace="edge")

        manifests = {m["kind"]: m for m in render_desired(application, settings=settings)}

        assert manifests["NetworkPolicy"]["spec"]["ingress"] == [
            {"from": [{"namespaceSelector": {"matchLabels": {"kubernetes.io/metadata.name": "edge"}}}]}
        ]
