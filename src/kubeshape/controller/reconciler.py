"""Reconciliation orchestrator - derive, apply and report every child resource."""

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from kubeshape.controller.apply import ApplyAction, ApplyEngine
from kubeshape.controller.status import StatusTracker
from kubeshape.core.interfaces import EventRecorder, ObjectStore, SharedConfigLookup
from kubeshape.core.models import (
    Application,
    ControllerCondition,
    ReconcileCycleError,
    ReconcileError,
    StepTimeoutError,
)
from kubeshape.core.services.access_policy import AccessPolicySynthesizer
from kubeshape.mesh.istio import IstioPolicyBuilder
from kubeshape.resources import (
    build_autoscaler,
    build_deployment,
    build_disruption_budget,
    build_gcp_auth,
    build_network_policy,
    build_service,
    build_service_account,
)
from kubeshape.resources.common import ensure_valid
from kubeshape.utils.config import Settings

logger = logging.getLogger(__name__)

StepFn = Callable[[], Awaitable[list[ApplyAction]]]


@dataclass
class StepOutcome:
    """Result of one resource-type step."""

    name: str
    error: Exception | None = None
    actions: list[ApplyAction] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CycleResult:
    """Result of one reconciliation cycle for one application."""

    application: str
    outcomes: dict[str, StepOutcome] = field(default_factory=dict)
    summary: ControllerCondition | None = None

    @property
    def failed(self) -> dict[str, Exception]:
        return {name: o.error for name, o in self.outcomes.items() if o.error is not None}

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def changed(self) -> bool:
        """Check if any step wrote to the store."""
        return any(a != ApplyAction.UNCHANGED for o in self.outcomes.values() for a in o.actions)

    def raise_for_failure(self) -> None:
        """Raise ReconcileCycleError if any step failed, signalling a retry."""
        if self.failed:
            raise ReconcileCycleError(self.application, self.failed)


class Reconciler:
    """Runs reconciliation cycles for Applications."""

    STEP_NAMES = (
        "ServiceAccount",
        "Deployment",
        "Service",
        "HorizontalPodAutoscaler",
        "PodDisruptionBudget",
        "NetworkPolicy",
        "PeerAuthentication",
        "AuthorizationPolicy",
        "ServiceEntry",
        "ConfigMap",
    )

    def __init__(
        self,
        store: ObjectStore,
        shared_config: SharedConfigLookup | None = None,
        events: EventRecorder | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.shared_config = shared_config
        self.events = events
        self.settings = settings or Settings()
        self.engine = ApplyEngine(store)
        self.synthesizer = AccessPolicySynthesizer()
        self.istio = IstioPolicyBuilder(ingress_namespace=self.settings.ingress_namespace)

    async def reconcile(self, application: Application, timeout: float | None = None) -> CycleResult:
        """
        Run one cycle for an application.

        Every step runs regardless of the others' outcome. The returned
        result carries the per-step errors; call ``raise_for_failure`` to turn
        them into a retry signal.

        Args:
            application: Application as read from the store
            timeout: Cycle deadline in seconds, defaults to the configured one
        """
        app = copy.deepcopy(application)
        app.spec.fill_defaults()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + (timeout if timeout is not None else self.settings.cycle_timeout_seconds)

        tracker = StatusTracker(self.store, app)
        steps = self._steps(app)
        await tracker.start(list(steps))

        if self.settings.parallel_steps:
            outcomes = await asyncio.gather(
                *(self._run_step(name, step, tracker, deadline) for name, step in steps.items())
            )
        else:
            outcomes = [await self._run_step(name, step, tracker, deadline) for name, step in steps.items()]

        result = CycleResult(application=app.get_full_name(), outcomes={o.name: o for o in outcomes})
        result.summary = await tracker.summarize()

        if result.failed:
            logger.warning(f"Reconcile of {app.get_full_name()} failed for: {', '.join(result.failed)}")
            await self._record_event(
                app, "Warning", "ReconcileFailed", f"Failed to reconcile: {', '.join(result.failed)}"
            )
        else:
            logger.info(f"Reconciled {app.get_full_name()} (changed={result.changed})")

        return result

    def _steps(self, app: Application) -> dict[str, StepFn]:
        """Map each resource type to the coroutine that reconciles it."""

        def single(build: Callable[[], dict[str, Any]]) -> StepFn:
            async def step() -> list[ApplyAction]:
                result = await self.engine.apply(build(), app)
                return [result.action]

            return step

        return {
            "ServiceAccount": single(lambda: build_service_account(app)),
            "Deployment": single(
                lambda: build_deployment(app, priority_class_prefix=self.settings.priority_class_prefix)
            ),
            "Service": single(lambda: build_service(app)),
            "HorizontalPodAutoscaler": single(lambda: build_autoscaler(app)),
            "PodDisruptionBudget": single(lambda: build_disruption_budget(app)),
            "NetworkPolicy": single(
                lambda: build_network_policy(
                    app,
                    self.synthesizer.synthesize(app.spec.access_policy, app)[0],
                    self.settings.platform_namespaces,
                )
            ),
            "PeerAuthentication": single(lambda: self.istio.build_peer_authentication(app)),
            "AuthorizationPolicy": single(lambda: self.istio.build_deny_policy(app)),
            "ServiceEntry": lambda: self._reconcile_service_entries(app),
            "ConfigMap": lambda: self._reconcile_gcp_auth(app),
        }

    async def _run_step(self, name: str, step: StepFn, tracker: StatusTracker, deadline: float) -> StepOutcome:
        """
        Run one step inside the cycle deadline and record its outcome.

        A timed-out step is cancelled at its next await. A store call already
        handed to an executor thread is not interrupted, so its write may
        still land after the step is reported as StepTimeoutError; the next
        cycle re-applies over it.
        """
        outcome = StepOutcome(name=name)
        remaining = deadline - asyncio.get_running_loop().time()

        try:
            if remaining <= 0:
                raise StepTimeoutError(f"{name} did not start before the cycle deadline", kind=name)
            outcome.actions = await asyncio.wait_for(step(), timeout=remaining)
        except asyncio.TimeoutError:
            outcome.error = StepTimeoutError(f"{name} exceeded the cycle deadline", kind=name)
        except ReconcileError as e:
            outcome.error = e
        except Exception as e:
            logger.exception(f"Unexpected error reconciling {name} for {tracker.application.get_full_name()}")
            outcome.error = e

        if outcome.error is not None:
            logger.warning(f"{name} failed for {tracker.application.get_full_name()}: {outcome.error}")
        else:
            logger.debug(f"{name} for {tracker.application.get_full_name()}: {[a.value for a in outcome.actions]}")

        await tracker.set_finished(name, outcome.error)
        return outcome

    async def _reconcile_service_entries(self, app: Application) -> list[ApplyAction]:
        """Apply one ServiceEntry per external host and prune the ones no longer declared."""
        ensure_valid(app, "ServiceEntry", "spec.accessPolicy.outbound.external")
        _, registrations = self.synthesizer.synthesize(app.spec.access_policy, app)
        entries = self.istio.build_service_entries(app, registrations)

        actions: list[ApplyAction] = []
        first_error: ReconcileError | None = None
        for entry in entries:
            try:
                result = await self.engine.apply(entry, app)
                actions.append(result.action)
            except ReconcileError as e:
                logger.warning(f"Failed to apply ServiceEntry {entry['metadata']['name']}: {e}")
                first_error = first_error or e

        if first_error is not None:
            raise first_error

        keep = {entry["metadata"]["name"] for entry in entries}
        deleted = await self.engine.prune(IstioPolicyBuilder.NETWORKING_API_VERSION, "ServiceEntry", app, keep)
        if deleted:
            logger.info(f"Removed stale ServiceEntries for {app.get_full_name()}: {', '.join(deleted)}")
            actions.extend(ApplyAction.DELETED for _ in deleted)

        return actions

    async def _reconcile_gcp_auth(self, app: Application) -> list[ApplyAction]:
        """Apply the identity federation ConfigMap when a cloud identity is declared."""
        if app.spec.gcp is None:
            return []

        identity_config = None
        if self.shared_config is not None:
            identity_config = await self.shared_config.get_config(
                self.settings.controller_namespace, self.settings.identity_config_name
            )

        if identity_config is None:
            message = (
                f"Cannot find configmap named {self.settings.identity_config_name} "
                f"in namespace {self.settings.controller_namespace}"
            )
            logger.warning(f"{app.get_full_name()}: {message}")
            await self._record_event(app, "Warning", "Missing", message)

        manifest = build_gcp_auth(app, identity_config)
        if manifest is None:
            return []

        result = await self.engine.apply(manifest, app)
        return [result.action]

    async def _record_event(self, app: Application, event_type: str, reason: str, message: str) -> None:
        if self.events is None:
            return
        try:
            await self.events.record(app, event_type, reason, message)
        except ReconcileError as e:
            logger.warning(f"Failed to record event on {app.get_full_name()}: {e}")


def render_desired(
    application: Application, identity_config: dict[str, str] | None = None, settings: Settings | None = None
) -> list[dict[str, Any]]:
    """Build every desired child object of an application without a store."""
    settings = settings or Settings()
    istio = IstioPolicyBuilder(ingress_namespace=settings.ingress_namespace)

    app = copy.deepcopy(application)
    app.spec.fill_defaults()

    rule_set, registrations = AccessPolicySynthesizer().synthesize(app.spec.access_policy, app)
    manifests = [
        build_service_account(app),
        build_deployment(app, priority_class_prefix=settings.priority_class_prefix),
        build_service(app),
        build_autoscaler(app),
        build_disruption_budget(app),
        build_network_policy(app, rule_set, settings.platform_namespaces),
        istio.build_peer_authentication(app),
        istio.build_deny_policy(app),
    ]
    manifests.extend(istio.build_service_entries(app, registrations))

    gcp_auth = build_gcp_auth(app, identity_config)
    if gcp_auth is not None:
        manifests.append(gcp_auth)

    return manifests
