""" Reconcile pass for one Pulp resource.

The pass runs the environment prober, the synthesizer and the drift
corrector for every subsystem in a fixed order (database, api, content,
worker, web), then resolves and applies the exposure objects. Every step is
idempotent, so an abandoned pass is simply started over on the next trigger.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

import kopf
from pydantic import ValidationError

from pulp_operator.config import get_operator_config
from pulp_operator.errors import ExecError, SpecError
from pulp_operator.kinds.registry import KindRegistry
from pulp_operator.models.pulp import PulpSpec
from pulp_operator.services.drift import CREATED, UPDATED, ensure_child, remove_child
from pulp_operator.services.environment import probe_environment
from pulp_operator.services.routes import (
    build_ingress,
    build_routes,
    resolve_route_descriptors,
    route_selector,
)
from pulp_operator.services.status import ConditionTracker, condition_type
from pulp_operator.services.synthesizer import DesiredObject, synthesize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a pass; ``requeue_after`` asks for another pass after that many seconds."""

    requeue_after: Optional[float] = None


def parse_spec(spec):
    try:
        return PulpSpec.model_validate(dict(spec or {}))
    except ValidationError as e:
        raise SpecError(f"invalid Pulp spec: {e}") from e


class PulpReconciler:
    """Drives the children of Pulp resources toward their declared spec."""

    def __init__(self, clients, config=None, kinds=None, event=kopf.event):
        self.clients = clients
        self.config = config or get_operator_config()
        self.kinds = kinds or KindRegistry(clients)
        self.event = event

    def reconcile(self, body):
        """ Run one reconcile pass.

        Args:
            body: the Pulp resource as a plain dict

        Returns:
            ReconcileResult
        """
        name = body["metadata"]["name"]
        namespace = body["metadata"]["namespace"]
        spec = parse_spec(body.get("spec"))
        tracker = ConditionTracker(self.clients, body, spec.deployment_type, event=self.event)

        logger.info(f"Reconciling Pulp {namespace}/{name}")
        facts = probe_environment(spec, self.clients)
        desired = synthesize(
            name,
            namespace,
            spec,
            facts,
            password=secrets.token_urlsafe(24),
            service_account=self.config["serviceAccount"],
        )

        subsystem_types = []
        pending = False
        for subsystem, objects in desired.items():
            ctype = condition_type(spec.deployment_type, subsystem)
            subsystem_types.append(ctype)
            if self._reconcile_subsystem(subsystem, ctype, objects, body, tracker):
                pending = True

        self._remove_stale_exposure(name, namespace, spec, body)

        if spec.exposure_mode in ("ingress", "route"):
            subsystem = "Ingress" if spec.exposure_mode == "ingress" else "Route"
            ctype = condition_type(spec.deployment_type, subsystem)
            subsystem_types.append(ctype)
            objects = self._exposure_objects(name, namespace, spec, tracker, ctype)
            if objects is None:
                tracker.finish(subsystem_types)
                return ReconcileResult(requeue_after=self.config["requeueDelay"])
            if self._reconcile_subsystem(subsystem, ctype, objects, body, tracker):
                pending = True

        tracker.finish(subsystem_types)
        if pending:
            return ReconcileResult(requeue_after=self.config["requeueDelay"])
        logger.info(f"Pulp {namespace}/{name} is in sync")
        return ReconcileResult()

    def _reconcile_subsystem(self, subsystem, ctype, objects, body, tracker):
        """ Ensure every object of a subsystem and report it through its condition.

        Returns:
            bool: True if anything was written and the subsystem must be re-checked
        """
        outcomes = []
        for obj in objects:
            outcome = ensure_child(self.kinds.get(obj.kind), obj.body, body, tracker, ctype)
            outcomes.append((outcome, obj))

        created = [obj.name for outcome, obj in outcomes if outcome == CREATED]
        updated = [obj.name for outcome, obj in outcomes if outcome == UPDATED]

        if created:
            tracker.update(
                ctype, False, f"Creating{subsystem}", f"Created {', '.join(created)}"
            )
            return True
        if updated:
            tracker.update(
                ctype,
                False,
                f"Updating{subsystem}",
                f"Reconciled {', '.join(updated)} with the Pulp spec",
            )
            return True

        tracker.update(
            ctype,
            True,
            f"{subsystem}TasksFinished",
            f"All {subsystem} tasks ran successfully",
        )
        return False

    def _exposure_objects(self, name, namespace, spec, tracker, ctype):
        """Desired Ingress or Routes, or None while no content pod is running."""
        try:
            descriptors = resolve_route_descriptors(
                self.clients.core,
                name,
                namespace,
                spec,
                self.config["routePathsCommand"],
            )
        except ExecError as e:
            logger.error(f"Failed to get routes from {e.pod_name}: {e}")
            tracker.update(ctype, False, "RouteDiscoveryFailed", str(e))
            raise

        if descriptors is None:
            logger.info(f"Content pod of {namespace}/{name} isn't running yet, requeueing")
            tracker.update(
                ctype, False, "ContentPodNotRunning", "Waiting for a running content pod"
            )
            return None

        if spec.exposure_mode == "ingress":
            return [DesiredObject("ingress", name, build_ingress(name, namespace, spec, descriptors))]
        return [
            DesiredObject("route", route["metadata"]["name"], route)
            for route in build_routes(name, namespace, spec, descriptors)
        ]

    def _remove_stale_exposure(self, name, namespace, spec, body):
        """Delete children that belong to an exposure mode no longer selected."""
        if spec.exposure_mode == "route":
            remove_child(self.kinds.get("deployment"), f"{name}-web", namespace, body)
            remove_child(self.kinds.get("service"), f"{name}-web-svc", namespace, body)
        if spec.exposure_mode != "ingress":
            remove_child(self.kinds.get("ingress"), name, namespace, body)
        if spec.exposure_mode != "route":
            routes = self.kinds.get("route")
            selector = route_selector(name, spec.deployment_type)
            for route_name in routes.list_names(namespace, selector):
                remove_child(routes, route_name, namespace, body)
