""" Status condition tracker for Pulp resources.

Conditions are written to the status subresource only when their boolean
state changes, and each write is mirrored as a Kubernetes event.
"""

import datetime
import logging

import kopf
from kubernetes.client.exceptions import ApiException

from pulp_operator.crd.base import CRDCondition
from pulp_operator.models.pulp import GROUP, VERSION, PLURAL

logger = logging.getLogger(__name__)


def condition_type(deployment_type, subsystem):
    """e.g. ('pulp', 'Database') -> 'Pulp-Database-Ready'."""
    return f"{deployment_type.title()}-{subsystem}-Ready"


def finished_condition_type(deployment_type):
    return f"{deployment_type.title()}-Operator-Finished-Execution"


class ConditionTracker:
    """Holds the conditions of one Pulp resource for the length of a pass."""

    def __init__(self, clients, body, deployment_type, event=kopf.event):
        self.clients = clients
        self.body = body
        self.name = body["metadata"]["name"]
        self.namespace = body["metadata"]["namespace"]
        self.finished_type = finished_condition_type(deployment_type)
        self.conditions = [
            dict(c) for c in ((body.get("status") or {}).get("conditions") or [])
        ]
        self._event = event

    def get(self, type_):
        return next((c for c in self.conditions if c.get("type") == type_), None)

    def state(self, type_):
        """True, False, or None while the condition has never been set."""
        condition = self.get(type_)
        if condition is None or condition.get("status") not in ("True", "False"):
            return None
        return condition["status"] == "True"

    def is_true(self, type_):
        return self.state(type_) is True

    def update(self, type_, state, reason, message):
        """ Record a condition if its state changed.

        Args:
            type_: condition type
            state: new boolean state
            reason: CamelCase reason token
            message: human readable message

        Returns:
            bool: True if the status was written
        """
        if self.state(type_) == state:
            return False

        condition = CRDCondition(
            type=type_,
            status="True" if state else "False",
            reason=reason,
            message=message,
            lastTransitionTime=datetime.datetime.now(datetime.timezone.utc),
        ).model_dump(mode="json")

        existing = self.get(type_)
        if existing is None:
            self.conditions.append(condition)
        else:
            self.conditions[self.conditions.index(existing)] = condition

        # the resource cannot stay finished while one of its subsystems is pending
        unfinished = (
            not state and type_ != self.finished_type and self.is_true(self.finished_type)
        )
        if unfinished:
            self._set_unfinished(message)

        self._persist()
        self._event(
            self.body,
            type="Normal" if state else "Warning",
            reason=reason,
            message=message,
        )
        if unfinished:
            self._event(self.body, type="Warning", reason="OperatorRunning", message=message)
        logger.info(f"{self.namespace}/{self.name}: {type_}={state} ({reason})")
        return True

    def finish(self, subsystem_types):
        """Set the finished condition from the subsystems reconciled in this pass."""
        pending = [t for t in subsystem_types if not self.is_true(t)]
        if pending:
            return self.update(
                self.finished_type,
                False,
                "OperatorRunning",
                f"Waiting on {', '.join(pending)}",
            )
        return self.update(
            self.finished_type,
            True,
            "OperatorFinishedExecution",
            "All subsystems are ready",
        )

    def _set_unfinished(self, message):
        existing = self.get(self.finished_type)
        self.conditions[self.conditions.index(existing)] = CRDCondition(
            type=self.finished_type,
            status="False",
            reason="OperatorRunning",
            message=message,
            lastTransitionTime=datetime.datetime.now(datetime.timezone.utc),
        ).model_dump(mode="json")

    def _persist(self):
        try:
            self.clients.custom.patch_namespaced_custom_object_status(
                group=GROUP,
                version=VERSION,
                namespace=self.namespace,
                plural=PLURAL,
                name=self.name,
                body={"status": {"conditions": self.conditions}},
            )
        except ApiException as e:
            logger.error(f"Failed to update status of {self.namespace}/{self.name}: {e}")
            raise
