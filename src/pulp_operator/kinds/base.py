"""Base class for the child kinds a Pulp resource owns."""

from abc import ABC, abstractmethod
import copy
import logging

from pulp_operator.services.clients import to_dict
from pulp_operator.services.derivative import derivative_match, get_path, set_path

logger = logging.getLogger(__name__)


class ChildKind(ABC):
    """Capabilities the drift corrector needs from one kind of child object.

    Subclasses wrap the typed API calls; comparison and merge work on plain
    dicts and are shared by every kind.
    """

    api_version = None

    # Paths of the fields the operator owns on live objects. An empty tuple
    # makes the kind create-only.
    tracked_fields = ()

    # Paths of maps shared with other writers (annotations). Only the keys the
    # operator sets are compared and written; other keys are kept.
    tracked_maps = ()

    def __init__(self, clients):
        self.clients = clients

    @property
    @abstractmethod
    def kind(self):
        """Kubernetes kind name, e.g. 'StatefulSet'."""
        pass

    @abstractmethod
    def read(self, name, namespace):
        """Read the live object; raises ``ApiException`` (404 if absent)."""
        pass

    @abstractmethod
    def create(self, namespace, body):
        pass

    @abstractmethod
    def replace(self, name, namespace, body):
        pass

    @abstractmethod
    def delete(self, name, namespace):
        pass

    def fetch(self, name, namespace):
        """Read the live object as a plain dict."""
        return to_dict(self.read(name, namespace))

    def compare(self, desired, live):
        """Derivative match restricted to the tracked fields and maps."""
        for path in self.tracked_fields + self.tracked_maps:
            if not derivative_match(get_path(desired, path), get_path(live, path)):
                logger.debug(f"{self.kind} field {'.'.join(path)} drifted")
                return False
        return True

    def merge(self, desired, live):
        """Copy of ``live`` with every tracked field taken from ``desired``.

        Tracked maps keep the live keys ``desired`` does not set.
        """
        merged = copy.deepcopy(live)
        for path in self.tracked_fields:
            set_path(merged, path, copy.deepcopy(get_path(desired, path)))
        for path in self.tracked_maps:
            entries = dict(get_path(live, path) or {})
            entries.update(copy.deepcopy(get_path(desired, path) or {}))
            set_path(merged, path, entries)
        return merged
