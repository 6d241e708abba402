"""Registry mapping child kind keys to their handlers."""

import logging

from .base import ChildKind
from .builtin import (
    DeploymentKind,
    IngressKind,
    PersistentVolumeClaimKind,
    RouteKind,
    SecretKind,
    ServiceKind,
    StatefulSetKind,
)

logger = logging.getLogger(__name__)

BUILTIN_KINDS = {
    "secret": SecretKind,
    "persistentvolumeclaim": PersistentVolumeClaimKind,
    "statefulset": StatefulSetKind,
    "deployment": DeploymentKind,
    "service": ServiceKind,
    "ingress": IngressKind,
    "route": RouteKind,
}


class KindRegistry:
    """Child kinds bound to one set of cluster clients."""

    def __init__(self, clients):
        self._kinds = {}
        for key, kind_class in BUILTIN_KINDS.items():
            self.register_kind(key, kind_class(clients))

    def register_kind(self, key, kind):
        """Register a kind handler.

        Returns:
            bool: True if registration successful, False otherwise
        """
        if not isinstance(kind, ChildKind):
            logger.error(f"Kind handler must inherit from ChildKind: {type(kind)}")
            return False

        if key in self._kinds:
            logger.warning(f"Kind {key} already registered")
            return False

        self._kinds[key] = kind
        logger.debug(f"Registered kind: {key} ({kind.kind})")
        return True

    def get(self, key):
        try:
            return self._kinds[key]
        except KeyError:
            raise KeyError(f"No handler registered for kind {key!r}") from None

    def list_kind_names(self):
        return list(self._kinds.keys())
