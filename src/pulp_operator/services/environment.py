""" Environment prober for facts the Pulp spec does not carry.
"""

import logging
from dataclasses import dataclass

from kubernetes.client.exceptions import ApiException

logger = logging.getLogger(__name__)

DEFAULT_CLASS_ANNOTATIONS = (
    "storageclass.kubernetes.io/is-default-class",
    "storageclass.beta.kubernetes.io/is-default-class",
)


@dataclass(frozen=True)
class EnvironmentFacts:
    """Cluster facts that feed the desired-state synthesizer."""

    default_storage_class: bool = False
    object_storage: bool = False
    external_db: bool = False


def is_default_storage_class_defined(storage_api):
    """ Check whether a StorageClass is annotated as the cluster default.

    Args:
        storage_api: ``StorageV1Api`` handle
    """
    try:
        storage_classes = storage_api.list_storage_class()
    except ApiException as e:
        logger.error(f"Failed to list storage classes: {e}")
        raise

    for sc in storage_classes.items:
        annotations = sc.metadata.annotations or {}
        for key in DEFAULT_CLASS_ANNOTATIONS:
            if annotations.get(key, "").lower() == "true":
                logger.debug(f"Found default storage class {sc.metadata.name}")
                return True
    return False


def is_object_storage_configured(spec):
    return bool(spec.object_storage_secret)


def is_external_db_configured(spec):
    return bool(spec.database.external_db_secret)


def probe_environment(spec, clients):
    """ Gather every environment fact needed for one reconcile pass.

    The storage class listing is skipped when no component could fall back
    to it.

    Args:
        spec: ``PulpSpec`` of the resource
        clients: ``ClusterClients`` handle bundle
    """
    object_storage = is_object_storage_configured(spec)
    external_db = is_external_db_configured(spec)

    needs_default_sc = (
        not external_db and not spec.database.postgres_storage_class
    ) or (not object_storage and not spec.file_storage_class)

    default_sc = False
    if needs_default_sc:
        default_sc = is_default_storage_class_defined(clients.storage)

    facts = EnvironmentFacts(
        default_storage_class=default_sc,
        object_storage=object_storage,
        external_db=external_db,
    )
    logger.debug(f"Environment facts: {facts}")
    return facts
