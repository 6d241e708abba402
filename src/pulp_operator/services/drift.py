""" Drift corrector: create-or-reconcile one desired child object.
"""

import logging

from kubernetes.client.exceptions import ApiException

from pulp_operator.services.clients import to_dict

logger = logging.getLogger(__name__)

UNCHANGED = "unchanged"
CREATED = "created"
UPDATED = "updated"


def owner_reference(owner):
    """Controller reference pointing at the Pulp resource, for garbage collection."""
    return {
        "apiVersion": owner["apiVersion"],
        "kind": owner["kind"],
        "name": owner["metadata"]["name"],
        "uid": owner["metadata"]["uid"],
        "controller": True,
        "blockOwnerDeletion": True,
    }


def ensure_child(kind, desired, owner, tracker, condition):
    """ Bring one live object in line with its desired definition.

    Args:
        kind: ``ChildKind`` handling the object
        desired: desired object (client model or dict)
        owner: body of the owning Pulp resource
        tracker: ``ConditionTracker`` of the owner
        condition: condition type reported on creation failure

    Returns:
        str: UNCHANGED, CREATED or UPDATED
    """
    body = to_dict(desired)
    name = body["metadata"]["name"]
    namespace = body["metadata"]["namespace"]

    try:
        live = kind.fetch(name, namespace)
    except ApiException as e:
        if e.status != 404:
            logger.error(f"Failed to get {kind.kind} {namespace}/{name}: {e}")
            raise
        live = None

    if live is None:
        body["metadata"].setdefault("ownerReferences", []).append(owner_reference(owner))
        logger.info(f"Creating {kind.kind} {namespace}/{name}")
        try:
            kind.create(namespace, body)
        except ApiException as e:
            logger.error(f"Failed to create {kind.kind} {namespace}/{name}: {e}")
            tracker.update(
                condition,
                False,
                "CreationFailed",
                f"Failed to create {kind.kind} {name}: {e.reason}",
            )
            raise
        return CREATED

    if kind.compare(body, live):
        return UNCHANGED

    logger.info(f"{kind.kind} {namespace}/{name} drifted from the Pulp spec, updating")
    try:
        kind.replace(name, namespace, kind.merge(body, live))
    except ApiException as e:
        logger.error(f"Failed to update {kind.kind} {namespace}/{name}: {e}")
        raise
    return UPDATED


def remove_child(kind, name, namespace, owner):
    """ Delete a child left over from another exposure mode.

    Objects not controlled by ``owner`` are left alone.

    Returns:
        bool: True if an object was deleted
    """
    try:
        live = kind.fetch(name, namespace)
    except ApiException as e:
        if e.status == 404:
            return False
        logger.error(f"Failed to get {kind.kind} {namespace}/{name}: {e}")
        raise

    owner_uid = owner["metadata"]["uid"]
    references = (live.get("metadata") or {}).get("ownerReferences") or []
    if not any(ref.get("uid") == owner_uid for ref in references):
        logger.warning(f"{kind.kind} {namespace}/{name} is not owned by this Pulp, keeping it")
        return False

    logger.info(f"Deleting {kind.kind} {namespace}/{name}")
    try:
        kind.delete(name, namespace)
    except ApiException as e:
        if e.status == 404:
            return False
        logger.error(f"Failed to delete {kind.kind} {namespace}/{name}: {e}")
        raise
    return True
