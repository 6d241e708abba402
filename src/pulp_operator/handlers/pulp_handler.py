"""Kopf handlers for Pulp custom resources."""

import copy
import logging
import threading

import kopf

from pulp_operator.config import get_operator_config
from pulp_operator.errors import SpecError
from pulp_operator.models.pulp import GROUP, VERSION, PLURAL

logger = logging.getLogger(__name__)

RESYNC_INTERVAL = get_operator_config()["resyncInterval"]


def pass_lock(memo):
    """Lock shared by every handler of one Pulp resource.

    kopf hands each resource its own memo, so passes over different
    resources still run in parallel.
    """
    return memo.setdefault("pass_lock", threading.Lock())


def run_pass(body, reconciler, lock):
    """Run one reconcile pass and translate its result for kopf.

    Passes holding the same lock never overlap.
    """
    with lock:
        try:
            result = reconciler.reconcile(copy.deepcopy(dict(body)))
        except SpecError as e:
            raise kopf.PermanentError(str(e)) from e

    if result.requeue_after is not None:
        raise kopf.TemporaryError(
            "Pulp children are not converged yet", delay=result.requeue_after
        )


@kopf.on.create(GROUP, VERSION, PLURAL)
@kopf.on.update(GROUP, VERSION, PLURAL)
@kopf.on.resume(GROUP, VERSION, PLURAL)
def pulp_create_update(body, meta, memo, **kwargs):
    """Handle Pulp create, update, and resume (on operator restart)."""
    run_pass(body, memo.reconciler, pass_lock(memo))
    kopf.info(body, reason="PulpSynced", message=f"Pulp {meta['name']} synced.")


@kopf.timer(GROUP, VERSION, PLURAL, interval=RESYNC_INTERVAL, initial_delay=RESYNC_INTERVAL)
def pulp_resync(body, memo, **kwargs):
    """Periodic pass that rolls back drift introduced by other actors."""
    run_pass(body, memo.reconciler, pass_lock(memo))
