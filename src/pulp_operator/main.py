import kopf
import logging
import os

from pulp_operator.config import (
    get_operator_config,
    should_generate_crd_files,
    should_manage_crds,
)
from pulp_operator.crd.generator import PulpCRDManager
from pulp_operator.services.clients import ClusterClients, load_kube_config
from pulp_operator.services.reconciler import PulpReconciler

# Registers the kopf handlers
import pulp_operator.handlers  # noqa: F401

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@kopf.on.startup()
def startup_fn(settings: kopf.OperatorSettings, memo: kopf.Memo, **kwargs):
    """Configure the operator and build the cluster clients handed to every pass."""
    logger.info("Pulp Operator is starting up...")

    load_kube_config()
    clients = ClusterClients()
    config = get_operator_config()

    if should_manage_crds():
        crd_manager = PulpCRDManager()
        if should_generate_crd_files():
            logger.info("Generating CRD files and applying to cluster")
            crd_manager.generate_all_crds(force=True)
        try:
            crd_manager.apply_crds_to_cluster(clients.extensions)
        except Exception as e:
            logger.error(f"Failed to apply CRDs to cluster: {e}")

    memo.clients = clients
    memo.reconciler = PulpReconciler(clients, config=config)

    settings.batching.worker_limit = config["workerLimit"]
    settings.posting.enabled = config["postingEnabled"]
    settings.watching.server_timeout = config["serverTimeout"]

    logger.info(f"Worker limit: {settings.batching.worker_limit}")
    logger.info(f"Posting enabled: {settings.posting.enabled}")
    logger.info(f"Resync interval: {config['resyncInterval']}s")
    logger.info("Pulp Operator startup complete")


@kopf.on.cleanup()
def cleanup_fn(memo: kopf.Memo, **kwargs):
    """Cleanup operator resources."""
    logger.info("Pulp Operator is shutting down...")

    clients = getattr(memo, "clients", None)
    if clients is not None:
        clients.api_client.close()

    logger.info("Pulp Operator shutdown complete")


def main():
    try:
        kopf.run()
    except KeyboardInterrupt:
        logger.info("Operator stopped by user")
    except Exception as e:
        logger.error(f"Operator failed: {e}")
        raise


if __name__ == "__main__":
    main()
