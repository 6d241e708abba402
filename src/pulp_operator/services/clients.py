"""Kubernetes API handles shared by one operator process."""

import functools
import logging

import kubernetes

logger = logging.getLogger(__name__)


def load_kube_config():
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        kubernetes.config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except kubernetes.config.ConfigException:
        kubernetes.config.load_kube_config()
        logger.info("Loaded local Kubernetes config")


class ClusterClients:
    """Bundle of typed API handles built from one ``ApiClient``.

    Passed explicitly to every service so tests can hand in mocks.
    """

    def __init__(self, api_client=None):
        self.api_client = api_client or kubernetes.client.ApiClient()
        self.core = kubernetes.client.CoreV1Api(self.api_client)
        self.apps = kubernetes.client.AppsV1Api(self.api_client)
        self.networking = kubernetes.client.NetworkingV1Api(self.api_client)
        self.storage = kubernetes.client.StorageV1Api(self.api_client)
        self.custom = kubernetes.client.CustomObjectsApi(self.api_client)
        self.extensions = kubernetes.client.ApiextensionsV1Api(self.api_client)


@functools.lru_cache(maxsize=None)
def _serializer():
    return kubernetes.client.ApiClient()


def to_dict(obj):
    """Turn a client model into a plain camelCase dict, dropping unset fields."""
    return _serializer().sanitize_for_serialization(obj)
