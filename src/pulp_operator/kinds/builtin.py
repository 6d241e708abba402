"""Child kinds created for a Pulp resource."""

import logging

from kubernetes.client.exceptions import ApiException

from .base import ChildKind

logger = logging.getLogger(__name__)

ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"
ROUTE_PLURAL = "routes"

WORKLOAD_FIELDS = (("spec", "replicas"), ("spec", "template"))


class SecretKind(ChildKind):
    kind = "Secret"
    api_version = "v1"

    def read(self, name, namespace):
        return self.clients.core.read_namespaced_secret(name=name, namespace=namespace)

    def create(self, namespace, body):
        return self.clients.core.create_namespaced_secret(namespace=namespace, body=body)

    def replace(self, name, namespace, body):
        return self.clients.core.replace_namespaced_secret(
            name=name, namespace=namespace, body=body
        )

    def delete(self, name, namespace):
        return self.clients.core.delete_namespaced_secret(name=name, namespace=namespace)


class PersistentVolumeClaimKind(ChildKind):
    kind = "PersistentVolumeClaim"
    api_version = "v1"

    def read(self, name, namespace):
        return self.clients.core.read_namespaced_persistent_volume_claim(
            name=name, namespace=namespace
        )

    def create(self, namespace, body):
        return self.clients.core.create_namespaced_persistent_volume_claim(
            namespace=namespace, body=body
        )

    def replace(self, name, namespace, body):
        return self.clients.core.replace_namespaced_persistent_volume_claim(
            name=name, namespace=namespace, body=body
        )

    def delete(self, name, namespace):
        return self.clients.core.delete_namespaced_persistent_volume_claim(
            name=name, namespace=namespace
        )


class StatefulSetKind(ChildKind):
    kind = "StatefulSet"
    api_version = "apps/v1"
    tracked_fields = WORKLOAD_FIELDS

    def read(self, name, namespace):
        return self.clients.apps.read_namespaced_stateful_set(name=name, namespace=namespace)

    def create(self, namespace, body):
        return self.clients.apps.create_namespaced_stateful_set(
            namespace=namespace, body=body
        )

    def replace(self, name, namespace, body):
        return self.clients.apps.replace_namespaced_stateful_set(
            name=name, namespace=namespace, body=body
        )

    def delete(self, name, namespace):
        return self.clients.apps.delete_namespaced_stateful_set(name=name, namespace=namespace)


class DeploymentKind(ChildKind):
    kind = "Deployment"
    api_version = "apps/v1"
    tracked_fields = WORKLOAD_FIELDS

    def read(self, name, namespace):
        return self.clients.apps.read_namespaced_deployment(name=name, namespace=namespace)

    def create(self, namespace, body):
        return self.clients.apps.create_namespaced_deployment(namespace=namespace, body=body)

    def replace(self, name, namespace, body):
        return self.clients.apps.replace_namespaced_deployment(
            name=name, namespace=namespace, body=body
        )

    def delete(self, name, namespace):
        return self.clients.apps.delete_namespaced_deployment(name=name, namespace=namespace)


class ServiceKind(ChildKind):
    kind = "Service"
    api_version = "v1"
    tracked_fields = (("spec", "type"), ("spec", "selector"), ("spec", "ports"))

    def read(self, name, namespace):
        return self.clients.core.read_namespaced_service(name=name, namespace=namespace)

    def create(self, namespace, body):
        return self.clients.core.create_namespaced_service(namespace=namespace, body=body)

    def replace(self, name, namespace, body):
        return self.clients.core.replace_namespaced_service(
            name=name, namespace=namespace, body=body
        )

    def delete(self, name, namespace):
        return self.clients.core.delete_namespaced_service(name=name, namespace=namespace)


class IngressKind(ChildKind):
    kind = "Ingress"
    api_version = "networking.k8s.io/v1"
    tracked_fields = (("spec",),)
    tracked_maps = (("metadata", "annotations"),)

    def read(self, name, namespace):
        return self.clients.networking.read_namespaced_ingress(name=name, namespace=namespace)

    def create(self, namespace, body):
        return self.clients.networking.create_namespaced_ingress(
            namespace=namespace, body=body
        )

    def replace(self, name, namespace, body):
        return self.clients.networking.replace_namespaced_ingress(
            name=name, namespace=namespace, body=body
        )

    def delete(self, name, namespace):
        return self.clients.networking.delete_namespaced_ingress(name=name, namespace=namespace)


class RouteKind(ChildKind):
    """OpenShift Route, served through the custom objects API."""

    kind = "Route"
    api_version = f"{ROUTE_GROUP}/{ROUTE_VERSION}"
    tracked_maps = (("metadata", "annotations"),)
    tracked_fields = (
        ("spec", "host"),
        ("spec", "path"),
        ("spec", "port"),
        ("spec", "to"),
        ("spec", "tls"),
    )

    def read(self, name, namespace):
        return self.clients.custom.get_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace=namespace,
            plural=ROUTE_PLURAL,
            name=name,
        )

    def create(self, namespace, body):
        return self.clients.custom.create_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace=namespace,
            plural=ROUTE_PLURAL,
            body=body,
        )

    def replace(self, name, namespace, body):
        return self.clients.custom.replace_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace=namespace,
            plural=ROUTE_PLURAL,
            name=name,
            body=body,
        )

    def delete(self, name, namespace):
        return self.clients.custom.delete_namespaced_custom_object(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace=namespace,
            plural=ROUTE_PLURAL,
            name=name,
        )

    def list_names(self, namespace, label_selector):
        """Names of the Routes matching ``label_selector``.

        Clusters without the Route API have no Routes to list.
        """
        try:
            routes = self.clients.custom.list_namespaced_custom_object(
                group=ROUTE_GROUP,
                version=ROUTE_VERSION,
                namespace=namespace,
                plural=ROUTE_PLURAL,
                label_selector=label_selector,
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"Route API not served in {namespace}: {e.reason}")
                return []
            logger.error(f"Failed to list Routes in {namespace}: {e}")
            raise
        return [item["metadata"]["name"] for item in routes.get("items", [])]
