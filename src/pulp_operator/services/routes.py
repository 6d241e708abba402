""" Dynamic route resolver.

The content app hosts plugins that register URL paths of their own. They are
discovered by running the route introspection command inside a running
content pod, then merged after the fixed default routes and turned into an
Ingress or a set of OpenShift Routes.
"""

import logging

import kubernetes
from kubernetes.client.exceptions import ApiException
from kubernetes.stream import stream

from pulp_operator.errors import ExecError
from pulp_operator.kinds.builtin import ROUTE_GROUP, ROUTE_VERSION
from pulp_operator.models.routes import RouteDescriptor, parse_route_descriptors
from pulp_operator.services.synthesizer import (
    API_PORT_NAME,
    CONTENT_PORT_NAME,
    component_labels,
)

logger = logging.getLogger(__name__)

SNIPPET_ANNOTATION = "nginx.ingress.kubernetes.io/configuration-snippet"
HAPROXY_TIMEOUT_ANNOTATION = "haproxy.router.openshift.io/timeout"
ROUTE_REWRITE_ANNOTATION = "haproxy.router.openshift.io/rewrite-target"

INGRESS_ANNOTATIONS = {
    "nginx.ingress.kubernetes.io/proxy-body-size": "0",
    "nginx.org/client-max-body-size": "10m",
    "nginx.ingress.kubernetes.io/proxy-read-timeout": "120s",
    "nginx.ingress.kubernetes.io/proxy-connect-timeout": "120s",
    "nginx.ingress.kubernetes.io/proxy-send-timeout": "120s",
}


def label_selector(labels):
    return ",".join(f"{key}={value}" for key, value in labels.items())


def content_pod_selector(name, deployment_type):
    labels = {
        "app.kubernetes.io/part-of": deployment_type,
        "app.kubernetes.io/managed-by": f"{deployment_type}-operator",
        "app.kubernetes.io/instance": f"{deployment_type}-content-{name}",
        "app.kubernetes.io/component": "content",
    }
    return label_selector(labels)


def route_selector(name, deployment_type):
    """Selector matching every Route built for a Pulp resource."""
    return label_selector(component_labels(name, deployment_type, "route"))


def find_running_content_pod(core_api, name, namespace, deployment_type):
    """ Return the first Running content pod, or None if there is none yet.

    Args:
        core_api: ``CoreV1Api`` handle
        name: name of the Pulp resource
        namespace: namespace of the Pulp resource
        deployment_type: deployment type tag of the Pulp resource
    """
    try:
        pods = core_api.list_namespaced_pod(
            namespace=namespace,
            label_selector=content_pod_selector(name, deployment_type),
        )
    except ApiException as e:
        logger.error(f"Failed to list content pods in {namespace}: {e}")
        raise

    for pod in pods.items:
        phase = pod.status.phase if pod.status else None
        if phase == "Running":
            logger.debug(f"Using content pod {pod.metadata.name}")
            return pod
        logger.info(f"Content pod {pod.metadata.name} isn't running yet ({phase})")
    return None


def exec_in_pod(core_api, pod, command, container="content"):
    """Run ``command`` in ``container`` of ``pod`` and return its stdout."""
    try:
        return stream(
            core_api.connect_get_namespaced_pod_exec,
            pod.metadata.name,
            pod.metadata.namespace,
            command=command,
            container=container,
            stderr=False,
            stdin=False,
            stdout=True,
            tty=False,
        )
    except Exception as e:
        raise ExecError(pod.metadata.name, str(e)) from e


def default_route_descriptors(name, spec):
    """The four routes every Pulp exposes, in the shape of the exposure mode."""
    settings = spec.pulp_settings
    if spec.exposure_mode == "route":
        api_v3 = f"{settings.api_root}api/v3"
        auth = "/auth/login"
    else:
        api_v3 = f"{settings.api_root}api/v3/"
        auth = "/auth/login/"

    return [
        RouteDescriptor(
            name=name, path="/", target_port=API_PORT_NAME, service_name=f"{name}-api-svc"
        ),
        RouteDescriptor(
            name=f"{name}-content",
            path=settings.content_path_prefix,
            target_port=CONTENT_PORT_NAME,
            service_name=f"{name}-content-svc",
        ),
        RouteDescriptor(
            name=f"{name}-api-v3",
            path=api_v3,
            target_port=API_PORT_NAME,
            service_name=f"{name}-api-svc",
        ),
        RouteDescriptor(
            name=f"{name}-auth",
            path=auth,
            target_port=API_PORT_NAME,
            service_name=f"{name}-api-svc",
        ),
    ]


def resolve_route_descriptors(core_api, name, namespace, spec, command):
    """ Default routes followed by the routes discovered in a content pod.

    No de-duplication is done; a discovered path equal to a default path
    shows up twice.

    Returns:
        list of ``RouteDescriptor``, or None if no content pod is running yet
    """
    pod = find_running_content_pod(core_api, name, namespace, spec.deployment_type)
    if pod is None:
        return None

    output = exec_in_pod(core_api, pod, [command, name])
    discovered = parse_route_descriptors(output)
    logger.info(f"Discovered {len(discovered)} plugin routes in {pod.metadata.name}")
    return default_route_descriptors(name, spec) + discovered


def rewrite_rule(descriptor):
    return f"rewrite ^{descriptor.path.rstrip('/')}* {descriptor.rewrite};"


def build_ingress(name, namespace, spec, descriptors):
    """ Assemble the Ingress for the ``ingress`` exposure mode.

    Descriptors carrying a rewrite become the configuration snippet rather
    than a path. The snippet holds a single rule, so a later distinct rewrite
    replaces an earlier one.
    """
    annotations = dict(INGRESS_ANNOTATIONS)
    if spec.haproxy_timeout:
        annotations[HAPROXY_TIMEOUT_ANNOTATION] = spec.haproxy_timeout

    paths = []
    for descriptor in descriptors:
        if descriptor.rewrite:
            rule = rewrite_rule(descriptor)
            if rule in annotations.get(SNIPPET_ANNOTATION, ""):
                continue
            annotations[SNIPPET_ANNOTATION] = rule
            continue

        paths.append(
            kubernetes.client.V1HTTPIngressPath(
                path=descriptor.path,
                path_type="Prefix",
                backend=kubernetes.client.V1IngressBackend(
                    service=kubernetes.client.V1IngressServiceBackend(
                        name=descriptor.service_name,
                        port=kubernetes.client.V1ServiceBackendPort(
                            name=descriptor.target_port
                        ),
                    )
                ),
            )
        )

    return kubernetes.client.V1Ingress(
        metadata=kubernetes.client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels=component_labels(name, spec.deployment_type, "ingress"),
            annotations=annotations,
        ),
        spec=kubernetes.client.V1IngressSpec(
            ingress_class_name=spec.ingress_class_name,
            rules=[
                kubernetes.client.V1IngressRule(
                    host=spec.ingress_host,
                    http=kubernetes.client.V1HTTPIngressRuleValue(paths=paths),
                )
            ],
        ),
    )


def route_name(name, descriptor):
    if descriptor.name:
        return descriptor.name
    slug = descriptor.path.strip("/").replace("/", "-")
    return f"{name}-{slug}" if slug else name


def build_routes(name, namespace, spec, descriptors):
    """ One OpenShift Route per descriptor for the ``route`` exposure mode.

    Returns:
        list of Route bodies as dicts
    """
    routes = []
    for descriptor in descriptors:
        annotations = {}
        if spec.haproxy_timeout:
            annotations[HAPROXY_TIMEOUT_ANNOTATION] = spec.haproxy_timeout
        if descriptor.rewrite:
            annotations[ROUTE_REWRITE_ANNOTATION] = descriptor.rewrite

        route_spec = {
            "path": descriptor.path,
            "port": {"targetPort": descriptor.target_port},
            "to": {"kind": "Service", "name": descriptor.service_name, "weight": 100},
            "tls": {
                "termination": "edge",
                "insecureEdgeTerminationPolicy": "Redirect",
            },
        }
        if spec.route_host:
            route_spec["host"] = spec.route_host

        routes.append(
            {
                "apiVersion": f"{ROUTE_GROUP}/{ROUTE_VERSION}",
                "kind": "Route",
                "metadata": {
                    "name": route_name(name, descriptor),
                    "namespace": namespace,
                    "labels": component_labels(name, spec.deployment_type, "route"),
                    "annotations": annotations,
                },
                "spec": route_spec,
            }
        )
    return routes
