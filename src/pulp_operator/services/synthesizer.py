""" Desired-state synthesizer for the children of a Pulp resource.

Every builder here is a pure function of the Pulp spec and the environment
facts. The objects returned only carry the fields the operator cares about;
anything left unset is owned by the cluster (defaulting, admission) and is
never compared by the drift corrector.
"""

import logging
from collections import namedtuple

import kubernetes

logger = logging.getLogger(__name__)

DesiredObject = namedtuple("DesiredObject", ["kind", "name", "body"])

PGDATA = "/var/lib/postgresql/data/pgdata"
POSTGRES_PORT = 5432
API_PORT = 24817
CONTENT_PORT = 24816
WEB_PORT = 8080
WEB_SERVICE_PORT = 24880

API_PORT_NAME = "api-24817"
CONTENT_PORT_NAME = "api-24816"
WEB_PORT_NAME = "web-8080"

PULP_COMMANDS = {
    "api": ["/usr/bin/pulp-api"],
    "content": ["/usr/bin/pulp-content"],
    "worker": ["/usr/bin/pulp-worker"],
}


def database_secret_name(name, spec):
    return spec.database.external_db_secret or f"{name}-postgres-configuration"


def service_account_name(spec, override=None):
    return override or f"{spec.deployment_type}-operator-controller-manager"


def database_labels(name, deployment_type):
    return {
        "app.kubernetes.io/name": "postgres",
        "app.kubernetes.io/instance": f"postgres-{name}",
        "app.kubernetes.io/component": "database",
        "app.kubernetes.io/part-of": deployment_type,
        "app.kubernetes.io/managed-by": f"{deployment_type}-operator",
        "owner": "pulp-dev",
    }


def database_selector_labels(name, deployment_type):
    return {
        **database_labels(name, deployment_type),
        "app": "postgresql",
        "pulp_cr": name,
    }


def component_labels(name, deployment_type, component):
    """Labels of a pulp component; also the selector of its pods."""
    return {
        "app.kubernetes.io/name": f"{deployment_type}-{component}",
        "app.kubernetes.io/instance": f"{deployment_type}-{component}-{name}",
        "app.kubernetes.io/component": component,
        "app.kubernetes.io/part-of": deployment_type,
        "app.kubernetes.io/managed-by": f"{deployment_type}-operator",
        "pulp_cr": name,
    }


def _secret_env(env_name, secret_name, key):
    return kubernetes.client.V1EnvVar(
        name=env_name,
        value_from=kubernetes.client.V1EnvVarSource(
            secret_key_ref=kubernetes.client.V1SecretKeySelector(
                name=secret_name, key=key
            )
        ),
    )


def _resources(requirements):
    if not requirements:
        return None
    return kubernetes.client.V1ResourceRequirements(
        requests=requirements.get("requests"), limits=requirements.get("limits")
    )


def _pg_isready_probe(deployment_type, initial_delay):
    return kubernetes.client.V1Probe(
        _exec=kubernetes.client.V1ExecAction(
            command=[
                "/bin/sh",
                "-i",
                "-c",
                f"pg_isready -U {deployment_type} -h 127.0.0.1 -p {POSTGRES_PORT}",
            ]
        ),
        initial_delay_seconds=initial_delay,
        period_seconds=10,
        timeout_seconds=5,
        failure_threshold=6,
        success_threshold=1,
    )


def database_secret(name, namespace, spec, password):
    """Credentials of the self-managed database.

    The password is generated by the caller; the secret is only ever created,
    so a fresh value on later passes is discarded.
    """
    return kubernetes.client.V1Secret(
        metadata=kubernetes.client.V1ObjectMeta(
            name=database_secret_name(name, spec),
            namespace=namespace,
            labels=database_labels(name, spec.deployment_type),
        ),
        string_data={
            "database": spec.deployment_type,
            "username": spec.deployment_type,
            "password": password,
            "host": f"{name}-database-svc",
            "port": str(POSTGRES_PORT),
            "sslmode": "prefer",
        },
    )


def database_statefulset(name, namespace, spec, facts, service_account=None):
    """ Build the database StatefulSet.

    A claim template is used when a storage class is named on the spec or a
    cluster default exists; otherwise the data volume is an emptyDir.
    """
    deployment_type = spec.deployment_type
    db = spec.database
    selector = database_selector_labels(name, deployment_type)
    secret_name = database_secret_name(name, spec)

    env = [
        _secret_env(env_name, secret_name, key)
        for env_name, key in (
            ("POSTGRESQL_DATABASE", "database"),
            ("POSTGRESQL_USER", "username"),
            ("POSTGRESQL_PASSWORD", "password"),
            ("POSTGRES_DB", "database"),
            ("POSTGRES_USER", "username"),
            ("POSTGRES_PASSWORD", "password"),
        )
    ]
    env.extend(
        [
            kubernetes.client.V1EnvVar(name="PGDATA", value=PGDATA),
            kubernetes.client.V1EnvVar(
                name="POSTGRES_INITDB_ARGS", value="--auth-host=scram-sha-256"
            ),
            kubernetes.client.V1EnvVar(
                name="POSTGRES_HOST_AUTH_METHOD", value="scram-sha-256"
            ),
        ]
    )

    container = kubernetes.client.V1Container(
        name="postgres",
        image=db.postgres_image,
        env=env,
        ports=[
            kubernetes.client.V1ContainerPort(
                container_port=POSTGRES_PORT, name="postgres", protocol="TCP"
            )
        ],
        liveness_probe=_pg_isready_probe(deployment_type, 30),
        readiness_probe=_pg_isready_probe(deployment_type, 5),
        volume_mounts=[
            kubernetes.client.V1VolumeMount(
                name="postgres",
                mount_path=PGDATA.rsplit("/", 1)[0],
                sub_path=PGDATA.rsplit("/", 1)[1],
            )
        ],
        resources=_resources(db.resource_requirements),
    )

    pod_spec = kubernetes.client.V1PodSpec(
        service_account_name=service_account_name(spec, service_account),
        containers=[container],
        restart_policy="Always",
    )

    sts_spec = kubernetes.client.V1StatefulSetSpec(
        replicas=1,
        service_name=f"{name}-database-svc",
        selector=kubernetes.client.V1LabelSelector(match_labels=selector),
        template=kubernetes.client.V1PodTemplateSpec(
            metadata=kubernetes.client.V1ObjectMeta(labels=selector),
            spec=pod_spec,
        ),
    )

    if db.postgres_storage_class or facts.default_storage_class:
        claim_spec = kubernetes.client.V1PersistentVolumeClaimSpec(
            access_modes=["ReadWriteOnce"],
            resources=kubernetes.client.V1ResourceRequirements(
                requests={"storage": db.postgres_storage_requirements}
            ),
        )
        if db.postgres_storage_class:
            claim_spec.storage_class_name = db.postgres_storage_class
        sts_spec.volume_claim_templates = [
            kubernetes.client.V1PersistentVolumeClaim(
                metadata=kubernetes.client.V1ObjectMeta(name="postgres"),
                spec=claim_spec,
            )
        ]
    else:
        logger.info(f"No storage class available for {name} database, using emptyDir")
        pod_spec.volumes = [
            kubernetes.client.V1Volume(
                name="postgres", empty_dir=kubernetes.client.V1EmptyDirVolumeSource()
            )
        ]

    return kubernetes.client.V1StatefulSet(
        metadata=kubernetes.client.V1ObjectMeta(
            name=f"{name}-database",
            namespace=namespace,
            labels=database_labels(name, deployment_type),
        ),
        spec=sts_spec,
    )


def database_service(name, namespace, spec):
    return kubernetes.client.V1Service(
        metadata=kubernetes.client.V1ObjectMeta(
            name=f"{name}-database-svc",
            namespace=namespace,
            labels=database_labels(name, spec.deployment_type),
        ),
        spec=kubernetes.client.V1ServiceSpec(
            cluster_ip="None",
            selector=database_selector_labels(name, spec.deployment_type),
            ports=[
                kubernetes.client.V1ServicePort(
                    name="postgres",
                    port=POSTGRES_PORT,
                    target_port=POSTGRES_PORT,
                    protocol="TCP",
                )
            ],
        ),
    )


def uses_persistent_file_storage(spec, facts):
    if facts.object_storage:
        return False
    return bool(spec.file_storage_class or facts.default_storage_class)


def file_storage_claim(name, namespace, spec):
    claim_spec = kubernetes.client.V1PersistentVolumeClaimSpec(
        access_modes=[spec.file_storage_access_mode],
        resources=kubernetes.client.V1ResourceRequirements(
            requests={"storage": spec.file_storage_size}
        ),
    )
    if spec.file_storage_class:
        claim_spec.storage_class_name = spec.file_storage_class

    return kubernetes.client.V1PersistentVolumeClaim(
        metadata=kubernetes.client.V1ObjectMeta(
            name=f"{name}-file-storage",
            namespace=namespace,
            labels=component_labels(name, spec.deployment_type, "storage"),
        ),
        spec=claim_spec,
    )


def file_storage_volumes(name, spec, facts):
    """Volumes and mounts for /var/lib/pulp.

    Returns:
        tuple: (volumes, volume_mounts)
    """
    if uses_persistent_file_storage(spec, facts):
        volumes = [
            kubernetes.client.V1Volume(
                name="file-storage",
                persistent_volume_claim=kubernetes.client.V1PersistentVolumeClaimVolumeSource(
                    claim_name=f"{name}-file-storage"
                ),
            )
        ]
        mounts = [
            kubernetes.client.V1VolumeMount(name="file-storage", mount_path="/var/lib/pulp")
        ]
        return volumes, mounts

    volumes = [
        kubernetes.client.V1Volume(
            name="tmp-file-storage", empty_dir=kubernetes.client.V1EmptyDirVolumeSource()
        ),
        kubernetes.client.V1Volume(
            name="assets-file-storage",
            empty_dir=kubernetes.client.V1EmptyDirVolumeSource(),
        ),
    ]
    mounts = [
        kubernetes.client.V1VolumeMount(
            name="tmp-file-storage", mount_path="/var/lib/pulp/tmp"
        ),
        kubernetes.client.V1VolumeMount(
            name="assets-file-storage", mount_path="/var/lib/pulp/assets"
        ),
    ]
    return volumes, mounts


def content_origin(name, spec):
    if spec.exposure_mode == "route" and spec.route_host:
        return f"https://{spec.route_host}"
    if spec.exposure_mode == "ingress" and spec.ingress_host:
        return f"http://{spec.ingress_host}"
    return f"http://{name}-web-svc:{WEB_SERVICE_PORT}"


def pulp_env(name, spec):
    secret_name = database_secret_name(name, spec)
    settings = spec.pulp_settings
    env = [
        kubernetes.client.V1EnvVar(name="PULP_API_ROOT", value=settings.api_root),
        kubernetes.client.V1EnvVar(
            name="PULP_CONTENT_PATH_PREFIX", value=settings.content_path_prefix
        ),
        kubernetes.client.V1EnvVar(
            name="PULP_CONTENT_ORIGIN", value=content_origin(name, spec)
        ),
    ]
    for setting, key in (
        ("HOST", "host"),
        ("PORT", "port"),
        ("NAME", "database"),
        ("USER", "username"),
        ("PASSWORD", "password"),
    ):
        env.append(_secret_env(f"PULP_DATABASES__default__{setting}", secret_name, key))
    return env


def _pulp_probes(component, spec):
    if component == "api":
        probe = kubernetes.client.V1Probe(
            http_get=kubernetes.client.V1HTTPGetAction(
                path=f"{spec.pulp_settings.api_root}api/v3/status/", port=API_PORT
            ),
            initial_delay_seconds=60,
            period_seconds=10,
            timeout_seconds=10,
            failure_threshold=8,
            success_threshold=1,
        )
        return probe, probe
    if component == "content":
        probe = kubernetes.client.V1Probe(
            tcp_socket=kubernetes.client.V1TCPSocketAction(port=CONTENT_PORT),
            initial_delay_seconds=30,
            period_seconds=10,
            timeout_seconds=5,
            failure_threshold=6,
            success_threshold=1,
        )
        return probe, probe
    return None, None


def pulp_deployment(name, namespace, spec, facts, component, service_account=None):
    """ Build the Deployment of the api, content or worker component.

    Args:
        component: one of 'api', 'content', 'worker'
    """
    labels = component_labels(name, spec.deployment_type, component)
    component_spec = getattr(spec, component)
    volumes, mounts = file_storage_volumes(name, spec, facts)
    readiness, liveness = _pulp_probes(component, spec)

    ports = None
    if component == "api":
        ports = [
            kubernetes.client.V1ContainerPort(
                container_port=API_PORT, name=API_PORT_NAME, protocol="TCP"
            )
        ]
    elif component == "content":
        ports = [
            kubernetes.client.V1ContainerPort(
                container_port=CONTENT_PORT, name=CONTENT_PORT_NAME, protocol="TCP"
            )
        ]

    env_from = None
    if spec.object_storage_secret:
        env_from = [
            kubernetes.client.V1EnvFromSource(
                secret_ref=kubernetes.client.V1SecretEnvSource(
                    name=spec.object_storage_secret
                )
            )
        ]

    container = kubernetes.client.V1Container(
        name=component,
        image=f"{spec.image}:{spec.image_version}",
        command=PULP_COMMANDS[component],
        env=pulp_env(name, spec),
        env_from=env_from,
        ports=ports,
        readiness_probe=readiness,
        liveness_probe=liveness,
        volume_mounts=mounts,
        resources=_resources(component_spec.resource_requirements),
    )

    return kubernetes.client.V1Deployment(
        metadata=kubernetes.client.V1ObjectMeta(
            name=f"{name}-{component}", namespace=namespace, labels=labels
        ),
        spec=kubernetes.client.V1DeploymentSpec(
            replicas=component_spec.replicas,
            selector=kubernetes.client.V1LabelSelector(match_labels=labels),
            template=kubernetes.client.V1PodTemplateSpec(
                metadata=kubernetes.client.V1ObjectMeta(labels=labels),
                spec=kubernetes.client.V1PodSpec(
                    service_account_name=service_account_name(spec, service_account),
                    containers=[container],
                    volumes=volumes,
                    restart_policy="Always",
                ),
            ),
        ),
    )


def web_deployment(name, namespace, spec, service_account=None):
    labels = component_labels(name, spec.deployment_type, "web")
    probe = kubernetes.client.V1Probe(
        tcp_socket=kubernetes.client.V1TCPSocketAction(port=WEB_PORT),
        initial_delay_seconds=10,
        period_seconds=10,
        timeout_seconds=5,
        failure_threshold=6,
        success_threshold=1,
    )
    container = kubernetes.client.V1Container(
        name="web",
        image=f"{spec.image_web}:{spec.image_web_version}",
        ports=[
            kubernetes.client.V1ContainerPort(
                container_port=WEB_PORT, name=WEB_PORT_NAME, protocol="TCP"
            )
        ],
        readiness_probe=probe,
        liveness_probe=probe,
        resources=_resources(spec.web.resource_requirements),
    )
    return kubernetes.client.V1Deployment(
        metadata=kubernetes.client.V1ObjectMeta(
            name=f"{name}-web", namespace=namespace, labels=labels
        ),
        spec=kubernetes.client.V1DeploymentSpec(
            replicas=spec.web.replicas,
            selector=kubernetes.client.V1LabelSelector(match_labels=labels),
            template=kubernetes.client.V1PodTemplateSpec(
                metadata=kubernetes.client.V1ObjectMeta(labels=labels),
                spec=kubernetes.client.V1PodSpec(
                    service_account_name=service_account_name(spec, service_account),
                    containers=[container],
                    restart_policy="Always",
                ),
            ),
        ),
    )


def component_service(name, namespace, spec, component):
    """Service in front of the api, content or web component."""
    labels = component_labels(name, spec.deployment_type, component)
    service_type = None
    node_port = None
    if component == "api":
        port = kubernetes.client.V1ServicePort(
            name=API_PORT_NAME, port=API_PORT, target_port=API_PORT, protocol="TCP"
        )
    elif component == "content":
        port = kubernetes.client.V1ServicePort(
            name=CONTENT_PORT_NAME,
            port=CONTENT_PORT,
            target_port=CONTENT_PORT,
            protocol="TCP",
        )
    else:
        if spec.exposure_mode == "nodeport":
            service_type = "NodePort"
            node_port = spec.node_port
        else:
            service_type = "ClusterIP"
        port = kubernetes.client.V1ServicePort(
            name=WEB_PORT_NAME,
            port=WEB_SERVICE_PORT,
            target_port=WEB_PORT,
            protocol="TCP",
            node_port=node_port,
        )

    return kubernetes.client.V1Service(
        metadata=kubernetes.client.V1ObjectMeta(
            name=f"{name}-{component}-svc", namespace=namespace, labels=labels
        ),
        spec=kubernetes.client.V1ServiceSpec(
            type=service_type, selector=labels, ports=[port]
        ),
    )


def synthesize(name, namespace, spec, facts, password="", service_account=None):
    """ Build the desired children of a Pulp resource, grouped by subsystem.

    Args:
        name: name of the Pulp resource
        namespace: namespace of the Pulp resource
        spec: validated ``PulpSpec``
        facts: ``EnvironmentFacts`` from the prober
        password: database password used only if the secret has to be created
        service_account: override of the pods' service account

    Returns:
        dict: subsystem name -> list of ``DesiredObject`` in apply order
    """
    desired = {}

    if not facts.external_db:
        desired["Database"] = [
            DesiredObject(
                "secret",
                database_secret_name(name, spec),
                database_secret(name, namespace, spec, password),
            ),
            DesiredObject(
                "statefulset",
                f"{name}-database",
                database_statefulset(name, namespace, spec, facts, service_account),
            ),
            DesiredObject(
                "service", f"{name}-database-svc", database_service(name, namespace, spec)
            ),
        ]

    api = []
    if uses_persistent_file_storage(spec, facts):
        api.append(
            DesiredObject(
                "persistentvolumeclaim",
                f"{name}-file-storage",
                file_storage_claim(name, namespace, spec),
            )
        )
    api.append(
        DesiredObject(
            "deployment",
            f"{name}-api",
            pulp_deployment(name, namespace, spec, facts, "api", service_account),
        )
    )
    api.append(
        DesiredObject(
            "service", f"{name}-api-svc", component_service(name, namespace, spec, "api")
        )
    )
    desired["API"] = api

    desired["Content"] = [
        DesiredObject(
            "deployment",
            f"{name}-content",
            pulp_deployment(name, namespace, spec, facts, "content", service_account),
        ),
        DesiredObject(
            "service",
            f"{name}-content-svc",
            component_service(name, namespace, spec, "content"),
        ),
    ]

    desired["Worker"] = [
        DesiredObject(
            "deployment",
            f"{name}-worker",
            pulp_deployment(name, namespace, spec, facts, "worker", service_account),
        )
    ]

    # route mode exposes api and content directly; no web tier at all
    if spec.exposure_mode != "route":
        desired["Web"] = [
            DesiredObject(
                "deployment",
                f"{name}-web",
                web_deployment(name, namespace, spec, service_account),
            ),
            DesiredObject(
                "service", f"{name}-web-svc", component_service(name, namespace, spec, "web")
            ),
        ]

    return desired
