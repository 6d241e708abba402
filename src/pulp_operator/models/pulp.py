"""Pulp CRD models."""

from pydantic import Field, model_validator
from typing import Optional, Dict, Any

from pulp_operator.crd.registry import CRDRegistry
from pulp_operator.crd.base import CRDSpec

GROUP = "repo-manager.pulpproject.org"
VERSION = "v1alpha1"
KIND = "Pulp"
PLURAL = "pulps"

INGRESS_TYPES = ("nodeport", "ingress", "route")


class ComponentSpec(CRDSpec):
    """Replica count and resources for one pulp component."""

    replicas: int = Field(default=1, ge=0, description="Number of pod replicas")
    resource_requirements: Optional[Dict[str, Any]] = Field(
        default=None, description="Container resource requests and limits"
    )


class DatabaseSpec(CRDSpec):
    """Database configuration, either self-managed or external."""

    postgres_image: str = Field(
        default="postgres:13", description="Image of the self-managed database"
    )
    postgres_storage_requirements: str = Field(
        default="8Gi", description="Size of the database volume"
    )
    postgres_storage_class: Optional[str] = Field(
        default=None, description="StorageClass of the database volume"
    )
    external_db_secret: Optional[str] = Field(
        default=None,
        description="Secret holding the connection details of an external database",
    )
    resource_requirements: Optional[Dict[str, Any]] = Field(
        default=None, description="Database container resources"
    )


class PulpSettings(CRDSpec):
    """Application settings passed down to the pulp containers."""

    api_root: str = Field(default="/pulp/", description="Root path of the REST API")
    content_path_prefix: str = Field(
        default="/pulp/content/", description="Path prefix of the content app"
    )


@CRDRegistry.register(GROUP, VERSION, KIND, PLURAL)
class PulpSpec(CRDSpec):
    """Pulp CRD specification."""

    deployment_type: str = Field(
        default="pulp", description="Name used for labels, conditions and accounts"
    )
    image: str = Field(default="quay.io/pulp/pulp-minimal", description="Pulp image")
    image_version: str = Field(default="stable", description="Pulp image tag")
    image_web: str = Field(default="quay.io/pulp/pulp-web", description="Web image")
    image_web_version: str = Field(default="stable", description="Web image tag")

    api: ComponentSpec = Field(default_factory=ComponentSpec)
    content: ComponentSpec = Field(default_factory=ComponentSpec)
    worker: ComponentSpec = Field(default_factory=ComponentSpec)
    web: ComponentSpec = Field(default_factory=ComponentSpec)
    database: DatabaseSpec = Field(default_factory=DatabaseSpec)

    file_storage_access_mode: str = Field(
        default="ReadWriteOnce", description="Access mode of the file storage claim"
    )
    file_storage_size: str = Field(default="2Gi", description="Size of the file storage")
    file_storage_class: Optional[str] = Field(
        default=None, description="StorageClass of the file storage claim"
    )
    object_storage_s3_secret: Optional[str] = Field(
        default=None, description="Secret with S3 object storage credentials"
    )
    object_storage_azure_secret: Optional[str] = Field(
        default=None, description="Secret with Azure blob storage credentials"
    )

    ingress_type: str = Field(
        default="nodeport", description="Exposure mode (nodeport, ingress or route)"
    )
    ingress_host: Optional[str] = Field(default=None, description="Ingress host name")
    ingress_class_name: Optional[str] = Field(
        default=None, description="IngressClass to use"
    )
    route_host: Optional[str] = Field(default=None, description="Route host name")
    node_port: Optional[int] = Field(
        default=None, description="Fixed node port of the web service"
    )
    haproxy_timeout: Optional[str] = Field(
        default="180s", description="Upstream timeout of the router"
    )

    pulp_settings: PulpSettings = Field(default_factory=PulpSettings)

    @model_validator(mode="after")
    def check_exclusive_options(self):
        if self.ingress_type.lower() not in INGRESS_TYPES:
            raise ValueError(
                f"ingress_type must be one of {', '.join(INGRESS_TYPES)}, "
                f"got {self.ingress_type!r}"
            )
        if self.object_storage_s3_secret and self.object_storage_azure_secret:
            raise ValueError("only one object storage secret can be configured")
        if self.object_storage_secret and self.file_storage_class:
            raise ValueError(
                "file_storage_class and object storage are mutually exclusive"
            )
        if self.database.external_db_secret and self.database.postgres_storage_class:
            raise ValueError(
                "database.postgres_storage_class and database.external_db_secret "
                "are mutually exclusive"
            )
        return self

    @property
    def object_storage_secret(self):
        return self.object_storage_s3_secret or self.object_storage_azure_secret

    @property
    def exposure_mode(self):
        return self.ingress_type.lower()
