"""CRD generation from the registered pydantic models."""

import hashlib
import json
import logging
from pathlib import Path
import yaml

from kubernetes.client.exceptions import ApiException

from .base import CRDStatus
from .registry import CRDRegistry

logger = logging.getLogger(__name__)

class OpenAPIConverter:
    """Convert pydantic schemas to OpenAPI v3 compatible schemas for CRDs."""

    @staticmethod
    def convert_schema(pydantic_schema):
        """Convert pydantic JSON schema to OpenAPI v3 schema for Kubernetes CRDs."""
        openapi_schema = {"type": "object", "properties": {}}

        if "properties" in pydantic_schema:
            openapi_schema["properties"] = OpenAPIConverter._convert_properties(
                pydantic_schema["properties"], pydantic_schema.get("$defs", {})
            )

        if "required" in pydantic_schema:
            openapi_schema["required"] = pydantic_schema["required"]

        return openapi_schema

    @staticmethod
    def _convert_properties(properties, property_defs):
        """Convert properties recursively."""
        return {
            prop_name: OpenAPIConverter._convert_property(prop_schema, property_defs)
            for prop_name, prop_schema in properties.items()
        }

    @staticmethod
    def _convert_property(prop_schema, defs):
        """Convert a single property schema."""
        if "$ref" in prop_schema:
            def_name = prop_schema["$ref"].replace("#/$defs/", "")
            if def_name in defs:
                return OpenAPIConverter._convert_property(defs[def_name], defs)

        # Optional[X] comes out of pydantic as anyOf [X, null]
        if "anyOf" in prop_schema:
            variants = [v for v in prop_schema["anyOf"] if v.get("type") != "null"]
            if len(variants) == 1:
                converted = OpenAPIConverter._convert_property(variants[0], defs)
                converted["nullable"] = True
                if "description" in prop_schema:
                    converted["description"] = prop_schema["description"]
                return converted

        if prop_schema.get("type") == "array":
            converted = {"type": "array"}
            if "items" in prop_schema:
                converted["items"] = OpenAPIConverter._convert_property(
                    prop_schema["items"], defs
                )
            return converted

        if prop_schema.get("type") == "object":
            converted = {"type": "object"}
            if "properties" in prop_schema:
                converted["properties"] = OpenAPIConverter._convert_properties(
                    prop_schema["properties"], defs
                )
            if "required" in prop_schema:
                converted["required"] = prop_schema["required"]
            converted["x-kubernetes-preserve-unknown-fields"] = True
            return converted

        result = {}
        for key in ("type", "description", "default", "enum"):
            if key in prop_schema:
                result[key] = prop_schema[key]

        if not result.get("type"):
            result["type"] = "object"
            result["x-kubernetes-preserve-unknown-fields"] = True

        return result


class PulpCRDManager:
    """Generates CRD manifests and applies them to the cluster."""

    def __init__(self, output_dir=None):
        self.output_dir = output_dir or Path("crds/generated")
        self.converter = OpenAPIConverter()

    def generate_all_crds(self, force=False):
        """Generate CRDs only if models changed.

        Returns:
            bool: True if CRDs were generated/updated, False if no changes needed
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        current_hash = self._calculate_models_hash()
        hash_file = self.output_dir / ".models_hash"

        if not force and hash_file.exists():
            if hash_file.read_text().strip() == current_hash:
                logger.info("CRD models unchanged, skipping generation")
                return False

        crds = self.get_crds_as_dict()
        if not crds:
            logger.warning("No CRD models found to generate")
            return False

        generated_files = []
        for crd_name, crd_def in crds.items():
            filename = f"{crd_name}.yaml"
            with open(self.output_dir / filename, "w") as f:
                yaml.dump(crd_def, f, default_flow_style=False, sort_keys=False)
            generated_files.append(filename)
            logger.info(f"Generated CRD: {filename}")

        kustomization = {
            "apiVersion": "kustomize.config.k8s.io/v1beta1",
            "kind": "Kustomization",
            "resources": sorted(generated_files),
        }
        with open(self.output_dir / "kustomization.yaml", "w") as f:
            yaml.dump(kustomization, f, default_flow_style=False)

        hash_file.write_text(current_hash)
        logger.info(f"Generated {len(generated_files)} CRD files")
        return True

    def generate_crd_definition(self, model_info):
        """Generate a single CRD definition from model info."""
        model_class = model_info["model"]
        group = model_info["group"]
        plural = model_info["plural"]
        singular = model_info["singular"]

        openapi_schema = self.converter.convert_schema(model_class.model_json_schema())
        status_schema = self.converter.convert_schema(CRDStatus.model_json_schema())
        status_schema["x-kubernetes-preserve-unknown-fields"] = True

        return {
            "apiVersion": "apiextensions.k8s.io/v1",
            "kind": "CustomResourceDefinition",
            "metadata": {"name": f"{plural}.{group}"},
            "spec": {
                "group": group,
                "versions": [
                    {
                        "name": model_info["version"],
                        "served": True,
                        "storage": True,
                        "schema": {
                            "openAPIV3Schema": {
                                "type": "object",
                                "properties": {
                                    "spec": openapi_schema,
                                    "status": status_schema,
                                },
                                "required": ["spec"],
                            }
                        },
                        "subresources": {"status": {}},
                    }
                ],
                "scope": model_info["scope"],
                "names": {
                    "plural": plural,
                    "singular": singular,
                    "kind": model_info["kind"],
                },
            },
        }

    def get_crds_as_dict(self):
        """Generate all CRDs as in-memory dictionary objects."""
        CRDRegistry.discover_models()
        crds = {}
        for model_info in CRDRegistry.get_all_models().values():
            crd_def = self.generate_crd_definition(model_info)
            crds[crd_def["metadata"]["name"]] = crd_def
        return crds

    def _calculate_models_hash(self):
        """Calculate hash of all model definitions for change detection."""
        CRDRegistry.discover_models()
        model_data = {
            key: {
                "schema": info["model"].model_json_schema(),
                "group": info["group"],
                "version": info["version"],
                "kind": info["kind"],
                "scope": info["scope"],
            }
            for key, info in sorted(CRDRegistry.get_all_models().items())
        }
        model_json = json.dumps(model_data, sort_keys=True)
        return hashlib.sha256(model_json.encode()).hexdigest()

    def apply_crds_to_cluster(self, extensions_api):
        """Create or replace every CRD on the cluster.

        Args:
            extensions_api: ``ApiextensionsV1Api`` handle
        """
        applied_count = 0
        for crd_name, crd_def in self.get_crds_as_dict().items():
            try:
                existing = extensions_api.read_custom_resource_definition(crd_name)
                crd_def["metadata"]["resourceVersion"] = existing.metadata.resource_version
                extensions_api.replace_custom_resource_definition(
                    name=crd_name, body=crd_def
                )
                logger.info(f"Updated CRD: {crd_name}")
            except ApiException as e:
                if e.status != 404:
                    logger.error(f"Failed to apply CRD {crd_name}: {e}")
                    raise
                extensions_api.create_custom_resource_definition(body=crd_def)
                logger.info(f"Created CRD: {crd_name}")
            applied_count += 1

        logger.info(f"Applied {applied_count} CRDs to cluster")
        return applied_count > 0
