"""CRD Registry for the custom resources served by the operator."""

import importlib
import logging

logger = logging.getLogger(__name__)


class CRDRegistry:
    """Registry of CRD models, filled in by the ``register`` decorator."""

    _models = {}

    @classmethod
    def register(cls, group, version, kind, plural=None, scope="Namespaced"):
        """Decorator to register CRD models.

        Args:
            group: API group (e.g., 'repo-manager.pulpproject.org')
            version: API version (e.g., 'v1alpha1')
            kind: Kind name (e.g., 'Pulp')
            plural: Plural name (defaults to kind.lower() + 's')
            scope: 'Namespaced' or 'Cluster'
        """

        def decorator(model_class):
            if not hasattr(model_class, "__annotations__"):
                raise ValueError(
                    f"CRD model {model_class.__name__} must have type annotations"
                )

            model_class._crd_group = group
            model_class._crd_version = version
            model_class._crd_kind = kind
            model_class._crd_plural = plural or f"{kind.lower()}s"
            model_class._crd_scope = scope

            key = f"{group}/{version}/{kind}"
            cls._models[key] = {
                "model": model_class,
                "group": group,
                "version": version,
                "kind": kind,
                "plural": model_class._crd_plural,
                "scope": scope,
                "singular": kind.lower(),
            }

            logger.debug(f"Registered CRD: {key}")
            return model_class

        return decorator

    @classmethod
    def discover_models(cls, package_paths=None):
        """Import model modules so their decorators run.

        Args:
            package_paths: List of modules to import (e.g., ['pulp_operator.models.pulp'])
        """
        if package_paths is None:
            package_paths = ["pulp_operator.models.pulp"]

        for package_path in package_paths:
            try:
                importlib.import_module(package_path)
            except ImportError as e:
                logger.warning(f"Could not discover models in {package_path}: {e}")

    @classmethod
    def get_all_models(cls):
        """Get all registered CRD models."""
        return cls._models.copy()

    @classmethod
    def get_model_by_key(cls, group, version, kind):
        """Get a specific CRD model by its key."""
        return cls._models.get(f"{group}/{version}/{kind}")
