"""Operator configuration read from the environment."""

import os


def get_env_or_none(key):
    value = os.environ.get(key, "")
    return value if value else None


def get_operator_config():
    """Get operator settings from the deployment's environment."""
    return {
        "workerLimit": int(os.getenv("WORKER_LIMIT", "5")),
        "postingEnabled": os.getenv("POSTING_ENABLED", "true").lower() == "true",
        "serverTimeout": int(os.getenv("SERVER_TIMEOUT", "60")),
        "resyncInterval": float(os.getenv("RESYNC_INTERVAL", "30")),
        "requeueDelay": float(os.getenv("REQUEUE_DELAY", "5")),
        "serviceAccount": get_env_or_none("OPERATOR_SERVICE_ACCOUNT"),  # None = <type>-operator-controller-manager
        "routePathsCommand": os.getenv("ROUTE_PATHS_COMMAND", "/usr/bin/route_paths.py"),
    }


def should_manage_crds() -> bool:
    """Determine if operator should manage CRDs directly."""
    return os.getenv("MANAGE_CRDS", "true").lower() == "true"


def should_generate_crd_files() -> bool:
    """Determine if operator should generate CRD YAML files."""
    return os.getenv("GENERATE_CRD_FILES", "false").lower() == "true"
