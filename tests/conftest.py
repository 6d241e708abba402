import copy
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from .fakes import PULP_NAME, PULP_NAMESPACE, FakeKinds


@pytest.fixture
def pulp_body():
    return {
        "apiVersion": "repo-manager.pulpproject.org/v1alpha1",
        "kind": "Pulp",
        "metadata": {"name": PULP_NAME, "namespace": PULP_NAMESPACE, "uid": "uid-1234"},
        "spec": {
            "deployment_type": "pulp",
            "api": {"replicas": 1},
            "content": {"replicas": 1},
            "worker": {"replicas": 1},
            "web": {"replicas": 1},
            "database": {"postgres_storage_requirements": "5Gi"},
            "file_storage_access_mode": "ReadWriteOnce",
            "file_storage_size": "2Gi",
            "ingress_type": "nodeport",
            "pulp_settings": {"api_root": "/pulp/"},
        },
        "status": {},
    }


@pytest.fixture
def mock_clients(pulp_body):
    """Cluster clients whose status patches land back on ``pulp_body``."""
    clients = MagicMock()
    clients.storage.list_storage_class.return_value = SimpleNamespace(items=[])
    clients.core.list_namespaced_pod.return_value = SimpleNamespace(items=[])

    def patch_status(**kwargs):
        pulp_body["status"] = copy.deepcopy(kwargs["body"]["status"])

    clients.custom.patch_namespaced_custom_object_status.side_effect = patch_status
    return clients


@pytest.fixture
def fake_kinds():
    return FakeKinds()
