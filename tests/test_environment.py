from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from pulp_operator.services.environment import (
    EnvironmentFacts,
    is_default_storage_class_defined,
    probe_environment,
)
from pulp_operator.services.reconciler import parse_spec


def storage_class(name, annotations=None):
    return SimpleNamespace(metadata=SimpleNamespace(name=name, annotations=annotations))


@pytest.fixture
def clients():
    clients = MagicMock()
    clients.storage.list_storage_class.return_value = SimpleNamespace(items=[])
    return clients


class TestDefaultStorageClass:
    def test_none_defined(self, clients):
        clients.storage.list_storage_class.return_value = SimpleNamespace(
            items=[storage_class("slow"), storage_class("fast", {"team": "infra"})]
        )
        assert not is_default_storage_class_defined(clients.storage)

    @pytest.mark.parametrize(
        "annotation",
        [
            "storageclass.kubernetes.io/is-default-class",
            "storageclass.beta.kubernetes.io/is-default-class",
        ],
    )
    def test_annotated_default(self, clients, annotation):
        clients.storage.list_storage_class.return_value = SimpleNamespace(
            items=[storage_class("standard", {annotation: "true"})]
        )
        assert is_default_storage_class_defined(clients.storage)

    def test_annotation_set_to_false(self, clients):
        clients.storage.list_storage_class.return_value = SimpleNamespace(
            items=[storage_class("standard", {"storageclass.kubernetes.io/is-default-class": "false"})]
        )
        assert not is_default_storage_class_defined(clients.storage)


class TestProbeEnvironment:
    def test_defaults(self, clients):
        assert probe_environment(parse_spec({}), clients) == EnvironmentFacts()

    def test_external_services(self, clients):
        spec = parse_spec(
            {"object_storage_s3_secret": "s3", "database": {"external_db_secret": "db"}}
        )

        facts = probe_environment(spec, clients)

        assert facts == EnvironmentFacts(object_storage=True, external_db=True)
        clients.storage.list_storage_class.assert_not_called()

    def test_explicit_classes_skip_listing(self, clients):
        spec = parse_spec(
            {"file_storage_class": "nfs", "database": {"postgres_storage_class": "ssd"}}
        )

        probe_environment(spec, clients)

        clients.storage.list_storage_class.assert_not_called()
