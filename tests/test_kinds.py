from unittest.mock import MagicMock

import kubernetes
import pytest
from kubernetes.client.exceptions import ApiException

from pulp_operator.kinds import ChildKind, KindRegistry
from pulp_operator.kinds.builtin import ROUTE_GROUP, ROUTE_PLURAL, ROUTE_VERSION


@pytest.fixture
def registry():
    return KindRegistry(MagicMock())


class TestKindRegistry:
    def test_builtin_kinds(self, registry):
        assert registry.list_kind_names() == [
            "secret",
            "persistentvolumeclaim",
            "statefulset",
            "deployment",
            "service",
            "ingress",
            "route",
        ]
        assert all(isinstance(registry.get(key), ChildKind) for key in registry.list_kind_names())

    def test_unknown_kind(self, registry):
        with pytest.raises(KeyError):
            registry.get("configmap")

    def test_rejects_non_kind(self, registry):
        assert not registry.register_kind("configmap", object())

    def test_rejects_duplicate_key(self, registry):
        assert not registry.register_kind("secret", registry.get("deployment"))


class TestBuiltinKinds:
    """Each kind talks to its own typed API."""

    def test_statefulset_calls_apps_api(self, registry):
        kind = registry.get("statefulset")
        kind.replace("db", "default", {"spec": {}})
        kind.clients.apps.replace_namespaced_stateful_set.assert_called_once_with(
            name="db", namespace="default", body={"spec": {}}
        )

    def test_ingress_calls_networking_api(self, registry):
        kind = registry.get("ingress")
        kind.create("default", {"metadata": {"name": "pulp"}})
        kind.clients.networking.create_namespaced_ingress.assert_called_once_with(
            namespace="default", body={"metadata": {"name": "pulp"}}
        )

    def test_route_uses_custom_objects(self, registry):
        kind = registry.get("route")
        kind.delete("pulp", "default")
        kind.clients.custom.delete_namespaced_custom_object.assert_called_once_with(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace="default",
            plural=ROUTE_PLURAL,
            name="pulp",
        )

    def test_fetch_returns_plain_dict(self, registry):
        kind = registry.get("service")
        kind.clients.core.read_namespaced_service.return_value = kubernetes.client.V1Service(
            metadata=kubernetes.client.V1ObjectMeta(name="pulp-api-svc", resource_version="7")
        )

        assert kind.fetch("pulp-api-svc", "default") == {
            "metadata": {"name": "pulp-api-svc", "resourceVersion": "7"}
        }

    def test_compare_only_tracked_fields(self, registry):
        kind = registry.get("service")
        desired = {"metadata": {"labels": {"a": "b"}}, "spec": {"ports": [{"port": 80}]}}
        live = {"metadata": {"labels": {}}, "spec": {"ports": [{"port": 80}], "clusterIP": "10.0.0.1"}}

        assert kind.compare(desired, live)

    def test_merge_keeps_untracked_fields(self, registry):
        kind = registry.get("deployment")
        desired = {"spec": {"replicas": 1, "template": {"spec": {"containers": []}}}}
        live = {
            "metadata": {"resourceVersion": "3"},
            "spec": {"replicas": 3, "template": {"spec": {"containers": [{"name": "x"}]}}},
            "status": {"readyReplicas": 3},
        }

        merged = kind.merge(desired, live)

        assert merged["spec"]["replicas"] == 1
        assert merged["spec"]["template"] == {"spec": {"containers": []}}
        assert merged["metadata"] == {"resourceVersion": "3"}
        assert merged["status"] == {"readyReplicas": 3}
        assert live["spec"]["replicas"] == 3

    def test_create_only_kinds(self, registry):
        for key in ("secret", "persistentvolumeclaim"):
            assert registry.get(key).compare({"spec": {"a": 1}}, {"spec": {"a": 2}})

    def test_merge_keeps_annotations_set_by_others(self, registry):
        kind = registry.get("ingress")
        desired = {
            "metadata": {"annotations": {"nginx.ingress.kubernetes.io/proxy-body-size": "0"}},
            "spec": {"rules": []},
        }
        live = {
            "metadata": {
                "annotations": {
                    "nginx.ingress.kubernetes.io/proxy-body-size": "10m",
                    "cert-manager.io/cluster-issuer": "letsencrypt",
                }
            },
            "spec": {"rules": [{"host": "old"}]},
        }

        assert not kind.compare(desired, live)
        merged = kind.merge(desired, live)

        assert merged["metadata"]["annotations"] == {
            "nginx.ingress.kubernetes.io/proxy-body-size": "0",
            "cert-manager.io/cluster-issuer": "letsencrypt",
        }
        assert merged["spec"] == {"rules": []}
        assert kind.compare(desired, merged)

    def test_extra_annotations_are_not_drift(self, registry):
        kind = registry.get("route")
        desired = {"metadata": {"annotations": {"haproxy.router.openshift.io/timeout": "300s"}}}
        live = {
            "metadata": {
                "annotations": {
                    "haproxy.router.openshift.io/timeout": "300s",
                    "openshift.io/host.generated": "true",
                }
            }
        }

        assert kind.compare(desired, live)


class TestRouteListing:
    def test_lists_names_by_selector(self, registry):
        kind = registry.get("route")
        kind.clients.custom.list_namespaced_custom_object.return_value = {
            "items": [{"metadata": {"name": "pulp"}}, {"metadata": {"name": "pulp-content"}}]
        }

        assert kind.list_names("default", "pulp_cr=pulp") == ["pulp", "pulp-content"]
        kind.clients.custom.list_namespaced_custom_object.assert_called_once_with(
            group=ROUTE_GROUP,
            version=ROUTE_VERSION,
            namespace="default",
            plural=ROUTE_PLURAL,
            label_selector="pulp_cr=pulp",
        )

    def test_missing_route_api_lists_nothing(self, registry):
        kind = registry.get("route")
        kind.clients.custom.list_namespaced_custom_object.side_effect = ApiException(status=404)

        assert kind.list_names("default", "pulp_cr=pulp") == []

    def test_other_errors_propagate(self, registry):
        kind = registry.get("route")
        kind.clients.custom.list_namespaced_custom_object.side_effect = ApiException(status=403)

        with pytest.raises(ApiException):
            kind.list_names("default", "pulp_cr=pulp")
