from types import SimpleNamespace
from unittest.mock import MagicMock

import yaml
from kubernetes.client.exceptions import ApiException

from pulp_operator.crd.generator import PulpCRDManager

CRD_NAME = "pulps.repo-manager.pulpproject.org"


class TestCRDGeneration:
    def test_pulp_crd_definition(self, tmp_path):
        crd = PulpCRDManager(output_dir=tmp_path).get_crds_as_dict()[CRD_NAME]

        assert crd["spec"]["group"] == "repo-manager.pulpproject.org"
        assert crd["spec"]["names"]["kind"] == "Pulp"
        assert crd["spec"]["scope"] == "Namespaced"
        version = crd["spec"]["versions"][0]
        assert version["name"] == "v1alpha1"
        assert version["subresources"] == {"status": {}}

        spec_schema = version["schema"]["openAPIV3Schema"]["properties"]["spec"]
        assert spec_schema["properties"]["ingress_type"]["type"] == "string"
        assert spec_schema["properties"]["api"]["properties"]["replicas"]["type"] == "integer"
        assert spec_schema["properties"]["route_host"]["nullable"] is True

        status_schema = version["schema"]["openAPIV3Schema"]["properties"]["status"]
        conditions = status_schema["properties"]["conditions"]
        assert conditions["type"] == "array"
        assert conditions["items"]["properties"]["reason"]["type"] == "string"
        assert status_schema["x-kubernetes-preserve-unknown-fields"] is True

    def test_files_written_once_until_models_change(self, tmp_path):
        manager = PulpCRDManager(output_dir=tmp_path)

        assert manager.generate_all_crds() is True
        assert manager.generate_all_crds() is False
        assert manager.generate_all_crds(force=True) is True

        kustomization = yaml.safe_load((tmp_path / "kustomization.yaml").read_text())
        assert kustomization["resources"] == [f"{CRD_NAME}.yaml"]
        crd = yaml.safe_load((tmp_path / f"{CRD_NAME}.yaml").read_text())
        assert crd["kind"] == "CustomResourceDefinition"


class TestApplyCRDs:
    def test_creates_missing_crd(self, tmp_path):
        api = MagicMock()
        api.read_custom_resource_definition.side_effect = ApiException(status=404)

        assert PulpCRDManager(output_dir=tmp_path).apply_crds_to_cluster(api)
        api.create_custom_resource_definition.assert_called_once()
        api.replace_custom_resource_definition.assert_not_called()

    def test_replaces_existing_crd(self, tmp_path):
        api = MagicMock()
        api.read_custom_resource_definition.return_value = SimpleNamespace(
            metadata=SimpleNamespace(resource_version="42")
        )

        PulpCRDManager(output_dir=tmp_path).apply_crds_to_cluster(api)
        body = api.replace_custom_resource_definition.call_args.kwargs["body"]
        assert body["metadata"]["resourceVersion"] == "42"
        api.create_custom_resource_definition.assert_not_called()
