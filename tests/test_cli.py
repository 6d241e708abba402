import yaml
from typer.testing import CliRunner

from pulp_operator.cli import app

runner = CliRunner()


def write_resource(tmp_path, spec):
    path = tmp_path / "pulp.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "apiVersion": "repo-manager.pulpproject.org/v1alpha1",
                "kind": "Pulp",
                "metadata": {"name": "example-pulp", "namespace": "pulp"},
                "spec": spec,
            }
        )
    )
    return path


def rendered(result):
    return [doc for doc in yaml.safe_load_all(result.output) if doc]


class TestRender:
    def test_nodeport_manifests(self, tmp_path):
        result = runner.invoke(app, ["render", str(write_resource(tmp_path, {}))])

        assert result.exit_code == 0, result.output
        docs = rendered(result)
        kinds = [(d["kind"], d["metadata"]["name"]) for d in docs]
        assert ("StatefulSet", "example-pulp-database") in kinds
        assert ("Deployment", "example-pulp-web") in kinds
        assert all(d["metadata"]["namespace"] == "pulp" for d in docs)

        sts = next(d for d in docs if d["kind"] == "StatefulSet")
        assert sts["apiVersion"] == "apps/v1"
        assert sts["spec"]["template"]["spec"]["volumes"][0]["emptyDir"] == {}

    def test_default_storage_class_flag(self, tmp_path):
        result = runner.invoke(
            app, ["render", str(write_resource(tmp_path, {})), "--default-storage-class"]
        )

        assert result.exit_code == 0, result.output
        kinds = [d["kind"] for d in rendered(result)]
        assert "PersistentVolumeClaim" in kinds

    def test_route_mode(self, tmp_path):
        result = runner.invoke(
            app, ["render", str(write_resource(tmp_path, {"ingress_type": "route"}))]
        )

        assert result.exit_code == 0, result.output
        routes = [d for d in rendered(result) if d["kind"] == "Route"]
        assert len(routes) == 4

    def test_invalid_resource(self, tmp_path):
        result = runner.invoke(
            app, ["render", str(write_resource(tmp_path, {"ingress_type": "bogus"}))]
        )
        assert result.exit_code == 1


class TestGenerateCRDs:
    def test_writes_crd_files(self, tmp_path):
        result = runner.invoke(app, ["generate-crds", "-o", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "pulps.repo-manager.pulpproject.org.yaml").exists()
