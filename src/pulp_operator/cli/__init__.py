import sys
from pathlib import Path

import typer
import yaml
from typing_extensions import Annotated

app = typer.Typer(
    help="Pulp operator: reconciles Pulp custom resources",
    add_completion=False,
)


@app.command("operator")
def run_operator():
    """Run the Kubernetes operator (connects to cluster)."""
    from pulp_operator.main import main

    main()


@app.command("generate-crds")
def generate_crds(
    output: Annotated[
        str, typer.Option("-o", "--output", help="Output directory")
    ] = "crds/generated",
    force: Annotated[bool, typer.Option("--force", help="Force regeneration")] = False,
):
    """Generate CRD YAML files from pydantic models."""
    from pulp_operator.crd.generator import PulpCRDManager

    output_dir = Path(output)
    manager = PulpCRDManager(output_dir=output_dir)

    try:
        success = manager.generate_all_crds(force=force)
    except Exception as e:
        typer.echo(f"Failed to generate CRDs: {e}")
        sys.exit(1)

    if success:
        typer.echo(f"CRDs generated successfully in {output_dir}")
    else:
        typer.echo("No CRDs generated (models unchanged)")


@app.command("render")
def render(
    resource: Annotated[Path, typer.Argument(help="Pulp resource YAML file")],
    default_storage_class: Annotated[
        bool,
        typer.Option(
            "--default-storage-class", help="Assume the cluster has a default StorageClass"
        ),
    ] = False,
):
    """Print the child manifests the operator would create for a Pulp resource."""
    from pulp_operator.errors import SpecError
    from pulp_operator.kinds.registry import BUILTIN_KINDS
    from pulp_operator.services.clients import to_dict
    from pulp_operator.services.environment import EnvironmentFacts
    from pulp_operator.services.reconciler import parse_spec
    from pulp_operator.services.routes import (
        build_ingress,
        build_routes,
        default_route_descriptors,
    )
    from pulp_operator.services.synthesizer import synthesize

    with open(resource) as f:
        body = yaml.safe_load(f) or {}

    metadata = body.get("metadata") or {}
    name = metadata.get("name", "pulp")
    namespace = metadata.get("namespace", "default")

    try:
        spec = parse_spec(body.get("spec"))
    except SpecError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)

    facts = EnvironmentFacts(
        default_storage_class=default_storage_class,
        object_storage=bool(spec.object_storage_secret),
        external_db=bool(spec.database.external_db_secret),
    )
    manifests = []
    for objects in synthesize(name, namespace, spec, facts, password="<generated>").values():
        for obj in objects:
            kind = BUILTIN_KINDS[obj.kind]
            manifest = {"apiVersion": kind.api_version, "kind": kind.kind}
            manifest.update(to_dict(obj.body))
            manifests.append(manifest)

    # plugin routes are only known at runtime
    descriptors = default_route_descriptors(name, spec)
    if spec.exposure_mode == "ingress":
        ingress = {"apiVersion": "networking.k8s.io/v1", "kind": "Ingress"}
        ingress.update(to_dict(build_ingress(name, namespace, spec, descriptors)))
        manifests.append(ingress)
    elif spec.exposure_mode == "route":
        manifests.extend(build_routes(name, namespace, spec, descriptors))

    typer.echo(yaml.safe_dump_all(manifests, sort_keys=False))
