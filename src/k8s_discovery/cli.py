"""
Command line interface for querying Kubernetes service discovery.

Examples:
    k8s-discovery services --namespace shop
    k8s-discovery instances orders --all-namespaces --primary-port-name grpc
    k8s-discovery --config discovery.yaml instances orders --json
"""

import asyncio
import json
from dataclasses import replace

import click
from rich.console import Console
from rich.table import Table

from .client import KubernetesReactiveDiscoveryClient
from .config import DiscoverySettings, KubernetesDiscoveryProperties
from .exceptions import DiscoveryError
from .fetcher import KubernetesResourceFetcher, create_core_v1_api
from .logger import LogConfig, LogLevel, setup_logging
from .model import ServiceInstance

console = Console()


def _load_properties(
    config_file: str | None,
    namespace: str | None,
    all_namespaces: bool,
    primary_port_name: str | None,
) -> KubernetesDiscoveryProperties:
    if config_file:
        settings = DiscoverySettings.from_yaml(config_file)
    else:
        settings = DiscoverySettings.from_env()

    properties = settings.to_properties()
    overrides = {}
    if namespace:
        overrides["namespace"] = namespace
    if all_namespaces:
        overrides["all_namespaces"] = True
    if primary_port_name:
        overrides["primary_port_name"] = primary_port_name
    return replace(properties, **overrides) if overrides else properties


async def _collect(stream) -> list:
    return [item async for item in stream]


def _instances_table(service_id: str, instances: list[ServiceInstance]) -> Table:
    table = Table(title=f"Instances of {service_id}")
    table.add_column("Instance", style="cyan")
    table.add_column("Namespace")
    table.add_column("URI", style="green")
    table.add_column("Metadata")

    for instance in instances:
        metadata = ", ".join(f"{k}={v}" for k, v in sorted(instance.metadata.items()))
        table.add_row(
            instance.instance_id or "",
            instance.namespace or "",
            instance.uri,
            metadata,
        )
    return table


@click.group()
@click.option(
    "--config", "config_file", type=click.Path(exists=True), help="YAML settings file"
)
@click.option("--namespace", "-n", help="Namespace to query")
@click.option("--all-namespaces", "-A", is_flag=True, help="Query every namespace")
@click.option("--primary-port-name", help="Port name used for multi-port services")
@click.option("--kubeconfig", type=click.Path(), help="Path to the kubeconfig file")
@click.option("--context", "kube_context", help="Kubeconfig context to use")
@click.option("--in-cluster", is_flag=True, help="Use the in-cluster service account")
@click.option(
    "--log-level",
    type=click.Choice([level.value for level in LogLevel], case_sensitive=False),
    default=LogLevel.WARNING.value,
)
@click.pass_context
def main(
    ctx,
    config_file,
    namespace,
    all_namespaces,
    primary_port_name,
    kubeconfig,
    kube_context,
    in_cluster,
    log_level,
):
    """Discover services and instances from a Kubernetes cluster."""
    setup_logging(LogConfig(level=LogLevel(log_level.upper())))

    try:
        properties = _load_properties(
            config_file, namespace, all_namespaces, primary_port_name
        )
    except DiscoveryError as e:
        raise click.ClickException(str(e))

    ctx.ensure_object(dict)
    ctx.obj["properties"] = properties
    ctx.obj["kube"] = {
        "in_cluster": in_cluster,
        "config_file": kubeconfig,
        "context": kube_context,
    }


def _client(ctx) -> KubernetesReactiveDiscoveryClient:
    core_v1 = create_core_v1_api(**ctx.obj["kube"])
    return KubernetesReactiveDiscoveryClient(
        KubernetesResourceFetcher(core_v1), ctx.obj["properties"]
    )


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def services(ctx, as_json):
    """List the names of known services."""
    try:
        client = _client(ctx)
        names = asyncio.run(_collect(client.get_services()))
    except DiscoveryError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(names, indent=2))
        return

    table = Table(title=client.description())
    table.add_column("Service", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)


@main.command()
@click.argument("service_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def instances(ctx, service_id, as_json):
    """List the instances of SERVICE_ID."""
    try:
        client = _client(ctx)
        found = asyncio.run(_collect(client.get_instances(service_id)))
    except DiscoveryError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps([i.to_dict() for i in found], indent=2))
        return

    if not found:
        console.print(f"[yellow]No instances found for {service_id}[/yellow]")
        return

    console.print(_instances_table(service_id, found))


if __name__ == "__main__":
    main()
