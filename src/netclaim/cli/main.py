"""
netclaim CLI entry point.

Usage:
    netclaim [OPTIONS] COMMAND [ARGS]...

Commands:
    reconcile   Run one reconcile pass for a machine or load balancer
    run         Run the controller loop against the cluster
    pools       List IP pools
    providers   List registered IPAM provider types
    claim-name  Print the IP claim name for a device
    version     Show version information
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
import yaml

from netclaim.config import config
from netclaim.models.enums import LogLevel, ReconcileStatus
from netclaim.models.resources import AddressPool, ObjectRef, parse_resource
from netclaim.cli.output import console, format_pool_table, print_error, print_result
from netclaim.exceptions import NetClaimError
from netclaim.naming import claim_name
from netclaim.utils.logger import configure_logging

app = typer.Typer(
    name="netclaim",
    help="Static IP assignment for cluster machines from IPAM pools",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

KIND_ALIASES = {
    "vspheremachine": "VSphereMachine",
    "machine": "VSphereMachine",
    "vm": "VSphereMachine",
    "haproxyloadbalancer": "HAProxyLoadBalancer",
    "loadbalancer": "HAProxyLoadBalancer",
    "lb": "HAProxyLoadBalancer",
}


def resolve_kind(kind: str) -> str:
    """Map a user-supplied kind or alias to the resource kind."""
    resolved = KIND_ALIASES.get(kind.lower())
    if resolved is None:
        raise typer.BadParameter(
            f"unknown kind {kind!r} (use one of: {', '.join(sorted(KIND_ALIASES))})"
        )
    return resolved


def parse_labels(values: list[str] | None) -> dict[str, str]:
    labels = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"label must be key=value, got {item!r}")
        labels[key] = value
    return labels


def _kube_store():
    from netclaim.store.kube import KubernetesObjectStore

    return KubernetesObjectStore()


@app.callback()
def main(
    log_level: Annotated[
        LogLevel | None,
        typer.Option("--log-level", "-L", help="Log level", envvar="NETCLAIM_LOG_LEVEL"),
    ] = None,
    kubeconfig: Annotated[
        str | None,
        typer.Option("--kubeconfig", help="Path to kubeconfig", envvar="KUBECONFIG"),
    ] = None,
    context: Annotated[
        str | None, typer.Option("--context", help="Kubeconfig context")
    ] = None,
    in_cluster: Annotated[
        bool, typer.Option("--in-cluster", help="Use in-cluster service account")
    ] = False,
    provider: Annotated[
        str | None, typer.Option("--provider", "-p", help="IPAM provider type")
    ] = None,
):
    """
    netclaim: assign static IPs to VSphereMachine and HAProxyLoadBalancer devices.
    """
    config.load_from_env()
    if log_level:
        config.LOG_LEVEL = log_level
    if kubeconfig:
        config.KUBECONFIG = kubeconfig
    if context:
        config.KUBE_CONTEXT = context
    if in_cluster:
        config.IN_CLUSTER = True
    if provider:
        config.IPAM_PROVIDER = provider

    configure_logging(config.LOG_LEVEL, config.LOG_FILE)


@app.command("reconcile")
def reconcile_cmd(
    kind: Annotated[str, typer.Argument(help="vspheremachine | haproxyloadbalancer")],
    name: Annotated[str, typer.Argument(help="Object name")],
    namespace: Annotated[
        str, typer.Option("--namespace", "-n", help="Object namespace")
    ] = "default",
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Run offline against a YAML/JSON fixture"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write resulting objects (with --file)"),
    ] = None,
):
    """Run one reconcile pass and report the outcome."""
    from netclaim.reconciler import AddressReconciler
    from netclaim.store.memory import InMemoryObjectStore

    ref = ObjectRef(resolve_kind(kind), namespace, name)

    try:
        store = InMemoryObjectStore.load_file(file) if file else _kube_store()
    except (OSError, yaml.YAMLError, NetClaimError) as e:
        print_error(f"Failed to open object store: {e}")
        raise typer.Exit(1)

    result = AddressReconciler(store).reconcile(ref)
    print_result(ref, result)

    if file and output:
        output.write_text(
            yaml.safe_dump_all(store.dump(), sort_keys=False), encoding="utf-8"
        )
        console.print(f"[dim]Wrote objects to {output}[/dim]")

    if result.status == ReconcileStatus.FAILED:
        raise typer.Exit(1)


@app.command("run")
def run_cmd(
    namespace: Annotated[
        str | None,
        typer.Option("--namespace", "-n", help="Namespace to watch (default: all)"),
    ] = None,
    workers: Annotated[
        int | None, typer.Option("--workers", "-w", help="Worker count", min=1)
    ] = None,
    resync: Annotated[
        float | None,
        typer.Option(
            "--resync", help="Resync interval in seconds (0 = list once at start)", min=0.0
        ),
    ] = None,
):
    """Run the controller loop until interrupted."""
    from netclaim.controller import ReconcileController
    from netclaim.reconciler import AddressReconciler

    if namespace is not None:
        config.NAMESPACE = namespace
    if workers is not None:
        config.WORKER_COUNT = workers
    if resync is not None:
        config.RESYNC_INTERVAL_SECONDS = resync

    try:
        store = _kube_store()
    except NetClaimError as e:
        print_error(f"Failed to connect to cluster: {e}")
        raise typer.Exit(1)

    controller = ReconcileController(AddressReconciler(store), store)
    try:
        asyncio.run(controller.run())
    except KeyboardInterrupt:
        console.print("\n[dim]Controller stopped.[/dim]")


@app.command("pools")
def pools_cmd(
    namespace: Annotated[
        str | None, typer.Option("--namespace", "-n", help="Namespace (default: all)")
    ] = None,
    label: Annotated[
        list[str] | None,
        typer.Option("--label", "-l", help="Label filter key=value (repeatable)"),
    ] = None,
    file: Annotated[
        Path | None, typer.Option("--file", "-f", help="Read from a YAML/JSON fixture")
    ] = None,
):
    """List IP pools and the network settings they hand out."""
    from netclaim.store.memory import InMemoryObjectStore

    labels = parse_labels(label)
    try:
        store = InMemoryObjectStore.load_file(file) if file else _kube_store()
        pools = [
            parse_resource(AddressPool, body, f"IPPool {body['metadata']['name']}")
            for body in store.list("IPPool", namespace=namespace, labels=labels)
        ]
    except (OSError, yaml.YAMLError, NetClaimError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not pools:
        console.print("[yellow]No IP pools found.[/yellow]")
        return

    console.print(format_pool_table(pools))


@app.command("providers")
def providers_cmd():
    """List registered IPAM provider types."""
    from netclaim.ipam import registered_provider_types

    for provider_type in registered_provider_types():
        marker = " [green](active)[/green]" if provider_type == config.IPAM_PROVIDER else ""
        console.print(f"{provider_type}{marker}")


@app.command("claim-name")
def claim_name_cmd(
    name: Annotated[str, typer.Argument(help="Machine or load balancer name")],
    index: Annotated[int, typer.Argument(help="Device index", min=0)],
):
    """Print the IP claim name used for one device."""
    console.print(claim_name(name, index))


@app.command("version")
def version():
    """Show version information."""
    from netclaim import __version__

    console.print(f"netclaim v{__version__}")


def run():
    app()


if __name__ == "__main__":
    run()
