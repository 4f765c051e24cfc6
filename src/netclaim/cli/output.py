"""Console output helpers for the netclaim CLI."""

from rich.console import Console
from rich.table import Table

from netclaim.models.enums import ReconcileStatus
from netclaim.models.resources import AddressPool, ObjectRef
from netclaim.reconciler import ReconcileResult

console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    ReconcileStatus.DONE: "green",
    ReconcileStatus.SKIPPED: "dim",
    ReconcileStatus.UNSUPPORTED: "yellow",
    ReconcileStatus.WAIT_FOR_POOL: "yellow",
    ReconcileStatus.WAIT_FOR_ADDRESS: "yellow",
    ReconcileStatus.FAILED: "red",
}


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def print_result(ref: ObjectRef, result: ReconcileResult) -> None:
    """One line summary of a reconcile pass."""
    style = STATUS_STYLES.get(result.status, "white")
    line = f"{ref}: [{style}]{result.status.value}[/{style}]"
    if result.requeue_after:
        line += f" [dim](requeue after {result.requeue_after:g}s)[/dim]"
    console.print(line)
    if result.error is not None:
        print_error(str(result.error))


def format_pool_table(pools: list[AddressPool]) -> Table:
    table = Table(title="IP Pools")
    table.add_column("Namespace", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Cluster")
    table.add_column("Prefix", justify="right")
    table.add_column("Gateway")
    table.add_column("DNS")
    table.add_column("Labels")

    for pool in pools:
        table.add_row(
            pool.namespace,
            pool.name,
            pool.spec.cluster_name or "-",
            str(pool.spec.prefix) if pool.spec.prefix is not None else "-",
            pool.spec.gateway or "-",
            ", ".join(pool.spec.dns_servers) or "-",
            ", ".join(f"{k}={v}" for k, v in sorted(pool.labels.items())) or "-",
        )
    return table
