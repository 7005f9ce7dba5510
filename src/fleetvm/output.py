"""Centralized output handling for logs and VM listings."""

import logging
from typing import Iterable

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .errors import ZoneParseError
from .vm import VM

# Global console instance
console = Console()


def setup_logging(verbose: bool = False, quiet: bool = False, target: Console = None):
    """Route the root logger through rich.

    Quiet mode only lets warnings and errors through; verbose mode enables
    debug output from dispatch.
    """
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(RichHandler(console=target or console, show_path=False, rich_tracebacks=True))


def vm_table(vms: Iterable[VM], title: str = "VMs") -> Table:
    """Build a table describing the given VMs."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("NAME", style="cyan")
    table.add_column("PROVIDER")
    table.add_column("LOCALITY")
    table.add_column("PUBLIC IP")
    table.add_column("PRIVATE IP")
    table.add_column("MACHINE TYPE")
    table.add_column("LIFETIME", justify="right")
    table.add_column("STATUS")

    for vm in vms:
        try:
            locality = vm.locality()
        except ZoneParseError:
            locality = f"[red]{vm.zone or '?'}[/red]"

        status = "[green]ok[/green]"
        if vm.errors:
            status = "[yellow]" + "; ".join(str(e) for e in vm.errors) + "[/yellow]"

        table.add_row(
            vm.name,
            vm.provider,
            locality,
            vm.public_ip,
            vm.private_ip,
            vm.machine_type,
            f"{vm.lifetime.total_seconds() / 3600:.1f}h",
            status,
        )

    return table
