from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from opnsync.core import AliasStore, collect_device_ips

from .common import (
    build_client,
    build_database,
    load_devices_or_exit,
    load_settings_or_exit,
    router_errors,
)

app = typer.Typer(no_args_is_help=True, help="Inspect and update firewall aliases")


@app.command("list")
def list_aliases() -> None:
    """List firewall aliases on the router."""
    console = Console()
    settings = load_settings_or_exit()

    with build_client(settings) as client, router_errors(console):
        aliases = AliasStore(client).list_aliases()

    if not aliases:
        console.print("No firewall aliases found.")
        return

    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Enabled")
    table.add_column("Entries", justify="right")
    table.add_column("Description")

    for alias in sorted(aliases, key=lambda item: item.name.casefold()):
        table.add_row(
            alias.name,
            alias.type,
            "yes" if alias.enabled else "no",
            str(len(alias.content)),
            alias.description,
        )

    console.print(table)


@app.command("update")
def update_alias(
    name: str = typer.Argument(..., help="Alias name"),
    create: bool = typer.Option(True, help="Create the alias when it is missing"),
    apply: bool = typer.Option(True, help="Reconfigure the firewall afterwards"),
) -> None:
    """Set an alias to the IPs of every device in the fleet registry."""
    console = Console()
    settings = load_settings_or_exit()
    devices = load_devices_or_exit(build_database(settings))

    with build_client(settings) as client, router_errors(console):
        addresses = collect_device_ips(devices)
        store = AliasStore(client)
        store.update_shelly_device_alias(name, devices, create_if_missing=create)
        if apply:
            store.apply_configuration()

    console.print(
        f"[green]✓[/green] Alias {name} now lists {len(addresses)} address(es)"
    )
