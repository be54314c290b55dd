from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from opnsync.models import DeviceMapping
from opnsync.models.validation import is_valid_ip, is_valid_mac
from opnsync.utils.redaction import Redactor

from .common import build_database, load_devices_or_exit, load_settings_or_exit

app = typer.Typer(no_args_is_help=True, help="Manage the fleet registry")


@app.command("list")
def list_devices(
    redact: bool = typer.Option(
        False, "--redact", help="Redact addresses in output"
    ),
) -> None:
    """List devices in the fleet registry."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    devices = load_devices_or_exit(db)

    console = Console()

    if not devices:
        console.print("No devices registered.")
        console.print(f"Use 'opnsync devices add' or edit {db.devices_path}")
        return

    redactor = Redactor(enabled=redact)
    table = Table()
    table.add_column("MAC Address", style="cyan")
    table.add_column("IP", style="green")
    table.add_column("Name")
    table.add_column("Hostname")
    table.add_column("Interface")
    table.add_column("Status")
    table.add_column("Last Sync")

    for device in devices:
        table.add_row(
            redactor.redact_mac(device.shelly_mac),
            redactor.redact_ip(device.shelly_ip),
            device.shelly_name,
            device.opnsense_hostname,
            device.interface,
            device.sync_status,
            device.last_sync.isoformat(timespec="seconds") if device.last_sync else "",
        )

    console.print(table)


@app.command("add")
def add_device(
    mac: str = typer.Argument(..., help="Device MAC address"),
    ip: str = typer.Option("", "--ip", help="Reserved IP address"),
    name: str = typer.Option("", "--name", help="Device name"),
    hostname: str = typer.Option(
        "", "--hostname", help="Hostname on the router (generated when empty)"
    ),
    interface: str = typer.Option("", "--interface", help="DHCP interface"),
) -> None:
    """Add or update a device in the fleet registry."""
    console = Console()
    if not is_valid_mac(mac):
        console.print(f"[red]✗[/red] Invalid MAC address: {mac}")
        raise typer.Exit(1)
    if ip and not is_valid_ip(ip):
        console.print(f"[red]✗[/red] Invalid IP address: {ip}")
        raise typer.Exit(1)

    settings = load_settings_or_exit()
    db = build_database(settings)
    load_devices_or_exit(db)

    device = DeviceMapping(
        shelly_mac=mac,
        shelly_ip=ip,
        shelly_name=name,
        opnsense_hostname=hostname,
        interface=interface,
    )
    replaced = db.add_device(device)

    verb = "Updated" if replaced else "Added"
    console.print(f"[green]✓[/green] {verb} device {mac}")


@app.command("remove")
def remove_device(mac: str = typer.Argument(..., help="Device MAC address")) -> None:
    """Remove a device from the fleet registry."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    load_devices_or_exit(db)

    console = Console()
    if db.remove_device(mac):
        console.print(f"[green]✓[/green] Removed device {mac}")
    else:
        console.print(f"[yellow]![/yellow] Device {mac} not found")
        raise typer.Exit(1)
