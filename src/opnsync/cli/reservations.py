from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from opnsync.core import ReservationStore, ShellyClassifier
from opnsync.models import DHCPReservation
from opnsync.utils.redaction import Redactor

from .common import build_client, load_settings_or_exit, router_errors

app = typer.Typer(no_args_is_help=True, help="Inspect DHCP reservations on the router")


@app.command("list")
def list_reservations(
    interface: str = typer.Option("", "--interface", "-i", help="Only this interface"),
    shelly_only: bool = typer.Option(
        False, "--shelly", help="Only show reservations classified as Shelly"
    ),
    redact: bool = typer.Option(
        False, "--redact", help="Redact addresses in output"
    ),
) -> None:
    """List DHCP reservations with their Shelly classification."""
    console = Console()
    settings = load_settings_or_exit()
    classifier = ShellyClassifier(settings.sync.shelly_identifiers)

    with build_client(settings) as client, router_errors(console):
        reservations = ReservationStore(client).list_reservations(interface)

    redactor = Redactor(enabled=redact)
    table = Table()
    table.add_column("MAC Address", style="cyan")
    table.add_column("IP", style="green")
    table.add_column("Hostname")
    table.add_column("Interface")
    table.add_column("Description")
    table.add_column("Shelly", style="yellow")
    table.add_column("Confidence", justify="right")

    shown = 0
    for reservation in reservations:
        is_shelly, confidence = classifier.classify(reservation)
        if shelly_only and not is_shelly:
            continue
        shown += 1
        table.add_row(
            redactor.redact_mac(reservation.mac),
            redactor.redact_ip(reservation.ip),
            reservation.hostname,
            reservation.interface,
            reservation.description,
            "yes" if is_shelly else "",
            f"{confidence:.2f}",
        )

    if not shown:
        console.print("No DHCP reservations found.")
        return

    console.print(table)
    console.print(f"\n[green]{shown} reservation(s)[/green]")


@app.command("find")
def find_reservation(
    mac: str = typer.Option("", "--mac", help="MAC address to look up"),
    ip: str = typer.Option("", "--ip", help="IP address to look up"),
    interface: str = typer.Option("", "--interface", "-i", help="Only this interface"),
) -> None:
    """Look up one reservation by MAC or by IP address."""
    console = Console()
    if bool(mac) == bool(ip):
        console.print("[red]✗[/red] Pass exactly one of --mac or --ip")
        raise typer.Exit(1)

    settings = load_settings_or_exit()
    with build_client(settings) as client, router_errors(console):
        store = ReservationStore(client)
        if mac:
            reservation = store.find_by_mac(mac, interface)
        else:
            reservation = store.find_by_ip(ip, interface)

    _print_reservation(console, reservation)


def _print_reservation(console: Console, reservation: DHCPReservation) -> None:
    console.print(f"[bold]{reservation.hostname or reservation.mac}[/bold]")
    console.print(f"UUID: {reservation.uuid}")
    console.print(f"MAC: {reservation.mac}")
    console.print(f"IP: {reservation.ip}")
    console.print(f"Interface: {reservation.interface or '-'}")
    console.print(f"Description: {reservation.description or '-'}")
    console.print(f"Disabled: {'yes' if reservation.disabled else 'no'}")
