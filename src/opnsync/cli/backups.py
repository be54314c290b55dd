from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from opnsync.config.paths import backup_taken_at
from opnsync.utils.redaction import Redactor

from .common import build_database, load_settings_or_exit

app = typer.Typer(no_args_is_help=True, help="Inspect router snapshots")


@app.command("list")
def list_backups() -> None:
    """List router snapshots saved by 'opnsync sync --backup'."""
    console = Console()
    db = build_database(load_settings_or_exit())
    backups = db.list_backups()

    if not backups:
        console.print(f"No snapshots in {db.backups_dir}")
        return

    table = Table(title=str(db.backups_dir))
    table.add_column("File", style="cyan")
    table.add_column("Taken (UTC)")
    table.add_column("Size", justify="right")

    for path in reversed(backups):
        taken_at = backup_taken_at(path)
        table.add_row(
            path.name,
            taken_at.isoformat(sep=" ", timespec="seconds") if taken_at else "?",
            f"{path.stat().st_size} B",
        )

    console.print(table)


@app.command("show")
def show_backup(
    name: str = typer.Argument(
        "latest", help="Snapshot file name, path, or 'latest'"
    ),
    redact: bool = typer.Option(
        False, "--redact", help="Redact addresses in output"
    ),
) -> None:
    """Show the reservations and aliases held in a snapshot."""
    console = Console()
    db = build_database(load_settings_or_exit())

    try:
        path = db.find_backup(name)
        snapshot = db.load_backup(path)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    redactor = Redactor(enabled=redact)
    console.print(
        f"Snapshot {path.name} taken "
        f"{snapshot.taken_at.isoformat(timespec='seconds')}"
    )

    reservations = Table(title=f"DHCP reservations ({len(snapshot.reservations)})")
    reservations.add_column("MAC Address", style="cyan")
    reservations.add_column("IP", style="green")
    reservations.add_column("Hostname")
    reservations.add_column("Interface")
    for reservation in snapshot.reservations:
        reservations.add_row(
            redactor.redact_mac(reservation.mac),
            redactor.redact_ip(reservation.ip),
            reservation.hostname,
            reservation.interface,
        )
    console.print(reservations)

    aliases = Table(title=f"Firewall aliases ({len(snapshot.aliases)})")
    aliases.add_column("Name", style="cyan")
    aliases.add_column("Type")
    aliases.add_column("Content")
    for alias in snapshot.aliases:
        aliases.add_row(
            alias.name,
            alias.type,
            ", ".join(redactor.redact_ip(entry) for entry in alias.content),
        )
    console.print(aliases)
