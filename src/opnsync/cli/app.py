from __future__ import annotations

from typing import Annotated

import typer

from opnsync.utils.logging import setup_logging

from . import aliases as aliases_cmd
from . import backups as backups_cmd
from . import config as config_cmd
from . import devices as devices_cmd
from . import reservations as reservations_cmd
from .check import register as register_check
from .init_cmd import register as register_init
from .sync_cmd import register as register_sync

app = typer.Typer(
    help="opnsync - keep Shelly devices and OPNsense DHCP/firewall in sync",
    no_args_is_help=True,
)

app.add_typer(config_cmd.app, name="config")
app.add_typer(devices_cmd.app, name="devices")
app.add_typer(reservations_cmd.app, name="reservations")
app.add_typer(aliases_cmd.app, name="aliases")
app.add_typer(backups_cmd.app, name="backups")

register_init(app)
register_check(app)
register_sync(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="DEBUG, INFO, WARNING, ERROR or CRITICAL (default: $LOGLEVEL)",
        ),
    ] = None,
) -> None:
    """opnsync CLI."""
    try:
        setup_logging(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"opnsync version {get_version('opnsync')}")
        raise typer.Exit()
