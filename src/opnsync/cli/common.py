from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from opnsync.client import OPNsenseClient
from opnsync.config import (
    Settings,
    data_dir_from_settings,
    get_settings,
    resolve_config_path,
)
from opnsync.errors import SyncError
from opnsync.models import DeviceMapping
from opnsync.storage import Database


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_database(settings: Settings, data_dir: Path | None = None) -> Database:
    path = data_dir or data_dir_from_settings(settings)
    return Database(path)


def build_client(settings: Settings) -> OPNsenseClient:
    try:
        return OPNsenseClient.from_config(settings.router)
    except ValueError as exc:
        typer.echo(
            f"Router is not configured: {exc}. Run 'opnsync config show' "
            "and set [router] host and API credentials.",
            err=True,
        )
        raise typer.Exit(1) from exc


def load_devices_or_exit(db: Database) -> list[DeviceMapping]:
    try:
        return db.load_devices().devices
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


@contextmanager
def router_errors(console: Console) -> Iterator[None]:
    """Turn opnsync errors into a red message and exit code 1."""
    try:
        yield
    except SyncError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
