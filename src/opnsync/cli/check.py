from __future__ import annotations

import typer
from rich.console import Console

from .common import build_client, load_settings_or_exit, router_errors


def register(app: typer.Typer) -> None:
    @app.command()
    def check() -> None:
        """Verify that the router API is reachable with the configured key."""
        console = Console()
        settings = load_settings_or_exit()

        console.print(f"Connecting to {settings.router.base_url}...")
        with build_client(settings) as client, router_errors(console):
            client.test_connection()

        console.print(f"[green]✓[/green] Connected to {settings.router.base_url}")
