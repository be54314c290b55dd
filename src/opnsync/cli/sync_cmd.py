from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from opnsync.core import SyncOrchestrator
from opnsync.models import (
    BidirectionalSyncConfig,
    BidirectionalSyncResult,
    ConflictResolution,
)

from .common import (
    build_client,
    build_database,
    load_devices_or_exit,
    load_settings_or_exit,
    router_errors,
)

logger = logging.getLogger(__name__)


def effective_config(
    base: BidirectionalSyncConfig,
    dry_run: bool = False,
    strategy: ConflictResolution | None = None,
    import_devices: bool = False,
    no_export: bool = False,
    aliases: bool = False,
    alias_names: list[str] | None = None,
    no_apply: bool = False,
    backup: bool = False,
) -> BidirectionalSyncConfig:
    """Overlay command line flags on the ``[sync]`` section of the config."""
    option_updates: dict[str, object] = {}
    if dry_run:
        option_updates["dry_run"] = True
    if strategy is not None:
        option_updates["conflict_resolution"] = strategy
    if no_apply:
        option_updates["apply_changes"] = False
    if backup:
        option_updates["backup_before_changes"] = True

    updates: dict[str, object] = {}
    if option_updates:
        updates["options"] = base.options.model_copy(update=option_updates)
    if import_devices:
        updates["import_from_opnsense"] = True
    if no_export:
        updates["export_to_opnsense"] = False
    if aliases:
        updates["sync_firewall_aliases"] = True
    if alias_names:
        updates["firewall_alias_names"] = tuple(alias_names)
        updates["sync_firewall_aliases"] = True

    return base.model_copy(update=updates) if updates else base


def _print_result(console: Console, result: BidirectionalSyncResult) -> None:
    summary = Table(title="Sync summary")
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Devices processed", str(result.total_devices_processed))
    summary.add_row("Reservations added", str(result.devices_added))
    summary.add_row("Reservations updated", str(result.devices_updated))
    summary.add_row("Reservations skipped", str(result.devices_skipped))
    summary.add_row("Aliases updated", str(result.aliases_updated))
    summary.add_row("Conflicts", str(result.conflicts_resolved))
    summary.add_row("Duration", f"{result.duration:.2f}s")
    console.print(summary)

    if result.conflicts:
        conflicts = Table(title="Conflicts")
        conflicts.add_column("MAC Address", style="cyan")
        conflicts.add_column("Type")
        conflicts.add_column("Fleet")
        conflicts.add_column("Router")
        conflicts.add_column("Resolution", style="yellow")
        for conflict in result.conflicts:
            conflicts.add_row(
                conflict.device_mac,
                conflict.type,
                conflict.shelly_manager_value,
                conflict.opnsense_value,
                conflict.resolution,
            )
        console.print(conflicts)

    for warning in result.warnings:
        console.print(f"[yellow]![/yellow] {escape(warning)}")
    for error in result.errors:
        console.print(f"[red]✗[/red] {escape(error)}")


def register(app: typer.Typer) -> None:
    @app.command()
    def sync(
        dry_run: bool = typer.Option(
            False, "--dry-run", help="Validate and count changes without writing"
        ),
        strategy: ConflictResolution | None = typer.Option(
            None,
            "--strategy",
            case_sensitive=False,
            help="Conflict resolution strategy (overrides config)",
        ),
        import_devices: bool = typer.Option(
            False, "--import", help="Import reservations from the router first"
        ),
        no_export: bool = typer.Option(
            False, "--no-export", help="Do not write DHCP reservations"
        ),
        aliases: bool = typer.Option(
            False, "--aliases", help="Also sync the configured firewall aliases"
        ),
        alias_names: list[str] | None = typer.Option(
            None, "--alias", help="Firewall alias to sync (repeatable)"
        ),
        no_apply: bool = typer.Option(
            False, "--no-apply", help="Skip reconfiguring router services"
        ),
        backup: bool = typer.Option(
            False, "--backup", help="Snapshot router tables before writing"
        ),
        save: bool = typer.Option(
            False, "--save", help="Write the merged device list back to the registry"
        ),
    ) -> None:
        """Reconcile the fleet registry with the router."""
        console = Console()
        settings = load_settings_or_exit()
        db = build_database(settings)
        devices = load_devices_or_exit(db)

        config = effective_config(
            settings.sync,
            dry_run=dry_run,
            strategy=strategy,
            import_devices=import_devices,
            no_export=no_export,
            aliases=aliases,
            alias_names=alias_names,
            no_apply=no_apply,
            backup=backup,
        )
        logger.debug("Effective sync config: %s", config.model_dump())

        mode = " (dry run)" if config.dry_run else ""
        console.print(
            f"Syncing {len(devices)} device(s) with {settings.router.base_url}{mode}..."
        )
        with build_client(settings) as client, router_errors(console):
            orchestrator = SyncOrchestrator(client)
            result = orchestrator.perform_bidirectional_sync(devices, config)

        if result.backup is not None:
            path = db.save_backup(result.backup)
            console.print(f"[green]✓[/green] Saved router snapshot to {path}")

        _print_result(console, result)

        if save:
            if config.dry_run:
                console.print("[yellow]![/yellow] Dry run, fleet registry not saved")
            elif not result.success:
                console.print(
                    "[yellow]![/yellow] Sync failed, fleet registry not saved"
                )
            else:
                db.record_sync(result.resolved_devices)
                console.print(
                    f"[green]✓[/green] Saved {len(result.resolved_devices)} "
                    f"device(s) to {db.devices_path}"
                )

        if not result.success:
            console.print("[red]Sync finished with errors[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Sync complete{mode}")
