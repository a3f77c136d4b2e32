#!/usr/bin/env python3
"""
Command-line interface for Radio CMS.

Operator tools for the trash: listing, deleting, restoring, the scheduled
purge sweep, schema management and audit export.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import click
import pandas as pd  # type: ignore[import-untyped]
from alembic.util import CommandError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .audit_trail import AuditLogger, AuditQuery, AuditStorage
from .clock import as_utc
from .config import get_config
from .content.migrations import (
    current_revision,
    head_revision,
    stamp_schema,
    upgrade_schema,
)
from .database import create_db_engine, create_session_factory, init_db, session_scope
from .soft_delete import SoftDeleteError, SoftDeleteService

console = Console()


def setup_logging(level: str) -> None:
    """Send package logs to stderr through rich."""
    package_logger = logging.getLogger("radio_cms")
    package_logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False)
        )


@contextmanager
def open_service() -> Iterator[SoftDeleteService]:
    """Trash service on a fresh engine for one command."""
    config = get_config()
    engine = create_db_engine(config)
    try:
        with session_scope(create_session_factory(engine)) as session:
            yield SoftDeleteService(session, audit_logger=AuditLogger())
    finally:
        engine.dispose()


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level for diagnostic output (stderr)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Radio CMS - trash and recovery tools for station content."""
    setup_logging(log_level)
    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]Radio CMS[/bold blue] v{__version__}\n"
                "[dim]Trash and recovery tools for station content[/dim]\n\n"
                "Use [bold]radio-cms --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Inspect configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config = get_config()
        config_dict = config.to_dict()
    except ValueError as e:
        _fail(f"Error loading configuration: {e}")
        return

    # Never print the signing secret
    config_dict["jwt_secret"] = "********"

    if format == "json":
        console.print_json(data=config_dict)
    elif format == "yaml":
        import yaml  # type: ignore[import-untyped]

        console.print(yaml.dump(config_dict, default_flow_style=False))
    else:
        table = Table(title="Radio CMS Configuration", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        categories = {
            "General": ["application_name", "environment", "log_level"],
            "Store": ["database_url", "database_echo"],
            "Trash": [
                "retention_days",
                "protected_retention_days",
                "purge_batch_size",
                "trash_listing_limit",
            ],
            "Admin API": ["jwt_algorithm", "jwt_secret", "session_max_age_hours"],
            "Audit Trail": ["audit_enabled"],
        }

        for category, settings in categories.items():
            table.add_row(f"[bold]{category}[/bold]", "")
            for setting in settings:
                value = config_dict.get(setting)
                if value is None:
                    value = "[dim]Not configured[/dim]"
                elif isinstance(value, bool):
                    value = "✓" if value else "✗"
                table.add_row(f"  {setting}", str(value))

        console.print(table)


@config.command("validate")
def config_validate() -> None:
    """Validate current configuration."""
    try:
        config = get_config()
    except ValueError as e:
        console.print(f"[red]✗ Configuration validation failed:[/red]\n{e}")
        sys.exit(1)

    warnings = []
    if config.jwt_secret == "change-me":
        warnings.append("jwt_secret is the default value; set RADIO_CMS_JWT_SECRET")
    if config.environment == "production" and config.database_url.startswith("sqlite"):
        warnings.append("SQLite is not recommended for production")
    if not config.audit_enabled:
        warnings.append("Audit trail is disabled; transitions will not be recorded")

    console.print("[green]✓ Configuration is valid[/green]")
    if warnings:
        console.print("\n[yellow]⚠ Warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  [yellow]• {warning}[/yellow]")


@cli.group()
def db() -> None:
    """Manage the content database schema."""
    pass


@db.command("init")
def db_init() -> None:
    """Create all tables and indexes."""
    engine = create_db_engine()
    try:
        init_db(engine)
        stamp_schema(engine)
    except SQLAlchemyError as e:
        _fail(f"Could not initialize database: {e}")
    finally:
        engine.dispose()
    console.print("[green]✓ Database schema initialized[/green]")


@db.command("migrate")
@click.option("--revision", default="head", show_default=True, help="Target revision")
def db_migrate(revision: str) -> None:
    """Upgrade content tables created before the trash existed."""
    engine = create_db_engine()
    try:
        before, after = upgrade_schema(engine, revision)
    except (SQLAlchemyError, CommandError) as e:
        _fail(f"Migration failed: {e}")
        return
    finally:
        engine.dispose()

    if before == after:
        console.print(f"[dim]Schema is up to date (revision {after})[/dim]")
    else:
        console.print(
            f"[green]✓[/green] Schema upgraded from {before or 'base'} to {after}"
        )


@db.command("check")
def db_check() -> None:
    """Check that deleted_at and deleted_by are always set together."""
    try:
        with open_service() as service:
            violations = service.check_integrity()
    except (SoftDeleteError, SQLAlchemyError) as e:
        _fail(str(e))
        return

    table = Table(title="Deletion Consistency", show_header=True)
    table.add_column("Content Type", style="cyan")
    table.add_column("Violations", justify="right")
    for content_type, count in violations.items():
        style = "red" if count else "green"
        table.add_row(content_type, f"[{style}]{count}[/{style}]")
    console.print(table)

    if any(violations.values()):
        console.print("\n[red]✗ Inconsistent lifecycle columns found[/red]")
        sys.exit(1)
    console.print("\n[green]✓ All content rows are consistent[/green]")


@cli.group()
def trash() -> None:
    """List, delete, restore and purge content."""
    pass


@trash.command("list")
@click.option("--limit", type=click.IntRange(min=1), help="Items per content type")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
def trash_list(limit: Optional[int], format: str) -> None:
    """Show deleted items, most recently deleted first."""
    try:
        with open_service() as service:
            listing = service.list_trash(limit=limit)
    except SoftDeleteError as e:
        _fail(e.message)
        return

    if format == "json":
        console.print_json(data=listing.to_response())
        return

    if listing.total == 0:
        console.print("[yellow]Trash is empty[/yellow]")
        return

    table = Table(title=f"Trash ({listing.total} items)", show_header=True)
    table.add_column("Type", style="cyan")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Deleted", style="dim")
    table.add_column("By")
    table.add_column("Purge After", style="yellow")

    for content_type in listing.content_types:
        for item in listing[content_type]:
            title = f"🔒 {item.title}" if item.protected else item.title
            table.add_row(
                content_type,
                str(item.id),
                title,
                item.deleted_at.strftime("%Y-%m-%d %H:%M"),
                item.deleted_by,
                item.purge_after.strftime("%Y-%m-%d"),
            )

    console.print(table)


@trash.command("delete")
@click.argument("content_type")
@click.argument("item_id", type=int)
@click.option("--actor", required=True, help="ID of the user performing the delete")
@click.option(
    "--admin", is_flag=True, help="Act as administrator (allows protected items)"
)
def trash_delete(content_type: str, item_id: int, actor: str, admin: bool) -> None:
    """Move an item to the trash."""
    try:
        with open_service() as service:
            item = service.soft_delete(
                content_type, item_id, actor, can_delete_protected=admin
            )
    except (SoftDeleteError, ValueError) as e:
        _fail(str(e))
        return

    console.print(f"[green]✓[/green] Moved {content_type} {item_id} to the trash")
    console.print(f"  [dim]{item.title}[/dim]")


@trash.command("restore")
@click.argument("content_type")
@click.argument("item_id", type=int)
@click.option("--actor", help="ID of the user performing the restore")
def trash_restore(content_type: str, item_id: int, actor: Optional[str]) -> None:
    """Restore an item from the trash."""
    try:
        with open_service() as service:
            item = service.restore(content_type, item_id, actor_id=actor)
    except SoftDeleteError as e:
        _fail(e.message)
        return

    console.print(f"[green]✓[/green] Restored {content_type} {item_id}")
    console.print(f"  [dim]{item.title}[/dim]")


@trash.command("protect")
@click.argument("content_type")
@click.argument("item_id", type=int)
@click.option("--actor", required=True, help="ID of the administrator")
@click.option("--off", is_flag=True, help="Remove protection instead")
def trash_protect(content_type: str, item_id: int, actor: str, off: bool) -> None:
    """Mark an active item as protected (60 day retention)."""
    try:
        with open_service() as service:
            service.set_protection(content_type, item_id, not off, actor)
    except SoftDeleteError as e:
        _fail(e.message)
        return

    state = "Unprotected" if off else "Protected"
    console.print(f"[green]✓[/green] {state} {content_type} {item_id}")


@trash.command("purge")
@click.option(
    "--now",
    "reference_time",
    type=click.DateTime(),
    help="Reference time of the sweep, UTC (defaults to the current time)",
)
@click.option("--dry-run", is_flag=True, help="Report without deleting")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
def trash_purge(reference_time: Optional[datetime], dry_run: bool, format: str) -> None:
    """Permanently remove items whose retention window has elapsed.

    Meant to run daily from cron, e.g. ``0 2 * * * radio-cms trash purge``.
    """
    now = as_utc(reference_time) if reference_time else None
    try:
        with open_service() as service:
            report = service.purge_expired(now=now, dry_run=dry_run)
    except SoftDeleteError as e:
        _fail(e.message)
        return

    if format == "json":
        console.print_json(data=report.model_dump(mode="json"))
        return

    verb = "Would purge" if dry_run else "Purged"
    table = Table(title=f"{verb} {report.total} item(s)", show_header=True)
    table.add_column("Content Type", style="cyan")
    table.add_column("Count", justify="right")
    for content_type, count in report.purged.items():
        table.add_row(content_type, str(count))
    console.print(table)

    if report.orphaned_files:
        console.print("\n[yellow]Stored files no longer referenced:[/yellow]")
        for orphan in report.orphaned_files:
            console.print(f"  • {orphan.url}")


@cli.group()
def audit() -> None:
    """Audit trail operations."""
    pass


@audit.command("export")
@click.option("--start-date", type=click.DateTime(), help="Start date for export")
@click.option("--end-date", type=click.DateTime(), help="End date for export")
@click.option("--output", type=click.Path(), required=True, help="Output file path")
@click.option("--format", type=click.Choice(["json", "csv", "excel"]), default="csv")
@click.option("--limit", type=click.IntRange(1, 10000), default=10000)
def audit_export(
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    output: str,
    format: str,
    limit: int,
) -> None:
    """Export the audit trail of trash transitions."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Exporting audit trail...", total=None)

        engine = create_db_engine()
        try:
            with session_scope(create_session_factory(engine)) as session:
                entries = AuditStorage(session).query(
                    AuditQuery(
                        start_date=as_utc(start_date) if start_date else None,
                        end_date=as_utc(end_date) if end_date else None,
                        limit=limit,
                    )
                )
        except SQLAlchemyError as e:
            progress.stop()
            _fail(f"Error exporting audit trail: {e}")
            return
        finally:
            engine.dispose()

        progress.update(task, description=f"Found {len(entries)} entries, exporting...")

        df = pd.DataFrame([entry.model_dump(mode="json") for entry in entries])

        output_path = Path(output)
        if format == "json":
            df.to_json(output_path, orient="records", date_format="iso", indent=2)
        elif format == "excel":
            df.to_excel(output_path, index=False, engine="openpyxl")
        else:
            df.to_csv(output_path, index=False)

        progress.stop()
        console.print(
            f"[green]✓ Exported {len(entries)} audit entries to {output_path}[/green]"
        )


@audit.command("verify")
def audit_verify() -> None:
    """Recalculate checksums of all audit entries."""
    engine = create_db_engine()
    try:
        with session_scope(create_session_factory(engine)) as session:
            mismatched = AuditStorage(session).verify_integrity()
    except SQLAlchemyError as e:
        _fail(f"Error reading audit trail: {e}")
        return
    finally:
        engine.dispose()

    if mismatched:
        console.print(f"[red]✗ {len(mismatched)} audit entries failed verification:[/red]")
        for entry_id in mismatched:
            console.print(f"  [red]• {entry_id}[/red]")
        sys.exit(1)
    console.print("[green]✓ All audit entries verified[/green]")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", type=int, default=8000, help="Bind port")
def serve(host: str, port: int) -> None:
    """Run the admin API with uvicorn."""
    import uvicorn

    from .api import create_application

    config = get_config()
    uvicorn.run(
        create_application(config),
        host=host,
        port=port,
        log_level=config.log_level.value.lower(),
    )


@cli.command()
def doctor() -> None:
    """Run diagnostic checks on the Radio CMS installation."""
    console.print("[bold]Running Radio CMS diagnostics...[/bold]\n")

    checks_passed = 0
    checks_failed = 0

    # Check 1: Configuration
    try:
        config = get_config()
        console.print("[green]✓[/green] Configuration loaded successfully")
        checks_passed += 1
    except ValueError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        sys.exit(1)

    # Check 2: Database connectivity
    engine = create_db_engine(config)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        console.print("[green]✓[/green] Database connection successful")
        checks_passed += 1
    except SQLAlchemyError as e:
        console.print(f"[red]✗[/red] Database connection failed: {e}")
        checks_failed += 1

    # Check 3: Content schema
    try:
        with session_scope(create_session_factory(engine)) as session:
            SoftDeleteService(session).check_integrity()
        console.print("[green]✓[/green] Content tables carry trash columns")
        checks_passed += 1
    except (SoftDeleteError, SQLAlchemyError) as e:
        console.print(f"[red]✗[/red] Content schema incomplete: {e}")
        checks_failed += 1

    # Check 4: Schema revision
    try:
        current, head = current_revision(engine), head_revision()
        if current == head:
            console.print(f"[green]✓[/green] Schema at revision {head}")
            checks_passed += 1
        else:
            console.print(
                f"[yellow]⚠[/yellow] Schema at revision {current or 'none'}, "
                f"latest is {head}; run 'radio-cms db migrate'"
            )
            checks_failed += 1
    except SQLAlchemyError as e:
        console.print(f"[red]✗[/red] Could not read schema revision: {e}")
        checks_failed += 1
    finally:
        engine.dispose()

    # Check 5: Signing secret
    if config.jwt_secret == "change-me":
        console.print("[yellow]⚠[/yellow] Admin API uses the default jwt_secret")
        checks_failed += 1
    else:
        console.print("[green]✓[/green] Admin API signing secret configured")
        checks_passed += 1

    console.print("\n[bold]Summary:[/bold]")
    console.print(f"  Checks passed: [green]{checks_passed}[/green]")
    console.print(f"  Checks failed: [red]{checks_failed}[/red]")

    if checks_failed == 0:
        console.print("\n[green]✓ All systems operational[/green]")
    else:
        console.print("\n[yellow]⚠ Some issues detected - review output above[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    cli()
