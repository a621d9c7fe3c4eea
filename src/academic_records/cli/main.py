"""CLI entry point for academic-records.

Invoked as::

    academic-records [OPTIONS] COMMAND [ARGS]...

Commands
--------
version            Show version information
serve              Run the HTTP server
identity add       Add an identity to a JSON identities file
identity list      List the identities in a JSON identities file
activity summary   Show the rollup of a JSONL activity log
activity search    Search a JSONL activity log
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from academic_records.audit import AuditQueryEngine

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="academic-records")
def cli() -> None:
    """Authentication and activity audit core for academic records"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from academic_records import __version__

    console.print(f"[bold]academic-records[/bold] v{__version__}")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default=None, help="Bind address (overrides HOST).")
@click.option("--port", type=int, default=None, help="TCP port (overrides PORT).")
@click.option(
    "--identities-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON identities file to load (overrides IDENTITIES_PATH).",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level.",
)
def serve_command(
    host: str | None,
    port: int | None,
    identities_file: str | None,
    log_level: str,
) -> None:
    """Run the HTTP server using settings from the environment."""
    from academic_records.config import Settings
    from academic_records.server import routes
    from academic_records.server.app import run_server

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] invalid configuration: {exc}")
        sys.exit(1)

    overrides: dict[str, object] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if identities_file is not None:
        overrides["identities_path"] = Path(identities_file)
    if overrides:
        settings = settings.model_copy(update=overrides)

    routes.configure(settings)
    run_server(host=settings.host, port=settings.port)


# ------------------------------------------------------------------
# identity command group
# ------------------------------------------------------------------


@cli.group(name="identity")
def identity_group() -> None:
    """Manage seeded identities."""


@identity_group.command(name="add")
@click.argument("external_id")
@click.option("--first-name", "-f", required=True, help="First name.")
@click.option("--last-name", "-l", required=True, help="Last name.")
@click.option("--email", "-e", default="", help="Email address.")
@click.option(
    "--role",
    "-r",
    type=click.Choice(["student", "teacher", "admin"]),
    default="student",
    show_default=True,
)
@click.option(
    "--password",
    default=None,
    help="Initial password. Defaults to EXTERNAL_ID and forces a change on first login.",
)
@click.option(
    "--identities-file",
    type=click.Path(dir_okay=False),
    required=True,
    help="JSON identities file to update (created if missing).",
)
def identity_add_command(
    external_id: str,
    first_name: str,
    last_name: str,
    email: str,
    role: str,
    password: str | None,
    identities_file: str,
) -> None:
    """Add an identity with EXTERNAL_ID (document number)."""
    from academic_records.identity import IdentityAlreadyExistsError, IdentityStore

    path = Path(identities_file)
    store = IdentityStore.load(path)
    try:
        record = store.add(
            external_id=external_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role,
            password=password,
        )
    except IdentityAlreadyExistsError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    store.save(path)

    console.print(f"[green]Added[/green] {record.role.value} [bold]{external_id}[/bold]")
    console.print(f"  Identity id:    {record.identity_id}")
    console.print(f"  Name:           {record.first_name} {record.last_name}")
    console.print(f"  Must change pw: {record.need_to_change}")


@identity_group.command(name="list")
@click.option(
    "--identities-file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON identities file to read.",
)
def identity_list_command(identities_file: str) -> None:
    """List identities in a JSON identities file."""
    from academic_records.identity import IdentityStore

    store = IdentityStore.load(Path(identities_file))
    table = Table(title=f"Identities ({len(store)})")
    table.add_column("External ID", style="bold")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Status")
    for record in store.list_all():
        table.add_row(
            record.external_id,
            f"{record.first_name} {record.last_name}",
            record.role.value,
            record.status.value,
        )
    console.print(table)


# ------------------------------------------------------------------
# activity command group
# ------------------------------------------------------------------


@cli.group(name="activity")
def activity_group() -> None:
    """Report on a persisted activity trail."""


@activity_group.command(name="summary")
@click.option(
    "--log-file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSONL activity log.",
)
@click.option("--identities-file", type=click.Path(dir_okay=False), default=None)
def activity_summary_command(log_file: str, identities_file: str | None) -> None:
    """Show category counts and the most recent activities."""
    engine = _load_engine(log_file, identities_file)
    summary = engine.summarize()

    counts = Table(title=f"Activity summary ({summary.total} records)")
    counts.add_column("Category", style="bold")
    counts.add_column("Count", justify="right")
    for category, count in summary.counts.items():
        counts.add_row(category, str(count))
    console.print(counts)

    _print_records([record.to_dict() for record in summary.recent_records[:10]], "Most recent")


@activity_group.command(name="search")
@click.argument("query", required=False, default="")
@click.option("--log-file", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--identities-file", type=click.Path(dir_okay=False), default=None)
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--from", "date_from", default=None, help="Earliest date (YYYY-MM-DD).")
@click.option("--to", "date_to", default=None, help="Latest date, inclusive (YYYY-MM-DD).")
def activity_search_command(
    query: str,
    log_file: str,
    identities_file: str | None,
    page: int,
    limit: int,
    date_from: str | None,
    date_to: str | None,
) -> None:
    """Search activities matching every word of QUERY."""
    from academic_records.audit import SearchParams

    engine = _load_engine(log_file, identities_file)
    result = engine.search(
        SearchParams(q=query, page=page, limit=limit, date_from=date_from, date_to=date_to)
    )
    pagination = result.pagination
    _print_records(
        result.results,
        f"Page {pagination.current_page}/{pagination.total_pages} ({pagination.total} matches)",
    )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_engine(log_file: str, identities_file: str | None) -> "AuditQueryEngine":
    from academic_records.audit import ActivityStore, AuditQueryEngine
    from academic_records.identity import IdentityStore

    identities = IdentityStore.load(Path(identities_file)) if identities_file else IdentityStore()
    return AuditQueryEngine(ActivityStore(log_path=Path(log_file)), identities)


def _print_records(rows: list[dict[str, object]], title: str) -> None:
    table = Table(title=title)
    table.add_column("When")
    table.add_column("Action", style="bold")
    table.add_column("Description")
    table.add_column("IP")
    for row in rows:
        table.add_row(
            str(row.get("createdAt", "")),
            str(row.get("action", "")),
            str(row.get("description", "")),
            str(row.get("ip") or "-"),
        )
    console.print(table)


if __name__ == "__main__":
    cli()
