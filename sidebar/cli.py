"""Command line access to the sidebar site list and favicon cache.

Usage:
    sidebar list
    sidebar export --output sidebar-sites.json
    sidebar import sidebar-sites.json --mode merge
    sidebar icon https://github.com
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from datetime import timedelta
from pathlib import Path
from typing import TypeVar

import click
from rich.console import Console
from rich.table import Table

from sidebar.db.connection import create_engine, create_session_factory
from sidebar.db.repositories import FaviconRepository
from sidebar.schemas.site import ImportMode, ImportOutcome
from sidebar.services.favicon_cache import FaviconCache, create_http_client
from sidebar.services.site_registry import SidebarError, SiteRegistry, parse_import_payload
from sidebar.settings import get_settings
from sidebar.store import close_redis, get_store_client
from sidebar.warmup import warmup_favicon_store

console = Console()

T = TypeVar("T")


async def _with_registry(action: Callable[[SiteRegistry], Awaitable[T]]) -> T:
    store = await get_store_client()
    registry = SiteRegistry(store)
    try:
        await registry.load()
        return await action(registry)
    finally:
        await close_redis()


async def _resolve_icon(url: str, database_url: str | None) -> str | None:
    settings = get_settings()
    engine = create_engine(database_url)
    try:
        session_factory = None
        if await warmup_favicon_store(engine):
            session_factory = create_session_factory(engine)
        async with create_http_client() as http_client:
            cache = FaviconCache(
                FaviconRepository(session_factory),
                http_client,
                ttl=timedelta(seconds=settings.favicon_ttl_seconds),
                min_bytes=settings.favicon_min_bytes,
                timeout_seconds=settings.favicon_fetch_timeout_seconds,
            )
            return await cache.resolve_icon(url)
    finally:
        await engine.dispose()


@click.group()
def cli() -> None:
    """Manage the sidebar's quick-launch sites."""


@cli.command("list")
def list_sites() -> None:
    """Show the registered sites in display order."""

    async def _collect(registry: SiteRegistry):
        return registry.sites, registry.active_site_id

    sites, active_id = asyncio.run(_with_registry(_collect))

    table = Table(title=f"{len(sites)} site(s)")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("URL", style="cyan")
    table.add_column("Color")
    for index, site in enumerate(sites):
        marker = " *" if site.id == active_id else ""
        table.add_row(str(index), site.id, f"{site.name}{marker}", site.url, site.color)
    console.print(table)


@cli.command("export")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="File to write. Prints to stdout when omitted.",
)
def export_sites(output: Path | None) -> None:
    """Export every site as a JSON array."""

    async def _export(registry: SiteRegistry) -> str:
        return registry.export_json()

    payload = asyncio.run(_with_registry(_export))
    if output is None:
        click.echo(payload)
        return
    output.write_text(payload, encoding="utf-8")
    console.print(f"[green]Exported sites to {output}[/green]")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in ImportMode]),
    default=ImportMode.MERGE.value,
    show_default=True,
    help="replace discards the current list; merge appends sites with new URLs.",
)
def import_sites(path: Path, mode: str) -> None:
    """Import sites from a previously exported JSON file."""

    try:
        raw_sites = parse_import_payload(path.read_bytes())

        async def _import(registry: SiteRegistry):
            return await registry.import_merge(raw_sites, ImportMode(mode))

        result = asyncio.run(_with_registry(_import))
    except SidebarError as exc:
        console.print(f"[red]Import failed:[/red] {exc}")
        sys.exit(1)

    if result.outcome is ImportOutcome.NOTHING_TO_IMPORT:
        console.print("[yellow]No valid sites found in the file; nothing imported[/yellow]")
        return
    console.print(
        f"[green]Imported {result.imported} site(s)[/green] "
        f"({result.skipped} skipped, {len(result.sites)} total)"
    )


@cli.command("icon")
@click.argument("url")
@click.option(
    "--database-url",
    default=None,
    help="Favicon cache database. Defaults to FAVICON_DATABASE_URL.",
)
def icon(url: str, database_url: str | None) -> None:
    """Resolve a site's favicon and print it as a data URL."""

    data_url = asyncio.run(_resolve_icon(url, database_url))
    if data_url is None:
        console.print(f"[yellow]No icon found for {url}[/yellow]")
        sys.exit(1)
    click.echo(data_url)


if __name__ == "__main__":
    cli()
