# src/cli/runner.py

"""Headless entry points: serve, one-shot sync, catalog status."""

import logging
from datetime import datetime

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.services.sync_orchestrator import SyncOrchestrator
from src.storage.catalog_store import CatalogStore

logger = logging.getLogger("drink_picker.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)


def serve(host: str | None = None, port: int | None = None) -> None:
    """Run the API with uvicorn (blocking)."""
    import uvicorn

    from src.api.app import create_app

    bind_host = host or Settings.HOST
    bind_port = port or Settings.PORT
    logger.info("Serving on http://%s:%d", bind_host, bind_port)
    _err.print(f"[dim]listening on http://{bind_host}:{bind_port}[/dim]")
    uvicorn.run(create_app(), host=bind_host, port=bind_port, log_level="info")


async def cli_sync(orchestrator: SyncOrchestrator | None = None) -> int:
    """Run one sync and print the outcome.

    Returns 0 when a catalog was written, 1 otherwise.
    """
    orch = orchestrator or SyncOrchestrator()
    with _err.status("[bold cyan]Syncing catalog…[/bold cyan]"):
        outcome = await orch.run()

    if outcome.ok:
        _err.print(f"[green]Wrote {outcome.count} products[/green]")
        return 0
    if outcome.error:
        _err.print(f"[red]Sync failed: {outcome.error}[/red]")
    else:
        _err.print(f"[yellow]Sync skipped: {outcome.reason}[/yellow]")
    return 1


def _format_mtime(updated_at: int | None) -> str:
    if updated_at is None:
        return "never"
    return datetime.fromtimestamp(updated_at / 1000).strftime("%Y-%m-%d %H:%M:%S")


def print_status(store: CatalogStore | None = None) -> int:
    """Render the persisted catalog as a Rich table."""
    catalog = store or CatalogStore()
    products = catalog.load()["products"]

    table = Table(
        title=f"Catalog (updated {_format_mtime(catalog.updated_at())})",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="magenta")
    table.add_column("Title", max_width=40)
    table.add_column("Image", style="green")
    table.add_column("Mini-program link", overflow="fold", style="dim")

    for idx, p in enumerate(products, 1):
        table.add_row(
            str(idx),
            str(p.get("id", "")),
            str(p.get("title", ""))[:40],
            p.get("filename") or "—",
            p.get("miniProgramUrl") or "—",
        )

    Console().print(table)
    return 0
