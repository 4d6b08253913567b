"""
CLI for todoscan.

Scans a workspace for keyword comments once, or keeps the diagnostic
index current while files change.
"""

import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from todoscan.core.config import LoggingConfig, TodoscanConfig, load_config
from todoscan.infrastructure import DiagnosticStore, FileWatcher
from todoscan.services import DiagnosticsService, WatchService, WatchServiceError

console = Console()

app = typer.Typer(
    name="todoscan",
    help="Keyword comment scanner - TODO/FIXME diagnostics for a workspace",
    add_completion=False,
)


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from the logging section of the configuration."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(config.level.upper())


def _load(config_path: Optional[Path]) -> TodoscanConfig:
    load_dotenv()
    cfg = load_config(config_path)
    setup_logging(cfg.logging)
    return cfg


def _require_directory(path: Path) -> Path:
    path = path.resolve()
    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] Path does not exist: {path}")
        raise typer.Exit(1)
    if not path.is_dir():
        console.print(f"[bold red]Error:[/bold red] Path is not a directory: {path}")
        raise typer.Exit(1)
    return path


@app.command()
def scan(
    path: Path = typer.Argument(..., help="Workspace directory to scan"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML or JSON configuration file"
    ),
    keywords: Optional[list[str]] = typer.Option(
        None, "--keyword", "-k", help="Keyword to search for (repeatable)"
    ),
    glob_pattern: Optional[str] = typer.Option(
        None, "--glob", "-g", help="Glob selecting monitored files"
    ),
    case_sensitive: Optional[bool] = typer.Option(
        None, "--case-sensitive/--ignore-case", help="Keyword case sensitivity"
    ),
    max_length: Optional[int] = typer.Option(
        None, "--max-length", help="Maximum preview length in characters"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Number of parallel workers"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print findings as JSON lines"),
):
    """Scan a workspace once and print every finding."""
    root = _require_directory(path)

    try:
        cfg = _load(config_path)
        overrides = {}
        if keywords:
            overrides["keywords"] = tuple(keywords)
        if glob_pattern is not None:
            overrides["glob_pattern"] = glob_pattern
        if case_sensitive is not None:
            overrides["case_sensitive"] = case_sensitive
        if max_length is not None:
            overrides["max_preview_length"] = max_length
        if workers is not None:
            overrides["max_workers"] = workers
        scan_config = replace(cfg.scan, **overrides)

        store = DiagnosticStore()
        if as_json:
            service = DiagnosticsService(
                store, scan_config, root=root, ignore_patterns=cfg.watch.ignore_patterns
            )
            result = asyncio.run(service.update_workspace())
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Initializing...", total=None)

                def update_progress(current: int, total: int, message: str) -> None:
                    progress.update(task, completed=current, total=total, description=message)

                service = DiagnosticsService(
                    store,
                    scan_config,
                    root=root,
                    ignore_patterns=cfg.watch.ignore_patterns,
                    progress_callback=update_progress,
                )
                result = asyncio.run(service.update_workspace())
    except (ValueError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        for file_path in store.paths():
            for finding in store.get(file_path) or ():
                typer.echo(json.dumps(finding.to_dict(), ensure_ascii=False))
        return

    if len(store):
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Column", justify="right")
        table.add_column("Keyword", style="yellow")
        table.add_column("Preview")
        for file_path in store.paths():
            display = _display_path(Path(file_path), root)
            for finding in store.get(file_path) or ():
                table.add_row(
                    display,
                    str(finding.line + 1),
                    str(finding.start_column + 1),
                    finding.keyword,
                    finding.message,
                )
        console.print(table)

    summary = Table.grid(padding=1)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Files Scanned:", str(result.rescanned_files))
    summary.add_row("Files With Findings:", str(result.files_with_findings))
    summary.add_row("Total Findings:", str(result.total_findings))
    summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")
    if result.failed_files:
        summary.add_row("Failed Files:", f"[red]{len(result.failed_files)}[/red]")

    console.print(
        Panel(
            summary,
            title="[bold green]Scan Complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )

    if result.failed_files:
        console.print("\n[bold red]Failed Files:[/bold red]")
        for f in result.failed_files[:5]:
            console.print(f"  - {f}")
        if len(result.failed_files) > 5:
            console.print(f"  ... and {len(result.failed_files) - 5} more")


def _display_path(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


@app.command()
def watch(
    path: Path = typer.Argument(..., help="Workspace directory to watch"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML or JSON configuration file"
    ),
    debounce_ms: Optional[int] = typer.Option(
        None, "--debounce-ms", help="Quiet period before applying changes"
    ),
):
    """Keep the diagnostic index current until interrupted."""
    root = _require_directory(path)

    try:
        cfg = _load(config_path)
    except (ValueError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    cfg.watch.watch_path = root
    if debounce_ms is not None:
        cfg.watch.debounce_ms = debounce_ms

    async def run() -> None:
        store = DiagnosticStore()
        service = DiagnosticsService(
            store, cfg.scan, root=root, ignore_patterns=cfg.watch.ignore_patterns
        )
        watch_service = WatchService(
            service, FileWatcher(ignore_patterns=cfg.watch.ignore_patterns), cfg.watch
        )
        await watch_service.start()
        console.print(
            f"[bold blue]Watching[/bold blue] {root} "
            f"([cyan]{store.total_findings()}[/cyan] findings in {len(store)} files). "
            "Press Ctrl+C to stop."
        )
        try:
            while True:
                await asyncio.sleep(1)
        finally:
            await watch_service.stop()
            stats = watch_service.get_stats()
            console.print(
                f"[dim]{stats.events_received} events, "
                f"{stats.updates_triggered} updates, {stats.errors} errors[/dim]"
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[cyan]Stopped.[/cyan]")
    except (WatchServiceError, ValueError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
