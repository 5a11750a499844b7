"""Rich console output utilities for the siteext CLI."""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from site_extensions.models import ExtensionInfo


console = Console()
error_console = Console(stderr=True)


def setup_logging(level: str = "INFO") -> None:
    """Route log records through rich at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )
    # Reduce noise from the HTTP client
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]→[/blue] {message}")


def print_json(data: Any) -> None:
    """Print formatted JSON."""
    import json

    console.print_json(json.dumps(data, indent=2, default=str))


def _latest_column(ext: ExtensionInfo) -> str:
    if ext.latest_info is None:
        return "-"
    if ext.is_latest_version:
        return f"[green]{ext.latest_info.version}[/green]"
    return f"[yellow]{ext.latest_info.version}[/yellow]"


def print_extensions(
    extensions: list[ExtensionInfo],
    title: str,
    show_latest: bool = False,
) -> None:
    """Print extensions as a table."""
    table = Table(title=title)
    table.add_column("Id", style="cyan")
    table.add_column("Version")
    if show_latest:
        table.add_column("Latest")
    else:
        table.add_column("Downloads", justify="right")
    table.add_column("Title")
    table.add_column("Authors")

    for ext in extensions:
        last = _latest_column(ext) if show_latest else f"{ext.download_count:,}"
        title_text = ext.title[:40] + "..." if len(ext.title) > 40 else ext.title
        table.add_row(ext.id, ext.version, last, title_text, ", ".join(ext.authors))

    console.print(table)
    console.print(f"\n[dim]Total: {len(extensions)} extensions[/dim]")


def print_extension_detail(ext: ExtensionInfo) -> None:
    """Print a single extension's details."""
    console.print(f"\n[bold cyan]{ext.title}[/bold cyan] ({ext.id}) v{ext.version}")
    if ext.authors:
        console.print(f"[dim]by {', '.join(ext.authors)}[/dim]\n")

    if ext.description:
        console.print(f"{ext.description}\n")

    console.print("[bold]Details[/bold]")
    console.print(f"  Downloads: {ext.download_count:,}")
    if ext.published_at:
        console.print(f"  Published: {ext.published_at.strftime('%Y-%m-%d')}")
    if ext.project_url:
        console.print(f"  Project: {ext.project_url}")
    if ext.license_url:
        console.print(f"  License: {ext.license_url}")

    if ext.local_path:
        console.print("\n[bold]Installation[/bold]")
        console.print(f"  Path: {ext.local_path}")
        if ext.installed_at:
            console.print(f"  Installed: {ext.installed_at.strftime('%Y-%m-%d %H:%M')}")

    if ext.latest_info is not None:
        state = "[green]up to date[/green]" if ext.is_latest_version else (
            f"[yellow]{ext.latest_info.version} available[/yellow]"
        )
        console.print(f"  Latest: {state}")
