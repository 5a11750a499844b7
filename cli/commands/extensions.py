"""Extensions CLI commands for siteext.

Manage locally installed extensions.
"""

from typing import Optional

import typer

from cli.siteext.output import (
    console,
    print_error,
    print_extension_detail,
    print_extensions,
    print_json,
    print_success,
    print_warning,
)

extensions_app = typer.Typer(
    name="extensions",
    help="Manage locally installed extensions.",
)


def get_manager():
    """Get extension manager from configuration."""
    from site_extensions import ExtensionManager

    return ExtensionManager.from_config()


@extensions_app.command("list")
def list_extensions(
    filter: Optional[str] = typer.Option(
        None,
        "--filter",
        "-f",
        help="Only show extensions whose id or title contains this text",
    ),
    latest: bool = typer.Option(
        False,
        "--latest",
        "-l",
        help="Compare against the latest catalog versions",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List installed extensions.

    Examples:
        siteext extensions list
        siteext extensions list --filter monitor --latest
    """
    from site_extensions import FilesystemFailure

    manager = get_manager()

    try:
        installed = manager.get_local_extensions(filter, latest_info=latest)
    except FilesystemFailure as e:
        print_error(str(e))
        raise typer.Exit(1)

    if as_json:
        print_json([ext.to_dict() for ext in installed])
        return

    if not installed:
        print_warning("No extensions installed")
        console.print("[dim]Install extensions with: siteext catalog install <id>[/dim]")
        return

    print_extensions(installed, title="Installed Extensions", show_latest=latest)


@extensions_app.command("show")
def show(
    id: str = typer.Argument(..., help="Extension id"),
    latest: bool = typer.Option(
        False,
        "--latest",
        "-l",
        help="Compare against the latest catalog version",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show details of an installed extension.

    Example:
        siteext extensions show foo --latest
    """
    manager = get_manager()
    ext = manager.get_local_extension(id, latest_info=latest)

    if ext is None:
        print_error(f"Extension '{id}' is not installed")
        raise typer.Exit(1)

    if as_json:
        print_json(ext.to_dict())
        return

    print_extension_detail(ext)


@extensions_app.command("uninstall")
def uninstall(
    id: str = typer.Argument(..., help="Extension id to uninstall"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Uninstall an extension.

    Example:
        siteext extensions uninstall foo
    """
    from site_extensions import FilesystemFailure

    manager = get_manager()

    if not yes:
        if not typer.confirm(f"Uninstall {id}?"):
            raise typer.Exit(0)

    try:
        removed = manager.uninstall_extension(id)
    except FilesystemFailure as e:
        print_error(str(e))
        raise typer.Exit(1)

    if removed:
        print_success(f"Uninstalled: {id}")
    else:
        print_error(f"Failed to uninstall: {id}")
        raise typer.Exit(1)


@extensions_app.command("outdated")
def outdated() -> None:
    """List installed extensions with a newer catalog version.

    Example:
        siteext extensions outdated
    """
    manager = get_manager()
    updates = manager.check_updates()

    if not updates:
        print_success("All extensions are up to date")
        return

    console.print(f"[bold]Found {len(updates)} updates available:[/bold]")
    for ext in updates:
        console.print(f"  {ext.id}: {ext.version} → {ext.latest_info.version}")
    console.print("\n[dim]Update with: siteext catalog install <id>[/dim]")
