"""Catalog CLI commands for siteext.

Browse, search, and install extensions from the remote catalog.
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

catalog_app = typer.Typer(
    name="catalog",
    help="Browse and install extensions from the remote catalog.",
)


def get_manager():
    """Get extension manager from configuration."""
    from site_extensions import ExtensionManager

    return ExtensionManager.from_config()


@catalog_app.command("list")
def list_remote(
    filter: Optional[str] = typer.Option(
        None,
        "--filter",
        "-f",
        help="Search text (omit to list every package)",
    ),
    prerelease: bool = typer.Option(
        False,
        "--prerelease",
        help="Include prerelease versions in search results",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """List or search extensions in the catalog.

    Examples:
        siteext catalog list
        siteext catalog list --filter monitoring --prerelease
    """
    from site_extensions import CatalogUnavailable

    manager = get_manager()

    try:
        results = manager.get_remote_extensions(filter, allow_prerelease=prerelease)
    except CatalogUnavailable as e:
        print_error(f"Catalog unavailable: {e}")
        raise typer.Exit(1)

    if as_json:
        print_json([ext.to_dict() for ext in results])
        return

    if not results:
        print_warning(f"No extensions found{f' for: {filter}' if filter else ''}")
        return

    print_extensions(results, title=f"Search Results: {filter}" if filter else "Catalog")


@catalog_app.command("show")
def show(
    id: str = typer.Argument(..., help="Extension id"),
    version: Optional[str] = typer.Option(
        None,
        "--version",
        "-v",
        help="Exact version (default: latest)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show details of an extension in the catalog.

    Example:
        siteext catalog show foo --version 1.2.0
    """
    from site_extensions import CatalogUnavailable

    manager = get_manager()

    try:
        ext = manager.get_remote_extension(id, version)
    except CatalogUnavailable as e:
        print_error(f"Catalog unavailable: {e}")
        raise typer.Exit(1)

    if ext is None:
        print_error(f"Extension '{id}' not found in catalog")
        raise typer.Exit(1)

    if as_json:
        print_json(ext.to_dict())
        return

    print_extension_detail(ext)
    console.print(f"\n[dim]Install with: siteext catalog install {id}[/dim]")


@catalog_app.command("install")
def install(
    id: str = typer.Argument(..., help="Extension id to install"),
) -> None:
    """Install the latest version of an extension.

    An existing installation is replaced.

    Example:
        siteext catalog install foo
    """
    from site_extensions import CatalogUnavailable, FilesystemFailure, InstallError

    manager = get_manager()

    console.print(f"Installing {id}...")
    try:
        ext = manager.install_extension(id)
    except CatalogUnavailable as e:
        print_error(f"Catalog unavailable: {e}")
        raise typer.Exit(1)
    except (InstallError, FilesystemFailure) as e:
        print_error(f"Installation failed: {e}")
        raise typer.Exit(1)

    if ext is None:
        print_error(f"Extension '{id}' not found in catalog")
        raise typer.Exit(1)

    print_success(f"Installed {ext.id} v{ext.version}")
    console.print(f"[dim]Path: {ext.local_path}[/dim]")
