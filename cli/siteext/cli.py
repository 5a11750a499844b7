"""siteext CLI.

Main command-line interface for managing site extensions.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from cli.siteext.output import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
    setup_logging,
)

app = typer.Typer(
    name="siteext",
    help="siteext - install and manage site extensions from a remote catalog",
    no_args_is_help=True,
)

# Config sub-app
config_app = typer.Typer(
    name="config",
    help="Manage configuration settings.",
)
app.add_typer(config_app, name="config")

# Register command sub-apps
from cli.commands.catalog import catalog_app
from cli.commands.extensions import extensions_app

app.add_typer(catalog_app, name="catalog")
app.add_typer(extensions_app, name="extensions")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable debug logging",
    ),
) -> None:
    """Configure logging before any command runs."""
    from site_extensions.config import get_config

    level = "DEBUG" if verbose else get_config().logging.level
    setup_logging(level)


@config_app.command("show")
def config_show(
    section: Optional[str] = typer.Argument(
        None,
        help="Config section to show (catalog, store, retry, logging)",
    ),
) -> None:
    """Show current configuration.

    Examples:
        siteext config show           # Show all config
        siteext config show catalog   # Show catalog section only
    """
    from site_extensions.config import find_config_file, get_config

    config_path = find_config_file()
    if config_path:
        print_info(f"Config file: {config_path}")
    else:
        print_warning("No siteext.toml found (using defaults)")

    sections = get_config().to_dict()

    if section:
        section_lower = section.lower()
        if section_lower not in sections:
            print_error(f"Unknown section: {section}")
            print_info(f"Available: {', '.join(sections.keys())}")
            raise typer.Exit(1)
        sections = {section_lower: sections[section_lower]}

    for name, values in sections.items():
        console.print(f"\n[bold][{name}][/bold]")

        table = Table(show_header=False)
        table.add_column("Key", style="cyan")
        table.add_column("Value")

        for key, value in values.items():
            table.add_row(key, str(value))

        console.print(table)


@config_app.command("init")
def config_init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing siteext.toml",
    ),
) -> None:
    """Create a default siteext.toml file.

    Example:
        siteext config init
        siteext config init --force
    """
    from site_extensions.config import CONFIG_FILE_NAME

    config_path = Path.cwd() / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        print_warning(f"Config file already exists: {config_path}")
        print_info("Use --force to overwrite")
        raise typer.Exit(1)

    default_config = '''# siteext configuration
# Environment variables override these values:
#   SITEEXT_CATALOG_URL, SITEEXT_CATALOG_TIMEOUT, SITEEXT_ROOT,
#   SITEEXT_RETRY_ATTEMPTS, LOG_LEVEL

[catalog]
url = "https://siteextensions.azurewebsites.net/api/v2"
timeout = 30.0

[store]
root = "~/site/SiteExtensions"

[retry]
max_attempts = 5
delay_seconds = 0.25

[logging]
level = "INFO"
'''

    config_path.write_text(default_config)
    print_success(f"Created config file: {config_path}")


@app.command()
def version() -> None:
    """Show siteext version."""
    from site_extensions import __version__

    console.print(f"siteext v{__version__}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
