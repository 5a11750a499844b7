"""CLI command modules for siteext."""

from cli.commands.catalog import catalog_app
from cli.commands.extensions import extensions_app

__all__ = ["catalog_app", "extensions_app"]
