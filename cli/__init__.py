"""Command-line routing layer for the site extension manager."""
