"""siteext CLI.

Command-line interface for the site extension manager. The typer app
lives in ``cli.siteext.cli``; the command sub-apps in ``cli.commands``
import the output helpers from this package.
"""
