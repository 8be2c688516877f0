"""Main CLI application module.

This module provides the main entry point for the capdeploy CLI.

Commands:
- deploy: Fast-path image update for one service
- promote: Import an image into another environment and deploy it
- release-notes: Change summary for a promotion
- resolve: Resolve and persist service images
- validate-binding: Check image/AcrPull flag consistency
- status: Show a service's deployment state
"""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from .commands import deploy, promote, release_notes, resolve, status, validate_binding
from .context import build_cli_context
from .deployment.errors import DeploymentError
from .shared.console import console

# Create the main CLI application
app = typer.Typer(
    help="🚀 capdeploy - Azure Container Apps fast-path deployment",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def configure_logging(verbose: bool) -> None:
    """Route loguru output to stderr, at DEBUG when verbose."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show diagnostic logging"),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to capdeploy.yaml"),
    ] = None,
) -> None:
    configure_logging(verbose)
    if config is not None:
        try:
            ctx.obj = build_cli_context(config)
        except DeploymentError as e:
            console.handle_error(e.message, e.details)


app.command("deploy")(deploy)
app.command("promote")(promote)
app.command("release-notes")(release_notes)
app.command("resolve")(resolve)
app.command("validate-binding")(validate_binding)
app.command("status")(status)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
