"""Read-only status command."""

from typing import Annotated

import typer

from capdeploy.cli.context import get_cli_context
from capdeploy.cli.shared.console import with_error_handling


@with_error_handling
def status(
    service: Annotated[str, typer.Argument(help="Service key (e.g. frontend, backend)")],
    environment: Annotated[str, typer.Argument(help="Environment name")],
) -> None:
    """Show the deployed image, registry binding and recorded metadata."""
    get_cli_context().deployer(environment).show_status(service, environment)
