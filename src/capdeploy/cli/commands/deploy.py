"""Fast-path deployment command."""

from typing import Annotated

import typer

from capdeploy.cli.context import get_cli_context
from capdeploy.cli.deployment.errors import DeploymentError
from capdeploy.cli.deployment.reconciler.constants import CONSTANTS
from capdeploy.cli.shared.console import console, with_error_handling
from capdeploy.cli.shared.outputs import write_github_output


@with_error_handling
def deploy(
    service: Annotated[str, typer.Argument(help="Service key (e.g. frontend, backend)")],
    environment: Annotated[str, typer.Argument(help="Target environment name")],
    image: Annotated[
        str | None,
        typer.Option(
            "--image",
            "-i",
            help="Image to deploy (registry/repo@sha256:...); resolved when omitted",
        ),
    ] = None,
) -> None:
    """Update a service's Container App image without a full provision.

    Exits 0 when the fast path succeeded. Exit code 1 means the caller
    should fall back to `azd up`.

    Examples:
        capdeploy deploy frontend dev
        capdeploy deploy backend test --image ngraptortest.azurecr.io/raptor/backend-test@sha256:...
    """
    console.print_header(f"Deploying {service} to {environment}")

    try:
        deployer = get_cli_context().deployer(environment)
        result = deployer.deploy(service, environment, image)
    except DeploymentError:
        write_github_output(CONSTANTS.FAST_PATH_OUTPUT, "false")
        raise

    write_github_output(CONSTANTS.FAST_PATH_OUTPUT, str(result.did_fast_path).lower())
    if not result.did_fast_path:
        raise typer.Exit(1)
