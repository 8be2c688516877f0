"""Commands that maintain the images recorded in the azd environment."""

from typing import Annotated

import typer
from rich.table import Table

from capdeploy.cli.context import get_cli_context
from capdeploy.cli.deployment.reconciler import BindingValidator
from capdeploy.cli.shared.console import console, with_error_handling

ServicesArgument = Annotated[
    list[str] | None,
    typer.Argument(help="Service keys (defaults to all configured services)"),
]
EnvOption = Annotated[
    str | None,
    typer.Option("--env", "-e", help="Environment name (defaults to AZURE_ENV_NAME)"),
]


@with_error_handling
def resolve(
    services: ServicesArgument = None,
    environment: EnvOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Resolve without writing back to the azd environment"),
    ] = False,
) -> None:
    """Resolve each service's image and persist the choice.

    Examples:
        capdeploy resolve
        capdeploy resolve backend --env test
    """
    console.print_header("Resolving Service Images")

    deployer = get_cli_context().deployer(environment)
    resolved = deployer.resolve_images(services, environment, write_back=not dry_run)

    table = Table(title="Resolved Images")
    table.add_column("Service", style="cyan")
    table.add_column("Source")
    table.add_column("Image")
    table.add_column("AcrPull")
    for target, image in resolved:
        table.add_row(
            target.service_key,
            image.source.value,
            str(image.reference),
            "required" if image.requires_registry_access else "skipped",
        )
    console.print(table)


@with_error_handling
def validate_binding(
    services: ServicesArgument = None,
    environment: EnvOption = None,
) -> None:
    """Check that image locations and AcrPull skip flags agree.

    Exits 1 when any service would fail to pull its image.
    """
    ctx = get_cli_context()
    validator = BindingValidator(ctx.commands_for(environment), ctx.settings, ctx.console)
    result = validator.validate(services, environment)
    validator.display_results(result)

    if result.has_errors:
        raise typer.Exit(1)
