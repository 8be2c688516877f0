"""Image promotion commands."""

from pathlib import Path
from typing import Annotated

import typer

from capdeploy.cli.context import get_cli_context
from capdeploy.cli.deployment.errors import DeploymentError
from capdeploy.cli.deployment.reconciler.constants import CONSTANTS
from capdeploy.cli.shared.console import console, with_error_handling
from capdeploy.cli.shared.outputs import write_github_output

SourceRegistryOption = Annotated[
    str | None,
    typer.Option(
        "--source-registry",
        help="Source ACR name (defaults to AZURE_ACR_NAME_SRC or the image's registry)",
    ),
]
SourceRepoOption = Annotated[
    str | None,
    typer.Option(
        "--source-repo",
        help="GitHub repository (owner/repo) used for compare links",
    ),
]


@with_error_handling
def promote(
    service: Annotated[str, typer.Argument(help="Service key (e.g. frontend, backend)")],
    source_image: Annotated[
        str, typer.Argument(help="Source image in digest form (registry/repo@sha256:...)")
    ],
    target_env: Annotated[str, typer.Argument(help="Target environment name")],
    source_registry: SourceRegistryOption = None,
    no_tag: Annotated[
        bool,
        typer.Option("--no-tag", help="Skip the promoted-<timestamp> tag"),
    ] = False,
    release_notes_path: Annotated[
        Path | None,
        typer.Option(
            "--release-notes",
            help="Write Markdown release notes to this file before deploying",
        ),
    ] = None,
    source_repo: SourceRepoOption = None,
) -> None:
    """Import an image into the target environment's ACR and deploy it.

    Examples:
        capdeploy promote backend ngraptordev.azurecr.io/raptor/backend-dev@sha256:... test
        capdeploy promote frontend <image> prod --release-notes notes.md --source-repo org/raptor
    """
    console.print_header(f"Promoting {service} to {target_env}")

    try:
        deployer = get_cli_context().deployer(target_env)
        plan = deployer.plan_promotion(
            service, source_image, target_env, source_registry=source_registry
        )
        console.print(plan.describe())

        if release_notes_path is not None:
            # Notes compare against what is deployed now, so render them first
            notes = deployer.release_notes(plan, source_repo=source_repo)
            release_notes_path.write_text(notes.render_markdown())
            console.ok(f"Release notes written to {release_notes_path}")

        result = deployer.promote(plan, tag=not no_tag)
    except DeploymentError:
        write_github_output(CONSTANTS.FAST_PATH_OUTPUT, "false")
        raise

    write_github_output(CONSTANTS.FAST_PATH_OUTPUT, str(result.success).lower())
    if not result.success:
        raise typer.Exit(1)


@with_error_handling
def release_notes(
    service: Annotated[str, typer.Argument(help="Service key (e.g. frontend, backend)")],
    source_image: Annotated[
        str, typer.Argument(help="Source image in digest form (registry/repo@sha256:...)")
    ],
    target_env: Annotated[str, typer.Argument(help="Target environment name")],
    source_repo: SourceRepoOption = None,
    source_registry: SourceRegistryOption = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write Markdown to this file instead of stdout"),
    ] = None,
) -> None:
    """Summarize what a promotion would change, without deploying.

    Examples:
        capdeploy release-notes backend <image> prod --source-repo org/raptor
    """
    deployer = get_cli_context().deployer(target_env)
    plan = deployer.plan_promotion(
        service, source_image, target_env, source_registry=source_registry
    )
    markdown = deployer.release_notes(plan, source_repo=source_repo).render_markdown()

    if output is None:
        typer.echo(markdown)
        return
    output.write_text(markdown)
    console.ok(f"Release notes written to {output}")
