"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click
import typer

from capdeploy.cli.deployment.errors import ConfigurationError
from capdeploy.cli.deployment.reconciler import ServiceDeployer
from capdeploy.cli.deployment.shell_commands import ShellCommands
from capdeploy.cli.shared.console import CLIConsole, console
from capdeploy.runtime.config.config_data import Settings
from capdeploy.runtime.config.config_loader import CONFIG_PATH, load_settings
from capdeploy.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    settings: Settings
    commands: ShellCommands

    def commands_for(self, environment: str | None) -> ShellCommands:
        """Shell commands bound to the azd environment of `environment`."""
        if not environment or environment == self.commands.azd.environment:
            return self.commands
        return ShellCommands(self.project_root, azd_environment=environment)

    def deployer(self, environment: str | None = None) -> ServiceDeployer:
        return ServiceDeployer(
            self.console,
            self.project_root,
            self.settings,
            commands=self.commands_for(environment),
        )


def build_cli_context(config_path: Path | None = None) -> CLIContext:
    """Build a fresh CLIContext.

    Raises:
        ConfigurationError: If the configuration file cannot be loaded
    """
    project_root = get_project_root()
    if config_path is None and (project_root / CONFIG_PATH).exists():
        config_path = project_root / CONFIG_PATH
    try:
        settings = load_settings(config_path, dotenv_path=project_root / ".env")
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not load configuration: {e}") from e

    return CLIContext(
        console=console,
        project_root=project_root,
        settings=settings,
        commands=ShellCommands(project_root, azd_environment=settings.azure.env_name),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
