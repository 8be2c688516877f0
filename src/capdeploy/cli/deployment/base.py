"""Base deployer class with shared functionality."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from capdeploy.cli.deployment.errors import ConfigurationError
from capdeploy.cli.deployment.shell_commands import ShellCommands
from capdeploy.utils.console_like import ConsoleLike

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings


class BaseDeployer(ABC):
    """Abstract base class for Container Apps deployers.

    Holds the settings and shell commands of one invocation.
    """

    def __init__(
        self,
        console: ConsoleLike,
        project_root: Path,
        settings: Settings,
        commands: ShellCommands | None = None,
    ):
        """Initialize the deployer.

        Args:
            console: Console for output
            project_root: Path to the project root directory
            settings: Loaded capdeploy settings
            commands: Shell commands; bound to the configured azd environment
                when omitted
        """
        self.console = console
        self.project_root = project_root
        self.settings = settings
        # Local runs keep AZURE_* values in .env
        load_dotenv(self.project_root / ".env", override=False)
        self.commands = commands or ShellCommands(
            project_root, azd_environment=settings.azure.env_name
        )

    @abstractmethod
    def deploy(self, **kwargs: Any) -> Any:
        """Bring a service to its desired image."""

    @abstractmethod
    def show_status(self, **kwargs: Any) -> Any:
        """Display the current state of a service."""

    @property
    def resource_group(self) -> str:
        return self.settings.azure.resource_group or ""

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError listing every unset required setting.

        Args:
            fields: AzureSettings attribute names the operation needs
        """
        missing = self.settings.missing_required(*fields)
        if missing:
            raise ConfigurationError("Missing required configuration", missing=missing)

    def success(self, message: str) -> None:
        self.console.print(f"[green]✅ {message}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {message}[/yellow]")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ {message}[/blue]")
