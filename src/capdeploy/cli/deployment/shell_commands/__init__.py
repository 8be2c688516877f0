"""Shell command abstractions for Azure Container Apps deployment operations.

This package provides a clean interface over the `az` and `azd` command
line tools used during deployment. It is organized into specialized modules
for each tool area:

- acr: Container registry repositories, manifests, tags and imports
- containerapp: Container App definition, registry binding, image updates, revisions
- role: Role assignments and managed identity lookups
- azd: azd environment key/value store
- resource: ARM resource tags

Usage:
    from capdeploy.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    if commands.containerapp.exists("dev-rap-fe", "rg-raptor-dev"):
        print("Container App found")
"""

from pathlib import Path

from .acr import AcrCommands
from .azd import AzdCommands
from .containerapp import ContainerAppCommands
from .resource import ResourceCommands
from .role import RoleCommands
from .runner import CommandRunner
from .types import (
    CommandResult,
    ManifestInfo,
    OperationResult,
    OperationStatus,
    RepositoryStatus,
    RevisionInfo,
    TagInfo,
)


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        acr: Azure Container Registry commands
        containerapp: Azure Container Apps commands
        role: Role assignment and identity commands
        azd: azd environment commands
        resource: ARM resource tag commands

    Example:
        >>> commands = ShellCommands(Path("."))
        >>> digest = commands.acr.latest_digest("ngraptordev", "raptor/frontend-dev")
    """

    def __init__(self, project_root: Path, azd_environment: str | None = None) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
            azd_environment: azd environment to read and write; the default
                             azd environment when None
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root)

        self.acr = AcrCommands(self._runner)
        self.containerapp = ContainerAppCommands(self._runner)
        self.role = RoleCommands(self._runner)
        self.azd = AzdCommands(self._runner, azd_environment)
        self.resource = ResourceCommands(self._runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root

    @property
    def runner(self) -> CommandRunner:
        """Get the shared command runner."""
        return self._runner


__all__ = [
    "ShellCommands",
    "CommandResult",
    "ManifestInfo",
    "OperationResult",
    "OperationStatus",
    "RepositoryStatus",
    "RevisionInfo",
    "TagInfo",
    # Specialized command classes for direct usage
    "AcrCommands",
    "AzdCommands",
    "ContainerAppCommands",
    "ResourceCommands",
    "RoleCommands",
    "CommandRunner",
]
