"""Generic ARM resource command abstractions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class ResourceCommands:
    """Commands that apply to any ARM resource."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize resource commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def merge_tags(self, resource_id: str, tags: Mapping[str, str]) -> CommandResult:
        """Merge tags into a resource without removing existing ones.

        Args:
            resource_id: ARM resource id
            tags: Tags to add or overwrite

        Returns:
            CommandResult with update status
        """
        pairs = [f"{key}={value}" for key, value in tags.items()]
        return self._runner.run(
            [
                "az",
                "tag",
                "update",
                "--resource-id",
                resource_id,
                "--operation",
                "Merge",
                "--tags",
                *pairs,
            ]
        )
