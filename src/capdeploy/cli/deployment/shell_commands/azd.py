"""Azure Developer CLI environment command abstractions.

The azd environment is the per-environment configuration store: it holds
the image each service should run and its registry-access flags.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class AzdCommands:
    """azd environment key/value access."""

    def __init__(self, runner: CommandRunner, environment: str | None = None) -> None:
        """Initialize azd commands.

        Args:
            runner: Command runner for executing shell commands
            environment: azd environment name; the default environment when None
        """
        self._runner = runner
        self.environment = environment

    def _env_args(self) -> list[str]:
        return ["-e", self.environment] if self.environment else []

    def get_value(self, key: str) -> str | None:
        """Read a value from the azd environment.

        Returns:
            The value, or None when the key is unset
        """
        result = self._runner.run(["azd", "env", "get-value", key, *self._env_args()])
        value = result.stdout.strip()
        # azd prints "ERROR: key ... not found" on stdout for missing keys
        if not result.success or not value or value.startswith("ERROR"):
            return None
        return value

    def set_value(self, key: str, value: str) -> CommandResult:
        """Write a value to the azd environment."""
        return self._runner.run(["azd", "env", "set", key, value, *self._env_args()])
