"""Azure RBAC and managed identity command abstractions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import OperationResult, OperationStatus

if TYPE_CHECKING:
    from .runner import CommandRunner

_ALREADY_EXISTS_MARKERS = ("roleassignmentexists", "already exists")


class RoleCommands:
    """Role assignment and identity lookups.

    Provides operations for:
    - Granting a role to a service principal (idempotent)
    - Checking whether a role assignment is visible
    - Resolving the principal id of a user-assigned identity
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize role commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def assign(self, principal_id: str, role: str, scope: str) -> OperationResult:
        """Grant a role to a service principal at a scope.

        An assignment that already exists is reported as ALREADY_SATISFIED
        rather than as a failure.

        Args:
            principal_id: Object id of the identity
            role: Role name or id (e.g., "AcrPull")
            scope: ARM resource id to scope the assignment to

        Returns:
            OperationResult
        """
        result = self._runner.run(
            [
                "az",
                "role",
                "assignment",
                "create",
                "--assignee-object-id",
                principal_id,
                "--assignee-principal-type",
                "ServicePrincipal",
                "--role",
                role,
                "--scope",
                scope,
            ]
        )
        if result.success:
            return OperationResult(OperationStatus.APPLIED)
        text = result.output.lower()
        if any(marker in text for marker in _ALREADY_EXISTS_MARKERS):
            return OperationResult(OperationStatus.ALREADY_SATISFIED, result.output)
        return OperationResult(OperationStatus.FAILED, result.output)

    def has_assignment(self, principal_id: str, role: str, scope: str) -> bool:
        """Check whether a role assignment is visible at a scope."""
        data = self._runner.run_json(
            [
                "az",
                "role",
                "assignment",
                "list",
                "--assignee",
                principal_id,
                "--role",
                role,
                "--scope",
                scope,
                "-o",
                "json",
            ]
        )
        return isinstance(data, list) and len(data) > 0

    def identity_principal_id(self, identity_id: str) -> str | None:
        """Get the principal id of a user-assigned identity.

        Args:
            identity_id: ARM resource id of the identity

        Returns:
            Principal id, or None if the identity could not be read
        """
        result = self._runner.run(
            ["az", "identity", "show", "--ids", identity_id, "--query", "principalId", "-o", "tsv"]
        )
        value = result.stdout.strip()
        return value if result.success and value else None
