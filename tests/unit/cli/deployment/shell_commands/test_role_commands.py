"""Tests for role assignment commands."""

from unittest.mock import MagicMock

import pytest

from capdeploy.cli.deployment.shell_commands.role import RoleCommands
from capdeploy.cli.deployment.shell_commands.types import CommandResult, OperationStatus

SCOPE = "/subscriptions/0/resourceGroups/rg/providers/Microsoft.ContainerRegistry/registries/acr"


class TestRoleCommands:
    """Tests for RoleCommands."""

    @pytest.fixture
    def mock_runner(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def role(self, mock_runner: MagicMock) -> RoleCommands:
        return RoleCommands(mock_runner)

    def test_assign_applied(self, role: RoleCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="{}")

        result = role.assign("principal-1", "AcrPull", SCOPE)

        assert result.status == OperationStatus.APPLIED
        assert result.ok
        cmd = mock_runner.run.call_args[0][0]
        assert cmd[cmd.index("--assignee-object-id") + 1] == "principal-1"
        assert cmd[cmd.index("--assignee-principal-type") + 1] == "ServicePrincipal"
        assert cmd[cmd.index("--scope") + 1] == SCOPE

    def test_assign_existing_is_satisfied(
        self, role: RoleCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False,
            stderr="(RoleAssignmentExists) The role assignment already exists.",
            returncode=1,
        )

        result = role.assign("principal-1", "AcrPull", SCOPE)

        assert result.status == OperationStatus.ALREADY_SATISFIED
        assert result.ok

    def test_assign_failure(self, role: RoleCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="(AuthorizationFailed) denied", returncode=1
        )

        result = role.assign("principal-1", "AcrPull", SCOPE)

        assert result.status == OperationStatus.FAILED
        assert not result.ok
        assert "AuthorizationFailed" in result.message

    def test_has_assignment(self, role: RoleCommands, mock_runner: MagicMock) -> None:
        mock_runner.run_json.return_value = [{"id": "assignment"}]
        assert role.has_assignment("principal-1", "AcrPull", SCOPE)

        mock_runner.run_json.return_value = []
        assert not role.has_assignment("principal-1", "AcrPull", SCOPE)

    def test_identity_principal_id(self, role: RoleCommands, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="pid-9\n")

        assert role.identity_principal_id("/identities/uai") == "pid-9"
