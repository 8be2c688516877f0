"""Tests for azd environment and resource tag commands."""

from unittest.mock import MagicMock

import pytest

from capdeploy.cli.deployment.shell_commands.azd import AzdCommands
from capdeploy.cli.deployment.shell_commands.resource import ResourceCommands
from capdeploy.cli.deployment.shell_commands.types import CommandResult


class TestAzdCommands:
    """Tests for AzdCommands."""

    @pytest.fixture
    def mock_runner(self) -> MagicMock:
        return MagicMock()

    def test_get_value(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="value\n")

        assert AzdCommands(mock_runner).get_value("KEY") == "value"
        assert mock_runner.run.call_args[0][0] == ["azd", "env", "get-value", "KEY"]

    @pytest.mark.parametrize(
        "result",
        [
            CommandResult(success=True, stdout="ERROR: key 'KEY' not found in the environment values"),
            CommandResult(success=False, stderr="no environment", returncode=1),
            CommandResult(success=True, stdout="  \n"),
        ],
    )
    def test_get_value_missing(self, mock_runner: MagicMock, result: CommandResult) -> None:
        mock_runner.run.return_value = result

        assert AzdCommands(mock_runner).get_value("KEY") is None

    def test_environment_flag(self, mock_runner: MagicMock) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        AzdCommands(mock_runner, "test").set_value("KEY", "v")

        assert mock_runner.run.call_args[0][0] == ["azd", "env", "set", "KEY", "v", "-e", "test"]


class TestResourceCommands:
    def test_merge_tags(self) -> None:
        mock_runner = MagicMock()
        mock_runner.run.return_value = CommandResult(success=True)

        ResourceCommands(mock_runner).merge_tags(
            "/apps/dev-rap-fe", {"raptor.lastDigest": "sha256:1", "raptor.lastCommit": "abc"}
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd[:3] == ["az", "tag", "update"]
        assert cmd[cmd.index("--operation") + 1] == "Merge"
        assert cmd[cmd.index("--tags") + 1 :] == [
            "raptor.lastDigest=sha256:1",
            "raptor.lastCommit=abc",
        ]
