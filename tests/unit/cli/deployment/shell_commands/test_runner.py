"""Tests for CommandRunner and result types."""

import subprocess
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from capdeploy.cli.deployment.shell_commands import ShellCommands
from capdeploy.cli.deployment.shell_commands.runner import CommandRunner
from capdeploy.cli.deployment.shell_commands.types import CommandResult, parse_timestamp


@pytest.fixture
def runner() -> CommandRunner:
    return CommandRunner(Path("/test/project"))


@patch("subprocess.run")
def test_run_executes_in_project_root(mock_run, runner: CommandRunner) -> None:
    """Test that run() executes subprocess from the project root."""
    mock_run.return_value = subprocess.CompletedProcess(
        args=[], returncode=0, stdout="out", stderr=""
    )

    result = runner.run(["az", "version"])

    assert result.success
    assert result.stdout == "out"
    assert mock_run.call_args.args[0] == ["az", "version"]
    assert mock_run.call_args.kwargs["cwd"] == Path("/test/project")
    assert mock_run.call_args.kwargs["text"] is True


@patch("subprocess.run")
def test_run_reports_failure(mock_run, runner: CommandRunner) -> None:
    mock_run.return_value = subprocess.CompletedProcess(
        args=[], returncode=2, stdout="", stderr="boom\n"
    )

    result = runner.run(["az", "fail"])

    assert not result.success
    assert result.returncode == 2
    assert result.output == "boom"


@patch("subprocess.run")
def test_run_json_decodes(mock_run, runner: CommandRunner) -> None:
    mock_run.return_value = subprocess.CompletedProcess(
        args=[], returncode=0, stdout='[{"name": "a"}]', stderr=""
    )

    assert runner.run_json(["az", "list"]) == [{"name": "a"}]


@pytest.mark.parametrize(
    "completed",
    [
        subprocess.CompletedProcess(args=[], returncode=0, stdout="not json", stderr=""),
        subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr=""),
        subprocess.CompletedProcess(args=[], returncode=1, stdout="{}", stderr="err"),
    ],
)
def test_run_json_returns_none(completed, runner: CommandRunner) -> None:
    with patch("subprocess.run", return_value=completed):
        assert runner.run_json(["az", "list"]) is None


def test_command_result_output_combines_streams() -> None:
    result = CommandResult(success=False, stdout=" out ", stderr=" err ")
    assert result.output == "err\nout"


def test_shell_commands_share_runner(tmp_path: Path) -> None:
    commands = ShellCommands(tmp_path, azd_environment="dev")

    assert commands.project_root == tmp_path
    assert commands.runner.project_root == tmp_path
    assert commands.azd.environment == "dev"


class TestParseTimestamp:
    def test_zulu(self) -> None:
        assert parse_timestamp("2024-05-01T10:20:30Z") == datetime(
            2024, 5, 1, 10, 20, 30, tzinfo=UTC
        )

    def test_seven_fractional_digits(self) -> None:
        parsed = parse_timestamp("2024-05-01T10:20:30.1234567+00:00")
        assert parsed is not None
        assert parsed.microsecond == 123456

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_invalid(self, value: str | None) -> None:
        assert parse_timestamp(value) is None
