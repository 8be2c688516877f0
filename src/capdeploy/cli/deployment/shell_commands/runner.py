"""Command runner for the az and azd executables.

Every specialized command module funnels through this runner, so command
lines are logged in one place and non-zero exits come back as a
CommandResult unless the caller asks for `check=True`.
"""

from __future__ import annotations

import json
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from loguru import logger

from .types import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling."""

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Working directory for commands. azd resolves its
                          environment from the `.azure` folder found here.
        """
        self.project_root = project_root

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
        check: bool = False,
    ) -> CommandResult:
        """Execute a command and capture its result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            capture_output: Whether to capture stdout/stderr
            check: Whether to raise exception on non-zero exit code

        Returns:
            CommandResult with success status, output, and return code

        Raises:
            subprocess.CalledProcessError: If check=True and command fails
            FileNotFoundError: If the executable is not installed
        """
        logger.debug(f"$ {' '.join(cmd)}")
        completed = subprocess.run(
            list(cmd),
            cwd=cwd or self.project_root,
            capture_output=capture_output,
            text=True,
            check=check,
        )
        if completed.returncode != 0:
            logger.debug(f"exit {completed.returncode}: {(completed.stderr or '').strip()}")
        return CommandResult(
            success=completed.returncode == 0,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            returncode=completed.returncode,
        )

    def run_json(self, cmd: Sequence[str], *, cwd: Path | None = None) -> Any | None:
        """Execute a command that prints JSON and return the decoded value.

        Args:
            cmd: Command and arguments (should request `-o json`)
            cwd: Working directory (defaults to project_root)

        Returns:
            Decoded JSON, or None if the command failed or printed nothing
            parseable
        """
        result = self.run(cmd, cwd=cwd)
        if not result.success or not result.stdout.strip():
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.warning(f"Unparseable JSON from: {' '.join(cmd)}")
            return None
