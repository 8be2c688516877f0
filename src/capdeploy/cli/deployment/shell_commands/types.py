"""Data types for shell command results.

This module contains all dataclasses and type definitions used across
the shell command modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

__all__ = [
    "CommandResult",
    "OperationStatus",
    "OperationResult",
    "RepositoryStatus",
    "ManifestInfo",
    "TagInfo",
    "RevisionInfo",
    "parse_timestamp",
]


@dataclass
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        success: Whether the command exited with code 0
        stdout: Captured standard output
        stderr: Captured standard error
        returncode: Process exit code
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined output, stderr first, useful for error details."""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)


class OperationStatus(Enum):
    """Outcome of an idempotent platform operation."""

    APPLIED = "applied"  # Change was made
    ALREADY_SATISFIED = "already_satisfied"  # Nothing to do, desired state held
    FAILED = "failed"


@dataclass
class OperationResult:
    """Result of an idempotent operation such as a role assignment."""

    status: OperationStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status != OperationStatus.FAILED


class RepositoryStatus(Enum):
    """Answer of a repository existence lookup."""

    EXISTS = "exists"
    MISSING = "missing"
    ERROR = "error"  # Lookup failed for a reason other than "not found"


@dataclass
class ManifestInfo:
    """A manifest stored in an ACR repository.

    Attributes:
        digest: Content digest (sha256:...)
        tags: Tags currently pointing at the manifest
        created_at: Push time, when reported by the registry
    """

    digest: str
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class TagInfo:
    """A tag in an ACR repository and the digest it points at."""

    name: str
    digest: str | None = None


@dataclass
class RevisionInfo:
    """A Container App revision.

    Attributes:
        name: Revision name
        created_at: Creation timestamp
        active: Whether the revision is active
        image: Image of the first container in the revision template
    """

    name: str
    created_at: datetime | None = None
    active: bool = False
    image: str | None = None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as emitted by the az CLI.

    Args:
        value: Timestamp string (e.g., "2024-05-01T10:20:30.123456+00:00" or
               "2024-05-01T10:20:30Z")

    Returns:
        Parsed datetime, or None if the value is empty or malformed
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # az emits 7 fractional digits on some resources; datetime accepts up to 6
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        suffix = ""
        for index, char in enumerate(rest):
            if not char.isdigit():
                suffix = rest[index:]
                break
            digits += char
        text = f"{head}.{digits[:6]}{suffix}" if digits else f"{head}{suffix}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
