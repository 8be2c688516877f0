"""Resolvability checks for image references against ACR.

The Container Apps platform validates every image in an app's template on a
direct update, including the image being replaced. Before choosing an update
strategy we therefore need to know whether the *currently deployed* image
still exists. Existence is checked top-down: repository first, then digest,
so a deleted repository is never reported as a missing digest.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from ..shell_commands import RepositoryStatus
from .constants import CONSTANTS

if TYPE_CHECKING:
    from ..shell_commands import ShellCommands
    from .models import ImageReference


class ReferenceStatus(Enum):
    """Classification of an image reference."""

    RESOLVABLE = "resolvable"
    REPOSITORY_MISSING = "repository_missing"
    DIGEST_MISSING = "digest_missing"
    UNVERIFIABLE = "unverifiable"  # Lookup failed; treat as stale
    NOT_APPLICABLE = "not_applicable"  # Nothing to probe


@dataclass(frozen=True)
class InspectionResult:
    """Outcome of a resolvability check.

    Attributes:
        status: Classification
        method: How it was determined ("commit-tag", "manifest", "none")
        detail: Human-readable explanation
    """

    status: ReferenceStatus
    method: str = "none"
    detail: str = ""

    @property
    def is_resolvable(self) -> bool:
        return self.status == ReferenceStatus.RESOLVABLE

    @property
    def is_stale(self) -> bool:
        """Whether a direct update would fail validation of this reference."""
        return self.status in (
            ReferenceStatus.REPOSITORY_MISSING,
            ReferenceStatus.DIGEST_MISSING,
            ReferenceStatus.UNVERIFIABLE,
        )


class RegistryInspector:
    """Classifies image references by asking ACR."""

    def __init__(self, commands: ShellCommands) -> None:
        self.commands = commands

    def inspect_current(
        self,
        reference: ImageReference | None,
        commit_hint: str | None = None,
    ) -> InspectionResult:
        """Classify the image a Container App is currently running.

        Args:
            reference: Parsed current image, or None when the app has none
            commit_hint: Last recorded commit; when present, its tag is
                looked up first since that is a single cheap call

        Returns:
            InspectionResult
        """
        location = self._acr_location(reference)
        if reference is None or location is None:
            return self._not_applicable(reference)

        if commit_hint:
            registry, digest = location
            if self._commit_tag_matches(registry, reference.repository, digest, commit_hint):
                return InspectionResult(
                    ReferenceStatus.RESOLVABLE,
                    method="commit-tag",
                    detail=f"Found by commit tag {commit_hint[: CONSTANTS.SHORT_COMMIT_LENGTH]}",
                )
            logger.debug("Commit tag lookup inconclusive; checking manifests")

        return self.check(reference)

    def check(self, reference: ImageReference) -> InspectionResult:
        """Top-down existence check: repository, then digest.

        Returns:
            InspectionResult; NOT_APPLICABLE for tag or non-ACR references
        """
        location = self._acr_location(reference)
        if location is None:
            return self._not_applicable(reference)
        registry, digest = location

        repo_status = self.commands.acr.repository_status(registry, reference.repository)
        if repo_status == RepositoryStatus.ERROR:
            return InspectionResult(
                ReferenceStatus.UNVERIFIABLE,
                method="manifest",
                detail="Cannot verify repository (may lack ACR data-plane permissions)",
            )
        if repo_status == RepositoryStatus.MISSING:
            return InspectionResult(
                ReferenceStatus.REPOSITORY_MISSING,
                method="manifest",
                detail=f"Repository {reference.repository} deleted from {registry}",
            )

        exists = self.commands.acr.digest_exists(registry, reference.repository, digest)
        if exists is None:
            return InspectionResult(
                ReferenceStatus.UNVERIFIABLE,
                method="manifest",
                detail="Cannot list manifests",
            )
        if not exists:
            return InspectionResult(
                ReferenceStatus.DIGEST_MISSING,
                method="manifest",
                detail=f"Digest {digest[:19]}... not found (image deleted)",
            )
        return InspectionResult(
            ReferenceStatus.RESOLVABLE, method="manifest", detail="Digest exists in ACR"
        )

    def _commit_tag_matches(
        self, registry: str, repository: str, digest: str, commit: str
    ) -> bool:
        tags = self.commands.acr.list_tags(registry, repository)
        if not tags:
            return False

        short = commit[: CONSTANTS.SHORT_COMMIT_LENGTH]
        match = next((t for t in tags if t.name == commit), None)
        if match is None:
            match = next((t for t in tags if t.name.startswith(short)), None)
        if match is None:
            return False
        if match.digest != digest:
            # The commit was rebuilt or retagged; not proof for this digest
            logger.debug(f"Tag {match.name} points at {match.digest}, not the current digest")
            return False
        return True

    @staticmethod
    def _acr_location(reference: ImageReference | None) -> tuple[str, str] | None:
        """Registry name and digest of a digest-form ACR reference."""
        if reference is None or reference.digest is None or reference.registry_name is None:
            return None
        return reference.registry_name, reference.digest

    @staticmethod
    def _not_applicable(reference: ImageReference | None) -> InspectionResult:
        if reference is None:
            return InspectionResult(
                ReferenceStatus.NOT_APPLICABLE, detail="No current image (new deployment)"
            )
        if not reference.is_digest:
            return InspectionResult(
                ReferenceStatus.NOT_APPLICABLE, detail="Image is tag-based, skipping check"
            )
        return InspectionResult(
            ReferenceStatus.NOT_APPLICABLE, detail="Image is not from ACR, skipping check"
        )
