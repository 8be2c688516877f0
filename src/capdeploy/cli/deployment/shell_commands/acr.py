"""Azure Container Registry command abstractions.

This module wraps the `az acr` commands used to inspect repositories,
list manifests and tags, and import images between registries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .types import (
    CommandResult,
    ManifestInfo,
    RepositoryStatus,
    TagInfo,
    parse_timestamp,
)

if TYPE_CHECKING:
    from .runner import CommandRunner

# Fragments az prints when a repository or manifest does not exist
_NOT_FOUND_MARKERS = ("not found", "name_unknown", "manifest_unknown", "notfound")


class AcrCommands:
    """ACR-related shell commands.

    Provides operations for:
    - Registry lookup (resource id, data-plane token)
    - Repository existence checks
    - Manifest and tag listing
    - Cross-registry image import
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize ACR commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Registry
    # =========================================================================

    def show_id(self, registry_name: str, resource_group: str | None = None) -> str | None:
        """Get the ARM resource id of a registry.

        Args:
            registry_name: Registry name without the domain suffix
            resource_group: Optional resource group to narrow the lookup

        Returns:
            Resource id, or None if the registry could not be found
        """
        cmd = ["az", "acr", "show", "-n", registry_name, "--query", "id", "-o", "tsv"]
        if resource_group:
            cmd.extend(["-g", resource_group])
        result = self._runner.run(cmd)
        value = result.stdout.strip()
        return value if result.success and value else None

    def get_refresh_token(self, registry_name: str) -> str | None:
        """Get an ACR refresh token for the data-plane API.

        Returns:
            Refresh token, or None if login failed
        """
        result = self._runner.run(
            [
                "az",
                "acr",
                "login",
                "-n",
                registry_name,
                "--expose-token",
                "--query",
                "accessToken",
                "-o",
                "tsv",
            ]
        )
        value = result.stdout.strip()
        return value if result.success and value else None

    # =========================================================================
    # Repositories
    # =========================================================================

    def repository_status(self, registry_name: str, repository: str) -> RepositoryStatus:
        """Check whether a repository exists.

        A lookup that fails for any reason other than "not found" (missing
        data-plane permission, throttling, network) is reported as ERROR so the
        caller can tell "gone" apart from "could not verify".

        Args:
            registry_name: Registry name without the domain suffix
            repository: Repository path (e.g., "raptor/frontend-dev")

        Returns:
            RepositoryStatus
        """
        result = self._runner.run(
            [
                "az",
                "acr",
                "repository",
                "show",
                "-n",
                registry_name,
                "--repository",
                repository,
                "--query",
                "name",
                "-o",
                "tsv",
            ]
        )
        if result.success and result.stdout.strip():
            return RepositoryStatus.EXISTS
        text = result.output.lower()
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return RepositoryStatus.MISSING
        if result.success:
            # Empty answer without an error
            return RepositoryStatus.MISSING
        return RepositoryStatus.ERROR

    def list_manifests(
        self, registry_name: str, repository: str, *, latest_only: bool = False
    ) -> list[ManifestInfo] | None:
        """List manifests in a repository, newest first when latest_only is set.

        Args:
            registry_name: Registry name without the domain suffix
            repository: Repository path
            latest_only: Return only the most recently pushed manifest

        Returns:
            Manifests, or None if the listing failed
        """
        cmd = [
            "az",
            "acr",
            "manifest",
            "list-metadata",
            "-r",
            registry_name,
            "-n",
            repository,
        ]
        if latest_only:
            cmd.extend(["--orderby", "time_desc", "--top", "1"])
        cmd.extend(["-o", "json"])

        data = self._runner.run_json(cmd)
        if not isinstance(data, list):
            return None

        manifests: list[ManifestInfo] = []
        for item in data:
            digest = item.get("digest")
            if not digest:
                continue
            manifests.append(
                ManifestInfo(
                    digest=digest,
                    tags=list(item.get("tags") or []),
                    created_at=parse_timestamp(
                        item.get("createdTime") or item.get("lastUpdateTime")
                    ),
                )
            )
        return manifests

    def latest_digest(self, registry_name: str, repository: str) -> str | None:
        """Get the digest of the most recently pushed manifest.

        Returns:
            Digest, or None if the repository is empty, absent, or unreadable
        """
        manifests = self.list_manifests(registry_name, repository, latest_only=True)
        if not manifests:
            return None
        return manifests[0].digest

    def digest_exists(self, registry_name: str, repository: str, digest: str) -> bool | None:
        """Check whether a digest is present in a repository.

        Returns:
            True/False, or None if the manifest listing failed
        """
        manifests = self.list_manifests(registry_name, repository)
        if manifests is None:
            return None
        return any(m.digest == digest for m in manifests)

    def list_tags(self, registry_name: str, repository: str) -> list[TagInfo]:
        """List tags of a repository with the digest each points at.

        Returns:
            Tags, or an empty list if the listing failed
        """
        data = self._runner.run_json(
            [
                "az",
                "acr",
                "repository",
                "show-tags",
                "-n",
                registry_name,
                "--repository",
                repository,
                "--detail",
                "-o",
                "json",
            ]
        )
        if not isinstance(data, list):
            return []

        tags: list[TagInfo] = []
        for item in data:
            if isinstance(item, str):
                tags.append(TagInfo(name=item))
            elif isinstance(item, dict) and item.get("name"):
                tags.append(TagInfo(name=item["name"], digest=item.get("digest")))
        return tags

    # =========================================================================
    # Import
    # =========================================================================

    def import_image(
        self,
        registry_name: str,
        source: str,
        image: str,
        *,
        force: bool = True,
    ) -> CommandResult:
        """Import an image into a registry.

        Args:
            registry_name: Target registry name
            source: Fully-qualified source reference (domain/repo@digest)
            image: Target `repo@digest` or `repo:tag`
            force: Overwrite an existing tag

        Returns:
            CommandResult with import status
        """
        cmd = [
            "az",
            "acr",
            "import",
            "--name",
            registry_name,
            "--source",
            source,
            "--image",
            image,
        ]
        if force:
            cmd.append("--force")
        return self._runner.run(cmd)
