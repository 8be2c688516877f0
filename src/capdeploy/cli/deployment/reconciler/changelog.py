"""Release notes for promotions.

The new commit comes from the promoted image's OCI labels. The previous
commit is looked up along a fallback chain, since the previously deployed
image may have been deleted from the registry:

1. Labels of the previously deployed image, in its own registry/repository
2. Labels of the same digest in the target environment's repository
3. The `lastCommit` tag recorded on the Container App
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from .models import DeploymentMetadata, DeploymentState, ImageReference

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings

    from ..shell_commands import ShellCommands
    from .metadata import ProvenanceReader
    from .models import ServiceTarget

SHORT_SHA = 7


class CommitSource(Enum):
    """Where the previous commit was found."""

    IMAGE_LABELS = "image labels"
    TARGET_REPOSITORY = "target repository"
    DEPLOYMENT_METADATA = "deployment metadata"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ReleaseNotes:
    """Change summary for one promotion."""

    service: str
    target_env: str
    new_image: ImageReference
    new_commit: str | None
    previous_image: ImageReference | None
    previous_commit: str | None
    previous_commit_source: CommitSource
    source_repo: str | None
    repository_url: str = "https://github.com"

    @property
    def previous_digest(self) -> str | None:
        return self.previous_image.digest if self.previous_image else None

    @property
    def is_first_promotion(self) -> bool:
        return self.previous_digest is None

    @property
    def has_code_changes(self) -> bool | None:
        """True/False when both commits are known, None otherwise."""
        if not self.new_commit or not self.previous_commit:
            return None
        return self.new_commit != self.previous_commit

    @property
    def compare_url(self) -> str | None:
        if not self.source_repo or not self.has_code_changes:
            return None
        base = self.repository_url.rstrip("/")
        return f"{base}/{self.source_repo}/compare/{self.previous_commit}...{self.new_commit}"

    def render_markdown(self) -> str:
        lines = [
            f"## Release notes: {self.service} → {self.target_env}",
            "",
            f"- **New image:** `{self.new_image}`",
            f"- **New commit:** {_commit(self.new_commit)}",
        ]
        if self.is_first_promotion:
            lines.append("- **Previous digest:** _first promotion_")
        else:
            lines.append(f"- **Previous digest:** `{self.previous_digest}`")
            source = ""
            if self.previous_commit and self.previous_commit_source != CommitSource.UNKNOWN:
                source = f" (from {self.previous_commit_source.value})"
            lines.append(f"- **Previous commit:** {_commit(self.previous_commit)}{source}")

        lines.extend(["", "### Changes", ""])
        changed = self.has_code_changes
        if changed is False:
            lines.append("No code changes (same commit, new image digest).")
        elif self.compare_url and self.previous_commit and self.new_commit:
            lines.append(
                f"[Compare {self.previous_commit[:SHORT_SHA]}...{self.new_commit[:SHORT_SHA]}]"
                f"({self.compare_url})"
            )
        elif changed:
            lines.append(
                f"Commits {self.previous_commit[:SHORT_SHA] if self.previous_commit else ''}"
                f"...{self.new_commit[:SHORT_SHA] if self.new_commit else ''}"
            )
        elif self.is_first_promotion:
            lines.append("First promotion to this environment.")
        else:
            lines.append(
                "Commit information unavailable; digests only: "
                f"`{_short_digest(self.previous_digest)}` → `{_short_digest(self.new_image.digest)}`"
            )
        return "\n".join(lines) + "\n"


def _commit(value: str | None) -> str:
    return f"`{value}`" if value else "_unknown_"


def _short_digest(value: str | None) -> str:
    return f"{value[:19]}..." if value else "unknown"


class ChangelogBuilder:
    """Builds ReleaseNotes for a promotion."""

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        provenance: ProvenanceReader,
    ) -> None:
        self.commands = commands
        self.settings = settings
        self.provenance = provenance

    def build(
        self,
        target: ServiceTarget,
        new_image: ImageReference,
        *,
        source_repo: str | None = None,
        label_source: ImageReference | None = None,
    ) -> ReleaseNotes:
        """Compute release notes against the currently deployed image.

        Args:
            target: Service in the target environment
            new_image: Image being promoted
            source_repo: GitHub `owner/repo` of the source code
            label_source: Where to read the new image's labels (defaults to
                new_image; pass the source image when it is not imported yet)
        """
        new_commit = self.provenance.commit_for(label_source or new_image)

        app = self.commands.containerapp.show(
            target.app_name, self.settings.azure.resource_group or ""
        )
        state = DeploymentState.from_app(app) if app is not None else None
        previous = state.current_image if state else None
        if previous is not None and not previous.is_digest:
            previous = self._digest_for_tag(previous)

        metadata = (
            DeploymentMetadata.from_tags(state.tags, self.settings.metadata)
            if state
            else DeploymentMetadata()
        )
        previous_commit, commit_source = self._previous_commit(target, previous, metadata)

        return ReleaseNotes(
            service=target.service_key,
            target_env=target.environment,
            new_image=new_image,
            new_commit=new_commit,
            previous_image=previous if previous is not None and previous.is_digest else None,
            previous_commit=previous_commit,
            previous_commit_source=commit_source,
            source_repo=source_repo or self.settings.changelog.source_repo,
            repository_url=self.settings.changelog.repository_url,
        )

    def _previous_commit(
        self,
        target: ServiceTarget,
        previous: ImageReference | None,
        metadata: DeploymentMetadata,
    ) -> tuple[str | None, CommitSource]:
        if previous is not None and previous.is_digest:
            commit = self.provenance.commit_for(previous)
            if commit:
                return commit, CommitSource.IMAGE_LABELS

            domain = self.settings.azure.registry_domain
            if domain:
                in_target = previous.relocate(domain, target.registry_repository)
                if in_target != previous:
                    commit = self.provenance.commit_for(in_target)
                    if commit:
                        return commit, CommitSource.TARGET_REPOSITORY

        if metadata.last_commit:
            logger.debug("Previous commit taken from deployment metadata")
            return metadata.last_commit, CommitSource.DEPLOYMENT_METADATA
        return None, CommitSource.UNKNOWN

    def _digest_for_tag(self, reference: ImageReference) -> ImageReference | None:
        """Resolve a tag reference in ACR to its digest, when possible."""
        registry = reference.registry_name
        if registry is None:
            return None
        for tag in self.commands.acr.list_tags(registry, reference.repository):
            if tag.name == reference.tag and tag.digest:
                return ImageReference(
                    reference.registry_domain, reference.repository, digest=tag.digest
                )
        return None
