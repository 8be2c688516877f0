"""Provenance lookup and deployment metadata recording.

After a successful update the deployed digest, and the git commit read from
the image's OCI labels when available, are merged into the Container App's
tags. Those tags outlive registry cleanup, so release notes can fall back to
them when the previous image is gone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from capdeploy.infra.registry import OciRegistryClient
from capdeploy.utils.console_like import ConsoleLike, coalesce_console

from .models import DeploymentMetadata, DeploymentState
from .reconciler import UpdateStrategy

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings

    from ..shell_commands import ShellCommands
    from .models import ImageReference, ServiceTarget
    from .reconciler import ReconcileOutcome


class ProvenanceReader:
    """Reads the git commit an image was built from."""

    def __init__(self, client: OciRegistryClient) -> None:
        self.client = client

    @classmethod
    def from_commands(cls, commands: ShellCommands) -> ProvenanceReader:
        """Build a reader authenticating through `az acr login --expose-token`."""
        return cls(OciRegistryClient(commands.acr.get_refresh_token))

    def commit_for(self, reference: ImageReference | None) -> str | None:
        """Commit from the image labels, or None for non-ACR or tag references."""
        if reference is None or reference.digest is None or reference.registry_name is None:
            return None
        return self.client.get_commit(
            reference.registry_name, reference.repository, reference.digest
        )


class MetadataRecorder:
    """Persists lastDigest/lastCommit tags on a Container App."""

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        *,
        provenance: ProvenanceReader | None = None,
        console: ConsoleLike | None = None,
    ) -> None:
        self.commands = commands
        self.settings = settings
        self.provenance = provenance or ProvenanceReader.from_commands(commands)
        self.console = coalesce_console(console)

    def read(self, state: DeploymentState) -> DeploymentMetadata:
        return DeploymentMetadata.from_tags(state.tags, self.settings.metadata)

    def read_target(self, target: ServiceTarget) -> DeploymentMetadata | None:
        """Read metadata straight from the platform, None if the app is absent."""
        app = self.commands.containerapp.show(
            target.app_name, self.settings.azure.resource_group or ""
        )
        if app is None:
            return None
        return self.read(DeploymentState.from_app(app))

    def record(
        self,
        target: ServiceTarget,
        image: ImageReference,
        *,
        app_id: str | None = None,
    ) -> DeploymentMetadata | None:
        """Merge the deployed image's provenance into the app's tags.

        Only call after the update succeeded. Images without a digest (the
        public placeholder) are not recorded.

        Args:
            target: Deployed service
            image: Image now running
            app_id: ARM id of the app; read from the platform when omitted

        Returns:
            The recorded metadata, or None when nothing was written
        """
        if not image.is_digest:
            logger.debug(f"Not recording metadata for tag-based image {image}")
            return None

        if not app_id:
            app = self.commands.containerapp.show(
                target.app_name, self.settings.azure.resource_group or ""
            )
            app_id = str(app.get("id") or "") if app else ""
        if not app_id:
            self.console.warn(f"Cannot record metadata: {target.app_name} has no resource id")
            return None

        metadata = DeploymentMetadata(
            last_digest=image.digest,
            last_commit=self.provenance.commit_for(image),
        )
        result = self.commands.resource.merge_tags(
            app_id, metadata.to_tags(self.settings.metadata)
        )
        if not result.success:
            self.console.warn(f"Failed to record deployment metadata: {result.output}")
            return None

        commit = metadata.last_commit[:12] if metadata.last_commit else "unknown commit"
        self.console.ok(f"Recorded deployment metadata ({commit})")
        return metadata

    def should_record(self, outcome: ReconcileOutcome) -> bool:
        """Whether a reconcile outcome warrants a metadata write.

        A no-op run whose digest is already recorded writes nothing, keeping
        repeated runs free of platform mutations.
        """
        if not outcome.success:
            return False
        if outcome.strategy != UpdateStrategy.NO_CHANGE or outcome.state is None:
            return True
        return self.read(outcome.state).last_digest != outcome.image.digest
