"""Image resolution for a service/environment pair.

Resolution order (first match wins):

1. An explicit reference passed for this run (e.g., by the build pipeline)
2. A digest-pinned reference already in the configuration store
3. The most recently pushed digest in the service's ACR repository
4. The public placeholder image, which needs no AcrPull grant

Rules 3 and 4 write the chosen reference back to the configuration store so
later runs see a stable value.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from capdeploy.utils.console_like import ConsoleLike, coalesce_console

from ..errors import ConfigurationError
from .models import ImageReference, ResolutionSource, ResolvedImage, ServiceTarget

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings

    from ..shell_commands import ShellCommands


class ImageResolver:
    """Chooses the image a service should run."""

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        console: ConsoleLike | None = None,
    ) -> None:
        self.commands = commands
        self.settings = settings
        self.console = coalesce_console(console)

    @property
    def registry_domain(self) -> str | None:
        return self.settings.azure.registry_domain

    def resolve(
        self,
        target: ServiceTarget,
        explicit: str | ImageReference | None = None,
        *,
        write_back: bool = True,
    ) -> ResolvedImage:
        """Resolve the image to deploy.

        Args:
            target: Service and environment
            explicit: Reference supplied by the caller for this run
            write_back: Persist rule 3/4 results to the configuration store

        Returns:
            ResolvedImage; resolution always terminates at the placeholder

        Raises:
            ConfigurationError: If an explicit reference cannot be parsed
        """
        if explicit:
            reference = self._parse_explicit(explicit)
            self.console.info(f"Using explicit image: {reference}")
            return self._resolved(reference, ResolutionSource.EXPLICIT)

        configured = self.commands.azd.get_value(target.image_setting)
        pinned = ImageReference.try_parse(configured)
        if pinned is not None and pinned.is_digest:
            self.console.info(f"Keeping digest-pinned image from {target.image_setting}")
            logger.debug(f"{target.service_key}: pinned {pinned}")
            return self._resolved(pinned, ResolutionSource.PINNED)
        if configured:
            logger.debug(
                f"{target.service_key}: configured image {configured!r} is not digest-pinned"
            )

        resolved = self._resolve_latest(target)
        if resolved is None:
            placeholder = ImageReference.parse(self.settings.naming.placeholder_image)
            self.console.warn(
                f"No images found in ACR repository '{target.registry_repository}'"
            )
            self.console.info(f"Using fallback public image: {placeholder}")
            resolved = ResolvedImage(
                reference=placeholder,
                source=ResolutionSource.PLACEHOLDER,
                requires_registry_access=False,
            )

        if write_back:
            self._write_back(target, resolved)
        return resolved

    def _resolve_latest(self, target: ServiceTarget) -> ResolvedImage | None:
        registry_name = self.settings.azure.registry_name
        domain = self.registry_domain
        if not registry_name or not domain:
            logger.debug("No target registry configured; skipping latest-image lookup")
            return None

        self.console.info(f"Querying ACR for latest image in {domain}/{target.registry_repository}")
        digest = self.commands.acr.latest_digest(registry_name, target.registry_repository)
        if not digest:
            return None

        reference = ImageReference(domain, target.registry_repository, digest=digest)
        self.console.ok(f"Found latest image in ACR: {reference.short()}")
        return ResolvedImage(
            reference=reference,
            source=ResolutionSource.LATEST,
            requires_registry_access=True,
        )

    def _write_back(self, target: ServiceTarget, resolved: ResolvedImage) -> None:
        skip_grant = "false" if resolved.requires_registry_access else "true"
        for key, value in (
            (target.image_setting, str(resolved.reference)),
            (target.skip_grant_setting, skip_grant),
        ):
            result = self.commands.azd.set_value(key, value)
            if not result.success:
                self.console.warn(f"Could not persist {key}: {result.output}")

    def _parse_explicit(self, explicit: str | ImageReference) -> ImageReference:
        if isinstance(explicit, ImageReference):
            return explicit
        try:
            return ImageReference.parse(explicit)
        except ValueError as e:
            raise ConfigurationError(f"Invalid image reference: {explicit}") from e

    def _resolved(self, reference: ImageReference, source: ResolutionSource) -> ResolvedImage:
        return ResolvedImage(
            reference=reference,
            source=source,
            requires_registry_access=reference.in_registry(self.registry_domain),
        )
