"""Image promotion between environments.

An image already verified upstream is imported by digest into the target
environment's ACR repository, tagged for discoverability, and then deployed
through the reconciler. Nothing is deployed if the import fails.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from capdeploy.utils.console_like import ConsoleLike, coalesce_console

from ..errors import ConfigurationError, ImportFailure, format_context
from .constants import CONSTANTS
from .models import ImageReference, ResolutionSource, ResolvedImage, ServiceTarget

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings

    from ..shell_commands import ShellCommands
    from .metadata import MetadataRecorder
    from .reconciler import DeploymentReconciler, ReconcileOutcome


@dataclass(frozen=True)
class PromotionPlan:
    """Everything needed to promote one image.

    Attributes:
        target: Service in the target environment
        source: Source image (digest form)
        source_registry: ACR name the image is imported from
        target_registry: ACR name the image is imported into
        image: Reference of the image in the target registry
        promotion_tag: Timestamp tag applied after import
    """

    target: ServiceTarget
    source: ImageReference
    source_registry: str
    target_registry: str
    image: ImageReference
    promotion_tag: str

    def describe(self) -> str:
        return format_context(
            service=self.target.service_key,
            environment=self.target.environment,
            source=str(self.source),
            registry=self.target_registry,
            image=str(self.image),
        )


@dataclass(frozen=True)
class PromotionResult:
    """Outcome of a promotion."""

    plan: PromotionPlan
    outcome: ReconcileOutcome
    tagged: bool

    @property
    def success(self) -> bool:
        return self.outcome.success


class PromotionImporter:
    """Imports an image into the target ACR and deploys it."""

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        reconciler: DeploymentReconciler,
        recorder: MetadataRecorder,
        *,
        console: ConsoleLike | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.commands = commands
        self.settings = settings
        self.reconciler = reconciler
        self.recorder = recorder
        self.console = coalesce_console(console)
        self._clock = clock

    def plan(
        self,
        service_key: str,
        source_image: str,
        target_env: str,
        *,
        source_registry: str | None = None,
    ) -> PromotionPlan:
        """Build a promotion plan without touching Azure.

        Args:
            service_key: Service identifier
            source_image: Source image in digest form
            target_env: Target environment name
            source_registry: Source ACR name; parsed from the image when omitted

        Raises:
            ConfigurationError: If the target registry is not configured
            ImportFailure: If the source image is malformed or not digest-pinned
        """
        target_registry = self.settings.azure.registry_name
        target_domain = self.settings.azure.registry_domain
        if not target_registry or not target_domain:
            raise ConfigurationError(
                "Target registry is not configured", missing=["AZURE_ACR_NAME"]
            )

        try:
            source = ImageReference.parse(source_image)
        except ValueError as e:
            raise ImportFailure(f"Invalid source image: {source_image}", str(e)) from e
        if not source.is_digest:
            raise ImportFailure(
                "Source image must be in digest format (image@sha256:...)",
                format_context(service=service_key, source=source_image),
            )

        registry = (
            source_registry or self.settings.azure.source_registry_name or source.registry_name
        )
        if not registry:
            raise ImportFailure(
                f"Cannot determine source ACR for {source.registry_domain}",
                "Pass --source-registry or set AZURE_ACR_NAME_SRC",
            )

        target = ServiceTarget.build(service_key, target_env, self.settings.naming)
        tag = f"{CONSTANTS.PROMOTION_TAG_PREFIX}{int(self._clock() * 1000)}"
        return PromotionPlan(
            target=target,
            source=source,
            source_registry=registry,
            target_registry=target_registry,
            image=source.relocate(target_domain, target.registry_repository),
            promotion_tag=tag,
        )

    def import_image(self, plan: PromotionPlan, *, tag: bool = True) -> bool:
        """Import the source digest into the target repository.

        Returns:
            Whether the promotion tag was applied

        Raises:
            ImportFailure: If the import fails or the source is not digest-pinned
        """
        acr = self.commands.acr
        repository = plan.target.registry_repository
        digest = plan.source.digest
        if digest is None:
            raise ImportFailure(
                "Source image must be in digest format (image@sha256:...)", plan.describe()
            )

        self.console.info(f"Importing {plan.source.short()} into {plan.target_registry}/{repository}")
        source = f"{plan.source_registry}{CONSTANTS.ACR_DOMAIN_SUFFIX}/{plan.source.repository}@{digest}"
        result = acr.import_image(plan.target_registry, source, f"{repository}@{digest}")
        if not result.success:
            raise ImportFailure("Failed to import image", f"{plan.describe()}\n\n{result.output}")
        self.console.ok("Image imported successfully")

        if not tag:
            return False
        tagged = acr.import_image(
            plan.target_registry, str(plan.image), f"{repository}:{plan.promotion_tag}"
        )
        if tagged.success:
            self.console.ok(f"Promotion tag applied: {plan.promotion_tag}")
            return True
        self.console.warn(f"Could not apply promotion tag {plan.promotion_tag}: {tagged.output}")
        return False

    def promote(self, plan: PromotionPlan, *, tag: bool = True) -> PromotionResult:
        """Import, deploy, and record a promotion.

        Raises:
            ImportFailure: If the import fails (nothing is deployed)
            BindingGrantFailure: If the registry binding cannot be set up
        """
        tagged = self.import_image(plan, tag=tag)

        desired = ResolvedImage(
            reference=plan.image,
            source=ResolutionSource.PROMOTED,
            requires_registry_access=True,
        )
        outcome = self.reconciler.reconcile(plan.target, desired)
        if self.recorder.should_record(outcome):
            app_id = outcome.state.app_id if outcome.state else None
            self.recorder.record(plan.target, plan.image, app_id=app_id)
        return PromotionResult(plan=plan, outcome=outcome, tagged=tagged)
