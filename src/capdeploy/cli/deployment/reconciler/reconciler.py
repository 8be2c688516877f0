"""Fast-path image reconciliation for an existing Container App.

Given a service and the image it should run, bring the live Container App
in line using the cheapest safe strategy:

- Direct update (`az containerapp update --image`) when the currently
  deployed image still exists in ACR.
- Revision copy (`az containerapp revision copy`) when it does not, because
  a direct update would fail validating the stale image.

A `success=False` outcome tells the caller to fall back to full
provisioning; it is not an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from capdeploy.utils.console_like import ConsoleLike, coalesce_console

from ..shell_commands import OperationStatus
from .models import DeploymentMetadata, DeploymentState
from .registry_binder import BindingOutcome, RegistryBinder
from .registry_probe import InspectionResult, ReferenceStatus, RegistryInspector

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings

    from ..shell_commands import CommandResult, ShellCommands
    from .models import ImageReference, ResolvedImage, ServiceTarget


class UpdateStrategy(Enum):
    """How the image change was (or would have been) applied."""

    DIRECT_UPDATE = "direct_update"
    REVISION_COPY = "revision_copy"
    NO_CHANGE = "no_change"
    NONE = "none"  # Nothing was attempted


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of a reconciliation run.

    Attributes:
        success: Fast path succeeded; False means "run full provisioning"
        image: Image that was requested
        strategy: Strategy that was used
        target_absent: The Container App does not exist
        reason: Explanation when success is False
        state: Live state read at the start of the run
        current_inspection: Classification of the previously deployed image
        binding: Registry binding outcome, when binding was considered
    """

    success: bool
    image: ImageReference
    strategy: UpdateStrategy = UpdateStrategy.NONE
    target_absent: bool = False
    reason: str = ""
    state: DeploymentState | None = None
    current_inspection: InspectionResult | None = None
    binding: BindingOutcome | None = None

    @property
    def mutated(self) -> bool:
        """Whether the platform was changed during this run."""
        changed_image = self.strategy in (
            UpdateStrategy.DIRECT_UPDATE,
            UpdateStrategy.REVISION_COPY,
        )
        bound = self.binding is not None and self.binding.status == OperationStatus.APPLIED
        return changed_image or bound


class DeploymentReconciler:
    """Updates an existing Container App to a desired image."""

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        *,
        binder: RegistryBinder | None = None,
        inspector: RegistryInspector | None = None,
        console: ConsoleLike | None = None,
    ) -> None:
        self.commands = commands
        self.settings = settings
        self.console = coalesce_console(console)
        self.binder = binder or RegistryBinder(commands, console=self.console)
        self.inspector = inspector or RegistryInspector(commands)

    def reconcile(self, target: ServiceTarget, desired: ResolvedImage) -> ReconcileOutcome:
        """Bring the Container App of `target` to `desired`.

        Args:
            target: Service and environment
            desired: Image to deploy and whether it needs registry access

        Returns:
            ReconcileOutcome

        Raises:
            BindingGrantFailure: If a required registry binding cannot be set up
        """
        azure = self.settings.azure
        resource_group = azure.resource_group or ""
        image = desired.reference

        # Step 1: target must exist
        app = self.commands.containerapp.show(target.app_name, resource_group)
        if app is None:
            self.console.warn(
                f"Container App '{target.app_name}' not found in resource group '{resource_group}'"
            )
            return ReconcileOutcome(
                success=False,
                image=image,
                target_absent=True,
                reason="Container App does not exist; full provisioning required",
            )
        state = DeploymentState.from_app(app)

        # The desired image must be verified before anything is changed
        rejection = self._check_desired(desired)
        if rejection is not None:
            self.console.warn(rejection)
            return ReconcileOutcome(success=False, image=image, reason=rejection, state=state)

        # Step 2: registry binding, only when the new image lives in our ACR
        binding: BindingOutcome | None = None
        if desired.requires_registry_access and azure.registry_name and azure.registry_domain:
            binding = self.binder.ensure_binding(
                target,
                state,
                registry_name=azure.registry_name,
                registry_domain=azure.registry_domain,
                resource_group=resource_group,
            )
        else:
            logger.debug("Image not from configured ACR; skipping registry binding")

        current = state.current_image
        if current is not None and current == image:
            self.console.ok(f"{target.app_name} already runs {image.short()}")
            return ReconcileOutcome(
                success=True,
                image=image,
                strategy=UpdateStrategy.NO_CHANGE,
                state=state,
                binding=binding,
            )

        # Step 3: classify the currently deployed image
        metadata = DeploymentMetadata.from_tags(state.tags, self.settings.metadata)
        inspection = self.inspector.inspect_current(current, metadata.last_commit)
        self._report_inspection(state, inspection)

        # Steps 4-6: choose and run the strategy
        strategy, result = self._apply(target, resource_group, image, inspection)
        if not result.success:
            reason = f"{strategy.value.replace('_', ' ')} failed"
            self.console.error(f"Image update failed: {result.output or reason}")
            return ReconcileOutcome(
                success=False,
                image=image,
                strategy=strategy,
                reason=result.output or reason,
                state=state,
                current_inspection=inspection,
                binding=binding,
            )

        self.console.ok(f"{strategy.value.replace('_', ' ').capitalize()} completed successfully")
        return ReconcileOutcome(
            success=True,
            image=image,
            strategy=strategy,
            state=state,
            current_inspection=inspection,
            binding=binding,
        )

    def _check_desired(self, desired: ResolvedImage) -> str | None:
        """Return a rejection message if the desired image is unusable."""
        image = desired.reference
        if not image.in_registry(self.settings.azure.registry_domain):
            return None
        if not image.is_digest:
            return "Image is not in digest form (no @sha256:...); full provision required"

        check = self.inspector.check(image)
        if check.status not in (ReferenceStatus.RESOLVABLE, ReferenceStatus.NOT_APPLICABLE):
            return f"Desired image is not available in ACR: {check.detail}"
        return None

    def _apply(
        self,
        target: ServiceTarget,
        resource_group: str,
        image: ImageReference,
        inspection: InspectionResult,
    ) -> tuple[UpdateStrategy, CommandResult]:
        containerapp = self.commands.containerapp
        if inspection.is_stale:
            revisions = containerapp.list_revisions(target.app_name, resource_group)
            if revisions:
                source = revisions[0].name
                self.console.info(
                    "Strategy: Revision Copy (bypasses old image validation) "
                    f"from revision {source}"
                )
                return UpdateStrategy.REVISION_COPY, containerapp.copy_revision(
                    target.app_name, resource_group, source, str(image)
                )
            self.console.warn("Could not determine current revision; falling back to direct update")
        else:
            self.console.info("Strategy: Direct Update")

        return UpdateStrategy.DIRECT_UPDATE, containerapp.update_image(
            target.app_name, resource_group, str(image)
        )

    def _report_inspection(self, state: DeploymentState, inspection: InspectionResult) -> None:
        if state.current_image_value:
            self.console.info(f"Currently deployed: {state.current_image_value}")
        if inspection.is_resolvable:
            self.console.ok(inspection.detail)
        elif inspection.is_stale:
            self.console.warn(f"{inspection.detail}; will use revision copy")
        else:
            self.console.info(inspection.detail)
