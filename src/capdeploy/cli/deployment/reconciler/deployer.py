"""Service deployer: wires resolution, reconciliation and metadata together.

This is the entry point used by the CLI commands. Each public method maps
to one command:

- deploy: resolve → reconcile → record
- promote: import → reconcile → record
- resolve_images: resolution with write-back for several services
- release_notes: changelog for a promotion without deploying
- show_status: read-only view of a service
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.table import Table

from ..base import BaseDeployer
from ..errors import ConfigurationError
from .changelog import ChangelogBuilder, ReleaseNotes
from .image_resolver import ImageResolver
from .metadata import MetadataRecorder, ProvenanceReader
from .models import (
    DeploymentMetadata,
    DeploymentState,
    ResolvedImage,
    ServiceTarget,
)
from .promotion import PromotionImporter, PromotionPlan, PromotionResult
from .propagation import PropagationPolicy, build_policy
from .reconciler import DeploymentReconciler, ReconcileOutcome
from .registry_binder import RegistryBinder
from .registry_probe import InspectionResult, RegistryInspector

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings
    from capdeploy.utils.console_like import ConsoleLike

    from ..shell_commands import ShellCommands


@dataclass(frozen=True)
class DeployResult:
    """Outcome of `deploy` for one service."""

    target: ServiceTarget
    resolved: ResolvedImage
    outcome: ReconcileOutcome
    metadata: DeploymentMetadata | None = None

    @property
    def did_fast_path(self) -> bool:
        return self.outcome.success


@dataclass(frozen=True)
class StatusReport:
    """Read-only view of a service in an environment."""

    target: ServiceTarget
    state: DeploymentState | None
    metadata: DeploymentMetadata | None
    inspection: InspectionResult | None

    @property
    def exists(self) -> bool:
        return self.state is not None


class ServiceDeployer(BaseDeployer):
    """Deploys and promotes Container App images."""

    def __init__(
        self,
        console: ConsoleLike,
        project_root: Path,
        settings: Settings,
        *,
        commands: ShellCommands | None = None,
        policy: PropagationPolicy | None = None,
        provenance: ProvenanceReader | None = None,
    ) -> None:
        super().__init__(console, project_root, settings, commands)

        self.provenance = provenance or ProvenanceReader.from_commands(self.commands)
        self.inspector = RegistryInspector(self.commands)
        self.binder = RegistryBinder(
            self.commands,
            policy=policy or build_policy(settings.propagation, console=console),
            console=console,
        )
        self.resolver = ImageResolver(self.commands, settings, console)
        self.reconciler = DeploymentReconciler(
            self.commands,
            settings,
            binder=self.binder,
            inspector=self.inspector,
            console=console,
        )
        self.recorder = MetadataRecorder(
            self.commands, settings, provenance=self.provenance, console=console
        )
        self.importer = PromotionImporter(
            self.commands, settings, self.reconciler, self.recorder, console=console
        )
        self.changelog = ChangelogBuilder(self.commands, settings, self.provenance)

    # =========================================================================
    # Helpers
    # =========================================================================

    def target(self, service_key: str, environment: str | None = None) -> ServiceTarget:
        """Build a ServiceTarget, defaulting the environment to AZURE_ENV_NAME."""
        env = environment or self.settings.azure.env_name
        if not env:
            raise ConfigurationError(
                "No environment given and AZURE_ENV_NAME is not set", missing=["AZURE_ENV_NAME"]
            )
        return ServiceTarget.build(service_key, env, self.settings.naming)

    # =========================================================================
    # Commands
    # =========================================================================

    def deploy(  # type: ignore[override]
        self,
        service_key: str,
        environment: str | None = None,
        image: str | None = None,
    ) -> DeployResult:
        """Resolve, reconcile and record one service.

        Raises:
            ConfigurationError: If required settings are missing
            BindingGrantFailure: If the registry binding cannot be set up
        """
        self.require("resource_group", "registry_name")
        target = self.target(service_key, environment)

        self.console.info(f"Container App: {target.app_name}")
        self.console.info(f"Repository:    {target.registry_repository}")

        resolved = self.resolver.resolve(target, image)
        outcome = self.reconciler.reconcile(target, resolved)

        metadata = None
        if self.recorder.should_record(outcome):
            app_id = outcome.state.app_id if outcome.state else None
            metadata = self.recorder.record(target, resolved.reference, app_id=app_id)

        if outcome.success:
            self.success("Service image deployment successful!")
        else:
            self.warning(f"Fast-path update not possible: {outcome.reason}")
            self.info("Caller should fall back to full provision (azd up).")
        return DeployResult(target=target, resolved=resolved, outcome=outcome, metadata=metadata)

    def plan_promotion(
        self,
        service_key: str,
        source_image: str,
        target_env: str,
        *,
        source_registry: str | None = None,
    ) -> PromotionPlan:
        self.require("resource_group", "registry_name")
        return self.importer.plan(
            service_key, source_image, target_env, source_registry=source_registry
        )

    def promote(self, plan: PromotionPlan, *, tag: bool = True) -> PromotionResult:
        """Import and deploy a promotion plan.

        Raises:
            ImportFailure: If the image cannot be imported
            BindingGrantFailure: If the registry binding cannot be set up
        """
        result = self.importer.promote(plan, tag=tag)
        if result.success:
            self.success("Service image promotion successful!")
        else:
            self.warning(f"Promotion fast path failed: {result.outcome.reason}")
        return result

    def release_notes(
        self, plan: PromotionPlan, *, source_repo: str | None = None
    ) -> ReleaseNotes:
        """Build release notes for a plan against what is deployed now."""
        return self.changelog.build(
            plan.target,
            plan.image,
            source_repo=source_repo,
            label_source=plan.source,
        )

    def resolve_images(
        self,
        services: list[str] | None = None,
        environment: str | None = None,
        *,
        write_back: bool = True,
    ) -> list[tuple[ServiceTarget, ResolvedImage]]:
        """Resolve (and persist) images for several services."""
        resolved: list[tuple[ServiceTarget, ResolvedImage]] = []
        for service_key in services or self.settings.naming.services:
            target = self.target(service_key, environment)
            self.console.print(f"\n📦 Resolving {target.service_key} image...")
            resolved.append((target, self.resolver.resolve(target, write_back=write_back)))
        return resolved

    def status(self, service_key: str, environment: str | None = None) -> StatusReport:
        """Collect the live state of a service without changing anything."""
        self.require("resource_group")
        target = self.target(service_key, environment)
        app = self.commands.containerapp.show(target.app_name, self.resource_group)
        if app is None:
            return StatusReport(target=target, state=None, metadata=None, inspection=None)

        state = DeploymentState.from_app(app)
        metadata = self.recorder.read(state)
        inspection = self.inspector.inspect_current(state.current_image, metadata.last_commit)
        return StatusReport(target=target, state=state, metadata=metadata, inspection=inspection)

    def show_status(  # type: ignore[override]
        self, service_key: str, environment: str | None = None, **kwargs: Any
    ) -> StatusReport:
        """Print the status of a service."""
        report = self.status(service_key, environment)
        target = report.target

        table = Table(title=f"{target.service_key} ({target.environment})", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Container App", target.app_name)
        table.add_row("Repository", target.registry_repository)

        if report.state is None:
            table.add_row("Status", "[yellow]not provisioned[/yellow]")
            self.console.print(table)
            return report

        state = report.state
        domain = self.settings.azure.registry_domain
        table.add_row("Current image", state.current_image_value or "-")
        table.add_row(
            "Registry binding",
            "present" if state.registry_binding_present(domain) else "[yellow]absent[/yellow]",
        )
        table.add_row("Identity", state.identity_kind.value)
        if report.metadata is not None:
            table.add_row("Last digest", report.metadata.last_digest or "-")
            table.add_row("Last commit", report.metadata.last_commit or "-")
        if report.inspection is not None:
            table.add_row(
                "Image in registry",
                f"{report.inspection.status.value} ({report.inspection.detail})",
            )
        self.console.print(table)
        return report
