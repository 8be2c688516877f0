"""Consistency checks between configured images and registry-access flags.

For each service, the configuration store holds its image and a flag that
tells provisioning whether to skip the AcrPull role assignment. The two
must agree:

- An image in the configured ACR with the grant skipped cannot be pulled.
- A public image with the grant enabled creates an unneeded assignment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .models import ImageReference, ServiceTarget

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import Settings
    from capdeploy.utils.console_like import ConsoleLike

    from ..shell_commands import ShellCommands


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""

    WARNING = "warning"  # Can proceed, but wasteful or surprising
    ERROR = "error"  # Deployment will fail
    CRITICAL = "critical"  # Configuration cannot be evaluated


@dataclass
class ValidationIssue:
    """Represents a detected configuration issue."""

    severity: ValidationSeverity
    title: str
    description: str
    recovery_hint: str
    resource_type: str = ""
    resource_name: str = ""


@dataclass
class ValidationResult:
    """Result of binding validation."""

    issues: list[ValidationIssue] = field(default_factory=list)
    checked_services: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(
            i.severity in (ValidationSeverity.ERROR, ValidationSeverity.CRITICAL)
            for i in self.issues
        )

    @property
    def has_warnings(self) -> bool:
        """Check if there are any warnings."""
        return any(i.severity == ValidationSeverity.WARNING for i in self.issues)

    @property
    def is_clean(self) -> bool:
        """Check if the configuration is consistent."""
        return len(self.issues) == 0


class BindingValidator:
    """Validates image/AcrPull-flag consistency for configured services."""

    def __init__(
        self,
        commands: ShellCommands,
        settings: Settings,
        console: ConsoleLike,
    ) -> None:
        """Initialize the validator.

        Args:
            commands: Shell command executor
            settings: Loaded settings
            console: Console for output
        """
        self.commands = commands
        self.settings = settings
        self.console = console

    def validate(
        self, services: list[str] | None = None, environment: str | None = None
    ) -> ValidationResult:
        """Check every service's image against its skip-grant flag.

        Args:
            services: Service keys (defaults to the configured services)
            environment: Environment name (defaults to AZURE_ENV_NAME)

        Returns:
            ValidationResult containing any detected issues
        """
        result = ValidationResult()
        env = environment or self.settings.azure.env_name or "default"
        domain = self.settings.azure.registry_domain

        for service_key in services or self.settings.naming.services:
            target = ServiceTarget.build(service_key, env, self.settings.naming)
            result.checked_services.append(target.service_key)
            self._check_service(target, domain, result)
        return result

    def _check_service(
        self, target: ServiceTarget, domain: str | None, result: ValidationResult
    ) -> None:
        image_value = self.commands.azd.get_value(target.image_setting)
        # Provisioning treats an unset flag as "skip"
        skip_value = (self.commands.azd.get_value(target.skip_grant_setting) or "true").lower()

        image = ImageReference.try_parse(image_value) if image_value else None
        if image_value and image is None:
            result.issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.CRITICAL,
                    title=f"Unparseable image for {target.service_key}",
                    description=f"{target.image_setting}={image_value!r} is not an image reference.",
                    recovery_hint=f"Run 'capdeploy resolve {target.service_key}' to reset it",
                    resource_type="Setting",
                    resource_name=target.image_setting,
                )
            )
            return

        in_registry = image is not None and image.in_registry(domain)
        if image is not None and in_registry and skip_value == "true":
            result.issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    title=f"AcrPull grant skipped for ACR image: {target.service_key}",
                    description=(
                        f"{target.service_key} uses {image.short()} from {domain} but "
                        f"{target.skip_grant_setting}=true; the app will fail to pull."
                    ),
                    recovery_hint=f"azd env set {target.skip_grant_setting} false",
                    resource_type="Setting",
                    resource_name=target.skip_grant_setting,
                )
            )
        elif not in_registry and skip_value == "false":
            result.issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    title=f"Unneeded AcrPull grant for public image: {target.service_key}",
                    description=(
                        f"{target.service_key} uses {image or 'no image'} outside the configured "
                        f"registry but {target.skip_grant_setting}=false."
                    ),
                    recovery_hint=f"azd env set {target.skip_grant_setting} true",
                    resource_type="Setting",
                    resource_name=target.skip_grant_setting,
                )
            )

    def display_results(self, result: ValidationResult) -> None:
        """Display validation results to the user."""
        if result.is_clean:
            self.console.ok(
                f"ACR binding configuration consistent for: {', '.join(result.checked_services)}"
            )
            return

        self.console.print("\n[bold yellow]⚠️  ACR Binding Issues Detected[/bold yellow]\n")
        for issue in result.issues:
            icon = self._get_severity_icon(issue.severity)
            color = self._get_severity_color(issue.severity)

            self.console.print(f"[{color}]{icon} {issue.title}[/{color}]")
            self.console.print(f"   [dim]{issue.description}[/dim]")
            if issue.resource_name:
                self.console.print(
                    f"   [dim]Resource: {issue.resource_type}/{issue.resource_name}[/dim]"
                )
            self.console.print(f"   [cyan]💡 {issue.recovery_hint}[/cyan]")
            self.console.print()

    @staticmethod
    def _get_severity_icon(severity: ValidationSeverity) -> str:
        return {
            ValidationSeverity.WARNING: "⚠️ ",
            ValidationSeverity.ERROR: "❌",
            ValidationSeverity.CRITICAL: "🚨",
        }.get(severity, "•")

    @staticmethod
    def _get_severity_color(severity: ValidationSeverity) -> str:
        return {
            ValidationSeverity.WARNING: "yellow",
            ValidationSeverity.ERROR: "red",
            ValidationSeverity.CRITICAL: "bold red",
        }.get(severity, "white")
