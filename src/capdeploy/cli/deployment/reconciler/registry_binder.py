"""Registry binding for Container Apps.

Ensures a Container App's managed identity can pull from the target ACR.
The check against the app's configured registries comes first: binding and
the propagation wait only happen on first use, an identity change, or a
registry change, never on a routine image update.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from capdeploy.utils.console_like import ConsoleLike, coalesce_console

from ..errors import BindingGrantFailure, format_context
from ..shell_commands import OperationStatus
from .constants import CONSTANTS
from .models import IdentityKind
from .propagation import FixedDelayPolicy, PropagationPolicy

if TYPE_CHECKING:
    from ..shell_commands import ShellCommands
    from .models import DeploymentState, ServiceTarget


@dataclass(frozen=True)
class BindingOutcome:
    """Result of ensuring a registry binding.

    Attributes:
        status: APPLIED when a binding was created, ALREADY_SATISFIED otherwise
        role_status: Result of the AcrPull grant (None when skipped)
        identity: Identity used for the binding ("system" or a resource id)
        waited_seconds: Time spent in the propagation policy
    """

    status: OperationStatus
    role_status: OperationStatus | None = None
    identity: str | None = None
    waited_seconds: float = 0.0


class RegistryBinder:
    """Binds a Container App to an ACR with an AcrPull grant."""

    def __init__(
        self,
        commands: ShellCommands,
        *,
        policy: PropagationPolicy | None = None,
        console: ConsoleLike | None = None,
    ) -> None:
        self.commands = commands
        self.console = coalesce_console(console)
        self.policy = policy or FixedDelayPolicy(console=self.console)

    def ensure_binding(
        self,
        target: ServiceTarget,
        state: DeploymentState,
        *,
        registry_name: str,
        registry_domain: str,
        resource_group: str,
    ) -> BindingOutcome:
        """Make sure the app can pull from the registry.

        Args:
            target: Service being deployed
            state: Live state of its Container App
            registry_name: ACR name
            registry_domain: ACR login server
            resource_group: Resource group of the app

        Returns:
            BindingOutcome

        Raises:
            BindingGrantFailure: If the registry, identity, grant, or binding
                call fails
        """
        if state.registry_binding_present(registry_domain):
            self.console.ok(f"ACR already configured for Container App: {registry_domain}")
            return BindingOutcome(OperationStatus.ALREADY_SATISFIED)

        self.console.info("ACR not configured for Container App, setting up registry binding...")

        def _failure(message: str, output: str | None = None) -> BindingGrantFailure:
            details = format_context(
                service=target.service_key,
                environment=target.environment,
                app=target.app_name,
                registry=registry_domain,
            )
            if output:
                details = f"{details}\n\n{output}"
            return BindingGrantFailure(message, details)

        acr_id = self.commands.acr.show_id(registry_name, resource_group)
        if not acr_id:
            raise _failure(f"Could not resolve ACR resource ID for '{registry_name}'")

        principal_id, identity = self._select_identity(state)
        if principal_id is None or identity is None:
            raise _failure("No managed identity found to bind ACR")

        self.console.info(f"Ensuring {CONSTANTS.ACR_PULL_ROLE} role for identity: {principal_id}")
        grant = self.commands.role.assign(principal_id, CONSTANTS.ACR_PULL_ROLE, acr_id)
        if grant.status == OperationStatus.FAILED:
            raise _failure(f"Failed to grant {CONSTANTS.ACR_PULL_ROLE}", grant.message)
        if grant.status == OperationStatus.ALREADY_SATISFIED:
            logger.debug("AcrPull assignment already present")

        label = "system-assigned" if identity == CONSTANTS.SYSTEM_IDENTITY else "user-assigned"
        self.console.info(f"Binding registry to Container App using {label} identity")
        bound = self.commands.containerapp.set_registry(
            target.app_name, resource_group, registry_domain, identity
        )
        if not bound.success:
            raise _failure("Failed to set registry binding", bound.output)
        self.console.ok("Registry binding configured successfully")

        waited = self.policy.wait(
            lambda: self.commands.role.has_assignment(
                principal_id, CONSTANTS.ACR_PULL_ROLE, acr_id
            )
        )
        return BindingOutcome(
            status=OperationStatus.APPLIED,
            role_status=grant.status,
            identity=identity,
            waited_seconds=waited,
        )

    def _select_identity(self, state: DeploymentState) -> tuple[str | None, str | None]:
        """Pick the identity to bind: system-assigned, else the first user-assigned."""
        if state.identity_kind == IdentityKind.SYSTEM_ASSIGNED and state.principal_id:
            return state.principal_id, CONSTANTS.SYSTEM_IDENTITY
        if state.user_identity_ids:
            identity_id = state.user_identity_ids[0]
            principal = self.commands.role.identity_principal_id(identity_id)
            if principal:
                return principal, identity_id
        return None, None
