"""Azure Container Apps command abstractions.

This module wraps the `az containerapp` commands used to read a Container
App, bind a registry, update its image and manage revisions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .types import CommandResult, RevisionInfo, parse_timestamp

if TYPE_CHECKING:
    from .runner import CommandRunner


class ContainerAppCommands:
    """Container Apps shell commands.

    Provides operations for:
    - Reading a Container App definition
    - Registry binding
    - Direct image update
    - Revision listing and revision copy
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Container Apps commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def show(self, app_name: str, resource_group: str) -> dict[str, Any] | None:
        """Get the full definition of a Container App.

        Args:
            app_name: Container App name (e.g., "dev-rap-fe")
            resource_group: Resource group name

        Returns:
            Parsed `az containerapp show` JSON, or None if the app does not exist
        """
        data = self._runner.run_json(
            ["az", "containerapp", "show", "-n", app_name, "-g", resource_group, "-o", "json"]
        )
        return data if isinstance(data, dict) else None

    def exists(self, app_name: str, resource_group: str) -> bool:
        """Check if a Container App exists."""
        return self.show(app_name, resource_group) is not None

    def set_registry(
        self,
        app_name: str,
        resource_group: str,
        server: str,
        identity: str,
    ) -> CommandResult:
        """Bind a registry to a Container App.

        Args:
            app_name: Container App name
            resource_group: Resource group name
            server: Registry login server (e.g., "ngraptortest.azurecr.io")
            identity: "system" or the resource id of a user-assigned identity

        Returns:
            CommandResult with binding status
        """
        return self._runner.run(
            [
                "az",
                "containerapp",
                "registry",
                "set",
                "-n",
                app_name,
                "-g",
                resource_group,
                "--server",
                server,
                "--identity",
                identity,
            ]
        )

    def update_image(self, app_name: str, resource_group: str, image: str) -> CommandResult:
        """Update the container image in place.

        The platform validates every image in the template during this call,
        including the one being replaced.
        """
        return self._runner.run(
            [
                "az",
                "containerapp",
                "update",
                "-n",
                app_name,
                "-g",
                resource_group,
                "--image",
                image,
            ]
        )

    def list_revisions(self, app_name: str, resource_group: str) -> list[RevisionInfo]:
        """List revisions, newest first by creation time.

        Returns:
            Revisions, or an empty list if none exist or the listing failed
        """
        data = self._runner.run_json(
            [
                "az",
                "containerapp",
                "revision",
                "list",
                "-n",
                app_name,
                "-g",
                resource_group,
                "-o",
                "json",
            ]
        )
        if not isinstance(data, list):
            return []

        revisions: list[RevisionInfo] = []
        for item in data:
            name = item.get("name")
            if not name:
                continue
            properties = item.get("properties") or {}
            containers = (properties.get("template") or {}).get("containers") or []
            revisions.append(
                RevisionInfo(
                    name=name,
                    created_at=parse_timestamp(properties.get("createdTime")),
                    active=bool(properties.get("active")),
                    image=containers[0].get("image") if containers else None,
                )
            )

        oldest = datetime.min.replace(tzinfo=UTC)
        revisions.sort(key=lambda r: _as_aware(r.created_at) or oldest, reverse=True)
        return revisions

    def copy_revision(
        self,
        app_name: str,
        resource_group: str,
        from_revision: str,
        image: str,
    ) -> CommandResult:
        """Create a new revision from an existing one with a different image.

        Only the new image is validated, so this works when the image of the
        source revision has been deleted from the registry.
        """
        return self._runner.run(
            [
                "az",
                "containerapp",
                "revision",
                "copy",
                "-n",
                app_name,
                "-g",
                resource_group,
                "--from-revision",
                from_revision,
                "--image",
                image,
            ]
        )


def _as_aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
