"""Unit tests for image resolution order and write-back."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from capdeploy.cli.deployment.errors import ConfigurationError
from capdeploy.cli.deployment.reconciler.image_resolver import ImageResolver
from capdeploy.cli.deployment.reconciler.models import ResolutionSource, ServiceTarget
from capdeploy.cli.deployment.shell_commands import CommandResult
from capdeploy.runtime.config.config_data import Settings

from .conftest import PLACEHOLDER

DIGEST = "sha256:" + "b" * 64
PINNED = f"ngraptordev.azurecr.io/raptor/backend-dev@{DIGEST}"


class TestImageResolver:
    """Tests for the four resolution rules."""

    @pytest.fixture
    def mock_commands(self) -> MagicMock:
        commands = MagicMock()
        commands.azd.get_value.return_value = None
        commands.azd.set_value.return_value = CommandResult(success=True)
        commands.acr.latest_digest.return_value = None
        return commands

    @pytest.fixture
    def target(self, settings: Settings) -> ServiceTarget:
        return ServiceTarget.build("backend", "dev", settings.naming)

    @pytest.fixture
    def resolver(
        self, mock_commands: MagicMock, settings: Settings, console: MagicMock
    ) -> ImageResolver:
        return ImageResolver(mock_commands, settings, console)

    def test_explicit_reference_wins(
        self, resolver: ImageResolver, mock_commands: MagicMock, target: ServiceTarget
    ) -> None:
        resolved = resolver.resolve(target, PINNED)

        assert resolved.source == ResolutionSource.EXPLICIT
        assert resolved.requires_registry_access is True
        mock_commands.azd.get_value.assert_not_called()
        mock_commands.azd.set_value.assert_not_called()

    def test_explicit_public_image_needs_no_access(
        self, resolver: ImageResolver, target: ServiceTarget
    ) -> None:
        resolved = resolver.resolve(target, "docker.io/library/nginx:1.27")
        assert resolved.requires_registry_access is False

    def test_invalid_explicit_reference_raises(
        self, resolver: ImageResolver, target: ServiceTarget
    ) -> None:
        with pytest.raises(ConfigurationError):
            resolver.resolve(target, "not-an-image")

    def test_pinned_configuration_is_kept(
        self, resolver: ImageResolver, mock_commands: MagicMock, target: ServiceTarget
    ) -> None:
        mock_commands.azd.get_value.return_value = PINNED

        resolved = resolver.resolve(target)

        assert resolved.source == ResolutionSource.PINNED
        assert str(resolved.reference) == PINNED
        mock_commands.azd.get_value.assert_called_once_with("SERVICE_BACKEND_IMAGE_NAME")
        mock_commands.acr.latest_digest.assert_not_called()
        mock_commands.azd.set_value.assert_not_called()

    def test_tag_configuration_falls_through_to_latest(
        self, resolver: ImageResolver, mock_commands: MagicMock, target: ServiceTarget
    ) -> None:
        mock_commands.azd.get_value.return_value = "ngraptordev.azurecr.io/raptor/backend-dev:v1"
        mock_commands.acr.latest_digest.return_value = DIGEST

        resolved = resolver.resolve(target)

        assert resolved.source == ResolutionSource.LATEST
        assert str(resolved.reference) == PINNED
        mock_commands.acr.latest_digest.assert_called_once_with(
            "ngraptordev", "raptor/backend-dev"
        )

    def test_latest_is_written_back(
        self, resolver: ImageResolver, mock_commands: MagicMock, target: ServiceTarget
    ) -> None:
        mock_commands.acr.latest_digest.return_value = DIGEST

        resolved = resolver.resolve(target)

        assert resolved.requires_registry_access is True
        mock_commands.azd.set_value.assert_any_call("SERVICE_BACKEND_IMAGE_NAME", PINNED)
        mock_commands.azd.set_value.assert_any_call(
            "SKIP_BACKEND_ACR_PULL_ROLE_ASSIGNMENT", "false"
        )

    def test_placeholder_when_registry_empty(
        self, resolver: ImageResolver, mock_commands: MagicMock, target: ServiceTarget
    ) -> None:
        resolved = resolver.resolve(target)

        assert resolved.source == ResolutionSource.PLACEHOLDER
        assert str(resolved.reference) == PLACEHOLDER
        assert resolved.requires_registry_access is False
        mock_commands.azd.set_value.assert_any_call(
            "SKIP_BACKEND_ACR_PULL_ROLE_ASSIGNMENT", "true"
        )

    def test_write_back_can_be_disabled(
        self, resolver: ImageResolver, mock_commands: MagicMock, target: ServiceTarget
    ) -> None:
        resolver.resolve(target, write_back=False)
        mock_commands.azd.set_value.assert_not_called()

    def test_failed_write_back_only_warns(
        self,
        resolver: ImageResolver,
        mock_commands: MagicMock,
        console: MagicMock,
        target: ServiceTarget,
    ) -> None:
        mock_commands.azd.set_value.return_value = CommandResult(
            success=False, stderr="azd: no environment"
        )

        resolved = resolver.resolve(target)

        assert resolved.source == ResolutionSource.PLACEHOLDER
        assert console.warn.call_count >= 2

    def test_no_registry_configured_goes_to_placeholder(
        self, mock_commands: MagicMock, console: MagicMock, target: ServiceTarget
    ) -> None:
        resolver = ImageResolver(mock_commands, Settings(), console)

        resolved = resolver.resolve(target)

        assert resolved.source == ResolutionSource.PLACEHOLDER
        mock_commands.acr.latest_digest.assert_not_called()
