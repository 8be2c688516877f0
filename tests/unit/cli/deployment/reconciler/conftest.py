from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from capdeploy.cli.deployment.reconciler import (
    FixedDelayPolicy,
    PropagationPolicy,
    ServiceDeployer,
)
from capdeploy.runtime.config.config_data import AzureSettings, Settings
from tests.fixtures.azure import FakeAzure, FakeProvenance

PLACEHOLDER = "mcr.microsoft.com/azuredocs/containerapps-helloworld:latest"


def make_settings(env: str = "dev", registry: str = "ngraptordev", **azure: str) -> Settings:
    return Settings(
        azure=AzureSettings(
            env_name=env,
            resource_group="rg-raptor",
            registry_name=registry,
            **azure,
        )
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def console() -> MagicMock:
    """Console double accepting print/info/ok/warn/error."""
    return MagicMock()


@pytest.fixture
def sleeps() -> list[float]:
    """Records every propagation sleep instead of sleeping."""
    return []


@pytest.fixture
def provenance(fake_azure: FakeAzure) -> FakeProvenance:
    return FakeProvenance(fake_azure)


@pytest.fixture
def make_deployer(
    fake_azure: FakeAzure,
    console: MagicMock,
    provenance: FakeProvenance,
    sleeps: list[float],
    tmp_path: Path,
) -> Callable[..., ServiceDeployer]:
    """Factory for a ServiceDeployer wired to the fake platform."""

    def _make(
        settings: Settings | None = None, policy: PropagationPolicy | None = None
    ) -> ServiceDeployer:
        return ServiceDeployer(
            console,
            tmp_path,
            settings or make_settings(),
            commands=fake_azure,  # type: ignore[arg-type]
            policy=policy or FixedDelayPolicy(15.0, sleep=sleeps.append, console=console),
            provenance=provenance,  # type: ignore[arg-type]
        )

    return _make
