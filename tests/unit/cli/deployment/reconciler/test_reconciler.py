"""Unit tests for DeploymentReconciler edge cases."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from capdeploy.cli.deployment.errors import BindingGrantFailure
from capdeploy.cli.deployment.reconciler import (
    DeploymentReconciler,
    ImageReference,
    NoWaitPolicy,
    ReconcileOutcome,
    RegistryBinder,
    ResolutionSource,
    ResolvedImage,
    ServiceTarget,
    UpdateStrategy,
)
from capdeploy.cli.deployment.reconciler.registry_binder import BindingOutcome
from capdeploy.cli.deployment.shell_commands import OperationStatus
from capdeploy.runtime.config.config_data import Settings
from tests.fixtures.azure import FakeAzure, digest

DOMAIN = "ngraptordev.azurecr.io"
REPO = "raptor/backend-dev"
APP = "dev-rap-be"


def _desired(reference: str, *, access: bool = True) -> ResolvedImage:
    return ResolvedImage(ImageReference.parse(reference), ResolutionSource.EXPLICIT, access)


class TestDeploymentReconciler:
    """Tests for DeploymentReconciler.reconcile."""

    @pytest.fixture
    def target(self, settings: Settings) -> ServiceTarget:
        return ServiceTarget.build("backend", "dev", settings.naming)

    @pytest.fixture
    def reconciler(
        self, fake_azure: FakeAzure, settings: Settings, console: MagicMock
    ) -> DeploymentReconciler:
        binder = RegistryBinder(fake_azure, policy=NoWaitPolicy(), console=console)  # type: ignore[arg-type]
        return DeploymentReconciler(
            fake_azure,  # type: ignore[arg-type]
            settings,
            binder=binder,
            console=console,
        )

    def test_absent_target_requests_full_provision(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        image = fake_azure.push("ngraptordev", REPO, digest("1"))

        outcome = reconciler.reconcile(target, _desired(image))

        assert outcome.success is False
        assert outcome.target_absent is True
        assert fake_azure.mutations == []

    def test_tag_form_registry_image_rejected(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        current = fake_azure.push("ngraptordev", REPO, digest("1"), "v1")
        fake_azure.add_app(APP, current, registries=[DOMAIN])

        outcome = reconciler.reconcile(target, _desired(f"{DOMAIN}/{REPO}:v1"))

        assert outcome.success is False
        assert "digest" in outcome.reason
        assert fake_azure.mutations == []

    def test_unresolvable_desired_image_rejected_before_binding(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        fake_azure.add_registry("ngraptordev")
        fake_azure.add_app(APP, "mcr.microsoft.com/azuredocs/containerapps-helloworld:latest")

        outcome = reconciler.reconcile(target, _desired(f"{DOMAIN}/{REPO}@{digest('9')}"))

        assert outcome.success is False
        assert outcome.strategy == UpdateStrategy.NONE
        assert outcome.binding is None
        assert fake_azure.mutations == []

    def test_public_image_is_not_probed(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        fake_azure.add_app(APP, "mcr.microsoft.com/azuredocs/containerapps-helloworld:latest")

        outcome = reconciler.reconcile(
            target, _desired("docker.io/library/nginx:1.27", access=False)
        )

        assert outcome.success is True
        assert outcome.strategy == UpdateStrategy.DIRECT_UPDATE
        assert fake_azure.image_of(APP) == "docker.io/library/nginx:1.27"

    def test_failed_update_reports_platform_output(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        current = fake_azure.push("ngraptordev", REPO, digest("1"))
        new = fake_azure.push("ngraptordev", REPO, digest("2"))
        # Bound but never granted: the platform refuses to pull
        fake_azure.add_app(APP, current, registries=[DOMAIN])

        outcome = reconciler.reconcile(target, _desired(new))

        assert outcome.success is False
        assert outcome.strategy == UpdateStrategy.DIRECT_UPDATE
        assert "UNAUTHORIZED" in outcome.reason
        assert fake_azure.image_of(APP) == current

    def test_stale_image_without_revisions_falls_back_to_direct_update(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        current = fake_azure.push("ngraptordev", REPO, digest("1"))
        new = fake_azure.push("ngraptordev", REPO, digest("2"))
        fake_azure.add_app(APP, current, registries=[DOMAIN])
        fake_azure.grant("principal-1", "ngraptordev")
        fake_azure.delete_manifest("ngraptordev", REPO, digest("1"))
        fake_azure.revisions[APP] = []

        outcome = reconciler.reconcile(target, _desired(new))

        assert outcome.strategy == UpdateStrategy.DIRECT_UPDATE
        assert outcome.success is False

    def test_binding_failure_propagates(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        new = fake_azure.push("ngraptordev", REPO, digest("2"))
        fake_azure.add_app(APP, "mcr.microsoft.com/azuredocs/containerapps-helloworld:latest")
        fake_azure.failing.add("role.assign")

        with pytest.raises(BindingGrantFailure):
            reconciler.reconcile(target, _desired(new))
        assert "containerapp.update_image" not in fake_azure.mutation_names()

    def test_revision_copy_uses_newest_revision(
        self, fake_azure: FakeAzure, reconciler: DeploymentReconciler, target: ServiceTarget
    ) -> None:
        older = fake_azure.push("ngraptordev", REPO, digest("1"))
        current = fake_azure.push("ngraptordev", REPO, digest("2"))
        new = fake_azure.push("ngraptordev", REPO, digest("3"))
        fake_azure.add_app(APP, older, registries=[DOMAIN])
        fake_azure.grant("principal-1", "ngraptordev")
        reconciler.reconcile(target, _desired(current))
        fake_azure.delete_manifest("ngraptordev", REPO, digest("2"))

        outcome = reconciler.reconcile(target, _desired(new))

        assert outcome.strategy == UpdateStrategy.REVISION_COPY
        copy_call = [m for m in fake_azure.mutations if m[0] == "containerapp.copy_revision"]
        assert copy_call == [("containerapp.copy_revision", APP, f"{APP}--r2", new)]


class TestReconcileOutcome:
    def test_mutated(self) -> None:
        image = ImageReference("r.io", "repo", tag="x")
        assert ReconcileOutcome(True, image, UpdateStrategy.DIRECT_UPDATE).mutated
        assert not ReconcileOutcome(True, image, UpdateStrategy.NO_CHANGE).mutated
        assert ReconcileOutcome(
            True,
            image,
            UpdateStrategy.NO_CHANGE,
            binding=BindingOutcome(OperationStatus.APPLIED),
        ).mutated
