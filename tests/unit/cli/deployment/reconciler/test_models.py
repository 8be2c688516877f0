"""Unit tests for reconciler value types."""

from __future__ import annotations

import pytest

from capdeploy.cli.deployment.reconciler.models import (
    DeploymentMetadata,
    DeploymentState,
    IdentityKind,
    ImageReference,
    ResolutionSource,
    ResolvedImage,
    ServiceTarget,
)
from capdeploy.runtime.config.config_data import MetadataSettings, NamingSettings

DIGEST = "sha256:" + "a" * 64


class TestServiceTarget:
    """Tests for naming conventions."""

    def test_known_service_uses_configured_suffix(self) -> None:
        target = ServiceTarget.build("Frontend", "dev", NamingSettings())
        assert target.service_key == "frontend"
        assert target.app_name == "dev-rap-fe"
        assert target.registry_repository == "raptor/frontend-dev"

    def test_unknown_service_uses_first_three_letters(self) -> None:
        target = ServiceTarget.build("scheduler", "test", NamingSettings())
        assert target.app_name == "test-rap-sch"

    def test_config_keys(self) -> None:
        target = ServiceTarget.build("data-api", "dev", NamingSettings())
        assert target.image_setting == "SERVICE_DATA_API_IMAGE_NAME"
        assert target.skip_grant_setting == "SKIP_DATA_API_ACR_PULL_ROLE_ASSIGNMENT"

    @pytest.mark.parametrize(("key", "env"), [("", "dev"), ("  ", "dev"), ("backend", "")])
    def test_empty_inputs_rejected(self, key: str, env: str) -> None:
        with pytest.raises(ValueError):
            ServiceTarget.build(key, env, NamingSettings())


class TestImageReference:
    """Tests for parsing and comparing image references."""

    def test_parse_digest_form(self) -> None:
        ref = ImageReference.parse(f"ngraptordev.azurecr.io/raptor/backend-dev@{DIGEST}")
        assert ref.registry_domain == "ngraptordev.azurecr.io"
        assert ref.repository == "raptor/backend-dev"
        assert ref.digest == DIGEST
        assert ref.tag is None
        assert ref.is_digest and ref.is_acr
        assert ref.registry_name == "ngraptordev"

    def test_parse_tag_form_defaults_to_latest(self) -> None:
        ref = ImageReference.parse("mcr.microsoft.com/azuredocs/containerapps-helloworld")
        assert ref.tag == "latest"
        assert not ref.is_digest
        assert ref.registry_name is None

    def test_parse_registry_with_port(self) -> None:
        ref = ImageReference.parse("localhost:5000/team/app:1.2")
        assert ref.registry_domain == "localhost:5000"
        assert ref.repository == "team/app"
        assert ref.tag == "1.2"

    @pytest.mark.parametrize(
        "value",
        ["nginx", "registry.io/", "registry.io/repo@nodigest", "registry.io/repo:"],
    )
    def test_parse_rejects_malformed(self, value: str) -> None:
        with pytest.raises(ValueError):
            ImageReference.parse(value)
        assert ImageReference.try_parse(value) is None

    def test_try_parse_empty(self) -> None:
        assert ImageReference.try_parse(None) is None
        assert ImageReference.try_parse("") is None

    def test_digest_equality_ignores_tag_and_domain_case(self) -> None:
        a = ImageReference("NGRaptorDev.azurecr.io", "raptor/fe", digest=DIGEST)
        b = ImageReference("ngraptordev.azurecr.io", "raptor/fe", digest=DIGEST, tag="v1")
        assert a == b
        assert hash(a) == hash(b)

    def test_digest_never_equals_tag(self) -> None:
        a = ImageReference("r.azurecr.io", "raptor/fe", digest=DIGEST)
        b = ImageReference("r.azurecr.io", "raptor/fe", tag="latest")
        assert a != b

    def test_in_registry_and_relocate(self) -> None:
        ref = ImageReference.parse(f"ngraptordev.azurecr.io/raptor/fe-dev@{DIGEST}")
        moved = ref.relocate("ngraptortest.azurecr.io", "raptor/fe-test")
        assert ref.in_registry("NGRAPTORDEV.azurecr.io")
        assert not ref.in_registry(None)
        assert str(moved) == f"ngraptortest.azurecr.io/raptor/fe-test@{DIGEST}"

    def test_short_truncates_digest(self) -> None:
        ref = ImageReference("r.azurecr.io", "repo", digest=DIGEST)
        assert ref.short() == f"r.azurecr.io/repo@{DIGEST[:19]}..."


class TestResolvedImage:
    @pytest.mark.parametrize(
        ("source", "written"),
        [
            (ResolutionSource.EXPLICIT, False),
            (ResolutionSource.PINNED, False),
            (ResolutionSource.LATEST, True),
            (ResolutionSource.PLACEHOLDER, True),
        ],
    )
    def test_written_back(self, source: ResolutionSource, written: bool) -> None:
        resolved = ResolvedImage(ImageReference("r.io", "repo", tag="x"), source, False)
        assert resolved.written_back is written


class TestDeploymentState:
    """Tests for reading `az containerapp show` output."""

    def _app(self, identity: dict) -> dict:
        return {
            "id": "/subscriptions/0/apps/dev-rap-fe",
            "identity": identity,
            "tags": {"raptor.lastDigest": DIGEST},
            "properties": {
                "configuration": {"registries": [{"server": "NGRaptorDev.azurecr.io"}]},
                "template": {"containers": [{"image": f"ngraptordev.azurecr.io/fe@{DIGEST}"}]},
            },
        }

    def test_system_assigned(self) -> None:
        state = DeploymentState.from_app(
            self._app({"type": "SystemAssigned, UserAssigned", "principalId": "p1"})
        )
        assert state.identity_kind == IdentityKind.SYSTEM_ASSIGNED
        assert state.principal_id == "p1"
        assert state.current_image is not None and state.current_image.digest == DIGEST
        assert state.registry_binding_present("ngraptordev.azurecr.io")
        assert not state.registry_binding_present(None)

    def test_user_assigned(self) -> None:
        state = DeploymentState.from_app(
            self._app({"type": "UserAssigned", "userAssignedIdentities": {"/id/uai": {}}})
        )
        assert state.identity_kind == IdentityKind.USER_ASSIGNED
        assert state.user_identity_ids == ("/id/uai",)

    def test_no_identity_and_no_containers(self) -> None:
        state = DeploymentState.from_app({"id": "x", "properties": {}})
        assert state.identity_kind == IdentityKind.NONE
        assert state.current_image is None
        assert state.registry_servers == ()


class TestDeploymentMetadata:
    def test_round_trip_through_tags(self) -> None:
        settings = MetadataSettings()
        metadata = DeploymentMetadata(last_digest=DIGEST, last_commit="abc")
        tags = metadata.to_tags(settings)
        assert tags == {"raptor.lastDigest": DIGEST, "raptor.lastCommit": "abc"}
        assert DeploymentMetadata.from_tags(tags, settings) == metadata

    def test_null_values_ignored(self) -> None:
        metadata = DeploymentMetadata.from_tags(
            {"raptor.lastDigest": "null", "raptor.lastCommit": ""}, MetadataSettings()
        )
        assert metadata.is_empty
        assert metadata.to_tags(MetadataSettings()) == {}
