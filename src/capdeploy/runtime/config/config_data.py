"""Typed configuration models for capdeploy."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ACR_DOMAIN_SUFFIX = ".azurecr.io"
PLACEHOLDER_IMAGE = "mcr.microsoft.com/azuredocs/containerapps-helloworld:latest"


def _blank_to_none(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class AzureSettings(BaseModel):
    """Azure scope for one invocation.

    Attributes:
        env_name: Azure environment name (AZURE_ENV_NAME)
        resource_group: Resource group holding the Container Apps
        registry_name: Target ACR name without the domain suffix
        source_registry_name: ACR name used as the promotion source
    """

    model_config = ConfigDict(extra="forbid")

    env_name: str | None = None
    resource_group: str | None = None
    registry_name: str | None = None
    source_registry_name: str | None = None

    @field_validator(
        "env_name",
        "resource_group",
        "registry_name",
        "source_registry_name",
        mode="before",
    )
    @classmethod
    def normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)

    @property
    def registry_domain(self) -> str | None:
        """Login server of the target registry."""
        if not self.registry_name:
            return None
        return f"{self.registry_name}{ACR_DOMAIN_SUFFIX}"


class NamingSettings(BaseModel):
    """Conventions used to derive app names, repositories and config keys."""

    model_config = ConfigDict(extra="forbid")

    app_prefix: str = "rap"
    repository_namespace: str = "raptor"
    services: list[str] = Field(default_factory=lambda: ["frontend", "backend"])
    service_suffixes: dict[str, str] = Field(
        default_factory=lambda: {"frontend": "fe", "backend": "be", "processes": "proc"}
    )
    placeholder_image: str = PLACEHOLDER_IMAGE


class PropagationSettings(BaseModel):
    """How long to wait for a fresh AcrPull grant to take effect."""

    model_config = ConfigDict(extra="forbid")

    strategy: Literal["fixed", "probe", "none"] = "fixed"
    delay_seconds: float = Field(default=15.0, ge=0)
    initial_interval_seconds: float = Field(default=2.0, gt=0)
    max_interval_seconds: float = Field(default=16.0, gt=0)
    timeout_seconds: float = Field(default=120.0, gt=0)
    grace_seconds: float = Field(default=5.0, ge=0)


class MetadataSettings(BaseModel):
    """Resource tags recording the last deployed artifact."""

    model_config = ConfigDict(extra="forbid")

    tag_prefix: str = "raptor"

    @property
    def last_digest_key(self) -> str:
        return f"{self.tag_prefix}.lastDigest"

    @property
    def last_commit_key(self) -> str:
        return f"{self.tag_prefix}.lastCommit"


class ChangelogSettings(BaseModel):
    """Release-notes rendering options."""

    model_config = ConfigDict(extra="forbid")

    source_repo: str | None = None
    repository_url: str = "https://github.com"

    @field_validator("source_repo", mode="before")
    @classmethod
    def normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class Settings(BaseModel):
    """Root configuration object (the `config:` section of capdeploy.yaml)."""

    model_config = ConfigDict(extra="forbid")

    azure: AzureSettings = Field(default_factory=AzureSettings)
    naming: NamingSettings = Field(default_factory=NamingSettings)
    propagation: PropagationSettings = Field(default_factory=PropagationSettings)
    metadata: MetadataSettings = Field(default_factory=MetadataSettings)
    changelog: ChangelogSettings = Field(default_factory=ChangelogSettings)

    def missing_required(self, *fields: str) -> list[str]:
        """Return the environment variable names of unset azure fields.

        Args:
            fields: AzureSettings attribute names that the caller needs

        Returns:
            Environment variable names (e.g. AZURE_ACR_NAME) for every
            requested field that has no value
        """
        env_names = {
            "env_name": "AZURE_ENV_NAME",
            "resource_group": "AZURE_RESOURCE_GROUP",
            "registry_name": "AZURE_ACR_NAME",
            "source_registry_name": "AZURE_ACR_NAME_SRC",
        }
        return [
            env_names[name] for name in fields if getattr(self.azure, name) is None
        ]
