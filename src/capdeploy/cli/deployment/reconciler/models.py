"""Value types flowing through the reconciliation engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .constants import CONSTANTS

if TYPE_CHECKING:
    from capdeploy.runtime.config.config_data import MetadataSettings, NamingSettings


# =============================================================================
# Service target
# =============================================================================


@dataclass(frozen=True)
class ServiceTarget:
    """One deployable unit: a service in an environment.

    Attributes:
        service_key: Lowercase service identifier (e.g., "frontend")
        environment: Environment name (e.g., "dev")
        app_name: Container App name (e.g., "dev-rap-fe")
        registry_repository: ACR repository (e.g., "raptor/frontend-dev")
    """

    service_key: str
    environment: str
    app_name: str
    registry_repository: str

    @classmethod
    def build(
        cls, service_key: str, environment: str, naming: NamingSettings
    ) -> ServiceTarget:
        """Derive a ServiceTarget from naming conventions.

        Raises:
            ValueError: If the service key or environment is empty
        """
        key = service_key.strip().lower()
        env = environment.strip()
        if not key:
            raise ValueError("Service key must not be empty")
        if not env:
            raise ValueError("Environment must not be empty")

        suffix = naming.service_suffixes.get(key, key[:3])
        return cls(
            service_key=key,
            environment=env,
            app_name=f"{env}-{naming.app_prefix}-{suffix}".lower(),
            registry_repository=f"{naming.repository_namespace}/{key}-{env}",
        )

    @property
    def config_key(self) -> str:
        return self.service_key.upper().replace("-", "_")

    @property
    def image_setting(self) -> str:
        """Configuration-store key holding this service's image."""
        return CONSTANTS.IMAGE_KEY_TEMPLATE.format(key=self.config_key)

    @property
    def skip_grant_setting(self) -> str:
        """Configuration-store key holding this service's skip-grant flag."""
        return CONSTANTS.SKIP_GRANT_KEY_TEMPLATE.format(key=self.config_key)


# =============================================================================
# Image references
# =============================================================================


@dataclass(frozen=True, eq=False)
class ImageReference:
    """A pointer to a container image, by digest (preferred) or by tag.

    Two digest references are equal when domain, repository and digest
    match; tags are ignored. Two tag references compare by domain,
    repository and tag. A digest reference never equals a tag reference.
    """

    registry_domain: str
    repository: str
    digest: str | None = None
    tag: str | None = None

    @classmethod
    def parse(cls, value: str) -> ImageReference:
        """Parse `domain/repo@sha256:...` or `domain/repo[:tag]`.

        Raises:
            ValueError: If the reference has no registry domain or repository
        """
        text = value.strip()
        domain, sep, remainder = text.partition("/")
        if not sep or not domain or not remainder:
            raise ValueError(f"Invalid image reference (expected registry/repository): {value!r}")

        digest: str | None = None
        tag: str | None = None
        if "@" in remainder:
            repository, _, digest = remainder.partition("@")
            if ":" not in digest:
                raise ValueError(f"Invalid digest in image reference: {value!r}")
        else:
            last_slash = remainder.rfind("/")
            colon = remainder.rfind(":")
            if colon > last_slash:
                repository, tag = remainder[:colon], remainder[colon + 1 :]
            else:
                repository, tag = remainder, CONSTANTS.DEFAULT_TAG
            if not tag:
                raise ValueError(f"Empty tag in image reference: {value!r}")

        if not repository:
            raise ValueError(f"Empty repository in image reference: {value!r}")
        return cls(registry_domain=domain, repository=repository, digest=digest, tag=tag)

    @classmethod
    def try_parse(cls, value: str | None) -> ImageReference | None:
        """Parse a reference, returning None for empty or malformed input."""
        if not value:
            return None
        try:
            return cls.parse(value)
        except ValueError:
            return None

    @property
    def is_digest(self) -> bool:
        return self.digest is not None

    @property
    def is_acr(self) -> bool:
        return self.registry_domain.lower().endswith(CONSTANTS.ACR_DOMAIN_SUFFIX)

    @property
    def registry_name(self) -> str | None:
        """ACR registry name, or None for non-ACR registries."""
        if not self.is_acr:
            return None
        return self.registry_domain[: -len(CONSTANTS.ACR_DOMAIN_SUFFIX)]

    def in_registry(self, registry_domain: str | None) -> bool:
        return bool(registry_domain) and self.registry_domain.lower() == str(
            registry_domain
        ).lower()

    def relocate(self, registry_domain: str, repository: str) -> ImageReference:
        """Same digest (or tag) under another registry and repository."""
        return ImageReference(registry_domain, repository, self.digest, self.tag)

    def short(self) -> str:
        """Abbreviated form for log lines."""
        if self.digest:
            return f"{self.registry_domain}/{self.repository}@{self.digest[:19]}..."
        return str(self)

    def __str__(self) -> str:
        if self.digest:
            return f"{self.registry_domain}/{self.repository}@{self.digest}"
        return f"{self.registry_domain}/{self.repository}:{self.tag}"

    def _key(self) -> tuple[str, str, str, str]:
        if self.digest:
            return ("digest", self.registry_domain.lower(), self.repository, self.digest)
        return ("tag", self.registry_domain.lower(), self.repository, self.tag or "")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageReference):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


# =============================================================================
# Resolution
# =============================================================================


class ResolutionSource(Enum):
    """Which resolution rule produced an image."""

    EXPLICIT = "explicit"
    PINNED = "pinned"
    LATEST = "latest"
    PLACEHOLDER = "placeholder"
    PROMOTED = "promoted"


@dataclass(frozen=True)
class ResolvedImage:
    """The image to deploy and whether it needs an AcrPull grant."""

    reference: ImageReference
    source: ResolutionSource
    requires_registry_access: bool

    @property
    def written_back(self) -> bool:
        return self.source in (ResolutionSource.LATEST, ResolutionSource.PLACEHOLDER)


# =============================================================================
# Live state and metadata
# =============================================================================


class IdentityKind(Enum):
    """Managed identity attached to a Container App."""

    SYSTEM_ASSIGNED = "system"  # Platform-managed
    USER_ASSIGNED = "user"  # User-supplied
    NONE = "none"


@dataclass(frozen=True)
class DeploymentState:
    """Live state of a Container App, read fresh on every run.

    Attributes:
        app_id: ARM resource id
        current_image_value: Image string of the first container, verbatim
        registry_servers: Registry servers bound to the app
        identity_kind: Preferred identity for registry pulls
        principal_id: Principal id of the system-assigned identity
        user_identity_ids: Resource ids of user-assigned identities
        tags: Resource tags
    """

    app_id: str
    current_image_value: str | None = None
    registry_servers: tuple[str, ...] = ()
    identity_kind: IdentityKind = IdentityKind.NONE
    principal_id: str | None = None
    user_identity_ids: tuple[str, ...] = ()
    tags: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_app(cls, app: Mapping[str, Any]) -> DeploymentState:
        """Build from `az containerapp show -o json` output."""
        properties = app.get("properties") or {}
        configuration = properties.get("configuration") or {}
        containers = (properties.get("template") or {}).get("containers") or []
        identity = app.get("identity") or {}

        identity_type = str(identity.get("type") or "None")
        user_ids = tuple((identity.get("userAssignedIdentities") or {}).keys())
        principal_id = identity.get("principalId")

        if CONSTANTS.SYSTEM_ASSIGNED in identity_type and principal_id:
            kind = IdentityKind.SYSTEM_ASSIGNED
        elif user_ids:
            kind = IdentityKind.USER_ASSIGNED
        else:
            kind = IdentityKind.NONE

        return cls(
            app_id=str(app.get("id") or ""),
            current_image_value=containers[0].get("image") if containers else None,
            registry_servers=tuple(
                r["server"] for r in configuration.get("registries") or [] if r.get("server")
            ),
            identity_kind=kind,
            principal_id=principal_id,
            user_identity_ids=user_ids,
            tags={str(k): str(v) for k, v in (app.get("tags") or {}).items()},
        )

    @property
    def current_image(self) -> ImageReference | None:
        return ImageReference.try_parse(self.current_image_value)

    def registry_binding_present(self, registry_domain: str | None) -> bool:
        if not registry_domain:
            return False
        wanted = registry_domain.lower()
        return any(server.lower() == wanted for server in self.registry_servers)


@dataclass(frozen=True)
class DeploymentMetadata:
    """Provenance tags recorded on a Container App after a deployment."""

    last_digest: str | None = None
    last_commit: str | None = None

    @classmethod
    def from_tags(
        cls, tags: Mapping[str, str], settings: MetadataSettings
    ) -> DeploymentMetadata:
        def _value(key: str) -> str | None:
            value = tags.get(key)
            return value if value and value != "null" else None

        return cls(
            last_digest=_value(settings.last_digest_key),
            last_commit=_value(settings.last_commit_key),
        )

    def to_tags(self, settings: MetadataSettings) -> dict[str, str]:
        tags: dict[str, str] = {}
        if self.last_digest:
            tags[settings.last_digest_key] = self.last_digest
        if self.last_commit:
            tags[settings.last_commit_key] = self.last_commit
        return tags

    @property
    def is_empty(self) -> bool:
        return not self.last_digest and not self.last_commit
