"""Read-only client for the ACR (OCI distribution v2) data plane.

Used to read image config labels, which carry the git commit an image was
built from. Authentication follows the ACR token flow: an ACR refresh token
(from `az acr login --expose-token`) is exchanged at `/oauth2/token` for a
repository-scoped pull token.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import httpx
from loguru import logger

MANIFEST_MEDIA_TYPES = (
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.docker.distribution.manifest.v2+json",
)
INDEX_MEDIA_TYPES = (
    "application/vnd.oci.image.index.v1+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
)

REVISION_LABELS = (
    "org.opencontainers.image.revision",
    "org.opencontainers.image.vcs-ref",
)

ACR_DOMAIN_SUFFIX = ".azurecr.io"


class RegistryReadError(Exception):
    """Raised when the registry data plane cannot be read."""


def find_revision_label(config_blob: Mapping[str, Any]) -> str | None:
    """Extract a commit identifier from an image config blob.

    Looks at `config.Labels` then `container_config.Labels`, preferring the
    OCI `revision` label over `vcs-ref`, and finally retries both names
    case-insensitively.

    Args:
        config_blob: Decoded image config JSON

    Returns:
        Commit identifier, or None when no label is present
    """
    label_sets: list[Mapping[str, Any]] = []
    for section in ("config", "container_config"):
        labels = (config_blob.get(section) or {}).get("Labels") or {}
        if isinstance(labels, Mapping):
            label_sets.append(labels)

    for labels in label_sets:
        for name in REVISION_LABELS:
            value = labels.get(name)
            if isinstance(value, str) and value.strip():
                return value.strip()

    for labels in label_sets:
        lowered = {str(k).lower(): v for k, v in labels.items()}
        for name in REVISION_LABELS:
            value = lowered.get(name)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


class OciRegistryClient:
    """Synchronous ACR data-plane reader.

    Args:
        refresh_token_provider: Returns an ACR refresh token for a registry
            name, or None when login is not possible
        transport: Optional httpx transport (tests use httpx.MockTransport)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        refresh_token_provider: Callable[[str], str | None],
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._refresh_token_provider = refresh_token_provider
        self._transport = transport
        self._timeout = timeout
        self._refresh_tokens: dict[str, str] = {}

    def _client(self) -> httpx.Client:
        # Blob reads redirect to storage
        return httpx.Client(
            transport=self._transport, timeout=self._timeout, follow_redirects=True
        )

    def _refresh_token(self, registry_name: str) -> str:
        token = self._refresh_tokens.get(registry_name)
        if token is None:
            token = self._refresh_token_provider(registry_name)
            if not token:
                raise RegistryReadError(
                    f"Failed to get ACR refresh token for registry: {registry_name}"
                )
            self._refresh_tokens[registry_name] = token
        return token

    def get_access_token(
        self, client: httpx.Client, registry_name: str, repository: str
    ) -> str:
        """Exchange the refresh token for a pull token scoped to one repository."""
        service = f"{registry_name}{ACR_DOMAIN_SUFFIX}"
        response = client.post(
            f"https://{service}/oauth2/token",
            data={
                "grant_type": "refresh_token",
                "service": service,
                "scope": f"repository:{repository}:pull",
                "refresh_token": self._refresh_token(registry_name),
            },
        )
        response.raise_for_status()
        token = response.json().get("access_token")
        if not token:
            raise RegistryReadError("Token exchange returned no access_token")
        return token

    def get_config_blob(
        self, registry_name: str, repository: str, digest: str
    ) -> dict[str, Any] | None:
        """Fetch the image config blob for a manifest digest.

        Multi-platform indexes are walked child by child; the first child
        whose config carries a revision label wins, otherwise the first
        readable config is returned.

        Raises:
            RegistryReadError: If the token flow fails
            httpx.HTTPError: On transport or HTTP status errors
        """
        base = f"https://{registry_name}{ACR_DOMAIN_SUFFIX}/v2/{repository}"
        with self._client() as client:
            token = self.get_access_token(client, registry_name, repository)
            headers = {"Authorization": f"Bearer {token}"}

            manifest = self._get_manifest(client, base, digest, headers, index_ok=True)
            media_type = manifest.get("mediaType", "")
            if media_type not in INDEX_MEDIA_TYPES and "manifests" not in manifest:
                return self._get_config(client, base, manifest, headers)

            first_config: dict[str, Any] | None = None
            for child in manifest.get("manifests") or []:
                child_digest = child.get("digest")
                if not child_digest:
                    continue
                child_manifest = self._get_manifest(
                    client, base, child_digest, headers, index_ok=False
                )
                config = self._get_config(client, base, child_manifest, headers)
                if config is None:
                    continue
                if first_config is None:
                    first_config = config
                if find_revision_label(config):
                    return config
            return first_config

    def get_commit(self, registry_name: str, repository: str, digest: str) -> str | None:
        """Read the git commit recorded in an image's OCI labels.

        Failures are logged and reported as None; provenance is best-effort.
        """
        if not digest:
            return None
        try:
            config = self.get_config_blob(registry_name, repository, digest)
        except (RegistryReadError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                f"Could not read labels for {registry_name}/{repository}@{digest[:19]}: {e}"
            )
            return None
        if config is None:
            logger.warning(f"No config blob found for {repository}@{digest[:19]}")
            return None
        return find_revision_label(config)

    @staticmethod
    def _get_manifest(
        client: httpx.Client,
        base: str,
        reference: str,
        headers: Mapping[str, str],
        *,
        index_ok: bool,
    ) -> dict[str, Any]:
        accept = MANIFEST_MEDIA_TYPES + (INDEX_MEDIA_TYPES if index_ok else ())
        response = client.get(
            f"{base}/manifests/{reference}",
            headers={**headers, "Accept": ", ".join(accept)},
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _get_config(
        client: httpx.Client,
        base: str,
        manifest: Mapping[str, Any],
        headers: Mapping[str, str],
    ) -> dict[str, Any] | None:
        config_digest = (manifest.get("config") or {}).get("digest")
        if not config_digest:
            return None
        response = client.get(f"{base}/blobs/{config_digest}", headers=dict(headers))
        response.raise_for_status()
        return response.json()
