"""Container registry data-plane access."""

from .oci_client import OciRegistryClient, RegistryReadError, find_revision_label

__all__ = ["OciRegistryClient", "RegistryReadError", "find_revision_label"]
