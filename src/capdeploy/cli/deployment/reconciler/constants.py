"""Reconciliation constants.

This module centralizes the magic strings used when talking to Azure
Container Apps and ACR.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconcilerConstants:
    """Constants for Container Apps image reconciliation.

    All attributes are class-level and immutable.
    """

    # RBAC
    ACR_PULL_ROLE: str = "AcrPull"
    SYSTEM_IDENTITY: str = "system"

    # Identity type reported by `az containerapp show`
    SYSTEM_ASSIGNED: str = "SystemAssigned"

    # Image references
    DEFAULT_TAG: str = "latest"
    ACR_DOMAIN_SUFFIX: str = ".azurecr.io"

    # Commit tags in ACR may use a shortened hash
    SHORT_COMMIT_LENGTH: int = 12

    # Promotion
    PROMOTION_TAG_PREFIX: str = "promoted-"

    # Configuration store key templates
    IMAGE_KEY_TEMPLATE: str = "SERVICE_{key}_IMAGE_NAME"
    SKIP_GRANT_KEY_TEMPLATE: str = "SKIP_{key}_ACR_PULL_ROLE_ASSIGNMENT"

    # CI output
    FAST_PATH_OUTPUT: str = "didFastPath"


CONSTANTS = ReconcilerConstants()
