"""Fast-path image deployment for Azure Container Apps.

Resolves which image a service should run, brings the live Container App
to it without a full provision when that is safe, and records provenance
for release notes.
"""

from .changelog import ChangelogBuilder, CommitSource, ReleaseNotes
from .deployer import DeployResult, ServiceDeployer, StatusReport
from .image_resolver import ImageResolver
from .metadata import MetadataRecorder, ProvenanceReader
from .models import (
    DeploymentMetadata,
    DeploymentState,
    IdentityKind,
    ImageReference,
    ResolutionSource,
    ResolvedImage,
    ServiceTarget,
)
from .promotion import PromotionImporter, PromotionPlan, PromotionResult
from .propagation import (
    FixedDelayPolicy,
    NoWaitPolicy,
    ProbingBackoffPolicy,
    PropagationPolicy,
    build_policy,
)
from .reconciler import DeploymentReconciler, ReconcileOutcome, UpdateStrategy
from .registry_binder import BindingOutcome, RegistryBinder
from .registry_probe import InspectionResult, ReferenceStatus, RegistryInspector
from .validator import (
    BindingValidator,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
)

__all__ = [
    "BindingOutcome",
    "BindingValidator",
    "ChangelogBuilder",
    "CommitSource",
    "DeployResult",
    "DeploymentMetadata",
    "DeploymentReconciler",
    "DeploymentState",
    "FixedDelayPolicy",
    "IdentityKind",
    "ImageReference",
    "ImageResolver",
    "InspectionResult",
    "MetadataRecorder",
    "NoWaitPolicy",
    "ProbingBackoffPolicy",
    "PromotionImporter",
    "PromotionPlan",
    "PromotionResult",
    "PropagationPolicy",
    "ProvenanceReader",
    "ReconcileOutcome",
    "ReferenceStatus",
    "RegistryBinder",
    "RegistryInspector",
    "ReleaseNotes",
    "ResolutionSource",
    "ResolvedImage",
    "ServiceDeployer",
    "ServiceTarget",
    "StatusReport",
    "UpdateStrategy",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSeverity",
    "build_policy",
]
