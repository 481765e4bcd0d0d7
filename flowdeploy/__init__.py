"""
flowdeploy - idempotent contract deployment and Superfluid flow operations.
"""
from .artifacts import ArtifactRegistry
from .config import NetworkConfig
from .deployments import DEFAULT_REQUESTS, bind, load_plan
from .exceptions import (
    ConfirmationTimeout,
    CyclicDependency,
    DeploymentFailed,
    FlowDeployError,
    FlowValidationError,
    InvalidFlowRate,
    InvalidReceiver,
    LedgerError,
    SubmissionRejected,
    UnknownArtifact,
    UnknownSuperToken,
)
from .executor import DeploymentExecutor
from .flows import FlowOperationBuilder
from .ledger import DeploymentLedger, fingerprint
from .models import (
    Artifact,
    DeploymentRecord,
    DeploymentRequest,
    FlowKind,
    FlowOperationSpec,
    ReceiptStatus,
    TransactionIntent,
    TransactionReceipt,
    ref,
)
from .resolver import resolve
from .signer import LocalSigner, Signer
from .submitter import TransactionSubmitter
from .version import __version__

__all__ = [
    "ArtifactRegistry",
    "NetworkConfig",
    "DEFAULT_REQUESTS",
    "bind",
    "load_plan",
    "ConfirmationTimeout",
    "CyclicDependency",
    "DeploymentFailed",
    "FlowDeployError",
    "FlowValidationError",
    "InvalidFlowRate",
    "InvalidReceiver",
    "LedgerError",
    "SubmissionRejected",
    "UnknownArtifact",
    "UnknownSuperToken",
    "DeploymentExecutor",
    "FlowOperationBuilder",
    "DeploymentLedger",
    "fingerprint",
    "Artifact",
    "DeploymentRecord",
    "DeploymentRequest",
    "FlowKind",
    "FlowOperationSpec",
    "ReceiptStatus",
    "TransactionIntent",
    "TransactionReceipt",
    "ref",
    "resolve",
    "LocalSigner",
    "Signer",
    "TransactionSubmitter",
    "__version__",
]
