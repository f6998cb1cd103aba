"""
genomicdao-deployments: deploys the GenomicDAO contracts and hands the token
contracts over to the Controller
"""

from importlib.metadata import PackageNotFoundError, version

from .artifacts import ArtifactStore, ContractArtifact
from .config import DeployConfig, load_config
from .deployer import ContractDeployer
from .deployments import run_deployment
from .exceptions import (
    ConfigurationError,
    DeploymentFailed,
    InvalidPlanError,
    LedgerError,
    NetworkUnavailable,
    PlanCancelled,
    PlanError,
    StepFailed,
    TransferFailed,
    VerificationFailed,
    VerificationMismatch,
)
from .executor import PlanExecutor
from .ownership import transfer_ownership
from .plan import DeployStep, TransferStep, VerifyStep, build_controller_plan
from .rpc import LedgerClient, LocalAccountSigner, NodeSigner
from .types import (
    AddressOf,
    DeployedContract,
    DeploymentSpec,
    PlanResult,
    StepEvent,
    TransferConfirmation,
    VerificationReport,
)
from .verifier import Verifier

try:
    __version__ = version("genomicdao-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "run_deployment",
    "load_config",
    "DeployConfig",
    "PlanExecutor",
    "ContractDeployer",
    "Verifier",
    "transfer_ownership",
    "build_controller_plan",
    "DeployStep",
    "TransferStep",
    "VerifyStep",
    "LedgerClient",
    "NodeSigner",
    "LocalAccountSigner",
    "ArtifactStore",
    "ContractArtifact",
    "AddressOf",
    "DeploymentSpec",
    "DeployedContract",
    "TransferConfirmation",
    "VerificationReport",
    "StepEvent",
    "PlanResult",
    "PlanError",
    "LedgerError",
    "NetworkUnavailable",
    "StepFailed",
    "DeploymentFailed",
    "TransferFailed",
    "VerificationFailed",
    "VerificationMismatch",
    "PlanCancelled",
    "InvalidPlanError",
    "ConfigurationError",
]
