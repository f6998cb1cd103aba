"""Custom exception classes for genomicdao-deployments library."""

from typing import Any, Optional, Sequence


class PlanError(Exception):
    """Base exception for deployment plan errors."""

    pass


class LedgerError(PlanError):
    """Base exception for failures reported by the ledger client."""

    pass


class NetworkUnavailable(LedgerError, ConnectionError):
    """Raised when the JSON-RPC endpoint cannot be reached or answers with an HTTP error."""

    pass


class RpcError(LedgerError, ValueError):
    """Raised when the node answers a request with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class MalformedResponse(RpcError):
    """Raised when the node answers with something that is not a valid JSON-RPC response."""

    pass


class ConfirmationTimeout(LedgerError, TimeoutError):
    """Raised when a transaction receipt does not appear in time."""

    pass


class ConfirmationCancelled(LedgerError):
    """Raised when waiting for a receipt is abandoned through cancellation."""

    pass


class TransactionReverted(LedgerError):
    """Raised when a mined transaction has a failed status."""

    pass


class StepFailed(PlanError):
    """Base exception for a plan step that did not complete."""

    def __init__(self, step: str, message: str, transaction_hash: Optional[str] = None):
        super().__init__(message)
        self.step = step
        self.transaction_hash = transaction_hash


class DeploymentFailed(StepFailed):
    """Raised when a contract creation is rejected, reverted or not confirmed."""

    def __init__(
        self,
        step: str,
        message: str,
        transaction_hash: Optional[str] = None,
        inputs: Sequence[Any] = (),
    ):
        super().__init__(step, message, transaction_hash)
        self.inputs = tuple(inputs)


class TransferFailed(StepFailed):
    """Raised when an ownership transfer is rejected, reverted or not confirmed."""

    pass


class VerificationFailed(StepFailed):
    """Raised when on-chain state cannot be read back during verification."""

    pass


class VerificationMismatch(VerificationFailed):
    """Raised by strict verification when on-chain state differs from the plan."""

    def __init__(self, step: str, message: str, report: Any = None):
        super().__init__(step, message)
        self.report = report


class PlanCancelled(StepFailed):
    """Raised when the plan is cancelled before a step starts."""

    pass


class ArtifactNotFoundError(PlanError, FileNotFoundError):
    """Raised when a compiled contract artifact cannot be located."""

    pass


class DefectiveArtifactError(PlanError, ValueError):
    """Raised when an artifact file lacks an ABI or creation bytecode."""

    pass


class InvalidPlanError(PlanError, ValueError):
    """Raised when a plan violates its dependency order or naming rules."""

    pass


class UnresolvedReferenceError(InvalidPlanError):
    """Raised when a constructor argument refers to an address not yet deployed."""

    pass


class ConfigurationError(PlanError, ValueError):
    """Raised when network or signer configuration is missing or inconsistent."""

    pass


class RecordNotFoundError(PlanError, FileNotFoundError):
    """Raised when a deployment record file is not found."""

    pass
