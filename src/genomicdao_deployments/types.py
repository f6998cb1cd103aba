"""Data types and dataclasses for genomicdao-deployments library."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class AddressOf:
    """Constructor argument resolved to the address produced by another step."""

    step: str


ConstructorArg = Union[AddressOf, Any]


@dataclass(frozen=True)
class DeploymentSpec:
    """A contract to deploy and the arguments its constructor takes."""

    name: str  # Step name, e.g. "deployController"
    artifact: str  # Hardhat contract name, e.g. "Controller"
    args: Tuple[ConstructorArg, ...] = ()

    def dependencies(self) -> Tuple[str, ...]:
        """Step names referenced by constructor arguments, in argument order."""
        return tuple(arg.step for arg in self.args if isinstance(arg, AddressOf))


@dataclass(frozen=True)
class Receipt:
    """Confirmation receipt of a mined transaction."""

    transaction_hash: str
    block_number: int
    block_hash: Optional[str]
    status: int
    contract_address: Optional[str] = None
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class DeployedContract:
    """A confirmed contract instance."""

    name: str
    artifact: str
    address: str  # Checksummed address
    block_number: int
    transaction_hash: str
    abi: List[Dict[str, Any]] = field(default_factory=list, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact": self.artifact,
            "address": self.address,
            "block": self.block_number,
            "transaction_hash": self.transaction_hash,
        }


@dataclass(frozen=True)
class TransferConfirmation:
    """A confirmed ownership transfer."""

    step: str
    contract: DeployedContract
    previous_owner: Optional[str]
    new_owner: str
    transaction_hash: str
    block_number: int
    status: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract": self.contract.name,
            "address": self.contract.address,
            "previous_owner": self.previous_owner,
            "new_owner": self.new_owner,
            "transaction_hash": self.transaction_hash,
            "block": self.block_number,
            "status": self.status,
        }


@dataclass(frozen=True)
class OwnerCheck:
    """Expected versus actual owner of one contract."""

    contract: str
    address: str
    expected_owner: str
    actual_owner: str
    match: bool


@dataclass(frozen=True)
class LinkCheck:
    """Expected versus actual address returned by a controller getter."""

    getter: str
    expected: str
    actual: str
    match: bool


@dataclass(frozen=True)
class VerificationReport:
    """Outcome of reading back ownership and controller links."""

    controller: str
    owners: Tuple[OwnerCheck, ...] = ()
    links: Tuple[LinkCheck, ...] = ()

    @property
    def all_match(self) -> bool:
        return all(c.match for c in self.owners) and all(c.match for c in self.links)

    def mismatches(self) -> List[Union[OwnerCheck, LinkCheck]]:
        return [c for c in (*self.owners, *self.links) if not c.match]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "controller": self.controller,
            "all_match": self.all_match,
            "owners": [
                {
                    "contract": c.contract,
                    "address": c.address,
                    "expected_owner": c.expected_owner,
                    "actual_owner": c.actual_owner,
                    "match": c.match,
                }
                for c in self.owners
            ],
            "links": [
                {
                    "getter": c.getter,
                    "expected": c.expected,
                    "actual": c.actual,
                    "match": c.match,
                }
                for c in self.links
            ],
        }


@dataclass(frozen=True)
class StepEvent:
    """Progress notification emitted by the executor for each step."""

    step: str
    kind: str  # "deploy", "transfer" or "verify"
    status: str  # "started", "succeeded" or "failed"
    address: Optional[str] = None
    transaction_hash: Optional[str] = None
    error: Optional[str] = None


@dataclass
class PlanResult:
    """Terminal record of a plan execution."""

    deployed: Dict[str, DeployedContract] = field(default_factory=dict)
    transfers: Dict[str, TransferConfirmation] = field(default_factory=dict)
    verification: Optional[VerificationReport] = None
    failed_step: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    def error_chain(self) -> List[str]:
        """Messages of the error and each chained cause, outermost first."""
        messages = []
        exc = self.error
        while exc is not None:
            messages.append(f"{type(exc).__name__}: {exc}")
            exc = exc.__cause__
        return messages

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "succeeded" if self.ok else "failed",
            "failed_step": self.failed_step,
            "error": self.error_chain(),
            "failed_transaction": getattr(self.error, "transaction_hash", None),
            "failed_inputs": [str(a) for a in getattr(self.error, "inputs", ())],
            "contracts": {name: c.to_dict() for name, c in self.deployed.items()},
            "transfers": {name: t.to_dict() for name, t in self.transfers.items()},
            "verification": (
                self.verification.to_dict() if self.verification is not None else None
            ),
        }
