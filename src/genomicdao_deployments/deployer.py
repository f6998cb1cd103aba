"""Contract deployment for genomicdao-deployments library."""

import logging
import threading
from typing import Any, List, Mapping, Optional

from web3.exceptions import Web3Exception

from .artifacts import ArtifactStore, ContractArtifact
from .exceptions import (
    ArtifactNotFoundError,
    DefectiveArtifactError,
    DeploymentFailed,
    LedgerError,
    TransactionReverted,
    UnresolvedReferenceError,
)
from .rpc import LedgerClient
from .types import AddressOf, DeployedContract, DeploymentSpec

logger = logging.getLogger(__name__)


def _format_args(args: List[Any]) -> str:
    return f"({', '.join(str(a) for a in args)})" if args else ""


def resolve_args(
    spec: DeploymentSpec, resolved: Mapping[str, DeployedContract]
) -> List[Any]:
    """
    Replace AddressOf references in a spec's arguments with confirmed addresses.

    Raises:
        UnresolvedReferenceError: If a referenced step has no confirmed deployment
    """
    args = []
    for arg in spec.args:
        if isinstance(arg, AddressOf):
            if arg.step not in resolved:
                raise UnresolvedReferenceError(
                    f"Step '{spec.name}' depends on '{arg.step}', "
                    "which has no confirmed deployment"
                )
            args.append(resolved[arg.step].address)
        else:
            args.append(arg)
    return args


class ContractDeployer:
    """Submits contract creations and waits for them to be mined."""

    def __init__(self, client: LedgerClient, artifacts: ArtifactStore):
        self.client = client
        self.artifacts = artifacts

    def build_deployment_data(self, artifact: ContractArtifact, args: List[Any]) -> str:
        """
        Build the data field of a contract creation transaction.

        Raises:
            ValueError: If the argument count does not match the constructor
        """
        expected = len(artifact.constructor_inputs())
        if expected != len(args):
            raise ValueError(
                f"Constructor of {artifact.name} takes {expected} argument(s), got {len(args)}"
            )
        factory = self.client.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        return factory.constructor(*args).data_in_transaction

    def deploy(
        self,
        spec: DeploymentSpec,
        resolved: Optional[Mapping[str, DeployedContract]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> DeployedContract:
        """
        Deploy one contract.

        Args:
            spec: What to deploy
            resolved: Confirmed deployments that AddressOf arguments refer to
            cancel: Event that abandons the confirmation wait

        Returns:
            DeployedContract built from the confirmed receipt

        Raises:
            UnresolvedReferenceError: If an argument refers to an unknown step
            DeploymentFailed: If the artifact, encoding, submission or confirmation
                fails; carries the resolved constructor arguments and, once
                submitted, the transaction hash
        """
        args = resolve_args(spec, resolved or {})

        try:
            artifact = self.artifacts.get(spec.artifact)
            data = self.build_deployment_data(artifact, args)
        except (
            ArtifactNotFoundError,
            DefectiveArtifactError,
            Web3Exception,
            TypeError,
            ValueError,
        ) as e:
            raise DeploymentFailed(
                spec.name,
                f"Cannot build deployment of {spec.artifact}{_format_args(args)}: {e}",
                inputs=args,
            ) from e

        tx_hash = None
        try:
            tx_hash = self.client.submit_transaction({"data": data})
            logger.info("%s: submitted %s in %s", spec.name, spec.artifact, tx_hash)
            receipt = self.client.wait_for_confirmation(tx_hash, cancel=cancel)
            if not receipt.succeeded:
                raise TransactionReverted(
                    f"Deployment transaction {tx_hash} reverted in block {receipt.block_number}"
                )
            if receipt.contract_address is None:
                raise TransactionReverted(
                    f"Receipt of {tx_hash} carries no contract address"
                )
        except LedgerError as e:
            raise DeploymentFailed(
                spec.name,
                f"Deployment of {spec.artifact}{_format_args(args)} failed: {e}",
                transaction_hash=tx_hash,
                inputs=args,
            ) from e

        return DeployedContract(
            name=spec.name,
            artifact=spec.artifact,
            address=receipt.contract_address,
            block_number=receipt.block_number,
            transaction_hash=receipt.transaction_hash,
            abi=artifact.abi,
        )
