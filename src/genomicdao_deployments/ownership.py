"""Ownership transfer of Ownable contracts."""

import logging
import threading
from typing import Optional

from .addresses import normalize_address
from .constants import OWNABLE_ABI
from .contracts import BoundContract
from .exceptions import LedgerError, TransactionReverted, TransferFailed
from .rpc import LedgerClient
from .types import DeployedContract, TransferConfirmation

logger = logging.getLogger(__name__)


def read_owner(client: LedgerClient, contract: DeployedContract) -> str:
    """Return the checksummed current owner of an Ownable contract."""
    owner = BoundContract(client, contract.address, OWNABLE_ABI).call("owner")
    return normalize_address(owner)


def transfer_ownership(
    client: LedgerClient,
    contract: DeployedContract,
    new_owner: str,
    step: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
) -> TransferConfirmation:
    """
    Hand ownership of a contract to a new address and wait for confirmation.

    The caller must currently own the contract; the chain enforces this and a
    rejected call surfaces as a reverted receipt. Submitting again after the
    owner has already changed fails the same way.

    Args:
        client: Ledger client whose signer is the current owner
        contract: Contract to transfer
        new_owner: Address of the new owner
        step: Name reported on failure (defaults to "transfer<name>")
        cancel: Event that abandons the confirmation wait

    Returns:
        TransferConfirmation with the owner observed before the transfer

    Raises:
        TransferFailed: If new_owner is invalid, or the call is rejected,
            reverted or not confirmed
    """
    step = step or f"transfer{contract.artifact}"

    try:
        target = normalize_address(new_owner)
    except ValueError as e:
        raise TransferFailed(step, f"Invalid new owner for {contract.name}: {e}") from e

    bound = BoundContract(client, contract.address, OWNABLE_ABI)
    tx_hash = None
    try:
        previous_owner = read_owner(client, contract)
        tx_hash = bound.send("transferOwnership", target)
        receipt = client.wait_for_confirmation(tx_hash, cancel=cancel)
        if not receipt.succeeded:
            raise TransactionReverted(
                f"transferOwnership reverted in {receipt.transaction_hash} "
                f"(caller not owner of {contract.address}?)"
            )
    except LedgerError as e:
        raise TransferFailed(
            step,
            f"Ownership transfer of {contract.name} to {target} failed: {e}",
            transaction_hash=tx_hash,
        ) from e

    logger.info(
        "%s: owner of %s changed %s -> %s in %s",
        step,
        contract.address,
        previous_owner,
        target,
        receipt.transaction_hash,
    )
    return TransferConfirmation(
        step=step,
        contract=contract,
        previous_owner=previous_owner,
        new_owner=target,
        transaction_hash=receipt.transaction_hash,
        block_number=receipt.block_number,
        status=receipt.status,
    )
