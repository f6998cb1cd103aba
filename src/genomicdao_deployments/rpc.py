"""Ledger client over web3 and signing providers for genomicdao-deployments library."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import requests
from eth_account import Account
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import TransactionNotFound, Web3Exception, Web3RPCError

from .addresses import normalize_address
from .constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
)
from .exceptions import (
    ConfigurationError,
    ConfirmationCancelled,
    ConfirmationTimeout,
    MalformedResponse,
    NetworkUnavailable,
    RpcError,
)
from .types import Receipt

logger = logging.getLogger(__name__)


@contextmanager
def rpc_errors(action: str) -> Iterator[None]:
    """
    Translate transport and web3 failures raised inside the block.

    Raises:
        NetworkUnavailable: On connection errors, timeouts and HTTP error statuses
        RpcError: If the node answers with a JSON-RPC error object
        MalformedResponse: If the answer is not valid JSON-RPC or cannot be formatted
    """
    try:
        yield
    except requests.RequestException as e:
        raise NetworkUnavailable(f"Network error during {action}: {e}") from e
    except Web3RPCError as e:
        response = e.rpc_response if isinstance(e.rpc_response, dict) else {}
        error = response.get("error")
        if isinstance(error, dict):
            raise RpcError(
                f"{action} failed: {error.get('message', error)}",
                code=error.get("code"),
                data=error.get("data"),
            ) from e
        raise RpcError(f"{action} failed: {e}") from e
    except Web3Exception as e:
        raise RpcError(f"{action} failed: {e}") from e
    except (KeyError, ValueError) as e:
        raise MalformedResponse(f"Malformed response to {action}: {e}") from e


def _hex(value: Any) -> Optional[str]:
    # web3 hands back HexBytes; records and logs use 0x strings
    if value is None or isinstance(value, str):
        return value
    return Web3.to_hex(value)


def parse_receipt(raw: Mapping[str, Any]) -> Receipt:
    """
    Convert a receipt returned by web3 into a Receipt.

    Receipts without a status field (pre-Byzantium) are treated as successful.
    """
    contract_address = raw.get("contractAddress")
    status = raw.get("status")
    return Receipt(
        transaction_hash=_hex(raw["transactionHash"]),
        block_number=int(raw["blockNumber"]),
        block_hash=_hex(raw.get("blockHash")),
        status=int(status) if status is not None else 1,
        contract_address=normalize_address(contract_address) if contract_address else None,
        gas_used=raw.get("gasUsed"),
    )


class Signer(ABC):
    """Signs and submits transactions on behalf of the deployer account."""

    address: str

    @abstractmethod
    def send_transaction(self, client: "LedgerClient", payload: Dict[str, Any]) -> str:
        """Submit payload and return the transaction hash."""


class NodeSigner(Signer):
    """Uses an account unlocked on the node (hardhat, anvil, geth --dev)."""

    def __init__(self, address: str):
        self.address = normalize_address(address)

    def send_transaction(self, client: "LedgerClient", payload: Dict[str, Any]) -> str:
        tx = {"from": self.address, **payload}
        return _hex(client.w3.eth.send_transaction(tx))

    def __repr__(self) -> str:
        return f"NodeSigner({self.address})"


class LocalAccountSigner(Signer):
    """Signs locally with a private key and submits raw transactions."""

    def __init__(self, private_key: str, chain_id: int):
        self._account = Account.from_key(private_key)
        self.address = self._account.address
        self.chain_id = chain_id
        self._lock = threading.Lock()
        self._next_nonce: Optional[int] = None

    def send_transaction(self, client: "LedgerClient", payload: Dict[str, Any]) -> str:
        # Nonce assignment and submission are serialized so concurrent
        # deployments from one account never reuse a nonce.
        with self._lock:
            eth = client.w3.eth
            nonce = eth.get_transaction_count(self.address, "pending")
            if self._next_nonce is not None:
                nonce = max(nonce, self._next_nonce)

            tx: Dict[str, Any] = {
                "nonce": nonce,
                "chainId": self.chain_id,
                "gasPrice": eth.gas_price,
                "value": payload.get("value", 0),
                "data": payload.get("data", "0x"),
            }
            if payload.get("to"):
                tx["to"] = payload["to"]
            tx["gas"] = eth.estimate_gas({"from": self.address, **payload})

            signed = self._account.sign_transaction(tx)
            tx_hash = eth.send_raw_transaction(signed.raw_transaction)
            self._next_nonce = nonce + 1
            return _hex(tx_hash)

    def __repr__(self) -> str:
        return f"LocalAccountSigner({self.address})"


class LedgerClient:
    """
    EVM ledger client used by the deployment plan.

    Wraps a web3 HTTP connection and reports failures as LedgerError
    subclasses. The connection is built without web3's default middleware:
    transactions carry explicit fields and receipts are read as returned.
    """

    def __init__(
        self,
        rpc_url: str,
        signer: Optional[Signer] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.rpc_url = rpc_url
        self.signer = signer
        self.request_timeout = request_timeout
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.w3 = Web3(
            Web3.HTTPProvider(
                rpc_url,
                request_kwargs={"timeout": request_timeout},
                exception_retry_configuration=None,
            ),
            middleware=[],
        )

    def contract(
        self,
        address: Optional[str] = None,
        abi: Sequence[Dict[str, Any]] = (),
        bytecode: Optional[str] = None,
    ) -> Contract:
        """Return a web3 contract object bound to this client's connection."""
        if address is None:
            return self.w3.eth.contract(abi=list(abi), bytecode=bytecode)
        return self.w3.eth.contract(address=normalize_address(address), abi=list(abi))

    def submit_transaction(self, payload: Dict[str, Any]) -> str:
        """
        Sign and submit a transaction.

        Args:
            payload: Transaction fields ("data", optional "to" and "value")

        Returns:
            Transaction hash

        Raises:
            ConfigurationError: If the client has no signer
            LedgerError: If the node rejects the transaction or cannot be reached
        """
        if self.signer is None:
            raise ConfigurationError("No signer configured for transaction submission")
        with rpc_errors("transaction submission"):
            tx_hash = self.signer.send_transaction(self, payload)
        logger.debug("Submitted transaction %s from %s", tx_hash, self.signer.address)
        return tx_hash

    def wait_for_confirmation(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Receipt:
        """
        Poll for the receipt of a submitted transaction.

        Works like web3's wait_for_transaction_receipt, except that the wait
        can be abandoned through cancel. The receipt is returned whatever its
        status; callers decide what a reverted transaction means for them.

        Args:
            tx_hash: Transaction hash returned by submit_transaction
            timeout: Seconds to wait (defaults to the client's confirmation_timeout)
            cancel: Event that abandons the wait when set

        Raises:
            ConfirmationTimeout: If no receipt appears before the deadline
            ConfirmationCancelled: If cancel is set while waiting
            MalformedResponse: If the receipt cannot be parsed
        """
        if timeout is None:
            timeout = self.confirmation_timeout
        deadline = time.monotonic() + timeout

        while True:
            if cancel is not None and cancel.is_set():
                raise ConfirmationCancelled(f"Stopped waiting for {tx_hash}")

            with rpc_errors(f"receipt lookup of {tx_hash}"):
                try:
                    raw = self.w3.eth.get_transaction_receipt(tx_hash)
                except TransactionNotFound:
                    raw = None
                # Some nodes return pending receipts without a block number
                if raw is not None and raw.get("blockNumber") is not None:
                    return parse_receipt(raw)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ConfirmationTimeout(
                    f"Transaction {tx_hash} not confirmed within {timeout}s"
                )
            delay = min(self.poll_interval, remaining)
            if cancel is not None:
                if cancel.wait(delay):
                    raise ConfirmationCancelled(f"Stopped waiting for {tx_hash}")
            else:
                time.sleep(delay)

    def read_state(self, address: str, data: str, block: str = "latest") -> bytes:
        """Execute a read-only call against a contract and return the raw result."""
        with rpc_errors(f"eth_call to {address}"):
            return bytes(self.w3.eth.call({"to": address, "data": data}, block))

    def chain_id(self) -> int:
        with rpc_errors("eth_chainId"):
            return self.w3.eth.chain_id

    def accounts(self) -> List[str]:
        with rpc_errors("eth_accounts"):
            return [normalize_address(a) for a in self.w3.eth.accounts or []]

    def get_balance(self, address: str, block: str = "latest") -> int:
        with rpc_errors("eth_getBalance"):
            return self.w3.eth.get_balance(address, block)

    def get_transaction_count(self, address: str, block: str = "latest") -> int:
        with rpc_errors("eth_getTransactionCount"):
            return self.w3.eth.get_transaction_count(address, block)

    def gas_price(self) -> int:
        with rpc_errors("eth_gasPrice"):
            return self.w3.eth.gas_price

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        with rpc_errors("eth_estimateGas"):
            return self.w3.eth.estimate_gas(tx)
