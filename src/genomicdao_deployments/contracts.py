"""Callable interface over a deployed contract."""

from typing import Any, Dict, Sequence

from .rpc import LedgerClient, rpc_errors


class BoundContract:
    """A web3 contract at a fixed address, bound to a ledger client."""

    def __init__(self, client: LedgerClient, address: str, abi: Sequence[Dict[str, Any]]):
        self.client = client
        self.contract = client.contract(address, abi)

    @property
    def address(self) -> str:
        return self.contract.address

    def call(self, function: str, *args: Any) -> Any:
        """Run a view function and return its decoded result."""
        with rpc_errors(f"{function}() on {self.address}"):
            return self.contract.functions[function](*args).call()

    def send(self, function: str, *args: Any) -> str:
        """Submit a state-changing call and return its transaction hash."""
        data = self.contract.encode_abi(function, args=list(args))
        return self.client.submit_transaction({"to": self.address, "data": data})

    def __repr__(self) -> str:
        return f"BoundContract({self.address})"
