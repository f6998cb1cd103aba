"""Shared pytest fixtures for genomicdao-deployments tests."""

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest
import requests
import responses
from eth_abi import decode, encode
from eth_utils import encode_hex, function_signature_to_4byte_selector, to_checksum_address

from genomicdao_deployments.artifacts import ArtifactStore
from genomicdao_deployments.rpc import LedgerClient, NodeSigner

RPC_URL = "http://fake-rpc.example.com"
CHAIN_ID = 8386
DEPLOYER = to_checksum_address("0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266")
OTHER_ACCOUNT = to_checksum_address("0x70997970c51812dc3a010c7d01b50e0d17dc79c8")


def _selector(signature: str) -> str:
    return encode_hex(function_signature_to_4byte_selector(signature))


OWNER = _selector("owner()")
TRANSFER_OWNERSHIP = _selector("transferOwnership(address)")
GENE_NFT = _selector("geneNFT()")
PCSP_TOKEN = _selector("pcspToken()")


class FakeChain:
    """
    JSON-RPC node simulated behind `responses`.

    Transactions are mined instantly. Contracts are identified by the
    artifact whose bytecode prefixes the creation data. Failures are
    injected per artifact name.
    """

    def __init__(self, artifacts_dir: Path):
        self.bytecodes: Dict[str, str] = {}
        for path in artifacts_dir.rglob("*.json"):
            if path.name.endswith(".dbg.json"):
                continue
            data = json.loads(path.read_text())
            self.bytecodes[data["contractName"]] = data["bytecode"].lower()

        self.block = 100
        self.contracts: Dict[str, Dict[str, Any]] = {}  # lowercase address -> state
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.sent: List[Dict[str, Any]] = []  # submitted transactions, in order
        self.methods: List[str] = []
        self.raw_transactions: List[str] = []

        self.reject_deploy: Set[str] = set()
        self.revert_transfer: Set[str] = set()
        self.reject_transfer: Set[str] = set()
        self.drop_receipt: Set[str] = set()
        self.malformed_receipt: Set[str] = set()
        self.offline = False
        self.chain_id = CHAIN_ID
        self.accounts = [DEPLOYER]

        self._counter = 0
        self._lock = threading.Lock()

    # Helpers for tests

    def address_of(self, artifact: str) -> str:
        for address, state in self.contracts.items():
            if state["artifact"] == artifact:
                return to_checksum_address(address)
        raise KeyError(artifact)

    def owner_of(self, artifact: str) -> str:
        return self.contracts[self.address_of(artifact).lower()]["owner"]

    def set_owner(self, artifact: str, owner: str) -> None:
        self.contracts[self.address_of(artifact).lower()]["owner"] = to_checksum_address(owner)

    def created_artifacts(self) -> List[str]:
        return [tx["artifact"] for tx in self.sent if tx.get("artifact")]

    # JSON-RPC dispatch

    def handle(self, request):
        if self.offline:
            return requests.ConnectionError("connection refused")

        body = json.loads(request.body)
        with self._lock:
            self.methods.append(body["method"])
            handler = getattr(self, "_" + body["method"], None)
            if handler is None:
                return self._reply(body, error={"code": -32601, "message": "method not found"})
            result, error = handler(*body.get("params", []))
        return self._reply(body, result=result, error=error)

    @staticmethod
    def _reply(body, result=None, error=None):
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result
        return (200, {}, json.dumps(payload))

    def _next_hash(self) -> str:
        self._counter += 1
        return "0x" + format(self._counter, "064x")

    def _mine(self, tx_hash: str, status: int, contract_address: Optional[str] = None) -> None:
        self.block += 1
        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block),
            "blockHash": "0x" + format(self.block, "064x"),
            "status": hex(status),
            "contractAddress": contract_address,
            "gasUsed": hex(21000),
        }

    def _eth_chainId(self):
        return hex(self.chain_id), None

    def _eth_accounts(self):
        return self.accounts, None

    def _eth_getBalance(self, address, *block):
        return hex(10**21), None

    def _eth_getTransactionCount(self, address, *block):
        return hex(len(self.raw_transactions)), None

    def _eth_gasPrice(self):
        return hex(25 * 10**9), None

    def _eth_estimateGas(self, tx, *block):
        return hex(3_000_000), None

    def _eth_getBlockByNumber(self, block, full=False):
        return {
            "number": hex(self.block),
            "hash": "0x" + format(self.block, "064x"),
            "gasLimit": hex(30_000_000),
            "extraData": "0x",
            "transactions": [],
        }, None

    def _eth_sendRawTransaction(self, raw):
        self.raw_transactions.append(raw)
        tx_hash = self._next_hash()
        self._mine(tx_hash, 1)
        return tx_hash, None

    def _eth_sendTransaction(self, tx):
        sender = to_checksum_address(tx["from"])
        data = tx.get("data", "0x").lower()
        if tx.get("to"):
            return self._call_transaction(sender, tx["to"], data)
        return self._create_transaction(sender, data)

    def _create_transaction(self, sender: str, data: str):
        artifact = next(
            (name for name, code in self.bytecodes.items() if data.startswith(code)), None
        )
        self.sent.append({"kind": "create", "artifact": artifact})
        if artifact in self.reject_deploy:
            return None, {"code": -32000, "message": "insufficient funds for gas * price + value"}

        tx_hash = self._next_hash()
        if artifact in self.drop_receipt:
            return tx_hash, None
        if artifact in self.malformed_receipt:
            self._mine(tx_hash, 1, "0x1234")
            return tx_hash, None

        address = to_checksum_address("0x" + format(0xC0FFEE0000 + self._counter, "040x"))
        args: tuple = ()
        if artifact == "Controller":
            args = decode(["address", "address"], bytes.fromhex(data[len(self.bytecodes[artifact]):]))
        self.contracts[address.lower()] = {
            "artifact": artifact,
            "owner": sender,
            "args": tuple(to_checksum_address(a) for a in args),
        }
        self._mine(tx_hash, 1, address)
        return tx_hash, None

    def _call_transaction(self, sender: str, to: str, data: str):
        state = self.contracts.get(to.lower())
        artifact = state["artifact"] if state else None
        self.sent.append({"kind": "call", "to": to, "artifact_called": artifact, "data": data})

        if artifact in self.reject_transfer:
            return None, {"code": -32000, "message": "nonce too low"}

        tx_hash = self._next_hash()
        if artifact in self.drop_receipt:
            return tx_hash, None

        status = 1
        if state is None or artifact in self.revert_transfer:
            status = 0
        elif data.startswith(TRANSFER_OWNERSHIP):
            if state["owner"] != sender:
                status = 0  # Ownable: caller is not the owner
            else:
                (new_owner,) = decode(["address"], bytes.fromhex(data[10:]))
                state["owner"] = to_checksum_address(new_owner)
        self._mine(tx_hash, status)
        return tx_hash, None

    def _eth_getTransactionReceipt(self, tx_hash):
        return self.receipts.get(tx_hash), None

    def _eth_call(self, call, *block):
        state = self.contracts.get(call["to"].lower())
        if state is None:
            return "0x", None
        selector = call["data"][:10].lower()
        if selector == OWNER:
            return encode_hex(encode(["address"], [state["owner"]])), None
        if selector == GENE_NFT and state["args"]:
            return encode_hex(encode(["address"], [state["args"][0]])), None
        if selector == PCSP_TOKEN and state["args"]:
            return encode_hex(encode(["address"], [state["args"][1]])), None
        return None, {"code": 3, "message": "execution reverted"}


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def artifacts_dir(fixtures_dir: Path) -> Path:
    """Return the sample hardhat artifacts directory."""
    return fixtures_dir / "artifacts"


@pytest.fixture
def artifact_store(artifacts_dir: Path) -> ArtifactStore:
    """ArtifactStore over the sample artifacts."""
    return ArtifactStore(artifacts_dir)


@pytest.fixture
def rpc_url() -> str:
    return RPC_URL


@pytest.fixture
def deployer_address() -> str:
    return DEPLOYER


@pytest.fixture
def other_account() -> str:
    return OTHER_ACCOUNT


@pytest.fixture
def fake_chain(artifacts_dir: Path):
    """Simulated node answering JSON-RPC at RPC_URL."""
    chain = FakeChain(artifacts_dir)
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add_callback(
            responses.POST,
            RPC_URL,
            callback=lambda request: chain.handle(request),
            content_type="application/json",
        )
        yield chain


@pytest.fixture
def client(fake_chain: FakeChain) -> LedgerClient:
    """LedgerClient signing as DEPLOYER against the fake chain, without waiting."""
    return LedgerClient(
        RPC_URL,
        signer=NodeSigner(DEPLOYER),
        confirmation_timeout=0,
        poll_interval=0,
    )
