"""Compiled contract artifact loading for genomicdao-deployments library."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ArtifactNotFoundError, DefectiveArtifactError


@dataclass(frozen=True)
class ContractArtifact:
    """ABI and creation bytecode of a compiled contract."""

    name: str
    abi: List[Dict[str, Any]] = field(repr=False)
    bytecode: str = field(repr=False)  # 0x-prefixed creation code
    source_name: Optional[str] = None

    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for item in self.abi:
            if item.get("type") == "constructor":
                return item.get("inputs", [])
        return []


def parse_hardhat_artifact(file_path: Path) -> ContractArtifact:
    """
    Parse a hardhat compilation artifact.

    Accepts both the compiler artifact format (``artifacts/contracts/X.sol/X.json``)
    and hardhat-deploy deployment files, which carry the same ``abi`` and
    ``bytecode`` keys.

    Args:
        file_path: Path to artifact JSON file

    Returns:
        ContractArtifact with 0x-prefixed bytecode

    Raises:
        DefectiveArtifactError: If the file is not JSON, or lacks abi or bytecode
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DefectiveArtifactError(f"Artifact is not valid JSON: {file_path}") from e

    abi = data.get("abi")
    if not isinstance(abi, list):
        raise DefectiveArtifactError(f"Missing abi in artifact: {file_path}")

    bytecode = data.get("bytecode")
    # Interfaces and abstract contracts compile to empty bytecode
    if not isinstance(bytecode, str) or bytecode in ("", "0x"):
        raise DefectiveArtifactError(f"Missing creation bytecode in artifact: {file_path}")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    return ContractArtifact(
        name=data.get("contractName", file_path.stem),
        abi=abi,
        bytecode=bytecode,
        source_name=data.get("sourceName"),
    )


def find_artifact_file(artifacts_dir: Path, contract_name: str) -> Path:
    """
    Locate the artifact file of a contract under a hardhat artifacts directory.

    Debug files (``*.dbg.json``) are ignored.

    Raises:
        ArtifactNotFoundError: If no file or more than one file matches
    """
    matches = sorted(
        p
        for p in artifacts_dir.rglob(f"{contract_name}.json")
        if not p.name.endswith(".dbg.json")
    )
    if not matches:
        raise ArtifactNotFoundError(
            f"Artifact for contract '{contract_name}' not found under {artifacts_dir}. "
            "Run `npx hardhat compile` in the contracts repository."
        )
    if len(matches) > 1:
        raise ArtifactNotFoundError(
            f"Ambiguous artifact for contract '{contract_name}': "
            + ", ".join(str(p) for p in matches)
        )
    return matches[0]


class ArtifactStore:
    """Loads artifacts by contract name from a directory, caching each one."""

    def __init__(self, artifacts_dir: Union[Path, str]):
        self.artifacts_dir = Path(artifacts_dir)
        self._loaded: Dict[str, ContractArtifact] = {}

    def get(self, contract_name: str) -> ContractArtifact:
        if contract_name not in self._loaded:
            if not self.artifacts_dir.is_dir():
                raise ArtifactNotFoundError(
                    f"Artifacts directory not found: {self.artifacts_dir}"
                )
            path = find_artifact_file(self.artifacts_dir, contract_name)
            self._loaded[contract_name] = parse_hardhat_artifact(path)
        return self._loaded[contract_name]
