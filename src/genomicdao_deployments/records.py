"""Deployment record persistence for genomicdao-deployments library."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .exceptions import RecordNotFoundError
from .types import PlanResult


def build_deployment_record(
    result: PlanResult,
    network: str,
    chain_id: int,
    deployer: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the JSON-serializable record of a plan execution.

    Failed executions are recorded too: their confirmed contracts and
    transfers are what an operator needs to reconcile by hand.
    """
    body = result.to_dict()
    return {
        "metadata": {
            "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
            "network": network,
            "chain_id": chain_id,
            "deployer": deployer,
            "status": body["status"],
            "failed_step": body["failed_step"],
            "error": body["error"],
            "failed_transaction": body["failed_transaction"],
            "failed_inputs": body["failed_inputs"],
        },
        "contracts": body["contracts"],
        "transfers": body["transfers"],
        "verification": body["verification"],
    }


def save_deployment_record(
    result: PlanResult,
    path: Union[Path, str],
    network: str,
    chain_id: int,
    deployer: Optional[str] = None,
) -> Path:
    """
    Write the record of a plan execution to disk.

    Creates parent directories if they don't exist.

    Returns:
        Path the record was written to
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(build_deployment_record(result, network, chain_id, deployer), f, indent=2)
    return path


def load_deployment_record(path: Union[Path, str]) -> Dict[str, Any]:
    """
    Load a deployment record.

    Raises:
        RecordNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise RecordNotFoundError(f"Deployment record not found at {path}")
    with open(path) as f:
        return json.load(f)
