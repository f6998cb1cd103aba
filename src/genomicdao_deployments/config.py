"""Configuration loading for genomicdao-deployments library."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_NETWORK,
    DEFAULT_POLL_INTERVAL,
    ENV_ARTIFACTS_DIR,
    ENV_CONFIRMATION_TIMEOUT,
    ENV_DEPLOYER_ADDRESS,
    ENV_PRIVATE_KEY,
    ENV_STRICT_VERIFICATION,
    NETWORK_CONFIG,
)
from .exceptions import ConfigurationError
from .paths import get_default_artifacts_dir, get_record_path

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class DeployConfig:
    """Everything needed before the first transaction is sent."""

    network: str
    rpc_url: str
    chain_id: int
    artifacts_dir: Path
    record_path: Path
    private_key: Optional[str] = None
    deployer_address: Optional[str] = None
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    strict_verification: bool = False
    max_workers: int = 1

    def __repr__(self) -> str:
        # Never print key material
        key = "<set>" if self.private_key else None
        return (
            f"DeployConfig(network={self.network!r}, rpc_url={self.rpc_url!r}, "
            f"chain_id={self.chain_id}, private_key={key}, "
            f"deployer_address={self.deployer_address!r})"
        )


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _parse_float(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e
    if parsed < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return parsed


def load_config(
    network: str = DEFAULT_NETWORK,
    rpc_url: Optional[str] = None,
    artifacts_dir: Optional[Union[Path, str]] = None,
    record_path: Optional[Union[Path, str]] = None,
    private_key: Optional[str] = None,
    deployer_address: Optional[str] = None,
    confirmation_timeout: Optional[float] = None,
    strict_verification: Optional[bool] = None,
    max_workers: int = 1,
) -> DeployConfig:
    """
    Resolve deployment configuration.

    Each value comes from the explicit argument, then the environment, then
    the network defaults in NETWORK_CONFIG.

    Args:
        network: Key of NETWORK_CONFIG
        rpc_url: RPC endpoint (defaults to the network's env var, then its default URL)
        artifacts_dir: Hardhat artifacts directory (defaults to $DEPLOY_ARTIFACTS_DIR or ./artifacts)
        record_path: Where the deployment record is written
        private_key: Key for local signing (defaults to $DEPLOYER_PRIVATE_KEY)
        deployer_address: Node-managed account (defaults to $DEPLOYER_ADDRESS)
        confirmation_timeout: Seconds to wait per transaction
        strict_verification: Fail the plan on verification mismatch
        max_workers: Concurrent independent deployments

    Returns:
        DeployConfig

    Raises:
        ConfigurationError: If the network is unknown or a value is malformed
    """
    if network not in NETWORK_CONFIG:
        raise ConfigurationError(
            f"Unknown network '{network}'. Known networks: {', '.join(NETWORK_CONFIG)}"
        )
    network_config = NETWORK_CONFIG[network]

    if rpc_url is None:
        rpc_url = os.environ.get(network_config["default_rpc_env"]) or network_config["rpc_url"]

    if artifacts_dir is None:
        env_dir = os.environ.get(ENV_ARTIFACTS_DIR)
        artifacts_dir = Path(env_dir) if env_dir else get_default_artifacts_dir()

    if private_key is None:
        private_key = os.environ.get(ENV_PRIVATE_KEY) or None
    if deployer_address is None:
        deployer_address = os.environ.get(ENV_DEPLOYER_ADDRESS) or None

    if confirmation_timeout is None:
        env_timeout = os.environ.get(ENV_CONFIRMATION_TIMEOUT)
        confirmation_timeout = (
            _parse_float(ENV_CONFIRMATION_TIMEOUT, env_timeout)
            if env_timeout
            else DEFAULT_CONFIRMATION_TIMEOUT
        )

    if strict_verification is None:
        strict_verification = _parse_bool(
            ENV_STRICT_VERIFICATION, os.environ.get(ENV_STRICT_VERIFICATION, "")
        )

    if max_workers < 1:
        raise ConfigurationError("max_workers must be at least 1")

    return DeployConfig(
        network=network,
        rpc_url=rpc_url,
        chain_id=network_config["chain_id"],
        artifacts_dir=Path(artifacts_dir),
        record_path=Path(record_path) if record_path else get_record_path(network),
        private_key=private_key,
        deployer_address=deployer_address,
        confirmation_timeout=confirmation_timeout,
        strict_verification=strict_verification,
        max_workers=max_workers,
    )
