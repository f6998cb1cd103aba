"""Main API for genomicdao-deployments library."""

import logging
import threading
from typing import Optional, Sequence

from .artifacts import ArtifactStore
from .config import DeployConfig
from .exceptions import ConfigurationError
from .executor import EventCallback, PlanExecutor
from .plan import Step, build_controller_plan
from .records import save_deployment_record
from .rpc import LedgerClient, LocalAccountSigner, NodeSigner, Signer
from .types import PlanResult

logger = logging.getLogger(__name__)


def build_signer(config: DeployConfig, client: LedgerClient) -> Signer:
    """
    Choose the signing provider for a configuration.

    A private key takes precedence; then an explicit node-managed address;
    then the node's first account, as hardhat's getSigners() does.

    Raises:
        ConfigurationError: If no account can be determined
    """
    if config.private_key:
        try:
            return LocalAccountSigner(config.private_key, config.chain_id)
        except ValueError as e:
            raise ConfigurationError("DEPLOYER_PRIVATE_KEY is not a valid private key") from e

    if config.deployer_address:
        try:
            return NodeSigner(config.deployer_address)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    accounts = client.accounts()
    if not accounts:
        raise ConfigurationError(
            "No deployer account: set DEPLOYER_PRIVATE_KEY or DEPLOYER_ADDRESS, "
            "or use a node with unlocked accounts"
        )
    return NodeSigner(accounts[0])


def connect(config: DeployConfig) -> LedgerClient:
    """
    Create a ledger client for a configuration and attach its signer.

    Raises:
        ConfigurationError: If the node's chain id differs from the configured one
        NetworkUnavailable: If the node cannot be reached
    """
    client = LedgerClient(
        config.rpc_url,
        confirmation_timeout=config.confirmation_timeout,
        poll_interval=config.poll_interval,
    )

    chain_id = client.chain_id()
    if chain_id != config.chain_id:
        raise ConfigurationError(
            f"Node at {config.rpc_url} reports chain id {chain_id}, "
            f"expected {config.chain_id} for network '{config.network}'"
        )

    client.signer = build_signer(config, client)
    return client


def run_deployment(
    config: DeployConfig,
    plan: Optional[Sequence[Step]] = None,
    on_event: Optional[EventCallback] = None,
    cancel: Optional[threading.Event] = None,
    save_record: bool = True,
) -> PlanResult:
    """
    Deploy the controller topology (or a custom plan) to the configured network.

    Args:
        config: Resolved configuration
        plan: Steps to run (defaults to build_controller_plan())
        on_event: Called with a StepEvent for every step transition
        cancel: Event that stops the plan between steps
        save_record: Whether to write the deployment record to config.record_path;
            a failed write is logged and does not replace the result

    Returns:
        PlanResult, successful or not

    Raises:
        ConfigurationError: If the network or signer is misconfigured
        NetworkUnavailable: If the node cannot be reached before the plan starts
    """
    client = connect(config)
    deployer = client.signer.address

    logger.info("Deployer account: %s", deployer)
    logger.info("Account balance: %d", client.get_balance(deployer))

    executor = PlanExecutor(
        client,
        ArtifactStore(config.artifacts_dir),
        strict_verification=config.strict_verification,
        max_workers=config.max_workers,
        on_event=on_event,
        cancel=cancel,
    )
    result = executor.execute(plan if plan is not None else build_controller_plan())

    if save_record:
        try:
            path = save_deployment_record(
                result, config.record_path, config.network, config.chain_id, deployer
            )
        except OSError as e:
            logger.error("Could not write deployment record to %s: %s", config.record_path, e)
        else:
            logger.info("Deployment record written to %s", path)

    return result
