"""Post-deployment verification of ownership and controller links."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .addresses import normalize_address, same_address
from .contracts import BoundContract
from .exceptions import VerificationMismatch
from .ownership import read_owner
from .rpc import LedgerClient
from .types import DeployedContract, LinkCheck, OwnerCheck, VerificationReport

logger = logging.getLogger(__name__)


def _address_getter_abi(getter: str) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "name": getter,
            "inputs": [],
            "outputs": [{"name": "", "type": "address"}],
            "stateMutability": "view",
        }
    ]


def read_address_getter(client: LedgerClient, address: str, getter: str) -> str:
    """Call a zero-argument getter returning an address, e.g. Controller.geneNFT()."""
    value = BoundContract(client, address, _address_getter_abi(getter)).call(getter)
    return normalize_address(value)


class Verifier:
    """
    Reads back on-chain state after a plan and compares it to expectations.

    In non-strict mode (the default) mismatches are logged and reported.
    In strict mode they raise VerificationMismatch carrying the report.
    """

    def __init__(self, client: LedgerClient, strict: bool = False):
        self.client = client
        self.strict = strict

    def verify(
        self,
        controller_address: str,
        transferred: Sequence[DeployedContract],
        links: Sequence[Tuple[str, DeployedContract]] = (),
        step: str = "verify",
        strict: Optional[bool] = None,
    ) -> VerificationReport:
        """
        Check that each transferred contract is owned by the controller.

        Args:
            controller_address: Address expected to own everything in transferred
            transferred: Contracts whose owner() is read back
            links: (getter, contract) pairs; each getter on the controller must
                return the contract's address
            step: Step name used in a VerificationMismatch
            strict: Overrides the verifier's strict setting for this call

        Returns:
            VerificationReport listing every check

        Raises:
            VerificationMismatch: In strict mode, if any check fails
            LedgerError: If on-chain state cannot be read
        """
        expected_owner = normalize_address(controller_address)

        owners = []
        for contract in transferred:
            actual = read_owner(self.client, contract)
            owners.append(
                OwnerCheck(
                    contract=contract.name,
                    address=contract.address,
                    expected_owner=expected_owner,
                    actual_owner=actual,
                    match=same_address(actual, expected_owner),
                )
            )

        link_checks = []
        for getter, contract in links:
            actual = read_address_getter(self.client, expected_owner, getter)
            link_checks.append(
                LinkCheck(
                    getter=getter,
                    expected=contract.address,
                    actual=actual,
                    match=same_address(actual, contract.address),
                )
            )

        report = VerificationReport(
            controller=expected_owner, owners=tuple(owners), links=tuple(link_checks)
        )
        self._log_mismatches(report)

        if (self.strict if strict is None else strict) and not report.all_match:
            raise VerificationMismatch(
                step,
                f"{len(report.mismatches())} verification check(s) failed "
                f"for controller {expected_owner}",
                report=report,
            )
        return report

    @staticmethod
    def _log_mismatches(report: VerificationReport) -> None:
        for check in report.mismatches():
            if isinstance(check, OwnerCheck):
                logger.warning(
                    "Owner mismatch on %s (%s): expected %s, found %s",
                    check.contract,
                    check.address,
                    check.expected_owner,
                    check.actual_owner,
                )
            else:
                logger.warning(
                    "Controller %s() returned %s, expected %s",
                    check.getter,
                    check.actual,
                    check.expected,
                )


def summarize(report: VerificationReport) -> Dict[str, Any]:
    """Count passed and failed checks of a report."""
    checks = len(report.owners) + len(report.links)
    failed = len(report.mismatches())
    return {"checks": checks, "passed": checks - failed, "failed": failed}
