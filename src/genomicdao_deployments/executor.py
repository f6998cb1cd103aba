"""Deployment plan execution."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .artifacts import ArtifactStore
from .deployer import ContractDeployer
from .exceptions import (
    DeploymentFailed,
    InvalidPlanError,
    LedgerError,
    PlanCancelled,
    StepFailed,
    TransferFailed,
    VerificationFailed,
    VerificationMismatch,
)
from .ownership import transfer_ownership
from .plan import DeployStep, Step, TransferStep, VerifyStep, validate_plan
from .rpc import LedgerClient
from .types import DeployedContract, PlanResult, StepEvent
from .verifier import Verifier

logger = logging.getLogger(__name__)

EventCallback = Callable[[StepEvent], None]

_FAILURE_TYPES = {
    "deploy": DeploymentFailed,
    "transfer": TransferFailed,
    "verify": VerificationFailed,
}


def _as_step_failure(step: Step, error: Exception) -> StepFailed:
    """Wrap an error raised inside a step in that step's failure type."""
    failure = _FAILURE_TYPES[step.kind](
        step.name, f"Step '{step.name}' failed: {type(error).__name__}: {error}"
    )
    failure.__cause__ = error
    return failure


class PlanExecutor:
    """
    Runs a plan step by step, feeding each step's output to later steps.

    Execution is fail-fast with no compensation: the first failing step
    stops the plan, and everything confirmed before it stays in the
    returned PlanResult so an operator can reconcile by hand.

    With max_workers > 1, consecutive deploy steps that do not reference
    each other are submitted concurrently. All of them are confirmed before
    the next step starts.
    """

    def __init__(
        self,
        client: LedgerClient,
        artifacts: ArtifactStore,
        verifier: Optional[Verifier] = None,
        strict_verification: bool = False,
        max_workers: int = 1,
        on_event: Optional[EventCallback] = None,
        cancel: Optional[threading.Event] = None,
        verify_on_failure: bool = True,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.deployer = ContractDeployer(client, artifacts)
        self.verifier = verifier or Verifier(client, strict=strict_verification)
        self.max_workers = max_workers
        self.on_event = on_event
        self.cancel = cancel
        self.verify_on_failure = verify_on_failure

    def execute(self, plan: Sequence[Step]) -> PlanResult:
        """
        Execute a plan.

        Args:
            plan: Ordered steps; dependencies must precede dependents

        Returns:
            PlanResult; on failure it names the failing step and keeps the
            deployments and transfers confirmed before it

        Raises:
            InvalidPlanError: If the plan is malformed (nothing is submitted)
        """
        validate_plan(plan)
        result = PlanResult()

        try:
            index = 0
            while index < len(plan):
                batch = self._next_batch(plan, index)
                if len(batch) > 1:
                    self._run_deploy_batch(batch, result)
                else:
                    self._run_step(batch[0], result)
                index += len(batch)
        except StepFailed as e:
            result.failed_step = e.step
            result.error = e
            if isinstance(e, VerificationMismatch):
                result.verification = e.report
            elif self.verify_on_failure:
                self._reconcile(plan, result)
            return result

        logger.info(
            "Plan completed: %d deployment(s), %d transfer(s)",
            len(result.deployed),
            len(result.transfers),
        )
        return result

    def _next_batch(self, plan: Sequence[Step], index: int) -> List[Step]:
        first = plan[index]
        if self.max_workers == 1 or not isinstance(first, DeployStep):
            return [first]

        batch: List[Step] = [first]
        names = {first.name}
        for step in plan[index + 1 :]:
            if not isinstance(step, DeployStep) or names & set(step.dependencies()):
                break
            batch.append(step)
            names.add(step.name)
        return batch

    def _check_cancelled(self, step: Step) -> None:
        if self.cancel is not None and self.cancel.is_set():
            error = PlanCancelled(step.name, f"Plan cancelled before step '{step.name}'")
            self._emit(StepEvent(step.name, step.kind, "failed", error=str(error)))
            raise error

    def _run_step(self, step: Step, result: PlanResult) -> None:
        self._check_cancelled(step)
        self._emit(StepEvent(step.name, step.kind, "started"))

        try:
            if isinstance(step, DeployStep):
                deployed = self.deployer.deploy(step.spec, result.deployed, self.cancel)
                result.deployed[step.name] = deployed
                event = StepEvent(
                    step.name,
                    step.kind,
                    "succeeded",
                    address=deployed.address,
                    transaction_hash=deployed.transaction_hash,
                )
            elif isinstance(step, TransferStep):
                confirmation = transfer_ownership(
                    self.client,
                    result.deployed[step.contract],
                    result.deployed[step.new_owner].address,
                    step=step.name,
                    cancel=self.cancel,
                )
                result.transfers[step.name] = confirmation
                event = StepEvent(
                    step.name,
                    step.kind,
                    "succeeded",
                    address=confirmation.contract.address,
                    transaction_hash=confirmation.transaction_hash,
                )
            else:
                result.verification = self._verify(step, result, strict=step.strict)
                event = StepEvent(
                    step.name,
                    step.kind,
                    "succeeded",
                    address=result.verification.controller,
                )
        except StepFailed as e:
            self._emit_failure(step, e)
            raise
        except InvalidPlanError:
            raise
        except Exception as e:
            failure = _as_step_failure(step, e)
            self._emit_failure(step, failure)
            raise failure from e

        self._emit(event)

    def _run_deploy_batch(self, batch: List[Step], result: PlanResult) -> None:
        for step in batch:
            self._check_cancelled(step)
        for step in batch:
            self._emit(StepEvent(step.name, step.kind, "started"))

        # Every step in the batch reads the same table; none depends on another
        snapshot = dict(result.deployed)
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(batch))) as pool:
            futures = [
                pool.submit(self.deployer.deploy, step.spec, snapshot, self.cancel)
                for step in batch
            ]

        first_failure: Optional[StepFailed] = None
        for step, future in zip(batch, futures):
            error = future.exception()
            if error is None:
                deployed: DeployedContract = future.result()
                result.deployed[step.name] = deployed
                self._emit(
                    StepEvent(
                        step.name,
                        step.kind,
                        "succeeded",
                        address=deployed.address,
                        transaction_hash=deployed.transaction_hash,
                    )
                )
            elif isinstance(error, InvalidPlanError):
                raise error
            else:
                if not isinstance(error, StepFailed):
                    error = _as_step_failure(step, error)
                self._emit_failure(step, error)
                if first_failure is None:
                    first_failure = error

        if first_failure is not None:
            raise first_failure

    def _verify(self, step: VerifyStep, result: PlanResult, strict: Optional[bool]):
        deployed = result.deployed
        try:
            return self.verifier.verify(
                deployed[step.controller].address,
                [deployed[name] for name in step.contracts if name in deployed],
                links=[
                    (getter, deployed[name])
                    for getter, name in step.links
                    if name in deployed
                ],
                step=step.name,
                strict=strict,
            )
        except LedgerError as e:
            raise VerificationFailed(
                step.name, f"Could not read back on-chain state: {e}"
            ) from e

    def _reconcile(self, plan: Sequence[Step], result: PlanResult) -> None:
        # Best-effort read of the partial deployment for the operator
        for step in plan:
            if not isinstance(step, VerifyStep):
                continue
            if step.controller not in result.deployed:
                return
            if not any(name in result.deployed for name in step.contracts):
                return
            try:
                result.verification = self._verify(step, result, strict=False)
            except VerificationFailed as e:
                logger.warning("Reconciliation read after failure did not complete: %s", e)
            return

    def _emit_failure(self, step: Step, error: StepFailed) -> None:
        self._emit(
            StepEvent(
                step.name,
                step.kind,
                "failed",
                transaction_hash=error.transaction_hash,
                error=str(error),
            )
        )

    def _emit(self, event: StepEvent) -> None:
        if event.status == "failed":
            logger.error("%s %s failed: %s", event.kind, event.step, event.error)
        elif event.status == "succeeded":
            logger.info(
                "%s %s succeeded%s",
                event.kind,
                event.step,
                f" at {event.address}" if event.address else "",
            )
        else:
            logger.info("%s %s started", event.kind, event.step)

        if self.on_event is not None:
            self.on_event(event)
