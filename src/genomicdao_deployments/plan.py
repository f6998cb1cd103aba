"""Step descriptors and the controller deployment plan."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from .constants import ASSET_CONTRACTS, CONTROLLER_CONTRACT, CONTROLLER_LINK_GETTERS
from .exceptions import InvalidPlanError
from .types import AddressOf, DeploymentSpec


@dataclass(frozen=True)
class DeployStep:
    """Deploy a contract."""

    spec: DeploymentSpec

    kind = "deploy"

    @property
    def name(self) -> str:
        return self.spec.name

    def dependencies(self) -> Tuple[str, ...]:
        return self.spec.dependencies()


@dataclass(frozen=True)
class TransferStep:
    """Transfer ownership of a deployed contract to another deployed contract."""

    name: str
    contract: str  # Deploy step whose contract changes owner
    new_owner: str  # Deploy step whose address becomes owner

    kind = "transfer"

    def dependencies(self) -> Tuple[str, ...]:
        return (self.contract, self.new_owner)


@dataclass(frozen=True)
class VerifyStep:
    """Read back owners (and optionally controller getters) after the transfers."""

    name: str
    controller: str  # Deploy step expected to own the contracts
    contracts: Tuple[str, ...]  # Deploy steps whose owner() is checked
    links: Tuple[Tuple[str, str], ...] = ()  # (getter, deploy step) pairs
    strict: Optional[bool] = None  # None defers to the verifier setting

    kind = "verify"

    def dependencies(self) -> Tuple[str, ...]:
        return (self.controller, *self.contracts, *(step for _, step in self.links))


Step = Union[DeployStep, TransferStep, VerifyStep]


def validate_plan(plan: Sequence[Step]) -> None:
    """
    Check that a plan can run in its declared order.

    Every dependency must be a deploy step declared earlier, which makes the
    declared order a valid topological order of the dependency graph.

    Raises:
        InvalidPlanError: On duplicate names or a dependency that is not an
            earlier deploy step
    """
    seen = set()
    deployed = set()

    for step in plan:
        if not isinstance(step, (DeployStep, TransferStep, VerifyStep)):
            raise InvalidPlanError(f"Unknown step type: {step!r}")
        if step.name in seen:
            raise InvalidPlanError(f"Duplicate step name '{step.name}'")

        for dependency in step.dependencies():
            if dependency not in deployed:
                raise InvalidPlanError(
                    f"Step '{step.name}' depends on '{dependency}', "
                    "which is not an earlier deploy step"
                )

        if isinstance(step, TransferStep) and step.contract == step.new_owner:
            raise InvalidPlanError(f"Step '{step.name}' transfers a contract to itself")

        seen.add(step.name)
        if isinstance(step, DeployStep):
            deployed.add(step.name)


def build_controller_plan(
    assets: Sequence[str] = ASSET_CONTRACTS,
    controller: str = CONTROLLER_CONTRACT,
    verify: bool = True,
    strict: Optional[bool] = None,
) -> Tuple[Step, ...]:
    """
    Build the fixed plan: deploy the assets, deploy the controller with their
    addresses, hand each asset to the controller, then verify.

    Args:
        assets: Artifact names of the asset contracts, in constructor order
        controller: Artifact name of the controller
        verify: Whether to append the verify step
        strict: Strictness of the verify step (None defers to the verifier)

    Returns:
        Ordered tuple of steps
    """
    asset_steps = [DeployStep(DeploymentSpec(f"deploy{name}", name)) for name in assets]
    controller_step = DeployStep(
        DeploymentSpec(
            f"deploy{controller}",
            controller,
            tuple(AddressOf(step.name) for step in asset_steps),
        )
    )
    transfers = [
        TransferStep(f"transfer{step.spec.artifact}", step.name, controller_step.name)
        for step in asset_steps
    ]

    plan = [*asset_steps, controller_step, *transfers]
    if verify:
        plan.append(
            VerifyStep(
                name="verify",
                controller=controller_step.name,
                contracts=tuple(step.name for step in asset_steps),
                links=tuple(
                    (CONTROLLER_LINK_GETTERS[step.spec.artifact], step.name)
                    for step in asset_steps
                    if step.spec.artifact in CONTROLLER_LINK_GETTERS
                ),
                strict=strict,
            )
        )
    return tuple(plan)
