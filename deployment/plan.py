"""
Deployment plan bookkeeping.

``KeyRegistry`` is the phase-one output: once every region's key stack is
declared, each publishes its canonical alias reference here, and phase-two
stacks look keys up by region instead of relying on declaration order.

``DeploymentPlan`` records the order in which stacks and their
order-sensitive resources were declared, so that ordering invariants (for
example the global cluster following its source cluster) can be checked
before synthesis.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from aurora_constructs.region_key import key_alias_arn
from config.errors import ConfigurationError, PlanOrderingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyReference:
    region: str
    account: str
    alias_name: str

    @property
    def alias_arn(self) -> str:
        return key_alias_arn(self.region, self.account, self.alias_name)


class KeyRegistry:
    """Region -> KeyReference map populated by the key stacks."""

    def __init__(self) -> None:
        self._keys: Dict[str, KeyReference] = {}

    def publish(self, reference: KeyReference) -> None:
        existing = self._keys.get(reference.region)
        if existing is not None and existing != reference:
            raise ConfigurationError(
                f"A different key is already registered for {reference.region}: "
                f"{existing.alias_arn}"
            )
        self._keys[reference.region] = reference
        logger.debug("Registered key %s", reference.alias_arn)

    def lookup(self, region: str) -> KeyReference:
        try:
            return self._keys[region]
        except KeyError:
            raise ConfigurationError(
                f"No encryption key registered for region {region}"
            ) from None

    def regions(self) -> List[str]:
        return list(self._keys)


@dataclass(frozen=True)
class PlanStep:
    name: str
    depends_on: Tuple[str, ...] = field(default_factory=tuple)


class DeploymentPlan:
    def __init__(self) -> None:
        self._steps: List[PlanStep] = []

    def declare(self, name: str, depends_on: Iterable[str] = ()) -> PlanStep:
        if name in self.names():
            raise PlanOrderingError(f"Plan step {name} declared twice")
        step = PlanStep(name, tuple(depends_on))
        self._steps.append(step)
        return step

    def names(self) -> List[str]:
        return [step.name for step in self._steps]

    def position(self, name: str) -> int:
        try:
            return self.names().index(name)
        except ValueError:
            raise PlanOrderingError(f"Plan step {name} was never declared") from None

    def validate(self) -> None:
        """Raise PlanOrderingError unless every dependency precedes its dependent."""
        positions = {step.name: index for index, step in enumerate(self._steps)}
        for index, step in enumerate(self._steps):
            for dependency in step.depends_on:
                if dependency not in positions:
                    raise PlanOrderingError(
                        f"{step.name} depends on {dependency}, which is not in the plan"
                    )
                if positions[dependency] >= index:
                    raise PlanOrderingError(
                        f"{step.name} is declared before its dependency {dependency}"
                    )

    def __len__(self) -> int:
        return len(self._steps)
