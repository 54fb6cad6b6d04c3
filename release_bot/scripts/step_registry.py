"""
Ordered catalog of the release steps.

The order of the registry is the execution order of a release. The
persisted cursor refers to steps by name, so the order must not change
while a release is under way.
"""

from typing import Iterator, List, Optional, Sequence

from .core_release_prepare import CORE_RELEASE_PREPARE
from .create_branch import CREATE_BRANCH
from .errors import InvalidStateError
from .prerequisites import PREREQUISITES
from .steps import StepDefinition


class StepRegistry:
    """An immutable, ordered sequence of steps addressed by name."""

    def __init__(self, steps: Sequence[StepDefinition]):
        if not steps:
            raise ValueError("A registry needs at least one step")

        names = [step.name.value for step in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate step names in registry: {names}")

        self._steps: List[StepDefinition] = list(steps)
        self._indexes = {name: index for index, name in enumerate(names)}

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def first(self) -> StepDefinition:
        return self._steps[0]

    def index_of(self, name: str) -> int:
        """
        Position of a step in the registry.

        Raises:
            InvalidStateError: If the step is unknown
        """
        try:
            return self._indexes[name]
        except KeyError:
            raise InvalidStateError(f"Unknown step {name}")

    def get(self, name: str) -> StepDefinition:
        return self._steps[self.index_of(name)]

    def next_after(self, name: str) -> Optional[StepDefinition]:
        index = self.index_of(name) + 1
        return self._steps[index] if index < len(self._steps) else None


REGISTRY = StepRegistry([
    PREREQUISITES,
    CREATE_BRANCH,
    CORE_RELEASE_PREPARE,
])
