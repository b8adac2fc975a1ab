import itertools
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ScenarioGroup:
    name: str
    size: int

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.size < 1:
            raise ValueError("size must be at least 1")


@dataclass(frozen=True, slots=True)
class ScenarioIndex:
    """Position of one independent run within the scenario product."""

    index: int
    indices: tuple[int, ...] = ()
    names: tuple[str, ...] = ()

    def for_group(self, name: str) -> int:
        try:
            return self.indices[self.names.index(name)]
        except ValueError:
            raise KeyError(f"Unknown scenario group '{name}'") from None


@dataclass
class ScenarioCollection:
    _groups: list[ScenarioGroup] = field(default_factory=list, init=False, repr=False)

    def add_group(self, name: str, size: int) -> ScenarioGroup:
        if any(g.name == name for g in self._groups):
            raise ValueError(f"Scenario group '{name}' already exists")
        group = ScenarioGroup(name=name, size=size)
        self._groups.append(group)
        return group

    @property
    def groups(self) -> tuple[ScenarioGroup, ...]:
        return tuple(self._groups)

    def __len__(self) -> int:
        n = 1
        for g in self._groups:
            n *= g.size
        return n

    def scenario_indices(self) -> list[ScenarioIndex]:
        names = tuple(g.name for g in self._groups)
        ranges = [range(g.size) for g in self._groups]
        return [
            ScenarioIndex(index=i, indices=tuple(combo), names=names)
            for i, combo in enumerate(itertools.product(*ranges))
        ]
