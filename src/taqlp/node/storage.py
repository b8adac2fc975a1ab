from dataclasses import dataclass, field
from typing import ClassVar

from taqlp.common import Value

from .base import BaseNode

# Small negative cost on net inflow so reservoirs retain water that
# nothing else asks for.
DEFAULT_STORAGE_COST = -1.0


@dataclass
class Storage(BaseNode):
    __bounds__: ClassVar[tuple[str, ...]] = ("min_volume", "max_volume")

    max_volume: Value
    min_volume: Value = 0.0
    initial_volume: float = 0.0
    cost: Value = field(default=DEFAULT_STORAGE_COST, kw_only=True)
    _volume: float = field(init=False, repr=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.max_volume is None:
            raise ValueError("max_volume is required")
        if self.initial_volume < 0:
            raise ValueError("initial_volume cannot be negative")
        if isinstance(self.max_volume, float | int):
            if self.max_volume < 0:
                raise ValueError("max_volume cannot be negative")
            if self.initial_volume > self.max_volume:
                raise ValueError("initial_volume cannot exceed max_volume")
        self._volume = float(self.initial_volume)

    @property
    def volume(self) -> float:
        return self._volume

    def _set_volume(self, volume: float) -> None:
        self._volume = volume

    def constant_bound_pairs(self) -> list[tuple[str, float, float]]:
        if isinstance(self.min_volume, str) or isinstance(self.max_volume, str):
            return []
        return [("volume", float(self.min_volume), float(self.max_volume))]

    def reset(self) -> None:
        """Restore the initial volume for a fresh simulation run."""
        super().reset()
        self._volume = float(self.initial_volume)
