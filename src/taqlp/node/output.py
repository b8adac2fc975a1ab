from dataclasses import dataclass
from typing import ClassVar

from taqlp.common import Value

from .base import BaseNode


@dataclass
class Output(BaseNode):
    """Demand site or terminal sink.

    With a ``demand`` the node may receive at most that much, and every unit
    short of it is charged at the penalty of the node's ``priority`` tier
    (1 is the most important). Without a demand it absorbs any inflow.
    """

    __bounds__: ClassVar[tuple[str, ...]] = ("min_flow", "demand")

    demand: Value | None = None
    min_flow: Value = 0.0
    priority: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.priority < 1:
            raise ValueError("priority must be at least 1")
        if isinstance(self.demand, float | int) and self.demand < 0:
            raise ValueError("demand cannot be negative")

    def constant_bound_pairs(self) -> list[tuple[str, float, float]]:
        if isinstance(self.min_flow, str) or not isinstance(self.demand, float | int):
            return []
        return [("flow", float(self.min_flow), float(self.demand))]
