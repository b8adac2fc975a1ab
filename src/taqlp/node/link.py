from dataclasses import dataclass
from typing import ClassVar

from taqlp.common import Value

from .base import BaseNode


@dataclass
class Link(BaseNode):
    __bounds__: ClassVar[tuple[str, ...]] = ("min_flow", "max_flow")

    min_flow: Value = 0.0
    max_flow: Value | None = None  # None = unlimited

    def constant_bound_pairs(self) -> list[tuple[str, float, float]]:
        if isinstance(self.min_flow, str) or not isinstance(self.max_flow, float | int):
            return []
        return [("flow", float(self.min_flow), float(self.max_flow))]
