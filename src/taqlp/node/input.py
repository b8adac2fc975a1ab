from dataclasses import dataclass
from typing import ClassVar

from taqlp.common import Value

from .base import BaseNode


@dataclass
class Input(BaseNode):
    """Source of water; ``max_flow`` is the available supply (None = unlimited)."""

    __bounds__: ClassVar[tuple[str, ...]] = ("min_flow", "max_flow")

    max_flow: Value | None = None
    min_flow: Value = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        if isinstance(self.max_flow, float | int) and self.max_flow < 0:
            raise ValueError("max_flow cannot be negative")

    def constant_bound_pairs(self) -> list[tuple[str, float, float]]:
        if isinstance(self.min_flow, str) or not isinstance(self.max_flow, float | int):
            return []
        return [("flow", float(self.min_flow), float(self.max_flow))]
