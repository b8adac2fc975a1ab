from dataclasses import dataclass
from typing import ClassVar

from taqlp.common import Value

from .base import BaseNode


@dataclass
class Catchment(BaseNode):
    """Externally forced inflow; all of ``flow`` must leave the node each step."""

    __bounds__: ClassVar[tuple[str, ...]] = ("flow",)

    flow: Value = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        if isinstance(self.flow, float | int) and self.flow < 0:
            raise ValueError("flow cannot be negative")
