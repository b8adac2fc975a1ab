from dataclasses import dataclass, field

from taqlp.common import Value


@dataclass
class Edge:
    source: str
    target: str
    min_flow: Value | None = None
    max_flow: Value | None = None  # None = unlimited
    cost: Value = 0.0
    id: str = field(default="", kw_only=True)

    def __post_init__(self) -> None:
        if not self.source:
            raise ValueError("source cannot be empty")
        if not self.target:
            raise ValueError("target cannot be empty")
        if not self.id:
            self.id = f"{self.source}->{self.target}"
        if isinstance(self.max_flow, float | int) and self.max_flow < 0:
            raise ValueError("max_flow cannot be negative")

    def values(self) -> dict[str, Value | None]:
        return {"min_flow": self.min_flow, "max_flow": self.max_flow, "cost": self.cost}

    def parameter_refs(self) -> set[str]:
        return {v for v in self.values().values() if isinstance(v, str)}

    def constant_bound_pairs(self) -> list[tuple[str, float, float]]:
        if not isinstance(self.min_flow, float | int) or not isinstance(self.max_flow, float | int):
            return []
        return [("flow", float(self.min_flow), float(self.max_flow))]
