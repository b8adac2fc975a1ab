from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taqlp.simulation import StepResult


@dataclass(frozen=True, slots=True)
class NodeInFlow:
    node: str

    @property
    def label(self) -> str:
        return f"{self.node}.inflow"

    def value(self, result: StepResult) -> float:
        return result.inflows[self.node]


@dataclass(frozen=True, slots=True)
class NodeOutFlow:
    node: str

    @property
    def label(self) -> str:
        return f"{self.node}.outflow"

    def value(self, result: StepResult) -> float:
        return result.outflows[self.node]


@dataclass(frozen=True, slots=True)
class NodeVolume:
    node: str

    @property
    def label(self) -> str:
        return f"{self.node}.volume"

    def value(self, result: StepResult) -> float:
        return result.volumes[self.node]


@dataclass(frozen=True, slots=True)
class NodeDeficit:
    """Unmet demand of an Output node; zero for nodes without demand."""

    node: str

    @property
    def label(self) -> str:
        return f"{self.node}.deficit"

    def value(self, result: StepResult) -> float:
        return result.deficits.get(self.node, 0.0)


@dataclass(frozen=True, slots=True)
class EdgeFlow:
    edge: str

    @property
    def label(self) -> str:
        return self.edge

    def value(self, result: StepResult) -> float:
        return result.flows[self.edge]


@dataclass(frozen=True, slots=True)
class ParameterValue:
    parameter: str

    @property
    def label(self) -> str:
        return self.parameter

    def value(self, result: StepResult) -> float:
        return result.parameters[self.parameter]


Metric = NodeInFlow | NodeOutFlow | NodeVolume | NodeDeficit | EdgeFlow | ParameterValue
