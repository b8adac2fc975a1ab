from datetime import date, timedelta
from typing import Any

from taqlp.edge import Edge
from taqlp.node import BaseNode, Catchment, Input, Link, Output, Storage
from taqlp.parameter import ConstantParameter, Parameter, ParameterGraph, TimeSeriesParameter
from taqlp.system import Network
from taqlp.time import Timestepper

__all__ = [
    # Factory functions
    "make_input",
    "make_output",
    "make_link",
    "make_storage",
    "make_catchment",
    "make_edge",
    "make_constant",
    "make_series",
    "make_timestepper",
    # Model builders
    "make_network",
    "make_parameters",
    "two_node_model",
    "storage_model",
]


# --- Factory Functions ---


def make_input(id: str = "input", **overrides: Any) -> Input:
    overrides.setdefault("max_flow", 10.0)
    return Input(id=id, **overrides)


def make_output(id: str = "output", **overrides: Any) -> Output:
    overrides.setdefault("demand", 8.0)
    return Output(id=id, **overrides)


def make_link(id: str = "link", **overrides: Any) -> Link:
    return Link(id=id, **overrides)


def make_storage(id: str = "storage", **overrides: Any) -> Storage:
    overrides.setdefault("max_volume", 100.0)
    overrides.setdefault("initial_volume", 50.0)
    return Storage(id=id, **overrides)


def make_catchment(id: str = "catchment", **overrides: Any) -> Catchment:
    overrides.setdefault("flow", 5.0)
    return Catchment(id=id, **overrides)


def make_edge(source: str, target: str, **overrides: Any) -> Edge:
    return Edge(source=source, target=target, **overrides)


def make_constant(name: str = "constant", value: float = 1.0) -> ConstantParameter:
    return ConstantParameter(name=name, value=value)


def make_series(name: str = "series", values: list[float] | None = None, **overrides: Any) -> TimeSeriesParameter:
    return TimeSeriesParameter(name=name, values=values if values is not None else [1.0] * 12, **overrides)


def make_timestepper(n_steps: int = 3, start: date = date(2020, 1, 1), step: int = 1) -> Timestepper:
    return Timestepper(start=start, end=start + timedelta(days=(n_steps - 1) * step), step=step)


# --- Model Builders ---


def make_network(*components: BaseNode | Edge, validate: bool = True) -> Network:
    network = Network()
    for component in components:
        if isinstance(component, Edge):
            network.add_edge(component)
        else:
            network.add_node(component)
    if validate:
        network.validate()
    return network


def make_parameters(*parameters: Parameter) -> ParameterGraph:
    graph = ParameterGraph()
    for parameter in parameters:
        graph.add(parameter)
    return graph


def two_node_model(supply: float = 10.0, demand: float = 8.0) -> tuple[Network, ParameterGraph]:
    """An Input feeding an Output over one unbounded, zero-cost edge."""
    network = make_network(
        make_input(max_flow=supply),
        make_output(demand=demand),
        make_edge("input", "output"),
    )
    return network, ParameterGraph()


def storage_model(
    supply: float = 10.0,
    demand: float = 5.0,
    max_volume: float = 100.0,
    initial_volume: float = 50.0,
) -> tuple[Network, ParameterGraph]:
    """Input -> Storage -> Output chain."""
    network = make_network(
        make_input(max_flow=supply),
        make_storage(max_volume=max_volume, initial_volume=initial_volume),
        make_output(demand=demand),
        make_edge("input", "storage"),
        make_edge("storage", "output"),
    )
    return network, ParameterGraph()
