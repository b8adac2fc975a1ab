from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from taqlp.common import resolve
from taqlp.errors import CyclicDependencyError, InsufficientLengthError, ParameterEvaluationError, StructuralError
from taqlp.node import Storage
from taqlp.scenario import ScenarioIndex

from .variants import (
    AggregatedParameter,
    ConstantParameter,
    ControlCurveParameter,
    ExponentialSmoothingParameter,
    IndexedArrayParameter,
    InterpolatedVolumeParameter,
    MovingAverageParameter,
    Parameter,
    TimeSeriesParameter,
)

if TYPE_CHECKING:
    from taqlp.system import Network
    from taqlp.time import Timestep

logger = logging.getLogger(__name__)

ParameterValues = dict[str, float]

_DEFAULT_SCENARIO = ScenarioIndex(index=0)


@dataclass
class _Memory:
    previous: float | None = None
    history: deque[float] = field(default_factory=deque)


def _storage_refs(parameter: Parameter) -> str | None:
    match parameter:
        case ControlCurveParameter(storage_node=node) | InterpolatedVolumeParameter(storage_node=node):
            return node
    return None


def direct_dependencies(parameter: Parameter) -> list[str]:
    """Parameters whose current-step value ``parameter`` needs.

    Stateful parameters that refer to themselves read last step's value,
    so the self-reference is not a dependency.
    """
    match parameter:
        case ConstantParameter() | TimeSeriesParameter() | InterpolatedVolumeParameter():
            deps: list[str] = []
        case AggregatedParameter(parameters=names):
            deps = list(names)
        case MovingAverageParameter(parameter=ref) | ExponentialSmoothingParameter(parameter=ref):
            deps = [] if ref == parameter.name else [ref]
        case IndexedArrayParameter(index_parameter=index, values=values):
            deps = [index, *(v for v in values if isinstance(v, str))]
        case ControlCurveParameter(control_curves=curves):
            deps = [c for c in curves if isinstance(c, str)]
        case _:
            raise TypeError(f"Unsupported parameter type {type(parameter).__name__}")
    return list(dict.fromkeys(deps))


@dataclass
class ParameterGraph:
    """Dependency-ordered set of parameters, evaluated once per step."""

    _parameters: dict[str, Parameter] = field(default_factory=dict, init=False, repr=False)
    _dependencies: dict[str, list[str]] = field(default_factory=dict, init=False, repr=False)
    _order: list[str] | None = field(default=None, init=False, repr=False)
    _memory: dict[str, _Memory] = field(default_factory=dict, init=False, repr=False)
    _last_step: int | None = field(default=None, init=False, repr=False)

    def add(self, parameter: Parameter) -> str:
        if parameter.name in self._parameters:
            raise ValueError(f"Parameter '{parameter.name}' already exists")
        self._parameters[parameter.name] = parameter
        self._order = None
        return parameter.name

    def __contains__(self, name: object) -> bool:
        return name in self._parameters

    def __len__(self) -> int:
        return len(self._parameters)

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._parameters.values())

    def __getitem__(self, name: str) -> Parameter:
        return self._parameters[name]

    @property
    def names(self) -> list[str]:
        return list(self._parameters)

    @property
    def order(self) -> list[str]:
        if self._order is None:
            raise ValueError("ParameterGraph has not been built")
        return list(self._order)

    @property
    def built(self) -> bool:
        return self._order is not None

    def dependencies(self, name: str) -> list[str]:
        if self._order is None:
            raise ValueError("ParameterGraph has not been built")
        return list(self._dependencies[name])

    def build(self, network: Network | None = None) -> list[str]:
        """Resolve dependencies and fix a deterministic evaluation order.

        Raises:
            StructuralError: If a parameter references an unknown parameter
                or storage node.
            CyclicDependencyError: If the dependencies contain a cycle.
        """
        errors: list[str] = []
        dependencies: dict[str, list[str]] = {}

        for name, parameter in self._parameters.items():
            deps = direct_dependencies(parameter)
            storage_id = _storage_refs(parameter)
            if storage_id is not None and network is not None:
                deps.extend(self._storage_dependencies(name, storage_id, network, errors))
            for dep in deps:
                if dep not in self._parameters:
                    errors.append(f"Parameter '{name}' references unknown parameter '{dep}'")
            dependencies[name] = list(dict.fromkeys(deps))

        if errors:
            raise StructuralError("\n".join(errors))

        graph = nx.DiGraph()
        graph.add_nodes_from(self._parameters)
        for name, deps in dependencies.items():
            graph.add_edges_from((dep, name) for dep in deps)

        try:
            cycle = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            pass
        else:
            raise CyclicDependencyError([u for u, _ in cycle])

        position = {name: i for i, name in enumerate(self._parameters)}
        self._order = list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
        self._dependencies = dependencies
        logger.debug("Parameter evaluation order: %s", self._order)
        return list(self._order)

    def _storage_dependencies(self, name: str, storage_id: str, network: Network, errors: list[str]) -> list[str]:
        try:
            node = network.node(storage_id)
        except KeyError:
            errors.append(f"Parameter '{name}' references unknown storage node '{storage_id}'")
            return []
        if not isinstance(node, Storage):
            errors.append(f"Parameter '{name}' references '{storage_id}', which is not a Storage node")
            return []
        return [v for v in (node.min_volume, node.max_volume) if isinstance(v, str)]

    def check_length(self, timesteps: int) -> None:
        """Validate all non-cyclical time series cover the run."""
        for parameter in self._parameters.values():
            if isinstance(parameter, TimeSeriesParameter) and not parameter.cyclical and len(parameter) < timesteps:
                raise InsufficientLengthError(parameter.name, len(parameter), timesteps)

    def reset(self) -> None:
        """Clear stateful memory for a fresh simulation run."""
        self._memory.clear()
        self._last_step = None

    def evaluate(
        self,
        timestep: Timestep,
        scenario: ScenarioIndex | None = None,
        network: Network | None = None,
    ) -> ParameterValues:
        if self._order is None:
            self.build(network)
        if self._last_step is not None and timestep.index <= self._last_step:
            raise ValueError(f"Step {timestep.index} already evaluated; call reset() before re-running")
        scenario = scenario if scenario is not None else _DEFAULT_SCENARIO

        values: ParameterValues = {}
        for name in self._order:
            parameter = self._parameters[name]
            try:
                value = self._compute(parameter, timestep, scenario, network, values)
            except (ArithmeticError, IndexError, KeyError, TypeError, ValueError) as exc:
                raise ParameterEvaluationError(name, timestep.index, str(exc)) from exc
            if not math.isfinite(value):
                raise ParameterEvaluationError(name, timestep.index, f"non-finite value {value}")
            values[name] = value

        self._last_step = timestep.index
        return values

    def _compute(
        self,
        parameter: Parameter,
        timestep: Timestep,
        scenario: ScenarioIndex,
        network: Network | None,
        values: ParameterValues,
    ) -> float:
        match parameter:
            case ConstantParameter(value=value):
                return float(value)
            case TimeSeriesParameter():
                return self._series_value(parameter, timestep, scenario)
            case AggregatedParameter(parameters=names, agg_func=func):
                return func.apply([values[n] for n in names])
            case MovingAverageParameter(window=window):
                memory = self._memory_for(parameter)
                memory.history.append(self._stateful_input(parameter, memory, values))
                while len(memory.history) > window:
                    memory.history.popleft()
                memory.previous = sum(memory.history) / len(memory.history)
                return memory.previous
            case ExponentialSmoothingParameter(alpha=alpha, initial_value=initial):
                memory = self._memory_for(parameter)
                previous = initial if memory.previous is None else memory.previous
                x = self._stateful_input(parameter, memory, values)
                memory.previous = alpha * x + (1.0 - alpha) * previous
                return memory.previous
            case IndexedArrayParameter(index_parameter=index_name, values=choices):
                raw = values[index_name]
                index = round(raw)
                if abs(raw - index) > 1e-9:
                    raise ValueError(f"index {raw} from '{index_name}' is not an integer")
                if not 0 <= index < len(choices):
                    raise IndexError(f"index {index} out of range for {len(choices)} values")
                return resolve(choices[index], values)
            case ControlCurveParameter(storage_node=node_id, control_curves=curves, values=choices):
                fraction = self._proportional_volume(node_id, network, values)
                for i, curve in enumerate(curves):
                    if fraction >= resolve(curve, values):
                        return float(choices[i])
                return float(choices[-1])
            case InterpolatedVolumeParameter(storage_node=node_id):
                node = self._storage(node_id, network)
                return parameter.interpolate(node.volume)
        raise TypeError(f"Unsupported parameter type {type(parameter).__name__}")

    def _memory_for(self, parameter: Parameter) -> _Memory:
        return self._memory.setdefault(parameter.name, _Memory())

    def _stateful_input(self, parameter: Parameter, memory: _Memory, values: ParameterValues) -> float:
        ref = parameter.parameter
        if ref != parameter.name:
            return values[ref]
        if memory.previous is not None:
            return memory.previous
        return getattr(parameter, "initial_value", 0.0)

    @staticmethod
    def _series_value(parameter: TimeSeriesParameter, timestep: Timestep, scenario: ScenarioIndex) -> float:
        index = timestep.index
        if parameter.cyclical:
            index %= len(parameter)
        if index >= len(parameter):
            raise IndexError(f"step {index} beyond series of length {len(parameter)}")
        row = parameter.values[index]
        if parameter.ndim == 1:
            return float(row)
        column = scenario.for_group(parameter.scenario_group)
        if column >= len(row):
            raise IndexError(f"scenario {column} beyond {len(row)} columns")
        return float(row[column])

    @staticmethod
    def _storage(node_id: str, network: Network | None) -> Storage:
        if network is None:
            raise ValueError(f"storage node '{node_id}' requires a network")
        node = network.node(node_id)
        if not isinstance(node, Storage):
            raise TypeError(f"'{node_id}' is not a Storage node")
        return node

    def _proportional_volume(self, node_id: str, network: Network | None, values: ParameterValues) -> float:
        node = self._storage(node_id, network)
        lo = resolve(node.min_volume, values)
        hi = resolve(node.max_volume, values)
        span = hi - lo
        if span <= 0:
            return 1.0 if node.volume >= hi else 0.0
        return min(1.0, max(0.0, (node.volume - lo) / span))
