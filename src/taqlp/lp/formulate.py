from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from taqlp.common import DEFAULT_TOLERANCE, exceeds, is_close, resolve
from taqlp.errors import FormulationError
from taqlp.node import BaseNode, Catchment, Input, Link, Output, Storage

from .problem import LPProblem, Row, Variable, VariableKind

if TYPE_CHECKING:
    from taqlp.system import Network
    from taqlp.time import Timestep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormulationSettings:
    """Penalty structure and numerical tolerance of the per-step LP.

    Demand shortfall in the least important priority tier costs
    ``deficit_penalty`` per unit; each more important tier multiplies that by
    ``tier_ratio``. Storage shortfall below minimum volume sits one tier above
    the most important demand. Ordinary costs should stay well below
    ``deficit_penalty`` for the tiers to dominate.
    """

    deficit_penalty: float = 1000.0
    tier_ratio: float = 10.0
    tolerance: float = DEFAULT_TOLERANCE

    def __post_init__(self) -> None:
        if self.deficit_penalty <= 0:
            raise ValueError("deficit_penalty must be positive")
        if self.tier_ratio < 1.0:
            raise ValueError("tier_ratio must be at least 1.0")
        if not 0.0 < self.tolerance < 1.0:
            raise ValueError("tolerance must be between 0.0 and 1.0")


def tier_penalties(priorities: Iterable[int], settings: FormulationSettings) -> dict[int, float]:
    """Penalty per unit of shortfall for each priority level (1 = most important)."""
    levels = sorted(set(priorities))
    n = len(levels)
    return {p: settings.deficit_penalty * settings.tier_ratio ** (n - 1 - i) for i, p in enumerate(levels)}


def storage_penalty(priorities: Iterable[int], settings: FormulationSettings) -> float:
    n = len(set(priorities))
    return settings.deficit_penalty * settings.tier_ratio**n


@dataclass
class Formulator:
    """Translate the network state and evaluated parameters into an LP."""

    settings: FormulationSettings = field(default_factory=FormulationSettings)

    def formulate(self, network: Network, values: Mapping[str, float], timestep: Timestep) -> LPProblem:
        step = timestep.index
        nodes = network.nodes
        edges = network.edges

        priorities = [n.priority for n in nodes if isinstance(n, Output) and n.demand is not None]
        penalties = tier_penalties(priorities, self.settings)
        shortfall_cost = storage_penalty(priorities, self.settings)

        problem = LPProblem(n_edges=len(edges), step=step)

        costs = self._edge_costs(network, values)
        for i, edge in enumerate(edges):
            lo, hi = self._range(edge.id, resolve(edge.min_flow, values), resolve(edge.max_flow, values), step)
            problem.add_variable(Variable(f"flow[{edge.id}]", lo, hi, costs[i], VariableKind.FLOW, edge.id))

        for node in nodes:
            match node:
                case Input():
                    self._input_rows(problem, node, values, step)
                case Catchment():
                    self._catchment_rows(problem, node, values, step)
                case Link():
                    self._link_rows(problem, node, values, step)
                case Output():
                    self._output_rows(problem, node, values, step, penalties.get(node.priority, 0.0))
                case Storage():
                    self._storage_rows(problem, node, values, timestep, shortfall_cost)
                case _:
                    raise FormulationError(f"Unsupported node type {type(node).__name__}", step=step, entity=node.id)

        logger.debug("Formulated step %d: %d variables, %d rows", step, problem.n_variables, problem.n_rows)
        return problem

    def _edge_costs(self, network: Network, values: Mapping[str, float]) -> list[float]:
        costs = [resolve(edge.cost, values) for edge in network.edges]
        for node in network.nodes:
            cost = resolve(node.cost, values)
            if cost == 0.0:
                continue
            match node:
                case Input() | Catchment():
                    for j in node.outgoing:
                        costs[j] += cost
                case Output() | Link():
                    for j in node.incoming:
                        costs[j] += cost
                case Storage():
                    for j in node.incoming:
                        costs[j] += cost
                    for j in node.outgoing:
                        costs[j] -= cost
        return costs

    def _range(
        self,
        owner: str,
        lo: float | None,
        hi: float | None,
        step: int,
        label: str = "flow",
    ) -> tuple[float, float]:
        """Non-negative ``[lo, hi]`` with near-equal bounds snapped together."""
        tol = self.settings.tolerance
        lo = 0.0 if lo is None else lo
        hi = np.inf if hi is None else hi
        if exceeds(lo, hi, tol):
            raise FormulationError(f"minimum {label} {lo} exceeds maximum {label} {hi}", step=step, entity=owner)
        if hi < 0.0 and not is_close(hi, 0.0, tol):
            raise FormulationError(f"maximum {label} {hi} is negative", step=step, entity=owner)
        lo = max(0.0, lo)
        hi = max(0.0, hi)
        if lo > hi:
            lo = hi
        elif is_close(lo, hi, tol):
            hi = lo
        return lo, hi

    def _add_row(self, problem: LPProblem, row: Row) -> None:
        if not row.coefficients:
            tol = self.settings.tolerance
            if row.lower > tol or row.upper < -tol:
                raise FormulationError(
                    f"row '{row.name}' requires [{row.lower}, {row.upper}] but has no variables",
                    step=problem.step,
                    entity=row.owner,
                )
            return
        problem.add_row(row)

    def _input_rows(self, problem: LPProblem, node: Input, values: Mapping[str, float], step: int) -> None:
        lo, hi = self._range(node.id, resolve(node.min_flow, values), resolve(node.max_flow, values), step)
        if lo > 0.0 or hi < np.inf:
            coefficients = dict.fromkeys(node.outgoing, 1.0)
            self._add_row(problem, Row(f"{node.id}.flow", coefficients, lo, hi, node.id))

    def _catchment_rows(self, problem: LPProblem, node: Catchment, values: Mapping[str, float], step: int) -> None:
        flow = resolve(node.flow, values)
        lo, hi = self._range(node.id, flow, flow, step)
        coefficients = dict.fromkeys(node.outgoing, 1.0)
        self._add_row(problem, Row(f"{node.id}.flow", coefficients, lo, hi, node.id))

    def _link_rows(self, problem: LPProblem, node: Link, values: Mapping[str, float], step: int) -> None:
        lo, hi = self._range(node.id, resolve(node.min_flow, values), resolve(node.max_flow, values), step)
        self._add_row(problem, Row(f"{node.id}.balance", _net(node), 0.0, 0.0, node.id))
        if lo > 0.0 or hi < np.inf:
            coefficients = dict.fromkeys(node.incoming, 1.0)
            self._add_row(problem, Row(f"{node.id}.flow", coefficients, lo, hi, node.id))

    def _output_rows(
        self,
        problem: LPProblem,
        node: Output,
        values: Mapping[str, float],
        step: int,
        penalty: float,
    ) -> None:
        lo, demand = self._range(node.id, resolve(node.min_flow, values), resolve(node.demand, values), step)
        inflow = dict.fromkeys(node.incoming, 1.0)
        if node.demand is not None:
            j = problem.add_variable(
                Variable(f"deficit[{node.id}]", 0.0, demand, penalty, VariableKind.DEFICIT, node.id)
            )
            self._add_row(problem, Row(f"{node.id}.demand", {**inflow, j: 1.0}, demand, demand, node.id))
        if lo > 0.0:
            self._add_row(problem, Row(f"{node.id}.min_flow", inflow, lo, np.inf, node.id))

    def _storage_rows(
        self,
        problem: LPProblem,
        node: Storage,
        values: Mapping[str, float],
        timestep: Timestep,
        penalty: float,
    ) -> None:
        tol = self.settings.tolerance
        step = timestep.index
        lo, hi = self._volume_range(node, values, step)
        volume = node.volume

        # Net inflow rate that keeps the end-of-step volume inside [lo, hi]. A
        # storage already above its maximum may hold its volume.
        max_net = 0.0 if is_close(hi, volume, tol) else max(0.0, (hi - volume) / timestep.days)
        min_net = 0.0 if is_close(lo, volume, tol) else (lo - volume) / timestep.days
        net = _net(node)

        if min_net > 0.0:
            j = problem.add_variable(
                Variable(f"shortfall[{node.id}]", 0.0, min_net, penalty, VariableKind.STORAGE_SHORTFALL, node.id)
            )
            self._add_row(problem, Row(f"{node.id}.min_volume", {**net, j: 1.0}, min_net, np.inf, node.id))
        else:
            self._add_row(problem, Row(f"{node.id}.min_volume", net, min_net, np.inf, node.id))
        self._add_row(problem, Row(f"{node.id}.max_volume", net, -np.inf, max_net, node.id))

    def _volume_range(self, node: Storage, values: Mapping[str, float], step: int) -> tuple[float, float]:
        lo = resolve(node.min_volume, values)
        hi = resolve(node.max_volume, values)
        if exceeds(lo, hi, self.settings.tolerance):
            raise FormulationError(f"minimum volume {lo} exceeds maximum volume {hi}", step=step, entity=node.id)
        return min(lo, hi), hi


def _net(node: BaseNode) -> dict[int, float]:
    """Coefficients of inflow minus outflow for ``node``."""
    coefficients = dict.fromkeys(node.incoming, 1.0)
    coefficients.update(dict.fromkeys(node.outgoing, -1.0))
    return coefficients
