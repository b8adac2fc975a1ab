from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pulp

from taqlp.common import DEFAULT_TOLERANCE

from .problem import LPProblem

logger = logging.getLogger(__name__)


class SolverStatus(Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    NUMERICAL_FAILURE = "numerical_failure"


_PULP_STATUS = {
    pulp.LpStatusOptimal: SolverStatus.OPTIMAL,
    pulp.LpStatusInfeasible: SolverStatus.INFEASIBLE,
    pulp.LpStatusUnbounded: SolverStatus.UNBOUNDED,
}


def map_status(code: int) -> SolverStatus:
    """Map a PuLP status code onto the engine's status taxonomy.

    Not-solved and undefined outcomes count as numerical failures.
    """
    return _PULP_STATUS.get(code, SolverStatus.NUMERICAL_FAILURE)


@dataclass(frozen=True, eq=False)
class Solution:
    status: SolverStatus
    values: np.ndarray
    objective: float = 0.0
    message: str = ""

    @property
    def optimal(self) -> bool:
        return self.status is SolverStatus.OPTIMAL

    def flows(self, n_edges: int) -> np.ndarray:
        return self.values[:n_edges]


@runtime_checkable
class SolverAdapter(Protocol):
    """Owns an LP solving capability between ``setup()`` and ``close()``."""

    def setup(self) -> None: ...

    def solve(self, problem: LPProblem) -> Solution: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class SolverSettings:
    """Which PuLP solver to use and what options to pass it."""

    name: str = "PULP_CBC_CMD"
    msg: bool = False
    tolerance: float = DEFAULT_TOLERANCE
    options: dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name cannot be empty")
        if not 0.0 < self.tolerance < 1.0:
            raise ValueError("tolerance must be between 0.0 and 1.0")


@dataclass
class PulpSolver:
    """Solve one LP per call through PuLP.

    The PuLP solver handle is acquired by ``setup()`` (or lazily on the first
    solve) and released by ``close()``; the adapter can be used as a context
    manager. Calls never retry.
    """

    settings: SolverSettings = field(default_factory=SolverSettings)
    _solver: pulp.LpSolver | None = field(default=None, init=False, repr=False)

    def setup(self) -> None:
        if self._solver is None:
            self._solver = pulp.getSolver(self.settings.name, msg=self.settings.msg, **self.settings.options)
            logger.debug("Acquired solver %s", self.settings.name)

    def close(self) -> None:
        self._solver = None

    def __enter__(self) -> PulpSolver:
        self.setup()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def solve(self, problem: LPProblem) -> Solution:
        if problem.n_variables == 0:
            return Solution(status=SolverStatus.OPTIMAL, values=np.zeros(0))
        self.setup()

        model, variables = self._translate(problem)
        try:
            code = model.solve(self._solver)
        except pulp.PulpSolverError as exc:
            logger.debug("Solver failed at step %d: %s", problem.step, exc)
            return _failed(problem, SolverStatus.NUMERICAL_FAILURE, str(exc))

        status = map_status(code)
        if status is not SolverStatus.OPTIMAL:
            return _failed(problem, status, pulp.LpStatus.get(code, str(code)))

        values, message = self._extract(problem, variables)
        if values is None:
            return _failed(problem, SolverStatus.NUMERICAL_FAILURE, message)
        objective = float(problem.costs() @ values)
        logger.debug("Solved step %d: objective %.6g", problem.step, objective)
        return Solution(status=status, values=values, objective=objective)

    def _translate(self, problem: LPProblem) -> tuple[pulp.LpProblem, list[pulp.LpVariable]]:
        model = pulp.LpProblem(f"allocation_step_{problem.step}", pulp.LpMinimize)

        variables = [
            model.add_variable(
                f"x{j}",
                lowBound=v.lower,
                upBound=None if np.isinf(v.upper) else v.upper,
                cat=pulp.LpContinuous,
            )
            for j, v in enumerate(problem.variables)
        ]
        model += pulp.lpSum(v.cost * variables[j] for j, v in enumerate(problem.variables) if v.cost != 0.0)

        for i, row in enumerate(problem.rows):
            expr = pulp.LpAffineExpression([(variables[j], coef) for j, coef in row.coefficients.items()])
            if row.is_equality:
                model += (expr == row.lower, f"r{i}_eq")
                continue
            if not np.isinf(row.lower):
                model += (expr >= row.lower, f"r{i}_lo")
            if not np.isinf(row.upper):
                model += (expr <= row.upper, f"r{i}_hi")

        return model, variables

    def _extract(
        self, problem: LPProblem, variables: list[pulp.LpVariable]
    ) -> tuple[np.ndarray | None, str]:
        """Solved values snapped into their bounds, or None and the reason they cannot be used."""
        lower, upper = problem.bounds()
        raw = np.array([v.varValue if v.varValue is not None else np.nan for v in variables], dtype=float)
        missing = np.isnan(raw)
        if missing.any():
            # Variables absent from every row and from the objective are never
            # handed to the solver; any in-bounds value is optimal for them.
            idle = _idle(problem)
            unexplained = missing & ~idle
            if unexplained.any():
                names = ", ".join(problem.variables[j].name for j in np.flatnonzero(unexplained))
                return None, f"solver returned no value for {names}"
            raw = np.where(missing, lower, raw)
        slack = self.settings.tolerance * np.maximum(1.0, np.abs(raw))
        if np.any(raw < lower - slack) or np.any(raw > upper + slack):
            return None, "solution violates variable bounds beyond tolerance"
        return np.clip(raw, lower, upper), ""


def _idle(problem: LPProblem) -> np.ndarray:
    """Mask of variables that appear in no row and carry no cost."""
    idle = problem.costs() == 0.0
    for row in problem.rows:
        for j in row.coefficients:
            idle[j] = False
    return idle


def _failed(problem: LPProblem, status: SolverStatus, message: str) -> Solution:
    return Solution(status=status, values=np.full(problem.n_variables, np.nan), objective=np.nan, message=message)
