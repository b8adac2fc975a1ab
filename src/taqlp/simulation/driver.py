from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from taqlp.common import exceeds, resolve
from taqlp.errors import ConsistencyError, SolverError, TaqlpError
from taqlp.lp import FormulationSettings, Formulator, LPProblem, PulpSolver, Solution, SolverAdapter, VariableKind
from taqlp.node import Catchment, Input, Output
from taqlp.parameter import ParameterGraph
from taqlp.recorder import Recorder
from taqlp.scenario import ScenarioIndex
from taqlp.system import Network
from taqlp.time import Timestep, Timestepper

from .state import RunStatus, RunSummary, StepResult

logger = logging.getLogger(__name__)


@dataclass
class Simulation:
    """Step a network through time, one LP per step.

    ``setup()`` validates the network, orders the parameters and resets all
    step-carried state; ``run()`` calls it and then steps to the end. Any
    error marks the run FAILED and is re-raised unchanged, leaving storage
    as of the last completed step.
    """

    network: Network
    parameters: ParameterGraph
    timestepper: Timestepper
    solver: SolverAdapter | None = None
    recorders: Sequence[Recorder] = ()
    scenario: ScenarioIndex | None = None
    settings: FormulationSettings | None = None
    _status: RunStatus = field(default=RunStatus.NOT_STARTED, init=False, repr=False)
    _timesteps: tuple[Timestep, ...] = field(default=(), init=False, repr=False)
    _position: int = field(default=0, init=False, repr=False)
    _formulator: Formulator = field(init=False, repr=False)
    _error: BaseException | None = field(default=None, init=False, repr=False)
    _elapsed: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = FormulationSettings()
        if self.solver is None:
            self.solver = PulpSolver()
        if self.scenario is None:
            self.scenario = ScenarioIndex(index=0)
        self.recorders = tuple(self.recorders)
        self._formulator = Formulator(self.settings)
        self._timesteps = self.timestepper.timesteps()

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def position(self) -> int:
        """Index of the next step to run."""
        return self._position

    @property
    def timesteps(self) -> tuple[Timestep, ...]:
        return self._timesteps

    def setup(self) -> None:
        """Validate the model and reset state so the run starts from the beginning."""
        try:
            self.network.validate(self.parameters.names)
            self.parameters.build(self.network)
            self.parameters.check_length(len(self._timesteps))
            self.network.reset()
            self.parameters.reset()
            for recorder in self.recorders:
                recorder.reset()
            self.solver.setup()
        except Exception as exc:
            self._fail(exc)
            raise
        self._position = 0
        self._error = None
        self._elapsed = 0.0
        self._status = RunStatus.RUNNING

    def run(self) -> RunSummary:
        logger.info(
            "Starting run of %d timesteps (%d nodes, %d edges, %d parameters)",
            len(self._timesteps),
            len(self.network.nodes),
            len(self.network.edges),
            len(self.parameters),
        )
        started = time.perf_counter()
        self.setup()
        try:
            while self._status is RunStatus.RUNNING:
                self.step()
        finally:
            self._elapsed = time.perf_counter() - started

        rate = len(self._timesteps) / self._elapsed if self._elapsed > 0 else float("inf")
        logger.info("Completed %d timesteps in %.2fs (%.0f steps/s)", len(self._timesteps), self._elapsed, rate)
        return self.summary()

    def step(self) -> StepResult:
        """Run the next step, starting the run first if needed."""
        if self._status is RunStatus.NOT_STARTED:
            self.setup()
        if self._status is not RunStatus.RUNNING:
            raise RuntimeError(f"Cannot step a simulation that is {self._status.value}")

        try:
            result = self._advance()
        except Exception as exc:
            self._fail(exc)
            self.solver.close()
            raise

        if self._position == len(self._timesteps):
            self._status = RunStatus.COMPLETED
            self.solver.close()
        return result

    def summary(self) -> RunSummary:
        return RunSummary(
            status=self._status,
            steps_completed=self._position,
            total_steps=len(self._timesteps),
            elapsed=self._elapsed,
            error=self._error,
        )

    def _advance(self) -> StepResult:
        timestep = self._timesteps[self._position]
        values = self.parameters.evaluate(timestep, self.scenario, self.network)
        problem = self._formulator.formulate(self.network, values, timestep)
        solution = self.solver.solve(problem)
        if not solution.optimal:
            raise SolverError(solution.status.value, timestep.index, solution.message)

        flows = solution.flows(problem.n_edges)
        volumes = self._next_volumes(flows, values, timestep)
        result = self._result(timestep, values, problem, solution, volumes)
        for recorder in self.recorders:
            recorder.save(result)
        # Storage only moves once every recorder has accepted the step.
        self.network.apply_step_result(volumes)
        self._position += 1
        logger.debug("Step %d (%s): objective %.6g", timestep.index, timestep.date, solution.objective)
        return result

    def _next_volumes(
        self,
        flows: np.ndarray,
        values: Mapping[str, float],
        timestep: Timestep,
    ) -> dict[str, float]:
        """End-of-step volume of every storage, checked against its bounds.

        A storage that started outside its volume range may stay there, so the
        range is widened to include the starting volume.
        """
        tol = self.settings.tolerance
        volumes: dict[str, float] = {}
        for node in self.network.storages():
            net = flows[node.incoming].sum() - flows[node.outgoing].sum()
            volume = node.volume + float(net) * timestep.days
            lo = min(resolve(node.min_volume, values), node.volume)
            hi = max(resolve(node.max_volume, values), node.volume)
            if exceeds(lo, volume, tol) or exceeds(volume, hi, tol):
                raise ConsistencyError(node.id, timestep.index, volume, (lo, hi))
            volumes[node.id] = min(max(volume, lo), hi)
        return volumes

    def _result(
        self,
        timestep: Timestep,
        values: Mapping[str, float],
        problem: LPProblem,
        solution: Solution,
        volumes: Mapping[str, float],
    ) -> StepResult:
        flows = solution.flows(problem.n_edges)
        inflows: dict[str, float] = {}
        outflows: dict[str, float] = {}
        for node in self.network.nodes:
            inflow = float(flows[node.incoming].sum())
            outflow = float(flows[node.outgoing].sum())
            match node:
                case Input() | Catchment():
                    inflow = outflow
                case Output():
                    outflow = inflow
            inflows[node.id] = inflow
            outflows[node.id] = outflow

        deficits = {
            owner: float(solution.values[j]) for owner, j in problem.variables_of(VariableKind.DEFICIT).items()
        }
        return StepResult(
            timestep=timestep,
            scenario=self.scenario,
            status=solution.status,
            objective=solution.objective,
            flows={edge.id: float(flows[i]) for i, edge in enumerate(self.network.edges)},
            inflows=inflows,
            outflows=outflows,
            deficits=deficits,
            volumes=dict(volumes),
            parameters=dict(values),
        )

    def _fail(self, exc: BaseException) -> None:
        self._status = RunStatus.FAILED
        self._error = exc
        if isinstance(exc, TaqlpError):
            logger.error(
                "Run failed at step %s on %s: %s: %s",
                exc.step if exc.step is not None else self._position,
                exc.entity if exc.entity is not None else "<model>",
                exc.kind,
                exc.detail,
            )
        else:
            logger.error("Run failed at step %d: %s: %s", self._position, type(exc).__name__, exc)
