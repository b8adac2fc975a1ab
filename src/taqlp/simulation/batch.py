from __future__ import annotations

import copy
import logging
import multiprocessing
from collections.abc import Sequence
from dataclasses import dataclass

from taqlp.lp import FormulationSettings, PulpSolver, SolverSettings
from taqlp.parameter import ParameterGraph
from taqlp.recorder import MemoryRecorder
from taqlp.scenario import ScenarioCollection, ScenarioIndex
from taqlp.system import Network
from taqlp.time import Timestepper

from .driver import Simulation
from .state import RunSummary, StepResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioRun:
    scenario: ScenarioIndex
    summary: RunSummary
    results: tuple[StepResult, ...]

    def __len__(self) -> int:
        return len(self.results)


def run_scenarios(
    network: Network,
    parameters: ParameterGraph,
    timestepper: Timestepper,
    scenarios: ScenarioCollection | Sequence[ScenarioIndex],
    *,
    settings: FormulationSettings | None = None,
    solver_settings: SolverSettings | None = None,
    processes: int | None = None,
) -> list[ScenarioRun]:
    """Run every scenario as an independent simulation.

    Each run works on its own copy of the network and parameter graph, so
    no state is shared between scenarios and the inputs are left untouched.
    With ``processes`` above one the runs are spread over a process pool;
    results come back in scenario order either way. The first failing
    scenario's error is raised.
    """
    if processes is not None and processes < 1:
        raise ValueError("processes must be at least 1")
    if isinstance(scenarios, ScenarioCollection):
        scenarios = scenarios.scenario_indices()
    tasks = [(network, parameters, timestepper, scenario, settings, solver_settings) for scenario in scenarios]
    logger.info("Running %d scenarios on %d process(es)", len(tasks), processes or 1)

    if processes is None or processes == 1 or len(tasks) < 2:
        return [run_scenario(task) for task in tasks]

    with multiprocessing.Pool(processes) as pool:
        return pool.map(run_scenario, tasks)


# Module level so the process pool can pickle it.
def run_scenario(
    args: tuple[Network, ParameterGraph, Timestepper, ScenarioIndex, FormulationSettings | None, SolverSettings | None],
) -> ScenarioRun:
    network, parameters, timestepper, scenario, settings, solver_settings = args
    recorder = MemoryRecorder()
    simulation = Simulation(
        network=network.clone(),
        parameters=copy.deepcopy(parameters),
        timestepper=timestepper,
        solver=PulpSolver(solver_settings or SolverSettings()),
        recorders=(recorder,),
        scenario=scenario,
        settings=settings,
    )
    try:
        summary = simulation.run()
    except Exception:
        logger.error("Scenario %d %s failed", scenario.index, dict(zip(scenario.names, scenario.indices, strict=True)))
        raise
    return ScenarioRun(scenario=scenario, summary=summary, results=recorder.results)
