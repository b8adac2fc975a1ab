from .batch import ScenarioRun, run_scenario, run_scenarios
from .driver import Simulation
from .state import RunStatus, RunSummary, StepResult

__all__ = [
    "RunStatus",
    "RunSummary",
    "ScenarioRun",
    "Simulation",
    "StepResult",
    "run_scenario",
    "run_scenarios",
]
