from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from taqlp.lp import SolverStatus
from taqlp.scenario import ScenarioIndex
from taqlp.time import Timestep


class RunStatus(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """Everything recorders see about one solved and applied step.

    ``inflows`` and ``outflows`` are per node. An Input or Catchment reports
    the supply it released as both; an Output reports the flow delivered to
    it as both. ``volumes`` is the storage state after the step was applied.
    """

    timestep: Timestep
    scenario: ScenarioIndex
    status: SolverStatus
    objective: float
    flows: dict[str, float] = field(default_factory=dict)
    inflows: dict[str, float] = field(default_factory=dict)
    outflows: dict[str, float] = field(default_factory=dict)
    deficits: dict[str, float] = field(default_factory=dict)
    volumes: dict[str, float] = field(default_factory=dict)
    parameters: dict[str, float] = field(default_factory=dict)

    @property
    def index(self) -> int:
        return self.timestep.index

    @property
    def date(self) -> date:
        return self.timestep.date


@dataclass(frozen=True)
class RunSummary:
    status: RunStatus
    steps_completed: int
    total_steps: int
    elapsed: float = 0.0
    error: BaseException | None = None

    @property
    def failed_step(self) -> int | None:
        if self.status is not RunStatus.FAILED:
            return None
        step = getattr(self.error, "step", None)
        return self.steps_completed if step is None else step
