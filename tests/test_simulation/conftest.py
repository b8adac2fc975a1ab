import numpy as np
import pytest

from taqlp.lp import LPProblem, Solution, SolverStatus


class FakeSolver:
    """Returns a fixed status without solving anything."""

    def __init__(self, status: SolverStatus = SolverStatus.INFEASIBLE):
        self.status = status
        self.calls: list[LPProblem] = []
        self.opened = 0
        self.closed = 0

    def setup(self) -> None:
        self.opened += 1

    def solve(self, problem: LPProblem) -> Solution:
        self.calls.append(problem)
        return Solution(status=self.status, values=np.full(problem.n_variables, np.nan), message="fake")

    def close(self) -> None:
        self.closed += 1


class SpyRecorder:
    def __init__(self):
        self.results = []
        self.resets = 0

    def save(self, result) -> None:
        self.results.append(result)

    def reset(self) -> None:
        self.resets += 1
        self.results.clear()


@pytest.fixture
def fake_solver() -> FakeSolver:
    return FakeSolver()


@pytest.fixture
def spy_recorder() -> SpyRecorder:
    return SpyRecorder()
