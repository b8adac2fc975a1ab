from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taqlp.common import DEFAULT_TOLERANCE, is_close

from .metric import Metric

if TYPE_CHECKING:
    from taqlp.simulation import StepResult


@dataclass
class AssertionRecorder:
    """Check a metric against expected values as the run progresses.

    Raises ``AssertionError`` at the first step whose value differs from
    ``expected[step]`` beyond ``tolerance``, which fails the run.
    """

    metric: Metric
    expected: Sequence[float]
    tolerance: float = DEFAULT_TOLERANCE
    _checked: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")
        self.expected = tuple(float(v) for v in self.expected)

    @property
    def checked(self) -> int:
        return self._checked

    def save(self, result: StepResult) -> None:
        index = result.index
        if index >= len(self.expected):
            raise AssertionError(f"{self.metric.label}: no expected value for step {index}")
        actual = self.metric.value(result)
        expected = self.expected[index]
        if not is_close(actual, expected, self.tolerance):
            raise AssertionError(f"{self.metric.label} at step {index}: expected {expected}, got {actual}")
        self._checked += 1

    def reset(self) -> None:
        self._checked = 0
