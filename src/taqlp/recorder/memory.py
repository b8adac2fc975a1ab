from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pandas as pd

from .metric import Metric

if TYPE_CHECKING:
    from taqlp.simulation import StepResult


@dataclass
class MemoryRecorder:
    """Keep every step result in memory and tabulate metrics on demand."""

    _results: list[StepResult] = field(default_factory=list, init=False, repr=False)

    def save(self, result: StepResult) -> None:
        self._results.append(result)

    def reset(self) -> None:
        self._results.clear()

    @property
    def results(self) -> tuple[StepResult, ...]:
        return tuple(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def index(self) -> pd.DatetimeIndex:
        return pd.DatetimeIndex([pd.Timestamp(r.date) for r in self._results], name="date")

    def series(self, metric: Metric) -> pd.Series:
        """One metric over the recorded steps, indexed by date."""
        values = [metric.value(r) for r in self._results]
        return pd.Series(values, index=self.index(), name=metric.label, dtype=float)

    def frame(self, metrics: Iterable[Metric]) -> pd.DataFrame:
        return pd.DataFrame({m.label: self.series(m) for m in metrics}, index=self.index())

    def objective(self) -> pd.Series:
        return pd.Series([r.objective for r in self._results], index=self.index(), name="objective", dtype=float)
