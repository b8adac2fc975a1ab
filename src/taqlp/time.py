from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta


@dataclass(frozen=True, slots=True)
class Timestep:
    index: int
    date: date
    days: float = 1.0

    def __index__(self) -> int:
        return self.index

    def __int__(self) -> int:
        return self.index


@dataclass(frozen=True, slots=True)
class Timestepper:
    """Inclusive date range walked in fixed steps of ``step`` days."""

    start: date
    end: date
    step: int = 1

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError("step must be positive")
        if self.end < self.start:
            raise ValueError("end cannot be before start")

    @classmethod
    def from_strings(cls, start: str, end: str, fmt: str = "%Y-%m-%d", step: int = 1) -> Timestepper:
        return cls(
            start=datetime.strptime(start, fmt).date(),
            end=datetime.strptime(end, fmt).date(),
            step=step,
        )

    def __len__(self) -> int:
        return (self.end - self.start).days // self.step + 1

    def timesteps(self) -> tuple[Timestep, ...]:
        return tuple(
            Timestep(index=i, date=self.start + timedelta(days=i * self.step), days=float(self.step))
            for i in range(len(self))
        )


def time_index(timestepper: Timestepper) -> tuple[date, ...]:
    return tuple(t.date for t in timestepper.timesteps())
