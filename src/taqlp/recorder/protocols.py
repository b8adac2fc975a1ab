from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from taqlp.simulation import StepResult


@runtime_checkable
class Recorder(Protocol):
    """Receives each applied step synchronously, in step order."""

    def save(self, result: StepResult) -> None: ...

    def reset(self) -> None: ...
