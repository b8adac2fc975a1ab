class TaqlpError(Exception):
    """Base class for every error raised by the simulation engine.

    Carries enough context (step index, offending entity) to reproduce a
    failure without access to engine internals.
    """

    def __init__(self, message: str, *, step: int | None = None, entity: str | None = None):
        self.step = step
        self.entity = entity
        self.detail = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        parts = []
        if self.step is not None:
            parts.append(f"step {self.step}")
        if self.entity is not None:
            parts.append(f"'{self.entity}'")
        if not parts:
            return self.detail
        return f"[{', '.join(parts)}] {self.detail}"

    def __reduce__(self):
        # Subclasses take structured arguments, so rebuild from state when
        # errors cross a process boundary.
        return _restore, (type(self), self.detail, self.__dict__)


def _restore(cls: type[TaqlpError], detail: str, state: dict) -> TaqlpError:
    error = cls.__new__(cls)
    Exception.__init__(error, detail)
    error.__dict__.update(state)
    return error


class StructuralError(TaqlpError):
    """Raised when the network or a parameter reference is malformed."""


class InsufficientLengthError(StructuralError):
    """Raised when a time series is shorter than the configured run."""

    def __init__(self, parameter: str, length: int, required: int):
        self.length = length
        self.required = required
        super().__init__(
            f"Time series has length {length} but the run requires {required} timesteps",
            entity=parameter,
        )


class CyclicDependencyError(TaqlpError):
    """Raised when the parameter dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = tuple(cycle)
        path = " -> ".join([*cycle, cycle[0]]) if cycle else ""
        super().__init__(f"Parameter dependency cycle: {path}", entity=cycle[0] if cycle else None)


class ParameterEvaluationError(TaqlpError):
    def __init__(self, parameter: str, step: int, reason: str):
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"Evaluation failed: {reason}", step=step, entity=parameter)


class FormulationError(TaqlpError):
    """Raised when evaluated bounds are contradictory, before the solver runs."""


class SolverError(TaqlpError):
    def __init__(self, status: str, step: int, message: str = ""):
        self.status = status
        detail = f"Solver returned status {status}"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(detail, step=step)


class ConsistencyError(TaqlpError):
    """Raised when a solved step would leave storage outside its bounds."""

    def __init__(self, node: str, step: int, volume: float, bounds: tuple[float, float]):
        self.volume = volume
        self.bounds = bounds
        lo, hi = bounds
        super().__init__(f"Volume {volume} outside bounds [{lo}, {hi}]", step=step, entity=node)
