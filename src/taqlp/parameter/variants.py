from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

import numpy as np

from taqlp.common import Value


class ParameterKind(Enum):
    CONSTANT = "constant"
    TIMESERIES = "timeseries"
    AGGREGATED = "aggregated"
    STATEFUL = "stateful"
    INDEXED_LOOKUP = "indexed_lookup"


class AggFunc(Enum):
    SUM = "sum"
    PRODUCT = "product"
    MIN = "min"
    MAX = "max"
    MEAN = "mean"

    def apply(self, values: list[float]) -> float:
        match self:
            case AggFunc.SUM:
                return float(np.sum(values))
            case AggFunc.PRODUCT:
                return float(np.prod(values))
            case AggFunc.MIN:
                return float(np.min(values))
            case AggFunc.MAX:
                return float(np.max(values))
            case AggFunc.MEAN:
                return float(np.mean(values))


def _check_name(name: str) -> None:
    if not name:
        raise ValueError("name cannot be empty")


@dataclass(frozen=True)
class ConstantParameter:
    kind: ClassVar[ParameterKind] = ParameterKind.CONSTANT

    name: str
    value: float

    def __post_init__(self) -> None:
        _check_name(self.name)
        if not np.isfinite(self.value):
            raise ValueError("value must be finite")


@dataclass(frozen=True)
class TimeSeriesParameter:
    """Value indexed by step.

    Two-dimensional values hold one column per member of ``scenario_group``;
    the column is chosen by the run's scenario index.
    """

    kind: ClassVar[ParameterKind] = ParameterKind.TIMESERIES

    name: str
    values: tuple[float, ...] | tuple[tuple[float, ...], ...]
    scenario_group: str | None = None
    cyclical: bool = False

    def __post_init__(self) -> None:
        _check_name(self.name)
        arr = np.asarray(self.values, dtype=float)
        if arr.size == 0:
            raise ValueError("TimeSeries cannot be empty")
        if arr.ndim not in (1, 2):
            raise ValueError(f"TimeSeries must be 1-D or 2-D, got {arr.ndim}-D")
        if not np.all(np.isfinite(arr)):
            raise ValueError("TimeSeries contains non-finite values")
        if arr.ndim == 2 and self.scenario_group is None:
            raise ValueError("2-D TimeSeries requires a scenario_group")
        # Stored as nested tuples so instances stay hashable.
        values = tuple(map(tuple, arr.tolist())) if arr.ndim == 2 else tuple(arr.tolist())
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)

    @property
    def ndim(self) -> int:
        return 2 if isinstance(self.values[0], tuple) else 1


@dataclass(frozen=True)
class AggregatedParameter:
    kind: ClassVar[ParameterKind] = ParameterKind.AGGREGATED

    name: str
    parameters: tuple[str, ...]
    agg_func: AggFunc = AggFunc.SUM

    def __post_init__(self) -> None:
        _check_name(self.name)
        if not self.parameters:
            raise ValueError("parameters cannot be empty")
        object.__setattr__(self, "parameters", tuple(self.parameters))


@dataclass(frozen=True)
class MovingAverageParameter:
    """Mean of the last ``window`` values of another parameter."""

    kind: ClassVar[ParameterKind] = ParameterKind.STATEFUL

    name: str
    parameter: str
    window: int

    def __post_init__(self) -> None:
        _check_name(self.name)
        if self.window < 1:
            raise ValueError("window must be at least 1")


@dataclass(frozen=True)
class ExponentialSmoothingParameter:
    """``alpha * x + (1 - alpha) * previous``, seeded with ``initial_value``."""

    kind: ClassVar[ParameterKind] = ParameterKind.STATEFUL

    name: str
    parameter: str
    alpha: float
    initial_value: float = 0.0

    def __post_init__(self) -> None:
        _check_name(self.name)
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be between 0.0 and 1.0, got {self.alpha}")


@dataclass(frozen=True)
class IndexedArrayParameter:
    """Select ``values[int(index)]``; entries may be constants or parameter names."""

    kind: ClassVar[ParameterKind] = ParameterKind.INDEXED_LOOKUP

    name: str
    index_parameter: str
    values: tuple[Value, ...]

    def __post_init__(self) -> None:
        _check_name(self.name)
        if not self.values:
            raise ValueError("values cannot be empty")
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class ControlCurveParameter:
    """Look up a value by where a storage node's proportional volume sits.

    ``control_curves`` are proportional volumes in descending order. The
    result is ``values[i]`` for the first curve the storage is at or above,
    or ``values[-1]`` when it is below all of them.
    """

    kind: ClassVar[ParameterKind] = ParameterKind.INDEXED_LOOKUP

    name: str
    storage_node: str
    control_curves: tuple[Value, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        _check_name(self.name)
        object.__setattr__(self, "control_curves", tuple(self.control_curves))
        object.__setattr__(self, "values", tuple(self.values))
        if len(self.values) != len(self.control_curves) + 1:
            raise ValueError(
                f"values must have one more entry than control_curves, "
                f"got {len(self.values)} values for {len(self.control_curves)} curves"
            )


@dataclass(frozen=True)
class InterpolatedVolumeParameter:
    """Piecewise linear interpolation of ``values`` over a storage node's volume."""

    kind: ClassVar[ParameterKind] = ParameterKind.INDEXED_LOOKUP

    name: str
    storage_node: str
    volumes: tuple[float, ...]
    values: tuple[float, ...]
    _xp: np.ndarray = field(init=False, repr=False, compare=False)
    _fp: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_name(self.name)
        xp = np.asarray(self.volumes, dtype=float)
        fp = np.asarray(self.values, dtype=float)
        if xp.size < 2 or xp.shape != fp.shape:
            raise ValueError("volumes and values must have the same length of at least 2")
        if np.any(np.diff(xp) <= 0):
            raise ValueError("volumes must be strictly increasing")
        object.__setattr__(self, "volumes", tuple(xp.tolist()))
        object.__setattr__(self, "values", tuple(fp.tolist()))
        object.__setattr__(self, "_xp", xp)
        object.__setattr__(self, "_fp", fp)

    def interpolate(self, volume: float) -> float:
        return float(np.interp(volume, self._xp, self._fp))


Parameter = (
    ConstantParameter
    | TimeSeriesParameter
    | AggregatedParameter
    | MovingAverageParameter
    | ExponentialSmoothingParameter
    | IndexedArrayParameter
    | ControlCurveParameter
    | InterpolatedVolumeParameter
)
