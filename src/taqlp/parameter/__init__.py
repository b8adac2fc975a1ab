from .graph import ParameterGraph, ParameterValues, direct_dependencies
from .variants import (
    AggFunc,
    AggregatedParameter,
    ConstantParameter,
    ControlCurveParameter,
    ExponentialSmoothingParameter,
    IndexedArrayParameter,
    InterpolatedVolumeParameter,
    MovingAverageParameter,
    Parameter,
    ParameterKind,
    TimeSeriesParameter,
)

__all__ = [
    # Graph
    "ParameterGraph",
    "ParameterValues",
    "direct_dependencies",
    # Variants
    "AggFunc",
    "AggregatedParameter",
    "ConstantParameter",
    "ControlCurveParameter",
    "ExponentialSmoothingParameter",
    "IndexedArrayParameter",
    "InterpolatedVolumeParameter",
    "MovingAverageParameter",
    "Parameter",
    "ParameterKind",
    "TimeSeriesParameter",
]
