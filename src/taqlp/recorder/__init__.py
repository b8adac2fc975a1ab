from .assertion import AssertionRecorder
from .memory import MemoryRecorder
from .metric import EdgeFlow, Metric, NodeDeficit, NodeInFlow, NodeOutFlow, NodeVolume, ParameterValue
from .protocols import Recorder

__all__ = [
    "AssertionRecorder",
    "EdgeFlow",
    "MemoryRecorder",
    "Metric",
    "NodeDeficit",
    "NodeInFlow",
    "NodeOutFlow",
    "NodeVolume",
    "ParameterValue",
    "Recorder",
]
