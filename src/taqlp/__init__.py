"""
taqlp

This package simulates water allocation in a network by solving one linear
program per timestep.

A network is built from nodes (supply inputs, demand outputs, links,
reservoirs and catchments) joined by edges. Bounds and costs are either
constants or the names of parameters, which are evaluated in dependency order
at every step. Each step's LP routes water along the edges at least cost,
penalising unmet demand by priority tier, and the solved flows update the
reservoir volumes carried into the next step.

Classes:
    Network: Arena of nodes and edges with validation and storage state.
    Input, Output, Link, Storage, Catchment: Node variants.
    Edge: A directed, flow-carrying connection between two nodes.
    ParameterGraph: Dependency-ordered parameters evaluated once per step.
    Simulation: Drives the per-step evaluate, formulate, solve, apply cycle.
    MemoryRecorder: Keeps step results and tabulates them with pandas.
"""

from .edge import Edge
from .errors import (
    ConsistencyError,
    CyclicDependencyError,
    FormulationError,
    InsufficientLengthError,
    ParameterEvaluationError,
    SolverError,
    StructuralError,
    TaqlpError,
)
from .lp import FormulationSettings, PulpSolver, SolverSettings, SolverStatus
from .node import Catchment, Input, Link, Output, Storage
from .parameter import (
    AggFunc,
    AggregatedParameter,
    ConstantParameter,
    ControlCurveParameter,
    ExponentialSmoothingParameter,
    IndexedArrayParameter,
    InterpolatedVolumeParameter,
    MovingAverageParameter,
    ParameterGraph,
    TimeSeriesParameter,
)
from .recorder import AssertionRecorder, MemoryRecorder
from .scenario import ScenarioCollection, ScenarioIndex
from .simulation import RunStatus, RunSummary, ScenarioRun, Simulation, StepResult, run_scenarios
from .system import Network
from .time import Timestep, Timestepper

__all__ = [
    # Network
    "Network",
    "Edge",
    "Input",
    "Output",
    "Link",
    "Storage",
    "Catchment",
    # Parameters
    "ParameterGraph",
    "AggFunc",
    "AggregatedParameter",
    "ConstantParameter",
    "ControlCurveParameter",
    "ExponentialSmoothingParameter",
    "IndexedArrayParameter",
    "InterpolatedVolumeParameter",
    "MovingAverageParameter",
    "TimeSeriesParameter",
    # Solving
    "FormulationSettings",
    "PulpSolver",
    "SolverSettings",
    "SolverStatus",
    # Simulation
    "Simulation",
    "RunStatus",
    "RunSummary",
    "StepResult",
    "ScenarioRun",
    "run_scenarios",
    "ScenarioCollection",
    "ScenarioIndex",
    "Timestep",
    "Timestepper",
    # Recorders
    "AssertionRecorder",
    "MemoryRecorder",
    # Errors
    "TaqlpError",
    "StructuralError",
    "InsufficientLengthError",
    "CyclicDependencyError",
    "ParameterEvaluationError",
    "FormulationError",
    "SolverError",
    "ConsistencyError",
]

# Package version
__version__ = "0.1.0"
