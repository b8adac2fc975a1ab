from .formulate import FormulationSettings, Formulator, storage_penalty, tier_penalties
from .problem import LPProblem, Row, Variable, VariableKind
from .solver import PulpSolver, Solution, SolverAdapter, SolverSettings, SolverStatus, map_status

__all__ = [
    # Problem
    "LPProblem",
    "Row",
    "Variable",
    "VariableKind",
    # Formulation
    "FormulationSettings",
    "Formulator",
    "storage_penalty",
    "tier_penalties",
    # Solver
    "PulpSolver",
    "Solution",
    "SolverAdapter",
    "SolverSettings",
    "SolverStatus",
    "map_status",
]
