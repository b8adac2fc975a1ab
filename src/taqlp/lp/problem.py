from dataclasses import dataclass, field
from enum import Enum

import numpy as np


class VariableKind(Enum):
    FLOW = "flow"
    DEFICIT = "deficit"
    STORAGE_SHORTFALL = "storage_shortfall"


@dataclass(frozen=True, slots=True)
class Variable:
    name: str
    lower: float
    upper: float  # np.inf = unbounded
    cost: float
    kind: VariableKind
    owner: str  # edge or node id


@dataclass(frozen=True, slots=True)
class Row:
    """``lower <= sum(coefficients[j] * x[j]) <= upper``."""

    name: str
    coefficients: dict[int, float]
    lower: float  # -np.inf = unbounded
    upper: float  # np.inf = unbounded
    owner: str

    @property
    def is_equality(self) -> bool:
        return self.lower == self.upper


@dataclass
class LPProblem:
    """Per-step linear program; edge flow variables come first, in edge order."""

    n_edges: int
    variables: list[Variable] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    step: int = 0

    def add_variable(self, variable: Variable) -> int:
        self.variables.append(variable)
        return len(self.variables) - 1

    def add_row(self, row: Row) -> int:
        self.rows.append(row)
        return len(self.rows) - 1

    @property
    def n_variables(self) -> int:
        return len(self.variables)

    @property
    def n_rows(self) -> int:
        return len(self.rows)

    def costs(self) -> np.ndarray:
        return np.array([v.cost for v in self.variables], dtype=float)

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        lower = np.array([v.lower for v in self.variables], dtype=float)
        upper = np.array([v.upper for v in self.variables], dtype=float)
        return lower, upper

    def to_dense(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return the constraint matrix and its row bounds as dense arrays."""
        matrix = np.zeros((self.n_rows, self.n_variables))
        for i, row in enumerate(self.rows):
            for j, coef in row.coefficients.items():
                matrix[i, j] = coef
        row_lower = np.array([r.lower for r in self.rows], dtype=float)
        row_upper = np.array([r.upper for r in self.rows], dtype=float)
        return matrix, row_lower, row_upper

    def variables_of(self, kind: VariableKind) -> dict[str, int]:
        """Map owner id to variable index for one kind of variable."""
        return {v.owner: j for j, v in enumerate(self.variables) if v.kind is kind}

    def rows_of(self, owner: str) -> list[Row]:
        return [r for r in self.rows if r.owner == owner]
