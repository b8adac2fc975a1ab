import math
from collections.abc import Mapping

# A bound or cost is either a constant or the name of a parameter.
Value = float | str

DEFAULT_TOLERANCE = 1e-6


def is_close(a: float, b: float, tol: float = DEFAULT_TOLERANCE) -> bool:
    """Relative closeness with an absolute floor; an infinite value is only close to itself."""
    return math.isclose(a, b, rel_tol=tol, abs_tol=tol)


def exceeds(a: float, b: float, tol: float = DEFAULT_TOLERANCE) -> bool:
    """True if ``a`` is greater than ``b`` by more than the tolerance."""
    return a > b and not is_close(a, b, tol)


def snap(value: float, target: float, tol: float = DEFAULT_TOLERANCE) -> float:
    return target if is_close(value, target, tol) else value


def resolve(value: Value | None, values: Mapping[str, float]) -> float | None:
    """Resolve a constant or parameter reference against evaluated values."""
    if value is None:
        return None
    if isinstance(value, str):
        return values[value]
    return float(value)
