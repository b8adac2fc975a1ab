from dataclasses import dataclass, field
from typing import ClassVar

from taqlp.common import Value


@dataclass
class BaseNode:
    __bounds__: ClassVar[tuple[str, ...]] = ()

    id: str
    cost: Value = field(default=0.0, kw_only=True)
    _incoming: list[int] = field(default_factory=list, init=False, repr=False)
    _outgoing: list[int] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("id cannot be empty")

    @property
    def incoming(self) -> list[int]:
        """Indices of edges flowing into this node."""
        return self._incoming

    @property
    def outgoing(self) -> list[int]:
        """Indices of edges flowing out of this node."""
        return self._outgoing

    def _set_edges(self, incoming: list[int], outgoing: list[int]) -> None:
        self._incoming = incoming
        self._outgoing = outgoing

    def values(self) -> dict[str, Value | None]:
        """Return the cost and every bound field, keyed by field name."""
        return {name: getattr(self, name) for name in ("cost", *self.__bounds__)}

    def parameter_refs(self) -> set[str]:
        return {v for v in self.values().values() if isinstance(v, str)}

    def constant_bound_pairs(self) -> list[tuple[str, float, float]]:
        """Return (label, min, max) for bound pairs that are both constants."""
        return []

    def reset(self) -> None:
        """Reset node to initial state for a fresh simulation run.

        Subclasses holding step-carried state override this.
        """
