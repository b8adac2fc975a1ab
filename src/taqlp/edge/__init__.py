from .edge import Edge

__all__ = [
    "Edge",
]
