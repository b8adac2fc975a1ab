from .base import BaseNode
from .catchment import Catchment
from .input import Input
from .link import Link
from .output import Output
from .storage import DEFAULT_STORAGE_COST, Storage

__all__ = [
    "DEFAULT_STORAGE_COST",
    # Base
    "BaseNode",
    # Nodes
    "Catchment",
    "Input",
    "Link",
    "Output",
    "Storage",
]
