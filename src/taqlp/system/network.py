import copy
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field

import networkx as nx

from taqlp.edge import Edge
from taqlp.errors import StructuralError
from taqlp.node import BaseNode, Catchment, Input, Link, Output, Storage


@dataclass
class Network:
    """Arena of nodes and edges addressed by stable integer index."""

    _nodes: list[BaseNode] = field(default_factory=list, init=False, repr=False)
    _edges: list[Edge] = field(default_factory=list, init=False, repr=False)
    _node_index: dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _edge_index: dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _endpoints: list[tuple[int, int]] = field(default_factory=list, init=False, repr=False)
    _graph: nx.MultiDiGraph = field(default_factory=nx.MultiDiGraph, init=False, repr=False)
    _validated: bool = field(default=False, init=False, repr=False)

    def add_node(self, node: BaseNode) -> int:
        if node.id in self._node_index:
            raise ValueError(f"Node '{node.id}' already exists")
        index = len(self._nodes)
        self._nodes.append(node)
        self._node_index[node.id] = index
        self._graph.add_node(index, id=node.id)
        self._validated = False
        return index

    def add_edge(self, edge: Edge) -> int:
        if edge.id in self._edge_index:
            raise ValueError(f"Edge '{edge.id}' already exists")
        index = len(self._edges)
        self._edges.append(edge)
        self._edge_index[edge.id] = index
        self._validated = False
        return index

    def connect(self, source: str, target: str, **kwargs) -> Edge:
        edge = Edge(source=source, target=target, **kwargs)
        self.add_edge(edge)
        return edge

    def validate(self, parameter_names: Collection[str] | None = None) -> None:
        errors: list[str] = []

        # 1. Check node existence for edge endpoints
        for edge in self._edges:
            if edge.source not in self._node_index:
                errors.append(f"Edge '{edge.id}': source node '{edge.source}' does not exist")
            if edge.target not in self._node_index:
                errors.append(f"Edge '{edge.id}': target node '{edge.target}' does not exist")
            if edge.source == edge.target:
                errors.append(f"Edge '{edge.id}': cannot connect node '{edge.source}' to itself")

        if errors:
            raise StructuralError("\n".join(errors))

        # 2. Resolve edges to index pairs and rebuild graph edges
        self._endpoints = [(self._node_index[e.source], self._node_index[e.target]) for e in self._edges]
        self._graph.remove_edges_from(list(self._graph.edges))
        for i, (u, v) in enumerate(self._endpoints):
            self._graph.add_edge(u, v, key=i)

        incoming: list[list[int]] = [[] for _ in self._nodes]
        outgoing: list[list[int]] = [[] for _ in self._nodes]
        for i, (u, v) in enumerate(self._endpoints):
            outgoing[u].append(i)
            incoming[v].append(i)
        for i, node in enumerate(self._nodes):
            node._set_edges(incoming[i], outgoing[i])

        # 3. Check connectivity required by each variant
        for node in self._nodes:
            in_degree = len(node.incoming)
            out_degree = len(node.outgoing)

            if isinstance(node, Input | Catchment) and in_degree != 0:
                errors.append(f"{type(node).__name__} '{node.id}' must have in_degree=0, got {in_degree}")
            if isinstance(node, Output) and out_degree != 0:
                errors.append(f"Output '{node.id}' must have out_degree=0, got {out_degree}")
            if isinstance(node, Catchment) and out_degree == 0:
                errors.append(f"Catchment '{node.id}' has no outgoing edge")
            if isinstance(node, Link) and (in_degree == 0 or out_degree == 0):
                errors.append(
                    f"Link '{node.id}' needs incoming and outgoing edges, got {in_degree} in, {out_degree} out"
                )
            if isinstance(node, Storage) and in_degree + out_degree == 0:
                errors.append(f"Storage '{node.id}' is not connected")

        # 4. Check parameter references
        if parameter_names is not None:
            known = set(parameter_names)
            for entity_id, refs in self._references():
                for ref in sorted(refs - known):
                    errors.append(f"'{entity_id}' references unknown parameter '{ref}'")

        # 5. Check constant bounds
        for entity in [*self._nodes, *self._edges]:
            for label, lo, hi in entity.constant_bound_pairs():
                if lo > hi:
                    errors.append(f"'{entity.id}': minimum {label} {lo} exceeds maximum {hi}")

        if errors:
            raise StructuralError("\n".join(errors))

        self._validated = True

    def _references(self) -> list[tuple[str, set[str]]]:
        return [(entity.id, entity.parameter_refs()) for entity in [*self._nodes, *self._edges]]

    def parameter_refs(self) -> set[str]:
        """Names of all parameters referenced by node or edge values."""
        refs: set[str] = set()
        for _, entity_refs in self._references():
            refs |= entity_refs
        return refs

    @property
    def validated(self) -> bool:
        return self._validated

    @property
    def nodes(self) -> tuple[BaseNode, ...]:
        return tuple(self._nodes)

    @property
    def edges(self) -> tuple[Edge, ...]:
        return tuple(self._edges)

    @property
    def graph(self) -> nx.MultiDiGraph:
        return self._graph

    def node(self, node_id: str) -> BaseNode:
        return self._nodes[self.node_index(node_id)]

    def edge(self, edge_id: str) -> Edge:
        return self._edges[self.edge_index(edge_id)]

    def node_index(self, node_id: str) -> int:
        if node_id not in self._node_index:
            raise KeyError(f"Node '{node_id}' not found")
        return self._node_index[node_id]

    def edge_index(self, edge_id: str) -> int:
        if edge_id not in self._edge_index:
            raise KeyError(f"Edge '{edge_id}' not found")
        return self._edge_index[edge_id]

    def endpoints(self, edge_index: int) -> tuple[int, int]:
        return self._endpoints[edge_index]

    def incoming(self, node_id: str) -> list[Edge]:
        return [self._edges[i] for i in self.node(node_id).incoming]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [self._edges[i] for i in self.node(node_id).outgoing]

    def storages(self) -> list[Storage]:
        return [n for n in self._nodes if isinstance(n, Storage)]

    def volumes(self) -> dict[str, float]:
        return {n.id: n.volume for n in self.storages()}

    def apply_step_result(self, volumes: Mapping[str, float]) -> None:
        """Set storage volumes after a solved step.

        The only place storage state changes during a run; called by the
        simulation driver once the new volumes have passed its checks.
        """
        for node_id, volume in volumes.items():
            node = self.node(node_id)
            if not isinstance(node, Storage):
                raise TypeError(f"Node '{node_id}' is not a Storage node")
            node._set_volume(volume)

    def reset(self) -> None:
        """Restore initial storage volumes, keeping topology."""
        for node in self._nodes:
            node.reset()

    def clone(self) -> "Network":
        """Independent copy with its own storage state."""
        return copy.deepcopy(self)
