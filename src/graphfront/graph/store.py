"""
Adjacency-list graph storage with indexed edge mutation

Each node owns an ordered list of outgoing edges and a target -> position
index into that list, so weight updates and lookups are O(1) and removals
are O(degree).
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from ..exceptions import (
    EdgeNotFound,
    InvalidWeightDimension,
    InvalidWeightValue,
    NodeOutOfRange,
)


@dataclass(eq=False)
class Edge:
    """Directed edge with a multi-objective cost vector"""
    target: int
    cost: np.ndarray  # float64, read-only, length == num_objectives

    def __repr__(self) -> str:
        return f"Edge(target={self.target}, cost={self.cost.tolist()})"


class GraphStore:
    """
    Directed multigraph with vector-valued edge costs

    Parallel edges between the same pair are allowed; the index always
    refers to the most recently added one.
    """

    def __init__(self, num_nodes: int = 0, num_objectives: int = 1):
        if num_nodes < 0:
            raise ValueError(f"num_nodes must be non-negative, got {num_nodes}")
        if num_objectives < 1:
            raise ValueError(f"num_objectives must be >= 1, got {num_objectives}")

        self._num_objectives = num_objectives
        self._adjacency: List[List[Edge]] = [[] for _ in range(num_nodes)]
        self._index: List[Dict[int, int]] = [{} for _ in range(num_nodes)]
        self._num_edges = 0

    @classmethod
    def from_edges(
        cls,
        num_nodes: int,
        edges: Iterable[Tuple[int, int, Sequence[float]]],
        num_objectives: Optional[int] = None
    ) -> "GraphStore":
        """Build a graph from (source, target, cost) triples"""
        edges = list(edges)
        if num_objectives is None:
            num_objectives = len(edges[0][2]) if edges else 1

        graph = cls(num_nodes, num_objectives)
        for source, target, cost in edges:
            graph.add_edge(source, target, cost)
        return graph

    @property
    def num_nodes(self) -> int:
        return len(self._adjacency)

    @property
    def num_edges(self) -> int:
        return self._num_edges

    @property
    def num_objectives(self) -> int:
        return self._num_objectives

    def add_nodes(self, count: int) -> int:
        """Append `count` isolated nodes, returning the new node count"""
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        for _ in range(count):
            self._adjacency.append([])
            self._index.append({})
        return self.num_nodes

    def add_edge(self, source: int, target: int, cost: Sequence[float]):
        """Append edge source->target; O(1) amortized"""
        self._check_node(source)
        self._check_node(target)
        vector = self._validate_cost(cost)

        edges = self._adjacency[source]
        edges.append(Edge(target=target, cost=vector))
        self._index[source][target] = len(edges) - 1
        self._num_edges += 1

    def remove_edge(self, source: int, target: int) -> Edge:
        """Remove the indexed source->target edge and re-index the rest of the list"""
        self._check_node(source)
        position = self._index[source].get(target)
        if position is None:
            raise EdgeNotFound(source, target)

        edges = self._adjacency[source]
        removed = edges.pop(position)
        self._num_edges -= 1

        index = {}
        for i, edge in enumerate(edges):
            index[edge.target] = i
        self._index[source] = index

        return removed

    def update_edge_weight(self, source: int, target: int, cost: Sequence[float]) -> np.ndarray:
        """Replace the cost of the indexed source->target edge, returning the old cost"""
        self._check_node(source)
        position = self._index[source].get(target)
        if position is None:
            raise EdgeNotFound(source, target)

        vector = self._validate_cost(cost)
        edge = self._adjacency[source][position]
        previous = edge.cost
        edge.cost = vector
        return previous

    def has_edge(self, source: int, target: int) -> bool:
        if not 0 <= source < self.num_nodes:
            return False
        return target in self._index[source]

    def edge_cost(self, source: int, target: int) -> np.ndarray:
        self._check_node(source)
        position = self._index[source].get(target)
        if position is None:
            raise EdgeNotFound(source, target)
        return self._adjacency[source][position].cost

    def neighbors(self, node: int) -> Sequence[Edge]:
        """Ordered outgoing edges of `node`"""
        self._check_node(node)
        return tuple(self._adjacency[node])

    def edges(self) -> Iterator[Tuple[int, Edge]]:
        for source, edges in enumerate(self._adjacency):
            for edge in edges:
                yield source, edge

    def to_networkx(self) -> nx.DiGraph:
        """
        Export topology for partitioning

        Parallel edges collapse to one; the edge attribute `weight` counts
        how many were merged.
        """
        digraph = nx.DiGraph()
        digraph.add_nodes_from(range(self.num_nodes))
        for source, edge in self.edges():
            if digraph.has_edge(source, edge.target):
                digraph[source][edge.target]['weight'] += 1.0
            else:
                digraph.add_edge(source, edge.target, weight=1.0)
        return digraph

    def _check_node(self, node: int):
        if not 0 <= node < self.num_nodes:
            raise NodeOutOfRange(node, self.num_nodes)

    def _validate_cost(self, cost: Sequence[float]) -> np.ndarray:
        vector = np.array(cost, dtype=np.float64).reshape(-1)
        if vector.shape[0] != self._num_objectives:
            raise InvalidWeightDimension(self._num_objectives, vector.shape[0])
        if not np.all(np.isfinite(vector)):
            raise InvalidWeightValue(f"Cost vector must be finite: {vector.tolist()}")
        if np.any(vector < 0):
            raise InvalidWeightValue(f"Negative costs are not supported: {vector.tolist()}")
        vector.setflags(write=False)
        return vector

    def __repr__(self) -> str:
        return (
            f"GraphStore(num_nodes={self.num_nodes}, num_edges={self.num_edges}, "
            f"num_objectives={self.num_objectives})"
        )
