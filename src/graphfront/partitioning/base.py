"""
Partitioner capability interface

A partitioner maps every node of a graph to one of k worker ids. The core
only relies on the mapping being total and in range; cut quality and
balance are the implementation's business.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import numpy as np

from ..exceptions import PartitionFailure
from ..graph.store import GraphStore


@dataclass
class PartitionResult:
    """Result of graph partitioning"""
    assignment: np.ndarray  # node -> owner id, read-only
    num_partitions: int
    cut_size: int
    load_balance: float
    partitioning_time: float

    def owned_by(self, owner: int) -> List[int]:
        return np.flatnonzero(self.assignment == owner).tolist()


class Partitioner(ABC):
    """Maps (graph, k) to an owner id per node"""

    def partition(self, graph: GraphStore, num_partitions: int) -> np.ndarray:
        """
        Assign every node to a part in [0, num_partitions)

        Raises:
            PartitionFailure: num_partitions <= 0, empty graph, or invalid output
        """
        check_partition_request(graph, num_partitions)
        assignment = self._assign(graph, num_partitions)
        return validate_assignment(assignment, graph.num_nodes, num_partitions)

    @abstractmethod
    def _assign(self, graph: GraphStore, num_partitions: int) -> np.ndarray:
        """Produce a raw assignment; inputs are already checked"""


def check_partition_request(graph: GraphStore, num_partitions: int):
    if num_partitions <= 0:
        raise PartitionFailure(f"Number of partitions must be positive, got {num_partitions}")
    if graph.num_nodes == 0:
        raise PartitionFailure("Cannot partition an empty graph")


def validate_assignment(assignment, num_nodes: int, num_partitions: int) -> np.ndarray:
    """
    Check an assignment is total and in range

    Returns:
        Read-only int64 copy of the assignment
    """
    array = np.asarray(assignment)
    if array.shape != (num_nodes,):
        raise PartitionFailure(
            f"Assignment has shape {array.shape}, expected ({num_nodes},)"
        )
    if num_nodes and not np.issubdtype(array.dtype, np.integer):
        if not np.all(np.equal(np.mod(array, 1), 0)):
            raise PartitionFailure("Assignment contains non-integer owner ids")

    validated = array.astype(np.int64)
    if num_nodes and (validated.min() < 0 or validated.max() >= num_partitions):
        raise PartitionFailure(
            f"Owner ids must lie in [0, {num_partitions}), "
            f"got [{validated.min()}, {validated.max()}]"
        )
    validated.setflags(write=False)
    return validated


def compute_cut_size(graph: GraphStore, assignment: np.ndarray) -> int:
    """Number of directed edges crossing partition boundaries"""
    cut_size = 0
    for source, edge in graph.edges():
        if assignment[source] != assignment[edge.target]:
            cut_size += 1
    return cut_size


def compute_load_balance(assignment: np.ndarray, num_partitions: int) -> float:
    """Load balance metric (1.0 = perfect balance)"""
    sizes = np.bincount(assignment, minlength=num_partitions).astype(np.float64)
    ideal = sizes.sum() / num_partitions
    if ideal == 0:
        return 1.0
    max_deviation = np.max(np.abs(sizes - ideal) / ideal)
    return max(0.0, 1.0 - float(max_deviation))
