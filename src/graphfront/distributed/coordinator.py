"""
Per-worker orchestration of Pareto front computation

Each worker holds the whole graph but reports on, and mutates edges out of,
only the nodes the partition table assigns to it. The table is computed once
by the elected worker and broadcast; after that workers never communicate.
Incremental effects that would cross into another worker's nodes are not
forwarded to that worker.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import NodeNotOwned, PartitionFailure, PropagationLimitExceeded
from ..graph.store import GraphStore
from ..pareto.engine import ParetoEngine, ParetoResult
from ..pareto.front import FrontStore, ParetoFront
from ..pareto.incremental import IncrementalPropagator, PropagationResult
from ..partitioning.base import Partitioner, check_partition_request, validate_assignment
from ..utils.metrics import PerformanceTracker
from .transport import BroadcastTransport

logger = logging.getLogger(__name__)

# Broadcast in place of a partition table when the elected worker fails
FAILURE_SENTINEL = -1


@dataclass
class WorkerReport:
    """Per-worker summary of a run"""
    rank: int
    world_size: int
    owned: List[int]
    sample_fronts: Dict[int, List[List[float]]]
    batch_time: float
    incremental_time: float
    mutations_applied: int = 0
    extra: Dict[str, float] = field(default_factory=dict)

    def format_lines(self) -> List[str]:
        lines = [f"Worker {self.rank} owns nodes: {' '.join(str(n) for n in self.owned)}"]
        lines.append(f"Worker {self.rank} batch time: {self.batch_time:.6f} seconds")
        for node, front in self.sample_fronts.items():
            vectors = ' '.join('[' + ','.join(f"{c:g}" for c in costs) + ']' for costs in front)
            lines.append(f"Worker {self.rank} node {node} Pareto front: {vectors}")
        if self.mutations_applied:
            lines.append(
                f"Worker {self.rank} applied {self.mutations_applied} mutations in "
                f"{self.incremental_time:.6f} seconds"
            )
        return lines


class Coordinator:
    """
    Worker-side coordinator

    Args:
        graph: Local copy of the graph
        transport: Broadcast transport; its rank identifies this worker
        partitioner: Partitioner used when this worker is the elected root
        root: Rank of the elected worker
        track_paths: Attach node sequences to labels
        evict_dominated: Eviction rule for incremental propagation
        max_front_size: Per-node cap for incremental propagation
        max_rounds: Round bound for incremental propagation
        num_threads: Collect-phase threads for incremental propagation
        recompute_every: Force a batch recomputation after this many mutations
    """

    def __init__(
        self,
        graph: GraphStore,
        transport: BroadcastTransport,
        partitioner: Optional[Partitioner] = None,
        root: int = 0,
        track_paths: bool = False,
        evict_dominated: bool = False,
        max_front_size: Optional[int] = None,
        max_rounds: Optional[int] = None,
        num_threads: int = 1,
        recompute_every: Optional[int] = None,
        tracker: Optional[PerformanceTracker] = None
    ):
        if not 0 <= root < transport.world_size:
            raise ValueError(f"Root {root} out of range [0, {transport.world_size})")
        if recompute_every is not None and recompute_every < 1:
            raise ValueError(f"recompute_every must be >= 1, got {recompute_every}")

        self.graph = graph
        self.transport = transport
        self.partitioner = partitioner
        self.root = root
        self.rank = transport.rank
        self.world_size = transport.world_size
        self.recompute_every = recompute_every
        self.tracker = tracker or PerformanceTracker()

        self.store = FrontStore(graph.num_nodes, graph.num_objectives)
        self.engine = ParetoEngine(graph, track_paths=track_paths)
        self.propagator = IncrementalPropagator(
            graph,
            self.store,
            evict_dominated=evict_dominated,
            max_front_size=max_front_size,
            max_rounds=max_rounds,
            num_threads=num_threads
        )

        self.assignment: Optional[np.ndarray] = None
        self.owned: List[int] = []
        self._owned_mask = np.zeros(0, dtype=bool)
        self.source: Optional[int] = None
        self.mutations_applied = 0
        self._mutations_since_recompute = 0

        logger.info(f"Worker {self.rank}/{self.world_size} coordinator initialized")

    @property
    def is_root(self) -> bool:
        return self.rank == self.root

    def bootstrap(self, num_parts: Optional[int] = None) -> np.ndarray:
        """
        Obtain the partition table

        The elected worker partitions the graph into `num_parts` parts
        (default: world size) and broadcasts the table; every worker blocks
        until it arrives. A failure on the elected worker fails every worker.
        """
        num_nodes = self.graph.num_nodes
        num_parts = num_parts if num_parts is not None else self.world_size
        # Same inputs on every worker, so every worker rejects them before blocking
        check_partition_request(self.graph, num_parts)
        payload = None
        failure: Optional[PartitionFailure] = None

        if self.is_root:
            try:
                if self.partitioner is None:
                    raise PartitionFailure("Elected worker has no partitioner")
                with self.tracker.start_timer('partitioning'):
                    payload = self.partitioner.partition(self.graph, num_parts)
            except PartitionFailure as e:
                failure = e
            except Exception as e:
                # Peers are already blocked on the broadcast and must be released
                failure = PartitionFailure(f"Partitioner raised {type(e).__name__}: {e}")
                failure.__cause__ = e

            if failure is not None:
                logger.error(f"Worker {self.rank}: partitioning failed: {failure}")
                payload = np.full(num_nodes, FAILURE_SENTINEL, dtype=np.int64)

        received = self.transport.broadcast(payload, num_nodes, root=self.root)

        if failure is not None:
            raise failure
        if num_nodes and np.any(received == FAILURE_SENTINEL):
            raise PartitionFailure(f"Elected worker {self.root} failed to partition the graph")

        self.assignment = validate_assignment(received, num_nodes, num_parts)
        self._owned_mask = self.assignment == self.rank
        self.owned = np.flatnonzero(self._owned_mask).tolist()

        logger.info(f"Worker {self.rank}: owns {len(self.owned)} of {num_nodes} nodes")
        return self.assignment

    def owns(self, node: int) -> bool:
        self._require_bootstrap()
        return 0 <= node < len(self._owned_mask) and bool(self._owned_mask[node])

    def compute(self, source: int) -> ParetoResult:
        """Batch Pareto fronts from `source`, reported for owned nodes only"""
        self._require_bootstrap()
        with self.tracker.start_timer('batch'):
            result = self.engine.run(source, owned=self.owned, store=self.store)
        self.source = source
        self._mutations_since_recompute = 0
        self.tracker.increment_counter('labels_settled', result.labels_settled)
        self.tracker.set_gauge('total_labels', result.total_labels)
        return result

    def recompute(self) -> ParetoResult:
        if self.source is None:
            raise RuntimeError("No source computed yet")
        logger.info(f"Worker {self.rank}: full recomputation from source {self.source}")
        return self.compute(self.source)

    def insert_edge(self, source: int, target: int, cost: Sequence[float]) -> PropagationResult:
        """Add an owned edge and propagate its effect through the local fronts"""
        self._require_owned(source)
        self.graph.add_edge(source, target, cost)
        return self._propagate_mutation(lambda: self.propagator.edge_inserted(source, target))

    def update_edge_weight(self, source: int, target: int, cost: Sequence[float]) -> PropagationResult:
        """
        Change an owned edge's cost and propagate

        Incremental propagation only adds labels; a cost increase leaves stale
        labels until the next recomputation.
        """
        self._require_owned(source)
        self.graph.update_edge_weight(source, target, cost)
        return self._propagate_mutation(lambda: self.propagator.edge_weight_changed(source, target))

    def remove_edge(self, source: int, target: int) -> Optional[ParetoResult]:
        """Remove an owned edge; fronts are rebuilt by a batch run"""
        self._require_owned(source)
        self.graph.remove_edge(source, target)
        self.mutations_applied += 1
        self.tracker.increment_counter('mutations')
        if self.source is None:
            return None
        return self.recompute()

    def front(self, node: int) -> ParetoFront:
        return self.store[node]

    def owned_fronts(self) -> Dict[int, ParetoFront]:
        return {node: self.store[node].copy() for node in self.owned}

    def report(self, sample_size: int = 3) -> WorkerReport:
        """Owned nodes, fronts of the first `sample_size` owned nodes and timings"""
        self._require_bootstrap()
        sample = {}
        for node in self.owned[:sample_size]:
            sample[node] = [list(label.costs) for label in self.store[node]]

        return WorkerReport(
            rank=self.rank,
            world_size=self.world_size,
            owned=list(self.owned),
            sample_fronts=sample,
            batch_time=self.tracker.last_time('batch'),
            incremental_time=float(sum(self.tracker.timers.get('incremental', []))),
            mutations_applied=self.mutations_applied,
            extra={'total_labels': float(self.store.total_labels())}
        )

    def _propagate_mutation(self, run) -> PropagationResult:
        self.store.resize(self.graph.num_nodes)
        self.mutations_applied += 1
        self._mutations_since_recompute += 1
        self.tracker.increment_counter('mutations')

        try:
            with self.tracker.start_timer('incremental'):
                result = run()
        except PropagationLimitExceeded:
            # The edge is already in the graph; partially propagated fronts are rebuilt
            if self.source is not None:
                logger.warning(f"Worker {self.rank}: incremental propagation did not settle, recomputing")
                self.recompute()
            raise

        self.tracker.increment_counter('labels_inserted', result.inserted)

        if (
            self.recompute_every is not None
            and self.source is not None
            and self._mutations_since_recompute >= self.recompute_every
        ):
            self.recompute()
        return result

    def _require_bootstrap(self):
        if self.assignment is None:
            raise RuntimeError("Coordinator not bootstrapped")

    def _require_owned(self, node: int):
        if not self.owns(node):
            raise NodeNotOwned(f"Node {node} is not owned by worker {self.rank}")
