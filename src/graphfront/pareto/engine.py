"""
Batch multi-objective label-setting shortest paths

Generalises Dijkstra to vector costs: every node keeps a Pareto front of
non-dominated labels instead of a single distance. The frontier heap pops
labels in lexicographic cost order (tie-break on node id). That order only
schedules expansion; with more than one objective it gives no settling
guarantee, and the final fronts depend solely on dominance pruning.

Worst-case label counts are exponential in graph size. This is inherent to
multi-objective shortest paths.
"""

import heapq
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import NodeOutOfRange
from ..graph.store import GraphStore
from .front import FrontStore, Label, ParetoFront

logger = logging.getLogger(__name__)


@dataclass
class ParetoResult:
    """Result of a batch Pareto front computation"""
    source: int
    fronts: Dict[int, ParetoFront]  # Only the requested nodes, as copies
    labels_pushed: int
    labels_settled: int
    labels_skipped: int
    computation_time: float
    total_labels: int = 0

    def front(self, node: int) -> ParetoFront:
        return self.fronts[node]

    def cost_sets(self) -> Dict[int, set]:
        return {node: front.cost_set() for node, front in self.fronts.items()}


class ParetoEngine:
    """
    Multi-objective label-setting engine

    Example:
        engine = ParetoEngine(graph)
        result = engine.run(source=0, owned=[3, 4])
        result.front(3).cost_set()
    """

    def __init__(self, graph: GraphStore, track_paths: bool = False):
        self.graph = graph
        self.track_paths = track_paths

    def run(
        self,
        source: int,
        owned: Optional[Iterable[int]] = None,
        store: Optional[FrontStore] = None
    ) -> ParetoResult:
        """
        Compute Pareto fronts of all nodes reachable from `source`

        Args:
            source: Source node
            owned: Nodes to report (all nodes if None); traversal is never restricted
            store: FrontStore to populate in place; a fresh one is used if None

        Returns:
            ParetoResult with copies of the fronts of the requested nodes
        """
        graph = self.graph
        if not 0 <= source < graph.num_nodes:
            raise NodeOutOfRange(source, graph.num_nodes)

        start_time = time.time()
        m = graph.num_objectives

        if store is None:
            store = FrontStore(graph.num_nodes, m)
        else:
            store.resize(graph.num_nodes)
            store.reset()

        origin = Label.zero(m, source if self.track_paths else None)
        store[source].insert(origin)

        # (costs, node, sequence, label); sequence keeps labels out of comparisons
        counter = itertools.count()
        frontier: List[Tuple[Tuple[float, ...], int, int, Label]] = [
            (origin.costs, source, next(counter), origin)
        ]
        pushed = 1
        settled = 0
        skipped = 0

        while frontier:
            costs, u, _, label = heapq.heappop(frontier)

            # Evicted after being pushed: its dominator's extensions dominate its own
            if label not in store[u]:
                skipped += 1
                continue
            settled += 1

            for edge in graph.neighbors(u):
                candidate = label.extend(edge.cost, edge.target)
                inserted, _ = store[edge.target].insert(candidate, evict=True)
                if inserted:
                    heapq.heappush(frontier, (candidate.costs, edge.target, next(counter), candidate))
                    pushed += 1

        if owned is None:
            requested = range(graph.num_nodes)
        else:
            requested = owned

        fronts = {}
        for node in requested:
            if not 0 <= node < graph.num_nodes:
                raise NodeOutOfRange(node, graph.num_nodes)
            fronts[int(node)] = store[node].copy()

        computation_time = time.time() - start_time
        total_labels = store.total_labels()

        logger.info(
            f"Pareto fronts from source {source}: {settled} labels settled, "
            f"{total_labels} retained in {computation_time:.4f}s"
        )

        return ParetoResult(
            source=source,
            fronts=fronts,
            labels_pushed=pushed,
            labels_settled=settled,
            labels_skipped=skipped,
            computation_time=computation_time,
            total_labels=total_labels
        )
