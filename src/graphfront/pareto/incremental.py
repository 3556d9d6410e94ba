"""
Incremental Pareto front maintenance after local edge changes

Propagation runs in rounds until no node has pending labels. Each round has
two phases:

1. Collect: every pending node extends the labels it gained since its last
   expansion across its outgoing edges. Nodes are expanded concurrently on a
   thread pool, but this phase only reads fronts.
2. Merge: a single thread applies the candidates in (target, source, edge)
   order and queues the labels that entered a front for the next round.

Only the merge phase writes fronts or the pending set. After a single edge
changes, the first round extends the source's labels across that edge only.

By default a newly inserted label does not evict the labels it dominates at
its destination, unlike ParetoEngine. Fronts then grow monotonically and
can stop being antichains; `evict_dominated=True` applies the batch rule.
"""

import logging
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..exceptions import NodeOutOfRange, PropagationLimitExceeded
from ..graph.store import GraphStore
from .front import FrontStore, Label

logger = logging.getLogger(__name__)

# (target, source, edge position, label position, candidate)
Candidate = Tuple[int, int, int, int, Label]
# node -> labels still to expand
Pending = Dict[int, List[Label]]


@dataclass
class PropagationResult:
    """Outcome of one incremental propagation"""
    rounds: int
    inserted: int
    evicted: int
    rejected_by_cap: int
    touched: List[int] = field(default_factory=list)
    propagation_time: float = 0.0


class IncrementalPropagator:
    """
    Worklist fixpoint over a FrontStore

    Args:
        graph: Graph whose edges are followed
        store: Fronts to extend in place
        evict_dominated: Remove destination labels a new label dominates
        max_front_size: Reject candidates arriving at a front of this size
        max_rounds: Round bound; defaults to num_nodes + 1
        num_threads: Thread pool size for the collect phase
    """

    def __init__(
        self,
        graph: GraphStore,
        store: FrontStore,
        evict_dominated: bool = False,
        max_front_size: Optional[int] = None,
        max_rounds: Optional[int] = None,
        num_threads: int = 1
    ):
        if max_front_size is not None and max_front_size < 1:
            raise ValueError(f"max_front_size must be >= 1, got {max_front_size}")
        if max_rounds is not None and max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")
        if num_threads < 1:
            raise ValueError(f"num_threads must be >= 1, got {num_threads}")

        self.graph = graph
        self.store = store
        self.evict_dominated = evict_dominated
        self.max_front_size = max_front_size
        self.max_rounds = max_rounds
        self.num_threads = num_threads

    def edge_inserted(self, source: int, target: int) -> PropagationResult:
        """Propagate the effect of a new source->target edge"""
        return self._propagate_edge(source, target)

    def edge_weight_changed(self, source: int, target: int) -> PropagationResult:
        """
        Propagate a changed source->target cost

        Only improvements reach the fronts; labels made stale by a cost
        increase stay until the next full recomputation.
        """
        return self._propagate_edge(source, target)

    def propagate(self, dirty: Iterable[int]) -> PropagationResult:
        """
        Run rounds until no node has pending labels

        Nodes passed in re-expand their whole front across every outgoing
        edge; nodes reached during propagation expand only the labels they
        gained.
        """
        self.store.resize(self.graph.num_nodes)
        num_nodes = self.graph.num_nodes

        pending: Pending = {}
        for node in sorted(set(int(n) for n in dirty)):
            if not 0 <= node < num_nodes:
                raise NodeOutOfRange(node, num_nodes)
            labels = self.store[node].labels
            if labels:
                pending[node] = labels

        return self._run(pending, seed=[])

    def _propagate_edge(self, source: int, target: int) -> PropagationResult:
        self.store.resize(self.graph.num_nodes)
        # Raises EdgeNotFound / NodeOutOfRange for an unknown edge
        cost = self.graph.edge_cost(source, target)

        seed = [
            (target, source, 0, position, label.extend(cost, target))
            for position, label in enumerate(self.store[source].labels)
        ]
        return self._run({}, seed=seed)

    def _run(self, pending: Pending, seed: List[Candidate]) -> PropagationResult:
        start_time = time.time()
        num_nodes = self.graph.num_nodes
        limit = self.max_rounds if self.max_rounds is not None else num_nodes + 1
        result = PropagationResult(rounds=0, inserted=0, evicted=0, rejected_by_cap=0)
        touched = set()

        if seed:
            result.rounds += 1
            pending = self._merge(sorted(seed, key=lambda c: c[:4]), result, touched)

        executor = ThreadPoolExecutor(max_workers=self.num_threads) if self.num_threads > 1 else None
        try:
            while pending:
                if result.rounds >= limit:
                    raise PropagationLimitExceeded(
                        f"No fixpoint after {limit} rounds, {len(pending)} nodes still pending"
                    )
                result.rounds += 1
                candidates = self._collect(pending, executor)
                pending = self._merge(candidates, result, touched)
                logger.debug(
                    f"Round {result.rounds}: {len(candidates)} candidates, "
                    f"{len(pending)} nodes pending"
                )
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        result.touched = sorted(touched)
        result.propagation_time = time.time() - start_time

        logger.info(
            f"Incremental propagation: {result.rounds} rounds, {result.inserted} labels inserted, "
            f"{result.evicted} evicted, {len(result.touched)} nodes touched"
        )
        return result

    def _collect(
        self,
        pending: Pending,
        executor: Optional[ThreadPoolExecutor]
    ) -> List[Candidate]:
        nodes = list(pending)
        if executor is not None and len(nodes) > 1:
            batches = list(executor.map(lambda node: self._expand(node, pending[node]), nodes))
        else:
            batches = [self._expand(node, pending[node]) for node in nodes]

        candidates = [candidate for batch in batches for candidate in batch]
        candidates.sort(key=lambda c: c[:4])
        return candidates

    def _expand(self, node: int, labels: List[Label]) -> List[Candidate]:
        front = self.store[node]
        if self.evict_dominated:
            # Labels evicted since they were queued are dominated by a queued label
            labels = [label for label in labels if label in front]

        candidates = []
        for edge_position, edge in enumerate(self.graph.neighbors(node)):
            for label_position, label in enumerate(labels):
                candidate = label.extend(edge.cost, edge.target)
                candidates.append((edge.target, node, edge_position, label_position, candidate))
        return candidates

    def _merge(
        self,
        candidates: List[Candidate],
        result: PropagationResult,
        touched: set
    ) -> Pending:
        next_pending: Pending = defaultdict(list)

        for target, _, _, _, candidate in candidates:
            front = self.store[target]
            if front.covers(candidate.costs):
                continue

            if self.max_front_size is not None and len(front) >= self.max_front_size:
                frees_space = self.evict_dominated and front.dominated_by(candidate.costs)
                if not frees_space:
                    result.rejected_by_cap += 1
                    continue

            inserted, evicted = front.insert(candidate, evict=self.evict_dominated)
            if inserted:
                result.inserted += 1
                result.evicted += len(evicted)
                touched.add(target)
                next_pending[target].append(candidate)

        return dict(sorted(next_pending.items()))
