"""
Unit tests for the worker coordinator and broadcast transports

Runs several coordinators as threads sharing an in-process broadcast group.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from graphfront.graph.store import GraphStore
from graphfront.pareto.engine import ParetoEngine
from graphfront.partitioning.base import Partitioner
from graphfront.partitioning.spectral import SpectralPartitioner
from graphfront.distributed.coordinator import Coordinator, WorkerReport
from graphfront.distributed.transport import LocalBroadcast, ThreadBroadcastGroup
from graphfront.exceptions import (
    BroadcastError,
    NodeNotOwned,
    PartitionFailure,
    PropagationLimitExceeded
)


class FixedPartitioner(Partitioner):
    def __init__(self, assignment):
        self.assignment = assignment

    def _assign(self, graph, num_partitions):
        return np.array(self.assignment)


class FailingPartitioner(Partitioner):
    def _assign(self, graph, num_partitions):
        raise RuntimeError("solver crashed")


def diamond_graph() -> GraphStore:
    return GraphStore.from_edges(4, [
        (0, 1, [1.0, 5.0]),
        (0, 2, [5.0, 1.0]),
        (1, 3, [1.0, 1.0]),
        (2, 3, [1.0, 1.0]),
    ])


def random_graph(num_nodes: int, num_edges: int, seed: int) -> GraphStore:
    rng = np.random.default_rng(seed)
    graph = GraphStore(num_nodes, 2)
    for _ in range(num_edges):
        source, target = (int(x) for x in rng.integers(0, num_nodes, size=2))
        if source != target:
            graph.add_edge(source, target, rng.integers(1, 10, size=2).astype(float))
    return graph


def run_workers(world_size: int, worker, timeout: float = 30.0):
    """Run `worker(transport)` once per rank and return the finished futures"""
    group = ThreadBroadcastGroup(world_size, timeout=timeout)
    with ThreadPoolExecutor(max_workers=world_size) as pool:
        futures = [pool.submit(worker, endpoint) for endpoint in group.endpoints()]
    return futures


class TestTransports:
    """Test suite for partition table broadcast"""

    def test_local_broadcast(self):
        transport = LocalBroadcast()
        received = transport.broadcast(np.array([1, 0, 1]), 3)

        assert transport.rank == 0
        assert transport.world_size == 1
        assert received.dtype == np.int64
        assert received.tolist() == [1, 0, 1]

    def test_local_broadcast_rejects_bad_payload(self):
        transport = LocalBroadcast()
        with pytest.raises(BroadcastError):
            transport.broadcast(None, 3)
        with pytest.raises(BroadcastError):
            transport.broadcast(np.array([1, 0]), 3)
        with pytest.raises(BroadcastError):
            transport.broadcast(np.array([1, 0, 1]), 3, root=1)

    def test_thread_broadcast_delivers_root_array(self):
        def worker(transport):
            payload = np.array([7, 8, 9]) if transport.rank == 1 else None
            return transport.broadcast(payload, 3, root=1).tolist()

        futures = run_workers(3, worker)

        assert [f.result() for f in futures] == [[7, 8, 9]] * 3

    def test_thread_broadcast_root_failure_releases_peers(self):
        def worker(transport):
            return transport.broadcast(None, 3, root=0)

        futures = run_workers(3, worker)

        for future in futures:
            with pytest.raises(BroadcastError):
                future.result()

    def test_endpoint_rank_range(self):
        group = ThreadBroadcastGroup(2)
        with pytest.raises(ValueError):
            group.endpoint(2)
        with pytest.raises(ValueError):
            ThreadBroadcastGroup(0)


class TestCoordinator:
    """Test suite for single-worker coordination"""

    @pytest.fixture
    def coordinator(self) -> Coordinator:
        coordinator = Coordinator(
            diamond_graph(), LocalBroadcast(), partitioner=SpectralPartitioner()
        )
        coordinator.bootstrap()
        return coordinator

    def test_single_worker_owns_everything(self, coordinator):
        assert coordinator.is_root
        assert coordinator.owned == [0, 1, 2, 3]
        assert coordinator.assignment.tolist() == [0, 0, 0, 0]

    def test_compute(self, coordinator):
        result = coordinator.compute(0)

        assert set(result.fronts) == {0, 1, 2, 3}
        assert coordinator.front(3).cost_set() == {(2.0, 6.0), (6.0, 2.0)}
        assert len(coordinator.tracker.timers['batch']) == 1

    def test_requires_bootstrap(self):
        coordinator = Coordinator(diamond_graph(), LocalBroadcast())
        with pytest.raises(RuntimeError):
            coordinator.compute(0)
        with pytest.raises(RuntimeError):
            coordinator.recompute()

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            Coordinator(diamond_graph(), LocalBroadcast(), root=1)
        with pytest.raises(ValueError):
            Coordinator(diamond_graph(), LocalBroadcast(), recompute_every=0)

    def test_missing_partitioner_fails(self):
        coordinator = Coordinator(diamond_graph(), LocalBroadcast())
        with pytest.raises(PartitionFailure):
            coordinator.bootstrap()

    def test_empty_graph_fails(self):
        coordinator = Coordinator(
            GraphStore(0, 2), LocalBroadcast(), partitioner=SpectralPartitioner()
        )
        with pytest.raises(PartitionFailure):
            coordinator.bootstrap()

    def test_partitioner_error_is_wrapped(self):
        coordinator = Coordinator(
            diamond_graph(), LocalBroadcast(), partitioner=FailingPartitioner()
        )
        with pytest.raises(PartitionFailure) as exc_info:
            coordinator.bootstrap()
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_insert_edge_without_eviction(self, coordinator):
        coordinator.compute(0)
        result = coordinator.insert_edge(0, 3, [1.0, 1.0])

        assert result.inserted == 1
        assert coordinator.front(3).cost_set() == {(2.0, 6.0), (6.0, 2.0), (1.0, 1.0)}
        assert coordinator.mutations_applied == 1

    def test_insert_edge_with_eviction(self):
        coordinator = Coordinator(
            diamond_graph(), LocalBroadcast(),
            partitioner=SpectralPartitioner(), evict_dominated=True
        )
        coordinator.bootstrap()
        coordinator.compute(0)
        coordinator.insert_edge(0, 3, [1.0, 1.0])

        assert coordinator.front(3).cost_set() == {(1.0, 1.0)}

    def test_recompute_every(self):
        coordinator = Coordinator(
            diamond_graph(), LocalBroadcast(),
            partitioner=SpectralPartitioner(), recompute_every=1
        )
        coordinator.bootstrap()
        coordinator.compute(0)
        coordinator.insert_edge(0, 3, [1.0, 1.0])

        assert coordinator.front(3).cost_set() == {(1.0, 1.0)}
        assert coordinator.front(3).is_antichain()

    def test_remove_edge_recomputes(self, coordinator):
        coordinator.compute(0)
        coordinator.insert_edge(0, 3, [1.0, 1.0])
        coordinator.remove_edge(0, 3)

        assert coordinator.front(3).cost_set() == {(2.0, 6.0), (6.0, 2.0)}
        assert coordinator.mutations_applied == 2

    def test_update_edge_weight(self, coordinator):
        coordinator.compute(0)
        coordinator.update_edge_weight(0, 1, [0.5, 5.0])

        assert (1.5, 6.0) in coordinator.front(3).cost_set()

    def test_round_bound_failure_recomputes(self):
        graph = GraphStore.from_edges(6, [
            (node, node + 1, [1.0, 1.0]) for node in range(5)
        ])
        coordinator = Coordinator(
            graph, LocalBroadcast(), partitioner=SpectralPartitioner(), max_rounds=1
        )
        coordinator.bootstrap()
        coordinator.compute(0)

        with pytest.raises(PropagationLimitExceeded):
            coordinator.insert_edge(0, 2, [0.5, 0.5])

        assert graph.has_edge(0, 2)
        assert coordinator.mutations_applied == 1
        assert coordinator.front(3).cost_set() == {(1.5, 1.5)}
        expected = ParetoEngine(graph).run(0).cost_sets()
        for node in range(graph.num_nodes):
            assert coordinator.front(node).cost_set() == expected[node]
        assert coordinator.front(2).is_antichain()

    def test_report(self, coordinator):
        coordinator.compute(0)
        report = coordinator.report(sample_size=2)

        assert isinstance(report, WorkerReport)
        assert report.owned == [0, 1, 2, 3]
        assert report.sample_fronts == {0: [[0.0, 0.0]], 1: [[1.0, 5.0]]}

        lines = report.format_lines()
        assert lines[0] == "Worker 0 owns nodes: 0 1 2 3"
        assert "Worker 0 node 0 Pareto front: [0,0]" in lines
        assert "Worker 0 node 1 Pareto front: [1,5]" in lines


class TestCoordinatorIntegration:
    """Integration tests with several in-process workers"""

    def test_workers_share_partition_and_split_nodes(self):
        world_size = 3

        def worker(transport):
            graph = random_graph(30, 120, seed=9)
            coordinator = Coordinator(graph, transport, partitioner=SpectralPartitioner())
            coordinator.bootstrap()
            result = coordinator.compute(0)
            return coordinator.assignment.tolist(), coordinator.owned, result.cost_sets()

        futures = run_workers(world_size, worker)
        outcomes = [f.result() for f in futures]

        assignments = [assignment for assignment, _, _ in outcomes]
        assert all(assignment == assignments[0] for assignment in assignments)

        owned = [node for _, nodes, _ in outcomes for node in nodes]
        assert sorted(owned) == list(range(30))

        expected = ParetoEngine(random_graph(30, 120, seed=9)).run(0).cost_sets()
        for rank, (_, nodes, fronts) in enumerate(outcomes):
            assert set(fronts) == set(nodes)
            for node in nodes:
                assert fronts[node] == expected[node]

    def test_mutation_requires_ownership(self):
        def worker(transport):
            coordinator = Coordinator(
                diamond_graph(), transport, partitioner=FixedPartitioner([0, 0, 1, 1])
            )
            coordinator.bootstrap()
            coordinator.compute(0)
            if transport.rank == 1:
                with pytest.raises(NodeNotOwned):
                    coordinator.insert_edge(0, 3, [1.0, 1.0])
                with pytest.raises(PermissionError):
                    coordinator.remove_edge(0, 1)
                return coordinator.front(3).cost_set()
            coordinator.insert_edge(0, 3, [1.0, 1.0])
            return coordinator.front(3).cost_set()

        futures = run_workers(2, worker)

        assert futures[0].result() == {(2.0, 6.0), (6.0, 2.0), (1.0, 1.0)}
        assert futures[1].result() == {(2.0, 6.0), (6.0, 2.0)}

    def test_owned_reporting(self):
        def worker(transport):
            coordinator = Coordinator(
                diamond_graph(), transport, partitioner=FixedPartitioner([1, 0, 1, 0])
            )
            coordinator.bootstrap()
            coordinator.compute(0)
            return coordinator.report()

        reports = [f.result() for f in run_workers(2, worker)]

        assert reports[0].owned == [1, 3]
        assert reports[1].owned == [0, 2]
        assert set(reports[0].sample_fronts) == {1, 3}

    def test_root_failure_fails_every_worker(self):
        def worker(transport):
            coordinator = Coordinator(
                diamond_graph(), transport, partitioner=FailingPartitioner()
            )
            coordinator.bootstrap()

        futures = run_workers(3, worker)

        for future in futures:
            with pytest.raises(PartitionFailure):
                future.result()

    def test_invalid_assignment_fails_every_worker(self):
        def worker(transport):
            coordinator = Coordinator(
                diamond_graph(), transport, partitioner=FixedPartitioner([0, 5, 1, 0])
            )
            coordinator.bootstrap()

        futures = run_workers(2, worker)

        for future in futures:
            with pytest.raises(PartitionFailure):
                future.result()

    def test_non_default_root(self):
        def worker(transport):
            # Only the elected worker has a partitioner
            partitioner = FixedPartitioner([0, 1, 0, 1]) if transport.rank == 1 else None
            coordinator = Coordinator(diamond_graph(), transport, partitioner=partitioner, root=1)
            return coordinator.bootstrap().tolist()

        assert [f.result() for f in run_workers(2, worker)] == [[0, 1, 0, 1]] * 2
