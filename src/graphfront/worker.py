#!/usr/bin/env python3
"""
Worker entry point for GraphFront

Loads the graph, obtains the partition table from the elected worker,
computes Pareto fronts for the owned nodes, applies configured edge
mutations incrementally and prints a per-worker report.

Usage:
    graphfront-worker --config config/worker_config.yaml
    mpirun -np 4 graphfront-worker --config config/worker_config.yaml --transport mpi
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from .distributed.coordinator import Coordinator, WorkerReport
from .distributed.transport import BroadcastTransport, LocalBroadcast, MPIBroadcast
from .exceptions import GraphFrontError
from .graph.io import load_edge_list, load_metis
from .graph.store import GraphStore
from .partitioning.spectral import SpectralPartitioner
from .utils.config import ConfigValidator, create_default_config, load_config, merge_configs
from .utils.logger import WorkerLoggerAdapter, setup_logger


def load_graph(graph_config: Dict[str, Any]) -> GraphStore:
    """Load the graph described by the `graph` config section"""
    num_objectives = int(graph_config['num_objectives'])
    if graph_config['format'] == 'metis':
        return load_metis(graph_config['path'], num_objectives=num_objectives)

    max_nodes = graph_config.get('max_nodes')
    return load_edge_list(
        graph_config['path'],
        num_objectives=num_objectives,
        max_nodes=int(max_nodes) if max_nodes is not None else None
    )


def build_transport(name: str) -> BroadcastTransport:
    if name == 'mpi':
        return MPIBroadcast()
    if name == 'local':
        return LocalBroadcast()
    raise ValueError(f"Unknown transport: {name}")


def build_coordinator(
    config: Dict[str, Any],
    graph: GraphStore,
    transport: BroadcastTransport
) -> Coordinator:
    partitioner_config = config['partitioner']
    incremental = config['incremental']

    partitioner = SpectralPartitioner(
        refinement_iterations=int(partitioner_config.get('refinement_iterations', 10)),
        balance_tolerance=float(partitioner_config.get('balance_tolerance', 0.1)),
        seed=int(partitioner_config.get('seed', 42))
    )

    return Coordinator(
        graph,
        transport,
        partitioner=partitioner,
        track_paths=bool(config['pareto'].get('track_paths', False)),
        evict_dominated=bool(incremental.get('evict_dominated', False)),
        max_front_size=incremental.get('max_front_size'),
        max_rounds=incremental.get('max_rounds'),
        num_threads=int(incremental.get('num_threads', 1)),
        recompute_every=incremental.get('recompute_every')
    )


def apply_mutations(coordinator: Coordinator, mutations: List[Dict[str, Any]], log) -> int:
    """Apply the mutations whose source node this worker owns"""
    applied = 0
    for mutation in mutations:
        source, target = int(mutation['from']), int(mutation['to'])
        if not coordinator.owns(source):
            continue

        op = mutation['op']
        if op == 'insert':
            result = coordinator.insert_edge(source, target, mutation['cost'])
            log.info(f"Inserted {source}->{target}: {result.inserted} labels in {result.rounds} rounds")
        elif op == 'update':
            result = coordinator.update_edge_weight(source, target, mutation['cost'])
            log.info(f"Updated {source}->{target}: {result.inserted} labels in {result.rounds} rounds")
        else:
            coordinator.remove_edge(source, target)
            log.info(f"Removed {source}->{target}, fronts recomputed")
        applied += 1
    return applied


def run_worker(config: Dict[str, Any], transport: BroadcastTransport) -> WorkerReport:
    """Run one worker end to end and return its report"""
    log = WorkerLoggerAdapter(
        setup_logger(
            level=config['logging']['level'],
            log_file=config['logging'].get('log_file'),
            structured=bool(config['logging'].get('structured', True))
        ),
        transport.rank,
        transport.world_size
    )

    graph = load_graph(config['graph'])
    log.info(f"Loaded graph with {graph.num_nodes} nodes and {graph.num_edges} edges")

    coordinator = build_coordinator(config, graph, transport)
    coordinator.bootstrap(config['partitioner'].get('num_parts'))

    source = int(config['pareto']['source'])
    result = coordinator.compute(source)
    log.info(f"Batch computation finished in {result.computation_time:.4f}s")

    applied = apply_mutations(coordinator, config.get('mutations') or [], log)
    if applied:
        log.info(f"Applied {applied} local mutations")

    return coordinator.report(sample_size=int(config['report'].get('sample_size', 3)))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='GraphFront Pareto path worker')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to configuration file')
    parser.add_argument('--graph', type=str, default=None,
                        help='Graph file, overrides graph.path')
    parser.add_argument('--format', type=str, choices=['edgelist', 'metis'], default=None,
                        help='Graph file format, overrides graph.format')
    parser.add_argument('--source', type=int, default=None,
                        help='Source node, overrides pareto.source')
    parser.add_argument('--transport', type=str, choices=['local', 'mpi'], default='local',
                        help='Broadcast transport')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Logging level, overrides logging.level')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    overrides: Dict[str, Any] = {}
    if args.graph:
        overrides.setdefault('graph', {})['path'] = args.graph
    if args.format:
        overrides.setdefault('graph', {})['format'] = args.format
    if args.source is not None:
        overrides.setdefault('pareto', {})['source'] = args.source
    if args.log_level:
        overrides.setdefault('logging', {})['level'] = args.log_level

    loaded = load_config(args.config) if args.config else {}
    config = merge_configs(create_default_config(), loaded, overrides)

    try:
        ConfigValidator.validate_worker_config(config)
        transport = build_transport(args.transport)
        report = run_worker(config, transport)
    except (GraphFrontError, ValueError) as e:
        print(f"graphfront-worker: {e}", file=sys.stderr)
        return 1

    for line in report.format_lines():
        print(line)
    return 0


if __name__ == '__main__':
    sys.exit(main())
