"""
Graph ingestion from METIS-style adjacency files and plain edge lists

Both loaders assign every edge a unit cost vector of length num_objectives.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..exceptions import GraphLoadError
from .store import GraphStore

logger = logging.getLogger(__name__)

METIS_COMMENT = '%'
EDGE_LIST_COMMENT = '#'


def _read_lines(path: Union[str, Path]) -> List[str]:
    path = Path(path)
    try:
        with open(path, 'r') as f:
            return f.read().splitlines()
    except OSError as e:
        raise GraphLoadError(f"Cannot read graph file {path}: {e}") from e


def load_metis(path: Union[str, Path], num_objectives: int = 1) -> GraphStore:
    """
    Load a METIS adjacency file

    The first non-comment line holds `num_nodes num_edges`; each of the next
    num_nodes lines lists the 1-based neighbours of that node.

    Args:
        path: File path
        num_objectives: Length of the unit cost vector attached to each edge

    Returns:
        GraphStore with one directed edge per listed neighbour
    """
    lines = iter(enumerate(_read_lines(path), start=1))

    header = None
    for _, line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith(METIS_COMMENT):
            continue
        header = stripped.split()
        break

    if header is None or len(header) < 2:
        raise GraphLoadError(f"Missing METIS header in {path}")

    try:
        num_nodes, declared_edges = int(header[0]), int(header[1])
    except ValueError as e:
        raise GraphLoadError(f"Malformed METIS header in {path}: {header}") from e

    graph = GraphStore(num_nodes, num_objectives)
    unit = [1.0] * num_objectives

    node = 0
    for line_number, line in lines:
        if node >= num_nodes:
            break
        if line.strip().startswith(METIS_COMMENT):
            continue
        try:
            neighbours = [int(token) - 1 for token in line.split()]
        except ValueError as e:
            raise GraphLoadError(
                f"Malformed adjacency row for node {node + 1} on line {line_number} of {path}"
            ) from e
        for neighbour in neighbours:
            if not 0 <= neighbour < num_nodes:
                raise GraphLoadError(
                    f"Neighbour {neighbour + 1} out of range [1, {num_nodes}] "
                    f"on line {line_number} of {path}"
                )
            graph.add_edge(node, neighbour, unit)
        node += 1

    if node < num_nodes:
        logger.warning(f"METIS file {path} declares {num_nodes} nodes but lists {node}")

    # METIS counts undirected edges once, the adjacency lists hold both directions
    logger.info(
        f"Loaded METIS graph: {graph.num_nodes} nodes, {graph.num_edges} directed edges "
        f"(header declared {declared_edges})"
    )
    return graph


def load_edge_list(
    path: Union[str, Path],
    num_objectives: int = 1,
    max_nodes: Optional[int] = None
) -> GraphStore:
    """
    Load a whitespace-separated `from to` edge list

    Node count is max(id) + 1. With max_nodes, edges touching an id at or
    above the cap are dropped and the graph is sized to exactly max_nodes.
    """
    edges: List[Tuple[int, int]] = []
    max_node = -1
    skipped = 0

    for line_number, line in enumerate(_read_lines(path), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(EDGE_LIST_COMMENT):
            continue
        tokens = stripped.split()
        try:
            source, target = int(tokens[0]), int(tokens[1])
        except (IndexError, ValueError):
            logger.debug(f"Skipping malformed line {line_number} in {path}: {stripped!r}")
            skipped += 1
            continue
        if source < 0 or target < 0:
            logger.debug(f"Skipping negative node id on line {line_number} in {path}")
            skipped += 1
            continue
        if max_nodes is not None and (source >= max_nodes or target >= max_nodes):
            continue
        edges.append((source, target))
        max_node = max(max_node, source, target)

    num_nodes = max_nodes if max_nodes is not None else max_node + 1
    graph = GraphStore(num_nodes, num_objectives)
    unit = [1.0] * num_objectives
    for source, target in edges:
        graph.add_edge(source, target, unit)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed lines in {path}")
    logger.info(f"Loaded edge list: {graph.num_nodes} nodes, {graph.num_edges} edges")
    return graph
