"""
Graph storage and ingestion for GraphFront
"""

from .store import Edge, GraphStore
from .io import load_edge_list, load_metis

__all__ = [
    'Edge',
    'GraphStore',
    'load_edge_list',
    'load_metis'
]
