"""
GraphFront: Incremental multi-objective shortest paths over partitioned graphs

Computes Pareto fronts of vector-cost paths from a source node, keeps them
up to date as edges change, and splits reporting and mutation ownership
across workers by a one-shot broadcast partition table.
"""

__version__ = "0.1.0"

__all__ = [
    "GraphStore",
    "ParetoEngine",
    "IncrementalPropagator",
    "SpectralPartitioner",
    "Coordinator",
]


def __getattr__(name):
    """Lazy import to avoid loading scikit-learn unless needed"""
    if name == "GraphStore":
        from .graph.store import GraphStore
        return GraphStore
    elif name == "ParetoEngine":
        from .pareto.engine import ParetoEngine
        return ParetoEngine
    elif name == "IncrementalPropagator":
        from .pareto.incremental import IncrementalPropagator
        return IncrementalPropagator
    elif name == "SpectralPartitioner":
        from .partitioning.spectral import SpectralPartitioner
        return SpectralPartitioner
    elif name == "Coordinator":
        from .distributed.coordinator import Coordinator
        return Coordinator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
