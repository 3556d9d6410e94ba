"""
Multi-objective shortest path engines for GraphFront
"""

from .front import (
    FrontStore,
    Label,
    ParetoFront,
    dominates,
    dominates_or_equal,
    is_non_dominated
)
from .engine import ParetoEngine, ParetoResult
from .incremental import IncrementalPropagator, PropagationResult

__all__ = [
    'FrontStore',
    'Label',
    'ParetoFront',
    'dominates',
    'dominates_or_equal',
    'is_non_dominated',
    'ParetoEngine',
    'ParetoResult',
    'IncrementalPropagator',
    'PropagationResult'
]
