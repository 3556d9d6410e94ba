"""
Distributed coordination for GraphFront

Workers exchange exactly one message: the partition table, broadcast by the
elected worker before any Pareto computation starts.
"""

from .transport import (
    BroadcastTransport,
    LocalBroadcast,
    MPIBroadcast,
    ThreadBroadcast,
    ThreadBroadcastGroup
)
from .coordinator import Coordinator, WorkerReport

__all__ = [
    'BroadcastTransport',
    'LocalBroadcast',
    'MPIBroadcast',
    'ThreadBroadcast',
    'ThreadBroadcastGroup',
    'Coordinator',
    'WorkerReport'
]
