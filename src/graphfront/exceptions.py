"""
Error taxonomy for GraphFront

Every error raised by the library derives from GraphFrontError and also from
the closest builtin exception, so callers can catch either.
"""


class GraphFrontError(Exception):
    """Base class for all GraphFront errors"""


class GraphLoadError(GraphFrontError, OSError):
    """Ingestion file missing or unreadable"""


class InvalidWeightDimension(GraphFrontError, ValueError):
    """Cost vector length does not match the graph's objective count"""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected cost vector of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidWeightValue(GraphFrontError, ValueError):
    """Cost vector contains a negative or non-finite component"""


class EdgeNotFound(GraphFrontError, LookupError):
    """Update or removal of an edge that does not exist"""

    def __init__(self, source: int, target: int):
        super().__init__(f"Edge {source}->{target} not found")
        self.source = source
        self.target = target


class NodeOutOfRange(GraphFrontError, IndexError):
    """Node id outside [0, n)"""

    def __init__(self, node: int, num_nodes: int):
        super().__init__(f"Node {node} out of range [0, {num_nodes})")
        self.node = node
        self.num_nodes = num_nodes


class PartitionFailure(GraphFrontError, RuntimeError):
    """Partitioner could not produce a valid assignment"""


class PropagationLimitExceeded(GraphFrontError, RuntimeError):
    """Incremental propagation did not reach a fixpoint within its round bound"""


class NodeNotOwned(GraphFrontError, PermissionError):
    """Local mutation on an edge whose source belongs to another worker"""


class BroadcastError(GraphFrontError, RuntimeError):
    """Broadcast transport failed to deliver the partition table"""
