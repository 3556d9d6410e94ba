"""Graph partitioning for GraphFront"""

__all__ = [
    'Partitioner',
    'PartitionResult',
    'SpectralPartitioner',
    'validate_assignment'
]


def __getattr__(name):
    """Lazy import to avoid loading scikit-learn unless a partitioner is needed"""
    if name == 'SpectralPartitioner':
        from .spectral import SpectralPartitioner
        return SpectralPartitioner
    if name in __all__:
        from . import base
        return getattr(base, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
