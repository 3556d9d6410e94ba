"""
Utility functions for GraphFront
"""

from .logger import setup_logger, get_logger, WorkerLoggerAdapter
from .metrics import PerformanceTracker
from .config import (
    load_config,
    merge_configs,
    create_default_config,
    ConfigValidator
)

__all__ = [
    'setup_logger',
    'get_logger',
    'WorkerLoggerAdapter',
    'PerformanceTracker',
    'load_config',
    'merge_configs',
    'create_default_config',
    'ConfigValidator'
]
