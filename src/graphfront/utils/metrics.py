"""
Performance tracking utilities for GraphFront
"""

import time
from collections import defaultdict
from typing import Any, Dict, List

import numpy as np


class PerformanceTracker:
    """
    Track timings, counters and gauges for a worker
    """

    def __init__(self):
        self.timers: Dict[str, List[float]] = defaultdict(list)
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}

    def start_timer(self, name: str) -> 'TimerContext':
        """Start a timer"""
        return TimerContext(self, name)

    def record_time(self, name: str, duration: float):
        """Record a time measurement"""
        self.timers[name].append(duration)

    def increment_counter(self, name: str, value: int = 1):
        """Increment a counter"""
        self.counters[name] += value

    def set_gauge(self, name: str, value: float):
        """Set a gauge value"""
        self.gauges[name] = value

    def last_time(self, name: str) -> float:
        times = self.timers.get(name)
        return times[-1] if times else 0.0

    def get_timer_stats(self, name: str) -> Dict[str, float]:
        """Get statistics for a timer"""
        times = self.timers.get(name, [])
        if not times:
            return {}

        return {
            'count': len(times),
            'total': float(sum(times)),
            'mean': float(np.mean(times)),
            'min': float(min(times)),
            'max': float(max(times)),
            'p95': float(np.percentile(times, 95))
        }

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of all metrics"""
        return {
            'timers': {name: self.get_timer_stats(name) for name in self.timers},
            'counters': dict(self.counters),
            'gauges': dict(self.gauges)
        }


class TimerContext:
    """Context manager for timing code blocks"""

    def __init__(self, tracker: PerformanceTracker, name: str):
        self.tracker = tracker
        self.name = name
        self.start_time = None
        self.duration = 0.0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration = time.time() - self.start_time
            self.tracker.record_time(self.name, self.duration)
