"""
ecocorr/utils/performance_monitor.py
Timing of analysis operations.
"""

import functools
import inspect
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """Per-operation call statistics (process-wide)."""

    _instance: Optional["PerformanceMonitor"] = None

    def __init__(self):
        self._metrics: Dict[str, Dict[str, Any]] = {}
        self._start_time = datetime.now()

    @classmethod
    def get_instance(cls) -> "PerformanceMonitor":
        if cls._instance is None:
            cls._instance = PerformanceMonitor()
        return cls._instance

    def record_metric(self, func_name: str, duration: float, success: bool = True) -> None:
        if func_name not in self._metrics:
            self._metrics[func_name] = {
                'call_count': 0,
                'total_time': 0.0,
                'success_count': 0,
                'error_count': 0,
                'avg_time': 0.0,
                'max_time': 0.0,
                'min_time': float('inf')
            }

        metric = self._metrics[func_name]
        metric['call_count'] += 1
        metric['total_time'] += duration
        if success:
            metric['success_count'] += 1
        else:
            metric['error_count'] += 1
        metric['avg_time'] = metric['total_time'] / metric['call_count']
        metric['max_time'] = max(metric['max_time'], duration)
        metric['min_time'] = min(metric['min_time'], duration)

    def get_metrics(self, func_name: Optional[str] = None) -> Dict[str, Any]:
        if func_name:
            return self._metrics.get(func_name, {})
        return self._metrics

    def get_summary(self) -> Dict[str, Any]:
        total_calls = sum(m['call_count'] for m in self._metrics.values())
        total_time = sum(m['total_time'] for m in self._metrics.values())
        return {
            'total_functions_monitored': len(self._metrics),
            'total_calls': total_calls,
            'total_processing_time': total_time,
            'average_call_time': total_time / total_calls if total_calls > 0 else 0,
            'uptime_seconds': (datetime.now() - self._start_time).total_seconds(),
            'top_slow_functions': sorted(
                [(name, data['avg_time']) for name, data in self._metrics.items()],
                key=lambda x: x[1],
                reverse=True
            )[:5]
        }

    def reset(self) -> None:
        self._metrics.clear()


def monitor_performance(func_name: Optional[str] = None, warning_threshold: float = 2.0):
    """
    Performance monitoring decorator for sync and async functions

    Args:
        func_name: name used in the statistics (defaults to function.__name__)
        warning_threshold: seconds after which a warning is logged
    """
    def decorator(func):
        name = func_name or func.__name__

        def _finish(start: float, success: bool) -> float:
            elapsed = time.perf_counter() - start
            PerformanceMonitor.get_instance().record_metric(name, elapsed, success=success)
            if success and elapsed > warning_threshold:
                logger.warning("PERFORMANCE - %s took %.2fs (threshold: %ss)", name, elapsed, warning_threshold)
            return elapsed

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception:
                elapsed = _finish(start, success=False)
                logger.debug("%s failed after %.2fs", name, elapsed)
                raise
            _finish(start, success=True)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception:
                elapsed = _finish(start, success=False)
                logger.debug("%s failed after %.2fs", name, elapsed)
                raise
            _finish(start, success=True)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
