"""
Metrics collection and performance monitoring for gsheets2img
"""

import time
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from collections import defaultdict
import threading
from contextlib import contextmanager
import statistics


@dataclass
class PerformanceMetrics:
    """Container for performance metrics"""
    operation_name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    success: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    def finish(self, success: bool = True, **metadata):
        """Mark operation as finished"""
        self.end_time = time.time()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.metadata.update(metadata)


class PerformanceTimer:
    """Context manager for timing operations"""

    def __init__(self, operation_name: str, metrics_collector: 'MetricsCollector' = None):
        self.operation_name = operation_name
        self.metrics_collector = metrics_collector
        self.metrics = None

    def __enter__(self):
        self.metrics = PerformanceMetrics(
            operation_name=self.operation_name,
            start_time=time.time()
        )
        return self.metrics

    def __exit__(self, exc_type, exc_val, exc_tb):
        # A timer may already have been finished explicitly, e.g. for a
        # contained failure that never raises out of the block
        if self.metrics.end_time is None:
            self.metrics.finish(success=exc_type is None)

        if self.metrics_collector:
            self.metrics_collector.record_performance(self.metrics)


class WorkingSetGauge:
    """Counter of in-flight units of work with a high-water mark"""

    def __init__(self):
        self._lock = threading.Lock()
        self.current = 0
        self.peak = 0
        self.total = 0

    def enter(self) -> int:
        with self._lock:
            self.current += 1
            self.total += 1
            if self.current > self.peak:
                self.peak = self.current
            return self.current

    def exit(self) -> int:
        with self._lock:
            if self.current == 0:
                raise RuntimeError("WorkingSetGauge.exit() called more times than enter()")
            self.current -= 1
            return self.current

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {"current": self.current, "peak": self.peak, "total": self.total}

    def reset(self):
        with self._lock:
            self.current = 0
            self.peak = 0
            self.total = 0


class MetricsCollector:
    """Central metrics collector"""

    def __init__(self):
        self._performance_metrics: List[PerformanceMetrics] = []
        self._custom_metrics: Dict[str, Any] = defaultdict(list)
        self._lock = threading.Lock()

    def record_performance(self, metrics: PerformanceMetrics):
        with self._lock:
            self._performance_metrics.append(metrics)

    def record_custom_metric(self, name: str, value: Any, metadata: Dict[str, Any] = None):
        with self._lock:
            self._custom_metrics[name].append({
                "value": value,
                "timestamp": time.time(),
                "metadata": metadata or {}
            })

    def get_performance_summary(self, operation_name: str = None) -> Dict[str, Any]:
        """Get performance summary for operations"""
        with self._lock:
            metrics = self._performance_metrics
            if operation_name:
                metrics = [m for m in metrics if m.operation_name == operation_name]

            if not metrics:
                return {}

            durations = [m.duration for m in metrics if m.duration is not None]
            success_count = sum(1 for m in metrics if m.success)

            return {
                "operation_name": operation_name or "all",
                "total_operations": len(metrics),
                "successful_operations": success_count,
                "success_rate": success_count / len(metrics),
                "avg_duration": statistics.mean(durations) if durations else 0,
                "min_duration": min(durations) if durations else 0,
                "max_duration": max(durations) if durations else 0,
                "std_duration": statistics.stdev(durations) if len(durations) > 1 else 0
            }

    def get_all_metrics(self) -> Dict[str, Any]:
        operation_names = {m.operation_name for m in self._performance_metrics}
        return {
            "performance_metrics": {
                op: self.get_performance_summary(op) for op in operation_names
            },
            "custom_metrics": dict(self._custom_metrics),
            "timestamp": time.time()
        }

    def reset_metrics(self):
        with self._lock:
            self._performance_metrics.clear()
            self._custom_metrics.clear()

    @contextmanager
    def time_operation(self, operation_name: str):
        """Context manager for timing operations"""
        with PerformanceTimer(operation_name, self) as timer:
            yield timer


_metrics_collector = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance"""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector
