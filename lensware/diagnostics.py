"""
Diagnostics and monitoring for Lensware
"""

import json
import logging
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table


# Rich console for pretty output
console = Console()
# Log records go to stderr so command output stays machine-readable
log_console = Console(stderr=True)


class AnnotationFormatter(logging.Formatter):
    """Prefixes records with the frame and entity they concern"""

    def format(self, record):
        if hasattr(record, 'entity'):
            record.msg = f"[{record.entity}] {record.msg}"
        if hasattr(record, 'frame_num'):
            record.msg = f"Frame[{record.frame_num}] {record.msg}"
        return super().format(record)


def enable_diagnostics(
    level: str = "INFO",
    format: str = "%(name)s - %(message)s",
    use_rich: bool = True,
    log_file: Optional[str] = None,
):
    """Enable diagnostics with specified configuration"""

    log_level = getattr(logging, level.upper(), logging.INFO)

    if use_rich:
        handler = RichHandler(
            console=log_console,
            show_time=True,
            show_path=False
        )
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(AnnotationFormatter(format))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            AnnotationFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)

    logging.getLogger('lensware').setLevel(log_level)


class Metrics:
    """Timing metrics for backend calls and frame passes"""

    def __init__(self):
        self._metrics = defaultdict(lambda: {
            'processed': 0,
            'errors': 0,
            'total_time': 0.0,
            'min_time': float('inf'),
            'max_time': 0.0,
            'last_update': None
        })
        self._values: Dict[str, list] = defaultdict(list)
        self._lock = threading.Lock()

    @contextmanager
    def track(self, name: str):
        """Context manager to track metrics for a named operation"""
        start_time = time.perf_counter()
        error = False

        try:
            yield
        except Exception:
            error = True
            raise
        finally:
            elapsed = time.perf_counter() - start_time

            with self._lock:
                metric = self._metrics[name]
                metric['processed'] += 1
                if error:
                    metric['errors'] += 1
                metric['total_time'] += elapsed
                metric['min_time'] = min(metric['min_time'], elapsed)
                metric['max_time'] = max(metric['max_time'], elapsed)
                metric['last_update'] = datetime.now()

    def record(self, name: str, value: float):
        """Record a custom metric value"""
        with self._lock:
            self._values[name].append(value)

    def get_stats(self, name: str) -> Dict[str, Any]:
        """Get statistics for a named metric"""
        with self._lock:
            return self._stats_locked(name)

    def _stats_locked(self, name: str) -> Dict[str, Any]:
        if name in self._metrics:
            stats = self._metrics[name].copy()
            if stats['processed'] > 0:
                stats['avg_time'] = stats['total_time'] / stats['processed']
            return stats

        values = self._values.get(name)
        if not values:
            return {}
        return {
            'count': len(values),
            'mean': sum(values) / len(values),
            'min': min(values),
            'max': max(values),
            'sum': sum(values)
        }

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get all collected statistics"""
        with self._lock:
            names = list(self._metrics) + list(self._values)
            return {name: self._stats_locked(name) for name in names}

    def print_summary(self):
        """Print a summary table of all timed operations"""
        table = Table(title="Lensware Metrics")
        table.add_column("Operation", style="cyan")
        table.add_column("Calls", style="green")
        table.add_column("Errors", style="red")
        table.add_column("Avg (ms)", style="yellow")
        table.add_column("Min/Max (ms)", style="blue")

        for name, metric in self.get_all_stats().items():
            if 'processed' in metric:
                table.add_row(
                    name,
                    str(metric.get('processed', 0)),
                    str(metric.get('errors', 0)),
                    f"{metric.get('avg_time', 0) * 1000:.1f}",
                    f"{metric.get('min_time', 0) * 1000:.1f}/{metric.get('max_time', 0) * 1000:.1f}"
                )

        console.print(table)

    def reset(self, name: Optional[str] = None):
        """Reset metrics for a specific name or all metrics"""
        with self._lock:
            if name:
                self._metrics.pop(name, None)
                self._values.pop(name, None)
            else:
                self._metrics.clear()
                self._values.clear()

    def export_json(self) -> str:
        """Export metrics as JSON"""
        stats = self.get_all_stats()
        for metric in stats.values():
            if metric.get('last_update'):
                metric['last_update'] = metric['last_update'].isoformat()
        return json.dumps(stats, indent=2)


# Global metrics instance
metrics = Metrics()
