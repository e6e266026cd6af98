"""
Application layer for the metrics collector.

Orchestrates domain logic across the source, sink and cache ports.
"""

from concourse_metrics.application.collector import MetricsCollector

__all__ = [
    "MetricsCollector",
]
